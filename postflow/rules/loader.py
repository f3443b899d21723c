import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from postflow.rules.models import PipelineRules

logger = logging.getLogger(__name__)


def load_rules(path: Path) -> PipelineRules:
    """
    Load and validate the pipeline rules file.
    Raises FileNotFoundError if file missing.
    Raises ValueError if the YAML or the schema is invalid.
    """
    if not path.exists():
        raise FileNotFoundError(f"Rules file not found at: {path}")

    with open(path) as f:
        content = f.read()

    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML syntax in rules file: {e}") from e

    # An empty file means "all defaults"
    if data is None:
        data = {}

    try:
        rules = PipelineRules.model_validate(data)
    except ValidationError as e:
        # Re-raise with a clear message for the caller/logs
        raise ValueError(f"Rules validation failed:\n{e}") from e

    logger.info("Pipeline rules loaded from %s", path)
    return rules
