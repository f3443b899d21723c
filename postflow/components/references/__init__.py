"""References component - asset URLs embedded in post bodies."""

from postflow.components.references.component import extract_asset_refs, is_external_url

__all__ = [
    "extract_asset_refs",
    "is_external_url",
]
