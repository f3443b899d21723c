"""Publish component port definitions - protocols for dependencies."""

from postflow.components.richtext.component import ConverterPort
from postflow.core.ports.clock import ClockPort
from postflow.core.ports.identity import IdentityPort
from postflow.core.ports.storage import ObjectStoragePort
from postflow.core.ports.store import DocumentStorePort
from postflow.core.ports.validation import ValidationPort

__all__ = [
    "ClockPort",
    "ConverterPort",
    "DocumentStorePort",
    "IdentityPort",
    "ObjectStoragePort",
    "ValidationPort",
]
