"""Notifications component - follower fan-out for newly created posts."""

from postflow.components.notifications.component import (
    DEFAULT_CHUNK_SIZE,
    NotificationFanoutWriter,
    build_notification,
    chunked,
)
from postflow.components.notifications.models import ChunkFailure, FanoutReport
from postflow.components.notifications.ports import NotificationStorePort

__all__ = [
    # Component
    "NotificationFanoutWriter",
    "DEFAULT_CHUNK_SIZE",
    "build_notification",
    "chunked",
    # Models
    "ChunkFailure",
    "FanoutReport",
    # Ports
    "NotificationStorePort",
]
