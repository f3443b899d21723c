"""Authoring component - draft state and publish guard for one editor view."""

from postflow.components.authoring.component import AuthoringSession, append_image

__all__ = [
    "AuthoringSession",
    "append_image",
]
