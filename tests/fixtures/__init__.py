"""Shared testing fixtures for the docbatch test suite."""

from .renderers import RecordingRegistry, RecordingRenderer  # noqa: F401
from .workspace import WorkspaceBuilder, build_tree  # noqa: F401

__all__ = [
    "RecordingRegistry",
    "RecordingRenderer",
    "WorkspaceBuilder",
    "build_tree",
]
