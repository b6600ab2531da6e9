"""Exception hierarchy for render runs."""

from __future__ import annotations

__all__ = [
    "RenderPipelineError",
    "MissingParameterError",
    "PathResolutionError",
    "PipelineIOError",
    "ResourceCopyError",
    "RenderFailure",
    "DependencyError",
    "ExtensionRegistrationError",
]


class RenderPipelineError(RuntimeError):
    """Base class for every failure raised by a render run."""


class MissingParameterError(RenderPipelineError):
    """Raised when a required configuration value is absent."""

    def __init__(self, field: str) -> None:
        super().__init__(f"{field} is mandatory")
        self.field = field


class PathResolutionError(RenderPipelineError):
    """Raised when a path cannot be canonicalized or placed under a root."""


class PipelineIOError(RenderPipelineError):
    """Raised when reading the source tree or writing the output tree fails."""


class ResourceCopyError(PipelineIOError):
    """Raised when mirroring a resource tree fails."""


class RenderFailure(RenderPipelineError):
    """Raised by renderer adapters when a document cannot be rendered."""


class DependencyError(RenderPipelineError):
    """Raised when a renderer's backing tool or library is unavailable."""


class ExtensionRegistrationError(RenderPipelineError):
    """Raised when extension registrations cannot be forwarded."""
