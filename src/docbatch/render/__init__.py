"""Public APIs for rendering document trees."""

from __future__ import annotations

from .config import (
    ConfigOverrides,
    LoadResult,
    RenderConfig,
    RenderConfigError,
    build_config,
    load_config,
)
from .discovery import DocumentFilter, TreeWalker, scan_documents
from .errors import (
    DependencyError,
    ExtensionRegistrationError,
    MissingParameterError,
    PathResolutionError,
    PipelineIOError,
    RenderFailure,
    RenderPipelineError,
    ResourceCopyError,
)
from .executor import (
    ConversionOrchestrator,
    RenderSummary,
    RenderedDocument,
    RunState,
    run_render,
)
from .extensions import (
    ExtensionKind,
    ExtensionRegistration,
    register_extensions,
)
from .layout import BaseDirPolicy, BaseDirResolver, LayoutMode, LayoutResolver
from .options import OptionSet, RenderSettings, SafeMode, build_options
from .renderers import (
    AsciidoctorCommandRenderer,
    MarkdownRenderer,
    Renderer,
    create_renderer,
)
from .resources import ResourceSpec, mirror_resources

__all__ = [
    "AsciidoctorCommandRenderer",
    "BaseDirPolicy",
    "BaseDirResolver",
    "ConfigOverrides",
    "ConversionOrchestrator",
    "DependencyError",
    "DocumentFilter",
    "ExtensionKind",
    "ExtensionRegistration",
    "ExtensionRegistrationError",
    "LayoutMode",
    "LayoutResolver",
    "LoadResult",
    "MarkdownRenderer",
    "MissingParameterError",
    "OptionSet",
    "PathResolutionError",
    "PipelineIOError",
    "RenderConfig",
    "RenderConfigError",
    "RenderFailure",
    "RenderPipelineError",
    "RenderSettings",
    "RenderSummary",
    "RenderedDocument",
    "Renderer",
    "ResourceCopyError",
    "ResourceSpec",
    "RunState",
    "SafeMode",
    "TreeWalker",
    "build_config",
    "build_options",
    "create_renderer",
    "load_config",
    "mirror_resources",
    "register_extensions",
    "run_render",
    "scan_documents",
]
