"""Sequential orchestrator for render runs."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable, Optional

from .config import RenderConfig
from .discovery import DocumentFilter, TreeWalker
from .errors import (
    ExtensionRegistrationError,
    MissingParameterError,
    PipelineIOError,
)
from .extensions import ExtensionRegistry, register_extensions
from .layout import LayoutResolver
from .options import OptionSet, build_options
from .renderers import Renderer
from .resources import mirror_resources


class RunState(Enum):
    """Lifecycle of a render run."""

    VALIDATING = "validating"
    PREPARING = "preparing"
    RENDERING = "rendering"
    MIRRORING = "mirroring"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class RenderedDocument:
    """A document handed to the renderer and where its output went."""

    source: Path
    destination_dir: Path
    base_dir: Path


@dataclass(frozen=True)
class RenderSummary:
    """Aggregated results for a completed render run."""

    source_dir: Path
    output_dir: Path
    rendered: tuple[RenderedDocument, ...]
    resources: tuple[Path, ...]
    skipped_directories: tuple[Path, ...]
    state: RunState = RunState.DONE

    @property
    def rendered_count(self) -> int:
        return len(self.rendered)

    @property
    def resource_count(self) -> int:
        return len(self.resources)


class ConversionOrchestrator:
    """Drive one render run from validation to resource mirroring.

    Every step runs on the calling thread. The first error moves the run to
    :attr:`RunState.FAILED` and propagates to the caller; renderer errors
    propagate unchanged.
    """

    def __init__(
        self,
        config: RenderConfig,
        renderer: Renderer,
        *,
        logger: logging.Logger,
        registry: Optional[ExtensionRegistry] = None,
    ) -> None:
        self.config = config
        self.renderer = renderer
        self.registry = registry
        self.logger = logger
        self.state = RunState.VALIDATING

    def run(self) -> RenderSummary:
        try:
            return self._run()
        except Exception:
            self.state = RunState.FAILED
            raise

    def _run(self) -> RenderSummary:
        self.state = RunState.VALIDATING
        source_dir, output_dir = self._validate()

        self.state = RunState.PREPARING
        self._ensure_output_root(output_dir)
        self._load_libraries()
        self._register_extensions()
        options = build_options(self.config.settings, self.config.attributes)
        self.logger.info(
            "Starting render run",
            extra={
                "source_dir": str(source_dir),
                "output_dir": str(output_dir),
                "backend": options.backend,
                "renderer": self.config.renderer,
                "layout": self.config.layout_mode.value,
                "attributes": dict(options.attributes),
            },
        )

        self.state = RunState.RENDERING
        layout = LayoutResolver(
            source_root=source_dir,
            output_root=output_dir,
            mode=self.config.layout_mode,
        )
        walker: Optional[TreeWalker] = None
        if self.config.source_document:
            documents: Iterable[Path] = [
                source_dir / self.config.source_document
            ]
        else:
            walker = TreeWalker(
                source_dir,
                DocumentFilter(self.config.extensions),
                logger=self.logger,
            )
            documents = self._scan(walker)

        rendered = tuple(
            self._render(document, options, layout) for document in documents
        )
        skipped = tuple(walker.skipped) if walker is not None else ()
        if skipped:
            self.logger.warning(
                "Skipped unreadable directories during scan",
                extra={"skipped_count": len(skipped)},
            )

        self.state = RunState.MIRRORING
        copied = mirror_resources(
            self.config.resources,
            source_dir,
            output_dir,
            logger=self.logger,
        )

        self.state = RunState.DONE
        summary = RenderSummary(
            source_dir=source_dir,
            output_dir=output_dir,
            rendered=rendered,
            resources=copied,
            skipped_directories=skipped,
        )
        self.logger.info(
            "Completed render run",
            extra={
                "rendered_count": summary.rendered_count,
                "resource_count": summary.resource_count,
                "skipped_count": len(skipped),
            },
        )
        return summary

    def _validate(self) -> tuple[Path, Path]:
        if not _is_set(self.config.source_dir):
            raise MissingParameterError("source_dir")
        if not _is_set(self.config.output_dir):
            raise MissingParameterError("output_dir")
        return Path(self.config.source_dir), Path(self.config.output_dir)

    def _ensure_output_root(self, output_dir: Path) -> None:
        try:
            output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            self.logger.warning(
                "Can't create output directory",
                extra={"output_dir": str(output_dir), "reason": str(exc)},
            )

    def _load_libraries(self) -> None:
        for library in self.config.requires:
            self.renderer.require_library(library)
            self.logger.debug(
                "Loaded renderer library", extra={"library": library}
            )

    def _register_extensions(self) -> None:
        registrations = self.config.extension_registrations
        if not registrations:
            return
        registry = self.registry
        if registry is None:
            registry = getattr(self.renderer, "extensions", None)
        if registry is None:
            raise ExtensionRegistrationError(
                "Renderer does not expose an extension registry."
            )
        register_extensions(registry, registrations, logger=self.logger)

    def _scan(self, walker: TreeWalker) -> Iterable[Path]:
        try:
            iterator = walker.scan()
        except OSError as exc:
            raise PipelineIOError(
                f"Unable to scan source directory {walker.root}: {exc}"
            ) from exc
        return iterator

    def _render(
        self, document: Path, options: OptionSet, layout: LayoutResolver
    ) -> RenderedDocument:
        destination = layout.destination_dir(document)
        base_dir = self.config.base_dir_resolver().base_dir(document)
        self.renderer.render_file(
            document,
            options.for_document(
                base_dir=base_dir, destination_dir=destination
            ),
        )
        self.logger.info(
            "Rendered document",
            extra={
                "source": str(document),
                "destination_dir": str(destination),
                "base_dir": str(base_dir),
            },
        )
        return RenderedDocument(
            source=document, destination_dir=destination, base_dir=base_dir
        )


def run_render(
    config: RenderConfig,
    *,
    renderer: Renderer,
    logger: logging.Logger,
    registry: Optional[ExtensionRegistry] = None,
) -> RenderSummary:
    """Run a render with ``renderer`` and return the summary."""

    orchestrator = ConversionOrchestrator(
        config, renderer, logger=logger, registry=registry
    )
    return orchestrator.run()


def _is_set(value: Optional[Path]) -> bool:
    # Path("") collapses to "."
    return value is not None and str(value).strip() not in ("", ".")


__all__ = [
    "ConversionOrchestrator",
    "RenderSummary",
    "RenderedDocument",
    "RunState",
    "run_render",
]
