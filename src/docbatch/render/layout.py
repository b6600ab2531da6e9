"""Per-document output placement and include base directory resolution."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from .errors import PathResolutionError, PipelineIOError


class LayoutMode(Enum):
    """Where rendered output lands relative to the output root."""

    FLATTEN = "flatten"
    PRESERVE_HIERARCHY = "preserve"

    @classmethod
    def from_flag(cls, preserve_directories: bool) -> "LayoutMode":
        if preserve_directories:
            return cls.PRESERVE_HIERARCHY
        return cls.FLATTEN


class BaseDirPolicy(Enum):
    """Which directory the renderer resolves includes and links against."""

    EXPLICIT = "explicit"
    RELATIVE_TO_FILE = "relative-to-file"
    RELATIVE_TO_PROJECT_ROOT = "relative-to-project-root"


def relative_offset(path: Path, root: Path) -> Path:
    """Return ``path`` relative to ``root`` after canonicalizing both.

    Symlinks and ``..`` segments are resolved first. A path that does not
    exist, or lies outside ``root``, raises :class:`PathResolutionError`.
    """

    try:
        canonical_root = Path(root).resolve(strict=True)
        canonical_path = Path(path).resolve(strict=True)
    except (OSError, RuntimeError) as exc:
        raise PathResolutionError(
            f"Unable to canonicalize {path}: {exc}"
        ) from exc
    try:
        return canonical_path.relative_to(canonical_root)
    except ValueError as exc:
        raise PathResolutionError(
            f"{canonical_path} is not located under {canonical_root}"
        ) from exc


def ensure_directory(directory: Path) -> Path:
    """Create ``directory`` and its parents; succeed when it already exists."""

    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise PipelineIOError(
            f"Unable to create output directory {directory}: {exc}"
        ) from exc
    return directory


@dataclass(frozen=True)
class LayoutResolver:
    """Compute (and create) the destination directory for a source file."""

    source_root: Path
    output_root: Path
    mode: LayoutMode = LayoutMode.FLATTEN

    def destination_dir(self, source: Path) -> Path:
        if self.mode is LayoutMode.FLATTEN:
            return ensure_directory(self.output_root)
        offset = relative_offset(Path(source).parent, self.source_root)
        return ensure_directory(self.output_root / offset)


@dataclass(frozen=True)
class BaseDirResolver:
    """Pick the include base directory for a source file.

    Precedence: an explicit directory always wins; otherwise the file's own
    directory when ``relative`` is set; otherwise the project root.
    """

    project_root: Path
    explicit: Optional[Path] = None
    relative: bool = False

    @property
    def policy(self) -> BaseDirPolicy:
        if self.explicit is not None:
            return BaseDirPolicy.EXPLICIT
        if self.relative:
            return BaseDirPolicy.RELATIVE_TO_FILE
        return BaseDirPolicy.RELATIVE_TO_PROJECT_ROOT

    def base_dir(self, source: Path) -> Path:
        if self.explicit is not None:
            return self.explicit
        if self.relative:
            return Path(source).parent
        return self.project_root


__all__ = [
    "LayoutMode",
    "BaseDirPolicy",
    "LayoutResolver",
    "BaseDirResolver",
    "relative_offset",
    "ensure_directory",
]
