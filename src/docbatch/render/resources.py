"""Mirror auxiliary resource trees (images, styles) into the output tree."""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Sequence

from .errors import ResourceCopyError
from .layout import relative_offset


@dataclass(frozen=True)
class ResourceSpec:
    """A resource directory plus the bare file names to copy from it.

    Matching is by name only, so ``logo.png`` selects every ``logo.png``
    found anywhere below ``directory``.
    """

    directory: Path
    include: tuple[str, ...] = ()

    def resolve_directory(self, source_root: Path) -> Path:
        if self.directory.is_absolute():
            return self.directory
        return Path(source_root) / self.directory


def mirror_resources(
    specs: Iterable[ResourceSpec],
    source_root: Path,
    output_root: Path,
    *,
    logger: logging.Logger,
) -> tuple[Path, ...]:
    """Copy each spec's included files to the matching output location.

    The first failure aborts the whole step as a :class:`ResourceCopyError`.
    """

    copied: list[Path] = []
    for spec in specs:
        directory = spec.resolve_directory(source_root)
        offset = relative_offset(directory, source_root)
        target = Path(output_root) / offset
        try:
            target.mkdir(parents=True, exist_ok=True)
            copied.extend(_copy_included(directory, target, spec.include))
        except (OSError, shutil.Error) as exc:
            raise ResourceCopyError(
                f"Error copying resources from {directory}: {exc}"
            ) from exc
        logger.info(
            "Mirrored resource directory",
            extra={
                "directory": str(directory),
                "destination": str(target),
                "included": list(spec.include),
            },
        )
    return tuple(copied)


def _copy_included(
    source: Path, target: Path, include: Sequence[str]
) -> list[Path]:
    allowed = frozenset(include)
    copied: list[Path] = []

    def ignore(directory: str, names: list[str]) -> set[str]:
        parent = Path(directory)
        ignored = set()
        for name in names:
            path = parent / name
            if path.is_dir():
                if not _holds_included(path, allowed):
                    ignored.add(name)
            elif name not in allowed:
                ignored.add(name)
        return ignored

    def copy(src: str, dst: str) -> str:
        copied.append(Path(dst))
        return shutil.copy2(src, dst)

    shutil.copytree(
        source,
        target,
        ignore=ignore,
        copy_function=copy,
        dirs_exist_ok=True,
    )
    return copied


def _holds_included(directory: Path, allowed: frozenset[str]) -> bool:
    return any(
        path.name in allowed and path.is_file()
        for path in directory.rglob("*")
    )


__all__ = ["ResourceSpec", "mirror_resources"]
