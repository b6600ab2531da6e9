"""Source document discovery: selection predicates and the tree walker."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional, Sequence

RESERVED_PREFIX = "_"

# Suffixes recognised as AsciiDoc documents when no extension list is given.
DEFAULT_DOCUMENT_SUFFIXES: tuple[str, ...] = (
    ".adoc",
    ".asciidoc",
    ".asc",
    ".ad",
)

_LOGGER = logging.getLogger(__name__)


def is_excluded_name(name: str) -> bool:
    """Return ``True`` when ``name`` carries the reserved exclusion prefix."""

    return name.startswith(RESERVED_PREFIX)


def parse_extension_list(
    value: str | Sequence[str] | None,
) -> Optional[tuple[str, ...]]:
    """Split a comma-separated (or already split) suffix list.

    Returns ``None`` when nothing usable remains so callers fall back to the
    default document predicate.
    """

    if value is None:
        return None
    items = value.split(",") if isinstance(value, str) else list(value)
    suffixes: list[str] = []
    for item in items:
        candidate = str(item).strip()
        if candidate and candidate not in suffixes:
            suffixes.append(candidate)
    return tuple(suffixes) or None


@dataclass(frozen=True)
class DocumentFilter:
    """Decide whether a file name denotes a document to render.

    With ``extensions`` set, a plain suffix match is used, so ``"txt"`` and
    ``".txt"`` both select ``notes.txt``. Without it the AsciiDoc suffixes
    apply. Names with the reserved prefix never match.
    """

    extensions: Optional[tuple[str, ...]] = None

    def matches(self, path: Path) -> bool:
        name = path.name
        if is_excluded_name(name):
            return False
        suffixes = self.extensions or DEFAULT_DOCUMENT_SUFFIXES
        return name.endswith(suffixes)


class TreeWalker:
    """Lazy depth-first scan of a source tree.

    Directories whose name carries the reserved prefix are pruned: they are
    never opened. Unreadable subdirectories, and symlinked ones resolving
    outside the root, are skipped and collected in :attr:`skipped`; only a
    bad root aborts the scan.
    """

    def __init__(
        self,
        root: Path,
        document_filter: DocumentFilter | None = None,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self.root = Path(root)
        self.document_filter = document_filter or DocumentFilter()
        self.logger = logger or _LOGGER
        self.skipped: list[Path] = []
        self._canonical_root: Optional[Path] = None

    def scan(self) -> Iterator[Path]:
        """Yield matching files below the root in name order.

        Raises ``FileNotFoundError``, ``NotADirectoryError`` or
        ``PermissionError`` for an unusable root, before anything is yielded.
        """

        self.skipped = []
        entries = _sorted_entries(self.root)
        self._canonical_root = self.root.resolve()
        visited = {_identity(self.root)}
        return self._walk(entries, visited)

    def _walk(
        self, entries: list[os.DirEntry], visited: set[tuple[int, int]]
    ) -> Iterator[Path]:
        for entry in entries:
            if _is_dir(entry):
                if is_excluded_name(entry.name):
                    self.logger.debug(
                        "Pruned reserved directory",
                        extra={"directory": entry.path},
                    )
                    continue
                yield from self._descend(Path(entry.path), visited)
                continue
            path = Path(entry.path)
            if _is_file(entry) and self.document_filter.matches(path):
                yield path

    def _descend(
        self, directory: Path, visited: set[tuple[int, int]]
    ) -> Iterator[Path]:
        try:
            identity = _identity(directory)
            if identity in visited:
                self.logger.debug(
                    "Skipped already visited directory",
                    extra={"directory": str(directory)},
                )
                return
            visited.add(identity)
            target = directory.resolve()
            if not _is_within(target, self._canonical_root):
                self.skipped.append(directory)
                self.logger.warning(
                    "Skipped directory outside source root",
                    extra={"directory": str(directory), "target": str(target)},
                )
                return
            entries = _sorted_entries(directory)
        except OSError as exc:
            self.skipped.append(directory)
            self.logger.warning(
                "Skipped unreadable directory",
                extra={"directory": str(directory), "reason": str(exc)},
            )
            return
        yield from self._walk(entries, visited)


def scan_documents(
    root: Path,
    extensions: Optional[Sequence[str]] = None,
    *,
    logger: logging.Logger | None = None,
) -> Iterator[Path]:
    """Shortcut for ``TreeWalker(root, DocumentFilter(...)).scan()``."""

    document_filter = DocumentFilter(parse_extension_list(extensions))
    return TreeWalker(root, document_filter, logger=logger).scan()


def _sorted_entries(directory: Path) -> list[os.DirEntry]:
    with os.scandir(directory) as iterator:
        return sorted(iterator, key=lambda entry: entry.name)


def _identity(directory: Path) -> tuple[int, int]:
    stat_result = directory.stat()
    return stat_result.st_dev, stat_result.st_ino


def _is_within(path: Path, root: Optional[Path]) -> bool:
    if root is None:
        return True
    try:
        path.relative_to(root)
    except ValueError:
        return False
    return True


def _is_dir(entry: os.DirEntry) -> bool:
    try:
        return entry.is_dir()
    except OSError:
        return False


def _is_file(entry: os.DirEntry) -> bool:
    try:
        return entry.is_file()
    except OSError:
        return False


__all__ = [
    "RESERVED_PREFIX",
    "DEFAULT_DOCUMENT_SUFFIXES",
    "DocumentFilter",
    "TreeWalker",
    "is_excluded_name",
    "parse_extension_list",
    "scan_documents",
]
