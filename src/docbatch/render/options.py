"""Render option sets and attribute handling."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import IntEnum
from pathlib import Path
from types import MappingProxyType
from typing import Iterable, Mapping, Optional, Tuple, Union

AttributeValue = Union[str, bool]
AttributePair = Tuple[str, object]


class SafeMode(IntEnum):
    """Renderer security levels, least to most restrictive."""

    UNSAFE = 0
    SAFE = 1
    SERVER = 10
    SECURE = 20


def coerce_attribute_value(value: object) -> AttributeValue:
    """Turn ``"true"``/``"false"`` (or real booleans) into flags.

    Everything else is handed to the renderer as text, dates and times
    included.
    """

    if isinstance(value, bool):
        return value
    text = "" if value is None else str(value)
    if text == "true":
        return True
    if text == "false":
        return False
    return text


@dataclass(frozen=True)
class RenderSettings:
    """Static renderer settings shared by every document of a run."""

    backend: str = "docbook"
    doctype: str = "article"
    images_dir: str = "images"
    compact: bool = False
    header_footer: bool = True
    source_highlighter: Optional[str] = None
    embed_assets: bool = False
    eruby: str = ""
    template_engine: Optional[str] = None
    template_dir: Optional[Path] = None


@dataclass(frozen=True)
class OptionSet:
    """Immutable options handed to the renderer for one document."""

    backend: str
    doctype: str
    compact: bool
    header_footer: bool
    safe: SafeMode
    eruby: str
    attributes: Mapping[str, AttributeValue] = field(
        default_factory=lambda: MappingProxyType({})
    )
    template_engine: Optional[str] = None
    template_dir: Optional[Path] = None
    mkdirs: bool = True
    base_dir: Optional[Path] = None
    to_dir: Optional[Path] = None
    destination_dir: Optional[Path] = None

    def for_document(
        self, *, base_dir: Path, destination_dir: Path
    ) -> "OptionSet":
        """Return a copy carrying the per-document directories."""

        return replace(
            self,
            base_dir=base_dir,
            to_dir=destination_dir,
            destination_dir=destination_dir,
        )


def build_attributes(
    settings: RenderSettings,
    pairs: Iterable[AttributePair] = (),
) -> Mapping[str, AttributeValue]:
    attributes: dict[str, AttributeValue] = {
        "imagesdir": settings.images_dir,
    }
    if settings.source_highlighter:
        attributes["source-highlighter"] = settings.source_highlighter
    if settings.embed_assets:
        attributes["linkcss"] = False
        attributes["data-uri"] = True
    attributes["copycss"] = False
    for key, value in pairs:
        attributes[key] = coerce_attribute_value(value)
    return MappingProxyType(attributes)


def build_options(
    settings: RenderSettings,
    attributes: Iterable[AttributePair] = (),
) -> OptionSet:
    """Combine static settings and attribute pairs into an :class:`OptionSet`.

    Per-document directories are left unset; see
    :meth:`OptionSet.for_document`.
    """

    return OptionSet(
        backend=settings.backend,
        doctype=settings.doctype,
        compact=settings.compact,
        header_footer=settings.header_footer,
        safe=SafeMode.SAFE,
        eruby=settings.eruby,
        attributes=build_attributes(settings, attributes),
        template_engine=settings.template_engine,
        template_dir=settings.template_dir,
    )


__all__ = [
    "AttributePair",
    "AttributeValue",
    "OptionSet",
    "RenderSettings",
    "SafeMode",
    "build_attributes",
    "build_options",
    "coerce_attribute_value",
]
