"""Renderer extension registrations forwarded by a render run."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Mapping, Optional, Protocol

from .errors import ExtensionRegistrationError


class ExtensionKind(Enum):
    """Extension kinds; each value names the registry method to call."""

    PREPROCESSOR = "preprocessor"
    TREEPROCESSOR = "treeprocessor"
    POSTPROCESSOR = "postprocessor"
    INCLUDE_PROCESSOR = "include_processor"
    BLOCK = "block"
    BLOCK_MACRO = "block_macro"
    INLINE_MACRO = "inline_macro"

    @property
    def requires_name(self) -> bool:
        return self in _NAMED_KINDS

    @classmethod
    def from_value(cls, value: str) -> "ExtensionKind":
        normalized = value.strip().lower().replace("-", "_")
        for member in cls:
            if member.value == normalized:
                return member
        expected = ", ".join(member.value for member in cls)
        raise ValueError(
            f"Unknown extension kind '{value}'. Expected one of: {expected}."
        )


_NAMED_KINDS = frozenset(
    {ExtensionKind.BLOCK, ExtensionKind.BLOCK_MACRO, ExtensionKind.INLINE_MACRO}
)


@dataclass(frozen=True)
class ExtensionRegistration:
    """One extension to register: its kind, implementation and trigger."""

    kind: ExtensionKind
    implementation: str
    name: Optional[str] = None


class ExtensionRegistry(Protocol):
    """Capabilities a renderer exposes for extension registration."""

    def preprocessor(self, implementation: str) -> None: ...

    def treeprocessor(self, implementation: str) -> None: ...

    def postprocessor(self, implementation: str) -> None: ...

    def include_processor(self, implementation: str) -> None: ...

    def block(self, name: str, implementation: str) -> None: ...

    def block_macro(self, name: str, implementation: str) -> None: ...

    def inline_macro(self, name: str, implementation: str) -> None: ...


def parse_registration(entry: Mapping[str, object]) -> ExtensionRegistration:
    """Build a registration from a config table.

    Raises ``ValueError`` describing the first invalid field.
    """

    unknown = set(entry) - {"kind", "name", "implementation"}
    if unknown:
        raise ValueError(
            "Unknown extension keys: {0}.".format(", ".join(sorted(unknown)))
        )
    raw_kind = entry.get("kind")
    if not isinstance(raw_kind, str):
        raise ValueError("Extension 'kind' must be a string.")
    kind = ExtensionKind.from_value(raw_kind)

    implementation = entry.get("implementation")
    if not isinstance(implementation, str) or not implementation.strip():
        raise ValueError(
            "Extension 'implementation' must be a non-empty string."
        )

    name = entry.get("name")
    if name is not None and not isinstance(name, str):
        raise ValueError("Extension 'name' must be a string.")
    name = (name or "").strip() or None
    if kind.requires_name and name is None:
        raise ValueError(f"Extension kind '{kind.value}' requires a 'name'.")
    return ExtensionRegistration(
        kind=kind, implementation=implementation.strip(), name=name
    )


def register_extensions(
    registry: ExtensionRegistry,
    registrations: Iterable[ExtensionRegistration],
    *,
    logger: logging.Logger,
) -> int:
    """Forward every registration to the registry method matching its kind."""

    count = 0
    for registration in registrations:
        capability = getattr(registry, registration.kind.value, None)
        if capability is None:
            raise ExtensionRegistrationError(
                "Renderer does not accept '{0}' extensions.".format(
                    registration.kind.value
                )
            )
        if registration.kind.requires_name:
            capability(registration.name, registration.implementation)
        else:
            capability(registration.implementation)
        logger.debug(
            "Registered extension",
            extra={
                "kind": registration.kind.value,
                "trigger": registration.name,
                "implementation": registration.implementation,
            },
        )
        count += 1
    return count


__all__ = [
    "ExtensionKind",
    "ExtensionRegistration",
    "ExtensionRegistry",
    "parse_registration",
    "register_extensions",
]
