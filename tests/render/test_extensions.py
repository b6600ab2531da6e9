from __future__ import annotations

import logging

import pytest

from docbatch.render import extensions as ext
from docbatch.render.errors import ExtensionRegistrationError
from docbatch.render.extensions import ExtensionKind, ExtensionRegistration
from fixtures import RecordingRegistry


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("inline_macro", ExtensionKind.INLINE_MACRO),
        ("inline-macro", ExtensionKind.INLINE_MACRO),
        (" Block ", ExtensionKind.BLOCK),
        ("include-processor", ExtensionKind.INCLUDE_PROCESSOR),
    ],
)
def test_kind_from_value(raw, expected):
    assert ExtensionKind.from_value(raw) is expected


def test_kind_from_value_rejects_unknown():
    with pytest.raises(ValueError, match="Unknown extension kind"):
        ExtensionKind.from_value("docinfo")


def test_named_kinds():
    named = {kind for kind in ExtensionKind if kind.requires_name}

    assert named == {
        ExtensionKind.BLOCK,
        ExtensionKind.BLOCK_MACRO,
        ExtensionKind.INLINE_MACRO,
    }


def test_parse_registration_inline_macro():
    registration = ext.parse_registration(
        {
            "kind": "inline_macro",
            "name": "twitter",
            "implementation": " macros:twitter ",
        }
    )

    assert registration == ExtensionRegistration(
        kind=ExtensionKind.INLINE_MACRO,
        implementation="macros:twitter",
        name="twitter",
    )


def test_parse_registration_processor_without_name():
    registration = ext.parse_registration(
        {"kind": "postprocessor", "implementation": "hooks:footer"}
    )

    assert registration.kind is ExtensionKind.POSTPROCESSOR
    assert registration.name is None


@pytest.mark.parametrize(
    ("entry", "message"),
    [
        ({"kind": "block_macro", "implementation": "m:x"}, "requires a"),
        ({"kind": "block", "name": "  ", "implementation": "m:x"}, "requires"),
        ({"kind": "inline_macro", "name": "t"}, "implementation"),
        ({"name": "t", "implementation": "m:x"}, "kind"),
        ({"kind": 3, "implementation": "m:x"}, "kind"),
        ({"kind": "block", "name": 3, "implementation": "m:x"}, "name"),
        (
            {"kind": "block", "name": "t", "implementation": "m:x", "x": 1},
            "Unknown extension keys",
        ),
    ],
)
def test_parse_registration_errors(entry, message):
    with pytest.raises(ValueError, match=message):
        ext.parse_registration(entry)


def test_register_extensions_dispatches_by_kind(logger, caplog):
    registry = RecordingRegistry()
    registrations = [
        ExtensionRegistration(ExtensionKind.PREPROCESSOR, "hooks:pre"),
        ExtensionRegistration(ExtensionKind.TREEPROCESSOR, "hooks:tree"),
        ExtensionRegistration(ExtensionKind.POSTPROCESSOR, "hooks:post"),
        ExtensionRegistration(ExtensionKind.INCLUDE_PROCESSOR, "hooks:inc"),
        ExtensionRegistration(ExtensionKind.BLOCK, "hooks:shout", "shout"),
        ExtensionRegistration(ExtensionKind.BLOCK_MACRO, "hooks:gist", "gist"),
        ExtensionRegistration(
            ExtensionKind.INLINE_MACRO, "hooks:twitter", "twitter"
        ),
    ]

    with caplog.at_level(logging.DEBUG, logger=logger.name):
        count = ext.register_extensions(registry, registrations, logger=logger)

    assert count == 7
    assert registry.calls == [
        ("preprocessor", None, "hooks:pre"),
        ("treeprocessor", None, "hooks:tree"),
        ("postprocessor", None, "hooks:post"),
        ("include_processor", None, "hooks:inc"),
        ("block", "shout", "hooks:shout"),
        ("block_macro", "gist", "hooks:gist"),
        ("inline_macro", "twitter", "hooks:twitter"),
    ]
    messages = [r for r in caplog.records if r.msg == "Registered extension"]
    assert len(messages) == 7
    assert messages[-1].trigger == "twitter"


def test_register_extensions_missing_capability_raises(logger):
    class InlineOnly:
        def __init__(self) -> None:
            self.calls = []

        def inline_macro(self, name, implementation):
            self.calls.append((name, implementation))

    registry = InlineOnly()

    with pytest.raises(ExtensionRegistrationError, match="block_macro"):
        ext.register_extensions(
            registry,
            [
                ExtensionRegistration(
                    ExtensionKind.INLINE_MACRO, "m:twitter", "twitter"
                ),
                ExtensionRegistration(
                    ExtensionKind.BLOCK_MACRO, "m:gist", "gist"
                ),
            ],
            logger=logger,
        )
    assert registry.calls == [("twitter", "m:twitter")]


def test_register_extensions_empty_is_noop(logger):
    registry = RecordingRegistry()

    assert ext.register_extensions(registry, [], logger=logger) == 0
    assert registry.calls == []
