from __future__ import annotations

from pathlib import Path

import pytest

from docbatch.core import config_templates
from docbatch.core.config import load_toml
from docbatch.core.config_templates import (
    ConfigTemplate,
    ConfigTemplateError,
)


def test_get_template_returns_render_template(tmp_path: Path) -> None:
    template = config_templates.get_template("render")
    assert isinstance(template, ConfigTemplate)

    contents = template.read_text()
    assert "[paths]" in contents
    assert "[selection]" in contents
    assert "[render]" in contents

    target = tmp_path / "config" / "docbatch.toml"
    written = template.write(target)
    assert written == target
    assert target.read_text(encoding="utf-8") == contents

    with pytest.raises(ConfigTemplateError):
        template.write(target)

    updated = template.write(target, overwrite=True)
    assert updated == target


def test_render_template_is_valid_toml(tmp_path: Path) -> None:
    target = config_templates.get_template("render").write(
        tmp_path / "docbatch.toml"
    )

    parsed = load_toml(target)

    assert parsed["render"]["backend"] == "docbook"
    assert parsed["render"]["images_dir"] == "images"
    assert parsed["paths"]["preserve_directories"] is False
    assert parsed["logging"]["level"] == "INFO"


def test_iter_templates_returns_registered_templates() -> None:
    names = {template.name for template in config_templates.iter_templates()}
    assert names == {"render"}


@pytest.mark.parametrize("unknown", ["missing", "", "convert_markdown"])
def test_get_template_unknown_raises(unknown: str) -> None:
    with pytest.raises(ConfigTemplateError):
        config_templates.get_template(unknown)
