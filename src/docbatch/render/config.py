"""Configuration loader for `docbatch render` runs."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, MutableMapping, Optional, Sequence

from docbatch.core import config as core_config
from docbatch.core import workspace as workspace_mod

from .discovery import parse_extension_list
from .extensions import ExtensionRegistration, parse_registration
from .layout import BaseDirResolver, LayoutMode
from .options import AttributePair, RenderSettings
from .resources import ResourceSpec

CONFIG_FILENAME = "docbatch.toml"
CONFIG_ENV = "DOCBATCH_CONFIG"
ENV_PREFIX = "DOCBATCH_"

RENDERERS: tuple[str, ...] = ("asciidoctor", "markdown")

_DEFAULT_LOG_LEVEL = "INFO"
_OPEN_TABLES = ("attributes",)


class RenderConfigError(RuntimeError):
    """Raised when configuration parsing or validation fails."""


@dataclass(frozen=True)
class RenderConfig:
    """Fully resolved configuration for one render run.

    ``source_dir`` and ``output_dir`` may be ``None`` here; the run checks
    them before touching the filesystem.
    """

    source_dir: Optional[Path] = None
    output_dir: Optional[Path] = None
    source_document: Optional[str] = None
    project_dir: Path = field(default_factory=Path.cwd)
    base_dir: Optional[Path] = None
    relative_base_dir: bool = False
    preserve_directories: bool = False
    extensions: Optional[tuple[str, ...]] = None
    renderer: str = "asciidoctor"
    settings: RenderSettings = field(default_factory=RenderSettings)
    requires: tuple[str, ...] = ()
    attributes: tuple[AttributePair, ...] = ()
    resources: tuple[ResourceSpec, ...] = ()
    extension_registrations: tuple[ExtensionRegistration, ...] = ()
    log_level: str = _DEFAULT_LOG_LEVEL

    @property
    def layout_mode(self) -> LayoutMode:
        return LayoutMode.from_flag(self.preserve_directories)

    def base_dir_resolver(self) -> BaseDirResolver:
        return BaseDirResolver(
            project_root=self.project_dir,
            explicit=self.base_dir,
            relative=self.relative_base_dir,
        )


@dataclass(frozen=True)
class ConfigOverrides:
    """CLI-sourced overrides applied on top of file/env options."""

    source_dir: Optional[Path] = None
    output_dir: Optional[Path] = None
    source_document: Optional[str] = None
    base_dir: Optional[Path] = None
    relative_base_dir: Optional[bool] = None
    preserve_directories: Optional[bool] = None
    extensions: Optional[str] = None
    backend: Optional[str] = None
    renderer: Optional[str] = None
    attributes: Sequence[AttributePair] = ()
    log_level: Optional[str] = None


@dataclass(frozen=True)
class LoadResult:
    """Result of loading configuration, including workspace context."""

    config: RenderConfig
    layout: workspace_mod.WorkspaceLayout
    config_path: Optional[Path]


def load_config(
    *,
    config_path: Optional[Path] = None,
    overrides: Optional[ConfigOverrides] = None,
    env: Optional[Mapping[str, str]] = None,
    workspace_path: Optional[Path] = None,
) -> LoadResult:
    """Load configuration applying precedence CLI > env > TOML defaults."""

    overrides = overrides or ConfigOverrides()
    env_map = os.environ if env is None else env

    layout = workspace_mod.ensure_workspace(env=env_map, path=workspace_path)
    requested_path = _resolve_config_path(
        config_path=config_path,
        env_map=env_map,
        default_path=layout.path_for("config") / CONFIG_FILENAME,
    )

    table = _default_table()
    loaded_path: Optional[Path] = None
    if requested_path.exists():
        loaded_path = requested_path
        try:
            parsed = core_config.load_toml(requested_path)
            core_config.merge_defaults(
                table, parsed, open_tables=_OPEN_TABLES
            )
        except core_config.TomlConfigError as exc:
            raise RenderConfigError(str(exc)) from exc
    elif config_path is not None or _env_string(env_map, CONFIG_ENV):
        raise RenderConfigError(f"Config file not found: {requested_path}")

    config = build_config(table, overrides=overrides, env=env_map)
    return LoadResult(config=config, layout=layout, config_path=loaded_path)


def build_config(
    table: Mapping[str, Any],
    *,
    overrides: Optional[ConfigOverrides] = None,
    env: Optional[Mapping[str, str]] = None,
) -> RenderConfig:
    """Validate a merged config table into a :class:`RenderConfig`."""

    overrides = overrides or ConfigOverrides()
    env_map = env or {}
    paths = table["paths"]
    render = table["render"]

    settings = RenderSettings(
        backend=_require_string(
            _pick_first(
                overrides.backend,
                _env_value(env_map, "BACKEND"),
                render["backend"],
            ),
            "render.backend",
        ),
        doctype=_require_string(render["doctype"], "render.doctype"),
        images_dir=_string(render["images_dir"], "render.images_dir") or "",
        compact=_boolean(render["compact"], "render.compact"),
        header_footer=_boolean(
            render["header_footer"], "render.header_footer"
        ),
        source_highlighter=_string(
            render["source_highlighter"], "render.source_highlighter"
        ),
        embed_assets=_boolean(render["embed_assets"], "render.embed_assets"),
        eruby=_string(render["eruby"], "render.eruby") or "",
        template_engine=_string(
            render["template_engine"], "render.template_engine"
        ),
        template_dir=_path(render["template_dir"], "render.template_dir"),
    )

    return RenderConfig(
        source_dir=_pick_first(
            _absolute(overrides.source_dir),
            _path(_env_value(env_map, "SOURCE_DIR"), "DOCBATCH_SOURCE_DIR"),
            _path(paths["source_dir"], "paths.source_dir"),
        ),
        output_dir=_pick_first(
            _absolute(overrides.output_dir),
            _path(_env_value(env_map, "OUTPUT_DIR"), "DOCBATCH_OUTPUT_DIR"),
            _path(paths["output_dir"], "paths.output_dir"),
        ),
        source_document=_pick_first(
            overrides.source_document,
            _string(paths["source_document"], "paths.source_document"),
        ),
        project_dir=_path(paths["project_dir"], "paths.project_dir")
        or Path.cwd(),
        base_dir=_pick_first(
            _absolute(overrides.base_dir),
            _path(paths["base_dir"], "paths.base_dir"),
        ),
        relative_base_dir=_pick_first(
            overrides.relative_base_dir,
            _boolean(paths["relative_base_dir"], "paths.relative_base_dir"),
        ),
        preserve_directories=_pick_first(
            overrides.preserve_directories,
            _boolean(
                paths["preserve_directories"], "paths.preserve_directories"
            ),
        ),
        extensions=_extensions(
            _pick_first(
                overrides.extensions,
                _env_value(env_map, "EXTENSIONS"),
                table["selection"]["extensions"],
            )
        ),
        renderer=_renderer(
            _pick_first(
                overrides.renderer,
                _env_value(env_map, "RENDERER"),
                render["renderer"],
            )
        ),
        settings=settings,
        requires=_string_list(render["requires"], "render.requires"),
        attributes=_attributes(table["attributes"], overrides.attributes),
        resources=_resources(table["resources"]),
        extension_registrations=_registrations(table["extensions"]),
        log_level=_log_level(
            _pick_first(
                overrides.log_level,
                _env_value(env_map, "LOG_LEVEL"),
                table["logging"]["level"],
            )
        ),
    )


def parse_attribute_assignment(raw: str) -> AttributePair:
    """Split a ``name=value`` CLI assignment; a bare name sets an empty value."""

    name, _, value = raw.partition("=")
    name = name.strip()
    if not name:
        raise RenderConfigError(f"Invalid attribute assignment '{raw}'.")
    return name, value


def _default_table() -> MutableMapping[str, Any]:
    return {
        "paths": {
            "source_dir": "",
            "output_dir": "",
            "source_document": "",
            "project_dir": "",
            "base_dir": "",
            "relative_base_dir": False,
            "preserve_directories": False,
        },
        "selection": {"extensions": []},
        "render": {
            "renderer": "asciidoctor",
            "backend": "docbook",
            "doctype": "article",
            "images_dir": "images",
            "compact": False,
            "header_footer": True,
            "source_highlighter": "",
            "embed_assets": False,
            "eruby": "",
            "template_engine": "",
            "template_dir": "",
            "requires": [],
        },
        "attributes": {},
        "resources": [],
        "extensions": [],
        "logging": {"level": _DEFAULT_LOG_LEVEL},
    }


def _resolve_config_path(
    *,
    config_path: Optional[Path],
    env_map: Mapping[str, str],
    default_path: Path,
) -> Path:
    if config_path is not None:
        return config_path.expanduser()
    env_candidate = _env_string(env_map, CONFIG_ENV)
    if env_candidate:
        return Path(env_candidate).expanduser()
    return default_path


def _env_string(env_map: Mapping[str, str], key: str) -> Optional[str]:
    raw = env_map.get(key)
    if raw is None:
        return None
    return raw.strip() or None


def _env_value(env_map: Mapping[str, str], key: str) -> Optional[str]:
    return _env_string(env_map, f"{ENV_PREFIX}{key}")


def _pick_first(*candidates: Any) -> Any:
    for candidate in candidates:
        if candidate is not None:
            return candidate
    return None


def _string(value: object, key: str) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise RenderConfigError(f"{key} must be a string.")
    return value.strip() or None


def _require_string(value: object, key: str) -> str:
    text = _string(value, key)
    if text is None:
        raise RenderConfigError(f"{key} must be a non-empty string.")
    return text


def _boolean(value: object, key: str) -> bool:
    if not isinstance(value, bool):
        raise RenderConfigError(f"{key} must be true or false.")
    return value


def _absolute(value: Optional[Path]) -> Optional[Path]:
    if value is None:
        return None
    return value.expanduser().absolute()


def _path(value: object, key: str) -> Optional[Path]:
    if isinstance(value, Path):
        return _absolute(value)
    text = _string(value, key)
    if text is None:
        return None
    return _absolute(Path(text))


def _string_list(value: object, key: str) -> tuple[str, ...]:
    if not isinstance(value, list) or not all(
        isinstance(item, str) for item in value
    ):
        raise RenderConfigError(f"{key} must be a list of strings.")
    return tuple(item.strip() for item in value if item.strip())


def _extensions(value: object) -> Optional[tuple[str, ...]]:
    if value is None:
        return None
    if isinstance(value, str):
        return parse_extension_list(value)
    return parse_extension_list(
        _string_list(value, "selection.extensions")
    )


def _renderer(value: object) -> str:
    name = _require_string(value, "render.renderer").lower()
    if name not in RENDERERS:
        expected = ", ".join(RENDERERS)
        raise RenderConfigError(
            f"Unknown renderer '{name}'. Expected one of: {expected}."
        )
    return name


def _log_level(value: object) -> str:
    return _require_string(value, "logging.level").upper()


def _attributes(
    table: Mapping[str, object], extra: Sequence[AttributePair]
) -> tuple[AttributePair, ...]:
    pairs: list[AttributePair] = []
    for key, value in table.items():
        if isinstance(value, (dict, list)):
            raise RenderConfigError(
                f"attributes.{key} must be a scalar value."
            )
        pairs.append((key, value))
    pairs.extend(extra)
    return tuple(pairs)


def _resources(value: object) -> tuple[ResourceSpec, ...]:
    if not isinstance(value, list):
        raise RenderConfigError("resources must be an array of tables.")
    specs: list[ResourceSpec] = []
    for index, entry in enumerate(value):
        key = f"resources[{index}]"
        if not isinstance(entry, Mapping):
            raise RenderConfigError(f"{key} must be a table.")
        unknown = set(entry) - {"dir", "include"}
        if unknown:
            raise RenderConfigError(
                "Unknown keys in {0}: {1}.".format(
                    key, ", ".join(sorted(unknown))
                )
            )
        directory = _string(entry.get("dir"), f"{key}.dir")
        if directory is None:
            raise RenderConfigError(f"{key}.dir must be a non-empty string.")
        include = _string_list(entry.get("include", []), f"{key}.include")
        specs.append(ResourceSpec(directory=Path(directory), include=include))
    return tuple(specs)


def _registrations(value: object) -> tuple[ExtensionRegistration, ...]:
    if not isinstance(value, list):
        raise RenderConfigError("extensions must be an array of tables.")
    registrations: list[ExtensionRegistration] = []
    for index, entry in enumerate(value):
        if not isinstance(entry, Mapping):
            raise RenderConfigError(f"extensions[{index}] must be a table.")
        try:
            registrations.append(parse_registration(entry))
        except ValueError as exc:
            raise RenderConfigError(f"extensions[{index}]: {exc}") from exc
    return tuple(registrations)


__all__ = [
    "CONFIG_ENV",
    "CONFIG_FILENAME",
    "ENV_PREFIX",
    "RENDERERS",
    "ConfigOverrides",
    "LoadResult",
    "RenderConfig",
    "RenderConfigError",
    "build_config",
    "load_config",
    "parse_attribute_assignment",
]
