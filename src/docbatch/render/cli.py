"""CLI entry point for `docbatch render`."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Sequence

from docbatch.core import config_templates
from docbatch.core import workspace as workspace_mod
from docbatch.core.config_templates import ConfigTemplateError
from docbatch.core.logging import configure_logger
from docbatch.core.workspace import WorkspaceError

from .config import (
    CONFIG_FILENAME,
    RENDERERS,
    ConfigOverrides,
    RenderConfigError,
    load_config,
    parse_attribute_assignment,
)
from .errors import RenderPipelineError
from .executor import RenderSummary, run_render
from .renderers import create_renderer


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docbatch render",
        description=(
            "Render a tree of markup documents into an output directory."
        ),
        epilog=(
            "Run `docbatch render config init` to scaffold the default "
            f"{CONFIG_FILENAME} template."
        ),
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Path to a TOML config file (defaults to the workspace config).",
    )
    parser.add_argument(
        "--workspace",
        type=Path,
        help="Override the workspace root holding config and log files.",
    )
    parser.add_argument(
        "--source-dir",
        type=Path,
        help="Directory containing the documents to render.",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        help="Directory receiving rendered output and resources.",
    )
    parser.add_argument(
        "--document",
        help="Render only this document (relative to the source directory).",
    )
    parser.add_argument("--backend", help="Output backend (e.g. html5).")
    parser.add_argument(
        "--renderer",
        choices=RENDERERS,
        help="Rendering engine adapter.",
    )
    parser.add_argument(
        "--extensions",
        help="Comma-separated name suffixes selecting documents (e.g. .txt).",
    )
    parser.add_argument(
        "--preserve-directories",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Mirror the source directory structure in the output.",
    )
    parser.add_argument(
        "--base-dir",
        type=Path,
        help="Explicit base directory for includes and relative links.",
    )
    parser.add_argument(
        "--relative-base-dir",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Resolve includes relative to each document's directory.",
    )
    parser.add_argument(
        "-a",
        "--attribute",
        action="append",
        default=[],
        metavar="NAME=VALUE",
        help="Set a document attribute (repeatable).",
    )
    parser.add_argument(
        "--log-level",
        help="Set the logging level for the run (defaults to INFO).",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Echo log records to stderr.",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args_list = list(argv) if argv is not None else list(sys.argv[1:])

    if args_list[:1] == ["config"]:
        return _handle_config(args_list[1:])

    parser = _build_parser()
    args = parser.parse_args(args_list)

    try:
        overrides = ConfigOverrides(
            source_dir=args.source_dir,
            output_dir=args.output_dir,
            source_document=args.document,
            base_dir=args.base_dir,
            relative_base_dir=args.relative_base_dir,
            preserve_directories=args.preserve_directories,
            extensions=args.extensions,
            backend=args.backend,
            renderer=args.renderer,
            attributes=tuple(
                parse_attribute_assignment(raw) for raw in args.attribute
            ),
            log_level=args.log_level,
        )
        load_result = load_config(
            config_path=args.config,
            overrides=overrides,
            workspace_path=args.workspace,
        )
    except (RenderConfigError, WorkspaceError) as exc:
        parser.error(str(exc))

    config = load_result.config
    logger, log_path = configure_logger(
        "docbatch.render",
        log_dir=load_result.layout.path_for("logs"),
        level=config.log_level,
        verbose=args.verbose,
    )
    logger.debug(
        "render CLI invoked",
        extra={"config_path": load_result.config_path},
    )

    try:
        renderer = create_renderer(config.renderer, logger=logger)
        summary = run_render(config, renderer=renderer, logger=logger)
    except RenderPipelineError as exc:
        logger.error("Render run failed", exc_info=True)
        sys.stderr.write(f"docbatch render failed: {exc}\n")
        return 1

    _print_summary(summary, log_path)
    return 0


def _print_summary(summary: RenderSummary, log_path: Path) -> None:
    lines = [
        "render summary:",
        "  rendered:   {0}".format(summary.rendered_count),
        "  resources:  {0}".format(summary.resource_count),
        "  skipped:    {0}".format(len(summary.skipped_directories)),
        "  output dir: {0}".format(summary.output_dir),
        "  log file:   {0}".format(log_path),
    ]
    sys.stdout.write("\n".join(lines) + "\n")


def _handle_config(argv: Sequence[str]) -> int:
    parser = _build_config_parser()
    args = parser.parse_args(argv)

    try:
        target = _resolve_config_target(args)
    except WorkspaceError as exc:
        sys.stderr.write(str(exc) + "\n")
        return 1

    template = config_templates.get_template("render")
    try:
        written = template.write(target, overwrite=args.force)
    except ConfigTemplateError as exc:
        sys.stderr.write(str(exc) + "\n")
        return 1

    sys.stdout.write(f"Wrote render config to {written}\n")
    return 0


def _build_config_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docbatch render config",
        description="Manage configuration files for render runs.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    init_parser = subparsers.add_parser(
        "init",
        help=f"Write the default {CONFIG_FILENAME} template.",
    )
    init_parser.add_argument(
        "--path",
        type=Path,
        help="Destination for the config TOML.",
    )
    init_parser.add_argument(
        "--workspace",
        type=Path,
        help="Workspace root used when resolving the default config path.",
    )
    init_parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite the destination if a config already exists.",
    )
    return parser


def _resolve_config_target(args: argparse.Namespace) -> Path:
    if args.path is not None:
        return args.path.expanduser().absolute()

    layout = workspace_mod.ensure_workspace(path=args.workspace)
    return layout.path_for("config") / CONFIG_FILENAME


if __name__ == "__main__":  # pragma: no cover - module CLI guard
    raise SystemExit(main())
