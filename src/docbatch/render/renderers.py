"""Renderer adapters used by render runs.

The orchestrator only relies on :class:`Renderer`: ``render_file`` for each
document, ``require_library`` for preloads and an optional ``extensions``
registry. Two adapters ship with the package:

- :class:`AsciidoctorCommandRenderer` shells out to the ``asciidoctor``
  executable, translating an :class:`OptionSet` into CLI flags.
- :class:`MarkdownRenderer` renders Markdown to HTML in-process with
  markdown-it-py, Jinja2 page templates and Pygments highlighting.
"""

from __future__ import annotations

import base64
import importlib
import logging
import mimetypes
import re
import shutil
import subprocess
from pathlib import Path
from typing import Callable, Mapping, Optional, Protocol, Sequence

from jinja2 import (
    Environment,
    FileSystemLoader,
    Template,
    TemplateError,
    select_autoescape,
)
from markdown_it import MarkdownIt
from markdown_it.token import Token
from markupsafe import Markup
from pygments import highlight as pygments_highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import get_lexer_by_name
from pygments.util import ClassNotFound

from .errors import DependencyError, RenderFailure
from .options import AttributeValue, OptionSet, SafeMode

_LOGGER = logging.getLogger(__name__)

DOCUMENT_TEMPLATE = "document.html.j2"


class Renderer(Protocol):
    """What a render run needs from a rendering engine."""

    def render_file(self, path: Path, options: OptionSet) -> object: ...

    def require_library(self, name: str) -> None: ...


def create_renderer(
    name: str, *, logger: Optional[logging.Logger] = None
) -> Renderer:
    """Instantiate the adapter registered under ``name``."""

    if name == "asciidoctor":
        return AsciidoctorCommandRenderer(logger=logger)
    if name == "markdown":
        return MarkdownRenderer(logger=logger)
    raise DependencyError(f"Unknown renderer '{name}'.")


# ------------- asciidoctor executable -------------


class AsciidoctorCommandRenderer:
    """Render documents by invoking the ``asciidoctor`` command."""

    def __init__(
        self,
        executable: str = "asciidoctor",
        *,
        runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
        which: Callable[[str], Optional[str]] = shutil.which,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        resolved = which(executable)
        if resolved is None:
            raise DependencyError(
                f"'{executable}' was not found on PATH. Install Asciidoctor "
                "(https://asciidoctor.org) or choose the markdown renderer."
            )
        self.executable = resolved
        self.requires: list[str] = []
        self.extensions = _RequireRegistry(self)
        self._runner = runner
        self._logger = logger or _LOGGER

    def require_library(self, name: str) -> None:
        if name not in self.requires:
            self.requires.append(name)

    def build_command(self, path: Path, options: OptionSet) -> list[str]:
        command = [
            self.executable,
            "-b",
            options.backend,
            "-d",
            options.doctype,
            "-S",
            options.safe.name.lower(),
        ]
        if options.base_dir is not None:
            command += ["-B", str(options.base_dir)]
        if options.to_dir is not None:
            command += ["-D", str(options.to_dir)]
        if options.template_dir is not None:
            command += ["-T", str(options.template_dir)]
        if options.template_engine:
            command += ["-E", options.template_engine]
        if options.eruby:
            command += ["--eruby", options.eruby]
        if not options.header_footer:
            command.append("-s")
        if options.compact:
            command.append("-C")
        for library in self.requires:
            command += ["-r", library]
        for key, value in options.attributes.items():
            command += ["-a", _attribute_argument(key, value)]
        command.append(str(path))
        return command

    def render_file(
        self, path: Path, options: OptionSet
    ) -> subprocess.CompletedProcess:
        if options.mkdirs and options.to_dir is not None:
            options.to_dir.mkdir(parents=True, exist_ok=True)
        command = self.build_command(path, options)
        self._logger.debug(
            "Invoking asciidoctor", extra={"command": command}
        )
        try:
            completed = self._runner(
                command, capture_output=True, text=True, check=False
            )
        except OSError as exc:
            raise RenderFailure(
                f"Unable to run {self.executable}: {exc}"
            ) from exc
        if completed.returncode != 0:
            detail = (completed.stderr or "").strip() or "no output"
            raise RenderFailure(
                "asciidoctor exited with status {0} for {1}: {2}".format(
                    completed.returncode, path, detail
                )
            )
        return completed


def _attribute_argument(key: str, value: AttributeValue) -> str:
    if value is True:
        return key
    if value is False:
        return f"{key}!"
    return f"{key}={value}"


class _RequireRegistry:
    """Extension registry for the command renderer.

    Asciidoctor extensions register themselves when their library is
    required, so each registration becomes a ``-r`` preload.
    """

    def __init__(self, renderer: AsciidoctorCommandRenderer) -> None:
        self._renderer = renderer

    def preprocessor(self, implementation: str) -> None:
        self._renderer.require_library(implementation)

    def treeprocessor(self, implementation: str) -> None:
        self._renderer.require_library(implementation)

    def postprocessor(self, implementation: str) -> None:
        self._renderer.require_library(implementation)

    def include_processor(self, implementation: str) -> None:
        self._renderer.require_library(implementation)

    def block(self, name: str, implementation: str) -> None:
        self._renderer.require_library(implementation)

    def block_macro(self, name: str, implementation: str) -> None:
        self._renderer.require_library(implementation)

    def inline_macro(self, name: str, implementation: str) -> None:
        self._renderer.require_library(implementation)


# ------------- Markdown (markdown-it-py + Jinja2) -------------

HTML_BACKENDS = frozenset({"html", "html5", "xhtml5"})
TEMPLATE_ENGINES = frozenset({"jinja2"})

_DEFAULT_TEMPLATE = """<!DOCTYPE html>
<html lang="{{ attributes.get('lang', 'en') }}">
<head>
<meta charset="utf-8">
<title>{{ title }}</title>
{% if stylesheet_href %}<link rel="stylesheet" href="{{ stylesheet_href }}">
{% endif %}{% if styles %}<style>
{{ styles }}
</style>
{% endif %}</head>
<body class="{{ doctype }}">
{{ body }}
</body>
</html>
"""

_URL_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*:")


class MarkdownExtensionRegistry:
    """Extension registry for :class:`MarkdownRenderer`.

    Markdown has no engine-side extension points, so registrations are
    recorded as ``(kind, name, implementation)`` triples and logged; nothing
    is imported or run.
    """

    def __init__(self, *, logger: Optional[logging.Logger] = None) -> None:
        self.registered: list[tuple[str, Optional[str], str]] = []
        self._logger = logger or _LOGGER

    def preprocessor(self, implementation: str) -> None:
        self._record("preprocessor", None, implementation)

    def treeprocessor(self, implementation: str) -> None:
        self._record("treeprocessor", None, implementation)

    def postprocessor(self, implementation: str) -> None:
        self._record("postprocessor", None, implementation)

    def include_processor(self, implementation: str) -> None:
        self._record("include_processor", None, implementation)

    def block(self, name: str, implementation: str) -> None:
        self._record("block", name, implementation)

    def block_macro(self, name: str, implementation: str) -> None:
        self._record("block_macro", name, implementation)

    def inline_macro(self, name: str, implementation: str) -> None:
        self._record("inline_macro", name, implementation)

    def _record(
        self, kind: str, name: Optional[str], implementation: str
    ) -> None:
        self.registered.append((kind, name, implementation))
        self._logger.warning(
            "Markdown renderer does not apply extensions",
            extra={
                "kind": kind,
                "trigger": name,
                "implementation": implementation,
            },
        )


class MarkdownRenderer:
    """Render Markdown documents to standalone HTML files."""

    def __init__(self, *, logger: Optional[logging.Logger] = None) -> None:
        self._logger = logger or _LOGGER
        self.extensions = MarkdownExtensionRegistry(logger=self._logger)
        self.libraries: list[str] = []

    def require_library(self, name: str) -> None:
        try:
            importlib.import_module(name)
        except ImportError as exc:
            raise DependencyError(
                f"Unable to load library '{name}': {exc}"
            ) from exc
        self.libraries.append(name)

    def render_file(self, path: Path, options: OptionSet) -> Path:
        _check_supported(options)
        try:
            text = Path(path).read_text(encoding="utf-8")
        except OSError as exc:
            raise RenderFailure(f"Unable to read {path}: {exc}") from exc

        html, title = self.render_text(text, options)
        target_dir = options.to_dir or Path(path).parent
        if options.mkdirs:
            target_dir.mkdir(parents=True, exist_ok=True)
        target = target_dir / f"{Path(path).stem}.html"
        if options.header_footer:
            html = self._wrap(html, title or Path(path).stem, options)
        if options.compact:
            lines = [line for line in html.splitlines() if line.strip()]
            html = "\n".join(lines) + "\n"
        target.write_text(html, encoding="utf-8")
        return target

    def render_text(
        self, text: str, options: OptionSet
    ) -> tuple[str, Optional[str]]:
        """Render Markdown ``text`` and return the HTML body and title."""

        md = MarkdownIt(
            "commonmark",
            options_update={
                "html": True,
                "highlight": _highlighter(options.attributes),
            },
        ).enable("table")
        tokens = md.parse(text)
        self._rewrite_images(tokens, options)

        html = md.renderer.render(tokens, md.options, {})
        return html, _document_title(tokens, options.attributes)

    def _rewrite_images(
        self, tokens: Sequence[Token], options: OptionSet
    ) -> None:
        images_dir = options.attributes.get("imagesdir")
        embed = options.attributes.get("data-uri") is True
        for token in _walk_tokens(tokens):
            if token.type != "image":
                continue
            src = str(token.attrGet("src") or "")
            if not src or _URL_RE.match(src) or src.startswith("/"):
                continue
            if isinstance(images_dir, str) and images_dir:
                src = f"{images_dir.rstrip('/')}/{src}"
                token.attrSet("src", src)
            if embed:
                data_uri = self._data_uri(src, options)
                if data_uri is not None:
                    token.attrSet("src", data_uri)

    def _data_uri(self, src: str, options: OptionSet) -> Optional[str]:
        base_dir = options.base_dir or Path.cwd()
        candidate = (base_dir / src).resolve()
        if options.safe >= SafeMode.SAFE:
            try:
                candidate.relative_to(base_dir.resolve())
            except ValueError:
                self._logger.warning(
                    "Image outside base directory not embedded",
                    extra={"image": src, "base_dir": str(base_dir)},
                )
                return None
        try:
            payload = candidate.read_bytes()
        except OSError as exc:
            self._logger.warning(
                "Image not found for embedding",
                extra={"image": str(candidate), "reason": str(exc)},
            )
            return None
        mime, _ = mimetypes.guess_type(candidate.name)
        encoded = base64.b64encode(payload).decode("ascii")
        return f"data:{mime or 'application/octet-stream'};base64,{encoded}"

    def _wrap(self, body: str, title: str, options: OptionSet) -> str:
        template = self._template(options)
        stylesheet_href, styles = self._stylesheet(options)
        try:
            return template.render(
                body=Markup(body),
                title=title,
                doctype=options.doctype,
                attributes=dict(options.attributes),
                stylesheet_href=stylesheet_href,
                styles=Markup(styles) if styles else "",
            )
        except TemplateError as exc:
            raise RenderFailure(f"Template rendering failed: {exc}") from exc

    def _template(self, options: OptionSet) -> Template:
        if options.template_dir is None:
            env = Environment(autoescape=True)
            return env.from_string(_DEFAULT_TEMPLATE)
        env = Environment(
            loader=FileSystemLoader(str(options.template_dir)),
            autoescape=select_autoescape(
                enabled_extensions=("html", "j2"), default=True
            ),
        )
        try:
            return env.get_template(DOCUMENT_TEMPLATE)
        except TemplateError as exc:
            raise RenderFailure(
                "Unable to load {0} from {1}: {2}".format(
                    DOCUMENT_TEMPLATE, options.template_dir, exc
                )
            ) from exc

    def _stylesheet(self, options: OptionSet) -> tuple[Optional[str], str]:
        attributes = options.attributes
        styles: list[str] = []
        if attributes.get("source-highlighter") == "pygments":
            styles.append(HtmlFormatter().get_style_defs("pre"))

        stylesheet = attributes.get("stylesheet")
        if not isinstance(stylesheet, str) or not stylesheet:
            return None, "\n".join(styles)
        stylesdir = attributes.get("stylesdir")
        relative = stylesheet
        if isinstance(stylesdir, str) and stylesdir:
            relative = f"{stylesdir.rstrip('/')}/{stylesheet}"
        if attributes.get("linkcss") not in (None, False):
            return relative, "\n".join(styles)

        base_dir = options.base_dir or Path.cwd()
        try:
            css = (base_dir / relative).read_text(encoding="utf-8")
            styles.insert(0, css)
        except OSError as exc:
            self._logger.warning(
                "Stylesheet not found",
                extra={"stylesheet": relative, "reason": str(exc)},
            )
        return None, "\n".join(styles)


def _check_supported(options: OptionSet) -> None:
    if options.backend not in HTML_BACKENDS:
        expected = ", ".join(sorted(HTML_BACKENDS))
        raise RenderFailure(
            f"Markdown renderer does not support backend '{options.backend}'"
            f" (expected one of: {expected})."
        )
    engine = options.template_engine
    if engine and engine not in TEMPLATE_ENGINES:
        raise RenderFailure(
            f"Markdown renderer does not support template engine '{engine}'."
        )


def _highlighter(
    attributes: Mapping[str, AttributeValue],
) -> Optional[Callable[[str, str, str], str]]:
    if attributes.get("source-highlighter") != "pygments":
        return None
    formatter = HtmlFormatter(nowrap=True)

    def highlight(code: str, lang: str, _attrs: str) -> str:
        if not lang:
            return ""
        try:
            lexer = get_lexer_by_name(lang)
        except ClassNotFound:
            return ""
        return pygments_highlight(code, lexer, formatter)

    return highlight


def _walk_tokens(tokens: Sequence[Token]):
    for token in tokens:
        yield token
        if token.children:
            yield from _walk_tokens(token.children)


def _document_title(
    tokens: Sequence[Token], attributes: Mapping[str, AttributeValue]
) -> Optional[str]:
    doctitle = attributes.get("doctitle")
    if isinstance(doctitle, str) and doctitle:
        return doctitle
    for index, token in enumerate(tokens[:-1]):
        if token.type == "heading_open" and token.tag == "h1":
            return tokens[index + 1].content
    return None


__all__ = [
    "AsciidoctorCommandRenderer",
    "DOCUMENT_TEMPLATE",
    "MarkdownExtensionRegistry",
    "MarkdownRenderer",
    "Renderer",
    "create_renderer",
]
