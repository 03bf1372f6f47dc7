"""Markdown to HTML conversion with NixOS/nixpkgs documentation extensions."""

from __future__ import annotations

import json
import logging
import os
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from markdown_it import MarkdownIt

from ndg.markup import (
    AUTOLINK_PATTERN,
    capitalize_first,
    process_html_elements,
    process_manpage_references,
    safely_process_markup,
)
from ndg.preprocess import (
    preprocess_block_elements,
    preprocess_headers,
    preprocess_inline_anchors,
    process_file_includes,
    process_role_markup,
    split_lines,
)

if TYPE_CHECKING:
    from ndg.config import Config

__all__ = [
    "EXPLICIT_ANCHOR_RE",
    "Header",
    "collect_markdown_files",
    "convert_to_html",
    "extract_headers",
    "humanize_anchor_id",
    "load_manpage_urls",
    "post_process_html",
    "process_autolinks",
    "process_manpage_roles",
    "process_markdown",
    "process_markdown_string",
]

log = logging.getLogger(__name__)

ManpageUrls = Mapping[str, str] | None

EXPLICIT_ANCHOR_RE = re.compile(r"^(#+)\s+(.+?)(?:\s+\{#([a-zA-Z0-9_-]+)\})?\s*$")

_AUTO_EMPTY_LINK_RE = re.compile(r"\[\]\((#[a-zA-Z0-9_-]+)\)")
_HTML_EMPTY_LINK_RE = re.compile(r'<a href="(#[a-zA-Z0-9_-]+)"></a>')
_RAW_INLINE_ANCHOR_RE = re.compile(r"\[\]\{#([a-zA-Z0-9_-]+)\}")
_LIST_ITEM_ID_MARKER_RE = re.compile(r"<li><!-- nixos-anchor-id:([a-zA-Z0-9_-]+) -->")
_LIST_ITEM_ANCHOR_RE = re.compile(r"<li>\[\]\{#([a-zA-Z0-9_-]+)\}(.*?)</li>")
_OPTION_RE = re.compile(r"<code>([a-zA-Z][\w\.]+(\.[\w]+)+)</code>")
_PROMPT_RE = re.compile(r"<code>\s*\$\s+(.+?)</code>")
_REPL_RE = re.compile(r"<code>nix-repl&gt;\s*(.*?)</code>")
_MYST_ROLE_RE = re.compile(r'<span class="([a-zA-Z]+)-markup">(.*?)</span>')
_HEADER_ID_RE = re.compile(
    r"<h([1-6])>(.*?)\s*<!--\s*anchor:\s*([a-zA-Z0-9_-]+)\s*-->(.*?)</h[1-6]>"
)
_HEADERS_WITH_ID_RE = [
    (level, re.compile(rf"<h{level}>(.*?)\s*\{{#([a-zA-Z0-9_-]+)\}}(.*?)</h{level}>"))
    for level in range(1, 7)
]
_BRACKETED_SPAN_RE = re.compile(r'<p><span id="([^"]+)"></span></p>')
_P_TAG_ANCHOR_RE = re.compile(r"<p>\[\]\{#([a-zA-Z0-9_-]+)\}(.*?)</p>")

_MYST_CODE_CLASSES = {
    "command": "command",
    "env": "env-var",
    "file": "file-path",
    "option": "nixos-option",
    "var": "nix-var",
}

_CONVERSION_ERROR = '<div class="error">Error processing markdown content</div>'


@dataclass
class Header:
    """A heading found in a markdown document."""

    text: str
    level: int
    id: str


def _escape_html(text: str) -> str:
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
    )


def _generate_id(text: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")


def _code_block(lang: str, content: str) -> str:
    class_attr = f' class="language-{lang}"' if lang else ""
    return f"<pre><code{class_attr}>{_escape_html(content)}</code></pre>\n"


def _render_fence(self, tokens, idx, options, env):  # noqa: ANN001, ARG001
    token = tokens[idx]
    return _code_block(token.info.strip(), token.content)


def _render_code_block(self, tokens, idx, options, env):  # noqa: ANN001, ARG001
    return _code_block("", tokens[idx].content)


def _render_strikethrough(self, tokens, idx, options, env):  # noqa: ANN001, ARG001
    """Render strikethrough open/close tokens as ``<del>`` tags."""
    return "<del>" if tokens[idx].nesting > 0 else "</del>"


def _make_document_renderer() -> MarkdownIt:
    md = MarkdownIt("commonmark").enable(["table", "strikethrough"])
    md.add_render_rule("fence", _render_fence)
    md.add_render_rule("code_block", _render_code_block)
    md.add_render_rule("s_open", _render_strikethrough)
    md.add_render_rule("s_close", _render_strikethrough)
    return md


_DOCUMENT_RENDERER = _make_document_renderer()
_HEADER_PARSER = MarkdownIt("commonmark").enable(["table", "strikethrough"])


def collect_markdown_files(input_dir: str | os.PathLike[str]) -> list[Path]:
    """Return every ``.md`` file below ``input_dir``, following symlinks."""
    root = Path(input_dir)
    if root.is_file():
        return [root] if root.suffix == ".md" else []

    files: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(root, followlinks=True):
        dirnames.sort()
        for name in sorted(filenames):
            path = Path(dirpath) / name
            if path.suffix == ".md" and path.is_file():
                files.append(path)

    log.debug("Found %d markdown files to process", len(files))
    return files


def process_markdown(
    content: str, manpage_urls: ManpageUrls, config: Config
) -> tuple[str, list[Header], str | None]:
    """Convert markdown to HTML, returning the HTML, its headers and its title."""
    with_includes = process_file_includes(content, config)
    preprocessed = preprocess_block_elements(with_includes)
    with_headers = preprocess_headers(preprocessed)
    with_inline_anchors = preprocess_inline_anchors(with_headers)
    with_roles = process_role_markup(with_inline_anchors, manpage_urls)
    headers, title = extract_headers(with_roles)
    html = convert_to_html(with_roles, config)
    return post_process_html(html, manpage_urls), headers, title


def convert_to_html(markdown: str, config: Config) -> str:  # noqa: ARG001
    """Render markdown to HTML; code blocks carry a ``language-*`` class."""
    return safely_process_markup(markdown, _DOCUMENT_RENDERER.render, _CONVERSION_ERROR)


def _anchor_span(anchor_id: str) -> str:
    return f'<span id="{anchor_id}" class="nixos-anchor"></span>'


def _option_link(match: re.Match[str]) -> str:
    option_path = match[1]
    option_id = "option-" + option_path.replace(".", "-")
    return (
        f'<a href="options.html#{option_id}" class="option-reference">'
        f"<code>{option_path}</code></a>"
    )


def _myst_role(match: re.Match[str]) -> str:
    role_type, content = match[1], match[2]
    css_class = _MYST_CODE_CLASSES.get(role_type)
    if css_class is not None:
        return f'<code class="{css_class}">{content}</code>'
    return f'<span class="{role_type}-markup">{content}</span>'


def _empty_link(match: re.Match[str]) -> str:
    anchor = match[1]
    return f'<a href="{anchor}">{humanize_anchor_id(anchor)}</a>'


def _headers_with_inline_anchors(html: str) -> str:
    for level, regex in _HEADERS_WITH_ID_RE:
        html = process_html_elements(
            html,
            regex,
            lambda m, level=level: f'<h{level} id="{m[2]}">{m[1]}{m[3]}</h{level}>',
        )
    return html


def _remaining_inline_anchors(html: str) -> str:
    html = _BRACKETED_SPAN_RE.sub(lambda m: _anchor_span(m[1]), html)
    return _RAW_INLINE_ANCHOR_RE.sub(lambda m: _anchor_span(m[1]), html)


def post_process_html(html: str, manpage_urls: ManpageUrls) -> str:
    """Resolve anchors, roles, prompts, option references and links left in the HTML."""
    steps: list[Callable[[str], str]] = [
        lambda h: process_html_elements(
            h, _LIST_ITEM_ID_MARKER_RE, lambda m: "<li>" + _anchor_span(m[1])
        ),
        lambda h: process_manpage_roles(h, manpage_urls),
        lambda h: process_html_elements(
            h,
            _PROMPT_RE,
            lambda m: f'<code class="terminal"><span class="prompt">$</span> {m[1]} </code>',
        ),
        lambda h: process_html_elements(
            h,
            _REPL_RE,
            lambda m: (
                '<code class="nix-repl"><span class="prompt">nix-repl&gt;</span> '
                f"{m[1]}</code>"
            ),
        ),
        lambda h: process_html_elements(h, _OPTION_RE, _option_link),
        lambda h: process_html_elements(
            h,
            _HEADER_ID_RE,
            lambda m: f'<h{m[1]} id="{m[3]}">{m[2]}{m[4]}<!-- anchor added --></h{m[1]}>',
        ),
        _headers_with_inline_anchors,
        lambda h: process_html_elements(h, _MYST_ROLE_RE, _myst_role),
        lambda h: process_html_elements(
            h, _LIST_ITEM_ANCHOR_RE, lambda m: f"<li>{_anchor_span(m[1])}{m[2]}</li>"
        ),
        lambda h: process_html_elements(
            h, _P_TAG_ANCHOR_RE, lambda m: f"<p>{_anchor_span(m[1])}{m[2]}</p>"
        ),
        _remaining_inline_anchors,
        lambda h: process_html_elements(h, _AUTO_EMPTY_LINK_RE, _empty_link),
        lambda h: process_html_elements(h, _HTML_EMPTY_LINK_RE, _empty_link),
        process_autolinks,
    ]
    for step in steps:
        html = step(html)
    return html


def process_manpage_roles(html: str, manpage_urls: ManpageUrls) -> str:
    """Link manpage references in HTML using ``manpage_urls`` where known."""
    return process_manpage_references(html, manpage_urls, True)


def _strip_repeated_prefix(text: str, prefix: str) -> str:
    while text.startswith(prefix):
        text = text[len(prefix):]
    return text


def humanize_anchor_id(anchor: str) -> str:
    """Turn an anchor such as ``#sec-some-topic`` into display text."""
    cleaned = anchor.lstrip("#")
    for prefix in ("sec-", "ssec-", "opt-"):
        cleaned = _strip_repeated_prefix(cleaned, prefix)
    spaced = cleaned.replace("-", " ").replace("_", " ")
    return " ".join(capitalize_first(word) for word in spaced.split())


def _link_urls(text: str) -> str:
    return AUTOLINK_PATTERN.sub(lambda m: f'<a href="{m[1]}">{m[1]}</a>', text)


def process_autolinks(html: str) -> str:
    """Wrap bare http(s) URLs found outside of tags in links."""
    result: list[str] = []
    pending: list[str] = []
    in_tag = False

    for char in html:
        if char == "<":
            if not in_tag and pending:
                result.append(_link_urls("".join(pending)))
                pending.clear()
            in_tag = True
            result.append(char)
        elif char == ">":
            in_tag = False
            result.append(char)
        elif in_tag:
            result.append(char)
        else:
            pending.append(char)

    if pending:
        result.append(_link_urls("".join(pending)))
    return "".join(result)


def _headers_from_lines(content: str) -> tuple[list[Header], str | None, bool]:
    headers: list[Header] = []
    title: str | None = None
    found = False
    in_code_block = False

    for line in split_lines(content):
        if line.strip().startswith("```"):
            in_code_block = not in_code_block
            continue
        if in_code_block:
            continue
        match = EXPLICIT_ANCHOR_RE.match(line)
        if match is None:
            continue
        found = True
        level = len(match[1])
        text = match[2].strip()
        anchor_id = match[3] if match[3] is not None else _generate_id(text)
        if level == 1 and title is None:
            title = text
        headers.append(Header(text=text, level=level, id=anchor_id))

    return headers, title, found


def _headers_from_parser(content: str) -> tuple[list[Header], str | None]:
    headers: list[Header] = []
    title: str | None = None
    tokens = _HEADER_PARSER.parse(content)

    for position, token in enumerate(tokens):
        if token.type != "heading_open":
            continue
        level = int(token.tag[1:])
        inline = tokens[position + 1] if position + 1 < len(tokens) else None
        children = inline.children or [] if inline is not None else []
        text = "".join(
            child.content for child in children if child.type in ("text", "code_inline")
        )
        if level == 1 and title is None:
            title = text
        headers.append(Header(text=text, level=level, id=_generate_id(text)))

    return headers, title


def extract_headers(content: str) -> tuple[list[Header], str | None]:
    """Collect the headings of a markdown document and its title (the first h1)."""
    headers, title, found = _headers_from_lines(content)
    if found:
        return headers, title
    return _headers_from_parser(content)


def load_manpage_urls(path: str | os.PathLike[str]) -> dict[str, str]:
    """Read a JSON object mapping manpage references to URLs."""
    path = Path(path)
    log.debug("Loading manpage URL mappings from %s", path)
    content = path.read_text(encoding="utf-8")
    try:
        data = json.loads(content)
    except ValueError as exc:
        raise ValueError("Failed to parse manpage mappings JSON") from exc
    if not isinstance(data, dict) or not all(
        isinstance(key, str) and isinstance(value, str) for key, value in data.items()
    ):
        raise ValueError("Failed to parse manpage mappings JSON")
    log.debug("Loaded %d manpage URL mappings", len(data))
    return data


def process_markdown_string(markdown: str, config: Config) -> str:
    """Render a markdown fragment, such as an option description, to HTML."""
    manpage_urls: dict[str, str] | None = None
    if "{manpage}" in markdown and config.manpage_urls_path is not None:
        try:
            manpage_urls = load_manpage_urls(config.manpage_urls_path)
        except (OSError, ValueError) as exc:
            log.debug("Error loading manpage mappings: %s", exc)
    html, _headers, _title = process_markdown(markdown, manpage_urls, config)
    return html