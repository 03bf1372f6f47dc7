"""Markdown pre-processing for NixOS/nixpkgs documentation extensions."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator, Mapping
from typing import TYPE_CHECKING

from markdown_it import MarkdownIt

from ndg.markup import (
    capitalize_first,
    process_command_prompts,
    process_repl_prompts,
    process_roles,
)

if TYPE_CHECKING:
    from ndg.config import Config

__all__ = [
    "ADMONITION_END_RE",
    "ADMONITION_START_RE",
    "FIGURE_RE",
    "GITHUB_CALLOUT_RE",
    "HEADING_ANCHOR",
    "INLINE_ANCHOR",
    "LIST_ITEM_WITH_ANCHOR_RE",
    "preprocess_block_elements",
    "preprocess_headers",
    "preprocess_inline_anchors",
    "process_admonition",
    "process_file_includes",
    "process_markdown_content",
    "process_role_markup",
    "split_lines",
]

log = logging.getLogger(__name__)

HEADING_ANCHOR = re.compile(r"^(#+)?\s*(.+?)(?:\s+\{#([a-zA-Z0-9_-]+)\})\s*$")
INLINE_ANCHOR = re.compile(r"\[\]\{#([a-zA-Z0-9_-]+)\}")
LIST_ITEM_WITH_ANCHOR_RE = re.compile(
    r"^(\s*[-*+]|\s*\d+\.)\s+\[\]\{#([a-zA-Z0-9_-]+)\}(.*)$"
)
ADMONITION_START_RE = re.compile(
    r"^:::\s*\{\.([a-zA-Z]+)(?:\s+#([a-zA-Z0-9_-]+))?\}(.*)$"
)
ADMONITION_END_RE = re.compile(r"^(.*?):::$")
FIGURE_RE = re.compile(
    r":::\s*\{\.figure(?:\s+#([a-zA-Z0-9_-]+))?\}\s*\n#\s+(.+)\n([\s\S]*?)\s*:::"
)
GITHUB_CALLOUT_RE = re.compile(
    r"^\s*>\s*\[!(NOTE|TIP|IMPORTANT|WARNING|CAUTION|DANGER)\](.*)$"
)

_INCLUDE_FENCE = "```{=include=}"


def _render_strikethrough(self, tokens, idx, options, env):  # noqa: ANN001, ARG001
    """Render strikethrough open/close tokens as ``<del>`` tags."""
    return "<del>" if tokens[idx].nesting > 0 else "</del>"


def _make_block_renderer() -> MarkdownIt:
    md = MarkdownIt("commonmark", {"typographer": True}).enable(
        ["table", "strikethrough", "replacements", "smartquotes"]
    )
    md.add_render_rule("s_open", _render_strikethrough)
    md.add_render_rule("s_close", _render_strikethrough)
    return md


_BLOCK_RENDERER = _make_block_renderer()


def split_lines(content: str) -> list[str]:
    """Split on newlines, dropping a final empty line and any trailing carriage returns."""
    if not content:
        return []
    parts = content.split("\n")
    if parts[-1] == "":
        parts.pop()
    return [part[:-1] if part.endswith("\r") else part for part in parts]


def process_file_includes(content: str, config: Config) -> str:
    """Replace ```{=include=} blocks with the files they list, relative to the input dir."""
    input_dir = config.input_dir
    if input_dir is None:
        return content

    out: list[str] = []
    in_code_block = False
    lines = iter(split_lines(content))

    for raw in lines:
        line = raw.strip()
        if line.startswith("```"):
            if not in_code_block and line == _INCLUDE_FENCE:
                for entry in lines:
                    file_path = entry.strip()
                    if file_path == "```":
                        break
                    if file_path:
                        out.append(_include_file(input_dir / file_path, file_path))
                continue
            in_code_block = not in_code_block
        out.append(raw + "\n")

    return "".join(out)


def _include_file(full_path, file_path: str) -> str:  # noqa: ANN001
    try:
        file_content = full_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        reason = getattr(exc, "strerror", None) or str(exc)
        log.error("Failed to include file %s: %s", full_path, reason)
        return f"**Error: Could not include file `{file_path}`: {reason}**\n\n"
    log.debug("Including file: %s", full_path)
    return (
        f"<!-- Begin include: {file_path} -->\n"
        f"{file_content}"
        f"\n<!-- End include: {file_path} -->\n\n"
    )


def _anchor_span(anchor_id: str) -> str:
    return f'<span id="{anchor_id}" class="nixos-anchor"></span>'


def preprocess_inline_anchors(content: str) -> str:
    """Turn []{#id} anchors, in list items and elsewhere, into empty anchor spans."""
    out: list[str] = []
    for line in split_lines(content):
        match = LIST_ITEM_WITH_ANCHOR_RE.match(line)
        if match:
            marker, anchor_id, rest = match.groups()
            out.append(f"{marker} {_anchor_span(anchor_id)}{rest}\n")
        else:
            out.append(line + "\n")
    return INLINE_ANCHOR.sub(lambda m: _anchor_span(m[1]), "".join(out))


def preprocess_headers(content: str) -> str:
    """Promote lines ending in {#id} without a level marker to level-two headings."""
    out: list[str] = []
    for line in split_lines(content):
        match = HEADING_ANCHOR.match(line)
        if match and not match[1]:
            out.append(f"## {match[2]} {{#{match[3]}}}")
        else:
            out.append(line)
    return "\n".join(out)


def process_role_markup(content: str, manpage_urls: Mapping[str, str] | None) -> str:
    """Render role markup and inline shell/REPL prompts as HTML."""
    result = process_roles(content, manpage_urls, True)
    result = process_command_prompts(result, True)
    return process_repl_prompts(result, True)


def process_markdown_content(content: str) -> str:
    """Render a block of markdown to HTML."""
    return _BLOCK_RENDERER.render(content)


def process_admonition(admonition_type: str, id: str | None, content: str) -> str:  # noqa: A002
    """Render an admonition of ``admonition_type`` around markdown ``content``."""
    id_attr = "" if id is None else f' id="{id}"'
    title = capitalize_first(admonition_type)
    formatted = (
        content.strip()
        .replace("\n- ", "\n\n- ")
        .replace("\n* ", "\n\n* ")
        .replace("\n+ ", "\n\n+ ")
    )
    body = process_markdown_content(formatted)
    return (
        f'<div class="admonition {admonition_type}"{id_attr}>\n'
        f'<p class="admonition-title">{title}</p>\n{body}</div>'
    )


class _Lines:
    """Line iterator with one line of lookahead."""

    def __init__(self, lines: list[str]) -> None:
        self._it: Iterator[str] = iter(lines)
        self._pending: list[str] = []

    def __iter__(self) -> _Lines:
        return self

    def __next__(self) -> str:
        if self._pending:
            return self._pending.pop()
        return next(self._it)

    def peek(self) -> str | None:
        if not self._pending:
            try:
                self._pending.append(next(self._it))
            except StopIteration:
                return None
        return self._pending[-1]


def preprocess_block_elements(content: str) -> str:
    """Render admonitions, callouts, figures and definition lists as HTML blocks."""
    out: list[str] = []
    lines = _Lines(split_lines(content))

    in_admonition = False
    adm_type = ""
    adm_id: str | None = None
    adm_content: list[str] = []

    in_callout = False
    callout_type = ""
    callout_content: list[str] = []

    def flush_admonition() -> None:
        out.append(process_admonition(adm_type, adm_id, "".join(adm_content)))
        adm_content.clear()

    def flush_callout() -> None:
        out.append(process_admonition(callout_type.lower(), None, "".join(callout_content)))
        callout_content.clear()

    for line in lines:
        callout = GITHUB_CALLOUT_RE.match(line)
        if callout:
            if in_callout:
                flush_callout()
            in_callout = True
            callout_type = callout[1]
            callout_content.clear()
            first = callout[2].strip()
            if first:
                callout_content.append(first + "\n")
            continue

        if in_callout:
            stripped = line.lstrip()
            if stripped.startswith(">"):
                callout_content.append(stripped.lstrip(">").lstrip() + "\n")
                continue
            flush_callout()
            in_callout = False

        figure = FIGURE_RE.search(line)
        if figure:
            id_attr = "" if figure[1] is None else f' id="{figure[1]}"'
            body = process_markdown_content(figure[3])
            out.append(
                f"<figure{id_attr}>\n<figcaption>{figure[2]}</figcaption>\n{body}\n</figure>"
            )
            continue

        following = lines.peek()
        if (
            line
            and not line.startswith(":")
            and following is not None
            and following.startswith(":   ")
        ):
            definition = next(lines)[4:]
            out.append(f"<dl>\n<dt>{line}</dt>\n<dd>{definition}</dd>\n</dl>")
            continue

        start = ADMONITION_START_RE.match(line)
        if start:
            if in_admonition:
                flush_admonition()
            in_admonition = True
            adm_type = start[1]
            adm_id = start[2]
            adm_content.clear()
            rest = start[3] or ""
            end = ADMONITION_END_RE.match(rest)
            if end:
                inner = end[1].strip()
                if inner:
                    adm_content.append(inner + "\n")
                flush_admonition()
                in_admonition = False
            elif rest.strip():
                adm_content.append(rest.strip() + "\n")
            continue

        if in_admonition:
            end = ADMONITION_END_RE.match(line)
            if end:
                before = end[1].strip()
                if before:
                    adm_content.append(before + "\n")
                flush_admonition()
                in_admonition = False
            else:
                adm_content.append(line + "\n")
            continue

        out.append(line)

    if in_admonition:
        flush_admonition()
    if in_callout:
        flush_callout()

    return "\n".join(out)