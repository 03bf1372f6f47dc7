"""Markup helpers shared by the HTML and troff renderers."""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Mapping

__all__ = [
    "AUTOLINK_PATTERN",
    "COMMAND_PROMPT",
    "INLINE_CODE",
    "MANPAGE_MARKUP_RE",
    "MANPAGE_REFERENCE_RE",
    "MANPAGE_ROLE_RE",
    "PROMPT_RE",
    "REPL_PROMPT",
    "REPL_RE",
    "ROLE_PATTERN",
    "capitalize_first",
    "never_matching_regex",
    "process_command_prompts",
    "process_html_elements",
    "process_inline_code",
    "process_manpage_references",
    "process_repl_prompts",
    "process_roles",
    "safely_process_markup",
]

log = logging.getLogger(__name__)

# Role syntax such as {command}`ls -l`
ROLE_PATTERN = re.compile(r"\{([a-z]+)\}`([^`]+)`")
COMMAND_PROMPT = re.compile(r"`\s*\$\s+([^`]+)`")
REPL_PROMPT = re.compile(r"`nix-repl>\s*([^`]+)`")
PROMPT_RE = re.compile(r"<code>\s*\$\s+(.+?)</code>")
REPL_RE = re.compile(r"<code>nix-repl&gt;\s*(.*?)</code>")
AUTOLINK_PATTERN = re.compile(r"""(https?://[^\s<>"')\}]+)""")
INLINE_CODE = re.compile(r"`([^`\n]+)`")
MANPAGE_ROLE_RE = re.compile(r"\{manpage\}`([^`]+)`")
MANPAGE_MARKUP_RE = re.compile(r'<span class="manpage-markup">([^<]+)</span>')
MANPAGE_REFERENCE_RE = re.compile(r'<span class="manpage-reference">([^<]+)</span>')

ManpageUrls = Mapping[str, str] | None


def never_matching_regex() -> re.Pattern[str]:
    """Return a pattern that cannot match any input, not even the empty string."""
    return re.compile(r"[^\s\S]")


def process_html_elements(
    html: str,
    regex: re.Pattern[str],
    transform: Callable[[re.Match[str]], str],
) -> str:
    """Replace every match of ``regex`` in ``html`` with ``transform(match)``."""
    return regex.sub(transform, html)


def capitalize_first(s: str) -> str:
    """Upper-case the first character of ``s``, leaving the rest untouched."""
    return s[:1].upper() + s[1:]


def _manpage_span(ref: str) -> str:
    return f'<span class="manpage-reference">{ref}</span>'


def _manpage_link(url: str, ref: str) -> str:
    return f'<a href="{url}" class="manpage-reference">{ref}</a>'


def _manpage_html(ref: str, manpage_urls: ManpageUrls) -> str:
    url = manpage_urls.get(ref) if manpage_urls is not None else None
    return _manpage_span(ref) if url is None else _manpage_link(url, ref)


def process_manpage_references(
    text: str, manpage_urls: ManpageUrls, is_html: bool
) -> str:
    """Turn manpage markup into links (HTML) or bold references (troff)."""
    if is_html:
        text = MANPAGE_MARKUP_RE.sub(lambda m: _manpage_html(m[1], manpage_urls), text)

    def reference(match: re.Match[str]) -> str:
        content = match[1]
        if not is_html:
            return f"\\fB{content}\\fP"
        if manpage_urls is None:
            return _manpage_span(content)
        url = manpage_urls.get(content)
        if url is not None:
            return _manpage_link(url, content)
        if content == "conf(5)":
            full_ref = "nix.conf(5)"
            full_url = manpage_urls.get(full_ref)
            if full_url is not None:
                return _manpage_link(full_url, full_ref)
        return _manpage_span(content)

    return MANPAGE_REFERENCE_RE.sub(reference, text)


_HTML_ROLE_CODE_CLASSES = {
    "command": "command",
    "env": "env-var",
    "file": "file-path",
    "option": "nixos-option",
    "var": "nix-var",
}


def _html_role(role_type: str, content: str, manpage_urls: ManpageUrls) -> str:
    if role_type == "manpage":
        return _manpage_html(content, manpage_urls)
    css_class = _HTML_ROLE_CODE_CLASSES.get(role_type)
    if css_class is not None:
        return f'<code class="{css_class}">{content}</code>'
    return f'<span class="{role_type}-markup">{content}</span>'


def _troff_role(role_type: str, content: str) -> str:
    if role_type in ("command", "option"):
        return f"\\fB{content}\\fP"
    if role_type == "manpage":
        page, sep, section = content.rpartition("(")
        if sep:
            return f"\\fB{page.strip()}\\fP({section.rstrip(')')})"
        return f"\\fB{content}\\fP"
    return f"\\fI{content}\\fP"


def process_roles(text: str, manpage_urls: ManpageUrls, is_html: bool) -> str:
    """Render role markup such as {command}`ls -l` as HTML or troff."""

    def replace(match: re.Match[str]) -> str:
        role_type, content = match[1], match[2]
        if is_html:
            return _html_role(role_type, content, manpage_urls)
        return _troff_role(role_type, content)

    return ROLE_PATTERN.sub(replace, text)


def process_command_prompts(text: str, is_html: bool) -> str:
    """Format inline terminal prompts written as `$ command`."""
    if is_html:
        return COMMAND_PROMPT.sub(
            lambda m: f'<code class="terminal"><span class="prompt">$</span> {m[1]}</code>',
            text,
        )
    return COMMAND_PROMPT.sub(lambda m: f"\\f[C]$ {m[1]}\\fP", text)


def process_repl_prompts(text: str, is_html: bool) -> str:
    """Format inline nix REPL prompts written as `nix-repl> expr`."""
    if is_html:
        return REPL_PROMPT.sub(
            lambda m: (
                '<code class="nix-repl"><span class="prompt">nix-repl&gt;</span> '
                f"{m[1]}</code>"
            ),
            text,
        )
    return REPL_PROMPT.sub(lambda m: f"\\f[C]nix-repl> {m[1]}\\fP", text)


def process_inline_code(text: str, is_html: bool) -> str:
    """Quote inline code for troff; HTML is left to the markdown renderer."""
    if is_html:
        return text
    return INLINE_CODE.sub(lambda m: f"\\fR\\(oq{m[1]}\\(cq\\fP", text)


def safely_process_markup(
    text: str,
    process_fn: Callable[[str], str],
    default_on_error: str,
) -> str:
    """Run ``process_fn`` on ``text``, falling back if it raises.

    On failure the error is logged and ``default_on_error`` is returned, or the
    original text when that default is empty.
    """
    if not text:
        return ""
    try:
        return process_fn(text)
    except Exception as exc:  # noqa: BLE001 - a broken fragment must not abort the document
        log.error("Error processing markup: %s", exc)
        return default_on_error or text