"""Module option records read from options JSON files."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from ndg.markdown import process_markdown_string

if TYPE_CHECKING:
    from ndg.config import Config

__all__ = [
    "NixOption",
    "escape_html_in_markdown",
    "extract_value_from_json",
    "format_location",
    "load_options",
    "parse_options",
]

log = logging.getLogger(__name__)

_NIXPKGS_BLOB_URL = "https://github.com/NixOS/nixpkgs/blob"
_LITERAL_TYPES = ("literalExpression", "literalDocBook", "literalMD")
_FALLBACK_DECLARATION = "configuration.nix"


@dataclass
class NixOption:
    """A single module option, ready for rendering."""

    name: str
    type_name: str = ""
    description: str = ""
    default: Any = None
    default_text: str | None = None
    example: Any = None
    example_text: str | None = None
    declared_in: str | None = None
    declared_in_url: str | None = None
    internal: bool = False
    read_only: bool = False


def _escape_angles(text: str) -> str:
    return text.replace("<", "&lt;").replace(">", "&gt;")


def format_location(loc_value: Any, revision: str) -> tuple[str | None, str | None]:
    """Return the display text and URL for a declaration location."""
    if isinstance(loc_value, str):
        path = loc_value
        if path.startswith("/"):
            url = f"file://{path}"
            if "nixops" in path and "/nix/" in path:
                suffix = path[path.find("/nix/") + 5:]
                return f"<nixops/{suffix}>", url
            return path, url
        branch = "master" if revision == "local" else revision
        return f"<nixpkgs/{path}>", f"{_NIXPKGS_BLOB_URL}/{branch}/{path}"

    if isinstance(loc_value, dict):
        name = loc_value.get("name")
        display = _escape_angles(name) if isinstance(name, str) else None
        url = loc_value.get("url")
        return display, url if isinstance(url, str) else None

    return None, None


def escape_html_in_markdown(text: str) -> str:
    """Escape ``<`` and ``>`` outside of inline code and fenced code blocks."""
    out: list[str] = []
    in_code_block = False
    in_inline_code = False
    backticks = 0

    for char in text:
        if char == "`":
            backticks += 1
            if backticks == 3 and not in_inline_code:
                in_code_block = not in_code_block
                backticks = 0
            elif backticks == 1 and not in_code_block:
                in_inline_code = not in_inline_code
            out.append(char)
            continue

        if 0 < backticks < 3:
            backticks = 0

        in_code = in_code_block or in_inline_code
        if char == "<" and not in_code:
            out.append("&lt;")
        elif char == ">" and not in_code:
            out.append("&gt;")
        else:
            out.append(char)

    return "".join(out)


def _scalar_text(value: Any) -> str | None:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    if value is None:
        return "null"
    return None


def extract_value_from_json(value: Any) -> str | None:
    """Return the text of a literal value or scalar, or None for structured data."""
    if isinstance(value, dict):
        type_name = value.get("_type")
        text = value.get("text")
        if type_name in _LITERAL_TYPES and isinstance(text, str):
            return f"`{text}`" if type_name == "literalExpression" else text
        return None
    return _scalar_text(value)


def _priority(name: str) -> int:
    if name.startswith("enable"):
        return 0
    if name.startswith("package"):
        return 1
    return 2


def _build_option(key: str, data: dict[str, Any], config: Config) -> NixOption:
    option = NixOption(name=key)

    type_name = data.get("type")
    if isinstance(type_name, str):
        option.type_name = type_name

    description = data.get("description")
    if isinstance(description, str):
        option.description = process_markdown_string(
            escape_html_in_markdown(description), config
        )

    if "default" in data:
        default = data["default"]
        text = extract_value_from_json(default)
        if text is not None:
            option.default_text = text
        else:
            option.default = default
    default_text = data.get("defaultText")
    if isinstance(default_text, str):
        option.default_text = default_text

    if "example" in data:
        example = data["example"]
        text = extract_value_from_json(example)
        if text is not None:
            option.example_text = text
        else:
            option.example = example
    example_text = data.get("exampleText")
    if isinstance(example_text, str):
        option.example_text = example_text

    declarations = data.get("declarations")
    if isinstance(declarations, list) and declarations:
        option.declared_in, option.declared_in_url = format_location(
            declarations[0], config.revision
        )

    read_only = data.get("readOnly")
    if isinstance(read_only, bool):
        option.read_only = read_only
    internal = data.get("internal")
    if isinstance(internal, bool):
        option.internal = internal
    if data.get("visible") is False:
        option.internal = True

    if option.declared_in is None:
        loc = data.get("loc")
        if isinstance(loc, list):
            parts = [part for part in loc if isinstance(part, str)]
            if parts:
                option.declared_in = ".".join(parts)
                log.debug("Set declared_in from loc: %s", option.declared_in)

    if option.declared_in is None:
        option.declared_in = _FALLBACK_DECLARATION
        log.debug("Using fallback declared_in for %s", key)

    return option


def parse_options(config: Config, data: Any) -> dict[str, NixOption]:
    """Build options from decoded options JSON, ordered enable, package, then by name."""
    if not isinstance(data, dict):
        return {}

    options = {
        key: _build_option(key, value, config)
        for key, value in data.items()
        if isinstance(value, dict)
    }

    ordered: dict[str, NixOption] = {}
    for key in sorted(options, key=lambda name: (_priority(name), name)):
        option = options[key]
        option.name = _escape_angles(option.name)
        ordered[key] = option
    return ordered


def load_options(config: Config, options_path: str | os.PathLike[str]) -> dict[str, NixOption]:
    """Read an options JSON file and return its options in display order."""
    path = Path(options_path)
    content = path.read_text(encoding="utf-8")
    try:
        data = json.loads(content)
    except ValueError as exc:
        raise ValueError("Failed to parse options JSON") from exc
    return parse_options(config, data)