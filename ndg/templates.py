"""Default configuration file templates."""

from __future__ import annotations

import json
from dataclasses import dataclass

__all__ = [
    "DEFAULT_JSON_TEMPLATE",
    "DEFAULT_TOML_TEMPLATE",
    "TemplateError",
    "get_template",
]


class TemplateError(Exception):
    """Raised when a configuration template cannot be produced."""

    def __init__(self, format: str) -> None:  # noqa: A002 - mirrors the CLI option name
        self.format = format
        super().__init__(f"Unsupported config format: {format}")


@dataclass(frozen=True)
class _Setting:
    """One documented setting of the starter configuration."""

    comments: tuple[str, ...]
    key: str
    value: object
    enabled: bool = True


_SETTINGS: tuple[_Setting, ...] = (
    _Setting(("Input directory containing markdown files",), "input_dir", "docs"),
    _Setting(("Output directory for generated documentation",), "output_dir", "build"),
    _Setting(
        ("Path to options.json file (optional)",),
        "module_options",
        "options.json",
        enabled=False,
    ),
    _Setting(("Title for the documentation",), "title", "My Project Documentation"),
    _Setting(("Footer text for the documentation",), "footer_text", "Generated with ndg"),
    _Setting(
        (
            "Number of threads to use for parallel processing "
            "(defaults to number of CPU cores)",
        ),
        "jobs",
        4,
        enabled=False,
    ),
    _Setting(
        ("Template customization", "Path to custom template file"),
        "template_path",
        "templates/custom.html",
        enabled=False,
    ),
    _Setting(
        ("Path to template directory containing all template files",),
        "template_dir",
        "templates",
        enabled=False,
    ),
    _Setting(
        ("Path to custom stylesheet",),
        "stylesheet_path",
        "assets/custom.css",
        enabled=False,
    ),
    _Setting(
        ("Paths to custom JavaScript files",),
        "script_paths",
        ["assets/custom.js", "assets/search.js"],
        enabled=False,
    ),
    _Setting(
        ("Directory containing additional assets",),
        "assets_dir",
        "assets",
        enabled=False,
    ),
    _Setting(
        ("Path to manpage URL mappings JSON file",),
        "manpage_urls_path",
        "manpage-urls.json",
        enabled=False,
    ),
    _Setting(("Whether to generate anchors for headings",), "generate_anchors", True),
    _Setting(("Whether to generate a search index",), "generate_search", True),
    _Setting(("Depth of parent categories in options TOC",), "options_toc_depth", 2),
    _Setting(
        ("Whether to enable syntax highlighting for code blocks",),
        "highlight_code",
        True,
    ),
    _Setting(
        ("GitHub revision for linking to source files (defaults to 'local')",),
        "revision",
        "main",
    ),
)


def _toml_value(value: object) -> str:
    """Render a simple value as TOML."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, str)):
        return json.dumps(value)
    if isinstance(value, list):
        return "[" + ", ".join(_toml_value(item) for item in value) + "]"
    raise TypeError(f"cannot render {value!r} as TOML")


def _toml_block(setting: _Setting) -> str:
    comments = "".join(f"# {line}\n" for line in setting.comments)
    prefix = "" if setting.enabled else "# "
    return f"{comments}{prefix}{setting.key} = {_toml_value(setting.value)}\n"


def _render_toml() -> str:
    blocks = ["# NDG Configuration File\n"]
    blocks.extend(_toml_block(setting) for setting in _SETTINGS)
    return "\n".join(blocks)


def _render_json() -> str:
    enabled = {s.key: s.value for s in _SETTINGS if s.enabled}
    return json.dumps(enabled, indent=2) + "\n"


DEFAULT_TOML_TEMPLATE = _render_toml()
DEFAULT_JSON_TEMPLATE = _render_json()

_TEMPLATES = {
    "toml": DEFAULT_TOML_TEMPLATE,
    "json": DEFAULT_JSON_TEMPLATE,
}


def get_template(format: str) -> str:  # noqa: A002 - mirrors the CLI option name
    """Return the default configuration template for ``format`` (toml or json)."""
    try:
        return _TEMPLATES[format.lower()]
    except KeyError:
        raise TemplateError(format) from None