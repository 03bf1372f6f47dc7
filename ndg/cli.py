"""Command line interface definition."""

from __future__ import annotations

import argparse
import dataclasses
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

__all__ = [
    "Cli",
    "ExportTemplatesCommand",
    "GenerateCommand",
    "HtmlCommand",
    "InitCommand",
    "ManpageCommand",
    "build_parser",
    "parse_args",
]

_VERSION = "2.1.0"


@dataclass
class InitCommand:
    """Initialise a new configuration file."""

    output: Path = Path("ndg.toml")
    format: str = "toml"
    force: bool = False


@dataclass
class ExportTemplatesCommand:
    """Export the default templates for customisation."""

    output_dir: Path = Path("templates")
    force: bool = False


@dataclass
class GenerateCommand:
    """Generate shell completions and a manpage."""

    output_dir: Path = Path("dist")
    completions_only: bool = False
    manpage_only: bool = False


@dataclass
class HtmlCommand:
    """Render documentation to HTML."""

    input_dir: Path | None = None
    output_dir: Path | None = None
    jobs: int | None = None
    template: Path | None = None
    template_dir: Path | None = None
    stylesheet: list[Path] = field(default_factory=list)
    script: list[Path] = field(default_factory=list)
    title: str | None = None
    footer: str | None = None
    module_options: Path | None = None
    options_toc_depth: int | None = None
    manpage_urls: Path | None = None
    generate_search: bool | None = None
    highlight_code: bool | None = None
    revision: str | None = None


@dataclass
class ManpageCommand:
    """Render a manpage from module options."""

    module_options: Path
    output_file: Path | None = None
    header: str | None = None
    footer: str | None = None
    title: str | None = None
    section: int = 5


Command = InitCommand | ExportTemplatesCommand | GenerateCommand | HtmlCommand | ManpageCommand


@dataclass
class Cli:
    """Parsed command line."""

    command: Command | None = None
    verbose: bool = False
    config_file: Path | None = None


def _bool_value(text: str) -> bool:
    if text in ("true", "false"):
        return text == "true"
    raise argparse.ArgumentTypeError(
        f"invalid value '{text}' [possible values: true, false]"
    )


def _unsigned(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid digit found in '{text}'") from None
    if value < 0:
        raise argparse.ArgumentTypeError(f"invalid value '{text}': must not be negative")
    return value


def _byte(text: str) -> int:
    value = _unsigned(text)
    if value > 255:
        raise argparse.ArgumentTypeError(f"invalid value '{text}': must be at most 255")
    return value


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the ``ndg`` command."""
    parser = argparse.ArgumentParser(prog="ndg", description="Nix Documentation Generator")
    parser.add_argument("-V", "--version", action="version", version=f"%(prog)s {_VERSION}")
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable verbose debug logging"
    )
    parser.add_argument(
        "-c",
        "--config",
        dest="config_file",
        type=Path,
        help="Path to configuration file (TOML or JSON)",
    )

    sub = parser.add_subparsers(dest="subcommand", metavar="COMMAND")

    init = sub.add_parser("init", help="Initialize a new NDG configuration file")
    init.set_defaults(_command=InitCommand)
    init.add_argument(
        "-o", "--output", type=Path, default=Path("ndg.toml"),
        help="Path to create the configuration file at",
    )
    init.add_argument(
        "-F", "--format", default="toml", choices=["toml", "json"],
        help="Format of the configuration file (toml or json)",
    )
    init.add_argument(
        "-f", "--force", action="store_true", help="Force overwrite if file already exists"
    )

    export = sub.add_parser(
        "export-templates", help="Export default templates to a directory for customization"
    )
    export.set_defaults(_command=ExportTemplatesCommand)
    export.add_argument(
        "-o", "--output-dir", type=Path, default=Path("templates"),
        help="Output directory for template files",
    )
    export.add_argument("--force", action="store_true", help="Overwrite existing files")

    generate = sub.add_parser("generate", help="Generate shell completions and manpages")
    generate.set_defaults(_command=GenerateCommand)
    generate.add_argument(
        "-o", "--output-dir", type=Path, default=Path("dist"),
        help="Directory to output generated files",
    )
    generate.add_argument(
        "--completions-only", action="store_true", help="Only generate shell completions"
    )
    generate.add_argument("--manpage-only", action="store_true", help="Only generate manpage")

    html = sub.add_parser("html", help="Process documentation and generate HTML")
    html.set_defaults(_command=HtmlCommand)
    html.add_argument(
        "-i", "--input-dir", type=Path, help="Path to the directory containing markdown files"
    )
    html.add_argument(
        "-o", "--output-dir", type=Path, help="Output directory for generated documentation"
    )
    html.add_argument(
        "-p", "--jobs", type=_unsigned,
        help="Number of threads to use for parallel processing",
    )
    html.add_argument("-t", "--template", type=Path, help="Path to custom template file")
    html.add_argument(
        "--template-dir", type=Path,
        help="Path to directory containing template files; they override the built-in ones",
    )
    html.add_argument(
        "-s", "--stylesheet", type=Path, action="append", default=[],
        help="Path to custom stylesheet; may be given several times",
    )
    html.add_argument(
        "--script", type=Path, action="append", default=[],
        help="Path to custom Javascript file; may be given several times",
    )
    html.add_argument("-T", "--title", help="Title of the documentation")
    html.add_argument("-f", "--footer", help="Footer text for the documentation")
    html.add_argument(
        "-j", "--module-options", type=Path,
        help="Path to a JSON file containing module options",
    )
    html.add_argument(
        "--options-depth", dest="options_toc_depth", type=_unsigned,
        help="Depth of parent categories in options TOC",
    )
    html.add_argument(
        "--manpage-urls", type=Path, help="Path to manpage URL mappings JSON file"
    )
    html.add_argument(
        "-S", "--generate-search", type=_bool_value, metavar="{true,false}",
        help="Whether to generate search functionality",
    )
    html.add_argument(
        "--highlight-code", type=_bool_value, metavar="{true,false}",
        help="Whether to enable syntax highlighting for code blocks",
    )
    html.add_argument(
        "--revision", help="GitHub revision for linking to source files (defaults to 'local')"
    )

    manpage = sub.add_parser("manpage", help="Generate manpage from options")
    manpage.set_defaults(_command=ManpageCommand)
    manpage.add_argument(
        "-j", "--module-options", type=Path, required=True,
        help="Path to a JSON file containing module options",
    )
    manpage.add_argument(
        "-o", "--output-file", type=Path, help="Output file for the generated manpage"
    )
    manpage.add_argument(
        "-H", "--header", help="Header text to include at the beginning of the manpage"
    )
    manpage.add_argument(
        "-F", "--footer", help="Footer text to include at the end of the manpage"
    )
    manpage.add_argument("-T", "--title", help="Title for the manpage")
    manpage.add_argument(
        "-s", "--section", type=_byte, default=5, help="Section number for the manpage"
    )

    return parser


def parse_args(argv: Sequence[str] | None = None) -> Cli:
    """Parse ``argv`` (or ``sys.argv``) into a :class:`Cli`; exits on bad usage."""
    namespace = build_parser().parse_args(argv)
    factory = getattr(namespace, "_command", None)
    command = None
    if factory is not None:
        values = {f.name: getattr(namespace, f.name) for f in dataclasses.fields(factory)}
        command = factory(**values)
    return Cli(command=command, verbose=namespace.verbose, config_file=namespace.config_file)