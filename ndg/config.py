"""Configuration loading, merging and validation."""

from __future__ import annotations

import json
import logging
import os
import tomllib
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

from ndg.cli import Cli, HtmlCommand
from ndg.templates import TemplateError, get_template

__all__ = ["Config", "ConfigError"]

log = logging.getLogger(__name__)

_CWD_CONFIG_NAMES = (
    "ndg.toml",
    "ndg.json",
    ".ndg.toml",
    ".ndg.json",
    ".config/ndg.toml",
    ".config/ndg.json",
)
_XDG_CONFIG_NAMES = ("ndg.toml", "ndg.json")
_HOME_CONFIG_NAMES = ("config.toml", "config.json")


class ConfigError(Exception):
    """Raised when configuration cannot be read, parsed or validated."""


def _as_path(name: str, value: Any) -> Path:
    if not isinstance(value, str):
        raise ValueError(f"field '{name}': expected a path string, got {value!r}")
    return Path(value)


def _as_optional_path(name: str, value: Any) -> Path | None:
    return None if value is None else _as_path(name, value)


def _as_path_list(name: str, value: Any) -> list[Path]:
    if not isinstance(value, list):
        raise ValueError(f"field '{name}': expected a list of paths, got {value!r}")
    return [_as_path(name, item) for item in value]


def _as_str(name: str, value: Any) -> str:
    if not isinstance(value, str):
        raise ValueError(f"field '{name}': expected a string, got {value!r}")
    return value


def _as_bool(name: str, value: Any) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"field '{name}': expected a boolean, got {value!r}")
    return value


def _as_unsigned(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f"field '{name}': expected a non-negative integer, got {value!r}")
    return value


def _as_optional_unsigned(name: str, value: Any) -> int | None:
    return None if value is None else _as_unsigned(name, value)


_CONVERTERS: dict[str, Callable[[str, Any], Any]] = {
    "input_dir": _as_optional_path,
    "output_dir": _as_path,
    "module_options": _as_optional_path,
    "template_path": _as_optional_path,
    "template_dir": _as_optional_path,
    "stylesheet_paths": _as_path_list,
    "script_paths": _as_path_list,
    "assets_dir": _as_optional_path,
    "manpage_urls_path": _as_optional_path,
    "title": _as_str,
    "jobs": _as_optional_unsigned,
    "generate_anchors": _as_bool,
    "generate_search": _as_bool,
    "footer_text": _as_str,
    "options_toc_depth": _as_unsigned,
    "highlight_code": _as_bool,
    "revision": _as_str,
}


def _check_file(path: Path, missing: str, wrong_kind: str, errors: list[str]) -> None:
    if not path.exists():
        errors.append(f"{missing}: {path}")
    elif not path.is_file():
        errors.append(f"{wrong_kind}: {path}")


def _check_dir(path: Path, missing: str, wrong_kind: str, errors: list[str]) -> None:
    if not path.exists():
        errors.append(f"{missing}: {path}")
    elif not path.is_dir():
        errors.append(f"{wrong_kind}: {path}")


@dataclass
class Config:
    """Options controlling documentation generation."""

    input_dir: Path | None = None
    output_dir: Path = Path("build")
    module_options: Path | None = None
    template_path: Path | None = None
    template_dir: Path | None = None
    stylesheet_paths: list[Path] = field(default_factory=list)
    script_paths: list[Path] = field(default_factory=list)
    assets_dir: Path | None = None
    manpage_urls_path: Path | None = None
    title: str = "ndg documentation"
    jobs: int | None = None
    generate_anchors: bool = True
    generate_search: bool = True
    footer_text: str = "Generated with ndg"
    options_toc_depth: int = 2
    highlight_code: bool = True
    revision: str = "local"

    @classmethod
    def _from_mapping(cls, data: Any) -> Config:
        if not isinstance(data, Mapping):
            raise ValueError("expected a table of configuration keys")
        known = {f.name for f in fields(cls)}
        values = {
            key: _CONVERTERS[key](key, value) for key, value in data.items() if key in known
        }
        return cls(**values)

    @classmethod
    def from_file(cls, path: str | os.PathLike[str]) -> Config:
        """Read a configuration from a TOML or JSON file."""
        path = Path(path)
        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise ConfigError(f"Failed to read config file: {path}") from exc

        if not path.suffix:
            raise ConfigError(f"Config file has no extension: {path}")
        ext = path.suffix[1:].lower()
        if ext == "json":
            try:
                return cls._from_mapping(json.loads(content))
            except ValueError as exc:
                raise ConfigError(f"Failed to parse JSON config from {path}") from exc
        if ext == "toml":
            try:
                return cls._from_mapping(tomllib.loads(content))
            except ValueError as exc:
                raise ConfigError(f"Failed to parse TOML config from {path}") from exc
        raise ConfigError(f"Unsupported config file format: {path}")

    @classmethod
    def load(cls, cli: Cli) -> Config:
        """Build the configuration from a config file and the parsed command line."""
        if cli.config_file is not None:
            try:
                config = cls.from_file(cli.config_file)
            except ConfigError as exc:
                raise ConfigError(f"Failed to load config from {cli.config_file}") from exc
        else:
            discovered = cls.find_config_file()
            if discovered is not None:
                log.info("Using discovered config file: %s", discovered)
                try:
                    config = cls.from_file(discovered)
                except ConfigError as exc:
                    raise ConfigError(
                        f"Failed to load discovered config from {discovered}"
                    ) from exc
            else:
                config = cls()

        config.merge_with_cli(cli)

        if not isinstance(cli.command, HtmlCommand):
            if cli.config_file is None and cls.find_config_file() is None:
                raise ConfigError(
                    "Neither config file nor 'html' subcommand provided. Use 'ndg html' or "
                    "provide a config file with --config."
                )

        if config.input_dir is None and config.module_options is None:
            raise ConfigError(
                "At least one of input directory or module options must be provided."
            )

        if config.input_dir is not None and not config.input_dir.exists():
            raise ConfigError(f"Input directory does not exist: {config.input_dir}")

        config.validate_paths()
        return config

    def merge_with_cli(self, cli: Cli) -> None:
        """Apply values given to the html subcommand, which take precedence."""
        command = cli.command
        if not isinstance(command, HtmlCommand):
            return

        if command.input_dir is not None:
            self.input_dir = command.input_dir
        if command.output_dir is not None:
            self.output_dir = command.output_dir
        if command.jobs is not None:
            self.jobs = command.jobs
        if command.template is not None:
            self.template_path = command.template
        if command.template_dir is not None:
            self.template_dir = command.template_dir
        self.stylesheet_paths.extend(command.stylesheet)
        self.script_paths.extend(command.script)
        if command.title is not None:
            self.title = command.title
        if command.footer is not None:
            self.footer_text = command.footer
        if command.module_options is not None:
            self.module_options = command.module_options
        if command.options_toc_depth is not None:
            self.options_toc_depth = command.options_toc_depth
        if command.manpage_urls is not None:
            self.manpage_urls_path = command.manpage_urls
        if command.generate_search is not None:
            self.generate_search = command.generate_search
        if command.highlight_code is not None:
            self.highlight_code = command.highlight_code
        if command.revision is not None:
            self.revision = command.revision

    def get_template_path(self) -> Path | None:
        """Return the template directory, or the directory holding the template file."""
        if self.template_dir is not None:
            return self.template_dir
        path = self.template_path
        if path is None:
            return None
        if path.is_dir():
            return path
        parent = path.parent
        return None if parent == path else parent

    def get_template_file(self, name: str) -> Path | None:
        """Return the path of the template file called ``name``, if one can be located."""
        path = self.template_path
        if path is not None and path.is_file() and path.name == name:
            return path
        directory = self.get_template_path()
        return None if directory is None else directory / name

    @staticmethod
    def find_config_file() -> Path | None:
        """Look for a configuration file in the usual places."""
        try:
            current_dir = Path.cwd()
        except OSError:
            return None

        for name in _CWD_CONFIG_NAMES:
            candidate = current_dir / name
            if candidate.exists():
                return candidate

        xdg_config_home = os.environ.get("XDG_CONFIG_HOME")
        if xdg_config_home is not None:
            for name in _XDG_CONFIG_NAMES:
                candidate = Path(xdg_config_home) / name
                if candidate.exists():
                    return candidate

        home = os.environ.get("HOME")
        if home is not None:
            home_config_dir = Path(home) / ".config" / "ndg"
            for name in _HOME_CONFIG_NAMES:
                candidate = home_config_dir / name
                if candidate.exists():
                    return candidate

        return None

    def validate_paths(self) -> None:
        """Check that every configured path exists and is of the right kind."""
        errors: list[str] = []

        if self.module_options is not None:
            _check_file(
                self.module_options,
                "Module options file does not exist",
                "Module options path is not a file",
                errors,
            )

        if self.template_path is not None and not self.template_path.exists():
            errors.append(f"Template file does not exist: {self.template_path}")

        if self.template_dir is not None:
            _check_dir(
                self.template_dir,
                "Template directory does not exist",
                "Template directory path is not a directory",
                errors,
            )

        for number, stylesheet in enumerate(self.stylesheet_paths, start=1):
            _check_file(
                stylesheet,
                f"Stylesheet file {number} does not exist",
                f"Stylesheet path {number} is not a file",
                errors,
            )

        if self.assets_dir is not None:
            _check_dir(
                self.assets_dir,
                "Assets directory does not exist",
                "Assets directory path is not a directory",
                errors,
            )

        if self.manpage_urls_path is not None:
            _check_file(
                self.manpage_urls_path,
                "Manpage URLs file does not exist",
                "Manpage URLs path is not a file",
                errors,
            )

        for number, script in enumerate(self.script_paths, start=1):
            _check_file(
                script,
                f"Script file {number} does not exist",
                f"Script path {number} is not a file",
                errors,
            )

        if self.template_path is not None and self.template_dir is not None:
            log.warning(
                "Both template file and template directory are specified. Template file "
                "will only be used if it matches the requested template name."
            )

        if errors:
            raise ConfigError(
                "Configuration path validation errors:\n" + "\n".join(errors)
            )

    @staticmethod
    def generate_default_config(format: str, path: str | os.PathLike[str]) -> None:  # noqa: A002
        """Write a commented default configuration in ``format`` to ``path``."""
        path = Path(path)
        try:
            content = get_template(format)
        except TemplateError as exc:
            raise ConfigError(str(exc)) from exc
        try:
            path.write_text(content, encoding="utf-8")
        except OSError as exc:
            raise ConfigError(f"Failed to write default config to {path}") from exc
        log.info("Created default configuration file: %s", path)