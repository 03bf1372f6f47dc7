from pathlib import Path

import pytest

from ndg.cli import Cli, HtmlCommand, InitCommand
from ndg.config import Config, ConfigError
from ndg.templates import DEFAULT_JSON_TEMPLATE, DEFAULT_TOML_TEMPLATE


@pytest.fixture
def isolated(tmp_path, monkeypatch):
    """Working directory and home with no configuration files in them."""
    cwd = tmp_path / "work"
    home = tmp_path / "home"
    cwd.mkdir()
    home.mkdir()
    monkeypatch.chdir(cwd)
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
    return cwd


def test_defaults_match_source():
    config = Config()
    assert config.output_dir == Path("build")
    assert config.title == "ndg documentation"
    assert config.footer_text == "Generated with ndg"
    assert config.revision == "local"
    assert config.options_toc_depth == 2
    assert config.generate_anchors and config.generate_search and config.highlight_code
    assert config.input_dir is None
    assert config.stylesheet_paths == []


def test_from_file_toml_template_round_trip(tmp_path):
    path = tmp_path / "ndg.toml"
    path.write_text(DEFAULT_TOML_TEMPLATE)
    config = Config.from_file(path)
    assert config.input_dir == Path("docs")
    assert config.output_dir == Path("build")
    assert config.title == "My Project Documentation"
    assert config.revision == "main"
    assert config.module_options is None


def test_from_file_json_template_round_trip(tmp_path):
    path = tmp_path / "ndg.json"
    path.write_text(DEFAULT_JSON_TEMPLATE)
    config = Config.from_file(path)
    assert config.input_dir == Path("docs")
    assert config.revision == "main"
    assert config.options_toc_depth == 2


def test_from_file_extension_is_case_insensitive(tmp_path):
    path = tmp_path / "ndg.TOML"
    path.write_text('title = "Upper"\njobs = 3\nstylesheet_paths = ["a.css", "b.css"]\n')
    config = Config.from_file(path)
    assert config.title == "Upper"
    assert config.jobs == 3
    assert config.stylesheet_paths == [Path("a.css"), Path("b.css")]


def test_from_file_ignores_unknown_keys(tmp_path):
    path = tmp_path / "c.json"
    path.write_text('{"unknown": 1, "footer_text": "bye"}')
    config = Config.from_file(path)
    assert config.footer_text == "bye"


def test_from_file_missing_file(tmp_path):
    with pytest.raises(ConfigError, match="Failed to read config file"):
        Config.from_file(tmp_path / "absent.toml")


def test_from_file_no_extension(tmp_path):
    path = tmp_path / "config"
    path.write_text("")
    with pytest.raises(ConfigError, match="Config file has no extension"):
        Config.from_file(path)


def test_from_file_unsupported_extension(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("title: x\n")
    with pytest.raises(ConfigError, match="Unsupported config file format"):
        Config.from_file(path)


def test_from_file_invalid_toml(tmp_path):
    path = tmp_path / "bad.toml"
    path.write_text("title = \n")
    with pytest.raises(ConfigError, match="Failed to parse TOML config"):
        Config.from_file(path)


def test_from_file_wrong_type_is_rejected(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text('{"generate_search": "yes"}')
    with pytest.raises(ConfigError, match="Failed to parse JSON config"):
        Config.from_file(path)


def test_merge_with_cli_overrides_and_appends():
    config = Config(stylesheet_paths=[Path("base.css")], script_paths=[Path("a.js")])
    cli = Cli(
        command=HtmlCommand(
            input_dir=Path("in"),
            output_dir=Path("out"),
            jobs=4,
            stylesheet=[Path("extra.css")],
            script=[Path("b.js")],
            title="T",
            footer="F",
            options_toc_depth=5,
            generate_search=False,
            highlight_code=False,
            revision="abc",
        )
    )
    config.merge_with_cli(cli)
    assert config.input_dir == Path("in")
    assert config.output_dir == Path("out")
    assert config.jobs == 4
    assert config.stylesheet_paths == [Path("base.css"), Path("extra.css")]
    assert config.script_paths == [Path("a.js"), Path("b.js")]
    assert config.title == "T"
    assert config.footer_text == "F"
    assert config.options_toc_depth == 5
    assert config.generate_search is False
    assert config.highlight_code is False
    assert config.revision == "abc"


def test_merge_with_cli_keeps_unset_values():
    config = Config(title="Kept", jobs=2)
    config.merge_with_cli(Cli(command=HtmlCommand()))
    assert config == Config(title="Kept", jobs=2)


def test_merge_with_cli_ignores_other_commands():
    config = Config()
    config.merge_with_cli(Cli(command=InitCommand()))
    assert config == Config()


def test_get_template_path_prefers_template_dir(tmp_path):
    template = tmp_path / "custom.html"
    template.write_text("x")
    config = Config(template_dir=tmp_path / "dir", template_path=template)
    assert config.get_template_path() == tmp_path / "dir"


def test_get_template_path_from_file_and_dir(tmp_path):
    template = tmp_path / "custom.html"
    template.write_text("x")
    assert Config(template_path=template).get_template_path() == tmp_path
    assert Config(template_path=tmp_path).get_template_path() == tmp_path
    assert Config().get_template_path() is None


def test_get_template_file(tmp_path):
    template = tmp_path / "default.html"
    template.write_text("x")
    config = Config(template_path=template)
    assert config.get_template_file("default.html") == template
    assert config.get_template_file("options.html") == tmp_path / "options.html"
    assert Config().get_template_file("default.html") is None


def test_find_config_file_none(isolated):
    assert Config.find_config_file() is None


def test_find_config_file_prefers_order(isolated):
    (isolated / "ndg.json").write_text("{}")
    (isolated / ".ndg.toml").write_text("")
    assert Config.find_config_file() == isolated / "ndg.json"
    (isolated / "ndg.toml").write_text("")
    assert Config.find_config_file() == isolated / "ndg.toml"


def test_find_config_file_xdg_and_home(isolated, tmp_path, monkeypatch):
    home_conf = tmp_path / "home" / ".config" / "ndg"
    home_conf.mkdir(parents=True)
    (home_conf / "config.json").write_text("{}")
    assert Config.find_config_file() == home_conf / "config.json"

    xdg = tmp_path / "xdg"
    xdg.mkdir()
    (xdg / "ndg.toml").write_text("")
    monkeypatch.setenv("XDG_CONFIG_HOME", str(xdg))
    assert Config.find_config_file() == xdg / "ndg.toml"


def test_validate_paths_ok(tmp_path):
    options = tmp_path / "options.json"
    options.write_text("{}")
    css = tmp_path / "a.css"
    css.write_text("")
    config = Config(module_options=options, stylesheet_paths=[css], template_dir=tmp_path)
    config.validate_paths()
    assert config.module_options == options


def test_validate_paths_collects_errors(tmp_path):
    css = tmp_path / "ok.css"
    css.write_text("")
    config = Config(
        module_options=tmp_path / "missing.json",
        stylesheet_paths=[css, tmp_path / "gone.css"],
        assets_dir=css,
        script_paths=[tmp_path],
    )
    with pytest.raises(ConfigError) as info:
        config.validate_paths()
    lines = str(info.value).splitlines()
    assert lines[0] == "Configuration path validation errors:"
    assert lines[1] == f"Module options file does not exist: {tmp_path / 'missing.json'}"
    assert lines[2] == f"Stylesheet file 2 does not exist: {tmp_path / 'gone.css'}"
    assert lines[3] == f"Assets directory path is not a directory: {css}"
    assert lines[4] == f"Script path 1 is not a file: {tmp_path}"
    assert len(lines) == 5


def test_load_without_source_fails(isolated):
    with pytest.raises(ConfigError, match="Neither config file nor 'html' subcommand"):
        Config.load(Cli())


def test_load_html_needs_content(isolated):
    with pytest.raises(ConfigError, match="At least one of input directory"):
        Config.load(Cli(command=HtmlCommand()))


def test_load_html_missing_input_dir(isolated):
    with pytest.raises(ConfigError, match="Input directory does not exist"):
        Config.load(Cli(command=HtmlCommand(input_dir=isolated / "nope")))


def test_load_html_with_input_dir(isolated):
    docs = isolated / "docs"
    docs.mkdir()
    config = Config.load(Cli(command=HtmlCommand(input_dir=docs, title="Docs")))
    assert config.input_dir == docs
    assert config.title == "Docs"


def test_load_explicit_config_file(isolated):
    docs = isolated / "docs"
    docs.mkdir()
    path = isolated / "settings.toml"
    path.write_text(f'input_dir = "{docs.as_posix()}"\nrevision = "v1"\n')
    config = Config.load(Cli(config_file=path))
    assert config.input_dir == docs
    assert config.revision == "v1"


def test_load_explicit_config_file_error_is_wrapped(isolated):
    path = isolated / "broken.json"
    path.write_text("{")
    with pytest.raises(ConfigError, match="Failed to load config from") as info:
        Config.load(Cli(config_file=path))
    assert isinstance(info.value.__cause__, ConfigError)


def test_load_discovered_config(isolated):
    (isolated / "docs").mkdir()
    Config.generate_default_config("toml", isolated / "ndg.toml")
    config = Config.load(Cli())
    assert config.input_dir == Path("docs")
    assert config.title == "My Project Documentation"


def test_generate_default_config_writes_template(tmp_path):
    path = tmp_path / "out.json"
    Config.generate_default_config("JSON", path)
    assert path.read_text() == DEFAULT_JSON_TEMPLATE


def test_generate_default_config_unsupported(tmp_path):
    with pytest.raises(ConfigError, match="Unsupported config format: yaml"):
        Config.generate_default_config("yaml", tmp_path / "out.yaml")
    assert not (tmp_path / "out.yaml").exists()