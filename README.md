# ndg

ndg ("not a docs generator") is a library that turns Markdown written with the
extensions used across the Nix ecosystem, and `options.json` files of NixOS
module options, into HTML fragments and option records. It depends on
`markdown-it-py` and needs Python 3.11 or newer.

It understands:

- roles such as ``{command}`ls -l` ``, ``{env}`HOME` ``, ``{file}`/etc/nixos` ``,
  ``{option}`services.nginx.enable` ``, ``{var}`name` `` and ``{manpage}`nix.conf(5)` ``
- explicit heading anchors (`## Title {#my-anchor}`) and inline anchors (`[]{#id}`);
  a line ending in `{#id}` with no `#` marker becomes a level-two heading
- admonitions (`::: {.note} ... :::`) and GitHub-style callouts (`> [!NOTE]`)
- single-line figures, definition lists (`term` followed by `:   definition`)
  and include blocks (```` ```{=include=} ````, paths relative to the input directory)
- terminal (`` `$ command` ``) and REPL (`` `nix-repl> expr` ``) prompts
- `<code>a.b.c</code>` option references, which become links into `options.html`
- manual page references, linked through a JSON file mapping references to URLs
- bare `http://` and `https://` URLs, which become links

## Configuration

`ndg.config.Config` is a dataclass of settings with defaults (output directory
`build`, title `ndg documentation`, revision `local`, and so on).
`Config.from_file` reads a `.toml` or `.json` file; unknown keys are ignored and
values of the wrong type raise `ConfigError`. A commented starting point comes
from `ndg.templates.get_template`, which raises `TemplateError` for formats other
than `toml` and `json`:

```python
from pathlib import Path

from ndg.config import Config
from ndg.templates import get_template

print(get_template("toml"))
Config.generate_default_config("toml", Path("ndg.toml"))
```

`ndg.cli.parse_args` parses an argument list (subcommands `init`,
`export-templates`, `generate`, `html` and `manpage`) into a `Cli` object.
`Config.load` combines a given or discovered configuration file with the values
of the `html` subcommand, which take precedence, and checks every path it refers
to, raising `ConfigError` with all the problems listed:

```python
from ndg.cli import parse_args
from ndg.config import Config

cli = parse_args(["html", "--input-dir", "docs", "--output-dir", "build"])
config = Config.load(cli)
```

When no file is given, `Config.find_config_file` looks for `ndg.toml`,
`ndg.json`, `.ndg.toml`, `.ndg.json` and `.config/ndg.{toml,json}` in the
current directory, then `ndg.{toml,json}` in `$XDG_CONFIG_HOME`, then
`config.{toml,json}` in `~/.config/ndg/`.

## Rendering Markdown

```python
from ndg.markdown import process_markdown

html, headers, title = process_markdown(
    "# Guide {#guide}\n\nRun `$ nix build` first.\n",
    None,
    config,
)
for header in headers:
    print(header.level, header.id, header.text)
```

The second argument is an optional mapping of manual page references to URLs;
`load_manpage_urls` reads one from a JSON file. The title is the text of the
first level-one heading, or `None`. `process_markdown_string` renders a short
fragment such as an option description, loading the manual page mapping named
by `config.manpage_urls_path` when the text uses `{manpage}`.
`collect_markdown_files` lists every `.md` file below a directory. Fenced code
blocks are escaped and given a `language-<name>` class.

## Module options

```python
from pathlib import Path

from ndg.options import load_options

options = load_options(config, Path("options.json"))
```

`load_options` returns a dict of `NixOption` records; `parse_options` does the
same for already decoded JSON. Options named `enable…` come first, then
`package…`, then the rest by name. Each record carries its type, rendered
description, default and example values, whether it is internal or read-only,
and where it is declared: relative paths are shown as `<nixpkgs/…>` and linked
to nixpkgs at the configured `revision` (`master` when it is `local`).

## Markup helpers

`ndg.markup` holds the role, prompt, inline code and manual page formatting for
both HTML and troff output, for example `process_roles(text, manpage_urls, is_html)`
and `process_command_prompts(text, is_html)`.

## What it does not do

ndg is a library only; it installs no command. It does not write documentation
sites: there are no page templates, no options page, search index or table of
contents, no exported stylesheets or scripts, no syntax highlighting (the
`highlight_code` setting has no effect on rendering), and no manpage or shell
completion output. The `init`, `export-templates`, `generate` and `manpage`
subcommands are parsed by `ndg.cli` but nothing in the package carries them out.