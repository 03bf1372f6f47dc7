import json

import pytest

from ndg.config import Config
from ndg.markdown import (
    Header,
    collect_markdown_files,
    convert_to_html,
    extract_headers,
    humanize_anchor_id,
    load_manpage_urls,
    post_process_html,
    process_autolinks,
    process_manpage_roles,
    process_markdown,
    process_markdown_string,
)


def test_extract_headers_uses_explicit_anchors():
    headers, title = extract_headers("# Title {#intro}\n\n## Sub {#sub}\n")
    assert title == "Title"
    assert headers[0] == Header(text="Title", level=1, id="intro")
    assert [h.level for h in headers] == [1, 2]
    assert headers[1].id == "sub"


def test_extract_headers_skips_code_blocks():
    content = "```\n# not a header\n```\n## Real {#real}\n"
    headers, title = extract_headers(content)
    assert [h.text for h in headers] == ["Real"]
    assert title is None


def test_extract_headers_falls_back_to_parser_for_setext():
    headers, title = extract_headers("Hello\n=====\n\nWorld\n-----\n")
    assert title == "Hello"
    assert [(h.text, h.level) for h in headers] == [("Hello", 1), ("World", 2)]


def test_extract_headers_first_h1_is_title():
    headers, title = extract_headers("# One\n# Two\n")
    assert title == "One"
    assert len(headers) == 2


def test_convert_to_html_code_block_is_escaped_with_language_class():
    html = convert_to_html("```nix\n<a>\n```\n", Config(highlight_code=False))
    assert '<pre><code class="language-nix">&lt;a&gt;\n</code></pre>' in html


def test_convert_to_html_plain_code_block_has_no_class():
    html = convert_to_html("```\nx & y\n```\n", Config())
    assert "<pre><code>x &amp; y\n</code></pre>" in html


def test_convert_to_html_empty_input():
    assert convert_to_html("", Config()) == ""


def test_post_process_html_option_reference():
    html = post_process_html("<p><code>services.nginx.enable</code></p>", None)
    assert 'href="options.html#option-services-nginx-enable"' in html
    assert "<code>services.nginx.enable</code></a>" in html


def test_post_process_html_header_inline_anchor():
    assert post_process_html("<h2>Intro {#intro}</h2>", None) == '<h2 id="intro">Intro</h2>'


def test_post_process_html_paragraph_anchor():
    html = post_process_html("<p>[]{#here}text</p>", None)
    assert html == '<p><span id="here" class="nixos-anchor"></span>text</p>'


def test_post_process_html_empty_link_gets_humanized_text():
    html = post_process_html('<a href="#sec-foo-bar"></a>', None)
    assert html == '<a href="#sec-foo-bar">Foo Bar</a>'


def test_humanize_anchor_id_strips_prefix_and_separators():
    result = humanize_anchor_id("#opt-some_option-name")
    assert "-" not in result and "_" not in result
    assert all(word[0].isupper() for word in result.split())
    assert not result.lower().startswith("opt")


def test_process_autolinks_links_bare_urls():
    html = process_autolinks("<p>see https://example.com/x</p>")
    assert html == '<p>see <a href="https://example.com/x">https://example.com/x</a></p>'


def test_process_autolinks_leaves_attributes_alone():
    source = '<img src="https://example.com/a.png">'
    assert process_autolinks(source) == source


def test_process_manpage_roles_links_known_pages():
    urls = {"nix.conf(5)": "https://example.com/nix.conf"}
    html = process_manpage_roles(
        '<span class="manpage-reference">nix.conf(5)</span>', urls
    )
    assert html == (
        '<a href="https://example.com/nix.conf" class="manpage-reference">nix.conf(5)</a>'
    )


def test_load_manpage_urls_round_trip(tmp_path):
    mapping = {"ls(1)": "https://example.com/ls"}
    path = tmp_path / "urls.json"
    path.write_text(json.dumps(mapping))
    assert load_manpage_urls(path) == mapping


def test_load_manpage_urls_rejects_bad_json(tmp_path):
    path = tmp_path / "urls.json"
    path.write_text("{not json")
    with pytest.raises(ValueError):
        load_manpage_urls(path)


def test_load_manpage_urls_missing_file(tmp_path):
    with pytest.raises(OSError):
        load_manpage_urls(tmp_path / "missing.json")


def test_collect_markdown_files(tmp_path):
    (tmp_path / "a.md").write_text("# A")
    sub = tmp_path / "sub"
    sub.mkdir()
    (sub / "b.md").write_text("# B")
    (sub / "c.txt").write_text("no")
    found = collect_markdown_files(tmp_path)
    assert sorted(p.name for p in found) == ["a.md", "b.md"]


def test_process_markdown_renders_roles_and_title():
    html, headers, title = process_markdown("# Doc\n\nText {command}`ls`\n", None, Config())
    assert title == "Doc"
    assert [h.text for h in headers] == ["Doc"]
    assert '<code class="command">ls</code>' in html


def test_process_markdown_string_uses_manpage_urls(tmp_path):
    path = tmp_path / "urls.json"
    path.write_text(json.dumps({"ls(1)": "https://example.com/ls"}))
    config = Config(manpage_urls_path=path)
    html = process_markdown_string("See {manpage}`ls(1)`.", config)
    assert '<a href="https://example.com/ls" class="manpage-reference">ls(1)</a>' in html


def test_process_markdown_string_without_mappings():
    html = process_markdown_string("See {manpage}`ls(1)`.", Config())
    assert '<span class="manpage-reference">ls(1)</span>' in html