import random

from bloger.core import codec
from bloger.core.article import Category, SharePayload
from bloger.formatters.html import HtmlConverter, export_filename
from bloger.formatters.markdown import CATEGORY_TAGS, MarkdownFormatter, pick_tags
from tests.fakes import make_article, rich_article


def test_pick_tags_draws_from_category_pool():
    rng = random.Random(7)
    for _ in range(20):
        tags = pick_tags(Category.FINANCE.value, rng)
        assert 3 <= len(tags) <= 5
        assert set(tags) <= set(CATEGORY_TAGS[Category.FINANCE.value])
        assert len(set(tags)) == len(tags)


def test_pick_tags_default_pool():
    tags = pick_tags("Gardening", random.Random(1))
    assert set(tags) <= set(CATEGORY_TAGS["default"])


def test_markdown_contains_all_sections():
    article = rich_article()
    article.generated_image_url = "data:image/png;base64,QUJD"

    md = MarkdownFormatter(rng=random.Random(3)).format_article(article, "Health", "data:image/png;base64,LOGO")

    assert md.startswith("![logo](data:image/png;base64,LOGO)")
    assert f"# {article.title}" in md
    assert "![" + article.title + "](data:image/png;base64,QUJD)" in md
    assert article.body in md
    assert "| Tue | 6.5 |" in md
    assert f"> {article.conclusion}" in md
    assert "**[Sleep better](https://example.com/sleep)** - Our partner" in md


def test_markdown_without_optional_parts():
    md = MarkdownFormatter().format_article(make_article(), "Health")
    assert "![" not in md
    assert "Chart" not in md


def test_html_document():
    converter = HtmlConverter()
    html = converter.convert_markdown("# Hello <World>\n\nText", "Hello <World>")
    assert html.startswith("<!DOCTYPE html>")
    assert "<title>Hello &lt;World&gt;</title>" in html
    assert "<h1>" in html


def test_word_document_uses_office_namespaces():
    html = HtmlConverter().convert_markdown("Text", "Title", word=True)
    assert "urn:schemas-microsoft-com:office:word" in html
    assert "<!DOCTYPE" not in html


def test_export_filename():
    assert export_filename("  Ten   Tips for  Better Sleep Tonight and Always ", "doc") == "Ten_Tips_for_Better_Sleep_Toni.doc"
    assert export_filename("What/Why?", "md") == "WhatWhy.md"
    assert export_filename("???", "pdf") == "article.pdf"


def test_export_article_writes_three_files(tmp_path):
    paths = HtmlConverter().export_article(rich_article(), "Health", None, str(tmp_path))

    assert set(paths) == {"markdown", "html", "word"}
    for path in paths.values():
        content = open(path, encoding="utf-8").read()
        assert "Zażółć" in content


def test_raw_html_in_shared_article_is_escaped(tmp_path):
    token = codec.encode(SharePayload(
        article=make_article(body="<script>alert(1)</script>\n\nText <img src=x onerror=alert(2)>"),
        category="Health",
    ))
    article = codec.decode(token).article

    paths = HtmlConverter().export_article(article, "Health", None, str(tmp_path))

    for name in ("html", "word"):
        content = open(paths[name], encoding="utf-8").read()
        assert "<script>" not in content
        assert "<img src=x" not in content
        assert "&lt;script&gt;" in content
