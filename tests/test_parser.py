"""Tests for HTML and RST page parsers."""

from pathlib import Path

import pytest

from docsite_search_local.config import ProcessedConfig
from docsite_search_local.errors import PageParseError
from docsite_search_local.models import PageType, Section
from docsite_search_local.parser import HtmlPageParser, RstPageParser, parser_for_path

DOC_PAGE = """<!doctype html>
<html>
<head>
  <title>Getting Started | My Site</title>
  <meta name="description" content="How to install and configure the tool.">
  <meta name="keywords" content="install, setup">
</head>
<body>
<nav class="navbar"><a class="navbar__link navbar__link--active" href="/docs/intro">Docs</a></nav>
<div class="main-wrapper">
<nav aria-label="Breadcrumbs">
  <ul class="breadcrumbs">
    <li class="breadcrumbs__item">
      <a aria-label="Home page" class="breadcrumbs__link" href="/"><svg></svg></a>
    </li>
    <li class="breadcrumbs__item"><span class="breadcrumbs__link">Guides</span></li>
    <li class="breadcrumbs__item breadcrumbs__item--active">
      <span class="breadcrumbs__link">Getting Started</span>
    </li>
  </ul>
</nav>
<span class="badge">Version: 2.0</span>
<article>
<div class="theme-doc-markdown markdown">
<header><h1>Getting Started</h1></header>
<p>Welcome to the <strong>tool</strong>.</p><p>Read on.</p>
<h2 class="anchor" id="install">Install<a href="#install" class="hash-link" aria-label="Direct link to Install">​</a></h2>
<p>Run the installer.</p>
<pre><code>pip install tool</code><button class="copyButton_abc">Copy</button></pre>
<h3 class="anchor" id="from-source">From source<a href="/docs/getting-started#from-source" class="hash-link">​</a></h3>
<p>Clone the repository.</p>
<h2 id="no-link">Plain heading</h2>
<div class="admonition"><p>Nested note.</p></div>
</div>
</article>
</div>
</body>
</html>
"""


@pytest.fixture
def html_parser() -> HtmlPageParser:
    """Create an HtmlPageParser instance.

    Returns:
        HtmlPageParser instance.
    """
    return HtmlPageParser()


@pytest.fixture
def rst_parser() -> RstPageParser:
    """Create an RstPageParser instance.

    Returns:
        RstPageParser instance.
    """
    return RstPageParser()


@pytest.fixture
def config() -> ProcessedConfig:
    """Create a default processed configuration.

    Returns:
        ProcessedConfig with default values.
    """
    return ProcessedConfig()


def test_parse_doc_page(html_parser: HtmlPageParser, config: ProcessedConfig) -> None:
    """Test parsing a rendered docs page."""
    page = html_parser.parse(DOC_PAGE, PageType.DOCS, "/docs/getting-started", config)

    assert page is not None
    assert page.page_title == "Getting Started"
    assert page.description == "How to install and configure the tool."
    assert page.keywords == "install, setup"
    assert page.breadcrumb == ["Guides"]
    assert [s.title for s in page.sections] == ["Getting Started", "Install", "From source", "Plain heading"]


def test_doc_page_sections(html_parser: HtmlPageParser, config: ProcessedConfig) -> None:
    """Test section hashes and content boundaries."""
    page = html_parser.parse(DOC_PAGE, PageType.DOCS, "/docs/getting-started", config)

    assert page is not None
    intro, install, source, plain = page.sections
    assert intro == Section(title="Getting Started", hash="", content="Welcome to the tool. Read on.")
    assert install.hash == "#install"
    assert install.content == "Run the installer. pip install tool"
    assert source.hash == "/docs/getting-started#from-source"
    assert source.content == "Clone the repository."
    assert plain.hash == "#no-link"
    assert plain.content == "Nested note."


def test_copy_buttons_and_version_badge_removed(html_parser: HtmlPageParser, config: ProcessedConfig) -> None:
    """Test that copy buttons and version badges are not indexed."""
    page = html_parser.parse(DOC_PAGE, PageType.DOCS, "/docs/getting-started", config)

    assert page is not None
    text = " ".join(s.content for s in page.sections)
    assert "Copy" not in text
    assert "Version:" not in text


def test_ignore_css_selectors(html_parser: HtmlPageParser) -> None:
    """Test that configured selectors are stripped before parsing."""
    config = ProcessedConfig(ignore_css_selectors=[".admonition"])

    page = html_parser.parse(DOC_PAGE, PageType.DOCS, "/docs/getting-started", config)

    assert page is not None
    assert page.sections[-1].content == ""


def test_noindex_page_is_unlisted(html_parser: HtmlPageParser, config: ProcessedConfig) -> None:
    """Test that robots noindex pages are excluded."""
    html = DOC_PAGE.replace("<head>", '<head><meta name="robots" content="noindex, nofollow">')

    assert html_parser.parse(html, PageType.DOCS, "/docs/getting-started", config) is None


def test_force_ignore_noindex(html_parser: HtmlPageParser) -> None:
    """Test that noindex can be overridden."""
    html = DOC_PAGE.replace("<head>", '<head><meta name="robots" content="noindex, nofollow">')
    config = ProcessedConfig(force_ignore_noindex=True)

    page = html_parser.parse(html, PageType.DOCS, "/docs/getting-started", config)

    assert page is not None
    assert page.page_title == "Getting Started"


def test_doc_page_without_article_fails(html_parser: HtmlPageParser, config: ProcessedConfig) -> None:
    """Test that a docs page without an article raises PageParseError."""
    with pytest.raises(PageParseError, match="No <article>") as excinfo:
        html_parser.parse("<html><body><p>Nothing</p></body></html>", PageType.DOCS, "/docs/empty", config)

    assert excinfo.value.url == "/docs/empty"


def test_doc_page_title_falls_back_to_title_tag(html_parser: HtmlPageParser, config: ProcessedConfig) -> None:
    """Test that a docs page without h1 uses the document title."""
    html = "<html><head><title>Fallback</title></head><body><article><p>Text</p></article></body></html>"

    page = html_parser.parse(html, PageType.DOCS, "/docs/fallback", config)

    assert page is not None
    assert page.page_title == "Fallback"
    assert page.sections == []


def test_parse_blog_post(html_parser: HtmlPageParser, config: ProcessedConfig) -> None:
    """Test parsing a blog post with its post container."""
    html = """<html><body><article>
<header><h1>Release 2.0</h1><time>2024-01-01</time></header>
<div id="__blog-post-container" class="markdown">
<p>We are happy to announce a release.</p>
<h2 id="changes">Changes<a class="hash-link" href="#changes">#</a></h2>
<p>Many changes.</p>
</div>
</article></body></html>"""

    page = html_parser.parse(html, PageType.BLOG, "/blog/release-2", config)

    assert page is not None
    assert page.page_title == "Release 2.0"
    assert page.breadcrumb == []
    assert page.sections == [
        Section(title="Release 2.0", hash="", content="We are happy to announce a release."),
        Section(title="Changes", hash="#changes", content="Many changes."),
    ]


def test_parse_other_page(html_parser: HtmlPageParser, config: ProcessedConfig) -> None:
    """Test parsing a standalone page."""
    html = """<html><head><title>About | Site</title><meta name="description" content="About us"></head>
<body><nav>Menu</nav><main><h1>About<a aria-hidden="true" href="#about">#</a></h1>
<p>We write docs.</p><script>var x = 1;</script></main></body></html>"""

    page = html_parser.parse(html, PageType.PAGE, "/about", config)

    assert page is not None
    assert page.page_title == "About"
    assert page.description == "About us"
    assert page.sections == [Section(title="About", hash="", content="About We write docs.")]


def test_parse_other_page_without_main(html_parser: HtmlPageParser, config: ProcessedConfig) -> None:
    """Test that a page without main is indexed by title only."""
    html = "<html><head><title>Landing</title></head><body><p>Hello</p></body></html>"

    page = html_parser.parse(html, PageType.PAGE, "/", config)

    assert page is not None
    assert page.page_title == "Landing"
    assert page.sections == [Section(title="Landing", hash="", content="")]


def test_parse_rst_page(rst_parser: RstPageParser, config: ProcessedConfig) -> None:
    """Test parsing an RST source page."""
    rst_content = """
Getting Started
===============

The indexer turns built pages into search documents.

Install
-------

Run the installer.

.. code-block:: bash

    pip install docsite-search-local

Configure
---------

Write a policy.
"""
    page = rst_parser.parse(rst_content, PageType.DOCS, "/docs/getting-started", config)

    assert page is not None
    assert page.page_title == "Getting Started"
    assert page.description == "The indexer turns built pages into search documents."
    assert page.sections == [
        Section(
            title="Getting Started",
            hash="#getting-started",
            content="The indexer turns built pages into search documents.",
        ),
        Section(title="Install", hash="#install", content="Run the installer."),
        Section(title="Configure", hash="#configure", content="Write a policy."),
    ]


def test_rst_keywords_and_nosearch(rst_parser: RstPageParser, config: ProcessedConfig) -> None:
    """Test the leading field list of an RST page."""
    listed = """:keywords: policies, filters

Policies
========

Policy text.
"""
    unlisted = """:nosearch:

Hidden
======

Secret text.
"""
    page = rst_parser.parse(listed, PageType.DOCS, "/docs/policies", config)

    assert page is not None
    assert page.keywords == "policies, filters"
    assert page.description == "Policy text."
    assert rst_parser.parse(unlisted, PageType.DOCS, "/docs/hidden", config) is None
    assert rst_parser.parse(unlisted, PageType.DOCS, "/docs/hidden", ProcessedConfig(force_ignore_noindex=True))


def test_rst_fallback_title_from_url(rst_parser: RstPageParser, config: ProcessedConfig) -> None:
    """Test fallback to the URL when no title is found."""
    page = rst_parser.parse("Just some content without a title.\n", PageType.DOCS, "/docs/my-test_file", config)

    assert page is not None
    assert page.page_title == "My Test File"
    assert page.sections == [Section(title="My Test File", hash="", content="Just some content without a title.")]


def test_rst_empty_page(rst_parser: RstPageParser, config: ProcessedConfig) -> None:
    """Test parsing an empty RST page."""
    page = rst_parser.parse("", PageType.DOCS, "/docs/empty", config)

    assert page is not None
    assert page.page_title == "Empty"
    assert page.sections == []


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("index.html", HtmlPageParser),
        ("guide.rst", RstPageParser),
        ("guide.REST", RstPageParser),
        ("notes.htm", HtmlPageParser),
    ],
)
def test_parser_for_path(name: str, expected: type) -> None:
    """Test parser selection by file suffix."""
    assert isinstance(parser_for_path(Path(name)), expected)


def test_rst_body_field_list_is_not_page_metadata(rst_parser: RstPageParser, config: ProcessedConfig) -> None:
    """Test that only a field list opening the page sets keywords or unlists it."""
    content = """Reference
=========

The fields below document an option.

:nosearch: yes
:keywords: hidden, secret
"""
    page = rst_parser.parse(content, PageType.DOCS, "/docs/reference", config)

    assert page is not None
    assert page.keywords is None
    assert page.description == "The fields below document an option."


def test_rst_field_list_after_comment_is_page_metadata(rst_parser: RstPageParser, config: ProcessedConfig) -> None:
    """Test that a leading comment does not hide the page field list."""
    content = """.. generated file

:keywords: policies

Policies
========

Policy text.
"""
    page = rst_parser.parse(content, PageType.DOCS, "/docs/policies", config)

    assert page is not None
    assert page.keywords == "policies"
