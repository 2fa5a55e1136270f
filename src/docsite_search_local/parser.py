"""Page parsers turning rendered HTML and RST sources into structured pages."""

import logging
import re
from collections.abc import Iterable
from pathlib import Path

import docutils.frontend  # type: ignore[import-untyped]
import docutils.nodes  # type: ignore[import-untyped]
import docutils.parsers.rst  # type: ignore[import-untyped]
import docutils.utils  # type: ignore[import-untyped]
from bs4 import BeautifulSoup, Comment, NavigableString, PageElement, Tag

from docsite_search_local.config import ProcessedConfig
from docsite_search_local.errors import PageParseError
from docsite_search_local.models import PageType, ParsedPage, Section

logger = logging.getLogger(__name__)

HEADING_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6"]

# Elements rendered as their own line; text on either side must not run together.
BLOCK_TAGS = frozenset(
    {
        *HEADING_TAGS,
        "address", "article", "aside", "blockquote", "br", "dd", "details", "div", "dl", "dt",
        "figcaption", "figure", "footer", "header", "hr", "li", "main", "nav", "ol", "p", "pre",
        "section", "summary", "table", "td", "th", "tr", "ul",
    }
)  # fmt: skip

SKIPPED_TAGS = frozenset({"script", "style", "noscript", "template"})

BLOG_POST_CONTAINER_ID = "__blog-post-container"


def _condense(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


def _node_text(node: Tag | NavigableString) -> str:
    if isinstance(node, Comment):
        return ""
    if isinstance(node, NavigableString):
        return str(node)
    if node.name in SKIPPED_TAGS:
        return ""
    text = "".join(_node_text(child) for child in node.children)
    if node.name in BLOCK_TAGS:
        return f" {text} "
    return text


def _condensed_text(nodes: list[Tag | NavigableString]) -> str:
    return _condense("".join(_node_text(node) for node in nodes))


def _meta_content(soup: BeautifulSoup, name: str) -> str | None:
    meta = soup.find("meta", attrs={"name": name})
    if meta is None:
        return None
    content = _condense(str(meta.get("content") or ""))
    return content or None


class HtmlPageParser:
    """Parses rendered documentation site HTML pages."""

    def parse(self, content: str, page_type: PageType, url: str, config: ProcessedConfig) -> ParsedPage | None:
        """Parse a rendered HTML page.

        Args:
            content: Raw HTML of the page.
            page_type: Kind of page being parsed.
            url: Site URL of the page.
            config: Processed search options.

        Returns:
            ParsedPage instance, or None if the page is excluded from search.

        Raises:
            PageParseError: If the page lacks the structure its type requires.
        """
        soup = BeautifulSoup(content, "html.parser")

        if not config.force_ignore_noindex:
            robots = _meta_content(soup, "robots")
            if robots and "noindex" in robots.lower():
                logger.debug("Skipping unlisted page %s", url)
                return None

        for selector in config.ignore_css_selectors:
            for element in soup.select(selector):
                element.decompose()
        for button in soup.select('button[class*="copyButton"]'):
            button.decompose()

        if page_type is PageType.PAGE:
            return self._parse_page(soup, url)

        if page_type is PageType.DOCS:
            for badge in soup.select("span.badge"):
                if badge.get_text().strip().startswith("Version:"):
                    badge.decompose()
        return self._parse_document(soup, page_type, url)

    def _parse_page(self, soup: BeautifulSoup, url: str) -> ParsedPage:
        """Parse a standalone page from its main element."""
        for anchor in soup.select('a[aria-hidden="true"]'):
            anchor.decompose()

        title_node = soup.find("h1") or soup.find("title")
        page_title = _condense(title_node.get_text()) if title_node else ""

        main = soup.find("main")
        if main is None:
            logger.warning("Page %s has no <main> element, no content indexed", url)
            text = ""
        else:
            text = _condensed_text([main])

        return ParsedPage(
            page_title=page_title,
            description=_meta_content(soup, "description"),
            keywords=_meta_content(soup, "keywords"),
            sections=[Section(title=page_title, hash="", content=text)],
        )

    def _parse_document(self, soup: BeautifulSoup, page_type: PageType, url: str) -> ParsedPage:
        """Parse a docs page or blog post from its article element.

        Raises:
            PageParseError: If the page has no article element.
        """
        article = soup.find("article")
        if article is None:
            msg = f"No <article> element found in {page_type.value} page {url}"
            raise PageParseError(msg, url=url)

        title_heading = article.find("h1")
        if title_heading is not None:
            page_title = self._heading_text(title_heading)
        else:
            title_tag = soup.find("title")
            page_title = _condense(title_tag.get_text()) if title_tag else ""
        if not page_title:
            msg = f"No title found in {page_type.value} page {url}"
            raise PageParseError(msg, url=url)

        sections = []
        for heading in article.find_all(HEADING_TAGS):
            if heading is title_heading:
                elements = self._title_section_elements(soup, heading)
            else:
                elements = self._elements_until_heading(heading.next_siblings)
            sections.append(
                Section(
                    title=self._heading_text(heading),
                    hash=self._heading_hash(heading),
                    content=_condensed_text(elements),
                )
            )

        return ParsedPage(
            page_title=page_title,
            description=_meta_content(soup, "description"),
            keywords=_meta_content(soup, "keywords"),
            breadcrumb=self._breadcrumb(soup) if page_type is PageType.DOCS else [],
            sections=sections,
        )

    @staticmethod
    def _heading_text(heading: Tag) -> str:
        """Heading text without its anchor links."""
        parts = []
        for child in heading.children:
            if isinstance(child, Tag) and child.name == "a" and (
                child.get("aria-hidden") == "true" or "hash-link" in (child.get("class") or [])
            ):
                continue
            parts.append(_node_text(child))
        return _condense("".join(parts))

    @staticmethod
    def _heading_hash(heading: Tag) -> str:
        """Anchor of a heading, preferring its hash link over its id."""
        link = heading.find("a", class_="hash-link")
        if link is not None and link.get("href"):
            return str(link["href"])
        if heading.get("id"):
            return f"#{heading['id']}"
        return ""

    def _title_section_elements(self, soup: BeautifulSoup, heading: Tag) -> list[Tag | NavigableString]:
        """Elements of the untitled intro section that follows the page heading."""
        blog_post = soup.find(id=BLOG_POST_CONTAINER_ID)
        if blog_post is not None:
            return self._elements_until_heading(blog_post.children)
        start = heading.parent if heading.parent is not None and heading.parent.name == "header" else heading
        return self._elements_until_heading(start.next_siblings)

    @staticmethod
    def _elements_until_heading(siblings: Iterable[PageElement]) -> list[Tag | NavigableString]:
        """Collect siblings up to the next heading."""
        elements: list[Tag | NavigableString] = []
        for sibling in siblings:
            if isinstance(sibling, Tag):
                if sibling.name in HEADING_TAGS:
                    break
                nested = sibling.find(HEADING_TAGS)
                if nested is not None:
                    # Keep only what precedes the nested heading.
                    elements.extend(reversed(list(nested.find_previous_siblings())))
                    break
            elements.append(sibling)
        return elements

    @staticmethod
    def _breadcrumb(soup: BeautifulSoup) -> list[str]:
        """Labelled breadcrumb items above the current page."""
        breadcrumb = []
        for item in soup.select(".breadcrumbs__item"):
            if "breadcrumbs__item--active" in (item.get("class") or []):
                continue
            text = _condense(item.get_text())
            if text:
                breadcrumb.append(text)
        return breadcrumb


class MetadataVisitor(docutils.nodes.GenericNodeVisitor):  # type: ignore[misc]
    """Visitor to find the page title and description in an RST tree."""

    def __init__(self, document: docutils.nodes.document) -> None:
        """Initialise metadata visitor.

        Args:
            document: Docutils document tree.
        """
        super().__init__(document)
        self.title: str | None = None
        self.description: str | None = None
        self._in_field_list = 0

    def visit_title(self, node: docutils.nodes.title) -> None:
        """Record the first title as the page title.

        Args:
            node: Title node.
        """
        if self.title is None:
            self.title = node.astext()

    def visit_paragraph(self, node: docutils.nodes.paragraph) -> None:
        """Record the first body paragraph as the page description.

        Args:
            node: Paragraph node.
        """
        if self.description is None and not self._in_field_list:
            self.description = _condense(node.astext())

    def visit_field_list(self, node: docutils.nodes.field_list) -> None:
        """Enter a field list, whose paragraphs are not descriptions.

        Args:
            node: Field list node.
        """
        self._in_field_list += 1

    def depart_field_list(self, node: docutils.nodes.field_list) -> None:
        """Leave a field list.

        Args:
            node: Field list node.
        """
        self._in_field_list -= 1

    def visit_system_message(self, node: docutils.nodes.system_message) -> None:
        """Skip docutils diagnostics.

        Args:
            node: System message node.

        Raises:
            docutils.nodes.SkipNode: Always raised to skip the message.
        """
        raise docutils.nodes.SkipNode

    def default_visit(self, node: docutils.nodes.Node) -> None:
        """Default visit handler (no-op)."""

    def default_departure(self, node: docutils.nodes.Node) -> None:
        """Default departure handler (no-op)."""


class TextContentVisitor(docutils.nodes.GenericNodeVisitor):  # type: ignore[misc]
    """Visitor collecting searchable text, skipping code, comments and metadata."""

    def __init__(self, document: docutils.nodes.document) -> None:
        """Initialise text collector.

        Args:
            document: Docutils document tree.
        """
        super().__init__(document)
        self._text_parts: list[str] = []

    def visit_literal_block(self, node: docutils.nodes.literal_block) -> None:
        """Skip literal and code blocks.

        Args:
            node: Literal block node.

        Raises:
            docutils.nodes.SkipNode: Always raised to skip the block.
        """
        raise docutils.nodes.SkipNode

    def visit_comment(self, node: docutils.nodes.comment) -> None:
        """Skip RST comments.

        Args:
            node: Comment node.

        Raises:
            docutils.nodes.SkipNode: Always raised to skip the comment.
        """
        raise docutils.nodes.SkipNode

    def visit_field_list(self, node: docutils.nodes.field_list) -> None:
        """Skip page metadata fields.

        Args:
            node: Field list node.

        Raises:
            docutils.nodes.SkipNode: Always raised to skip the fields.
        """
        raise docutils.nodes.SkipNode

    def visit_system_message(self, node: docutils.nodes.system_message) -> None:
        """Skip docutils diagnostics.

        Args:
            node: System message node.

        Raises:
            docutils.nodes.SkipNode: Always raised to skip the message.
        """
        raise docutils.nodes.SkipNode

    def visit_Text(self, node: docutils.nodes.Text) -> None:  # noqa: N802
        """Collect non-blank text.

        Args:
            node: Text node.
        """
        text = node.astext().strip()
        if text:
            self._text_parts.append(text)

    def default_visit(self, node: docutils.nodes.Node) -> None:
        """Default visit handler (no-op)."""

    def default_departure(self, node: docutils.nodes.Node) -> None:
        """Default departure handler (no-op)."""

    def get_text(self) -> str:
        """Get collected text content.

        Returns:
            Concatenated text content.
        """
        return _condense(" ".join(self._text_parts))


class RstPageParser:
    """Parses reStructuredText source pages."""

    def parse(self, content: str, page_type: PageType, url: str, config: ProcessedConfig) -> ParsedPage | None:
        """Parse an RST source page.

        A ``:nosearch:`` field in the page's leading field list excludes the
        page from search unless ``force_ignore_noindex`` is set.

        Args:
            content: RST source text.
            page_type: Kind of page being parsed.
            url: Site URL of the page.
            config: Processed search options.

        Returns:
            ParsedPage instance, or None if the page is excluded from search.

        Raises:
            PageParseError: If docutils fails on the source.
        """
        try:
            doctree = self._parse_rst(content, url)
        except Exception as e:
            msg = f"Failed to parse RST page {url}: {e}"
            raise PageParseError(msg, url=url) from e

        fields = self._page_fields(doctree)
        if "nosearch" in fields and not config.force_ignore_noindex:
            logger.debug("Skipping unlisted page %s", url)
            return None

        visitor = MetadataVisitor(doctree)
        doctree.walkabout(visitor)
        page_title = visitor.title or self._title_from_url(url)

        sections = []
        intro = self._own_text(doctree)
        if intro:
            sections.append(Section(title=page_title, hash="", content=intro))
        for section in doctree.findall(docutils.nodes.section):
            title = section.next_node(docutils.nodes.title)
            ids = section.get("ids") or []
            sections.append(
                Section(
                    title=title.astext() if title is not None else page_title,
                    hash=f"#{ids[0]}" if ids else "",
                    content=self._own_text(section),
                )
            )

        return ParsedPage(
            page_title=page_title,
            description=visitor.description,
            keywords=fields.get("keywords") or None,
            sections=sections,
        )

    @staticmethod
    def _parse_rst(source: str, url: str) -> docutils.nodes.document:
        """Parse RST source into a docutils document with diagnostics suppressed.

        Args:
            source: RST source text.
            url: Page URL, used as the document source name.

        Returns:
            Docutils document tree.
        """
        parser = docutils.parsers.rst.Parser()
        settings = docutils.frontend.get_default_settings(docutils.parsers.rst.Parser)
        settings.report_level = 5  # Suppress warnings
        document = docutils.utils.new_document(url, settings)
        parser.parse(source, document)
        return document

    @staticmethod
    def _page_fields(doctree: docutils.nodes.document) -> dict[str, str]:
        """Read the field list that opens the page.

        Only a field list before any other body element counts. Field lists
        further down the page are content, not page metadata.

        Args:
            doctree: Parsed document tree.

        Returns:
            Mapping of lowercase field name to condensed field body.
        """
        field_list = None
        for child in doctree.children:
            if isinstance(child, (docutils.nodes.comment, docutils.nodes.system_message)):
                continue
            if isinstance(child, docutils.nodes.field_list):
                field_list = child
            break
        if field_list is None:
            return {}
        fields = {}
        for field_node in field_list.findall(docutils.nodes.field):
            name = field_node.next_node(docutils.nodes.field_name)
            body = field_node.next_node(docutils.nodes.field_body)
            if name is not None:
                fields[name.astext().strip().lower()] = _condense(body.astext()) if body is not None else ""
        return fields

    @staticmethod
    def _own_text(node: docutils.nodes.Element) -> str:
        """Text of a node's children, leaving out titles and nested sections."""
        parts = []
        for child in node.children:
            if isinstance(child, (docutils.nodes.section, docutils.nodes.title)):
                continue
            visitor = TextContentVisitor(node.document)
            child.walkabout(visitor)
            parts.append(visitor.get_text())
        return _condense(" ".join(parts))

    @staticmethod
    def _title_from_url(url: str) -> str:
        """Derive a readable title from the last URL segment."""
        stem = url.rstrip("/").rsplit("/", 1)[-1] or "index"
        return stem.replace("-", " ").replace("_", " ").title()


_HTML_PARSER = HtmlPageParser()
_RST_PARSER = RstPageParser()


def parser_for_path(path: Path) -> HtmlPageParser | RstPageParser:
    """Pick the page parser for a file by its suffix.

    Args:
        path: Path to the page file.

    Returns:
        Parser instance able to handle the file.
    """
    if path.suffix.lower() in (".rst", ".rest"):
        return _RST_PARSER
    return _HTML_PARSER
