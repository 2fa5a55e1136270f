"""Data models for documentation site search documents."""

from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, ClassVar


class PageType(str, Enum):
    """Kind of page a descriptor points at."""

    DOCS = "docs"
    BLOG = "blog"
    PAGE = "page"


@dataclass(frozen=True)
class PageDescriptor:
    """A rendered site page to be scanned."""

    file_path: Path
    url: str
    type: PageType


@dataclass(frozen=True)
class Section:
    """A heading of a page together with the text that follows it."""

    title: str
    hash: str = ""
    content: str = ""


@dataclass
class ParsedPage:
    """Structured content extracted from a single page."""

    page_title: str
    description: str | None = None
    keywords: str | None = None
    breadcrumb: list[str] = field(default_factory=list)
    sections: list[Section] = field(default_factory=list)


@dataclass(frozen=True)
class TitleDocument:
    """Search document for a page title."""

    kind: ClassVar[str] = "title"

    doc_id: int
    text: str
    url: str
    breadcrumb: list[str]

    def to_dict(self) -> dict[str, Any]:
        return {"i": self.doc_id, "t": self.text, "u": self.url, "b": list(self.breadcrumb)}


@dataclass(frozen=True)
class DescriptionDocument:
    """Search document for a page description."""

    kind: ClassVar[str] = "description"

    doc_id: int
    text: str
    subtitle: str
    url: str
    parent_id: int

    def to_dict(self) -> dict[str, Any]:
        return {"i": self.doc_id, "t": self.text, "s": self.subtitle, "u": self.url, "p": self.parent_id}


@dataclass(frozen=True)
class KeywordsDocument:
    """Search document for page keywords."""

    kind: ClassVar[str] = "keywords"

    doc_id: int
    text: str
    subtitle: str
    url: str
    parent_id: int

    def to_dict(self) -> dict[str, Any]:
        return {"i": self.doc_id, "t": self.text, "s": self.subtitle, "u": self.url, "p": self.parent_id}


@dataclass(frozen=True)
class HeadingDocument:
    """Search document for a section heading."""

    kind: ClassVar[str] = "heading"

    doc_id: int
    text: str
    url: str
    anchor: str
    parent_id: int

    def to_dict(self) -> dict[str, Any]:
        return {"i": self.doc_id, "t": self.text, "u": self.url, "h": self.anchor, "p": self.parent_id}


@dataclass(frozen=True)
class ContentDocument:
    """Search document for the text content of a section."""

    kind: ClassVar[str] = "content"

    doc_id: int
    text: str
    subtitle: str
    url: str
    anchor: str
    parent_id: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "i": self.doc_id,
            "t": self.text,
            "s": self.subtitle,
            "u": self.url,
            "h": self.anchor,
            "p": self.parent_id,
        }


SearchDocument = TitleDocument | DescriptionDocument | KeywordsDocument | HeadingDocument | ContentDocument

# Document classes in collection order.
DOCUMENT_TYPES: tuple[type[SearchDocument], ...] = (
    TitleDocument,
    HeadingDocument,
    DescriptionDocument,
    KeywordsDocument,
    ContentDocument,
)


@dataclass(frozen=True)
class ParseFailure:
    """A page that could not be read or parsed during a scan."""

    descriptor: PageDescriptor
    error: str


@dataclass
class ScanResult:
    """The five ordered document collections produced by a scan."""

    titles: list[TitleDocument] = field(default_factory=list)
    headings: list[HeadingDocument] = field(default_factory=list)
    descriptions: list[DescriptionDocument] = field(default_factory=list)
    keywords: list[KeywordsDocument] = field(default_factory=list)
    contents: list[ContentDocument] = field(default_factory=list)
    failures: list[ParseFailure] = field(default_factory=list)

    def collections(self) -> list[Sequence[SearchDocument]]:
        """Return the collections in title, heading, description, keywords, content order.

        Returns:
            List of the five document lists.
        """
        return [self.titles, self.headings, self.descriptions, self.keywords, self.contents]

    def by_kind(self) -> dict[str, Sequence[SearchDocument]]:
        """Map each document kind to its collection.

        Returns:
            Dict keyed by ``kind``, in collection order.
        """
        return {doc_type.kind: docs for doc_type, docs in zip(DOCUMENT_TYPES, self.collections())}

    @property
    def document_count(self) -> int:
        return sum(len(docs) for docs in self.collections())

    def to_dicts(self) -> list[list[dict[str, Any]]]:
        """Serialise the collections into the shape consumed by index builders.

        Returns:
            The five collections with every document converted by ``to_dict``.
        """
        return [[doc.to_dict() for doc in docs] for docs in self.collections()]
