"""Scanning of site pages into categorised search documents."""

import itertools
import logging
from collections.abc import Callable, Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Protocol

from docsite_search_local.config import ProcessedConfig
from docsite_search_local.errors import PageParseError, ScanError
from docsite_search_local.models import (
    ContentDocument,
    DescriptionDocument,
    HeadingDocument,
    KeywordsDocument,
    PageDescriptor,
    PageType,
    ParsedPage,
    ParseFailure,
    ScanResult,
    TitleDocument,
)
from docsite_search_local.parser import parser_for_path

logger = logging.getLogger(__name__)


class PageParser(Protocol):
    """Anything able to turn page content into a ParsedPage."""

    def parse(self, content: str, page_type: PageType, url: str, config: ProcessedConfig) -> ParsedPage | None: ...


# Result of parsing one descriptor: unlisted, parsed, or failed.
PageOutcome = ParsedPage | ParseFailure | None


def trim_hash(hash: str, url: str) -> str | None:  # noqa: A002
    """Reduce a section anchor to a fragment of the page at ``url``.

    Args:
        hash: Anchor as emitted by the page parser.
        url: URL of the page the anchor belongs to.

    Returns:
        The anchor as a bare fragment, or None when it points at another page.
    """
    if hash and not hash.startswith("#") and "#" in hash:
        # Same-page links may carry the page path in front of the fragment.
        if hash.startswith(url) and hash[len(url) : len(url) + 1] == "#":
            return hash[len(url) :]
        return None
    return hash


class DocumentScanner:
    """Parses pages concurrently and numbers their search documents in input order."""

    def __init__(self, parser: PageParser | None = None, max_workers: int | None = None) -> None:
        """Initialise scanner.

        Args:
            parser: Page parser used for every page. When omitted the parser
                is chosen from each page's file suffix.
            max_workers: Size of the parse thread pool. Falls back to the
                config's ``max_workers``, then to the executor default.
        """
        self.parser = parser
        self.max_workers = max_workers

    def scan(self, descriptors: Sequence[PageDescriptor], config: ProcessedConfig) -> ScanResult:
        """Parse all pages and build the five search document collections.

        Args:
            descriptors: Pages to scan, in the order ids are assigned.
            config: Processed search options.

        Returns:
            ScanResult with the documents of every listed page and the
            failures of pages that could not be parsed.

        Raises:
            ScanError: If the descriptor list cannot be processed.
        """
        self._validate(descriptors)
        outcomes = self._parse_all(descriptors, config)
        result = self._categorise(descriptors, outcomes, config)
        logger.info(
            "Scanned %d pages into %d documents (%d failed)",
            len(descriptors),
            result.document_count,
            len(result.failures),
        )
        return result

    @staticmethod
    def _validate(descriptors: Sequence[PageDescriptor]) -> None:
        """Check that the input is a list or tuple of page descriptors.

        Args:
            descriptors: Candidate descriptor sequence.

        Raises:
            ScanError: If the container or any item has the wrong type.
        """
        if not isinstance(descriptors, (list, tuple)):
            msg = f"Descriptors must be a list or tuple, got {type(descriptors).__name__}"
            raise ScanError(msg)
        for position, descriptor in enumerate(descriptors):
            if not isinstance(descriptor, PageDescriptor):
                msg = f"Descriptor {position} is not a PageDescriptor: {descriptor!r}"
                raise ScanError(msg)

    def _parse_all(self, descriptors: Sequence[PageDescriptor], config: ProcessedConfig) -> list[PageOutcome]:
        """Parse every page on a thread pool.

        Returns:
            One outcome per descriptor, at the descriptor's position.
        """
        outcomes: list[PageOutcome] = [None] * len(descriptors)
        if not descriptors:
            return outcomes

        workers = self.max_workers or config.max_workers
        try:
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="page-parse") as executor:
                futures: list[Future[ParsedPage | None]] = [
                    executor.submit(self._parse_one, descriptor, config) for descriptor in descriptors
                ]
                for position, future in enumerate(futures):
                    outcomes[position] = self._outcome(descriptors[position], future)
        except RuntimeError as e:
            msg = f"Unable to schedule page parsing: {e}"
            raise ScanError(msg) from e
        return outcomes

    def _parse_one(self, descriptor: PageDescriptor, config: ProcessedConfig) -> ParsedPage | None:
        """Read and parse one page file.

        Args:
            descriptor: Page to parse.
            config: Processed search options.

        Returns:
            ParsedPage instance, or None if the page is excluded from search.
        """
        logger.debug("Parsing %s file %s of %s", descriptor.type.value, descriptor.file_path, descriptor.url)
        content = Path(descriptor.file_path).read_text(encoding="utf-8")
        parser = self.parser or parser_for_path(Path(descriptor.file_path))
        return parser.parse(content, descriptor.type, descriptor.url, config)

    @staticmethod
    def _outcome(descriptor: PageDescriptor, future: Future[ParsedPage | None]) -> PageOutcome:
        """Collect a parse task result, turning its exception into a failure.

        Args:
            descriptor: Page the task parsed.
            future: Completed or pending parse task.

        Returns:
            The parsed page, None for an unlisted page, or a ParseFailure.
        """
        try:
            return future.result()
        except (OSError, UnicodeDecodeError, PageParseError) as e:
            logger.warning("Failed to parse %s: %s", descriptor.url, e)
            return ParseFailure(descriptor=descriptor, error=str(e))
        except Exception as e:
            logger.exception("Unexpected error while parsing %s", descriptor.url)
            return ParseFailure(descriptor=descriptor, error=f"{type(e).__name__}: {e}")

    @staticmethod
    def _categorise(
        descriptors: Sequence[PageDescriptor], outcomes: list[PageOutcome], config: ProcessedConfig
    ) -> ScanResult:
        """Assign ids and emit documents, strictly in descriptor order."""
        result = ScanResult()
        content_types = config.index_content_types
        next_id: Callable[[], int] = itertools.count(1).__next__

        for descriptor, outcome in zip(descriptors, outcomes):
            if outcome is None:
                continue
            if isinstance(outcome, ParseFailure):
                result.failures.append(outcome)
                continue

            url = descriptor.url
            page = outcome
            title_id = next_id()

            if content_types.title:
                result.titles.append(
                    TitleDocument(doc_id=title_id, text=page.page_title, url=url, breadcrumb=list(page.breadcrumb))
                )

            if content_types.description and page.description:
                result.descriptions.append(
                    DescriptionDocument(
                        doc_id=next_id(), text=page.description, subtitle=page.page_title, url=url, parent_id=title_id
                    )
                )

            if content_types.keywords and page.keywords:
                result.keywords.append(
                    KeywordsDocument(
                        doc_id=next_id(), text=page.keywords, subtitle=page.page_title, url=url, parent_id=title_id
                    )
                )

            for section in page.sections:
                anchor = trim_hash(section.hash, url)
                if anchor is None:
                    logger.debug(
                        "Skipping section %r of %s: anchor %r is on another page", section.title, url, section.hash
                    )
                    continue

                if content_types.heading and section.title != page.page_title:
                    result.headings.append(
                        HeadingDocument(
                            doc_id=next_id(), text=section.title, url=url, anchor=anchor, parent_id=title_id
                        )
                    )

                if content_types.content and section.content:
                    result.contents.append(
                        ContentDocument(
                            doc_id=next_id(),
                            text=section.content,
                            subtitle=section.title or page.page_title,
                            url=url,
                            anchor=anchor,
                            parent_id=title_id,
                        )
                    )

        return result


def scan_documents(
    descriptors: Sequence[PageDescriptor], config: ProcessedConfig, *, parser: PageParser | None = None
) -> ScanResult:
    """Scan pages with a fresh DocumentScanner.

    Args:
        descriptors: Pages to scan.
        config: Processed search options.
        parser: Optional page parser overriding suffix-based selection.

    Returns:
        ScanResult instance.
    """
    return DocumentScanner(parser=parser).scan(descriptors, config)
