"""Indexer collecting the pages of a built documentation site."""

import logging
import re
from pathlib import Path

from docsite_search_local.config import ProcessedConfig, SiteContext
from docsite_search_local.models import PageDescriptor, PageType, ScanResult
from docsite_search_local.scanner import DocumentScanner

logger = logging.getLogger(__name__)


class SiteIndexer:
    """Turns a site's build output into search documents."""

    PAGE_SUFFIXES = (".html", ".rst", ".rest")
    SKIPPED_ROUTES = ("404", "search")
    # Blog listing pages, relative to a blog base path.
    BLOG_LISTING_ROUTE = re.compile(r"^(?:tags|page|archive|authors)(?:/|$)")

    def __init__(self, context: SiteContext, config: ProcessedConfig, scanner: DocumentScanner | None = None) -> None:
        """Initialise indexer.

        Args:
            context: Site the pages belong to.
            config: Processed search options.
            scanner: Scanner to run. A default DocumentScanner is used when omitted.
        """
        self.context = context
        self.config = config
        self.scanner = scanner or DocumentScanner()

    def index_directory(self, out_dir: Path) -> ScanResult:
        """Collect every page of the build output and scan it.

        Args:
            out_dir: Build output directory of the site.

        Returns:
            ScanResult of the scan.
        """
        descriptors = self.collect_descriptors(out_dir)
        result = self.scanner.scan(descriptors, self.config)
        logger.info(
            "Indexed %d documents from %d pages in %s",
            result.document_count,
            len(descriptors) - len(result.failures),
            out_dir,
        )
        for kind, docs in result.by_kind().items():
            logger.debug("Indexed %d %s documents", len(docs), kind)
        for failure in result.failures:
            logger.warning("Failed to index %s: %s", failure.descriptor.url, failure.error)
        return result

    def collect_descriptors(self, out_dir: Path) -> list[PageDescriptor]:
        """Build page descriptors for the files of a build output directory.

        Args:
            out_dir: Build output directory of the site.

        Returns:
            Descriptors sorted by route.

        Raises:
            ValueError: If the output directory does not exist.
        """
        if not out_dir.is_dir():
            msg = f"Build output directory does not exist: {out_dir}"
            raise ValueError(msg)

        files = [p for p in out_dir.rglob("*") if p.is_file() and p.suffix.lower() in self.PAGE_SUFFIXES]
        logger.info("Found %d page files in %s", len(files), out_dir)

        descriptors = []
        for file_path in files:
            route = self._route_for(file_path.relative_to(out_dir))
            if route is None or self._is_ignored(route):
                continue
            page_type = self._page_type(route)
            if page_type is None:
                logger.debug("Skipping %s", route)
                continue
            descriptors.append(PageDescriptor(file_path=file_path, url=self._url_for(route), type=page_type))

        descriptors.sort(key=lambda d: d.url)
        logger.info("Collected %d pages to scan", len(descriptors))
        return descriptors

    def _route_for(self, relative_path: Path) -> str | None:
        """Map a file below the output directory to its route, or None to skip it."""
        parts = list(relative_path.with_suffix("").parts)
        if parts and parts[-1] == "index":
            parts = parts[:-1]
        route = "/".join(parts)
        if route in self.SKIPPED_ROUTES or route.startswith("assets/"):
            return None
        return route

    def _is_ignored(self, route: str) -> bool:
        """Check a route against the exact and pattern ignore rules."""
        for pattern in self.config.ignore_files:
            if isinstance(pattern, str):
                if route == pattern.strip("/"):
                    return True
            elif pattern.search(route):
                return True
        return False

    def _page_type(self, route: str) -> PageType | None:
        """Classify a route, returning None for routes that are not indexed."""
        for base in self.config.blog_route_base_path:
            relative = self._relative_to_base(route, base)
            if relative is not None:
                if not self.config.index_blog or not relative or self.BLOG_LISTING_ROUTE.match(relative):
                    return None
                return PageType.BLOG
        for base in self.config.docs_route_base_path:
            if self._relative_to_base(route, base) is not None:
                return PageType.DOCS if self.config.index_docs else None
        return PageType.PAGE if self.config.index_pages else None

    @staticmethod
    def _relative_to_base(route: str, base: str) -> str | None:
        """Strip a route base path, returning None when the route is outside it."""
        if not base:
            return route
        if route == base:
            return ""
        if route.startswith(f"{base}/"):
            return route[len(base) + 1 :]
        return None

    def _url_for(self, route: str) -> str:
        """Prefix a route with the site base URL."""
        base_url = self.context.base_url.rstrip("/")
        return f"{base_url}/{route}"
