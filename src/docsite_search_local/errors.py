"""Exception hierarchy for search document extraction."""


class DocsiteSearchError(Exception):
    """Base exception for all docsite search errors."""


class ConfigError(DocsiteSearchError, ValueError):
    """Raised when user options fail structural validation."""


class PageParseError(DocsiteSearchError):
    """Raised when the content of a single page cannot be parsed."""

    def __init__(self, message: str, *, url: str | None = None) -> None:
        self.url = url
        super().__init__(message)


class ScanError(DocsiteSearchError, RuntimeError):
    """Raised when a scan cannot be carried out at all."""
