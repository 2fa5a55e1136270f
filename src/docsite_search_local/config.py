"""Normalisation of user-supplied search options."""

import logging
import os
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from docsite_search_local.errors import ConfigError

logger = logging.getLogger(__name__)

SEARCH_BAR_POSITIONS = ("left", "right")


@dataclass(frozen=True)
class SiteContext:
    """Site information the options are resolved against."""

    site_dir: Path
    navbar_items: list[dict[str, Any]] = field(default_factory=list)
    base_url: str = "/"

    @classmethod
    def from_theme_config(
        cls, site_dir: Path | str, theme_config: Mapping[str, Any] | None, base_url: str = "/"
    ) -> "SiteContext":
        """Build a context from a theme configuration mapping.

        Args:
            site_dir: Root directory of the site.
            theme_config: Theme configuration, possibly holding ``navbar.items``.
            base_url: Base URL the site is served under.

        Returns:
            SiteContext instance.
        """
        navbar = (theme_config or {}).get("navbar") or {}
        items = navbar.get("items") or []
        return cls(site_dir=Path(site_dir), navbar_items=list(items), base_url=base_url)


@dataclass(frozen=True)
class IndexContentTypes:
    """Which kinds of search documents are emitted."""

    title: bool = True
    heading: bool = True
    description: bool = False
    keywords: bool = False
    content: bool = False

    @classmethod
    def with_overrides(cls, overrides: Mapping[str, Any] | None) -> "IndexContentTypes":
        """Apply a partial mapping of content types over the baseline.

        Args:
            overrides: Mapping of content type name to bool.

        Returns:
            IndexContentTypes with the overridden values.

        Raises:
            ConfigError: If a key is unknown or a value is not a bool.
        """
        if overrides is None:
            return cls()
        if not isinstance(overrides, Mapping):
            msg = f"index_content_types must be a mapping, got {type(overrides).__name__}"
            raise ConfigError(msg)
        known = {f.name for f in fields(cls)}
        values: dict[str, bool] = {}
        for key, value in overrides.items():
            if key not in known:
                msg = f"Unknown content type in index_content_types: {key!r}"
                raise ConfigError(msg)
            if not isinstance(value, bool):
                msg = f"index_content_types.{key} must be a bool"
                raise ConfigError(msg)
            values[key] = value
        return cls(**values)


@dataclass(frozen=True)
class ProcessedConfig:
    """Fully resolved search options."""

    index_docs: bool = True
    index_blog: bool = True
    index_pages: bool = False
    docs_route_base_path: list[str] = field(default_factory=lambda: ["docs"])
    blog_route_base_path: list[str] = field(default_factory=lambda: ["blog"])
    docs_dir: list[Path] = field(default_factory=list)
    blog_dir: list[Path] = field(default_factory=list)
    language: list[str] = field(default_factory=lambda: ["en"])
    ignore_files: list[str | re.Pattern[str]] = field(default_factory=list)
    ignore_css_selectors: list[str] = field(default_factory=list)
    search_bar_position: str = "right"
    remove_default_stop_word_filter: list[str] = field(default_factory=list)
    remove_default_stemmer: bool = False
    force_ignore_noindex: bool = False
    index_content_types: IndexContentTypes = field(default_factory=IndexContentTypes)
    max_workers: int | None = None


_DEFAULT_OPTIONS: dict[str, Any] = {
    "index_docs": True,
    "index_blog": True,
    "index_pages": False,
    "docs_route_base_path": "docs",
    "blog_route_base_path": "blog",
    "docs_dir": "docs",
    "blog_dir": "blog",
    "language": "en",
    "ignore_files": [],
    "ignore_css_selectors": [],
    "search_bar_position": "auto",
    "remove_default_stop_word_filter": False,
    "remove_default_stemmer": False,
    "force_ignore_noindex": False,
    "index_content_types": None,
    "max_workers": None,
}


def process_options(options: Mapping[str, Any], context: SiteContext) -> ProcessedConfig:
    """Turn raw user options into a fully resolved configuration.

    Args:
        options: Raw options, any subset of the supported keys.
        context: Site the options belong to.

    Returns:
        ProcessedConfig instance.

    Raises:
        ConfigError: If an option is unknown or structurally invalid.
    """
    bad_keys = [key for key in options if not isinstance(key, str)]
    if bad_keys:
        msg = f"Option names must be strings, got: {', '.join(map(repr, bad_keys))}"
        raise ConfigError(msg)

    unknown = sorted(set(options) - set(_DEFAULT_OPTIONS))
    if unknown:
        msg = f"Unknown option(s): {', '.join(unknown)}"
        raise ConfigError(msg)

    raw = {**_DEFAULT_OPTIONS, **options}
    site_dir = Path(context.site_dir).resolve()

    language = _string_list(raw["language"], "language")
    if not language:
        msg = "language must name at least one language"
        raise ConfigError(msg)

    config = ProcessedConfig(
        index_docs=_bool(raw["index_docs"], "index_docs"),
        index_blog=_bool(raw["index_blog"], "index_blog"),
        index_pages=_bool(raw["index_pages"], "index_pages"),
        docs_route_base_path=[p.strip("/") for p in _string_list(raw["docs_route_base_path"], "docs_route_base_path")],
        blog_route_base_path=[p.strip("/") for p in _string_list(raw["blog_route_base_path"], "blog_route_base_path")],
        docs_dir=_path_list(raw["docs_dir"], "docs_dir", site_dir),
        blog_dir=_path_list(raw["blog_dir"], "blog_dir", site_dir),
        language=language,
        ignore_files=_ignore_patterns(raw["ignore_files"]),
        ignore_css_selectors=_string_list(raw["ignore_css_selectors"], "ignore_css_selectors"),
        search_bar_position=_search_bar_position(raw["search_bar_position"], context),
        remove_default_stop_word_filter=_stop_word_languages(raw["remove_default_stop_word_filter"], language),
        remove_default_stemmer=_bool(raw["remove_default_stemmer"], "remove_default_stemmer"),
        force_ignore_noindex=_bool(raw["force_ignore_noindex"], "force_ignore_noindex"),
        index_content_types=IndexContentTypes.with_overrides(raw["index_content_types"]),
        max_workers=_max_workers(raw["max_workers"]),
    )
    logger.debug("Processed search options: %s", config)
    return config


def load_options(path: Path) -> dict[str, Any]:
    """Load raw options from a YAML file.

    Args:
        path: Path to the YAML options file.

    Returns:
        Mapping of option name to raw value.

    Raises:
        ConfigError: If the document is not a mapping.
    """
    with open(path, encoding="utf-8") as f:
        raw = yaml.safe_load(f)
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        msg = f"Options file must contain a mapping: {path}"
        raise ConfigError(msg)
    return raw


def resolve_search_bar_position(navbar_items: list[Mapping[str, Any]]) -> str:
    """Pick a search bar side from the navbar items.

    An explicit position on a ``search`` item wins. Otherwise the side
    opposite to the nearest ``doc`` item is used, looking first before the
    search item and then after it. Without any hint the bar goes right.

    Args:
        navbar_items: Navbar item mappings from the theme configuration.

    Returns:
        ``"left"`` or ``"right"``.
    """
    search_index = next((i for i, item in enumerate(navbar_items) if item.get("type") == "search"), None)
    if search_index is not None:
        position = navbar_items[search_index].get("position")
        if position in SEARCH_BAR_POSITIONS:
            return position
        candidates = [*reversed(navbar_items[:search_index]), *navbar_items[search_index + 1 :]]
    else:
        candidates = list(navbar_items)

    for item in candidates:
        if item.get("type") == "doc" and item.get("position") in SEARCH_BAR_POSITIONS:
            return "left" if item["position"] == "right" else "right"
    return "right"


def _search_bar_position(value: Any, context: SiteContext) -> str:
    """Resolve the ``search_bar_position`` option.

    Args:
        value: Raw option value.
        context: Site whose navbar is inspected for ``auto``.

    Returns:
        ``"left"`` or ``"right"``.

    Raises:
        ConfigError: If the value is not ``auto``, ``left`` or ``right``.
    """
    if value in SEARCH_BAR_POSITIONS:
        return value
    if value is None or value == "auto":
        return resolve_search_bar_position(context.navbar_items)
    msg = f"search_bar_position must be one of auto, left, right; got {value!r}"
    raise ConfigError(msg)


def _as_list(value: Any) -> list[Any]:
    """Wrap a single value in a list."""
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def _string_list(value: Any, name: str) -> list[str]:
    """Normalise a one-or-many string option.

    Args:
        value: Raw option value.
        name: Option name used in error messages.

    Returns:
        List of strings.

    Raises:
        ConfigError: If an item is not a string.
    """
    items = _as_list(value)
    for item in items:
        if not isinstance(item, str):
            msg = f"{name} must be a string or a list of strings, got {type(item).__name__}"
            raise ConfigError(msg)
    return items


def _path_list(value: Any, name: str, site_dir: Path) -> list[Path]:
    """Normalise a one-or-many directory option to absolute paths.

    Args:
        value: Raw option value.
        name: Option name used in error messages.
        site_dir: Directory relative paths are resolved against.

    Returns:
        List of absolute paths.

    Raises:
        ConfigError: If an item is not path-like.
    """
    paths = []
    for item in _as_list(value):
        if not isinstance(item, (str, os.PathLike)):
            msg = f"{name} must be a path or a list of paths, got {type(item).__name__}"
            raise ConfigError(msg)
        paths.append((site_dir / item).resolve())
    return paths


def _ignore_patterns(value: Any) -> list[str | re.Pattern[str]]:
    """Normalise ``ignore_files`` to a list of strings and compiled patterns.

    Raises:
        ConfigError: If an entry is neither a string nor a compiled pattern.
    """
    patterns = _as_list(value)
    for item in patterns:
        if not isinstance(item, (str, re.Pattern)):
            msg = f"ignore_files entries must be strings or compiled patterns, got {type(item).__name__}"
            raise ConfigError(msg)
    return patterns


def _stop_word_languages(value: Any, language: Iterable[str]) -> list[str]:
    """Expand ``remove_default_stop_word_filter`` to language codes.

    Args:
        value: ``True`` for every indexed language, ``False`` for none, or explicit codes.
        language: Indexed language codes.

    Returns:
        Languages whose default stop word filter is removed.
    """
    if value is True:
        return list(language)
    if value is False or value is None:
        return []
    return _string_list(value, "remove_default_stop_word_filter")


def _bool(value: Any, name: str) -> bool:
    """Check that a flag option is a bool.

    Raises:
        ConfigError: If the value is not a bool.
    """
    if not isinstance(value, bool):
        msg = f"{name} must be a bool, got {type(value).__name__}"
        raise ConfigError(msg)
    return value


def _max_workers(value: Any) -> int | None:
    """Validate the worker count for the scan thread pool.

    Args:
        value: Raw option value, or None for the executor default.

    Returns:
        Positive worker count or None.

    Raises:
        ConfigError: If the value is not a positive integer.
    """
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        msg = f"max_workers must be a positive integer, got {value!r}"
        raise ConfigError(msg)
    return value
