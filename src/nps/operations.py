from __future__ import annotations

import sys
from enum import Enum
from typing import IO, Optional

from .cache import CacheStore
from .config import QueryOptions
from .errors import CacheUnavailableError, ExitCode, RefreshError
from .logger import setup_logger
from .matcher import MatchSet, classify
from .renderer import render
from .source import ListingSource, SourceMode

_logger = setup_logger()


class Stage(Enum):
    IDLE = "idle"
    REFRESH = "refresh"
    LOADED = "loaded"
    CLASSIFIED = "classified"
    RENDERED = "rendered"
    DONE = "done"
    FAILED = "failed"


def _enter(stage: Stage) -> Stage:
    _logger.debug("-> %s", stage.value)
    return stage


def build_store(options: QueryOptions) -> CacheStore:
    return CacheStore(options.cache_path, prefixed=options.source_mode is SourceMode.LEGACY)


def build_source(options: QueryOptions) -> ListingSource:
    return ListingSource(options.source_mode, progress=False if options.quiet else None)


def needs_refresh(options: QueryOptions, store: CacheStore) -> bool:
    if options.refresh:
        return True
    if not store.exists():
        _logger.info("No cache at %s yet, refreshing", store.path)
        return True
    return False


def refresh(store: CacheStore, source: ListingSource, quiet: bool = False, out: Optional[IO] = None) -> int:
    """Refresh the cache and report. Raises RefreshError; the old cache stays in place."""
    out = out or sys.stdout
    count = store.refresh(source)
    message = f"Done. Cached info of {count} packages in {store.path}"
    _logger.info(message)
    if not quiet:
        print(message, file=out)
    return count


def search(options: QueryOptions, store: CacheStore, out: Optional[IO] = None) -> MatchSet:
    """Load the cache, classify against the search term and render."""
    records = store.load()
    _enter(Stage.LOADED)

    matches = classify(records, options.search_term, options.ignore_case)
    _enter(Stage.CLASSIFIED)
    _logger.debug(
        "%d exact, %d direct, %d indirect matches for '%s'",
        len(matches.exact),
        len(matches.direct),
        len(matches.indirect),
        options.search_term,
    )

    render(matches, options, stream=out)
    _enter(Stage.RENDERED)
    return matches


def run(
    options: QueryOptions,
    store: Optional[CacheStore] = None,
    source: Optional[ListingSource] = None,
    out: Optional[IO] = None,
) -> ExitCode:
    """
    Drive one invocation: refresh if requested or missing, then load,
    classify and render. Returns the process exit code.
    """
    store = store or build_store(options)
    _enter(Stage.IDLE)

    if needs_refresh(options, store):
        _enter(Stage.REFRESH)
        source = source or build_source(options)
        try:
            refresh(store, source, quiet=options.quiet, out=out)
        except RefreshError as e:
            _logger.error("Can't refresh: %s", e)
            _logger.error(source.hint())
            _enter(Stage.FAILED)
            return e.exit_code
    else:
        age = store.age()
        if age is not None:
            _logger.info("Using cache %s (%.1f days old)", store.path, age / 86400)

    if not options.search_term:
        _enter(Stage.DONE)
        return ExitCode.SUCCESS

    try:
        search(options, store, out=out)
    except CacheUnavailableError as e:
        _logger.error("%s", e)
        _enter(Stage.FAILED)
        return e.exit_code

    _enter(Stage.DONE)
    return ExitCode.SUCCESS
