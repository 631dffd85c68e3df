from __future__ import annotations

import os
import tempfile
import time
from pathlib import Path
from typing import List, Optional, Union

from .errors import CacheUnavailableError, CacheWriteError, EmptyResultError, MalformedLineError
from .logger import TRACE, setup_logger
from .record import PackageRecord, split_lines
from .source import ListingSource

_logger = setup_logger()


class CacheStore:
    """
    Flat, line-oriented snapshot of the package listing.

    The live file is only ever replaced whole: refresh() writes a temporary
    file next to it and renames it into place, so readers always see either
    the previous or the new complete snapshot.
    """

    def __init__(self, path: Union[str, Path], prefixed: bool = False):
        self.path = Path(path)
        self.prefixed = prefixed

    @property
    def folder(self) -> Path:
        return self.path.parent

    # -------------------------
    # Queries
    # -------------------------
    def exists(self) -> bool:
        return self.path.is_file()

    def age(self) -> Optional[float]:
        """Seconds since the cache was last written, None if there is no cache."""
        try:
            mtime = self.path.stat().st_mtime
        except OSError:
            return None
        return max(0.0, time.time() - mtime)

    def read(self) -> List[str]:
        try:
            with open(self.path, "r", encoding="utf-8", newline="") as fh:
                return split_lines(fh.read())
        except FileNotFoundError as e:
            raise CacheUnavailableError(f"No cache at {self.path}") from e
        except (OSError, UnicodeDecodeError) as e:
            raise CacheUnavailableError(f"Can't open file {self.path}: {e}") from e

    def load(self) -> List[PackageRecord]:
        """Read and parse the cache, skipping malformed lines."""
        records: List[PackageRecord] = []
        skipped = 0
        for lineno, line in enumerate(self.read(), start=1):
            try:
                records.append(PackageRecord.parse(line, prefixed=self.prefixed))
            except MalformedLineError as e:
                skipped += 1
                _logger.log(TRACE, "Skipping line %d of %s: %s", lineno, self.path, e)
        if skipped:
            _logger.debug("Skipped %d malformed line(s) in %s", skipped, self.path)
        _logger.debug("Loaded %d records from %s", len(records), self.path)
        return records

    # -------------------------
    # Refresh
    # -------------------------
    def refresh(self, source: ListingSource) -> int:
        """
        Replace the cache with a fresh listing from source.
        Returns the number of records written. The live cache is untouched on failure.
        """
        lines = source.produce_listing()
        if not lines:
            raise EmptyResultError(f"'{' '.join(source.command)}' returned no packages; keeping the previous cache")

        self.write(lines)
        return len(lines)

    def write(self, lines: List[str]) -> None:
        try:
            self.folder.mkdir(parents=True, exist_ok=True)
            tf = tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self.folder,
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                delete=False,
            )
        except OSError as e:
            raise CacheWriteError(f"Can't write into {self.folder}: {e}") from e

        tmp_path = Path(tf.name)
        try:
            with tf:
                for line in lines:
                    tf.write(line)
                    tf.write("\n")
                tf.flush()
                os.fsync(tf.fileno())
            os.replace(tmp_path, self.path)
            _logger.debug("Cache written to %s", self.path)
        except OSError as e:
            raise CacheWriteError(f"Can't write cache {self.path}: {e}") from e
        finally:
            # Always clean up an abandoned temp file
            if tmp_path.exists():
                tmp_path.unlink()
