from __future__ import annotations

import json
import re
import subprocess
import sys
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence

from tqdm import tqdm

from .errors import SourceFailedError
from .logger import setup_logger
from .record import FIELD_SEPARATOR, split_lines

_logger = setup_logger()

LEGACY_COMMAND = ("nix-env", "-qaP", "--description")
EXPERIMENTAL_COMMAND = ("nix", "search", "nixpkgs", "^", "--json")

_WHITESPACE_RE = re.compile(r"\s+")


class SourceMode(Enum):
    LEGACY = "legacy"
    EXPERIMENTAL = "experimental"

    @classmethod
    def has_value(cls, value: str) -> bool:
        return bool(value) and value.lower() in (item.value for item in cls)


def _clean(text: Optional[str]) -> str:
    """Collapse tabs, newlines and other control whitespace so a value fits in a single cache field."""
    if not text:
        return ""
    return _WHITESPACE_RE.sub(" ", str(text)).strip()


class ListingSource:
    """
    Runs the system package-query command and turns its output into cache lines.

    LEGACY        nix-env -qaP --description     (channel attribute paths)
    EXPERIMENTAL  nix search nixpkgs ^ --json    (flake registry, bare pnames)
    """

    def __init__(self, mode: SourceMode = SourceMode.LEGACY, progress: Optional[bool] = None) -> None:
        self.mode = mode
        # Progress bars go to stderr; skip them when nobody is watching.
        self.progress = sys.stderr.isatty() if progress is None else progress

    @property
    def command(self) -> Sequence[str]:
        return EXPERIMENTAL_COMMAND if self.mode == SourceMode.EXPERIMENTAL else LEGACY_COMMAND

    @property
    def prefixed(self) -> bool:
        """Legacy identifiers carry a channel prefix ("nixos.vim")."""
        return self.mode == SourceMode.LEGACY

    def hint(self) -> str:
        if self.mode == SourceMode.LEGACY:
            return (
                "Your system seems to be based on flakes. "
                "Try the experimental mode: NIX_PACKAGE_SEARCH_EXPERIMENTAL=true"
            )
        return (
            "Your system seems to be based on channels. "
            "Try the legacy mode: NIX_PACKAGE_SEARCH_EXPERIMENTAL=false"
        )

    # --------------------------------------------------------
    # Listing
    # --------------------------------------------------------

    def produce_listing(self) -> List[str]:
        """Run the listing command; return normalized cache lines."""
        stdout = self._run()
        if self.mode == SourceMode.EXPERIMENTAL:
            return self._parse_json(stdout)
        return self._parse_columns(stdout)

    def _run(self) -> str:
        cmd = list(self.command)
        _logger.info("Running '%s' (this may take a moment)...", " ".join(cmd))
        try:
            proc = subprocess.run(cmd, check=True, capture_output=True)
        except FileNotFoundError as e:
            raise SourceFailedError(f"'{cmd[0]}' not found: {e}") from e
        except subprocess.CalledProcessError as e:
            stderr = (e.stderr or b"").decode("utf-8", errors="ignore").strip()
            _logger.debug("'%s' stderr: %s", cmd[0], stderr)
            raise SourceFailedError(f"'{' '.join(cmd)}' exited with status {e.returncode}: {stderr}") from e

        try:
            return proc.stdout.decode("utf-8")
        except UnicodeDecodeError as e:
            raise SourceFailedError(f"'{cmd[0]}' produced unreadable output: {e}") from e

    def _bar(self, items: Iterable, total: int) -> Iterable:
        return tqdm(items, total=total, unit="pkg", desc="Caching", disable=not self.progress, leave=False)

    def _parse_columns(self, stdout: str) -> List[str]:
        """
        nix-env prints whitespace-aligned columns:
            nixos.vim   vim-9.0.1   The most popular clone of the VI editor
        """
        raw_lines = split_lines(stdout)
        out: List[str] = []
        for line in self._bar(raw_lines, len(raw_lines)):
            parts = line.split(None, 2)
            if not parts:
                continue
            out.append(FIELD_SEPARATOR.join(_clean(p) for p in parts))
        return out

    def _parse_json(self, stdout: str) -> List[str]:
        """
        nix search --json prints one object keyed by attribute path:
            {"legacyPackages.x86_64-linux.vim": {"pname": "vim", "version": "9.0.1", "description": "..."}}
        """
        try:
            parsed: Dict[str, Dict[str, str]] = json.loads(stdout or "{}")
        except json.JSONDecodeError as e:
            raise SourceFailedError(f"'{self.command[0]}' produced invalid JSON: {e}") from e
        if not isinstance(parsed, dict):
            raise SourceFailedError(f"'{self.command[0]}' produced unexpected JSON ({type(parsed).__name__})")

        out: List[str] = []
        for attr, package in self._bar(parsed.items(), len(parsed)):
            if not isinstance(package, dict):
                _logger.debug("Skipping non-object entry %s", attr)
                continue
            name = _clean(package.get("pname")) or attr.rsplit(".", 1)[-1]
            fields = [name, _clean(package.get("version")), _clean(package.get("description"))]
            out.append(FIELD_SEPARATOR.join(fields))
        out.sort()
        return out
