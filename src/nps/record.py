import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .errors import MalformedLineError

FIELD_SEPARATOR = "\t"

# Identifiers are attribute paths or flake references: no whitespace allowed.
IDENTIFIER_RE = re.compile(r"^[^\s]+$")


@dataclass(frozen=True)
class PackageRecord:
    """
    One entry of the package listing.

    identifier is the lookup key as printed by the listing command:
      - legacy channels:    "nixos.neovim" (channel prefix, prefixed=True)
      - experimental mode:  "neovim" or "nixpkgs#neovim"

    Usage:
      PackageRecord.parse("nixos.neovim\\t0.9.0\\tVim-fork focused on extensibility", prefixed=True)
    """

    identifier: str
    version: Optional[str] = None
    description: Optional[str] = None
    prefixed: bool = False

    # -----
    # Parsing / construction
    # -----
    @staticmethod
    def parse(line: str, prefixed: bool = False) -> "PackageRecord":
        """
        Parse one cache line of the form identifier[\\tversion[\\tdescription]].
        Any tab after the second one belongs to the description.
        Raises MalformedLineError if the line carries no usable identifier.
        """
        if not isinstance(line, str):
            raise MalformedLineError("PackageRecord.parse expects a string")

        line = line.rstrip("\r\n")
        fields = line.split(FIELD_SEPARATOR, 2)
        identifier = fields[0].strip()
        if not identifier or not IDENTIFIER_RE.match(identifier):
            raise MalformedLineError(f"Invalid cache line: {line!r}")

        version = fields[1] if len(fields) > 1 else None
        description = fields[2] if len(fields) > 2 else None
        return PackageRecord(
            identifier=identifier,
            version=version or None,
            description=description or None,
            prefixed=prefixed,
        )

    # -----
    # Derived fields
    # -----
    @property
    def name(self) -> str:
        """Package-name portion of the identifier, without channel or flake prefix."""
        if "#" in self.identifier:
            return self.identifier.split("#", 1)[1]
        if self.prefixed and "." in self.identifier:
            return self.identifier.split(".", 1)[1]
        return self.identifier

    def fields(self) -> Tuple[str, str, str]:
        return (self.identifier, self.version or "", self.description or "")

    def to_line(self) -> str:
        """Return the cache line form; trailing empty fields are dropped."""
        parts = list(self.fields())
        while len(parts) > 1 and not parts[-1]:
            parts.pop()
        return FIELD_SEPARATOR.join(parts)

    def __str__(self) -> str:
        return self.to_line()


def split_lines(text: str) -> List[str]:
    """
    Split text into cache lines on "\\n" only.
    str.splitlines() would also break on \\x0c, \\x85, \\u2028 and friends,
    which can appear inside descriptions.
    """
    lines = text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return [line.rstrip("\r") for line in lines]
