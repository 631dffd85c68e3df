"""
Classify package records against a search term.

  exact     SEARCH_TERM          (package name)
  direct    SEARCH_TERMbar       (package name)
  indirect  fooSEARCH_TERMbar    (any column)

Predicates are checked in that order and the first hit wins, so every record
lands in at most one bucket. Records keep their cache order inside a bucket.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Iterator, List, Optional, Tuple

from .record import PackageRecord


class MatchType(Enum):
    EXACT = "exact"
    DIRECT = "direct"
    INDIRECT = "indirect"


@dataclass
class MatchSet:
    exact: List[PackageRecord] = field(default_factory=list)
    direct: List[PackageRecord] = field(default_factory=list)
    indirect: List[PackageRecord] = field(default_factory=list)

    def bucket(self, match_type: MatchType) -> List[PackageRecord]:
        return getattr(self, match_type.value)

    def buckets(self, flip: bool = False) -> List[Tuple[MatchType, List[PackageRecord]]]:
        order = [MatchType.EXACT, MatchType.DIRECT, MatchType.INDIRECT]
        if flip:
            order.reverse()
        return [(t, self.bucket(t)) for t in order]

    def __iter__(self) -> Iterator[PackageRecord]:
        for _, records in self.buckets():
            yield from records

    def __len__(self) -> int:
        return len(self.exact) + len(self.direct) + len(self.indirect)


def _fold(text: Optional[str], ignore_case: bool) -> str:
    text = text or ""
    return text.lower() if ignore_case else text


def match_type(record: PackageRecord, term: str, ignore_case: bool = False) -> Optional[MatchType]:
    """Return the bucket for record, or None if the term appears nowhere in it."""
    needle = _fold(term, ignore_case)
    name = _fold(record.name, ignore_case)

    if name == needle:
        return MatchType.EXACT
    if name.startswith(needle):
        return MatchType.DIRECT
    if any(needle in _fold(value, ignore_case) for value in record.fields()):
        return MatchType.INDIRECT
    return None


def classify(records: Iterable[PackageRecord], term: str, ignore_case: bool = False) -> MatchSet:
    if not term:
        raise ValueError("search term must not be empty")

    matches = MatchSet()
    for record in records:
        kind = match_type(record, term, ignore_case)
        if kind is not None:
            matches.bucket(kind).append(record)
    return matches
