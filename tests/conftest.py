from pathlib import Path
from typing import List, Optional

import pytest

from nps.config import QueryOptions
from nps.errors import SourceFailedError
from nps.source import ListingSource, SourceMode

LEGACY_LINES = [
    "nixos.MatchMyDescription\ta.b.c\tMyTestPackageName appears in my description",
    "nixos.MyTestPackageName\t1.0.0\tTest package description",
    "nixos.MyTestPackageName1\t1.1.0\tAnother test package description",
    "nixos.MyTestPackageName2\t1.0.1",
    "nixos.mytestpackageName3\t3.2.1\tMore test package description, now with MyTestPackageName",
    "nixos.hello\t2.12\tA program that produces a familiar, friendly greeting",
]


class FakeSource(ListingSource):
    """ListingSource that never spawns nix."""

    def __init__(self, lines: Optional[List[str]] = None, error: Optional[Exception] = None, mode=SourceMode.LEGACY):
        super().__init__(mode, progress=False)
        self.lines = lines or []
        self.error = error
        self.calls = 0

    def produce_listing(self) -> List[str]:
        self.calls += 1
        if self.error:
            raise self.error
        return list(self.lines)


@pytest.fixture
def cache_folder(tmp_path: Path) -> Path:
    folder = tmp_path / "nps-cache"
    folder.mkdir()
    return folder


@pytest.fixture
def legacy_cache(cache_folder: Path) -> Path:
    path = cache_folder / "nps.cache"
    path.write_text("\n".join(LEGACY_LINES) + "\n", encoding="utf-8")
    return path


@pytest.fixture
def options(cache_folder: Path):
    def make(**overrides) -> QueryOptions:
        values = {"cache_folder": cache_folder, "search_term": "MyTestPackageName"}
        values.update(overrides)
        return QueryOptions(**values)

    return make


@pytest.fixture
def failing_source() -> FakeSource:
    return FakeSource(error=SourceFailedError("'nix-env' exited with status 1: boom"))
