import os
from unittest import mock

import pytest

from conftest import LEGACY_LINES, FakeSource
from nps.cache import CacheStore
from nps.errors import CacheUnavailableError, CacheWriteError, EmptyResultError, SourceFailedError
from nps.matcher import classify


def test_exists_and_age(legacy_cache, cache_folder):
    store = CacheStore(legacy_cache)
    assert store.exists()
    assert store.age() is not None

    missing = CacheStore(cache_folder / "missing.cache")
    assert not missing.exists()
    assert missing.age() is None


def test_read_missing_cache_raises(cache_folder):
    with pytest.raises(CacheUnavailableError):
        CacheStore(cache_folder / "missing.cache").read()


def test_read_undecodable_cache_raises(cache_folder):
    path = cache_folder / "nps.cache"
    path.write_bytes(b"\xff\xfe\xfa broken")
    with pytest.raises(CacheUnavailableError):
        CacheStore(path).read()


def test_load_skips_malformed_lines(cache_folder):
    path = cache_folder / "nps.cache"
    path.write_text("nixos.hello\t2.12\tgreeting\n\n\tno identifier\nnixos.vim\t9.0\n", encoding="utf-8")
    records = CacheStore(path, prefixed=True).load()
    assert [r.name for r in records] == ["hello", "vim"]


def test_load_empty_cache(cache_folder):
    path = cache_folder / "nps.cache"
    path.write_text("", encoding="utf-8")
    assert CacheStore(path).load() == []


def test_refresh_creates_folder_and_replaces_cache(tmp_path):
    path = tmp_path / "deep" / "folder" / "nps.cache"
    store = CacheStore(path)
    count = store.refresh(FakeSource(LEGACY_LINES))
    assert count == len(LEGACY_LINES)
    assert path.read_text(encoding="utf-8").splitlines() == LEGACY_LINES

    store.refresh(FakeSource(["nixos.only\t1.0"]))
    assert path.read_text(encoding="utf-8") == "nixos.only\t1.0\n"
    # no temporary files left behind
    assert os.listdir(path.parent) == ["nps.cache"]


def test_source_failure_keeps_previous_cache(legacy_cache, failing_source):
    before = legacy_cache.read_bytes()
    with pytest.raises(SourceFailedError):
        CacheStore(legacy_cache).refresh(failing_source)
    assert legacy_cache.read_bytes() == before


def test_empty_result_keeps_previous_cache(legacy_cache):
    before = legacy_cache.read_bytes()
    with pytest.raises(EmptyResultError):
        CacheStore(legacy_cache).refresh(FakeSource([]))
    assert legacy_cache.read_bytes() == before


def test_interrupted_refresh_keeps_previous_cache(legacy_cache):
    before = legacy_cache.read_bytes()
    with mock.patch("nps.cache.os.replace", side_effect=KeyboardInterrupt):
        with pytest.raises(KeyboardInterrupt):
            CacheStore(legacy_cache).refresh(FakeSource(["nixos.new\t1.0"]))
    assert legacy_cache.read_bytes() == before
    assert os.listdir(legacy_cache.parent) == ["nps.cache"]


def test_write_failure_is_a_refresh_error(legacy_cache):
    before = legacy_cache.read_bytes()
    with mock.patch("nps.cache.os.replace", side_effect=PermissionError("read-only")):
        with pytest.raises(CacheWriteError):
            CacheStore(legacy_cache).refresh(FakeSource(["nixos.new\t1.0"]))
    assert legacy_cache.read_bytes() == before


def test_form_feed_in_description_is_not_a_line_break(cache_folder):
    path = cache_folder / "nps.cache"
    path.write_text("nixos.foo\t1.0\tpage one\x0cvim\nnixos.bar\t2.0\tcr\rinside\n", encoding="utf-8")
    store = CacheStore(path, prefixed=True)
    assert store.read() == ["nixos.foo\t1.0\tpage one\x0cvim", "nixos.bar\t2.0\tcr\rinside"]

    records = store.load()
    assert [r.identifier for r in records] == ["nixos.foo", "nixos.bar"]

    matches = classify(records, "vim")
    assert matches.exact == []
    assert matches.direct == []
    assert [r.identifier for r in matches.indirect] == ["nixos.foo"]
