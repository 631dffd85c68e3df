import json
import subprocess
from unittest import mock

import pytest

from nps.errors import SourceFailedError
from nps.source import EXPERIMENTAL_COMMAND, LEGACY_COMMAND, ListingSource, SourceMode


def completed(stdout: bytes):
    return subprocess.CompletedProcess(args=[], returncode=0, stdout=stdout, stderr=b"")


@mock.patch("nps.source.subprocess.run")
def test_legacy_listing_is_tab_separated(mock_run):
    mock_run.return_value = completed(
        b"nixos.vim     vim-9.0.1     The most popular clone of the VI editor\n"
        b"nixos.hello   hello-2.12\n"
        b"\n"
    )
    lines = ListingSource(SourceMode.LEGACY, progress=False).produce_listing()

    mock_run.assert_called_once_with(list(LEGACY_COMMAND), check=True, capture_output=True)
    assert lines == [
        "nixos.vim\tvim-9.0.1\tThe most popular clone of the VI editor",
        "nixos.hello\thello-2.12",
    ]


@mock.patch("nps.source.subprocess.run")
def test_experimental_listing_parses_json(mock_run):
    payload = {
        "legacyPackages.x86_64-linux.vim": {"pname": "vim", "version": "9.0.1", "description": "VI\teditor\nclone"},
        "legacyPackages.x86_64-linux.hello": {"pname": "hello", "version": "2.12", "description": ""},
    }
    mock_run.return_value = completed(json.dumps(payload).encode())
    lines = ListingSource(SourceMode.EXPERIMENTAL, progress=False).produce_listing()

    mock_run.assert_called_once_with(list(EXPERIMENTAL_COMMAND), check=True, capture_output=True)
    assert lines == ["hello\t2.12\t", "vim\t9.0.1\tVI editor clone"]


@mock.patch("nps.source.subprocess.run")
def test_nonzero_exit_is_source_failure(mock_run):
    mock_run.side_effect = subprocess.CalledProcessError(1, list(LEGACY_COMMAND), stderr=b"error: no channels")
    with pytest.raises(SourceFailedError, match="no channels"):
        ListingSource(progress=False).produce_listing()


@mock.patch("nps.source.subprocess.run", side_effect=FileNotFoundError("nix-env"))
def test_missing_command_is_source_failure(mock_run):
    with pytest.raises(SourceFailedError, match="not found"):
        ListingSource(progress=False).produce_listing()


@mock.patch("nps.source.subprocess.run")
def test_invalid_json_is_source_failure(mock_run):
    mock_run.return_value = completed(b"{not json")
    with pytest.raises(SourceFailedError, match="invalid JSON"):
        ListingSource(SourceMode.EXPERIMENTAL, progress=False).produce_listing()


@mock.patch("nps.source.subprocess.run")
def test_undecodable_output_is_source_failure(mock_run):
    mock_run.return_value = completed(b"\xff\xfe")
    with pytest.raises(SourceFailedError, match="unreadable"):
        ListingSource(progress=False).produce_listing()


def test_hint_points_to_the_other_mode():
    assert "flakes" in ListingSource(SourceMode.LEGACY, progress=False).hint()
    assert "channels" in ListingSource(SourceMode.EXPERIMENTAL, progress=False).hint()
    assert ListingSource(SourceMode.LEGACY, progress=False).prefixed
    assert not ListingSource(SourceMode.EXPERIMENTAL, progress=False).prefixed


@mock.patch("nps.source.subprocess.run")
def test_unicode_line_breaks_stay_inside_description(mock_run):
    mock_run.return_value = completed("nixos.foo   foo-1.0   Tool\u2028hello helper\x85x\n".encode("utf-8"))
    lines = ListingSource(SourceMode.LEGACY, progress=False).produce_listing()
    assert lines == ["nixos.foo\tfoo-1.0\tTool hello helper x"]
