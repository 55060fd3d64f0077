"""
Tests for graphdrive.cli module.

Tests command handlers through main() including:
- Exit codes for success and failure
- Result output
- Argument parsing
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest
import requests_mock

from graphdrive.cli import build_parser, main

GRAPH = "https://graph.microsoft.com/v1.0"


@pytest.fixture(autouse=True)
def isolated_env(tmp_test_dir, monkeypatch):
    """Run every CLI test in an empty directory without a token in the environment."""
    monkeypatch.chdir(tmp_test_dir)
    monkeypatch.delenv("GRAPHDRIVE_ACCESS_TOKEN", raising=False)


def _run(argv: list[str]) -> int:
    with pytest.raises(SystemExit) as exc_info:
        main(argv)
    return exc_info.value.code


class TestParser:
    """Tests for argument parsing."""

    def test_delta_options(self):
        """Test that delta parses --from-token and --json."""
        args = build_parser().parse_args(["delta", "--from-token", "abc", "--json"])
        assert args.token_from == "abc"
        assert args.json is True

    def test_command_required(self):
        """Test that running without a command is a usage error."""
        assert _run([]) == 2


class TestAppFolderCommand:
    """Tests for 'graphdrive app-folder'."""

    def test_success(self, capsys):
        """Test that the folder id is printed and exit code is 0."""
        with requests_mock.Mocker() as m:
            m.get(f"{GRAPH}/me/drive/special/approot", json={"id": "APP1"})
            code = _run(["app-folder", "--token", "t"])

        assert code == 0
        assert "APP1" in capsys.readouterr().out
        assert m.last_request.headers["Authorization"] == "Bearer t"

    def test_not_found(self, capsys):
        """Test that a 404 exits with 1 and an error message."""
        with requests_mock.Mocker() as m:
            m.get(f"{GRAPH}/me/drive/special/approot", status_code=404, json={})
            code = _run(["app-folder", "--token", "t"])

        assert code == 1
        assert "Error:" in capsys.readouterr().out

    def test_missing_token(self, capsys):
        """Test that running without any token exits with 1."""
        code = _run(["app-folder"])
        assert code == 1
        assert "GRAPHDRIVE_ACCESS_TOKEN" in capsys.readouterr().out


class TestMkdirCommand:
    """Tests for 'graphdrive mkdir'."""

    def test_defaults_to_app_folder(self, capsys):
        """Test that the folder is created under the app folder by default."""
        with requests_mock.Mocker() as m:
            m.get(f"{GRAPH}/me/drive/special/approot", json={"id": "APP1"})
            m.post(f"{GRAPH}/me/drive/items/APP1/children", status_code=201, json={"id": "NEW1"})
            code = _run(["mkdir", "Photos", "--token", "t"])

        assert code == 0
        assert "NEW1" in capsys.readouterr().out

    def test_explicit_parent(self):
        """Test that --parent skips the app folder lookup."""
        with requests_mock.Mocker() as m:
            m.post(f"{GRAPH}/me/drive/items/P9/children", status_code=201, json={"id": "NEW1"})
            code = _run(["mkdir", "Photos", "--parent", "P9", "--token", "t"])

        assert code == 0
        assert m.call_count == 1


class TestWriteCommand:
    """Tests for 'graphdrive write'."""

    def test_writes_default_text(self, capsys):
        """Test that the default text is uploaded."""
        with requests_mock.Mocker() as m:
            m.put(
                f"{GRAPH}/me/drive/special/approot:/hello.txt:/content",
                status_code=201,
                json={"webUrl": "https://drive.example.com/hello.txt"},
            )
            code = _run(["write", "hello.txt", "--token", "t"])

        assert code == 0
        assert m.last_request.body == b"This is a test text file"
        assert "https://drive.example.com/hello.txt" in capsys.readouterr().out


class TestUploadCommand:
    """Tests for 'graphdrive upload'."""

    def test_missing_file(self, capsys):
        """Test that a missing local file exits with 1."""
        code = _run(["upload", "nope.bin", "--token", "t"])
        assert code == 1
        assert "File not found" in capsys.readouterr().out

    def test_upload_success(self, tmp_test_dir: Path, capsys):
        """Test a single-chunk upload prints the results block."""
        (tmp_test_dir / "small.bin").write_bytes(b"payload")
        with requests_mock.Mocker() as m:
            m.post(
                f"{GRAPH}/me/drive/special/approot:/small.bin:/createUploadSession",
                json={
                    "uploadUrl": "https://upload.example.com/s1",
                    "expirationDateTime": "2030-01-01T00:00:00Z",
                    "nextExpectedRanges": ["0-"],
                },
            )
            m.put(
                "https://upload.example.com/s1",
                status_code=201,
                json={"id": "I1", "webUrl": "https://drive.example.com/small.bin"},
            )
            code = _run(["upload", "small.bin", "--token", "t"])

        out = capsys.readouterr().out
        assert code == 0
        assert "UPLOAD RESULTS" in out
        assert "[SUCCESS]" in out

    def test_upload_server_error(self, tmp_test_dir: Path):
        """Test that a rejected chunk exits with 1."""
        (tmp_test_dir / "small.bin").write_bytes(b"payload")
        with requests_mock.Mocker() as m:
            m.post(
                f"{GRAPH}/me/drive/special/approot:/small.bin:/createUploadSession",
                json={
                    "uploadUrl": "https://upload.example.com/s1",
                    "expirationDateTime": "2030-01-01T00:00:00Z",
                    "nextExpectedRanges": ["0-"],
                },
            )
            m.put("https://upload.example.com/s1", status_code=500, text="boom")
            code = _run(["upload", "small.bin", "--token", "t"])

        assert code == 1


class TestDeltaCommand:
    """Tests for 'graphdrive delta'."""

    def test_json_output(self, capsys, make_item):
        """Test that --json prints the token and changes as JSON."""
        with requests_mock.Mocker() as m:
            m.get(
                f"{GRAPH}/me/drive/root/delta",
                json={"@delta.token": "tok2", "value": [make_item("A", deleted={})]},
            )
            code = _run(["delta", "--from-token", "tok1", "--json", "--token", "t"])

        assert code == 0
        assert m.last_request.qs == {"token": ["tok1"]}
        output = json.loads(capsys.readouterr().out)
        assert output["sync_token"] == "tok2"
        assert output["changes"][0]["id"] == "A"
        assert output["changes"][0]["is_delete"] is True

    def test_text_output(self, capsys, make_item):
        """Test the human-readable results block."""
        with requests_mock.Mocker() as m:
            m.get(
                f"{GRAPH}/me/drive/root/delta",
                json={"@delta.token": "tok2", "value": [make_item("A", folder={})]},
            )
            code = _run(["delta", "--token", "t"])

        out = capsys.readouterr().out
        assert code == 0
        assert "DELTA RESULTS" in out
        assert "Sync Token:      tok2" in out

    def test_malformed_feed(self):
        """Test that a page without a delta token exits with 1."""
        with requests_mock.Mocker() as m:
            m.get(f"{GRAPH}/me/drive/root/delta", json={"value": []})
            assert _run(["delta", "--token", "t"]) == 1
