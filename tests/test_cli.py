"""Tests for the command-line interface."""

import re

import pytest

from observation_store.cli import main

UUID_RE = r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}"


@pytest.fixture
def run(file_database_url, capsys):
    """Run the CLI against a migrated temp database, returning (exit code, stdout)."""

    def _run(*args):
        code = main(["--database-url", file_database_url, *args])
        return code, capsys.readouterr().out

    code, out = _run("migrate")
    assert code == 0
    assert out.strip() == "ok: migrated"
    return _run


def ingest(run, *args) -> str:
    code, out = run("ingest-text", *args)
    assert code == 0
    return re.search(UUID_RE, out).group(0)


class TestCli:
    def test_ingest_reports_inserted_then_existing(self, run):
        code, first = run("ingest-text", "--content", "same text")
        code, second = run("ingest-text", "--content", "same text")

        first_id = re.search(UUID_RE, first).group(0)
        assert first.strip() == f"ok: inserted observation {first_id}"
        assert second.strip() == f"ok: existing observation {first_id}"

    def test_ingest_from_file(self, run, tmp_path):
        path = tmp_path / "doc.txt"
        path.write_text("from a file", encoding="utf-8")

        observation_id = ingest(run, "--file", str(path), "--title", "Doc")
        code, out = run("get-observation", observation_id)

        assert code == 0
        assert f"id: {observation_id}" in out
        assert "title: Doc" in out
        assert "source_kind: text" in out
        assert "content_bytes: 11" in out

    def test_content_and_file_are_exclusive(self, run, tmp_path):
        with pytest.raises(SystemExit):
            run("ingest-text", "--content", "x", "--file", str(tmp_path / "x.txt"))

    def test_empty_content_fails(self, run):
        code = run("ingest-text", "--content", "   ")[0]
        assert code == 1

    def test_missing_file_fails(self, run, tmp_path):
        code, _ = run("ingest-text", "--file", str(tmp_path / "absent.txt"))
        assert code == 1

    def test_non_utf8_file_fails(self, run, file_database_url, tmp_path, capsys):
        path = tmp_path / "bad.txt"
        path.write_bytes(b"ok \xff\xfe bad")

        code = main(["--database-url", file_database_url, "ingest-text", "--file", str(path)])

        assert code == 1
        err = capsys.readouterr().err
        assert "error: " in err
        assert "not valid UTF-8 (byte 3)" in err

    def test_get_missing_observation(self, run):
        missing = "01900000-0000-7000-8000-000000000000"
        code, out = run("get-observation", missing)
        assert code == 0
        assert out.strip() == f"not found: observation {missing}"

    def test_chunk_and_list(self, run):
        observation_id = ingest(run, "--content", "hello world")

        code, out = run("chunk", observation_id, "--chunk-size", "5")
        assert code == 0
        assert out.strip() == "ok: upserted 3 chunks"

        code, out = run("list-chunks", observation_id)
        lines = out.strip().splitlines()
        assert code == 0
        assert len(lines) == 3
        assert re.fullmatch(
            UUID_RE + r" idx=0 bytes=5 start=0 end=5 tokens=1", lines[0]
        )
        assert lines[2].endswith("idx=2 bytes=1 start=10 end=11 tokens=1")

    def test_chunk_missing_observation(self, run):
        missing = "01900000-0000-7000-8000-000000000000"
        code, out = run("chunk", missing, "--chunk-size", "5")
        assert code == 0
        assert out.strip() == f"not found: observation {missing}"

    def test_zero_chunk_size_fails(self, run):
        observation_id = ingest(run, "--content", "abc")
        code, _ = run("chunk", observation_id, "--chunk-size", "0")
        assert code == 1

    def test_malformed_id_is_a_usage_error(self, run):
        with pytest.raises(SystemExit) as exc_info:
            run("get-observation", "nope")
        assert exc_info.value.code == 2
