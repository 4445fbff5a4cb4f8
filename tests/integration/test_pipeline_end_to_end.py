from __future__ import annotations

import io
import json
import os
from pathlib import Path

import pytest

from dir_dedupe.cli import main
from dir_dedupe.config import DedupeConfig, default_config
from dir_dedupe.index import DIGESTS, xxh64_file
from dir_dedupe.logging import AuditWriteError, ConsoleReporter
from dir_dedupe.runner import run_pipeline


def _write(path: Path, data: bytes, mtime: int) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    os.utime(path, (mtime, mtime))


def _sidecar(directory: Path) -> dict[str, object]:
    return json.loads((directory / "results.json").read_text(encoding="utf-8"))


def _quiet() -> ConsoleReporter:
    return ConsoleReporter(out=io.StringIO(), err=io.StringIO())


def _audit_events(path: Path, run_id: str) -> list[dict[str, object]]:
    events = [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]
    return [item for item in events if item["run_id"] == run_id]


def test_older_duplicate_is_removed_and_indices_reflect_it(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.chdir(tmp_path)
    _write(tmp_path / "A" / "f1", b"abc", 100)
    _write(tmp_path / "B" / "f2", b"abc", 200)

    summary = run_pipeline(default_config(["A", "B"]), reporter=_quiet())

    assert sorted(p.name for p in (tmp_path / "A").iterdir()) == ["results.json"]
    assert _sidecar(tmp_path / "A")["files"] == []
    files = _sidecar(tmp_path / "B")["files"]
    assert len(files) == 1
    assert files[0]["path"] == "f2"
    assert files[0]["size"] == 3
    assert files[0]["date"] == 200
    assert summary.deleted == (Path("A") / "f1",)
    assert summary.failures == ()
    assert summary.post_scans[0].removed == ("f1",)


def test_second_run_leaves_sidecars_byte_identical(tmp_path: Path) -> None:
    _write(tmp_path / "A" / "one", b"one", 100)
    _write(tmp_path / "A" / "two", b"two", 100)
    _write(tmp_path / "B" / "one-copy", b"one", 150)
    _write(tmp_path / "B" / "three", b"three", 100)
    config = DedupeConfig(dirs=(tmp_path / "A", tmp_path / "B"))

    run_pipeline(config, reporter=_quiet())
    first = [(d / "results.json").read_bytes() for d in config.dirs]
    second_summary = run_pipeline(config, reporter=_quiet())
    second = [(d / "results.json").read_bytes() for d in config.dirs]

    assert first == second
    assert second_summary.deleted == ()
    assert all(scan.hashed == 0 for scan in second_summary.pre_scans)


def test_tied_copies_always_keep_the_same_file(tmp_path: Path) -> None:
    _write(tmp_path / "A" / "same", b"tie", 500)
    _write(tmp_path / "B" / "same", b"tie", 500)

    run_pipeline(DedupeConfig(dirs=(tmp_path / "B", tmp_path / "A")), reporter=_quiet())
    run_pipeline(DedupeConfig(dirs=(tmp_path / "A", tmp_path / "B")), reporter=_quiet())

    assert (tmp_path / "A" / "same").exists()
    assert not (tmp_path / "B" / "same").exists()


def test_deletion_failure_appears_in_summary_and_audit_log(tmp_path: Path) -> None:
    _write(tmp_path / "A" / "old", b"dup", 100)
    _write(tmp_path / "B" / "new", b"dup", 200)
    audit_path = tmp_path / "audit.jsonl"
    config = DedupeConfig(dirs=(tmp_path / "A", tmp_path / "B"), audit_log=audit_path)
    err = io.StringIO()

    def refuse(path: Path) -> None:
        raise PermissionError(13, "Permission denied", str(path))

    summary = run_pipeline(
        config, reporter=ConsoleReporter(out=io.StringIO(), err=err), remove=refuse
    )

    assert (tmp_path / "A" / "old").exists()
    assert [item.path for item in summary.deletion_failures] == [tmp_path / "A" / "old"]
    assert "Duplicates left in place" in err.getvalue()
    assert str(tmp_path / "A" / "old") in err.getvalue()
    events = _audit_events(audit_path, summary.run_id)
    assert [item["event"] for item in events] == ["DeletionError", "run_finished"]
    assert events[-1]["ok"] is False
    assert events[-1]["detail"]["deletion_failures"] == 1


def test_phases_and_progress_are_printed(tmp_path: Path) -> None:
    _write(tmp_path / "A" / "f", b"x", 100)
    out = io.StringIO()

    run_pipeline(
        DedupeConfig(dirs=(tmp_path / "A",)), reporter=ConsoleReporter(out=out, err=io.StringIO())
    )

    lines = out.getvalue().splitlines()
    assert lines[0] == "start pre-process"
    assert f"Processing 1 of 1 in {tmp_path / 'A'}" in lines
    assert "start post-process" in lines


def test_cli_uses_config_json_in_working_directory(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.chdir(tmp_path)
    _write(tmp_path / "A" / "f1", b"abc", 100)
    _write(tmp_path / "B" / "f2", b"abc", 200)
    (tmp_path / "config.json").write_text(json.dumps({"dirs": ["A", "B"]}), encoding="utf-8")

    assert main([]) == 0

    captured = capsys.readouterr()
    assert "start pre-process" in captured.out
    assert "start post-process" in captured.out
    assert not (tmp_path / "A" / "f1").exists()
    assert (tmp_path / "B" / "f2").exists()


def test_cli_accepts_explicit_config_path(tmp_path: Path) -> None:
    _write(tmp_path / "data" / "f", b"x", 100)
    config_path = tmp_path / "custom.json"
    config_path.write_text(json.dumps({"dirs": [str(tmp_path / "data")]}), encoding="utf-8")

    assert main([str(config_path)]) == 0
    assert (tmp_path / "data" / "results.json").exists()


def test_cli_exits_nonzero_on_configuration_error(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.chdir(tmp_path)

    assert main([]) == 1

    captured = capsys.readouterr()
    assert "ConfigurationError" in captured.err
    assert "configuration file not found" in captured.err
    assert captured.out == ""


def test_missing_directory_does_not_stop_other_directories(tmp_path: Path) -> None:
    _write(tmp_path / "B" / "f", b"x", 100)

    summary = run_pipeline(
        DedupeConfig(dirs=(tmp_path / "missing", tmp_path / "B")), reporter=_quiet()
    )

    assert _sidecar(tmp_path / "B")["files"][0]["path"] == "f"
    assert len(summary.failures) == 2


def test_unwritable_audit_log_is_reported_and_run_completes(tmp_path: Path) -> None:
    _write(tmp_path / "A" / "f1", b"abc", 100)
    _write(tmp_path / "B" / "f2", b"abc", 200)
    audit_dir = tmp_path / "audit"
    audit_dir.mkdir()
    err = io.StringIO()
    config = DedupeConfig(dirs=(tmp_path / "A", tmp_path / "B"), audit_log=audit_dir)

    summary = run_pipeline(config, reporter=ConsoleReporter(out=io.StringIO(), err=err))

    assert not (tmp_path / "A" / "f1").exists()
    assert _sidecar(tmp_path / "A")["files"] == []
    assert [row["path"] for row in _sidecar(tmp_path / "B")["files"]] == ["f2"]
    assert len(summary.audit_failures) == 1
    assert isinstance(summary.failures[-1], AuditWriteError)
    assert summary.audit_failures[0].path == audit_dir
    assert err.getvalue().count("AuditWriteError") == 2


def test_cli_rejects_audit_log_pointing_at_directory(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.chdir(tmp_path)
    _write(tmp_path / "A" / "f1", b"abc", 100)
    (tmp_path / "logs").mkdir()
    (tmp_path / "config.json").write_text(
        json.dumps({"dirs": ["A"], "audit_log": "logs"}), encoding="utf-8"
    )

    assert main([]) == 1

    assert "'audit_log' points at a directory" in capsys.readouterr().err
    assert not (tmp_path / "A" / "results.json").exists()


def test_file_that_could_not_be_rehashed_is_not_resolved_against(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    _write(tmp_path / "A" / "f1", b"abc", 100)
    config = DedupeConfig(dirs=(tmp_path / "A", tmp_path / "B"))
    (tmp_path / "B").mkdir()
    run_pipeline(config, reporter=_quiet())

    _write(tmp_path / "A" / "f1", b"abcd, rewritten", 300)
    _write(tmp_path / "B" / "g", b"abc", 200)

    def digest(path: Path) -> int:
        if path.name == "f1":
            raise OSError(5, "Input/output error")
        return xxh64_file(path)

    monkeypatch.setitem(DIGESTS, "xxh64", digest)
    summary = run_pipeline(config, reporter=_quiet())

    assert summary.deleted == ()
    assert (tmp_path / "A" / "f1").exists()
    assert (tmp_path / "B" / "g").exists()
    assert summary.pre_scans[0].unverified == ("f1",)
    assert [row["date"] for row in _sidecar(tmp_path / "A")["files"]] == [100]
