"""Two-pass indexing and reconciliation over all configured directories."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path

from dir_dedupe.config import DedupeConfig
from dir_dedupe.index import (
    DigestFunction,
    DirectoryScan,
    SidecarStore,
    get_digest,
    index_directory,
)
from dir_dedupe.logging import (
    AuditEvent,
    AuditWriteError,
    ConsoleReporter,
    JsonlAuditLogger,
    new_run_id,
    utc_timestamp,
)
from dir_dedupe.reconcile import DeletionError, ReconcileResult, RemoveFunction, reconcile


@dataclass(slots=True, frozen=True)
class RunSummary:
    """Everything one pipeline run did and failed to do."""

    run_id: str
    pre_scans: tuple[DirectoryScan, ...]
    reconciled: ReconcileResult
    post_scans: tuple[DirectoryScan, ...]
    audit_failures: tuple[AuditWriteError, ...] = ()

    @property
    def deleted(self) -> tuple[Path, ...]:
        return self.reconciled.deleted

    @property
    def deletion_failures(self) -> tuple[DeletionError, ...]:
        return self.reconciled.failures

    @property
    def failures(self) -> tuple[Exception, ...]:
        output: list[Exception] = []
        for scan in self.pre_scans:
            output.extend(scan.failures)
        output.extend(self.reconciled.failures)
        for scan in self.post_scans:
            output.extend(scan.failures)
        output.extend(self.audit_failures)
        return tuple(output)


class _AuditTrail:
    """Writes run events to the audit log, if any, and stops at the first write failure."""

    def __init__(self, path: Path | None, run_id: str, reporter: ConsoleReporter) -> None:
        self._run_id = run_id
        self._reporter = reporter
        self._logger: JsonlAuditLogger | None = None
        self.failures: list[AuditWriteError] = []
        if path is None:
            return
        try:
            self._logger = JsonlAuditLogger(path)
        except OSError as exc:
            self._give_up(path, exc)

    def record(
        self,
        event: str,
        *,
        ok: bool,
        path: Path | None,
        detail: dict[str, object],
    ) -> None:
        if self._logger is None:
            return
        try:
            self._logger.append(
                AuditEvent(
                    timestamp=utc_timestamp(),
                    run_id=self._run_id,
                    event=event,
                    ok=ok,
                    path=str(path) if path is not None else None,
                    detail=detail,
                )
            )
        except OSError as exc:
            self._give_up(self._logger.path, exc)

    def record_failure(self, error: Exception) -> None:
        self.record(
            type(error).__name__,
            ok=False,
            path=getattr(error, "path", None),
            detail={"reason": getattr(error, "reason", str(error))},
        )

    def _give_up(self, path: Path, exc: OSError) -> None:
        error = AuditWriteError(path, exc.strerror or str(exc))
        self.failures.append(error)
        self._reporter.failure(error)
        self._logger = None


def run_pipeline(
    config: DedupeConfig,
    reporter: ConsoleReporter | None = None,
    remove: RemoveFunction = os.remove,
) -> RunSummary:
    """Index every directory, remove duplicates, then index again.

    Records that could not be re-checked in the first pass stay in their
    sidecars but take no part in duplicate resolution.
    """
    reporter = reporter or ConsoleReporter()
    store = SidecarStore(name=config.sidecar_name, digest_name=config.digest)
    digest = get_digest(config.digest)
    run_id = new_run_id()
    audit = _AuditTrail(config.audit_log, run_id, reporter)

    reporter.phase("pre-process")
    pre_scans = _index_all(config.dirs, store, digest, reporter, audit)

    result = reconcile((scan.verified_index for scan in pre_scans), remove=remove)
    for path in result.deleted:
        reporter.deleted(path)
        audit.record("deleted", ok=True, path=path, detail={})
    for error in result.failures:
        reporter.failure(error)
        audit.record_failure(error)

    reporter.phase("post-process")
    post_scans = _index_all(config.dirs, store, digest, reporter, audit)

    summary = RunSummary(
        run_id=run_id,
        pre_scans=pre_scans,
        reconciled=result,
        post_scans=post_scans,
        audit_failures=tuple(audit.failures),
    )
    audit.record(
        "run_finished",
        ok=not summary.failures,
        path=None,
        detail={
            "directories": len(config.dirs),
            "deleted": len(summary.deleted),
            "failures": len(summary.failures),
            "deletion_failures": len(summary.deletion_failures),
        },
    )
    summary = replace(summary, audit_failures=tuple(audit.failures))
    reporter.summary(summary)
    return summary


def _index_all(
    dirs: tuple[Path, ...],
    store: SidecarStore,
    digest: DigestFunction,
    reporter: ConsoleReporter,
    audit: _AuditTrail,
) -> tuple[DirectoryScan, ...]:
    scans: list[DirectoryScan] = []
    for directory in dirs:
        scan = index_directory(directory, store, digest, progress=reporter.progress)
        for error in scan.failures:
            reporter.failure(error)
            audit.record_failure(error)
        scans.append(scan)
    return tuple(scans)
