"""Collaborator protocols and their local-filesystem implementations."""

from __future__ import annotations

import logging
import shutil
from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path
from typing import Protocol, runtime_checkable

from convo_insights.io.save import append_jsonl, ensure_directory, read_json_dict, save_json
from convo_insights.schemas import ReportBundle

logger = logging.getLogger(__name__)

ARCHIVE_FILENAME = "archive.json"
BUNDLE_FILENAME = "report_bundle.json"
JOB_FILENAME = "job.json"
PROGRESS_FILENAME = "progress.jsonl"
ALLOW_ALL = "*"


@runtime_checkable
class ArchiveSource(Protocol):
    def fetch_archive_bytes(self, job_id: str) -> bytes: ...


@runtime_checkable
class EntitlementChecker(Protocol):
    def is_entitled(self, user_id: str) -> bool: ...


@runtime_checkable
class ReportSink(Protocol):
    def save_report_bundle(self, user_id: str, job_id: str, bundle: ReportBundle) -> None: ...


@runtime_checkable
class JobTracker(Protocol):
    def save_job_progress(self, job_id: str, percent: int, status: str) -> None: ...


class LocalJobStore:
    """Archive source, report sink and job tracker backed by one directory per job.

    Layout under ``root``::

        <job_id>/archive.json        staged archive bytes
        <job_id>/report_bundle.json  final bundle (written once)
        <job_id>/job.json            latest progress snapshot
        <job_id>/progress.jsonl      append-only progress history
    """

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def job_dir(self, job_id: str) -> Path:
        if not job_id or "/" in job_id or "\\" in job_id or job_id in {".", ".."}:
            raise ValueError(f"Invalid job id: {job_id!r}")
        return self.root / job_id

    def stage_archive(self, job_id: str, source_path: str | Path) -> Path:
        """Copy an archive file into the job directory."""

        target = ensure_directory(self.job_dir(job_id)) / ARCHIVE_FILENAME
        shutil.copyfile(Path(source_path), target)
        logger.info("Staged archive for job %s at %s", job_id, target)
        return target

    def fetch_archive_bytes(self, job_id: str) -> bytes:
        path = self.job_dir(job_id) / ARCHIVE_FILENAME
        if not path.exists():
            raise FileNotFoundError(f"No staged archive for job '{job_id}': {path}")
        return path.read_bytes()

    def save_report_bundle(self, user_id: str, job_id: str, bundle: ReportBundle) -> None:
        path = self.job_dir(job_id) / BUNDLE_FILENAME
        payload = {"userId": user_id, "jobId": job_id, **bundle.to_wire()}
        save_json(path, payload)
        logger.info(
            "Saved report bundle for job %s (%d reports, %d errors)",
            job_id,
            len(bundle.reports),
            len(bundle.processing_errors),
        )

    def save_job_progress(self, job_id: str, percent: int, status: str) -> None:
        job_dir = ensure_directory(self.job_dir(job_id))
        row = {
            "jobId": job_id,
            "percent": int(percent),
            "status": status,
            "updatedAt": datetime.now(UTC).isoformat(),
        }
        save_json(job_dir / JOB_FILENAME, row)
        append_jsonl(job_dir / PROGRESS_FILENAME, [row])

    def load_job_progress(self, job_id: str) -> dict:
        return read_json_dict(self.job_dir(job_id) / JOB_FILENAME)


class AllowListEntitlements:
    """Entitlement checker backed by a static allow-list of user ids."""

    def __init__(self, premium_user_ids: Iterable[str]) -> None:
        self.premium_user_ids = frozenset(
            user_id.strip() for user_id in premium_user_ids if user_id.strip()
        )

    def is_entitled(self, user_id: str) -> bool:
        if ALLOW_ALL in self.premium_user_ids:
            return True
        return user_id.strip() in self.premium_user_ids


def load_report_bundle(path: str | Path) -> ReportBundle:
    """Load a stored bundle file (or a job directory containing one)."""

    bundle_path = Path(path)
    if bundle_path.is_dir():
        bundle_path = bundle_path / BUNDLE_FILENAME
    if not bundle_path.exists():
        raise FileNotFoundError(f"Report bundle not found: {bundle_path}")
    payload = read_json_dict(bundle_path)
    if not payload:
        raise ValueError(f"Report bundle is empty or unreadable: {bundle_path}")
    return ReportBundle.from_wire(payload)
