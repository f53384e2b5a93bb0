"""Tests for the local job store and entitlement checks."""

from __future__ import annotations

import json

import pytest

from convo_insights.io import (
    AllowListEntitlements,
    ArchiveSource,
    EntitlementChecker,
    JobTracker,
    LocalJobStore,
    ReportSink,
    load_report_bundle,
)
from convo_insights.schemas import ReportBundle, ReportKind


def _bundle() -> ReportBundle:
    return ReportBundle(
        reports={ReportKind.UNFILTERED_MIRROR: {"observation": "Loves edge cases."}},
        processing_errors=["fbiReport: timed out after 90.0s"],
        conversation_count=4,
    )


class TestLocalJobStore:
    def test_satisfies_collaborator_protocols(self, tmp_path):
        store = LocalJobStore(tmp_path)
        assert isinstance(store, ArchiveSource)
        assert isinstance(store, ReportSink)
        assert isinstance(store, JobTracker)
        assert isinstance(AllowListEntitlements([]), EntitlementChecker)

    def test_stage_and_fetch_archive(self, tmp_path):
        source = tmp_path / "export.json"
        source.write_bytes(b"[]")
        store = LocalJobStore(tmp_path / "runs")

        staged = store.stage_archive("job-1", source)

        assert staged == tmp_path / "runs" / "job-1" / "archive.json"
        assert store.fetch_archive_bytes("job-1") == b"[]"

    def test_fetch_missing_archive_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            LocalJobStore(tmp_path).fetch_archive_bytes("nope")

    @pytest.mark.parametrize("job_id", ["", ".", "..", "a/b", "a\\b"])
    def test_invalid_job_ids_rejected(self, tmp_path, job_id):
        with pytest.raises(ValueError):
            LocalJobStore(tmp_path).job_dir(job_id)

    def test_save_report_bundle_writes_flat_wire_shape(self, tmp_path):
        store = LocalJobStore(tmp_path)
        store.save_report_bundle("user-1", "job-1", _bundle())

        payload = json.loads((tmp_path / "job-1" / "report_bundle.json").read_text())
        assert payload["userId"] == "user-1"
        assert payload["jobId"] == "job-1"
        assert payload["unfilteredMirror"] == {"observation": "Loves edge cases."}
        assert payload["processingErrors"] == ["fbiReport: timed out after 90.0s"]
        assert "fbiReport" not in payload

    def test_progress_snapshot_and_history(self, tmp_path):
        store = LocalJobStore(tmp_path)
        store.save_job_progress("job-1", 10, "parsing")
        store.save_job_progress("job-1", 100, "done")

        snapshot = store.load_job_progress("job-1")
        assert snapshot["percent"] == 100
        assert snapshot["status"] == "done"
        history = (tmp_path / "job-1" / "progress.jsonl").read_text().splitlines()
        assert [json.loads(line)["status"] for line in history] == ["parsing", "done"]

    def test_load_progress_for_unknown_job_is_empty(self, tmp_path):
        assert LocalJobStore(tmp_path).load_job_progress("ghost") == {}


class TestAllowListEntitlements:
    def test_listed_users_only(self):
        entitlements = AllowListEntitlements([" user-1 ", "", "user-2"])
        assert entitlements.is_entitled("user-1")
        assert entitlements.is_entitled("user-2")
        assert not entitlements.is_entitled("user-3")

    def test_wildcard_allows_everyone(self):
        assert AllowListEntitlements(["*"]).is_entitled("anyone")

    def test_empty_list_allows_nobody(self):
        assert not AllowListEntitlements([]).is_entitled("user-1")


class TestLoadReportBundle:
    def test_load_from_directory_or_file(self, tmp_path):
        store = LocalJobStore(tmp_path)
        store.save_report_bundle("user-1", "job-1", _bundle())

        from_dir = load_report_bundle(tmp_path / "job-1")
        from_file = load_report_bundle(tmp_path / "job-1" / "report_bundle.json")

        assert from_dir.populated_kinds == [ReportKind.UNFILTERED_MIRROR]
        assert from_dir.conversation_count == 4
        assert from_file == from_dir

    def test_missing_bundle_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_report_bundle(tmp_path / "missing")

    def test_corrupt_bundle_raises(self, tmp_path):
        path = tmp_path / "report_bundle.json"
        path.write_text("{truncated")
        with pytest.raises(ValueError):
            load_report_bundle(path)
