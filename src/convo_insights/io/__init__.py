"""I/O utilities for reading archives and persisting job artifacts."""

from convo_insights.io.archive import (
    extract_user_messages,
    iter_conversation_records,
    parse_archive,
)
from convo_insights.io.save import append_jsonl, ensure_directory, read_json_dict, save_json
from convo_insights.io.store import (
    AllowListEntitlements,
    ArchiveSource,
    EntitlementChecker,
    JobTracker,
    LocalJobStore,
    ReportSink,
    load_report_bundle,
)

__all__ = [
    "AllowListEntitlements",
    "ArchiveSource",
    "EntitlementChecker",
    "JobTracker",
    "LocalJobStore",
    "ReportSink",
    "append_jsonl",
    "ensure_directory",
    "extract_user_messages",
    "iter_conversation_records",
    "load_report_bundle",
    "parse_archive",
    "read_json_dict",
    "save_json",
]
