"""Tests for CLI parser options and commands."""

import argparse
import json
import sys

import pytest

from convo_insights.cli import _EtaProgressPrinter, _format_duration, _parse_kinds, build_parser, main
from convo_insights.schemas import ReportKind


def _archive_bytes() -> bytes:
    return json.dumps(
        [
            {
                "id": "c1",
                "title": "Sourdough starter rescue",
                "messages": [{"role": "user", "content": "My starter smells like acetone. Help?"}],
            },
            {
                "id": "c2",
                "title": "Postgres vacuum tuning",
                "messages": [
                    {"role": "user", "content": "Autovacuum keeps falling behind on a hot table."}
                ],
            },
        ]
    ).encode("utf-8")


def _write_config(tmp_path, premium: str = "'*'") -> str:
    config = tmp_path / "config.yaml"
    config.write_text(
        f"output_dir: {tmp_path / 'runs'}\n"
        "extraction_batch_pause_seconds: 0\n"
        f"premium_user_ids: [{premium}]\n"
        "log_level: WARNING\n"
    )
    return str(config)


def test_run_parser_accepts_job_options():
    args = build_parser().parse_args(
        [
            "run",
            "--input",
            "export.json",
            "--user-id",
            "u-9",
            "--job-id",
            "job-9",
            "--limit",
            "25",
            "--kinds",
            "fbiReport,cognitiveFingerprint",
            "--mock",
        ]
    )
    assert args.command == "run"
    assert args.input == "export.json"
    assert args.user_id == "u-9"
    assert args.job_id == "job-9"
    assert args.limit == 25
    assert args.kinds == "fbiReport,cognitiveFingerprint"
    assert args.mock is True


def test_run_parser_defaults():
    args = build_parser().parse_args(["run", "--input", "export.json"])
    assert args.user_id == "local-user"
    assert args.job_id is None
    assert args.limit is None
    assert args.mock is False


def test_validate_archive_parser_requires_input():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["validate-archive"])
    args = build_parser().parse_args(["validate-archive", "--input", "x.json", "--json"])
    assert args.json is True


def test_show_report_parser_accepts_runs_root():
    args = build_parser().parse_args(["show-report", "--job-id", "abc", "--runs-root", "/tmp/r"])
    assert args.command == "show-report"
    assert args.job_id == "abc"
    assert args.runs_root == "/tmp/r"


class TestParseKinds:
    def test_accepts_values_and_member_names(self):
        assert _parse_kinds("fbiReport, unfilteredMirror") == [
            ReportKind.BEHAVIORAL_DOSSIER,
            ReportKind.UNFILTERED_MIRROR,
        ]
        assert _parse_kinds("cognitive-style,PERSONALITY_ARCHETYPE") == [
            ReportKind.COGNITIVE_STYLE,
            ReportKind.PERSONALITY_ARCHETYPE,
        ]

    def test_empty_means_all(self):
        assert _parse_kinds(None) is None
        assert _parse_kinds("") is None

    def test_unknown_kind_raises(self):
        with pytest.raises(argparse.ArgumentTypeError, match="horoscope"):
            _parse_kinds("fbiReport,horoscope")


def test_format_duration():
    assert _format_duration(5) == "00:05"
    assert _format_duration(3725) == "01:02:05"
    assert _format_duration(float("inf")) == "--:--"


def test_eta_progress_printer_skips_duplicates(capsys):
    printer = _EtaProgressPrinter("Stage 1 extraction")
    printer(1, 10, "first")
    printer(1, 10, "duplicate")
    printer(4, 10, "next")

    lines = capsys.readouterr().out.splitlines()
    assert len(lines) == 2
    assert "Stage 1 extraction: 1/10 (10%)" in lines[0]
    assert lines[1].endswith("| next")


def test_main_run_and_show_report_with_mock_client(tmp_path, monkeypatch, capsys):
    archive = tmp_path / "export.json"
    archive.write_bytes(_archive_bytes())
    config = _write_config(tmp_path)

    monkeypatch.setattr(
        sys,
        "argv",
        ["convo-insights", "--config", config, "run", "--input", str(archive), "--job-id", "j1", "--mock"],
    )
    main()
    out = capsys.readouterr().out
    assert "Job j1 complete." in out
    assert f"Reports:                {len(ReportKind)}/{len(ReportKind)}" in out
    assert (tmp_path / "runs" / "j1" / "report_bundle.json").exists()

    monkeypatch.setattr(sys, "argv", ["convo-insights", "--config", config, "show-report", "--job-id", "j1"])
    main()
    shown = json.loads(capsys.readouterr().out)
    assert shown["conversationCount"] == 2
    assert set(ReportKind).issubset(shown.keys())


def test_main_run_rejects_user_without_entitlement(tmp_path, monkeypatch, capsys):
    archive = tmp_path / "export.json"
    archive.write_bytes(_archive_bytes())
    config = _write_config(tmp_path, premium="'someone-else'")

    monkeypatch.setattr(
        sys,
        "argv",
        ["convo-insights", "--config", config, "run", "--input", str(archive), "--job-id", "j2", "--mock"],
    )
    with pytest.raises(SystemExit) as exc_info:
        main()
    assert exc_info.value.code == 1
    assert "Not entitled" in capsys.readouterr().out
    progress = json.loads((tmp_path / "runs" / "j2" / "job.json").read_text())
    assert progress["status"] == "failed"


def test_main_validate_archive_reports_malformed_input(tmp_path, monkeypatch, capsys):
    broken = tmp_path / "broken.json"
    broken.write_text("{not json")
    monkeypatch.setattr(
        sys,
        "argv",
        ["convo-insights", "--config", str(tmp_path / "missing.yaml"), "validate-archive", "--input", str(broken)],
    )
    with pytest.raises(SystemExit) as exc_info:
        main()
    assert exc_info.value.code == 1
    assert "Archive validation failed" in capsys.readouterr().out


def test_main_validate_archive_json_summary(tmp_path, monkeypatch, capsys):
    archive = tmp_path / "export.json"
    archive.write_bytes(_archive_bytes())
    monkeypatch.setattr(
        sys,
        "argv",
        [
            "convo-insights",
            "--config",
            str(tmp_path / "missing.yaml"),
            "validate-archive",
            "--input",
            str(archive),
            "--json",
        ],
    )
    main()
    summary = json.loads(capsys.readouterr().out)
    assert summary["conversationsWithUserText"] == 2
    assert summary["metrics"]["totalUserMessages"] == 2
