"""CLI entrypoint for the conversation insight pipeline."""

import argparse
import json
import sys
import time
import uuid
from pathlib import Path

from convo_insights import __version__
from convo_insights.config import Settings
from convo_insights.errors import MalformedArchiveError, NotEntitledError
from convo_insights.io import AllowListEntitlements, LocalJobStore, load_report_bundle, parse_archive
from convo_insights.models import build_llm_client
from convo_insights.observability import configure_logging, get_langsmith_status
from convo_insights.pipeline import InsightPipeline, compute_archive_metrics
from convo_insights.schemas import ModelTier, ReportKind


def _format_duration(seconds: float) -> str:
    if seconds < 0 or not (seconds < float("inf")):
        return "--:--"
    total = int(seconds)
    minutes, secs = divmod(total, 60)
    hours, minutes = divmod(minutes, 60)
    if hours > 0:
        return f"{hours:02d}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"


class _EtaProgressPrinter:
    """Print progress updates with elapsed time and ETA."""

    def __init__(self, label: str) -> None:
        self._label = label
        self._started_at = time.perf_counter()
        self._last_done = -1

    def __call__(self, done: int, total: int, detail: str = "") -> None:
        capped_total = max(total, 1)
        capped_done = max(0, min(done, capped_total))
        if capped_done == self._last_done:
            return
        elapsed = max(0.0, time.perf_counter() - self._started_at)
        percent = capped_done / capped_total

        eta = float("inf")
        if capped_done > 0 and elapsed > 0:
            eta = (capped_total - capped_done) / (capped_done / elapsed)

        suffix = f" | {detail}" if detail else ""
        print(
            "    "
            f"{self._label}: {capped_done}/{capped_total} ({percent:.0%}) "
            f"| elapsed {_format_duration(elapsed)} | ETA {_format_duration(eta)}"
            f"{suffix}"
        )
        self._last_done = capped_done


def _parse_kinds(raw: str | None) -> list[ReportKind] | None:
    """Parse a comma-separated list of report kinds (bundle keys or member names)."""

    if not raw:
        return None
    by_name = {kind.name.lower(): kind for kind in ReportKind}
    by_value = {kind.value.lower(): kind for kind in ReportKind}
    kinds: list[ReportKind] = []
    for token in raw.split(","):
        key = token.strip().lower()
        if not key:
            continue
        kind = by_value.get(key) or by_name.get(key.replace("-", "_"))
        if kind is None:
            valid = ", ".join(kind.value for kind in ReportKind)
            raise argparse.ArgumentTypeError(f"Unknown report kind '{token}'. Valid: {valid}")
        kinds.append(kind)
    return kinds


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="convo-insights",
        description="Two-stage LLM pipeline turning a chat export into personalized reports",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--config",
        type=str,
        default="configs/default.yaml",
        help="Path to YAML config file (default: configs/default.yaml)",
    )

    sub = parser.add_subparsers(dest="command")

    sub.add_parser("info", help="Show current configuration")

    validate_parser = sub.add_parser(
        "validate-archive",
        help="Parse a chat export and summarize what the pipeline would see.",
    )
    validate_parser.add_argument("--input", type=str, required=True, help="Path to export JSON.")
    validate_parser.add_argument(
        "--json",
        action="store_true",
        help="Print the archive summary as JSON.",
    )

    run_parser = sub.add_parser("run", help="Run the full pipeline for one archive")
    run_parser.add_argument("--input", type=str, required=True, help="Path to export JSON.")
    run_parser.add_argument("--user-id", type=str, default="local-user", help="Requesting user id.")
    run_parser.add_argument(
        "--job-id",
        type=str,
        default=None,
        help="Job id (directory name under the output dir). Generated when omitted.",
    )
    run_parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Override the per-job conversation cap.",
    )
    run_parser.add_argument(
        "--kinds",
        type=str,
        default=None,
        help="Comma-separated report kinds to synthesize (default: all).",
    )
    run_parser.add_argument(
        "--mock",
        action="store_true",
        help="Use the offline mock LLM client.",
    )

    show_parser = sub.add_parser("show-report", help="Print a stored report bundle")
    show_parser.add_argument("--job-id", type=str, required=True, help="Job id to show.")
    show_parser.add_argument(
        "--runs-root",
        type=str,
        default=None,
        help="Jobs root directory. Defaults to configured output_dir.",
    )
    return parser


def _print_json(payload: dict | list[dict]) -> None:
    """Pretty-print JSON payload."""

    print(json.dumps(payload, indent=2, ensure_ascii=True))


def _resolve_runs_root(settings: Settings, runs_root_arg: str | None) -> Path:
    """Resolve runs root from optional CLI argument."""

    if runs_root_arg:
        return Path(runs_root_arg).expanduser()
    return settings.output_dir


def cmd_info(settings: Settings) -> None:
    langsmith = get_langsmith_status(settings)

    print(f"convo-insights v{__version__}")
    print(f"  LLM provider:     {settings.llm_provider}")
    print(f"  Fast model:       {settings.resolved_model(ModelTier.FAST)}")
    print(f"  Powerful model:   {settings.resolved_model(ModelTier.POWERFUL)}")
    print(f"  OpenAI base URL:  {settings.resolved_openai_base_url() or '(default OpenAI)'}")
    print(f"  Key source:       {settings.resolved_openai_key_source()}")
    print(f"  Temperatures:     {settings.fast_temperature} / {settings.powerful_temperature}")
    print(f"  LLM timeout:      {settings.llm_timeout_seconds}s")
    print(f"  Client retries:   {settings.client_max_retries}")
    print(f"  Backoff seconds:  {settings.client_backoff_seconds}")
    print(f"  Conversation cap: {settings.max_conversations}")
    print(f"  Batch size:       {settings.extraction_batch_size}")
    print(f"  Batch pause:      {settings.extraction_batch_pause_seconds}s")
    print(f"  Max chars:        {settings.max_conversation_chars}")
    print(f"  Spotlight size:   {settings.spotlight_size}")
    print(f"  Premium users:    {len(settings.premium_user_ids)} configured")
    print(f"  LangSmith tracing: {langsmith['enabled']}")
    print(f"  LangSmith project: {langsmith['project'] or '(not set)'}")
    print(f"  LangSmith key set: {langsmith['api_key_present']}")
    print(f"  Output dir:       {settings.output_dir}")


def cmd_validate_archive(settings: Settings, args: argparse.Namespace) -> None:
    """Parse an archive and print a summary."""

    input_path = Path(args.input).expanduser()
    try:
        records = parse_archive(input_path.read_bytes())
    except OSError as exc:
        print(f"Could not read archive: {exc}")
        sys.exit(1)
    except MalformedArchiveError as exc:
        print(f"Archive validation failed: {exc}")
        sys.exit(1)

    metrics = compute_archive_metrics(records)
    if args.json:
        _print_json(
            {
                "input": str(input_path),
                "conversationsWithUserText": len(records),
                "willProcess": min(len(records), settings.max_conversations),
                "metrics": metrics.to_wire(),
            }
        )
        return

    print("Archive validation complete.")
    print(f"  Input path:          {input_path}")
    print(f"  Conversations:       {len(records)}")
    print(f"  Will process:        {min(len(records), settings.max_conversations)}")
    print(f"  User messages:       {metrics.total_user_messages}")
    print(f"  Avg words/sentence:  {metrics.average_words_per_user_sentence}")
    print(f"  Vocabulary estimate: {metrics.vocabulary_size_estimate}")
    print(f"  Timespan (days):     {metrics.timespan_days:.1f}")
    print(f"  Distinct titles:     {metrics.topic_diversity}")


def cmd_run(settings: Settings, args: argparse.Namespace) -> None:
    """Stage an archive into the local store and run the pipeline."""

    overrides: dict = {}
    if args.limit is not None:
        overrides["max_conversations"] = args.limit
    if args.mock:
        overrides["llm_provider"] = "mock"
    if overrides:
        settings = settings.model_copy(update=overrides)

    try:
        kinds = _parse_kinds(args.kinds)
    except argparse.ArgumentTypeError as exc:
        print(str(exc))
        sys.exit(2)

    job_id = args.job_id or uuid.uuid4().hex[:12]
    store = LocalJobStore(settings.output_dir)
    try:
        store.stage_archive(job_id, Path(args.input).expanduser())
        llm_client = build_llm_client(settings)
    except (OSError, ValueError) as exc:
        print(f"Could not start job '{job_id}': {exc}")
        sys.exit(1)

    pipeline = InsightPipeline(
        settings=settings,
        llm_client=llm_client,
        archive_source=store,
        entitlements=AllowListEntitlements(settings.premium_user_ids),
        report_sink=store,
        job_tracker=store,
    )

    print(f"Running job {job_id} (provider: {settings.llm_provider})")
    try:
        outcome = pipeline.run(
            args.user_id,
            job_id,
            kinds=kinds,
            on_extraction_progress=_EtaProgressPrinter("Stage 1 extraction"),
        )
    except NotEntitledError as exc:
        print(f"Not entitled: {exc}")
        sys.exit(1)

    if not outcome.succeeded or outcome.bundle is None:
        print(f"Job {job_id} failed: {outcome.error}")
        sys.exit(1)

    bundle = outcome.bundle
    print(f"Job {job_id} complete.")
    print(f"  Conversations analyzed: {bundle.conversation_count}")
    print(f"  Dropped conversations:  {len(outcome.extraction_errors)}")
    print(f"  Reports:                {len(bundle.reports)}/{len(ReportKind)}")
    for message in bundle.processing_errors:
        print(f"    - {message}")
    if outcome.llm_metrics:
        print(f"  LLM requests:           {outcome.llm_metrics.get('request_count', 0)}")
    print(f"  Bundle:                 {store.job_dir(job_id) / 'report_bundle.json'}")


def cmd_show_report(settings: Settings, args: argparse.Namespace) -> None:
    """Print a stored report bundle as JSON."""

    store = LocalJobStore(_resolve_runs_root(settings, args.runs_root))
    try:
        bundle = load_report_bundle(store.job_dir(args.job_id))
    except (OSError, ValueError) as exc:
        print(f"Could not load report for job '{args.job_id}': {exc}")
        sys.exit(1)
    _print_json(bundle.to_wire())


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()

    settings = Settings.from_yaml(args.config)
    configure_logging(settings.log_level)

    if args.command == "info":
        cmd_info(settings)
    elif args.command == "validate-archive":
        cmd_validate_archive(settings, args)
    elif args.command == "run":
        cmd_run(settings, args)
    elif args.command == "show-report":
        cmd_show_report(settings, args)
    else:
        parser.print_help()
        sys.exit(0)


if __name__ == "__main__":
    main()
