"""Pipeline orchestration: parse, extract, aggregate, synthesize, persist."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from enum import StrEnum

from convo_insights.config import Settings
from convo_insights.errors import InsightPipelineError, NotEntitledError
from convo_insights.io.archive import parse_archive
from convo_insights.io.store import ArchiveSource, EntitlementChecker, JobTracker, ReportSink
from convo_insights.models import LLMJsonClient
from convo_insights.pipeline.aggregation import aggregate_insights
from convo_insights.pipeline.archive_metrics import compute_archive_metrics
from convo_insights.pipeline.extraction import ProgressCallback, extract_insights_async
from convo_insights.pipeline.reports import synthesize_reports_async
from convo_insights.schemas import ReportBundle, ReportKind

logger = logging.getLogger(__name__)


class PipelineStage(StrEnum):
    PARSING = "parsing"
    EXTRACTING = "extracting"
    AGGREGATING = "aggregating"
    SYNTHESIZING = "synthesizing"
    DONE = "done"
    FAILED = "failed"


STAGE_PROGRESS = {
    PipelineStage.PARSING: 10,
    PipelineStage.EXTRACTING: 30,
    PipelineStage.AGGREGATING: 75,
    PipelineStage.SYNTHESIZING: 80,
    PipelineStage.DONE: 100,
}
EXTRACTION_PROGRESS_END = 70

StageCallback = Callable[[PipelineStage, int], None]


@dataclass
class PipelineOutcome:
    """Terminal state of one pipeline run."""

    job_id: str
    user_id: str
    stage: PipelineStage
    bundle: ReportBundle | None = None
    extraction_errors: list[dict] = field(default_factory=list)
    error: str | None = None
    llm_metrics: dict = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.stage is PipelineStage.DONE


@dataclass
class _BundleRun:
    bundle: ReportBundle
    extraction_errors: list[dict]


def _llm_metrics_snapshot(llm_client: LLMJsonClient) -> dict:
    """Read optional metrics snapshot from an LLM client."""

    snapshot_fn = getattr(llm_client, "metrics_snapshot", None)
    if not callable(snapshot_fn):
        return {}
    try:
        snapshot = snapshot_fn()
    except Exception:
        logger.debug("LLM client metrics snapshot failed", exc_info=True)
        return {}
    return snapshot if isinstance(snapshot, dict) else {}


def _extraction_percent(done: int, total: int) -> int:
    start = STAGE_PROGRESS[PipelineStage.EXTRACTING]
    if total <= 0:
        return EXTRACTION_PROGRESS_END
    return start + int((EXTRACTION_PROGRESS_END - start) * min(done, total) / total)


async def _generate_async(
    raw: bytes | str,
    llm_client: LLMJsonClient,
    settings: Settings,
    *,
    kinds: Iterable[ReportKind] | None,
    on_stage: StageCallback | None,
    on_extraction_progress: ProgressCallback | None,
) -> _BundleRun:
    def _stage(stage: PipelineStage, percent: int | None = None) -> None:
        if on_stage is not None:
            on_stage(stage, STAGE_PROGRESS[stage] if percent is None else percent)

    _stage(PipelineStage.PARSING)
    records = parse_archive(raw)
    del raw
    if len(records) > settings.max_conversations:
        logger.info(
            "Capping %d conversations to the first %d", len(records), settings.max_conversations
        )
    records = records[: settings.max_conversations]
    archive_metrics = compute_archive_metrics(records)

    _stage(PipelineStage.EXTRACTING)

    def _on_batch(done: int, total: int, detail: str) -> None:
        _stage(PipelineStage.EXTRACTING, _extraction_percent(done, total))
        if on_extraction_progress is not None:
            on_extraction_progress(done, total, detail)

    extraction = await extract_insights_async(
        records,
        llm_client,
        batch_size=settings.extraction_batch_size,
        batch_pause_seconds=settings.extraction_batch_pause_seconds,
        timeout_seconds=settings.llm_timeout_seconds,
        max_chars=settings.max_conversation_chars,
        max_output_tokens=settings.fast_max_output_tokens,
        progress_callback=_on_batch,
    )
    # User text is not kept past Stage 1.
    del records
    extraction_errors = extraction.errors
    insights = extraction.insights
    del extraction

    _stage(PipelineStage.AGGREGATING)
    signals = aggregate_insights(
        insights,
        archive_metrics=archive_metrics,
        top_topics_count=settings.top_topics_count,
        top_patterns_count=settings.top_patterns_count,
        spotlight_size=settings.spotlight_size,
        pii_sample_size=settings.pii_sample_size,
        profile_sample_size=settings.profile_sample_size,
    )
    # Raw PII values do not outlive aggregation.
    del insights

    _stage(PipelineStage.SYNTHESIZING)
    synthesis = await synthesize_reports_async(
        signals,
        llm_client,
        kinds=kinds,
        timeout_seconds=settings.llm_timeout_seconds,
    )
    bundle = ReportBundle(
        reports=synthesis.reports,
        processing_errors=synthesis.errors,
        conversation_count=signals.conversation_count,
    )
    return _BundleRun(bundle=bundle, extraction_errors=extraction_errors)


def generate_report_bundle(
    raw: bytes | str,
    llm_client: LLMJsonClient,
    settings: Settings,
    *,
    kinds: Iterable[ReportKind] | None = None,
    on_stage: StageCallback | None = None,
    on_extraction_progress: ProgressCallback | None = None,
) -> ReportBundle:
    """Turn archive bytes into a report bundle with no persistence side effects.

    Raises:
        MalformedArchiveError: when the archive cannot be parsed.
        NoInsightsAvailableError: when every conversation failed Stage 1.
    """

    run = asyncio.run(
        _generate_async(
            raw,
            llm_client,
            settings,
            kinds=kinds,
            on_stage=on_stage,
            on_extraction_progress=on_extraction_progress,
        )
    )
    return run.bundle


class InsightPipeline:
    """Run one job end to end against injected collaborators."""

    def __init__(
        self,
        *,
        settings: Settings,
        llm_client: LLMJsonClient,
        archive_source: ArchiveSource,
        entitlements: EntitlementChecker,
        report_sink: ReportSink,
        job_tracker: JobTracker,
    ) -> None:
        self.settings = settings
        self.llm_client = llm_client
        self.archive_source = archive_source
        self.entitlements = entitlements
        self.report_sink = report_sink
        self.job_tracker = job_tracker

    def run(
        self,
        user_id: str,
        job_id: str,
        *,
        kinds: Iterable[ReportKind] | None = None,
        on_extraction_progress: ProgressCallback | None = None,
    ) -> PipelineOutcome:
        """Run the pipeline for one job.

        Pipeline-fatal errors end in a ``FAILED`` outcome; the bundle is saved
        exactly once when synthesis completes, whatever the number of reports.

        Raises:
            NotEntitledError: before any work when the user lacks premium access.
        """

        if not self.entitlements.is_entitled(user_id):
            self.job_tracker.save_job_progress(job_id, 0, PipelineStage.FAILED.value)
            raise NotEntitledError(f"User '{user_id}' is not entitled to premium reports.")

        last_percent = 0

        def _on_stage(stage: PipelineStage, percent: int) -> None:
            nonlocal last_percent
            last_percent = percent
            self.job_tracker.save_job_progress(job_id, percent, stage.value)

        try:
            run = asyncio.run(
                _generate_async(
                    self.archive_source.fetch_archive_bytes(job_id),
                    self.llm_client,
                    self.settings,
                    kinds=kinds,
                    on_stage=_on_stage,
                    on_extraction_progress=on_extraction_progress,
                )
            )
        except InsightPipelineError as exc:
            logger.error("Job %s failed: %s", job_id, exc)
            self.job_tracker.save_job_progress(job_id, last_percent, PipelineStage.FAILED.value)
            return PipelineOutcome(
                job_id=job_id,
                user_id=user_id,
                stage=PipelineStage.FAILED,
                error=str(exc),
                llm_metrics=_llm_metrics_snapshot(self.llm_client),
            )
        except Exception:
            self.job_tracker.save_job_progress(job_id, last_percent, PipelineStage.FAILED.value)
            raise

        self.report_sink.save_report_bundle(user_id, job_id, run.bundle)
        _on_stage(PipelineStage.DONE, STAGE_PROGRESS[PipelineStage.DONE])
        logger.info(
            "Job %s done: %d reports, %d report errors, %d dropped conversations",
            job_id,
            len(run.bundle.reports),
            len(run.bundle.processing_errors),
            len(run.extraction_errors),
        )
        return PipelineOutcome(
            job_id=job_id,
            user_id=user_id,
            stage=PipelineStage.DONE,
            bundle=run.bundle,
            extraction_errors=run.extraction_errors,
            llm_metrics=_llm_metrics_snapshot(self.llm_client),
        )
