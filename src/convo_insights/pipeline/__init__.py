"""Pipeline stage implementations."""

from convo_insights.pipeline.aggregation import aggregate_insights, rank_labels, select_spotlight
from convo_insights.pipeline.archive_metrics import compute_archive_metrics
from convo_insights.pipeline.extraction import (
    ExtractionResult,
    clamp_score,
    coerce_insight_payload,
    extract_conversation_insight,
    extract_insights,
    extract_insights_async,
    parse_json_object,
    strip_code_fences,
)
from convo_insights.pipeline.orchestrator import (
    InsightPipeline,
    PipelineOutcome,
    PipelineStage,
    generate_report_bundle,
)
from convo_insights.pipeline.reports import (
    REPORT_SPECS,
    ReportSpec,
    SynthesisResult,
    synthesize_report,
    synthesize_reports,
    synthesize_reports_async,
)

__all__ = [
    "REPORT_SPECS",
    "ExtractionResult",
    "InsightPipeline",
    "PipelineOutcome",
    "PipelineStage",
    "ReportSpec",
    "SynthesisResult",
    "aggregate_insights",
    "clamp_score",
    "coerce_insight_payload",
    "compute_archive_metrics",
    "extract_conversation_insight",
    "extract_insights",
    "extract_insights_async",
    "generate_report_bundle",
    "parse_json_object",
    "rank_labels",
    "select_spotlight",
    "strip_code_fences",
    "synthesize_report",
    "synthesize_reports",
    "synthesize_reports_async",
]
