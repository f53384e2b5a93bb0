"""Tests for deterministic archive metrics."""

from datetime import UTC, datetime

from convo_insights.pipeline import compute_archive_metrics
from convo_insights.pipeline.archive_metrics import content_words, split_sentences
from convo_insights.schemas import ConversationRecord


def test_content_words_drop_stop_words_short_words_and_numbers():
    assert content_words("I asked ChatGPT about the 2024 Raft paper, ok?") == [
        "asked",
        "raft",
        "paper",
    ]


def test_split_sentences():
    assert split_sentences("One. Two?  Three!") == ["One.", "Two?", "Three!"]


def test_compute_archive_metrics():
    records = [
        ConversationRecord(
            id="c1",
            title="Raft",
            created_at=datetime(2025, 1, 1, tzinfo=UTC),
            user_messages=["Explain leader election. Why randomized timeouts?"],
        ),
        ConversationRecord(
            id="c2",
            title="raft",
            created_at=datetime(2025, 1, 11, tzinfo=UTC),
            user_messages=["Leader leases?", "Compare with paxos."],
        ),
    ]

    metrics = compute_archive_metrics(records)

    assert metrics.total_conversations == 2
    assert metrics.total_user_messages == 3
    assert metrics.timespan_days == 10.0
    assert metrics.topic_diversity == 1
    # 3 + 3 + 2 + 2 content words over four sentences.
    assert metrics.average_words_per_user_sentence == 2.5
    assert metrics.vocabulary_size_estimate == 9


def test_empty_archive_metrics():
    metrics = compute_archive_metrics([])
    assert metrics.total_conversations == 0
    assert metrics.average_words_per_user_sentence == 0.0
    assert metrics.timespan_days == 0.0
