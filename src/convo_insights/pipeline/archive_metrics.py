"""Deterministic archive-level metrics computed without an LLM."""

from __future__ import annotations

import re

from convo_insights.schemas import ArchiveMetrics, ConversationRecord

STOP_WORDS = frozenset(
    """
    i me my we our you your he him his she her it its they them their what which who
    this that am is are was were be been have has had do does did a an the and but if
    or because as of at by for with about to from in out on so s t can will just don
    should now chatgpt
    """.split()
)

_NON_WORD = re.compile(r"[^\w\s'-]")
_SENTENCE_BREAK = re.compile(r"(?<=[.?!])\s+")
_DIGITS = re.compile(r"^\d+$")
SECONDS_PER_DAY = 86_400


def content_words(text: str) -> list[str]:
    """Lowercased words longer than two characters, minus stop words and numbers."""

    return [
        word
        for word in _NON_WORD.sub(" ", text.lower()).split()
        if len(word) > 2 and word not in STOP_WORDS and not _DIGITS.match(word)
    ]


def split_sentences(text: str) -> list[str]:
    return [sentence for sentence in _SENTENCE_BREAK.split(text) if sentence.strip()]


def compute_archive_metrics(records: list[ConversationRecord]) -> ArchiveMetrics:
    """Summarize message counts, sentence length, vocabulary and timespan."""

    vocabulary: set[str] = set()
    titles: set[str] = set()
    timestamps: list[float] = []
    message_count = 0
    sentence_count = 0
    sentence_words = 0

    for record in records:
        if record.title:
            titles.add(record.title.lower())
        if record.created_at is not None:
            timestamps.append(record.created_at.timestamp())
        for message in record.user_messages:
            message_count += 1
            vocabulary.update(content_words(message))
            sentences = split_sentences(message)
            sentence_count += len(sentences)
            sentence_words += sum(len(content_words(sentence)) for sentence in sentences)

    timespan = (max(timestamps) - min(timestamps)) / SECONDS_PER_DAY if len(timestamps) > 1 else 0.0
    return ArchiveMetrics(
        total_conversations=len(records),
        total_user_messages=message_count,
        average_words_per_user_sentence=(
            round(sentence_words / sentence_count, 1) if sentence_count else 0.0
        ),
        vocabulary_size_estimate=len(vocabulary),
        timespan_days=timespan,
        topic_diversity=len(titles),
    )
