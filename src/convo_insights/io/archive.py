"""Archive parsing: exported JSON bytes to user-only conversation records."""

from __future__ import annotations

import hashlib
import json
import logging
import math
from collections.abc import Iterator
from datetime import UTC, datetime
from typing import Any

from convo_insights.errors import MalformedArchiveError
from convo_insights.schemas import ConversationRecord

logger = logging.getLogger(__name__)

USER_ROLE = "user"


def _decode_archive(raw: bytes | str) -> Any:
    """Decode archive bytes into a JSON value."""

    try:
        return json.loads(raw)
    except UnicodeDecodeError as exc:
        raise MalformedArchiveError(f"Archive is not valid UTF-8 text: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise MalformedArchiveError(
            f"Archive is not valid JSON (line {exc.lineno}, column {exc.colno}): {exc.msg}"
        ) from exc


def _find_conversation_array(payload: Any) -> list[Any]:
    """Return the conversation array: the root itself or the first array-valued key."""

    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for key, value in payload.items():
            if isinstance(value, list):
                logger.debug("Using conversation array found under key '%s'.", key)
                return value
    raise MalformedArchiveError(
        f"No conversation array found in archive (root is {type(payload).__name__})."
    )


def _finite(value: float) -> float | None:
    return value if math.isfinite(value) else None


def _to_epoch_seconds(value: Any) -> float | None:
    """Best-effort conversion of epoch numbers or ISO strings to epoch seconds.

    NaN and infinities count as missing so they never become sort keys.
    """

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return _finite(float(value))
        except OverflowError:
            return None
    if isinstance(value, str):
        raw = value.strip()
        if not raw:
            return None
        try:
            return _finite(float(raw))
        except ValueError:
            pass
        try:
            parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
        except ValueError:
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=UTC)
        return parsed.timestamp()
    return None


def _message_text(message: dict) -> str:
    """Extract textual content from one message object."""

    content = message.get("content")
    if isinstance(content, str):
        return content.strip()
    if not isinstance(content, dict):
        return ""
    parts = content.get("parts")
    if isinstance(parts, list):
        return " ".join(
            part.strip() for part in parts if isinstance(part, str) and part.strip()
        )
    text = content.get("text")
    if isinstance(text, str):
        return text.strip()
    return ""


def _message_role(message: dict) -> str:
    author = message.get("author")
    if isinstance(author, dict) and isinstance(author.get("role"), str):
        return author["role"]
    role = message.get("role")
    return role if isinstance(role, str) else ""


def _conversation_time(conversation: dict) -> float | None:
    """Conversation timestamp from ``create_time``, else ``created_at``."""

    for key in ("create_time", "created_at"):
        epoch = _to_epoch_seconds(conversation.get(key))
        if epoch is not None:
            return epoch
    return None


def _message_containers(conversation: dict) -> list[tuple[dict, dict]]:
    """Return (container, message) pairs from a node mapping or a flat message list."""

    mapping = conversation.get("mapping")
    if isinstance(mapping, dict):
        return [
            (node, node["message"])
            for node in mapping.values()
            if isinstance(node, dict) and isinstance(node.get("message"), dict)
        ]

    messages = conversation.get("messages")
    if isinstance(messages, list):
        pairs: list[tuple[dict, dict]] = []
        for entry in messages:
            if not isinstance(entry, dict):
                continue
            inner = entry.get("message")
            pairs.append((entry, inner if isinstance(inner, dict) else entry))
        return pairs
    return []


def extract_user_messages(conversation: dict) -> list[str]:
    """Return user-authored message texts in chronological order."""

    conversation_time = _conversation_time(conversation)
    fallback_time = conversation_time if conversation_time is not None else 0.0

    timed: list[tuple[float, str]] = []
    for container, message in _message_containers(conversation):
        if _message_role(message) != USER_ROLE:
            continue
        text = _message_text(message)
        if not text:
            continue
        message_time = _to_epoch_seconds(message.get("create_time"))
        if message_time is None:
            message_time = _to_epoch_seconds(container.get("create_time"))
        timed.append((fallback_time if message_time is None else message_time, text))

    # Stable sort keeps encounter order for equal or missing timestamps.
    timed.sort(key=lambda item: item[0])
    return [text for _, text in timed]


def _fallback_conversation_id(index: int, conversation: dict) -> str:
    seed = json.dumps(
        [index, conversation.get("title"), conversation.get("create_time")],
        ensure_ascii=True,
        default=str,
    )
    digest = hashlib.sha1(seed.encode("utf-8")).hexdigest()[:10]
    return f"conversation-{index}-{digest}"


def _conversation_id(index: int, conversation: dict) -> str:
    for key in ("id", "conversation_id"):
        value = conversation.get(key)
        if isinstance(value, (str, int)) and str(value).strip():
            return str(value).strip()
    return _fallback_conversation_id(index, conversation)


def _created_at(conversation: dict) -> datetime | None:
    epoch = _conversation_time(conversation)
    if epoch is None:
        return None
    try:
        return datetime.fromtimestamp(epoch, tz=UTC)
    except (OverflowError, OSError, ValueError):
        return None


def iter_conversation_records(raw: bytes | str) -> Iterator[ConversationRecord]:
    """Yield one record per conversation that contains user-authored text.

    The decoded JSON tree is walked once; each yielded record keeps only the user
    message strings, so no second full-text copy of the archive is built.
    """

    conversations = _find_conversation_array(_decode_archive(raw))
    skipped_empty = 0
    for index, conversation in enumerate(conversations):
        if not isinstance(conversation, dict):
            logger.debug("Skipping non-object archive entry at index %d.", index)
            continue
        user_messages = extract_user_messages(conversation)
        if not user_messages:
            skipped_empty += 1
            continue
        title = conversation.get("title")
        yield ConversationRecord(
            id=_conversation_id(index, conversation),
            title=(title.strip() or None) if isinstance(title, str) else None,
            created_at=_created_at(conversation),
            user_messages=user_messages,
        )
    if skipped_empty:
        logger.info("Skipped %d conversations without user-authored text.", skipped_empty)


def parse_archive(raw: bytes | str) -> list[ConversationRecord]:
    """Parse archive bytes into conversation records.

    Raises:
        MalformedArchiveError: when the bytes are not JSON or hold no conversation array.
    """

    return list(iter_conversation_records(raw))
