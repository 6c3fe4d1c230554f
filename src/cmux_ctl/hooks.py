"""Coding-agent hook payloads: parsing and notification summaries.

Hook events arrive as JSON on stdin. The shape varies between event types, so the
session id and working directory are searched at the top level and in a few known
nested objects.
"""

import json
import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from cmux_ctl.affinity import SessionAffinityRecord

logger = logging.getLogger(__name__)

NOTIFICATION_TITLE = "Claude Code"

_SESSION_KEYS = ("session_id", "sessionId")
_CWD_KEYS = ("cwd", "working_directory", "workingDirectory", "project_dir", "projectDir")
_MESSAGE_KEYS = ("message", "body", "text", "prompt", "error", "description")
_MAX_FIELD_LENGTH = 180


@dataclass(frozen=True)
class HookInput:
    """Parsed hook event."""

    raw: str
    payload: dict[str, Any] | None = None
    session_id: str | None = None
    cwd: str | None = None
    transcript_path: str | None = None


@dataclass(frozen=True)
class Summary:
    """Notification subtitle and body."""

    subtitle: str
    body: str


def first_string(obj: dict[str, Any], keys: tuple[str, ...]) -> str | None:
    """Return the first non-empty (trimmed) string value among ``keys``."""
    for key in keys:
        value = obj.get(key)
        if isinstance(value, str) and (trimmed := value.strip()):
            return trimmed
    return None


def _nested(obj: dict[str, Any], key: str) -> dict[str, Any]:
    value = obj.get(key)
    return value if isinstance(value, dict) else {}


def _load_object(text: str) -> dict[str, Any] | None:
    try:
        obj = json.loads(text)
    except json.JSONDecodeError:
        return None
    return obj if isinstance(obj, dict) else None


def parse_hook_input(raw: str) -> HookInput:
    """Parse a hook event; non-JSON input yields an input with no fields."""
    trimmed = raw.strip()
    payload = _load_object(trimmed) if trimmed else None
    if payload is None:
        return HookInput(raw=raw)

    session_id = first_string(payload, _SESSION_KEYS)
    for key in ("notification", "data"):
        session_id = session_id or first_string(_nested(payload, key), _SESSION_KEYS)
    session_id = session_id or first_string(_nested(payload, "session"), ("id", *_SESSION_KEYS))
    session_id = session_id or first_string(_nested(payload, "context"), _SESSION_KEYS)

    cwd = first_string(payload, _CWD_KEYS)
    for key in ("notification", "data", "context"):
        cwd = cwd or first_string(_nested(payload, key), _CWD_KEYS)

    return HookInput(
        raw=raw,
        payload=payload,
        session_id=session_id,
        cwd=cwd,
        transcript_path=first_string(payload, ("transcript_path", "transcriptPath")),
    )


# --- Text helpers ---


def normalized_single_line(value: str) -> str:
    """Collapse all whitespace runs to single spaces."""
    return re.sub(r"\s+", " ", value).strip()


def truncate(value: str, max_length: int) -> str:
    """Shorten to ``max_length`` characters, ending with an ellipsis when cut."""
    if len(value) <= max_length:
        return value
    return value[: max(0, max_length - 1)] + "…"


def sanitize_notification_field(value: str) -> str:
    """Make a value safe for the ``title|subtitle|body`` notification payload."""
    return truncate(normalized_single_line(value).replace("|", "¦"), _MAX_FIELD_LENGTH)


def _branch_context_path(line: str) -> str | None:
    """Path of a ``<branch> • <path>`` context line, or None for other lines."""
    branch, sep, path = line.partition("•")
    branch, path = branch.strip(), path.strip()
    if not sep or not branch or not path:
        return None
    if not (path.startswith(("/", "~", ".")) or "/" in path):
        return None
    normalized = os.path.normpath(os.path.expanduser(path.strip("`'\""))).strip()
    return normalized or None


def dedupe_branch_context_lines(value: str) -> str:
    """Keep only the last branch-context line per path."""
    lines = value.splitlines()
    if len(lines) <= 1:
        return value
    last_index: dict[str, int] = {}
    for index, line in enumerate(lines):
        if (path := _branch_context_path(line)) is not None:
            last_index[path] = index
    if not last_index:
        return value
    kept = [line for index, line in enumerate(lines) if (path := _branch_context_path(line)) is None or last_index[path] == index]
    return "\n".join(kept)


# --- Summaries ---


def classify_notification(signal: str, message: str) -> Summary:
    """Pick a subtitle from keywords in the event signal and message."""
    lower = f"{signal} {message}".lower()
    if any(word in lower for word in ("permission", "approve", "approval")):
        return Summary("Permission", message or "Approval needed")
    if any(word in lower for word in ("error", "failed", "exception")):
        return Summary("Error", message or "Claude reported an error")
    if any(word in lower for word in ("idle", "wait", "input", "prompt")):
        return Summary("Waiting", message or "Claude is waiting for your input")
    return Summary("Attention", message or "Claude needs your input")


def summarize_notification(raw: str) -> Summary:
    """Summarize a notification event."""
    trimmed = raw.strip()
    if not trimmed:
        return Summary("Waiting", "Claude is waiting for your input")

    payload = _load_object(trimmed)
    if payload is None:
        fallback = truncate(normalized_single_line(trimmed), _MAX_FIELD_LENGTH)
        return classify_notification(fallback, fallback)

    nested = _nested(payload, "notification") or _nested(payload, "data")
    signal_parts = (
        first_string(payload, ("event", "event_name", "hook_event_name", "type", "kind")),
        first_string(payload, ("notification_type", "matcher", "reason")),
        first_string(nested, ("type", "kind", "reason")),
    )
    message = first_string(payload, _MESSAGE_KEYS) or first_string(nested, _MESSAGE_KEYS) or "Claude needs your input"
    signal = " ".join(part for part in signal_parts if part)
    summary = classify_notification(signal, normalized_single_line(dedupe_branch_context_lines(message)))

    body = summary.body
    if session := first_string(payload, _SESSION_KEYS):
        short_session = session[:8]
        if short_session not in body:
            body = f"{body} [{short_session}]"
    return Summary(summary.subtitle, truncate(body, _MAX_FIELD_LENGTH))


def _message_text(message: dict[str, Any]) -> str | None:
    content = message.get("content")
    if isinstance(content, str):
        return content.strip()
    if isinstance(content, list):
        texts = [
            block["text"].strip()
            for block in content
            if isinstance(block, dict) and block.get("type") == "text" and isinstance(block.get("text"), str)
        ]
        return " ".join(texts) or None
    return None


def last_assistant_message(transcript_path: str) -> str | None:
    """Last assistant message of a JSONL transcript, normalized and shortened."""
    path = Path(transcript_path).expanduser()
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.debug("Cannot read transcript %s: %s", path, e)
        return None

    last: str | None = None
    for line in content.splitlines():
        obj = _load_object(line.strip()) if line.strip() else None
        if obj is None:
            continue
        message = obj.get("message")
        if not isinstance(message, dict) or message.get("role") != "assistant":
            continue
        if text := _message_text(message):
            last = truncate(normalized_single_line(text), 120)
    return last


def summarize_stop(hook_input: HookInput, record: SessionAffinityRecord | None = None) -> Summary | None:
    """Summarize a session completion, or None when nothing useful is known.

    Args:
        hook_input: Parsed stop event.
        record: Affinity record consumed for the session, if any.

    """
    effective_cwd = hook_input.cwd or (record.cwd if record else None)
    project_name = None
    if effective_cwd:
        expanded = os.path.expanduser(effective_cwd)
        project_name = Path(expanded).name or expanded

    if hook_input.transcript_path and (last := last_assistant_message(hook_input.transcript_path)):
        subtitle = f"Completed in {project_name}" if project_name else "Completed"
        return Summary(subtitle, truncate(last, 200))

    last_message = (record.last_body or record.last_subtitle) if record else None
    if effective_cwd is None and last_message is None:
        return None
    body = "Claude session completed"
    if project_name:
        body += f" in {project_name}"
    if last_message:
        body += f". Last: {last_message}"
    return Summary("Completed", body)
