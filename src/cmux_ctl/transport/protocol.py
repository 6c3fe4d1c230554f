"""Codecs for the two protocol generations sharing one line framing.

v1 is plaintext: ``<verb> <args...>`` answered by one line of data or ``ERROR: <message>``.
v2 is a JSON envelope sent as a single line over the same channel:

Request:  {"id": "<uuid>", "method": "workspace.list", "params": {}}
Response: {"ok": true, "result": {...}}
Error:    {"ok": false, "error": {"code": "not_found", "message": "..."}}

A v2 exchange may still be answered with a bare ``ERROR:`` line when the server
fails before JSON handling starts (e.g. authentication), so that prefix is checked
before decoding.
"""

import json
import uuid
from dataclasses import dataclass, field
from typing import Any

from cmux_ctl.errors import ProtocolError, RemoteError

ERROR_PREFIX = "ERROR:"


@dataclass(frozen=True)
class Envelope:
    """v2 request: a correlation id, a namespaced method and its parameters."""

    method: str
    params: dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))


def encode_envelope(envelope: Envelope) -> str:
    """Serialize a v2 request to a single line (without the terminator)."""
    try:
        return json.dumps({"id": envelope.id, "method": envelope.method, "params": envelope.params}, separators=(",", ":"))
    except (TypeError, ValueError) as e:
        raise ProtocolError(f"Failed to encode v2 request: {e}") from None


def decode_envelope(raw: str) -> dict[str, Any]:
    """Decode a v2 response line and return its result.

    Raises:
        RemoteError: Plain ``ERROR:`` line or a structured failure.
        ProtocolError: Response is not a recognizable envelope.

    """
    if raw.startswith(ERROR_PREFIX):
        raise RemoteError(raw)
    try:
        obj = json.loads(raw)
    except json.JSONDecodeError:
        raise ProtocolError(f"Invalid v2 response: {raw}") from None
    if not isinstance(obj, dict):
        raise ProtocolError(f"Invalid v2 response: {raw}")

    if obj.get("ok") is True:
        result = obj.get("result")
        return result if isinstance(result, dict) else {}

    error = obj.get("error")
    if isinstance(error, dict):
        code = error.get("code") if isinstance(error.get("code"), str) else "error"
        message = error.get("message") if isinstance(error.get("message"), str) else "Unknown v2 error"
        raise RemoteError(message, code=code)

    raise ProtocolError("v2 request failed")


def check_plain_response(raw: str) -> str:
    """Return a v1 response unchanged, raising on an ``ERROR:`` line."""
    if raw.startswith(ERROR_PREFIX):
        raise RemoteError(raw)
    return raw


def quote_argument(text: str) -> str:
    """Escape and quote a value for embedding in a v1 command.

    Backslash and double quote are special inside quoted tokens; newline and
    carriage return would end the command line early.
    """
    escaped = text.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n").replace("\r", "\\r")
    return f'"{escaped}"'
