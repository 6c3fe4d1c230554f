"""Identifier presentation for protocol results.

The server returns both canonical ids and human-readable refs side by side
(``workspace_id`` / ``workspace_ref``, ``surface_ids`` / ``surface_refs``, ``id`` / ``ref``).
The caller picks which representation to keep with an :class:`IdFormat`.
"""

from enum import StrEnum
from typing import Any

from cmux_ctl.errors import InvalidIdFormatError


class IdFormat(StrEnum):
    """Which identifier representation to show."""

    REFS = "refs"
    UUIDS = "uuids"
    BOTH = "both"

    @staticmethod
    def parse(raw: str | None) -> "IdFormat":
        """Parse a user-supplied selector, defaulting to refs.

        Raises:
            InvalidIdFormatError: Unknown value.

        """
        if raw is None:
            return IdFormat.REFS
        try:
            return IdFormat(raw.strip().lower())
        except ValueError:
            raise InvalidIdFormatError(raw) from None


# (id suffix, ref suffix) pairs, singular and plural
_SUFFIX_PAIRS = (("_id", "_ref"), ("_ids", "_refs"))


def format_ids(obj: Any, mode: IdFormat) -> Any:
    """Return a copy of a result tree keeping only the requested identifier style.

    Works purely on key naming: in refs mode an id key is dropped when its ref sibling
    exists, in uuids mode the ref sibling is dropped instead, both mode keeps everything.
    """
    if isinstance(obj, list):
        return [format_ids(item, mode) for item in obj]
    if not isinstance(obj, dict):
        return obj

    out = {key: format_ids(value, mode) for key, value in obj.items()}
    if mode is IdFormat.BOTH:
        return out

    drop: set[str] = set()
    if "id" in out and "ref" in out:
        drop.add("id" if mode is IdFormat.REFS else "ref")
    for key in out:
        for id_suffix, ref_suffix in _SUFFIX_PAIRS:
            if not key.endswith(id_suffix):
                continue
            prefix = key.removesuffix(id_suffix)
            ref_key = prefix + ref_suffix
            if ref_key in out:
                drop.add(key if mode is IdFormat.REFS else ref_key)
    for key in drop:
        del out[key]
    return out


def _pick(ref: str | None, id_: str | None, mode: IdFormat) -> str | None:
    match mode:
        case IdFormat.REFS:
            return ref or id_
        case IdFormat.UUIDS:
            return id_ or ref
        case _:
            if ref and id_:
                return f"{ref} ({id_})"
            return ref or id_


def _str_or_none(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def text_handle(item: dict[str, Any], mode: IdFormat) -> str:
    """Pick the display handle for a listed item."""
    ref = _str_or_none(item.get("ref"))
    id_ = _str_or_none(item.get("id"))
    if mode is IdFormat.BOTH:
        return " ".join(part for part in (ref, id_) if part) or "?"
    return _pick(ref, id_, mode) or "?"


def format_handle(payload: dict[str, Any], kind: str, mode: IdFormat) -> str | None:
    """Render the ``<kind>_ref`` / ``<kind>_id`` pair of a payload."""
    return _pick(_str_or_none(payload.get(f"{kind}_ref")), _str_or_none(payload.get(f"{kind}_id")), mode)


def display_tab_handle(raw: str | None) -> str | None:
    """Rewrite a ``surface:<n>`` ref into the ``tab:<n>`` vocabulary; other values pass through trimmed."""
    if raw is None:
        return None
    trimmed = raw.strip()
    kind, sep, ordinal = trimmed.partition(":")
    if sep and kind.lower() == "surface" and _is_int(ordinal):
        return f"tab:{int(ordinal)}"
    return trimmed


def format_tab_handle(payload: dict[str, Any], mode: IdFormat, *, prefix: str = "") -> str | None:
    """Render a tab handle, accepting either tab_* or surface_* keys (optionally ``created_``-prefixed)."""
    id_ = _str_or_none(payload.get(f"{prefix}tab_id")) or _str_or_none(payload.get(f"{prefix}surface_id"))
    raw_ref = _str_or_none(payload.get(f"{prefix}tab_ref")) or _str_or_none(payload.get(f"{prefix}surface_ref"))
    return _pick(display_tab_handle(raw_ref), id_, mode)


def ok_summary(payload: dict[str, Any], mode: IdFormat, kinds: tuple[str, ...] = ("surface", "workspace")) -> str:
    """One-line text summary of a successful mutation, e.g. ``OK surface:3 workspace:1``."""
    parts = ["OK"]
    for kind in kinds:
        if handle := format_handle(payload, kind, mode):
            parts.append(handle)
    return " ".join(parts)


def _is_int(text: str) -> bool:
    try:
        int(text)
    except ValueError:
        return False
    return True
