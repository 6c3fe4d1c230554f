"""Identifier/handle resolution.

Callers may name an entity by canonical id (UUID), by ref (``workspace:2``), or by a
bare index into the current listing of its kind. Ids and refs are valid protocol input
as-is; indices are resolved locally by scanning a list response, scoped by the already
resolved parent (window ⊇ workspace ⊇ pane ⊇ surface), so callers resolve top-down.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Protocol

from cmux_ctl.errors import IndexNotFoundError, InvalidHandleError, NoImplicitTargetError

logger = logging.getLogger(__name__)

_REF_RE = re.compile(r"^(window|workspace|pane|surface):\d+$", re.IGNORECASE)
_TAB_RE = re.compile(r"^tab:(\d+)$", re.IGNORECASE)
_UUID_RE = re.compile(r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$")
_INDEX_RE = re.compile(r"^\d+$")


class EnvelopeSender(Protocol):
    """Anything that can issue a v2 request (the socket client, or a test double)."""

    def send_envelope(self, method: str, params: dict[str, Any] | None = None) -> dict[str, Any]: ...


@dataclass(frozen=True)
class _Listing:
    """How to list one entity kind."""

    method: str
    items_key: str
    scope_param: str | None


_LISTINGS = {
    "window": _Listing("window.list", "windows", None),
    "workspace": _Listing("workspace.list", "workspaces", "window_id"),
    "pane": _Listing("pane.list", "panes", "workspace_id"),
    "surface": _Listing("surface.list", "surfaces", "workspace_id"),
}


def is_canonical_id(value: str) -> bool:
    """Check whether a value is a canonical id: a UUID in hyphenated 8-4-4-4-12 form."""
    return _UUID_RE.match(value) is not None


def is_handle_ref(value: str) -> bool:
    """Check whether a value is a ``<kind>:<n>`` ref of any known kind."""
    return _REF_RE.match(value) is not None


def canonical_surface_from_tab(value: str) -> str:
    """Rewrite ``tab:<n>`` input into ``surface:<n>``; anything else is returned trimmed."""
    trimmed = value.strip()
    if match := _TAB_RE.match(trimmed):
        return f"surface:{int(match.group(1))}"
    return trimmed


def item_index(item: dict[str, Any]) -> int | None:
    """Read the ``index`` field of a listed item (int or numeric string)."""
    value = item.get("index")
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and _INDEX_RE.match(value.strip()):
        return int(value)
    return None


def _handle_of(item: dict[str, Any], prefix: str = "") -> str | None:
    """Prefer the ref of an item, falling back to its id."""
    for key in (f"{prefix}ref", f"{prefix}id"):
        value = item.get(key)
        if isinstance(value, str) and value:
            return value
    return None


def _items(payload: dict[str, Any], key: str) -> list[dict[str, Any]]:
    raw = payload.get(key)
    if not isinstance(raw, list):
        return []
    return [item for item in raw if isinstance(item, dict)]


class HandleResolver:
    """Turns caller tokens into protocol handles, issuing list/current queries when needed."""

    def __init__(self, client: EnvelopeSender) -> None:
        """Initialize resolver.

        Args:
            client: Connection used for list and current/focused queries.

        """
        self._client = client

    # --- Public API, one method per kind ---

    def resolve_window(self, raw: str | None, *, allow_implicit: bool = False) -> str | None:
        """Resolve a window token."""
        return self._resolve("window", raw, None, allow_implicit)

    def resolve_workspace(self, raw: str | None, *, window: str | None = None, allow_implicit: bool = False) -> str | None:
        """Resolve a workspace token, indices scoped by ``window`` when given."""
        return self._resolve("workspace", raw, window, allow_implicit)

    def resolve_pane(self, raw: str | None, *, workspace: str | None = None, allow_implicit: bool = False) -> str | None:
        """Resolve a pane token, indices scoped by ``workspace`` when given."""
        return self._resolve("pane", raw, workspace, allow_implicit)

    def resolve_surface(self, raw: str | None, *, workspace: str | None = None, allow_implicit: bool = False) -> str | None:
        """Resolve a surface token, indices scoped by ``workspace`` when given."""
        return self._resolve("surface", raw, workspace, allow_implicit)

    def resolve_tab(self, raw: str | None, *, workspace: str | None = None, allow_implicit: bool = False) -> str | None:
        """Resolve a tab token: ``tab:<n>`` is the surface ref ``surface:<n>`` under another name."""
        if raw is not None:
            raw = canonical_surface_from_tab(raw)
        return self.resolve_surface(raw, workspace=workspace, allow_implicit=allow_implicit)

    # --- Canonical-id resolution (for v1 verbs that only accept UUIDs) ---

    def resolve_workspace_id(self, raw: str | None) -> str:
        """Resolve a workspace token to its canonical id, defaulting to the current workspace.

        Refs are searched across every window's listing.

        Raises:
            InvalidHandleError, IndexNotFoundError, NoImplicitTargetError

        """
        token = raw.strip() if raw is not None else ""
        if token and is_canonical_id(token):
            return token
        if token and is_handle_ref(token):
            for window in _items(self._client.send_envelope("window.list"), "windows"):
                window_id = window.get("id")
                if not isinstance(window_id, str):
                    continue
                listed = self._client.send_envelope("workspace.list", {"window_id": window_id})
                for item in _items(listed, "workspaces"):
                    if item.get("ref") == token and isinstance(item.get("id"), str):
                        return item["id"]
            raise IndexNotFoundError("workspace", token)
        if token:
            index = self._parse_index("workspace", token)
            for item in _items(self._client.send_envelope("workspace.list"), "workspaces"):
                if item_index(item) == index and isinstance(item.get("id"), str):
                    return item["id"]
            raise IndexNotFoundError("workspace", index)

        current = self._client.send_envelope("workspace.current")
        workspace_id = current.get("workspace_id")
        if isinstance(workspace_id, str) and workspace_id:
            return workspace_id
        raise NoImplicitTargetError("workspace")

    def resolve_surface_id(self, raw: str | None, workspace_id: str) -> str:
        """Resolve a surface token within a workspace to its canonical id, defaulting to the focused surface.

        Raises:
            InvalidHandleError, IndexNotFoundError, NoImplicitTargetError

        """
        token = raw.strip() if raw is not None else ""
        if token:
            token = canonical_surface_from_tab(token)
        if token and is_canonical_id(token):
            return token

        items = _items(self._client.send_envelope("surface.list", {"workspace_id": workspace_id}), "surfaces")
        if token and is_handle_ref(token):
            for item in items:
                if item.get("ref") == token and isinstance(item.get("id"), str):
                    return item["id"]
            raise IndexNotFoundError("surface", token)
        if token:
            index = self._parse_index("surface", token)
            for item in items:
                if item_index(item) == index and isinstance(item.get("id"), str):
                    return item["id"]
            raise IndexNotFoundError("surface", index)

        for item in items:
            if item.get("focused") is True and isinstance(item.get("id"), str):
                return item["id"]
        raise NoImplicitTargetError("surface")

    # --- Internals ---

    def _resolve(self, kind: str, raw: str | None, scope: str | None, allow_implicit: bool) -> str | None:
        token = raw.strip() if raw is not None else ""
        if not token:
            return self._implicit(kind, scope) if allow_implicit else None

        # Already valid protocol input, no round trip
        if is_canonical_id(token) or is_handle_ref(token):
            return token

        index = self._parse_index(kind, token)
        listing = _LISTINGS[kind]
        params: dict[str, Any] = {}
        if scope is not None and listing.scope_param is not None:
            params[listing.scope_param] = scope
        payload = self._client.send_envelope(listing.method, params)
        for item in _items(payload, listing.items_key):
            if item_index(item) == index and (handle := _handle_of(item)):
                logger.debug("Resolved %s index %d to %s", kind, index, handle)
                return handle
        raise IndexNotFoundError(kind, index)

    def _implicit(self, kind: str, scope: str | None) -> str:
        """Return the current/focused handle of a kind."""
        handle: str | None
        match kind:
            case "window":
                handle = _handle_of(self._client.send_envelope("window.current"), "window_")
            case "workspace":
                params = {"window_id": scope} if scope is not None else {}
                handle = _handle_of(self._client.send_envelope("workspace.current", params), "workspace_")
            case _ if scope is not None:
                listing = _LISTINGS[kind]
                payload = self._client.send_envelope(listing.method, {listing.scope_param or "workspace_id": scope})
                focused = next((item for item in _items(payload, listing.items_key) if item.get("focused") is True), {})
                handle = _handle_of(focused)
            case _:
                identity = self._client.send_envelope("system.identify")
                focused = identity.get("focused")
                handle = _handle_of(focused, f"{kind}_") if isinstance(focused, dict) else None
        if handle is None:
            raise NoImplicitTargetError(kind)
        return handle

    @staticmethod
    def _parse_index(kind: str, token: str) -> int:
        if not _INDEX_RE.match(token):
            raise InvalidHandleError(kind, token)
        return int(token)
