"""Structured output for CLI and JSON modes."""

# ruff: noqa: T201  # output layer, print() is how results reach the terminal

import json
import sys
from collections.abc import Callable
from typing import Any, NoReturn

import typer

from cmux_ctl.formatting import IdFormat, format_handle, format_ids, ok_summary, text_handle


class Output:
    """Handles all CLI output in JSON or human-readable format.

    Results go to stdout, errors to stderr, in both modes.
    """

    def __init__(self, *, json_mode: bool, id_format: IdFormat = IdFormat.REFS) -> None:
        """Initialize output handler.

        Args:
            json_mode: If True, print result payloads as JSON; otherwise human-readable text.
            id_format: Which identifier representation to show.

        """
        self._json_mode = json_mode
        self._id_format = id_format

    @property
    def json_mode(self) -> bool:
        """Whether results are printed as JSON."""
        return self._json_mode

    @property
    def id_format(self) -> IdFormat:
        """Selected identifier representation."""
        return self._id_format

    def _success(self, data: dict[str, Any], message: str) -> None:
        """Print a result payload in JSON or a human-readable line."""
        if self._json_mode:
            print(json.dumps(format_ids(data, self._id_format), indent=2, ensure_ascii=False))
        else:
            print(message)

    def print_error_and_exit(self, code: str, message: str) -> NoReturn:
        """Print a single error line to stderr and exit with code 1.

        Raises:
            typer.Exit: Always, with code 1.

        """
        if self._json_mode:
            print(json.dumps({"ok": False, "error": code, "message": message}), file=sys.stderr)
        else:
            print(f"Error: {message}", file=sys.stderr)
        raise typer.Exit(code=1)

    # --- Generic results ---

    def print_raw(self, text: str) -> None:
        """Print a v1 response as-is in both modes."""
        print(text)

    def print_payload(self, payload: dict[str, Any]) -> None:
        """Print a v2 result; text mode falls back to JSON since there is no better summary."""
        print(json.dumps(format_ids(payload, self._id_format), indent=2, ensure_ascii=False))

    def print_result(self, payload: dict[str, Any], text: str) -> None:
        """Print a v2 result as JSON, or as the given summary line in text mode."""
        self._success(payload, text)

    def print_ok(self, payload: dict[str, Any], kinds: tuple[str, ...] = ("surface", "workspace")) -> None:
        """Print a mutation result, e.g. ``OK surface:3 workspace:1``."""
        self._success(payload, ok_summary(payload, self._id_format, kinds))

    def print_current(self, payload: dict[str, Any], kind: str) -> None:
        """Print the current window or workspace handle."""
        self._success(payload, format_handle(payload, kind, self._id_format) or "")

    # --- Listings ---

    def _print_items(self, payload: dict[str, Any], items_key: str, empty: str, line: Callable[[dict[str, Any]], str]) -> None:
        """Print a listing, one entity per line, or the whole payload in JSON mode."""
        if self._json_mode:
            self.print_payload(payload)
            return
        items = [item for item in payload.get(items_key) or [] if isinstance(item, dict)]
        if not items:
            print(empty)
            return
        for item in items:
            print(line(item))

    def print_windows(self, payload: dict[str, Any]) -> None:
        """Print windows, the focused one marked with ``*``."""

        def line(item: dict[str, Any]) -> str:
            focused = item.get("focused") is True
            count = item.get("workspace_count")
            count_part = f"  [{count} workspace{'' if count == 1 else 's'}]" if isinstance(count, int) else ""
            return f"{_marker(focused)}{text_handle(item, self._id_format)}{count_part}{'  [focused]' if focused else ''}"

        self._print_items(payload, "windows", "No windows", line)

    def print_workspaces(self, payload: dict[str, Any]) -> None:
        """Print workspaces, the selected one marked with ``*``."""

        def line(item: dict[str, Any]) -> str:
            selected = item.get("selected") is True
            title = _str(item.get("title"))
            title_part = f"  {title}" if title else ""
            return f"{_marker(selected)}{text_handle(item, self._id_format)}{title_part}{'  [selected]' if selected else ''}"

        self._print_items(payload, "workspaces", "No workspaces", line)

    def print_panes(self, payload: dict[str, Any]) -> None:
        """Print panes with their surface counts, the focused one marked with ``*``."""

        def line(item: dict[str, Any]) -> str:
            focused = item.get("focused") is True
            count = item.get("surface_count") if isinstance(item.get("surface_count"), int) else 0
            count_part = f"  [{count} surface{'' if count == 1 else 's'}]"
            return f"{_marker(focused)}{text_handle(item, self._id_format)}{count_part}{'  [focused]' if focused else ''}"

        self._print_items(payload, "panes", "No panes", line)

    def print_pane_surfaces(self, payload: dict[str, Any]) -> None:
        """Print the surfaces (tabs) of one pane, the selected one marked with ``*``."""

        def line(item: dict[str, Any]) -> str:
            selected = item.get("selected") is True
            title = _str(item.get("title"))
            return f"{_marker(selected)}{text_handle(item, self._id_format)}  {title}{'  [selected]' if selected else ''}"

        self._print_items(payload, "surfaces", "No surfaces in pane", line)

    def print_surfaces(self, payload: dict[str, Any]) -> None:
        """Print every surface of a workspace with its type, the focused one marked with ``*``."""

        def line(item: dict[str, Any]) -> str:
            focused = item.get("focused") is True
            title = _str(item.get("title"))
            title_part = f'  "{title}"' if title else ""
            kind = _str(item.get("type"))
            return f"{_marker(focused)}{text_handle(item, self._id_format)}  {kind}{'  [focused]' if focused else ''}{title_part}"

        self._print_items(payload, "surfaces", "No surfaces", line)

    # --- Screen ---

    def print_screen(self, payload: dict[str, Any]) -> None:
        """Print captured terminal text."""
        text = payload.get("text")
        self._success(payload, text if isinstance(text, str) else "")


def _marker(current: bool) -> str:
    return "* " if current else "  "


def _str(value: Any) -> str:
    return value if isinstance(value, str) else ""
