"""Send text to a terminal surface."""

from typing import Any

import typer

from cmux_ctl.app_context import open_session, use_context


def unescape_text(text: str) -> str:
    r"""Expand ``\n``, ``\r`` and ``\t`` escapes; newlines are sent as carriage returns, like the Enter key."""
    return text.replace("\\n", "\r").replace("\\r", "\r").replace("\\t", "\t")


def send(
    ctx: typer.Context,
    text: list[str] = typer.Argument(help=r"Text to type; \n presses Enter"),
    workspace: str | None = typer.Option(default=None, help="Workspace id, ref or index"),
    surface: str | None = typer.Option(default=None, help="Surface id, ref, tab ref or index"),
) -> None:
    """Type text into a terminal surface."""
    app = use_context(ctx)
    raw = " ".join(text)
    if not raw:
        app.out.print_error_and_exit("invalid_argument", "send requires text")
    params: dict[str, Any] = {"text": unescape_text(raw)}
    with open_session(app) as session:
        if (workspace_id := session.resolver.resolve_workspace(app.workspace_arg(workspace))) is not None:
            params["workspace_id"] = workspace_id
        if (surface_id := session.resolver.resolve_tab(app.surface_arg(surface, workspace), workspace=workspace_id)) is not None:
            params["surface_id"] = surface_id
        payload = session.client.send_envelope("surface.send_text", params)
    app.out.print_ok(payload)
