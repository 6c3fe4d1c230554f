"""Read the text of a terminal surface."""

from typing import Any

import typer

from cmux_ctl.app_context import open_session, use_context


def read_screen(
    ctx: typer.Context,
    workspace: str | None = typer.Option(default=None, help="Workspace id, ref or index"),
    surface: str | None = typer.Option(default=None, help="Surface id, ref, tab ref or index"),
    lines: int | None = typer.Option(default=None, help="Last N lines, including scrollback"),
    *,
    scrollback: bool = typer.Option(default=False, help="Include scrollback"),
) -> None:
    """Print the visible (or scrollback) text of a terminal surface."""
    app = use_context(ctx)
    params: dict[str, Any] = {}
    if scrollback:
        params["scrollback"] = True
    if lines is not None:
        if lines <= 0:
            app.out.print_error_and_exit("invalid_argument", "--lines must be greater than 0")
        params["lines"] = lines
        params["scrollback"] = True
    with open_session(app) as session:
        if (workspace_id := session.resolver.resolve_workspace(app.workspace_arg(workspace))) is not None:
            params["workspace_id"] = workspace_id
        if (surface_id := session.resolver.resolve_tab(app.surface_arg(surface, workspace), workspace=workspace_id)) is not None:
            params["surface_id"] = surface_id
        payload = session.client.send_envelope("surface.read_text", params)
    app.out.print_screen(payload)
