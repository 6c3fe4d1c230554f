"""Send a key press to a terminal surface."""

from typing import Any

import typer

from cmux_ctl.app_context import open_session, use_context


def send_key(
    ctx: typer.Context,
    key: str = typer.Argument(help="Key name, e.g. enter, escape, ctrl-c"),
    workspace: str | None = typer.Option(default=None, help="Workspace id, ref or index"),
    surface: str | None = typer.Option(default=None, help="Surface id, ref, tab ref or index"),
) -> None:
    """Press a key in a terminal surface."""
    app = use_context(ctx)
    params: dict[str, Any] = {"key": key}
    with open_session(app) as session:
        if (workspace_id := session.resolver.resolve_workspace(app.workspace_arg(workspace))) is not None:
            params["workspace_id"] = workspace_id
        if (surface_id := session.resolver.resolve_tab(app.surface_arg(surface, workspace), workspace=workspace_id)) is not None:
            params["surface_id"] = surface_id
        payload = session.client.send_envelope("surface.send_key", params)
    app.out.print_ok(payload)
