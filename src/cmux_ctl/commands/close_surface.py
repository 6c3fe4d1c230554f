"""Close a surface."""

from typing import Any

import typer

from cmux_ctl.app_context import open_session, use_context


def close_surface(
    ctx: typer.Context,
    surface: str | None = typer.Option(default=None, help="Surface id, ref, tab ref or index (default: caller's surface)"),
    workspace: str | None = typer.Option(default=None, help="Workspace id, ref or index"),
) -> None:
    """Close a surface."""
    app = use_context(ctx)
    params: dict[str, Any] = {}
    with open_session(app) as session:
        if (workspace_id := session.resolver.resolve_workspace(app.workspace_arg(workspace))) is not None:
            params["workspace_id"] = workspace_id
        surface_arg = app.surface_arg(surface, workspace)
        if (surface_id := session.resolver.resolve_tab(surface_arg, workspace=workspace_id)) is not None:
            params["surface_id"] = surface_id
        payload = session.client.send_envelope("surface.close", params)
    app.out.print_ok(payload)
