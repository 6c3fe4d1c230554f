"""List every surface of a workspace."""

from typing import Any

import typer

from cmux_ctl.app_context import open_session, use_context


def list_panels(ctx: typer.Context, workspace: str | None = typer.Option(default=None, help="Workspace id, ref or index")) -> None:
    """List surfaces across all panes of a workspace."""
    app = use_context(ctx)
    params: dict[str, Any] = {}
    with open_session(app) as session:
        if (workspace_id := session.resolver.resolve_workspace(app.workspace_arg(workspace))) is not None:
            params["workspace_id"] = workspace_id
        payload = session.client.send_envelope("surface.list", params)
    app.out.print_surfaces(payload)
