"""List panes of a workspace."""

from typing import Any

import typer

from cmux_ctl.app_context import open_session, use_context


def list_panes(ctx: typer.Context, workspace: str | None = typer.Option(default=None, help="Workspace id, ref or index")) -> None:
    """List panes with their surface counts."""
    app = use_context(ctx)
    params: dict[str, Any] = {}
    with open_session(app) as session:
        if (workspace_id := session.resolver.resolve_workspace(app.workspace_arg(workspace))) is not None:
            params["workspace_id"] = workspace_id
        payload = session.client.send_envelope("pane.list", params)
    app.out.print_panes(payload)
