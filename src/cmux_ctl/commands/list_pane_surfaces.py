"""List the surfaces (tabs) of a pane."""

from typing import Any

import typer

from cmux_ctl.app_context import open_session, use_context


def list_pane_surfaces(
    ctx: typer.Context,
    pane: str | None = typer.Option(default=None, help="Pane id, ref or index (default: focused pane)"),
    workspace: str | None = typer.Option(default=None, help="Workspace id, ref or index"),
) -> None:
    """List the surfaces stacked in one pane."""
    app = use_context(ctx)
    params: dict[str, Any] = {}
    with open_session(app) as session:
        if (workspace_id := session.resolver.resolve_workspace(app.workspace_arg(workspace))) is not None:
            params["workspace_id"] = workspace_id
        if (pane_id := session.resolver.resolve_pane(pane, workspace=workspace_id)) is not None:
            params["pane_id"] = pane_id
        payload = session.client.send_envelope("pane.surfaces", params)
    app.out.print_pane_surfaces(payload)
