"""Focus a pane."""

from typing import Any

import typer

from cmux_ctl.app_context import open_session, use_context


def focus_pane(
    ctx: typer.Context,
    pane: str = typer.Argument(help="Pane id, ref or index"),
    workspace: str | None = typer.Option(default=None, help="Workspace id, ref or index"),
) -> None:
    """Move keyboard focus to a pane."""
    app = use_context(ctx)
    params: dict[str, Any] = {}
    with open_session(app) as session:
        if (workspace_id := session.resolver.resolve_workspace(app.workspace_arg(workspace))) is not None:
            params["workspace_id"] = workspace_id
        params["pane_id"] = session.resolver.resolve_pane(pane, workspace=workspace_id)
        payload = session.client.send_envelope("pane.focus", params)
    app.out.print_ok(payload, ("pane", "workspace"))
