"""Close a workspace."""

import typer

from cmux_ctl.app_context import open_session, use_context


def close_workspace(ctx: typer.Context, workspace: str = typer.Argument(help="Workspace id, ref or index")) -> None:
    """Close a workspace and all of its panes."""
    app = use_context(ctx)
    with open_session(app) as session:
        workspace_id = session.resolver.resolve_workspace(workspace)
        payload = session.client.send_envelope("workspace.close", {"workspace_id": workspace_id})
    app.out.print_ok(payload, ("workspace",))
