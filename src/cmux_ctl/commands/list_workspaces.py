"""List workspaces."""

import typer

from cmux_ctl.app_context import open_session, use_context


def list_workspaces(ctx: typer.Context) -> None:
    """List workspaces of the current (or --window) window."""
    app = use_context(ctx)
    with open_session(app) as session:
        payload = session.client.send_envelope("workspace.list")
    app.out.print_workspaces(payload)
