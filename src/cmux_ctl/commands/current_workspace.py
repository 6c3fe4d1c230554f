"""Show the current workspace."""

import typer

from cmux_ctl.app_context import open_session, use_context


def current_workspace(ctx: typer.Context) -> None:
    """Show the selected workspace of the current (or --window) window."""
    app = use_context(ctx)
    with open_session(app) as session:
        payload = session.client.send_envelope("workspace.current")
    app.out.print_current(payload, "workspace")
