"""List windows."""

import typer

from cmux_ctl.app_context import open_session, use_context


def list_windows(ctx: typer.Context) -> None:
    """List windows."""
    app = use_context(ctx)
    with open_session(app) as session:
        payload = session.client.send_envelope("window.list")
    app.out.print_windows(payload)
