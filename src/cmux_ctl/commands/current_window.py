"""Show the current window."""

import typer

from cmux_ctl.app_context import open_session, use_context


def current_window(ctx: typer.Context) -> None:
    """Show the current window."""
    app = use_context(ctx)
    with open_session(app) as session:
        payload = session.client.send_envelope("window.current")
    app.out.print_current(payload, "window")
