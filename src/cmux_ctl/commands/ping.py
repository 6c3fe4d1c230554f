"""Check that the application is reachable."""

import typer

from cmux_ctl.app_context import open_session, use_context


def ping(ctx: typer.Context) -> None:
    """Ping the running application."""
    app = use_context(ctx)
    with open_session(app) as session:
        response = session.client.send_command("ping")
    app.out.print_raw(response)
