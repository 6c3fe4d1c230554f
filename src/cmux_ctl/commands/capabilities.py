"""Show protocol capabilities of the running application."""

import typer

from cmux_ctl.app_context import open_session, use_context


def capabilities(ctx: typer.Context) -> None:
    """Show supported protocol methods and features."""
    app = use_context(ctx)
    with open_session(app) as session:
        payload = session.client.send_envelope("system.capabilities")
    app.out.print_payload(payload)
