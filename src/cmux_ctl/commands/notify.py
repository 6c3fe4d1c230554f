"""Post a notification attached to a workspace and surface."""

import typer

from cmux_ctl.app_context import open_session, use_context


def notify(
    ctx: typer.Context,
    title: str = typer.Option(default="Notification", help="Notification title"),
    subtitle: str = typer.Option(default="", help="Notification subtitle"),
    body: str = typer.Option(default="", help="Notification body"),
    workspace: str | None = typer.Option(default=None, help="Workspace id, ref or index (default: caller's workspace)"),
    surface: str | None = typer.Option(default=None, help="Surface id, ref, tab ref or index (default: caller's surface)"),
) -> None:
    """Post a notification to the application."""
    app = use_context(ctx)
    with open_session(app) as session:
        # notify_target is a v1 verb and only takes canonical ids
        workspace_id = session.resolver.resolve_workspace_id(app.workspace_arg(workspace))
        surface_id = session.resolver.resolve_surface_id(app.surface_arg(surface, workspace), workspace_id)
        response = session.client.send_command(f"notify_target {workspace_id} {surface_id} {title}|{subtitle}|{body}")
    app.out.print_raw(response)
