"""Show focused window, workspace, pane and surface."""

from typing import Any

import typer

from cmux_ctl.app_context import open_session, use_context


def identify(
    ctx: typer.Context,
    workspace: str | None = typer.Option(default=None, help="Caller workspace (id, ref or index)"),
    surface: str | None = typer.Option(default=None, help="Caller surface (id, ref or index)"),
    *,
    no_caller: bool = typer.Option(False, "--no-caller", help="Do not report the calling workspace/surface"),
) -> None:
    """Identify focused and calling context."""
    app = use_context(ctx)
    params: dict[str, Any] = {}
    with open_session(app) as session:
        if not no_caller:
            workspace_arg = app.workspace_arg(workspace)
            surface_arg = app.surface_arg(surface, workspace)
            if workspace_arg is not None or surface_arg is not None:
                caller: dict[str, Any] = {}
                workspace_id = session.resolver.resolve_workspace(workspace_arg, allow_implicit=surface_arg is not None)
                if workspace_id is not None:
                    caller["workspace_id"] = workspace_id
                if surface_arg is not None:
                    caller["surface_id"] = session.resolver.resolve_surface(surface_arg, workspace=workspace_id)
                if caller:
                    params["caller"] = caller
        payload = session.client.send_envelope("system.identify", params)
    app.out.print_payload(payload)
