"""Run an action on a tab (surface), and the rename-tab shortcut."""

import json
from typing import Any

import typer

from cmux_ctl.app_context import AppContext, open_session, use_context
from cmux_ctl.formatting import format_handle, format_tab_handle


def tab_action(
    ctx: typer.Context,
    args: list[str] | None = typer.Argument(default=None, help="Action name (unless --action is given), then an optional title"),
    action: str | None = typer.Option(default=None, help="Action name, e.g. rename, close, pin"),
    title: str | None = typer.Option(default=None, help="Title for rename"),
    url: str | None = typer.Option(default=None, help="URL for actions that open one"),
    workspace: str | None = typer.Option(default=None, help="Workspace id, ref or index"),
    tab: str | None = typer.Option(default=None, help="Tab id, tab:N ref or index"),
    surface: str | None = typer.Option(default=None, help="Alias of --tab"),
) -> None:
    """Run an action on a tab."""
    app = use_context(ctx)
    positional = list(args or [])
    if action is None:
        if not positional:
            app.out.print_error_and_exit("invalid_argument", "tab-action requires --action <name>")
        action = positional.pop(0)
    inferred_title = " ".join(positional).strip()
    run_tab_action(app, action, workspace=workspace, tab=tab or surface, title=title or inferred_title or None, url=url)


def rename_tab(
    ctx: typer.Context,
    words: list[str] | None = typer.Argument(default=None, help="New title"),
    title: str | None = typer.Option(default=None, help="New title"),
    workspace: str | None = typer.Option(default=None, help="Workspace id, ref or index"),
    tab: str | None = typer.Option(default=None, help="Tab id, tab:N ref or index"),
    surface: str | None = typer.Option(default=None, help="Alias of --tab"),
) -> None:
    """Rename a tab."""
    app = use_context(ctx)
    new_title = (title or " ".join(words or [])).strip()
    if not new_title:
        app.out.print_error_and_exit("invalid_argument", "rename-tab requires a title")
    run_tab_action(app, "rename", workspace=workspace, tab=tab or surface, title=new_title)


def run_tab_action(
    app: AppContext,
    action: str,
    *,
    workspace: str | None = None,
    tab: str | None = None,
    title: str | None = None,
    url: str | None = None,
) -> None:
    """Send ``tab.action`` and print a one-line summary."""
    action = action.lower().replace("-", "_")
    title = title.strip() if title else None
    if action == "rename" and not title:
        app.out.print_error_and_exit("invalid_argument", "tab-action rename requires --title <text> (or a trailing title)")

    params: dict[str, Any] = {"action": action}
    with open_session(app) as session:
        workspace_id = session.resolver.resolve_workspace(app.workspace_arg(workspace), allow_implicit=True)
        if workspace_id is not None:
            params["workspace_id"] = workspace_id
        # Without a tab, the server picks the focused tab of the targeted workspace
        tab_arg = app.surface_arg(tab, workspace, tab=True)
        if (surface_id := session.resolver.resolve_tab(tab_arg, workspace=workspace_id, allow_implicit=workspace_id is None)) is not None:
            params["surface_id"] = surface_id
        if title:
            params["title"] = title
        if url and url.strip():
            params["url"] = url.strip()
        payload = session.client.send_envelope("tab.action", params)

    mode = app.out.id_format
    parts = ["OK", f"action={action}"]
    if tab_handle := format_tab_handle(payload, mode):
        parts.append(f"tab={tab_handle}")
    if workspace_handle := format_handle(payload, "workspace", mode):
        parts.append(f"workspace={workspace_handle}")
    if "closed" in payload:
        parts.append(f"closed={json.dumps(payload['closed'])}")
    if created := format_tab_handle(payload, mode, prefix="created_"):
        parts.append(f"created={created}")
    app.out.print_result(payload, " ".join(parts))
