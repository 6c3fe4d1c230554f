"""CLI entry point for cmux-ctl."""

from pathlib import Path
from typing import Annotated

import typer
from mm_clikit import TyperPlus

from cmux_ctl.app_context import AppContext
from cmux_ctl.commands.capabilities import capabilities
from cmux_ctl.commands.claude_hook import claude_hook
from cmux_ctl.commands.close_surface import close_surface
from cmux_ctl.commands.close_workspace import close_workspace
from cmux_ctl.commands.current_window import current_window
from cmux_ctl.commands.current_workspace import current_workspace
from cmux_ctl.commands.focus_pane import focus_pane
from cmux_ctl.commands.identify import identify
from cmux_ctl.commands.list_pane_surfaces import list_pane_surfaces
from cmux_ctl.commands.list_panels import list_panels
from cmux_ctl.commands.list_panes import list_panes
from cmux_ctl.commands.list_windows import list_windows
from cmux_ctl.commands.list_workspaces import list_workspaces
from cmux_ctl.commands.notify import notify
from cmux_ctl.commands.ping import ping
from cmux_ctl.commands.read_screen import read_screen
from cmux_ctl.commands.select_workspace import select_workspace
from cmux_ctl.commands.send import send
from cmux_ctl.commands.send_key import send_key
from cmux_ctl.commands.tab_action import rename_tab, tab_action
from cmux_ctl.config import Config
from cmux_ctl.errors import CmuxError
from cmux_ctl.formatting import IdFormat
from cmux_ctl.log import setup_logging
from cmux_ctl.output import Output

app = TyperPlus(package_name="cmux-ctl")


@app.callback()
def callback(
    ctx: typer.Context,
    *,
    json_output: Annotated[bool, typer.Option("--json", help="Output results as JSON.")] = False,
    id_format: Annotated[str | None, typer.Option("--id-format", help="Identifiers to show: refs, uuids or both.")] = None,
    socket_path: Annotated[Path | None, typer.Option("--socket", help="Control socket path.")] = None,
    password: Annotated[str | None, typer.Option("--password", help="Socket password.")] = None,
    window: Annotated[str | None, typer.Option("--window", help="Focus this window (id, ref or index) first.")] = None,
    data_dir: Annotated[Path | None, typer.Option("--data-dir", help="Data directory path.")] = None,
) -> None:
    """Control a running cmux application from the terminal."""
    out = Output(json_mode=json_output)
    try:
        mode = IdFormat.parse(id_format)
    except CmuxError as e:
        out.print_error_and_exit(e.code, str(e))
    cfg = Config.build(data_dir, socket_path)
    cfg.data_dir.mkdir(parents=True, exist_ok=True)
    setup_logging(cfg.log_path, cfg.log_level)
    ctx.obj = AppContext(out=Output(json_mode=json_output, id_format=mode), cfg=cfg, password=password, window=window)


# System
app.command()(ping)
app.command()(capabilities)
app.command()(identify)

# Windows
app.command("list-windows")(list_windows)
app.command("current-window")(current_window)

# Workspaces
app.command("list-workspaces", aliases=["ls"])(list_workspaces)
app.command("current-workspace")(current_workspace)
app.command("select-workspace")(select_workspace)
app.command("close-workspace")(close_workspace)

# Panes and surfaces
app.command("list-panes")(list_panes)
app.command("focus-pane")(focus_pane)
app.command("list-pane-surfaces")(list_pane_surfaces)
app.command("list-panels")(list_panels)
app.command("close-surface")(close_surface)
app.command("tab-action")(tab_action)
app.command("rename-tab")(rename_tab)

# Terminal I/O
app.command()(send)
app.command("send-key")(send_key)
app.command("read-screen")(read_screen)

# Notifications
app.command()(notify)
app.command("claude-hook")(claude_hook)
