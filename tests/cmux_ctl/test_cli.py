"""End-to-end command tests: CLI → socket client → fake application."""

import json
from collections.abc import Callable
from pathlib import Path

import pytest
from conftest import FakeSocketServer, Handler, V2Error, routing_handler
from typer.testing import CliRunner, Result

from cmux_ctl.affinity import SessionAffinityStore
from cmux_ctl.cli import app

WS_ID = "6E1D2C3B-4A59-4F68-8E7D-9C0B1A2F3E4D"
SURFACE_IDS = ["A0000000-0000-4000-8000-000000000001", "A0000000-0000-4000-8000-000000000002"]
# Workspace recorded by an earlier session that has since been closed
CLOSED_WS_ID = "DEADBEEF-0000-4000-8000-000000000000"

SURFACES = {
    "surfaces": [
        {"index": 0, "id": SURFACE_IDS[0], "ref": "surface:1", "type": "terminal", "focused": False},
        {"index": 1, "id": SURFACE_IDS[1], "ref": "surface:2", "type": "terminal", "focused": True, "title": "npm run dev"},
    ]
}

runner = CliRunner()

Invoke = Callable[..., Result]

V2_ROUTES = {
    "window.list": {"windows": [{"index": 0, "id": "W-0", "ref": "window:1", "focused": True, "workspace_count": 2}, {"index": 1, "id": "W-1", "ref": "window:2"}]},
    "window.focus": lambda params: {"window_ref": params["window_id"]},
    "workspace.list": {
        "workspaces": [
            {"index": 0, "id": "WS-0", "ref": "workspace:1", "title": "api", "selected": False},
            {"index": 1, "id": WS_ID, "ref": "workspace:2", "title": "web", "selected": True},
        ]
    },
    "workspace.current": {"workspace_id": WS_ID, "workspace_ref": "workspace:2"},
    "workspace.select": lambda params: {"workspace_ref": params["workspace_id"], "workspace_id": WS_ID},
    "workspace.close": V2Error("not_found", "Workspace not found"),
    "surface.list": lambda params: V2Error("not_found", "Workspace not found") if params.get("workspace_id") == CLOSED_WS_ID else SURFACES,
    "surface.send_text": lambda params: {"surface_ref": params.get("surface_id"), "workspace_ref": "workspace:2"},
    "tab.action": lambda params: {
        "action": params["action"],
        "surface_id": SURFACE_IDS[1],
        "surface_ref": params.get("surface_id", "surface:2"),
        "workspace_id": WS_ID,
        "workspace_ref": "workspace:2",
    },
}

# v1 verbs answered with OK regardless of arguments
V1_OK_PREFIXES = ("notify_target ", "set_status ", "clear_status ")


@pytest.fixture
def server(serve: Callable[[Handler], FakeSocketServer]) -> FakeSocketServer:
    base = routing_handler(V2_ROUTES, {"ping": "PONG"})

    def handle(line: str) -> list[bytes]:
        if line.startswith(V1_OK_PREFIXES):
            return [b"OK\n"]
        return base(line)

    return serve(handle)


@pytest.fixture
def invoke(server: FakeSocketServer, tmp_path: Path) -> Invoke:
    """Run the CLI against the fake server with an isolated data directory."""

    def run(*args: str, stdin: str | None = None, env: dict[str, str] | None = None) -> Result:
        return runner.invoke(app, ["--data-dir", str(tmp_path), "--socket", str(server.path), *args], input=stdin, env=env)

    return run


class TestErrors:
    """Failures are one line on stderr with exit status 1."""

    def test_socket_not_found(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["--data-dir", str(tmp_path), "--socket", str(tmp_path / "none.sock"), "ping"])
        assert result.exit_code == 1
        assert "Error: Socket not found at" in result.output

    def test_json_error(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["--json", "--data-dir", str(tmp_path), "--socket", str(tmp_path / "none.sock"), "ping"])
        assert result.exit_code == 1
        assert json.loads(result.output.strip().splitlines()[-1])["error"] == "socket_not_found"

    def test_invalid_id_format(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["--id-format", "ids", "--data-dir", str(tmp_path), "ping"])
        assert result.exit_code == 1
        assert "--id-format must be one of" in result.output

    def test_remote_error(self, invoke: Invoke) -> None:
        result = invoke("close-workspace", "workspace:1")
        assert result.exit_code == 1
        assert "Error: not_found: Workspace not found" in result.output

    def test_index_not_found(self, invoke: Invoke, server: FakeSocketServer) -> None:
        result = invoke("select-workspace", "7")
        assert result.exit_code == 1
        assert "Workspace index not found: 7" in result.output
        assert "workspace.select" not in server.methods

    def test_invalid_lines(self, invoke: Invoke, server: FakeSocketServer) -> None:
        """Argument validation fails before anything is sent."""
        result = invoke("read-screen", "--lines", "0")
        assert result.exit_code == 1
        assert server.lines == []


class TestSystem:
    def test_ping(self, invoke: Invoke) -> None:
        result = invoke("ping")
        assert result.exit_code == 0
        assert result.output == "PONG\n"

    def test_window_focused_first(self, invoke: Invoke, server: FakeSocketServer) -> None:
        """--window resolves and focuses the window before the command runs."""
        result = invoke("--window", "1", "ping")
        assert result.exit_code == 0
        assert server.requests[:2] == [("window.list", {}), ("window.focus", {"window_id": "window:2"})]
        assert server.lines[-1] == "ping"


class TestListings:
    def test_workspaces_text(self, invoke: Invoke) -> None:
        result = invoke("list-workspaces")
        assert result.exit_code == 0
        assert result.output.splitlines() == ["  workspace:1  api", "* workspace:2  web  [selected]"]

    def test_workspaces_uuids(self, invoke: Invoke) -> None:
        result = invoke("--id-format", "uuids", "list-workspaces")
        assert result.output.splitlines()[1] == f"* {WS_ID}  web  [selected]"

    def test_workspaces_json_refs(self, invoke: Invoke) -> None:
        """JSON output drops ids that have a ref sibling."""
        result = invoke("--json", "list-workspaces")
        workspaces = json.loads(result.output)["workspaces"]
        assert workspaces[1] == {"index": 1, "ref": "workspace:2", "title": "web", "selected": True}

    def test_windows(self, invoke: Invoke) -> None:
        result = invoke("list-windows")
        assert result.output.splitlines() == ["* window:1  [2 workspaces]  [focused]", "  window:2"]

    def test_panels_scoped_by_env(self, invoke: Invoke, server: FakeSocketServer) -> None:
        """Caller's workspace comes from the environment."""
        result = invoke("list-panels", env={"CMUX_WORKSPACE_ID": WS_ID})
        assert result.exit_code == 0
        assert server.requests == [("surface.list", {"workspace_id": WS_ID})]
        assert result.output.splitlines() == ["  surface:1  terminal", '* surface:2  terminal  [focused]  "npm run dev"']

    def test_current_workspace(self, invoke: Invoke) -> None:
        assert invoke("current-workspace").output == "workspace:2\n"


class TestMutations:
    def test_select_workspace_by_index(self, invoke: Invoke, server: FakeSocketServer) -> None:
        result = invoke("select-workspace", "1")
        assert result.exit_code == 0
        assert server.requests[-1] == ("workspace.select", {"workspace_id": "workspace:2"})
        assert result.output == "OK workspace:2\n"

    def test_send_unescapes_enter(self, invoke: Invoke, server: FakeSocketServer) -> None:
        result = invoke("send", "--surface", "tab:2", "echo hi\\n")
        assert result.exit_code == 0
        assert server.requests == [("surface.send_text", {"text": "echo hi\r", "surface_id": "surface:2"})]
        assert result.output == "OK surface:2 workspace:2\n"

    def test_tab_action_summary(self, invoke: Invoke, server: FakeSocketServer) -> None:
        result = invoke("tab-action", "rename", "--title", "New name", "--workspace", "workspace:2")
        assert result.exit_code == 0
        assert server.requests == [("tab.action", {"action": "rename", "workspace_id": "workspace:2", "title": "New name"})]
        assert result.output == "OK action=rename tab=tab:2 workspace=workspace:2\n"

    def test_tab_action_requires_title_for_rename(self, invoke: Invoke, server: FakeSocketServer) -> None:
        result = invoke("tab-action", "--action", "rename")
        assert result.exit_code == 1
        assert server.lines == []

    def test_rename_tab(self, invoke: Invoke, server: FakeSocketServer) -> None:
        """rename-tab is tab-action rename with the trailing words as the title."""
        result = invoke("rename-tab", "--tab", "tab:3", "My", "title")
        assert result.exit_code == 0
        assert server.requests[-1] == (
            "tab.action",
            {"action": "rename", "workspace_id": "workspace:2", "surface_id": "surface:3", "title": "My title"},
        )
        assert result.output.startswith("OK action=rename tab=tab:3")

    def test_notify_uses_canonical_ids(self, invoke: Invoke, server: FakeSocketServer) -> None:
        result = invoke("notify", "--title", "Build", "--body", "done", "--surface", "1")
        assert result.exit_code == 0
        assert server.lines[-1] == f"notify_target {WS_ID} {SURFACE_IDS[1]} Build||done"


class TestClaudeHook:
    """Session affinity across hook events."""

    def test_session_lifecycle(self, invoke: Invoke, server: FakeSocketServer, tmp_path: Path) -> None:
        state_path = tmp_path / "claude-hook-sessions.json"
        caller_env = {"CMUX_WORKSPACE_ID": WS_ID, "CMUX_SURFACE_ID": SURFACE_IDS[0]}

        started = invoke("claude-hook", "session-start", stdin=json.dumps({"session_id": "sess-1", "cwd": "/src/app"}), env=caller_env)
        assert started.exit_code == 0
        assert started.output == "OK\n"
        record = json.loads(state_path.read_text())["sessions"]["sess-1"]
        assert (record["workspaceId"], record["surfaceId"], record["cwd"]) == (WS_ID, SURFACE_IDS[0], "/src/app")
        assert server.lines[-1] == f'set_status claude_code "Running" --icon=bolt.fill --color=#4C8DFF --tab={WS_ID}'

        # Later events arrive without caller context; the store routes them to the original surface
        message = {"session_id": "sess-1", "message": "Claude needs your permission to use Bash"}
        notified = invoke("claude-hook", "notification", stdin=json.dumps(message))
        assert notified.exit_code == 0
        notify_lines = [line for line in server.lines if line.startswith("notify_target")]
        assert notify_lines[-1] == (
            f"notify_target {WS_ID} {SURFACE_IDS[0]} Claude Code|Permission|Claude needs your permission to use Bash [sess-1]"
        )
        assert server.lines[-1].startswith('set_status claude_code "Needs input" --icon=bell.fill')

        stopped = invoke("claude-hook", "stop", stdin=json.dumps({"session_id": "sess-1"}))
        assert stopped.exit_code == 0
        assert f"clear_status claude_code --tab={WS_ID}" in server.lines
        assert server.lines[-1] == (
            f"notify_target {WS_ID} {SURFACE_IDS[0]} Claude Code|Completed|"
            "Claude session completed in app. Last: Claude needs your permission to use Bash [sess-1]"
        )
        assert json.loads(state_path.read_text())["sessions"] == {}

    def test_stop_without_context(self, invoke: Invoke, server: FakeSocketServer) -> None:
        """Unknown session with no context clears the status and reports OK."""
        result = invoke("claude-hook", "idle", stdin="{}")
        assert result.exit_code == 0
        assert result.output == "OK\n"
        assert not any(line.startswith("notify_target") for line in server.lines)

    def test_unusable_store_degrades(self, invoke: Invoke, server: FakeSocketServer, tmp_path: Path) -> None:
        """A broken store path does not fail the hook."""
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        env = {"CMUX_CLAUDE_HOOK_STATE_PATH": str(blocker / "s.json"), "CMUX_WORKSPACE_ID": WS_ID}
        result = invoke("claude-hook", "session-start", stdin=json.dumps({"session_id": "sess-2"}), env=env)
        assert result.exit_code == 0
        assert server.lines[-1].startswith("set_status claude_code")

    def test_notification_for_closed_workspace(self, invoke: Invoke, server: FakeSocketServer, tmp_path: Path) -> None:
        """A recorded workspace that no longer exists falls back to the current one, keeping the recorded surface."""
        store = SessionAffinityStore(tmp_path / "claude-hook-sessions.json")
        store.upsert("sess-3", CLOSED_WS_ID, SURFACE_IDS[0])

        result = invoke("claude-hook", "notification", stdin=json.dumps({"session_id": "sess-3", "message": "Look here"}))
        assert result.exit_code == 0
        assert ("surface.list", {"workspace_id": CLOSED_WS_ID}) in server.requests
        notify_lines = [line for line in server.lines if line.startswith("notify_target")]
        assert notify_lines == [f"notify_target {WS_ID} {SURFACE_IDS[0]} Claude Code|Attention|Look here [sess-3]"]
        record = store.lookup("sess-3")
        assert record is not None
        assert (record.workspace_id, record.surface_id) == (WS_ID, SURFACE_IDS[0])

    def test_unknown_event(self, invoke: Invoke) -> None:
        result = invoke("claude-hook", "bogus", stdin="{}")
        assert result.exit_code != 0
