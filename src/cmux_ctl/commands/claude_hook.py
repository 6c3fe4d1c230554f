"""Coding-agent hook entry point: route session events to the workspace/surface they belong to."""

import logging
import os
import sys
from enum import StrEnum

import typer

from cmux_ctl.affinity import SessionAffinityRecord, SessionAffinityStore
from cmux_ctl.app_context import ENV_SURFACE_ID, ENV_WORKSPACE_ID, Session, open_session, use_context
from cmux_ctl.errors import IndexNotFoundError, InvalidHandleError, NoImplicitTargetError, RemoteError, StoreIOError
from cmux_ctl.hooks import NOTIFICATION_TITLE, HookInput, parse_hook_input, sanitize_notification_field, summarize_notification, summarize_stop
from cmux_ctl.transport import quote_argument

logger = logging.getLogger(__name__)

STATUS_KEY = "claude_code"
STATUS_COLOR = "#4C8DFF"

# Failures that fall back to a default target; transport failures still abort
_UNRESOLVED = (RemoteError, InvalidHandleError, IndexNotFoundError, NoImplicitTargetError)


class HookEvent(StrEnum):
    """Hook event names, with their aliases."""

    SESSION_START = "session-start"
    ACTIVE = "active"
    STOP = "stop"
    IDLE = "idle"
    NOTIFICATION = "notification"
    NOTIFY = "notify"


def claude_hook(
    ctx: typer.Context,
    event: HookEvent = typer.Argument(help="Hook event"),
    workspace: str | None = typer.Option(default=None, help="Workspace id, ref or index (default: $CMUX_WORKSPACE_ID)"),
    surface: str | None = typer.Option(default=None, help="Surface id, ref or index (default: $CMUX_SURFACE_ID)"),
) -> None:
    """Handle a coding-agent hook event read from stdin."""
    app = use_context(ctx)
    workspace_arg = workspace or os.environ.get(ENV_WORKSPACE_ID)
    surface_arg = surface or (os.environ.get(ENV_SURFACE_ID) if workspace is None else None)
    raw_input = sys.stdin.read()
    hook_input = parse_hook_input(raw_input)
    store = SessionAffinityStore(app.cfg.hook_state_path)

    with open_session(app) as session:
        fallback_workspace = _hook_workspace_id(session, workspace_arg)
        match event:
            case HookEvent.SESSION_START | HookEvent.ACTIVE:
                response = _session_start(session, store, hook_input, fallback_workspace, surface_arg)
            case HookEvent.STOP | HookEvent.IDLE:
                response = _stop(session, store, hook_input, fallback_workspace, surface_arg)
            case _:
                response = _notification(session, store, hook_input, fallback_workspace, surface_arg)
    app.out.print_raw(response)


# --- Events ---


def _session_start(session: Session, store: SessionAffinityStore, hook_input: HookInput, workspace_id: str, surface_arg: str | None) -> str:
    surface_id = _hook_surface_id(session, surface_arg, workspace_id)
    if hook_input.session_id:
        try:
            store.upsert(hook_input.session_id, workspace_id, surface_id, cwd=hook_input.cwd)
        except StoreIOError as e:
            logger.warning("Session affinity not recorded: %s", e)
    _set_status(session, workspace_id, "Running", icon="bolt.fill")
    return "OK"


def _stop(session: Session, store: SessionAffinityStore, hook_input: HookInput, fallback_workspace: str, surface_arg: str | None) -> str:
    try:
        fallback_surface: str | None = session.resolver.resolve_surface_id(surface_arg, fallback_workspace)
    except _UNRESOLVED as e:
        logger.debug("No fallback surface: %s", e)
        fallback_surface = None

    record: SessionAffinityRecord | None = None
    try:
        record = store.consume(hook_input.session_id, fallback_workspace, fallback_surface)
    except StoreIOError as e:
        logger.warning("Session affinity unavailable: %s", e)

    workspace_id = record.workspace_id if record else fallback_workspace
    session.client.send_line(f"clear_status {STATUS_KEY} --tab={workspace_id}")

    completion = summarize_stop(hook_input, record)
    if completion is None:
        return "OK"
    surface_id = _hook_surface_id(session, record.surface_id if record else surface_arg, workspace_id)
    return _notify_target(session, workspace_id, surface_id, completion.subtitle, completion.body)


def _notification(session: Session, store: SessionAffinityStore, hook_input: HookInput, fallback_workspace: str, surface_arg: str | None) -> str:
    summary = summarize_notification(hook_input.raw)

    workspace_id = fallback_workspace
    preferred_surface = surface_arg
    if hook_input.session_id and (mapped := _lookup(store, hook_input.session_id)) is not None:
        # A vanished workspace falls back to the current one; the recorded surface stays preferred
        try:
            workspace_id = _hook_workspace_id(session, mapped.workspace_id)
            preferred_surface = mapped.surface_id
        except _UNRESOLVED as e:
            logger.debug("No workspace for session %s: %s", hook_input.session_id, e)
    surface_id = _hook_surface_id(session, preferred_surface, workspace_id)

    if hook_input.session_id:
        try:
            store.upsert(
                hook_input.session_id, workspace_id, surface_id, cwd=hook_input.cwd, subtitle=summary.subtitle, body=summary.body
            )
        except StoreIOError as e:
            logger.warning("Session affinity not recorded: %s", e)

    response = _notify_target(session, workspace_id, surface_id, summary.subtitle, summary.body)
    _set_status(session, workspace_id, "Needs input", icon="bell.fill")
    return response


# --- Helpers ---


def _lookup(store: SessionAffinityStore, session_id: str) -> SessionAffinityRecord | None:
    try:
        return store.lookup(session_id)
    except StoreIOError as e:
        logger.warning("Session affinity unavailable: %s", e)
        return None


def _checked_workspace_id(session: Session, raw: str) -> str:
    """Resolve a workspace and confirm it still exists by listing its surfaces."""
    workspace_id = session.resolver.resolve_workspace_id(raw)
    session.client.send_envelope("surface.list", {"workspace_id": workspace_id})
    return workspace_id


def _hook_workspace_id(session: Session, raw: str | None) -> str:
    """Workspace named by the caller if it still exists, else the current workspace."""
    if raw:
        try:
            return _checked_workspace_id(session, raw)
        except _UNRESOLVED as e:
            logger.debug("Workspace %s unusable, using current: %s", raw, e)
    return session.resolver.resolve_workspace_id(None)


def _hook_surface_id(session: Session, raw: str | None, workspace_id: str) -> str:
    """Surface named by the caller if it resolves, else the focused surface of the workspace."""
    if raw:
        try:
            return session.resolver.resolve_surface_id(raw, workspace_id)
        except _UNRESOLVED as e:
            logger.debug("Surface %s unusable, using focused: %s", raw, e)
    return session.resolver.resolve_surface_id(None, workspace_id)


def _notify_target(session: Session, workspace_id: str, surface_id: str, subtitle: str, body: str) -> str:
    payload = "|".join((NOTIFICATION_TITLE, sanitize_notification_field(subtitle), sanitize_notification_field(body)))
    return session.client.send_command(f"notify_target {workspace_id} {surface_id} {payload}")


def _set_status(session: Session, workspace_id: str, value: str, *, icon: str) -> None:
    # Status values may contain spaces, so they are quoted
    session.client.send_line(f"set_status {STATUS_KEY} {quote_argument(value)} --icon={icon} --color={STATUS_COLOR} --tab={workspace_id}")
