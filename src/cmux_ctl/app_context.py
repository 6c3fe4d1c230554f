"""Application context shared across CLI commands."""

import contextlib
import logging
import os
from collections.abc import Iterator
from dataclasses import dataclass

import typer

from cmux_ctl.config import Config
from cmux_ctl.errors import CmuxError
from cmux_ctl.output import Output
from cmux_ctl.resolver import HandleResolver
from cmux_ctl.transport import SocketClient, resolve_password

logger = logging.getLogger(__name__)

# Set by the application in every shell it spawns
ENV_WORKSPACE_ID = "CMUX_WORKSPACE_ID"
ENV_SURFACE_ID = "CMUX_SURFACE_ID"
ENV_TAB_ID = "CMUX_TAB_ID"


@dataclass(frozen=True, slots=True)
class AppContext:
    """Shared application state passed through Typer context."""

    out: Output
    cfg: Config
    password: str | None = None
    window: str | None = None

    def workspace_arg(self, explicit: str | None) -> str | None:
        """Explicit workspace, else the caller's workspace from the environment.

        With ``--window`` the environment is ignored, since it names a workspace of the caller's own window.
        """
        if explicit is not None:
            return explicit
        if self.window is not None:
            return None
        return os.environ.get(ENV_WORKSPACE_ID)

    def surface_arg(self, explicit: str | None, workspace: str | None, *, tab: bool = False) -> str | None:
        """Explicit surface, else the caller's surface from the environment (only when no workspace was named)."""
        if explicit is not None:
            return explicit
        if workspace is not None or self.window is not None:
            return None
        if tab and (tab_id := os.environ.get(ENV_TAB_ID)):
            return tab_id
        return os.environ.get(ENV_SURFACE_ID)


@dataclass(frozen=True, slots=True)
class Session:
    """An authenticated connection plus a resolver bound to it."""

    client: SocketClient
    resolver: HandleResolver


def use_context(ctx: typer.Context) -> AppContext:
    """Extract application context from Typer context."""
    result: AppContext = ctx.obj
    return result


@contextlib.contextmanager
def open_session(app: AppContext) -> Iterator[Session]:
    """Connect, authenticate and focus ``--window``; any failure becomes one error line and exit status 1.

    The connection is closed on every exit path.
    """
    client = SocketClient(app.cfg.socket_path, timeout=app.cfg.response_timeout)
    try:
        client.connect()
        client.authenticate(resolve_password(app.password))
        resolver = HandleResolver(client)
        if app.window:
            window = resolver.resolve_window(app.window)
            client.send_envelope("window.focus", {"window_id": window})
        yield Session(client=client, resolver=resolver)
    except CmuxError as e:
        logger.debug("Command failed: %s (%s)", e, e.code)
        app.out.print_error_and_exit(e.code, str(e))
    finally:
        client.close()
