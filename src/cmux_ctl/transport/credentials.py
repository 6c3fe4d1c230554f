"""Control-socket password resolution."""

import logging
import os
from collections.abc import Mapping

import keyring
from keyring.errors import KeyringError

logger = logging.getLogger(__name__)

ENV_SOCKET_PASSWORD = "CMUX_SOCKET_PASSWORD"

# Credential store entry written by the application
KEYRING_SERVICE = "com.cmuxterm.app.socket-control"
KEYRING_ACCOUNT = "local-socket-password"


def resolve_password(explicit: str | None = None, env: Mapping[str, str] | None = None) -> str | None:
    """Resolve the socket password: explicit value, then environment, then the platform credential store."""
    if (value := _normalized(explicit)) is not None:
        return value
    environ = os.environ if env is None else env
    if (value := _normalized(environ.get(ENV_SOCKET_PASSWORD))) is not None:
        return value
    return _load_from_keyring()


def _normalized(value: str | None) -> str | None:
    if value is None:
        return None
    trimmed = value.strip("\r\n")
    return trimmed or None


def _load_from_keyring() -> str | None:
    try:
        return _normalized(keyring.get_password(KEYRING_SERVICE, KEYRING_ACCOUNT))
    except KeyringError as e:
        logger.debug("Credential store unavailable: %s", e)
        return None
