"""Session affinity store: coding-agent session id → workspace/surface context.

Hook events from an external coding agent do not always carry the UI context they
belong to (an asynchronous "stop" can fire long after the command that started the
session), so the last observed context is cached on disk per session id.

Many short-lived client processes share the file. Every operation, reads included,
runs the same cycle under an exclusive advisory lock on a sibling ``.lock`` file:
load → prune entries idle for more than 7 days → operate → save atomically → unlock.
"""

import contextlib
import fcntl
import logging
import os
import tempfile
import time
from collections.abc import Callable, Iterator
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from cmux_ctl.errors import StoreIOError

logger = logging.getLogger(__name__)

MAX_AGE_SECONDS = 60 * 60 * 24 * 7
STORE_VERSION = 1


class SessionAffinityRecord(BaseModel):
    """Context last associated with one external session."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    session_id: str
    workspace_id: str
    surface_id: str
    cwd: str | None = None
    last_subtitle: str | None = None
    last_body: str | None = None
    started_at: float = Field(description="Seconds since epoch")
    updated_at: float = Field(description="Seconds since epoch")


class SessionAffinityState(BaseModel):
    """Persisted document."""

    version: int = STORE_VERSION
    sessions: dict[str, SessionAffinityRecord] = Field(default_factory=dict)


def _normalize(value: str | None) -> str | None:
    """Trim a value, mapping empty strings to None."""
    if value is None:
        return None
    trimmed = value.strip()
    return trimmed or None


class SessionAffinityStore:
    """Lock-protected, TTL-pruned JSON store of session affinity records."""

    def __init__(self, path: Path, *, clock: Callable[[], float] = time.time) -> None:
        """Initialize the store.

        Args:
            path: JSON document path; the lock lives next to it with a ``.lock`` suffix.
            clock: Source of the current time in seconds since epoch.

        """
        self._path = path
        self._clock = clock

    @property
    def path(self) -> Path:
        """JSON document path."""
        return self._path

    @property
    def lock_path(self) -> Path:
        """Sibling file used only for advisory locking."""
        return self._path.with_name(self._path.name + ".lock")

    # --- Operations ---

    def lookup(self, session_id: str) -> SessionAffinityRecord | None:
        """Return the record for an exact (trimmed) session id, or None.

        Raises:
            StoreIOError: Lock or file failure.

        """
        normalized = _normalize(session_id)
        if normalized is None:
            return None
        with self._locked_state() as state:
            return state.sessions.get(normalized)

    def upsert(
        self,
        session_id: str,
        workspace_id: str,
        surface_id: str,
        *,
        cwd: str | None = None,
        subtitle: str | None = None,
        body: str | None = None,
    ) -> None:
        """Create or merge a record.

        Workspace and surface always take the latest observation; optional fields are
        overwritten only by non-empty values.

        Raises:
            StoreIOError: Lock or file failure.

        """
        normalized = _normalize(session_id)
        if normalized is None:
            return
        with self._locked_state() as state:
            now = self._clock()
            record = state.sessions.get(normalized)
            if record is None:
                record = SessionAffinityRecord(
                    session_id=normalized, workspace_id=workspace_id, surface_id=surface_id, started_at=now, updated_at=now
                )
            record.workspace_id = workspace_id
            record.surface_id = surface_id
            if (value := _normalize(cwd)) is not None:
                record.cwd = value
            if (value := _normalize(subtitle)) is not None:
                record.last_subtitle = value
            if (value := _normalize(body)) is not None:
                record.last_body = value
            record.updated_at = now
            state.sessions[normalized] = record
        logger.debug("Upserted session %s → workspace=%s surface=%s", normalized, workspace_id, surface_id)

    def consume(
        self,
        session_id: str | None = None,
        workspace_id: str | None = None,
        surface_id: str | None = None,
    ) -> SessionAffinityRecord | None:
        """Remove and return the record for a session.

        Without an exact session-id match, falls back conservatively: the most recently
        updated record on ``surface_id``, else the only record on ``workspace_id``.
        Ambiguity returns None rather than guessing.

        Raises:
            StoreIOError: Lock or file failure.

        """
        normalized_session = _normalize(session_id)
        normalized_workspace = _normalize(workspace_id)
        normalized_surface = _normalize(surface_id)
        with self._locked_state() as state:
            if normalized_session is not None and (removed := state.sessions.pop(normalized_session, None)) is not None:
                return removed

            fallback = self._fallback_record(list(state.sessions.values()), normalized_workspace, normalized_surface)
            if fallback is None:
                return None
            state.sessions.pop(fallback.session_id, None)
            logger.debug("Consumed session %s by fallback match", fallback.session_id)
            return fallback

    @staticmethod
    def _fallback_record(
        records: list[SessionAffinityRecord], workspace_id: str | None, surface_id: str | None
    ) -> SessionAffinityRecord | None:
        if surface_id is not None:
            matches = [r for r in records if r.surface_id == surface_id]
            if not matches:
                return None
            return sorted(matches, key=lambda r: (r.updated_at, r.started_at))[-1]
        if workspace_id is not None:
            # Intentionally stricter than the surface rule: several sessions in one workspace is ambiguous
            matches = [r for r in records if r.workspace_id == workspace_id]
            if len(matches) == 1:
                return matches[0]
        return None

    # --- Locked load/prune/save cycle ---

    @contextlib.contextmanager
    def _locked_state(self) -> Iterator[SessionAffinityState]:
        """Hold the exclusive lock around load → prune → body → save.

        The state is saved only if the body completes.
        """
        lock_path = self.lock_path
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd = os.open(lock_path, os.O_CREAT | os.O_RDWR, 0o600)
        except OSError as e:
            raise StoreIOError(f"Failed to open session store lock {lock_path}: {e.strerror}") from None
        try:
            try:
                fcntl.flock(fd, fcntl.LOCK_EX)
            except OSError as e:
                raise StoreIOError(f"Failed to lock session store {lock_path}: {e.strerror}") from None
            try:
                state = self._load()
                self._prune(state)
                yield state
                self._save(state)
            finally:
                fcntl.flock(fd, fcntl.LOCK_UN)
        finally:
            os.close(fd)

    def _load(self) -> SessionAffinityState:
        """Read the document; missing or corrupt files count as empty state."""
        try:
            raw = self._path.read_bytes()
        except FileNotFoundError:
            return SessionAffinityState()
        except OSError as e:
            raise StoreIOError(f"Failed to read session store {self._path}: {e.strerror}") from None
        try:
            return SessionAffinityState.model_validate_json(raw)
        except ValidationError:
            logger.warning("Session store %s is corrupt, starting empty", self._path)
            return SessionAffinityState()

    def _prune(self, state: SessionAffinityState) -> None:
        cutoff = self._clock() - MAX_AGE_SECONDS
        expired = [key for key, record in state.sessions.items() if record.updated_at < cutoff]
        for key in expired:
            del state.sessions[key]
        if expired:
            logger.debug("Pruned %d expired session(s)", len(expired))

    def _save(self, state: SessionAffinityState) -> None:
        """Write the document atomically."""
        data = state.model_dump_json(by_alias=True, exclude_none=True, indent=2) + "\n"
        try:
            fd, tmp_path = tempfile.mkstemp(dir=self._path.parent, prefix=f".{self._path.name}.")
        except OSError as e:
            raise StoreIOError(f"Failed to write session store {self._path}: {e.strerror}") from None
        tmp = Path(tmp_path)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(data)
            tmp.replace(self._path)
        except OSError as e:
            with contextlib.suppress(OSError):
                tmp.unlink()
            raise StoreIOError(f"Failed to write session store {self._path}: {e.strerror}") from None
