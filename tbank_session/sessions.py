"""
Session Storage Module

Provides the abstract session storage interface and implementations backed by a
JSON file (persistence across process restarts) and by memory (testing).

The JSON file holds the whole session registry: a single object mapping each
identity to its session record. Every update reads the registry, applies one
change and rewrites the file from the start, so sessions of other identities
are never lost. There is no cross-process locking: one writer per identity at a
time is the caller's responsibility.
"""

from abc import ABC, abstractmethod
from typing import Dict, Optional, Union
from pathlib import Path
import json
import os
import threading

from .errors import SessionStorageError, SessionDecodeError, SessionEncodeError
from .logging_config import get_logger, log_action
from .models import Identity, Session, SessionRegistry


logger = get_logger("tbank.sessions")


class SessionStorage(ABC):
    """Abstract interface for session storage backends"""

    @abstractmethod
    def load_session(self, identity: Identity) -> Optional[Session]:
        """
        Load the session stored for an identity.

        Returns:
            The session record, or None when the identity has no session
        """
        pass

    @abstractmethod
    def update_session(self, identity: Identity, session: Optional[Session]) -> None:
        """
        Store the session for an identity, or remove it when session is None.
        """
        pass


class InMemorySessionStorage(SessionStorage):
    """In-memory session storage for testing"""

    def __init__(self, sessions: Optional[SessionRegistry] = None):
        self._sessions: Dict[str, Session] = {}
        self._lock = threading.RLock()
        for identity, session in (sessions or {}).items():
            self.update_session(identity, session)

    def load_session(self, identity: Identity) -> Optional[Session]:
        with self._lock:
            session = self._sessions.get(identity)
            if session is None:
                return None
            # Deep copy to prevent external mutation
            return json.loads(json.dumps(session))

    def update_session(self, identity: Identity, session: Optional[Session]) -> None:
        with self._lock:
            if session is None:
                self._sessions.pop(identity, None)
            else:
                try:
                    self._sessions[identity] = json.loads(json.dumps(session))
                except (TypeError, ValueError) as e:
                    raise SessionEncodeError("encode json", str(e)) from e

    def get_all_sessions(self) -> SessionRegistry:
        """Get all sessions for debugging/inspection"""
        with self._lock:
            return json.loads(json.dumps(self._sessions))


class JSONFileSessionStorage(SessionStorage):
    """Session storage persisted as a single JSON file"""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path).expanduser()
        self._lock = threading.RLock()

    def load_session(self, identity: Identity) -> Optional[Session]:
        """Load a session; a missing file is an empty registry"""
        with self._lock:
            try:
                file = self._open("r")
            except SessionStorageError as e:
                if isinstance(e.__cause__, FileNotFoundError):
                    logger.debug("Session registry %s does not exist", self.path)
                    return None
                raise

            with file:
                registry = self._read_registry(file)

            session = registry.get(identity)
            log_action(
                logger, "debug",
                "Session found" if session is not None else "Session not found",
                identity=identity, action="load_session", resource=str(self.path)
            )
            return session

    def update_session(self, identity: Identity, session: Optional[Session]) -> None:
        """Apply one change to the registry and rewrite the whole file"""
        with self._lock:
            with self._open("r+", create=True) as file:
                try:
                    size = os.fstat(file.fileno()).st_size
                except OSError as e:
                    raise SessionStorageError("stat", str(e)) from e

                registry: SessionRegistry = {}
                if size > 0:
                    registry = self._read_registry(file)

                if session is not None:
                    registry[identity] = session
                    action = "update_session"
                else:
                    registry.pop(identity, None)
                    action = "delete_session"

                # Encode before truncating so a bad record never wipes the registry
                try:
                    contents = json.dumps(registry, ensure_ascii=False, indent=2) + "\n"
                except (TypeError, ValueError) as e:
                    raise SessionEncodeError("encode json", str(e)) from e

                self._rewrite(file, contents)

            log_action(
                logger, "info",
                "Session stored" if session is not None else "Session removed",
                identity=identity, action=action, resource=str(self.path),
                extra={"identities": len(registry)}
            )

    def _open(self, mode: str, create: bool = False):
        """Open the registry file, creating the parent directory first"""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise SessionStorageError("create parent directory", str(e)) from e

        try:
            if create:
                fd = os.open(self.path, os.O_RDWR | os.O_CREAT, 0o644)
                return os.fdopen(fd, mode, encoding="utf-8")
            return open(self.path, mode, encoding="utf-8")
        except OSError as e:
            raise SessionStorageError("open file", str(e)) from e

    def _read_registry(self, file) -> SessionRegistry:
        try:
            contents = file.read()
        except OSError as e:
            raise SessionStorageError("read file", str(e)) from e
        except UnicodeDecodeError as e:
            raise SessionDecodeError("decode json", str(e)) from e

        # A zero-length file is what a fresh create leaves behind
        if not contents:
            return {}

        try:
            registry = json.loads(contents)
        except json.JSONDecodeError as e:
            raise SessionDecodeError("decode json", str(e)) from e

        if not isinstance(registry, dict):
            raise SessionDecodeError(
                "decode json",
                f"expected an object at top level, got {type(registry).__name__}"
            )
        return registry

    def _rewrite(self, file, contents: str) -> None:
        try:
            file.truncate(0)
        except OSError as e:
            raise SessionStorageError("truncate file", str(e)) from e

        try:
            file.seek(0)
        except OSError as e:
            raise SessionStorageError("seek to the start of file", str(e)) from e

        try:
            file.write(contents)
            file.flush()
        except OSError as e:
            raise SessionStorageError("write file", str(e)) from e
