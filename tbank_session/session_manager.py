"""
Session Manager Module

Ties session storage to the login flow: a stored session is reused when there
is one, otherwise the login flow runs and its session is written back. The
login protocol itself belongs to an AuthFlow implementation supplied by the
caller; the authorizer for confirmation codes is passed in on every call that
may log in.
"""

from abc import ABC, abstractmethod
from typing import Optional

import httpx

from .authorizer import Authorizer
from .logging_config import get_logger, log_action
from .models import Credential, Session
from .sessions import SessionStorage


logger = get_logger("tbank.auth")


class AuthFlow(ABC):
    """Remote login protocol"""

    @abstractmethod
    def login(self, client: httpx.Client, credential: Credential,
              authorizer: Authorizer) -> Session:
        """
        Log in and return the new session.

        Args:
            client: HTTP client to talk to the bank with
            credential: Phone number and password
            authorizer: Source of confirmation codes for multi-factor challenges

        Returns:
            Session record to persist

        Raises:
            Exception: Any failure aborts the login; nothing is stored
        """
        pass


class SessionManager:
    """Keeps one session per credential, logging in on demand"""

    def __init__(self, storage: SessionStorage, auth_flow: AuthFlow,
                 credential: Credential, client: httpx.Client):
        self.storage = storage
        self.auth_flow = auth_flow
        self.credential = credential
        self.client = client

    @property
    def identity(self) -> str:
        return self.credential.identity

    def current_session(self) -> Optional[Session]:
        """Stored session, or None when logged out"""
        return self.storage.load_session(self.identity)

    def ensure_session(self, authorizer: Authorizer) -> Session:
        """Return the stored session, logging in first if there is none"""
        session = self.storage.load_session(self.identity)
        if session is not None:
            return session

        return self._login(authorizer)

    def relogin(self, authorizer: Authorizer) -> Session:
        """Drop the stored session and log in again"""
        self.storage.update_session(self.identity, None)
        return self._login(authorizer)

    def logout(self) -> None:
        """Forget the stored session"""
        self.storage.update_session(self.identity, None)
        log_action(logger, "info", "Logged out", identity=self.identity, action="logout")

    def _login(self, authorizer: Authorizer) -> Session:
        log_action(logger, "info", "No stored session, logging in",
                   identity=self.identity, action="login")
        try:
            session = self.auth_flow.login(self.client, self.credential, authorizer)
        except Exception:
            log_action(logger, "warning", "Login failed", identity=self.identity, action="login")
            raise

        self.storage.update_session(self.identity, session)
        log_action(logger, "info", "Logged in", identity=self.identity, action="login")
        return session
