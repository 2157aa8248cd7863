"""
Tests for the session manager login flow
"""

import tempfile
from pathlib import Path

import httpx
import pytest

from tbank_session.authorizer import StaticAuthorizer
from tbank_session.errors import ConfirmationInputError
from tbank_session.models import Credential
from tbank_session.session_manager import AuthFlow, SessionManager
from tbank_session.sessions import InMemorySessionStorage, JSONFileSessionStorage


class ConfirmingAuthFlow(AuthFlow):
    """Fake login protocol that always asks for a confirmation code"""

    def __init__(self):
        self.logins = 0

    def login(self, client, credential, authorizer):
        self.logins += 1
        code = authorizer.get_confirmation_code(credential.phone)
        response = client.post("/auth/confirm", json={"phone": credential.phone, "code": code})
        response.raise_for_status()
        return {"sessionid": response.json()["sessionid"], "login": self.logins}


class FailingAuthorizer(StaticAuthorizer):
    def get_confirmation_code(self, identity):
        raise ConfirmationInputError("read line from stdin", "input closed")


def bank_handler(request):
    if request.url.path == "/auth/confirm":
        return httpx.Response(200, json={"sessionid": "sid-" + request.url.host})
    return httpx.Response(404)


class TestSessionManager:
    """Test session reuse, login and logout"""

    def setup_method(self):
        """Set up test fixtures"""
        self.storage = InMemorySessionStorage()
        self.flow = ConfirmingAuthFlow()
        self.credential = Credential(phone="+79990000001", password="secret")
        self.client = httpx.Client(
            base_url="https://bank.example.com",
            transport=httpx.MockTransport(bank_handler),
        )
        self.manager = SessionManager(self.storage, self.flow, self.credential, self.client)

    def teardown_method(self):
        self.client.close()

    def test_login_on_missing_session(self):
        authorizer = StaticAuthorizer("123456")

        session = self.manager.ensure_session(authorizer)

        assert session == {"sessionid": "sid-bank.example.com", "login": 1}
        assert authorizer.requests == ["+79990000001"]
        assert self.storage.load_session("+79990000001") == session

    def test_stored_session_reused(self):
        authorizer = StaticAuthorizer("123456")
        first = self.manager.ensure_session(authorizer)
        second = self.manager.ensure_session(authorizer)

        assert first == second
        assert self.flow.logins == 1
        assert len(authorizer.requests) == 1

    def test_relogin_replaces_session(self):
        authorizer = StaticAuthorizer("123456")
        self.manager.ensure_session(authorizer)

        session = self.manager.relogin(authorizer)

        assert session["login"] == 2
        assert self.manager.current_session() == session

    def test_logout_removes_session(self):
        self.manager.ensure_session(StaticAuthorizer("1"))

        self.manager.logout()

        assert self.manager.current_session() is None

    def test_failed_confirmation_stores_nothing(self):
        with pytest.raises(ConfirmationInputError):
            self.manager.ensure_session(FailingAuthorizer("unused"))

        assert self.storage.load_session("+79990000001") is None

    def test_other_identities_untouched(self):
        self.storage.update_session("+70000000000", {"sessionid": "other"})

        self.manager.ensure_session(StaticAuthorizer("1"))
        self.manager.logout()

        assert self.storage.load_session("+70000000000") == {"sessionid": "other"}

    def test_session_persists_across_restarts(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "sessions.json"
            manager = SessionManager(JSONFileSessionStorage(path), self.flow,
                                     self.credential, self.client)
            session = manager.ensure_session(StaticAuthorizer("1"))

            restarted = SessionManager(JSONFileSessionStorage(path), ConfirmingAuthFlow(),
                                       self.credential, self.client)
            authorizer = StaticAuthorizer("2")

            assert restarted.ensure_session(authorizer) == session
            assert authorizer.requests == []

    def test_credential_repr_hides_password(self):
        assert "secret" not in repr(self.credential)
        assert self.credential.identity == "+79990000001"
