"""
Session Layer Data Model

Identities are caller-supplied strings (phone numbers). Sessions are opaque,
JSON-compatible records owned by the authentication flow; this package stores
and returns them without looking inside.
"""

from dataclasses import dataclass, field
from typing import Any, Dict


Identity = str
Session = Dict[str, Any]
SessionRegistry = Dict[Identity, Session]


@dataclass(frozen=True)
class Credential:
    """Login credential; the phone number doubles as the session identity"""
    phone: str
    password: str = field(repr=False)

    @property
    def identity(self) -> Identity:
        return self.phone
