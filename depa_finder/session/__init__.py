"""Session identity: persistence and login credential handling."""

from depa_finder.session.credentials import LoginGate, decode_credential
from depa_finder.session.store import USER_STORAGE_KEY, SessionStore

__all__ = ["SessionStore", "USER_STORAGE_KEY", "LoginGate", "decode_credential"]
