"""Login credential decoding and the login gate.

The login widget hands back an opaque signed JWT.  Its claims are decoded
**without** signature verification: the resulting
:class:`~depa_finder.core.models.Identity` is presentation data only and must
not be used for authorization.

:class:`LoginGate` is the inline login panel: it turns the widget's success
and failure callbacks into either a persisted identity or a user-facing error
message.
"""

from __future__ import annotations

import logging

from jose import JWTError, jwt

from depa_finder.core import events
from depa_finder.core.exceptions import CredentialError
from depa_finder.core.models import Identity
from depa_finder.session.store import SessionStore

__all__ = [
    "MISSING_CREDENTIAL_MESSAGE",
    "INVALID_CREDENTIAL_MESSAGE",
    "PROVIDER_FAILURE_MESSAGE",
    "decode_credential",
    "LoginGate",
]

logger = logging.getLogger(__name__)

MISSING_CREDENTIAL_MESSAGE: str = "No recibimos credenciales de Google."
INVALID_CREDENTIAL_MESSAGE: str = "No pudimos validar tus credenciales."
PROVIDER_FAILURE_MESSAGE: str = "No pudimos iniciar sesión con Google. Intenta nuevamente."


def decode_credential(credential: str | None) -> Identity:
    """Extract the display profile from a login credential.

    Args:
        credential: The JWT returned by the login widget.

    Returns:
        The unverified profile (``name``, ``email``, ``picture`` claims).

    Raises:
        CredentialError: If the credential is missing or cannot be decoded.
    """
    if not credential:
        raise CredentialError(MISSING_CREDENTIAL_MESSAGE)

    try:
        claims = jwt.get_unverified_claims(credential)
    except JWTError as exc:
        raise CredentialError(INVALID_CREDENTIAL_MESSAGE) from exc

    if not isinstance(claims, dict):
        raise CredentialError(INVALID_CREDENTIAL_MESSAGE)

    return Identity(
        name=_claim(claims, "name"),
        email=_claim(claims, "email"),
        avatar=_claim(claims, "picture"),
    )


def _claim(claims: dict[str, object], name: str) -> str | None:
    value = claims.get(name)
    return value if isinstance(value, str) and value else None


class LoginGate:
    """Inline login panel state.

    Args:
        session: Where a successful login is persisted.
    """

    def __init__(self, session: SessionStore) -> None:
        self._session = session
        self._error: str | None = None

    @property
    def error(self) -> str | None:
        """User-facing message from the last failed attempt."""
        return self._error

    async def handle_success(self, credential: str | None) -> Identity | None:
        """Handle the widget's success callback.

        Decodes *credential* and persists the identity.  On decode failure
        the message is kept in :attr:`error` and the session is left as is.

        Returns:
            The new identity, or ``None`` when the credential was rejected.
        """
        try:
            identity = decode_credential(credential)
        except CredentialError as exc:
            self._error = str(exc) or INVALID_CREDENTIAL_MESSAGE
            logger.warning("Login rejected: %s", self._error, extra={"event": events.LOGIN_FAILED})
            return None

        await self._session.set_identity(identity)
        self._error = None
        logger.info("Logged in as %s", identity.email or identity.name or "(anonymous)")
        return identity

    def handle_error(self) -> None:
        """Handle the widget's failure callback (no detail is provided)."""
        self._error = PROVIDER_FAILURE_MESSAGE
        logger.warning("Login provider reported a failure", extra={"event": events.LOGIN_FAILED})
