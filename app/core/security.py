import secrets
from typing import Optional

from app.core.errors import AuthorizationError
from app.core.logger import logger
from app.models.booking import AdminSession, UnlockResult

INCORRECT_PASSCODE = "Incorrect passcode."


class AccessGate:
    """
    Passcode gate in front of destructive store operations.

    Sessions are explicit values: the gate opens or closes the AdminSession it
    is handed and keeps no state of its own besides the configured secret.
    """

    def __init__(self, passcode: str):
        self._passcode = passcode or ""

    def matches(self, supplied: Optional[str]) -> bool:
        supplied = "" if supplied is None else str(supplied)
        if not supplied or not self._passcode:
            return False
        try:
            supplied_bytes = supplied.encode("utf-8")
        except UnicodeEncodeError:
            return False
        return secrets.compare_digest(supplied_bytes, self._passcode.encode("utf-8"))

    def unlock(self, session: AdminSession, supplied: Optional[str]) -> UnlockResult:
        if self.matches(supplied):
            session.open()
            return UnlockResult(ok=True, unlocked=True)
        # A failed attempt also drops any earlier unlock
        session.close()
        logger.warning("🔒 Admin unlock rejected")
        return UnlockResult(ok=False, unlocked=False, message=INCORRECT_PASSCODE)

    def lock(self, session: AdminSession) -> None:
        session.close()

    def is_unlocked(self, session: Optional[AdminSession]) -> bool:
        return bool(session and session.unlocked)

    def session_for(self, supplied: Optional[str]) -> AdminSession:
        """One-shot session for a request that proves itself with a passcode."""
        session = AdminSession()
        if self.matches(supplied):
            session.open()
        return session

    def require(self, session: Optional[AdminSession]) -> None:
        if not self.is_unlocked(session):
            raise AuthorizationError()
