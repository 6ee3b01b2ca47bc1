from paperlenz.client.api import PaperLenzAPIError, PaperLenzClient
from paperlenz.client.session import AuthSession, SessionStatus

__all__ = ["PaperLenzAPIError", "PaperLenzClient", "AuthSession", "SessionStatus"]
