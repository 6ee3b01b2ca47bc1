from paperlenz.core.config import Settings, get_settings
from paperlenz.core.database import Base, get_db, async_session_maker, engine
from paperlenz.core.security import (
    verify_password,
    get_password_hash,
    create_access_token,
    create_refresh_token,
    decode_token,
)
from paperlenz.core.exceptions import (
    AnalysisError,
    LLMConfigurationError,
    LLMServiceError,
    InvalidResponseFormatError,
    PersistenceError,
    InvalidInputError,
    UploadTooLargeError,
    NotAPDFError,
)

__all__ = [
    "Settings",
    "get_settings",
    "Base",
    "get_db",
    "async_session_maker",
    "engine",
    "verify_password",
    "get_password_hash",
    "create_access_token",
    "create_refresh_token",
    "decode_token",
    "AnalysisError",
    "LLMConfigurationError",
    "LLMServiceError",
    "InvalidResponseFormatError",
    "PersistenceError",
    "InvalidInputError",
    "UploadTooLargeError",
    "NotAPDFError",
]
