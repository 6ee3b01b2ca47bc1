class AnalysisError(Exception):
    """Base class for failures while producing an analysis record."""


class LLMConfigurationError(AnalysisError):
    """The language model client is missing required configuration (API key)."""


class LLMServiceError(AnalysisError):
    """The remote language model call failed or returned nothing."""


class InvalidResponseFormatError(AnalysisError):
    """The model reply could not be turned into a valid analysis record."""

    def __init__(self, message: str = "Invalid response format from AI service", raw_response: str | None = None):
        super().__init__(message)
        self.raw_response = raw_response


class PersistenceError(Exception):
    """Saving an analysis record failed after the analysis itself succeeded."""


class InvalidInputError(ValueError):
    """A paper submission is empty or cannot be read."""


class UploadTooLargeError(InvalidInputError):
    """An uploaded file is over the configured size limit."""


class NotAPDFError(InvalidInputError):
    """An uploaded file does not start with the PDF magic header."""
