"""
MedScope.ai - Error Types
Exceptions raised by the core pipeline and rendered as JSON error fields by the API.
"""


class MedScopeError(Exception):
    """Base error carrying the HTTP status it should surface with."""

    status_code = 500

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class UnsupportedFileError(MedScopeError):
    status_code = 400


class DicomProcessingError(MedScopeError):
    status_code = 400


class DocumentError(MedScopeError):
    status_code = 400


class AnalysisError(MedScopeError):
    status_code = 500


class LLMError(MedScopeError):
    """The generative model provider failed or returned nothing usable."""

    status_code = 502
