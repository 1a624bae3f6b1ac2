"""
Error taxonomy for the survey record backend.
"""


class SurveyBackendError(Exception):
    """Base class for all backend errors"""


class UploadError(SurveyBackendError):
    """Remote upload failed (network, auth or API error)"""


class FetchError(SurveyBackendError):
    """Remote object missing or unreachable"""


class DecodeError(SurveyBackendError):
    """Payload is not a validly encoded record"""


class ConfigurationError(SurveyBackendError):
    """Backend credentials are missing or placeholders"""
