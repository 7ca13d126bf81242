"""Typed failures raised by the brew analysis pipeline."""

from __future__ import annotations


class BrewAnalysisError(RuntimeError):
    """Base class for every failure the pipeline reports to its caller."""

    retryable: bool = False
    user_message: str = "Analysis failed, try again."

    @property
    def kind(self) -> str:
        return type(self).__name__


class InvalidRequest(BrewAnalysisError):
    """Raised when the caller input fails basic shape validation."""

    user_message = "The analysis request is incomplete."


class MissingConfiguration(BrewAnalysisError):
    """Raised when a required configuration value is absent."""

    user_message = "The analysis service is not configured."


class UpstreamImageError(BrewAnalysisError):
    """Raised when the photo could not be retrieved from storage."""

    user_message = "Unable to load photo."


class StorageUnavailable(UpstreamImageError):
    """The object store could not be reached or rejected the request."""

    retryable = True


class StorageAccessDenied(StorageUnavailable):
    """The object store refused access; retrying cannot succeed."""

    retryable = False


class ObjectNotFound(UpstreamImageError):
    """The key does not resolve to an object."""


class EmptyObject(UpstreamImageError):
    """The key resolves to an object without any bytes."""


class EncodingError(BrewAnalysisError):
    """Raised when image bytes cannot be prepared for the model transport."""


class Timeout(BrewAnalysisError):
    """Raised when an external call exceeds its configured time budget."""

    retryable = True

    def __init__(self, message: str, *, operation: str) -> None:
        super().__init__(message)
        self.operation = operation


class ModelError(BrewAnalysisError):
    """Base class for failures on the model side of the pipeline."""


class ModelUnavailable(ModelError):
    """The model service could not be reached or refused the invocation."""

    retryable = True


class ModelResponseMalformed(ModelError):
    """The response envelope did not contain a completion text."""


class ModelOutputNotJSON(ModelError):
    """The completion text contains no parsable JSON object."""


class ModelOutputTruncated(ModelError):
    """The completion ended before the JSON object was closed."""


class ModelOutputSchemaViolation(ModelError):
    """The parsed object does not match the analysis result shape."""

    def __init__(self, message: str, *, field: str) -> None:
        super().__init__(message)
        self.field = field
