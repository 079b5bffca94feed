"""Error taxonomy for the batch pipeline.

Only ``NoScreenshotsAvailable`` and ``SessionNotFound`` reach the caller.
Every other error is raised at a component boundary and absorbed by the
pipeline, which degrades the quality of the result instead of failing.
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base class for all pipeline errors."""

    user_visible: bool = False

    def __init__(self, message: str, session_id: str = "") -> None:
        super().__init__(message)
        self.session_id = session_id


class NoScreenshotsAvailable(PipelineError):
    """Raised when a session has no screenshots left to analyse."""

    user_visible = True


class SessionNotFound(PipelineError):
    """Raised when the session does not exist for the requesting user."""

    user_visible = True


class InferenceError(PipelineError):
    """Raised when the inference call cannot produce a response."""

    def __init__(self, message: str, provider: str = "", session_id: str = "") -> None:
        super().__init__(message, session_id=session_id)
        self.provider = provider


class InferenceUnavailable(InferenceError):
    """Raised when inference is unconfigured, unreachable, or errored."""


class InferenceTimeout(InferenceError):
    """Raised when the inference call exceeds its deadline."""


class MalformedInferenceResponse(PipelineError):
    """Raised when the model response cannot be used at all."""

    def __init__(self, message: str, raw_response: str = "", session_id: str = "") -> None:
        super().__init__(message, session_id=session_id)
        self.raw_response = raw_response


class PersistenceFailure(PipelineError):
    """Raised when durable storage is unreachable or rejects a write."""

    def __init__(self, message: str, operation: str = "", session_id: str = "") -> None:
        super().__init__(message, session_id=session_id)
        self.operation = operation
