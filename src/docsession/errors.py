"""Exception types raised by docsession."""

from __future__ import annotations


class DocSessionError(Exception):
    """Base for recoverable errors surfaced to the user as an interaction."""

    user_message = "Something went wrong while generating documentation. Please try again."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.user_message)
        if message:
            self.user_message = message


# -----------------------------------------------------------------------------
# Initialization-order errors (programming errors, never retried)
# -----------------------------------------------------------------------------


class InitializationOrderError(RuntimeError):
    """A session field was read before the session reached the phase that sets it."""


class StateNotInitializedError(InitializationOrderError):
    def __init__(self) -> None:
        super().__init__("State should be initialized before it's read")


class UploadIdNotInitializedError(InitializationOrderError):
    def __init__(self) -> None:
        super().__init__("UploadId has to be initialized before it's read")


class IllegalStateTransitionError(InitializationOrderError):
    def __init__(self, state_name: str) -> None:
        super().__init__(f"Illegal transition: {state_name} cannot handle an interaction")
        self.state_name = state_name


class ConversationIdNotFoundError(LookupError):
    def __init__(self) -> None:
        super().__init__("Conversation id must exist before it's read")


# -----------------------------------------------------------------------------
# Backend and workspace errors
# -----------------------------------------------------------------------------


class ApiError(DocSessionError):
    """A backend call failed."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        request_id: str | None = None,
        code: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.request_id = request_id
        self.code = code


class MonthlyConversationLimitError(ApiError):
    user_message = "You've reached the monthly conversation limit for documentation generation."


class CodeGenerationFailedError(DocSessionError):
    user_message = "I'm sorry, I ran into an issue while generating the documentation. Please try again."


class CodeGenerationTimeoutError(DocSessionError):
    user_message = "Documentation generation took too long and was stopped. Please try again."


class ContentLengthError(DocSessionError):
    user_message = "The selected folder is too large to upload. Choose a smaller folder and try again."


class NoFilesToUploadError(DocSessionError):
    user_message = "There are no files in the selected folder to generate documentation from."


class PrepareRepoFailedError(DocSessionError):
    user_message = "Failed to prepare the workspace for upload."


class OperationCancelledError(Exception):
    """In-flight work was abandoned because its cancellation token fired."""
