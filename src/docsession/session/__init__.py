"""Session layer: the Session controller and its interaction states."""

from docsession.session.session import PreloadStatus, Session, WorkspaceConfig
from docsession.session.state import (
    CodeGenCompleteState,
    CodeGenErrorState,
    CodeGenState,
    ConversationNotStartedState,
    PrepareCodeGenState,
    SessionState,
)

__all__ = [
    "CodeGenCompleteState",
    "CodeGenErrorState",
    "CodeGenState",
    "ConversationNotStartedState",
    "PreloadStatus",
    "PrepareCodeGenState",
    "Session",
    "SessionState",
    "WorkspaceConfig",
]
