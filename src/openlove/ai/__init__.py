"""Advice webhook client, reply parsing and failure taxonomy."""

from .client import ClientSettings, RemoteReplyClient, ReplyResult
from .errors import FailureKind, ReplyFailure, fallback_message

__all__ = [
    "ClientSettings",
    "FailureKind",
    "RemoteReplyClient",
    "ReplyFailure",
    "ReplyResult",
    "fallback_message",
]
