"""Headless core of the OpenLove relationship-advice chat front-end."""

from .ai.client import ClientSettings, RemoteReplyClient, ReplyResult
from .ai.errors import FailureKind, ReplyFailure
from .app import ChatNavigator, configure_logging, create_navigator
from .chat.controller import ChatController
from .chat.message_model import Category, Entry, EntryRole, Screen, Suggestion
from .chat.suggestions import SuggestionIndex
from .chat.transcript import TranscriptStore
from .events import EventBus
from .models.reply_models import ChatState, ReplyRequest
from .services.settings import Settings, load_settings

__version__ = "0.1.0"

__all__ = [
    "Category",
    "ChatController",
    "ChatNavigator",
    "ChatState",
    "ClientSettings",
    "Entry",
    "EntryRole",
    "EventBus",
    "FailureKind",
    "RemoteReplyClient",
    "ReplyFailure",
    "ReplyRequest",
    "ReplyResult",
    "Screen",
    "Settings",
    "Suggestion",
    "SuggestionIndex",
    "TranscriptStore",
    "configure_logging",
    "create_navigator",
    "load_settings",
]
