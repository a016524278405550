from fabot.client.api_client import ApiError, ChatReply, FabotApiClient
from fabot.client.controller import ChatNotFound, ConversationController
from fabot.client.models import Attachment, AttachmentTooLarge, Chat, KeyPoint, Message
from fabot.client.state import ControllerState, InvalidTransition
from fabot.client.storage import LocalStorage, SessionRepository, SessionSnapshot, build_repository

__all__ = [
    "ApiError",
    "Attachment",
    "AttachmentTooLarge",
    "Chat",
    "ChatNotFound",
    "ChatReply",
    "ControllerState",
    "ConversationController",
    "FabotApiClient",
    "InvalidTransition",
    "KeyPoint",
    "LocalStorage",
    "Message",
    "SessionRepository",
    "SessionSnapshot",
    "build_repository",
]
