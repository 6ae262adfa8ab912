"""
Chat service - client conversations, claiming and messaging.
"""

from .models import Conversation, ConversationStatus, Message, MessageDraft, MessageOrigin
from .conversation_registry import ConversationRegistry
from .messaging import MessagingService, ReplyOutcome

__all__ = [
    'Conversation',
    'ConversationStatus',
    'Message',
    'MessageDraft',
    'MessageOrigin',
    'ConversationRegistry',
    'MessagingService',
    'ReplyOutcome'
]
