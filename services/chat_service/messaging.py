"""
Messaging service - the reply rules the console screens follow on top of
the conversation registry.

- A client can always write to their own conversation.
- A staff member can write to an unassigned conversation or one they own.
- The first staff reply to an unassigned conversation claims it: claim,
  then a system notice, then the reply, as three registry calls in that
  order.
"""

from datetime import datetime
from enum import Enum
from typing import Callable, List, Optional

from config.app_config import MessagingConfig
from services.auth_service.models import Identity
from services.chat_service.conversation_registry import ConversationRegistry
from services.chat_service.models import Conversation, MessageDraft, MessageOrigin
from utils.logging_config import get_logger


class ReplyOutcome(str, Enum):
    """Result of a staff reply attempt"""
    SENT = "sent"
    CLAIMED_AND_SENT = "claimed_and_sent"
    EMPTY = "empty"
    NOT_FOUND = "not_found"
    LOCKED = "locked"
    FORBIDDEN = "forbidden"

    @property
    def delivered(self) -> bool:
        return self in (ReplyOutcome.SENT, ReplyOutcome.CLAIMED_AND_SENT)


class MessagingService:
    """Client and staff messaging on top of a ConversationRegistry"""

    def __init__(self, registry: ConversationRegistry, config: Optional[MessagingConfig] = None,
                 clock: Callable[[], datetime] = datetime.now):
        if registry is None:
            raise ValueError("MessagingService requires a conversation registry")

        self.registry = registry
        self.config = config or MessagingConfig()
        self.clock = clock
        self.logger = get_logger(__name__)

    def _timestamp(self) -> str:
        return self.clock().strftime(self.config.timestamp_format)

    def client_conversation(self, client: Identity) -> Conversation:
        """The client's conversation, created on first visit"""
        return self.registry.find_or_create(client.id, client.full_name, client.avatar)

    def send_client_message(self, client: Identity, text: str) -> Optional[Conversation]:
        """
        Append a client message to the client's own conversation

        Returns:
            Refreshed conversation snapshot, or None when the text is blank
        """
        text = (text or "").strip()
        if not text:
            return None

        conversation = self.client_conversation(client)
        self.registry.append_message(conversation.id, MessageDraft(
            origin=MessageOrigin.CLIENT,
            text=text,
            author=client.full_name,
            timestamp=self._timestamp()
        ))
        return self.registry.find_by_id(conversation.id)

    def can_reply(self, staff: Identity, conversation: Conversation) -> bool:
        return not staff.is_client and conversation.is_visible_to(staff.id)

    def send_staff_reply(self, staff: Identity, conversation_id: int, text: str) -> ReplyOutcome:
        """
        Reply to a client conversation, claiming it first if unassigned

        Args:
            staff: Replying staff member
            conversation_id: Target conversation
            text: Reply body

        Returns:
            ReplyOutcome describing what happened
        """
        if staff.is_client:
            return ReplyOutcome.FORBIDDEN

        text = (text or "").strip()
        if not text:
            return ReplyOutcome.EMPTY

        conversation = self.registry.find_by_id(conversation_id)
        if conversation is None:
            return ReplyOutcome.NOT_FOUND

        if not conversation.is_visible_to(staff.id):
            self.logger.info(
                f"Reply by {staff.id} refused, conversation {conversation_id} "
                f"is handled by {conversation.assignee_id}"
            )
            return ReplyOutcome.LOCKED

        claimed = False
        if not conversation.is_assigned:
            self.registry.claim(conversation_id, staff.id, staff.full_name)
            # claim() is a silent no-op on a lost race; re-read before writing
            conversation = self.registry.find_by_id(conversation_id)
            if conversation is None or conversation.assignee_id != staff.id:
                return ReplyOutcome.LOCKED

            self.registry.append_message(conversation_id, MessageDraft(
                origin=MessageOrigin.STAFF,
                text=self.config.claim_notice,
                author=self.config.system_author,
                timestamp=self._timestamp(),
                is_private=True
            ))
            claimed = True

        self.registry.append_message(conversation_id, MessageDraft(
            origin=MessageOrigin.STAFF,
            text=text,
            author=staff.full_name,
            timestamp=self._timestamp(),
            is_private=True
        ))
        return ReplyOutcome.CLAIMED_AND_SENT if claimed else ReplyOutcome.SENT

    def unassigned_inbox(self) -> List[Conversation]:
        """Shared inbox, most recent first"""
        return sorted(self.registry.find_unassigned(), key=lambda c: c.last_activity, reverse=True)

    def staff_inbox(self, staff: Identity) -> List[Conversation]:
        """Conversations a staff member can see: shared ones plus their own"""
        return [c for c in self.registry.list_by_recency() if c.is_visible_to(staff.id)]
