"""
Conversation registry - owns client conversations and their messages.

One registry instance is built by the application's composition root and
passed to whatever needs it. Everything it returns is a snapshot: screens
re-read the registry after any mutation instead of holding live records.

Unknown conversation or client ids are silent no-ops (with a warning log),
never exceptions.

Claiming is not arbitrated between concurrent callers. The registry is
in-process and single-user; claim() checks status and assigns in one call
but offers no compare-and-set to other processes. A shared multi-client
backend would have to make claim an atomic unassigned -> assigned
transition keyed by conversation id.
"""

from datetime import datetime
from typing import Callable, Iterable, List, Optional

from services.chat_service.models import (
    Conversation,
    ConversationStatus,
    ConversationSummary,
    Message,
    MessageDraft,
    PartyId,
)
from utils.logging_config import get_logger, log_conversation_event


class ConversationRegistry:
    """In-memory store of client conversations with single-owner claiming"""

    def __init__(self, conversations: Optional[Iterable[Conversation]] = None,
                 clock: Callable[[], datetime] = datetime.now):
        """
        Args:
            conversations: Initial conversations, in registry order
            clock: Source of the current time for last-activity stamps
        """
        self.logger = get_logger(__name__)
        self.clock = clock
        self._conversations: List[Conversation] = []

        for conversation in conversations or ():
            conversation.check_invariants()
            if self._find(conversation.id) is not None:
                raise ValueError(f"Duplicate conversation id: {conversation.id}")
            if self._find_for_client(conversation.client_id) is not None:
                raise ValueError(f"Duplicate conversation for client: {conversation.client_id}")
            self._conversations.append(conversation.snapshot())

    def __len__(self) -> int:
        return len(self._conversations)

    def find_unassigned(self) -> List[Conversation]:
        """Unassigned conversations in registry order"""
        return [c.snapshot() for c in self._conversations if c.status == ConversationStatus.UNASSIGNED]

    def find_by_client(self, client_id: PartyId) -> Optional[Conversation]:
        """The client's conversation, or None"""
        conversation = self._find_for_client(client_id)
        return conversation.snapshot() if conversation else None

    def find_by_id(self, conversation_id: int) -> Optional[Conversation]:
        conversation = self._find(conversation_id)
        return conversation.snapshot() if conversation else None

    def list_by_recency(self) -> List[Conversation]:
        """All conversations, most recent activity first"""
        ordered = sorted(self._conversations, key=lambda c: c.last_activity, reverse=True)
        return [c.snapshot() for c in ordered]

    def find_or_create(self, client_id: PartyId, client_name: str, client_avatar: str) -> Conversation:
        """
        Return the client's conversation, creating an unassigned one at the
        front of the registry if none exists yet

        Args:
            client_id: Client identity id
            client_name: Client display name
            client_avatar: Avatar reference (initials when no image)

        Returns:
            Snapshot of the client's conversation
        """
        conversation = self._find_for_client(client_id)
        if conversation is not None:
            return conversation.snapshot()

        conversation = Conversation(
            id=self._next_id(),
            client_id=client_id,
            client_name=client_name,
            client_avatar=client_avatar,
            status=ConversationStatus.UNASSIGNED,
            messages=[],
            last_activity=self.clock()
        )
        self._conversations.insert(0, conversation)

        log_conversation_event(self.logger, "created", conversation.id, client_id=str(client_id))
        return conversation.snapshot()

    def claim(self, conversation_id: int, staff_id: PartyId, staff_name: str):
        """
        Assign an unassigned conversation to a staff member

        Does nothing if the conversation is unknown or already assigned.
        """
        conversation = self._find(conversation_id)
        if conversation is None:
            self.logger.warning(f"Claim for unknown conversation: {conversation_id}")
            return

        if conversation.is_assigned:
            self.logger.info(
                f"Conversation {conversation_id} already assigned to {conversation.assignee_id}, "
                f"ignoring claim by {staff_id}"
            )
            return

        conversation.status = ConversationStatus.ASSIGNED
        conversation.assignee_id = staff_id
        conversation.assignee_name = staff_name

        log_conversation_event(self.logger, "claimed", conversation_id, staff_id=str(staff_id))

    def append_message(self, conversation_id: int, draft: MessageDraft) -> Optional[Message]:
        """
        Append a message, numbering it after the existing messages

        Returns:
            The stored message, or None if the conversation is unknown
        """
        conversation = self._find(conversation_id)
        if conversation is None:
            self.logger.warning(f"Message for unknown conversation dropped: {conversation_id}")
            return None

        # Ids are a per-conversation sequence; safe because messages are never removed
        message = Message.from_draft(len(conversation.messages) + 1, draft)
        conversation.messages.append(message)
        conversation.last_activity = max(self.clock(), conversation.last_activity)

        log_conversation_event(
            self.logger, "message_added", conversation_id,
            message_id=message.id, origin=message.origin.value
        )
        return message

    def summaries(self, conversations: Iterable[Conversation], preview_length: int = 80) -> List[ConversationSummary]:
        """Inbox rows for the given conversations"""
        rows = []
        for conversation in conversations:
            preview = None
            if conversation.messages:
                text = conversation.messages[-1].text
                preview = text if len(text) <= preview_length else text[:preview_length - 1] + "…"
            rows.append(ConversationSummary(
                conversation_id=conversation.id,
                client_id=conversation.client_id,
                client_name=conversation.client_name,
                client_avatar=conversation.client_avatar,
                status=conversation.status,
                message_count=len(conversation.messages),
                last_activity=conversation.last_activity,
                assignee_name=conversation.assignee_name,
                preview_text=preview
            ))
        return rows

    def _find(self, conversation_id: int) -> Optional[Conversation]:
        for conversation in self._conversations:
            if conversation.id == conversation_id:
                return conversation
        return None

    def _find_for_client(self, client_id: PartyId) -> Optional[Conversation]:
        for conversation in self._conversations:
            if conversation.client_id == client_id:
                return conversation
        return None

    def _next_id(self) -> int:
        return max((c.id for c in self._conversations), default=0) + 1
