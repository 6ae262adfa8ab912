"""
Chat service data models for client conversations and messages.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import List, Optional, Union


# Profile ids are strings; seeded and imported records may use integers
PartyId = Union[int, str]


class MessageOrigin(str, Enum):
    """Which side of the conversation wrote a message"""
    CLIENT = "client"
    STAFF = "staff"


class ConversationStatus(str, Enum):
    UNASSIGNED = "unassigned"
    ASSIGNED = "assigned"


@dataclass(frozen=True)
class MessageDraft:
    """A message before the registry has given it an id"""
    origin: MessageOrigin
    text: str
    author: str
    timestamp: str
    is_private: bool = False


@dataclass(frozen=True)
class Message:
    """Message in a conversation; append-only"""
    id: int
    origin: MessageOrigin
    text: str
    author: str
    timestamp: str
    is_private: bool = False

    @classmethod
    def from_draft(cls, message_id: int, draft: MessageDraft) -> "Message":
        return cls(
            id=message_id,
            origin=draft.origin,
            text=draft.text,
            author=draft.author,
            timestamp=draft.timestamp,
            is_private=draft.is_private
        )


@dataclass
class Conversation:
    """
    Conversation between one client and the practice.

    status is ASSIGNED exactly when assignee_id is set.
    """
    id: int
    client_id: PartyId
    client_name: str
    client_avatar: str
    status: ConversationStatus = ConversationStatus.UNASSIGNED
    assignee_id: Optional[PartyId] = None
    assignee_name: Optional[str] = None
    messages: List[Message] = field(default_factory=list)
    last_activity: datetime = field(default_factory=datetime.now)

    @property
    def is_assigned(self) -> bool:
        return self.status == ConversationStatus.ASSIGNED

    def is_visible_to(self, staff_id: PartyId) -> bool:
        """Unassigned threads are shared; assigned ones belong to their assignee"""
        return not self.is_assigned or self.assignee_id == staff_id

    def check_invariants(self):
        if self.is_assigned != (self.assignee_id is not None):
            raise ValueError(
                f"Conversation {self.id}: status {self.status.value} "
                f"does not match assignee {self.assignee_id!r}"
            )

    def snapshot(self) -> "Conversation":
        """Copy that can be handed to screens without exposing registry state"""
        return replace(self, messages=list(self.messages))


@dataclass
class ConversationSummary:
    """Summary of a conversation for inbox listings"""
    conversation_id: int
    client_id: PartyId
    client_name: str
    client_avatar: str
    status: ConversationStatus
    message_count: int
    last_activity: datetime
    assignee_name: Optional[str] = None
    preview_text: Optional[str] = None
