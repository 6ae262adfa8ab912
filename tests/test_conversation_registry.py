"""
Tests for the conversation registry
"""

from datetime import datetime, timedelta

import pytest

from services.chat_service.conversation_registry import ConversationRegistry
from services.chat_service.models import (
    Conversation,
    ConversationStatus,
    MessageDraft,
    MessageOrigin,
)
from conftest import SteppingClock


def client_draft(text="Hello", author="Acme"):
    return MessageDraft(origin=MessageOrigin.CLIENT, text=text, author=author, timestamp="09:00")


def make_conversation(conversation_id, client_id, last_activity, **kwargs):
    return Conversation(
        id=conversation_id,
        client_id=client_id,
        client_name=f"Client {client_id}",
        client_avatar="CL",
        last_activity=last_activity,
        **kwargs
    )


class TestConversationRegistry:
    """Test registry lookups and mutations"""

    def setup_method(self):
        self.clock = SteppingClock()
        self.registry = ConversationRegistry(clock=self.clock)

    def test_find_or_create_creates_unassigned(self):
        conversation = self.registry.find_or_create(7, "Acme", "AC")

        assert conversation.id == 1
        assert conversation.client_id == 7
        assert conversation.status == ConversationStatus.UNASSIGNED
        assert conversation.assignee_id is None
        assert conversation.messages == []
        assert len(self.registry) == 1

    def test_find_or_create_returns_existing(self):
        """A client never gets a second conversation"""
        first = self.registry.find_or_create(7, "Acme", "AC")
        second = self.registry.find_or_create(7, "Acme Ltd", "AL")

        assert second.id == first.id
        assert second.client_name == "Acme"
        assert len(self.registry) == 1

    def test_new_conversations_go_to_front(self):
        self.registry.find_or_create(1, "First", "FI")
        self.registry.find_or_create(2, "Second", "SE")

        assert [c.client_id for c in self.registry.find_unassigned()] == [2, 1]

    def test_ids_follow_highest_existing_id(self):
        registry = ConversationRegistry(
            [make_conversation(10, "a", datetime(2025, 1, 1)), make_conversation(4, "b", datetime(2025, 1, 2))],
            clock=self.clock
        )

        assert registry.find_or_create("c", "Cee", "CE").id == 11

    def test_claim_assigns_conversation(self):
        conversation = self.registry.find_or_create(7, "Acme", "AC")

        self.registry.claim(conversation.id, 3, "Jane")

        claimed = self.registry.find_by_id(conversation.id)
        assert claimed.status == ConversationStatus.ASSIGNED
        assert claimed.assignee_id == 3
        assert claimed.assignee_name == "Jane"
        assert self.registry.find_unassigned() == []

    def test_claim_is_single_owner(self):
        """A second claim leaves the first assignee in place"""
        conversation = self.registry.find_or_create(7, "Acme", "AC")

        self.registry.claim(conversation.id, 3, "Jane")
        self.registry.claim(conversation.id, 4, "Omar")

        claimed = self.registry.find_by_id(conversation.id)
        assert claimed.assignee_id == 3
        assert claimed.assignee_name == "Jane"

    def test_claim_unknown_conversation_is_noop(self, caplog):
        self.registry.find_or_create(7, "Acme", "AC")

        self.registry.claim(999, 3, "Jane")

        assert self.registry.find_by_client(7).status == ConversationStatus.UNASSIGNED
        assert "unknown conversation" in caplog.text

    def test_append_message_numbers_messages(self):
        conversation = self.registry.find_or_create(7, "Acme", "AC")

        first = self.registry.append_message(conversation.id, client_draft("One"))
        second = self.registry.append_message(conversation.id, client_draft("Two"))

        assert (first.id, second.id) == (1, 2)
        stored = self.registry.find_by_id(conversation.id)
        assert [m.text for m in stored.messages] == ["One", "Two"]

    def test_append_message_refreshes_last_activity(self):
        conversation = self.registry.find_or_create(7, "Acme", "AC")

        self.registry.append_message(conversation.id, client_draft())

        assert self.registry.find_by_id(conversation.id).last_activity > conversation.last_activity

    def test_last_activity_never_moves_backwards(self):
        future = datetime(2030, 1, 1)
        registry = ConversationRegistry([make_conversation(1, "a", future)], clock=self.clock)

        registry.append_message(1, client_draft())

        assert registry.find_by_id(1).last_activity == future

    def test_append_to_unknown_conversation(self):
        assert self.registry.append_message(42, client_draft()) is None
        assert len(self.registry) == 0

    def test_messages_are_append_only(self):
        """Earlier messages are unchanged by later appends"""
        conversation = self.registry.find_or_create(7, "Acme", "AC")
        self.registry.append_message(conversation.id, client_draft("One"))
        before = self.registry.find_by_id(conversation.id).messages

        self.registry.append_message(conversation.id, client_draft("Two"))
        after = self.registry.find_by_id(conversation.id).messages

        assert after[:len(before)] == before

    def test_returns_snapshots(self):
        conversation = self.registry.find_or_create(7, "Acme", "AC")
        snapshot = self.registry.find_by_id(conversation.id)

        snapshot.messages.append("tampered")
        snapshot.status = ConversationStatus.ASSIGNED

        stored = self.registry.find_by_id(conversation.id)
        assert stored.messages == []
        assert stored.status == ConversationStatus.UNASSIGNED

    def test_find_by_client_missing(self):
        assert self.registry.find_by_client("nobody") is None

    def test_list_by_recency(self):
        registry = ConversationRegistry([
            make_conversation(1, "old", datetime(2025, 1, 1)),
            make_conversation(2, "new", datetime(2025, 3, 1)),
            make_conversation(3, "mid", datetime(2025, 2, 1)),
        ], clock=self.clock)

        assert [c.client_id for c in registry.list_by_recency()] == ["new", "mid", "old"]

    def test_find_unassigned_keeps_registry_order(self):
        registry = ConversationRegistry([
            make_conversation(1, "a", datetime(2025, 1, 1)),
            make_conversation(2, "b", datetime(2025, 3, 1), status=ConversationStatus.ASSIGNED,
                              assignee_id="s1", assignee_name="Jane"),
            make_conversation(3, "c", datetime(2025, 2, 1)),
        ], clock=self.clock)

        assert [c.id for c in registry.find_unassigned()] == [1, 3]


class TestRegistryInvariants:
    """Test construction checks"""

    def test_rejects_assigned_without_assignee(self):
        broken = make_conversation(1, "a", datetime(2025, 1, 1), status=ConversationStatus.ASSIGNED)

        with pytest.raises(ValueError):
            ConversationRegistry([broken])

    def test_rejects_assignee_on_unassigned(self):
        broken = make_conversation(1, "a", datetime(2025, 1, 1), assignee_id="s1")

        with pytest.raises(ValueError):
            ConversationRegistry([broken])

    def test_rejects_duplicate_ids(self):
        with pytest.raises(ValueError, match="Duplicate conversation id"):
            ConversationRegistry([
                make_conversation(1, "a", datetime(2025, 1, 1)),
                make_conversation(1, "b", datetime(2025, 1, 1)),
            ])

    def test_rejects_second_conversation_for_client(self):
        with pytest.raises(ValueError, match="Duplicate conversation for client"):
            ConversationRegistry([
                make_conversation(1, "a", datetime(2025, 1, 1)),
                make_conversation(2, "a", datetime(2025, 1, 1)),
            ])


class TestSummaries:
    """Test inbox rows"""

    def setup_method(self):
        self.registry = ConversationRegistry(clock=SteppingClock())

    def test_summary_fields(self):
        conversation = self.registry.find_or_create(7, "Acme", "AC")
        self.registry.append_message(conversation.id, client_draft("Where is my refund?"))

        summary = self.registry.summaries(self.registry.find_unassigned())[0]

        assert summary.conversation_id == conversation.id
        assert summary.client_name == "Acme"
        assert summary.message_count == 1
        assert summary.preview_text == "Where is my refund?"
        assert summary.assignee_name is None

    def test_long_preview_is_truncated(self):
        conversation = self.registry.find_or_create(7, "Acme", "AC")
        self.registry.append_message(conversation.id, client_draft("x" * 50))

        summary = self.registry.summaries([self.registry.find_by_id(conversation.id)], preview_length=10)[0]

        assert summary.preview_text == "x" * 9 + "…"
        assert len(summary.preview_text) == 10

    def test_empty_conversation_has_no_preview(self):
        self.registry.find_or_create(7, "Acme", "AC")

        assert self.registry.summaries(self.registry.find_unassigned())[0].preview_text is None
