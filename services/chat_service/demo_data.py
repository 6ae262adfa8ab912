"""
Demo inbox for development environments.
"""

from datetime import datetime, timedelta
from typing import Callable, List

from services.auth_service.models import initials
from services.chat_service.models import (
    Conversation,
    ConversationStatus,
    Message,
    MessageOrigin,
)


DEMO_CLIENTS = [
    ("demo-client-1", "Harbor & Finch Ltd"),
    ("demo-client-2", "Northwind Traders"),
    ("demo-client-3", "Bluebell Bakery"),
    ("demo-client-4", "Quarry Lane Dental"),
    ("demo-client-5", "Atlas Freight Co"),
    ("demo-client-6", "Meridian Architects"),
    ("demo-client-7", "Copperleaf Studio"),
    ("demo-client-8", "Orchard Street Pharmacy"),
]

DEMO_STAFF = [
    ("demo-staff-1", "Priya Raman"),
    ("demo-staff-2", "Tom Okafor"),
]

CLIENT_OPENERS = [
    "Can you confirm the VAT return deadline for this quarter?",
    "I've uploaded the bank statements for January.",
    "We received a letter from the tax office, can someone take a look?",
    "Is the payroll summary ready for review?",
    "Could you send over the draft year-end accounts?",
]

STAFF_REPLIES = [
    "Thanks, I'm reviewing this now and will get back to you today.",
    "Received. I'll reconcile these against the ledger this week.",
    "Yes, the draft is attached to your documents area.",
]

UNASSIGNED_COUNT = 5


def build_demo_conversations(clock: Callable[[], datetime] = datetime.now) -> List[Conversation]:
    """
    Deterministic sample conversations, most recent first: a handful of
    unassigned threads with one client message each, and a few assigned
    threads with a client message and a private staff reply.
    """
    now = clock()
    conversations = []

    for index, (client_id, client_name) in enumerate(DEMO_CLIENTS):
        opened_at = now - timedelta(hours=3 * (index + 1))
        messages = [Message(
            id=1,
            origin=MessageOrigin.CLIENT,
            text=CLIENT_OPENERS[index % len(CLIENT_OPENERS)],
            author=client_name,
            timestamp=opened_at.strftime("%H:%M")
        )]

        if index < UNASSIGNED_COUNT:
            conversations.append(Conversation(
                id=index + 1,
                client_id=client_id,
                client_name=client_name,
                client_avatar=initials(client_name),
                status=ConversationStatus.UNASSIGNED,
                messages=messages,
                last_activity=opened_at
            ))
            continue

        staff_id, staff_name = DEMO_STAFF[index % len(DEMO_STAFF)]
        replied_at = opened_at + timedelta(minutes=40)
        messages.append(Message(
            id=2,
            origin=MessageOrigin.STAFF,
            text=STAFF_REPLIES[index % len(STAFF_REPLIES)],
            author=staff_name,
            timestamp=replied_at.strftime("%H:%M"),
            is_private=True
        ))
        conversations.append(Conversation(
            id=index + 1,
            client_id=client_id,
            client_name=client_name,
            client_avatar=initials(client_name),
            status=ConversationStatus.ASSIGNED,
            assignee_id=staff_id,
            assignee_name=staff_name,
            messages=messages,
            last_activity=replied_at
        ))

    conversations.sort(key=lambda c: c.last_activity, reverse=True)
    return conversations
