from typing import List

import pytest

from conversation import ConversationManager
from lead_notifier import LeadComposer, LeadDeliveryError, LeadNotifier, LeadRecord
from models import OutboundMessage
from state_management import InMemorySessionStore


class FakeNotifier(LeadNotifier):
    """Guarda los leads en memoria; con fail=True simula un correo caído"""

    def __init__(self, fail: bool = False):
        self.leads: List[LeadRecord] = []
        self.fail = fail

    def notify(self, lead: LeadRecord) -> None:
        if self.fail:
            raise LeadDeliveryError("SMTP caído")
        self.leads.append(lead)


def texts(replies: List[OutboundMessage]) -> List[str]:
    return [m.text for m in replies]


def payloads(message: OutboundMessage) -> List[str]:
    return [b.payload for b in message.buttons]


@pytest.fixture
def store():
    return InMemorySessionStore()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def manager(store, notifier):
    return ConversationManager(store, LeadComposer(notifier))
