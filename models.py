"""
Modelos de datos para el chatbot
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

# ============================================================================
# MENSAJES DE SALIDA
# ============================================================================

@dataclass(frozen=True)
class Button:
    title: str
    payload: str


@dataclass
class OutboundMessage:
    """Texto simple, o texto con botones (plantilla de botones de Messenger)"""
    text: str
    buttons: List[Button] = field(default_factory=list)

    @property
    def has_buttons(self) -> bool:
        return bool(self.buttons)

# ============================================================================
# EVENTOS DE ENTRADA (WEBHOOK DE MESSENGER)
# ============================================================================

class _WebhookModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class Sender(_WebhookModel):
    id: str


class Postback(_WebhookModel):
    payload: Optional[str] = None
    title: Optional[str] = None


class Message(_WebhookModel):
    text: Optional[str] = None
    is_echo: bool = False


class MessagingEvent(_WebhookModel):
    sender: Sender
    postback: Optional[Postback] = None
    message: Optional[Message] = None


class Entry(_WebhookModel):
    id: Optional[str] = None
    messaging: List[MessagingEvent] = Field(default_factory=list)


class WebhookEnvelope(_WebhookModel):
    object_type: Optional[str] = Field(default=None, alias="object")
    entry: List[Entry] = Field(default_factory=list)

    @field_validator("entry", mode="before")
    @classmethod
    def drop_invalid_entries(cls, value):
        # Se descartan solo los entries mal formados, no el lote completo
        if not isinstance(value, list):
            return value
        entries = []
        for raw in value:
            try:
                entries.append(Entry.model_validate(raw))
            except ValidationError as e:
                logging.warning(f"Entry inválido descartado: {e}")
        return entries


@dataclass(frozen=True)
class InboundEvent:
    """Un evento ya normalizado: token de botón o texto libre"""
    user_id: str
    token: Optional[str] = None
    text: Optional[str] = None

    @property
    def kind(self) -> str:
        return "token" if self.token is not None else "text"


def extract_events(envelope: WebhookEnvelope) -> List[InboundEvent]:
    """
    Extrae a lo más un evento por entry (el primero de "messaging").
    Se ignoran ecos de la página y mensajes sin texto ni postback.
    """
    events = []
    for entry in envelope.entry:
        if not entry.messaging:
            continue
        event = entry.messaging[0]
        user_id = event.sender.id

        if event.postback and event.postback.payload:
            events.append(InboundEvent(user_id=user_id, token=event.postback.payload))
        elif event.message and event.message.text and not event.message.is_echo:
            text = event.message.text.strip()
            if text:
                events.append(InboundEvent(user_id=user_id, text=text))
    return events
