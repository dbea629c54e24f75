"""
Bot de Facebook Messenger para el chatbot de leads
"""

import logging
from typing import List, Optional

import requests

from conversation import ConversationManager
from models import Button, InboundEvent, OutboundMessage

GRAPH_URL = "https://graph.facebook.com/{version}/me/messages"

# ============================================================================
# CLASE PRINCIPAL DEL BOT DE MESSENGER
# ============================================================================

class MessengerBot:
    def __init__(self, conversation_manager: ConversationManager, page_token: str,
                 api_version: str = "v19.0", session: Optional[requests.Session] = None):
        self.conversation_manager = conversation_manager
        self.page_token = page_token
        self.version = api_version
        self.http = session or requests.Session()

        if not page_token:
            logging.warning("PAGE_TOKEN vacío: los envíos a Messenger van a fallar")

    @property
    def url(self) -> str:
        return GRAPH_URL.format(version=self.version)

    def get_text_message_input(self, psid: str, text: str) -> dict:
        """Payload JSON para un mensaje de texto simple."""
        return {
            "recipient": {"id": psid},
            "message": {"text": text},
        }

    def get_buttons_message_input(self, psid: str, text: str, buttons: List[Button]) -> dict:
        """Payload JSON para una plantilla de botones con postbacks."""
        return {
            "recipient": {"id": psid},
            "message": {
                "attachment": {
                    "type": "template",
                    "payload": {
                        "template_type": "button",
                        "text": text,
                        "buttons": [
                            {"type": "postback", "title": b.title, "payload": b.payload}
                            for b in buttons
                        ],
                    },
                }
            },
        }

    def _post(self, psid: str, data: dict) -> bool:
        try:
            response = self.http.post(
                self.url,
                json=data,
                params={"access_token": self.page_token},
                timeout=10,
            )
            response.raise_for_status()
            return True
        except requests.RequestException as e:
            logging.error(f"Error enviando mensaje a {psid}: {e}")
            return False

    def send_text(self, psid: str, text: str) -> bool:
        return self._post(psid, self.get_text_message_input(psid, text))

    def send_buttons(self, psid: str, text: str, buttons: List[Button]) -> bool:
        return self._post(psid, self.get_buttons_message_input(psid, text, buttons))

    def send_message(self, psid: str, message: OutboundMessage) -> bool:
        if message.has_buttons:
            return self.send_buttons(psid, message.text, message.buttons)
        return self.send_text(psid, message.text)

    def deliver(self, psid: str, messages: List[OutboundMessage]) -> int:
        """Envía los mensajes en orden; regresa cuántos se enviaron bien."""
        sent = 0
        for message in messages:
            if self.send_message(psid, message):
                sent += 1
        return sent

    def process_event(self, event: InboundEvent) -> List[OutboundMessage]:
        """
        Procesa un evento entrante y envía las respuestas.
        Si el turno falla (p. ej. el correo del lead), se registra el error y se
        envían los mensajes que alcanzaron a generarse; la sesión no se revierte.
        """
        logging.info(f"Evento {event.kind} de {event.user_id}")
        replies: List[OutboundMessage] = []
        try:
            self.conversation_manager.handle_event(event, replies)
        except Exception as e:
            logging.error(f"Error procesando evento de {event.user_id}: {e}")
        self.deliver(event.user_id, replies)
        return replies
