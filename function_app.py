"""
Chatbot de captura de leads para terrenos en Ucú, Yucatán
Integra Facebook Messenger + notificación de leads por correo
Azure Function para procesar webhooks de Messenger
"""

import azure.functions as func
import logging
import threading
from typing import Optional

from config import get_settings
from conversation import ConversationManager
from event_dispatcher import SessionEventDispatcher
from lead_notifier import EmailLeadNotifier, LeadComposer
from messenger_bot import MessengerBot
from models import WebhookEnvelope, extract_events
from state_management import InMemorySessionStore

app = func.FunctionApp(http_auth_level=func.AuthLevel.ANONYMOUS)

# Estado del proceso: las sesiones viven mientras viva el worker de Functions
_dispatcher: Optional[SessionEventDispatcher] = None
_dispatcher_lock = threading.Lock()


@app.route(route="webhook", methods=["GET", "POST"])
def webhook(req: func.HttpRequest) -> func.HttpResponse:
    """
    Main Azure Function entry point for Messenger webhook.
    Handles both GET (verification) and POST (events) requests.
    """
    if req.method == "POST":
        return handle_message(req)
    else:
        return verify(req)


def verify(req: func.HttpRequest) -> func.HttpResponse:
    """
    Handles Messenger webhook verification (GET requests).
    This is called when you first set up the webhook in Meta Developer Console.
    """
    verify_token = get_settings().verify_token

    mode = req.params.get("hub.mode")
    token = req.params.get("hub.verify_token")
    challenge = req.params.get("hub.challenge")

    if verify_token and mode == "subscribe" and token == verify_token:
        logging.info("WEBHOOK_VERIFIED")
        return func.HttpResponse(challenge or "", status_code=200)

    logging.info("VERIFICATION_FAILED")
    return func.HttpResponse("Verification failed", status_code=403)


def create_messenger_bot() -> MessengerBot:
    """
    Factory method para crear el bot con su store de sesiones y notificador de leads.
    """
    settings = get_settings()
    store = InMemorySessionStore(idle_ttl_seconds=settings.session_idle_ttl_seconds)
    notifier = EmailLeadNotifier(
        host=settings.smtp_host,
        port=settings.smtp_port,
        username=settings.smtp_user,
        password=settings.smtp_pass,
        sender=settings.leads_email_from,
        recipient=settings.leads_email_to,
    )
    manager = ConversationManager(store, LeadComposer(notifier))
    bot = MessengerBot(manager, page_token=settings.page_token, api_version=settings.graph_api_version)
    logging.info("Messenger bot creado exitosamente")
    return bot


def get_dispatcher() -> SessionEventDispatcher:
    """Dispatcher único por proceso (sesiones en memoria compartidas entre requests)."""
    global _dispatcher
    with _dispatcher_lock:
        if _dispatcher is None:
            bot = create_messenger_bot()
            _dispatcher = SessionEventDispatcher(bot.process_event, max_workers=get_settings().dispatcher_workers)
        return _dispatcher


def handle_message(req: func.HttpRequest) -> func.HttpResponse:
    """
    Handles incoming Messenger events (POST requests).
    Siempre responde 200 de inmediato; el diálogo se procesa en segundo plano.
    """
    try:
        body = req.get_json()
    except ValueError:
        logging.error("Failed to decode JSON")
        return func.HttpResponse("EVENT_RECEIVED", status_code=200)

    try:
        envelope = WebhookEnvelope.model_validate(body)
    except ValueError as e:
        logging.error(f"Webhook body inválido: {e}")
        return func.HttpResponse("EVENT_RECEIVED", status_code=200)

    if envelope.object_type != "page":
        logging.info(f"Evento ignorado (object={envelope.object_type})")
        return func.HttpResponse("EVENT_RECEIVED", status_code=200)

    events = extract_events(envelope)
    if events:
        dispatcher = get_dispatcher()
        for event in events:
            dispatcher.submit(event)

    return func.HttpResponse("EVENT_RECEIVED", status_code=200)
