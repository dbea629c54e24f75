"""
Gestión de conversaciones del chatbot: máquina de estados de captura de leads
"""

import logging
import re
from typing import Callable, Dict, List, Optional

import confirmation
import prompts
from lead_notifier import LeadComposer, Preference
from models import Button, InboundEvent, OutboundMessage
from prompts import OFFERS, OFFERS_BY_MENU_TOKEN, OFFERS_BY_NO_TOKEN, OFFERS_BY_YES_TOKEN, OfferSchema, Token
from slot_extractors import extract_name, extract_phone, extract_time, extract_weekday
from state_management import Intent, Session, SessionStore, Step

# ============================================================================
# CLASIFICADOR DE PREFERENCIA DE LLAMADA
# ============================================================================

_WANTS_NOW = [
    re.compile(r"\bahora\b"),
    re.compile(r"\bde una\b"),
    re.compile(r"\ben este momento\b"),
    re.compile(r"(ll[aá]men|marquen|llamar|hablen|me hablen|me llamen).*(ya|ahora|en este momento)"),
    re.compile(r"(quiero|prefiero).*(llamada|me hablen|me llamen|me marquen).*(ya|ahora|en este momento)"),
    re.compile(r"(quiero|prefiero).*(ahora|de una)"),
]

_WANTS_LATER = [
    re.compile(r"(agendar|agenda|programar|agendemos|citar|cita)"),
    re.compile(r"(quiero|prefiero).*(agendar|agenda|programar|cita|despu[eé]s|m[aá]s tarde|mas tarde)"),
    re.compile(r"\b(despu[eé]s|m[aá]s tarde|mas tarde)\b"),
]


def wants_call_now(text: str) -> bool:
    t = text.strip().lower()
    return any(rx.search(t) for rx in _WANTS_NOW)


def wants_call_later(text: str) -> bool:
    t = text.strip().lower()
    return any(rx.search(t) for rx in _WANTS_LATER)


def match_offer(text: str) -> Optional[OfferSchema]:
    """Primera oferta cuyas palabras clave aparecen en el texto."""
    for offer in OFFERS.values():
        if offer.matches(text):
            return offer
    return None

# ============================================================================
# TURNO
# ============================================================================

class Turn:
    """Un evento en proceso: la sesión del usuario y los mensajes a enviar"""

    def __init__(self, user_id: str, store: SessionStore, replies: List[OutboundMessage]):
        self.user_id = user_id
        self.store = store
        self.session = store.get_or_create(user_id)
        self.replies = replies

    def text(self, text: str) -> None:
        self.replies.append(OutboundMessage(text=text))

    def buttons(self, text: str, buttons: List[Button]) -> None:
        self.replies.append(OutboundMessage(text=text, buttons=list(buttons)))

    def yes_no(self, text: str, yes_token: Token, no_token: Token) -> None:
        """Pregunta sí/no con botones y arma la confirmación."""
        self.buttons(text, [
            Button(prompts.YES_TITLE, yes_token.value),
            Button(prompts.NO_TITLE, no_token.value),
        ])
        confirmation.arm(self.session, yes_token.value, no_token.value)

    def reset(self) -> Session:
        self.session = self.store.reset(self.user_id)
        return self.session

# ============================================================================
# MÁQUINA DE ESTADOS
# ============================================================================

class ConversationManager:
    def __init__(self, store: SessionStore, lead_composer: LeadComposer):
        self.store = store
        self.lead_composer = lead_composer
        self._token_handlers: Dict[Token, Callable[[Turn], None]] = {
            Token.GET_STARTED: self._get_started,
            Token.NAME_CONFIRM_YES: self._name_confirm_yes,
            Token.NAME_CONFIRM_NO: self._name_confirm_no,
            Token.LLAMAR_AHORA: self._call_now,
            Token.AGENDAR: self._schedule_call,
            Token.SCHEDULE_CONFIRM_YES: self._schedule_confirm_yes,
            Token.SCHEDULE_CONFIRM_NO: self._schedule_confirm_no,
        }

    def handle_event(self, event: InboundEvent, replies: Optional[List[OutboundMessage]] = None) -> List[OutboundMessage]:
        if event.token is not None:
            return self.handle_token(event.user_id, event.token, replies)
        return self.handle_text(event.user_id, event.text or "", replies)

    def handle_token(self, user_id: str, token: str, replies: Optional[List[OutboundMessage]] = None) -> List[OutboundMessage]:
        """
        Procesa un postback (botón o menú).
        Los mensajes se agregan a replies conforme se generan, así el llamador
        conserva los que alcanzaron a generarse si algo falla a media vuelta.
        """
        turn = Turn(user_id, self.store, replies if replies is not None else [])
        parsed = Token.parse(token)
        if parsed is None:
            logging.warning(f"Payload no reconocido: {token}")
            return turn.replies
        self._dispatch_token(turn, parsed)
        return turn.replies

    def handle_text(self, user_id: str, text: str, replies: Optional[List[OutboundMessage]] = None) -> List[OutboundMessage]:
        """Procesa un mensaje de texto libre."""
        turn = Turn(user_id, self.store, replies if replies is not None else [])
        self._dispatch_text(turn, text.strip())
        return turn.replies

    # ------------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------------

    def _dispatch_token(self, turn: Turn, token: Token) -> None:
        session = turn.session
        pending = session.pending_confirmation
        # Un botón de la confirmación activa la resuelve igual que el texto
        if pending is not None and token.value in (pending.on_yes, pending.on_no):
            confirmation.clear(session)

        logging.info(f"Token {token.value} (usuario {turn.user_id}, paso {session.step.value})")

        if token in OFFERS_BY_MENU_TOKEN:
            session.sanitize()
            self._enter_offer(turn, OFFERS_BY_MENU_TOKEN[token])
        elif token in OFFERS_BY_YES_TOKEN:
            self._offer_yes(turn, OFFERS_BY_YES_TOKEN[token])
        elif token in OFFERS_BY_NO_TOKEN:
            self._offer_no(turn, OFFERS_BY_NO_TOKEN[token])
        else:
            self._token_handlers[token](turn)

    def _get_started(self, turn: Turn) -> None:
        turn.reset()
        self._show_menu(turn)

    def _enter_offer(self, turn: Turn, offer: OfferSchema) -> None:
        for line in offer.pitch:
            turn.text(line)
        turn.yes_no(offer.question, offer.yes_token, offer.no_token)
        turn.session.intent = offer.intent

    def _offer_yes(self, turn: Turn, offer: OfferSchema) -> None:
        session = turn.session
        confirmation.clear(session)
        # Botón viejo presionado después de un reinicio
        if session.intent == Intent.NONE:
            session.intent = offer.intent

        if offer.intent == Intent.UBICACION:
            turn.text(prompts.MAPS_LINK)

        if offer.intent == Intent.APARTAR:
            if session.has_contact():
                self._ask_call_preference(turn)
            else:
                self._ask_missing_contact(turn)
            return

        session.step = Step.ASK_NAME
        self._ask_name(turn)

    def _offer_no(self, turn: Turn, offer: OfferSchema) -> None:
        declined = prompts.APARTAR_DECLINED if offer.intent == Intent.APARTAR else prompts.OFFER_DECLINED
        turn.text(declined)
        turn.reset()
        self._show_menu(turn)

    def _name_confirm_yes(self, turn: Turn) -> None:
        session = turn.session
        if not session.pending_name:
            session.step = Step.ASK_NAME
            self._ask_name(turn)
            return
        session.name = session.pending_name
        session.pending_name = None
        turn.text(prompts.NAME_CONFIRMED.format(name=session.name))
        session.step = Step.ASK_PHONE
        turn.text(prompts.ASK_PHONE)

    def _name_confirm_no(self, turn: Turn) -> None:
        session = turn.session
        session.pending_name = None
        session.name = None
        session.step = Step.ASK_NAME
        turn.text(prompts.NAME_REJECTED)
        self._ask_name(turn)

    def _call_now(self, turn: Turn) -> None:
        session = turn.session
        session.awaiting_call_preference = False
        if not session.has_contact():
            self._ask_missing_contact(turn)
            return
        turn.text(prompts.CALL_NOW_DONE)
        self.lead_composer.emit(turn.user_id, session, Preference.NOW)
        turn.reset()
        turn.text(prompts.CALL_NOW_MENU)
        self._show_menu(turn)

    def _schedule_call(self, turn: Turn) -> None:
        session = turn.session
        session.awaiting_call_preference = False
        if not session.has_contact():
            self._ask_missing_contact(turn)
            return
        session.step = Step.ASK_SCHEDULE_DAY
        session.schedule_day = None
        session.schedule_time = None
        self._ask_schedule_day(turn)

    def _schedule_confirm_yes(self, turn: Turn) -> None:
        session = turn.session
        confirmation.clear(session)
        if not session.has_contact():
            self._ask_missing_contact(turn)
            return
        if not (session.schedule_day and session.schedule_time):
            session.step = Step.ASK_SCHEDULE_DAY
            session.schedule_day = None
            session.schedule_time = None
            turn.text(prompts.SCHEDULE_RETRY)
            self._ask_schedule_day(turn)
            return
        schedule_text = session.schedule_text or f"{session.schedule_day} {session.schedule_time}"
        turn.text(prompts.SCHEDULE_DONE)
        self.lead_composer.emit(turn.user_id, session, Preference.SCHEDULE, schedule_text)
        turn.reset()
        turn.text(prompts.SCHEDULE_MENU)
        self._show_menu(turn)

    def _schedule_confirm_no(self, turn: Turn) -> None:
        session = turn.session
        confirmation.clear(session)
        session.schedule_time = None
        session.schedule_text = None
        session.step = Step.ASK_SCHEDULE_DAY
        turn.text(prompts.SCHEDULE_REJECTED)
        self._ask_schedule_day(turn)

    # ------------------------------------------------------------------------
    # Texto libre
    # ------------------------------------------------------------------------

    def _dispatch_text(self, turn: Turn, text: str) -> None:
        session = turn.session
        logging.info(f"Texto (usuario {turn.user_id}, paso {session.step.value})")

        if session.awaiting_call_preference:
            self._handle_call_preference_text(turn, text)
        elif session.step == Step.ASK_NAME:
            self._handle_name_text(turn, text)
        elif session.pending_confirmation is not None and confirmation.is_yes_or_no(text):
            token = confirmation.resolve(session, text)
            self._dispatch_token(turn, Token(token))
        elif session.step == Step.ASK_PHONE:
            self._handle_phone_text(turn, text)
        elif session.step == Step.ASK_SCHEDULE_DAY:
            self._handle_day_text(turn, text)
        elif session.step == Step.ASK_SCHEDULE_TIME:
            self._handle_time_text(turn, text)
        else:
            offer = match_offer(text)
            if offer:
                session.sanitize()
                self._enter_offer(turn, offer)
            else:
                self._show_menu(turn)

    def _handle_call_preference_text(self, turn: Turn, text: str) -> None:
        now = wants_call_now(text)
        later = wants_call_later(text)
        if now and not later:
            self._dispatch_token(turn, Token.LLAMAR_AHORA)
        elif later and not now:
            self._dispatch_token(turn, Token.AGENDAR)
        else:
            logging.info(f"Preferencia de llamada ambigua (usuario {turn.user_id})")
            turn.buttons(prompts.CALL_PREFERENCE_UNCLEAR, prompts.CALL_PREFERENCE_BUTTONS)

    def _handle_name_text(self, turn: Turn, text: str) -> None:
        # Respuesta escrita a la confirmación de nombre
        if confirmation.is_yes(text):
            self._dispatch_token(turn, Token.NAME_CONFIRM_YES)
            return
        if confirmation.is_no(text):
            self._dispatch_token(turn, Token.NAME_CONFIRM_NO)
            return

        name = extract_name(text)
        if name:
            turn.session.pending_name = name
            turn.yes_no(prompts.CONFIRM_NAME.format(name=name), Token.NAME_CONFIRM_YES, Token.NAME_CONFIRM_NO)
        else:
            logging.debug(f"Nombre no reconocido (usuario {turn.user_id})")
            turn.text(prompts.NAME_NOT_UNDERSTOOD)
            self._ask_name(turn)

    def _handle_phone_text(self, turn: Turn, text: str) -> None:
        session = turn.session
        phone = extract_phone(text)
        if not phone:
            logging.debug(f"Teléfono no reconocido (usuario {turn.user_id})")
            turn.text(prompts.PHONE_INVALID)
            turn.text(prompts.ASK_PHONE)
            return
        session.phone = phone
        turn.text(prompts.PHONE_SAVED.format(phone=phone))
        if session.has_contact():
            self._ask_call_preference(turn)
        else:
            session.step = Step.ASK_NAME
            self._ask_name(turn)

    def _handle_day_text(self, turn: Turn, text: str) -> None:
        session = turn.session
        day = extract_weekday(text)
        if not day:
            logging.debug(f"Día no reconocido (usuario {turn.user_id})")
            turn.text(prompts.DAY_INVALID)
            self._ask_schedule_day(turn)
            return
        session.schedule_day = day
        session.step = Step.ASK_SCHEDULE_TIME
        turn.text(prompts.DAY_SAVED.format(day=day))
        turn.text(prompts.ASK_SCHEDULE_TIME)

    def _handle_time_text(self, turn: Turn, text: str) -> None:
        session = turn.session
        slot = extract_time(text)
        if not slot:
            logging.debug(f"Hora no reconocida (usuario {turn.user_id})")
            turn.text(prompts.TIME_INVALID)
            turn.text(prompts.ASK_SCHEDULE_TIME)
            return
        session.schedule_time = slot.hhmm24
        session.schedule_text = f"{session.schedule_day} {slot.display}"
        turn.yes_no(
            prompts.CONFIRM_SCHEDULE.format(schedule=session.schedule_text),
            Token.SCHEDULE_CONFIRM_YES,
            Token.SCHEDULE_CONFIRM_NO,
        )

    # ------------------------------------------------------------------------
    # Prompts
    # ------------------------------------------------------------------------

    def _show_menu(self, turn: Turn) -> None:
        turn.buttons(prompts.MENU_GREETING, prompts.MENU_BUTTONS)
        turn.buttons(prompts.MENU_MORE, prompts.MENU_MORE_BUTTONS)

    def _ask_name(self, turn: Turn) -> None:
        turn.text(prompts.ASK_NAME.format(context=prompts.context_label(turn.session.intent)))
        turn.text(prompts.ASK_NAME_EXAMPLE)

    def _ask_missing_contact(self, turn: Turn) -> None:
        session = turn.session
        if session.name:
            session.step = Step.ASK_PHONE
            turn.text(prompts.ASK_PHONE)
        else:
            session.step = Step.ASK_NAME
            self._ask_name(turn)

    def _ask_call_preference(self, turn: Turn) -> None:
        session = turn.session
        text = prompts.ASK_CALL_PREFERENCE_APARTAR if session.intent == Intent.APARTAR else prompts.ASK_CALL_PREFERENCE
        turn.buttons(text, prompts.CALL_PREFERENCE_BUTTONS)
        session.awaiting_call_preference = True

    def _ask_schedule_day(self, turn: Turn) -> None:
        turn.text(prompts.ASK_SCHEDULE_DAY)
        turn.text(prompts.ASK_SCHEDULE_DAY_EXAMPLE)
