import logging
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional, Tuple


class Intent(str, Enum):
    CONTADO = "contado"
    UBICACION = "ubicacion"
    FINANCIAMIENTO = "financiamiento"
    PROMO6 = "promo6"
    APARTAR = "apartar"
    NONE = "none"


class Step(str, Enum):
    IDLE = "idle"
    ASK_NAME = "ask_name"
    ASK_PHONE = "ask_phone"
    ASK_SCHEDULE_DAY = "ask_schedule_day"
    ASK_SCHEDULE_TIME = "ask_schedule_time"


@dataclass(frozen=True)
class PendingConfirmation:
    """Pregunta sí/no activa: el token a despachar en cada caso."""
    on_yes: str
    on_no: str


@dataclass
class Session:
    """Estado de conversación de un visitante"""
    intent: Intent = Intent.NONE
    name: Optional[str] = None
    pending_name: Optional[str] = None
    phone: Optional[str] = None
    step: Step = Step.IDLE
    schedule_day: Optional[str] = None
    schedule_time: Optional[str] = None
    schedule_text: Optional[str] = None
    pending_confirmation: Optional[PendingConfirmation] = None
    awaiting_call_preference: bool = False

    def has_contact(self) -> bool:
        """Nombre y teléfono capturados: ya se puede preguntar ahora/agendar."""
        return bool(self.name and self.phone)

    def sanitize(self) -> None:
        """Limpia las capas sí/no y ahora/agendar sin tocar los datos."""
        self.pending_confirmation = None
        self.awaiting_call_preference = False


class SessionStore(ABC):
    """Interfaz para almacenar y recuperar sesiones por usuario"""

    @abstractmethod
    def get_or_create(self, user_id: str) -> Session:
        """Recupera la sesión del usuario o crea una nueva"""
        pass

    @abstractmethod
    def reset(self, user_id: str) -> Session:
        """Reemplaza la sesión del usuario por una en blanco y la regresa"""
        pass


class InMemorySessionStore(SessionStore):
    """
    Implementación en memoria, una sesión por usuario durante la vida del proceso.
    Con idle_ttl_seconds se descartan las sesiones inactivas por más de ese tiempo.
    """

    def __init__(self, idle_ttl_seconds: Optional[float] = None, clock: Callable[[], float] = time.monotonic):
        self._sessions: Dict[str, Tuple[Session, float]] = {}
        self._lock = threading.Lock()
        self._idle_ttl = idle_ttl_seconds if idle_ttl_seconds and idle_ttl_seconds > 0 else None
        self._clock = clock
        self._last_sweep = clock()

    def _expired(self, last_seen: float, now: float) -> bool:
        return self._idle_ttl is not None and now - last_seen > self._idle_ttl

    def get_or_create(self, user_id: str) -> Session:
        now = self._clock()
        with self._lock:
            self._sweep(now)
            entry = self._sessions.get(user_id)
            if entry is None:
                logging.info(f"Nueva sesión para usuario {user_id}")
                session = Session()
            elif self._expired(entry[1], now):
                logging.info(f"Sesión expirada por inactividad para usuario {user_id}")
                session = Session()
            else:
                session = entry[0]
            self._sessions[user_id] = (session, now)
            return session

    def reset(self, user_id: str) -> Session:
        session = Session()
        with self._lock:
            self._sessions[user_id] = (session, self._clock())
        logging.info(f"Sesión reiniciada para usuario {user_id}")
        return session

    def _sweep(self, now: float) -> None:
        # Barrido como máximo una vez por TTL
        if self._idle_ttl is None or now - self._last_sweep < self._idle_ttl:
            return
        self._last_sweep = now
        expired = [uid for uid, (_, seen) in self._sessions.items() if self._expired(seen, now)]
        for uid in expired:
            del self._sessions[uid]
        if expired:
            logging.info(f"{len(expired)} sesiones inactivas eliminadas")
