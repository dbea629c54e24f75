"""
Despacho de eventos en segundo plano, en orden y de uno en uno por usuario
"""

import logging
import threading
from collections import deque
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Deque, Dict, Optional

from models import InboundEvent

EventHandler = Callable[[InboundEvent], object]


class SessionEventDispatcher:
    """
    Una cola FIFO por usuario y a lo más un worker drenándola.
    Usuarios distintos se procesan en paralelo en el pool; dos eventos del
    mismo usuario (p. ej. una entrega duplicada) nunca se intercalan.
    """

    def __init__(self, handler: EventHandler, max_workers: int = 4):
        self._handler = handler
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="dialogue")
        self._queues: Dict[str, Deque[InboundEvent]] = {}
        self._lock = threading.Lock()
        self._idle = threading.Condition(self._lock)

    def submit(self, event: InboundEvent) -> None:
        """Encola el evento y regresa de inmediato."""
        with self._lock:
            queue = self._queues.get(event.user_id)
            if queue is not None:
                # Ya hay un worker para este usuario; lo tomará en orden
                queue.append(event)
                return
            self._queues[event.user_id] = deque([event])
        self._executor.submit(self._drain, event.user_id)

    def _drain(self, user_id: str) -> None:
        while True:
            with self._lock:
                queue = self._queues[user_id]
                if not queue:
                    del self._queues[user_id]
                    self._idle.notify_all()
                    return
                event = queue.popleft()
            try:
                self._handler(event)
            except Exception as e:
                logging.error(f"Error en worker de diálogo para {user_id}: {e}")

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Bloquea hasta que no haya eventos pendientes."""
        with self._idle:
            return self._idle.wait_for(lambda: not self._queues, timeout=timeout)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)
