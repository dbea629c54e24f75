"""
Protocolo genérico de confirmación sí/no.

Cualquier paso puede armar una confirmación con dos tokens de continuación;
la respuesta escrita ("sí"/"no") o el botón correspondiente la resuelven.
"""

import re
from typing import Optional

from state_management import PendingConfirmation, Session

_YES_START = re.compile(r"^s[ií]\b")
_YES_WORD = re.compile(r"\bs[ií]\b")
_NO_START = re.compile(r"^no\b")
_NO_WORD = re.compile(r"\bno\b")


def is_yes(text: str) -> bool:
    t = text.strip().lower()
    return bool(_YES_START.search(t) or _YES_WORD.search(t))


def is_no(text: str) -> bool:
    # Cualquier "no" como palabra cuenta, incluso dentro de una frase larga
    t = text.strip().lower()
    return bool(_NO_START.search(t) or _NO_WORD.search(t))


def is_yes_or_no(text: str) -> bool:
    return is_yes(text) or is_no(text)


def arm(session: Session, on_yes: str, on_no: str) -> None:
    session.pending_confirmation = PendingConfirmation(on_yes=on_yes, on_no=on_no)


def clear(session: Session) -> None:
    session.pending_confirmation = None


def resolve(session: Session, text: str) -> Optional[str]:
    """
    Traduce un "sí"/"no" escrito al token armado y limpia la confirmación.
    Regresa None (y deja la confirmación armada) si no hay confirmación
    activa o el texto no es ni sí ni no. Si el texto es ambas cosas gana el sí.
    """
    pending = session.pending_confirmation
    if pending is None or not is_yes_or_no(text):
        return None
    session.pending_confirmation = None
    return pending.on_yes if is_yes(text) else pending.on_no
