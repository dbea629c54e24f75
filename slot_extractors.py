"""
Extractores deterministas de slots: nombre, teléfono, día de la semana y hora.

Cada extractor es una lista ordenada de reglas (patrón -> validador -> normalizador).
Todas las funciones son puras y regresan None cuando el texto no es válido,
nunca una "mejor suposición".
"""

import re
import unicodedata
from dataclasses import dataclass
from typing import Callable, List, NamedTuple, Optional

# ============================================================================
# REGLAS GENÉRICAS
# ============================================================================

@dataclass(frozen=True)
class SlotRule:
    """Una regla de extracción: si el patrón coincide, valida y normaliza."""
    pattern: "re.Pattern"
    normalize: Callable[["re.Match"], Optional[object]]
    # Si la regla coincide pero no normaliza, se detiene la cascada
    stop_on_failure: bool = False


def apply_rules(rules: List[SlotRule], text: str, search: bool = True):
    """Aplica las reglas en orden y regresa el primer valor normalizado."""
    for rule in rules:
        match = rule.pattern.search(text) if search else rule.pattern.match(text)
        if not match:
            continue
        value = rule.normalize(match)
        if value is not None:
            return value
        if rule.stop_on_failure:
            return None
    return None

# ============================================================================
# NOMBRE
# ============================================================================

LETTERS = "a-záéíóúüñ"
_NAME_CHARS = re.compile(rf"^[{LETTERS}\s']+$", re.IGNORECASE)
_NON_NAME_CHARS = re.compile(rf"[^{LETTERS}\s']", re.IGNORECASE)


def normalize_name(name: str) -> str:
    """Colapsa espacios y capitaliza cada palabra ("ana  LÓPEZ" -> "Ana López")."""
    words = name.split()
    return " ".join(w[:1].upper() + w[1:].lower() for w in words)


def _accept_name(candidate: str) -> Optional[str]:
    cand = normalize_name(candidate)
    if len(cand.split(" ")) >= 2 and _NAME_CHARS.match(cand):
        return cand
    return None


def _name_from_phrase(match) -> Optional[str]:
    return _accept_name(_NON_NAME_CHARS.sub("", match.group(1)))


NAME_RULES = [
    SlotRule(re.compile(rf"mi\s+nombre\s+es[:\s]+([{LETTERS}\s']{{3,60}})$", re.IGNORECASE), _name_from_phrase),
    SlotRule(re.compile(rf"me\s+llamo\s+([{LETTERS}\s']{{3,60}})$", re.IGNORECASE), _name_from_phrase),
    SlotRule(re.compile(rf"soy\s+([{LETTERS}\s']{{3,60}})$", re.IGNORECASE), _name_from_phrase),
    SlotRule(re.compile(rf"(?:^|\b)nombre\s*[:\-]\s*([{LETTERS}\s']{{3,60}})$", re.IGNORECASE), _name_from_phrase),
]


def extract_name(text: str) -> Optional[str]:
    """
    Extrae un nombre completo (dos o más palabras).
    Primero busca frases explícitas ("me llamo ...", "mi nombre es ...");
    si ninguna aplica, acepta el texto completo si parece un nombre suelto.
    """
    t = text.strip()
    name = apply_rules(NAME_RULES, t)
    if name:
        return name

    # Fallback: nombre suelto ("Ana López")
    cleaned = " ".join(_NON_NAME_CHARS.sub(" ", t).split())
    if cleaned:
        return _accept_name(cleaned)
    return None

# ============================================================================
# TELÉFONO (MÉXICO)
# ============================================================================

COUNTRY_PREFIX = "52"
_LOCAL_NUMBER = re.compile(r"^[2-9]\d{9}$")


def extract_phone(text: str) -> Optional[str]:
    """
    Extrae un número mexicano y lo normaliza a +52 + 10 dígitos.
    Une todos los dígitos del texto: si empieza con 52 y tiene 12 o más,
    se queda con los últimos 10; si tiene exactamente 10, se usa tal cual.
    """
    digits = "".join(re.findall(r"\d+", text))
    if digits.startswith(COUNTRY_PREFIX) and len(digits) >= 12:
        ten = digits[-10:]
    elif len(digits) == 10:
        ten = digits
    else:
        return None

    if not _LOCAL_NUMBER.match(ten):
        return None
    return f"+{COUNTRY_PREFIX}{ten}"

# ============================================================================
# DÍA DE LA SEMANA
# ============================================================================

WEEKDAYS = {
    "lunes": "lunes",
    "martes": "martes",
    "miercoles": "miércoles",
    "jueves": "jueves",
    "viernes": "viernes",
    "sabado": "sábado",
    "domingo": "domingo",
}

_WEEKDAY_PATTERN = re.compile(r"(" + "|".join(WEEKDAYS) + r")")


def strip_accents(text: str) -> str:
    return "".join(c for c in unicodedata.normalize("NFD", text) if unicodedata.category(c) != "Mn")


def extract_weekday(text: str) -> Optional[str]:
    """Regresa el día en su forma canónica acentuada ("sabado" -> "sábado")."""
    t = " ".join(strip_accents(text).strip().lower().replace(".", "").split())
    m = _WEEKDAY_PATTERN.search(t)
    if not m:
        return None
    return WEEKDAYS[m.group(1)]

# ============================================================================
# HORA
# ============================================================================

class TimeSlot(NamedTuple):
    hhmm24: str
    display: str


def _time_slot(hour: int, minute: int) -> TimeSlot:
    value = f"{hour:02d}:{minute:02d}"
    return TimeSlot(hhmm24=value, display=value)


def _from_12h(match) -> Optional[TimeSlot]:
    hour = int(match.group(1))
    minute = int(match.group(2) or "0")
    meridiem = match.group(3).replace(".", "")
    if not 1 <= hour <= 12 or not 0 <= minute <= 59:
        return None
    if meridiem == "pm" and hour != 12:
        hour += 12
    if meridiem == "am" and hour == 12:
        hour = 0
    return _time_slot(hour, minute)


def _from_24h(match) -> Optional[TimeSlot]:
    hour = int(match.group(1))
    minute = int(match.group(2))
    if not 0 <= hour <= 23 or not 0 <= minute <= 59:
        return None
    return _time_slot(hour, minute)


# La primera forma que coincide decide: "13 pm" no cae a otra regla
TIME_RULES = [
    # 12h con am/pm: "9 am", "9:30 pm", "12:05 a.m."
    SlotRule(re.compile(r"^(\d{1,2})(?::(\d{1,2}))?\s*(a\.?m\.?|p\.?m\.?|am|pm)$"), _from_12h, stop_on_failure=True),
    # 24h: "9:00", "18:30"
    SlotRule(re.compile(r"^(\d{1,2}):(\d{2})$"), _from_24h, stop_on_failure=True),
    # 12h compacto: "9pm", "930pm"
    SlotRule(re.compile(r"^(\d{1,2})(?::?(\d{2}))?\s*(am|pm)$"), _from_12h, stop_on_failure=True),
]


def extract_time(text: str) -> Optional[TimeSlot]:
    """
    Acepta:
     - 24h: "9:00", "09:30", "21:15"
     - 12h: "9 am", "9:30 pm", "12 pm", "12:05am", "930pm"
    Devuelve TimeSlot(hhmm24="HH:MM", display="HH:MM") o None.
    """
    t = " ".join(text.strip().lower().split())
    return apply_rules(TIME_RULES, t, search=False)
