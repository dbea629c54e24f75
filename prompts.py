"""
Textos, botones y configuración de las ofertas del bot de Grupo Linderos (Ucú, Yucatán)
"""

import re
from enum import Enum
from typing import Dict, List

from pydantic import BaseModel, Field

from models import Button
from state_management import Intent

# ============================================================================
# TOKENS (PAYLOADS DE BOTONES)
# ============================================================================

class Token(str, Enum):
    GET_STARTED = "GET_STARTED"

    # Menú principal
    OPC_CONTADO = "OPC_CONTADO"
    OPC_UBICACION = "OPC_UBICACION"
    OPC_FINAN = "OPC_FINAN"
    OPC_PROMO6 = "OPC_PROMO6"
    OPC_APARTAR = "OPC_APARTAR"

    # Sí/No por rama
    CONTADO_SI = "CONTADO_SI"
    CONTADO_NO = "CONTADO_NO"
    UBICACION_SI = "UBICACION_SI"
    UBICACION_NO = "UBICACION_NO"
    FINAN_SI = "FINAN_SI"
    FINAN_NO = "FINAN_NO"
    PROMO6_SI = "PROMO6_SI"
    PROMO6_NO = "PROMO6_NO"
    APARTAR_SI = "APARTAR_SI"
    APARTAR_NO = "APARTAR_NO"

    # Confirmaciones
    NAME_CONFIRM_YES = "NAME_CONFIRM_YES"
    NAME_CONFIRM_NO = "NAME_CONFIRM_NO"
    SCHEDULE_CONFIRM_YES = "SCHEDULE_CONFIRM_YES"
    SCHEDULE_CONFIRM_NO = "SCHEDULE_CONFIRM_NO"

    # Preferencia de llamada
    LLAMAR_AHORA = "LLAMAR_AHORA"
    AGENDAR = "AGENDAR"

    @classmethod
    def parse(cls, value: str):
        try:
            return cls(value)
        except ValueError:
            return None

# ============================================================================
# OFERTAS
# ============================================================================

class OfferSchema(BaseModel):
    intent: Intent
    menu_token: Token
    yes_token: Token
    no_token: Token
    pitch: List[str] = Field(..., description="Mensajes que presentan la oferta")
    question: str = Field(..., description="Pregunta sí/no para avanzar")
    context_label: str = Field(..., description="Complemento de 'Para ...' al pedir el nombre")
    keywords: str = Field(..., description="Regex de palabras clave en texto libre")

    def matches(self, text: str) -> bool:
        return re.search(self.keywords, text, re.IGNORECASE) is not None


# El orden importa: es el orden en que se prueban las palabras clave
OFFERS: Dict[Intent, OfferSchema] = {
    Intent.CONTADO: OfferSchema(
        intent=Intent.CONTADO,
        menu_token=Token.OPC_CONTADO,
        yes_token=Token.CONTADO_SI,
        no_token=Token.CONTADO_NO,
        pitch=[
            "Los terrenos son de 500 m² y el *precio de contado* es de *$185,000* 💵\n"
            "Con este plan tienes *escrituración inmediata* 🖊️",
        ],
        question="👉 ¿Quieres que Moisés te prepare tu cotización en pago de contado? 📲",
        context_label="tu cotización en pago de contado",
        keywords=r"contado|precio",
    ),
    Intent.UBICACION: OfferSchema(
        intent=Intent.UBICACION,
        menu_token=Token.OPC_UBICACION,
        yes_token=Token.UBICACION_SI,
        no_token=Token.UBICACION_NO,
        pitch=[
            "Nuestros terrenos están en *Ucú, Yucatán*, a solo *15 minutos del periférico Mérida* 🚗",
            "Cada lote mide *500 m² (10 x 50 aprox.)* 📐\n"
            "Es una zona de *alto crecimiento* y formamos parte del proyecto *Renacimiento Maya* 🏡",
        ],
        question="👉 ¿Quieres que te comparta la ubicación en Google Maps para que veas qué tan cerca está? 🌎",
        context_label="enviarte la ubicación y darte seguimiento",
        keywords=r"ubicaci[óo]n|medidas|d[oó]nde",
    ),
    Intent.FINANCIAMIENTO: OfferSchema(
        intent=Intent.FINANCIAMIENTO,
        menu_token=Token.OPC_FINAN,
        yes_token=Token.FINAN_SI,
        no_token=Token.FINAN_NO,
        pitch=[
            "¡Claro! 🙌 Puedes *apartar con $5,000* y dar un *enganche desde el 20%*.",
            "Después eliges un plan de *hasta 36 meses* 🗓️",
        ],
        question="👉 ¿Quieres que te muestre la tabla de pagos mensuales y te arme la mejor opción? 💵",
        context_label="armar tu plan de financiamiento",
        keywords=r"financia|mensual|mensuales|enganche|engache|meses|plan|financiamiento|pago",
    ),
    Intent.PROMO6: OfferSchema(
        intent=Intent.PROMO6,
        menu_token=Token.OPC_PROMO6,
        yes_token=Token.PROMO6_SI,
        no_token=Token.PROMO6_NO,
        pitch=[
            "Este mes tenemos una *promo especial a 6 meses* 🔥",
            "Con *pago diferido* puedes asegurar tu terreno más rápido y con *beneficios exclusivos* ✨",
        ],
        question="👉 ¿Quieres que Moisés te dé los detalles de la promo y te reserve tu lote? 📲",
        context_label="enviarte los detalles de la promoción a 6 meses",
        keywords=r"promo|promoci[óo]n|6\s*meses",
    ),
    Intent.APARTAR: OfferSchema(
        intent=Intent.APARTAR,
        menu_token=Token.OPC_APARTAR,
        yes_token=Token.APARTAR_SI,
        no_token=Token.APARTAR_NO,
        pitch=[
            "¡Excelente decisión! 🟢 El *apartado es de $5,000* para asegurar tu lote en Ucú.",
        ],
        question="👉 ¿Quieres avanzar *ahora mismo* con tu apartado?",
        context_label="procesar tu apartado de $5,000",
        keywords=r"apartar|reservar|apartad[oa]",
    ),
}

OFFERS_BY_MENU_TOKEN = {offer.menu_token: offer for offer in OFFERS.values()}
OFFERS_BY_YES_TOKEN = {offer.yes_token: offer for offer in OFFERS.values()}
OFFERS_BY_NO_TOKEN = {offer.no_token: offer for offer in OFFERS.values()}

DEFAULT_CONTEXT_LABEL = "continuar con tu solicitud"


def context_label(intent: Intent) -> str:
    offer = OFFERS.get(intent)
    return offer.context_label if offer else DEFAULT_CONTEXT_LABEL

# ============================================================================
# MENÚ
# ============================================================================

# Messenger acepta máximo 3 botones por plantilla
MENU_GREETING = "Hola mucho gusto 🌅 Soy el asistente de Moisés Santillán/Grupo Linderos. ¿Qué info te interesa primero?"
MENU_BUTTONS = [
    Button("1️⃣ Precio de contado", Token.OPC_CONTADO.value),
    Button("2️⃣ Ubicación y medidas", Token.OPC_UBICACION.value),
    Button("3️⃣ Financiamiento", Token.OPC_FINAN.value),
]
MENU_MORE = "También tengo:"
MENU_MORE_BUTTONS = [
    Button("4️⃣ Promoción a 6 meses", Token.OPC_PROMO6.value),
    Button("🟢 Apartar ahora", Token.OPC_APARTAR.value),
]

YES_TITLE = "✅ Sí"
NO_TITLE = "❌ No"

# ============================================================================
# PASOS GUIADOS
# ============================================================================

ASK_NAME = "Para {context}, ¿me compartes tu **nombre completo**?"
ASK_NAME_EXAMPLE = "Puedes escribir: *Mi nombre es Ana López* o *Me llamo Ana López* 🙂"
NAME_NOT_UNDERSTOOD = "No me quedó claro 😅. Escribe tu *nombre completo* (nombre y apellido)."
CONFIRM_NAME = "¿Confirmas que tu nombre es **{name}**?"
NAME_CONFIRMED = "Perfecto, *{name}* ✅"
NAME_REJECTED = "Sin problema, escríbelo de nuevo por fa (nombre y apellido)."

ASK_PHONE = "¡Gracias! Ahora pásame tu **WhatsApp** (10 dígitos). Ej.: *mi número es 9991234567* 📲"
PHONE_SAVED = "Guardé tu WhatsApp: *{phone}* ✅"
PHONE_INVALID = "El WhatsApp debe tener **10 dígitos** en México. Ej.: 9991234567"

ASK_CALL_PREFERENCE = "👉 ¿Quieres que Moisés te marque *ahora* o prefieres *agendar* un horario? ⏰"
ASK_CALL_PREFERENCE_APARTAR = (
    "👉 ¿Quieres que Moisés te contacte *ahora* o prefieres *agendar* para procesar tu **apartado de $5,000**? ⏰"
)
CALL_PREFERENCE_UNCLEAR = "¿Prefieres que te contactemos **ahora** o **agendar** un horario? ⏰"
CALL_PREFERENCE_BUTTONS = [
    Button("📞 Ahora", Token.LLAMAR_AHORA.value),
    Button("⏰ Agendar", Token.AGENDAR.value),
]

ASK_SCHEDULE_DAY = "⏰ Para agendar, dime primero un **día de la semana** (lunes a domingo)."
ASK_SCHEDULE_DAY_EXAMPLE = "Ejemplos: *lunes*, *miércoles*, *sábado*"
DAY_INVALID = "No identifiqué un día válido 😅. Dime un día de la semana: *lunes* a *domingo*."
DAY_SAVED = "Perfecto, **{day}**."

ASK_SCHEDULE_TIME = "Genial. Ahora dime la **hora**. Acepto 24h (*18:30*) o 12h (*6:30 pm*)."
TIME_INVALID = "No reconocí la hora 😅. Ejemplos válidos: *18:30*, *6:30 pm*, *9 am*."
CONFIRM_SCHEDULE = "¿Confirmo tu horario como: **{schedule}**?"
SCHEDULE_RETRY = "Vamos a intentarlo de nuevo 😉"
SCHEDULE_REJECTED = "Ok, intentémoslo de nuevo. Dime un **día de la semana** (lunes a domingo)."

# ============================================================================
# CIERRES
# ============================================================================

MAPS_LINK = "🗺️ Ubicación en Google Maps:\nhttps://maps.app.goo.gl/MCdjyEouQhxTnUbx5"
OFFER_DECLINED = "¡Sin problema! Te dejo el menú por si quieres ver otra opción 👇"
APARTAR_DECLINED = "¡Sin problema! Si quieres revisar más info antes, aquí está el menú 👇"
CALL_NOW_DONE = "¡Listo! ✅ Le aviso a Moisés que te contacte *ahora*. ¡Gracias!"
CALL_NOW_MENU = "Si quieres ver otra opción, elige del menú 👇"
SCHEDULE_DONE = "¡Perfecto! ✅ Agendo esa hora y le aviso a Moisés para que te contacte."
SCHEDULE_MENU = "¿Quieres ver otra opción? Aquí tienes el menú 👇"
