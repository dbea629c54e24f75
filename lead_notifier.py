"""
Armado y envío de leads al asesor (correo SMTP)
"""

import logging
import smtplib
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from email.message import EmailMessage
from enum import Enum
from html import escape
from typing import Optional, Tuple

from pydantic import BaseModel, Field

from state_management import Intent, Session


class Preference(str, Enum):
    NOW = "now"
    SCHEDULE = "schedule"


# Etiquetas que ve el asesor en el correo
PREFERENCE_LABELS = {
    Preference.NOW: "ahora",
    Preference.SCHEDULE: "agendar",
}


class LeadDeliveryError(Exception):
    pass


class IncompleteLeadError(ValueError):
    pass


class LeadRecord(BaseModel):
    intent: Intent
    name: str
    phone: str
    preference: Preference
    schedule_text: Optional[str] = None
    user_id: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

# ============================================================================
# NOTIFICADORES
# ============================================================================

class LeadNotifier(ABC):
    """Destino de los leads completados"""

    @abstractmethod
    def notify(self, lead: LeadRecord) -> None:
        """Entrega el lead; lanza LeadDeliveryError si falla"""
        pass


def format_lead_email(lead: LeadRecord) -> Tuple[str, str]:
    """Regresa (asunto, html) del correo para el asesor."""
    subject = f"Nuevo lead Ucú ({lead.intent.value}) - {lead.name}"
    schedule_item = f"<li><b>Horario:</b> {escape(lead.schedule_text)}</li>" if lead.schedule_text else ""
    html = f"""
<h2>Nuevo lead de Messenger</h2>
<ul>
  <li><b>Intent:</b> {escape(lead.intent.value)}</li>
  <li><b>Nombre:</b> {escape(lead.name)}</li>
  <li><b>WhatsApp:</b> {escape(lead.phone)}</li>
  <li><b>Preferencia:</b> {PREFERENCE_LABELS[lead.preference]}</li>
  {schedule_item}
  <li><b>PSID:</b> {escape(lead.user_id)}</li>
  <li><b>Fecha:</b> {lead.timestamp.strftime("%Y-%m-%d %H:%M:%S %Z")}</li>
</ul>
""".strip()
    return subject, html


class EmailLeadNotifier(LeadNotifier):
    """Envía cada lead por correo a una dirección fija del asesor"""

    def __init__(self, host: str, port: int, username: str, password: str,
                 sender: str, recipient: str, timeout: float = 15):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.sender = sender
        self.recipient = recipient
        self.timeout = timeout

    def build_message(self, lead: LeadRecord) -> EmailMessage:
        subject, html = format_lead_email(lead)
        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = self.sender
        message["To"] = self.recipient
        message.set_content(f"{subject}\nWhatsApp: {lead.phone}")
        message.add_alternative(html, subtype="html")
        return message

    def notify(self, lead: LeadRecord) -> None:
        message = self.build_message(lead)
        try:
            # 465 = TLS implícito; cualquier otro puerto intenta STARTTLS
            if self.port == 465:
                smtp = smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout)
            else:
                smtp = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
            with smtp:
                if self.port != 465:
                    smtp.ehlo()
                    if smtp.has_extn("starttls"):
                        smtp.starttls()
                        smtp.ehlo()
                if self.username:
                    smtp.login(self.username, self.password)
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            raise LeadDeliveryError(f"Error enviando lead de {lead.user_id}: {e}") from e

        logging.info(f"Lead enviado por correo a {self.recipient} (usuario {lead.user_id})")

# ============================================================================
# COMPOSITOR
# ============================================================================

class LeadComposer:
    """Convierte una sesión completa en LeadRecord y lo entrega al notificador"""

    def __init__(self, notifier: LeadNotifier):
        self.notifier = notifier

    def compose(self, user_id: str, session: Session, preference: Preference,
                schedule_text: Optional[str] = None) -> LeadRecord:
        # Un botón viejo tras un reinicio deja intent en NONE; el lead se envía igual
        if not session.has_contact():
            raise IncompleteLeadError(f"Sesión incompleta para usuario {user_id}")
        return LeadRecord(
            intent=session.intent,
            name=session.name,
            phone=session.phone,
            preference=preference,
            schedule_text=schedule_text,
            user_id=user_id,
        )

    def emit(self, user_id: str, session: Session, preference: Preference,
             schedule_text: Optional[str] = None) -> LeadRecord:
        lead = self.compose(user_id, session, preference, schedule_text)
        logging.info(f"Emitiendo lead {lead.intent.value}/{lead.preference.value} para usuario {user_id}")
        self.notifier.notify(lead)
        return lead
