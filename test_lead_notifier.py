import smtplib
from datetime import datetime, timezone
from unittest import mock

import pytest

from conftest import FakeNotifier
from lead_notifier import (
    EmailLeadNotifier,
    IncompleteLeadError,
    LeadComposer,
    LeadDeliveryError,
    LeadRecord,
    Preference,
    format_lead_email,
)
from state_management import Intent, Session


def make_lead(**overrides):
    data = dict(
        intent=Intent.APARTAR,
        name="Ana Lopez",
        phone="+529991234567",
        preference=Preference.SCHEDULE,
        schedule_text="sábado 18:30",
        user_id="psid-1",
        timestamp=datetime(2026, 10, 18, 17, 0, tzinfo=timezone.utc),
    )
    data.update(overrides)
    return LeadRecord(**data)


def make_notifier(port=587):
    return EmailLeadNotifier(
        host="smtp.example.com", port=port, username="bot", password="secret",
        sender="bot@example.com", recipient="moises@example.com",
    )


def test_format_lead_email():
    subject, html = format_lead_email(make_lead())
    assert subject == "Nuevo lead Ucú (apartar) - Ana Lopez"
    assert "<b>WhatsApp:</b> +529991234567" in html
    assert "<b>Preferencia:</b> agendar" in html
    assert "<b>Horario:</b> sábado 18:30" in html
    assert "<b>PSID:</b> psid-1" in html
    assert "2026-10-18 17:00:00" in html


def test_format_lead_email_without_schedule():
    _, html = format_lead_email(make_lead(preference=Preference.NOW, schedule_text=None))
    assert "Horario" not in html
    assert "<b>Preferencia:</b> ahora" in html


def test_format_lead_email_escapes_html():
    _, html = format_lead_email(make_lead(name="Ana <b>Lopez</b>"))
    assert "Ana &lt;b&gt;Lopez&lt;/b&gt;" in html


def test_compose_builds_record_from_session():
    session = Session(intent=Intent.CONTADO, name="Ana Lopez", phone="+529991234567")
    composer = LeadComposer(FakeNotifier())

    lead = composer.compose("psid-1", session, Preference.NOW)
    assert lead.intent == Intent.CONTADO
    assert lead.name == "Ana Lopez"
    assert lead.phone == "+529991234567"
    assert lead.preference == Preference.NOW
    assert lead.schedule_text is None
    assert lead.timestamp.tzinfo is not None


def test_compose_refuses_incomplete_session():
    composer = LeadComposer(FakeNotifier())
    with pytest.raises(IncompleteLeadError):
        composer.compose("psid-1", Session(intent=Intent.CONTADO, name="Ana Lopez"), Preference.NOW)
    with pytest.raises(IncompleteLeadError):
        composer.compose("psid-1", Session(intent=Intent.CONTADO, phone="+529991234567"), Preference.NOW)


def test_compose_accepts_session_without_intent():
    lead = LeadComposer(FakeNotifier()).compose(
        "psid-1", Session(name="Ana Lopez", phone="+529991234567"), Preference.NOW)
    assert lead.intent == Intent.NONE
    assert format_lead_email(lead)[0] == "Nuevo lead Ucú (none) - Ana Lopez"


def test_emit_forwards_to_notifier():
    notifier = FakeNotifier()
    session = Session(intent=Intent.PROMO6, name="Ana Lopez", phone="+529991234567")
    lead = LeadComposer(notifier).emit("psid-1", session, Preference.SCHEDULE, "lunes 09:00")
    assert notifier.leads == [lead]
    assert lead.schedule_text == "lunes 09:00"


def test_build_message_headers():
    message = make_notifier().build_message(make_lead())
    assert message["Subject"] == "Nuevo lead Ucú (apartar) - Ana Lopez"
    assert message["From"] == "bot@example.com"
    assert message["To"] == "moises@example.com"


@mock.patch("lead_notifier.smtplib.SMTP")
def test_notify_uses_starttls(smtp_cls):
    # El "with" regresa el mismo cliente
    smtp = smtp_cls.return_value
    smtp.__enter__.return_value = smtp
    smtp.has_extn.return_value = True

    make_notifier().notify(make_lead())

    smtp_cls.assert_called_once_with("smtp.example.com", 587, timeout=15)
    smtp.starttls.assert_called_once()
    smtp.login.assert_called_once_with("bot", "secret")
    smtp.send_message.assert_called_once()


@mock.patch("lead_notifier.smtplib.SMTP_SSL")
def test_notify_port_465_uses_ssl(smtp_ssl_cls):
    smtp_ssl_cls.return_value.__enter__.return_value = smtp_ssl_cls.return_value

    make_notifier(port=465).notify(make_lead())

    smtp_ssl_cls.assert_called_once_with("smtp.example.com", 465, timeout=15)
    smtp_ssl_cls.return_value.starttls.assert_not_called()
    smtp_ssl_cls.return_value.send_message.assert_called_once()


@mock.patch("lead_notifier.smtplib.SMTP")
def test_notify_wraps_smtp_errors(smtp_cls):
    smtp_cls.side_effect = smtplib.SMTPConnectError(421, "no disponible")
    with pytest.raises(LeadDeliveryError):
        make_notifier().notify(make_lead())


@mock.patch("lead_notifier.smtplib.SMTP")
def test_notify_wraps_connection_errors(smtp_cls):
    smtp_cls.side_effect = ConnectionRefusedError()
    with pytest.raises(LeadDeliveryError):
        make_notifier().notify(make_lead())
