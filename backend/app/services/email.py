"""
Email delivery through Resend, SendGrid or SMTP.

Provider credentials default to the application settings and can be
overridden per call, which the admin test-email endpoint uses to try a
configuration before saving it.
"""
import logging
import smtplib
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

import httpx

from app.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()

RESEND_URL = "https://api.resend.com/emails"
SENDGRID_URL = "https://api.sendgrid.com/v3/mail/send"
PROVIDERS = ("resend", "sendgrid", "smtp")


class EmailError(Exception):
    """Raised when a provider rejects or cannot deliver a message."""


def _send_resend(to: str, subject: str, html: str, sender: str, credentials: dict) -> None:
    api_key = credentials.get("resend_api_key") or settings.resend_api_key
    if not api_key:
        raise EmailError("No se ha configurado la API Key de Resend")

    response = httpx.post(
        RESEND_URL,
        headers={"Authorization": f"Bearer {api_key}"},
        json={"from": sender, "to": [to], "subject": subject, "html": html},
        timeout=15.0,
    )
    if response.status_code >= 400:
        raise EmailError(f"Resend error: {response.text}")


def _send_sendgrid(
    to: str, subject: str, html: str, sender_email: str, sender_name: str, credentials: dict
) -> None:
    api_key = credentials.get("sendgrid_api_key") or settings.sendgrid_api_key
    if not api_key:
        raise EmailError("No se ha configurado la API Key de SendGrid")

    response = httpx.post(
        SENDGRID_URL,
        headers={"Authorization": f"Bearer {api_key}"},
        json={
            "personalizations": [{"to": [{"email": to}]}],
            "from": {"email": sender_email, "name": sender_name},
            "subject": subject,
            "content": [{"type": "text/html", "value": html}],
        },
        timeout=15.0,
    )
    if response.status_code >= 400:
        raise EmailError(f"SendGrid error: {response.text}")


def _send_smtp(to: str, subject: str, html: str, sender: str, credentials: dict) -> None:
    host = credentials.get("smtp_host") or settings.smtp_host
    port = int(credentials.get("smtp_port") or settings.smtp_port)
    user = credentials.get("smtp_user") or settings.smtp_user
    password = credentials.get("smtp_password") or settings.smtp_password
    secure = credentials.get("smtp_secure", settings.smtp_secure)

    if not host or not user or not password:
        raise EmailError("Configuración SMTP incompleta")

    message = MIMEMultipart("alternative")
    message["Subject"] = subject
    message["From"] = sender
    message["To"] = to
    message.attach(MIMEText(html, "html", "utf-8"))

    try:
        if secure and port == 465:
            client = smtplib.SMTP_SSL(host, port, timeout=15)
        else:
            client = smtplib.SMTP(host, port, timeout=15)
            if secure:
                client.starttls()
        with client:
            client.login(user, password)
            client.sendmail(sender, [to], message.as_string())
    except (smtplib.SMTPException, OSError) as e:
        raise EmailError(
            f"Error SMTP: {e}. Verifica las credenciales y configuración del servidor."
        ) from e


def send_email(
    to: str,
    subject: str,
    html: str,
    provider: Optional[str] = None,
    sender_email: Optional[str] = None,
    sender_name: Optional[str] = None,
    credentials: Optional[dict] = None,
) -> None:
    """Send one HTML email. Raises EmailError on failure."""
    provider = provider or settings.email_provider
    sender_email = sender_email or settings.from_email
    sender_name = sender_name or settings.from_name
    credentials = credentials or {}
    sender = f"{sender_name} <{sender_email}>"

    if provider == "resend":
        _send_resend(to, subject, html, sender, credentials)
    elif provider == "sendgrid":
        _send_sendgrid(to, subject, html, sender_email, sender_name, credentials)
    elif provider == "smtp":
        _send_smtp(to, subject, html, sender, credentials)
    else:
        raise EmailError(f"Proveedor no soportado: {provider}")

    logger.info(f"Email '{subject}' sent to {to} via {provider}")


def try_send_email(to: str, subject: str, html: str) -> bool:
    """Send with the configured provider, logging failures instead of raising."""
    try:
        send_email(to, subject, html)
        return True
    except EmailError as e:
        logger.error(f"Failed to send email to {to}: {e}")
        return False


def render_test_email(sender_name: str, sender_email: str, provider: str) -> str:
    sent_at = datetime.now().strftime("%d/%m/%Y %H:%M")
    return f"""
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <h1 style="color: #F97316;">✉️ Trueke</h1>
  <p><strong>✅ ¡Correo de prueba enviado exitosamente!</strong></p>
  <p>Este es un correo de prueba para verificar que la configuración de correo está funcionando correctamente.</p>
  <ul>
    <li>Remitente: {sender_name}</li>
    <li>Correo: {sender_email}</li>
    <li>Proveedor: {provider.upper()}</li>
    <li>Fecha: {sent_at}</li>
  </ul>
  <p style="color: #6b7280; font-size: 12px;">Este es un correo automático de prueba de Trueke.</p>
</div>
"""


def send_test_email(
    to: str,
    provider: str,
    sender_email: str,
    sender_name: str,
    credentials: Optional[dict] = None,
) -> None:
    if not to or not sender_email:
        raise EmailError("Missing required fields: to, senderEmail")

    logger.info(f"Sending test email to {to} via {provider}")
    send_email(
        to,
        "🧪 Correo de Prueba - Trueke",
        render_test_email(sender_name, sender_email, provider),
        provider=provider,
        sender_email=sender_email,
        sender_name=sender_name,
        credentials=credentials,
    )
