# salesdesk/notify_client.py
import logging
import os
import smtplib
from email.message import EmailMessage

import requests

from salesdesk import config

logger = logging.getLogger(__name__)

# Every sender returns {"sent": bool, "target": ...} or {"sent": False, "reason": ...}.
# Nothing here raises: delivery is best effort.


def _contact(prefix: str, assignee: str) -> str:
    return os.getenv(f"{prefix}_{assignee.upper()}", "")


def format_rupiah(amount) -> str:
    return "Rp " + f"{float(amount or 0):,.0f}".replace(",", ".")


def send_whatsapp(assignee: str, message: str) -> dict:
    token = os.getenv("FONNTE_TOKEN", "")
    target = _contact("WA", assignee)
    if not token:
        return {"sent": False, "reason": "FONNTE_TOKEN not configured"}
    if not target:
        return {"sent": False, "reason": f"No WhatsApp number for {assignee}"}

    try:
        response = requests.post(
            config.FONNTE_URL,
            headers={"Authorization": token},
            data={"target": target, "message": message, "countryCode": config.FONNTE_COUNTRY_CODE},
            timeout=config.NOTIFY_TIMEOUT_SECONDS,
        )
    except requests.exceptions.RequestException as e:
        logger.warning("WhatsApp notification to %s failed: %s", assignee, e)
        return {"sent": False, "target": target, "reason": str(e)}

    if response.status_code != 200:
        logger.warning("WhatsApp notification to %s rejected: HTTP %s", assignee, response.status_code)
        return {"sent": False, "target": target, "reason": f"HTTP {response.status_code}"}
    logger.info("WhatsApp notification sent to %s", assignee)
    return {"sent": True, "target": target}


def send_email(assignee: str, subject: str, html: str) -> dict:
    host = os.getenv("SMTP_HOST", "")
    user = os.getenv("SMTP_USER", "")
    password = os.getenv("SMTP_PASS", "")
    target = _contact("EMAIL", assignee)
    if not host:
        return {"sent": False, "reason": "SMTP not configured"}
    if not target:
        return {"sent": False, "reason": f"No email for {assignee}"}
    if not user or not password:
        return {"sent": False, "reason": "SMTP credentials missing"}

    message = EmailMessage()
    message["Subject"] = subject
    message["From"] = f"{os.getenv('SMTP_FROM_NAME', 'SalesDesk')} <{user}>"
    message["To"] = target
    message.set_content("This message requires an HTML capable mail client.")
    message.add_alternative(html, subtype="html")

    port = int(os.getenv("SMTP_PORT", str(config.SMTP_PORT_DEFAULT)))
    try:
        with smtplib.SMTP_SSL(host, port, timeout=config.NOTIFY_TIMEOUT_SECONDS) as smtp:
            smtp.login(user, password)
            smtp.send_message(message)
    except (smtplib.SMTPException, OSError) as e:
        logger.warning("Email notification to %s failed: %s", assignee, e)
        return {"sent": False, "target": target, "reason": str(e)}

    logger.info("Email notification sent to %s", assignee)
    return {"sent": True, "target": target}


def assignment_message(client, assignee: str, marketer_name: str) -> str:
    return (
        "*SalesDesk - New Client Assignment*\n\n"
        f"Hi *{assignee}*,\n\n"
        "You have been assigned to the following client:\n\n"
        f"*{client.name}*\n"
        f"Industry: {client.industry}\n"
        f"PIC: {client.pic_name}\n"
        f"Status: {client.status.value}\n"
        f"DPP: {format_rupiah(client.dpp)}\n"
        f"DP paid: {format_rupiah(client.dp_paid)}\n"
        f"Marketing: {marketer_name}\n\n"
        "Open the SalesDesk dashboard for details and the audit checklist."
    )


def assignment_email(client, assignee: str, marketer_name: str) -> str:
    rows = [
        ("Industry", client.industry),
        ("PIC", client.pic_name),
        ("Status", client.status.value),
        ("DPP", format_rupiah(client.dpp)),
        ("DP paid", format_rupiah(client.dp_paid)),
        ("Marketing", marketer_name),
    ]
    table = "".join(f"<tr><td>{label}</td><td><strong>{value}</strong></td></tr>" for label, value in rows)
    return (
        "<html><body>"
        f"<p>Hi <strong>{assignee}</strong>,</p>"
        "<p>You have been assigned to the following client:</p>"
        f"<h2>{client.name}</h2><table>{table}</table>"
        "<p>Open the SalesDesk dashboard for details and the audit checklist.</p>"
        "</body></html>"
    )


def notify_assignment(client, assignee: str, marketer_name: str) -> dict:
    """Sends both channels independently; one failing never stops the other."""
    return {
        "wa": send_whatsapp(assignee, assignment_message(client, assignee, marketer_name)),
        "email": send_email(
            assignee,
            f"SalesDesk - New Client Assignment: {client.name}",
            assignment_email(client, assignee, marketer_name),
        ),
    }
