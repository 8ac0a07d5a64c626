# salesdesk/config.py

"""
Central configuration for SalesDesk.
-- Pipeline rules, audit checklist and environment settings --
"""
import os

from dotenv import load_dotenv

load_dotenv()

# --- Client Pipeline ---
# Ordered for reporting only. Any status may move to any other status.
PIPELINE_ORDER = (
    "NEW",
    "FOLLOW_UP",
    "VISIT",
    "PRESENTASI",
    "PENAWARAN",
    "NEGOSIASI",
    "DEAL",
    "LOST",
    "MAINTENANCE",
)

STAGNANT_AFTER_DAYS = 7
STAGNATION_EXEMPT_STATUSES = ("DEAL", "LOST")

# Roles that own clients, activities and EOD reports.
FIELD_ROLES = ("MARKETER", "SUPERVISOR")

# Client fields an auditor may patch on an audit-eligible client.
AUDITOR_WRITABLE_FIELDS = ("dpp", "dp_paid", "ppn_type")

CLIENT_TEXT_DEFAULTS = {
    "industry": "-",
    "pic_name": "-",
    "phone": "",
    "email": "",
    "address": "",
    "service_type": "",
}

# --- Audit Handoff ---
CHECKLIST_ITEMS = {
    "DOCUMENT_COMPLETENESS": "Document completeness",
    "PAYMENT_VERIFICATION": "Down payment / payment verification",
    "BOOKKEEPING_ENTRY": "Entered into bookkeeping",
    "ASSIGNMENT_LETTER": "Assignment letter issued",
    "WORK_IN_PROGRESS": "Work started",
    "RESULT_REVIEW": "Work result reviewed",
    "DELIVERED": "Completed / delivered",
}

AUDITOR_ROSTER = tuple(
    name.strip()
    for name in os.getenv("AUDITOR_ROSTER", "Weni,Latifah,Nando").split(",")
    if name.strip()
)

# --- Uploads ---
UPLOAD_DIR = os.getenv("UPLOAD_DIR", "./uploads")
UPLOAD_URL_PREFIX = "/uploads"
UPLOAD_MAX_BYTES = 5 * 1024 * 1024
UPLOAD_CONTENT_TYPES = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
}

# --- Environment ---
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./salesdesk.db")
# Seconds a SQLite writer waits for the lock held by another transaction.
SQLITE_BUSY_TIMEOUT = float(os.getenv("SQLITE_BUSY_TIMEOUT", "30"))
AUTO_CREATE_TABLES = os.getenv("AUTO_CREATE_TABLES", "1") == "1"
APP_TIMEZONE = os.getenv("APP_TIMEZONE", "Asia/Jakarta")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

SESSION_SECRET = os.getenv("SESSION_SECRET", "change-me")
SESSION_COOKIE = os.getenv("SESSION_COOKIE", "salesdesk_session")
SESSION_MAX_AGE = int(os.getenv("SESSION_MAX_AGE", str(60 * 60 * 12)))

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")
    if origin.strip()
]

# --- Notifications ---
NOTIFY_TIMEOUT_SECONDS = float(os.getenv("NOTIFY_TIMEOUT_SECONDS", "10"))
FONNTE_URL = os.getenv("FONNTE_URL", "https://api.fonnte.com/send")
FONNTE_COUNTRY_CODE = os.getenv("FONNTE_COUNTRY_CODE", "62")
SMTP_PORT_DEFAULT = 465
