"""Configuration module for the Coursework Manager API.

This module provides centralized configuration management, including directory
paths, database and upload settings, authentication, SMTP, and application
defaults. All configuration values can be overridden via environment variables.
"""

import os
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# --- Directory Configuration ---

# Root directory of the project
ROOT_DIR = Path(__file__).parent.parent.resolve()

# Data directory (database file and uploads live here by default)
DATA_DIR = Path(os.getenv("DATA_DIR", str(ROOT_DIR / "data")))

# Flat uploads directory; stored filenames are timestamp-prefixed
UPLOAD_DIR = Path(os.getenv("UPLOAD_DIR", str(DATA_DIR / "uploads")))

# Jinja2 templates (email bodies)
TEMPLATE_DIR_NAME = "templates"
TEMPLATE_DIR = ROOT_DIR / "src" / TEMPLATE_DIR_NAME
EMAIL_TEMPLATE_DIR = TEMPLATE_DIR / "emails"

# --- Database Configuration ---

DATABASE_URL: str = os.getenv("DATABASE_URL", f"sqlite:///{DATA_DIR}/coursework.db")

# --- API Server Configuration ---

API_HOST: str = os.getenv("API_HOST", "0.0.0.0")
API_PORT: int = int(os.getenv("API_PORT", "8000"))

# CORS allowed origins (comma-separated list)
_CORS_ALLOWED_ORIGINS_STR: str = os.getenv(
    "CORS_ALLOWED_ORIGINS",
    "http://localhost:5173,http://127.0.0.1:5173,http://localhost:3000,"
    "http://127.0.0.1:3000",
)
CORS_ALLOWED_ORIGINS: List[str] = [
    origin.strip()
    for origin in _CORS_ALLOWED_ORIGINS_STR.split(",")
    if origin.strip()
]

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

# --- Authentication Configuration ---

JWT_SECRET_KEY: str = os.getenv("JWT_SECRET_KEY", "your-secret-key-change-in-production")
JWT_ALGORITHM: str = "HS256"
JWT_EXPIRE_MINUTES: int = int(os.getenv("JWT_EXPIRE_MINUTES", str(60 * 24 * 7)))  # 7 days

# Admin token for admin self-registration (set via ADMIN_TOKEN environment variable)
ADMIN_TOKEN: Optional[str] = os.getenv("ADMIN_TOKEN")

ROLES: List[str] = ["student", "teacher", "admin"]

# --- Upload Configuration ---

MAX_FILE_SIZE: int = int(os.getenv("MAX_FILE_SIZE", str(10 * 1024 * 1024)))  # 10MB

_ALLOWED_UPLOAD_EXTENSIONS_STR: str = os.getenv(
    "ALLOWED_UPLOAD_EXTENSIONS",
    ".pdf,.doc,.docx,.txt,.md,.jpg,.jpeg,.png,.gif,.zip,.py",
)
ALLOWED_UPLOAD_EXTENSIONS: List[str] = [
    ext.strip().lower()
    for ext in _ALLOWED_UPLOAD_EXTENSIONS_STR.split(",")
    if ext.strip()
]

# --- SMTP Configuration ---

SMTP_HOST: Optional[str] = os.getenv("SMTP_HOST")
SMTP_PORT: int = int(os.getenv("SMTP_PORT", "465"))
SMTP_USER: Optional[str] = os.getenv("SMTP_USER")
SMTP_PASSWORD: Optional[str] = os.getenv("SMTP_PASSWORD")
# True: implicit TLS (SMTP_SSL); False: plain connection upgraded with STARTTLS
SMTP_USE_SSL: bool = os.getenv("SMTP_USE_SSL", "true").lower() == "true"
SMTP_FROM: str = os.getenv("SMTP_FROM", "Coursework Manager <noreply@localhost>")
SMTP_TIMEOUT: int = int(os.getenv("SMTP_TIMEOUT", "10"))

# --- Coursework Defaults ---

# Window (in days) used by the due-soon listing and reminder emails
DUE_SOON_DAYS: int = int(os.getenv("DUE_SOON_DAYS", "3"))

# Minimum Jaccard similarity for another submission to be reported as a match
PLAGIARISM_MATCH_THRESHOLD: float = float(
    os.getenv("PLAGIARISM_MATCH_THRESHOLD", "0.2")
)

SUPPORTED_LANGUAGES: List[str] = ["en", "so", "es", "fr"]
SUPPORTED_THEMES: List[str] = ["light", "dark", "system"]

DEFAULT_NOTIFICATION_SETTINGS = {
    "email_notifications": True,
    "assignment_reminders": True,
    "grade_notifications": True,
    "system_updates": False,
}

DEFAULT_PREFERENCES = {
    "language": "en",
    "theme": "system",
}
