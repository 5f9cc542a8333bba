"""
Simple configuration management.

The ``Settings`` dataclass reads configuration directly from
environment variables.  Defaults are provided for all fields so the
API starts in a development setup without any environment at all.
In production you should at least override ``SECRET_KEY``, the SMTP
credentials and ``ENVIRONMENT``.
"""

import os
from dataclasses import dataclass


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes"}


@dataclass
class Settings:
    """Application settings loaded from environment variables."""

    project_name: str = os.getenv("PROJECT_NAME", "Mixer Rental API")
    api_version: str = os.getenv("API_VERSION", "1.0.0")
    environment: str = os.getenv("ENVIRONMENT", "development")
    debug: bool = _flag("DEBUG")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_file: str = os.getenv("LOG_FILE", "")
    secret_key: str = os.getenv("SECRET_KEY", "change_me")
    # Admin sessions last one working day (8h).
    access_token_expire_minutes: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 8)))
    algorithm: str = os.getenv("ALGORITHM", "HS256")

    # Path for the SQLite database.  Relative paths are resolved
    # against the package root by the ``db`` module.
    database_url: str = os.getenv("DATABASE_URL", "mixer_rental.db")

    # Directory holding uploaded company images (logo, signature).
    # ``logo_url`` / ``signature_url`` are looked up relative to it.
    upload_dir: str = os.getenv("UPLOAD_DIR", "uploads")

    # Seed administrator.  Created on startup only when a password is
    # configured and the username is not taken yet.
    admin_username: str = os.getenv("ADMIN_USERNAME", "admin")
    admin_email: str = os.getenv("ADMIN_EMAIL", "admin@example.com")
    admin_password: str = os.getenv("ADMIN_PASSWORD", "")

    # Outgoing mail.  ``SMTP_SECURE`` selects implicit TLS (port 465);
    # otherwise STARTTLS is attempted when the server offers it.
    email_enabled: bool = _flag("EMAIL_ENABLED", "true")
    smtp_host: str = os.getenv("SMTP_HOST", "localhost")
    smtp_port: int = int(os.getenv("SMTP_PORT", "587"))
    smtp_secure: bool = _flag("SMTP_SECURE")
    smtp_user: str = os.getenv("SMTP_USER", "")
    smtp_pass: str = os.getenv("SMTP_PASS", "")
    company_email: str = os.getenv("COMPANY_EMAIL", "noreply@example.com")
    # Comma‑separated list of recipients for new inquiry notifications.
    admin_emails: str = os.getenv("ADMIN_EMAILS", "")

    # Public inquiry form throttling (per client IP).
    query_rate_limit: int = int(os.getenv("QUERY_RATE_LIMIT", "5"))
    query_rate_window_seconds: int = int(os.getenv("QUERY_RATE_WINDOW_SECONDS", str(15 * 60)))

    @property
    def expose_errors(self) -> bool:
        """Whether raw exception messages may be returned to clients."""
        return self.debug or self.environment == "development"

    @property
    def admin_email_list(self) -> list[str]:
        return [e.strip() for e in self.admin_emails.split(",") if e.strip()]


# Instantiate settings once so other modules can import it without
# repeatedly reading environment variables.  Environment variables
# should be set before importing this module.
settings = Settings()
