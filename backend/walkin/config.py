# backend/walkin/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/walkin.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///walkin.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Canonical phone = PHONE_COUNTRY_CODE + 10 digits
    PHONE_COUNTRY_CODE = os.environ.get("PHONE_COUNTRY_CODE", "+91")

    # Stored on a ticket until a service is picked
    PENDING_SERVICE_LABEL = os.environ.get("PENDING_SERVICE_LABEL", "Pending selection")

    REMINDER_AFTER_DAYS = int(os.environ.get("REMINDER_AFTER_DAYS", "30"))

    DB_RETRY_ATTEMPTS = int(os.environ.get("DB_RETRY_ATTEMPTS", "3"))

    CORS_ALLOWED_ORIGINS = {
        origin.strip()
        for origin in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173,http://127.0.0.1:5173",
        ).split(",")
        if origin.strip()
    }
