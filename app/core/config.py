from __future__ import annotations

import os


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///ledger.db",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    LEDGER_ADMIN_ACCOUNT = os.getenv("LEDGER_ADMIN_ACCOUNT", "")
    LEDGER_ENFORCE_CAPACITY = os.getenv("LEDGER_ENFORCE_CAPACITY", "1").strip().lower() not in {"0", "false", "no"}
