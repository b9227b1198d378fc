"""
config/settings.py
──────────────────
Application configuration loaded from environment variables.
"""
import os
from dataclasses import dataclass


@dataclass
class Settings:
    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Database (SQLite path; ":memory:" for tests)
    DATABASE_URL: str = os.getenv("DATABASE_URL", "wastewater_monitor.db")

    # Monitoring
    # 0 disables the cooldown: every violating update raises a new alert
    ALERT_COOLDOWN_SECONDS: float = float(os.getenv("ALERT_COOLDOWN_SECONDS", "0"))
    OFFLINE_AFTER_SECONDS: float = float(os.getenv("OFFLINE_AFTER_SECONDS", "300"))
    ERROR_QUEUE_SIZE: int = int(os.getenv("ERROR_QUEUE_SIZE", "100"))

    # Simulation
    SIMULATION_SEED: int = int(os.getenv("SIMULATION_SEED", "42"))
    SIMULATION_INTERVAL_S: float = float(os.getenv("SIMULATION_INTERVAL_S", "5"))
    HISTORY_DAYS: int = int(os.getenv("HISTORY_DAYS", "7"))

    # Alerts
    ALERT_RETENTION_DAYS: int = int(os.getenv("ALERT_RETENTION_DAYS", "30"))

    # Email transport (dry-run when credentials are missing)
    SMTP_HOST: str = os.getenv("SMTP_HOST", "smtp.gmail.com")
    SMTP_PORT: int = int(os.getenv("SMTP_PORT", "587"))
    SMTP_USERNAME: str = os.getenv("SMTP_USERNAME", "")
    SMTP_PASSWORD: str = os.getenv("SMTP_PASSWORD", "")
    SMTP_USE_TLS: bool = os.getenv("SMTP_USE_TLS", "true").lower() == "true"
    EMAIL_FROM: str = os.getenv("EMAIL_FROM", "")

    # Push transport (dry-run when no gateway is configured)
    PUSH_GATEWAY_URL: str = os.getenv("PUSH_GATEWAY_URL", "")
    PUSH_SERVER_KEY: str = os.getenv("PUSH_SERVER_KEY", "")
    PUSH_TIMEOUT_S: float = float(os.getenv("PUSH_TIMEOUT_S", "10"))


settings = Settings()
