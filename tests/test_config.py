"""Tests for settings and logging setup."""

import logging

from payroll_admin.config import DEFAULT_TEMPLATE_PATH, Settings
from payroll_admin.logging_config import setup_logging


class TestSettings:
    def test_defaults(self, monkeypatch):
        for name in ("STORAGE_BUCKET", "PAYSLIP_TEMPLATE_PATH", "STORAGE_ENDPOINT_URL"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings.from_env()

        assert settings.storage_bucket == "Payroll"
        assert settings.payslip_template_path == str(DEFAULT_TEMPLATE_PATH)
        assert settings.storage_endpoint_url is None

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("PORT", "9001")
        monkeypatch.setenv("DEBUG", "true")
        monkeypatch.setenv("LOG_LEVEL", "debug")
        monkeypatch.setenv("PAGE_CONTENT_TIMEOUT_MS", "2500")
        monkeypatch.setenv("STORAGE_PUBLIC_BASE_URL", "https://files.example.com")

        settings = Settings.from_env()

        assert settings.PORT == 9001
        assert settings.DEBUG is True
        assert settings.log_level == "DEBUG"
        assert settings.page_content_timeout_ms == 2500
        assert settings.storage_public_base_url == "https://files.example.com"

    def test_email_settings(self, monkeypatch):
        monkeypatch.setenv("EMAIL_PROVIDER", "SMTP")
        monkeypatch.setenv("SMTP_HOST", "mail.example.com")
        monkeypatch.setenv("SMTP_PORT", "2465")
        monkeypatch.setenv("EMAIL_REPLY_TO", "")

        settings = Settings.from_env()

        assert settings.email_provider == "smtp"
        assert (settings.smtp_host, settings.smtp_port) == ("mail.example.com", 2465)
        assert settings.email_reply_to is None


class TestSetupLogging:
    def test_single_handler(self, monkeypatch):
        root = logging.getLogger()
        monkeypatch.setattr(root, "handlers", [])
        monkeypatch.setattr(root, "level", root.level)

        setup_logging("DEBUG")
        setup_logging("DEBUG")

        assert len(root.handlers) == 1
        assert root.level == logging.DEBUG
