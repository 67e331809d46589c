import smtplib

import pytest

from shiftdesk.config import settings
from shiftdesk.services import mailer


class FakeSMTP:
    sent = []

    def __init__(self, host, port):
        self.host = host
        self.port = port
        self.started_tls = False

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self):
        self.started_tls = True

    def login(self, username, password):
        pass

    def send_message(self, msg):
        FakeSMTP.sent.append(msg)


@pytest.fixture()
def smtp_configured(monkeypatch):
    monkeypatch.setattr(settings, "enable_email", True)
    monkeypatch.setattr(settings, "smtp_host", "smtp.shiftdesk.io")
    monkeypatch.setattr(settings, "mail_from", "noreply@shiftdesk.io")
    FakeSMTP.sent = []


def test_not_configured_returns_false():
    assert mailer.send_email("ivan@shiftdesk.io", "Hi", "<p>Hi</p>") is False


def test_send_email_success(monkeypatch, smtp_configured):
    monkeypatch.setattr(smtplib, "SMTP", FakeSMTP)
    assert mailer.send_email("ivan@shiftdesk.io", "Hello", "<p>Hello</p>") is True
    msg = FakeSMTP.sent[0]
    assert msg["To"] == "ivan@shiftdesk.io"
    assert msg["From"] == "noreply@shiftdesk.io"


def test_send_email_failure_is_swallowed(monkeypatch, smtp_configured):
    class Broken(FakeSMTP):
        def send_message(self, msg):
            raise smtplib.SMTPException("relay refused")

    monkeypatch.setattr(smtplib, "SMTP", Broken)
    assert mailer.send_email("ivan@shiftdesk.io", "Hello", "<p>Hello</p>") is False


def test_shift_assignment_email_content(monkeypatch, smtp_configured):
    monkeypatch.setattr(smtplib, "SMTP", FakeSMTP)
    days = [{"day_name": "Monday", "shift_type_name": "Morning", "start_time": "06:00", "end_time": "14:00"}]
    assert mailer.send_shift_assignment_email("ivan@shiftdesk.io", "2024-W12", "Headquarters", "Lead <Inspector>", days)
    msg = FakeSMTP.sent[0]
    assert msg["Subject"] == "New Shift Assignment"
    html = msg.get_body(preferencelist=("html",)).get_content()
    assert "2024-W12" in html
    assert "Monday" in html
    assert "Lead &lt;Inspector&gt;" in html
