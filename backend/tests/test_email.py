# backend/tests/test_email.py
import json
import logging
import urllib.error

from app.core import email


class _FakeResponse:
    def read(self):
        return b"{}"

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


def test_log_provider_writes_mail_to_log(monkeypatch, caplog):
    monkeypatch.setattr(email.settings, "email_provider", "log")

    with caplog.at_level(logging.INFO, logger="codingchallenge"):
        email.send_email(to_email="a@x.com", subject="Hi", text_body="link: /invite/abc")

    assert "to=a@x.com" in caplog.text
    assert "/invite/abc" in caplog.text


def test_resend_provider_posts_json(monkeypatch):
    seen = []

    def _fake_urlopen(req, timeout=None):
        seen.append(req)
        return _FakeResponse()

    monkeypatch.setattr(email.settings, "email_provider", "resend")
    monkeypatch.setattr(email.settings, "resend_api_key", "re_test")
    monkeypatch.setattr(email.urllib.request, "urlopen", _fake_urlopen)

    email.send_email(to_email=" a@x.com ", subject="Hi", text_body="plain", html_body="<p>html</p>")

    assert seen[0].full_url == email.RESEND_API_URL
    assert seen[0].get_header("Authorization") == "Bearer re_test"
    body = json.loads(seen[0].data)
    assert body["to"] == ["a@x.com"]
    assert body["html"] == "<p>html</p>"


def test_resend_failure_does_not_raise(monkeypatch):
    def _fail(req, timeout=None):
        raise urllib.error.URLError("down")

    monkeypatch.setattr(email.settings, "email_provider", "resend")
    monkeypatch.setattr(email.settings, "resend_api_key", "re_test")
    monkeypatch.setattr(email.urllib.request, "urlopen", _fail)

    email.send_email(to_email="a@x.com", subject="Hi", text_body="plain")


def test_blank_recipient_sends_nothing(monkeypatch, caplog):
    monkeypatch.setattr(email.settings, "email_provider", "log")

    with caplog.at_level(logging.INFO, logger="codingchallenge"):
        email.send_email(to_email="  ", subject="Hi", text_body="plain")

    assert "subject=Hi" not in caplog.text
