import smtplib
from unittest import mock

import pytest

from utils.errors import DeliveryFailed
from utils.mailer import SmtpMailer


def test_unconfigured_mailer_fails():
    with pytest.raises(DeliveryFailed):
        SmtpMailer().send(["ana@example.edu"], "Subject", "<p>hi</p>")


@mock.patch("utils.mailer.smtplib.SMTP")
def test_send_uses_smtp_with_login(smtp):
    mailer = SmtpMailer(host="smtp.example.edu", user="portal", password="pw", sender="portal@example.edu")

    mailer.send(["ana@example.edu"], "Code", "<b>123456</b>")

    smtp.assert_called_once_with("smtp.example.edu", 587, timeout=10)
    server = smtp.return_value.__enter__.return_value
    server.login.assert_called_once_with("portal", "pw")
    message = server.send_message.call_args[0][0]
    assert message["To"] == "ana@example.edu"
    assert message["Subject"] == "Code"
    assert "123456" in message.get_body(("html",)).get_content()


@mock.patch("utils.mailer.smtplib.SMTP")
def test_smtp_errors_become_delivery_failures(smtp):
    smtp.return_value.__enter__.return_value.send_message.side_effect = smtplib.SMTPException("nope")
    mailer = SmtpMailer(host="smtp.example.edu", sender="portal@example.edu")
    with pytest.raises(DeliveryFailed):
        mailer.send(["ana@example.edu"], "Code", "<b>1</b>")


def test_from_config_reads_smtp_settings():
    mailer = SmtpMailer.from_config({"SMTP_HOST": "h", "SMTP_PORT": 2525, "SMTP_FROM": "f@x"})
    assert (mailer.host, mailer.port, mailer.sender) == ("h", 2525, "f@x")
    assert mailer.configured
