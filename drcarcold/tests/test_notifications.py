"""
Tests for contact form notifications.
"""

from unittest.mock import patch

import pytest
from django.core import mail

from drcarcold.models import Contact
from drcarcold.services.notifications import (
    build_contact_email,
    notify_new_contact,
    send_contact_email,
)


@pytest.fixture
def contact(db):
    return Contact.objects.create(
        name="王小明",
        email="ming@example.com",
        subject="詢問冷媒價格",
        message="請問 R134a 13.6kg 的批發價格？",
    )


def test_email_body_lists_fields(contact):
    body = build_contact_email(contact)

    assert "姓名：王小明" in body
    assert "電話：未提供" in body
    assert "請問 R134a 13.6kg 的批發價格？" in body


def test_sends_to_configured_recipient(contact, settings):
    settings.DRCARCOLD_CONTACT_RECIPIENT = "owner@drcarcold.com"

    assert send_contact_email(contact) is True

    assert len(mail.outbox) == 1
    assert mail.outbox[0].to == ["owner@drcarcold.com"]
    assert mail.outbox[0].subject == "[網站聯絡表單] 詢問冷媒價格"


def test_no_recipient_stores_only(contact, settings):
    settings.DRCARCOLD_CONTACT_RECIPIENT = ""

    assert send_contact_email(contact) is False
    assert mail.outbox == []


def test_smtp_failure_is_not_raised(contact, settings):
    settings.DRCARCOLD_CONTACT_RECIPIENT = "owner@drcarcold.com"

    with patch("drcarcold.services.notifications.send_mail", side_effect=OSError("refused")):
        assert send_contact_email(contact) is False


def test_notify_new_contact_pings_telegram(contact, settings):
    settings.DRCARCOLD_CONTACT_RECIPIENT = ""

    with patch("drcarcold.services.notifications.notify") as mock_notify:
        notify_new_contact(contact)

    event, text = mock_notify.call_args.args
    assert event == "contact"
    assert "王小明 <ming@example.com>" in text
