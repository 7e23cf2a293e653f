"""
Contact form notifications: email to the site recipient and a Telegram ping.
"""

import logging
import smtplib

from django.conf import settings
from django.core.mail import send_mail
from django.utils import timezone

from drcarcold.models import Contact
from drcarcold.services.telegram_bot import notify

logger = logging.getLogger(__name__)


def build_contact_email(contact: Contact) -> str:
    sent_at = timezone.localtime(contact.created_at).strftime("%Y-%m-%d %H:%M")
    return (
        "網站聯絡表單\n\n"
        f"姓名：{contact.name}\n"
        f"電子郵件：{contact.email}\n"
        f"電話：{contact.phone or '未提供'}\n"
        f"公司：{contact.company or '未提供'}\n"
        f"主旨：{contact.subject}\n\n"
        f"訊息內容：\n{contact.message}\n\n"
        "---\n"
        "此郵件由車冷博士網站聯絡表單自動發送\n"
        f"發送時間：{sent_at}"
    )


def send_contact_email(contact: Contact) -> bool:
    """
    Email a contact submission to DRCARCOLD_CONTACT_RECIPIENT.

    Returns False (and logs) when mail is not configured or sending fails;
    the submission is already stored either way.
    """
    recipient = getattr(settings, "DRCARCOLD_CONTACT_RECIPIENT", "")
    if not recipient:
        logger.info(f"No contact recipient configured, stored contact {contact.id} only")
        return False

    try:
        send_mail(
            subject=f"[網站聯絡表單] {contact.subject}",
            message=build_contact_email(contact),
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=[recipient],
            fail_silently=False,
        )
    except (smtplib.SMTPException, OSError) as e:
        logger.error(f"Failed to send contact email for {contact.id}: {e}")
        return False
    return True


def notify_new_contact(contact: Contact) -> None:
    send_contact_email(contact)
    notify(
        "contact",
        f"📩 新的聯絡表單\n{contact.name} <{contact.email}>\n主旨：{contact.subject}",
    )
