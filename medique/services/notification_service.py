"""
Notification Service.

Best-effort email delivery for booking, cancellation and payment events.
Delivery failures are logged and never reach the caller, and nothing is
retried.
"""

import logging
import smtplib
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from html import escape
from typing import Optional

from fastapi import BackgroundTasks

from ..core.config import settings

logger = logging.getLogger(__name__)


@dataclass
class EmailNotification:
    to: str
    subject: str
    text: str
    html: Optional[str] = None


def send_email(to: str, subject: str, text: str, html: Optional[str] = None) -> bool:
    """Send one email. Returns True on success, False on any failure."""
    if not settings.SMTP_HOST or not settings.SMTP_USER:
        logger.warning(f"Email notifications not configured, skipping '{subject}' to {to}")
        return False

    msg = MIMEMultipart("alternative")
    msg["From"] = f'"{settings.MAIL_FROM_NAME}" <{settings.SMTP_USER}>'
    msg["To"] = to
    msg["Subject"] = subject
    msg.attach(MIMEText(text, "plain"))
    if html:
        msg.attach(MIMEText(html, "html"))

    try:
        if settings.SMTP_PORT == 465:
            server = smtplib.SMTP_SSL(settings.SMTP_HOST, settings.SMTP_PORT, timeout=settings.SMTP_TIMEOUT)
        else:
            server = smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=settings.SMTP_TIMEOUT)

        with server:
            if settings.SMTP_PORT != 465:
                server.starttls()
            server.login(settings.SMTP_USER, settings.SMTP_PASSWORD or "")
            server.send_message(msg)

        logger.info(f"Email '{subject}' sent to {to}")
        return True

    except Exception as e:
        logger.error(f"Email sending failed for {to}: {e}")
        return False


class NotificationDispatcher:
    """Schedules emails to run after the response has been sent."""

    def __init__(self, background_tasks: BackgroundTasks):
        self.background_tasks = background_tasks

    def dispatch(self, notification: EmailNotification) -> None:
        self.background_tasks.add_task(
            send_email,
            notification.to,
            notification.subject,
            notification.text,
            notification.html,
        )


# Templates

def booking_confirmed(user, doctor, appointment) -> EmailNotification:
    return EmailNotification(
        to=user.email,
        subject="Appointment Booked",
        text=(
            f"Hello {user.name}, your appointment with {doctor.name} is booked "
            f"on {appointment.slot_date} at {appointment.slot_time}."
        ),
        html=(
            "<h2>Appointment Booked</h2>"
            f"<p>Hello <b>{escape(user.name)}</b>,</p>"
            f"<p>Your appointment with <b>{escape(doctor.name)}</b> ({escape(doctor.speciality)}) is confirmed.</p>"
            f"<p><b>Date:</b> {escape(appointment.slot_date)}<br><b>Time:</b> {escape(appointment.slot_time)}</p>"
            f"<p>Thank you for choosing <b>{escape(settings.MAIL_FROM_NAME)}</b>.</p>"
        ),
    )


def booking_cancelled(user, doctor, appointment, by_admin: bool = False) -> EmailNotification:
    cancelled_by = " by the admin" if by_admin else ""
    return EmailNotification(
        to=user.email,
        subject="Appointment Cancelled",
        text=(
            f"Hello {user.name}, your appointment with {doctor.name} ({doctor.speciality}) "
            f"on {appointment.slot_date} at {appointment.slot_time} has been cancelled{cancelled_by}."
        ),
        html=(
            "<h2>Appointment Cancelled</h2>"
            f"<p>Hello <b>{escape(user.name)}</b>,</p>"
            f"<p>Your appointment with <b>{escape(doctor.name)}</b> ({escape(doctor.speciality)}) on "
            f"<b>{escape(appointment.slot_date)}</b> at <b>{escape(appointment.slot_time)}</b> has been cancelled{cancelled_by}.</p>"
            "<p>If you have any questions, please contact us.</p>"
        ),
    )


def payment_confirmed(user, doctor, appointment) -> EmailNotification:
    return EmailNotification(
        to=user.email,
        subject="Appointment Confirmed",
        text=(
            f"Hello {user.name}, your payment was successful and your appointment "
            f"with {doctor.name} on {appointment.slot_date} at {appointment.slot_time} is confirmed."
        ),
        html=(
            "<h2>Appointment Confirmed</h2>"
            f"<p>Hello <b>{escape(user.name)}</b>,</p>"
            "<p>Your payment was successful and your appointment has been confirmed.</p>"
            f"<p><b>Doctor:</b> {escape(doctor.name)} ({escape(doctor.speciality)})<br>"
            f"<b>Date:</b> {escape(appointment.slot_date)}<br>"
            f"<b>Time:</b> {escape(appointment.slot_time)}</p>"
        ),
    )
