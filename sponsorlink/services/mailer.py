"""
Outbound email — verification links over SMTP.

Delivery failure never fails the signup; it is logged and reported back as
email_sent=False so the user can sign up again to get a fresh link.
"""
import logging
import smtplib
from email.message import EmailMessage

from sponsorlink.config import BASE_URL, EMAIL_FROM, SMTP_HOST, SMTP_PASSWORD, SMTP_PORT, SMTP_USER
from sponsorlink.services.circuit_breaker import get_breaker

logger = logging.getLogger('services.mailer')


def verification_link(token):
    return f'{BASE_URL}/api/auth/verify/{token}'


def _build_message(email, token):
    msg = EmailMessage()
    msg['Subject'] = 'Verify your email address'
    msg['From'] = EMAIL_FROM
    msg['To'] = email
    msg.set_content(
        'Welcome!\n\n'
        'Confirm your email address to start posting and connecting:\n\n'
        f'{verification_link(token)}\n\n'
        'This link expires in 24 hours. If you did not sign up, ignore this email.\n'
    )
    return msg


def _deliver(msg):
    with smtplib.SMTP(SMTP_HOST, SMTP_PORT, timeout=10) as smtp:
        smtp.starttls()
        if SMTP_USER:
            smtp.login(SMTP_USER, SMTP_PASSWORD or '')
        smtp.send_message(msg)


def send_verification_email(email, token):
    """Send the verification link. Returns True when handed to the SMTP server."""
    if not SMTP_HOST:
        logger.info("SMTP not configured — verification link for %s: %s", email, verification_link(token))
        return False

    try:
        get_breaker('smtp').call(_deliver, _build_message(email, token))
        logger.info("Verification email sent to %s", email)
        return True
    except Exception:
        logger.error("Failed to send verification email to %s", email, exc_info=True)
        return False
