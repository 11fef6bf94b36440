"""SMTP email delivery shared by member invites and admin notifications."""

import os
import smtplib
import ssl
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Optional
from core.utils.logging_config import get_logger

logger = get_logger('nfcrm.core.email')


def get_smtp_config() -> dict:
    """Get SMTP configuration from the environment."""
    return {
        'host': os.environ.get('SMTP_HOST', ''),
        'port': int(os.environ.get('SMTP_PORT', '587') or 587),
        'use_tls': os.environ.get('SMTP_TLS', 'true').lower() == 'true',
        'username': os.environ.get('SMTP_USERNAME', ''),
        'password': os.environ.get('SMTP_PASSWORD', ''),
        'from_email': os.environ.get('SMTP_FROM_EMAIL', ''),
        'from_name': os.environ.get('SMTP_FROM_NAME', 'NF Mentoring'),
    }


def is_smtp_configured() -> bool:
    """Check if SMTP is properly configured."""
    config = get_smtp_config()
    return bool(config['host'] and config['from_email'])


def send_email(
    to_email: str,
    subject: str,
    html_body: str,
    text_body: Optional[str] = None,
) -> tuple[bool, str]:
    """
    Send an email using configured SMTP settings.

    Returns:
        tuple: (success: bool, error_message: str)
    """
    config = get_smtp_config()

    if not config['host']:
        return False, "SMTP host not configured"

    if not config['from_email']:
        return False, "From email not configured"

    try:
        msg = MIMEMultipart('alternative')
        msg['Subject'] = subject
        msg['From'] = f"{config['from_name']} <{config['from_email']}>" if config['from_name'] else config['from_email']
        msg['To'] = to_email

        if text_body:
            msg.attach(MIMEText(text_body, 'plain'))
        msg.attach(MIMEText(html_body, 'html'))

        with smtplib.SMTP(config['host'], config['port']) as server:
            if config['use_tls']:
                server.starttls(context=ssl.create_default_context())
            if config['username'] and config['password']:
                server.login(config['username'], config['password'])
            server.sendmail(config['from_email'], [to_email], msg.as_string())

        logger.info(f"Email sent to {to_email}: {subject}")
        return True, ""

    except smtplib.SMTPAuthenticationError as e:
        error_msg = f"SMTP authentication failed: {str(e)}"
        logger.error(error_msg)
        return False, error_msg
    except smtplib.SMTPException as e:
        error_msg = f"SMTP error: {str(e)}"
        logger.error(error_msg)
        return False, error_msg
    except OSError as e:
        error_msg = f"Failed to send email: {str(e)}"
        logger.error(error_msg)
        return False, error_msg
