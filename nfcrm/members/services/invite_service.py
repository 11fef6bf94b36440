"""Member invites — onboarding form and KPI tracking setup emails."""

import os
from core.services.email_service import send_email
from core.utils.logging_config import get_logger

logger = get_logger('nfcrm.members.invites')


class InviteDeliveryError(Exception):
    """An invite could not be handed to the mail server."""

    def __init__(self, message, member_id=None):
        super().__init__(message)
        self.member_id = member_id


def generate_form_url(form_type, token):
    """Public URL of a token-protected member form."""
    base = os.environ.get('APP_URL', 'http://localhost:3000').rstrip('/')
    return f'{base}/form/{form_type}/{token}'


_LAYOUT = '''
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <div style="background: #ffffff; padding: 40px 20px; border: 1px solid #e5e7eb; border-radius: 8px;">
    <p style="font-size: 18px; color: #111827;">Hey {vorname}!</p>
    {paragraphs}
    <div style="text-align: center; margin: 30px 0;">
      <a href="{url}" style="background: #ae1d2b; color: white; padding: 14px 28px; border-radius: 8px; text-decoration: none; font-weight: 600;">{button}</a>
    </div>
    <p style="color: #9ca3af; font-size: 14px; text-align: center;">NF Mentoring</p>
  </div>
</div>
'''


def _render(vorname, paragraphs, url, button):
    body = '\n    '.join(f'<p style="color: #6b7280; line-height: 1.6;">{p}</p>' for p in paragraphs)
    return _LAYOUT.format(vorname=vorname or '', paragraphs=body, url=url, button=button)


class InviteService:
    """Sends the follow-up email for a freshly imported member.

    Both methods raise InviteDeliveryError so the caller decides how a failed
    send is counted.
    """

    def send_onboarding_invite(self, member, token):
        url = generate_form_url('onboarding', token)
        paragraphs = [
            'Willkommen im NF Mentoring!',
            'Bitte fülle kurz dein Onboarding aus, damit wir dich optimal unterstützen können.',
        ]
        self._deliver(
            member,
            subject='Willkommen im NF Mentoring – dein Onboarding',
            html=_render(member.get('vorname'), paragraphs, url, 'Onboarding starten →'),
            text='\n\n'.join(paragraphs + [url]),
        )

    def send_tracking_setup_invite(self, member, token):
        url = generate_form_url('kpi-setup', token)
        paragraphs = [
            'Willkommen im NF Mentoring CRM!',
            'Richte jetzt dein persönliches KPI-Tracking ein. Das dauert nur 5 Minuten '
            'und hilft uns, deine Fortschritte zu verfolgen.',
        ]
        self._deliver(
            member,
            subject='Dein persönliches KPI-Tracking einrichten',
            html=_render(member.get('vorname'), paragraphs, url, 'KPI-Tracking einrichten →'),
            text='\n\n'.join(paragraphs + [url]),
        )

    def _deliver(self, member, subject, html, text):
        ok, error = send_email(member['email'], subject, html, text)
        if not ok:
            raise InviteDeliveryError(error, member_id=member.get('id'))
        logger.info(f"Invite '{subject}' sent to member {member.get('id')}")
