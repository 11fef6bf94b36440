"""Form Token Repository — single-use links for onboarding and KPI setup forms."""

import secrets

from core.base_repository import BaseRepository

TOKEN_TYPES = ('onboarding', 'kpi-setup', 'weekly')


class FormTokenRepository(BaseRepository):

    def create(self, token_type, member_id, expires_at):
        """Mint and store a token for one member. Returns the token string."""
        if token_type not in TOKEN_TYPES:
            raise ValueError(f'Unknown form token type: {token_type}')
        token = secrets.token_hex(32)
        self.execute(
            '''INSERT INTO form_tokens (token, member_id, type, expires_at)
               VALUES (%s, %s, %s, %s)''',
            (token, member_id, token_type, expires_at)
        )
        return token

