"""Member Repository — lookup, creation and patching of CRM members."""

from core.base_repository import BaseRepository


class MemberRepository(BaseRepository):

    # Columns the launch import is allowed to write (id/timestamps are generated)
    _INSERTABLE = (
        'email', 'vorname', 'nachname', 'telefon', 'whatsapp_nummer', 'status',
        'produkte', 'learningsuite_user_id', 'onboarding_completed',
        'onboarding_date', 'imported_with_progress', 'aktueller_monatsumsatz',
        'ziel_monatsumsatz', 'was_nervt_am_meisten', 'groesstes_problem',
        'groesstes_ziel_warum', 'wie_aufmerksam', 'kpi_tracking_enabled',
    )
    _EDITABLE = {
        'telefon', 'whatsapp_nummer', 'status', 'onboarding_completed',
        'onboarding_date', 'kpi_tracking_enabled', 'aktueller_monatsumsatz',
        'ziel_monatsumsatz', 'was_nervt_am_meisten', 'groesstes_problem',
        'groesstes_ziel_warum', 'wie_aufmerksam',
    }

    def find_by_email(self, email):
        if not email:
            return None
        return self.query_one(
            'SELECT * FROM members WHERE LOWER(email) = %s LIMIT 1',
            (email.strip().lower(),)
        )

    def get_existing_emails(self):
        """Lowercased emails of every member, for bulk dedup previews."""
        rows = self.query_all('SELECT LOWER(email) AS email FROM members')
        return {r['email'] for r in rows if r.get('email')}

    def create(self, data):
        fields = {k: data[k] for k in self._INSERTABLE if data.get(k) is not None}
        if not fields.get('email'):
            raise ValueError('Member email is required')
        cols = ', '.join(fields)
        placeholders = ', '.join(['%s'] * len(fields))
        return self.execute(
            f'''INSERT INTO members ({cols})
                VALUES ({placeholders})
                RETURNING id, email, vorname, nachname''',
            tuple(fields.values()),
            returning=True
        )

    def update(self, member_id, data):
        fields = {k: v for k, v in data.items() if k in self._EDITABLE}
        if not fields:
            return 0
        sets = ', '.join(f'{k} = %s' for k in fields)
        vals = list(fields.values()) + [member_id]
        return self.execute(
            f'UPDATE members SET {sets}, updated_at = NOW() WHERE id = %s',
            tuple(vals)
        )
