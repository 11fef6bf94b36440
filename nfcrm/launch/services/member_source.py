"""LearningSuite roster fetcher — pre-fetches and normalizes the members to import."""

from datetime import datetime, timezone

from core.utils.logging_config import get_logger
from ..client.learningsuite_client import LearningSuiteClient
from ..client.exceptions import LearningSuiteError
from ..config import get_api_key
from ..models import FetchResult, SourceMember

logger = get_logger('nfcrm.launch.member_source')


def _is_active(raw, now=None):
    """Enabled (or flag missing) and access not expired."""
    if raw.get('enabled') is False:
        return False
    access_to = raw.get('accessTo')
    if access_to:
        try:
            expires = datetime.fromisoformat(str(access_to).replace('Z', '+00:00'))
        except ValueError:
            return True
        if expires.tzinfo is None:
            expires = expires.replace(tzinfo=timezone.utc)
        if expires < (now or datetime.now(timezone.utc)):
            return False
    return True


def _unwrap(payload):
    """The API returns either a bare list or a list wrapped in an object."""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        return payload.get('members') or payload.get('data') or payload.get('users') or []
    return []


def normalize_members(raw_members, now=None):
    """Active members with lowercase email, in API order. Records without '@' are dropped."""
    members = []
    for raw in raw_members:
        if not isinstance(raw, dict) or not _is_active(raw, now):
            continue
        email = str(raw.get('email') or '').strip().lower()
        if '@' not in email:
            continue
        members.append(SourceMember(
            id=str(raw.get('id') or ''),
            email=email,
            first_name=str(raw.get('firstName') or '').strip(),
            last_name=str(raw.get('lastName') or '').strip(),
            phone=raw.get('phone') or None,
            created_at=raw.get('createdAt'),
        ))
    return members


class MemberSourceFetcher:
    """Fetches a course roster, falling back to the platform-wide member list."""

    def __init__(self, client_factory=None):
        self._client_factory = client_factory or (lambda: LearningSuiteClient(get_api_key()))

    def fetch(self, source_id=None):
        """Return FetchResult for a course id (or all members when None). Never raises."""
        try:
            client = self._client_factory()
        except Exception as e:
            logger.error(f'Could not create LearningSuite client: {e}')
            return FetchResult(success=False, error=str(e)[:200])

        try:
            if source_id:
                try:
                    raw = _unwrap(client.get_course_members(source_id))
                    logger.info(f'Found {len(raw)} total members in course {source_id}')
                    members = normalize_members(raw)
                    if members:
                        logger.info(f'{len(members)} active members with valid email')
                        return FetchResult(success=True, members=members)
                    logger.warning(f'Course {source_id} returned no active members, falling back to /members')
                except LearningSuiteError as e:
                    logger.warning(f'Course endpoint failed ({e}), falling back to /members')
                result = self._fetch_all(client)
                result.used_fallback = True
                return result
            return self._fetch_all(client)
        except Exception as e:
            logger.exception(f'Roster fetch failed: {e}')
            return FetchResult(success=False, error=str(e)[:200])
        finally:
            client.close()

    def _fetch_all(self, client):
        try:
            raw = _unwrap(client.get_members())
        except LearningSuiteError as e:
            logger.error(f'Member fetch failed: {e}')
            return FetchResult(success=False, error=str(e)[:200])
        members = normalize_members(raw)
        logger.info(f'Found {len(raw)} members on platform, {len(members)} active with valid email')
        return FetchResult(success=True, members=members)
