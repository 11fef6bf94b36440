"""Launch service — the operator-facing control layer over one ImportEngine.

Serializes start/pause/reset behind one lock and refuses to start while a run
is active. The engine itself does not check this.
"""

import threading
from dataclasses import replace

from core.services.email_service import is_smtp_configured
from core.utils.logging_config import get_logger
from members.repositories import MemberRepository
from ..config import ImportConfig
from ..exceptions import ImportAlreadyRunningError, ImportNotResetError
from ..models import ImportPhase, ImportPreview, MemberPreview, PreviewAction
from ..parsers.csv_parser import parse_onboarding_csv, normalize_key
from .import_engine import ImportEngine, estimate_minutes
from .member_source import MemberSourceFetcher

logger = get_logger('nfcrm.launch.service')

CSV_ERRORS_IN_RESPONSE = 10


def build_preview(members, index, existing_emails, cooldown_ms):
    """Classify a roster the way a run would, without touching anything."""
    preview = ImportPreview(total_from_source=len(members))
    for m in members:
        if m.email.lower() in existing_emails:
            preview.already_in_crm += 1
            preview.members.append(MemberPreview(
                email=m.email, vorname=m.first_name, nachname=m.last_name,
                has_onboarding=False, already_in_crm=True, action=PreviewAction.SKIP,
            ))
            continue

        has_onboarding = normalize_key(m.first_name, m.last_name) in index
        if has_onboarding:
            preview.with_onboarding += 1
        else:
            preview.without_onboarding += 1
        preview.members.append(MemberPreview(
            email=m.email, vorname=m.first_name, nachname=m.last_name,
            has_onboarding=has_onboarding, already_in_crm=False,
            action=(PreviewAction.IMPORT_WITH_ONBOARDING if has_onboarding
                    else PreviewAction.IMPORT_WITHOUT_ONBOARDING),
        ))

    preview.to_import = preview.with_onboarding + preview.without_onboarding
    preview.estimated_minutes = estimate_minutes(preview.to_import, cooldown_ms)
    return preview


class LaunchService:
    """Unified service for launch import operations."""

    def __init__(self, engine, fetcher=None, member_repo=None, defaults=None):
        self.engine = engine
        self.fetcher = fetcher or MemberSourceFetcher()
        self.member_repo = member_repo or MemberRepository()
        self.defaults = defaults or ImportConfig()
        self._admin_lock = threading.Lock()

    def _csv_stats(self, parsed):
        return {
            'total_rows': parsed.total_rows,
            'valid_rows': parsed.valid_rows,
            'errors': parsed.errors[:CSV_ERRORS_IN_RESPONSE],
        }

    def preview(self, csv_text, course_id=None):
        """Parse CSV + fetch roster + classify each member."""
        if not csv_text:
            return {'success': False, 'error': 'CSV content required'}
        parsed = parse_onboarding_csv(csv_text)
        logger.info(f'Preview: parsed {parsed.valid_rows}/{parsed.total_rows} valid onboarding rows')

        fetched = self.fetcher.fetch(course_id or self.defaults.course_id)
        if not fetched.success:
            return {'success': False, 'error': 'Failed to fetch LearningSuite members',
                    'details': fetched.error}

        try:
            existing = self.member_repo.get_existing_emails()
        except Exception as e:
            logger.exception(f'Preview failed loading existing members: {e}')
            return {'success': False, 'error': str(e)[:200]}

        preview = build_preview(fetched.members, parsed.index, existing, self.defaults.cooldown_ms)
        return {
            'success': True,
            'preview': preview.to_dict(),
            'used_fallback': fetched.used_fallback,
            'csv_stats': self._csv_stats(parsed),
        }

    def start(self, csv_text, course_id=None, cooldown_ms=None, is_dry_run=False):
        """Fetch the roster and start a background run.

        Raises ImportAlreadyRunningError / ImportNotResetError when the
        current phase forbids a new run.
        """
        with self._admin_lock:
            current = self.engine.get_status()
            if current.is_active:
                raise ImportAlreadyRunningError(current.phase.value)
            if current.phase is ImportPhase.ERROR:
                raise ImportNotResetError()
            if not csv_text:
                return {'success': False, 'error': 'CSV content required'}

            self.engine.reset()
            parsed = parse_onboarding_csv(csv_text)
            logger.info(f'Start: parsed {parsed.valid_rows} valid onboarding rows')

            config = replace(
                self.defaults,
                course_id=course_id or self.defaults.course_id,
                cooldown_ms=self.defaults.cooldown_ms if cooldown_ms is None else cooldown_ms,
                is_dry_run=bool(is_dry_run),
            )
            if not config.is_dry_run and not is_smtp_configured():
                logger.warning('SMTP not configured, every invite will be recorded as an error')

            fetched = self.fetcher.fetch(config.course_id)
            if not fetched.success:
                logger.error(f'Roster fetch failed, import not started: {fetched.error}')
                return {'success': False, 'error': 'Failed to fetch LearningSuite members',
                        'details': fetched.error}

            status = self.engine.start(fetched.members, parsed.index, config)
            return {
                'success': True,
                'message': 'Dry run started' if config.is_dry_run else 'Import started',
                'status': status.to_dict(),
                'csv_stats': self._csv_stats(parsed),
            }

    def pause(self):
        with self._admin_lock:
            paused = self.engine.pause()
            return {'success': paused, 'status': self.engine.get_status().to_dict()}

    def reset(self):
        with self._admin_lock:
            self.engine.reset()
            return {'success': True, 'status': self.engine.get_status().to_dict()}

    def get_status(self):
        return self.engine.get_status().to_dict()


def create_launch_service():
    """Default wiring; the hosting app keeps the returned instance for the process lifetime."""
    return LaunchService(ImportEngine(), defaults=ImportConfig.from_env())
