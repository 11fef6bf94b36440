"""Launch Import Engine — throttled member import with live, pollable progress.

One engine instance is owned by the hosting layer. A run walks the roster in
order, creates members, sends the follow-up invite and waits a cooldown
between records so the mail/WhatsApp providers are not rate limited. The
operator polls get_status() and may pause() or reset() at any time.

Threading: the processor runs on a daemon worker thread while admin calls and
status polls arrive on request threads. Every read or write of the status
happens under self._lock; pollers receive copies. Each run carries its own
cancellation Event, so reset() simply detaches the run and a still-busy
worker keeps writing to state nobody reads any more.
"""

import logging
import math
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from core.utils.logging_config import get_logger, log_with_context
from members.repositories import MemberRepository, FormTokenRepository
from members.services import InviteService
from ..config import ImportConfig, FORM_TOKEN_EXPIRY_DAYS
from ..exceptions import MemberValidationError
from ..models import ImportLogEntry, ImportPhase, ImportStatus, LogStatus
from ..parsers.csv_parser import find_onboarding
from ..parsers.utils import normalize_phone

logger = get_logger('nfcrm.launch.engine')

SYSTEM = 'SYSTEM'

_COUNTERS = {
    LogStatus.SKIPPED: 'skipped',
    LogStatus.SUCCESS_WITH_OB: 'with_onboarding',
    LogStatus.SUCCESS_WITHOUT_OB: 'without_onboarding',
    LogStatus.ERROR: 'errors',
}


def _utcnow():
    return datetime.now(timezone.utc)


def estimate_minutes(records, cooldown_ms):
    return math.ceil(records * cooldown_ms / 60000)


@dataclass
class RecordResult:
    """Outcome of one roster record plus its single log entry."""
    status: LogStatus
    entry: ImportLogEntry


class _Run:
    """State owned by one start(): status and cancellation handle."""

    def __init__(self, status):
        self.status = status
        self.cancel = threading.Event()


def validate_member(member):
    """Return the list of problems that block creating this member."""
    issues = []
    if not member.email or '@' not in member.email:
        issues.append('no valid email')
    if not (member.first_name or '').strip():
        issues.append('no first name')
    if not (member.last_name or '').strip():
        issues.append('no last name')
    return issues


class ImportEngine:
    """Single-run import state machine: idle → running → paused/completed/error."""

    def __init__(self, member_repo=None, token_repo=None, messenger=None):
        self.member_repo = member_repo or MemberRepository()
        self.token_repo = token_repo or FormTokenRepository()
        self.messenger = messenger or InviteService()
        self._lock = threading.RLock()
        self._run = _Run(ImportStatus())
        # Last started worker; survives reset() so join() can wait for a detached run
        self._worker = None

    # ── Control surface ──

    def get_status(self):
        """Independent snapshot of the current run."""
        with self._lock:
            return self._run.status.copy()

    def start(self, members, index, config=None):
        """Initialize a run and process it on a background thread.

        Returns the snapshot taken before the first record is touched. Does
        not refuse while another run is active; LaunchService guards that.
        """
        config = config or ImportConfig()
        run = self._begin(members, index, config)
        worker = threading.Thread(
            target=self._process, args=(run, list(members), index, config),
            name='launch-import', daemon=True,
        )
        with self._lock:
            self._worker = worker
            snapshot = run.status.copy()
        worker.start()
        return snapshot

    def run(self, members, index, config=None):
        """Like start(), but process in the calling thread and return the final snapshot."""
        config = config or ImportConfig()
        run = self._begin(members, index, config)
        self._process(run, list(members), index, config)
        with self._lock:
            return run.status.copy()

    def pause(self):
        """running → paused. The record in progress still completes; one waiting
        on a retry backoff stops retrying and is recorded as an error.
        """
        with self._lock:
            status = self._run.status
            if status.phase is not ImportPhase.RUNNING:
                return False
            status.phase = ImportPhase.PAUSED
            self._run.cancel.set()
        logger.info('Import paused by operator')
        return True

    def reset(self):
        """Any phase → idle. Detaches and cancels the current run."""
        with self._lock:
            self._run.cancel.set()
            self._run = _Run(ImportStatus())
        logger.info('Import status reset')

    def join(self, timeout=None):
        """Wait for the last started worker, detached or not. True once it has exited."""
        with self._lock:
            worker = self._worker
        if worker is None:
            return True
        worker.join(timeout)
        return not worker.is_alive()

    # ── Throttled processor ──

    def _begin(self, members, index, config):
        total = len(members)
        status = ImportStatus(
            phase=ImportPhase.RUNNING,
            is_dry_run=config.is_dry_run,
            total=total,
            started_at=_utcnow(),
            estimated_remaining_minutes=estimate_minutes(total, config.cooldown_ms),
        )
        run = _Run(status)
        with self._lock:
            # A stray previous worker must not keep sending invites.
            self._run.cancel.set()
            self._run = run
            suffix = ' (DRY RUN)' if config.is_dry_run else ''
            self._system_log(run, LogStatus.SUCCESS_WITH_OB, f'Import started: {total} members{suffix}')
        logger.info(f'Starting import of {total} members (dry_run={config.is_dry_run}, '
                    f'cooldown={config.cooldown_ms}ms, onboarding index={len(index)})')
        return run

    def _process(self, run, members, index, config):
        cooldown_s = config.cooldown_ms / 1000
        try:
            for i, member in enumerate(members):
                with self._lock:
                    if run.status.phase is not ImportPhase.RUNNING or run.cancel.is_set():
                        logger.info('Import paused/stopped')
                        self._system_log(run, LogStatus.SKIPPED, 'Import paused/stopped')
                        break
                    run.status.current_member = member.full_name or member.email

                result = self._import_member(member, index, config, run.cancel)

                remaining = len(members) - i - 1
                with self._lock:
                    self._record(run, result)
                    run.status.estimated_remaining_minutes = estimate_minutes(remaining, config.cooldown_ms)
                    keep_going = remaining > 0 and run.status.phase is ImportPhase.RUNNING

                if keep_going:
                    # Returns early when pause()/reset() sets the event;
                    # the phase check at the top of the loop then stops.
                    run.cancel.wait(cooldown_s)

            with self._lock:
                status = run.status
                status.current_member = None
                status.estimated_remaining_minutes = 0
                if status.phase is ImportPhase.RUNNING:
                    status.phase = ImportPhase.COMPLETED
                status.completed_at = _utcnow()
                imported = status.with_onboarding + status.without_onboarding
                self._system_log(
                    run, LogStatus.SUCCESS_WITH_OB,
                    f'Import finished: {imported} imported, {status.skipped} skipped, {status.errors} errors',
                )
                counters = {
                    'processed': status.processed, 'skipped': status.skipped,
                    'with_onboarding': status.with_onboarding,
                    'without_onboarding': status.without_onboarding, 'errors': status.errors,
                }
                phase = status.phase.value
            log_with_context(logger, logging.INFO, f'Import {phase}', **counters)

        except Exception as e:
            logger.exception(f'Fatal import error: {e}')
            with self._lock:
                run.status.phase = ImportPhase.ERROR
                run.status.current_member = None
                run.status.completed_at = _utcnow()
                self._system_log(run, LogStatus.ERROR, f'Fatal error: {str(e)[:200] or type(e).__name__}')

    def _record(self, run, result):
        """Fold one outcome into the counters and feed. Caller holds the lock."""
        status = run.status
        attr = _COUNTERS[result.status]
        setattr(status, attr, getattr(status, attr) + 1)
        status.processed += 1
        status.logs.appendleft(result.entry)

    def _system_log(self, run, log_status, message):
        run.status.logs.appendleft(ImportLogEntry(
            timestamp=_utcnow(), email='', name=SYSTEM, status=log_status, message=message,
        ))

    # ── Per-record pipeline ──

    def _import_member(self, member, index, config, cancel):
        """Import one roster member. Never raises; failures become an ERROR result."""
        def result(log_status, message):
            return RecordResult(log_status, ImportLogEntry(
                timestamp=_utcnow(), email=member.email or 'N/A',
                name=member.full_name or 'Unknown', status=log_status, message=message,
            ))

        issues = validate_member(member)
        if issues:
            return result(LogStatus.ERROR, str(MemberValidationError(issues)))

        try:
            email = member.email.strip().lower()
            existing = self._with_retry(lambda: self.member_repo.find_by_email(email), config, 'DB lookup', cancel)
            if existing:
                return result(LogStatus.SKIPPED, 'Already exists in CRM')

            onboarding = find_onboarding(index, member.first_name, member.last_name)
            outcome = LogStatus.SUCCESS_WITH_OB if onboarding else LogStatus.SUCCESS_WITHOUT_OB
            whatsapp, telefon = normalize_phone(member.phone)

            if config.is_dry_run:
                phone_info = f' (phone: {telefon})' if whatsapp else ' (no phone)'
                branch = 'WITH' if onboarding else 'WITHOUT'
                return result(outcome, f'[DRY RUN] Would import{phone_info} {branch} onboarding')

            data = {
                'email': email,
                'vorname': member.first_name.strip(),
                'nachname': member.last_name.strip(),
                'telefon': telefon,
                'whatsapp_nummer': whatsapp,
                'status': 'AKTIV',
                'produkte': ['NFM'],
                'learningsuite_user_id': member.id,
                'onboarding_completed': bool(onboarding),
                'onboarding_date': _utcnow() if onboarding else None,
                # Read by the onboarding trigger: skip the welcome sequence
                'imported_with_progress': True,
            }
            if onboarding:
                data.update(onboarding.member_fields())

            created = self._with_retry(lambda: self.member_repo.create(data), config, 'Create member', cancel)
            logger.info(f"Created member {created['id']} ({email})")

            if onboarding:
                self._send_tracking_setup(created, config, cancel)
                action = 'KPI setup invite sent'
            else:
                self._send_onboarding(created, config, cancel)
                action = 'Onboarding invite sent'
            phone_info = 'WhatsApp: yes' if whatsapp else 'WhatsApp: no'
            return result(outcome, f'Imported | {phone_info} → {action}')

        except Exception as e:
            logger.error(f'Error importing {member.email}: {e}')
            return result(LogStatus.ERROR, str(e)[:200] or type(e).__name__)

    def _send_tracking_setup(self, member, config, cancel):
        member_id = member['id']
        self._with_retry(
            lambda: self.member_repo.update(member_id, {'kpi_tracking_enabled': True}),
            config, 'Enable KPI tracking', cancel)
        token = self._with_retry(
            lambda: self.token_repo.create('kpi-setup', member_id, self._token_expiry()),
            config, 'Create form token', cancel)
        self._with_retry(
            lambda: self.messenger.send_tracking_setup_invite(member, token),
            config, 'Send KPI setup invite', cancel)

    def _send_onboarding(self, member, config, cancel):
        member_id = member['id']
        token = self._with_retry(
            lambda: self.token_repo.create('onboarding', member_id, self._token_expiry()),
            config, 'Create form token', cancel)
        self._with_retry(
            lambda: self.messenger.send_onboarding_invite(member, token),
            config, 'Send onboarding invite', cancel)

    def _token_expiry(self):
        return _utcnow() + timedelta(days=FORM_TOKEN_EXPIRY_DAYS)

    def _with_retry(self, fn, config, operation, cancel):
        """Call fn, retrying with linear backoff. Re-raises the last error.

        The backoff waits on the run's cancellation event, so pause() or
        reset() ends it at once and the record fails with the last error.
        """
        for attempt in range(1, config.max_retries + 1):
            try:
                return fn()
            except Exception as e:
                logger.warning(f'{operation} attempt {attempt}/{config.max_retries} failed: {e}')
                if attempt == config.max_retries or cancel.wait(config.retry_delay_ms / 1000 * attempt):
                    raise
