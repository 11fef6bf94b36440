"""
Launch Import Data Models

Data classes for the launch import. Used for in-memory transfer and the
polled status payload, not ORM models.
"""

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, List, Dict, Any, Deque

from .config import LOG_BUFFER_SIZE


class ImportPhase(Enum):
    """Lifecycle of the single import run."""
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"
    ERROR = "error"


class LogStatus(Enum):
    """Outcome of one roster record (also used to tag SYSTEM entries)."""
    SUCCESS_WITH_OB = "success_with_ob"
    SUCCESS_WITHOUT_OB = "success_without_ob"
    SKIPPED = "skipped"
    ERROR = "error"


class PreviewAction(Enum):
    SKIP = "skip"
    IMPORT_WITH_ONBOARDING = "import_with_onboarding"
    IMPORT_WITHOUT_ONBOARDING = "import_without_onboarding"


@dataclass
class OnboardingRecord:
    """One intake row from the onboarding CSV. Identity is the name pair."""
    vorname: str
    nachname: str
    aktueller_monatsumsatz: Optional[int] = None
    ziel_monatsumsatz: Optional[int] = None
    was_nervt_am_meisten: Optional[str] = None
    groesstes_problem: Optional[str] = None
    groesstes_ziel_warum: Optional[str] = None
    wie_aufmerksam: Optional[str] = None

    def member_fields(self) -> Dict[str, Any]:
        """Columns copied onto a member created with onboarding data."""
        return {
            'aktueller_monatsumsatz': self.aktueller_monatsumsatz,
            'ziel_monatsumsatz': self.ziel_monatsumsatz,
            'was_nervt_am_meisten': self.was_nervt_am_meisten,
            'groesstes_problem': self.groesstes_problem,
            'groesstes_ziel_warum': self.groesstes_ziel_warum,
            'wie_aufmerksam': self.wie_aufmerksam,
        }


# normalize_key(vorname, nachname) -> record
OnboardingIndex = Dict[str, OnboardingRecord]


@dataclass
class OnboardingParseResult:
    index: OnboardingIndex = field(default_factory=dict)
    total_rows: int = 0
    valid_rows: int = 0
    errors: List[str] = field(default_factory=list)


@dataclass
class SourceMember:
    """One LearningSuite roster entry to reconcile."""
    id: str
    email: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    created_at: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f'{self.first_name} {self.last_name}'.strip()


@dataclass
class FetchResult:
    success: bool
    members: List[SourceMember] = field(default_factory=list)
    error: Optional[str] = None
    used_fallback: bool = False


@dataclass
class ImportLogEntry:
    timestamp: datetime
    email: str
    name: str
    status: LogStatus
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'timestamp': self.timestamp.isoformat(),
            'email': self.email,
            'name': self.name,
            'status': self.status.value,
            'message': self.message,
        }


def _new_log_buffer() -> Deque[ImportLogEntry]:
    return deque(maxlen=LOG_BUFFER_SIZE)


@dataclass
class ImportStatus:
    """Live progress of the import, polled by the operator UI."""
    phase: ImportPhase = ImportPhase.IDLE
    is_dry_run: bool = False
    total: int = 0
    processed: int = 0
    skipped: int = 0
    with_onboarding: int = 0
    without_onboarding: int = 0
    errors: int = 0
    current_member: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    estimated_remaining_minutes: int = 0
    logs: Deque[ImportLogEntry] = field(default_factory=_new_log_buffer)

    @property
    def is_active(self) -> bool:
        return self.phase in (ImportPhase.RUNNING, ImportPhase.PAUSED)

    def copy(self) -> 'ImportStatus':
        """Independent snapshot. Log entries are never mutated, so sharing them is safe."""
        snapshot = ImportStatus(**{k: v for k, v in self.__dict__.items() if k != 'logs'})
        snapshot.logs = deque(self.logs, maxlen=LOG_BUFFER_SIZE)
        return snapshot

    def to_dict(self) -> Dict[str, Any]:
        return {
            'phase': self.phase.value,
            'is_dry_run': self.is_dry_run,
            'total': self.total,
            'processed': self.processed,
            'skipped': self.skipped,
            'with_onboarding': self.with_onboarding,
            'without_onboarding': self.without_onboarding,
            'errors': self.errors,
            'current_member': self.current_member,
            'started_at': self.started_at.isoformat() if self.started_at else None,
            'completed_at': self.completed_at.isoformat() if self.completed_at else None,
            'estimated_remaining_minutes': self.estimated_remaining_minutes,
            'logs': [entry.to_dict() for entry in self.logs],
        }


@dataclass
class MemberPreview:
    email: str
    vorname: str
    nachname: str
    has_onboarding: bool
    already_in_crm: bool
    action: PreviewAction

    def to_dict(self) -> Dict[str, Any]:
        return {
            'email': self.email,
            'vorname': self.vorname,
            'nachname': self.nachname,
            'has_onboarding': self.has_onboarding,
            'already_in_crm': self.already_in_crm,
            'action': self.action.value,
        }


@dataclass
class ImportPreview:
    total_from_source: int = 0
    already_in_crm: int = 0
    to_import: int = 0
    with_onboarding: int = 0
    without_onboarding: int = 0
    estimated_minutes: int = 0
    members: List[MemberPreview] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total_from_source': self.total_from_source,
            'already_in_crm': self.already_in_crm,
            'to_import': self.to_import,
            'with_onboarding': self.with_onboarding,
            'without_onboarding': self.without_onboarding,
            'estimated_minutes': self.estimated_minutes,
            'members': [m.to_dict() for m in self.members],
        }
