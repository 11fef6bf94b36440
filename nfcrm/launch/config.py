"""
Launch Import Configuration

Run settings for the launch-day member import and the LearningSuite API
connection, loaded from environment variables.
"""

import os
from dataclasses import dataclass

# NF Mentoring course on LearningSuite
DEFAULT_COURSE_ID = 'Q291cnNISW5zdGFuY2U6Y2x4OWk2dXRsM3RiaWR5aWtzeDN3N2U3bA'
DEFAULT_COOLDOWN_MS = 30000

# Activity feed cap (most recent first)
LOG_BUFFER_SIZE = 100

# Form tokens sent with the follow-up invite
FORM_TOKEN_EXPIRY_DAYS = 7

# LearningSuite API
LEARNINGSUITE_API_BASE = os.environ.get('LEARNINGSUITE_API_BASE', 'https://api.learningsuite.io/api/v1')
REQUEST_TIMEOUT = int(os.environ.get('LEARNINGSUITE_TIMEOUT', '30'))  # seconds
MAX_RETRIES = 3
RETRY_BASE_DELAY = 1.0  # seconds


@dataclass(frozen=True)
class ImportConfig:
    """Immutable settings for one import run."""

    cooldown_ms: int = DEFAULT_COOLDOWN_MS
    is_dry_run: bool = False
    course_id: str = DEFAULT_COURSE_ID

    # Transient store/messaging failures
    max_retries: int = 3
    retry_delay_ms: int = 500

    def __post_init__(self):
        if self.cooldown_ms < 0:
            raise ValueError('cooldown_ms must not be negative')
        if self.max_retries < 1:
            raise ValueError('max_retries must be at least 1')

    @classmethod
    def from_env(cls) -> 'ImportConfig':
        """Load run defaults from environment variables."""
        return cls(
            cooldown_ms=int(os.environ.get('LAUNCH_COOLDOWN_MS', str(DEFAULT_COOLDOWN_MS))),
            is_dry_run=os.environ.get('LAUNCH_DRY_RUN', 'false').lower() == 'true',
            course_id=os.environ.get('LAUNCH_COURSE_ID', DEFAULT_COURSE_ID),
        )


def get_api_key():
    """LearningSuite API key, read at call time so it can be rotated without restart."""
    return os.environ.get('LEARNINGSUITE_API_KEY', '')
