"""Launch import exceptions."""


class LaunchError(Exception):
    """Base exception for the launch import module."""

    def __init__(self, message, code=None, details=None):
        super().__init__(message)
        self.code = code
        self.details = details or {}


class ImportAlreadyRunningError(LaunchError):
    """A run is running or paused; it must finish or be reset first."""

    def __init__(self, phase):
        super().__init__(f'Import already {phase}', code='already_running', details={'phase': phase})
        self.phase = phase


class ImportNotResetError(LaunchError):
    """The previous run died with a fatal error and was never reset."""

    def __init__(self):
        super().__init__('Previous import failed; reset before starting a new one', code='needs_reset')


class MemberValidationError(LaunchError):
    """A roster record lacks data required to create a member."""

    def __init__(self, issues):
        super().__init__(f"Validation failed: {', '.join(issues)}", code='invalid_member',
                         details={'issues': list(issues)})
        self.issues = list(issues)
