"""Exception hierarchy for the duplicate scanner."""


class DuplicateScannerError(Exception):
    """Base exception for all duplicate scanner errors."""


class ConfigError(DuplicateScannerError, ValueError):
    """Raised when settings cannot be parsed or validated."""


class FingerprintError(DuplicateScannerError, OSError):
    """Raised when a file cannot be read for fingerprinting."""


class InvalidScanTargetError(DuplicateScannerError, ValueError):
    """Raised when a scan is requested without a usable directory argument."""


class JobNotFoundError(DuplicateScannerError, LookupError):
    """Raised when an operation targets an unknown or unfinished scan job."""


class InvalidTransitionError(DuplicateScannerError):
    """Raised when a scan job status change violates the job state machine."""


class ScanCancelledError(DuplicateScannerError):
    """Raised inside a scan worker when the job's cancellation token is set."""
