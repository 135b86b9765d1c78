"""
Error types for near-duplicate detection.

Every error is raised before any state is touched, so callers can recover
by fixing parameters or skipping the offending document.
"""

from typing import Optional, Any, Dict


class NearDupError(Exception):
    """
    Base exception for all neardup errors.

    Carries a structured ``details`` dict for logging and reporting.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        """
        Initialize error.

        Args:
            message: Error message
            details: Optional detailed error context
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __reduce__(self):
        # keep subclass attributes when errors cross a process pool
        return (self.__class__, (self.message,), self.__dict__)


class ConfigError(NearDupError):
    """
    Raised when LSH parameters are invalid.

    Covers a band count that does not evenly divide the signature length,
    zero-length signatures, non-positive band counts and out-of-range
    similarity values.
    """

    def __init__(self, message: str,
                 parameter: Optional[str] = None,
                 value: Any = None,
                 details: Optional[Dict[str, Any]] = None):
        """
        Initialize configuration error.

        Args:
            message: Error message
            parameter: Name of the offending parameter
            value: Offending value
            details: Additional error context
        """
        super().__init__(message, details)
        self.parameter = parameter
        self.value = value

        self.details.update({
            'parameter': parameter,
            'value': value
        })


class EmptyInputError(NearDupError):
    """Raised when a signature is requested for an empty token set."""

    def __init__(self, message: str,
                 doc_id: Any = None,
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.doc_id = doc_id
        self.details['doc_id'] = doc_id


class MismatchError(NearDupError):
    """
    Raised when signatures or indices of different shape are combined.

    ``expected`` and ``actual`` hold ``(num_hashes, bands)`` for index merges
    and signature lengths for insertions.
    """

    def __init__(self, message: str,
                 expected: Any = None,
                 actual: Any = None,
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.expected = expected
        self.actual = actual

        self.details.update({
            'expected': expected,
            'actual': actual
        })

