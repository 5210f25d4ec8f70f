"""
Custom exceptions for the feed propagation benchmark.

This module provides custom exception classes with user-friendly messaging
that include:
- Clear error descriptions
- Technical details for debugging
- Actionable suggestions for resolution

Every exception aborts the whole benchmark run. Nothing in the core catches
or retries them; main() maps each class to an exit code.
"""

from dataclasses import dataclass, field
from typing import Optional, Any
from enum import Enum


class ErrorCode(Enum):
    """Machine-readable error codes for feedbench errors."""
    # Configuration errors (1xx)
    CONFIG_INVALID_VALUE = "E101"
    CONFIG_COUNT_MISMATCH = "E102"
    CONFIG_FILE_NOT_FOUND = "E103"
    CONFIG_PARSE_ERROR = "E104"
    CONFIG_MISSING_SIGNER = "E105"

    # Network errors (2xx)
    TRANSPORT_UPLOAD_FAILED = "E201"
    TRANSPORT_DOWNLOAD_FAILED = "E202"
    TRANSPORT_STATUS_FAILED = "E203"

    # Sync errors (3xx)
    SYNC_TIMEOUT = "E301"

    # Verification errors (4xx)
    VERIFICATION_MISMATCH = "E401"

    # Internal errors (9xx)
    INTERNAL_ERROR = "E901"


@dataclass
class FeedBenchError:
    """
    Structured error information.

    Attributes:
        code: Machine-readable error code.
        message: User-facing error message.
        details: Technical details for debugging.
        suggestion: How to fix the issue.
        context: Additional context information.
    """
    code: ErrorCode
    message: str
    details: str = ""
    suggestion: str = ""
    context: dict = field(default_factory=dict)

    def __str__(self) -> str:
        """Format error for display."""
        lines = [f"[{self.code.value}] {self.message}"]
        if self.details:
            lines.append(f"  Details: {self.details}")
        if self.suggestion:
            lines.append(f"  Suggestion: {self.suggestion}")
        return "\n".join(lines)


class FeedBenchException(Exception):
    """
    Base exception class for feedbench.

    All custom exceptions inherit from this class and provide
    structured error information.
    """

    def __init__(self, message: str, code: ErrorCode = ErrorCode.INTERNAL_ERROR,
                 details: str = "", suggestion: str = "", **context):
        self.error = FeedBenchError(
            code=code,
            message=message,
            details=details,
            suggestion=suggestion,
            context=context
        )
        super().__init__(str(self.error))

    @property
    def code(self) -> ErrorCode:
        return self.error.code

    @property
    def suggestion(self) -> str:
        return self.error.suggestion

    @property
    def context(self) -> dict:
        return self.error.context


class ConfigurationError(FeedBenchException):
    """
    Raised when the benchmark configuration is invalid.

    Always raised before any network activity.

    Examples:
        - Different number of writer URLs and stamps
        - Download iteration higher than the update count
        - Config file missing or unparsable
    """

    def __init__(self, message: str, parameter: str = None,
                 expected: Any = None, actual: Any = None,
                 suggestion: str = None,
                 code: ErrorCode = ErrorCode.CONFIG_INVALID_VALUE):
        details_parts = []
        if parameter:
            details_parts.append(f"Parameter: {parameter}")
        if expected is not None:
            details_parts.append(f"Expected: {expected}")
        if actual is not None:
            details_parts.append(f"Actual: {actual}")

        super().__init__(
            message=message,
            code=code,
            details="; ".join(details_parts) if details_parts else "",
            suggestion=suggestion or self._default_suggestion(code),
            parameter=parameter,
            expected=expected,
            actual=actual
        )

    @staticmethod
    def _default_suggestion(code: ErrorCode) -> str:
        suggestions = {
            ErrorCode.CONFIG_INVALID_VALUE: "Check the parameter value and correct it",
            ErrorCode.CONFIG_COUNT_MISMATCH: "Pass exactly one --stamp for every --bee-writer",
            ErrorCode.CONFIG_FILE_NOT_FOUND: "Verify the config file path exists",
            ErrorCode.CONFIG_PARSE_ERROR: "Check config file syntax (YAML format)",
            ErrorCode.CONFIG_MISSING_SIGNER: "Pass --signer <module>:<attribute> pointing at a feed signer",
        }
        return suggestions.get(code, "Check the configuration and try again")


class TransportError(FeedBenchException):
    """
    Raised when an upload, download or status call fails at the network layer.

    The underlying message is kept verbatim in ``details``.
    """

    def __init__(self, message: str, endpoint: str = None,
                 operation: str = None, status_code: int = None,
                 cause: str = None, suggestion: str = None,
                 code: ErrorCode = ErrorCode.TRANSPORT_UPLOAD_FAILED):
        details_parts = []
        if endpoint:
            details_parts.append(f"Endpoint: {endpoint}")
        if operation:
            details_parts.append(f"Operation: {operation}")
        if status_code is not None:
            details_parts.append(f"HTTP status: {status_code}")
        if cause:
            details_parts.append(f"Error: {cause}")

        super().__init__(
            message=message,
            code=code,
            details="; ".join(details_parts) if details_parts else "",
            suggestion=suggestion or self._default_suggestion(code, status_code),
            endpoint=endpoint,
            operation=operation,
            status_code=status_code,
            cause=cause
        )

    @property
    def endpoint(self) -> Optional[str]:
        return self.context.get('endpoint')

    @staticmethod
    def _default_suggestion(code: ErrorCode, status_code: int = None) -> str:
        suggestions = {
            ErrorCode.TRANSPORT_UPLOAD_FAILED: "Check that the writer node is reachable and the stamp is usable",
            ErrorCode.TRANSPORT_DOWNLOAD_FAILED: "Check that the reader node is reachable",
            ErrorCode.TRANSPORT_STATUS_FAILED: "Check that the writer node exposes the tags API",
        }
        suggestion = suggestions.get(code, "Check the node logs for details")

        if status_code == 402:
            suggestion = "Postage stamp is not usable - check the batch ID and its balance"
        elif status_code == 404 and code == ErrorCode.TRANSPORT_DOWNLOAD_FAILED:
            suggestion = "Feed update not found yet - increase --sync-delay or use --sync-mode poll"

        return suggestion


class SyncTimeoutError(FeedBenchException):
    """
    Raised when the sync detector runs out of consecutive unchanged trials.

    Distinguishes a network that never converged from a transport failure.
    """

    def __init__(self, message: str = "Data syncing timeout.", endpoint: str = None,
                 trials: int = None, replicated: int = None, total: int = None,
                 suggestion: str = None):
        details_parts = []
        if endpoint:
            details_parts.append(f"Endpoint: {endpoint}")
        if trials is not None:
            details_parts.append(f"Trials: {trials}")
        if replicated is not None and total is not None:
            details_parts.append(f"Replicated: {replicated}/{total}")

        super().__init__(
            message=message,
            code=ErrorCode.SYNC_TIMEOUT,
            details="; ".join(details_parts) if details_parts else "",
            suggestion=suggestion or "The network did not converge - check peer connectivity of the writer node",
            endpoint=endpoint,
            trials=trials,
            replicated=replicated,
            total=total
        )


class VerificationError(FeedBenchException):
    """
    Raised when a downloaded feed update does not match what was written.

    Carries both expected and actual index and reference along with the
    reader endpoint that returned them.
    """

    def __init__(self, url: str, expected_index: str, actual_index: str,
                 expected_reference: str, actual_reference: str):
        message = (
            f'Downloaded feed payload or index has not the expected result at Bee node "{url}".'
            f'\n\tindex| expected: "{expected_index}" got: "{actual_index}"'
            f'\n\treference| expected: "{expected_reference}" got: "{actual_reference}"'
        )
        super().__init__(
            message=message,
            code=ErrorCode.VERIFICATION_MISMATCH,
            suggestion="Inspect the feed on the reader node; a stale index usually means sync was incomplete",
            url=url,
            expected_index=expected_index,
            actual_index=actual_index,
            expected_reference=expected_reference,
            actual_reference=actual_reference
        )

    @property
    def url(self) -> str:
        return self.context['url']

    @property
    def expected_index(self) -> str:
        return self.context['expected_index']

    @property
    def actual_index(self) -> str:
        return self.context['actual_index']

    @property
    def expected_reference(self) -> str:
        return self.context['expected_reference']

    @property
    def actual_reference(self) -> str:
        return self.context['actual_reference']
