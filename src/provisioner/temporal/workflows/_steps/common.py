"""Shared workflow step utilities."""

from datetime import timedelta

from temporalio.common import RetryPolicy

# Errors that retrying cannot fix; activities raising them fail the step at once
NON_RETRYABLE_ERRORS = [
    "ConfigurationError",
    "InvalidStatusTransitionError",
    "InvalidSubdomainError",
    "JobFailedError",
    "PollTimeoutError",
    "StatusConflictError",
    "TenantNotFoundError",
]

DEFAULT_RETRY = RetryPolicy(
    maximum_attempts=5,
    initial_interval=timedelta(seconds=1),
    non_retryable_error_types=NON_RETRYABLE_ERRORS,
)


def short_activity_opts() -> dict[str, object]:
    """Options for quick activities (DB reads, status updates)."""
    return {
        "start_to_close_timeout": timedelta(seconds=30),
        "retry_policy": RetryPolicy(
            maximum_attempts=3,
            initial_interval=timedelta(seconds=1),
            non_retryable_error_types=NON_RETRYABLE_ERRORS,
        ),
    }


def medium_activity_opts() -> dict[str, object]:
    """Options for single control-plane calls (create/delete a resource)."""
    return {
        "start_to_close_timeout": timedelta(seconds=60),
        "retry_policy": DEFAULT_RETRY,
    }


def polling_activity_opts(timeout_seconds: int) -> dict[str, object]:
    """Options for activities that poll an external system for up to ``timeout_seconds``.

    The activity heartbeats on every poll, so a dead worker is noticed
    within the heartbeat timeout instead of the whole wait.
    """
    return {
        "start_to_close_timeout": timedelta(seconds=timeout_seconds + 120),
        "heartbeat_timeout": timedelta(seconds=60),
        "retry_policy": RetryPolicy(
            maximum_attempts=3,
            initial_interval=timedelta(seconds=2),
            non_retryable_error_types=NON_RETRYABLE_ERRORS,
        ),
    }


def describe_failure(error: BaseException) -> str:
    """Describe the root cause of an activity failure as 'ErrorType: message'."""
    current = error
    while (cause := getattr(current, "cause", None) or current.__cause__) is not None:
        current = cause
    kind = getattr(current, "type", None) or type(current).__name__
    return f"{kind}: {current}"
