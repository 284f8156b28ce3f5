from datetime import UTC, datetime


def utc_now() -> datetime:
    """Current UTC time without tzinfo.

    Timestamp columns are TIMESTAMP WITHOUT TIME ZONE holding UTC, in both the
    record store and the worker's synchronous sessions.
    """
    return datetime.now(UTC).replace(tzinfo=None)
