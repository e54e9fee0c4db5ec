from datetime import datetime, timezone


def utcnow() -> datetime:
    """Python-side timestamp default.

    Keyset cursors compare timestamps for equality, so every row gets the
    same microsecond-precision value the cursor will later carry back.
    """
    return datetime.now(timezone.utc)
