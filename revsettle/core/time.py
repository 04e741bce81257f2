"""
revsettle/core/time.py

Two clocks, two formats:

    ledger_timestamp()   — integer UTC seconds. Stored in records
                           (attestation fee time, bond issuance, redemptions,
                           dispute transitions). Env reads it unless a test
                           pins the clock with Env.set_timestamp().

    journal_timestamp()  — wire format YYYY-MM-DDTHH:MM:SS.mmmZ
                           (milliseconds, explicit Z, no +00:00).
                           Used only by journal entries.
"""

from datetime import datetime, timezone


def ledger_timestamp() -> int:
    """Return current UTC time as whole seconds since the epoch."""
    return int(datetime.now(timezone.utc).timestamp())


def journal_timestamp() -> str:
    """
    Return current UTC time in journal wire format.
    Format: YYYY-MM-DDTHH:MM:SS.mmmZ  (exactly 3 fractional digits, Z suffix)
    """
    now = datetime.now(timezone.utc)
    ms  = now.microsecond // 1000
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{ms:03d}Z"
