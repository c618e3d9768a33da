"""
Trade reference formatting.

Pure functions: (booking date, sequence) <-> ``FX-YYYYMMDD-NNNN``.  The
format is a display/wire contract and must stay stable.

Sequences of 10000 and above widen the numeric field
(``FX-20251012-10000``) rather than wrapping or truncating, so references
stay unique and sort correctly within a width.
"""

import re
from datetime import date, datetime

REFERENCE_PREFIX = "FX"
SEQUENCE_WIDTH = 4

_REFERENCE_RE = re.compile(r"^FX-(\d{8})-(\d{4,})$")


def format_trade_reference(booking_date: date, sequence: int) -> str:
    """
    Build the canonical reference for ``sequence`` on ``booking_date``.

    Raises:
        ValueError: If sequence is not a positive integer.
    """
    if isinstance(sequence, bool) or not isinstance(sequence, int) or sequence < 1:
        raise ValueError(f"Sequence must be a positive integer, got {sequence!r}")
    return f"{REFERENCE_PREFIX}-{booking_date:%Y%m%d}-{sequence:0{SEQUENCE_WIDTH}d}"


def parse_trade_reference(reference: str) -> tuple[date, int]:
    """
    Split a reference back into (booking date, sequence).

    Raises:
        ValueError: If the reference is malformed.
    """
    match = _REFERENCE_RE.match(reference or "")
    if match is None:
        raise ValueError(f"Malformed trade reference: {reference!r}")
    digits, seq = match.groups()
    if len(seq) > SEQUENCE_WIDTH and seq.startswith("0"):
        raise ValueError(f"Malformed trade reference: {reference!r}")
    booking_date = datetime.strptime(digits, "%Y%m%d").date()
    sequence = int(seq)
    if sequence < 1:
        raise ValueError(f"Malformed trade reference: {reference!r}")
    return booking_date, sequence
