"""
Human-readable reference numbers for claims, leads and policies.

Numbers are monotonic within their prefix (``CLM-250101-001``, ``-002``...).
Two concurrent allocations can still read the same maximum, so every number
column carries a UNIQUE constraint and callers retry through
``with_number_retry`` when the insert collides.
"""

from datetime import datetime, timezone
from typing import Callable, Optional, TypeVar

import structlog
from sqlalchemy.engine import Connection
from sqlalchemy.exc import IntegrityError

from claims_crm.config import settings
from claims_crm.db.database import execute_one
from claims_crm.errors import ConflictError

log = structlog.get_logger()

T = TypeVar("T")

CLAIM_SUFFIX_WIDTH = 3
LEAD_SUFFIX_WIDTH = 6
POLICY_SUFFIX_WIDTH = 4

# column names are fixed here, never taken from input
_NUMBER_COLUMNS = {
    "claims": "claim_number",
    "leads": "lead_number",
    "policies": "policy_number",
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _next_sequence(table: str, prefix: str, width: int, conn: Optional[Connection]) -> int:
    column = _NUMBER_COLUMNS[table]
    row = execute_one(
        f"SELECT {column} AS number FROM {table} "
        f"WHERE {column} LIKE :pattern ORDER BY {column} DESC LIMIT 1",
        {"pattern": prefix + "%"},
        conn,
    )
    if not row:
        return 1
    suffix = row["number"][len(prefix):]
    if len(suffix) != width or not suffix.isdigit():
        # foreign format in the column, start after it rather than guess
        return 1
    return int(suffix) + 1


def _format(prefix: str, seq: int, width: int, label: str) -> str:
    if seq >= 10 ** width:
        raise ConflictError(f"{label} number range exhausted for prefix {prefix}")
    return f"{prefix}{seq:0{width}d}"


def next_claim_number(conn: Optional[Connection] = None, now: Optional[datetime] = None) -> str:
    """CLM-YYMMDD-### with a per-day UTC sequence."""
    now = now or _utcnow()
    prefix = f"CLM-{now:%y%m%d}-"
    seq = _next_sequence("claims", prefix, CLAIM_SUFFIX_WIDTH, conn)
    return _format(prefix, seq, CLAIM_SUFFIX_WIDTH, "Claim")


def next_lead_number(conn: Optional[Connection] = None) -> str:
    """LEAD###### from a global sequence."""
    seq = _next_sequence("leads", "LEAD", LEAD_SUFFIX_WIDTH, conn)
    return _format("LEAD", seq, LEAD_SUFFIX_WIDTH, "Lead")


def next_policy_number(conn: Optional[Connection] = None, now: Optional[datetime] = None) -> str:
    """POL-YYYY-#### with a per-year sequence."""
    now = now or _utcnow()
    prefix = f"POL-{now:%Y}-"
    seq = _next_sequence("policies", prefix, POLICY_SUFFIX_WIDTH, conn)
    return _format(prefix, seq, POLICY_SUFFIX_WIDTH, "Policy")


def with_number_retry(create: Callable[[], T], label: str, attempts: Optional[int] = None) -> T:
    """
    Run ``create`` (which allocates a number and inserts inside its own
    transaction) until it stops colliding on the UNIQUE number column.
    """
    attempts = attempts or settings.CLAIM_NUMBER_ATTEMPTS
    for attempt in range(1, attempts + 1):
        try:
            return create()
        except IntegrityError as e:
            log.warning("numbering.collision", label=label, attempt=attempt, error=str(e.orig))
    raise ConflictError(f"Could not allocate a unique {label} number, please retry")
