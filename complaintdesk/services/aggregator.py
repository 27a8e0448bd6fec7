from __future__ import annotations
from typing import Iterable, List

from complaintdesk import config
from complaintdesk.models import Complaint, ComplaintStats, Status, timestamp_key


def aggregate(complaints: Iterable[Complaint]) -> ComplaintStats:
    """Count complaints per status in one pass."""
    counts = {status: 0 for status in Status}
    total = 0
    for c in complaints:
        counts[c.status] += 1
        total += 1
    return ComplaintStats(
        total=total,
        pending=counts[Status.PENDING],
        resolved=counts[Status.RESOLVED],
        in_progress=counts[Status.IN_PROGRESS],
    )


def recent_public(complaints: Iterable[Complaint], limit: int = config.RECENT_PUBLIC_LIMIT) -> List[Complaint]:
    """Newest public complaints first, at most ``limit`` of them."""
    public = [c for c in complaints if c.is_public]
    public.sort(key=lambda c: timestamp_key(c.created_at), reverse=True)
    return public[:limit]
