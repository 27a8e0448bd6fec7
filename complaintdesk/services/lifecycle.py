"""Admin status changes with optimistic update and rollback.

Any status may move to any other; the only rejections are a target that is
not a status and a complaint that already has a change in flight.
"""
from __future__ import annotations
import asyncio
import time
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from complaintdesk.errors import Busy, ValidationFailure
from complaintdesk.models import Complaint, ComplaintCollection, Status, as_id, normalize
from complaintdesk.utils.logger import ServiceLogger
from complaintdesk.utils.metrics import MetricsCollector

logger = ServiceLogger("lifecycle")
metrics = MetricsCollector("lifecycle")


class EntityState(str, Enum):
    IDLE = "idle"
    PENDING_LOCAL = "pending-local"
    RECONCILING = "reconciling"


class LifecycleController:
    """Mediates status changes for the complaints held by one view."""

    def __init__(self, api, collection: ComplaintCollection,
                 metrics_collector: Optional[MetricsCollector] = None,
                 log: Optional[ServiceLogger] = None):
        self.api = api
        self.collection = collection
        self.metrics = metrics_collector or metrics
        self.log = log or logger
        self._states: Dict[str, EntityState] = {}

    def state_of(self, complaint_id) -> EntityState:
        return self._states.get(as_id(complaint_id), EntityState.IDLE)

    def in_flight(self) -> List[str]:
        return list(self._states)

    async def request_status_change(self, complaint_id, new_status) -> Complaint:
        """Patch locally, push to the server, then reconcile or roll back.

        Raises ValidationFailure or Busy without touching anything, and
        re-raises whatever the request raised after restoring the snapshot.
        """
        target = Status.parse(new_status)
        complaint_id = as_id(complaint_id)

        if self.state_of(complaint_id) is not EntityState.IDLE:
            self.metrics.increment("status_busy")
            self.log.warning(f"Status change for {complaint_id} rejected: already in flight",
                             complaint_id=complaint_id)
            raise Busy(complaint_id)

        snapshot = self.collection.get(complaint_id)
        if snapshot is None:
            raise ValidationFailure(f"Complaint {complaint_id} is not in this view")

        optimistic = snapshot.with_status(target)
        self.collection.put(optimistic)
        self._states[complaint_id] = EntityState.PENDING_LOCAL
        self.metrics.gauge("in_flight", len(self._states))
        self.metrics.increment("status_changes", tags={"status": target.value})
        start_time = time.time()

        try:
            try:
                response = await asyncio.to_thread(self.api.update_status, complaint_id, target)
            except Exception as e:
                self.collection.restore(snapshot)
                self.metrics.increment("status_rollbacks")
                self.log.error(f"Status change for {complaint_id} failed, rolled back to "
                               f"{snapshot.status.value}: {getattr(e, 'message', e)}",
                               complaint_id=complaint_id)
                raise

            self._states[complaint_id] = EntityState.RECONCILING
            settled = self._reconcile(complaint_id, optimistic, response)
            self.log.info(f"Complaint {complaint_id} is now {settled.status.value}",
                          complaint_id=complaint_id)
            return settled
        finally:
            self._states.pop(complaint_id, None)
            self.metrics.gauge("in_flight", len(self._states))
            self.metrics.timing("update_ms", (time.time() - start_time) * 1000)

    def _reconcile(self, complaint_id: str, optimistic: Complaint,
                   response: Optional[Mapping[str, Any]]) -> Complaint:
        """Server state overwrites the optimistic patch.

        Whatever the server leaves out comes from the optimistic patch, never
        from a refresh that landed while the request was in flight: the
        update settled after that refresh, so it wins.
        """
        current = self.collection.get(complaint_id)

        if response and response.get("id") is not None and response.get("heading"):
            settled = normalize(response)
        else:
            response = response or {}
            try:
                status = Status(response.get("status"))
            except ValueError:
                status = optimistic.status
            updated_at = response.get("updated_at") or response.get("updatedAt") or optimistic.updated_at
            settled = (current or optimistic).with_status(status, updated_at=str(updated_at))

        # A refresh may have dropped the record while the request was in flight
        if current is not None:
            self.collection.put(settled)
        return settled
