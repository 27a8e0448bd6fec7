"""Views over the complaints backend.

Each view owns its collection and its own refresh cycle; nothing is shared
between two views, even when they show the same complaints.
"""
from __future__ import annotations
import asyncio
from typing import Any, List, Optional, Tuple

from complaintdesk import config
from complaintdesk.errors import ComplaintDeskError
from complaintdesk.models import Complaint, ComplaintCollection, ComplaintStats, ViewerRole
from complaintdesk.services.aggregator import aggregate, recent_public
from complaintdesk.services.lifecycle import LifecycleController
from complaintdesk.services.sync import SyncScheduler
from complaintdesk.services.visibility import ProjectedComplaint, project_all
from complaintdesk.utils.logger import ServiceLogger
from complaintdesk.utils.metrics import MetricsCollector

logger = ServiceLogger("views")


class ComplaintView:
    role = ViewerRole.STUDENT_SELF
    default_interval: Optional[float] = None

    def __init__(self, api, interval: Optional[float] = None,
                 metrics_collector: Optional[MetricsCollector] = None):
        self.api = api
        self.collection = ComplaintCollection()
        # Failures this view was told about, for the notice banner
        self.notices = ServiceLogger(f"notices.{type(self).__name__}")
        self.scheduler = SyncScheduler(
            self.fetch, self.apply,
            interval=self.default_interval if interval is None else interval,
            name=type(self).__name__,
            metrics_collector=metrics_collector,
            log=self.notices,
        )

    def fetch(self) -> Any:
        raise NotImplementedError

    def apply(self, data: Any) -> None:
        self.collection.replace_all(data)

    def rows(self) -> List[ProjectedComplaint]:
        return project_all(self.collection, self.role)

    @property
    def refreshing(self) -> bool:
        return self.scheduler.refreshing

    @property
    def last_error(self) -> Optional[str]:
        return self.scheduler.last_error

    def recent_notices(self, limit: int = 10) -> List[dict]:
        """Warnings and errors logged by this view, oldest first."""
        return self.notices.get_recent_logs(limit=limit, min_level="WARNING")

    def dismiss_notices(self) -> None:
        self.notices.clear_logs()

    async def mount(self) -> None:
        await self.scheduler.mount()

    async def unmount(self) -> None:
        await self.scheduler.unmount()

    async def refresh_now(self) -> None:
        await self.scheduler.refresh_now()


class AdminDashboardView(ComplaintView):
    """Stats over every complaint plus the most recent public ones."""

    role = ViewerRole.ADMIN
    default_interval = config.REFRESH_INTERVAL

    def __init__(self, api, interval: Optional[float] = None, recent_limit: int = config.RECENT_PUBLIC_LIMIT,
                 metrics_collector: Optional[MetricsCollector] = None):
        super().__init__(api, interval, metrics_collector)
        self.recent_limit = recent_limit
        self.stats = ComplaintStats()
        self.recent_public: List[ProjectedComplaint] = []
        self.report: Optional[str] = None

    def fetch(self) -> List[Complaint]:
        return self.api.list_all_complaints()

    def apply(self, data: List[Complaint]) -> None:
        super().apply(data)
        self.stats = aggregate(self.collection)
        self.recent_public = project_all(recent_public(self.collection, self.recent_limit), self.role)

    async def generate_report(self) -> str:
        self.report = await asyncio.to_thread(self.api.generate_report)
        logger.info("Report generated")
        return self.report


class StudentDashboardView(ComplaintView):
    """The student's own stats and the public feed."""

    role = ViewerRole.STUDENT_SELF
    default_interval = config.REFRESH_INTERVAL

    def __init__(self, api, interval: Optional[float] = None, recent_limit: int = config.RECENT_PUBLIC_LIMIT,
                 metrics_collector: Optional[MetricsCollector] = None):
        super().__init__(api, interval, metrics_collector)
        self.recent_limit = recent_limit
        self.stats = ComplaintStats()
        self.public_feed: List[ProjectedComplaint] = []

    def fetch(self) -> Tuple[Optional[List[Complaint]], Optional[List[Complaint]], Optional[ComplaintDeskError]]:
        """Both requests are attempted; one failing does not void the other.

        Raises only when neither succeeds.
        """
        own = public = error = None
        try:
            own = self.api.list_own_complaints()
        except ComplaintDeskError as e:
            error = e
        try:
            public = self.api.list_public_complaints(limit=self.recent_limit)
        except ComplaintDeskError as e:
            if error is not None:
                raise error
            error = e
        return own, public, error

    def apply(self, data) -> None:
        own, public, error = data
        if own is not None:
            super().apply(own)
            self.stats = aggregate(self.collection)
        if public is not None:
            self.public_feed = project_all(recent_public(public, self.recent_limit), ViewerRole.STUDENT_PEER)
        if error is not None:
            self.scheduler.metrics.increment("refresh_failures")
            self.notices.warning(f"{type(self).__name__} refresh incomplete: {error.message}",
                                 view=type(self).__name__)
            self.scheduler.last_error = error.message


class AdminComplaintsView(ComplaintView):
    """Triage list; status changes go through the lifecycle controller."""

    role = ViewerRole.ADMIN

    def __init__(self, api, interval: Optional[float] = None,
                 metrics_collector: Optional[MetricsCollector] = None):
        super().__init__(api, interval, metrics_collector)
        self.lifecycle = LifecycleController(api, self.collection, metrics_collector=metrics_collector,
                                             log=self.notices)

    def fetch(self) -> List[Complaint]:
        return self.api.list_all_complaints()

    async def set_status(self, complaint_id, new_status) -> Complaint:
        return await self.lifecycle.request_status_change(complaint_id, new_status)


class MyComplaintsView(ComplaintView):
    role = ViewerRole.STUDENT_SELF

    def fetch(self) -> List[Complaint]:
        return self.api.list_own_complaints()

    async def submit(self, heading: str, description: str,
                     is_anonymous: bool = False, is_public: bool = False) -> Complaint:
        complaint = await asyncio.to_thread(self.api.submit_complaint, heading, description,
                                            is_anonymous, is_public)
        self.collection.put(complaint)
        return complaint
