"""Tests for the dashboard and list views."""
import asyncio

import pytest

from complaintdesk.errors import RemoteRejection, TransportFailure
from complaintdesk.models import ComplaintStats, Status, normalize
from complaintdesk.services.views import (
    AdminComplaintsView,
    AdminDashboardView,
    MyComplaintsView,
    StudentDashboardView,
)
from complaintdesk.utils.metrics import MetricsCollector


class FakeAdminApi:
    def __init__(self, records):
        self.records = records

    def list_all_complaints(self):
        return [normalize(r) for r in self.records]

    def generate_report(self):
        return "weekly report"


def record(cid, public, created, status="pending", anonymous=False):
    return {"id": cid, "heading": f"complaint {cid}", "status": status, "public": public,
            "anonymous": anonymous, "student_id": f"S{cid}", "created_at": created}


def test_scenario_recent_public_panel():
    records = [
        record(1, False, "2024-01-01T00:00:00Z", "resolved"),
        record(2, True, "2024-01-02T00:00:00Z", anonymous=True),
        record(3, False, "2024-01-03T00:00:00Z", "in_progress"),
        record(4, True, "2024-01-04T00:00:00Z"),
        record(5, False, "2024-01-05T00:00:00Z"),
    ]
    view = AdminDashboardView(FakeAdminApi(records), interval=0)

    async def scenario():
        await view.mount()
        await view.unmount()

    asyncio.run(scenario())
    assert [p.id for p in view.recent_public] == ["4", "2"]
    assert view.recent_public[1].submitter_label == "Hidden"
    assert view.stats == ComplaintStats(total=5, pending=3, resolved=1, in_progress=1)


def test_recent_public_panel_truncates():
    records = [record(i, True, f"2024-01-{i:02d}T00:00:00Z") for i in range(1, 9)]
    view = AdminDashboardView(FakeAdminApi(records), interval=0)
    asyncio.run(view.mount())
    assert [p.id for p in view.recent_public] == ["8", "7", "6", "5", "4"]


def test_admin_dashboard_report():
    view = AdminDashboardView(FakeAdminApi([]), interval=0)
    assert asyncio.run(view.generate_report()) == "weekly report"
    assert view.report == "weekly report"


def test_scenario_server_status_wins(student_api, admin_api, backend):
    created = student_api.submit_complaint("Broken lift", "Stuck on floor 2")
    backend.state.forced_status = "in_progress"
    view = AdminComplaintsView(admin_api)

    async def scenario():
        await view.mount()
        settled = await view.set_status(created.id, "resolved")
        await view.unmount()
        return settled

    settled = asyncio.run(scenario())
    assert settled.status is Status.IN_PROGRESS
    [row] = view.rows()
    assert row.complaint.status is Status.IN_PROGRESS
    assert row.complaint.updated_at != row.complaint.created_at


def test_failed_update_rolls_back_displayed_status(student_api, admin_api, backend):
    created = student_api.submit_complaint("Mould", "Bathroom ceiling")
    backend.state.fail_updates = True
    view = AdminComplaintsView(admin_api)

    async def scenario():
        await view.mount()
        with pytest.raises(RemoteRejection) as exc:
            await view.set_status(created.id, "resolved")
        await view.unmount()
        return exc.value

    error = asyncio.run(scenario())
    assert error.message == "Database unavailable"
    assert view.collection.get(created.id).status is Status.PENDING


def test_student_dashboard(student_api, http):
    student_api.submit_complaint("Mine, private", "a")
    student_api.submit_complaint("Mine, public", "b", is_public=True, is_anonymous=True)
    view = StudentDashboardView(student_api, interval=0)

    async def scenario():
        await view.mount()
        await view.unmount()

    asyncio.run(scenario())
    assert view.last_error is None
    assert view.stats.total == 2 and view.stats.pending == 2
    assert [p.complaint.heading for p in view.public_feed] == ["Mine, public"]
    assert "submitter" not in view.public_feed[0].rendered()


def test_my_complaints_submit_shows_immediately(student_api):
    view = MyComplaintsView(student_api)

    async def scenario():
        await view.mount()
        assert view.rows() == []
        created = await view.submit("Loud music", "Every night", is_anonymous=True)
        await view.unmount()
        return created

    created = asyncio.run(scenario())
    [row] = view.rows()
    assert row.id == created.id
    assert row.submitter_label == "S1"


def test_failed_mount_records_error(admin_api, http):
    admin_api.session.role = "student"
    view = AdminDashboardView(admin_api, interval=0)
    asyncio.run(view.mount())
    assert view.last_error == "Only admins can do this"
    assert view.stats == ComplaintStats()


class FakeStudentApi:
    def __init__(self, own, public, own_error=None, public_error=None):
        self.own = own
        self.public = public
        self.own_error = own_error
        self.public_error = public_error

    def list_own_complaints(self):
        if self.own_error is not None:
            raise self.own_error
        return [normalize(r) for r in self.own]

    def list_public_complaints(self, limit=5):
        if self.public_error is not None:
            raise self.public_error
        return [normalize(r) for r in self.public]


def test_student_dashboard_keeps_stats_when_public_feed_fails():
    api = FakeStudentApi(own=[record(1, False, "2024-01-01T00:00:00Z", "resolved"),
                              record(2, False, "2024-01-02T00:00:00Z")],
                         public=[], public_error=RemoteRejection("Failed to fetch public complaints", 500))
    metrics = MetricsCollector("test")
    view = StudentDashboardView(api, interval=0, metrics_collector=metrics)

    async def scenario():
        await view.mount()
        await view.unmount()

    asyncio.run(scenario())
    assert view.stats == ComplaintStats(total=2, pending=1, resolved=1, in_progress=0)
    assert view.public_feed == []
    assert view.last_error == "Failed to fetch public complaints"
    assert metrics.count("refresh_failures") == 1
    assert metrics.count("refresh_cycles") == 1


def test_student_dashboard_keeps_public_feed_when_own_fails():
    api = FakeStudentApi(own=[], public=[record(7, True, "2024-01-07T00:00:00Z")],
                         own_error=TransportFailure())
    view = StudentDashboardView(api, interval=0)

    async def scenario():
        await view.mount()
        await view.unmount()

    asyncio.run(scenario())
    assert [p.id for p in view.public_feed] == ["7"]
    assert view.stats == ComplaintStats()
    assert view.last_error == "Please check your network connection"


def test_student_dashboard_fails_cycle_when_both_fail():
    api = FakeStudentApi(own=[], public=[], own_error=TransportFailure(),
                         public_error=RemoteRejection("Failed to fetch public complaints", 500))
    view = StudentDashboardView(api, interval=0)

    async def scenario():
        await view.mount()
        with pytest.raises(TransportFailure):
            await view.refresh_now()
        await view.unmount()

    asyncio.run(scenario())
    assert view.last_error == "Please check your network connection"


def test_partial_error_cleared_by_next_full_refresh():
    api = FakeStudentApi(own=[], public=[], public_error=TransportFailure())
    view = StudentDashboardView(api, interval=0)

    async def scenario():
        await view.mount()
        assert view.last_error is not None
        api.public_error = None
        await view.refresh_now()
        await view.unmount()

    asyncio.run(scenario())
    assert view.last_error is None


def test_triage_view_reports_to_injected_metrics(student_api, admin_api):
    created = student_api.submit_complaint("Broken window", "Common room")
    metrics = MetricsCollector("test")
    view = AdminComplaintsView(admin_api, metrics_collector=metrics)

    async def scenario():
        await view.mount()
        await view.set_status(created.id, "in_progress")
        await view.unmount()

    asyncio.run(scenario())
    assert metrics.count("status_changes") == 1
    assert metrics.count("refresh_cycles") == 1
    assert metrics.summary()["gauges"]["in_flight"] == 0


def test_failures_show_up_as_notices_until_dismissed(student_api, admin_api, backend):
    created = student_api.submit_complaint("Mould", "Bathroom ceiling")
    backend.state.fail_updates = True
    view = AdminComplaintsView(admin_api)

    async def scenario():
        await view.mount()
        with pytest.raises(RemoteRejection):
            await view.set_status(created.id, "resolved")
        await view.unmount()

    asyncio.run(scenario())
    [notice] = view.recent_notices()
    assert notice["level"] == "ERROR"
    assert "Database unavailable" in notice["message"]
    view.dismiss_notices()
    assert view.recent_notices() == []


def test_failed_refresh_is_a_notice(admin_api):
    admin_api.session.role = "student"
    view = AdminDashboardView(admin_api, interval=0)
    asyncio.run(view.mount())
    [notice] = view.recent_notices()
    assert notice["level"] == "WARNING"
    assert notice["extra"] == {"view": "AdminDashboardView"}
    # another view of the same kind has its own notices
    assert AdminDashboardView(admin_api, interval=0).recent_notices() == []


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
