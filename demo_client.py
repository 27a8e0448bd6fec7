#!/usr/bin/env python3
"""Demo client that drives the complaints backend through the views."""
import argparse
import asyncio
import getpass
import sys

from complaintdesk import config
from complaintdesk.errors import ComplaintDeskError
from complaintdesk.services.api import ComplaintApi
from complaintdesk.services.views import (
    AdminComplaintsView,
    AdminDashboardView,
    MyComplaintsView,
    StudentDashboardView,
)
from complaintdesk.utils.metrics import MetricsCollector

metrics = MetricsCollector("demo")


def print_header(title: str):
    print("\n" + "=" * 70)
    print(title)
    print("=" * 70)


def print_stats(stats):
    print(f"  Total:       {stats.total}")
    print(f"  Pending:     {stats.pending}")
    print(f"  In progress: {stats.in_progress}")
    print(f"  Resolved:    {stats.resolved}")


def print_notices(view):
    for notice in view.recent_notices():
        print(f"⚠️  {notice['message']}")
    view.dismiss_notices()


def print_rows(rows):
    if not rows:
        print("  (none)")
    for row in rows:
        fields = row.rendered()
        who = f" by {fields['submitter']}" if fields.get("submitter") else ""
        print(f"  #{fields['id']:<6} [{fields['statusLabel']:<11}] {fields['heading']}{who}")


async def run_admin(api: ComplaintApi, args):
    dashboard = AdminDashboardView(api, interval=0, metrics_collector=metrics)
    await dashboard.mount()
    try:
        print_header("📊 ADMIN DASHBOARD")
        print_notices(dashboard)
        print_stats(dashboard.stats)
        print("\nRecent public complaints:")
        print_rows(dashboard.recent_public)

        if args.report:
            print_header("📄 REPORT")
            print(await dashboard.generate_report())
    finally:
        await dashboard.unmount()

    if args.set_status:
        complaint_id, status = args.set_status
        triage = AdminComplaintsView(api, metrics_collector=metrics)
        await triage.mount()
        try:
            settled = await triage.set_status(complaint_id, status)
            print(f"\n✓ Complaint {settled.id} is now {settled.status.label}")
        except ComplaintDeskError:
            print_notices(triage)
            raise
        finally:
            await triage.unmount()


async def run_student(api: ComplaintApi, args):
    mine = MyComplaintsView(api, metrics_collector=metrics)
    await mine.mount()
    try:
        if args.submit:
            heading, description = args.submit
            created = await mine.submit(heading, description,
                                        is_anonymous=args.anonymous, is_public=args.public)
            print(f"✓ Complaint submitted (ID: {created.id})")

        print_header("📝 MY COMPLAINTS")
        print_rows(mine.rows())
    finally:
        await mine.unmount()

    dashboard = StudentDashboardView(api, interval=0, metrics_collector=metrics)
    await dashboard.mount()
    try:
        print_header("📊 STUDENT DASHBOARD")
        print_notices(dashboard)
        print_stats(dashboard.stats)
        print("\nPublic feed:")
        print_rows(dashboard.public_feed)
    finally:
        await dashboard.unmount()


def print_metrics(summary):
    print_header("📈 CLIENT METRICS")
    for name, value in sorted(summary["counters"].items()):
        print(f"  {name:<20} {value}")
    for name, value in sorted(summary["timings_ms"].items()):
        print(f"  {name:<20} {value} ms avg")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Complaint desk demo client")
    parser.add_argument("--url", default=config.API_BASE_URL, help="Backend base URL")
    parser.add_argument("--metrics", action="store_true", help="Print client metrics on exit")
    sub = parser.add_subparsers(dest="role", required=True)

    admin = sub.add_parser("admin", help="Sign in as an admin")
    admin.add_argument("username")
    admin.add_argument("--set-status", nargs=2, metavar=("ID", "STATUS"))
    admin.add_argument("--report", action="store_true", help="Generate a report")

    student = sub.add_parser("student", help="Sign in as a student")
    student.add_argument("student_id")
    student.add_argument("--submit", nargs=2, metavar=("HEADING", "DESCRIPTION"))
    student.add_argument("--anonymous", action="store_true")
    student.add_argument("--public", action="store_true")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    api = ComplaintApi(base_url=args.url)
    password = getpass.getpass("Password: ")

    try:
        if args.role == "admin":
            api.login_admin(args.username, password)
            print(f"✓ Signed in as {api.session.name}")
            asyncio.run(run_admin(api, args))
        else:
            api.login_student(args.student_id, password)
            print(f"✓ Signed in as {api.session.name}")
            asyncio.run(run_student(api, args))
    except ComplaintDeskError as e:
        print(f"\n❌ {e.message}")
        return 1
    finally:
        api.logout()
        if args.metrics:
            print_metrics(metrics.summary())

    print("\n✅ Done")
    return 0


if __name__ == "__main__":
    sys.exit(main())
