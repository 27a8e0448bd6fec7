"""Client configuration: backend URL, endpoints and refresh policy."""
import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env file from package directory
env_file = Path(__file__).parent / ".env"
if env_file.exists():
    load_dotenv(env_file)

API_BASE_URL = os.getenv("COMPLAINTDESK_API_URL", "http://localhost:8000/api").rstrip("/")
REQUEST_TIMEOUT = float(os.getenv("COMPLAINTDESK_TIMEOUT", "10"))
REFRESH_INTERVAL = float(os.getenv("COMPLAINTDESK_REFRESH_INTERVAL", "30"))
RECENT_PUBLIC_LIMIT = int(os.getenv("COMPLAINTDESK_RECENT_LIMIT", "5"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_DIR = os.getenv("COMPLAINTDESK_LOG_DIR")

ENDPOINTS = {
    "student_login": "/login/student",
    "admin_login": "/login/admin",
    "student_complaints": "/student/complaints",
    "student_complaints_by_id": "/student/complaints/{student_id}",
    "admin_complaints": "/admin/complaints",
    "admin_update_complaint": "/admin/complaints/{complaint_id}",
    "admin_report": "/admin/report",
}

DEFAULT_HEADERS = {
    "Content-Type": "application/json",
}


def endpoint_path(name: str, **params) -> str:
    """Get the path for an endpoint, filling in any path parameters."""
    template = ENDPOINTS.get(name)
    if not template:
        raise ValueError(f"Unknown endpoint: {name}")
    return template.format(**params)
