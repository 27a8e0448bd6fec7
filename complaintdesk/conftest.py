"""In-memory complaints backend for HTTP-level tests."""
from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest
from fastapi import FastAPI, Header, HTTPException
from fastapi.testclient import TestClient
from pydantic import BaseModel

from complaintdesk.services.api import ComplaintApi

BASE_URL = "http://testserver/api"

STUDENTS = {"S1": ("pw1", "Sam One"), "S2": ("pw2", "Sky Two")}
ADMINS = {"admin": ("secret", "Dean")}


class StudentLogin(BaseModel):
    studentId: str
    password: str


class AdminLogin(BaseModel):
    username: str
    password: str


class SubmitBody(BaseModel):
    heading: str
    description: str
    isAnonymous: bool = False
    isPublic: bool = False
    studentId: str


class StatusBody(BaseModel):
    status: str


def make_backend() -> FastAPI:
    app = FastAPI(title="Complaints Backend")
    app.state.complaints = []
    app.state.tokens = {}
    app.state.forced_status = None
    app.state.fail_updates = False
    clock = {"t": datetime(2024, 1, 1, tzinfo=timezone.utc)}

    def now() -> str:
        clock["t"] += timedelta(minutes=1)
        return clock["t"].isoformat()

    def caller(authorization: Optional[str]) -> tuple:
        token = (authorization or "").replace("Bearer ", "")
        if token not in app.state.tokens:
            raise HTTPException(status_code=401, detail="Not authenticated")
        return app.state.tokens[token]

    @app.post("/api/login/student")
    def login_student(body: StudentLogin):
        if STUDENTS.get(body.studentId, (None,))[0] != body.password:
            raise HTTPException(status_code=401, detail="Invalid student ID or password")
        token = f"tok-{body.studentId}"
        app.state.tokens[token] = ("student", body.studentId)
        return {"token": token, "name": STUDENTS[body.studentId][1], "id": body.studentId}

    @app.post("/api/login/admin")
    def login_admin(body: AdminLogin):
        if ADMINS.get(body.username, (None,))[0] != body.password:
            raise HTTPException(status_code=401, detail="Invalid username or password")
        token = f"tok-admin-{body.username}"
        app.state.tokens[token] = ("admin", body.username)
        return {"token": token, "name": ADMINS[body.username][1]}

    @app.post("/api/student/complaints")
    def submit(body: SubmitBody, authorization: Optional[str] = Header(None)):
        caller(authorization)
        record = {
            "id": len(app.state.complaints) + 1,
            "heading": body.heading,
            "description": body.description,
            "status": "pending",
            "anonymous": body.isAnonymous,
            "public": body.isPublic,
            "student_id": body.studentId,
            "created_at": now(),
        }
        app.state.complaints.append(record)
        return record

    @app.get("/api/student/complaints")
    def list_public(public: bool = False, limit: int = 50, authorization: Optional[str] = Header(None)):
        caller(authorization)
        rows = [c for c in app.state.complaints if c["public"] or not public]
        return list(reversed(rows))[:limit]

    @app.get("/api/student/complaints/{student_id}")
    def list_own(student_id: str, authorization: Optional[str] = Header(None)):
        caller(authorization)
        return [c for c in app.state.complaints if c["student_id"] == student_id]

    @app.get("/api/admin/complaints")
    def list_all(authorization: Optional[str] = Header(None)):
        role, _ = caller(authorization)
        if role != "admin":
            raise HTTPException(status_code=403, detail="Admins only")
        return app.state.complaints

    @app.put("/api/admin/complaints/{complaint_id}")
    def update(complaint_id: int, body: StatusBody, authorization: Optional[str] = Header(None)):
        caller(authorization)
        if app.state.fail_updates:
            raise HTTPException(status_code=500, detail="Database unavailable")
        for c in app.state.complaints:
            if c["id"] == complaint_id:
                c["status"] = app.state.forced_status or body.status
                c["updated_at"] = now()
                return c
        raise HTTPException(status_code=404, detail="Complaint not found")

    @app.post("/api/admin/report")
    def report(authorization: Optional[str] = Header(None)):
        caller(authorization)
        return {"report": f"{len(app.state.complaints)} complaints on file"}

    return app


@pytest.fixture
def backend():
    return make_backend()


@pytest.fixture
def http(backend):
    return TestClient(backend)


@pytest.fixture
def student_api(http):
    api = ComplaintApi(base_url=BASE_URL, http=http)
    api.login_student("S1", "pw1")
    return api


@pytest.fixture
def admin_api(http):
    api = ComplaintApi(base_url=BASE_URL, http=http)
    api.login_admin("admin", "secret")
    return api
