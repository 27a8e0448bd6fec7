"""HTTP transport to the complaints backend."""
from __future__ import annotations
import json
from typing import Any, Dict, List, Optional, Union

import requests
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from complaintdesk import config
from complaintdesk.errors import RemoteRejection, TransportFailure, ValidationFailure
from complaintdesk.models import Complaint, Status, parse_record, parse_records
from complaintdesk.session import ADMIN, STUDENT, SessionState
from complaintdesk.utils.logger import ServiceLogger

logger = ServiceLogger("api")


class StudentLoginRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    student_id: str = Field(alias="studentId", min_length=1)
    password: str = Field(min_length=1)


class AdminLoginRequest(BaseModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


class LoginResponse(BaseModel):
    token: str = Field(min_length=1)
    name: Optional[str] = None
    id: Optional[Union[int, str]] = None


class SubmitComplaintRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    heading: str
    description: str
    is_anonymous: bool = Field(False, alias="isAnonymous")
    is_public: bool = Field(False, alias="isPublic")
    student_id: str = Field(alias="studentId")

    @field_validator("heading", "description")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be empty")
        return v


class StatusUpdateRequest(BaseModel):
    status: Status


def _validation_message(exc: ValidationError) -> str:
    first = exc.errors()[0]
    field = ".".join(str(part) for part in first.get("loc", ())) or "input"
    return f"{field}: {first.get('msg', 'invalid value')}"


def _error_message(response, fallback: str) -> str:
    try:
        payload = response.json()
    except ValueError:
        return fallback
    if isinstance(payload, dict):
        message = payload.get("detail") or payload.get("message")
        if isinstance(message, str) and message:
            return message
    return fallback


class ComplaintApi:
    """Client for the complaints backend.

    ``http`` is anything with a requests-style ``request`` method; a
    ``requests.Session`` is created when none is given.
    """

    def __init__(self, base_url: str = config.API_BASE_URL, session: Optional[SessionState] = None,
                 http=None, timeout: float = config.REQUEST_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self.session = session or SessionState()
        self.http = http or requests.Session()
        self.timeout = timeout

    def _request(self, method: str, path: str, *, body: Optional[dict] = None,
                 params: Optional[dict] = None, auth: bool = True,
                 failure_message: str = "Request failed") -> Any:
        headers = dict(config.DEFAULT_HEADERS)
        if auth:
            headers["Authorization"] = f"Bearer {self.session.token}"

        url = f"{self.base_url}{path}"
        try:
            response = self.http.request(method, url, json=body, params=params,
                                         headers=headers, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.warning(f"{method} {path} failed: {e}", path=path)
            raise TransportFailure() from e

        if not 200 <= response.status_code < 300:
            message = _error_message(response, failure_message)
            logger.warning(f"{method} {path} rejected with {response.status_code}: {message}",
                           path=path, status_code=response.status_code)
            raise RemoteRejection(message, status_code=response.status_code)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return None

    def _require(self, role: str) -> None:
        if not self.session.is_authenticated:
            raise ValidationFailure("Please sign in first")
        if self.session.role != role:
            raise ValidationFailure(f"Only {role}s can do this")

    def _records(self, payload: Any) -> List[Complaint]:
        complaints = parse_records(payload)
        dropped = len(payload) - len(complaints)
        if dropped:
            logger.warning(f"Dropped {dropped} malformed complaint record(s)", dropped=dropped)
        return complaints

    # ---------- Session ----------

    def login_student(self, student_id: str, password: str) -> SessionState:
        try:
            req = StudentLoginRequest(studentId=student_id, password=password)
        except ValidationError as e:
            raise ValidationFailure("Please enter your student ID and password") from e

        data = self._request("POST", config.endpoint_path("student_login"),
                             body=req.model_dump(by_alias=True), auth=False,
                             failure_message="Invalid credentials")
        resp = self._login_response(data)

        self.session.token = resp.token
        self.session.role = STUDENT
        self.session.name = resp.name or req.student_id
        self.session.student_id = str(resp.id) if resp.id is not None else req.student_id
        logger.info(f"Student {self.session.student_id} signed in")
        return self.session

    def login_admin(self, username: str, password: str) -> SessionState:
        try:
            req = AdminLoginRequest(username=username, password=password)
        except ValidationError as e:
            raise ValidationFailure("Please enter your username and password") from e

        data = self._request("POST", config.endpoint_path("admin_login"),
                             body=req.model_dump(), auth=False,
                             failure_message="Invalid credentials")
        resp = self._login_response(data)

        self.session.token = resp.token
        self.session.role = ADMIN
        self.session.name = resp.name or req.username
        self.session.student_id = None
        logger.info(f"Admin {self.session.name} signed in")
        return self.session

    @staticmethod
    def _login_response(data: Any) -> LoginResponse:
        try:
            return LoginResponse.model_validate(data)
        except ValidationError as e:
            raise RemoteRejection("Login response did not include a token") from e

    def logout(self) -> None:
        logger.info("Signed out")
        self.session.clear()

    # ---------- Student ----------

    def submit_complaint(self, heading: str, description: str,
                         is_anonymous: bool = False, is_public: bool = False) -> Complaint:
        self._require(STUDENT)
        try:
            req = SubmitComplaintRequest(heading=heading, description=description,
                                         isAnonymous=is_anonymous, isPublic=is_public,
                                         studentId=self.session.student_id)
        except ValidationError as e:
            raise ValidationFailure(_validation_message(e)) from e

        data = self._request("POST", config.endpoint_path("student_complaints"),
                             body=req.model_dump(by_alias=True),
                             failure_message="Failed to submit complaint")
        complaint = parse_record(data)
        if complaint is None:
            raise RemoteRejection("Server did not return the created complaint")
        logger.info(f"Submitted complaint {complaint.id}", complaint_id=complaint.id)
        return complaint

    def list_own_complaints(self) -> List[Complaint]:
        self._require(STUDENT)
        path = config.endpoint_path("student_complaints_by_id", student_id=self.session.student_id)
        return self._records(self._request("GET", path, failure_message="Failed to fetch your complaints"))

    def list_public_complaints(self, limit: int = config.RECENT_PUBLIC_LIMIT) -> List[Complaint]:
        self._require(STUDENT)
        data = self._request("GET", config.endpoint_path("student_complaints"),
                             params={"public": "true", "limit": limit},
                             failure_message="Failed to fetch public complaints")
        return self._records(data)

    # ---------- Admin ----------

    def list_all_complaints(self) -> List[Complaint]:
        self._require(ADMIN)
        data = self._request("GET", config.endpoint_path("admin_complaints"),
                             failure_message="Failed to fetch complaints")
        return self._records(data)

    def update_status(self, complaint_id: str, status: Status) -> Optional[Dict[str, Any]]:
        """Set a complaint's status; returns whatever the server sent back, if anything."""
        self._require(ADMIN)
        body = StatusUpdateRequest(status=Status.parse(status)).model_dump(mode="json")
        data = self._request("PUT", config.endpoint_path("admin_update_complaint", complaint_id=complaint_id),
                             body=body, failure_message="Failed to update complaint status")
        return data if isinstance(data, dict) else None

    def generate_report(self) -> str:
        self._require(ADMIN)
        data = self._request("POST", config.endpoint_path("admin_report"),
                             failure_message="Failed to generate report")
        if isinstance(data, dict) and isinstance(data.get("report"), str):
            return data["report"]
        return json.dumps(data, indent=2)
