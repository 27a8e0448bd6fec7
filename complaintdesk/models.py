from __future__ import annotations
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from complaintdesk.errors import RemoteRejection, ValidationFailure


class Status(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").title()

    @classmethod
    def parse(cls, value: Any) -> "Status":
        """Turn a caller-supplied target status into a Status."""
        try:
            return cls(value)
        except ValueError:
            allowed = ", ".join(s.value for s in cls)
            raise ValidationFailure(f"Invalid status {value!r}; expected one of: {allowed}") from None


class ViewerRole(str, Enum):
    STUDENT_SELF = "student-self"
    STUDENT_PEER = "student-peer"
    ADMIN = "admin"


@dataclass(frozen=True)
class Complaint:
    id: str
    heading: str
    description: str
    status: Status
    is_anonymous: bool
    is_public: bool
    student_id: str
    created_at: str
    updated_at: str

    def with_status(self, status: Status, updated_at: Optional[str] = None) -> "Complaint":
        return replace(self, status=status, updated_at=updated_at or utc_now())

    def to_wire(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "heading": self.heading,
            "description": self.description,
            "status": self.status.value,
            "anonymous": self.is_anonymous,
            "public": self.is_public,
            "student_id": self.student_id,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


@dataclass(frozen=True)
class ComplaintStats:
    total: int = 0
    pending: int = 0
    resolved: int = 0
    in_progress: int = 0


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def timestamp_key(value: str) -> datetime:
    """Sort key for a wire timestamp; unparsable values sort first."""
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (AttributeError, ValueError):
        return datetime.min.replace(tzinfo=timezone.utc)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


_TRUE_STRINGS = {"true", "1", "yes", "on"}


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return bool(value)


def as_id(value: Any) -> str:
    if value is None:
        return ""
    # 3.0 and 3 must compare equal once stringified
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value)


def _first(raw: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if raw.get(key) is not None:
            return raw[key]
    return None


def normalize(raw: Union[Mapping[str, Any], Complaint]) -> Complaint:
    """Map a transport record onto the in-memory Complaint.

    Accepts the snake_case wire names as well as the camelCase names some
    backends echo back. Never raises: missing optional fields get defaults,
    ``updated_at`` falls back to ``created_at``.
    """
    if isinstance(raw, Complaint):
        return raw

    try:
        status = Status(_first(raw, "status"))
    except ValueError:
        status = Status.PENDING

    created_at = _first(raw, "created_at", "createdAt") or ""
    updated_at = _first(raw, "updated_at", "updatedAt") or created_at

    return Complaint(
        id=as_id(_first(raw, "id")),
        heading=str(_first(raw, "heading") or ""),
        description=str(_first(raw, "description") or ""),
        status=status,
        is_anonymous=_as_bool(_first(raw, "anonymous", "isAnonymous")),
        is_public=_as_bool(_first(raw, "public", "isPublic")),
        student_id=as_id(_first(raw, "student_id", "studentId")),
        created_at=str(created_at),
        updated_at=str(updated_at),
    )


class ComplaintPayload(BaseModel):
    """Mandatory part of a raw complaint; anything else passes through."""

    model_config = ConfigDict(extra="allow")

    id: Union[int, str]
    heading: str
    status: Status

    @field_validator("heading")
    @classmethod
    def heading_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("heading must not be empty")
        return v


def parse_record(raw: Any) -> Optional[Complaint]:
    """Validate and normalize one raw record; None if it lacks mandatory fields."""
    if not isinstance(raw, Mapping):
        return None
    try:
        ComplaintPayload.model_validate(dict(raw))
    except ValidationError:
        return None
    return normalize(raw)


def parse_records(payload: Any) -> List[Complaint]:
    """Validate a list response, dropping malformed records."""
    if not isinstance(payload, list):
        raise RemoteRejection("Unexpected response from server")
    complaints = []
    for raw in payload:
        complaint = parse_record(raw)
        if complaint is not None:
            complaints.append(complaint)
    return complaints


class ComplaintCollection:
    """Locally held complaints of one view, keyed by id, in fetch order."""

    def __init__(self, complaints: Iterable[Complaint] = ()):
        self._items: Dict[str, Complaint] = {}
        self.replace_all(complaints)

    def replace_all(self, complaints: Iterable[Complaint]) -> None:
        self._items = {c.id: c for c in complaints}

    def get(self, complaint_id: str) -> Optional[Complaint]:
        return self._items.get(as_id(complaint_id))

    def put(self, complaint: Complaint) -> None:
        self._items[complaint.id] = complaint

    def restore(self, complaint: Complaint) -> bool:
        """Put back a snapshot, unless a refresh has dropped the record since."""
        if complaint.id not in self._items:
            return False
        self._items[complaint.id] = complaint
        return True

    def __contains__(self, complaint_id: object) -> bool:
        return as_id(complaint_id) in self._items

    def __iter__(self) -> Iterator[Complaint]:
        return iter(list(self._items.values()))

    def __len__(self) -> int:
        return len(self._items)
