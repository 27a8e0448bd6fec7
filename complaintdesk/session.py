from __future__ import annotations
from dataclasses import dataclass
from typing import Optional

STUDENT = "student"
ADMIN = "admin"


@dataclass
class SessionState:
    """Who is signed in. Held for the session only and wiped on logout."""

    token: Optional[str] = None
    role: Optional[str] = None
    name: Optional[str] = None
    student_id: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    @property
    def is_admin(self) -> bool:
        return self.is_authenticated and self.role == ADMIN

    @property
    def is_student(self) -> bool:
        return self.is_authenticated and self.role == STUDENT

    def clear(self) -> None:
        self.token = None
        self.role = None
        self.name = None
        self.student_id = None
