"""What each viewer role is allowed to see of a complaint.

This is the one place the anonymity and publicity rules live:

* ``student-self`` sees everything, including its own student id.
* ``student-peer`` sees public complaints only, and never who filed them.
* ``admin`` sees everything, but the submitter label reads ``Hidden`` for
  anonymous complaints. The record underneath keeps the real id.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from complaintdesk.models import Complaint, ViewerRole

HIDDEN_LABEL = "Hidden"


@dataclass(frozen=True)
class ProjectedComplaint:
    complaint: Complaint
    role: ViewerRole
    submitter_label: Optional[str]

    @property
    def id(self) -> str:
        return self.complaint.id

    def rendered(self) -> Dict[str, Any]:
        """Fields a view may put on screen for this role."""
        c = self.complaint
        fields = {
            "id": c.id,
            "heading": c.heading,
            "description": c.description,
            "status": c.status.value,
            "statusLabel": c.status.label,
            "createdAt": c.created_at,
            "updatedAt": c.updated_at,
        }
        if self.role is ViewerRole.STUDENT_PEER:
            return fields
        fields["isAnonymous"] = c.is_anonymous
        fields["isPublic"] = c.is_public
        fields["submitter"] = self.submitter_label
        return fields


def project(complaint: Complaint, role: ViewerRole) -> Optional[ProjectedComplaint]:
    """Project one complaint for a viewer; None means it is filtered out.

    A role that is not a known viewer sees nothing.
    """
    try:
        role = ViewerRole(role)
    except ValueError:
        return None
    if role is ViewerRole.STUDENT_SELF:
        return ProjectedComplaint(complaint, role, complaint.student_id)
    if role is ViewerRole.ADMIN:
        label = HIDDEN_LABEL if complaint.is_anonymous else complaint.student_id
        return ProjectedComplaint(complaint, role, label)
    if not complaint.is_public:
        return None
    return ProjectedComplaint(complaint, role, None)


def project_all(complaints: Iterable[Complaint], role: ViewerRole) -> List[ProjectedComplaint]:
    projected = (project(c, role) for c in complaints)
    return [p for p in projected if p is not None]
