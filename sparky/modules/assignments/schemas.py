from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime
from sparky.modules.profiles.schemas import ProfileResponse


class AssignmentCreate(BaseModel):
    assignee_id: str
    assignor_id: str


class AssignmentResponse(BaseModel):
    id: str
    assignee_id: str
    assignor_id: str
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    assignee: Optional[ProfileResponse] = None
    assignor: Optional[ProfileResponse] = None

    class Config:
        from_attributes = True


class AssignmentEnvelope(BaseModel):
    success: bool = True
    message: str
    assignment: AssignmentResponse


class AssignmentListEnvelope(BaseModel):
    success: bool = True
    assignments: List[AssignmentResponse]
    count: int


class ProfileAssignments(BaseModel):
    id: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    role: str
    managed_by: List[ProfileResponse] = []
    manages: List[ProfileResponse] = []


class HierarchyOverviewEnvelope(BaseModel):
    success: bool = True
    profiles: List[ProfileAssignments]
    count: int
