from fastapi import APIRouter, Depends
from sparky.core.dependencies import require_management
from sparky.database.supabase_client import get_supabase_admin
from sparky.modules.assignments.schemas import (
    AssignmentCreate, AssignmentEnvelope, AssignmentListEnvelope, HierarchyOverviewEnvelope
)
from sparky.modules.assignments.service import AssignmentService
from sparky.modules.profiles.schemas import ProfileResponse
from supabase import Client
from typing import Optional

router = APIRouter(tags=["assignments"])


def get_assignment_service(supabase: Client = Depends(get_supabase_admin)) -> AssignmentService:
    return AssignmentService(supabase)


@router.get("/assignments", response_model=AssignmentListEnvelope)
async def list_assignments(
    assignor_id: Optional[str] = None,
    assignee_id: Optional[str] = None,
    profile: ProfileResponse = Depends(require_management),
    service: AssignmentService = Depends(get_assignment_service)
):
    """List assignments with populated profiles"""
    assignments = service.list_assignments(assignor_id=assignor_id, assignee_id=assignee_id)
    return AssignmentListEnvelope(assignments=assignments, count=len(assignments))


@router.post("/assignments", response_model=AssignmentEnvelope, status_code=201)
async def create_assignment(
    data: AssignmentCreate,
    profile: ProfileResponse = Depends(require_management),
    service: AssignmentService = Depends(get_assignment_service)
):
    """Place a user under their direct superior"""
    assignment = service.create_assignment(data, creator=profile)
    return AssignmentEnvelope(message="Assignment created successfully", assignment=assignment)


@router.delete("/assignments/{assignment_id}")
async def delete_assignment(
    assignment_id: str,
    profile: ProfileResponse = Depends(require_management),
    service: AssignmentService = Depends(get_assignment_service)
):
    service.delete_assignment(assignment_id, actor=profile)
    return {"success": True, "message": "Assignment deleted successfully"}


@router.get("/test-assignments", response_model=HierarchyOverviewEnvelope)
async def hierarchy_overview(
    profile: ProfileResponse = Depends(require_management),
    service: AssignmentService = Depends(get_assignment_service)
):
    """Profiles with their assignments in both directions"""
    profiles = service.hierarchy_overview()
    return HierarchyOverviewEnvelope(profiles=profiles, count=len(profiles))
