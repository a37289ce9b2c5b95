import logging
from datetime import datetime, timezone
from supabase import Client
from sparky.config.roles_config import ADMIN, can_manage_user, is_valid_assignment
from sparky.modules.assignments.schemas import (
    AssignmentCreate, AssignmentResponse, ProfileAssignments
)
from sparky.modules.profiles.schemas import ProfileResponse
from sparky.modules.profiles.service import ProfileService
from typing import List, Optional
from fastapi import HTTPException

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"


class AssignmentService:
    def __init__(self, supabase: Client):
        self.supabase = supabase
        self.profiles = ProfileService(supabase)

    def _populate(self, rows: List[dict]) -> List[AssignmentResponse]:
        ids = [row["assignee_id"] for row in rows] + [row["assignor_id"] for row in rows]
        profiles = self.profiles.get_profiles_by_ids(ids)
        return [
            AssignmentResponse(
                **row,
                assignee=profiles.get(row["assignee_id"]),
                assignor=profiles.get(row["assignor_id"]),
            )
            for row in rows
        ]

    def list_assignments(
        self,
        assignor_id: Optional[str] = None,
        assignee_id: Optional[str] = None
    ) -> List[AssignmentResponse]:
        """List assignments, optionally filtered by either side"""
        try:
            query = self.supabase.table("user_assignments").select("*")
            if assignor_id:
                query = query.eq("assignor_id", assignor_id)
            if assignee_id:
                query = query.eq("assignee_id", assignee_id)
            result = query.order("created_at", desc=True).execute()
        except Exception as e:
            logger.error(f"Assignment listing failed: {e}")
            raise HTTPException(status_code=500, detail="Failed to fetch assignments")
        return self._populate(result.data or [])

    def get_assignment(self, assignment_id: str) -> AssignmentResponse:
        try:
            result = self.supabase.table("user_assignments")\
                .select("*")\
                .eq("id", assignment_id)\
                .limit(1)\
                .execute()
        except Exception as e:
            logger.error(f"Assignment lookup failed for {assignment_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to fetch assignment")
        if not result.data:
            raise HTTPException(status_code=404, detail="Assignment not found")
        return AssignmentResponse(**result.data[0])

    def create_assignment(self, data: AssignmentCreate, creator: ProfileResponse) -> AssignmentResponse:
        """Place assignee under assignor.

        The assignor must be the assignee's direct superior role, and the
        creator must be an admin, the assignor, or outrank the assignor.
        """
        if data.assignee_id == data.assignor_id:
            raise HTTPException(status_code=400, detail="A user cannot be assigned to themselves")

        assignee = self.profiles.get_profile_or_404(data.assignee_id)
        assignor = self.profiles.get_profile_or_404(data.assignor_id)

        if not is_valid_assignment(assignee.role, assignor.role):
            raise HTTPException(
                status_code=400,
                detail=f"A {assignee.role} cannot be assigned to a {assignor.role}"
            )
        if not (
            creator.role == ADMIN
            or creator.id == assignor.id
            or can_manage_user(creator.role, assignor.role)
        ):
            raise HTTPException(status_code=403, detail="You cannot create assignments for this user")

        try:
            existing = self.supabase.table("user_assignments")\
                .select("id")\
                .eq("assignee_id", assignee.id)\
                .eq("assignor_id", assignor.id)\
                .execute()
        except Exception as e:
            logger.error(f"Assignment duplicate check failed: {e}")
            raise HTTPException(status_code=500, detail="Failed to create assignment")
        if existing.data:
            raise HTTPException(status_code=409, detail="Assignment already exists")

        try:
            result = self.supabase.table("user_assignments").insert({
                "assignee_id": assignee.id,
                "assignor_id": assignor.id,
                "created_by": creator.id,
                "created_at": datetime.now(timezone.utc).isoformat(),
            }).execute()
        except Exception as e:
            if getattr(e, "code", None) == UNIQUE_VIOLATION:
                raise HTTPException(status_code=409, detail="Assignment already exists")
            logger.error(f"Assignment insert failed: {e}")
            raise HTTPException(status_code=500, detail="Failed to create assignment")
        if not result.data:
            raise HTTPException(status_code=500, detail="Failed to create assignment")

        logger.info(f"{creator.email} assigned {assignee.email} ({assignee.role}) to {assignor.email} ({assignor.role})")
        return AssignmentResponse(**result.data[0], assignee=assignee, assignor=assignor)

    def delete_assignment(self, assignment_id: str, actor: ProfileResponse) -> bool:
        assignment = self.get_assignment(assignment_id)
        if actor.role != ADMIN and actor.id not in (assignment.assignor_id, assignment.created_by):
            raise HTTPException(status_code=403, detail="You cannot remove this assignment")
        try:
            result = self.supabase.table("user_assignments")\
                .delete()\
                .eq("id", assignment_id)\
                .execute()
        except Exception as e:
            logger.error(f"Assignment delete failed for {assignment_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to delete assignment")
        return len(result.data or []) > 0

    def hierarchy_overview(self) -> List[ProfileAssignments]:
        """Every profile with who it reports to and who reports to it"""
        profiles = self.profiles.list_profiles()
        by_id = {p.id: p for p in profiles}
        overview = {
            p.id: ProfileAssignments(id=p.id, email=p.email, display_name=p.display_name, role=p.role)
            for p in profiles
        }
        try:
            result = self.supabase.table("user_assignments").select("*").execute()
        except Exception as e:
            logger.error(f"Assignment listing failed: {e}")
            raise HTTPException(status_code=500, detail="Failed to fetch assignments")
        for row in result.data or []:
            assignee = by_id.get(row["assignee_id"])
            assignor = by_id.get(row["assignor_id"])
            if assignee is None or assignor is None:
                continue
            overview[assignee.id].managed_by.append(assignor)
            overview[assignor.id].manages.append(assignee)
        return list(overview.values())
