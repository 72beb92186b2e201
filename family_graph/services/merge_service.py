import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import ValidationError

from family_graph.core.errors import ConflictError, InvalidArgumentError, NotFoundError, StoreFailureError
from family_graph.core.logging import get_logger
from family_graph.db.store import RelationshipStore
from family_graph.models.merge_model import FieldConflict, MergeRequest, MergeStatus
from family_graph.models.person_model import Person

logger = get_logger(__name__)

def now():
    return datetime.now(timezone.utc)

COMPARED_FIELDS = ("name", "dob", "gender", "occupation", "community", "city", "state", "maritalStatus")
# identity and ownership are never taken from caller-resolved values
PROTECTED_FIELDS = {"id", "createdByUserId", "authUserId", "verified"}
RESOLVABLE_FIELDS = set(Person.model_fields) - PROTECTED_FIELDS

def detect_conflicts(target: Person, matched: Person) -> dict[str, FieldConflict]:
    """Fields where both records have a value and the values differ."""
    conflicts: dict[str, FieldConflict] = {}
    for field in COMPARED_FIELDS:
        target_val = getattr(target, field)
        matched_val = getattr(matched, field)
        if target_val and matched_val and target_val != matched_val:
            conflicts[field] = FieldConflict(target=target_val, matched=matched_val)
    return conflicts

class MergeDetector:
    """Duplicate detection by phone number and the merge request lifecycle.

    The pre-existing record is the merge *target* and survives; the new
    duplicate is the *matched* record and is absorbed on approval.
    """

    def __init__(self, store: RelationshipStore):
        self.store = store

    async def detect_by_phone(self, normalized_phone: str, excluding_user_id: Optional[str]) -> Optional[Person]:
        return await self.store.find_person_by_phone(normalized_phone, excluding_user_id)

    async def create_merge_request(self, requester_user_id: str, target_person_id: str,
                                   matched_person_id: str,
                                   field_conflicts: Optional[dict[str, FieldConflict]] = None) -> MergeRequest:
        if target_person_id == matched_person_id:
            raise InvalidArgumentError("A person cannot be merged into itself")
        mr = MergeRequest(
            id=str(uuid.uuid4()),
            requesterUserId=requester_user_id,
            targetPersonId=target_person_id,
            matchedPersonId=matched_person_id,
            fieldConflicts=field_conflicts or {},
            status=MergeStatus.PENDING,
            createdAt=now(),
        )
        created = await self.store.create_merge_request(mr)
        logger.info("merge_request_created", merge_request_id=created.id,
                    target=target_person_id, matched=matched_person_id, conflicts=len(mr.fieldConflicts))
        return created

    async def handle_new_person(self, person: Person, requester_user_id: str) -> Optional[MergeRequest]:
        """Run after a person is created: open a merge request if the phone is already known."""
        if not person.phone:
            return None
        candidate = await self.detect_by_phone(person.phone, requester_user_id)
        if candidate is None or candidate.id == person.id:
            return None
        conflicts = detect_conflicts(candidate, person)
        return await self.create_merge_request(requester_user_id, candidate.id, person.id, conflicts)

    async def list_pending(self, user_id: str) -> list[MergeRequest]:
        return await self.store.list_pending_merge_requests(user_id)

    def _check_resolved_fields(self, resolved_fields: Optional[dict[str, Any]]) -> dict[str, Any]:
        if not resolved_fields:
            return {}
        unknown = set(resolved_fields) - RESOLVABLE_FIELDS
        if unknown:
            raise InvalidArgumentError(f"Fields cannot be resolved: {', '.join(sorted(unknown))}")
        return dict(resolved_fields)

    async def approve_merge(self, merge_request_id: str, resolved_by_user_id: str,
                            resolved_fields: Optional[dict[str, Any]] = None) -> MergeRequest:
        """Fold the matched person into the target, all or nothing."""
        fields = self._check_resolved_fields(resolved_fields)
        try:
            async with self.store.transaction() as tx:
                mr = await tx.get_merge_request(merge_request_id)
                if mr is None:
                    raise NotFoundError(f"Merge request {merge_request_id} not found")
                if mr.status is not MergeStatus.PENDING:
                    raise ConflictError(f"Merge request is {mr.status.value}, not pending")
                target = await tx.get_person(mr.targetPersonId)
                matched = await tx.get_person(mr.matchedPersonId)
                if target is None or matched is None:
                    raise NotFoundError("Merge target or matched person no longer exists")

                if fields:
                    try:
                        Person.model_validate({**target.model_dump(), **fields})
                    except ValidationError as e:
                        raise InvalidArgumentError(f"Invalid resolved fields: {e}") from e
                    await tx.update_person(target.id, fields)
                moved = await tx.reassign_edge_endpoint(matched.id, target.id)
                if matched.authUserId:
                    await tx.update_person(target.id, {"authUserId": matched.authUserId, "verified": True})
                await tx.delete_person(matched.id)
                await tx.set_merge_status(merge_request_id, MergeStatus.APPROVED, resolved_by_user_id)
        except StoreFailureError:
            logger.error("merge_approve_failed", merge_request_id=merge_request_id)
            raise

        logger.info("merge_approved", merge_request_id=merge_request_id, target=target.id,
                    absorbed=matched.id, edges_moved=moved, linked_user_moved=bool(matched.authUserId))
        return await self.store.get_merge_request(merge_request_id)

    async def reject_merge(self, merge_request_id: str, resolved_by_user_id: str) -> MergeRequest:
        async with self.store.transaction() as tx:
            mr = await tx.get_merge_request(merge_request_id)
            if mr is None:
                raise NotFoundError(f"Merge request {merge_request_id} not found")
            if mr.status is not MergeStatus.PENDING:
                raise ConflictError(f"Merge request is {mr.status.value}, not pending")
            await tx.set_merge_status(merge_request_id, MergeStatus.REJECTED, resolved_by_user_id)
        logger.info("merge_rejected", merge_request_id=merge_request_id)
        return await self.store.get_merge_request(merge_request_id)
