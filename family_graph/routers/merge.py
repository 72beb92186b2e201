from fastapi import APIRouter, Depends
from typing import List, Optional
from family_graph.core.errors import InvalidArgumentError
from family_graph.models.merge_model import ApproveMergeIn, MergeRequest, RejectMergeIn
from family_graph.models.person_model import Person
from family_graph.services.merge_service import MergeDetector
from family_graph.utils.deps import get_merge_detector
from family_graph.utils.phone import is_valid_phone, normalize_phone

router = APIRouter(prefix="/api/v1/merge", tags=["Merge"])

@router.get("/candidates", response_model=Optional[Person])
async def merge_candidate_route(phone: str, excludeUserId: Optional[str] = None,
                                detector: MergeDetector = Depends(get_merge_detector)):
    normalized = normalize_phone(phone)
    if not is_valid_phone(normalized):
        raise InvalidArgumentError(f"Invalid phone number: {phone}")
    return await detector.detect_by_phone(normalized, excludeUserId)

@router.get("/pending", response_model=List[MergeRequest])
async def pending_merges_route(userId: str, detector: MergeDetector = Depends(get_merge_detector)):
    return await detector.list_pending(userId)

@router.put("/{mergeRequestId}/approve", response_model=MergeRequest)
async def approve_merge_route(mergeRequestId: str, body: ApproveMergeIn,
                              detector: MergeDetector = Depends(get_merge_detector)):
    return await detector.approve_merge(mergeRequestId, body.resolvedByUserId, body.resolvedFields)

@router.put("/{mergeRequestId}/reject", response_model=MergeRequest)
async def reject_merge_route(mergeRequestId: str, body: RejectMergeIn,
                             detector: MergeDetector = Depends(get_merge_detector)):
    return await detector.reject_merge(mergeRequestId, body.resolvedByUserId)
