from enum import Enum
from pydantic import BaseModel
from typing import Any, Dict, Optional
from datetime import datetime

class MergeStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

class FieldConflict(BaseModel):
    target: Any
    matched: Any

class MergeRequest(BaseModel):
    id: str
    requesterUserId: str
    targetPersonId: str
    matchedPersonId: str
    fieldConflicts: Dict[str, FieldConflict] = {}
    status: MergeStatus = MergeStatus.PENDING
    resolvedByUserId: Optional[str] = None
    resolvedAt: Optional[datetime] = None
    createdAt: datetime

class ApproveMergeIn(BaseModel):
    resolvedByUserId: str
    resolvedFields: Optional[Dict[str, Any]] = None

class RejectMergeIn(BaseModel):
    resolvedByUserId: str
