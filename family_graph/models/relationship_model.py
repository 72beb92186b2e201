from enum import Enum
from typing import Optional
from pydantic import BaseModel, model_validator

class RelationshipType(str, Enum):
    """Kind of a directed edge. ``(a, b, FATHER_OF)`` reads "a is the father of b"."""

    FATHER_OF = "FATHER_OF"
    MOTHER_OF = "MOTHER_OF"
    PARENT_OF = "PARENT_OF"
    CHILD_OF = "CHILD_OF"
    SPOUSE_OF = "SPOUSE_OF"
    SIBLING_OF = "SIBLING_OF"

PARENT_TYPES = frozenset({RelationshipType.FATHER_OF, RelationshipType.MOTHER_OF, RelationshipType.PARENT_OF})

def is_parent_type(rel_type: RelationshipType) -> bool:
    return rel_type in PARENT_TYPES

def inverse_type(rel_type: RelationshipType) -> RelationshipType:
    """Type of the same link read from the other endpoint.

    The parent of a ``CHILD_OF`` edge has no known gender here, so its inverse
    is the generic ``PARENT_OF``; see ``parent_type_for_gender``.
    """
    if rel_type in PARENT_TYPES:
        return RelationshipType.CHILD_OF
    if rel_type is RelationshipType.CHILD_OF:
        return RelationshipType.PARENT_OF
    return rel_type

def parent_type_for_gender(gender: Optional[str]) -> RelationshipType:
    if gender == "male":
        return RelationshipType.FATHER_OF
    if gender == "female":
        return RelationshipType.MOTHER_OF
    return RelationshipType.PARENT_OF

def specificity(rel_type: RelationshipType) -> int:
    # gendered parent edges beat the generic one when both describe the same link
    if rel_type in (RelationshipType.FATHER_OF, RelationshipType.MOTHER_OF):
        return 2
    return 1

class Relationship(BaseModel):
    id: Optional[str] = None
    fromPersonId: str
    toPersonId: str
    type: RelationshipType
    createdByUserId: Optional[str] = None

    @model_validator(mode="after")
    def _no_self_reference(self):
        if self.fromPersonId == self.toPersonId:
            raise ValueError("A relationship cannot reference the same person twice")
        return self

    def inverse(self) -> "Relationship":
        """Synthesized reverse reading of this edge (not a stored row)."""
        return Relationship(
            id=None,
            fromPersonId=self.toPersonId,
            toPersonId=self.fromPersonId,
            type=inverse_type(self.type),
            createdByUserId=self.createdByUserId,
        )
