"""
Relationship store interface consumed by the traversal engine and the merge workflow.

Reads are batched by id set so that a traversal round costs a constant number
of calls no matter how wide the frontier is. Writes only happen inside
``transaction()``.
"""
from typing import Any, AsyncContextManager, Iterable, Optional, Protocol

from family_graph.models.merge_model import MergeRequest, MergeStatus
from family_graph.models.person_model import Person
from family_graph.models.relationship_model import Relationship


class StoreTransaction(Protocol):
    async def get_person(self, person_id: str) -> Optional[Person]: ...

    async def get_merge_request(self, merge_request_id: str) -> Optional[MergeRequest]: ...

    async def update_person(self, person_id: str, fields: dict[str, Any]) -> None: ...

    async def reassign_edge_endpoint(self, old_id: str, new_id: str) -> int:
        """Point every edge touching ``old_id`` at ``new_id``; returns the number moved."""
        ...

    async def delete_person(self, person_id: str) -> None: ...

    async def set_merge_status(self, merge_request_id: str, status: MergeStatus,
                               resolved_by_user_id: Optional[str]) -> None: ...


class RelationshipStore(Protocol):
    async def get_persons_by_ids(self, ids: Iterable[str]) -> list[Person]: ...

    async def get_edges_by_source_ids(self, ids: Iterable[str]) -> list[Relationship]: ...

    async def get_edges_by_target_ids(self, ids: Iterable[str]) -> list[Relationship]: ...

    async def get_person_by_auth_user(self, auth_user_id: str) -> Optional[Person]: ...

    async def find_person_by_phone(self, phone: str, excluding_user_id: Optional[str]) -> Optional[Person]: ...

    async def create_merge_request(self, merge_request: MergeRequest) -> MergeRequest: ...

    async def get_merge_request(self, merge_request_id: str) -> Optional[MergeRequest]: ...

    async def list_pending_merge_requests(self, user_id: str) -> list[MergeRequest]: ...

    def transaction(self) -> AsyncContextManager[StoreTransaction]:
        """All writes made through the yielded handle commit together or not at all."""
        ...
