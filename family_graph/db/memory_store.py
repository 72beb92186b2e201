import asyncio
import copy
import uuid
from collections import Counter
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from family_graph.core.errors import NotFoundError
from family_graph.models.merge_model import MergeRequest, MergeStatus
from family_graph.models.person_model import Person
from family_graph.models.relationship_model import Relationship, RelationshipType, parent_type_for_gender

def now():
    return datetime.now(timezone.utc)

class InMemoryRelationshipStore:
    """Dictionary-backed store used by tests and local development.

    ``calls`` counts every read per method name so callers can check how many
    round trips a traversal needed.
    """

    def __init__(self):
        self.persons: dict[str, Person] = {}
        self.edges: list[Relationship] = []
        self.merge_requests: dict[str, MergeRequest] = {}
        self.calls: Counter = Counter()
        self._lock = asyncio.Lock()

    # Seeding helpers

    def add_person(self, person: Person) -> Person:
        self.persons[person.id] = person
        return person

    def add_relationship(self, from_id: str, to_id: str, rel_type: RelationshipType,
                         created_by: str | None = None, with_inverse: bool = False) -> Relationship:
        rel = Relationship(id=str(uuid.uuid4()), fromPersonId=from_id, toPersonId=to_id,
                           type=rel_type, createdByUserId=created_by)
        self.edges.append(rel)
        if with_inverse:
            inv = rel.inverse()
            if rel_type is RelationshipType.CHILD_OF:
                # ``rel.inverse`` cannot see the parent's gender; the store can
                parent = self.persons.get(to_id)
                if parent is not None:
                    inv = inv.model_copy(update={"type": parent_type_for_gender(parent.gender)})
            self.edges.append(inv.model_copy(update={"id": str(uuid.uuid4())}))
        return rel

    # Reads

    async def get_persons_by_ids(self, ids: Iterable[str]) -> list[Person]:
        self.calls["get_persons_by_ids"] += 1
        return [self.persons[i] for i in dict.fromkeys(ids) if i in self.persons]

    async def get_edges_by_source_ids(self, ids: Iterable[str]) -> list[Relationship]:
        self.calls["get_edges_by_source_ids"] += 1
        wanted = set(ids)
        return [e for e in self.edges if e.fromPersonId in wanted]

    async def get_edges_by_target_ids(self, ids: Iterable[str]) -> list[Relationship]:
        self.calls["get_edges_by_target_ids"] += 1
        wanted = set(ids)
        return [e for e in self.edges if e.toPersonId in wanted]

    async def get_person_by_auth_user(self, auth_user_id: str) -> Optional[Person]:
        self.calls["get_person_by_auth_user"] += 1
        return next((p for p in self.persons.values() if p.authUserId == auth_user_id), None)

    async def find_person_by_phone(self, phone: str, excluding_user_id: Optional[str]) -> Optional[Person]:
        self.calls["find_person_by_phone"] += 1
        for p in self.persons.values():
            if p.phone == phone and p.createdByUserId is not None and p.createdByUserId != excluding_user_id:
                return p
        return None

    async def create_merge_request(self, merge_request: MergeRequest) -> MergeRequest:
        self.calls["create_merge_request"] += 1
        self.merge_requests[merge_request.id] = merge_request
        return merge_request

    async def get_merge_request(self, merge_request_id: str) -> Optional[MergeRequest]:
        self.calls["get_merge_request"] += 1
        return self.merge_requests.get(merge_request_id)

    async def list_pending_merge_requests(self, user_id: str) -> list[MergeRequest]:
        self.calls["list_pending_merge_requests"] += 1
        owned = {p.id for p in self.persons.values() if user_id in (p.createdByUserId, p.authUserId)}
        return [
            mr for mr in self.merge_requests.values()
            if mr.status is MergeStatus.PENDING
            and (mr.requesterUserId == user_id or mr.targetPersonId in owned)
        ]

    # Writes

    @asynccontextmanager
    async def transaction(self):
        async with self._lock:
            snapshot = (copy.deepcopy(self.persons), list(self.edges), copy.deepcopy(self.merge_requests))
            try:
                yield _InMemoryTransaction(self)
            except BaseException:
                self.persons, self.edges, self.merge_requests = snapshot
                raise

class _InMemoryTransaction:
    def __init__(self, store: InMemoryRelationshipStore):
        self.store = store

    async def get_person(self, person_id: str) -> Optional[Person]:
        return self.store.persons.get(person_id)

    async def get_merge_request(self, merge_request_id: str) -> Optional[MergeRequest]:
        return self.store.merge_requests.get(merge_request_id)

    async def update_person(self, person_id: str, fields: dict[str, Any]) -> None:
        person = self.store.persons.get(person_id)
        if person is None:
            raise NotFoundError(f"Person {person_id} not found")
        self.store.persons[person_id] = Person.model_validate({**person.model_dump(), **fields})

    async def reassign_edge_endpoint(self, old_id: str, new_id: str) -> int:
        moved = 0
        kept: list[Relationship] = []
        seen: set[tuple[str, str, RelationshipType]] = set()
        for e in self.store.edges:
            if old_id in (e.fromPersonId, e.toPersonId):
                frm = new_id if e.fromPersonId == old_id else e.fromPersonId
                to = new_id if e.toPersonId == old_id else e.toPersonId
                if frm == to:
                    # the two records being merged were linked to each other
                    continue
                e = e.model_copy(update={"fromPersonId": frm, "toPersonId": to})
                moved += 1
            key = (e.fromPersonId, e.toPersonId, e.type)
            if key in seen:
                continue
            seen.add(key)
            kept.append(e)
        self.store.edges = kept
        return moved

    async def delete_person(self, person_id: str) -> None:
        if self.store.persons.pop(person_id, None) is None:
            raise NotFoundError(f"Person {person_id} not found")
        self.store.edges = [e for e in self.store.edges if person_id not in (e.fromPersonId, e.toPersonId)]

    async def set_merge_status(self, merge_request_id: str, status: MergeStatus,
                               resolved_by_user_id: Optional[str]) -> None:
        mr = self.store.merge_requests[merge_request_id]
        self.store.merge_requests[merge_request_id] = mr.model_copy(update={
            "status": status,
            "resolvedByUserId": resolved_by_user_id,
            "resolvedAt": now(),
        })
