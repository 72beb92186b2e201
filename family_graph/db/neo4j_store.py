import json
from contextlib import asynccontextmanager
from datetime import date, datetime
from typing import Any, Iterable, Optional

from neo4j import AsyncDriver, AsyncTransaction
from neo4j.exceptions import DriverError, Neo4jError
from neo4j.time import Date as Neo4jDate, DateTime as Neo4jDateTime

from family_graph.core.errors import StoreFailureError
from family_graph.core.logging import get_logger
from family_graph.models.merge_model import MergeRequest, MergeStatus
from family_graph.models.person_model import Person
from family_graph.models.relationship_model import Relationship, RelationshipType

logger = get_logger(__name__)

REL_TYPES = "|".join(t.value for t in RelationshipType)

EDGE_PROJECTION = """
    RETURN r.id AS id, a.id AS fromPersonId, b.id AS toPersonId,
           type(r) AS type, r.createdByUserId AS createdByUserId
"""

def _to_native(value):
    if isinstance(value, (Neo4jDate, Neo4jDateTime)):
        return value.to_native()
    return value

def _node_to_person(node: dict) -> Person:
    return Person.model_validate({k: _to_native(v) for k, v in dict(node).items()})

def _to_storable(fields: dict[str, Any]) -> dict[str, Any]:
    # dates are kept as ISO strings, the same way they are written on create
    return {k: v.isoformat() if isinstance(v, (date, datetime)) else v for k, v in fields.items()}

def _node_to_merge_request(node: dict) -> MergeRequest:
    data = {k: _to_native(v) for k, v in dict(node).items()}
    data["fieldConflicts"] = json.loads(data.get("fieldConflicts") or "{}")
    return MergeRequest.model_validate(data)

def _merge_request_props(mr: MergeRequest) -> dict[str, Any]:
    props = mr.model_dump(mode="json")
    props["fieldConflicts"] = json.dumps(props["fieldConflicts"])
    return props

class Neo4jRelationshipStore:
    """Relationship store backed by the async Neo4j driver.

    Persons are ``:Person`` nodes keyed by ``id``; relationship types are native
    Neo4j relationship types pointing the way they read, so
    ``(a)-[:FATHER_OF]->(b)`` means a is the father of b.
    """

    def __init__(self, driver: AsyncDriver):
        self.driver = driver

    async def _query(self, query: str, **params) -> list[dict]:
        try:
            async with self.driver.session() as session:
                res = await session.run(query, **params)
                return await res.data()
        except (Neo4jError, DriverError) as e:
            logger.error("store_query_failed", error=str(e))
            raise StoreFailureError(f"Relationship store query failed: {e}") from e

    async def get_persons_by_ids(self, ids: Iterable[str]) -> list[Person]:
        ids = list(ids)
        if not ids:
            return []
        records = await self._query("MATCH (n:Person) WHERE n.id IN $ids RETURN n", ids=ids)
        return [_node_to_person(r["n"]) for r in records]

    async def get_edges_by_source_ids(self, ids: Iterable[str]) -> list[Relationship]:
        ids = list(ids)
        if not ids:
            return []
        records = await self._query(
            f"MATCH (a:Person)-[r:{REL_TYPES}]->(b:Person) WHERE a.id IN $ids" + EDGE_PROJECTION,
            ids=ids,
        )
        return [Relationship.model_validate(r) for r in records]

    async def get_edges_by_target_ids(self, ids: Iterable[str]) -> list[Relationship]:
        ids = list(ids)
        if not ids:
            return []
        records = await self._query(
            f"MATCH (a:Person)-[r:{REL_TYPES}]->(b:Person) WHERE b.id IN $ids" + EDGE_PROJECTION,
            ids=ids,
        )
        return [Relationship.model_validate(r) for r in records]

    async def get_person_by_auth_user(self, auth_user_id: str) -> Optional[Person]:
        records = await self._query(
            "MATCH (n:Person {authUserId:$uid}) RETURN n LIMIT 1", uid=auth_user_id
        )
        return _node_to_person(records[0]["n"]) if records else None

    async def find_person_by_phone(self, phone: str, excluding_user_id: Optional[str]) -> Optional[Person]:
        records = await self._query(
            """
            MATCH (n:Person {phone:$phone})
            WHERE n.createdByUserId IS NOT NULL AND ($uid IS NULL OR n.createdByUserId <> $uid)
            RETURN n ORDER BY n.id LIMIT 1
            """,
            phone=phone, uid=excluding_user_id,
        )
        return _node_to_person(records[0]["n"]) if records else None

    async def create_merge_request(self, merge_request: MergeRequest) -> MergeRequest:
        records = await self._query(
            "CREATE (m:MergeRequest) SET m = $props RETURN m",
            props=_merge_request_props(merge_request),
        )
        return _node_to_merge_request(records[0]["m"])

    async def get_merge_request(self, merge_request_id: str) -> Optional[MergeRequest]:
        records = await self._query("MATCH (m:MergeRequest {id:$id}) RETURN m", id=merge_request_id)
        return _node_to_merge_request(records[0]["m"]) if records else None

    async def list_pending_merge_requests(self, user_id: str) -> list[MergeRequest]:
        records = await self._query(
            """
            MATCH (m:MergeRequest {status:'pending'})
            WHERE m.requesterUserId = $uid
               OR m.targetPersonId IN [(p:Person) WHERE p.createdByUserId = $uid OR p.authUserId = $uid | p.id]
            RETURN m ORDER BY m.createdAt
            """,
            uid=user_id,
        )
        return [_node_to_merge_request(r["m"]) for r in records]

    @asynccontextmanager
    async def transaction(self):
        try:
            async with self.driver.session() as session:
                tx = await session.begin_transaction()
                try:
                    yield Neo4jTransaction(tx)
                except BaseException:
                    if not tx.closed():
                        await tx.rollback()
                    raise
                await tx.commit()
        except (Neo4jError, DriverError) as e:
            logger.error("store_transaction_failed", error=str(e))
            raise StoreFailureError(f"Relationship store write failed: {e}") from e

class Neo4jTransaction:
    def __init__(self, tx: AsyncTransaction):
        self.tx = tx

    async def _single(self, query: str, **params) -> Optional[dict]:
        res = await self.tx.run(query, **params)
        rec = await res.single()
        return rec.data() if rec else None

    async def get_person(self, person_id: str) -> Optional[Person]:
        rec = await self._single("MATCH (n:Person {id:$pid}) RETURN n", pid=person_id)
        return _node_to_person(rec["n"]) if rec else None

    async def get_merge_request(self, merge_request_id: str) -> Optional[MergeRequest]:
        rec = await self._single("MATCH (m:MergeRequest {id:$id}) RETURN m", id=merge_request_id)
        return _node_to_merge_request(rec["m"]) if rec else None

    async def update_person(self, person_id: str, fields: dict[str, Any]) -> None:
        rec = await self._single(
            "MATCH (n:Person {id:$pid}) SET n += $fields RETURN n.id AS id",
            pid=person_id, fields=_to_storable(fields),
        )
        if not rec:
            raise StoreFailureError(f"Person {person_id} disappeared during update")

    async def reassign_edge_endpoint(self, old_id: str, new_id: str) -> int:
        # Neo4j cannot move a relationship, so each one is recreated on the new node.
        # Edges between old and new are left behind and go away with the old node.
        moved = 0
        for rel_type in RelationshipType:
            outgoing = await self._single(
                f"""
                MATCH (old:Person {{id:$old}})-[r:{rel_type.value}]->(x:Person), (new:Person {{id:$new}})
                WHERE x.id <> $new
                MERGE (new)-[nr:{rel_type.value}]->(x)
                SET nr += properties(r)
                DELETE r
                RETURN count(*) AS moved
                """,
                old=old_id, new=new_id,
            )
            incoming = await self._single(
                f"""
                MATCH (x:Person)-[r:{rel_type.value}]->(old:Person {{id:$old}}), (new:Person {{id:$new}})
                WHERE x.id <> $new
                MERGE (x)-[nr:{rel_type.value}]->(new)
                SET nr += properties(r)
                DELETE r
                RETURN count(*) AS moved
                """,
                old=old_id, new=new_id,
            )
            moved += (outgoing or {}).get("moved", 0) + (incoming or {}).get("moved", 0)
        return moved

    async def delete_person(self, person_id: str) -> None:
        await self.tx.run("MATCH (n:Person {id:$pid}) DETACH DELETE n", pid=person_id)

    async def set_merge_status(self, merge_request_id: str, status: MergeStatus,
                               resolved_by_user_id: Optional[str]) -> None:
        await self.tx.run(
            """
            MATCH (m:MergeRequest {id:$id})
            SET m.status = $status, m.resolvedByUserId = $uid, m.resolvedAt = toString(datetime())
            """,
            id=merge_request_id, status=status.value, uid=resolved_by_user_id,
        )
