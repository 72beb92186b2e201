from fastapi import Depends, HTTPException
from family_graph.core.errors import StoreFailureError
from family_graph.db.neo4j import neo4j
from family_graph.db.neo4j_store import Neo4jRelationshipStore
from family_graph.db.store import RelationshipStore
from family_graph.models.person_model import Person
from family_graph.services.connection_service import ConnectionFinder
from family_graph.services.merge_service import MergeDetector
from family_graph.services.search_service import CircleSearch
from family_graph.services.tree_service import TreeBuilder

def get_store() -> RelationshipStore:
    if neo4j.driver is None:
        raise StoreFailureError("Neo4j driver is not connected")
    return Neo4jRelationshipStore(neo4j.driver)

async def get_linked_person_or_404(authUserId: str, store: RelationshipStore = Depends(get_store)) -> Person:
    person = await store.get_person_by_auth_user(authUserId)
    if person is None:
        raise HTTPException(status_code=404, detail="Profile not found. Complete profile setup first.")
    return person

def get_tree_builder(store: RelationshipStore = Depends(get_store)) -> TreeBuilder:
    return TreeBuilder(store)

def get_circle_search(store: RelationshipStore = Depends(get_store)) -> CircleSearch:
    return CircleSearch(store)

def get_connection_finder(store: RelationshipStore = Depends(get_store)) -> ConnectionFinder:
    return ConnectionFinder(store)

def get_merge_detector(store: RelationshipStore = Depends(get_store)) -> MergeDetector:
    return MergeDetector(store)
