from fastapi import APIRouter, Depends, HTTPException, Query
from typing import Optional
from family_graph.core.config import settings
from family_graph.models.graph_model import ConnectionResult, SearchFilters, SearchOut, TreeOut
from family_graph.models.person_model import MaritalStatus, Person
from family_graph.services.connection_service import ConnectionFinder
from family_graph.services.search_service import CircleSearch
from family_graph.services.tree_service import TreeBuilder
from family_graph.utils.deps import (
    get_circle_search,
    get_connection_finder,
    get_linked_person_or_404,
    get_tree_builder,
)

router = APIRouter(prefix="/api/v1", tags=["Graph"])

def search_filters(
    query: Optional[str] = None,
    name: Optional[str] = None,
    occupation: Optional[str] = None,
    location: Optional[str] = None,
    maritalStatus: Optional[MaritalStatus] = None,
) -> SearchFilters:
    return SearchFilters(query=query, name=name, occupation=occupation,
                         location=location, maritalStatus=maritalStatus)

@router.get("/tree", response_model=TreeOut)
async def get_my_tree_route(person: Person = Depends(get_linked_person_or_404),
                            builder: TreeBuilder = Depends(get_tree_builder)):
    # Tree of the person linked to ?authUserId=
    return await builder.build_tree(person.id)

@router.get("/persons/{personId}/tree", response_model=TreeOut)
async def get_tree_route(personId: str, builder: TreeBuilder = Depends(get_tree_builder)):
    tree = await builder.build_tree(personId)
    if not tree.persons:
        raise HTTPException(status_code=404, detail="Person not found")
    return tree

@router.get("/search", response_model=SearchOut)
async def search_my_circle_route(
    depth: int = Query(settings.SEARCH_DEFAULT_DEPTH, ge=1, le=settings.SEARCH_MAX_DEPTH),
    filters: SearchFilters = Depends(search_filters),
    person: Person = Depends(get_linked_person_or_404),
    search: CircleSearch = Depends(get_circle_search),
):
    hits = await search.search(person.id, depth, filters)
    return SearchOut(results=hits, total=len(hits), depth=depth)

@router.get("/persons/{personId}/search", response_model=SearchOut)
async def search_circle_route(
    personId: str,
    depth: int = Query(settings.SEARCH_DEFAULT_DEPTH, ge=1, le=settings.SEARCH_MAX_DEPTH),
    filters: SearchFilters = Depends(search_filters),
    search: CircleSearch = Depends(get_circle_search),
):
    hits = await search.search(personId, depth, filters)
    return SearchOut(results=hits, total=len(hits), depth=depth)

@router.get("/connections", response_model=ConnectionResult)
async def find_connection_route(
    personA: str,
    personB: str,
    maxDepth: int = Query(settings.CONNECTION_MAX_DEPTH, ge=1),
    maxPaths: int = Query(settings.CONNECTION_MAX_PATHS, ge=1),
    finder: ConnectionFinder = Depends(get_connection_finder),
):
    result = await finder.find_connection(personA, personB, maxDepth, maxPaths)
    if result is None:
        raise HTTPException(status_code=404, detail="Person not found")
    return result
