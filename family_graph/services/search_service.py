from typing import Callable, Optional

from family_graph.core.config import settings
from family_graph.core.errors import InvalidArgumentError
from family_graph.core.logging import get_logger
from family_graph.db.store import RelationshipStore
from family_graph.models.graph_model import SearchFilters, SearchHit
from family_graph.models.person_model import Person
from family_graph.services.adjacency import collect_adjacency, neighbour_types
from family_graph.utils.deadline import with_deadline

logger = get_logger(__name__)

Predicate = Callable[[Person], bool]

# filter name -> person fields searched with a case-insensitive substring match
TEXT_FILTERS: dict[str, tuple[str, ...]] = {
    "query": ("name", "occupation"),
    "name": ("name",),
    "occupation": ("occupation",),
    "location": ("community", "city", "state"),
}
# filter name -> person field that must be equal
EXACT_FILTERS: dict[str, str] = {
    "maritalStatus": "maritalStatus",
}

def _substring(needle: str, fields: tuple[str, ...]) -> Predicate:
    needle = needle.lower()
    def pred(person: Person) -> bool:
        return any(needle in (getattr(person, f) or "").lower() for f in fields)
    return pred

def _equals(value, field: str) -> Predicate:
    return lambda person: getattr(person, field) == value

def build_predicates(filters: Optional[SearchFilters]) -> list[Predicate]:
    if filters is None:
        return []
    predicates: list[Predicate] = []
    for name, fields in TEXT_FILTERS.items():
        value = getattr(filters, name)
        if value:
            predicates.append(_substring(value, fields))
    for name, field in EXACT_FILTERS.items():
        value = getattr(filters, name)
        if value is not None:
            predicates.append(_equals(value, field))
    return predicates

class CircleSearch:
    """Finds people within ``max_depth`` hops of a person.

    Every person keeps the depth and path of its first discovery. BFS reaches
    each person at its minimum distance first, so both are minimal. Filters are
    checked after a round is fully expanded and never stop the walk.
    """

    def __init__(self, store: RelationshipStore):
        self.store = store

    async def search(self, root_id: str, max_depth: int, filters: Optional[SearchFilters] = None,
                     timeout: Optional[float] = None) -> list[SearchHit]:
        if max_depth < 1:
            raise InvalidArgumentError("max_depth must be at least 1")
        if timeout is None:
            timeout = settings.TRAVERSAL_TIMEOUT_SECONDS
        return await with_deadline(self._search(root_id, max_depth, filters), timeout, "search")

    async def _search(self, root_id: str, max_depth: int, filters: Optional[SearchFilters]) -> list[SearchHit]:
        predicates = build_predicates(filters)
        roots = await self.store.get_persons_by_ids([root_id])
        if not roots:
            logger.info("circle_search_root_missing", root_id=root_id)
            return []

        names: dict[str, str] = {root_id: roots[0].name}
        depth_of: dict[str, int] = {root_id: 0}
        path_of: dict[str, list[str]] = {root_id: [root_id]}
        frontier: list[str] = [root_id]
        hits: list[SearchHit] = []

        for depth in range(1, max_depth + 1):
            if not frontier:
                break
            source_edges = await self.store.get_edges_by_source_ids(frontier)
            target_edges = await self.store.get_edges_by_target_ids(frontier)
            adjacency = collect_adjacency(frontier, source_edges, target_edges)

            discovered: list[str] = []
            for pid in frontier:
                for nid in neighbour_types(adjacency, pid):
                    if nid in depth_of:
                        continue
                    depth_of[nid] = depth
                    path_of[nid] = path_of[pid] + [nid]
                    discovered.append(nid)
            if not discovered:
                break

            found = {p.id: p for p in await self.store.get_persons_by_ids(discovered)}
            frontier = [i for i in discovered if i in found]
            for pid in frontier:
                person = found[pid]
                names[pid] = person.name
                if all(pred(person) for pred in predicates):
                    path = path_of[pid]
                    hits.append(SearchHit(person=person, depth=depth, path=path,
                                          pathNames=[names[i] for i in path]))

        logger.info("circle_search_done", root_id=root_id, max_depth=max_depth,
                    reached=len(depth_of) - 1, hits=len(hits))
        return hits
