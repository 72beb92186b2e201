from typing import Optional

from family_graph.core.config import settings
from family_graph.core.logging import get_logger
from family_graph.db.store import RelationshipStore
from family_graph.models.graph_model import TreeOut
from family_graph.models.person_model import Person
from family_graph.services.adjacency import collect_adjacency, relationships_of
from family_graph.utils.deadline import with_deadline

logger = get_logger(__name__)

class TreeBuilder:
    """Loads the whole connected component around a person, one hop per round.

    Each round costs one person fetch and one edge fetch per direction for the
    entire frontier, so round trips grow with the depth of the family, not
    with its size.
    """

    def __init__(self, store: RelationshipStore):
        self.store = store

    async def build_tree(self, root_id: str, timeout: Optional[float] = None) -> TreeOut:
        if timeout is None:
            timeout = settings.TRAVERSAL_TIMEOUT_SECONDS
        return await with_deadline(self._build(root_id), timeout, "build_tree")

    async def _build(self, root_id: str) -> TreeOut:
        persons: dict[str, Person] = {}
        edges_by_person = {}
        visited: set[str] = {root_id}
        frontier: list[str] = [root_id]
        rounds = 0

        while frontier:
            rounds += 1
            found = await self.store.get_persons_by_ids(frontier)
            for p in found:
                persons[p.id] = p
            # ids without a person record are dangling edge ends; they are not expanded
            frontier = [i for i in frontier if i in persons]
            if not frontier:
                break

            source_edges = await self.store.get_edges_by_source_ids(frontier)
            target_edges = await self.store.get_edges_by_target_ids(frontier)
            genders = {pid: p.gender for pid, p in persons.items()}
            adjacency = collect_adjacency(frontier, source_edges, target_edges, genders)

            next_frontier: list[str] = []
            for pid in frontier:
                rels = relationships_of(adjacency, pid)
                edges_by_person[pid] = rels
                for rel in rels:
                    if rel.toPersonId not in visited:
                        visited.add(rel.toPersonId)
                        next_frontier.append(rel.toPersonId)
            frontier = next_frontier

        if root_id not in persons:
            logger.info("tree_root_missing", root_id=root_id)
            return TreeOut(rootPersonId=root_id)

        # relationships pointing at persons that do not exist are dropped
        for pid, rels in edges_by_person.items():
            edges_by_person[pid] = [r for r in rels if r.toPersonId in persons]

        logger.info("tree_built", root_id=root_id, persons=len(persons), rounds=rounds)
        return TreeOut(
            rootPersonId=root_id,
            persons=list(persons.values()),
            edgesByPerson=edges_by_person,
        )
