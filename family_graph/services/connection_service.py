"""
Shortest relationship paths between two people anywhere in the graph.

The search grows one frontier from each person and always expands the
smaller one. Expansion is level-synchronous: a whole level is loaded with two
batched edge reads and one batched person read, so the first round in which
the frontiers touch has already recorded every shortest path through that
level. Each side keeps a distance map and a parent map that lists *all*
equally short parents, which is what makes it possible to return alternative
paths (through the father and through the mother, for instance). Edge ends
without a person record are never reached.

Step labels follow the stored edge direction: in a returned path, step ``i``
labelled ``t`` means ``path[i]`` is ``t`` of ``path[i + 1]``.
"""
import time
from dataclasses import dataclass, field
from typing import Optional

from family_graph.core.config import settings
from family_graph.core.errors import InvalidArgumentError
from family_graph.core.logging import get_logger
from family_graph.db.store import RelationshipStore
from family_graph.models.graph_model import (
    CommonAncestor,
    ConnectionPath,
    ConnectionResult,
    ConnectionStatistics,
    PathStep,
)
from family_graph.models.person_model import Person, PersonSummary
from family_graph.models.relationship_model import (
    RelationshipType,
    inverse_type,
    is_parent_type,
    parent_type_for_gender,
)
from family_graph.services.adjacency import collect_adjacency, neighbour_types
from family_graph.services.relationship_calculator import calculate_relationship
from family_graph.utils.deadline import with_deadline

logger = get_logger(__name__)

@dataclass
class ParentLink:
    parent: str
    # ``parent`` is ``type`` of the child this link is stored under
    type: RelationshipType

@dataclass
class _Side:
    root: str
    dist: dict[str, int] = field(default_factory=dict)
    parents: dict[str, list[ParentLink]] = field(default_factory=dict)
    # reached from the root by climbing parent edges only
    ascending: set[str] = field(default_factory=set)
    frontier: list[str] = field(default_factory=list)
    depth: int = 0
    expansions: int = 0

    def __post_init__(self):
        self.dist[self.root] = 0
        self.ascending.add(self.root)
        self.frontier.append(self.root)

@dataclass
class _RawPath:
    ids: list[str]
    types: list[RelationshipType]

def walk_back(start: str, parents: dict[str, list[ParentLink]], limit: int) -> list[_RawPath]:
    """Every chain from ``start`` back to the search root, at most ``limit`` of them.

    Iterative on purpose: long sibling chains must not hit the recursion limit.
    Returned ids run from ``start`` to the root; ``types[i]`` is what
    ``ids[i + 1]`` is to ``ids[i]``.
    """
    chains: list[_RawPath] = []
    stack = [(start, [start], [])]
    while stack and len(chains) < limit:
        node, ids, types = stack.pop()
        links = parents.get(node)
        if not links:
            chains.append(_RawPath(ids, types))
            continue
        for link in reversed(links):
            stack.append((link.parent, ids + [link.parent], types + [link.type]))
    return chains

def join_halves(a_half: _RawPath, b_half: _RawPath) -> _RawPath:
    """Concatenate the A side and the B side of a path through the same meeting point."""
    ids = list(reversed(a_half.ids)) + b_half.ids[1:]
    types = list(reversed(a_half.types)) + [inverse_type(t) for t in b_half.types]
    return _RawPath(ids, types)

def _refine(raw: _RawPath, persons: dict[str, Person]) -> _RawPath:
    types = []
    for pid, t in zip(raw.ids, raw.types):
        if t is RelationshipType.PARENT_OF and pid in persons:
            t = parent_type_for_gender(persons[pid].gender)
        types.append(t)
    return _RawPath(raw.ids, types)

def _peak(raw: _RawPath) -> Optional[tuple[str, int, int]]:
    """The shared ancestor of a path that only climbs from both ends, if any."""
    up_from_a = 0
    for t in raw.types:
        if t is not RelationshipType.CHILD_OF:
            break
        up_from_a += 1
    up_from_b = 0
    for t in reversed(raw.types):
        if not is_parent_type(t):
            break
        up_from_b += 1
    if up_from_a and up_from_b and up_from_a + up_from_b == len(raw.types):
        return raw.ids[up_from_a], up_from_a, up_from_b
    return None

class ConnectionFinder:
    def __init__(self, store: RelationshipStore):
        self.store = store

    async def find_connection(self, person_a: str, person_b: str,
                              max_depth: Optional[int] = None, max_paths: Optional[int] = None,
                              timeout: Optional[float] = None) -> Optional[ConnectionResult]:
        """Shortest paths from ``person_a`` to ``person_b``.

        Returns ``None`` when either person does not exist and a result with
        ``connected=False`` when they are not linked within ``max_depth`` hops.
        Each path's relationship says what ``person_a`` is to ``person_b``.
        """
        max_depth = settings.CONNECTION_MAX_DEPTH if max_depth is None else max_depth
        max_paths = settings.CONNECTION_MAX_PATHS if max_paths is None else max_paths
        if max_depth < 1:
            raise InvalidArgumentError("max_depth must be at least 1")
        if max_paths < 1:
            raise InvalidArgumentError("max_paths must be at least 1")
        if timeout is None:
            timeout = settings.TRAVERSAL_TIMEOUT_SECONDS
        return await with_deadline(
            self._find(person_a, person_b, max_depth, max_paths), timeout, "find_connection"
        )

    async def _find(self, person_a: str, person_b: str, max_depth: int,
                    max_paths: int) -> Optional[ConnectionResult]:
        started = time.perf_counter()
        stats = ConnectionStatistics()

        persons = {p.id: p for p in await self.store.get_persons_by_ids({person_a, person_b})}
        stats.storeCalls += 1
        if person_a not in persons or person_b not in persons:
            return None
        a, b = persons[person_a], persons[person_b]

        if person_a == person_b:
            stats.nodesExplored = 1
            stats.shortestDistance = 0
            stats.pathsFound = 1
            stats.elapsedMs = (time.perf_counter() - started) * 1000
            return ConnectionResult(
                connected=True,
                personA=PersonSummary.of(a),
                personB=PersonSummary.of(b),
                paths=[ConnectionPath(path=[a.id], names=[a.name], relationships=[], depth=0,
                                      relationship=calculate_relationship([], a.gender, a.gender))],
                statistics=stats,
            )

        side_a, side_b = _Side(person_a), _Side(person_b)
        while side_a.frontier and side_b.frontier and side_a.depth + side_b.depth < max_depth:
            if len(side_a.frontier) <= len(side_b.frontier):
                side, other = side_a, side_b
            else:
                side, other = side_b, side_a
            reached = await self._expand(side, persons, stats)
            if any(v in other.dist for v in reached):
                break

        stats.expansionsFromA = side_a.expansions
        stats.expansionsFromB = side_b.expansions
        stats.nodesExplored = len(side_a.dist.keys() | side_b.dist.keys())

        both = [v for v in side_a.dist if v in side_b.dist]
        if not both:
            stats.elapsedMs = (time.perf_counter() - started) * 1000
            logger.info("connection_not_found", person_a=person_a, person_b=person_b,
                        max_depth=max_depth, explored=stats.nodesExplored)
            return ConnectionResult(connected=False, personA=PersonSummary.of(a),
                                    personB=PersonSummary.of(b), statistics=stats)

        best = min(side_a.dist[v] + side_b.dist[v] for v in both)
        # lexical order keeps equally short results reproducible
        meeting_points = sorted(v for v in both if side_a.dist[v] + side_b.dist[v] == best)

        raw_paths: dict[tuple[str, ...], _RawPath] = {}
        for m in meeting_points:
            for a_half in walk_back(m, side_a.parents, max_paths):
                for b_half in walk_back(m, side_b.parents, max_paths):
                    joined = join_halves(a_half, b_half)
                    raw_paths.setdefault(tuple(joined.ids), joined)
        chosen = [raw_paths[k] for k in sorted(raw_paths, key=lambda ids: (len(ids), ids))][:max_paths]

        ancestor_dist: dict[str, tuple[int, int]] = {
            v: (side_a.dist[v], side_b.dist[v])
            for v in both
            if v not in (person_a, person_b) and v in side_a.ascending and v in side_b.ascending
        }
        for raw in chosen:
            peak = _peak(raw)
            if peak is not None:
                ancestor_dist.setdefault(peak[0], (peak[1], peak[2]))

        paths = [self._describe(_refine(raw, persons), persons) for raw in chosen]
        ancestors = sorted(ancestor_dist.items(), key=lambda kv: (kv[1][0] + kv[1][1], kv[0]))
        common = [
            CommonAncestor(person=PersonSummary.of(persons[v]), distanceFromA=da, distanceFromB=db)
            for v, (da, db) in ancestors
            if v in persons
        ][: settings.COMMON_ANCESTOR_LIMIT]

        stats.shortestDistance = best
        stats.pathsFound = len(paths)
        stats.elapsedMs = (time.perf_counter() - started) * 1000
        logger.info("connection_found", person_a=person_a, person_b=person_b, distance=best,
                    paths=len(paths), store_calls=stats.storeCalls)
        return ConnectionResult(
            connected=True,
            personA=PersonSummary.of(a),
            personB=PersonSummary.of(b),
            paths=paths,
            commonAncestors=common,
            statistics=stats,
        )

    async def _expand(self, side: _Side, persons: dict[str, Person],
                      stats: ConnectionStatistics) -> list[str]:
        """Advance one side by a full level; returns the newly reached ids.

        Persons of the new level are loaded in the same round; edge ends
        without a person record are not reached.
        """
        source_edges = await self.store.get_edges_by_source_ids(side.frontier)
        target_edges = await self.store.get_edges_by_target_ids(side.frontier)
        stats.storeCalls += 2
        adjacency = collect_adjacency(side.frontier, source_edges, target_edges)
        neighbours = {u: neighbour_types(adjacency, u) for u in side.frontier}

        unknown = {v for links in neighbours.values() for v in links if v not in persons}
        if unknown:
            for p in await self.store.get_persons_by_ids(unknown):
                persons[p.id] = p
            stats.storeCalls += 1

        next_depth = side.depth + 1
        reached: list[str] = []
        for u in side.frontier:
            for v, rel_type in neighbours[u].items():
                if v not in persons:
                    continue
                seen = side.dist.get(v)
                if seen is None:
                    side.dist[v] = next_depth
                    side.parents[v] = [ParentLink(u, rel_type)]
                    reached.append(v)
                elif seen == next_depth:
                    side.parents[v].append(ParentLink(u, rel_type))
                else:
                    continue
                if rel_type is RelationshipType.CHILD_OF and u in side.ascending:
                    side.ascending.add(v)

        side.frontier = reached
        side.depth = next_depth
        side.expansions += 1
        return reached

    def _describe(self, raw: _RawPath, persons: dict[str, Person]) -> ConnectionPath:
        start, end = persons.get(raw.ids[0]), persons.get(raw.ids[-1])
        # walking from B back to A reads every label as "next is <type> of current"
        relationship = calculate_relationship(
            list(reversed(raw.types)),
            end.gender if end else None,
            start.gender if start else None,
        )
        return ConnectionPath(
            path=raw.ids,
            names=[persons[i].name if i in persons else "Unknown" for i in raw.ids],
            relationships=[
                PathStep(fromPersonId=frm, toPersonId=to, type=t)
                for frm, to, t in zip(raw.ids, raw.ids[1:], raw.types)
            ],
            depth=len(raw.types),
            relationship=relationship,
        )
