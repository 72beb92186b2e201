"""Turn batches of stored edges into per-person relationship lists.

Edges are stored directed and the inverse row may or may not exist, so every
traversal reads both the rows a person is the source of and the rows a person
is the target of. Target-side rows are flipped to read from the person
outward. When both rows of a pair exist they describe the same link and
collapse into one entry, keeping the gendered parent type over the generic one.
"""
from typing import Iterable, Mapping, Optional

from family_graph.models.relationship_model import (
    Relationship,
    RelationshipType,
    is_parent_type,
    parent_type_for_gender,
    specificity,
)

Adjacency = dict[str, dict[tuple[str, str], Relationship]]

def _kind(rel_type: RelationshipType) -> str:
    return "PARENT" if is_parent_type(rel_type) else rel_type.value

def _keep(links: dict[tuple[str, str], Relationship], rel: Relationship) -> None:
    key = (rel.toPersonId, _kind(rel.type))
    current = links.get(key)
    if current is None or specificity(rel.type) > specificity(current.type):
        links[key] = rel

def collect_adjacency(
    ids: Iterable[str],
    source_edges: Iterable[Relationship],
    target_edges: Iterable[Relationship],
    genders: Optional[Mapping[str, str]] = None,
) -> Adjacency:
    """Relationships of each id, oriented so that ``fromPersonId`` is that id."""
    adjacency: Adjacency = {i: {} for i in ids}
    for edge in source_edges:
        if edge.fromPersonId in adjacency:
            _keep(adjacency[edge.fromPersonId], edge)
    for edge in target_edges:
        if edge.toPersonId not in adjacency:
            continue
        flipped = edge.inverse()
        if flipped.type is RelationshipType.PARENT_OF and genders:
            flipped = flipped.model_copy(
                update={"type": parent_type_for_gender(genders.get(flipped.fromPersonId))}
            )
        _keep(adjacency[edge.toPersonId], flipped)
    return adjacency

def relationships_of(adjacency: Adjacency, person_id: str) -> list[Relationship]:
    return sorted(adjacency.get(person_id, {}).values(), key=lambda r: (r.toPersonId, _kind(r.type)))

def neighbour_types(adjacency: Adjacency, person_id: str) -> dict[str, RelationshipType]:
    """One step label per neighbour, in a stable order.

    ``{v: t}`` means the person is ``t`` of ``v``.
    """
    out: dict[str, RelationshipType] = {}
    for rel in relationships_of(adjacency, person_id):
        out.setdefault(rel.toPersonId, rel.type)
    return out
