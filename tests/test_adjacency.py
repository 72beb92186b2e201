"""Tests for merging stored edge rows into per-person relationships."""
from __future__ import annotations

from family_graph.models.relationship_model import Relationship, RelationshipType as R
from family_graph.services.adjacency import collect_adjacency, neighbour_types, relationships_of


def edge(frm: str, to: str, rel_type: R) -> Relationship:
    return Relationship(id=f"{frm}-{to}", fromPersonId=frm, toPersonId=to, type=rel_type)


class TestCollectAdjacency:
    """Both directions of a link collapse into one entry."""

    def test_target_rows_are_flipped(self):
        adjacency = collect_adjacency(["kid"], [], [edge("mum", "kid", R.MOTHER_OF)])
        rels = relationships_of(adjacency, "kid")
        assert len(rels) == 1
        assert rels[0].fromPersonId == "kid"
        assert rels[0].toPersonId == "mum"
        assert rels[0].type is R.CHILD_OF

    def test_pair_of_rows_is_one_relationship(self):
        adjacency = collect_adjacency(
            ["dad"],
            [edge("dad", "kid", R.FATHER_OF)],
            [edge("kid", "dad", R.CHILD_OF)],
        )
        rels = relationships_of(adjacency, "dad")
        assert [(r.toPersonId, r.type) for r in rels] == [("kid", R.FATHER_OF)]

    def test_gendered_parent_type_beats_generic(self):
        # the flipped CHILD_OF row only knows "PARENT_OF"
        adjacency = collect_adjacency(
            ["dad"],
            [edge("dad", "kid", R.FATHER_OF)],
            [edge("kid", "dad", R.CHILD_OF)],
        )
        assert neighbour_types(adjacency, "dad") == {"kid": R.FATHER_OF}

    def test_genders_refine_flipped_parent_rows(self):
        adjacency = collect_adjacency(["mum"], [], [edge("kid", "mum", R.CHILD_OF)], {"mum": "female"})
        assert neighbour_types(adjacency, "mum") == {"kid": R.MOTHER_OF}

    def test_edges_of_other_people_are_ignored(self):
        adjacency = collect_adjacency(["a"], [edge("b", "c", R.SIBLING_OF)], [edge("b", "c", R.SIBLING_OF)])
        assert relationships_of(adjacency, "a") == []
        assert relationships_of(adjacency, "missing") == []
