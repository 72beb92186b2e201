"""Tests for TreeBuilder."""
from __future__ import annotations

import asyncio

import pytest

from family_graph.core.errors import TraversalTimeoutError
from family_graph.db.memory_store import InMemoryRelationshipStore
from family_graph.models.relationship_model import RelationshipType as R
from family_graph.services.tree_service import TreeBuilder
from tests.conftest import make_person


class SlowStore(InMemoryRelationshipStore):
    async def get_persons_by_ids(self, ids):
        await asyncio.sleep(0.2)
        return await super().get_persons_by_ids(ids)


class TestBuildTree:
    """Connected component loading."""

    @pytest.mark.asyncio
    async def test_loads_whole_component(self, family):
        family.add_person(make_person("stranger"))

        tree = await TreeBuilder(family).build_tree("me")

        ids = {p.id for p in tree.persons}
        assert ids == {"grandpa", "grandma", "dad", "mom", "aunt", "me", "sis", "cousin"}
        assert tree.rootPersonId == "me"
        assert set(tree.edgesByPerson) == ids

    @pytest.mark.asyncio
    async def test_edges_read_from_both_directions(self, family):
        tree = await TreeBuilder(family).build_tree("mom")

        mom = {(r.toPersonId, r.type) for r in tree.edgesByPerson["mom"]}
        # dad-mom is stored once, from dad; sis-mom is stored once, from sis
        assert ("dad", R.SPOUSE_OF) in mom
        assert ("sis", R.MOTHER_OF) in mom
        assert ("me", R.MOTHER_OF) in mom
        assert all(r.fromPersonId == "mom" for r in tree.edgesByPerson["mom"])

    @pytest.mark.asyncio
    async def test_stored_pair_is_listed_once(self, family):
        tree = await TreeBuilder(family).build_tree("me")

        to_dad = [r for r in tree.edgesByPerson["dad"] if r.toPersonId == "me"]
        assert len(to_dad) == 1
        assert to_dad[0].type is R.FATHER_OF

    @pytest.mark.asyncio
    async def test_unknown_root_gives_empty_tree(self, family):
        tree = await TreeBuilder(family).build_tree("nobody")

        assert tree.rootPersonId == "nobody"
        assert tree.persons == []
        assert tree.edgesByPerson == {}

    @pytest.mark.asyncio
    async def test_lonely_person(self, store):
        store.add_person(make_person("solo"))

        tree = await TreeBuilder(store).build_tree("solo")

        assert [p.id for p in tree.persons] == ["solo"]
        assert tree.edgesByPerson == {"solo": []}

    @pytest.mark.asyncio
    async def test_dangling_edges_are_dropped(self, store):
        store.add_person(make_person("a"))
        store.add_relationship("a", "ghost", R.SIBLING_OF)

        tree = await TreeBuilder(store).build_tree("a")

        assert [p.id for p in tree.persons] == ["a"]
        assert tree.edgesByPerson["a"] == []


class TestRoundTrips:
    """Store calls grow with hops, not with people."""

    @pytest.mark.asyncio
    async def test_chain_uses_one_round_per_hop(self, chain):
        tree = await TreeBuilder(chain).build_tree("p0")

        assert len(tree.persons) == 10
        # nine hops plus the root round
        assert chain.calls["get_persons_by_ids"] == 10
        assert chain.calls["get_edges_by_source_ids"] == 10
        assert chain.calls["get_edges_by_target_ids"] == 10

    @pytest.mark.asyncio
    async def test_wide_family_stays_shallow(self, store):
        store.add_person(make_person("root", "female"))
        for i in range(50):
            store.add_person(make_person(f"kid{i}"))
            store.add_relationship("root", f"kid{i}", R.MOTHER_OF)

        tree = await TreeBuilder(store).build_tree("root")

        assert len(tree.persons) == 51
        assert store.calls["get_persons_by_ids"] == 2


class TestDeadline:
    """Traversals stop when their deadline passes."""

    @pytest.mark.asyncio
    async def test_timeout_raises(self):
        store = SlowStore()
        store.add_person(make_person("a"))

        with pytest.raises(TraversalTimeoutError):
            await TreeBuilder(store).build_tree("a", timeout=0.01)
