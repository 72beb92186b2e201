"""Shared fixtures: small families loaded into the in-memory store."""
from __future__ import annotations

import pytest

from family_graph.db.memory_store import InMemoryRelationshipStore
from family_graph.models.person_model import Person
from family_graph.models.relationship_model import RelationshipType as R


def make_person(pid: str, gender: str = "other", **fields) -> Person:
    fields.setdefault("name", pid.capitalize())
    return Person(id=pid, gender=gender, **fields)


@pytest.fixture
def store() -> InMemoryRelationshipStore:
    return InMemoryRelationshipStore()


@pytest.fixture
def family(store: InMemoryRelationshipStore) -> InMemoryRelationshipStore:
    """Three generations.

    grandpa + grandma have two children, dad and aunt. dad + mom have
    me and sis; aunt has cousin. Only one row is stored per link for
    half of the links so readers must merge both directions.
    """
    for pid, gender, extra in [
        ("grandpa", "male", {"occupation": "Farmer", "city": "Pune"}),
        ("grandma", "female", {"occupation": "Teacher", "city": "Pune"}),
        ("dad", "male", {"occupation": "Engineer", "city": "Mumbai", "maritalStatus": "married"}),
        ("mom", "female", {"occupation": "Doctor", "city": "Mumbai", "maritalStatus": "married"}),
        ("aunt", "female", {"occupation": "Software Engineer", "state": "Karnataka"}),
        ("me", "male", {"occupation": "Student", "maritalStatus": "single"}),
        ("sis", "female", {"occupation": "Artist", "maritalStatus": "single"}),
        ("cousin", "male", {"occupation": "Pilot"}),
    ]:
        store.add_person(make_person(pid, gender, **extra))

    store.add_relationship("grandpa", "grandma", R.SPOUSE_OF, with_inverse=True)
    store.add_relationship("grandpa", "dad", R.FATHER_OF, with_inverse=True)
    store.add_relationship("grandma", "dad", R.MOTHER_OF)
    store.add_relationship("aunt", "grandpa", R.CHILD_OF, with_inverse=True)
    store.add_relationship("grandma", "aunt", R.MOTHER_OF)
    store.add_relationship("dad", "mom", R.SPOUSE_OF)
    store.add_relationship("dad", "me", R.FATHER_OF, with_inverse=True)
    store.add_relationship("mom", "me", R.MOTHER_OF)
    store.add_relationship("dad", "sis", R.FATHER_OF)
    store.add_relationship("sis", "mom", R.CHILD_OF)
    store.add_relationship("me", "sis", R.SIBLING_OF)
    store.add_relationship("aunt", "cousin", R.MOTHER_OF, with_inverse=True)
    return store


@pytest.fixture
def chain(store: InMemoryRelationshipStore) -> InMemoryRelationshipStore:
    """p0 - p1 - ... - p9 linked by sibling rows, one row per link."""
    for i in range(10):
        store.add_person(make_person(f"p{i}"))
    for i in range(9):
        store.add_relationship(f"p{i}", f"p{i + 1}", R.SIBLING_OF)
    return store
