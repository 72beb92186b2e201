"""Tests for MergeDetector: phone duplicates, conflicts and the approval workflow."""
from __future__ import annotations

from datetime import date

import pytest

from family_graph.core.errors import ConflictError, InvalidArgumentError, NotFoundError, StoreFailureError
from family_graph.db.memory_store import _InMemoryTransaction
from family_graph.models.merge_model import MergeStatus
from family_graph.models.relationship_model import RelationshipType as R
from family_graph.services.merge_service import MergeDetector, detect_conflicts
from tests.conftest import make_person

PHONE = "+919876543210"


@pytest.fixture
def duplicates(store):
    """user1 recorded Ramesh as X; user2 later added the same man as Y."""
    store.add_person(make_person("x", "male", name="Ramesh Kumar", phone=PHONE, occupation="Farmer",
                                 dob=date(1960, 5, 1), createdByUserId="user1"))
    store.add_person(make_person("y", "male", name="Ramesh K", phone=PHONE, dob=date(1960, 5, 1),
                                 city="Nagpur", createdByUserId="user2", authUserId="auth-ramesh"))
    store.add_person(make_person("x_son", "male", createdByUserId="user1"))
    store.add_person(make_person("y_wife", "female", createdByUserId="user2"))
    store.add_person(make_person("y_son", "male", createdByUserId="user2"))
    store.add_relationship("x", "x_son", R.FATHER_OF, with_inverse=True)
    store.add_relationship("y", "y_wife", R.SPOUSE_OF, with_inverse=True)
    store.add_relationship("y", "y_son", R.FATHER_OF)
    store.add_relationship("y", "x", R.SIBLING_OF)
    return store


async def open_request(store):
    return await MergeDetector(store).handle_new_person(store.persons["y"], "user2")


class TestDetection:
    """Phone lookups and conflict detection."""

    @pytest.mark.asyncio
    async def test_detects_record_of_another_user(self, duplicates):
        found = await MergeDetector(duplicates).detect_by_phone(PHONE, "user2")
        assert found.id == "x"

    @pytest.mark.asyncio
    async def test_own_records_are_not_candidates(self, store):
        store.add_person(make_person("a", phone=PHONE, createdByUserId="user1"))
        assert await MergeDetector(store).detect_by_phone(PHONE, "user1") is None

    def test_conflicts_need_two_different_values(self, duplicates):
        conflicts = detect_conflicts(duplicates.persons["x"], duplicates.persons["y"])

        assert set(conflicts) == {"name"}
        assert conflicts["name"].target == "Ramesh Kumar"
        assert conflicts["name"].matched == "Ramesh K"

    def test_no_conflicts_when_equal(self):
        a = make_person("a", "female", name="Sita", city="Pune")
        assert detect_conflicts(a, a.model_copy(update={"id": "b"})) == {}

    @pytest.mark.asyncio
    async def test_handle_new_person_opens_request(self, duplicates):
        mr = await open_request(duplicates)

        assert mr.status is MergeStatus.PENDING
        assert mr.targetPersonId == "x"
        assert mr.matchedPersonId == "y"
        assert mr.requesterUserId == "user2"
        assert set(mr.fieldConflicts) == {"name"}
        assert duplicates.merge_requests[mr.id] == mr

    @pytest.mark.asyncio
    async def test_handle_new_person_without_match(self, store):
        store.add_person(make_person("solo", phone=PHONE, createdByUserId="user1"))
        assert await MergeDetector(store).handle_new_person(store.persons["solo"], "user1") is None

        no_phone = store.add_person(make_person("nophone", createdByUserId="user2"))
        assert await MergeDetector(store).handle_new_person(no_phone, "user2") is None

    @pytest.mark.asyncio
    async def test_cannot_merge_person_into_itself(self, duplicates):
        with pytest.raises(InvalidArgumentError):
            await MergeDetector(duplicates).create_merge_request("user1", "x", "x")


class TestApprove:
    """Atomic approval."""

    @pytest.mark.asyncio
    async def test_approve_folds_matched_into_target(self, duplicates):
        mr = await open_request(duplicates)

        done = await MergeDetector(duplicates).approve_merge(mr.id, "user1", {"name": "Ramesh Kumar Patil"})

        assert done.status is MergeStatus.APPROVED
        assert done.resolvedByUserId == "user1"
        assert done.resolvedAt is not None
        assert "y" not in duplicates.persons
        x = duplicates.persons["x"]
        assert x.name == "Ramesh Kumar Patil"
        assert x.authUserId == "auth-ramesh"
        assert x.verified is True
        assert x.occupation == "Farmer"

    @pytest.mark.asyncio
    async def test_edges_move_to_target(self, duplicates):
        mr = await open_request(duplicates)

        await MergeDetector(duplicates).approve_merge(mr.id, "user1")

        edges = {(e.fromPersonId, e.toPersonId, e.type) for e in duplicates.edges}
        assert ("x", "y_wife", R.SPOUSE_OF) in edges
        assert ("y_wife", "x", R.SPOUSE_OF) in edges
        assert ("x", "y_son", R.FATHER_OF) in edges
        assert ("x", "x_son", R.FATHER_OF) in edges
        assert all("y" not in (frm, to) for frm, to, _ in edges)
        # y and x were linked to each other; that link would point x at itself
        assert all(frm != to for frm, to, _ in edges)

    @pytest.mark.asyncio
    async def test_failure_rolls_everything_back(self, duplicates, monkeypatch):
        mr = await open_request(duplicates)
        edges_before = list(duplicates.edges)

        async def broken(self, old_id, new_id):
            raise StoreFailureError("connection reset")

        monkeypatch.setattr(_InMemoryTransaction, "reassign_edge_endpoint", broken)

        with pytest.raises(StoreFailureError):
            await MergeDetector(duplicates).approve_merge(mr.id, "user1", {"name": "Changed"})

        assert duplicates.persons["x"].name == "Ramesh Kumar"
        assert duplicates.persons["x"].authUserId is None
        assert "y" in duplicates.persons
        assert duplicates.edges == edges_before
        assert duplicates.merge_requests[mr.id].status is MergeStatus.PENDING

    @pytest.mark.asyncio
    async def test_approving_twice_conflicts(self, duplicates):
        mr = await open_request(duplicates)
        detector = MergeDetector(duplicates)
        await detector.approve_merge(mr.id, "user1")

        with pytest.raises(ConflictError):
            await detector.approve_merge(mr.id, "user1")

    @pytest.mark.asyncio
    async def test_unknown_request(self, duplicates):
        with pytest.raises(NotFoundError):
            await MergeDetector(duplicates).approve_merge("missing", "user1")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("fields", [{"id": "z"}, {"authUserId": "someone"}, {"favouriteColour": "red"}])
    async def test_protected_or_unknown_fields_rejected(self, duplicates, fields):
        mr = await open_request(duplicates)

        with pytest.raises(InvalidArgumentError):
            await MergeDetector(duplicates).approve_merge(mr.id, "user1", fields)
        assert duplicates.merge_requests[mr.id].status is MergeStatus.PENDING

    @pytest.mark.asyncio
    async def test_invalid_values_roll_back(self, duplicates):
        mr = await open_request(duplicates)

        with pytest.raises(InvalidArgumentError):
            await MergeDetector(duplicates).approve_merge(mr.id, "user1", {"gender": "robot"})
        assert "y" in duplicates.persons
        assert duplicates.merge_requests[mr.id].status is MergeStatus.PENDING


class TestRejectAndList:
    """Rejection and pending lists."""

    @pytest.mark.asyncio
    async def test_reject_only_changes_status(self, duplicates):
        mr = await open_request(duplicates)
        edges_before = list(duplicates.edges)

        done = await MergeDetector(duplicates).reject_merge(mr.id, "user1")

        assert done.status is MergeStatus.REJECTED
        assert {"x", "y"} <= set(duplicates.persons)
        assert duplicates.edges == edges_before

    @pytest.mark.asyncio
    async def test_reject_after_approve_conflicts(self, duplicates):
        mr = await open_request(duplicates)
        detector = MergeDetector(duplicates)
        await detector.approve_merge(mr.id, "user1")

        with pytest.raises(ConflictError):
            await detector.reject_merge(mr.id, "user1")

    @pytest.mark.asyncio
    async def test_list_pending(self, duplicates):
        mr = await open_request(duplicates)
        detector = MergeDetector(duplicates)

        assert [m.id for m in await detector.list_pending("user1")] == [mr.id]
        assert [m.id for m in await detector.list_pending("user2")] == [mr.id]
        assert await detector.list_pending("user3") == []

        await detector.reject_merge(mr.id, "user1")
        assert await detector.list_pending("user1") == []
