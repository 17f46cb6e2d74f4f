"""Tests for the entity store."""

import pytest
from sqlalchemy import update

from predictor_tracker import db
from predictor_tracker.errors import NotFound, StaleEntity
from predictor_tracker.models import Predictor
from predictor_tracker.store import EntityStore


class TestCrud:
    """Create, read, update and delete through the store."""

    def test_create_assigns_id_and_version(self, store):
        predictor = store.create("predictors", name="Alice")

        assert predictor.id
        assert predictor.version_id == 1
        assert store.get_by_id("predictors", predictor.id) is predictor

    def test_list_returns_creation_order(self, store, make_predictor):
        first = make_predictor("First")
        second = make_predictor("Second")

        assert [p.id for p in store.list("predictors")] == [first.id, second.id]

    def test_get_by_id_missing_returns_none(self, store):
        assert store.get_by_id("predictors", "nope") is None
        assert store.get_by_id("predictors", "") is None

    def test_get_or_404_raises_not_found(self, store):
        with pytest.raises(NotFound) as exc_info:
            store.get_or_404("matches", "nope")

        assert exc_info.value.message == "Match not found"
        assert exc_info.value.status_code == 404

    def test_update_bumps_version(self, store, make_predictor):
        predictor = make_predictor("Alice")

        updated = store.update("predictors", predictor.id, name="Alicia")

        assert updated.name == "Alicia"
        assert updated.version_id == 2

    def test_update_unknown_id_raises(self, store):
        with pytest.raises(NotFound):
            store.update("predictors", "nope", name="x")

    def test_unknown_entity_type(self, store):
        with pytest.raises(ValueError):
            store.list("teams")

    def test_protected_fields_rejected(self, store, make_predictor):
        predictor = make_predictor()

        with pytest.raises(ValueError):
            store.update("predictors", predictor.id, is_deleted=True)
        with pytest.raises(ValueError):
            store.create("predictors", name="Bob", nickname="b")


class TestTombstones:
    """Deleted records disappear from every read path."""

    def test_delete_hides_record(self, store, make_predictor):
        predictor = make_predictor()

        result = store.delete("predictors", predictor.id)

        assert result["success"] is True
        assert store.get_by_id("predictors", predictor.id) is None
        assert store.list("predictors") == []

    def test_row_is_kept(self, store, make_predictor):
        predictor = make_predictor()
        store.delete("predictors", predictor.id)

        row = db.session.get(Predictor, predictor.id)
        assert row is not None
        assert row.is_deleted is True

    def test_deleted_predictions_leave_filtered_scans(
        self, store, make_match, make_predictor, make_prediction
    ):
        match = make_match()
        prediction = make_prediction(match, make_predictor())

        store.delete("predictions", prediction.id)

        assert store.predictions_for_match(match.id) == []
        assert store.predictions_for_matches([match.id]) == []

    def test_delete_twice_is_not_found(self, store, make_predictor):
        predictor = make_predictor()
        store.delete("predictors", predictor.id)

        with pytest.raises(NotFound):
            store.delete("predictors", predictor.id)


class TestVersionConflicts:
    """Optimistic compare-and-swap on updates."""

    def test_expected_version_mismatch(self, store, make_predictor):
        predictor = make_predictor()
        store.update("predictors", predictor.id, name="Second")

        with pytest.raises(StaleEntity) as exc_info:
            store.update("predictors", predictor.id, expected_version=1, name="Third")

        assert exc_info.value.status_code == 409
        assert store.get_by_id("predictors", predictor.id).name == "Second"

    def test_expected_version_match(self, store, make_predictor):
        predictor = make_predictor()

        updated = store.update("predictors", predictor.id, expected_version=1, name="B")

        assert updated.version_id == 2

    def test_concurrent_writer_detected_on_commit(self, store, make_predictor):
        predictor = make_predictor()
        record = store.get_by_id("predictors", predictor.id)

        # Another writer bumps the version behind the session's back
        db.session.execute(
            update(Predictor)
            .where(Predictor.id == predictor.id)
            .values(version_id=Predictor.version_id + 1)
            .execution_options(synchronize_session=False)
        )
        record.name = "Local change"

        with pytest.raises(StaleEntity):
            store.commit("predictors", predictor.id)


class TestFilteredScans:
    def test_matches_for_tournament(self, store, make_tournament, make_match):
        first = make_tournament("First")
        second = make_tournament("Second")
        match = make_match(tournament=first)
        make_match(tournament=second)

        assert [m.id for m in store.matches_for_tournament(first.id)] == [match.id]

    def test_predictions_for_predictor(
        self, store, make_match, make_predictor, make_prediction
    ):
        alice = make_predictor("Alice")
        bob = make_predictor("Bob")
        match = make_match()
        mine = make_prediction(match, alice, "Red")
        make_prediction(match, bob, "Blue")

        assert [p.id for p in store.predictions_for_predictor(alice.id)] == [mine.id]

    def test_predictions_for_no_matches(self, store):
        assert store.predictions_for_matches([]) == []

    def test_children_of(self, store, make_predictor):
        parent = make_predictor("Parent")
        child = make_predictor("Child", parent=parent)

        assert [p.id for p in store.children_of(parent.id)] == [child.id]
        assert store.children_of(child.id) == []

    def test_store_is_bound_to_given_session(self, app):
        store = EntityStore(db.session)
        assert store.session is db.session
