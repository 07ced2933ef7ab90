import pytest
from sqlalchemy.exc import OperationalError

from database import db
from errors import (Forbidden, InvalidTransition, ItemNotFound, MatchNotFound,
                    PersistenceError, ValidationError)
from models import LostItem, MatchResult, MatchStatus
from services import MatchService
from tests.factories import add_found, add_lost, create_test_app, seed_reference_data


def setup_pair():
    ref = seed_reference_data()
    lost = add_lost(ref.alice, ref.electronics)
    found = add_found(ref.bob, ref.electronics)
    return ref, lost, found


def test_repeated_saves_keep_one_row():
    app = create_test_app()
    with app.app_context():
        service = MatchService(db.session)
        _, lost, found = setup_pair()

        first = service.save_match(lost.id, found.id, 72, "good")
        second = service.save_match(lost.id, found.id, 91, "excellent")
        service.save_match(lost.id, found.id, 91, "excellent")

        assert first.created is True
        assert second.created is False
        assert MatchResult.query.count() == 1
        match = MatchResult.query.one()
        assert match.score == 91
        assert match.reason == "Match confidence: excellent (91% similarity)"
        assert match.status == MatchStatus.SUGGESTED


@pytest.mark.parametrize("status", [MatchStatus.CONFIRMED, MatchStatus.DISMISSED])
def test_rescoring_never_reverts_status(status):
    app = create_test_app()
    with app.app_context():
        service = MatchService(db.session)
        ref, lost, found = setup_pair()
        match = service.save_match(lost.id, found.id, 80, "good").match
        service.set_match_status(match.id, status, ref.alice.id)
        action_date = db.session.get(MatchResult, match.id).action_date

        service.save_match(lost.id, found.id, 55, "possible")

        match = db.session.get(MatchResult, match.id)
        assert match.status == status
        assert match.score == 55
        assert match.action_date == action_date


def test_lost_owner_confirms_match():
    app = create_test_app()
    with app.app_context():
        service = MatchService(db.session)
        ref, lost, found = setup_pair()
        match = service.save_match(lost.id, found.id, 95, "excellent").match

        updated = service.set_match_status(match.id, MatchStatus.CONFIRMED, ref.alice.id)

        assert updated.status == MatchStatus.CONFIRMED
        assert updated.confirmed_by == ref.alice.id
        assert updated.dismissed_by is None
        assert updated.action_date is not None


def test_found_owner_dismisses_match():
    app = create_test_app()
    with app.app_context():
        service = MatchService(db.session)
        ref, lost, found = setup_pair()
        match = service.save_match(lost.id, found.id, 60, "possible").match

        updated = service.set_match_status(match.id, MatchStatus.DISMISSED, ref.bob.id)

        assert updated.status == MatchStatus.DISMISSED
        assert updated.dismissed_by == ref.bob.id


def test_non_owner_cannot_confirm():
    app = create_test_app()
    with app.app_context():
        service = MatchService(db.session)
        ref, lost, found = setup_pair()
        match = service.save_match(lost.id, found.id, 95, "excellent").match

        with pytest.raises(Forbidden):
            service.set_match_status(match.id, MatchStatus.CONFIRMED, ref.mallory.id)
        assert db.session.get(MatchResult, match.id).status == MatchStatus.SUGGESTED


def test_redismissing_is_a_no_op():
    app = create_test_app()
    with app.app_context():
        service = MatchService(db.session)
        ref, lost, found = setup_pair()
        match = service.save_match(lost.id, found.id, 60, "possible").match
        service.set_match_status(match.id, MatchStatus.DISMISSED, ref.alice.id)
        action_date = db.session.get(MatchResult, match.id).action_date

        again = service.set_match_status(match.id, MatchStatus.DISMISSED, ref.bob.id)

        assert again.status == MatchStatus.DISMISSED
        assert again.dismissed_by == ref.alice.id
        assert again.action_date == action_date


def test_decided_matches_cannot_change_direction():
    app = create_test_app()
    with app.app_context():
        service = MatchService(db.session)
        ref, lost, found = setup_pair()
        match = service.save_match(lost.id, found.id, 60, "possible").match
        service.set_match_status(match.id, MatchStatus.DISMISSED, ref.alice.id)

        with pytest.raises(InvalidTransition):
            service.set_match_status(match.id, MatchStatus.CONFIRMED, ref.alice.id)
        with pytest.raises(InvalidTransition):
            service.set_match_status(match.id, MatchStatus.SUGGESTED, ref.alice.id)
        assert db.session.get(MatchResult, match.id).status == MatchStatus.DISMISSED


def test_status_literals_are_validated():
    app = create_test_app()
    with app.app_context():
        service = MatchService(db.session)
        ref, lost, found = setup_pair()
        match = service.save_match(lost.id, found.id, 60, "possible").match

        with pytest.raises(ValidationError):
            service.set_match_status(match.id, "accepted", ref.alice.id)
        with pytest.raises(MatchNotFound):
            service.set_match_status(12345, MatchStatus.CONFIRMED, ref.alice.id)


def test_saved_matches_for_both_sides():
    app = create_test_app()
    with app.app_context():
        service = MatchService(db.session)
        ref, lost, found = setup_pair()
        other = add_found(ref.bob, ref.electronics, title="Grey Laptop")
        low = service.save_match(lost.id, found.id, 60, "possible").match
        high = service.save_match(lost.id, other.id, 88, "good").match
        service.set_match_status(low.id, MatchStatus.DISMISSED, ref.alice.id)

        assert [m.id for m in service.saved_matches("lost", lost.id)] == [high.id, low.id]
        assert [m.id for m in service.saved_matches("lost", lost.id, MatchStatus.DISMISSED)] == [low.id]
        assert [m.id for m in service.saved_matches("found", other.id)] == [high.id]
        assert service.saved_matches("found", other.id, MatchStatus.CONFIRMED) == []


def test_saved_matches_rejects_bad_input():
    app = create_test_app()
    with app.app_context():
        service = MatchService(db.session)
        setup_pair()

        with pytest.raises(ValidationError):
            service.saved_matches("stolen", 1)
        with pytest.raises(ValidationError):
            service.saved_matches("lost", 1, "maybe")
        with pytest.raises(ItemNotFound):
            service.saved_matches("found", 999)


def test_suggested_for_owner():
    app = create_test_app()
    with app.app_context():
        service = MatchService(db.session)
        ref, lost, found = setup_pair()
        other = add_found(ref.bob, ref.electronics, title="Grey Laptop")
        weak = add_found(ref.bob, ref.electronics, title="Tablet")
        kept = service.save_match(lost.id, found.id, 75, "good").match
        dismissed = service.save_match(lost.id, other.id, 90, "excellent").match
        service.save_match(lost.id, weak.id, 40, "poor")
        service.set_match_status(dismissed.id, MatchStatus.DISMISSED, ref.alice.id)

        assert [m.id for m in service.suggested_for_owner(ref.alice.id)] == [kept.id]
        assert service.suggested_for_owner(ref.bob.id) == []


def test_deleting_an_item_cascades_to_matches():
    app = create_test_app()
    with app.app_context():
        service = MatchService(db.session)
        _, lost, found = setup_pair()
        service.save_match(lost.id, found.id, 90, "excellent")

        db.session.delete(lost)
        db.session.commit()

        assert LostItem.query.count() == 0
        assert MatchResult.query.count() == 0


def test_store_failures_become_persistence_errors(monkeypatch):
    app = create_test_app()
    with app.app_context():
        service = MatchService(db.session)
        _, lost, found = setup_pair()

        def broken_commit():
            raise OperationalError("INSERT INTO match_results", {}, Exception("database is locked"))

        monkeypatch.setattr(db.session, "commit", broken_commit)

        with pytest.raises(PersistenceError):
            service.save_match(lost.id, found.id, 90, "excellent")
        monkeypatch.undo()
        assert MatchResult.query.count() == 0


def test_losing_an_insert_race_updates_the_existing_row(monkeypatch):
    app = create_test_app()
    with app.app_context():
        service = MatchService(db.session)
        ref, lost, found = setup_pair()
        winner = service.save_match(lost.id, found.id, 80, "good").match
        service.set_match_status(winner.id, MatchStatus.CONFIRMED, ref.alice.id)
        winner_id = winner.id

        real_find_pair = service._find_pair
        lookups = []

        def stale_then_real(lost_id, found_id):
            lookups.append((lost_id, found_id))
            if len(lookups) == 1:
                return None
            return real_find_pair(lost_id, found_id)

        monkeypatch.setattr(service, "_find_pair", stale_then_real)

        result = service.save_match(lost.id, found.id, 63, "possible")

        assert result.created is False
        assert len(lookups) == 2
        assert MatchResult.query.count() == 1
        match = db.session.get(MatchResult, winner_id)
        assert result.match.id == winner_id
        assert match.score == 63
        assert match.reason == "Match confidence: possible (63% similarity)"
        assert match.status == MatchStatus.CONFIRMED
