from datetime import date, datetime

import pytest
from sqlalchemy.exc import OperationalError
from sqlmodel import select

from matchday.errors import Conflict, Forbidden, InternalError, NotFound, ValidationError
from matchday.models import ForumPrediction, Match, PredictionForum, ScorePrediction, User, UserActivity
from matchday.repositories import ForumPredictionRepository, MatchRepository, UserRepository
from matchday.services.reconciliation import ResultReconciler

FINAL_WHISTLE = datetime(2024, 1, 1, 20, 0)


def create_match(session, home="Team A", away="Team B"):
    match = Match(home_team=home, away_team=away, match_date=date(2024, 1, 1), match_time="18:00")
    session.add(match)
    session.commit()
    session.refresh(match)
    return match

def predict_score(session, match, user, home, away):
    prediction = ScorePrediction(match_id=match.id, user_id=user.id, home_score=home, away_score=away)
    session.add(prediction)
    session.commit()
    session.refresh(prediction)
    return prediction

def forum_prediction(session, head, team1, team2, predicted, match_date=datetime(2024, 1, 1, 18, 0), **fields):
    forum = session.exec(select(PredictionForum).where(PredictionForum.head_user_id == head.id)).first()
    if not forum:
        forum = PredictionForum(name=f"{head.username}'s forum", head_user_id=head.id)
        session.add(forum)
        session.commit()
        session.refresh(forum)
    prediction = ForumPrediction(
        forum_id=forum.id,
        head_user_id=head.id,
        team1_name=team1,
        team2_name=team2,
        predicted_team1=predicted[0],
        predicted_team2=predicted[1],
        match_date=match_date,
        **fields
    )
    session.add(prediction)
    session.commit()
    session.refresh(prediction)
    return prediction

def counters(session, user):
    session.refresh(user)
    return user.points, user.correct_predictions, user.total_predictions


def test_finalize_awards_both_surfaces(session, make_user):
    match = create_match(session)
    user1 = make_user("user1", total_predictions=1)
    user2 = make_user("user2", total_predictions=1)
    head = make_user("head")
    predict_score(session, match, user1, 2, 1)
    predict_score(session, match, user2, 1, 1)
    # Entered in away/home order: Team B 1-2 Team A
    forum = forum_prediction(session, head, "Team B", "Team A", (1, 2))

    outcome = ResultReconciler.for_session(session).finalize_match_score(match.id, 2, 1, now=FINAL_WHISTLE)

    assert outcome.user_points_awarded == 1
    assert outcome.forum_points_awarded == 1
    assert outcome.points_awarded == 2
    assert outcome.evaluated_predictions == 2
    assert outcome.failures == []

    assert counters(session, user1) == (100, 1, 1)
    assert counters(session, user2) == (0, 0, 1)
    assert counters(session, head) == (150, 1, 1)

    session.refresh(match)
    assert match.status == "finished"
    assert (match.home_score, match.away_score) == (2, 1)
    assert match.points_awarded is True
    assert match.points_awarded_at == FINAL_WHISTLE

    session.refresh(forum)
    assert forum.is_correct is True
    assert forum.status == "completed"
    # Actual score is stored in the forum's own team order
    assert (forum.actual_team1, forum.actual_team2) == (1, 2)

    predictions = session.exec(select(ScorePrediction)).all()
    assert all(p.points_awarded for p in predictions)

    earned = session.exec(select(UserActivity).where(UserActivity.user_id == user1.id)).one()
    assert earned.action == "Earned 100 points for correct prediction: Team A 2-1 Team B"
    assert earned.details["matchId"] == match.id

def test_finalize_is_exactly_once(session, make_user):
    match = create_match(session)
    user1 = make_user("user1")
    predict_score(session, match, user1, 2, 1)

    reconciler = ResultReconciler.for_session(session)
    reconciler.finalize_match_score(match.id, 2, 1)
    with pytest.raises(Conflict):
        reconciler.finalize_match_score(match.id, 2, 1)

    assert counters(session, user1) == (100, 1, 0)

def test_finalize_validates_input(session):
    match = create_match(session)
    reconciler = ResultReconciler.for_session(session)

    with pytest.raises(ValidationError):
        reconciler.finalize_match_score(match.id, None, 1)
    with pytest.raises(ValidationError):
        reconciler.finalize_match_score(match.id, 2, -1)
    with pytest.raises(NotFound):
        reconciler.finalize_match_score(999, 2, 1)

    session.refresh(match)
    assert match.points_awarded is False

def test_forum_matching_ignores_case_and_whitespace(session, make_user):
    match = create_match(session)
    head = make_user("head")
    forum = forum_prediction(session, head, "  team a", "TEAM B ", (2, 1))

    ResultReconciler.for_session(session).finalize_match_score(match.id, 2, 1)

    session.refresh(forum)
    assert forum.is_correct is True
    assert (forum.actual_team1, forum.actual_team2) == (2, 1)

def test_wrong_forum_prediction_counts_attempt_only(session, make_user):
    match = create_match(session)
    head = make_user("head")
    forum = forum_prediction(session, head, "Team A", "Team B", (1, 1))

    outcome = ResultReconciler.for_session(session).finalize_match_score(match.id, 2, 1)

    assert outcome.forum_points_awarded == 0
    assert outcome.settled_forum_predictions == 1
    assert counters(session, head) == (0, 0, 1)
    session.refresh(forum)
    assert forum.is_correct is False
    assert forum.status == "completed"

def test_unrelated_forum_predictions_untouched(session, make_user):
    match = create_match(session)
    head = make_user("head")
    other_day = forum_prediction(session, head, "Team A", "Team B", (2, 1), match_date=datetime(2024, 1, 2, 0, 0))
    other_fixture = forum_prediction(session, head, "Team A", "Team C", (2, 1))
    settled = forum_prediction(
        session, head, "Team A", "Team B", (2, 1),
        status="completed", is_correct=False, actual_team1=0, actual_team2=0
    )

    outcome = ResultReconciler.for_session(session).finalize_match_score(match.id, 2, 1)

    assert outcome.settled_forum_predictions == 0
    assert counters(session, head) == (0, 0, 0)
    for prediction in (other_day, other_fixture):
        session.refresh(prediction)
        assert prediction.is_correct is None
    session.refresh(settled)
    assert (settled.actual_team1, settled.actual_team2) == (0, 0)

def test_late_evening_forum_prediction_same_day(session, make_user):
    match = create_match(session)
    head = make_user("head")
    late = forum_prediction(session, head, "Team A", "Team B", (2, 1), match_date=datetime(2024, 1, 1, 23, 59))

    ResultReconciler.for_session(session).finalize_match_score(match.id, 2, 1)

    session.refresh(late)
    assert late.is_correct is True

def test_user_rewarded_on_both_surfaces(session, make_user):
    match = create_match(session)
    user = make_user("user1", total_predictions=1)
    predict_score(session, match, user, 2, 1)
    forum_prediction(session, user, "Team A", "Team B", (2, 1))

    outcome = ResultReconciler.for_session(session).finalize_match_score(match.id, 2, 1)

    assert outcome.points_awarded == 2
    assert counters(session, user) == (250, 2, 2)

def test_missing_user_is_skipped(session, make_user):
    match = create_match(session)
    user1 = make_user("user1")
    ghost = predict_score(session, match, User(id=999, username="ghost"), 2, 1)
    predict_score(session, match, user1, 2, 1)

    outcome = ResultReconciler.for_session(session).finalize_match_score(match.id, 2, 1)

    assert outcome.awarded_users == [user1.id]
    assert outcome.failures == []
    session.refresh(ghost)
    assert ghost.points_awarded is True


class FlakyUserRepository(UserRepository):
    def __init__(self, db, broken_user_id):
        super().__init__(db)
        self.broken_user_id = broken_user_id

    def increment(self, user_id, points=0, correct=0, total=0):
        if user_id == self.broken_user_id:
            raise OperationalError("UPDATE users", {}, Exception("database is locked"))
        return super().increment(user_id, points=points, correct=correct, total=total)


def test_storage_failure_on_one_user_does_not_block_others(session, make_user):
    match = create_match(session)
    broken = make_user("broken")
    healthy = make_user("healthy")
    broken_prediction = predict_score(session, match, broken, 2, 1)
    predict_score(session, match, healthy, 2, 1)

    reconciler = ResultReconciler(
        MatchRepository(session),
        FlakyUserRepository(session, broken.id),
        ForumPredictionRepository(session)
    )
    outcome = reconciler.finalize_match_score(match.id, 2, 1)

    assert outcome.awarded_users == [healthy.id]
    assert len(outcome.failures) == 1
    failure = outcome.failures[0]
    assert (failure.surface, failure.prediction_id, failure.user_id) == ("match", broken_prediction.id, broken.id)

    assert counters(session, healthy) == (100, 1, 0)
    assert counters(session, broken) == (0, 0, 0)
    # Rolled back together with the award, so the prediction is still pending
    session.refresh(broken_prediction)
    assert broken_prediction.points_awarded is False
    session.refresh(match)
    assert match.points_awarded is True

def test_storage_failure_on_forum_head(session, make_user):
    match = create_match(session)
    head = make_user("head")
    forum = forum_prediction(session, head, "Team A", "Team B", (2, 1))

    reconciler = ResultReconciler(
        MatchRepository(session),
        FlakyUserRepository(session, head.id),
        ForumPredictionRepository(session)
    )
    outcome = reconciler.finalize_match_score(match.id, 2, 1)

    assert [f.surface for f in outcome.failures] == ["forum"]
    session.refresh(forum)
    assert forum.is_correct is None


class LosingMatchRepository(MatchRepository):
    def claim_for_scoring(self, match_id, home_score, away_score, now):
        return False


class BrokenMatchRepository(MatchRepository):
    def claim_for_scoring(self, match_id, home_score, away_score, now):
        raise OperationalError("UPDATE matches", {}, Exception("disk I/O error"))


def test_lost_race_awards_nothing(session, make_user):
    match = create_match(session)
    user1 = make_user("user1")
    predict_score(session, match, user1, 2, 1)

    reconciler = ResultReconciler(
        LosingMatchRepository(session), UserRepository(session), ForumPredictionRepository(session)
    )
    with pytest.raises(Conflict):
        reconciler.finalize_match_score(match.id, 2, 1)

    assert counters(session, user1) == (0, 0, 0)

def test_claim_failure_leaves_match_open(session, make_user):
    match = create_match(session)
    user1 = make_user("user1")
    predict_score(session, match, user1, 2, 1)

    reconciler = ResultReconciler(
        BrokenMatchRepository(session), UserRepository(session), ForumPredictionRepository(session)
    )
    with pytest.raises(InternalError):
        reconciler.finalize_match_score(match.id, 2, 1)

    session.refresh(match)
    assert match.points_awarded is False
    assert counters(session, user1) == (0, 0, 0)


def test_record_prediction_result(session, make_user):
    head = make_user("head")
    forum = forum_prediction(session, head, "Team A", "Team B", (2, 1))

    settled = ResultReconciler.for_session(session).record_prediction_result(forum.id, 2, 1, head)

    assert settled.is_correct is True
    assert settled.status == "completed"
    assert counters(session, head) == (10, 1, 1)

def test_record_prediction_result_permissions(session, make_user):
    head = make_user("head")
    stranger = make_user("stranger")
    admin = make_user("admin", is_admin=True)
    forum = forum_prediction(session, head, "Team A", "Team B", (2, 1))
    reconciler = ResultReconciler.for_session(session)

    with pytest.raises(Forbidden):
        reconciler.record_prediction_result(forum.id, 2, 1, stranger)
    with pytest.raises(NotFound):
        reconciler.record_prediction_result(999, 2, 1, admin)
    with pytest.raises(ValidationError):
        reconciler.record_prediction_result(forum.id, None, 1, admin)

    settled = reconciler.record_prediction_result(forum.id, 0, 0, admin)
    assert settled.is_correct is False
    assert counters(session, head) == (0, 0, 1)

    with pytest.raises(Conflict):
        reconciler.record_prediction_result(forum.id, 2, 1, head)


def test_retry_settles_what_finalize_left_pending(session, make_user):
    match = create_match(session)
    broken = make_user("broken")
    healthy = make_user("healthy")
    head = make_user("head")
    broken_prediction = predict_score(session, match, broken, 2, 1)
    predict_score(session, match, healthy, 2, 1)
    forum = forum_prediction(session, head, "Team B", "Team A", (1, 2))

    flaky = ResultReconciler(
        MatchRepository(session),
        FlakyUserRepository(session, broken.id),
        ForumPredictionRepository(session)
    )
    first = flaky.finalize_match_score(match.id, 2, 1)
    assert len(first.failures) == 1

    reconciler = ResultReconciler.for_session(session)
    retried = reconciler.retry_awards(match.id)

    assert retried.awarded_users == [broken.id]
    assert retried.awarded_forum_heads == []
    assert retried.evaluated_predictions == 1
    assert retried.failures == []
    assert counters(session, broken) == (100, 1, 0)
    assert counters(session, healthy) == (100, 1, 0)
    assert counters(session, head) == (150, 1, 1)
    session.refresh(broken_prediction)
    assert broken_prediction.points_awarded is True
    session.refresh(forum)
    assert forum.is_correct is True

    again = reconciler.retry_awards(match.id)
    assert again.points_awarded == 0
    assert again.evaluated_predictions == 0
    assert counters(session, broken) == (100, 1, 0)

def test_retry_requires_final_score(session):
    match = create_match(session)
    reconciler = ResultReconciler.for_session(session)

    with pytest.raises(Conflict):
        reconciler.retry_awards(match.id)
    with pytest.raises(NotFound):
        reconciler.retry_awards(999)
