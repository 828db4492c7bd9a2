# tests/test_fsrs_scheduler.py
from dataclasses import replace
from datetime import timedelta

import pytest
from pydantic import ValidationError

from conftest import NOW, make_card
from lexquest.errors import InvalidRatingError
from lexquest.fsrs import Rating, Scheduler, SchedulerParams, coerce_rating
from lexquest.models import BookMode, CardState


def review_card(stability=20.0, difficulty=5.0, days_ago=20, state=CardState.REVIEW):
    return make_card(
        "book", 1,
        state=state,
        stability=stability,
        difficulty=difficulty,
        reps=3,
        lapses=0,
        scheduled_days=days_ago,
        last_review=NOW - timedelta(days=days_ago),
        due=NOW,
    )


def test_new_card_good_moves_to_learning():
    card = Scheduler().review(make_card("book", 1), Rating.GOOD, now=NOW)
    assert card.state == CardState.LEARNING
    assert card.reps == 1
    assert card.lapses == 0
    assert card.stability == pytest.approx(3.7145)
    assert card.difficulty == pytest.approx(5.1618)
    # At 90% retention the interval equals the stability
    assert card.scheduled_days == 4
    assert card.last_review == NOW
    assert card.due == NOW + timedelta(days=4)


def test_new_card_again_is_short_and_not_a_lapse():
    card = Scheduler().review(make_card("book", 1), Rating.AGAIN, now=NOW)
    assert card.state == CardState.LEARNING
    assert card.scheduled_days == 1
    assert card.lapses == 0


@pytest.mark.parametrize("state", list(CardState))
@pytest.mark.parametrize("rating", list(Rating))
def test_stability_positive_and_due_after_last_review(state, rating):
    if state == CardState.NEW:
        card = make_card("book", 1)
    else:
        card = review_card(stability=0.5, difficulty=9.5, days_ago=3, state=state)
    updated = Scheduler().review(card, rating, now=NOW)
    assert updated.stability > 0
    assert updated.due > updated.last_review
    assert 1.0 <= updated.difficulty <= 10.0


def test_again_on_review_card_drops_stability_and_counts_lapse():
    card = review_card()
    updated = Scheduler().review(card, Rating.AGAIN, now=NOW)
    assert updated.stability < card.stability
    assert updated.lapses == card.lapses + 1
    assert updated.difficulty > card.difficulty
    assert updated.state == CardState.RELEARNING
    assert updated.scheduled_days == 1


def test_repeated_lapses_always_cost_stability():
    card = review_card(stability=2.0, days_ago=1, state=CardState.RELEARNING)
    now = NOW
    for _ in range(20):
        updated = Scheduler().review(card, Rating.AGAIN, now=now)
        assert 0 < updated.stability < card.stability
        assert updated.lapses == card.lapses + 1
        card = updated
        now += timedelta(days=1)


def test_relapse_interval_shorter_than_review_interval():
    card = review_card()
    scheduler = Scheduler()
    assert scheduler.review(card, Rating.AGAIN, now=NOW).scheduled_days < \
        scheduler.review(card, Rating.GOOD, now=NOW).scheduled_days


def test_again_from_learning_stays_learning():
    card = review_card(stability=3.0, days_ago=3, state=CardState.LEARNING)
    updated = Scheduler().review(card, Rating.AGAIN, now=NOW)
    assert updated.state == CardState.LEARNING
    assert updated.lapses == 1


def test_relearning_graduates_on_good():
    card = review_card(stability=2.0, days_ago=1, state=CardState.RELEARNING)
    updated = Scheduler().review(card, Rating.GOOD, now=NOW)
    assert updated.state == CardState.REVIEW
    assert updated.reps == card.reps + 1


def test_hard_is_less_favorable_than_good():
    card = review_card()
    scheduler = Scheduler()
    hard = scheduler.review(card, Rating.HARD, now=NOW)
    good = scheduler.review(card, Rating.GOOD, now=NOW)
    easy = scheduler.review(card, Rating.EASY, now=NOW)
    assert hard.stability < good.stability < easy.stability
    assert hard.scheduled_days <= good.scheduled_days <= easy.scheduled_days
    assert hard.state == good.state == CardState.REVIEW


def test_repeated_good_daily_reviews_grow_interval():
    scheduler = Scheduler()
    card = make_card("book", 1)
    intervals = []
    for day in range(3):
        card = scheduler.review(card, Rating.GOOD, now=NOW + timedelta(days=day))
        intervals.append(card.scheduled_days)
    assert intervals == sorted(set(intervals))
    assert intervals[0] == 4


def test_repeated_good_on_due_date_grows_interval():
    scheduler = Scheduler()
    card = make_card("book", 1)
    when = NOW
    intervals = []
    for _ in range(6):
        card = scheduler.review(card, Rating.GOOD, now=when)
        intervals.append(card.scheduled_days)
        when = card.due
    assert all(b > a for a, b in zip(intervals, intervals[1:]))


def test_early_review_clamps_elapsed_days():
    card = review_card(days_ago=0)
    card = replace(card, last_review=NOW + timedelta(hours=5))
    updated = Scheduler().review(card, Rating.GOOD, now=NOW)
    assert updated.elapsed_days == 0
    assert updated.stability >= card.stability


def test_review_does_not_mutate_input():
    card = make_card("book", 1)
    Scheduler().review(card, Rating.GOOD, now=NOW)
    assert card.state == CardState.NEW
    assert card.reps == 0


def test_memorize_mode_uses_lower_retention():
    card = make_card("book", 1)
    read = Scheduler(BookMode.READ).review(card, Rating.GOOD, now=NOW)
    memo = Scheduler(BookMode.MEMORIZE).review(card, Rating.GOOD, now=NOW)
    assert memo.scheduled_days > read.scheduled_days


def test_retention_override_changes_interval():
    params = SchedulerParams().with_retention(BookMode.READ, 0.8)
    card = make_card("book", 1)
    default = Scheduler(BookMode.READ).review(card, Rating.GOOD, now=NOW)
    relaxed = Scheduler(BookMode.READ, params).review(card, Rating.GOOD, now=NOW)
    assert relaxed.scheduled_days > default.scheduled_days
    # The original params object is untouched
    assert SchedulerParams().retention_for(BookMode.READ) == 0.9


def test_params_validation():
    with pytest.raises(ValidationError):
        SchedulerParams(weights=(1.0, 2.0))
    with pytest.raises(ValidationError):
        SchedulerParams(retention={BookMode.READ: 1.5})


def test_partial_retention_keeps_other_defaults():
    params = SchedulerParams(retention={BookMode.SOLVE: 0.8})
    assert params.retention_for(BookMode.SOLVE) == 0.8
    assert params.retention_for(BookMode.MEMORIZE) == 0.85


@pytest.mark.parametrize("value", [0, 5, -1, "meh", None, 2.5, True])
def test_invalid_rating_raises(value):
    with pytest.raises(InvalidRatingError):
        Scheduler().review(make_card("book", 1), value, now=NOW)


def test_coerce_rating_accepts_ints_and_names():
    assert coerce_rating(3) == Rating.GOOD
    assert coerce_rating("again") == Rating.AGAIN
    assert coerce_rating(Rating.HARD) == Rating.HARD


def test_preview_lists_every_rating():
    preview = Scheduler().preview(make_card("book", 1), now=NOW)
    assert set(preview) == set(Rating)
    assert preview[Rating.AGAIN] == 1
    assert preview[Rating.GOOD] == 4


def test_reset_returns_card_to_new():
    card = review_card()
    card = replace(card, photo_path="photos/p1.jpg", lapses=2)
    reset = Scheduler().reset(card, now=NOW)
    assert reset.state == CardState.NEW
    assert reset.reps == 0
    assert reset.lapses == 0
    assert reset.last_review is None
    assert reset.due == NOW
    assert reset.photo_path == "photos/p1.jpg"


def test_retrievability():
    scheduler = Scheduler()
    assert scheduler.retrievability(make_card("book", 1), now=NOW) == 1.0
    card = review_card(stability=10.0, days_ago=10)
    assert scheduler.retrievability(card, now=NOW) == pytest.approx(0.9)
