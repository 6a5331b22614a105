from dataclasses import replace
from datetime import timedelta
import threading

import pytest

from conftest import START
from quizshare.core.errors import (
    AlreadySubmittedError,
    AttemptStateError,
    DeadlinePassedError,
    PersistenceError,
    ValidationError,
)
from quizshare.core.models import AttemptStatus, SubmitterIdentity
from quizshare.core.services.attempt_recorder import AttemptRecorder
from quizshare.core.services.attempt_session import AttemptSession

GUEST = SubmitterIdentity(display_name="Guest")


def _session(quiz, clock, written=None):
    written = [] if written is None else written
    return AttemptSession(quiz, GUEST, AttemptRecorder(written.append), clock=clock)


def _answer_everything(session):
    session.record_answer(0, "Paris")
    session.record_answer(1, ["2", "7"])
    session.record_answer(2, "pacific")
    session.record_answer(3, "42")


def test_lifecycle_scores_and_records_once(quiz, clock):
    written = []
    session = _session(quiz, clock, written)
    assert session.status is AttemptStatus.NOT_STARTED

    session.start()
    _answer_everything(session)
    result = session.submit()

    assert session.status is AttemptStatus.SUBMITTED
    assert result.score_percent == 100
    assert result.persisted
    assert written == [result.record]
    assert result.record.submitted_at == START


def test_second_submit_raises_and_keeps_score(quiz, clock):
    written = []
    session = _session(quiz, clock, written)
    session.start()
    session.record_answer(0, "Paris")
    first = session.submit()

    with pytest.raises(AlreadySubmittedError):
        session.submit()
    assert session.result is first
    assert first.score_percent == 25
    assert len(written) == 1


def test_edits_after_submit_are_ignored(quiz, clock):
    session = _session(quiz, clock)
    session.start()
    session.record_answer(0, "Lyon")
    session.submit()

    assert session.record_answer(0, "Paris") is False
    assert session.get_answers()[0] == "Lyon"


def test_recording_before_start_is_an_error(quiz, clock):
    session = _session(quiz, clock)
    with pytest.raises(AttemptStateError):
        session.record_answer(0, "Paris")
    with pytest.raises(AttemptStateError):
        session.submit()


def test_mcq_answer_must_be_an_option_and_replaces_previous(quiz, clock):
    session = _session(quiz, clock)
    session.start()
    with pytest.raises(ValidationError):
        session.record_answer(0, "Marseille")
    session.record_answer(0, "Lyon")
    session.record_answer(0, "Paris")
    assert session.get_answers() == {0: "Paris"}


def test_msq_toggle_keeps_other_selections(quiz, clock):
    session = _session(quiz, clock)
    session.start()
    session.toggle_selection(1, "2")
    session.toggle_selection(1, "4")
    session.toggle_selection(1, "7")
    session.toggle_selection(1, "4")
    assert session.get_answers()[1] == frozenset({"2", "7"})

    with pytest.raises(ValidationError):
        session.toggle_selection(1, "9")
    with pytest.raises(ValidationError):
        session.toggle_selection(0, "Paris")


def test_numerical_answers_are_stored_raw(quiz, clock):
    session = _session(quiz, clock)
    session.start()
    session.record_answer(3, " 42abc")
    assert session.get_answers()[3] == " 42abc"


def test_out_of_range_index_is_rejected(quiz, clock):
    session = _session(quiz, clock)
    session.start()
    with pytest.raises(ValidationError):
        session.record_answer(9, "x")


def test_clear_answer_marks_question_unanswered(quiz, clock):
    session = _session(quiz, clock)
    session.start()
    session.record_answer(2, "Atlantic")
    assert session.clear_answer(2)
    assert 2 not in session.get_answers()


def test_past_deadline_rejects_submit_even_when_all_correct(quiz, clock):
    written = []
    session = _session(replace(quiz, deadline=START + timedelta(minutes=5)), clock, written)
    session.start()
    _answer_everything(session)

    clock.advance(6 * 60)
    with pytest.raises(DeadlinePassedError):
        session.submit()
    assert session.status is AttemptStatus.IN_PROGRESS
    assert session.result is None
    assert written == []


def test_past_deadline_locks_edits(quiz, clock):
    session = _session(replace(quiz, deadline=START + timedelta(seconds=10)), clock)
    session.start()
    clock.advance(11)
    assert session.record_answer(0, "Paris") is False


def test_start_after_deadline_is_rejected(quiz, clock):
    session = _session(replace(quiz, deadline=START - timedelta(seconds=1)), clock)
    with pytest.raises(DeadlinePassedError):
        session.start()


def test_timer_counts_down_and_expiry_still_allows_submit(quiz, clock):
    timed = replace(quiz, timed=True, timer_duration_minutes=1)
    session = _session(timed, clock)
    session.start()
    assert session.time_remaining_seconds == 60

    session.record_answer(0, "Paris")
    clock.advance(20)
    session.advance_clock()
    assert session.time_remaining_seconds == 40
    assert not session.expired

    clock.advance(45)
    assert session.record_answer(2, "Pacific") is False
    assert session.expired
    assert session.time_remaining_seconds == 0

    result = session.submit()
    assert result.score_percent == 25
    assert result.record.time_remaining_seconds == 0


def test_manual_ticks_drive_the_countdown(quiz, clock):
    session = _session(replace(quiz, timed=True, timer_duration_minutes=1), clock)
    session.start()
    for _ in range(60):
        session.tick()
    assert session.expired
    assert session.submit().score_percent == 0


def test_countdown_stops_after_submit(quiz, clock):
    session = _session(replace(quiz, timed=True, timer_duration_minutes=1), clock)
    session.start()
    clock.advance(10)
    session.submit()
    clock.advance(30)
    session.advance_clock()
    session.tick()
    assert session.time_remaining_seconds == 50


def test_untimed_quiz_has_no_countdown(quiz, clock):
    session = _session(quiz, clock)
    session.start()
    assert session.time_remaining_seconds is None
    assert not session.expired


def test_persistence_failure_keeps_score_and_warns(quiz, clock):
    def broken_writer(record):
        raise PersistenceError("storage offline")

    session = AttemptSession(quiz, GUEST, AttemptRecorder(broken_writer), clock=clock)
    session.start()
    session.record_answer(0, "Paris")
    result = session.submit()

    assert result.score_percent == 25
    assert not result.persisted
    assert result.warnings == ["storage offline"]
    assert session.status is AttemptStatus.SUBMITTED


def test_sub_second_timer_still_counts_down(quiz, clock):
    session = _session(replace(quiz, timed=True, timer_duration_minutes=0.005), clock)
    session.start()
    assert session.time_remaining_seconds == 1

    clock.advance(3600)
    assert session.record_answer(0, "Paris") is False
    assert session.expired
    assert session.submit().record.time_remaining_seconds == 0


def test_fractional_minutes_are_not_rounded_up_by_float_error(quiz):
    assert replace(quiz, timed=True, timer_duration_minutes=0.1).timer_duration_seconds == 6


def test_concurrent_submits_write_one_record(quiz, clock):
    written = []
    session = _session(quiz, clock, written)
    session.start()
    session.record_answer(0, "Paris")

    barrier = threading.Barrier(8)
    results, duplicates = [], []

    def submit():
        barrier.wait()
        try:
            results.append(session.submit())
        except AlreadySubmittedError:
            duplicates.append(True)

    threads = [threading.Thread(target=submit) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(results) == 1
    assert len(duplicates) == 7
    assert written == [results[0].record]


def test_countdown_is_advanced_under_the_session_lock(quiz, clock):
    contended = []

    def lock_checking_clock():
        outcome = []
        other = threading.Thread(target=lambda: outcome.append(session._lock.acquire(blocking=False)))
        other.start()
        other.join()
        if outcome[0]:
            session._lock.release()
        contended.append(not outcome[0])
        return clock()

    session = AttemptSession(
        replace(quiz, timed=True, timer_duration_minutes=1), GUEST, AttemptRecorder([].append), clock=lock_checking_clock
    )
    session.start()
    contended.clear()
    clock.advance(5)

    session.advance_clock()
    session.is_locked()

    assert contended and all(contended)
    assert session.time_remaining_seconds == 55


def test_concurrent_clock_catch_up_applies_elapsed_time_once(quiz, clock):
    session = _session(replace(quiz, timed=True, timer_duration_minutes=1), clock)
    session.start()
    clock.advance(5)

    barrier = threading.Barrier(8)

    def catch_up():
        barrier.wait()
        session.advance_clock()

    threads = [threading.Thread(target=catch_up) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert session.time_remaining_seconds == 55
