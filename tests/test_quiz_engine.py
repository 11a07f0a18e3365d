from concurrent.futures import ThreadPoolExecutor

import pytest

from learnquiz.core.errors import (
    AlreadyAnsweredError,
    EmptyCategoryError,
    EmptySelectionError,
    QuestionNotFoundError,
    QuestionNotInSessionError,
    SessionNotFoundError,
)
from learnquiz.core.models import Evaluation, QuizSession, SessionStatus
from learnquiz.core.quiz_engine import QuizEngine, snapshot
from learnquiz.core.services.session_repository import InMemorySessionRepository

from conftest import StaticQuestionRepository, make_question


def _assert_counters_valid(snapshot):
    assert 0 <= snapshot.correct_count <= snapshot.completed_count <= snapshot.question_count


def _correct_ids(state):
    return {a.answer_id for a in state.question.answers if a.is_correct}


def test_new_session_starts_created(engine):
    session = engine.create_session(1, "Practice", desired_count=3)
    assert session.status is SessionStatus.CREATED
    assert (session.question_count, session.completed_count, session.correct_count) == (3, 0, 0)
    assert session.accuracy == 0
    assert (session.score, session.progress, session.remaining_count) == (0, 0, 3)


def test_desired_count_is_clamped_to_available_questions(engine):
    session = engine.create_session(1, "Practice", desired_count=3 + 5)
    assert session.question_count == 3
    assert len(engine.get_session_questions(session.session_id)) == 3


def test_session_binds_distinct_questions(engine):
    session = engine.create_session(1, "Practice", desired_count=2)
    states = engine.get_session_questions(session.session_id)
    assert len({s.question_id for s in states}) == 2


def test_empty_category_is_rejected(engine, sessions):
    with pytest.raises(EmptyCategoryError):
        engine.create_session(42, "Nothing here")
    assert sessions.get_session_count() == 0


def test_blank_name_is_rejected(engine):
    with pytest.raises(ValueError):
        engine.create_session(1, "   ")


def test_correct_single_choice_submission(engine):
    session = engine.create_session(1, "Practice", desired_count=3)
    result = engine.submit_answer(session.session_id, 1, {7})
    assert result.evaluation is Evaluation.CORRECT
    assert [a.answer_id for a in result.correct_answers] == [7]
    assert (result.session.completed_count, result.session.correct_count) == (1, 1)
    assert result.session.status is SessionStatus.IN_PROGRESS


def test_incorrect_submission_still_reveals_correct_answers(engine):
    session = engine.create_session(1, "Practice", desired_count=3)
    result = engine.submit_answer(session.session_id, 1, {3})
    assert result.evaluation is Evaluation.INCORRECT
    assert [a.answer_id for a in result.correct_answers] == [7]
    stored = engine.get_session(session.session_id)
    assert (stored.completed_count, stored.correct_count) == (1, 0)


@pytest.mark.parametrize(("selection", "expected"), [({2, 5}, True), ({2}, False), ({2, 5, 9}, False)])
def test_multiple_choice_submission(engine, selection, expected):
    session = engine.create_session(1, "Practice", desired_count=3)
    result = engine.submit_answer(session.session_id, 2, selection)
    assert result.is_correct is expected


def test_session_completes_after_every_question_is_answered(engine):
    session = engine.create_session(1, "Practice", desired_count=3)
    states = engine.get_session_questions(session.session_id)
    for state in states:
        result = engine.submit_answer(session.session_id, state.question_id, _correct_ids(state))
        _assert_counters_valid(result.session)
        assert result.session.remaining_count == 3 - result.session.completed_count

    final = engine.get_session(session.session_id)
    assert final.status is SessionStatus.COMPLETED
    assert final.is_complete
    assert (final.score, final.progress, final.remaining_count) == (100, 100, 0)
    assert engine.is_complete(session.session_id)
    assert engine.accuracy(session.session_id) == 100
    assert engine.first_unanswered_index(session.session_id) is None

    for state in states:
        with pytest.raises(AlreadyAnsweredError):
            engine.submit_answer(session.session_id, state.question_id, _correct_ids(state))
    assert engine.get_session(session.session_id).completed_count == 3


def test_resubmission_never_changes_counters(engine):
    session = engine.create_session(1, "Practice", desired_count=3)
    engine.submit_answer(session.session_id, 1, {3})
    with pytest.raises(AlreadyAnsweredError):
        engine.submit_answer(session.session_id, 1, {7})
    stored = engine.get_session(session.session_id)
    assert (stored.completed_count, stored.correct_count) == (1, 0)
    state = next(s for s in engine.get_session_questions(session.session_id) if s.question_id == 1)
    assert state.user_answer == frozenset({3})


def test_empty_selection_has_no_side_effects(engine):
    session = engine.create_session(1, "Practice", desired_count=3)
    with pytest.raises(EmptySelectionError):
        engine.submit_answer(session.session_id, 1, [])
    stored = engine.get_session(session.session_id)
    assert stored.completed_count == 0
    assert stored.status is SessionStatus.CREATED
    assert engine.first_unanswered_index(session.session_id) == 0


def test_question_outside_session_is_rejected(engine):
    session = engine.create_session(1, "Practice", desired_count=3)
    with pytest.raises(QuestionNotInSessionError):
        engine.submit_answer(session.session_id, 99, {1})


def test_unknown_session(engine):
    with pytest.raises(SessionNotFoundError):
        engine.submit_answer(123, 1, {7})
    with pytest.raises(SessionNotFoundError):
        engine.get_session(123)


def test_storage_failure_propagates_and_leaves_session_untouched(engine, sessions, monkeypatch):
    session = engine.create_session(1, "Practice", desired_count=3)

    def broken_persist(*args, **kwargs):
        raise OSError("storage unavailable")

    monkeypatch.setattr(sessions, "persist", broken_persist)
    with pytest.raises(OSError):
        engine.submit_answer(session.session_id, 1, {7})
    monkeypatch.undo()

    stored = engine.get_session(session.session_id)
    assert stored.completed_count == 0
    assert engine.submit_answer(session.session_id, 1, {7}).is_correct


def test_accuracy_is_stable_between_reads(engine):
    session = engine.create_session(1, "Practice", desired_count=3)
    engine.submit_answer(session.session_id, 1, {7})
    engine.submit_answer(session.session_id, 2, {2})
    assert engine.accuracy(session.session_id) == engine.accuracy(session.session_id) == 50


def test_answers_may_be_given_out_of_order(engine):
    session = engine.create_session(1, "Practice", desired_count=3)
    states = engine.get_session_questions(session.session_id)
    last = states[-1]
    engine.submit_answer(session.session_id, last.question_id, _correct_ids(last))
    assert engine.first_unanswered_index(session.session_id) == 0
    sequencer = engine.open_sequencer(session.session_id)
    assert sequencer.current_index == 0
    assert sequencer.state_at(2).is_answered


def test_open_sequencer_is_a_private_copy(engine):
    session = engine.create_session(1, "Practice", desired_count=3)
    sequencer = engine.open_sequencer(session.session_id)
    sequencer.record_answer(0, {1}, False)
    assert engine.get_session(session.session_id).completed_count == 0


def test_concurrent_submissions_count_once(engine):
    session = engine.create_session(1, "Practice", desired_count=3)

    def submit():
        try:
            return engine.submit_answer(session.session_id, 1, {7})
        except AlreadyAnsweredError:
            return None

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(lambda _: submit(), range(16)))

    assert sum(1 for r in results if r is not None) == 1
    stored = engine.get_session(session.session_id)
    assert (stored.completed_count, stored.correct_count) == (1, 1)


def test_list_and_delete_sessions(engine):
    first = engine.create_session(1, "First", user_id="ana")
    second = engine.create_session(1, "Second", user_id="ben")
    assert {s.session_id for s in engine.list_sessions(category_id=1)} == {first.session_id, second.session_id}
    assert [s.name for s in engine.list_sessions(user_id="ana")] == ["First"]
    assert engine.list_sessions(category_id=2) == []

    engine.delete_session(first.session_id)
    with pytest.raises(SessionNotFoundError):
        engine.get_session(first.session_id)


def test_ad_hoc_check_answer(engine):
    result = engine.check_answer(2, [2, 5])
    assert result.is_correct
    assert result.session is None
    wrong = engine.check_answer(1, [8])
    assert not wrong.is_correct
    assert [a.answer_id for a in wrong.correct_answers] == [7]
    with pytest.raises(EmptySelectionError):
        engine.check_answer(1, [])
    with pytest.raises(QuestionNotFoundError):
        engine.check_answer(77, [1])


def test_check_answer_without_user_keeps_no_history(engine):
    result = engine.check_answer(1, [7])
    assert result.score_id is None
    assert engine.score_history("ana") == []


def test_check_answer_records_score_for_user(engine):
    first = engine.check_answer(1, [7], user_id="ana")
    second = engine.check_answer(2, [2], user_id="ana")
    engine.check_answer(1, [3], user_id="ben")

    assert (first.score_id, second.score_id) == (1, 2)
    history = engine.score_history("ana")
    assert [r.score_id for r in history] == [2, 1]
    assert [r.is_correct for r in history] == [False, True]
    assert history[1].selected_answer_ids == frozenset({7})
    assert history[1].category_id == 1


def test_rejected_check_is_not_recorded(engine):
    with pytest.raises(EmptySelectionError):
        engine.check_answer(1, [], user_id="ana")
    assert engine.score_history("ana") == []


def test_score_history_limit(engine):
    for _ in range(5):
        engine.check_answer(1, [7], user_id="ana")
    assert [r.score_id for r in engine.score_history("ana", limit=2)] == [5, 4]
    with pytest.raises(ValueError):
        engine.score_history("ana", limit=0)


def _two_category_engine() -> QuizEngine:
    bank = StaticQuestionRepository(
        [
            make_question(1, [(1, True), (2, False)]),
            make_question(2, [(3, True), (4, False)]),
            make_question(3, [(5, True), (6, False)], category_id=2),
        ]
    )
    return QuizEngine(bank, InMemorySessionRepository())


def test_score_history_filters_by_category():
    engine = _two_category_engine()
    engine.check_answer(1, [1], user_id="ana")
    engine.check_answer(3, [5], user_id="ana")
    engine.check_answer(2, [4], user_id="ana")

    assert [r.question_id for r in engine.score_history("ana", category_id=1)] == [2, 1]
    assert [r.question_id for r in engine.score_history("ana", category_id=2)] == [3]
    assert engine.score_history("ana", category_id=9) == []


def test_score_summary_totals_per_category():
    engine = _two_category_engine()
    engine.check_answer(1, [1], user_id="ana")
    engine.check_answer(2, [4], user_id="ana")
    engine.check_answer(2, [3], user_id="ana")
    engine.check_answer(3, [6], user_id="ana")
    engine.check_answer(3, [5], user_id="ben")

    summary = engine.score_summary("ana")
    assert (summary.total_questions, summary.correct_answers, summary.accuracy_rate) == (4, 2, 50)
    stats = {s.category_id: s for s in summary.category_stats}
    assert sorted(stats) == [1, 2]
    assert (stats[1].total_questions, stats[1].correct_answers, stats[1].accuracy_rate) == (3, 2, 67)
    assert (stats[2].total_questions, stats[2].correct_answers, stats[2].accuracy_rate) == (1, 0, 0)
    last_ana = engine.score_history("ana", category_id=1, limit=1)[0]
    assert stats[1].last_access == last_ana.submitted_at


def test_score_summary_for_unknown_user_is_empty(engine):
    summary = engine.score_summary("nobody")
    assert (summary.total_questions, summary.correct_answers, summary.accuracy_rate) == (0, 0, 0)
    assert summary.category_stats == []


def test_snapshot_requires_a_stored_session():
    with pytest.raises(ValueError):
        snapshot(QuizSession(session_id=None, category_id=1, name="Draft", question_count=1))
