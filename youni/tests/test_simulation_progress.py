"""
Tests for youni/agents/simulation_progress.py

The default scenario from conftest has three steps:
step-video-1, step-quiz-2 (one question, correct option "o1", passing
score 50) and step-reflection-3.
"""

import pytest

from youni.agents.simulation_progress import (
    FIRST_SIMULATION_BADGE,
    UnknownStepError,
    award_points,
    get_progress,
    level_for,
    record_step,
    start_progress,
)
from youni.database.models import UserRewards, UserScenarioProgress

ALL_STEPS = ["step-video-1", "step-quiz-2", "step-reflection-3"]


def rewards_of(db, user):
    return db.query(UserRewards).filter(UserRewards.user_id == user.id).first()


class TestRecordStep:
    def test_first_step_creates_progress(self, db, user, make_scenario):
        scenario = make_scenario()
        progress = record_step(db, user.id, scenario, "step-video-1")
        assert progress.completed_steps == ["step-video-1"]
        assert progress.current_step == 1
        assert progress.completed is False

    def test_current_step_is_first_incomplete(self, db, user, make_scenario):
        scenario = make_scenario()
        progress = record_step(db, user.id, scenario, "step-quiz-2")
        assert progress.current_step == 0

    def test_repeat_does_not_duplicate(self, db, user, make_scenario):
        scenario = make_scenario()
        record_step(db, user.id, scenario, "step-video-1")
        progress = record_step(db, user.id, scenario, "step-video-1")
        assert progress.completed_steps == ["step-video-1"]
        assert db.query(UserScenarioProgress).count() == 1

    def test_uncheck_removes_step(self, db, user, make_scenario):
        scenario = make_scenario()
        record_step(db, user.id, scenario, "step-video-1")
        progress = record_step(db, user.id, scenario, "step-video-1", completed=False)
        assert progress.completed_steps == []

    def test_unknown_step_raises(self, db, user, make_scenario):
        with pytest.raises(UnknownStepError):
            record_step(db, user.id, make_scenario(), "step-nope")

    def test_progress_is_per_user(self, db, user, other_user, make_scenario):
        scenario = make_scenario()
        record_step(db, user.id, scenario, "step-video-1")
        assert get_progress(db, other_user.id, scenario.id) is None


class TestQuizSteps:
    def test_passing_answers_complete_step(self, db, user, make_scenario):
        progress = record_step(db, user.id, make_scenario(), "step-quiz-2", answers={"q1": "o1"})
        assert progress.step_scores == {"step-quiz-2": 100}
        assert "step-quiz-2" in progress.completed_steps

    def test_failing_answers_do_not_complete_step(self, db, user, make_scenario):
        progress = record_step(db, user.id, make_scenario(), "step-quiz-2", answers={"q1": "o2"})
        assert progress.step_scores == {"step-quiz-2": 0}
        assert progress.completed_steps == []

    def test_failed_retake_keeps_earlier_pass(self, db, user, make_scenario):
        scenario = make_scenario()
        record_step(db, user.id, scenario, "step-quiz-2", answers={"q1": "o1"})
        progress = record_step(db, user.id, scenario, "step-quiz-2", answers={"q1": "o2"})
        assert progress.completed_steps == ["step-quiz-2"]
        assert progress.step_scores == {"step-quiz-2": 0}

    def test_quiz_without_answers_can_be_checked_off(self, db, user, make_scenario):
        progress = record_step(db, user.id, make_scenario(), "step-quiz-2")
        assert progress.completed_steps == ["step-quiz-2"]
        assert progress.step_scores == {}


class TestCompletion:
    def complete_all(self, db, user, scenario):
        for step_id in ALL_STEPS:
            progress = record_step(db, user.id, scenario, step_id)
        return progress

    def test_all_steps_complete_scenario(self, db, user, make_scenario):
        progress = self.complete_all(db, user, make_scenario())
        assert progress.completed is True
        assert progress.current_step == 3
        assert progress.completed_at is not None

    def test_completion_awards_points_and_badges(self, db, user, make_scenario):
        self.complete_all(db, user, make_scenario(points_reward=200))
        rewards = rewards_of(db, user)
        assert rewards.points == 200
        assert rewards.level == 1
        assert rewards.earned_badge_ids == [FIRST_SIMULATION_BADGE, "explorer"]

    def test_recompletion_pays_once(self, db, user, make_scenario):
        scenario = make_scenario()
        self.complete_all(db, user, scenario)
        record_step(db, user.id, scenario, "step-video-1", completed=False)
        progress = record_step(db, user.id, scenario, "step-video-1")
        assert progress.completed is True
        assert rewards_of(db, user).points == 100

    def test_uncheck_after_completion_reopens(self, db, user, make_scenario):
        scenario = make_scenario()
        self.complete_all(db, user, scenario)
        progress = record_step(db, user.id, scenario, "step-reflection-3", completed=False)
        assert progress.completed is False
        assert progress.current_step == 2


class TestStartProgress:
    def test_creates_empty_progress_once(self, db, user, make_scenario):
        scenario = make_scenario()
        first = start_progress(db, user.id, scenario.id)
        second = start_progress(db, user.id, scenario.id)
        assert first.id == second.id
        assert first.completed_steps == []
        assert first.current_step == 0


class TestRewards:
    @pytest.mark.parametrize("points, level", [(0, 1), (499, 1), (500, 2), (1250, 3)])
    def test_level_for(self, points, level):
        assert level_for(points) == level

    def test_award_accumulates(self, db, user):
        award_points(db, user.id, 300)
        rewards = award_points(db, user.id, 300)
        db.commit()
        assert rewards.points == 600
        assert rewards.level == 2
        assert rewards.earned_badge_ids == ["explorer", "pathfinder"]

    def test_badges_not_duplicated(self, db, user):
        award_points(db, user.id, 50, badges=["first_simulation"])
        rewards = award_points(db, user.id, 50, badges=["first_simulation"])
        db.commit()
        assert rewards.earned_badge_ids == ["first_simulation", "explorer"]
