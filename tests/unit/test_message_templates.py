"""Tests for chat message templates."""

from datetime import UTC, date, datetime

import pytest

from src.core import message_templates
from src.domain.task import Task, TaskStatus
from src.domain.user import Language
from src.models.service_models import AreaWeeklyStat, WeeklyStats


def _task(position: int, text: str, status: TaskStatus) -> Task:
    now = datetime(2024, 5, 14, tzinfo=UTC)
    return Task(
        id=f"t{position}",
        plan_id="p1",
        user_id="u1",
        text=text,
        position=position,
        status=status,
        created_at=now,
        updated_at=now,
    )


def _stats(areas: list[AreaWeeklyStat]) -> WeeklyStats:
    return WeeklyStats(
        week_start=date(2024, 5, 13),
        week_end=date(2024, 5, 19),
        days_planned=3,
        total_tasks=12,
        done_tasks=9,
        completion_rate=75,
        avg_tasks_per_day=4.0,
        areas=areas,
    )


@pytest.mark.unit
class TestTaskReminder:
    def test_counts_all_and_previews_three(self) -> None:
        text = message_templates.task_reminder(language=Language.EN, remaining=["A", "B", "C", "D"])

        assert text.startswith("\U0001f4cc Task reminder: 4 remaining.")
        assert text.endswith("1. A\n2. B\n3. C")

    def test_russian(self) -> None:
        text = message_templates.task_reminder(language=Language.RU, remaining=["A"])

        assert "осталось 1" in text


@pytest.mark.unit
@pytest.mark.parametrize(
    "template",
    [
        message_templates.review_yesterday_nudge,
        message_templates.morning_plan_prompt,
        message_templates.plan_already_clear,
        message_templates.evening_review_prompt,
    ],
)
def test_every_prompt_is_translated(template) -> None:
    assert template(language=Language.EN) != template(language=Language.RU)


@pytest.mark.unit
def test_morning_prompt_mentions_task_cap() -> None:
    assert "10" in message_templates.morning_plan_prompt(language=Language.EN)


@pytest.mark.unit
def test_button_labels_cover_both_languages() -> None:
    for key, labels in message_templates.BUTTON_LABELS.items():
        assert set(labels) == set(Language), key


@pytest.mark.unit
def test_task_list_uses_status_icons() -> None:
    tasks = [_task(1, "Write report", TaskStatus.DONE), _task(2, "Call dentist", TaskStatus.PENDING)]

    assert message_templates.task_list(tasks=tasks) == "✅ 1. Write report\n▫️ 2. Call dentist"


@pytest.mark.unit
@pytest.mark.parametrize(("streak", "expected"), [(1, "Streak: 1 day"), (5, "Streak: 5 days")])
def test_streak_line(streak: int, expected: str) -> None:
    assert message_templates.streak_line(streak=streak, language=Language.EN).endswith(expected)


@pytest.mark.unit
class TestWeeklyStats:
    def test_with_areas(self) -> None:
        stats = _stats(
            [
                AreaWeeklyStat(area_id="a1", title="Work", emoji="💼", total=4, done=3),
                AreaWeeklyStat(area_id="a2", title="Home", total=2, done=0),
            ]
        )

        text = message_templates.weekly_stats(stats=stats, language=Language.EN)

        assert "(13 May - 19 May)" in text
        assert "Completed: 9/12 (75%)" in text
        assert "💼 Work: 3/4 (75%)" in text
        assert "• Home: 0/2 (0%)" in text

    def test_area_percent_rounds_halves_up(self) -> None:
        stats = _stats([AreaWeeklyStat(area_id="a1", title="Reading", total=8, done=1)])

        text = message_templates.weekly_stats(stats=stats, language=Language.EN)

        assert "• Reading: 1/8 (13%)" in text

    def test_without_areas(self) -> None:
        text = message_templates.weekly_stats(stats=_stats([]), language=Language.RU)

        assert "13 мая - 19 мая" in text
        assert "Нет привязанных" in text
