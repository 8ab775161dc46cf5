"""Centralized message templates for chat notifications.

All user-facing message strings are defined here, per language, so wording
can be changed in one place.
"""

from src.core.config import Constants
from src.domain.task import Task, TaskStatus
from src.domain.user import Language
from src.models.service_models import WeeklyStats
from src.modules.planning.analytics import completion_percent


_STATUS_ICONS = {
    TaskStatus.PENDING: "▫️",
    TaskStatus.DONE: "✅",
    TaskStatus.IN_PROGRESS: "➡️",
    TaskStatus.SKIPPED: "❌",
}

_MONTHS = {
    Language.EN: ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"],
    Language.RU: ["янв", "фев", "мар", "апр", "мая", "июн", "июл", "авг", "сен", "окт", "ноя", "дек"],
}

BUTTON_LABELS: dict[str, dict[Language, str]] = {
    "plan_today": {Language.EN: "\U0001f5d3 Plan today", Language.RU: "\U0001f5d3 Составить план"},
    "review_yesterday": {Language.EN: "\U0001f319 Review yesterday", Language.RU: "\U0001f319 Подбить вчера"},
    "open_plan": {Language.EN: "\U0001f4cb Open plan", Language.RU: "\U0001f4cb Открыть план"},
    "review_short": {Language.EN: "\U0001f319 Review", Language.RU: "\U0001f319 Подбивка"},
    "start_review": {Language.EN: "✅ Start review", Language.RU: "✅ Начать подбивку"},
    "plan_tomorrow": {Language.EN: "\U0001f5d3 Plan tomorrow", Language.RU: "\U0001f5d3 Запланировать завтра"},
}


def button_label(key: str, language: Language) -> str:
    return BUTTON_LABELS[key][language]


def review_yesterday_nudge(*, language: Language) -> str:
    if language == Language.RU:
        return "Вчерашняя подбивка не завершена. Хочешь быстро подвести итоги вчерашнего дня?"
    return "Yesterday's review was missed. Do you want to quickly review yesterday now?"


def morning_plan_prompt(*, language: Language) -> str:
    if language == Language.RU:
        return f"☀️ Доброе утро! Давай составим план на сегодня (до {Constants.MAX_TASKS_PER_DAY} задач)."
    return f"☀️ Good morning! Let's create today's plan (up to {Constants.MAX_TASKS_PER_DAY} tasks)."


def task_reminder(*, language: Language, remaining: list[str]) -> str:
    """Build the mid-day reminder.

    Args:
        language: Interface language
        remaining: Texts of tasks still open, in plan order
    """
    preview = "\n".join(
        f"{index}. {text}" for index, text in enumerate(remaining[: Constants.REMINDER_PREVIEW_LIMIT], start=1)
    )
    if language == Language.RU:
        return f"\U0001f4cc Напоминание о задачах: осталось {len(remaining)}.\n\n{preview}"
    return f"\U0001f4cc Task reminder: {len(remaining)} remaining.\n\n{preview}"


def plan_already_clear(*, language: Language) -> str:
    if language == Language.RU:
        return "\U0001f4cc Напоминание: по плану на сегодня уже всё закрыто. Отлично!"
    return "\U0001f4cc Reminder: your plan for today is already completed. Great job!"


def evening_review_prompt(*, language: Language) -> str:
    if language == Language.RU:
        return "\U0001f319 Время подвести итоги дня. Отметь статус задач."
    return "\U0001f319 Time for evening review. Mark statuses for today's tasks."


def task_list(*, tasks: list[Task]) -> str:
    """Render a plan's tasks as a numbered list with status icons."""
    return "\n".join(f"{_STATUS_ICONS[task.status]} {task.position}. {task.text}" for task in tasks)


def streak_line(*, streak: int, language: Language) -> str:
    if language == Language.RU:
        return f"\U0001f525 Серия: {streak} дн."
    return f"\U0001f525 Streak: {streak} day{'s' if streak != 1 else ''}"


def weekly_stats(*, stats: WeeklyStats, language: Language) -> str:
    """Render weekly statistics with the per-area breakdown."""
    months = _MONTHS[language]
    period = (
        f"{stats.week_start.day:02d} {months[stats.week_start.month - 1]} - "
        f"{stats.week_end.day:02d} {months[stats.week_end.month - 1]}"
    )

    if language == Language.RU:
        lines = [
            f"\U0001f4ca *Статистика за неделю* ({period})",
            "",
            f"• Дней с планом: {stats.days_planned}",
            f"• Среднее задач в день: {stats.avg_tasks_per_day}",
            f"• Выполнено: {stats.done_tasks}/{stats.total_tasks} ({stats.completion_rate}%)",
            "",
        ]
        areas_header = "*По направлениям:*"
        no_areas = "_Нет привязанных к направлениям задач за эту неделю._"
    else:
        lines = [
            f"\U0001f4ca *Weekly stats* ({period})",
            "",
            f"• Days with a plan: {stats.days_planned}",
            f"• Avg tasks/day: {stats.avg_tasks_per_day}",
            f"• Completed: {stats.done_tasks}/{stats.total_tasks} ({stats.completion_rate}%)",
            "",
        ]
        areas_header = "*By areas:*"
        no_areas = "_No tasks linked to areas this week._"

    if not stats.areas:
        lines.append(no_areas)
        return "\n".join(lines)

    lines.append(areas_header)
    for area in stats.areas:
        percent = completion_percent(area.done, area.total)
        lines.append(f"{area.emoji or '•'} {area.title}: {area.done}/{area.total} ({percent}%)")
    return "\n".join(lines)
