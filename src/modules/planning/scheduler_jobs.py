"""Planning notification jobs.

Every tick evaluates three independent time-of-day triggers per onboarded
user against the user's local clock and today's plan:
- Morning plan: prompt to plan the day (with a nudge to review yesterday)
- Mid-day reminders: remaining tasks at each configured reminder time
- Evening review: prompt to review today's tasks

Each trigger fires at most once per (local day, configured time), enforced by
the notification ledger rather than by flags on the plan.
"""

import asyncio
import logging
from datetime import UTC, datetime, time
from enum import StrEnum
from zoneinfo import ZoneInfo

from src.core import message_templates
from src.core.config import Constants, settings
from src.core.errors import ConfigurationError
from src.core.local_days import local_now, parse_time_of_day, resolve_timezone, shift_local_day
from src.core.logging import log_with_user_context, span
from src.core.notification_ledger import NotificationLedger, make_slot, notification_ledger
from src.domain.plan import Plan, PlanStatus
from src.domain.user import User
from src.interface.chat_sender import InlineButton, send_text_message
from src.models.service_models import SweepResult, UserFailure
from src.modules.planning import store
from src.services import user_service


logger = logging.getLogger(__name__)


class TriggerType(StrEnum):
    """Kinds of scheduled notifications, used in ledger keys."""

    MORNING_PLAN = "morning_plan"
    MORNING_REVIEW_FALLBACK = "morning_review_fallback"
    DAILY_REMINDER = "daily_reminder"
    EVENING_REVIEW = "evening_review"


def is_time_match(current: datetime, target: time) -> bool:
    """True when the local wall clock is within ``[target, target + window)``.

    Minutes are compared within one day, so the window is cut short at
    midnight: a 23:58 target no longer matches at 00:01.
    """
    current_minutes = current.hour * 60 + current.minute
    target_minutes = target.hour * 60 + target.minute
    return 0 <= current_minutes - target_minutes < Constants.NOTIFICATION_WINDOW_MINUTES


async def _deliver(
    *,
    user: User,
    trigger: TriggerType,
    text: str,
    buttons: list[list[InlineButton]],
) -> bool:
    """Send one notification; failures are logged and never raised."""
    try:
        result = await send_text_message(chat_id=user.chat_id, text=text, buttons=buttons)
    except Exception as e:
        log_with_user_context(
            logger, "warning", "Notification delivery raised", user_id=user.id, trigger=str(trigger), error=str(e)
        )
        return False

    if not result.success:
        log_with_user_context(
            logger, "warning", "Notification not delivered", user_id=user.id, trigger=str(trigger), error=result.error
        )
        return False

    log_with_user_context(logger, "info", "Notification sent", user_id=user.id, trigger=str(trigger))
    return True


def _button(key: str, user: User, callback_data: str) -> InlineButton:
    return InlineButton(text=message_templates.button_label(key, user.language), callback_data=callback_data)


async def process_morning_plan(
    *,
    user: User,
    tz: ZoneInfo,
    now: datetime,
    at: time,
    ledger: NotificationLedger = notification_ledger,
) -> int:
    """Prompt the user to plan today once the morning window opens.

    Sends a separately deduplicated "review yesterday?" nudge first when
    yesterday's plan was committed but never reviewed. A committed plan for
    today absorbs the trigger without sending.

    Returns:
        Number of messages delivered
    """
    local = local_now(tz, now)
    if not is_time_match(local, at):
        return 0

    day = local.date()
    slot = make_slot(day, at)
    if ledger.was_sent(user.id, TriggerType.MORNING_PLAN, slot):
        return 0

    today_plan = await store.get_plan_for_day(user_id=user.id, local_day=day)
    if today_plan is not None and not today_plan.is_draft:
        ledger.mark_sent(user.id, TriggerType.MORNING_PLAN, slot, now=now)
        return 0

    sent = 0
    yesterday_plan = await store.get_plan_for_day(user_id=user.id, local_day=shift_local_day(day, tz, -1))
    if (
        yesterday_plan is not None
        and yesterday_plan.status not in (PlanStatus.DRAFT, PlanStatus.REVIEWED)
        and not ledger.was_sent(user.id, TriggerType.MORNING_REVIEW_FALLBACK, slot)
    ):
        delivered = await _deliver(
            user=user,
            trigger=TriggerType.MORNING_REVIEW_FALLBACK,
            text=message_templates.review_yesterday_nudge(language=user.language),
            buttons=[[_button("review_yesterday", user, "review:start:yesterday")]],
        )
        sent += int(delivered)
        ledger.mark_sent(user.id, TriggerType.MORNING_REVIEW_FALLBACK, slot, now=now)

    delivered = await _deliver(
        user=user,
        trigger=TriggerType.MORNING_PLAN,
        text=message_templates.morning_plan_prompt(language=user.language),
        buttons=[[_button("plan_today", user, "plan:start")]],
    )
    ledger.mark_sent(user.id, TriggerType.MORNING_PLAN, slot, now=now)
    return sent + int(delivered)


async def process_daily_reminders(
    *,
    user: User,
    tz: ZoneInfo,
    now: datetime,
    times: list[time],
    ledger: NotificationLedger = notification_ledger,
) -> int:
    """Remind the user of open tasks at each configured mid-day time.

    A time is absorbed without sending when today has no committed plan or the
    plan is empty.

    Returns:
        Number of messages delivered
    """
    local = local_now(tz, now)
    day = local.date()
    today_plan: Plan | None = None
    plan_loaded = False
    sent = 0

    for at in times:
        if not is_time_match(local, at):
            continue

        slot = make_slot(day, at)
        if ledger.was_sent(user.id, TriggerType.DAILY_REMINDER, slot):
            continue

        if not plan_loaded:
            today_plan = await store.get_plan_for_day(user_id=user.id, local_day=day)
            plan_loaded = True

        if today_plan is None or today_plan.is_draft or not today_plan.tasks:
            ledger.mark_sent(user.id, TriggerType.DAILY_REMINDER, slot, now=now)
            continue

        remaining = [task.text for task in today_plan.tasks if task.is_open]
        if remaining:
            text = message_templates.task_reminder(language=user.language, remaining=remaining)
        else:
            text = message_templates.plan_already_clear(language=user.language)

        delivered = await _deliver(
            user=user,
            trigger=TriggerType.DAILY_REMINDER,
            text=text,
            buttons=[
                [
                    _button("open_plan", user, "plan:start"),
                    _button("review_short", user, "review:start:today"),
                ]
            ],
        )
        ledger.mark_sent(user.id, TriggerType.DAILY_REMINDER, slot, now=now)
        sent += int(delivered)

    return sent


async def process_evening_review(
    *,
    user: User,
    tz: ZoneInfo,
    now: datetime,
    at: time,
    ledger: NotificationLedger = notification_ledger,
) -> int:
    """Prompt the user to review today's tasks once the evening window opens.

    Absorbed without sending when today has no committed plan, is already
    reviewed, or has no tasks.

    Returns:
        Number of messages delivered
    """
    local = local_now(tz, now)
    if not is_time_match(local, at):
        return 0

    day = local.date()
    slot = make_slot(day, at)
    if ledger.was_sent(user.id, TriggerType.EVENING_REVIEW, slot):
        return 0

    today_plan = await store.get_plan_for_day(user_id=user.id, local_day=day)
    if (
        today_plan is None
        or today_plan.status in (PlanStatus.DRAFT, PlanStatus.REVIEWED)
        or not today_plan.tasks
    ):
        ledger.mark_sent(user.id, TriggerType.EVENING_REVIEW, slot, now=now)
        return 0

    delivered = await _deliver(
        user=user,
        trigger=TriggerType.EVENING_REVIEW,
        text=message_templates.evening_review_prompt(language=user.language),
        buttons=[
            [_button("start_review", user, "review:start:today")],
            [_button("plan_tomorrow", user, "plan:start:tomorrow")],
        ],
    )
    ledger.mark_sent(user.id, TriggerType.EVENING_REVIEW, slot, now=now)
    return int(delivered)


async def process_user(
    *,
    user: User,
    now: datetime,
    ledger: NotificationLedger = notification_ledger,
) -> int | None:
    """Evaluate all triggers for one user with a single consistent ``now``.

    Returns:
        Number of messages delivered, or None when the user's settings are
        invalid and the user is skipped for this tick
    """
    try:
        tz = resolve_timezone(user.timezone)
        morning_at = parse_time_of_day(user.morning_plan_time) if user.morning_plan_time else None
        evening_at = parse_time_of_day(user.evening_review_time) if user.evening_review_time else None
        reminder_times = user_service.get_reminder_times(user)
    except ConfigurationError as e:
        log_with_user_context(logger, "warning", "Skipping user with invalid settings", user_id=user.id, error=str(e))
        return None

    sent = 0
    if morning_at is not None:
        sent += await process_morning_plan(user=user, tz=tz, now=now, at=morning_at, ledger=ledger)
    if reminder_times:
        sent += await process_daily_reminders(user=user, tz=tz, now=now, times=reminder_times, ledger=ledger)
    if evening_at is not None:
        sent += await process_evening_review(user=user, tz=tz, now=now, at=evening_at, ledger=ledger)
    return sent


async def run_planning_notifications(
    now: datetime | None = None,
    *,
    ledger: NotificationLedger = notification_ledger,
) -> SweepResult:
    """Evaluate planning notifications for every onboarded user.

    Users are processed concurrently through a bounded pool; one user's failure
    is recorded and does not stop the others.
    """
    with span("planning_notifications.run"):
        if now is None:
            now = datetime.now(UTC)
        elif now.tzinfo is None:
            now = now.replace(tzinfo=UTC)

        users = await user_service.list_onboarded_users()
        semaphore = asyncio.Semaphore(settings.scheduler_max_workers)

        async def _process_bounded(user: User) -> int | None:
            async with semaphore:
                return await process_user(user=user, now=now, ledger=ledger)

        outcomes = await asyncio.gather(*(_process_bounded(user) for user in users), return_exceptions=True)

        result = SweepResult(users_total=len(users))
        for user, outcome in zip(users, outcomes, strict=True):
            if isinstance(outcome, BaseException):
                logger.error(
                    "Planning notifications failed for user",
                    extra={"user_id": user.id, "error": str(outcome)},
                    exc_info=outcome,
                )
                result.failures.append(UserFailure(user_id=user.id, error=str(outcome)))
            elif outcome is None:
                result.users_skipped += 1
            else:
                result.users_processed += 1
                result.messages_sent += outcome

        ledger.evict_expired(now=now)

        logger.info(
            "Planning notifications completed",
            extra={
                "users_total": result.users_total,
                "users_processed": result.users_processed,
                "users_skipped": result.users_skipped,
                "messages_sent": result.messages_sent,
                "failures": len(result.failures),
            },
        )
        return result
