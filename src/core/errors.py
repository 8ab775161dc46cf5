"""Error types and classification for the planning core."""

from enum import Enum

from pydantic import BaseModel


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCode:
    """Error codes for specific error conditions."""

    # Configuration errors
    ERR_INVALID_TIMEZONE = "ERR_INVALID_TIMEZONE"
    ERR_INVALID_TIME_OF_DAY = "ERR_INVALID_TIME_OF_DAY"

    # Store consistency errors
    ERR_PLAN_NOT_FOUND = "ERR_PLAN_NOT_FOUND"
    ERR_TASK_NOT_FOUND = "ERR_TASK_NOT_FOUND"
    ERR_USER_NOT_FOUND = "ERR_USER_NOT_FOUND"
    ERR_PLAN_ALREADY_EXISTS = "ERR_PLAN_ALREADY_EXISTS"
    ERR_INVALID_STATE_TRANSITION = "ERR_INVALID_STATE_TRANSITION"

    # Generic errors
    ERR_UNKNOWN = "ERR_UNKNOWN"


class PlannerError(Exception):
    """Base class for all errors raised by the planning core."""

    code: str = ErrorCode.ERR_UNKNOWN


class ConfigurationError(PlannerError):
    """A user or application setting cannot be interpreted (timezone, HH:MM time)."""

    code = ErrorCode.ERR_INVALID_TIME_OF_DAY


class InvalidTimezoneError(ConfigurationError):
    """An IANA timezone name is empty or unknown."""

    code = ErrorCode.ERR_INVALID_TIMEZONE


class NotFoundError(PlannerError, KeyError):
    """A referenced record no longer exists."""

    def __str__(self) -> str:
        # KeyError.__str__ would wrap the message in quotes
        return str(self.args[0]) if self.args else ""


class PlanNotFoundError(NotFoundError):
    """A plan id does not resolve to a stored plan."""

    code = ErrorCode.ERR_PLAN_NOT_FOUND


class TaskNotFoundError(NotFoundError):
    """A task id does not resolve to a stored task."""

    code = ErrorCode.ERR_TASK_NOT_FOUND


class UserNotFoundError(NotFoundError):
    """A user id does not resolve to a stored user."""

    code = ErrorCode.ERR_USER_NOT_FOUND


class PlanAlreadyExistsError(PlannerError):
    """A plan already occupies the requested (user, day) slot."""

    code = ErrorCode.ERR_PLAN_ALREADY_EXISTS


class InvalidPlanTransitionError(PlannerError, ValueError):
    """A plan status change is not an edge of the plan state machine."""

    code = ErrorCode.ERR_INVALID_STATE_TRANSITION

    def __init__(self, *, plan_id: str, current: str, target: str) -> None:
        self.plan_id = plan_id
        self.current = current
        self.target = target
        super().__init__(f"Cannot move plan {plan_id} from {current} to {target}")


class ErrorResponse(BaseModel):
    """Structured error response with user-friendly messaging."""

    code: str
    message: str
    suggestion: str
    severity: ErrorSeverity


def classify_error_with_response(exception: Exception) -> ErrorResponse:
    """Classify an error and return a structured response with recovery suggestions.

    Used by the conversational layer to turn core exceptions into replies.

    Args:
        exception: The exception raised during execution

    Returns:
        ErrorResponse with code, message, suggestion, and severity
    """
    if isinstance(exception, InvalidTimezoneError):
        return ErrorResponse(
            code=exception.code,
            message="Your timezone setting is not recognised.",
            suggestion="Pick a timezone like 'Europe/London' in /settings.",
            severity=ErrorSeverity.MEDIUM,
        )

    if isinstance(exception, ConfigurationError):
        return ErrorResponse(
            code=exception.code,
            message="One of your reminder times is not a valid HH:MM time.",
            suggestion="Update your reminder times in /settings.",
            severity=ErrorSeverity.MEDIUM,
        )

    if isinstance(exception, PlanNotFoundError):
        return ErrorResponse(
            code=exception.code,
            message="I couldn't find that plan anymore.",
            suggestion="Use /plan to create a plan for today.",
            severity=ErrorSeverity.LOW,
        )

    if isinstance(exception, TaskNotFoundError):
        return ErrorResponse(
            code=exception.code,
            message="I couldn't find that task.",
            suggestion="Use /today to see your current tasks.",
            severity=ErrorSeverity.LOW,
        )

    if isinstance(exception, UserNotFoundError):
        return ErrorResponse(
            code=exception.code,
            message="User not found.",
            suggestion="Run /start to register.",
            severity=ErrorSeverity.MEDIUM,
        )

    if isinstance(exception, PlanAlreadyExistsError):
        return ErrorResponse(
            code=exception.code,
            message="You already have a plan for that day.",
            suggestion="Use /today to see it or replan to start over.",
            severity=ErrorSeverity.LOW,
        )

    if isinstance(exception, InvalidPlanTransitionError):
        return ErrorResponse(
            code=exception.code,
            message="This action cannot be performed in the plan's current state.",
            suggestion="Use /today to check the plan status and try again.",
            severity=ErrorSeverity.LOW,
        )

    return ErrorResponse(
        code=ErrorCode.ERR_UNKNOWN,
        message="An unexpected error occurred.",
        suggestion="Please try again later. If the problem persists, contact support.",
        severity=ErrorSeverity.MEDIUM,
    )
