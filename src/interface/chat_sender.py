"""Telegram message sender with rate limiting and retry logic."""

import asyncio
import logging
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Any

import httpx
from pydantic import BaseModel, Field

from src.core.config import constants, settings


logger = logging.getLogger(__name__)


# HTTP status code constants for error handling
HTTP_CLIENT_ERROR_START = 400
HTTP_CLIENT_ERROR_END = 500


class InlineButton(BaseModel):
    """An inline keyboard button that reports ``callback_data`` back to the bot."""

    text: str
    callback_data: str


class SendMessageResult(BaseModel):
    """Result of sending a chat message."""

    success: bool = Field(..., description="Whether the message was sent successfully")
    message_id: int | None = Field(None, description="Telegram message ID if successful")
    error: str | None = Field(None, description="Error message if failed")


class RateLimiter:
    """In-memory rate limiter for Bot API calls.

    Tracks requests per chat per minute to prevent exceeding rate limits.
    """

    def __init__(self) -> None:
        """Initialize rate limiter."""
        self._requests: dict[int, list[datetime]] = defaultdict(list)

    def can_send(self, chat_id: int) -> bool:
        """Check if a message can be sent to the given chat.

        Args:
            chat_id: Chat to check

        Returns:
            True if sending is allowed, False if rate limited
        """
        now = datetime.now()
        cutoff = now - timedelta(minutes=1)

        # Clean up old requests
        self._requests[chat_id] = [ts for ts in self._requests[chat_id] if ts > cutoff]

        return len(self._requests[chat_id]) < constants.MAX_REQUESTS_PER_MINUTE

    def record_request(self, chat_id: int) -> None:
        """Record a request for rate limiting.

        Args:
            chat_id: Chat to record
        """
        self._requests[chat_id].append(datetime.now())


# Global rate limiter instance
rate_limiter = RateLimiter()


def build_reply_markup(buttons: list[list[InlineButton]] | None) -> dict[str, Any] | None:
    """Build a Telegram ``reply_markup`` inline keyboard from button rows."""
    if not buttons:
        return None
    return {"inline_keyboard": [[button.model_dump() for button in row] for row in buttons]}


async def _send_telegram_message(
    *,
    payload: dict[str, Any],
    max_retries: int,
    retry_delay: float,
) -> SendMessageResult:
    """Core message sending logic with retry."""
    token = settings.require_credential("telegram_bot_token", "Telegram Bot API")
    url = f"{settings.telegram_api_base_url}/bot{token}/sendMessage"

    for attempt in range(max_retries):
        try:
            async with httpx.AsyncClient(timeout=constants.API_TIMEOUT_SECONDS) as client:
                response = await client.post(url, json=payload)

                if response.is_success:
                    result = response.json().get("result") or {}
                    return SendMessageResult(success=True, message_id=result.get("message_id"))

                if HTTP_CLIENT_ERROR_START <= response.status_code < HTTP_CLIENT_ERROR_END:
                    return SendMessageResult(success=False, error=f"Client error: {response.text}")

                raise httpx.HTTPStatusError(
                    f"Server error: {response.status_code}", request=response.request, response=response
                )
        except httpx.HTTPStatusError:
            if attempt < max_retries - 1:
                await asyncio.sleep(retry_delay * (2**attempt))
        except Exception as e:
            if attempt < max_retries - 1:
                await asyncio.sleep(retry_delay * (2**attempt))
            else:
                return SendMessageResult(success=False, error=f"Failed after retries: {e!s}")

    return SendMessageResult(success=False, error="Max retries exceeded")


async def send_text_message(
    *,
    chat_id: int,
    text: str,
    buttons: list[list[InlineButton]] | None = None,
    max_retries: int = 3,
    retry_delay: float = 1.0,
) -> SendMessageResult:
    """Send a text message with an optional inline keyboard via the Bot API."""
    if not rate_limiter.can_send(chat_id):
        return SendMessageResult(success=False, error="Rate limit exceeded. Please try again later.")

    rate_limiter.record_request(chat_id)

    payload: dict[str, Any] = {"chat_id": chat_id, "text": text}
    reply_markup = build_reply_markup(buttons)
    if reply_markup is not None:
        payload["reply_markup"] = reply_markup

    return await _send_telegram_message(payload=payload, max_retries=max_retries, retry_delay=retry_delay)
