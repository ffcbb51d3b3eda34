"""Email delivery with per-category routing and a secondary-transport fallback."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass

from finchat.mail.base import EmailMessage, MailTransport

LOGGER = logging.getLogger(__name__)

_RATE_LIMIT_MARKERS = ("rate limit", "quota", "daily limit")


class EmailCategory(str, enum.Enum):
    WELCOME_GENERAL = "welcomeGeneral"
    EXPERT_APPLICATION_PENDING = "expertApplicationPending"
    ADMIN_NOTIFICATION = "adminNotification"


class Route(str, enum.Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"


CATEGORY_ROUTES: dict[EmailCategory, Route] = {
    EmailCategory.WELCOME_GENERAL: Route.PRIMARY,
    EmailCategory.EXPERT_APPLICATION_PENDING: Route.PRIMARY,
    EmailCategory.ADMIN_NOTIFICATION: Route.SECONDARY,
}


@dataclass(slots=True)
class SendResult:
    success: bool
    service: str
    error: str | None = None


def is_rate_limit_error(error: str | None) -> bool:
    return bool(error) and any(marker in error for marker in _RATE_LIMIT_MARKERS)


class EmailService:
    """Routes each category to a transport and falls back once on primary failure.

    Any primary failure triggers the fallback; the rate-limit check only
    changes how the failure is logged and labelled. Delivery is not
    idempotent: a primary false negative followed by fallback can duplicate.
    """

    def __init__(self, primary: MailTransport, secondary: MailTransport, app_url: str | None = None) -> None:
        self._primary = primary
        self._secondary = secondary
        # Base URL for links rendered into templated messages.
        self.app_url = app_url

    async def send(self, message: EmailMessage, category: EmailCategory | str | None = None) -> SendResult:
        route = _route_for(category)
        label = _category_label(category)

        if route is not Route.PRIMARY:
            LOGGER.info("[Email] Sending %s via %s to %s", label, self._secondary.name, message.to)
            result = await self._secondary.send(message)
            return SendResult(success=result.success, service=self._secondary.name, error=result.error)

        LOGGER.info("[Email] Attempting to send %s via %s to %s", label, self._primary.name, message.to)
        primary = await self._primary.send(message)
        if primary.success:
            return SendResult(success=True, service=self._primary.name)

        rate_limited = is_rate_limit_error(primary.error)
        if rate_limited:
            LOGGER.warning(
                "[Email] %s rate limit reached, falling back to %s for %s",
                self._primary.name,
                self._secondary.name,
                label,
            )
        else:
            LOGGER.warning(
                "[Email] %s failed with error: %s, attempting %s fallback",
                self._primary.name,
                primary.error,
                self._secondary.name,
            )

        fallback = await self._secondary.send(message)
        if fallback.success:
            return SendResult(success=True, service=f"{self._secondary.name}-fallback")

        if rate_limited:
            error = (
                f"{_title(self._primary.name)} failed (rate limit): {primary.error}, "
                f"{_title(self._secondary.name)} also failed: {fallback.error}"
            )
        else:
            error = (
                f"Both {_title(self._primary.name)} and {_title(self._secondary.name)} failed. "
                f"{_title(self._primary.name)}: {primary.error}, "
                f"{_title(self._secondary.name)}: {fallback.error}"
            )
        LOGGER.error("[Email] Delivery of %s to %s failed: %s", label, message.to, error)
        return SendResult(success=False, service="failed", error=error)

    async def close(self) -> None:
        await self._primary.close()
        await self._secondary.close()


def _route_for(category: EmailCategory | str | None) -> Route:
    if category is None:
        return Route.SECONDARY
    try:
        return CATEGORY_ROUTES.get(EmailCategory(category), Route.SECONDARY)
    except ValueError:
        return Route.SECONDARY


def _category_label(category: EmailCategory | str | None) -> str:
    if category is None:
        return "unspecified"
    return category.value if isinstance(category, EmailCategory) else str(category)


def _title(name: str) -> str:
    return name.upper() if name == "smtp" else name.capitalize()
