"""Mail transport contracts."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass

_TAG_RE = re.compile(r"<[^>]*>")


def html_to_text(html: str) -> str:
    return _TAG_RE.sub("", html)


@dataclass(slots=True)
class EmailMessage:
    """One outbound message; built per send call and discarded afterwards."""

    to: str
    subject: str
    html: str
    text: str | None = None

    def __post_init__(self) -> None:
        if self.text is None:
            self.text = html_to_text(self.html)


@dataclass(slots=True)
class TransportResult:
    success: bool
    error: str | None = None
    message_id: str | None = None


class MailTransport(ABC):
    """A single delivery mechanism. Failures are reported, never raised."""

    name: str

    @abstractmethod
    async def send(self, message: EmailMessage) -> TransportResult:
        """Attempt delivery once."""

    async def close(self) -> None:
        """Release pooled resources at shutdown."""
