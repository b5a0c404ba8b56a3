"""Value objects passed between the formatter, renderer and dispatcher."""

from __future__ import annotations

import dataclasses
import pathlib


@dataclasses.dataclass(frozen=True)
class EmailContent:
    subject: str
    text_body: str
    html_body: str


@dataclasses.dataclass(frozen=True)
class OutgoingMessage:
    """A fully formatted email ready for the dispatcher."""

    recipient: str
    subject: str
    text_body: str
    html_body: str
    attachment: pathlib.Path | None = None

    @classmethod
    def from_content(
        cls,
        recipient: str,
        content: EmailContent,
        attachment: pathlib.Path | None = None,
    ) -> "OutgoingMessage":
        return cls(
            recipient=recipient,
            subject=content.subject,
            text_body=content.text_body,
            html_body=content.html_body,
            attachment=attachment,
        )


@dataclasses.dataclass(frozen=True)
class DispatchResult:
    sent: bool
    message_id: str | None = None
