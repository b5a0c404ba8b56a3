"""Exception hierarchy for the mailer service."""


class MailerError(Exception):
    """Base class for all errors raised by attendance_mailer."""


class PayloadValidationError(MailerError):
    """An inbound request body failed validation.

    ``message`` is the short text returned to the caller; ``errors`` holds
    per-field details when there are any worth reporting.
    """

    def __init__(self, message: str, errors: list[dict] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.errors = errors or []


class RenderError(MailerError):
    """The report PDF could not be written."""


class DispatchError(MailerError):
    """The SMTP relay rejected the message or could not be reached."""
