from enum import Enum

CSRF_ERROR_CODE = "EBADCSRFTOKEN"


class CsrfReason(str, Enum):
    MISSING_FIELDS = "missing_fields"
    INVALID_SIGNATURE = "invalid_signature"
    EXPIRED = "expired"

    @property
    def message(self) -> str:
        return _MESSAGES[self]


_MESSAGES = {
    CsrfReason.MISSING_FIELDS: "Missing CSRF token or timestamp",
    CsrfReason.INVALID_SIGNATURE: "Invalid CSRF token",
    CsrfReason.EXPIRED: "Expired CSRF token",
}


class CsrfConfigError(ValueError):
    """Raised at construction time when the CSRF configuration is unusable."""


class CsrfError(Exception):
    """A request failed CSRF validation.

    ``code`` is always ``EBADCSRFTOKEN`` so integrations can tell CSRF
    failures apart from every other error; ``reason`` says which check failed.
    """

    code = CSRF_ERROR_CODE

    def __init__(self, reason: CsrfReason):
        super().__init__(reason.message)
        self.reason = reason

    @property
    def message(self) -> str:
        return self.reason.message

    def __repr__(self):
        return f"CsrfError(code={self.code!r}, reason={self.reason.value!r})"
