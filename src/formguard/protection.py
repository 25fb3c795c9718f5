"""Stateless CSRF protection for HTML form submissions.

A token is the HMAC of the client's identity (address + user agent) and the
time it was issued. The form carries both the token and the time, so the
server can recompute the token on submission without remembering anything.

Usage::

    csrf = CsrfProtection(secret=settings.csrf_secret)

    html = csrf.render(request)  # two hidden inputs for the form
    csrf.check(request)          # raises CsrfError on a bad submission

Known limitations: the identity binding is weak (address and user agent are
both spoofable) and a token may be replayed until it expires.
"""

import logging
import math
import re
from dataclasses import dataclass
from typing import Any
from typing import Callable
from typing import Optional

from formguard.compare import constant_time_equals
from formguard.config import CsrfConfig
from formguard.errors import CsrfError
from formguard.errors import CsrfReason
from formguard.identity import ClientRequest
from formguard.identity import identity
from formguard.tokens import IssuedToken
from formguard.tokens import TokenCodec
from formguard.tokens import now_ms

logger = logging.getLogger("formguard.protection")

SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})

DECIMAL_RE = re.compile(r"-?[0-9]+(\.[0-9]+)?")


@dataclass(frozen=True)
class ValidationOutcome:
    reason: Optional[CsrfReason] = None

    @property
    def accepted(self) -> bool:
        return self.reason is None

    def error(self) -> Optional[CsrfError]:
        if self.reason is None:
            return None
        return CsrfError(self.reason)


ACCEPTED = ValidationOutcome()


def _parse_time(value: str) -> float:
    # plain decimals only; float() alone would take "1_000", "1e3" or " 1 "
    if not DECIMAL_RE.fullmatch(value):
        return math.nan
    return float(value)


class CsrfProtection:
    def __init__(
        self,
        secret: Any = None,
        field_names: Any = None,
        ttl: Any = None,
        clock: Callable[[], int] = now_ms,
    ):
        self.config = CsrfConfig.build(secret=secret, field_names=field_names, ttl=ttl)
        self._codec = TokenCodec(self.config.key)
        self._clock = clock

    @classmethod
    def from_config(cls, config: CsrfConfig, clock: Callable[[], int] = now_ms) -> "CsrfProtection":
        return cls(
            secret=config.secret,
            field_names=config.field_names,
            ttl=config.ttl,
            clock=clock,
        )

    @classmethod
    def from_settings(cls, settings, clock: Callable[[], int] = now_ms) -> "CsrfProtection":
        return cls.from_config(settings.to_config(), clock=clock)

    @property
    def token_field(self) -> str:
        return self.config.field_names.token

    @property
    def time_field(self) -> str:
        return self.config.field_names.time

    def issue(self, request: ClientRequest) -> IssuedToken:
        return self._codec.issue_now(identity(request), clock=self._clock)

    def render(self, request: ClientRequest) -> str:
        issued = self.issue(request)
        # token is hex and time is digits, and the names were checked at
        # construction, so nothing here needs escaping
        return (
            f'<input type="hidden" name="{self.token_field}" value="{issued.token}" />\n'
            f'<input type="hidden" name="{self.time_field}" value="{issued.time}" />'
        )

    def validate(self, request: ClientRequest) -> ValidationOutcome:
        if request.method.upper() in SAFE_METHODS:
            return ACCEPTED

        token = request.field(self.token_field)
        issued_at = request.field(self.time_field)
        if not token or not issued_at:
            return self._reject(request, CsrfReason.MISSING_FIELDS)

        # identity is always recomputed from the request, and the presented
        # time string is hashed verbatim
        expected = self._codec.issue(identity(request), issued_at)
        if not constant_time_equals(token, expected):
            return self._reject(request, CsrfReason.INVALID_SIGNATURE)

        age = self._clock() - _parse_time(issued_at)
        if not math.isfinite(age) or age < 0 or age > self.config.ttl:
            return self._reject(request, CsrfReason.EXPIRED)

        logger.debug("csrf accepted method=%s client=%s", request.method, request.client_host)
        return ACCEPTED

    def check(self, request: ClientRequest) -> None:
        """Raise ``CsrfError`` unless ``request`` passes validation."""
        error = self.validate(request).error()
        if error is not None:
            raise error

    def gate(self, request: ClientRequest, on_complete: Callable[[Optional[CsrfError]], Any]) -> Any:
        """Continuation form of ``validate``: ``on_complete(None)`` to proceed,
        ``on_complete(error)`` to short-circuit."""
        return on_complete(self.validate(request).error())

    def _reject(self, request: ClientRequest, reason: CsrfReason) -> ValidationOutcome:
        logger.warning(
            "csrf rejected method=%s path=%s client=%s reason=%s",
            request.method,
            request.path or "-",
            request.client_host or "-",
            reason.value,
        )
        return ValidationOutcome(reason=reason)

    def __repr__(self):
        return (
            f"CsrfProtection(token_field={self.token_field!r}, "
            f"time_field={self.time_field!r}, ttl={self.config.ttl!r})"
        )
