import math
import re
from collections.abc import Mapping
from typing import Any
from typing import Optional

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import SecretBytes
from pydantic import SecretStr
from pydantic import ValidationError
from pydantic import field_validator
from pydantic import model_validator

from formguard.errors import CsrfConfigError

MIN_SECRET_LENGTH = 32
DEFAULT_TOKEN_FIELD = "_csrf_token"
DEFAULT_TIME_FIELD = "_csrf_time"
DEFAULT_TTL_MS = 3_600_000

FIELD_NAME_RE = re.compile(r"^[A-Za-z0-9_-]+$")


def validate_field_name(name: Any, kind: str) -> str:
    """Field names go into markup unescaped, so only a safe charset is allowed."""
    if not isinstance(name, str) or not FIELD_NAME_RE.match(name):
        raise CsrfConfigError(
            f"Invalid {kind} field name: must contain only alphanumeric "
            "characters, underscores, or hyphens"
        )
    return name


class FieldNames(BaseModel):
    token: str = DEFAULT_TOKEN_FIELD
    time: str = DEFAULT_TIME_FIELD

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="before")
    @classmethod
    def accept_pair(cls, data: Any) -> Any:
        if isinstance(data, (FieldNames, Mapping)):
            return data
        if isinstance(data, (tuple, list)) and len(data) == 2:
            return {"token": data[0], "time": data[1]}
        raise CsrfConfigError(
            "CSRF field names must be a mapping with 'token' and 'time' keys"
        )

    @field_validator("token", "time", mode="before")
    @classmethod
    def check_name(cls, v: Any, info) -> str:
        return validate_field_name(v, info.field_name)

    @model_validator(mode="after")
    def check_distinct(self) -> "FieldNames":
        if self.token == self.time:
            raise CsrfConfigError("Token and time field names must be different")
        return self


class CsrfConfig(BaseModel):
    """Immutable CSRF settings: secret, form field names and token lifetime."""

    secret: Optional[SecretBytes] = Field(default=None, validate_default=True)
    field_names: FieldNames = FieldNames()
    ttl: float = DEFAULT_TTL_MS

    model_config = ConfigDict(frozen=True)

    @field_validator("secret", mode="before")
    @classmethod
    def check_secret(cls, v: Any) -> bytes:
        if isinstance(v, (SecretStr, SecretBytes)):
            v = v.get_secret_value()
        # length is counted in characters for str, in bytes for bytes
        if not isinstance(v, (str, bytes)) or len(v) < MIN_SECRET_LENGTH:
            raise CsrfConfigError(
                f"CSRF secret must be at least {MIN_SECRET_LENGTH} characters long"
            )
        if isinstance(v, str):
            v = v.encode("utf-8")
        return v

    @field_validator("ttl", mode="before")
    @classmethod
    def check_ttl(cls, v: Any) -> float:
        if (
            isinstance(v, bool)
            or not isinstance(v, (int, float))
            or not math.isfinite(v)
            or v <= 0
        ):
            raise CsrfConfigError("CSRF ttl must be a positive, finite number of milliseconds")
        return v

    @property
    def key(self) -> bytes:
        return self.secret.get_secret_value()

    @classmethod
    def build(cls, secret: Any = None, field_names: Any = None, ttl: Any = None) -> "CsrfConfig":
        """Validate and freeze a configuration, raising ``CsrfConfigError`` on any problem."""
        data: dict[str, Any] = {"secret": secret}
        if field_names is not None:
            data["field_names"] = field_names
        if ttl is not None:
            data["ttl"] = ttl
        try:
            return cls(**data)
        except ValidationError as exc:
            raise _as_config_error(exc) from None


def _as_config_error(exc: ValidationError) -> CsrfConfigError:
    first = exc.errors()[0]
    original = first.get("ctx", {}).get("error")
    if isinstance(original, CsrfConfigError):
        return original
    loc = ".".join(str(part) for part in first["loc"])
    return CsrfConfigError(f"Invalid CSRF configuration ({loc}): {first['msg']}")
