from collections.abc import Mapping
from typing import Optional

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import field_validator


class ClientRequest(BaseModel):
    """The slice of an HTTP request the CSRF checks look at.

    Host framework requests get adapted to this at the integration boundary
    (see ``formguard.middleware.client_request``).
    """

    method: str
    client_host: Optional[str] = None
    path: Optional[str] = None
    headers: dict[str, str] = {}
    form: Optional[dict[str, str]] = None

    model_config = ConfigDict(frozen=True)

    @field_validator("headers", mode="before")
    @classmethod
    def lowercase_header_names(cls, v: Optional[Mapping[str, str]]) -> dict[str, str]:
        if not v:
            return {}
        return {str(k).lower(): str(val) for k, val in v.items()}

    def header(self, name: str) -> Optional[str]:
        return self.headers.get(name.lower())

    def field(self, name: str) -> Optional[str]:
        if self.form is None:
            return None
        return self.form.get(name)


def identity(request: ClientRequest) -> str:
    # address then user agent, no separator
    return (request.client_host or "") + (request.header("user-agent") or "")
