from pydantic import Field
from pydantic import SecretStr
from pydantic import field_validator
from pydantic_settings import BaseSettings
from pydantic_settings import SettingsConfigDict

from formguard.config import DEFAULT_TIME_FIELD
from formguard.config import DEFAULT_TOKEN_FIELD
from formguard.config import DEFAULT_TTL_MS
from formguard.config import CsrfConfig


class Settings(BaseSettings):
    # === General ===
    environment: str = Field(default="development", validation_alias="ENVIRONMENT")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    # === CSRF ===
    csrf_secret: SecretStr = Field(default=..., validation_alias="CSRF_SECRET")
    csrf_token_field: str = Field(default=DEFAULT_TOKEN_FIELD, validation_alias="CSRF_TOKEN_FIELD")
    csrf_time_field: str = Field(default=DEFAULT_TIME_FIELD, validation_alias="CSRF_TIME_FIELD")
    csrf_ttl_ms: int = Field(default=DEFAULT_TTL_MS, validation_alias="CSRF_TTL_MS")

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_level(cls, v: str) -> str:
        return v.strip().upper() if v else "INFO"

    def to_config(self) -> CsrfConfig:
        return CsrfConfig.build(
            secret=self.csrf_secret,
            field_names={"token": self.csrf_token_field, "time": self.csrf_time_field},
            ttl=self.csrf_ttl_ms,
        )
