from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=None, extra="ignore")

    # Runtime
    environment: str = Field(default="development", validation_alias="APP_ENV")
    port: int = Field(default=8080, validation_alias="PORT")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_json: bool = Field(default=True, validation_alias="LOG_JSON")

    # AWS / data
    # Unset outside AWS lets boto3 resolve the region itself.
    aws_region: str | None = Field(default=None, validation_alias="AWS_REGION")
    ddb_table_name: str | None = Field(default=None, validation_alias="TABLE_NAME")
    # SAM local runs the function in a container next to dynamodb-local.
    aws_sam_local: bool = Field(default=False, validation_alias="AWS_SAM_LOCAL")
    dynamodb_local_endpoint: str | None = Field(
        default=None, validation_alias="AWS_DYNAMODB_LOCAL_ENDPOINT"
    )
    ddb_connect_timeout_s: float = Field(
        default=2.0, validation_alias="DDB_CONNECT_TIMEOUT_SECONDS"
    )
    ddb_read_timeout_s: float = Field(default=10.0, validation_alias="DDB_READ_TIMEOUT_SECONDS")

    # Pagination
    page_limit: int = Field(default=25, validation_alias="PAGE_LIMIT")
    max_page_limit: int = Field(default=100, validation_alias="MAX_PAGE_LIMIT")

    # Per-request deadline handed to repository operations.
    request_timeout_s: float = Field(default=10.0, validation_alias="REQUEST_TIMEOUT_SECONDS")

    @property
    def normalized_environment(self) -> str:
        return str(self.environment or "").strip().lower()

    @property
    def is_production(self) -> bool:
        return self.normalized_environment == "production"

    @property
    def dynamodb_endpoint_url(self) -> str | None:
        if not self.aws_sam_local:
            return None
        ep = str(self.dynamodb_local_endpoint or "").strip()
        return ep or None

    def require_in_production(self) -> None:
        """
        Enforce required settings in production.

        Local runs may start without a table; production must be fully configured.
        """
        if not self.is_production:
            return

        missing: list[str] = []
        if not self.ddb_table_name:
            missing.append("TABLE_NAME")
        if not self.aws_region:
            missing.append("AWS_REGION")

        if missing:
            raise RuntimeError(f"Missing required settings in production: {', '.join(missing)}")

    def to_log_safe_dict(self) -> dict[str, object]:
        return {
            "environment": self.normalized_environment,
            "port": self.port,
            "aws_region": self.aws_region,
            "ddb_table_name": self.ddb_table_name,
            "dynamodb_endpoint_url": self.dynamodb_endpoint_url,
            "page_limit": self.page_limit,
            "max_page_limit": self.max_page_limit,
            "request_timeout_s": self.request_timeout_s,
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    s = Settings()
    s.require_in_production()
    return s
