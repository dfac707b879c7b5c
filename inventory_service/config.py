"""Settings read from the environment (and a ``.env`` file) once, at process start."""

from typing import Optional

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # Database
    database_url: Optional[str] = None
    db_host: str = "localhost"
    db_user: str = "postgres"
    db_password: Optional[str] = None
    db_name: str = "wings_cafe"
    db_port: int = 5432

    # HTTP
    port: int = 5000

    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def upper_log_level(cls, v: str) -> str:
        return v.upper()

    @model_validator(mode="after")
    def assemble_database_url(self) -> "Settings":
        if not self.database_url:
            self.database_url = URL.create(
                "postgresql+psycopg2",
                username=self.db_user,
                password=self.db_password or None,
                host=self.db_host,
                port=self.db_port,
                database=self.db_name,
            ).render_as_string(hide_password=False)
        return self

    @classmethod
    def from_env(cls) -> "Settings":
        return cls()
