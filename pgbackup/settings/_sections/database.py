"""Database connection models."""

from pydantic import BaseModel, Field


class DatabaseSettings(BaseModel):
    host: str = "127.0.0.1"
    port: int = Field(default=5432, ge=1, le=65535)
    user: str = ""
    password: str = Field(default="", repr=False)
    name: str = "euem_db"
    # Run pg_dump/psql via `docker exec` in this container when set
    container: str = ""
