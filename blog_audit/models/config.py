"""Database connection configuration."""

from collections.abc import Mapping
from typing import Any

from pydantic import Field, SecretStr
from sqlalchemy.engine import URL, make_url

from blog_audit.models.base import Model


class ConnectionConfig(Model):
    """Connection settings for the application database."""

    dsn: str = Field(..., description="SQLAlchemy database URL")
    user: str | None = Field(default=None, description="Database user name")
    password: SecretStr | None = Field(default=None, description="Database password")
    options: Mapping[str, Any] = Field(
        default_factory=dict,
        description="Keyword arguments passed to the DBAPI connect() call",
    )

    def url(self) -> URL:
        """Build the SQLAlchemy URL, filling in user and password if set."""
        url = make_url(self.dsn)
        if self.user is not None:
            url = url.set(username=self.user)
        if self.password is not None:
            url = url.set(password=self.password.get_secret_value())
        return url
