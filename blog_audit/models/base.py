"""Base model for configuration read from disk."""

from pydantic import BaseModel, ConfigDict


class Model(BaseModel):
    """Frozen model that rejects keys it does not declare.

    A misspelled key in a config file is reported instead of silently
    falling back to the default.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")
