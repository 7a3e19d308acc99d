"""Models for source files checked by the static rules."""

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, kw_only=True)
class Artifact:
    """Text content of a named source file."""

    name: str
    path: Path
    source_text: str
