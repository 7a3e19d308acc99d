"""Apply pattern rules to the application's source files."""

import logging
from collections.abc import Mapping, Sequence
from pathlib import Path

from blog_audit.models.artifact import Artifact
from blog_audit.models.result import TestOutcome
from blog_audit.rules import Rule

log = logging.getLogger(__name__)

DEFAULT_ARTIFACTS: Mapping[str, str] = {
    "index": "index.php",
    "validation": "validation.php",
}


def load_artifact(name: str, path: Path) -> Artifact:
    """Read a source file.

    Raises:
        FileNotFoundError: If the file does not exist

    """
    if not path.is_file():
        raise FileNotFoundError(f"Source file not found: {path}")
    return Artifact(name=name, path=path, source_text=path.read_text(encoding="utf-8"))


class ArtifactSource:
    """Reads each named artifact at most once per run."""

    def __init__(self, paths: Mapping[str, Path]) -> None:
        self._paths = dict(paths)
        self._loaded: dict[str, Artifact] = {}

    @classmethod
    def from_app_dir(cls, app_dir: Path) -> "ArtifactSource":
        """Point at the default artifacts inside an application directory."""
        return cls(
            {name: app_dir / filename for name, filename in DEFAULT_ARTIFACTS.items()}
        )

    def filename(self, name: str) -> str:
        """File name of a named artifact, or the bare name if it is unknown."""
        return self._paths[name].name if name in self._paths else name

    def get(self, name: str) -> Artifact:
        """Load a named artifact, reusing the first successful read."""
        if name not in self._paths:
            raise KeyError(f"No artifact named '{name}'")
        if name not in self._loaded:
            log.info("Reading %s from %s", name, self._paths[name])
            self._loaded[name] = load_artifact(name, self._paths[name])
        return self._loaded[name]


def check_artifact(artifact: Artifact, rules: Sequence[Rule]) -> list[TestOutcome]:
    """Run every rule that applies to the artifact, in order.

    This is the entry point for checking a single file from library code. The
    quality CLI runs each rule as its own reported test instead, so that a
    missing file shows up as an error on every rule that needed it.
    """
    return [rule.check(artifact) for rule in rules if rule.applies_to == artifact.name]
