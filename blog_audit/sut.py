"""Load the application module that provides ``get_articles``."""

import contextlib
import importlib
import importlib.util
import io
import logging
import sys
from collections.abc import Callable, Mapping, Sequence
from pathlib import Path
from typing import Any

from sqlalchemy import Connection

log = logging.getLogger(__name__)

SUT_FUNCTION = "get_articles"

GetArticles = Callable[[Connection], Sequence[Mapping[str, Any]]]


class SystemUnderTestError(Exception):
    """Raised when the application module cannot be loaded."""


def load_system_under_test(target: str | Path) -> GetArticles:
    """Import the application and return its ``get_articles`` function.

    Anything the module prints while importing (a rendered page, for example)
    is captured and discarded so it does not pollute the report.

    Args:
        target: Path to a ``.py`` file, or a dotted module name

    Raises:
        SystemUnderTestError: If the module is missing, fails to import, or
            does not define ``get_articles``

    """
    startup_output = io.StringIO()
    with contextlib.redirect_stdout(startup_output):
        module = _import(target)

    if discarded := startup_output.getvalue():
        log.info(
            "Discarded %d characters of startup output from %s", len(discarded), target
        )

    function = getattr(module, SUT_FUNCTION, None)
    if not callable(function):
        raise SystemUnderTestError(f"{target} does not define {SUT_FUNCTION}()")
    return function


def _import(target: str | Path) -> Any:
    path = Path(target)
    is_file = isinstance(target, Path) or str(target).endswith(".py")

    try:
        if not is_file:
            return importlib.import_module(str(target))

        if not path.is_file():
            raise SystemUnderTestError(f"System under test not found: {path}")

        module_name = f"_blog_audit_sut_{path.stem}"
        spec = importlib.util.spec_from_file_location(module_name, path)
        if spec is None or spec.loader is None:
            raise SystemUnderTestError(f"Cannot import {path}")
        module = importlib.util.module_from_spec(spec)
        sys.modules[module_name] = module
        spec.loader.exec_module(module)
        return module
    except SystemUnderTestError:
        raise
    except Exception as e:
        raise SystemUnderTestError(f"Failed to import {target}: {e}") from e
