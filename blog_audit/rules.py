"""Pattern rules for known defects in the blog application's sources.

These are regex heuristics over raw text, not a parser. Each rule targets one
defect shape and may miss or misreport structures it was not written for,
e.g. deeply nested markup or PHP strings that contain stray quotes.
"""

import logging
import re
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass
from importlib.metadata import entry_points
from typing import Literal

from blog_audit.models.artifact import Artifact
from blog_audit.models.result import TestOutcome

log = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "blog_audit.rules"

Severity = Literal["error", "warning"]


class RuleNotFoundError(Exception):
    """Raised when a rule id is not registered."""


@dataclass(frozen=True, kw_only=True)
class Rule:
    """A named predicate over the text of one artifact."""

    id: str
    title: str
    applies_to: str
    matcher: Callable[[str], TestOutcome]
    severity: Severity = "error"

    def check(self, artifact: Artifact) -> TestOutcome:
        """Apply the rule to an artifact's text."""
        return self.matcher(artifact.source_text)


VOID_ELEMENTS = frozenset(
    "area base br col embed hr img input link meta source track wbr".split()
)
NON_NESTING_TAGS = ("a", "b", "cite", "em", "i", "small", "strong")

_HEADING = re.compile(r"<(h[1-6])\b[^>]*>(.*?)</\1\s*>", re.IGNORECASE | re.DOTALL)
_OPEN_TAG = re.compile(r"<([a-z][a-z0-9]*)\b[^>]*?(/?)>", re.IGNORECASE)
_DUPLICATE_OPEN = re.compile(
    r"<(" + "|".join(NON_NESTING_TAGS) + r"|h[1-6])\b[^>]*>"
    r"(?:(?!</\1\s*>).)*?"
    r"<\1\b[^>]*>",
    re.IGNORECASE | re.DOTALL,
)
_PHP_BLOCK = re.compile(r"<\?(?:php\b|=)(.*?)(?:\?>|\Z)", re.IGNORECASE | re.DOTALL)
_UNESCAPED_ECHO = re.compile(r"<\?(?:=|php\s+echo\b)\s*\$(\w+)\s*\[")
_STRING_LITERAL = re.compile(r'"(?:[^"\\]|\\.)*"|\'(?:[^\'\\]|\\.)*\'', re.DOTALL)
_SQL_KEYWORD = re.compile(r"\b(SELECT|INSERT|UPDATE|DELETE)\b")
_INTERPOLATED_VAR = re.compile(r"(?<!\\)\$([A-Za-z_]\w*)")
_CONCATENATED_VAR = re.compile(r"\s*\.\s*\$([A-Za-z_]\w*)")
_SELECT_STAR = re.compile(r"\bSELECT\s+\*\s+FROM\b", re.IGNORECASE)
_ISSET_EMPTY_BRANCH = re.compile(
    r"else\s*if\s*\(\s*!\s*"
    r"isset\(\s*\$_(?:POST|GET|REQUEST)\[\s*([\"'])(\w+)\1\s*\]\s*\)"
    r"\s*\|\|\s*"
    r"empty\(\s*\$_(?:POST|GET|REQUEST)\[\s*([\"'])(\w+)\3\s*\]\s*\)\s*\)"
)


def php_blocks(text: str) -> Iterator[str]:
    """Yield the code of each ``<?php ... ?>`` or ``<?= ... ?>`` block.

    A block left open at the end of the file runs to the end, as in PHP.
    """
    for block in _PHP_BLOCK.finditer(text):
        yield block.group(1)


def check_html_nesting(text: str) -> TestOutcome:
    """Fail when a heading closes while a tag opened inside it is still open."""
    for heading in _HEADING.finditer(text):
        heading_tag = heading.group(1).lower()
        inner = heading.group(2)
        for tag in _OPEN_TAG.finditer(inner):
            name = tag.group(1).lower()
            if tag.group(2) or name in VOID_ELEMENTS or name == heading_tag:
                continue
            opened = len(re.findall(rf"<{name}\b", inner, re.IGNORECASE))
            closed = len(re.findall(rf"</{name}\s*>", inner, re.IGNORECASE))
            if opened > closed:
                return TestOutcome.failed(
                    f"Found invalid nesting: <{heading_tag}> closed before <{name}>"
                )
    return TestOutcome.passed()


def check_unclosed_tags(text: str) -> TestOutcome:
    """Fail when a tag is opened again where its closing tag was expected."""
    if match := _DUPLICATE_OPEN.search(text):
        name = match.group(1).lower()
        return TestOutcome.failed(
            f"Found invalid closing tag: <{name}> used instead of </{name}>"
        )
    return TestOutcome.passed()


def check_unescaped_output(text: str) -> TestOutcome:
    """Fail when a short echo prints array data without escaping it.

    Output wrapped in htmlspecialchars() or htmlentities() does not start with
    a variable, so it never matches.
    """
    if match := _UNESCAPED_ECHO.search(text):
        return TestOutcome.failed(
            "Found potential XSS vulnerability: "
            f"Outputting ${match.group(1)} data without htmlspecialchars()"
        )
    return TestOutcome.passed()


def check_sql_interpolation(text: str) -> TestOutcome:
    """Fail when a SQL string literal embeds or is concatenated with a variable.

    Only double-quoted literals interpolate in PHP, so single-quoted ones are
    flagged only for concatenation. Literals are only looked for inside PHP
    blocks; apostrophes in the page text would otherwise pair up across them.
    """
    for code in php_blocks(text):
        for literal in _STRING_LITERAL.finditer(code):
            if (keyword := _SQL_KEYWORD.search(literal.group())) is None:
                continue
            variable = None
            if literal.group().startswith('"'):
                if interpolated := _INTERPOLATED_VAR.search(literal.group()):
                    variable = interpolated.group(1)
            if variable is None:
                if concatenated := _CONCATENATED_VAR.match(code, literal.end()):
                    variable = concatenated.group(1)
            if variable is not None:
                return TestOutcome.failed(
                    "Found potential SQL injection: "
                    f"${variable} inserted into {keyword.group(1)} query string"
                )
    return TestOutcome.passed()


def check_select_star(text: str) -> TestOutcome:
    """Fail on wildcard column selection."""
    if _SELECT_STAR.search(text):
        return TestOutcome.failed(
            "Found anti-pattern: SELECT * FROM (list the columns explicitly)"
        )
    return TestOutcome.passed()


def check_validation_logic(text: str) -> TestOutcome:
    """Fail when a fallback branch tests isset() and empty() on different fields.

    This is the copy-paste bug where the author check still reads
    ``!isset($_POST["title"])``.
    """
    for match in _ISSET_EMPTY_BRANCH.finditer(text):
        checked, expected = match.group(2), match.group(4)
        if checked != expected:
            return TestOutcome.failed(
                f"Found logic error: checking '{checked}' instead of "
                f"'{expected}' in elseif block"
            )
    return TestOutcome.passed()


BUILTIN_RULES: Sequence[Rule] = (
    Rule(
        id="validation-logic",
        title="Logic (Field Check)",
        applies_to="validation",
        matcher=check_validation_logic,
    ),
    Rule(
        id="html-nesting",
        title="HTML Syntax (Nesting)",
        applies_to="index",
        matcher=check_html_nesting,
    ),
    Rule(
        id="html-unclosed-tag",
        title="HTML Syntax (Tags)",
        applies_to="index",
        matcher=check_unclosed_tags,
    ),
    Rule(
        id="xss-unescaped-output",
        title="Security (XSS)",
        applies_to="index",
        matcher=check_unescaped_output,
    ),
    Rule(
        id="sql-interpolation",
        title="Security (SQL Injection)",
        applies_to="index",
        matcher=check_sql_interpolation,
    ),
    Rule(
        id="select-star",
        title="Performance (SELECT *)",
        applies_to="index",
        matcher=check_select_star,
        severity="warning",
    ),
)


def get_rule(rule_id: str) -> Rule:
    """Look up a built-in rule by id.

    Raises:
        RuleNotFoundError: If no rule with the given id exists

    """
    for rule in BUILTIN_RULES:
        if rule.id == rule_id:
            return rule

    available = [rule.id for rule in BUILTIN_RULES]
    raise RuleNotFoundError(
        f"Rule '{rule_id}' not found. Available rules: {available}"
    )


def load_rules() -> Sequence[Rule]:
    """Return the built-in rules plus rules published by installed plugins."""
    rules = list(BUILTIN_RULES)
    for entry in entry_points(group=ENTRY_POINT_GROUP):
        rule = entry.load()
        if not isinstance(rule, Rule):
            raise TypeError(f"Entry point '{entry.name}' does not provide a Rule")
        log.info("Loaded plugin rule %s from %s", rule.id, entry.value)
        rules.append(rule)
    return rules
