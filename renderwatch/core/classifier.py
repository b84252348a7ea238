"""Line classifier — ordered, data-driven rules over raw render output.

Each rule names a tag and three phrase sets (regular expressions matched
case-insensitively against the whole line):

- ``anchors``  every pattern must match
- ``include``  at least one pattern must match
- ``exclude``  no pattern may match

Rules are evaluated in order and the first match wins, so precedence is
part of the data: progress > completion > error, with ``neutral`` as the
fallback when nothing matches.  Classification is pure and never raises;
bad patterns are rejected when the RuleSet is built.
"""

from __future__ import annotations

import json
import re
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from renderwatch.models.lines import Classification


@lru_cache(maxsize=512)
def _compile(pattern: str) -> re.Pattern[str]:
    return re.compile(pattern, re.IGNORECASE)


class ClassificationRule(BaseModel):
    """A named inclusion/exclusion rule producing one Classification tag."""

    model_config = ConfigDict(frozen=True)

    name: str
    tag: Classification
    anchors: tuple[str, ...] = ()
    include: tuple[str, ...] = Field(min_length=1)
    exclude: tuple[str, ...] = ()

    @field_validator("anchors", "include", "exclude")
    @classmethod
    def _patterns_compile(cls, patterns: tuple[str, ...]) -> tuple[str, ...]:
        for pattern in patterns:
            try:
                _compile(pattern)
            except re.error as exc:
                raise ValueError(f"Invalid pattern {pattern!r}: {exc}") from exc
        return patterns

    def matches(self, line: str) -> bool:
        """Return True if *line* satisfies anchors, include, and exclude."""
        if not all(_compile(p).search(line) for p in self.anchors):
            return False
        if not any(_compile(p).search(line) for p in self.include):
            return False
        return not any(_compile(p).search(line) for p in self.exclude)


class RuleSet(BaseModel):
    """Ordered rule list; the first matching rule decides the tag."""

    model_config = ConfigDict(frozen=True)

    rules: tuple[ClassificationRule, ...]

    @model_validator(mode="after")
    def _unique_names(self) -> RuleSet:
        names = [rule.name for rule in self.rules]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate rule names: {duplicates}")
        return self

    def rule(self, name: str) -> ClassificationRule:
        """Look up a rule by name."""
        for rule in self.rules:
            if rule.name == name:
                return rule
        raise KeyError(name)

    @classmethod
    def from_json_file(cls, path: Path) -> RuleSet:
        """Load a RuleSet from a JSON file (``{"rules": [...]}``)."""
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        return cls.model_validate(data)


# ---------------------------------------------------------------------------
# Default rules
# ---------------------------------------------------------------------------

PROGRESS_RULE = ClassificationRule(
    name="animation_progress",
    tag=Classification.PROGRESS,
    anchors=(r"animation",),
    include=(r"%\|", r"it/s"),
)

COMPLETION_RULE = ClassificationRule(
    name="video_ready",
    tag=Classification.COMPLETION,
    include=(
        r"video generation completed successfully",
        r"video generation completed",
        r"video saved successfully",
        r"video created successfully",
        r"render complete",
        r"video saved to",
        r"ffmpeg encoding completed",
        r"video file created",
        r"video output saved",
    ),
    # Authoring-stage messages that reuse the same wording.
    exclude=(
        r"code generation (?:completed|finished|complete)",
        r"(?<!video )generation complete",
    ),
)

ERROR_RULE = ClassificationRule(
    name="render_failure",
    tag=Classification.ERROR,
    include=(
        r"error:",
        r"\bfailed\b",
        r"\btraceback\b",
        r"exception:",
        r"syntax error",
        r"module not found",
        r"command not found",
        r"process exited with code (?!0\b)-?\d+",
    ),
    # Success reports that happen to contain error vocabulary.
    exclude=(
        r"completed successfully",
        r"generation completed",
        r"video generation",
        r"\bcode 0\b",
    ),
)

DEFAULT_RULES = RuleSet(rules=(PROGRESS_RULE, COMPLETION_RULE, ERROR_RULE))


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def match_rule(line: str, rules: RuleSet | None = None) -> ClassificationRule | None:
    """Return the first rule matching *line*, or None."""
    text = line or ""
    for rule in (rules or DEFAULT_RULES).rules:
        if rule.matches(text):
            return rule
    return None


def classify(line: str, rules: RuleSet | None = None) -> Classification:
    """Classify one raw line of render output.

    Stateless and case-insensitive; evaluated independently of any prior
    line.  Returns ``Classification.NEUTRAL`` when no rule matches.
    """
    rule = match_rule(line, rules)
    return rule.tag if rule else Classification.NEUTRAL


def explain(line: str, rules: RuleSet | None = None) -> str | None:
    """Name of the rule that decided *line*'s classification, if any."""
    rule = match_rule(line, rules)
    return rule.name if rule else None
