"""
config.py

Typed, validated configuration for the TextRank keyword pipeline.

Every option the pipeline recognises lives on :class:`TextRankConfig`.
Values are validated once, when the config is built, so the graph builder,
ranker and phrase assembler never see an out-of-range setting.

Options can be passed with Python names (``remove_stop_words``) or with the
camelCase names used by procedure-style callers (``removeStopWords``,
``cooccurrenceWindow``, ``useTfIdfWeights``, ``admittedPOS``...).

Quick usage
-----------
    from textrankminer.config import TextRankConfig

    config = TextRankConfig(removeStopWords=True, cooccurrence_window=3)
    looser = config.with_options(damping=0.9)
"""

from __future__ import annotations

from typing import Any, Dict, FrozenSet, Mapping

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from .errors import InvalidConfigurationError


# Adjectives that rarely make good keywords on their own.
DEFAULT_STOP_WORDS: FrozenSet[str] = frozenset(
    {"new", "old", "large", "big", "small", "many", "few", "best", "worst"}
)

# Nouns and adjectives; "Unknown" keeps tokens that came without a POS tag.
DEFAULT_ADMITTED_POS: FrozenSet[str] = frozenset(
    {"NN", "NNS", "NNP", "NNPS", "JJ", "JJR", "JJS", "Unknown"}
)

UNKNOWN_POS = "Unknown"

_EXPLICIT_ALIASES: Dict[str, str] = {
    "admitted_pos": "admittedPOS",
    "use_tfidf_weights": "useTfIdfWeights",
}


def _alias(field_name: str) -> str:
    return _EXPLICIT_ALIASES.get(field_name, to_camel(field_name))


class TextRankConfig(BaseModel):
    """
    Configuration for graph construction, ranking and phrase assembly.

    Attributes
    ----------
    remove_stop_words:
        Drop candidates whose surface form is in ``stop_words`` from both
        phrase assembly and the single-keyword fallback.
    stop_words:
        Stop-word list. Accepts any iterable of strings or a single
        comma-separated string; entries are trimmed and lower-cased.
        Supplying a list turns ``remove_stop_words`` on unless that flag
        is passed explicitly.
    direction_matters:
        If False (default) every co-occurrence edge is mirrored.
    respect_sentences:
        If True, co-occurrences never cross a sentence boundary.
    use_tfidf_weights:
        Seed the ranking with externally supplied prior weights.
    cooccurrence_window:
        Skip-window tolerance for non-admitted tokens between two
        admitted ones.
    iterations, damping, threshold:
        Power-iteration cap, damping factor and early-exit threshold.
    admitted_pos:
        POS tags allowed to become graph nodes.
    min_token_length:
        Tokens with fewer characters are left out of the graph.
    max_top_tokens:
        Cap on the number of top-ranked tokens handed to phrase assembly.
    max_single_keywords:
        Cap on the number of single-word keywords added to the result.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        populate_by_name=True,
        alias_generator=_alias,
    )

    remove_stop_words: bool = False
    stop_words: FrozenSet[str] = Field(default=DEFAULT_STOP_WORDS)
    direction_matters: bool = False
    respect_sentences: bool = False
    use_tfidf_weights: bool = False
    cooccurrence_window: int = Field(default=2, ge=1)
    iterations: int = Field(default=30, ge=1)
    damping: float = Field(default=0.85, ge=0.0, le=1.0)
    threshold: float = Field(default=0.0001, ge=0.0)
    admitted_pos: FrozenSet[str] = Field(default=DEFAULT_ADMITTED_POS)
    min_token_length: int = Field(default=3, ge=1)
    max_top_tokens: int = Field(default=30, ge=1)
    max_single_keywords: int = Field(default=10, ge=0)

    def __init__(self, **data: Any) -> None:
        try:
            super().__init__(**data)
        except ValidationError as exc:
            raise InvalidConfigurationError(_describe_validation_error(exc)) from exc

    @model_validator(mode="before")
    @classmethod
    def _stop_words_enable_removal(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        options = cls.normalize_option_names(data)
        if options.get("stop_words") is not None and "remove_stop_words" not in options:
            data = {**data, "remove_stop_words": True}
        return data

    @field_validator("stop_words", mode="before")
    @classmethod
    def _parse_stop_words(cls, value: Any) -> Any:
        if value is None:
            return DEFAULT_STOP_WORDS
        if isinstance(value, str):
            value = value.split(",")
        try:
            items = list(value)
        except TypeError:
            return value  # let pydantic report the type error
        return frozenset(
            str(item).strip().lower() for item in items if str(item).strip()
        )

    @field_validator("admitted_pos", mode="before")
    @classmethod
    def _parse_admitted_pos(cls, value: Any) -> Any:
        if isinstance(value, str):
            return frozenset(p.strip() for p in value.split(",") if p.strip())
        return value

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    @classmethod
    def normalize_option_names(cls, options: Mapping[str, Any]) -> Dict[str, Any]:
        """Map camelCase option names onto field names (unknown keys pass through)."""
        by_alias = {_alias(name): name for name in cls.model_fields}
        return {by_alias.get(key, key): value for key, value in options.items()}

    def with_options(self, **overrides: Any) -> "TextRankConfig":
        """
        Return a validated copy with ``overrides`` applied.

        New stop words switch removal on, as in the constructor.
        """
        changes = self.normalize_option_names(overrides)
        if changes.get("stop_words") is not None:
            changes.setdefault("remove_stop_words", True)
        data = self.model_dump()
        data.update(changes)
        return type(self)(**data)

    def is_admitted(self, pos_tags: FrozenSet[str]) -> bool:
        """True if any tag in ``pos_tags`` is an admitted part of speech."""
        return not self.admitted_pos.isdisjoint(pos_tags)

    def drops_word(self, word: str) -> bool:
        """True if stop-word removal is on and ``word`` is a stop word."""
        return self.remove_stop_words and word in self.stop_words

    def as_dict(self) -> Dict[str, Any]:
        """Plain dictionary of run-time parameters, for audit trails."""
        data = self.model_dump()
        data["stop_words"] = sorted(self.stop_words)
        data["admitted_pos"] = sorted(self.admitted_pos)
        return data


def _describe_validation_error(exc: ValidationError) -> str:
    problems = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ())) or "config"
        problems.append(f"{location}: {err.get('msg', 'invalid value')}")
    return "Invalid TextRank configuration – " + "; ".join(problems)
