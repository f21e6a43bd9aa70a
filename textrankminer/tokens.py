"""
tokens.py

Token records and the per-invocation token arena.

A :class:`Token` is one occurrence of a word in a tagged document. Its
``id`` is the identity of the *word form* (every occurrence of "fox" in a
document shares one id), while ``start_position`` / ``end_position`` locate
this particular occurrence.

The :class:`TokenArena` interns tokens by id into a contiguous table, so the
co-occurrence graph and the rank vector can be indexed by small integers
instead of arbitrary identities.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Hashable, Iterator, List, Optional, Tuple

from .config import UNKNOWN_POS
from .errors import MalformedInputError


LANGUAGE_DELIMITER = "_"

# Dependency relations that make two tokens eligible for a phrase merge.
MERGE_RELATIONS: FrozenSet[str] = frozenset({"compound", "amod"})


def make_tag_key(value: str, language: str) -> str:
    """Composite keyword identifier, e.g. ``("fox", "en") -> "fox_en"``."""
    return f"{value}{LANGUAGE_DELIMITER}{language}"


def parse_tag_key(key: str) -> Tuple[str, str]:
    """
    Split a composite ``"<value>_<language>"`` key.

    Raises
    ------
    MalformedInputError
        If the key has no delimiter or more than one.
    """
    parts = key.split(LANGUAGE_DELIMITER)
    if len(parts) != 2 or not parts[0] or not parts[1]:
        raise MalformedInputError(
            f"Tag key {key!r} must look like '<value>{LANGUAGE_DELIMITER}<language>' "
            f"with exactly one '{LANGUAGE_DELIMITER}' delimiter."
        )
    return parts[0], parts[1]


@dataclass(frozen=True)
class Token:
    """
    One tagged word occurrence.

    Attributes
    ----------
    id:
        Stable identity of the word form (shared by all its occurrences).
    surface_form:
        Word text used in keywords and phrases.
    start_position, end_position:
        Span of this occurrence in the source (characters or token indices).
    language:
        Language tag, appended to keyword ids (``"machine learning_en"``).
    parts_of_speech:
        Fine-grained POS tags. An empty set means "untagged".
    sentence_index:
        Sentence the occurrence belongs to; required only when sentence
        boundaries are respected.
    """

    id: Hashable
    surface_form: str
    start_position: int
    end_position: int
    language: str = "en"
    parts_of_speech: FrozenSet[str] = field(default_factory=frozenset)
    sentence_index: Optional[int] = None

    def __post_init__(self) -> None:
        if not isinstance(self.surface_form, str) or not self.surface_form:
            raise MalformedInputError(
                f"Token {self.id!r} needs a non-empty string surface form, got {self.surface_form!r}."
            )
        if LANGUAGE_DELIMITER in self.surface_form:
            raise MalformedInputError(
                f"Token surface form {self.surface_form!r} must not contain "
                f"'{LANGUAGE_DELIMITER}' (it separates value and language in keyword ids)."
            )
        pos = self.parts_of_speech
        if pos is None:
            pos = frozenset()
        if isinstance(pos, str):
            raise MalformedInputError(
                f"Token {self.surface_form!r}: parts_of_speech must be a set of tags, "
                f"not the bare string {pos!r}."
            )
        try:
            pos = frozenset(pos)
        except TypeError as exc:
            raise MalformedInputError(
                f"Token {self.surface_form!r}: parts_of_speech is not iterable ({pos!r})."
            ) from exc
        if any(not isinstance(tag, str) for tag in pos):
            raise MalformedInputError(
                f"Token {self.surface_form!r}: every POS tag must be a string, got {sorted(map(repr, pos))}."
            )
        object.__setattr__(self, "parts_of_speech", pos)

        if self.start_position < 0 or self.end_position < self.start_position:
            raise MalformedInputError(
                f"Invalid span for token {self.surface_form!r}: "
                f"{self.start_position}-{self.end_position}"
            )
        if not self.language or LANGUAGE_DELIMITER in self.language:
            raise MalformedInputError(
                f"Token {self.surface_form!r}: language tag {self.language!r} must be "
                f"non-empty and must not contain '{LANGUAGE_DELIMITER}'."
            )

    @property
    def pos_tags(self) -> FrozenSet[str]:
        """Effective POS tags; untagged tokens count as ``Unknown``."""
        return self.parts_of_speech or frozenset({UNKNOWN_POS})

    @property
    def key(self) -> str:
        """Composite keyword id ``"<surface>_<language>"``."""
        return make_tag_key(self.surface_form, self.language)

    @property
    def span(self) -> Tuple[int, int]:
        return self.start_position, self.end_position


@dataclass(frozen=True)
class DependencyLink:
    """
    Modifier/compound relation between two token occurrences.

    Only used to decide whether neighbouring tokens may be merged into one
    phrase; the direction (governor vs dependent) is not significant there.
    """

    governor: Token
    dependent: Token
    relation: str = "compound"

    def other(self, token: Token) -> Optional[Token]:
        """The token at the other end of this link, or None if ``token`` is not an end."""
        if _same_occurrence(token, self.governor):
            return self.dependent
        if _same_occurrence(token, self.dependent):
            return self.governor
        return None


def _same_occurrence(a: Token, b: Token) -> bool:
    return a.id == b.id and a.span == b.span


class TokenArena:
    """
    Contiguous table of Token records plus an id → index lookup.

    The first record interned for an id is its representative; later
    occurrences of the same id map to the same index. The arena belongs to
    a single ranking invocation, so its id → surface-form lookup never
    leaks between documents.
    """

    def __init__(self) -> None:
        self._records: List[Token] = []
        self._index: Dict[Hashable, int] = {}

    def intern(self, token: Token) -> int:
        idx = self._index.get(token.id)
        if idx is None:
            idx = len(self._records)
            self._records.append(token)
            self._index[token.id] = idx
        return idx

    def index_of(self, token_id: Hashable) -> int:
        try:
            return self._index[token_id]
        except KeyError:
            raise KeyError(f"Token id {token_id!r} is not part of this graph.") from None

    def get_index(self, token_id: Hashable) -> Optional[int]:
        return self._index.get(token_id)

    def token_at(self, index: int) -> Token:
        return self._records[index]

    def id_at(self, index: int) -> Hashable:
        return self._records[index].id

    def label(self, token_id: Hashable) -> str:
        """Surface form registered for ``token_id`` (debug lookup)."""
        return self._records[self.index_of(token_id)].surface_form

    def ids(self) -> List[Hashable]:
        return [t.id for t in self._records]

    def __contains__(self, token_id: object) -> bool:
        return token_id in self._index

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[Token]:
        return iter(self._records)
