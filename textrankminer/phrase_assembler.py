"""
phrase_assembler.py

Turn top-ranked tokens back into keyphrases.

Given the highest-scoring word occurrences of a document (ordered by
position) together with their compound/amod dependency neighbours, the
assembler makes a single greedy pass:

- a token joins the phrase being built when it directly follows the previous
  token and the two are tied by a dependency (shared neighbour, or the
  previous word points at this one);
- otherwise the current phrase is flushed and a new one starts.

Flushed phrases with at least two words are completed with adjacent
dependency words that were not ranked high enough themselves, then counted
as ``"<phrase>_<language>"``. Finally the top single words are added as
keywords of their own.
"""

from __future__ import annotations

import math
from collections import Counter
from dataclasses import dataclass, field
from typing import (
    Any,
    Callable,
    Dict,
    Hashable,
    Iterable,
    List,
    Mapping,
    Optional,
    Sequence,
    Set,
    Tuple,
    Union,
)

import pandas as pd

from .config import TextRankConfig
from .errors import MalformedInputError
from .graph_ranker import by_score
from .tokens import Token, make_tag_key, parse_tag_key


@dataclass
class KeywordRecord:
    keyword_id: str    # "<value>_<language>", the persisted keyword identity
    value: str         # phrase or word text
    language: str
    count: int         # occurrences of the phrase in the document
    n_words: int
    kind: str          # "phrase" or "word"


@dataclass
class PhraseCandidate:
    """A top-ranked token occurrence and its dependency-linked neighbours."""

    token: Token
    dependencies: Tuple[Token, ...] = field(default_factory=tuple)


class KeywordResultSet(Counter):
    """
    ``"<phrase text>_<language>" → occurrence count``.

    A ``Counter`` so that results from several documents can be summed.
    """

    def add_phrase(self, words: Sequence[str], language: str) -> str:
        key = make_tag_key(" ".join(words), language)
        self[key] += 1
        return key

    def add_keyword(self, key: str) -> bool:
        """Insert a single word with count 1 unless the key is already present."""
        if key in self:
            return False
        self[key] = 1
        return True

    def records(self) -> List[KeywordRecord]:
        """Parsed records, most frequent first (ties in insertion order)."""
        out: List[KeywordRecord] = []
        for key, count in self.most_common():
            value, language = parse_tag_key(key)
            n_words = len(value.split())
            out.append(
                KeywordRecord(
                    keyword_id=key,
                    value=value,
                    language=language,
                    count=count,
                    n_words=n_words,
                    kind="phrase" if n_words > 1 else "word",
                )
            )
        return out

    def to_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame(
            [vars(r) for r in self.records()],
            columns=["keyword_id", "value", "language", "count", "n_words", "kind"],
        )


CandidateLike = Union[PhraseCandidate, Tuple[Token, Sequence[Token]]]


def select_top_tokens(rank_vector: Mapping[Hashable, float], cap: int = 30) -> List[Hashable]:
    """
    Ids of the top ``ceil(N / 3)`` ranked tokens, at most ``cap``.

    Ordered by descending score; ties by token id.
    """
    n_top = min(math.ceil(len(rank_vector) / 3), cap)
    ranked = by_score(rank_vector.items())
    return [token_id for token_id, _ in ranked[:n_top]]


def _occurrence(token: Token) -> Tuple[str, int, int]:
    return token.surface_form, token.start_position, token.end_position


class PhraseAssembler:
    """
    Greedy keyphrase assembly over position-ordered candidates.

    The assembler keeps no state between calls: assembling the same
    candidates twice gives the same result set.
    """

    def __init__(
        self,
        config: Optional[TextRankConfig] = None,
        log_fn: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.config = config or TextRankConfig()
        self.log_fn = log_fn or (lambda _msg: None)

    def _log(self, message: str) -> None:
        self.log_fn(message)

    def assemble(
        self,
        rank_vector: Mapping[Hashable, float],
        candidates: Iterable[CandidateLike],
    ) -> KeywordResultSet:
        """
        Merge candidates into phrases and add the top single words.

        Parameters
        ----------
        rank_vector:
            Scores by token id (used for the single-word fallback).
        candidates:
            ``PhraseCandidate`` objects (or ``(token, dependencies)`` pairs)
            ordered by start position.

        Returns
        -------
        KeywordResultSet
        """
        cfg = self.config
        items = [self._coerce(c) for c in candidates]
        self._check_order(items)

        result = KeywordResultSet()
        keyword_scores: Dict[str, float] = {}

        accumulator: Dict[int, str] = {}
        dependency_map: Dict[str, Tuple[Token, ...]] = {}
        previous_end: Optional[int] = None
        previous_word = ""
        language = ""

        for cand in items:
            token = cand.token
            word = token.surface_form
            if cfg.drops_word(word):
                continue
            keyword_scores.setdefault(token.key, float(rank_vector.get(token.id, 0.0)))

            previous_deps = dependency_map.get(previous_word)
            if (
                previous_end is not None
                and token.start_position - previous_end <= 1
                and previous_deps
                and self._linked(previous_deps, cand.dependencies, word)
            ):
                accumulator[token.start_position] = word
                dependency_map[word] = cand.dependencies
            else:
                self._flush(accumulator, dependency_map, previous_end, language, result)
                accumulator = {token.start_position: word}
                dependency_map = {word: cand.dependencies}

            previous_end = token.end_position
            previous_word = word
            language = token.language

        self._flush(accumulator, dependency_map, previous_end, language, result)
        n_phrases = len(result)

        # Top single words, regardless of phrase membership.
        candidate_count = len({c.token.id for c in items})
        limit = min(cfg.max_single_keywords, candidate_count)
        ranked_words = by_score(keyword_scores.items())
        for key, _score in ranked_words[:limit]:
            result.add_keyword(key)

        self._log(
            f"[PhraseAssembler] {n_phrases} phrase(s) and "
            f"{len(result) - n_phrases} single keyword(s) from {len(items)} candidates."
        )
        return result

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    @staticmethod
    def _linked(
        previous_deps: Sequence[Token],
        current_deps: Sequence[Token],
        word: str,
    ) -> bool:
        shared = {_occurrence(t) for t in previous_deps} & {_occurrence(t) for t in current_deps}
        return bool(shared) or any(t.surface_form == word for t in previous_deps)

    @staticmethod
    def _flush(
        accumulator: Dict[int, str],
        dependency_map: Mapping[str, Sequence[Token]],
        previous_end: Optional[int],
        language: str,
        result: KeywordResultSet,
    ) -> None:
        if len(accumulator) < 2:
            return

        # Backfill dependency words sitting right next to the phrase.
        starts = list(accumulator)
        present: Set[str] = set(accumulator.values())
        for deps in dependency_map.values():
            for dep in deps:
                if dep.start_position in accumulator or dep.surface_form in present:
                    continue
                touches_member = any(start - dep.end_position == 1 for start in starts)
                touches_end = previous_end is not None and dep.start_position - previous_end == 1
                if touches_member or touches_end:
                    accumulator[dep.start_position] = dep.surface_form
                    present.add(dep.surface_form)

        words = [accumulator[pos] for pos in sorted(accumulator)]
        result.add_phrase(words, language)

    @staticmethod
    def _coerce(candidate: Any) -> PhraseCandidate:
        if isinstance(candidate, PhraseCandidate):
            return candidate
        try:
            token, deps = candidate
        except (TypeError, ValueError) as exc:
            raise MalformedInputError(
                f"Expected PhraseCandidate or (token, dependencies), got {candidate!r}."
            ) from exc
        if not isinstance(token, Token):
            raise MalformedInputError(f"Candidate token must be a Token, got {token!r}.")
        return PhraseCandidate(token=token, dependencies=tuple(deps or ()))

    @staticmethod
    def _check_order(items: List[PhraseCandidate]) -> None:
        for prev, cur in zip(items, items[1:]):
            if cur.token.start_position < prev.token.start_position:
                raise MalformedInputError(
                    "Phrase candidates must be ordered by start position: "
                    f"{cur.token.surface_form!r}@{cur.token.start_position} follows "
                    f"{prev.token.surface_form!r}@{prev.token.start_position}."
                )
