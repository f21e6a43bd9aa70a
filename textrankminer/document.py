"""
document.py

In-memory tagged document: the token source and dependency source the
keyword pipeline reads from.

Anything that can hand out ordered tokens and dependency neighbours can
stand in for :class:`TaggedDocument` (see :class:`TokenSource` and
:class:`DependencySource`); a graph database adapter, for instance.
"""

from __future__ import annotations

from typing import (
    AbstractSet,
    Any,
    Dict,
    Hashable,
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    Protocol,
    Sequence,
    Tuple,
)

from .errors import MalformedInputError
from .tokens import MERGE_RELATIONS, DependencyLink, Token, parse_tag_key


class TokenSource(Protocol):
    def ordered_tokens(self, respect_sentences: bool = False) -> Sequence[Token]:
        ...

    def occurrences(self, token_ids: Iterable[Hashable]) -> List[Token]:
        ...


class DependencySource(Protocol):
    def dependency_neighbors(
        self, token: Token, admitted_pos: AbstractSet[str]
    ) -> List[Token]:
        ...


_OccurrenceKey = Tuple[Hashable, int, int]


def _occurrence_key(token: Token) -> _OccurrenceKey:
    return token.id, token.start_position, token.end_position


class TaggedDocument:
    """
    Tokens of one document plus the dependency links between them.

    Parameters
    ----------
    tokens:
        Token occurrences in any order; :meth:`ordered_tokens` sorts them.
    dependencies:
        Dependency links between occurrences of ``tokens``.
    document_id:
        Identifier handed to the keyword sink.
    """

    def __init__(
        self,
        tokens: Iterable[Token],
        dependencies: Iterable[DependencyLink] = (),
        document_id: Optional[Hashable] = None,
    ) -> None:
        self.tokens: List[Token] = list(tokens)
        self.dependencies: List[DependencyLink] = list(dependencies)
        self.document_id = document_id

        known = {_occurrence_key(t) for t in self.tokens}
        self._links_by_occurrence: Dict[_OccurrenceKey, List[DependencyLink]] = {}
        for link in self.dependencies:
            for end in (link.governor, link.dependent):
                key = _occurrence_key(end)
                if key not in known:
                    raise MalformedInputError(
                        f"Dependency link {link.relation!r} refers to token "
                        f"{end.surface_form!r} at {end.start_position}-{end.end_position}, "
                        "which is not part of the document."
                    )
                self._links_by_occurrence.setdefault(key, []).append(link)

    # ------------------------------------------------------------------
    # Token source
    # ------------------------------------------------------------------
    def ordered_tokens(self, respect_sentences: bool = False) -> List[Token]:
        """
        Tokens ordered by start position, or by (sentence, start position)
        when sentence boundaries are respected.
        """
        if not respect_sentences:
            return sorted(self.tokens, key=lambda t: t.start_position)

        missing = [t.surface_form for t in self.tokens if t.sentence_index is None]
        if missing:
            raise MalformedInputError(
                "Sentence-respecting mode needs a sentence_index on every token; "
                f"missing for {missing[:5]}."
            )
        return sorted(self.tokens, key=lambda t: (t.sentence_index, t.start_position))

    def occurrences(self, token_ids: Iterable[Hashable]) -> List[Token]:
        """All occurrences of the given word ids, ordered by start position."""
        wanted = set(token_ids)
        return sorted(
            (t for t in self.tokens if t.id in wanted),
            key=lambda t: t.start_position,
        )

    # ------------------------------------------------------------------
    # Dependency source
    # ------------------------------------------------------------------
    def dependency_neighbors(
        self, token: Token, admitted_pos: AbstractSet[str]
    ) -> List[Token]:
        """
        Tokens linked to ``token`` by a compound/amod relation (either
        direction) whose POS is admitted or absent.
        """
        neighbors: List[Token] = []
        for link in self._links_by_occurrence.get(_occurrence_key(token), ()):
            if link.relation.lower() not in MERGE_RELATIONS:
                continue
            other = link.other(token)
            if other is None:
                continue
            if other.parts_of_speech and admitted_pos.isdisjoint(other.parts_of_speech):
                continue
            neighbors.append(other)
        return neighbors

    # ------------------------------------------------------------------
    # Construction from plain records
    # ------------------------------------------------------------------
    @classmethod
    def from_records(
        cls,
        records: Sequence[Mapping[str, Any]],
        dependencies: Iterable[Tuple[int, int, str]] = (),
        document_id: Optional[Hashable] = None,
    ) -> "TaggedDocument":
        """
        Build a document from store-style records.

        Each record needs ``tag`` (composite ``"<value>_<language>"`` key),
        ``start`` and ``end``; ``pos`` (list of tags), ``sentence`` and ``id``
        are optional (``id`` defaults to the tag key). ``dependencies`` are
        ``(governor_index, dependent_index, relation)`` triples pointing into
        ``records``.
        """
        tokens: List[Token] = []
        for i, rec in enumerate(records):
            try:
                tag = rec["tag"]
                start = int(rec["start"])
                end = int(rec["end"])
            except (KeyError, TypeError, ValueError) as exc:
                raise MalformedInputError(f"Record {i} is missing tag/start/end: {rec!r}") from exc
            value, language = parse_tag_key(tag)
            tokens.append(
                Token(
                    id=rec.get("id", tag),
                    surface_form=value,
                    language=language,
                    parts_of_speech=rec.get("pos") or frozenset(),
                    start_position=start,
                    end_position=end,
                    sentence_index=rec.get("sentence"),
                )
            )

        links: List[DependencyLink] = []
        for governor, dependent, relation in dependencies:
            if not (0 <= governor < len(tokens) and 0 <= dependent < len(tokens)):
                raise MalformedInputError(
                    f"Dependency ({governor}, {dependent}, {relation!r}) points outside "
                    f"the {len(tokens)} records."
                )
            links.append(DependencyLink(tokens[governor], tokens[dependent], relation))

        return cls(tokens, links, document_id=document_id)

    def __len__(self) -> int:
        return len(self.tokens)

    def __iter__(self) -> Iterator[Token]:
        return iter(self.tokens)
