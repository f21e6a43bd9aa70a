"""
keyword_extractor.py

End-to-end TextRank keyword extraction for one tagged document:

    tokens ─▶ co-occurrence graph ─▶ rank vector ─▶ top tokens
           ─▶ candidates (+ dependency neighbours) ─▶ keyphrases ─▶ sink

Quick usage
-----------
    from textrankminer import TaggedDocument, TextRankKeywordExtractor

    extractor = TextRankKeywordExtractor(removeStopWords=True)
    result = extractor.extract(document)
    print(result.keywords.most_common(10))

The extractor itself holds only its (frozen) configuration, so the same
instance can process many documents, also from several threads: each call
builds and discards its own graph, rank vector and phrase accumulator.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import (
    Any,
    Callable,
    Dict,
    Hashable,
    List,
    Mapping,
    Optional,
    Protocol,
    Sequence,
    Tuple,
    Union,
    runtime_checkable,
)

import pandas as pd

from .config import TextRankConfig
from .cooccurrence import CooccurrenceGraph, TokenGraphBuilder
from .document import TaggedDocument
from .errors import EmptyGraphError, MalformedInputError
from .graph_ranker import GraphRanker, RankVector
from .phrase_assembler import (
    KeywordRecord,
    KeywordResultSet,
    PhraseAssembler,
    PhraseCandidate,
    select_top_tokens,
)


# ---------------------------------------------------------------------
# Collaborator protocols
# ---------------------------------------------------------------------


@runtime_checkable
class PriorWeightSource(Protocol):
    """Supplies non-negative seed scores (e.g. IDF values) for graph nodes."""

    def prior_weights(self, token_ids: Sequence[Hashable]) -> Mapping[Hashable, float]:
        ...


class KeywordSink(Protocol):
    """Persists the keywords of a document (one link per keyword, with its count)."""

    def store(self, document_id: Optional[Hashable], records: Sequence[KeywordRecord]) -> None:
        ...


PriorWeights = Union[Mapping[Hashable, float], PriorWeightSource]


class InMemoryKeywordStore:
    """
    Minimal keyword sink.

    Keeps one keyword entity per keyword id (reused across documents) and a
    ``DESCRIBES`` link ``(keyword_id, document_id) → count`` per document.
    """

    def __init__(self) -> None:
        self.keywords: Dict[str, Dict[str, str]] = {}
        self.links: Dict[Tuple[str, Optional[Hashable]], int] = {}

    def store(self, document_id: Optional[Hashable], records: Sequence[KeywordRecord]) -> None:
        for rec in records:
            self.keywords.setdefault(
                rec.keyword_id, {"value": rec.value, "language": rec.language}
            )
            self.links[(rec.keyword_id, document_id)] = rec.count

    def keywords_for(self, document_id: Optional[Hashable]) -> Dict[str, int]:
        return {kw: count for (kw, doc), count in self.links.items() if doc == document_id}

    def documents_for(self, keyword_id: str) -> List[Optional[Hashable]]:
        return [doc for (kw, doc) in self.links if kw == keyword_id]


# ---------------------------------------------------------------------
# Result container
# ---------------------------------------------------------------------


@dataclass
class KeywordExtractionResult:
    """
    Output of :meth:`TextRankKeywordExtractor.extract`.

    Attributes
    ----------
    document_id:
        Identifier of the processed document (may be None).
    graph:
        The co-occurrence graph built for the document.
    rank_vector:
        Scores per token id, with convergence diagnostics.
    top_token_ids:
        Ids handed to phrase assembly, best first.
    candidates:
        Position-ordered occurrences of the top tokens, with their
        dependency neighbours.
    keywords:
        ``"<text>_<language>" → count`` result set.
    config:
        Run-time parameters used for this extraction (audit trail).
    """

    document_id: Optional[Hashable]
    graph: CooccurrenceGraph
    rank_vector: RankVector
    top_token_ids: List[Hashable]
    candidates: List[PhraseCandidate]
    keywords: KeywordResultSet
    config: Dict[str, Any]

    @property
    def phrases(self) -> List[KeywordRecord]:
        return [r for r in self.keywords.records() if r.kind == "phrase"]

    def to_dataframe(self) -> pd.DataFrame:
        df = self.keywords.to_dataframe()
        df.insert(0, "document_id", self.document_id)
        return df


# ---------------------------------------------------------------------
# TextRankKeywordExtractor – orchestration
# ---------------------------------------------------------------------


class TextRankKeywordExtractor:
    """
    Run graph building, ranking and phrase assembly for tagged documents.

    Parameters
    ----------
    config:
        Base configuration (defaults to ``TextRankConfig()``).
    log_fn:
        Optional logging callback taking a single string, e.g. ``print``
        or ``logger.info``. Silent by default.
    **options:
        Overrides applied on top of ``config``; Python names or the
        camelCase option names (``removeStopWords``, ``cooccurrenceWindow``,
        ``useTfIdfWeights``...). Invalid values raise
        ``InvalidConfigurationError`` here, before any document is read.
    """

    def __init__(
        self,
        config: Optional[TextRankConfig] = None,
        *,
        log_fn: Optional[Callable[[str], None]] = None,
        **options: Any,
    ) -> None:
        base = config or TextRankConfig()
        self.config = base.with_options(**options) if options else base
        self.log_fn = log_fn or (lambda _msg: None)

        self.builder = TokenGraphBuilder(self.config, log_fn=self.log_fn)
        self.ranker = GraphRanker(log_fn=self.log_fn)
        self.assembler = PhraseAssembler(self.config, log_fn=self.log_fn)

    def _log(self, message: str) -> None:
        self.log_fn(message)

    # ------------------------------------------------------------------
    # Pipeline steps
    # ------------------------------------------------------------------
    def build_graph(self, document: TaggedDocument) -> CooccurrenceGraph:
        return self.builder.build(document.ordered_tokens(self.config.respect_sentences))

    def rank(
        self,
        graph: CooccurrenceGraph,
        prior_weights: Optional[PriorWeights] = None,
    ) -> RankVector:
        """Rank ``graph``; priors are used only when ``use_tfidf_weights`` is on."""
        cfg = self.config
        priors: Optional[Mapping[Hashable, float]] = None
        if cfg.use_tfidf_weights:
            priors = self._resolve_priors(prior_weights, graph)
            if priors is None:
                self._log(
                    "[TextRank] use_tfidf_weights is on but no prior weights were "
                    "given – falling back to uniform initialization."
                )
        return self.ranker.rank(
            graph,
            prior_weights=priors,
            iterations=cfg.iterations,
            damping=cfg.damping,
            threshold=cfg.threshold,
            directed=cfg.direction_matters,
        )

    def candidates(
        self,
        document: TaggedDocument,
        top_token_ids: Sequence[Hashable],
    ) -> List[PhraseCandidate]:
        """Occurrences of ``top_token_ids`` by position, with dependency neighbours."""
        admitted = self.config.admitted_pos
        return [
            PhraseCandidate(
                token=token,
                dependencies=tuple(document.dependency_neighbors(token, admitted)),
            )
            for token in document.occurrences(top_token_ids)
        ]

    # ------------------------------------------------------------------
    # Public main entry point
    # ------------------------------------------------------------------
    def extract(
        self,
        document: TaggedDocument,
        prior_weights: Optional[PriorWeights] = None,
        sink: Optional[KeywordSink] = None,
        document_id: Optional[Hashable] = None,
    ) -> KeywordExtractionResult:
        """
        Extract keywords and keyphrases from one document.

        Raises
        ------
        EmptyGraphError
            If no co-occurrence survives filtering (nothing to rank). No
            phrase assembly is attempted and nothing reaches ``sink``.
        MalformedInputError
            If the tokens, dependencies or priors are inconsistent.
        """
        cfg = self.config
        doc_id = document_id if document_id is not None else getattr(document, "document_id", None)

        graph = self.build_graph(document)
        if graph.is_empty:
            raise EmptyGraphError(
                f"Document {doc_id!r} produced an empty co-occurrence graph; "
                "check POS admission, token lengths and stop words."
            )

        rank_vector = self.rank(graph, prior_weights)
        if len(rank_vector) == 0:
            raise EmptyGraphError(f"Ranking document {doc_id!r} produced no scores.")

        top_ids = select_top_tokens(rank_vector, cap=cfg.max_top_tokens)
        self._log(
            f"[TextRank] Top {len(top_ids)} tags: "
            + ", ".join(rank_vector.labels.get(i, str(i)) for i in top_ids)
        )

        candidates = self.candidates(document, top_ids)
        keywords = self.assembler.assemble(rank_vector, candidates)

        if sink is not None:
            sink.store(doc_id, keywords.records())

        self._log(f"[TextRank] Document {doc_id!r}: {', '.join(keywords)}")
        return KeywordExtractionResult(
            document_id=doc_id,
            graph=graph,
            rank_vector=rank_vector,
            top_token_ids=top_ids,
            candidates=candidates,
            keywords=keywords,
            config={
                **cfg.as_dict(),
                "n_nodes": len(graph),
                "n_edges": graph.edge_count,
                "rank_iterations": rank_vector.iterations,
                "rank_converged": rank_vector.converged,
            },
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    @staticmethod
    def _resolve_priors(
        prior_weights: Optional[PriorWeights],
        graph: CooccurrenceGraph,
    ) -> Optional[Mapping[Hashable, float]]:
        if prior_weights is None:
            return None
        if isinstance(prior_weights, PriorWeightSource):
            return prior_weights.prior_weights(graph.node_ids)
        if isinstance(prior_weights, Mapping):
            return prior_weights
        raise MalformedInputError(
            "prior_weights must be a mapping or provide prior_weights(token_ids), "
            f"got {type(prior_weights).__name__}."
        )


def extract_keywords(
    document: TaggedDocument,
    prior_weights: Optional[PriorWeights] = None,
    log_fn: Optional[Callable[[str], None]] = None,
    **options: Any,
) -> KeywordResultSet:
    """Convenience wrapper: keywords of ``document`` with a one-off extractor."""
    extractor = TextRankKeywordExtractor(log_fn=log_fn, **options)
    return extractor.extract(document, prior_weights=prior_weights).keywords
