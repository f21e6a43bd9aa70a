"""
graph_ranker.py

Damped power iteration (TextRank / PageRank) over a co-occurrence graph.

The graph is read as parallel edge arrays indexed by arena order, and scores
are iterated as numpy vectors:

    s'(v) = (1 - d) / N + d * Σ_u s(u) * w(u, v) / out(u)

Each round is a weighted ``np.bincount`` over the edges, so memory and time
grow with the number of edges rather than ``N²``.

Nodes without outgoing weight contribute nothing (their mass is not
redistributed beyond the uniform ``(1 - d) / N`` term). Iteration stops after
``iterations`` rounds or as soon as the largest per-node change drops below
``threshold``.

Ranked listings sort by descending score, then by token id; when ids of
mixed types cannot be compared, equal scores keep graph order.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import (
    Callable,
    Dict,
    Hashable,
    Iterable,
    Iterator,
    List,
    Mapping as MappingType,
    Optional,
    Sequence,
    Tuple,
)

import numpy as np
import pandas as pd

from .cooccurrence import CooccurrenceGraph
from .errors import InvalidConfigurationError, MalformedInputError


def by_score(items: Iterable[Tuple[Hashable, float]]) -> List[Tuple[Hashable, float]]:
    """
    Sort ``(token id, score)`` pairs by descending score, ties by id.

    Falls back to a stable score-only sort (input order on ties) when the
    ids are not mutually comparable.
    """
    pairs = list(items)
    try:
        return sorted(pairs, key=lambda item: (-item[1], item[0]))
    except TypeError:
        return sorted(pairs, key=lambda item: -item[1])


class RankVector(Mapping):
    """
    Read-only ``token id → score`` mapping with convergence diagnostics.

    Iteration order is the graph's node order; :meth:`top` orders by score
    and breaks ties by token id.

    Attributes
    ----------
    iterations:
        Number of rounds actually run.
    converged:
        True if iteration stopped early because of the threshold.
    deltas:
        Largest absolute per-node change of each round.
    labels:
        Token id → surface form, for diagnostics.
    directed:
        Whether the caller ranked the graph as directed.
    """

    def __init__(
        self,
        scores: MappingType[Hashable, float],
        *,
        iterations: int = 0,
        converged: bool = False,
        deltas: Sequence[float] = (),
        labels: Optional[MappingType[Hashable, str]] = None,
        directed: bool = False,
    ) -> None:
        self._scores: Dict[Hashable, float] = dict(scores)
        self.iterations = iterations
        self.converged = converged
        self.deltas: List[float] = list(deltas)
        self.labels: Dict[Hashable, str] = dict(labels or {})
        self.directed = directed

    def __getitem__(self, token_id: Hashable) -> float:
        return self._scores[token_id]

    def __iter__(self) -> Iterator[Hashable]:
        return iter(self._scores)

    def __len__(self) -> int:
        return len(self._scores)

    def __repr__(self) -> str:
        return (
            f"RankVector({len(self)} nodes, iterations={self.iterations}, "
            f"converged={self.converged})"
        )

    def top(self, n: int) -> List[Tuple[Hashable, float]]:
        """Highest ``n`` scores, descending; ties ordered by token id."""
        ranked = by_score(self._scores.items())
        return ranked[: max(n, 0)]

    def total(self) -> float:
        return float(sum(self._scores.values()))

    def to_dataframe(self) -> pd.DataFrame:
        """One row per node: token_id, label, score, rank (1 = best)."""
        ranked = self.top(len(self))
        return pd.DataFrame(
            [
                {
                    "token_id": token_id,
                    "label": self.labels.get(token_id, str(token_id)),
                    "score": score,
                    "rank": position,
                }
                for position, (token_id, score) in enumerate(ranked, start=1)
            ],
            columns=["token_id", "label", "score", "rank"],
        )


class GraphRanker:
    """
    Power-iteration ranker for :class:`CooccurrenceGraph`.

    Each call owns its score vectors, so one ranker can be shared across
    documents.
    """

    def __init__(self, log_fn: Optional[Callable[[str], None]] = None) -> None:
        self.log_fn = log_fn or (lambda _msg: None)

    def _log(self, message: str) -> None:
        self.log_fn(message)

    def rank(
        self,
        graph: CooccurrenceGraph,
        prior_weights: Optional[MappingType[Hashable, float]] = None,
        iterations: int = 30,
        damping: float = 0.85,
        threshold: float = 0.0001,
        directed: bool = False,
    ) -> RankVector:
        """
        Score every node of ``graph``.

        Parameters
        ----------
        graph:
            Co-occurrence graph; already symmetric when direction does not
            matter.
        prior_weights:
            Optional ``token id → non-negative seed score``. Nodes without a
            prior start at ``1/N``; ids absent from the graph are ignored.
        iterations:
            Maximum number of rounds (≥ 1).
        damping:
            Damping factor in ``[0, 1]``.
        threshold:
            Early-exit bound on the largest per-node change (≥ 0).
        directed:
            Caller's intent, recorded on the result. The graph already
            encodes the right edges.

        Returns
        -------
        RankVector
            Empty for an empty graph.
        """
        self._validate(iterations, damping, threshold)

        n = len(graph)
        if n == 0:
            self._log("[GraphRanker] Empty graph – nothing to rank.")
            return RankVector({}, directed=directed)

        # Edge lists instead of an N × N matrix: cost per round is O(edges).
        sources, dests, weights = graph.edge_arrays()
        out_weight = np.bincount(sources, weights=weights, minlength=n)
        transition = weights / out_weight[sources]

        scores = self._initial_scores(graph, prior_weights)
        teleport = (1.0 - damping) / n

        deltas: List[float] = []
        converged = False
        for _ in range(iterations):
            flow = np.bincount(dests, weights=scores[sources] * transition, minlength=n)
            updated = teleport + damping * flow
            delta = float(np.max(np.abs(updated - scores)))
            scores = updated
            deltas.append(delta)
            if delta < threshold:
                converged = True
                break

        node_ids = graph.node_ids
        self._log(
            f"[GraphRanker] {n} nodes ranked in {len(deltas)} round(s), "
            f"converged={converged}, sum of scores={float(scores.sum()):.4f}."
        )
        return RankVector(
            dict(zip(node_ids, scores.tolist())),
            iterations=len(deltas),
            converged=converged,
            deltas=deltas,
            labels={token_id: graph.label(token_id) for token_id in node_ids},
            directed=directed,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    @staticmethod
    def _validate(iterations: int, damping: float, threshold: float) -> None:
        if isinstance(iterations, bool) or not isinstance(iterations, int) or iterations <= 0:
            raise InvalidConfigurationError(
                f"iterations must be a positive integer, got {iterations!r}."
            )
        if not 0.0 <= damping <= 1.0:
            raise InvalidConfigurationError(f"damping must lie in [0, 1], got {damping!r}.")
        if not threshold >= 0.0:
            raise InvalidConfigurationError(f"threshold must be >= 0, got {threshold!r}.")

    @staticmethod
    def _initial_scores(
        graph: CooccurrenceGraph,
        prior_weights: Optional[MappingType[Hashable, float]],
    ) -> np.ndarray:
        n = len(graph)
        scores = np.full(n, 1.0 / n, dtype=float)
        if not prior_weights:
            return scores

        for token_id, value in prior_weights.items():
            idx = graph.arena.get_index(token_id)
            if idx is None:
                continue
            try:
                value = float(value)
            except (TypeError, ValueError) as exc:
                raise MalformedInputError(
                    f"Prior weight for {token_id!r} is not a number: {value!r}."
                ) from exc
            if not math.isfinite(value) or value < 0:
                raise MalformedInputError(
                    f"Prior weight for {token_id!r} must be finite and non-negative, got {value!r}."
                )
            scores[idx] = value
        return scores


def rank_weighted_edges(
    edges: Iterable[Tuple[Hashable, Hashable, float]],
    iterations: int = 30,
    damping: float = 0.85,
    threshold: float = 0.0001,
    directed: bool = True,
    log_fn: Optional[Callable[[str], None]] = None,
) -> RankVector:
    """
    Rank an arbitrary weighted graph given as ``(source, dest, weight)`` triples.

    Edges are followed as given when ``directed`` is True (the default for
    general graphs); otherwise every triple is mirrored first.
    """
    graph = CooccurrenceGraph.from_edges(edges, symmetric=not directed)
    return GraphRanker(log_fn=log_fn).rank(
        graph,
        iterations=iterations,
        damping=damping,
        threshold=threshold,
        directed=directed,
    )
