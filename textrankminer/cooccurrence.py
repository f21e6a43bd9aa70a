"""
cooccurrence.py

Weighted word co-occurrence graph and the builder that derives it from an
ordered stream of POS-tagged tokens.

Main features
-------------
- POS admission: only nouns/adjectives (configurable) become graph nodes.
- Skip-window: a short run of non-admitted tokens between two admitted
  ones does not break their co-occurrence link.
- Undirected mode (default) mirrors every edge; directed mode keeps the
  reading order.
- Optional sentence-respecting mode: no edge crosses a sentence boundary.

Quick usage
-----------
    from textrankminer.cooccurrence import TokenGraphBuilder

    builder = TokenGraphBuilder()
    graph = builder.build(document.ordered_tokens())
    graph.weight("quick_en", "brown_en")   # -> 1.0
"""

from __future__ import annotations

from dataclasses import dataclass
from itertools import groupby
from typing import (
    Any,
    Callable,
    Dict,
    Hashable,
    Iterable,
    Iterator,
    List,
    Optional,
    Tuple,
)

import numpy as np
import pandas as pd

from .config import TextRankConfig
from .errors import MalformedInputError
from .tokens import LANGUAGE_DELIMITER, Token, TokenArena


@dataclass
class CoOccurrenceEdge:
    """Directed co-occurrence count between two word ids."""

    source_id: Hashable
    dest_id: Hashable
    weight: float = 1.0

    def increment(self, delta: float = 1.0) -> None:
        self.weight += delta


class CooccurrenceGraph:
    """
    Mapping ``source → {destination → CoOccurrenceEdge}`` over interned tokens.

    Nodes are held in a :class:`TokenArena` and only exist once they take
    part in an edge. A missing edge has weight 0; a present edge never does.
    """

    def __init__(self) -> None:
        self.arena = TokenArena()
        self._adjacency: Dict[int, Dict[int, CoOccurrenceEdge]] = {}

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------
    def add_edge(
        self,
        source: Token,
        dest: Token,
        delta: Optional[float] = None,
    ) -> CoOccurrenceEdge:
        """
        Increment-or-create the edge ``source → dest``.

        A new edge starts at weight 1.0; an existing one grows by ``delta``
        (1.0 when omitted).
        """
        if delta is not None and delta <= 0:
            raise MalformedInputError(f"Edge increments must be positive, got {delta!r}.")

        src = self.arena.intern(source)
        dst = self.arena.intern(dest)
        row = self._adjacency.setdefault(src, {})
        edge = row.get(dst)
        if edge is None:
            edge = CoOccurrenceEdge(source.id, dest.id)
            row[dst] = edge
        else:
            edge.increment(1.0 if delta is None else delta)
        return edge

    @classmethod
    def from_edges(
        cls,
        edges: Iterable[Tuple[Hashable, Hashable, float]],
        symmetric: bool = False,
    ) -> "CooccurrenceGraph":
        """
        Build a graph from ``(source, dest, weight)`` triples.

        Useful for ranking arbitrary weighted graphs. Repeated pairs add up.
        With ``symmetric=True`` each triple is also inserted reversed.
        Node labels are ``str(node_id)`` with ``_`` turned into ``-``.
        """
        graph = cls()
        nodes: Dict[Hashable, Token] = {}

        def node(node_id: Hashable) -> Token:
            if node_id not in nodes:
                nodes[node_id] = Token(
                    id=node_id,
                    surface_form=str(node_id).replace(LANGUAGE_DELIMITER, "-"),
                    start_position=0,
                    end_position=0,
                )
            return nodes[node_id]

        for source, dest, weight in edges:
            weight = float(weight)
            if not weight > 0:
                raise MalformedInputError(
                    f"Edge {source!r} -> {dest!r} has non-positive weight {weight!r}."
                )
            pairs = [(source, dest)]
            if symmetric and source != dest:
                pairs.append((dest, source))
            for a, b in pairs:
                existed = graph.has_edge(a, b)
                edge = graph.add_edge(node(a), node(b), delta=weight)
                if not existed:
                    edge.weight = weight
        return graph

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def has_edge(self, source_id: Hashable, dest_id: Hashable) -> bool:
        return self._edge(source_id, dest_id) is not None

    def weight(self, source_id: Hashable, dest_id: Hashable) -> float:
        edge = self._edge(source_id, dest_id)
        return 0.0 if edge is None else edge.weight

    def neighbors(self, token_id: Hashable) -> Dict[Hashable, float]:
        """Outgoing ``dest id → weight`` for ``token_id``."""
        idx = self.arena.get_index(token_id)
        if idx is None:
            return {}
        return {e.dest_id: e.weight for e in self._adjacency.get(idx, {}).values()}

    def out_weight(self, token_id: Hashable) -> float:
        return sum(self.neighbors(token_id).values())

    def edges(self) -> Iterator[CoOccurrenceEdge]:
        for row in self._adjacency.values():
            yield from row.values()

    @property
    def edge_count(self) -> int:
        return sum(len(row) for row in self._adjacency.values())

    @property
    def node_ids(self) -> List[Hashable]:
        return self.arena.ids()

    def label(self, token_id: Hashable) -> str:
        return self.arena.label(token_id)

    def is_symmetric(self) -> bool:
        return all(
            self.weight(e.dest_id, e.source_id) == e.weight for e in self.edges()
        )

    @property
    def is_empty(self) -> bool:
        return len(self.arena) == 0

    def __len__(self) -> int:
        return len(self.arena)

    def __contains__(self, token_id: object) -> bool:
        return token_id in self.arena

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------
    def edge_arrays(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """
        Sparse view of the graph: ``(source_index, dest_index, weight)``
        arrays with one entry per directed edge, indexed by arena order.
        """
        count = self.edge_count
        sources = np.empty(count, dtype=np.int64)
        dests = np.empty(count, dtype=np.int64)
        weights = np.empty(count, dtype=float)
        k = 0
        for src, row in self._adjacency.items():
            for dst, edge in row.items():
                sources[k], dests[k], weights[k] = src, dst, edge.weight
                k += 1
        return sources, dests, weights

    def weight_matrix(self) -> np.ndarray:
        """
        Dense ``N × N`` weights, rows = sources, indexed by arena order.

        Memory grows with ``N²``; meant for small graphs and inspection.
        Ranking uses :meth:`edge_arrays`.
        """
        n = len(self.arena)
        matrix = np.zeros((n, n), dtype=float)
        for src, row in self._adjacency.items():
            for dst, edge in row.items():
                matrix[src, dst] = edge.weight
        return matrix

    def to_dataframe(self) -> pd.DataFrame:
        """One row per directed edge: source, target, labels and weight."""
        rows: List[Dict[str, Any]] = [
            {
                "source": e.source_id,
                "target": e.dest_id,
                "source_label": self.label(e.source_id),
                "target_label": self.label(e.dest_id),
                "weight": e.weight,
            }
            for e in self.edges()
        ]
        return pd.DataFrame(
            rows, columns=["source", "target", "source_label", "target_label", "weight"]
        )

    def _edge(self, source_id: Hashable, dest_id: Hashable) -> Optional[CoOccurrenceEdge]:
        src = self.arena.get_index(source_id)
        dst = self.arena.get_index(dest_id)
        if src is None or dst is None:
            return None
        return self._adjacency.get(src, {}).get(dst)


# ---------------------------------------------------------------------------
# ---------- TokenGraphBuilder – windowed co-occurrence construction ----------
# ---------------------------------------------------------------------------


class TokenGraphBuilder:
    """
    Build a :class:`CooccurrenceGraph` from an ordered token stream.

    The builder makes one linear pass over adjacent token pairs (restarted
    per sentence in sentence-respecting mode):

      * both tokens admitted      → link them, reset the skip counter;
      * only the second admitted  → link it to the last admitted token if
        fewer than ``cooccurrence_window`` tokens interrupted them, reset;
      * otherwise                 → remember an admitted first token as the
        last admitted one, or count one more interrupting token.

    Parameters
    ----------
    config:
        Pipeline configuration (POS admission, window, direction, sentences).
    log_fn:
        Optional logging callback taking a single string.
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

    def build(self, tokens: Iterable[Token]) -> CooccurrenceGraph:
        cfg = self.config
        qualifying = [t for t in tokens if len(t.surface_form) >= cfg.min_token_length]
        self._check_order(qualifying)

        graph = CooccurrenceGraph()
        for segment in self._segments(qualifying):
            self._scan(segment, graph)

        self._log(
            f"[TokenGraphBuilder] {len(graph)} nodes, {graph.edge_count} edges "
            f"from {len(qualifying)} qualifying tokens."
        )
        return graph

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _scan(self, segment: List[Token], graph: CooccurrenceGraph) -> None:
        cfg = self.config
        last_admitted: Optional[Token] = None
        skip_count = 1

        for current, nxt in zip(segment, segment[1:]):
            current_ok = cfg.is_admitted(current.pos_tags)
            next_ok = cfg.is_admitted(nxt.pos_tags)

            if current_ok and next_ok:
                self._link(graph, current, nxt)
                skip_count = 1
            elif next_ok:
                # Destination admitted, source not: bridge the gap if short enough.
                if skip_count < cfg.cooccurrence_window and last_admitted is not None:
                    self._link(graph, last_admitted, nxt)
                skip_count = 1
            elif current_ok:
                # The gap is counted from the last admitted token, so it restarts here.
                last_admitted = current
                skip_count = 1
            else:
                skip_count += 1

    def _link(self, graph: CooccurrenceGraph, a: Token, b: Token) -> None:
        graph.add_edge(a, b)
        if not self.config.direction_matters and a.id != b.id:
            graph.add_edge(b, a)

    def _segments(self, tokens: List[Token]) -> Iterator[List[Token]]:
        if not self.config.respect_sentences:
            yield tokens
            return
        for _, group in groupby(tokens, key=lambda t: t.sentence_index):
            yield list(group)

    def _check_order(self, tokens: List[Token]) -> None:
        if self.config.respect_sentences:
            missing = [t.surface_form for t in tokens if t.sentence_index is None]
            if missing:
                raise MalformedInputError(
                    "respect_sentences is on but these tokens have no sentence_index: "
                    f"{missing[:5]}"
                )

            def order_key(t: Token) -> Tuple[int, int]:
                return t.sentence_index, t.start_position  # type: ignore[return-value]
        else:

            def order_key(t: Token) -> Tuple[int, int]:
                return (0, t.start_position)

        for prev, cur in zip(tokens, tokens[1:]):
            if order_key(cur) < order_key(prev):
                raise MalformedInputError(
                    f"Tokens are out of order: {cur.surface_form!r} "
                    f"({cur.sentence_index}, {cur.start_position}) follows "
                    f"{prev.surface_form!r} ({prev.sentence_index}, {prev.start_position})."
                )
