"""Unit tests for GraphRanker and RankVector."""

import math

import numpy as np
import pytest

from textrankminer.config import TextRankConfig
from textrankminer.cooccurrence import CooccurrenceGraph, TokenGraphBuilder
from textrankminer.errors import InvalidConfigurationError, MalformedInputError
from textrankminer.graph_ranker import GraphRanker, RankVector, rank_weighted_edges


@pytest.fixture
def pair_graph():
    return CooccurrenceGraph.from_edges([("a", "b", 1.0)], symmetric=True)


@pytest.fixture
def path_graph(quick_brown_fox):
    return TokenGraphBuilder(TextRankConfig()).build(quick_brown_fox)


class TestRank:
    def test_two_node_graph_converges_to_half(self, pair_graph):
        ranks = GraphRanker().rank(pair_graph, iterations=50, damping=0.85, threshold=0.0001)

        assert ranks["a"] == pytest.approx(0.5, abs=1e-4)
        assert ranks["b"] == pytest.approx(0.5, abs=1e-4)
        assert ranks.converged
        assert ranks.iterations <= 50

    def test_empty_graph_gives_empty_vector(self):
        ranks = GraphRanker().rank(CooccurrenceGraph())
        assert len(ranks) == 0
        assert ranks.iterations == 0
        assert not ranks.converged
        assert ranks.top(5) == []

    def test_every_node_is_scored(self, path_graph):
        ranks = GraphRanker().rank(path_graph)
        assert set(ranks) == {"quick_en", "brown_en", "fox_en"}
        assert all(score >= 0 for score in ranks.values())
        assert ranks.labels["brown_en"] == "brown"

    def test_hub_ranks_first_and_ties_go_by_id(self, path_graph):
        ranks = GraphRanker().rank(path_graph)
        assert ranks["quick_en"] == ranks["fox_en"]
        assert [token_id for token_id, _ in ranks.top(3)] == ["brown_en", "fox_en", "quick_en"]
        assert [token_id for token_id, _ in ranks.top(1)] == ["brown_en"]

    def test_deterministic(self, path_graph):
        first = GraphRanker().rank(path_graph, iterations=40, threshold=0.0)
        second = GraphRanker().rank(path_graph, iterations=40, threshold=0.0)
        assert dict(first) == dict(second)
        assert first.iterations == 40

    def test_first_rounds_on_a_path(self, path_graph):
        ranks = GraphRanker().rank(path_graph, iterations=10, threshold=0.0)

        assert ranks.deltas[0] == pytest.approx(0.85 / 3, abs=1e-9)
        assert ranks.deltas[1] == pytest.approx(0.85 * 0.85 / 3, abs=1e-9)
        assert all(later <= earlier for earlier, later in zip(ranks.deltas, ranks.deltas[1:]))
        assert not ranks.converged

    def test_deltas_shrink_on_a_cycle(self):
        graph = CooccurrenceGraph.from_edges(
            [("a", "b", 1), ("b", "c", 1), ("c", "d", 1), ("d", "a", 1)], symmetric=True
        )
        priors = {"a": 0.7, "b": 0.1, "c": 0.1, "d": 0.1}
        ranks = GraphRanker().rank(graph, prior_weights=priors, iterations=25, threshold=0.0)

        assert len(ranks.deltas) == 25
        assert all(later <= earlier + 1e-12 for earlier, later in zip(ranks.deltas, ranks.deltas[1:]))

    def test_stops_once_below_threshold(self, path_graph):
        loose = GraphRanker().rank(path_graph, iterations=200, threshold=0.05)
        assert loose.converged
        assert loose.deltas[-1] < 0.05
        assert all(delta >= 0.05 for delta in loose.deltas[:-1])

    def test_dangling_node_receives_but_does_not_give(self):
        graph = CooccurrenceGraph.from_edges([("a", "b", 1.0)])
        ranks = GraphRanker().rank(graph, iterations=1, damping=0.85, directed=True)

        assert ranks["a"] == pytest.approx(0.075)
        assert ranks["b"] == pytest.approx(0.5)
        assert ranks.directed is True

    def test_weights_shift_the_ranking(self):
        graph = CooccurrenceGraph.from_edges(
            [("hub", "heavy", 5.0), ("hub", "light", 1.0)], symmetric=True
        )
        ranks = GraphRanker().rank(graph, iterations=100)
        assert ranks["heavy"] > ranks["light"]

    def test_logs_summary(self, pair_graph):
        messages = []
        GraphRanker(log_fn=messages.append).rank(pair_graph)
        assert any("2 nodes ranked" in m for m in messages)

    def test_matches_the_dense_transition_matrix(self):
        graph = CooccurrenceGraph.from_edges(
            [("a", "b", 2.0), ("b", "c", 1.0), ("c", "a", 3.0), ("a", "c", 0.5), ("d", "a", 1.0)]
        )
        ranks = GraphRanker().rank(graph, iterations=20, damping=0.85, threshold=0.0)

        weights = graph.weight_matrix()
        out = weights.sum(axis=1, keepdims=True)
        transition = np.divide(weights, out, out=np.zeros_like(weights), where=out > 0)
        expected = np.full(4, 0.25)
        for _ in range(20):
            expected = 0.15 / 4 + 0.85 * (expected @ transition)

        for node, value in zip(graph.node_ids, expected):
            assert ranks[node] == pytest.approx(value, abs=1e-12)

    def test_long_chain_ranks_from_edge_lists(self):
        n = 30000
        graph = CooccurrenceGraph.from_edges(
            [(i, i + 1, 1.0) for i in range(n - 1)], symmetric=True
        )
        ranks = GraphRanker().rank(graph, iterations=5, threshold=0.0)

        assert len(ranks) == n
        assert ranks[0] == pytest.approx(ranks[n - 1])
        assert ranks[n // 2] > ranks[0]


class TestPriors:
    def test_priors_seed_the_first_round(self, pair_graph):
        ranks = GraphRanker().rank(
            pair_graph, prior_weights={"a": 0.9, "b": 0.1}, iterations=1, damping=1.0
        )
        assert ranks["a"] == pytest.approx(0.1)
        assert ranks["b"] == pytest.approx(0.9)

    def test_missing_prior_starts_uniform(self, pair_graph):
        ranks = GraphRanker().rank(pair_graph, prior_weights={"a": 0.9}, iterations=1, damping=1.0)
        assert ranks["a"] == pytest.approx(0.5)
        assert ranks["b"] == pytest.approx(0.9)

    def test_unknown_ids_are_ignored(self, pair_graph):
        ranks = GraphRanker().rank(pair_graph, prior_weights={"zebra": 3.0})
        assert set(ranks) == {"a", "b"}
        assert ranks["a"] == pytest.approx(0.5, abs=1e-4)

    @pytest.mark.parametrize("value", [-0.1, math.inf, math.nan, "heavy"])
    def test_invalid_prior(self, pair_graph, value):
        with pytest.raises(MalformedInputError):
            GraphRanker().rank(pair_graph, prior_weights={"a": value})


class TestValidation:
    @pytest.mark.parametrize(
        "kwargs",
        [
            {"iterations": 0},
            {"iterations": -1},
            {"iterations": True},
            {"iterations": 2.5},
            {"damping": 1.01},
            {"damping": -0.5},
            {"threshold": -1e-9},
        ],
    )
    def test_bad_parameters(self, pair_graph, kwargs):
        with pytest.raises(InvalidConfigurationError):
            GraphRanker().rank(pair_graph, **kwargs)

    def test_validation_runs_before_empty_check(self):
        with pytest.raises(InvalidConfigurationError):
            GraphRanker().rank(CooccurrenceGraph(), damping=3.0)


class TestRankVector:
    def test_mapping_behaviour(self):
        vector = RankVector({"x": 0.2, "y": 0.5, "z": 0.3}, iterations=4, converged=True)
        assert list(vector) == ["x", "y", "z"]
        assert vector["y"] == 0.5
        assert vector.total() == pytest.approx(1.0)
        assert vector.top(2) == [("y", 0.5), ("z", 0.3)]
        assert vector.top(0) == []
        assert "4" in repr(vector)

    def test_top_breaks_ties_by_id(self):
        vector = RankVector({"pear": 0.3, "apple": 0.3, "fig": 0.4})
        assert [token_id for token_id, _ in vector.top(3)] == ["fig", "apple", "pear"]

    def test_incomparable_ids_keep_graph_order_on_ties(self):
        vector = RankVector({"b": 0.5, 1: 0.5, "a": 0.2})
        assert vector.top(3) == [("b", 0.5), (1, 0.5), ("a", 0.2)]

    def test_to_dataframe(self, path_graph):
        df = GraphRanker().rank(path_graph).to_dataframe()
        assert list(df.columns) == ["token_id", "label", "score", "rank"]
        assert df.iloc[0]["token_id"] == "brown_en"
        assert df.iloc[0]["label"] == "brown"
        assert list(df["rank"]) == [1, 2, 3]


class TestRankWeightedEdges:
    def test_directed_cycle_is_uniform(self):
        ranks = rank_weighted_edges([("a", "b", 1), ("b", "c", 1), ("c", "a", 1)])
        for node in "abc":
            assert ranks[node] == pytest.approx(1 / 3)
        assert ranks.converged

    def test_undirected_edges_are_mirrored(self):
        ranks = rank_weighted_edges([("a", "b", 2.0)], directed=False)
        assert ranks["a"] == pytest.approx(0.5)
        assert ranks["b"] == pytest.approx(0.5)
        assert ranks.directed is False
