"""Unit tests for PhraseAssembler, KeywordResultSet and select_top_tokens."""

import pytest

from textrankminer.config import TextRankConfig
from textrankminer.errors import MalformedInputError
from textrankminer.phrase_assembler import (
    KeywordResultSet,
    PhraseAssembler,
    PhraseCandidate,
    select_top_tokens,
)

from .helpers import lay_out, make_token


def assemble(scores, candidates, **options):
    return PhraseAssembler(TextRankConfig(**options)).assemble(scores, candidates)


@pytest.fixture
def machine_learning():
    machine, learning = lay_out([("machine", "NN"), ("learning", "NN")])
    candidates = [
        PhraseCandidate(machine, (learning,)),
        PhraseCandidate(learning, (machine,)),
    ]
    scores = {"machine_en": 0.4, "learning_en": 0.6}
    return scores, candidates


class TestPhraseMerging:
    def test_dependent_neighbours_form_one_phrase(self, machine_learning):
        scores, candidates = machine_learning
        result = assemble(scores, candidates)

        assert result["machine learning_en"] == 1
        # Single-word keywords are added regardless of phrase membership.
        assert dict(result) == {
            "machine learning_en": 1,
            "machine_en": 1,
            "learning_en": 1,
        }

    def test_adjacent_words_without_dependency_stay_apart(self):
        alpha, beta = lay_out([("alpha", "NN"), ("beta", "NN")])
        result = assemble(
            {"alpha_en": 0.5, "beta_en": 0.5},
            [PhraseCandidate(alpha), PhraseCandidate(beta)],
        )
        assert dict(result) == {"alpha_en": 1, "beta_en": 1}

    def test_gap_breaks_the_phrase(self):
        machine = make_token("machine", "NN", 0, 7)
        learning = make_token("learning", "NN", 10, 18)
        result = assemble(
            {"machine_en": 0.5, "learning_en": 0.5},
            [PhraseCandidate(machine, (learning,)), PhraseCandidate(learning, (machine,))],
        )
        assert "machine learning_en" not in result
        assert set(result) == {"machine_en", "learning_en"}

    def test_shared_dependency_links_words(self):
        neural, network, model = lay_out([("neural", "JJ"), ("network", "NN"), ("model", "NN")])
        result = assemble(
            {"neural_en": 0.5, "network_en": 0.5},
            [PhraseCandidate(neural, (model,)), PhraseCandidate(network, (model,))],
        )
        # "model" is adjacent to the last phrase word, so it is pulled in too.
        assert result["neural network model_en"] == 1

    def test_backfills_dependency_before_the_phrase(self):
        deep, neural, network = lay_out([("deep", "JJ"), ("neural", "JJ"), ("network", "NN")])
        result = assemble(
            {"neural_en": 0.5, "network_en": 0.5},
            [
                PhraseCandidate(neural, (network,)),
                PhraseCandidate(network, (deep, neural)),
            ],
        )
        assert result["deep neural network_en"] == 1
        assert "deep_en" not in result

    def test_backfills_dependency_after_the_phrase(self):
        machine, learning, model = lay_out([("machine", "NN"), ("learning", "NN"), ("model", "NN")])
        result = assemble(
            {"machine_en": 0.5, "learning_en": 0.5},
            [
                PhraseCandidate(machine, (learning,)),
                PhraseCandidate(learning, (machine, model)),
            ],
        )
        assert result["machine learning model_en"] == 1

    def test_distant_dependency_is_not_backfilled(self, machine_learning):
        scores, (machine, learning) = machine_learning
        far = make_token("systems", "NNS", 40)
        learning = PhraseCandidate(learning.token, (machine.token, far))
        result = assemble(scores, [machine, learning])
        assert result["machine learning_en"] == 1

    def test_repeated_phrase_is_counted(self):
        tokens = lay_out([("machine", "NN"), ("learning", "NN")]) + lay_out(
            [("machine", "NN"), ("learning", "NN")], start=30
        )
        candidates = [
            PhraseCandidate(tokens[0], (tokens[1],)),
            PhraseCandidate(tokens[1], (tokens[0],)),
            PhraseCandidate(tokens[2], (tokens[3],)),
            PhraseCandidate(tokens[3], (tokens[2],)),
        ]
        result = assemble({"machine_en": 0.5, "learning_en": 0.5}, candidates)
        assert result["machine learning_en"] == 2
        assert result["machine_en"] == 1

    def test_single_candidate_gives_no_phrase(self):
        fox = make_token("fox", "NN", 0)
        result = assemble({"fox_en": 1.0}, [PhraseCandidate(fox)])
        assert dict(result) == {"fox_en": 1}

    def test_empty_candidates(self):
        assert dict(assemble({}, [])) == {}

    def test_phrase_uses_token_language(self):
        maschinelles, lernen = (
            make_token("maschinelles", "ADJA", 0, language="de"),
            make_token("lernen", "NN", 13, language="de"),
        )
        result = assemble(
            {},
            [PhraseCandidate(maschinelles, (lernen,)), PhraseCandidate(lernen, (maschinelles,))],
        )
        assert result["maschinelles lernen_de"] == 1


class TestStopWords:
    def _candidates(self):
        old, house = lay_out([("old", "JJ"), ("house", "NN")])
        return [PhraseCandidate(old, (house,)), PhraseCandidate(house, (old,))]

    def test_stop_word_is_excluded_everywhere(self):
        result = assemble({"old_en": 0.9, "house_en": 0.1}, self._candidates(), remove_stop_words=True)
        assert dict(result) == {"house_en": 1}

    def test_stop_word_kept_when_removal_is_off(self):
        result = assemble({"old_en": 0.9, "house_en": 0.1}, self._candidates())
        assert result["old house_en"] == 1
        assert "old_en" in result


class TestSingleKeywords:
    def _spread(self):
        return [
            PhraseCandidate(make_token("alpha", "NN", 0)),
            PhraseCandidate(make_token("beta", "NN", 20)),
            PhraseCandidate(make_token("gamma", "NN", 40)),
        ]

    def test_cap_keeps_highest_scores(self):
        scores = {"alpha_en": 0.2, "beta_en": 0.5, "gamma_en": 0.3}
        result = assemble(scores, self._spread(), max_single_keywords=2)
        assert set(result) == {"beta_en", "gamma_en"}

    def test_zero_cap(self):
        result = assemble({"alpha_en": 1.0}, self._spread(), max_single_keywords=0)
        assert dict(result) == {}

    def test_existing_phrase_count_is_not_overwritten(self):
        result = KeywordResultSet()
        result.add_phrase(["machine", "learning"], "en")
        result.add_phrase(["machine", "learning"], "en")
        assert result.add_keyword("machine learning_en") is False
        assert result["machine learning_en"] == 2
        assert result.add_keyword("robots_en") is True


class TestInputs:
    def test_tuple_candidates(self, machine_learning):
        scores, candidates = machine_learning
        pairs = [(c.token, list(c.dependencies)) for c in candidates]
        assert assemble(scores, pairs) == assemble(scores, candidates)

    def test_out_of_order_candidates(self, machine_learning):
        scores, candidates = machine_learning
        with pytest.raises(MalformedInputError):
            assemble(scores, list(reversed(candidates)))

    @pytest.mark.parametrize("bad", [5, ("fox", []), ("a", "b", "c")])
    def test_malformed_candidate(self, bad):
        with pytest.raises(MalformedInputError):
            assemble({}, [bad])

    def test_assembly_is_repeatable(self, machine_learning):
        scores, candidates = machine_learning
        assembler = PhraseAssembler()
        assert assembler.assemble(scores, candidates) == assembler.assemble(scores, candidates)

    def test_logs_summary(self, machine_learning):
        scores, candidates = machine_learning
        messages = []
        PhraseAssembler(log_fn=messages.append).assemble(scores, candidates)
        assert any("1 phrase(s) and 2 single keyword(s)" in m for m in messages)


class TestSelectTopTokens:
    def test_top_third_rounded_up(self):
        scores = {f"w{i}": float(i) for i in range(7)}
        assert select_top_tokens(scores) == ["w6", "w5", "w4"]

    def test_cap(self):
        scores = {f"w{i}": float(i) for i in range(100)}
        assert len(select_top_tokens(scores)) == 30
        assert select_top_tokens(scores, cap=2) == ["w99", "w98"]

    def test_ties_go_by_id(self):
        assert select_top_tokens({"b": 1.0, "a": 1.0, "c": 0.5}) == ["a"]
        assert select_top_tokens({"b": 1.0, "a": 1.0, "c": 0.5, "d": 0.1}) == ["a", "b"]

    def test_empty(self):
        assert select_top_tokens({}) == []


class TestRecords:
    def test_records_and_dataframe(self, machine_learning):
        scores, candidates = machine_learning
        result = assemble(scores, candidates)
        result["machine learning_en"] += 1

        records = result.records()
        assert records[0].keyword_id == "machine learning_en"
        assert records[0].value == "machine learning"
        assert records[0].count == 2
        assert records[0].n_words == 2
        assert records[0].kind == "phrase"
        assert {r.kind for r in records[1:]} == {"word"}

        df = result.to_dataframe()
        assert list(df.columns) == ["keyword_id", "value", "language", "count", "n_words", "kind"]
        assert len(df) == 3

    def test_results_can_be_summed(self):
        first, second = KeywordResultSet(), KeywordResultSet()
        first.add_phrase(["machine", "learning"], "en")
        second.add_phrase(["machine", "learning"], "en")
        assert (first + second)["machine learning_en"] == 2
