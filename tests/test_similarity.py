import numpy as np
import pytest

from talent_match.pipeline_types import Talent
from talent_match.similarity import DimensionMismatchError, cosine_similarity, rank


def test_cosine_self_similarity_is_one():
    v = [0.3, -1.2, 4.0, 0.5]
    assert abs(cosine_similarity(v, v) - 1.0) < 1e-9


def test_cosine_is_symmetric():
    a = np.array([1.0, 2.0, 3.0])
    b = np.array([-2.0, 0.5, 1.0])
    assert cosine_similarity(a, b) == cosine_similarity(b, a)


def test_cosine_orthogonal_and_opposite():
    assert abs(cosine_similarity([1, 0], [0, 1])) < 1e-12
    assert abs(cosine_similarity([1, 0], [-3, 0]) + 1.0) < 1e-12


def test_cosine_zero_vector_is_zero_not_nan():
    assert cosine_similarity([0.0, 0.0], [1.0, 2.0]) == 0.0
    assert cosine_similarity([1.0, 2.0], [0.0, 0.0]) == 0.0


def test_cosine_rejects_dimension_mismatch():
    with pytest.raises(DimensionMismatchError):
        cosine_similarity([1.0, 0.0], [1.0, 0.0, 0.0])
    # still a ValueError for callers that only know the builtin
    with pytest.raises(ValueError):
        cosine_similarity([1.0], [1.0, 2.0])


def test_rank_sorts_descending_and_sets_scores():
    cands = [
        (Talent(id="a"), [0.0, 1.0]),
        (Talent(id="b"), [1.0, 0.0]),
        (Talent(id="c"), [1.0, 1.0]),
    ]
    ranked = rank([1.0, 0.0], cands)
    assert [t.id for t in ranked] == ["b", "c", "a"]
    scores = [t.score for t in ranked]
    assert scores == sorted(scores, reverse=True)
    assert abs(ranked[1].score - (1 / np.sqrt(2))) < 1e-6


def test_rank_ties_keep_input_order():
    cands = [(Talent(id=str(i)), [1.0, 0.0]) for i in range(5)]
    cands.append((Talent(id="zero"), [0.0, 0.0]))
    cands.insert(2, (Talent(id="best"), [2.0, 0.0]))
    ranked = rank([3.0, 0.0], cands)
    # all non-zero vectors have similarity 1.0, so input order holds among them
    assert [t.id for t in ranked] == ["0", "1", "best", "2", "3", "4", "zero"]
    assert ranked[-1].score == 0.0


def test_rank_does_not_mutate_inputs():
    talent = Talent(id="a")
    rank([1.0, 0.0], [(talent, [1.0, 0.0])])
    assert talent.score is None


def test_rank_rejects_mismatched_candidate_vector():
    cands = [(Talent(id="a"), [1.0, 0.0]), (Talent(id="b"), [1.0, 0.0, 0.0])]
    with pytest.raises(DimensionMismatchError):
        rank([1.0, 0.0], cands)


def test_rank_empty():
    assert rank([1.0, 0.0], []) == []
