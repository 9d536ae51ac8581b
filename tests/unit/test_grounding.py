"""Tests for lexical grounding."""

from scheme_assist.generation.grounding import content_tokens, grounding_score, overlap_ratio


def test_content_tokens_drop_stopwords_and_keep_numbers():
    tokens = content_tokens("You can get 6000 rupees in 3 instalments")
    assert tokens == {"6000", "rupees", "3", "instalments", "get"}


def test_overlap_ratio_is_share_of_answer_tokens():
    doc = "Farmers receive 6000 rupees per year"
    assert overlap_ratio("Farmers receive 6000 rupees", doc) == 1.0
    assert overlap_ratio("Farmers receive free tractors", doc) == 0.5


def test_empty_answer_is_ungrounded():
    assert overlap_ratio("the and of", "anything at all") == 0.0


def test_grounding_score_uses_best_document(sample_documents):
    answer = "PMAY-G helps rural households build a pucca house."
    assert grounding_score(answer, sample_documents) > 0.8
    assert grounding_score(answer, []) == 0.0
