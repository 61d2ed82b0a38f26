import numpy as np
import pytest

from complaint_priority.models.features import (
    URGENCY_KEYWORDS,
    CategoryIndex,
    Encoders,
    Vocabulary,
    build_category_index,
    build_encoders,
    build_vocabulary,
    encode_sample,
    tokenize,
)


@pytest.fixture
def encoders():
    samples = [
        {"category": "water_supply", "description": "Burst water main flooding the street", "priority": 0.95},
        {"category": "roads", "description": "Small pothole near the corner", "priority": 0.2},
        {"category": "electricity", "description": "Leak leak pipe", "priority": 0.5},
    ]
    return build_encoders(samples)


def test_tokenize_normalizes_text():
    """Lower-case, punctuation stripped, short tokens dropped"""
    assert tokenize("Burst water-main, flooding THE street!!") == ["burst", "watermain", "flooding", "the", "street"]
    assert tokenize("a an to is the") == ["the"]


def test_tokenize_empty_inputs():
    assert tokenize("") == []
    assert tokenize(None) == []
    assert tokenize("!!! ??") == []


def test_vocabulary_orders_by_frequency_then_first_seen():
    vocab = build_vocabulary(["pipe pipe leak", "leak road", "road pipe"])
    assert list(vocab.word_to_index) == ["pipe", "leak", "road"]
    assert vocab.word_to_index["pipe"] == 0
    assert vocab.size == 3


def test_vocabulary_is_capped_at_sixty_terms():
    words = [f"term{i:03d}" for i in range(100)]
    vocab = build_vocabulary([" ".join(words)])
    assert vocab.size == 60
    assert list(vocab.word_to_index)[:3] == ["term000", "term001", "term002"]


def test_empty_corpus_gives_empty_vocabulary():
    vocab = build_vocabulary([])
    assert vocab.size == 0
    encoders = Encoders(CategoryIndex({"roads": 0}), vocab)
    features = encode_sample("roads", "Burst pipe", encoders)
    assert features.shape == (3,)
    assert encoders.feature_size == 3


def test_category_index_normalization():
    index = build_category_index(["roads", "water", "roads", "parks"])
    assert index.size == 3
    assert index.normalized("roads") == 0.0
    assert index.normalized("water") == 0.5
    assert index.normalized("parks") == 1.0
    assert index.normalized("unheard_of") == 0.0


def test_single_category_does_not_divide_by_zero():
    index = build_category_index(["roads"])
    assert index.normalized("roads") == 0.0


def test_term_frequencies_are_max_normalized(encoders):
    features = encode_sample("electricity", "leak leak pipe", encoders)
    vocab = encoders.vocabulary.word_to_index
    assert features[3 + vocab["leak"]] == pytest.approx(1.0)
    assert features[3 + vocab["pipe"]] == pytest.approx(0.5)


def test_urgency_and_length_scores(encoders):
    features = encode_sample("water_supply", "Burst pipe flooding area", encoders)
    # two urgency words over four tokens: 2 / sqrt(4)
    assert features[1] == pytest.approx(1.0)
    assert features[2] == pytest.approx(4 / 50)

    long_text = " ".join(["word"] * 80)
    assert encode_sample("roads", long_text, encoders)[2] == pytest.approx(1.0)


def test_unknown_category_encodes_to_zero(encoders):
    features = encode_sample("space_debris", "Burst pipe", encoders)
    assert features[0] == 0.0


def test_feature_vector_never_exceeds_38():
    descriptions = [" ".join(f"word{i}x{j}" for j in range(10)) for i in range(10)]
    samples = [{"category": "roads", "description": d, "priority": 0.3} for d in descriptions]
    encoders = build_encoders(samples)
    assert encoders.vocabulary.size == 60
    assert encode_sample("roads", descriptions[0], encoders).shape == (38,)


def test_encoding_is_deterministic(encoders):
    first = encode_sample("roads", "Small pothole near the corner", encoders)
    second = encode_sample("roads", "Small pothole near the corner", encoders)
    assert first.tobytes() == second.tobytes()


def test_no_nan_for_degenerate_text(encoders):
    for text in ["", "   ", "!!!", "a b c"]:
        features = encode_sample("roads", text, encoders)
        assert not np.isnan(features).any()
        assert features[1] == 0.0


def test_urgency_keyword_list():
    for word in ["burst", "flooding", "critical", "emergency", "leak", "fire", "gas", "accident", "hazardous", "contaminated"]:
        assert word in URGENCY_KEYWORDS
    assert len(URGENCY_KEYWORDS) == 38
