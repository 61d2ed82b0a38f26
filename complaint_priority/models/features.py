"""Feature encoding for complaint descriptions.

A complaint ``{category, description}`` becomes a fixed-width float vector:

  [category_index / (n_categories - 1),
   urgency keyword density,
   length score,
   up to 35 max-normalised term frequencies from the training vocabulary]

The vocabulary and category index are fitted once per training run and kept
together in ``Encoders``; inference must use the exact bundle the network was
trained against. Both training and inference tokenize through ``tokenize``.
"""

from __future__ import annotations

import math
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Sequence

import numpy as np


VOCABULARY_SIZE = 60
TEXT_FEATURES = 35
MIN_TOKEN_LENGTH = 3
LENGTH_NORMALIZER = 50

URGENCY_KEYWORDS = frozenset([
    "burst", "flooding", "critical", "emergency", "dangerous", "urgent",
    "toxic", "hazardous", "collapse", "explosion", "leak", "contaminated",
    "sparking", "exposed", "blocking", "overflow", "damage", "severe",
    "major", "broken", "failed", "failure", "accident", "injury", "injured",
    "fire", "smoke", "gas", "electrical", "water", "sewage", "health",
    "safety", "risk", "threat", "immediate", "multiple", "widespread",
])

_STRIP_RE = re.compile(r"[^\w\s]")


def tokenize(text: str | None) -> List[str]:
    """Lower-case, drop punctuation, split on whitespace, keep tokens of 3+ chars."""
    if not text:
        return []
    cleaned = _STRIP_RE.sub("", str(text).lower())
    return [tok for tok in cleaned.split() if len(tok) >= MIN_TOKEN_LENGTH]


@dataclass(frozen=True)
class Vocabulary:
    word_to_index: Mapping[str, int] = field(default_factory=dict)

    @property
    def size(self) -> int:
        return len(self.word_to_index)


@dataclass(frozen=True)
class CategoryIndex:
    mapping: Mapping[str, int] = field(default_factory=dict)

    @property
    def size(self) -> int:
        return len(self.mapping)

    def normalized(self, category: str) -> float:
        # Unseen categories share slot 0 with the first training category.
        idx = self.mapping.get(category, 0)
        return idx / max(self.size - 1, 1)


@dataclass(frozen=True)
class Encoders:
    category: CategoryIndex
    vocabulary: Vocabulary

    @property
    def feature_size(self) -> int:
        return 3 + min(TEXT_FEATURES, self.vocabulary.size)


def build_vocabulary(descriptions: Iterable[str | None], max_size: int = VOCABULARY_SIZE) -> Vocabulary:
    """Keep the ``max_size`` most frequent terms of the corpus.

    Equal counts keep first-encounter order: ``Counter`` remembers insertion
    order and ``sorted`` is stable.
    """
    counts: Counter[str] = Counter()
    for description in descriptions:
        counts.update(tokenize(description))
    ranked = sorted(counts.items(), key=lambda item: -item[1])[:max_size]
    return Vocabulary({word: idx for idx, (word, _) in enumerate(ranked)})


def build_category_index(categories: Iterable[str]) -> CategoryIndex:
    mapping: Dict[str, int] = {}
    for category in categories:
        if category not in mapping:
            mapping[category] = len(mapping)
    return CategoryIndex(mapping)


def build_encoders(samples: Sequence[Mapping[str, object]]) -> Encoders:
    return Encoders(
        category=build_category_index(str(s["category"]) for s in samples),
        vocabulary=build_vocabulary(s.get("description") or "" for s in samples),
    )


def term_frequencies(tokens: Sequence[str], vocabulary: Vocabulary) -> np.ndarray:
    vector = np.zeros(vocabulary.size, dtype=np.float64)
    for tok in tokens:
        idx = vocabulary.word_to_index.get(tok)
        if idx is not None:
            vector[idx] += 1.0
    peak = max(vector.max(initial=0.0), 1.0)
    return vector / peak


def urgency_score(tokens: Sequence[str]) -> float:
    if not tokens:
        return 0.0
    hits = sum(1 for tok in tokens if tok in URGENCY_KEYWORDS)
    return hits / math.sqrt(len(tokens))


def length_score(tokens: Sequence[str]) -> float:
    return min(len(tokens) / LENGTH_NORMALIZER, 1.0)


def encode_sample(category: str, description: str | None, encoders: Encoders) -> np.ndarray:
    tokens = tokenize(description)
    text_vector = term_frequencies(tokens, encoders.vocabulary)[:TEXT_FEATURES]
    head = np.array(
        [encoders.category.normalized(category), urgency_score(tokens), length_score(tokens)],
        dtype=np.float64,
    )
    return np.concatenate([head, text_vector]).astype(np.float32)


def encode_samples(samples: Sequence[Mapping[str, object]], encoders: Encoders) -> np.ndarray:
    rows = [encode_sample(str(s["category"]), s.get("description"), encoders) for s in samples]  # type: ignore[arg-type]
    if not rows:
        return np.zeros((0, encoders.feature_size), dtype=np.float32)
    return np.stack(rows)


__all__ = [
    "URGENCY_KEYWORDS",
    "Vocabulary",
    "CategoryIndex",
    "Encoders",
    "tokenize",
    "build_vocabulary",
    "build_category_index",
    "build_encoders",
    "encode_sample",
    "encode_samples",
]
