"""TF-IDF weighting and cosine similarity over small ad hoc corpora.

Vectors are sparse dicts of term -> weight. The corpus is usually just two
documents (the user's input and one feature), so there is no vocabulary
matrix; everything is computed directly from token counts.
"""
from __future__ import annotations

import math
from collections import Counter
from typing import Sequence

from similarity.text import tokenize

SparseVector = dict[str, float]


def build_tfidf(documents: Sequence[str]) -> list[SparseVector]:
    """Build one TF-IDF vector per document.

    tf(t)  = count(t) / |tokens|
    idf(t) = ln((N + 1) / (df(t) + 1)) + 1
    """
    tokenized = [tokenize(doc) for doc in documents]
    n_docs = len(tokenized)

    doc_freq: Counter[str] = Counter()
    for tokens in tokenized:
        doc_freq.update(set(tokens))

    vectors: list[SparseVector] = []
    for tokens in tokenized:
        counts = Counter(tokens)
        total = len(tokens)
        vector: SparseVector = {}
        for term, count in counts.items():
            idf = math.log((n_docs + 1) / (doc_freq[term] + 1)) + 1
            vector[term] = (count / total) * idf
        vectors.append(vector)

    return vectors


def cosine_similarity(vec_a: SparseVector, vec_b: SparseVector) -> float:
    """Cosine of the angle between two sparse vectors; 0.0 if either is empty."""
    if not vec_a or not vec_b:
        return 0.0

    # Iterate the smaller vector for the dot product
    small, large = (vec_a, vec_b) if len(vec_a) <= len(vec_b) else (vec_b, vec_a)
    dot = sum(weight * large.get(term, 0.0) for term, weight in small.items())

    norm_a = math.sqrt(sum(w * w for w in vec_a.values()))
    norm_b = math.sqrt(sum(w * w for w in vec_b.values()))
    if norm_a == 0 or norm_b == 0:
        return 0.0

    return dot / (norm_a * norm_b)


class TfIdfIndex:
    """TF-IDF vectors for a fixed, ordered document set."""

    def __init__(self, documents: Sequence[str]):
        self.documents = list(documents)
        self.vectors = build_tfidf(self.documents)

    def __len__(self) -> int:
        return len(self.documents)

    def similarity(self, i: int, j: int) -> float:
        return cosine_similarity(self.vectors[i], self.vectors[j])


def score_against_reference(text: str, reference: str) -> float:
    """Similarity of one text to a reference document in a two-document corpus."""
    index = TfIdfIndex([reference, text])
    # Floating error can push identical vectors a hair past 1.0
    return min(1.0, max(0.0, index.similarity(0, 1)))
