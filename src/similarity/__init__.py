"""Lexical similarity: tokenizer, TF-IDF index and threshold classifier."""
from similarity.text import STOP_WORDS, normalize_text, tokenize
from similarity.tfidf import (
    TfIdfIndex,
    build_tfidf,
    cosine_similarity,
    score_against_reference,
)
from similarity.classifier import classify_judge_score, classify_similarity

__all__ = [
    "STOP_WORDS",
    "normalize_text",
    "tokenize",
    "TfIdfIndex",
    "build_tfidf",
    "cosine_similarity",
    "score_against_reference",
    "classify_similarity",
    "classify_judge_score",
]
