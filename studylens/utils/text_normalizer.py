"""Text normalization utilities for extracted study material.

This module handles three concerns shared by ingestion and prediction:

1. **Whitespace and token accounting** -- collapsing runs of whitespace
   and counting whitespace-delimited words, so the word count stored on a
   document always agrees with its stored content.

2. **Budgeting** -- truncating text to a character budget and estimating
   token usage (``ceil(len / 4)``) for analysis metadata.

3. **Topic deduplication** -- heading lines pulled from different chunks
   often differ only in case or punctuation ("Chapter 2: Matrices" vs
   "CHAPTER 2 - MATRICES").  :func:`dedupe_topics` folds those together
   with rapidfuzz so topic frequencies are not split across spellings.
"""

import hashlib
import math
import re

from rapidfuzz import fuzz

_WHITESPACE_RE = re.compile(r"\s+")


def collapse_whitespace(text: str) -> str:
    """Replace every whitespace run with a single space and strip the ends."""
    return _WHITESPACE_RE.sub(" ", text).strip()


def count_words(text: str) -> int:
    """Count whitespace-delimited, non-empty tokens."""
    return len(text.split())


def truncate(text: str, limit: int) -> str:
    """Return at most *limit* characters of *text*."""
    if limit <= 0:
        return ""
    return text[:limit]


def estimate_tokens(text: str) -> int:
    """Rough token estimate: one token per four characters, rounded up."""
    return math.ceil(len(text) / 4)


def stable_hash(value: str, length: int = 16) -> str:
    """Short, deterministic SHA-256 digest used in cache keys."""
    return hashlib.sha256(value.encode("utf-8")).hexdigest()[:length]


def normalize_topic(topic: str) -> str:
    """Lower-case a topic heading and strip punctuation noise for comparison."""
    cleaned = re.sub(r"[^\w\s]", " ", topic.lower())
    return collapse_whitespace(cleaned)


def dedupe_topics(topics: list[str], threshold: float = 0.9) -> list[str]:
    """Drop topics that are near-duplicates of an earlier entry.

    Args:
        topics: Candidate topic strings in priority order.
        threshold: Minimum similarity (0.0--1.0) for two topics to be
            considered the same.

    Returns:
        The first spelling of every distinct topic, order preserved.
    """
    kept: list[str] = []
    kept_normalized: list[str] = []
    for topic in topics:
        norm = normalize_topic(topic)
        if not norm:
            continue
        if any(fuzz.ratio(norm, other) >= threshold * 100 for other in kept_normalized):
            continue
        kept.append(topic)
        kept_normalized.append(norm)
    return kept
