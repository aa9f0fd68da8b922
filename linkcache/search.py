"""Relevance scoring for cache search results."""
import re
from typing import List, Protocol

from rapidfuzz import fuzz

from linkcache.link import Link


class Scorer(Protocol):
    """Protocol for relevance scorers to allow extensibility."""

    def tokenize(self, text: str) -> List[str]:
        """Split text into lowercase search terms."""
        ...

    def score(self, terms: List[str], link: Link) -> float:
        """Score a link against query terms.

        Args:
            terms: Tokenized query
            link: Candidate link

        Returns:
            Relevance from 0 (no match) to 100 (every term matches the title)
        """
        ...


class FuzzyScorer:
    """Typo- and order-tolerant scorer over link titles and subtitles.

    Each query term is compared with every word of the title and the
    subtitle and keeps its best similarity; subtitle hits are discounted
    by ``subtitle_weight``. The link's score is the mean over terms, so
    word order does not matter and a misspelt or partial term still
    contributes most of its weight.
    """

    def __init__(self, title_weight: float = 1.0, subtitle_weight: float = 0.8):
        self.title_weight = title_weight
        self.subtitle_weight = subtitle_weight

    def tokenize(self, text: str) -> List[str]:
        """Tokenize text into words.

        Args:
            text: Text to tokenize

        Returns:
            List of lowercase words
        """
        return re.findall(r"\w+", text.lower())

    def _similarity(self, term: str, word: str) -> float:
        """Similarity of a query term to one word, 0-100.

        partial_ratio lets a prefix or fragment ("vis") match a longer
        word ("visual"); ratio covers misspellings of similar length.
        """
        score = fuzz.ratio(term, word)
        if len(term) <= len(word):
            score = max(score, fuzz.partial_ratio(term, word))
        return score

    def _best_match(self, term: str, words: List[str]) -> float:
        if not words:
            return 0.0
        return max(self._similarity(term, word) for word in words)

    def score(self, terms: List[str], link: Link) -> float:
        if not terms:
            return 0.0

        title_words = self.tokenize(link.title or "")
        subtitle_words = self.tokenize(link.subtitle or "")

        total = 0.0
        for term in terms:
            total += max(
                self.title_weight * self._best_match(term, title_words),
                self.subtitle_weight * self._best_match(term, subtitle_words),
            )

        return round(total / len(terms), 2)
