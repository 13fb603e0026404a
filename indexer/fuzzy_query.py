"""Fuzzy query engine.

Query terms are matched against the FTS5 term dictionary within a bounded
edit distance (optimal string alignment, so an adjacent transposition costs
one edit). Each expansion is scored with FTS5 ``bm25()`` and damped by its
distance; hits carry ``snippet()`` fragments for every field that matched.
"""

import html
import logging
import time
from collections import defaultdict
from typing import Dict, List, Optional, Set, Tuple

from .models import SearchHit, SearchResult
from .search_index import MATCH_END, MATCH_START, SearchIndex, analyze

logger = logging.getLogger(__name__)

MAX_FUZZINESS = 2
MAX_SNIPPET_TOKENS = 64
DEFAULT_SNIPPET_TOKENS = 32


def edit_distance(a: str, b: str, max_distance: int) -> Optional[int]:
    """Optimal string alignment distance, or None if above ``max_distance``."""
    if a == b:
        return 0
    la, lb = len(a), len(b)
    if abs(la - lb) > max_distance:
        return None

    prev2: List[int] = []
    prev = list(range(lb + 1))
    prev_min = 0
    for i in range(1, la + 1):
        cur = [i] + [0] * lb
        row_min = i
        for j in range(1, lb + 1):
            cost = 0 if a[i - 1] == b[j - 1] else 1
            value = min(prev[j] + 1, cur[j - 1] + 1, prev[j - 1] + cost)
            if i > 1 and j > 1 and a[i - 1] == b[j - 2] and a[i - 2] == b[j - 1]:
                value = min(value, prev2[j - 2] + 1)
            cur[j] = value
            if value < row_min:
                row_min = value
        # a transposition can reach back two rows
        if row_min > max_distance and prev_min > max_distance:
            return None
        prev2, prev, prev_min = prev, cur, row_min

    distance = prev[lb]
    return distance if distance <= max_distance else None


def marked_spans(marked: str) -> List[Tuple[int, int]]:
    """Character spans of the marked regions, relative to the unmarked text."""
    spans = []
    offset = 0
    start = None
    for ch in marked:
        if ch == MATCH_START:
            start = offset
        elif ch == MATCH_END:
            if start is not None:
                spans.append((start, offset))
            start = None
        else:
            offset += 1
    return spans


def render_fragment(marked: str, pre_tag: str = "<mark>", post_tag: str = "</mark>") -> str:
    """HTML-escape a marked snippet and swap the markers for tags."""
    return html.escape(marked).replace(MATCH_START, pre_tag).replace(MATCH_END, post_tag)


class FuzzyQueryEngine:
    """Read-only query path over a built SearchIndex."""

    def __init__(self, index: SearchIndex, fuzziness: int = 1, prefix_length: int = 0,
                 snippet_tokens: int = DEFAULT_SNIPPET_TOKENS,
                 pre_tag: str = "<mark>", post_tag: str = "</mark>"):
        if not 0 <= fuzziness <= MAX_FUZZINESS:
            raise ValueError(f"fuzziness must be between 0 and {MAX_FUZZINESS}")
        if prefix_length < 0:
            raise ValueError("prefix_length must not be negative")
        if not 1 <= snippet_tokens <= MAX_SNIPPET_TOKENS:
            raise ValueError(f"snippet_tokens must be between 1 and {MAX_SNIPPET_TOKENS}")

        self.index = index
        self.fuzziness = fuzziness
        self.prefix_length = prefix_length
        self.snippet_tokens = snippet_tokens
        self.pre_tag = pre_tag
        self.post_tag = post_tag

    def expand(self, term: str) -> List[Tuple[str, int]]:
        """Index terms within edit distance of ``term``, sorted by (distance, term)."""
        prefix = term[:self.prefix_length]
        matches = []
        for candidate in self.index.terms():
            if prefix and not candidate.startswith(prefix):
                continue
            distance = edit_distance(term, candidate, self.fuzziness)
            if distance is not None:
                matches.append((candidate, distance))
        matches.sort(key=lambda m: (m[1], m[0]))
        return matches

    def search(self, query: Optional[str], limit: Optional[int] = None) -> SearchResult:
        """Run a fuzzy query against every indexed field.

        Args:
            query: Free text; empty or stop-word-only queries match nothing
            limit: Optional cap on returned hits, ``total`` is unaffected

        Returns:
            SearchResult with hits ordered by score, then key
        """
        started = time.perf_counter()
        query = query if isinstance(query, str) else ""

        terms: List[str] = []
        for token in analyze(query):
            if token.term not in terms:
                terms.append(token.term)

        if not terms:
            return SearchResult(query=query, total=0, hits=[], took=time.perf_counter() - started)

        scores: Dict[str, float] = defaultdict(float)
        matched: Dict[str, Set[str]] = defaultdict(set)
        expansions: List[str] = []

        for query_term in terms:
            by_distance: Dict[int, List[str]] = defaultdict(list)
            for term, distance in self.expand(query_term):
                by_distance[distance].append(term)
                if term not in expansions:
                    expansions.append(term)

            for distance, group in sorted(by_distance.items()):
                for key, score in self.index.match(group):
                    scores[key] += score / (1 + distance)
                    matched[key].add(query_term)

        hits = [
            SearchHit(key=key, score=score * len(matched[key]) / len(terms),
                      fields=self.index.stored_fields(key))
            for key, score in scores.items()
        ]
        hits.sort(key=lambda h: (-h.score, h.key))
        total = len(hits)
        if limit is not None:
            hits = hits[:max(0, limit)]

        for hit in hits:
            marked = self.index.highlight(hit.key, expansions, self.snippet_tokens)
            for field_name in sorted(marked):
                full, snippet = marked[field_name]
                hit.spans[field_name] = marked_spans(full)
                hit.highlights[field_name] = [render_fragment(snippet, self.pre_tag, self.post_tag)]

        took = time.perf_counter() - started
        logger.debug(f"Query {query!r} matched {total} documents in {took * 1000:.2f}ms")
        return SearchResult(query=query, total=total, hits=hits, took=took)


def search(index: SearchIndex, query: Optional[str], **kwargs) -> SearchResult:
    """Convenience wrapper building a default engine for one query."""
    limit = kwargs.pop('limit', None)
    return FuzzyQueryEngine(index, **kwargs).search(query, limit=limit)
