"""In-memory SQLite FTS5 index over decision records.

Documents go into a ``records`` FTS5 table keyed by an UNINDEXED ``key``
column, with their projectable fields kept in a plain ``documents`` table.
The index is populated once and then frozen; after ``freeze()`` it is only
read. Access to the shared connection is serialized with a lock.
"""

import logging
import re
import sqlite3
import threading
from dataclasses import dataclass
from typing import Dict, Iterable, List, Sequence, Tuple

from .errors import IndexBuildError
from .models import Document, normalize_key

logger = logging.getLogger(__name__)

# Matches unicode61 token characters (letters and digits, no underscore)
TOKEN_PATTERN = re.compile(r"[^\W_]+", re.UNICODE)

# Classic English stop list, applied to query text
STOP_WORDS = frozenset("""
a an and are as at be but by for if in into is it no not of on or such
that the their then there these they this to was will with
""".split())

INDEXED_FIELDS = ('title', 'status', 'body', 'number')
STORED_FIELDS = ('number', 'title', 'status')

FIELD_BOOSTS = {
    'title': 2.0,
    'status': 1.5,
    'body': 1.0,
    'number': 1.0,
}

SCHEMA = """
CREATE TABLE documents (
    key TEXT PRIMARY KEY,
    number INTEGER NOT NULL,
    title TEXT NOT NULL,
    status TEXT NOT NULL
);
CREATE VIRTUAL TABLE records USING fts5(
    key UNINDEXED, title, status, body, number,
    tokenize = 'unicode61 remove_diacritics 0'
);
CREATE VIRTUAL TABLE records_vocab USING fts5vocab(records, 'row');
"""

# Highlight markers; html.escape leaves control characters alone
MATCH_START = "\x02"
MATCH_END = "\x03"


@dataclass(frozen=True)
class Token:
    term: str
    start: int
    end: int


def analyze(text: str) -> List[Token]:
    """Split query text into lower-cased terms, dropping stop words."""
    tokens = []
    for m in TOKEN_PATTERN.finditer(text):
        term = m.group(0).lower()
        if term in STOP_WORDS:
            continue
        tokens.append(Token(term, m.start(), m.end()))
    return tokens


def match_expression(terms: Iterable[str]) -> str:
    """OR together quoted FTS5 terms."""
    return " OR ".join('"' + term.replace('"', '""') + '"' for term in terms)


def column_index(field_name: str) -> int:
    # column 0 is the unindexed key
    return INDEXED_FIELDS.index(field_name) + 1


class SearchIndex:
    """FTS5-backed term index with stored scalar fields."""

    def __init__(self):
        self.conn = sqlite3.connect(":memory:", check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self.conn.executescript(SCHEMA)
        self._lock = threading.Lock()
        self._frozen = False
        self._vocabulary: Tuple[str, ...] = ()

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def doc_count(self) -> int:
        with self._lock:
            return self.conn.execute("SELECT COUNT(*) FROM documents").fetchone()[0]

    def __len__(self) -> int:
        return self.doc_count

    def __contains__(self, key: str) -> bool:
        with self._lock:
            row = self.conn.execute("SELECT 1 FROM documents WHERE key=?", (key,)).fetchone()
        return row is not None

    def freeze(self) -> None:
        """Commit, snapshot the term dictionary and mark the index read-only."""
        with self._lock:
            self.conn.commit()
            rows = self.conn.execute("SELECT term FROM records_vocab ORDER BY term").fetchall()
            self._vocabulary = tuple(row['term'] for row in rows)
            self._frozen = True

    def close(self) -> None:
        with self._lock:
            self.conn.close()

    def index(self, key: str, document: Document) -> None:
        """Add a document under ``key``, replacing any prior entry."""
        if self._frozen:
            raise IndexBuildError("index is read-only", source=key)
        if not isinstance(document, Document):
            raise IndexBuildError(f"cannot index {type(document).__name__}", source=key)
        if not key:
            raise IndexBuildError("empty index key", source=document.identifier or None)

        with self._lock:
            try:
                existing = self.conn.execute("SELECT 1 FROM documents WHERE key=?", (key,)).fetchone()
                if existing:
                    logger.warning(f"Replacing existing index entry for {key}")
                    self.conn.execute("DELETE FROM records WHERE key=?", (key,))

                self.conn.execute(
                    "INSERT OR REPLACE INTO documents(key, number, title, status) VALUES(?,?,?,?)",
                    (key, document.number, document.title, document.status)
                )
                self.conn.execute(
                    "INSERT INTO records(key, title, status, body, number) VALUES(?,?,?,?,?)",
                    (key, document.title, document.status, document.body, str(document.number))
                )
            except sqlite3.Error as e:
                raise IndexBuildError(f"index rejected document: {e}", source=key) from e

    # Read side

    def terms(self) -> Sequence[str]:
        """Indexed terms in sorted order."""
        if self._frozen:
            return self._vocabulary
        with self._lock:
            rows = self.conn.execute("SELECT term FROM records_vocab ORDER BY term").fetchall()
        return tuple(row['term'] for row in rows)

    def doc_freq(self, term: str) -> int:
        with self._lock:
            row = self.conn.execute("SELECT doc FROM records_vocab WHERE term=?", (term,)).fetchone()
        return row['doc'] if row else 0

    def match(self, terms: Sequence[str]) -> List[Tuple[str, float]]:
        """BM25 scores (higher is better) of documents containing any of ``terms``."""
        if not terms:
            return []
        weights = ", ".join(str(FIELD_BOOSTS[name]) for name in INDEXED_FIELDS)
        sql = f"""
        SELECT key, bm25(records, 0.0, {weights}) AS score
        FROM records
        WHERE records MATCH ?
        ORDER BY score, key
        """
        with self._lock:
            rows = self.conn.execute(sql, (match_expression(terms),)).fetchall()
        return [(row['key'], -row['score']) for row in rows]

    def highlight(self, key: str, terms: Sequence[str], snippet_tokens: int) -> Dict[str, Tuple[str, str]]:
        """Per field: (fully marked text, marked snippet) for a matching document.

        Fields without a match are left out. Markers are MATCH_START/MATCH_END.
        """
        columns = []
        for name in INDEXED_FIELDS:
            col = column_index(name)
            columns.append(f"highlight(records, {col}, :start, :end) AS {name}_full")
            columns.append(f"snippet(records, {col}, :start, :end, :ellipsis, :tokens) AS {name}_snippet")
        sql = f"SELECT {', '.join(columns)} FROM records WHERE records MATCH :expr AND key = :key"
        params = {
            'start': MATCH_START,
            'end': MATCH_END,
            'ellipsis': "…",
            'tokens': snippet_tokens,
            'expr': match_expression(terms),
            'key': key,
        }
        with self._lock:
            row = self.conn.execute(sql, params).fetchone()

        result: Dict[str, Tuple[str, str]] = {}
        if row is None:
            return result
        for name in INDEXED_FIELDS:
            full = row[f"{name}_full"] or ""
            if MATCH_START in full:
                result[name] = (full, row[f"{name}_snippet"] or "")
        return result

    def stored_fields(self, key: str) -> Dict[str, object]:
        """The projectable fields of a key."""
        with self._lock:
            row = self.conn.execute(
                "SELECT number, title, status FROM documents WHERE key=?", (key,)
            ).fetchone()
        if row is None:
            raise KeyError(key)
        return {name: row[name] for name in STORED_FIELDS}

    def keys(self) -> List[str]:
        with self._lock:
            rows = self.conn.execute("SELECT key FROM documents ORDER BY key").fetchall()
        return [row['key'] for row in rows]


def build_index(documents: Iterable[Document]) -> SearchIndex:
    """Index every document under its normalized key and freeze the result.

    Raises:
        IndexBuildError: If any document is rejected
    """
    index = SearchIndex()
    count = 0
    for document in documents:
        if not isinstance(document, Document):
            raise IndexBuildError(f"cannot index {type(document).__name__}")
        index.index(normalize_key(document.identifier), document)
        count += 1

    index.freeze()
    logger.debug(f"Indexed {count} documents under {index.doc_count} keys")
    return index
