"""Decision record indexing and fuzzy search.

Parses records, loads a directory of them and builds the in-memory index
served by the HTTP layer.
"""

from .errors import (
    CorpusError,
    ParseError,
    RecordIOError,
    RecordNotFoundError,
    IndexBuildError,
    ProjectionError
)
from .models import Document, RecordLoadError, SearchHit, SearchResult
from .record_parser import RecordHeader, ParsedRecord, parse_record, parse_record_bytes, read_record
from .corpus_loader import Corpus, load_corpus
from .search_index import SearchIndex, analyze, build_index
from .fuzzy_query import FuzzyQueryEngine, edit_distance, search
from .projection import project_hit, project_hits
from .startup import IndexedCorpus, create_index

__all__ = [
    'CorpusError',
    'ParseError',
    'RecordIOError',
    'RecordNotFoundError',
    'IndexBuildError',
    'ProjectionError',
    'Document',
    'RecordLoadError',
    'SearchHit',
    'SearchResult',
    'RecordHeader',
    'ParsedRecord',
    'parse_record',
    'parse_record_bytes',
    'read_record',
    'Corpus',
    'load_corpus',
    'SearchIndex',
    'analyze',
    'build_index',
    'FuzzyQueryEngine',
    'edit_distance',
    'search',
    'project_hit',
    'project_hits',
    'IndexedCorpus',
    'create_index'
]
