# Loads the record corpus and builds the in-memory search index.

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from .corpus_loader import DEFAULT_EXTENSION, Corpus, load_corpus
from .search_index import SearchIndex, build_index

logger = logging.getLogger(__name__)


@dataclass
class IndexedCorpus:
    """A corpus snapshot together with the index built from it."""
    corpus: Corpus
    index: SearchIndex
    duration: float


def create_index(base_dir: Union[str, Path],
                 extension: str = DEFAULT_EXTENSION,
                 strict: bool = False) -> IndexedCorpus:
    """Load every record under ``base_dir`` and index it.

    Raises:
        RecordIOError: If the directory cannot be read
        CorpusError: In strict mode, for the first bad record
        IndexBuildError: If the index rejects a document
    """
    logger.info("Building search index...")
    started = time.perf_counter()

    corpus = load_corpus(base_dir, extension=extension, strict=strict)
    index = build_index(corpus.documents)

    duration = time.perf_counter() - started
    logger.info(f"Search index built from {index.doc_count} documents in {duration * 1000:.1f}ms")
    for error in corpus.errors:
        logger.error(f"Record {error.source} was not indexed: {error.message}")

    return IndexedCorpus(corpus=corpus, index=index, duration=duration)
