"""Corpus loader.

Enumerates the record files in a directory and parses each one into a
Document. Failures are isolated per record unless strict loading is asked
for, in which case the first failure aborts the load.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List, Union

from .errors import CorpusError, RecordIOError, RecordNotFoundError
from .models import Document, RecordLoadError, normalize_key
from .record_parser import read_record

logger = logging.getLogger(__name__)

DEFAULT_EXTENSION = ".yaml"


@dataclass
class Corpus:
    """Snapshot of the records found in a directory."""
    base_dir: Path
    documents: List[Document] = field(default_factory=list)
    errors: List[RecordLoadError] = field(default_factory=list)
    ignored: int = 0

    def __post_init__(self):
        self._by_identifier: Dict[str, Document] = {}
        self._by_key: Dict[str, Document] = {}
        for doc in self.documents:
            self._by_identifier[doc.identifier] = doc
            # last document per key wins, as in the index
            self._by_key[doc.key] = doc

    def __len__(self) -> int:
        return len(self.documents)

    def __iter__(self) -> Iterator[Document]:
        return iter(self.documents)

    @property
    def skipped(self) -> int:
        """Number of eligible records that failed to load."""
        return len(self.errors)

    def get(self, identifier: str) -> Document:
        """Look a record up by file name, falling back to the normalized key."""
        if (not identifier or identifier in ('.', '..') or '/' in identifier
                or '\\' in identifier or Path(identifier).name != identifier):
            raise RecordNotFoundError("invalid record identifier", source=identifier)

        doc = self._by_identifier.get(identifier) or self._by_key.get(normalize_key(identifier))
        if doc is None:
            raise RecordNotFoundError("record not found", source=identifier)
        return doc


def is_eligible(entry: os.DirEntry, extension: str = DEFAULT_EXTENSION) -> bool:
    """Regular files carrying the record extension."""
    if not entry.is_file():
        return False
    return entry.name.lower().endswith(extension.lower())


def _list_entries(base_dir: Path) -> List[os.DirEntry]:
    try:
        with os.scandir(base_dir) as it:
            return sorted(it, key=lambda e: e.name)
    except OSError as e:
        raise RecordIOError(f"cannot list corpus directory: {e}", source=str(base_dir)) from e


def load_corpus(directory: Union[str, Path],
                extension: str = DEFAULT_EXTENSION,
                strict: bool = False) -> Corpus:
    """Load every eligible record in a directory.

    Args:
        directory: Directory holding the record files
        extension: File name suffix that marks a record
        strict: Raise on the first bad record instead of skipping it

    Returns:
        Corpus with the loaded documents and the per-record errors

    Raises:
        RecordIOError: If the directory itself cannot be read
        CorpusError: In strict mode, the first record failure
    """
    base_dir = Path(directory)
    documents: List[Document] = []
    errors: List[RecordLoadError] = []
    ignored = 0

    for entry in _list_entries(base_dir):
        if not is_eligible(entry, extension):
            logger.debug(f"Ignoring {entry.name}")
            ignored += 1
            continue

        try:
            documents.append(read_record(entry.path, identifier=entry.name))
        except CorpusError as e:
            if strict:
                raise
            logger.warning(f"Skipping record {entry.name}: {e}")
            errors.append(RecordLoadError(
                source=entry.name,
                error_type=type(e).__name__,
                message=str(e)
            ))

    logger.info(f"Loaded {len(documents)} records from {base_dir} ({len(errors)} skipped)")
    return Corpus(base_dir=base_dir, documents=documents, errors=errors, ignored=ignored)
