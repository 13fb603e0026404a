"""Error taxonomy for corpus loading, indexing and search projection."""

from typing import Optional


class CorpusError(Exception):
    """Base class for all corpus and index errors."""

    def __init__(self, message: str, source: Optional[str] = None):
        self.source = source
        if source:
            message = f"{source}: {message}"
        super().__init__(message)


class ParseError(CorpusError):
    """Raised when a record header is missing, malformed or fails to decode."""
    pass


class RecordIOError(CorpusError):
    """Raised when the corpus directory or a record file cannot be read."""
    pass


class RecordNotFoundError(RecordIOError):
    """Raised when an identifier does not resolve to a loaded record."""
    pass


class IndexBuildError(CorpusError):
    """Raised when the search index rejects a document."""
    pass


class ProjectionError(CorpusError):
    """Raised when a raw search hit does not have the expected shape."""
    pass
