"""HTTP API for browsing and searching decision records.

The corpus and the search index are built once, synchronously, inside
``create_app`` and live on ``app.state`` for the lifetime of the process.
Handlers only read them.
"""

import datetime
import logging
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request, Response

from config import ServerConfig
from indexer import (
    Corpus,
    FuzzyQueryEngine,
    ProjectionError,
    RecordNotFoundError,
    create_index,
    project_hit
)
from observability import (
    log_performance,
    record_corpus_metrics,
    record_search_metrics,
    setup_prometheus_metrics,
    update_system_metrics
)
from .schemas import (
    DetailedHealthResponse,
    HealthResponse,
    LoadErrorItem,
    RecordDetail,
    RecordList,
    RecordSummary,
    SearchResponse,
    SearchResultItem
)

logger = logging.getLogger(__name__)

APP_VERSION = "0.1.0"

router = APIRouter()


def get_corpus(request: Request) -> Corpus:
    """Dependency returning the corpus snapshot."""
    return request.app.state.corpus


def get_engine(request: Request) -> FuzzyQueryEngine:
    """Dependency returning the query engine."""
    return request.app.state.engine


def _now() -> str:
    return datetime.datetime.now(datetime.timezone.utc).isoformat()


@router.get("/favicon.ico", include_in_schema=False)
def favicon():
    return Response(status_code=204)


@router.get("/health", response_model=HealthResponse)
def health(corpus: Corpus = Depends(get_corpus)):
    return HealthResponse(status="ok", time=_now(), documents=len(corpus), skipped=corpus.skipped)


@router.get("/health/detailed", response_model=DetailedHealthResponse)
def detailed_health(corpus: Corpus = Depends(get_corpus)):
    """Health check including the records skipped at startup."""
    return DetailedHealthResponse(
        status="degraded" if corpus.skipped else "ok",
        time=_now(),
        documents=len(corpus),
        skipped=corpus.skipped,
        base_dir=str(corpus.base_dir),
        errors=[LoadErrorItem(**error.to_dict()) for error in corpus.errors],
        system=update_system_metrics()
    )


@log_performance(threshold_ms=250.0)
def _run_search(engine: FuzzyQueryEngine, q: str, limit: Optional[int]) -> SearchResponse:
    result = engine.search(q, limit=limit)

    items = []
    for hit in result.hits:
        try:
            doc = project_hit(hit)
        except ProjectionError as e:
            logger.warning(f"Dropping search hit {hit.key}: {e}")
            continue
        items.append(SearchResultItem(
            identifier=doc.identifier,
            number=doc.number,
            title=doc.title,
            date=doc.date,
            status=doc.status,
            score=hit.score,
            highlights=hit.highlights
        ))

    record_search_metrics(result.took, result.total)
    return SearchResponse(
        query=result.query,
        total=result.total,
        took_ms=round(result.took * 1000, 3),
        results=items
    )


@router.get("/search", response_model=SearchResponse)
def search(q: str = Query(default=""),
           limit: Optional[int] = Query(default=None, ge=0),
           engine: FuzzyQueryEngine = Depends(get_engine)):
    """Fuzzy full-text search across every indexed field."""
    try:
        return _run_search(engine, q, limit)
    except Exception as e:
        logger.exception(f"Search error for {q!r}: {e}")
        record_search_metrics(0.0, 0, error=type(e).__name__)
        raise HTTPException(status_code=500, detail="Search failed")


@router.get("/", response_model=RecordList)
def list_records(corpus: Corpus = Depends(get_corpus)):
    records = [
        RecordSummary(identifier=d.identifier, number=d.number, title=d.title, date=d.date, status=d.status)
        for d in corpus
    ]
    return RecordList(count=len(records), records=records)


@router.get("/{item}", response_model=RecordDetail)
def record_detail(item: str, corpus: Corpus = Depends(get_corpus)):
    try:
        doc = corpus.get(item)
    except RecordNotFoundError:
        raise HTTPException(status_code=404, detail=f"Record not found: {item}")
    return RecordDetail(**doc.model_dump())


def create_app(config: Optional[ServerConfig] = None) -> FastAPI:
    """Load the corpus, build the index and return the application.

    Raises:
        CorpusError: If the corpus cannot be loaded or indexed
    """
    config = config or ServerConfig.from_env()

    indexed = create_index(config.base_dir, extension=config.extension, strict=config.strict_load)
    record_corpus_metrics(
        loaded=len(indexed.corpus),
        skipped=indexed.corpus.skipped,
        indexed=indexed.index.doc_count,
        duration=indexed.duration
    )

    app = FastAPI(title="Decision Records", version=APP_VERSION)
    app.state.config = config
    app.state.corpus = indexed.corpus
    app.state.engine = FuzzyQueryEngine(
        indexed.index,
        fuzziness=config.fuzziness,
        prefix_length=config.prefix_length,
        snippet_tokens=config.snippet_tokens
    )

    # /metrics has to be registered ahead of the /{item} catch-all
    setup_prometheus_metrics(app)
    app.include_router(router)
    return app
