"""
HTTP surface over the document store.

The store and embedding provider are built once at startup (or passed to
create_app) and injected into handlers through app.state.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from .schemas import (
    DeleteResponse,
    DocumentResponse,
    DocumentUpsertRequest,
    ErrorResponse,
    HealthResponse,
    SearchHit,
    SearchRequest,
    SearchResponse,
)
from ..core.config import VERSION, build_document_store, debug_enabled, get_embedding_provider
from ..core.db import health_check
from ..core.errors import NotFoundError, ValidationError
from ..core.search_service import SearchService
from ..util.logging import logger
from ..vector.embeddings import IEmbeddingProvider
from ..vector.index import InMemoryDocumentStore
from ..vector.types import Document, SearchResult


def get_store(request: Request) -> InMemoryDocumentStore:
    return request.app.state.store


def get_search_service(request: Request) -> SearchService:
    return request.app.state.search_service


_BAD_REQUEST = {400: {"model": ErrorResponse, "description": "Rejected by store validation"}}
_NOT_FOUND = {404: {"model": ErrorResponse, "description": "Document not found"}}


def _document_response(document: Document) -> DocumentResponse:
    return DocumentResponse(
        id=document.id,
        content=document.content,
        metadata=dict(document.metadata),
        dimension=len(document.embedding),
    )


def _hit(result: SearchResult) -> SearchHit:
    return SearchHit(
        id=result.document.id,
        content=result.document.content,
        metadata=dict(result.document.metadata),
        score=result.score,
    )


def create_app(store: Optional[InMemoryDocumentStore] = None,
               embedding_provider: Optional[IEmbeddingProvider] = None) -> FastAPI:
    """
    Build the API application.

    Args:
        store: Store to serve; built from configuration at startup when None
        embedding_provider: Provider for text queries; from configuration when None
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "store", None) is None:
            app.state.store = build_document_store()
            app.state.search_service = SearchService(app.state.store, app.state.embedding_provider)
            logger.info(f"Document store loaded with {len(app.state.store)} documents")
        yield

    app = FastAPI(
        title="Semantic Document Store API",
        version=VERSION,
        description="On-device embedding index with metadata-filtered top-k search",
        docs_url="/docs" if debug_enabled() else None,
        redoc_url="/redoc" if debug_enabled() else None,
        lifespan=lifespan,
    )

    app.state.embedding_provider = embedding_provider or get_embedding_provider()
    app.state.store = store
    app.state.search_service = (
        SearchService(store, app.state.embedding_provider) if store is not None else None
    )

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        return JSONResponse(status_code=400, content=ErrorResponse(detail=str(exc)).model_dump())

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content=ErrorResponse(detail=str(exc)).model_dump())

    @app.get("/health", response_model=HealthResponse)
    def health_endpoint(store: InMemoryDocumentStore = Depends(get_store)):
        """Report store size, dimension and database health."""
        repository = store.repository
        db_health = None
        if repository is not None:
            db_health = health_check(getattr(repository, "db_path", None))

        return HealthResponse(
            status="healthy" if db_health is not False else "degraded",
            version=VERSION,
            document_count=len(store),
            dimension=store.dimension,
            db_health=db_health,
        )

    @app.put("/documents", response_model=DocumentResponse, responses=_BAD_REQUEST)
    def upsert_document(req: DocumentUpsertRequest, store: InMemoryDocumentStore = Depends(get_store)):
        """Insert or replace a document."""
        embedding = req.embedding
        if embedding is None:
            embedding = app.state.embedding_provider.embed_text(req.content)

        document = Document(id=req.id, content=req.content, embedding=embedding, metadata=req.metadata)
        store.upsert(document)
        return _document_response(document)

    @app.get("/documents/{doc_id}", response_model=DocumentResponse, responses=_NOT_FOUND)
    def get_document(doc_id: str, store: InMemoryDocumentStore = Depends(get_store)):
        document = store.get(doc_id)
        if document is None:
            raise NotFoundError(doc_id)
        return _document_response(document)

    @app.delete("/documents/{doc_id}", response_model=DeleteResponse)
    def delete_document(doc_id: str, store: InMemoryDocumentStore = Depends(get_store)):
        """Remove a document; removing an absent id is not an error."""
        return DeleteResponse(id=doc_id, removed=store.remove(doc_id))

    @app.post("/search", response_model=SearchResponse, responses=_BAD_REQUEST)
    def search_endpoint(req: SearchRequest,
                        store: InMemoryDocumentStore = Depends(get_store),
                        service: SearchService = Depends(get_search_service)):
        """Ranked, metadata-filtered similarity search."""
        if req.embedding is not None:
            results = store.search(req.embedding, req.k, req.filter)
            if req.threshold is not None:
                results = [r for r in results if r.score >= req.threshold]
        else:
            results = service.retrieve(req.query, req.k, req.filter, req.threshold)

        return SearchResponse(hits=[_hit(r) for r in results])

    return app


app = create_app()
