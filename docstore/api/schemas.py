"""
Request and response models for the document store API.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, field_validator, model_validator


class DocumentUpsertRequest(BaseModel):
    """Insert or replace a document. Without an embedding the content is embedded server-side."""
    id: str
    content: str
    embedding: Optional[List[float]] = None
    metadata: Dict[str, str] = {}

    @field_validator('id')
    @classmethod
    def id_must_not_be_empty(cls, v):
        if not v.strip():
            raise ValueError('id cannot be empty')
        return v

    @field_validator('embedding')
    @classmethod
    def embedding_must_not_be_empty(cls, v):
        if v is not None and not v:
            raise ValueError('embedding cannot be empty')
        return v


class DocumentResponse(BaseModel):
    id: str
    content: str
    metadata: Dict[str, str]
    dimension: int


class DeleteResponse(BaseModel):
    id: str
    removed: bool


class SearchRequest(BaseModel):
    """Search by query text (embedded server-side) or by a raw embedding."""
    query: Optional[str] = None
    embedding: Optional[List[float]] = None
    k: int = 5
    filter: Optional[Dict[str, str]] = None
    threshold: Optional[float] = None

    @field_validator('k')
    @classmethod
    def k_must_not_be_negative(cls, v):
        if v < 0:
            raise ValueError('k must be >= 0')
        return v

    @field_validator('threshold')
    @classmethod
    def threshold_must_be_in_range(cls, v):
        if v is not None and not -1.0 <= v <= 1.0:
            raise ValueError('threshold must be between -1 and 1')
        return v

    @model_validator(mode='after')
    def exactly_one_query_form(self):
        has_query = self.query is not None and self.query.strip() != ""
        has_embedding = self.embedding is not None
        if has_query == has_embedding:
            raise ValueError('provide exactly one of query or embedding')
        return self


class SearchHit(BaseModel):
    id: str
    content: str
    metadata: Dict[str, str]
    score: float


class SearchResponse(BaseModel):
    hits: List[SearchHit]


class HealthResponse(BaseModel):
    status: str
    version: str
    document_count: int
    dimension: Optional[int] = None
    db_health: Optional[bool] = None  # None when persistence is disabled


class ErrorResponse(BaseModel):
    detail: str
