# MediQuery API - Query Router
# =============================
"""Question answering and schema endpoints."""

import logging

from fastapi import APIRouter, Depends
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from ...engine.errors import ValidationError
from ...engine.models import PipelineState
from ...engine.pipeline import QueryPipeline
from ..dependencies import get_pipeline
from ..schemas import QueryRequest, QueryResult, SchemaResult

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/query", response_model=QueryResult)
def run_query(request: QueryRequest, pipeline: QueryPipeline = Depends(get_pipeline)):
    """
    Answer a natural-language question.

    Always returns the full response shape. Blank or oversized questions
    get HTTP 400; an unexpected pipeline failure gets HTTP 500.
    """
    try:
        pipeline.validate_question(request.query)
        status_code = 200
    except ValidationError:
        status_code = 400

    response = pipeline.process(request.query)

    if status_code == 200 and response.state == PipelineState.ERRORED:
        status_code = 500

    return JSONResponse(status_code=status_code, content=jsonable_encoder(response.to_dict()))


@router.get("/schema", response_model=SchemaResult)
def get_schema(pipeline: QueryPipeline = Depends(get_pipeline)):
    """Current schema (live, or the fallback when the store cannot be introspected)."""
    resolution = pipeline.schema_provider.resolve()
    schema = resolution.schema
    return {
        "success": True,
        "schema": schema.to_dict(),
        "tableCount": len(schema.tables),
        "tables": schema.table_names,
        "source": resolution.source,
        "reason": resolution.reason,
    }
