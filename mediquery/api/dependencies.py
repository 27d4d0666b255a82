# MediQuery API - Dependencies
# =============================
"""Request dependencies: the process-wide engine held on app.state."""

from fastapi import Request

from ..engine.pipeline import QueryPipeline, EngineDependencies


def get_pipeline(request: Request) -> QueryPipeline:
    return request.app.state.pipeline


def get_engine_dependencies(request: Request) -> EngineDependencies:
    return request.app.state.engine
