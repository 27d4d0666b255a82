# MediQuery API - System Router
# ==============================
"""Status endpoints for the language model and the live store."""

import logging

from fastapi import APIRouter, Depends

from ...engine.llm_providers import check_model_status
from ...engine.pipeline import EngineDependencies
from ..dependencies import get_engine_dependencies
from ..schemas import StatusResult

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/status", response_model=StatusResult)
def get_status(engine: EngineDependencies = Depends(get_engine_dependencies)):
    """
    Model and store availability.

    The model is only probed when a credential is configured.
    """
    model = check_model_status(engine.model)
    if engine.model is None:
        model['message'] = engine.model_status

    if engine.runner is None:
        store = {"configured": False, "reachable": False, "message": engine.store_status}
    else:
        reachable = engine.runner.ping()
        store = {
            "configured": True,
            "reachable": reachable,
            "message": "Live database connection successful" if reachable
            else "Live database is configured but not reachable; mock data will be used",
        }

    return {"model": model, "store": store}
