"""
Workflow execution routes.
"""

from fastapi import APIRouter, Depends, HTTPException

from core.logging_config import get_logger
from services.executor import ExecuteRequest, ExecuteResponse, WorkflowExecutor, WorkflowGraphError
from .dependencies import get_executor

logger = get_logger(__name__)
router = APIRouter(tags=["Execution"])


@router.post("/execute", response_model=ExecuteResponse, response_model_by_alias=True)
async def execute_workflow(
    request: ExecuteRequest,
    executor: WorkflowExecutor = Depends(get_executor)
):
    """Execute a workflow graph and return per-node results"""
    try:
        return await executor.execute(request)
    except WorkflowGraphError as e:
        logger.warning(f"Rejected workflow: {e}")
        raise HTTPException(status_code=400, detail=str(e))
