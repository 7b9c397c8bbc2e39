"""
Sequence status API router (operations / debugging)
"""
from typing import Optional
from fastapi import APIRouter, Depends
from src.api.dependencies import get_workflow
from src.services.case_workflow import CaseWorkflowService
from src.utils.response import BaseResponse, success_response

router = APIRouter(prefix="/sequences", tags=["sequences"])


@router.get("", response_model=BaseResponse)
def list_counters(date_stamp: Optional[str] = None, workflow: CaseWorkflowService = Depends(get_workflow)):
    """All counters of one day (YYYYMMDD, default today)"""
    return success_response(workflow.allocator.list_counters(date_stamp))


@router.get("/{prefix}", response_model=BaseResponse)
def get_sequence_status(
    prefix: str,
    category_code: Optional[str] = None,
    workflow: CaseWorkflowService = Depends(get_workflow)
):
    """Today's counter for a prefix"""
    return success_response(workflow.get_sequence_status(prefix, category_code))
