"""
Legal notice API router
"""
from typing import Optional
from fastapi import APIRouter, Depends, Query
from src.api.dependencies import get_workflow
from src.api.schemas import (
    ExpireNoticesRequest,
    NoticeCreateRequest,
    NoticeGeneratedRequest,
    NoticePreviewRequest,
)
from src.services.case_workflow import CaseWorkflowService
from src.utils.constants import NoticeStatus
from src.utils.response import BaseResponse, success_response

router = APIRouter(prefix="/notices", tags=["notices"])


@router.post("", response_model=BaseResponse, status_code=201)
def create_notice(request: NoticeCreateRequest, workflow: CaseWorkflowService = Depends(get_workflow)):
    """Issue and dispatch a notice"""
    notice = workflow.create_notice(**request.model_dump())
    return success_response(notice.to_json(), "Notice created")


@router.post("/preview", response_model=BaseResponse)
def preview_notice(request: NoticePreviewRequest, workflow: CaseWorkflowService = Depends(get_workflow)):
    """Render templates without creating a notice"""
    return success_response(workflow.generate_notice_preview(**request.model_dump()))


@router.post("/expire", response_model=BaseResponse)
def expire_notices(request: ExpireNoticesRequest, workflow: CaseWorkflowService = Depends(get_workflow)):
    """Expire overdue Sent notices (called by the scheduler)"""
    expired = workflow.expire_overdue_notices(request.as_of)
    return success_response({"expired": expired, "count": len(expired)})


@router.get("", response_model=BaseResponse)
def list_notices(
    loan_account_number: Optional[str] = None,
    status: Optional[NoticeStatus] = None,
    limit: int = Query(100, ge=1, le=500),
    workflow: CaseWorkflowService = Depends(get_workflow)
):
    notices = workflow.list_notices(loan_account_number, status, limit)
    return success_response([notice.to_json() for notice in notices])


@router.get("/{notice_id}", response_model=BaseResponse)
def get_notice(notice_id: int, workflow: CaseWorkflowService = Depends(get_workflow)):
    return success_response(workflow.get_notice(notice_id).to_json())


@router.post("/{notice_id}/generated", response_model=BaseResponse)
def mark_generated(
    notice_id: int,
    request: NoticeGeneratedRequest,
    workflow: CaseWorkflowService = Depends(get_workflow)
):
    notice = workflow.mark_notice_generated(notice_id, request.document_path, request.actor)
    return success_response(notice.to_json())


@router.post("/{notice_id}/dispatch", response_model=BaseResponse)
def dispatch_notice(notice_id: int, workflow: CaseWorkflowService = Depends(get_workflow)):
    """Send a Draft or Generated notice"""
    return success_response(workflow.dispatch_notice(notice_id).to_json())
