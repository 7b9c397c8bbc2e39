"""
Lawyer API router
"""
from typing import Optional
from fastapi import APIRouter, Depends, Query
from src.api.dependencies import get_workflow
from src.api.schemas import AvailabilityRequest, LawyerCreateRequest
from src.services.case_workflow import CaseWorkflowService
from src.utils.response import BaseResponse, success_response

router = APIRouter(prefix="/lawyers", tags=["lawyers"])


@router.post("", response_model=BaseResponse, status_code=201)
def create_lawyer(request: LawyerCreateRequest, workflow: CaseWorkflowService = Depends(get_workflow)):
    """Register a lawyer"""
    lawyer = workflow.create_lawyer(**request.model_dump())
    return success_response(lawyer.to_json(), "Lawyer created")


@router.get("/candidates", response_model=BaseResponse)
def list_candidates(
    specialization: Optional[str] = None,
    jurisdiction: Optional[str] = None,
    limit: Optional[int] = Query(None, ge=1, le=100),
    workflow: CaseWorkflowService = Depends(get_workflow)
):
    """Ranked eligible lawyers"""
    return success_response(workflow.list_candidates(specialization, jurisdiction, limit))


@router.get("/{lawyer_id}", response_model=BaseResponse)
def get_lawyer(lawyer_id: int, workflow: CaseWorkflowService = Depends(get_workflow)):
    return success_response(workflow.get_lawyer(lawyer_id).to_json())


@router.get("/{lawyer_id}/workload", response_model=BaseResponse)
def get_lawyer_workload(lawyer_id: int, workflow: CaseWorkflowService = Depends(get_workflow)):
    """Current load, capacity and score"""
    return success_response(workflow.get_lawyer_workload(lawyer_id))


@router.patch("/{lawyer_id}/availability", response_model=BaseResponse)
def update_availability(
    lawyer_id: int,
    request: AvailabilityRequest,
    workflow: CaseWorkflowService = Depends(get_workflow)
):
    lawyer = workflow.update_lawyer_availability(lawyer_id, request.is_available)
    return success_response(lawyer.to_json())


@router.post("/{lawyer_id}/deactivate", response_model=BaseResponse)
def deactivate_lawyer(lawyer_id: int, workflow: CaseWorkflowService = Depends(get_workflow)):
    """Soft-deactivate a lawyer"""
    lawyer = workflow.deactivate_lawyer(lawyer_id)
    return success_response(lawyer.to_json(), "Lawyer deactivated")
