"""
Legal case API router
"""
from fastapi import APIRouter, Depends
from src.api.dependencies import get_workflow
from src.api.schemas import (
    AssignLawyerRequest,
    CaseCreateRequest,
    CaseStatusRequest,
    CloseCaseRequest,
)
from src.services.case_workflow import CaseWorkflowService
from src.utils.response import BaseResponse, success_response

router = APIRouter(prefix="/cases", tags=["cases"])


@router.post("", response_model=BaseResponse, status_code=201)
def create_case(request: CaseCreateRequest, workflow: CaseWorkflowService = Depends(get_workflow)):
    """Open a case"""
    case = workflow.create_case(**request.model_dump())
    return success_response(case.to_json(), "Case created")


@router.get("/{case_id}", response_model=BaseResponse)
def get_case(case_id: int, workflow: CaseWorkflowService = Depends(get_workflow)):
    return success_response(workflow.get_case(case_id).to_json())


@router.get("/{case_id}/timeline", response_model=BaseResponse)
def get_case_timeline(case_id: int, workflow: CaseWorkflowService = Depends(get_workflow)):
    return success_response(workflow.get_case_timeline(case_id))


@router.post("/{case_id}/assign", response_model=BaseResponse)
def assign_lawyer(
    case_id: int,
    request: AssignLawyerRequest,
    workflow: CaseWorkflowService = Depends(get_workflow)
):
    """Assign the best eligible lawyer, or the one given"""
    assignment = workflow.assign_lawyer(case_id, **request.model_dump())
    return success_response(assignment.to_json(), "Lawyer assigned")


@router.post("/{case_id}/reassign", response_model=BaseResponse)
def reassign_lawyer(
    case_id: int,
    request: AssignLawyerRequest,
    workflow: CaseWorkflowService = Depends(get_workflow)
):
    assignment = workflow.reassign_lawyer(case_id, **request.model_dump())
    return success_response(assignment.to_json(), "Lawyer reassigned")


@router.patch("/{case_id}/status", response_model=BaseResponse)
def update_case_status(
    case_id: int,
    request: CaseStatusRequest,
    workflow: CaseWorkflowService = Depends(get_workflow)
):
    case = workflow.update_case_status(case_id, **request.model_dump())
    return success_response(case.to_json())


@router.post("/{case_id}/close", response_model=BaseResponse)
def close_case(
    case_id: int,
    request: CloseCaseRequest,
    workflow: CaseWorkflowService = Depends(get_workflow)
):
    """Close a case and release its lawyer"""
    case = workflow.close_case(
        case_id,
        closure_date=request.closure_date,
        outcome_summary=request.outcome_summary,
        status=request.case_status,
    )
    return success_response(case.to_json(), "Case closed")
