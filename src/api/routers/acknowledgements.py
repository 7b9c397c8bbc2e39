"""
Notice acknowledgement API router
"""
from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, File, Form, UploadFile
from starlette.concurrency import run_in_threadpool
from src.api.dependencies import get_workflow
from src.api.schemas import AcknowledgementCreateRequest, VerifyAcknowledgementRequest
from src.services.case_workflow import CaseWorkflowService
from src.utils.constants import AcknowledgedBy, AcknowledgementMode
from src.utils.response import BaseResponse, success_response

router = APIRouter(prefix="/acknowledgements", tags=["acknowledgements"])


@router.post("", response_model=BaseResponse, status_code=201)
def record_acknowledgement(
    request: AcknowledgementCreateRequest,
    workflow: CaseWorkflowService = Depends(get_workflow)
):
    """Record delivery or refusal of a Sent notice"""
    acknowledgement = workflow.record_acknowledgement(**request.model_dump())
    return success_response(acknowledgement.to_json(), "Acknowledgement recorded")


@router.post("/with-proof", response_model=BaseResponse, status_code=201)
async def record_acknowledgement_with_proof(
    notice_id: int = Form(...),
    acknowledged_by: AcknowledgedBy = Form(...),
    acknowledgement_date: date = Form(...),
    acknowledgement_mode: AcknowledgementMode = Form(...),
    relationship_to_borrower: Optional[str] = Form(None),
    remarks: Optional[str] = Form(None),
    captured_by: Optional[str] = Form(None),
    proof: UploadFile = File(...),
    workflow: CaseWorkflowService = Depends(get_workflow)
):
    """Same as POST /acknowledgements with a proof document attached"""
    content = await proof.read()
    acknowledgement = await run_in_threadpool(
        workflow.record_acknowledgement,
        notice_id=notice_id,
        acknowledged_by=acknowledged_by,
        acknowledgement_date=acknowledgement_date,
        acknowledgement_mode=acknowledgement_mode,
        relationship_to_borrower=relationship_to_borrower,
        remarks=remarks,
        captured_by=captured_by,
        proof_document=content,
        proof_filename=proof.filename,
    )
    return success_response(acknowledgement.to_json(), "Acknowledgement recorded")


@router.get("/{acknowledgement_id}", response_model=BaseResponse)
def get_acknowledgement(acknowledgement_id: int, workflow: CaseWorkflowService = Depends(get_workflow)):
    return success_response(workflow.get_acknowledgement(acknowledgement_id).to_json())


@router.post("/{acknowledgement_id}/verify", response_model=BaseResponse)
def verify_acknowledgement(
    acknowledgement_id: int,
    request: VerifyAcknowledgementRequest,
    workflow: CaseWorkflowService = Depends(get_workflow)
):
    """Confirm a Pending Verification acknowledgement"""
    acknowledgement = workflow.verify_acknowledgement(acknowledgement_id, request.verified_by)
    return success_response(acknowledgement.to_json(), "Acknowledgement verified")
