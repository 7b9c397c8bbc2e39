"""
FastAPI dependencies
"""
from functools import lru_cache
from src.services.case_workflow import CaseWorkflowService


@lru_cache(maxsize=1)
def get_workflow() -> CaseWorkflowService:
    """Process-wide workflow service (overridden in tests)"""
    return CaseWorkflowService()
