# =============================================================================
# app/routers/photo_diagnosis.py - Photo Diagnosis (Plus/Pro)
# =============================================================================
# POST takes multipart/form-data: image (JPEG/PNG, max 10MB), tank_id,
# diagnosis_type. GET lists past diagnoses; PATCH records feedback.
# =============================================================================

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, File, Form, Query, Request, UploadFile

from app.dependencies import CurrentUser, LLMDep
from app.responses import success_response
from core.models.photo_diagnosis import DiagnosisFeedbackRequest, DiagnosisType
from core.services.photo_diagnosis_service import PhotoDiagnosisService, validate_image

router = APIRouter()


@router.post("/photo-diagnosis")
async def create_diagnosis(
    request: Request,
    user: CurrentUser,
    llm: LLMDep,
    image: Annotated[UploadFile, File(description="JPEG or PNG photo, 10MB max")],
    tank_id: Annotated[UUID, Form(description="Tank the photo was taken in")],
    diagnosis_type: Annotated[DiagnosisType, Form()],
):
    """
    Identify the species and/or diagnose disease from a photo.

    Counts against the tier's daily photo diagnosis allowance.
    """
    content = await image.read()
    content_type = validate_image(image.content_type, len(content))

    result = PhotoDiagnosisService.diagnose(
        user.id, tank_id, diagnosis_type, content, content_type, llm=llm
    )
    return success_response(result, request=request)


@router.get("/photo-diagnosis")
async def list_diagnoses(
    request: Request,
    user: CurrentUser,
    tank_id: Annotated[UUID | None, Query(description="Only this tank's diagnoses")] = None,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
    offset: Annotated[int, Query(ge=0)] = 0,
):
    result = PhotoDiagnosisService.list_history(user.id, tank_id=tank_id, limit=limit, offset=offset)
    return success_response(result, request=request)


@router.patch("/photo-diagnosis")
async def submit_feedback(body: DiagnosisFeedbackRequest, request: Request, user: CurrentUser):
    """Mark a diagnosis helpful or not helpful."""
    result = PhotoDiagnosisService.submit_feedback(user.id, body.diagnosis_id, body.feedback)
    return success_response(result, request=request)
