# =============================================================================
# core/services/photo_diagnosis_service.py - Photo Diagnosis
# =============================================================================
# Species identification and disease diagnosis from a tank photo (Plus/Pro).
#
# Flow for one diagnosis:
#   1. Ownership check, tier gate (photo_diagnosis_per_day > 0)
#   2. Daily cap against the "diagnosis" row of ai_usage
#   3. Photo stored in the photo-diagnosis bucket (failure is non-fatal)
#   4. Vision request with the tank context; the JSON answer is coerced
#      into DiagnosisResult, with a fallback when it can't be parsed
#   5. photo_diagnoses row, usage counter and token totals written
#
# The allowance is only counted once the model has answered.
# =============================================================================

import base64
import logging
import uuid
from typing import Any
from uuid import UUID

from app.exceptions import (
    AIUnavailableError,
    DailyLimitReachedError,
    InternalError,
    InvalidInputError,
    NotFoundError,
    TierRequiredError,
)
from core.models.photo_diagnosis import (
    Confidence,
    DiagnosisFeedback,
    DiagnosisResult,
    DiagnosisType,
    DiseaseDiagnosis,
    Severity,
    SpeciesIdentification,
)
from core.models.tier import Tier
from core.services.tank_service import TankService
from core.services.tier_service import FEATURE_TIERS, TierService, get_tier_limits
from core.services.usage_service import UsageService
from lib.context import TankContext, build_tank_context
from lib.llm import LLMClient, LLMError, extract_json
from lib.supabase_client import SupabaseClient, SupabaseClientError
from lib.utils import normalize_uuid, utc_now

logger = logging.getLogger(__name__)

BUCKET_NAME = "photo-diagnosis"
SIGNED_URL_SECONDS = 7 * 24 * 60 * 60
MAX_IMAGE_BYTES = 10 * 1024 * 1024
USAGE_FEATURE = "diagnosis"
DIAGNOSIS_MAX_TOKENS = 2000

# Accepted upload types and the extension used in storage
IMAGE_TYPES: dict[str, str] = {
    "image/jpeg": "jpg",
    "image/png": "png",
}

DISCLAIMER = (
    "AI analysis is for informational purposes only. For serious health concerns, "
    "consult a veterinary professional or experienced aquarist."
)

HISTORY_COLUMNS = (
    "id, tank_id, diagnosis_type, photo_url, species_result, disease_result, "
    "confidence, user_feedback, created_at"
)

_TASK_LABELS = {
    DiagnosisType.SPECIES_ID: "species identification",
    DiagnosisType.DISEASE: "disease diagnosis",
    DiagnosisType.BOTH: "species identification and disease diagnosis",
}


# =============================================================================
# Validation & Prompt
# =============================================================================

def validate_image(content_type: str | None, size: int) -> str:
    """
    Check an upload and return its MIME type.

    Raises:
        InvalidInputError: Empty, too large, or not JPEG/PNG
    """
    if size <= 0:
        raise InvalidInputError("Image file is required")
    if size > MAX_IMAGE_BYTES:
        raise InvalidInputError("Image must be 10MB or smaller")
    if content_type not in IMAGE_TYPES:
        raise InvalidInputError("Image must be a JPEG or PNG file")
    return content_type


def limit_message(tier: Tier, limit: int) -> str:
    if tier == Tier.PRO:
        return f"You've reached your daily limit of {limit} photo diagnoses. Your limit resets at midnight UTC."
    pro_limit = get_tier_limits(Tier.PRO).photo_diagnosis_per_day
    return (
        f"You've reached your daily limit of {limit} photo diagnoses. "
        f"Upgrade to Pro for {pro_limit} diagnoses per day."
    )


SPECIES_FORMAT = """"species_result": {
    "name": "Common name",
    "scientific_name": "Scientific name",
    "confidence": "high" | "medium" | "low",
    "care_level": "beginner" | "intermediate" | "advanced",
    "min_tank_size": gallons as a number,
    "temperament": "peaceful" | "semi-aggressive" | "aggressive",
    "care_summary": "Two or three sentence care overview"
  }"""

DISEASE_FORMAT = """"disease_result": {
    "diagnosis": "Condition name, e.g. Ich or Fin Rot",
    "confidence": "high" | "medium" | "low",
    "severity": "minor" | "moderate" | "severe",
    "symptoms": ["Visible symptom", ...],
    "treatment_steps": ["Step", ...],
    "medication_name": "Medication, if any",
    "medication_dosage": "Dosage for this tank's volume",
    "treatment_duration": "Expected duration",
    "medication_warnings": ["Invertebrate, scaleless fish or plant warnings", ...]
  }"""


def build_diagnosis_prompt(diagnosis_type: DiagnosisType, context: TankContext | None) -> str:
    fields = []
    if diagnosis_type.wants_species:
        fields.append(SPECIES_FORMAT)
    if diagnosis_type.wants_disease:
        fields.append(DISEASE_FORMAT)
    response_format = "{\n  " + ",\n  ".join(fields) + "\n}"

    prompt = f"""You are AquaBot, an expert aquarium assistant specializing in species identification and fish disease diagnosis.

Analyze the photo and provide a {_TASK_LABELS[diagnosis_type]}.

Respond with ONLY a JSON object in this format:
{response_format}

Guidelines:
- Judge from visible features: coloration, fin and body shape, markings, spots, lesions, swelling.
- If several animals are visible, describe the most prominent one.
- Use "low" confidence for blurry or obscured photos.
- If no disease is visible, say the fish appears healthy and omit medication.
- Dose any medication for the tank volume given below and warn about harm to other inhabitants.
- Recommend monitoring and retesting water before aggressive treatment when unsure."""

    if context:
        volume = context.tank.get("volume_gallons")
        prompt += f"\n\n{context.format_for_prompt()}\n\nCalculate medication dosing for exactly {volume} gallons."
    return prompt


def _fallback(diagnosis_type: DiagnosisType) -> DiagnosisResult:
    """Result used when the model's answer isn't valid JSON."""
    if diagnosis_type.wants_species:
        return DiagnosisResult(
            species_result=SpeciesIdentification(
                name="Unable to identify",
                confidence=Confidence.LOW,
                care_summary="The identification could not be read. Please try again with a clearer photo.",
            ),
            confidence=Confidence.LOW,
        )
    return DiagnosisResult(
        disease_result=DiseaseDiagnosis(
            diagnosis="Analysis inconclusive",
            confidence=Confidence.LOW,
            severity=Severity.MINOR,
            treatment_steps=["Please try again with a clearer, well-lit photo"],
        ),
        confidence=Confidence.LOW,
    )


def parse_diagnosis(text: str, diagnosis_type: DiagnosisType) -> DiagnosisResult:
    """
    Turn the model's answer into a DiagnosisResult.

    Only the requested parts are kept. A disease-only request with no
    disease in the answer reports a healthy fish.
    """
    try:
        raw = extract_json(text)
    except LLMError as e:
        logger.error(f"Photo diagnosis answer was not JSON: {e.details.get('raw_response', '')}")
        return _fallback(diagnosis_type)

    result = DiagnosisResult()
    species = raw.get("species_result")
    if diagnosis_type.wants_species and isinstance(species, dict):
        result.species_result = SpeciesIdentification.model_validate(species)
        result.confidence = result.species_result.confidence

    disease = raw.get("disease_result")
    if diagnosis_type.wants_disease and isinstance(disease, dict):
        result.disease_result = DiseaseDiagnosis.model_validate(disease)
        if diagnosis_type == DiagnosisType.DISEASE:
            result.confidence = result.disease_result.confidence

    if diagnosis_type == DiagnosisType.DISEASE and result.disease_result is None:
        result.disease_result = DiseaseDiagnosis(
            diagnosis="No visible disease or condition detected",
            confidence=Confidence.MEDIUM,
            severity=Severity.MINOR,
            treatment_steps=["Continue regular monitoring", "Maintain good water quality"],
        )
    return result


# =============================================================================
# Service
# =============================================================================

class PhotoDiagnosisService:
    """Service for the photo diagnosis endpoints."""

    @staticmethod
    def diagnose(
        user_id: UUID | str,
        tank_id: UUID | str,
        diagnosis_type: DiagnosisType,
        image: bytes,
        content_type: str,
        llm: LLMClient | None = None,
    ) -> dict[str, Any]:
        """
        Analyze one photo.

        Raises:
            TierRequiredError: Free and Starter tiers
            DailyLimitReachedError: Today's allowance is used up
            AIUnavailableError: The model could not be reached
        """
        user_id = normalize_uuid(user_id)
        tank = TankService.get_owned_tank(tank_id, user_id)

        tier = TierService.get_user_tier(user_id)
        limit = get_tier_limits(tier).photo_diagnosis_per_day
        if limit == 0:
            raise TierRequiredError(
                "Photo diagnosis requires Plus or Pro plan. Upgrade to unlock AI-powered "
                "species identification and disease diagnosis.",
                required_tier=FEATURE_TIERS["photo_diagnosis"].value,
            )

        try:
            used = UsageService.get_today_count(user_id, USAGE_FEATURE)
        except SupabaseClientError as e:
            logger.error(f"Photo diagnosis usage check failed: {e.message}")
            raise InternalError("Failed to check usage limits")
        if used >= limit:
            raise DailyLimitReachedError(limit_message(tier, limit))

        try:
            context = build_tank_context(tank["id"], user_id)
        except SupabaseClientError as e:
            logger.warning(f"Diagnosing without tank context: {e.message}")
            context = None

        diagnosis_id = str(uuid.uuid4())
        storage_path = f"{user_id}/{diagnosis_id}_{int(utc_now().timestamp() * 1000)}.{IMAGE_TYPES[content_type]}"
        photo_url = PhotoDiagnosisService._store_photo(storage_path, image, content_type)

        llm = llm or LLMClient()
        try:
            answer = llm.complete(
                system=build_diagnosis_prompt(diagnosis_type, context),
                messages=[{
                    "role": "user",
                    "content": [
                        {
                            "type": "image",
                            "source": {
                                "type": "base64",
                                "media_type": content_type,
                                "data": base64.b64encode(image).decode("ascii"),
                            },
                        },
                        {
                            "type": "text",
                            "text": f"Please analyze this aquarium photo and provide a "
                                    f"{_TASK_LABELS[diagnosis_type]}. Respond with JSON only.",
                        },
                    ],
                }],
                max_tokens=DIAGNOSIS_MAX_TOKENS,
            )
        except LLMError as e:
            logger.error(f"Photo diagnosis failed: {e}")
            raise AIUnavailableError("The AI service is temporarily unavailable. Please try again in a moment.")

        result = parse_diagnosis(answer.text, diagnosis_type)
        species = result.species_result.model_dump(mode="json") if result.species_result else None
        disease = result.disease_result.model_dump(mode="json") if result.disease_result else None

        client = SupabaseClient.get_client()
        try:
            client.table("photo_diagnoses").insert({
                "id": diagnosis_id,
                "user_id": user_id,
                "tank_id": tank["id"],
                "diagnosis_type": diagnosis_type.value,
                "photo_url": photo_url or storage_path,
                "species_result": species,
                "disease_result": disease,
                "confidence": result.confidence.value,
                "ai_response": answer.text,
                "input_tokens": answer.input_tokens,
                "output_tokens": answer.output_tokens,
                "model": answer.model,
            }).execute()
        except Exception as e:
            logger.error(f"Failed to store photo diagnosis {diagnosis_id}: {e}")

        UsageService.record_feature_use(user_id, USAGE_FEATURE, used)
        UsageService.record_tokens(user_id, answer.input_tokens, answer.output_tokens)

        return {
            "id": diagnosis_id,
            "diagnosis_type": diagnosis_type.value,
            "photo_url": photo_url,
            "species_result": species,
            "disease_result": disease,
            "confidence": result.confidence.value,
            "disclaimer": DISCLAIMER,
            "usage": {
                "input_tokens": answer.input_tokens,
                "output_tokens": answer.output_tokens,
                "remaining_today": max(limit - used - 1, 0),
            },
        }

    @staticmethod
    def _store_photo(path: str, image: bytes, content_type: str) -> str | None:
        """Upload and return a 7-day signed URL, or None if storage fails."""
        client = SupabaseClient.get_client()
        bucket = client.storage.from_(BUCKET_NAME)
        try:
            bucket.upload(
                path=path,
                file=image,
                file_options={"content-type": content_type, "upsert": "false"},
            )
            signed = bucket.create_signed_url(path, SIGNED_URL_SECONDS)
        except Exception as e:
            logger.error(f"Failed to store diagnosis photo {path}: {e}")
            return None

        logger.info(f"Uploaded diagnosis photo to storage: {path}")
        return signed.get("signedURL") or signed.get("signedUrl") or None

    @staticmethod
    def get_usage(user_id: UUID | str) -> dict[str, Any] | None:
        """Today's diagnosis count against the tier limit; None if unreadable."""
        limit = get_tier_limits(TierService.get_user_tier(user_id)).photo_diagnosis_per_day
        try:
            used = UsageService.get_today_count(user_id, USAGE_FEATURE)
        except SupabaseClientError as e:
            logger.warning(f"Photo diagnosis usage unavailable: {e.message}")
            return None
        return {"used": used, "limit": limit, "remaining": max(limit - used, 0)}

    @staticmethod
    def list_history(
        user_id: UUID | str,
        tank_id: UUID | str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> dict[str, Any]:
        """Newest-first diagnoses, optionally for one owned tank."""
        user_id = normalize_uuid(user_id)
        limit = max(1, min(limit, 100))
        offset = max(0, offset)

        owned_tank_id = None
        if tank_id is not None:
            owned_tank_id = TankService.get_owned_tank(tank_id, user_id, columns="id, user_id")["id"]

        client = SupabaseClient.get_client()
        query = client.table("photo_diagnoses").select(HISTORY_COLUMNS).eq("user_id", user_id)
        if owned_tank_id:
            query = query.eq("tank_id", owned_tank_id)

        try:
            diagnoses = (
                query.order("created_at", desc=True)
                .range(offset, offset + limit - 1)
                .execute()
            ).data or []
        except Exception as e:
            logger.error(f"Failed to fetch diagnosis history for {user_id}: {e}")
            raise InternalError("Failed to fetch diagnosis history")

        return {
            "diagnoses": diagnoses,
            "has_more": len(diagnoses) == limit,
            "usage": PhotoDiagnosisService.get_usage(user_id),
        }

    @staticmethod
    def submit_feedback(
        user_id: UUID | str,
        diagnosis_id: UUID | str,
        feedback: DiagnosisFeedback,
    ) -> dict[str, Any]:
        """
        Record helpful / not_helpful on one of the user's diagnoses.

        Raises:
            NotFoundError: No such diagnosis for this user
        """
        diagnosis_id = normalize_uuid(diagnosis_id)
        client = SupabaseClient.get_client()
        try:
            response = (
                client.table("photo_diagnoses")
                .update({"user_feedback": feedback.value})
                .eq("id", diagnosis_id)
                .eq("user_id", normalize_uuid(user_id))
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to save diagnosis feedback {diagnosis_id}: {e}")
            raise InternalError("Failed to submit feedback")

        if not response.data:
            raise NotFoundError("Diagnosis", diagnosis_id)

        return {
            "id": diagnosis_id,
            "feedback": feedback.value,
            "message": "Thank you for your feedback!",
        }
