import logging
from datetime import datetime, timezone
from typing import Annotated
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from paperlenz.core.exceptions import (
    InvalidResponseFormatError,
    LLMConfigurationError,
    LLMServiceError,
)
from paperlenz.models import User
from paperlenz.schemas import AnalyzeMetadata, AnalyzeRequest, AnalyzeResponse
from paperlenz.api.v1.auth import get_current_user
from paperlenz.api.v1.papers import get_analyzers
from paperlenz.services.paper_analyzer import PaperAnalyzer

logger = logging.getLogger(__name__)
router = APIRouter()


def _failure(code: int, error: str, details: str | None = None) -> JSONResponse:
    body = AnalyzeResponse(success=False, error=error, details=details)
    return JSONResponse(status_code=code, content=body.model_dump(mode="json", exclude_none=True))


@router.post("/analyze", response_model=AnalyzeResponse, response_model_exclude_none=True)
async def analyze(
    payload: AnalyzeRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    analyzers: Annotated[tuple[PaperAnalyzer, PaperAnalyzer], Depends(get_analyzers)],
):
    """Single-shot analysis without persistence.

    Returns the sanitized, score-reconciled record as produced by the model
    together with request metadata.
    """
    content = payload.content.strip()
    academic_level = payload.academic_level.strip()
    if not content or not academic_level:
        return _failure(status.HTTP_400_BAD_REQUEST, "Missing required fields: content and academic_level")

    primary, _ = analyzers
    try:
        analysis = await primary.analyze_raw(content, academic_level, payload.title, payload.input_type)
    except InvalidResponseFormatError as e:
        return _failure(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Invalid response format from AI service",
            details=str(e),
        )
    except (LLMConfigurationError, LLMServiceError) as e:
        return _failure(status.HTTP_500_INTERNAL_SERVER_ERROR, str(e))
    except Exception as e:
        logger.exception("Edge analysis failed")
        return _failure(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error", details=str(e))

    return AnalyzeResponse(
        success=True,
        analysis=analysis,
        metadata=AnalyzeMetadata(
            input_type=payload.input_type,
            academic_level=academic_level,
            title=payload.title,
            processed_at=datetime.now(timezone.utc),
        ),
    )
