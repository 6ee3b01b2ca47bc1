import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Annotated, AsyncGenerator
from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from fastapi.responses import StreamingResponse
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from paperlenz.core import get_db, get_settings, async_session_maker
from paperlenz.core.exceptions import InvalidInputError, PersistenceError
from paperlenz.models import Paper, User
from paperlenz.schemas import (
    AcademicLevelLiteral,
    DashboardStats,
    InputTypeLiteral,
    NotesUpdate,
    PaperAnalysisResult,
    PaperResponse,
    PaperAnalysis,
    PaperSubmission,
)
from paperlenz.api.v1.auth import get_current_user
from paperlenz.services.analysis_service import (
    AnalysisOrchestrator,
    AnalysisRequest,
    AnalysisState,
    AnalysisStatus,
    Persister,
)
from paperlenz.services.dashboard import compute_stats
from paperlenz.services.paper_analyzer import PaperAnalyzer
from paperlenz.services.paper_input import PreparedInput, prepare_abstract_input, prepare_doi_input, prepare_pdf_input
from paperlenz.services.storage import PDFStorage

logger = logging.getLogger(__name__)
router = APIRouter()
settings = get_settings()


def get_analyzers() -> tuple[PaperAnalyzer, PaperAnalyzer]:
    """Primary and fallback analyzers built from settings."""
    return PaperAnalyzer.from_settings("primary"), PaperAnalyzer.from_settings("fallback")


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    return async_session_maker


def get_storage() -> PDFStorage:
    return PDFStorage()


async def verify_paper_access(paper_id: uuid.UUID, current_user: User, db: AsyncSession) -> Paper:
    """Return the paper when it belongs to the current user, 404 otherwise."""
    result = await db.execute(
        select(Paper).where(Paper.id == paper_id, Paper.user_id == current_user.id)
    )
    paper = result.scalar_one_or_none()
    if not paper:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Paper not found")
    return paper


def _paper_persister(
    session_factory: async_sessionmaker[AsyncSession],
    user_id: uuid.UUID,
    prepared: PreparedInput,
    academic_level: str,
) -> Persister:
    async def persist(request: AnalysisRequest, record: PaperAnalysis) -> uuid.UUID:
        try:
            async with session_factory() as session:
                paper = Paper(
                    user_id=user_id,
                    title=request.title or prepared.title,
                    doi=prepared.doi,
                    abstract=prepared.abstract,
                    input_type=prepared.input_type,
                    academic_level=academic_level,
                    analysis=record.model_dump(mode="json"),
                    storage_key=prepared.storage_key,
                )
                session.add(paper)
                await session.commit()
                return paper.id
        except SQLAlchemyError as e:
            raise PersistenceError(f"Error saving paper: {e}") from e

    return persist


def _build_orchestrator(
    analyzers: tuple[PaperAnalyzer, PaperAnalyzer],
    persist: Persister | None,
) -> AnalysisOrchestrator:
    primary, fallback = analyzers
    return AnalysisOrchestrator(
        primary,
        fallback,
        persist=persist,
        step_delay=settings.analysis_step_delay_seconds,
    )


def _raise_for_failed_state(state: AnalysisState) -> None:
    if state.status != AnalysisStatus.ERROR:
        return
    code = (
        status.HTTP_500_INTERNAL_SERVER_ERROR
        if state.error_type in ("LLMConfigurationError", "InternalError")
        else status.HTTP_502_BAD_GATEWAY
    )
    raise HTTPException(status_code=code, detail=state.error or "Analysis failed")


async def _prepare_submission(submission: PaperSubmission) -> PreparedInput:
    try:
        if submission.input_type == "doi":
            return await prepare_doi_input(submission.content)
        return prepare_abstract_input(submission.content, submission.title)
    except InvalidInputError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


async def _run_and_respond(
    orchestrator: AnalysisOrchestrator,
    prepared: PreparedInput,
    academic_level: str,
    db: AsyncSession,
) -> PaperAnalysisResult:
    request = AnalysisRequest(
        content=prepared.content,
        academic_level=academic_level,
        title=prepared.title,
        input_type=prepared.input_type,
    )
    state = await orchestrator.run(request)
    _raise_for_failed_state(state)

    paper = await db.get(Paper, state.paper_id) if state.paper_id else None
    return PaperAnalysisResult(
        title=prepared.title,
        analysis=state.record,
        paper=PaperResponse.model_validate(paper) if paper else None,
        saved=bool(state.saved),
        warning=state.warning,
    )


@router.post("/analyze", response_model=PaperAnalysisResult)
async def analyze_paper(
    submission: PaperSubmission,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    analyzers: Annotated[tuple[PaperAnalyzer, PaperAnalyzer], Depends(get_analyzers)],
    session_factory: Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)],
):
    """Analyze a DOI or abstract and save it to the user's dashboard."""
    prepared = await _prepare_submission(submission)
    persist = _paper_persister(session_factory, current_user.id, prepared, submission.academic_level)
    orchestrator = _build_orchestrator(analyzers, persist)
    return await _run_and_respond(orchestrator, prepared, submission.academic_level, db)


@router.post("/analyze/upload", response_model=PaperAnalysisResult)
async def analyze_uploaded_paper(
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    analyzers: Annotated[tuple[PaperAnalyzer, PaperAnalyzer], Depends(get_analyzers)],
    session_factory: Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)],
    storage: Annotated[PDFStorage, Depends(get_storage)],
    file: UploadFile = File(...),
    academic_level: AcademicLevelLiteral = Form("undergraduate"),
    title: str | None = Form(None),
):
    """Upload a PDF, analyze its text and save it to the user's dashboard.

    The stored file is kept only when the paper row is saved.
    """
    filename = file.filename or ""
    if not filename.lower().endswith(".pdf"):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Only PDF files are supported")

    storage_key: str | None = None
    saved = False
    try:
        storage_key = await storage.save_pdf(file, current_user.id)
        prepared = await prepare_pdf_input(
            await storage.path_for(storage_key), filename, storage_key=storage_key, title=title
        )
        persist = _paper_persister(session_factory, current_user.id, prepared, academic_level)
        result = await _run_and_respond(_build_orchestrator(analyzers, persist), prepared, academic_level, db)
        saved = result.saved
        return result
    except InvalidInputError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    finally:
        if storage_key and not saved:
            await storage.remove(storage_key)


@router.post("/analyze/stream")
async def analyze_paper_stream(
    submission: PaperSubmission,
    current_user: Annotated[User, Depends(get_current_user)],
    analyzers: Annotated[tuple[PaperAnalyzer, PaperAnalyzer], Depends(get_analyzers)],
    session_factory: Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)],
):
    """Analyze a DOI or abstract, streaming every state change as SSE."""
    prepared = await _prepare_submission(submission)
    persist = _paper_persister(session_factory, current_user.id, prepared, submission.academic_level)
    orchestrator = _build_orchestrator(analyzers, persist)
    request = AnalysisRequest(
        content=prepared.content,
        academic_level=submission.academic_level,
        title=prepared.title,
        input_type=prepared.input_type,
    )

    async def generate() -> AsyncGenerator[str, None]:
        queue: asyncio.Queue[AnalysisState | None] = asyncio.Queue()

        async def run() -> None:
            try:
                await orchestrator.run(request, listener=queue.put)
            except Exception:
                # The error state has already been queued by the orchestrator.
                logger.exception("Streaming analysis failed")
            finally:
                await queue.put(None)

        task = asyncio.create_task(run())
        try:
            while (state := await queue.get()) is not None:
                yield f"data: {state.model_dump_json()}\n\n"
        finally:
            await task

        yield "data: [DONE]\n\n"

    return StreamingResponse(
        generate(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


@router.get("", response_model=list[PaperResponse])
async def list_papers(
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    search: str | None = Query(default=None, max_length=200),
    input_type: InputTypeLiteral | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0)
):
    query = select(Paper).where(Paper.user_id == current_user.id)
    if search and search.strip():
        query = query.where(Paper.title.ilike(f"%{search.strip()}%"))
    if input_type:
        query = query.where(Paper.input_type == input_type)

    result = await db.execute(
        query.order_by(Paper.created_at.desc()).offset(offset).limit(limit)
    )
    return result.scalars().all()


@router.get("/stats", response_model=DashboardStats)
async def get_stats(
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    result = await db.execute(select(Paper).where(Paper.user_id == current_user.id))
    return compute_stats(result.scalars().all(), datetime.now(timezone.utc))


@router.get("/{paper_id}", response_model=PaperResponse)
async def get_paper(
    paper_id: uuid.UUID,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    return await verify_paper_access(paper_id, current_user, db)


@router.patch("/{paper_id}/notes", response_model=PaperResponse)
async def update_notes(
    paper_id: uuid.UUID,
    notes_update: NotesUpdate,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    paper = await verify_paper_access(paper_id, current_user, db)
    paper.notes = notes_update.notes.strip() or None
    await db.commit()
    await db.refresh(paper)
    return paper


@router.delete("/{paper_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_paper(
    paper_id: uuid.UUID,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    storage: Annotated[PDFStorage, Depends(get_storage)],
):
    paper = await verify_paper_access(paper_id, current_user, db)
    storage_key = paper.storage_key

    await db.delete(paper)
    await db.commit()

    if storage_key:
        try:
            await storage.remove(storage_key)
        except (OSError, ValueError) as e:
            logger.warning("Failed to delete stored PDF %s: %s", storage_key, e)
