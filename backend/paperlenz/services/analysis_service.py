import asyncio
import inspect
import logging
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Protocol

from pydantic import BaseModel

from paperlenz.core.exceptions import AnalysisError, LLMConfigurationError
from paperlenz.schemas.schemas import PaperAnalysis

logger = logging.getLogger(__name__)

# Fixed, timer-driven progress shown while the analysis call runs.
INITIAL_STEP: tuple[int, str] = (10, "Parsing document")
PROGRESS_STEPS: list[tuple[int, str]] = [
    (25, "Extracting content"),
    (50, "AI analysis in progress"),
    (75, "Generating insights"),
    (90, "Finalizing results"),
]

SAVE_FAILED_WARNING = "Analysis completed but failed to save. Please try again."


class AnalysisStatus(str, Enum):
    IDLE = "idle"
    PROCESSING = "processing"
    SUCCESS = "success"
    ERROR = "error"


class AnalysisState(BaseModel):
    status: AnalysisStatus = AnalysisStatus.IDLE
    progress: int = 0
    step: str = ""
    record: PaperAnalysis | None = None
    error: str | None = None
    error_type: str | None = None
    saved: bool | None = None
    warning: str | None = None
    paper_id: uuid.UUID | None = None


@dataclass(frozen=True)
class AnalysisRequest:
    content: str
    academic_level: str
    title: str | None = None
    input_type: str = "abstract"


class Analyzer(Protocol):
    async def analyze(
        self,
        content: str,
        academic_level: str,
        title: str | None = None,
        input_type: str = "abstract",
    ) -> PaperAnalysis:
        ...


StateListener = Callable[[AnalysisState], Awaitable[None] | None]
Persister = Callable[[AnalysisRequest, PaperAnalysis], Awaitable[uuid.UUID | None]]


class AnalysisOrchestrator:
    """Run submit -> analyze (with one fallback) -> persist for a single paper.

    Callers observe ``idle -> processing -> success | error`` through the
    ``state`` property or a listener passed to :meth:`run`. ``reset`` returns
    to idle. There is no retry beyond the single fallback call and no
    cancellation once a run has started.
    """

    def __init__(
        self,
        primary: Analyzer,
        fallback: Analyzer | None = None,
        persist: Persister | None = None,
        step_delay: float = 1.0,
    ):
        self.primary = primary
        self.fallback = fallback or primary
        self.persist = persist
        self.step_delay = step_delay
        self._state = AnalysisState()

    @property
    def state(self) -> AnalysisState:
        return self._state

    def reset(self) -> AnalysisState:
        self._state = AnalysisState()
        return self._state

    async def _emit(self, state: AnalysisState, listener: StateListener | None) -> None:
        self._state = state
        if listener is None:
            return
        result = listener(state)
        if inspect.isawaitable(result):
            await result

    async def _analyze(self, request: AnalysisRequest) -> PaperAnalysis:
        args = (request.content, request.academic_level, request.title, request.input_type)
        try:
            return await self.primary.analyze(*args)
        except LLMConfigurationError:
            raise
        except AnalysisError as e:
            logger.warning("Primary analysis call failed, trying fallback: %s", e)
        return await self.fallback.analyze(*args)

    async def run(self, request: AnalysisRequest, listener: StateListener | None = None) -> AnalysisState:
        progress, step = INITIAL_STEP
        await self._emit(AnalysisState(status=AnalysisStatus.PROCESSING, progress=progress, step=step), listener)

        try:
            for progress, step in PROGRESS_STEPS:
                await self._emit(
                    AnalysisState(status=AnalysisStatus.PROCESSING, progress=progress, step=step),
                    listener,
                )
                if self.step_delay > 0:
                    await asyncio.sleep(self.step_delay)

            record = await self._analyze(request)
        except AnalysisError as e:
            logger.error("Analysis failed: %s", e)
            await self._emit(
                AnalysisState(status=AnalysisStatus.ERROR, error=str(e), error_type=type(e).__name__),
                listener,
            )
            return self._state
        except Exception:
            logger.exception("Unexpected analysis failure")
            await self._emit(
                AnalysisState(
                    status=AnalysisStatus.ERROR,
                    error="Analysis failed. Please try again.",
                    error_type="InternalError",
                ),
                listener,
            )
            raise

        saved, warning, paper_id = await self._persist(request, record)
        await self._emit(
            AnalysisState(
                status=AnalysisStatus.SUCCESS,
                progress=100,
                step="Complete",
                record=record,
                saved=saved,
                warning=warning,
                paper_id=paper_id,
            ),
            listener,
        )
        return self._state

    async def _persist(
        self, request: AnalysisRequest, record: PaperAnalysis
    ) -> tuple[bool, str | None, uuid.UUID | None]:
        if self.persist is None:
            return False, None, None
        try:
            paper_id: Any = await self.persist(request, record)
        except Exception:
            logger.exception("Error saving paper")
            return False, SAVE_FAILED_WARNING, None
        return True, None, paper_id
