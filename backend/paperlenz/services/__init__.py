from paperlenz.services.storage import PDFStorage
from paperlenz.services.chat_service import ChatService
from paperlenz.services.paper_analyzer import PaperAnalyzer
from paperlenz.services.analysis_service import AnalysisOrchestrator, AnalysisRequest, AnalysisState
from paperlenz.services.dashboard import compute_stats

__all__ = [
    "PDFStorage",
    "ChatService",
    "PaperAnalyzer",
    "AnalysisOrchestrator",
    "AnalysisRequest",
    "AnalysisState",
    "compute_stats",
]
