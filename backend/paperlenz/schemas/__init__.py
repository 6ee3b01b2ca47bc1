from paperlenz.schemas.schemas import (
    AcademicLevelLiteral, InputTypeLiteral, QUALITY_COMPONENTS,
    UserBase, UserCreate, UserUpdate, UserResponse,
    TokenPayload,
    GlossaryEntry, SectionCompleteness, PaperQualityScore, CredibilityAnalysis, Citations,
    PaperAnalysis,
    AnalyzeRequest, AnalyzeMetadata, AnalyzeResponse,
    PaperSubmission, PaperResponse, PaperAnalysisResult, NotesUpdate, DashboardStats,
    ChatTurn, ChatRequest, ChatResponse
)

__all__ = [
    "AcademicLevelLiteral", "InputTypeLiteral", "QUALITY_COMPONENTS",
    "UserBase", "UserCreate", "UserUpdate", "UserResponse",
    "TokenPayload",
    "GlossaryEntry", "SectionCompleteness", "PaperQualityScore", "CredibilityAnalysis", "Citations",
    "PaperAnalysis",
    "AnalyzeRequest", "AnalyzeMetadata", "AnalyzeResponse",
    "PaperSubmission", "PaperResponse", "PaperAnalysisResult", "NotesUpdate", "DashboardStats",
    "ChatTurn", "ChatRequest", "ChatResponse"
]
