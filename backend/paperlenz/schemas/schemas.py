import uuid
from datetime import datetime
from typing import Literal
from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

AcademicLevelLiteral = Literal["high_school", "undergraduate", "graduate", "professor"]
InputTypeLiteral = Literal["doi", "abstract", "pdf"]

QUALITY_COMPONENTS: tuple[str, ...] = (
    "grammar",
    "structure",
    "readability",
    "argument_clarity",
    "referencing",
)


class UserBase(BaseModel):
    email: EmailStr
    username: str = Field(min_length=1, max_length=100)


class UserCreate(UserBase):
    password: str = Field(min_length=6)
    academic_level: AcademicLevelLiteral = "undergraduate"


class UserUpdate(BaseModel):
    username: str | None = Field(default=None, min_length=1, max_length=100)
    academic_level: AcademicLevelLiteral | None = None


class UserResponse(UserBase):
    id: uuid.UUID
    academic_level: str
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class TokenPayload(BaseModel):
    sub: str
    exp: datetime
    type: str


# Analysis record

class GlossaryEntry(BaseModel):
    term: str
    definition: str


class SectionCompleteness(BaseModel):
    abstract: int = Field(ge=1, le=10)
    introduction: int = Field(ge=1, le=10)
    literature_review: int = Field(ge=1, le=10)
    methodology: int = Field(ge=1, le=10)
    results: int = Field(ge=1, le=10)
    discussion: int = Field(ge=1, le=10)
    conclusion: int = Field(ge=1, le=10)


class PaperQualityScore(BaseModel):
    # A sub-score the model left out counts as 0.
    grammar: int = Field(default=0, ge=0, le=20)
    structure: int = Field(default=0, ge=0, le=20)
    readability: int = Field(default=0, ge=0, le=20)
    argument_clarity: int = Field(default=0, ge=0, le=20)
    referencing: int = Field(default=0, ge=0, le=20)
    total: int

    @field_validator(*QUALITY_COMPONENTS, mode="before")
    @classmethod
    def null_component_is_zero(cls, v):
        return 0 if v is None else v

    @model_validator(mode="after")
    def check_total(self) -> "PaperQualityScore":
        expected = sum(getattr(self, name) for name in QUALITY_COMPONENTS)
        if self.total != expected:
            raise ValueError(f"total must equal the sum of its components ({expected})")
        return self


class CredibilityAnalysis(BaseModel):
    score: int = Field(ge=1, le=100)
    factors: list[str] = []
    journal_impact: str
    citation_count: int | None = Field(default=None, ge=0)


class Citations(BaseModel):
    apa: str
    mla: str
    ieee: str


class PaperAnalysis(BaseModel):
    """Structured analysis of one paper, as returned by the language model."""

    one_line_summary: str
    abstract_summary: str
    aim_of_paper: str
    methodology_technology_used: str
    results_obtained: str
    observations: str
    limitations_detailed: list[str]
    methodology_improvements: list[str]
    section_completeness: SectionCompleteness
    paper_quality_score: PaperQualityScore
    core_concepts: list[str]
    glossary: list[GlossaryEntry]
    credibility_analysis: CredibilityAnalysis
    citations: Citations


# Edge-style analysis endpoint

class AnalyzeRequest(BaseModel):
    content: str = ""
    academic_level: str = ""
    title: str | None = None
    input_type: InputTypeLiteral = "abstract"


class AnalyzeMetadata(BaseModel):
    input_type: str
    academic_level: str
    title: str | None = None
    processed_at: datetime


class AnalyzeResponse(BaseModel):
    success: bool
    analysis: dict | None = None
    error: str | None = None
    details: str | None = None
    metadata: AnalyzeMetadata | None = None


# Papers

class PaperSubmission(BaseModel):
    input_type: Literal["doi", "abstract"]
    content: str
    title: str | None = None
    academic_level: AcademicLevelLiteral = "undergraduate"

    @field_validator("content", "title", mode="before")
    @classmethod
    def strip_text(cls, v):
        if isinstance(v, str):
            return v.strip()
        return v


class PaperResponse(BaseModel):
    id: uuid.UUID
    title: str
    doi: str | None
    abstract: str | None
    input_type: str
    academic_level: str
    analysis: PaperAnalysis
    notes: str | None
    created_at: datetime

    class Config:
        from_attributes = True


class PaperAnalysisResult(BaseModel):
    status: Literal["success"] = "success"
    title: str
    analysis: PaperAnalysis
    paper: PaperResponse | None = None
    saved: bool
    warning: str | None = None


class NotesUpdate(BaseModel):
    notes: str = Field(max_length=20000)


class DashboardStats(BaseModel):
    total_papers: int
    avg_credibility: int
    papers_with_notes: int
    days_since_last_analysis: int


# Chat

class ChatTurn(BaseModel):
    role: Literal["user", "assistant"]
    content: str = Field(min_length=1, max_length=8000)


class ChatRequest(BaseModel):
    messages: list[ChatTurn] = Field(min_length=1, max_length=50)


class ChatResponse(BaseModel):
    reply: str
