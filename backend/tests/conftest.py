import copy
import os
import tempfile
from pathlib import Path

import pytest

# Settings are read once at import time, so the environment is fixed here
# before any paperlenz module is imported.
_TMP = Path(tempfile.mkdtemp(prefix="paperlenz-tests-"))
os.environ["DEBUG"] = "true"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TMP / 'test.db'}"
os.environ["UPLOAD_DIR"] = str(_TMP / "uploads")
os.environ["ANALYSIS_STEP_DELAY_SECONDS"] = "0"
os.environ["OPENAI_API_KEY"] = "test-key"


SAMPLE_ANALYSIS = {
    "one_line_summary": "This paper studies sleep and memory using fMRI and finds recall improves by 20%.",
    "abstract_summary": "A controlled study of sleep effects on memory consolidation.",
    "aim_of_paper": "Measure how sleep affects declarative memory.",
    "methodology_technology_used": "Randomized controlled trial with fMRI imaging.",
    "results_obtained": "Participants who slept recalled 20% more word pairs.",
    "observations": "Hippocampal activity correlated with recall.",
    "limitations_detailed": ["Small sample", "Single site", "Short follow-up"],
    "methodology_improvements": ["Larger cohort", "Multi-site replication", "Longer follow-up"],
    "section_completeness": {
        "abstract": 8,
        "introduction": 7,
        "literature_review": 6,
        "methodology": 8,
        "results": 7,
        "discussion": 6,
        "conclusion": 7,
    },
    "paper_quality_score": {
        "total": 75,
        "grammar": 16,
        "structure": 15,
        "readability": 14,
        "argument_clarity": 15,
        "referencing": 15,
    },
    "core_concepts": ["memory consolidation", "sleep", "hippocampus", "fMRI"],
    "glossary": [{"term": "fMRI", "definition": "Functional magnetic resonance imaging."}],
    "credibility_analysis": {
        "score": 82,
        "factors": ["Randomized design", "Peer reviewed"],
        "journal_impact": "High",
        "citation_count": 40,
    },
    "citations": {
        "apa": "Doe, J. (2020). Sleep and memory. Journal of Sleep, 1(1), 1-10.",
        "mla": "Doe, John. \"Sleep and Memory.\" Journal of Sleep, 2020.",
        "ieee": "J. Doe, \"Sleep and memory,\" J. Sleep, vol. 1, pp. 1-10, 2020.",
    },
}


@pytest.fixture
def sample_analysis() -> dict:
    return copy.deepcopy(SAMPLE_ANALYSIS)
