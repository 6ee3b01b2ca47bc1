"""Prompt templates for paper analysis."""

DEFAULT_ACADEMIC_LEVEL = "undergraduate"

LEVEL_PROMPTS: dict[str, str] = {
    "high_school": (
        "Explain this scientific paper in simple terms suitable for high school students. "
        "Use basic vocabulary and clear examples. Keep explanations concise but comprehensive. "
        "Focus on making complex concepts accessible through analogies and everyday language."
    ),
    "undergraduate": (
        "Analyze this paper for undergraduate students. Use appropriate scientific terminology "
        "with clear explanations. Provide moderate detail in each section, explaining methodologies "
        "and results with sufficient context. Include background information that helps understand "
        "the research significance. Each analysis section should be 2-3 detailed paragraphs."
    ),
    "graduate": (
        "Provide a comprehensive analysis suitable for graduate students. Include detailed technical "
        "explanations, research methodology insights, and critical evaluation of approaches. Discuss "
        "limitations and improvements with specific technical reasoning. Each analysis section should "
        "be 3-4 detailed paragraphs with in-depth explanations of methodologies, statistical approaches, "
        "and research implications. Include discussion of how this work fits into the broader research "
        "landscape."
    ),
    "professor": (
        "Deliver a thorough academic analysis for professors and researchers. Include extensive critical "
        "evaluation, detailed methodological assessment, comprehensive discussion of research implications, "
        "and expert-level insights. Provide detailed analysis of experimental design, statistical validity, "
        "and theoretical contributions. Each analysis section should be 4-5 comprehensive paragraphs with "
        "expert-level technical detail, critical assessment of methodology rigor, discussion of potential "
        "confounding factors, and detailed evaluation of the research's contribution to the field. Include "
        "suggestions for future research directions and potential collaborations."
    ),
}

ANALYSIS_SYSTEM_PROMPT = (
    "You are an expert scientific paper analyzer. You must provide personalized, accurate analysis "
    "based on the actual content provided. Never use template or generic scores. Always respond with "
    "ONLY valid JSON format - no explanatory text, no markdown code blocks, no prefacing comments. "
    "Analyze each paper individually and provide unique scores based on its specific quality, "
    "completeness, and credibility. Start your response directly with the opening brace { and end "
    "with the closing brace }."
)

_DEPTH_GUIDANCE = """IMPORTANT: Adjust the depth and detail of ALL analysis sections based on the academic level:
- For HIGH SCHOOL: Keep explanations simple and concise (1-2 paragraphs per section)
- For UNDERGRADUATE: Provide moderate detail with clear explanations (2-3 paragraphs per section)
- For GRADUATE: Include comprehensive technical details and critical analysis (3-4 paragraphs per section)
- For PROFESSOR: Deliver extensive expert-level analysis with thorough evaluation (4-5 paragraphs per section)"""

# Literal braces are doubled: this block goes through str.format below.
_SCHEMA_BLOCK = """{{
  "one_line_summary": "This paper studies how X affects Y using Z method and finds that A improves B by C%.",
  "abstract_summary": "Detailed summary of the paper's abstract and main findings based on the actual content",
  "aim_of_paper": "The specific research objectives and goals of THIS study",
  "methodology_technology_used": "Detailed description of the ACTUAL research methods, technologies, tools, and approaches used in THIS paper",
  "results_obtained": "Comprehensive summary of the ACTUAL findings, data, and outcomes from THIS paper",
  "observations": "Key observations, patterns, and insights discovered in THIS specific research",
  "limitations_detailed": ["Specific limitation 1 from THIS paper", "Specific limitation 2 from THIS paper", "Specific limitation 3 from THIS paper"],
  "methodology_improvements": ["Specific improvement suggestion 1 for THIS paper", "Specific improvement suggestion 2 for THIS paper", "Specific improvement suggestion 3 for THIS paper"],
  "section_completeness": {{
    "abstract": [ANALYZE ACTUAL ABSTRACT QUALITY: Rate 1-10 based on how complete and informative the abstract is],
    "introduction": [ANALYZE ACTUAL INTRODUCTION: Rate 1-10 based on background provided and problem statement clarity],
    "literature_review": [ANALYZE ACTUAL LITERATURE REVIEW: Rate 1-10 based on comprehensiveness of related work coverage],
    "methodology": [ANALYZE ACTUAL METHODOLOGY: Rate 1-10 based on detail and clarity of methods described],
    "results": [ANALYZE ACTUAL RESULTS: Rate 1-10 based on completeness and clarity of findings presentation],
    "discussion": [ANALYZE ACTUAL DISCUSSION: Rate 1-10 based on interpretation and implications provided],
    "conclusion": [ANALYZE ACTUAL CONCLUSION: Rate 1-10 based on how well conclusions are supported and future work is outlined]
  }},
  "paper_quality_score": {{
    "total": [CALCULATE ACTUAL TOTAL: Sum of all components below],
    "grammar": [ANALYZE ACTUAL GRAMMAR: Rate 1-20 based on language quality, sentence structure, and clarity],
    "structure": [ANALYZE ACTUAL STRUCTURE: Rate 1-20 based on logical flow, organization, and section coherence],
    "readability": [ANALYZE ACTUAL READABILITY: Rate 1-20 based on how easy it is to understand for the target audience],
    "argument_clarity": [ANALYZE ACTUAL ARGUMENTS: Rate 1-20 based on how clearly the research questions, hypotheses, and conclusions are presented],
    "referencing": [ANALYZE ACTUAL REFERENCES: Rate 1-20 based on citation quality, relevance, and completeness]
  }},
  "core_concepts": ["Extract 4-6 ACTUAL key concepts/terms from THIS specific paper"],
  "glossary": [{{"term": "ACTUAL technical term from the paper", "definition": "clear definition based on context"}}],
  "credibility_analysis": {{
    "score": [ANALYZE ACTUAL CREDIBILITY: Rate 1-100 based on methodology rigor, data quality, author credentials, journal quality if available],
    "factors": ["ACTUAL credibility factor 1 from THIS paper", "ACTUAL credibility factor 2 from THIS paper"],
    "journal_impact": "Assess journal quality if mentioned, otherwise rate based on research quality: High/Medium/Low",
    "citation_count": [If available in the paper, otherwise omit this field]
  }},
  "citations": {{
    "apa": "Generate ACTUAL APA format citation for THIS specific paper",
    "mla": "Generate ACTUAL MLA format citation for THIS specific paper",
    "ieee": "Generate ACTUAL IEEE format citation for THIS specific paper"
  }}
}}"""

_ANALYSIS_TEMPLATE = """{level_prompt}

CRITICAL INSTRUCTIONS:
1. You must analyze the ACTUAL content provided and generate PERSONALIZED scores based on the specific paper
2. Do NOT use generic or template scores - each paper should have unique scores based on its actual quality
3. RESPOND ONLY WITH VALID JSON - no explanatory text, no markdown, no code blocks
4. Do not start your response with any explanatory text like "Since the actual paper content is not provided" or similar

{depth_guidance}

Please analyze the following scientific paper and provide a structured response in JSON format with these exact fields. IMPORTANT: All scores must be based on the actual analysis of THIS specific paper, and the detail level must match the academic level ({academic_level}):

""" + _SCHEMA_BLOCK + """

Paper content:
{content}

{title_line}

Input type: {input_type}

REMEMBER: Respond ONLY with the JSON object. No explanatory text before or after."""


def build_analysis_prompt(
    content: str,
    academic_level: str,
    title: str | None = None,
    input_type: str = "abstract",
) -> str:
    """Build the user prompt for one analysis request.

    Unknown academic levels fall back to the undergraduate instructions.
    """
    level = academic_level if academic_level in LEVEL_PROMPTS else DEFAULT_ACADEMIC_LEVEL
    return _ANALYSIS_TEMPLATE.format(
        level_prompt=LEVEL_PROMPTS[level],
        depth_guidance=_DEPTH_GUIDANCE,
        academic_level=level,
        content=content,
        title_line=f"Paper title: {title}" if title else "",
        input_type=input_type,
    )
