"""
LLM Prompts for CurioLoop generation calls.

One template per gateway operation:
- Diagnostic quiz (calibrates the plan)
- Evaluation & plan (turns diagnostic results into a curriculum)
- Chapter content (reading material + short quiz, in a chosen style)
- Adaptive update (feedback after a chapter quiz)
- Context extraction (summarizes an uploaded image of notes or slides)

Templates are plain str.format strings; the response shape is enforced
separately through the schemas in ``schemas.py``.
"""
from __future__ import annotations

import json

# =============================================================================
# System Prompt
# =============================================================================

SYSTEM_PROMPT = "You are an expert curriculum designer. Output strict JSON only."


# =============================================================================
# Diagnostic
# =============================================================================

DIAGNOSTIC_PROMPT = """Create a diagnostic quiz for a student wanting to learn about: "{topic}".
Target Level: {level}.

Requirements:
- {question_count} questions total.
- Multiple choice only, 4 options each.
- Mix of conceptual and practical questions.
- Give every question a short unique id and an explanation of the correct answer.
- Return STRICT JSON.
"""

CONTEXT_SUFFIX = """
Also consider this extracted context from the user's notes: {context}
"""


# =============================================================================
# Evaluation & Plan
# =============================================================================

PLAN_PROMPT = """Analyze these quiz results for the topic "{topic}". User Goal: "{goal}".
Results: {results}.

Task:
1. Estimate the user's actual proficiency.
2. Identify specific strengths and weaknesses.
3. Generate a structured {chapter_count}-chapter learning plan, chapter ids numbered from 1.
4. Adaptive logic: If they failed basic questions, start with fundamentals. If they aced it, go to advanced.
"""


# =============================================================================
# Chapter Content
# =============================================================================

CHAPTER_PROMPT = """Generate educational content for Chapter {chapter_id}: "{title}" on the topic "{topic}".
Target Audience Style: {style}.
Objective: {objective}.

Include:
1. Crystal clear summary.
2. Real-world analogy.
3. Concrete example.
4. A prompt describing a diagram that would help explain this.
5. External Resources - CRITICAL INSTRUCTION:
   - DO NOT generate specific deep links that might be broken (404).
   - For Videos: Generate a YouTube Search URL. Format: "https://www.youtube.com/results?search_query=" + encoded keywords.
   - For Docs: Use the main documentation homepage or a highly stable Wikipedia link.
   - Ensure all links are 100% accessible public URLs.
6. A short {question_count}-question multiple choice quiz to verify understanding.
"""


# =============================================================================
# Adaptive Update
# =============================================================================

ADAPT_PROMPT = """User scored {score}% on Chapter {chapter_id}.
Current Plan Context: {titles}.

Determine:
1. Should we make the next chapter harder or easier?
2. Should we insert a remedial topic?
3. Should we skip a future topic?

Return the adjustments and optionally a revised list of future chapters.
"""


# =============================================================================
# Context Extraction
# =============================================================================

EXTRACT_PROMPT = (
    "Extract key concepts, topics, and vocabulary from this study material. "
    "Summarize it concisely for a learning algorithm."
)


# =============================================================================
# Builders
# =============================================================================


def diagnostic_prompt(topic: str, level: str, question_count: int, context: str | None = None) -> str:
    prompt = DIAGNOSTIC_PROMPT.format(topic=topic, level=level, question_count=question_count)
    if context:
        prompt += CONTEXT_SUFFIX.format(context=context)
    return prompt


def plan_prompt(topic: str, goal: str, results: list[dict], chapter_count: int) -> str:
    return PLAN_PROMPT.format(
        topic=topic,
        goal=goal,
        results=json.dumps(results),
        chapter_count=chapter_count,
    )


def chapter_prompt(
    topic: str,
    chapter_id: int,
    title: str,
    objective: str,
    style: str,
    question_count: int,
) -> str:
    return CHAPTER_PROMPT.format(
        topic=topic,
        chapter_id=chapter_id,
        title=title,
        objective=objective,
        style=style,
        question_count=question_count,
    )


def adapt_prompt(chapter_id: int, score: int, titles: list[str]) -> str:
    return ADAPT_PROMPT.format(chapter_id=chapter_id, score=score, titles=json.dumps(titles))
