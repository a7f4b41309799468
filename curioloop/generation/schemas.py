"""
JSON Schema Definitions for generation responses.

Controlled-generation schemas handed to Gemini as ``response_schema`` so each
reply is machine-parsable. They describe the wire shape only; the pydantic
models in ``curioloop.core.models`` remain the authority on what is accepted.
"""

from __future__ import annotations

# =============================================================================
# Shared Pieces
# =============================================================================

QUESTION_SCHEMA = {
    "type": "object",
    "properties": {
        "id": {"type": "string", "description": "Unique id within this quiz"},
        "type": {"type": "string", "enum": ["mcq"]},
        "question": {"type": "string"},
        "options": {"type": "array", "items": {"type": "string"}},
        "correctIndex": {"type": "integer", "description": "Zero-based index into options"},
        "explanation": {"type": "string"},
    },
    "required": ["id", "type", "question", "options", "correctIndex", "explanation"],
}

RESOURCE_SCHEMA = {
    "type": "object",
    "properties": {
        "title": {"type": "string"},
        "url": {"type": "string"},
        "description": {"type": "string", "description": "Why this is worth watching or reading"},
    },
    "required": ["title", "url", "description"],
}

CHAPTER_SCHEMA = {
    "type": "object",
    "properties": {
        "chapter_id": {"type": "integer"},
        "title": {"type": "string"},
        "objective": {"type": "string"},
        "estimated_time_minutes": {"type": "integer"},
        "difficulty": {"type": "string", "enum": ["easy", "medium", "hard"]},
        "topics": {"type": "array", "items": {"type": "string"}},
    },
    "required": ["chapter_id", "title", "objective", "difficulty"],
}


# =============================================================================
# Operation Schemas
# =============================================================================

DIAGNOSTIC_QUIZ_SCHEMA = {
    "type": "object",
    "properties": {
        "status": {"type": "string"},
        "topic": {"type": "string"},
        "quiz": {"type": "array", "items": QUESTION_SCHEMA},
    },
    "required": ["topic", "quiz"],
}

LEARNING_PLAN_SCHEMA = {
    "type": "object",
    "properties": {
        "estimated_level": {"type": "string"},
        "strengths": {"type": "array", "items": {"type": "string"}},
        "weaknesses": {"type": "array", "items": {"type": "string"}},
        "learning_plan": {"type": "array", "items": CHAPTER_SCHEMA},
    },
    "required": ["estimated_level", "learning_plan"],
}

CHAPTER_CONTENT_SCHEMA = {
    "type": "object",
    "properties": {
        "chapter_id": {"type": "integer"},
        "title": {"type": "string"},
        "summary": {"type": "string"},
        "key_points": {"type": "array", "items": {"type": "string"}},
        "example": {"type": "string"},
        "analogy": {"type": "string"},
        "diagram_prompt": {"type": "string"},
        "external_resources": {
            "type": "object",
            "properties": {
                "videos": {"type": "array", "items": RESOURCE_SCHEMA},
                "blogs": {"type": "array", "items": RESOURCE_SCHEMA},
                "docs": {"type": "array", "items": RESOURCE_SCHEMA},
            },
        },
        "chapter_quiz": {"type": "array", "items": QUESTION_SCHEMA},
    },
    "required": ["summary", "external_resources", "chapter_quiz"],
}

ADAPTIVE_UPDATE_SCHEMA = {
    "type": "object",
    "properties": {
        "chapter_id": {"type": "integer"},
        "chapter_score": {"type": "number"},
        "feedback": {"type": "string"},
        "adjustments": {
            "type": "object",
            "properties": {
                "difficulty_change": {"type": "string", "enum": ["easier", "same", "harder"]},
                "added_remedial_content": {"type": "array", "items": {"type": "string"}},
                "skipped_future_topics": {"type": "array", "items": {"type": "string"}},
                "added_advanced_topics": {"type": "array", "items": {"type": "string"}},
            },
        },
        "updated_plan": {"type": "array", "items": CHAPTER_SCHEMA},
    },
    "required": ["feedback", "adjustments"],
}
