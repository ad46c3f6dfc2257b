"""Schema definitions for the proof photo quality scoring tool."""

from typing import Any, Dict

FUNCTION_NAME = "score_proof_photo"

FUNCTION_DEFINITION: Dict[str, Any] = {
    "type": "function",
    "name": FUNCTION_NAME,
    "description": (
        "Return a quality score, the problems found, and suggestions for a proof-of-installation photo."
    ),
    "parameters": {
        "type": "object",
        "properties": {
            "score": {
                "type": "number",
                "description": "Overall quality from 0 (unusable) to 100 (excellent).",
            },
            "issues": {
                "type": "array",
                "items": {"type": "string"},
                "description": "Concrete problems, e.g. blur, glare, hoarding cut off.",
            },
            "suggestions": {
                "type": "array",
                "items": {"type": "string"},
                "description": "Short instructions for a better retake.",
            },
            "passed": {
                "type": "boolean",
                "description": "Whether the photo is acceptable as client-facing proof.",
            },
        },
        "required": ["score", "issues", "suggestions", "passed"],
        "additionalProperties": False,
    },
    "strict": True,
}
