"""Prompt templates for the prediction strategies."""

from __future__ import annotations

import json

from studylens.models.analysis import AnalysisOptions
from studylens.services.prediction.heuristics import RetrievalStatistics

SYSTEM_PROMPT = (
    "You are an expert educational analyst who studies syllabi, notes and "
    "previous-year question papers to predict exam questions. "
    "Respond with a single JSON object and nothing else."
)

_SCHEMA_HINT = """\
{
  "important_topics": [
    {"topic": str, "frequency": 0-100, "weightage": 0-100,
     "priority": "high"|"medium"|"low", "confidence": 0-1,
     "trend": "increasing"|"decreasing"|"stable"}
  ],
  "generated_questions": [
    {"question": str, "type": "definition"|"application"|"derivation"|"problem",
     "marks": int >= 1, "difficulty": "easy"|"medium"|"hard",
     "estimated_time": minutes >= 1, "topic": str}
  ],
  "summary": {"overview": str, "key_concepts": [str],
              "study_recommendations": [str], "estimated_preparation_time": str}
}"""


def _option_lines(options: AnalysisOptions) -> list[str]:
    lines = [f"- Generate {options.question_count} questions."]
    if options.focus_topics:
        lines.append(f"- Prioritise these topics: {', '.join(options.focus_topics)}.")
    if options.difficulty:
        lines.append(f"- Prefer {options.difficulty} difficulty questions.")
    if not options.include_summary:
        lines.append('- Set "summary" to null.')
    return lines


def build_direct_prompt(context_text: str, options: AnalysisOptions) -> str:
    """Prompt for direct-context generation over the assembled documents."""
    return "\n".join(
        [
            "Analyze the following study materials and predict the exam.",
            "",
            context_text,
            "",
            "Instructions:",
            "- Identify the 5-8 most important topics.",
            *_option_lines(options),
            "- Base every question on the material above.",
            "",
            "Return JSON with exactly this structure:",
            _SCHEMA_HINT,
        ]
    )


def build_retrieval_prompt(
    subject_name: str,
    statistics: RetrievalStatistics,
    options: AnalysisOptions,
    focus_topic: str | None = None,
) -> str:
    """Prompt embedding heuristic statistics from retrieved exemplars."""
    topic_lines = [f"- {topic} (seen {count}x)" for topic, count in statistics.topic_counts[:10]]
    exemplar_lines = [f"[{i}] {text}" for i, text in enumerate(statistics.exemplars, start=1)]
    return "\n".join(
        [
            f"Subject: {subject_name}",
            f"Focus topic: {focus_topic}" if focus_topic else "",
            "",
            "IMPORTANT TOPICS (from the indexed material):",
            *(topic_lines or ["- none detected"]),
            "",
            "PATTERNS FOUND:",
            json.dumps(
                {
                    "question_types": statistics.question_types,
                    "marks_distribution": {str(k): v for k, v in statistics.marks_distribution.items()},
                },
                indent=2,
            ),
            "",
            "EXEMPLAR PASSAGES:",
            *(exemplar_lines or ["(no passages retrieved)"]),
            "",
            "Predict the most likely exam questions, ranked most likely first.",
            *_option_lines(options),
            "",
            "Return JSON with exactly this structure:",
            _SCHEMA_HINT,
        ]
    )
