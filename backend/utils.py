# utils.py
import json
import math
import re
from datetime import date
from typing import Optional

from errors import MalformedResponse

FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```")

def extract_json_text(content: str) -> str:
    """Models sometimes wrap JSON in ``` blocks even when told not to."""
    content = (content or "").strip()
    m = FENCE_RE.search(content)
    if m:
        return m.group(1).strip()
    return content

def parse_model_json(content: str) -> dict:
    text = extract_json_text(content)
    try:
        data = json.loads(text)
    except ValueError as e:
        raise MalformedResponse("AI 응답 형식 오류가 발생했습니다. 다시 시도해주세요.",
                                details=f"{e}; raw: {text[:400]}")
    if not isinstance(data, dict):
        raise MalformedResponse("AI 응답 형식 오류가 발생했습니다. 다시 시도해주세요.",
                                details=f"expected a JSON object, got {type(data).__name__}")
    return data

def normalize_quiz_payload(raw: dict) -> dict:
    """Presence check only: summary, keyPoints and questions must all be there."""
    summary = raw.get("summary")
    key_points = raw.get("keyPoints")
    questions = raw.get("questions")
    if not summary or key_points is None or questions is None:
        raise MalformedResponse("생성된 퀴즈 데이터가 올바르지 않습니다. 다시 시도해주세요.",
                                details=f"keys present: {sorted(raw.keys())}")
    if not isinstance(key_points, list) or not isinstance(questions, list):
        raise MalformedResponse("생성된 퀴즈 데이터가 올바르지 않습니다. 다시 시도해주세요.",
                                details="keyPoints and questions must be arrays")
    return {**raw, "summary": str(summary).strip(), "keyPoints": key_points, "questions": questions}

def make_excerpt(text: str, limit: int = 300) -> str:
    return text[:limit] + ("..." if len(text) > limit else "")

def today_label(today: Optional[date] = None) -> str:
    # ko-KR short date, e.g. "2026. 10. 18."
    d = today or date.today()
    return f"{d.year}. {d.month}. {d.day}."

def pagination(page: int, limit: int, total: int) -> dict:
    total_pages = math.ceil(total / limit) if limit else 0
    return {
        "currentPage": page,
        "totalPages": total_pages,
        "totalCount": total,
        "hasNextPage": page < total_pages,
        "hasPrevPage": page > 1,
        "limit": limit,
    }
