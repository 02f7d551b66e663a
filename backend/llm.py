# llm.py  - talks to Gemini through google-generativeai directly
import json
import logging
import os
from typing import Optional

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions
from pydantic import ValidationError as SchemaError

import config
from errors import UpstreamError, QuotaExceeded, MalformedResponse
from schemas import GeneratedQuiz, QuizGenerationOptions, TitleAndTag
from utils import parse_model_json, normalize_quiz_payload, today_label

logger = logging.getLogger(__name__)

PROMPT_DIR = os.path.join(os.path.dirname(__file__), "prompts")
with open(os.path.join(PROMPT_DIR, "quiz_prompt.md"), "r", encoding="utf-8") as f:
    QUIZ_SYSTEM_PROMPT = f.read()
with open(os.path.join(PROMPT_DIR, "title_prompt.md"), "r", encoding="utf-8") as f:
    TITLE_SYSTEM_PROMPT = f.read()

FALLBACK_TAG = "일반"
TITLE_ANALYSIS_MAX_CHARS = 3000

# One example object per question type; only the enabled ones go into the prompt.
TYPE_EXAMPLES = {
    "multipleChoice": ("객관식", {
        "type": "multiple-choice",
        "question": "객관식 문제",
        "options": ["선택지1", "선택지2", "선택지3", "선택지4"],
        "correctAnswer": 0,
        "explanation": "정답 설명",
    }),
    "trueOrFalse": ("참/거짓", {
        "type": "true-false",
        "question": "참/거짓 문제",
        "correctAnswer": True,
        "explanation": "정답 설명",
    }),
    "fillInBlank": ("빈칸 추론", {
        "type": "fill-in-the-blank",
        "question": "다음 문장의 빈칸을 채워주세요: _____는 중요한 개념입니다.",
        "correctAnswer": "정답",
        "explanation": "정답 설명",
    }),
    "sentenceCompletion": ("문장 완성", {
        "type": "sentence-completion",
        "question": "주어진 단어들을 사용하여 올바른 문장을 만들어주세요: [문제 설명]",
        "options": ["name", "what", "your", "is"],
        "correctAnswer": "what is your name",
        "explanation": "정답 설명",
    }),
}

DEFAULT_MIX = ("multipleChoice", "trueOrFalse", "fillInBlank")

class LLMError(UpstreamError):
    pass

_configured = False

def _ensure_configured() -> None:
    global _configured
    if not config.GOOGLE_API_KEY:
        raise LLMError("AI API 키가 설정되지 않았거나 올바르지 않습니다. .env 파일을 확인해주세요.",
                       details="GOOGLE_API_KEY is missing")
    if not _configured:
        genai.configure(api_key=config.GOOGLE_API_KEY)
        _configured = True

def _call_model(prompt: str, system_instruction: str, temperature: float, max_output_tokens: int) -> str:
    """Single call, no retry. Returns the raw response text."""
    _ensure_configured()
    model = genai.GenerativeModel(
        config.GEMINI_MODEL,
        system_instruction=system_instruction,
        generation_config={
            "temperature": temperature,
            "max_output_tokens": max_output_tokens,
            "response_mime_type": "application/json",
        },
    )
    try:
        resp = model.generate_content(prompt)
    except google_exceptions.ResourceExhausted as e:
        raise QuotaExceeded("API 사용량 한도에 도달했습니다. 잠시 후 다시 시도해주세요.", details=str(e))
    except google_exceptions.GoogleAPIError as e:
        raise LLMError("퀴즈 생성 중 오류가 발생했습니다. 다시 시도해주세요.", details=str(e))

    # .text raises ValueError when the candidate was blocked or empty
    try:
        text = resp.text
    except ValueError as e:
        raise MalformedResponse("AI 응답을 받지 못했습니다. 다시 시도해주세요.", details=str(e))
    if not text or not text.strip():
        raise MalformedResponse("AI 응답을 받지 못했습니다. 다시 시도해주세요.",
                                details=f"Model {config.GEMINI_MODEL} returned empty response.")
    return text

def build_quiz_prompt(content: str, options: Optional[QuizGenerationOptions] = None) -> str:
    if options is None:
        selected = list(DEFAULT_MIX)
        mix_rules = (
            "- 객관식 2-3개, 참/거짓 2-3개, 빈칸 추론 2-3개를 섞어서 만들어주세요.\n"
            "- 각 유형은 최소 2개 이상이어야 합니다."
        )
    else:
        selected = [key for key in TYPE_EXAMPLES if getattr(options.types, key)]
        names = ", ".join(TYPE_EXAMPLES[key][0] for key in selected)
        mix_rules = (
            f"- 총 {options.questionCount}개의 문제를 생성하되, 선택된 유형({names})만 사용해주세요.\n"
            "- 각 유형이 골고루 분배되도록 해주세요."
        )

    examples = ",\n".join(
        json.dumps(TYPE_EXAMPLES[key][1], ensure_ascii=False, indent=2) for key in selected
    )
    return f"""다음 텍스트를 분석하여 요약, 핵심 포인트 3개, 그리고 퀴즈를 생성해주세요.

텍스트:
{content}

퀴즈 생성 요구사항:
{mix_rules}

문제 객체 형식 예시:
[
{examples}
]
"""

def generate_quiz(content: str, options: Optional[QuizGenerationOptions] = None) -> GeneratedQuiz:
    """
    Builds the prompt, makes one model call and validates the JSON that comes back.
    Raises MalformedResponse when summary, keyPoints or questions is missing.
    """
    prompt = build_quiz_prompt(content, options)
    logger.info("Generating quiz with %s (%d chars of content)", config.GEMINI_MODEL, len(content))

    raw_text = _call_model(prompt, QUIZ_SYSTEM_PROMPT, config.QUIZ_TEMPERATURE, config.QUIZ_MAX_OUTPUT_TOKENS)
    data = normalize_quiz_payload(parse_model_json(raw_text))
    try:
        quiz = GeneratedQuiz.model_validate(data)
    except SchemaError as e:
        raise MalformedResponse("생성된 퀴즈 데이터가 올바르지 않습니다. 다시 시도해주세요.", details=str(e))

    logger.info("Quiz generated: %d questions", len(quiz.questions))
    return quiz

def _title_analysis_text(content: str) -> str:
    # The head and tail of a long document are enough to name it
    if len(content) <= TITLE_ANALYSIS_MAX_CHARS:
        return content
    return content[:2000] + "\n\n[...중략...]\n\n" + content[-500:]

def fallback_title_and_tag(source_title: Optional[str] = None) -> TitleAndTag:
    return TitleAndTag(title=source_title or f"퀴즈 - {today_label()}", tag=FALLBACK_TAG)

def derive_title_and_tag(content: str, source_title: Optional[str] = None) -> TitleAndTag:
    """Second, independent model call. Never raises: any failure yields the fallback."""
    prompt = f"다음 텍스트를 분석하여 내용에 기반한 의미있는 제목과 태그를 생성해주세요.\n\n텍스트:\n{_title_analysis_text(content)}\n"
    try:
        raw_text = _call_model(prompt, TITLE_SYSTEM_PROMPT, config.TITLE_TEMPERATURE, config.TITLE_MAX_OUTPUT_TOKENS)
        data = parse_model_json(raw_text)
        title = str(data.get("title") or "").strip()
        tag = str(data.get("tag") or "").strip()
        if not title or not tag:
            raise MalformedResponse("생성된 제목/태그 데이터가 올바르지 않습니다.", details=raw_text[:200])
        return TitleAndTag(title=title, tag=tag)
    except Exception:
        logger.warning("Title/tag generation failed, using fallback", exc_info=True)
        return fallback_title_and_tag(source_title)

# --- Simple ping for /api/llm-test
def ping_llm() -> dict:
    """
    Returns {"ok": True, "model": <model>, "content": "..."} on success,
            or {"ok": False, "error": "..."} on failure.
    """
    try:
        _ensure_configured()
        model = genai.GenerativeModel(config.GEMINI_MODEL)
        resp = model.generate_content("Reply with OK")
        text = (resp.text or "").strip()
    except (UpstreamError, google_exceptions.GoogleAPIError, ValueError) as e:
        return {"ok": False, "model": config.GEMINI_MODEL, "error": str(e)}
    return {"ok": True, "model": config.GEMINI_MODEL, "content": text[:200]}
