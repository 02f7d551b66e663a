"""Shared test fixtures and configuration for pytest."""

import json
import os
import tempfile
from typing import Any, Callable

# Must be set before any backend module reads its configuration
_DB_FILE = os.path.join(tempfile.mkdtemp(prefix="quizgen-test-"), "test.db")
os.environ["DATABASE_URL"] = f"sqlite:///{_DB_FILE}"
os.environ["GOOGLE_API_KEY"] = "test-key"
os.environ["AUTH_SERVICE_URL"] = "http://auth.test"

import pytest
from fastapi.testclient import TestClient

import auth
import llm
import models
from db import get_session
from errors import AuthError
from main import app
from schemas import GeneratedQuiz

ALICE_TOKEN = "token-alice"
BOB_TOKEN = "token-bob"

SAMPLE_QUIZ = {
    "summary": "광합성은 식물이 빛 에너지를 화학 에너지로 바꾸는 과정이다.",
    "keyPoints": ["엽록체에서 일어난다", "이산화탄소와 물을 사용한다", "산소를 방출한다"],
    "questions": [
        {
            "type": "multiple-choice",
            "question": "광합성이 일어나는 세포 소기관은?",
            "options": ["미토콘드리아", "엽록체", "리보솜", "핵"],
            "correctAnswer": 1,
            "explanation": "광합성은 엽록체에서 일어난다.",
        },
        {
            "type": "multiple-choice",
            "question": "광합성에 필요한 기체는?",
            "options": ["산소", "질소", "이산화탄소", "수소"],
            "correctAnswer": 2,
            "explanation": "이산화탄소를 흡수한다.",
        },
        {
            "type": "true-false",
            "question": "광합성은 산소를 방출한다.",
            "correctAnswer": True,
            "explanation": "물이 분해되며 산소가 나온다.",
        },
        {
            "type": "true-false",
            "question": "광합성은 밤에만 일어난다.",
            "correctAnswer": False,
            "explanation": "빛이 필요하다.",
        },
        {
            "type": "fill-in-the-blank",
            "question": "광합성은 _____ 에너지를 사용한다.",
            "correctAnswer": "빛",
            "explanation": "빛 에너지가 필요하다.",
        },
        {
            "type": "fill-in-the-blank",
            "question": "광합성의 산물은 포도당과 _____이다.",
            "correctAnswer": "산소",
        },
    ],
}

SAMPLE_TITLE = {"title": "식물의 광합성 과정과 엽록체의 역할", "tag": "과학"}

class FakeModel:
    """Stands in for llm._call_model; answers quiz and title prompts separately."""

    def __init__(self, quiz: Any = None, title: Any = None):
        self.quiz_reply = json.dumps(quiz if quiz is not None else SAMPLE_QUIZ, ensure_ascii=False)
        self.title_reply = json.dumps(title if title is not None else SAMPLE_TITLE, ensure_ascii=False)
        self.quiz_error = None
        self.title_error = None
        self.prompts = []

    def __call__(self, prompt, system_instruction, temperature, max_output_tokens):
        self.prompts.append(prompt)
        if system_instruction == llm.TITLE_SYSTEM_PROMPT:
            if self.title_error:
                raise self.title_error
            return self.title_reply
        if self.quiz_error:
            raise self.quiz_error
        return self.quiz_reply

@pytest.fixture
def fake_model(monkeypatch) -> FakeModel:
    model = FakeModel()
    monkeypatch.setattr(llm, "_call_model", model)
    return model

def _fake_get_user(token: str) -> auth.AuthUser:
    users = {ALICE_TOKEN: "alice", BOB_TOKEN: "bob"}
    if token not in users:
        raise AuthError("유효하지 않은 토큰입니다.")
    return auth.AuthUser(id=users[token], email=f"{users[token]}@example.com", token=token)

@pytest.fixture(autouse=True)
def fake_auth(monkeypatch):
    """Tokens resolve locally instead of calling the auth service."""
    monkeypatch.setattr(auth, "get_user", _fake_get_user)

@pytest.fixture(autouse=True)
def clean_db():
    yield
    with get_session() as db:
        for table in (models.Favorite, models.WrongAnswer, models.QuizRecord, models.Inquiry):
            db.query(table).delete()
        db.commit()

@pytest.fixture
def client() -> TestClient:
    return TestClient(app)

@pytest.fixture
def alice_headers() -> dict:
    return {"Authorization": f"Bearer {ALICE_TOKEN}"}

@pytest.fixture
def bob_headers() -> dict:
    return {"Authorization": f"Bearer {BOB_TOKEN}"}

@pytest.fixture
def sample_quiz() -> GeneratedQuiz:
    return GeneratedQuiz.model_validate(SAMPLE_QUIZ)

@pytest.fixture
def korean_text() -> Callable[[int], str]:
    """Text of exactly n characters."""
    def make(n: int) -> str:
        base = "광합성은 식물이 빛 에너지를 이용해 이산화탄소와 물로 포도당을 만드는 과정이다. "
        return (base * (n // len(base) + 1))[:n]
    return make
