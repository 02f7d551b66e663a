# quiz_session.py
"""
Quiz-taking state machine.

    InProgress(current_index, answers) --next() on last question--> Completed(score)

Answers are compared with strict equality against the question's
correctAnswer: an option index for multiple-choice, a bool for true-false,
an exact string for fill-in-the-blank and sentence-completion.
"""
import logging
import math
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import requests

from schemas import GeneratedQuiz, QuizQuestion, WrongAnswerItem

logger = logging.getLogger(__name__)

IN_PROGRESS = "in_progress"
COMPLETED = "completed"

WrongAnswerSink = Callable[[List[WrongAnswerItem]], None]

@dataclass
class RecordedAnswer:
    value: Any
    is_correct: bool

def answers_match(value: Any, expected: Any) -> bool:
    # True == 1 and 0 == False in Python; a bool answer only matches a bool key.
    if isinstance(value, bool) or isinstance(expected, bool):
        return isinstance(value, bool) and isinstance(expected, bool) and value is expected
    return type(value) is type(expected) and value == expected

def is_correct(question: QuizQuestion, value: Any) -> bool:
    expected = question.correctAnswer
    if question.type == "multiple-choice":
        # An index the options list can't hold is never correct
        options = question.options or []
        if not isinstance(expected, int) or isinstance(expected, bool) or not 0 <= expected < len(options):
            return False
    return answers_match(value, expected)

def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))

class QuizAttempt:
    def __init__(self, quiz: GeneratedQuiz, on_wrong_answers: Optional[WrongAnswerSink] = None):
        self.quiz = quiz
        self.on_wrong_answers = on_wrong_answers
        self.reset()

    @property
    def total(self) -> int:
        return len(self.quiz.questions)

    @property
    def state(self) -> str:
        return COMPLETED if self.completed else IN_PROGRESS

    @property
    def current_question(self) -> Optional[QuizQuestion]:
        if not self.quiz.questions:
            return None
        return self.quiz.questions[self.current_index]

    def reset(self) -> None:
        self.current_index = 0
        self.answers: Dict[int, RecordedAnswer] = {}
        self.completed = False
        self.score: Optional[int] = None

    def answer(self, index: int, value: Any) -> bool:
        """Record (or overwrite) the answer for question `index`; returns whether it is correct."""
        if self.completed:
            raise RuntimeError("quiz attempt is already completed; reset() to start over")
        if not 0 <= index < self.total:
            raise IndexError(f"question index {index} out of range (0..{self.total - 1})")
        correct = is_correct(self.quiz.questions[index], value)
        self.answers[index] = RecordedAnswer(value=value, is_correct=correct)
        return correct

    def next(self) -> bool:
        """Advance, or complete on the last question. Blocked until the current question is answered."""
        if self.completed or self.current_index not in self.answers:
            return False
        if self.current_index >= self.total - 1:
            self._complete()
        else:
            self.current_index += 1
        return True

    def prev(self) -> bool:
        if self.completed or self.current_index == 0:
            return False
        self.current_index -= 1
        return True

    @property
    def correct_count(self) -> int:
        return sum(1 for a in self.answers.values() if a.is_correct)

    def calculate_score(self) -> int:
        if not self.total:
            return 0
        return round_half_up(100 * self.correct_count / self.total)

    def wrong_answers(self) -> List[WrongAnswerItem]:
        items = []
        for index in sorted(self.answers):
            recorded = self.answers[index]
            if recorded.is_correct:
                continue
            q = self.quiz.questions[index]
            items.append(WrongAnswerItem(
                questionIndex=index,
                questionText=q.question,
                userAnswer=recorded.value,
                correctAnswer=q.correctAnswer,
                explanation=q.explanation,
            ))
        return items

    def _complete(self) -> None:
        self.completed = True
        self.score = self.calculate_score()
        logger.info("Quiz completed: %d/%d correct, score %d", self.correct_count, self.total, self.score)

        wrong = self.wrong_answers()
        if not wrong or self.on_wrong_answers is None:
            return
        # One attempt; a failed save never affects the result
        try:
            self.on_wrong_answers(wrong)
        except Exception:
            logger.exception("Saving %d wrong answers failed", len(wrong))

def http_wrong_answer_sink(base_url: str, token: str, quiz_id: str, quiz_title: Optional[str] = None,
                           timeout: float = 10) -> WrongAnswerSink:
    """Sink that posts the batch to /api/wrong-answers as the signed-in user."""
    def sink(entries: List[WrongAnswerItem]) -> None:
        resp = requests.post(
            f"{base_url.rstrip('/')}/api/wrong-answers",
            json={
                "quizId": quiz_id,
                "quizTitle": quiz_title,
                "wrongAnswers": [e.model_dump() for e in entries],
            },
            headers={"Authorization": f"Bearer {token}"},
            timeout=timeout,
        )
        resp.raise_for_status()
    return sink
