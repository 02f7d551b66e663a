# schemas.py
from datetime import datetime
from typing import Any, Dict, List, Optional, Literal
from pydantic import BaseModel, ConfigDict, Field, model_validator

QuestionType = Literal["multiple-choice", "true-false", "fill-in-the-blank", "sentence-completion"]
ValidationContext = Literal["paste", "document", "url"]

# -----------------------------------------------------------------------------
# Extracted content
# -----------------------------------------------------------------------------
class SourceContent(BaseModel):
    """Plain text pulled out of a pasted string, an uploaded file or a web page."""
    model_config = ConfigDict(frozen=True)

    text: str
    title: Optional[str] = None
    excerpt: Optional[str] = None
    siteName: Optional[str] = None
    length: int
    metadata: Optional[Dict[str, Any]] = None

# -----------------------------------------------------------------------------
# Generation
# -----------------------------------------------------------------------------
class QuizTypes(BaseModel):
    multipleChoice: bool = True
    trueOrFalse: bool = True
    fillInBlank: bool = True
    sentenceCompletion: bool = False

class QuizGenerationOptions(BaseModel):
    types: QuizTypes = Field(default_factory=QuizTypes)
    questionCount: int = Field(default=5, ge=1, le=20)

    @model_validator(mode="after")
    def at_least_one_type(self):
        t = self.types
        if not (t.multipleChoice or t.trueOrFalse or t.fillInBlank or t.sentenceCompletion):
            raise ValueError("At least one question type must be enabled")
        return self

class QuizQuestion(BaseModel):
    # Model output is only checked for presence; per-type invariants are the consumer's problem.
    model_config = ConfigDict(extra="allow")

    type: str
    question: str
    options: Optional[List[Any]] = None
    correctAnswer: Any = None
    explanation: Optional[str] = None

class GeneratedQuiz(BaseModel):
    model_config = ConfigDict(extra="allow")

    summary: str
    keyPoints: List[Any]
    questions: List[QuizQuestion]

class TitleAndTag(BaseModel):
    title: str
    tag: str

# -----------------------------------------------------------------------------
# Requests
# -----------------------------------------------------------------------------
class GenerateIn(BaseModel):
    content: Optional[str] = None
    title: Optional[str] = None
    saveToDatabase: bool = False
    quizOptions: Optional[QuizGenerationOptions] = None

class AnalyzeUrlIn(BaseModel):
    url: Optional[str] = None
    saveToDatabase: bool = False
    quizOptions: Optional[QuizGenerationOptions] = None
    autoGenerateTitle: bool = True

class FavoriteIn(BaseModel):
    quizId: Optional[str] = None

class WrongAnswerItem(BaseModel):
    questionIndex: int
    questionText: str
    userAnswer: Any = None
    correctAnswer: Any = None
    explanation: Optional[str] = None

class WrongAnswersIn(BaseModel):
    quizId: Optional[str] = None
    quizTitle: Optional[str] = None
    wrongAnswers: Optional[List[WrongAnswerItem]] = None

class InquiryIn(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None
    author_name: Optional[str] = None
    email: Optional[str] = None
    is_public: bool = True

# -----------------------------------------------------------------------------
# Persisted rows
# -----------------------------------------------------------------------------
class CreateQuizRecordData(BaseModel):
    title: str
    tag: Optional[str] = None
    original_content: str
    prompt_used: str
    generated_quiz: Dict[str, Any]
    source_url: Optional[str] = None
    source_file: Optional[str] = None
    content_metadata: Optional[Dict[str, Any]] = None

class QuizRecordOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    title: str
    tag: Optional[str] = None
    original_content: str
    prompt_used: str
    generated_quiz: Dict[str, Any]
    source_url: Optional[str] = None
    source_file: Optional[str] = None
    content_metadata: Optional[Dict[str, Any]] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

class SavedRecordOut(QuizRecordOut):
    slug: str

class WrongAnswerOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str
    quiz_id: str
    quiz_title: Optional[str] = None
    question_index: int
    question_text: str
    user_answer: Any = None
    correct_answer: Any = None
    explanation: Optional[str] = None
    created_at: datetime

class InquiryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: Optional[str] = None
    title: str
    content: str
    author_name: str
    email: Optional[str] = None
    is_public: bool
    status: str
    created_at: datetime

# -----------------------------------------------------------------------------
# Responses
# -----------------------------------------------------------------------------
class GenerateOut(BaseModel):
    success: bool = True
    data: GeneratedQuiz
    savedRecord: Optional[SavedRecordOut] = None

class SourcedGenerateOut(GenerateOut):
    generatedTitle: str
    generatedTag: str
    sourceInfo: Dict[str, Any]
