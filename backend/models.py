# models.py
import uuid
from datetime import datetime
from sqlalchemy import Column, Integer, String, Text, DateTime, Boolean, ForeignKey, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from db import Base

def _uuid() -> str:
    return str(uuid.uuid4())

class QuizRecord(Base):
    __tablename__ = "quiz_records"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(64), index=True, nullable=False)
    title = Column(String(512), nullable=False)
    tag = Column(String(64))
    original_content = Column(Text, nullable=False)
    prompt_used = Column(Text, nullable=False)
    generated_quiz = Column(JSON, nullable=False)    # {summary, keyPoints, questions}
    source_url = Column(String(2048))
    source_file = Column(String(512))
    content_metadata = Column(JSON)                  # {siteName, originalTitle, contentLength, excerpt}
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    favorites = relationship("Favorite", back_populates="quiz_record", cascade="all, delete-orphan")

class Favorite(Base):
    __tablename__ = "favorites"
    __table_args__ = (UniqueConstraint("user_id", "quiz_record_id", name="uq_favorite_user_quiz"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), index=True, nullable=False)
    quiz_record_id = Column(String(36), ForeignKey("quiz_records.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    quiz_record = relationship("QuizRecord", back_populates="favorites")

class WrongAnswer(Base):
    __tablename__ = "wrong_answers"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), index=True, nullable=False)
    quiz_id = Column(String(64), index=True, nullable=False)
    quiz_title = Column(String(512))
    question_index = Column(Integer, nullable=False)
    question_text = Column(Text, nullable=False)
    user_answer = Column(JSON)        # str | int | bool, kept with its JSON type
    correct_answer = Column(JSON)
    explanation = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow)

class Inquiry(Base):
    __tablename__ = "inquiries"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), index=True)
    title = Column(String(256), nullable=False)
    content = Column(Text, nullable=False)
    author_name = Column(String(128), nullable=False)
    email = Column(String(256))
    is_public = Column(Boolean, default=True, nullable=False)
    status = Column(String(32), default="pending", nullable=False)   # pending|answered
    created_at = Column(DateTime, default=datetime.utcnow)
