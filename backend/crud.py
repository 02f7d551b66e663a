# crud.py
"""
Persistence gateway. Every read and write is scoped by the caller's user_id,
so a user can only ever see or touch their own rows.
"""
import logging
from typing import List, Optional, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

import models
from errors import NotFoundError, PersistenceError, DuplicateFavorite
from schemas import CreateQuizRecordData, WrongAnswerItem

logger = logging.getLogger(__name__)

def _offset(page: int, limit: int) -> int:
    return (max(page, 1) - 1) * limit

def _commit(db: Session, what: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Failed to %s", what)
        raise PersistenceError("데이터 저장에 실패했습니다.", details=str(e))

# -----------------------------------------------------------------------------
# Quiz records
# -----------------------------------------------------------------------------
def save_quiz_record(db: Session, user_id: str, data: CreateQuizRecordData) -> models.QuizRecord:
    row = models.QuizRecord(user_id=user_id, **data.model_dump())
    db.add(row)
    _commit(db, "save quiz record")
    db.refresh(row)
    logger.info("Saved quiz record %s for user %s", row.id, user_id)
    return row

def get_quiz_record(db: Session, record_id: str, user_id: str) -> models.QuizRecord:
    row = (
        db.query(models.QuizRecord)
        .filter(models.QuizRecord.id == record_id, models.QuizRecord.user_id == user_id)
        .first()
    )
    if not row:
        raise NotFoundError("퀴즈 기록을 찾을 수 없습니다.")
    return row

def list_quiz_records(db: Session, user_id: str, page: int = 1, limit: int = 10) -> Tuple[List[models.QuizRecord], int]:
    q = db.query(models.QuizRecord).filter(models.QuizRecord.user_id == user_id)
    total = q.count()
    rows = (
        q.order_by(models.QuizRecord.created_at.desc())
        .offset(_offset(page, limit))
        .limit(limit)
        .all()
    )
    return rows, total

def delete_quiz_record(db: Session, record_id: str, user_id: str) -> None:
    row = get_quiz_record(db, record_id, user_id)
    db.delete(row)
    _commit(db, "delete quiz record")
    logger.info("Deleted quiz record %s for user %s", record_id, user_id)

# -----------------------------------------------------------------------------
# Favorites
# -----------------------------------------------------------------------------
def _favorite_row(db: Session, user_id: str, quiz_id: str) -> Optional[models.Favorite]:
    return (
        db.query(models.Favorite)
        .filter(models.Favorite.user_id == user_id, models.Favorite.quiz_record_id == quiz_id)
        .first()
    )

def is_favorite(db: Session, user_id: str, quiz_id: str) -> bool:
    return _favorite_row(db, user_id, quiz_id) is not None

def toggle_favorite(db: Session, user_id: str, quiz_id: str, add: bool) -> Optional[models.Favorite]:
    """
    add=True inserts the (user, quiz) pair and returns the row; a second insert
    raises DuplicateFavorite and leaves the first row as it was.
    add=False deletes the pair if present and returns None.
    """
    if not add:
        db.query(models.Favorite).filter(
            models.Favorite.user_id == user_id, models.Favorite.quiz_record_id == quiz_id
        ).delete(synchronize_session=False)
        _commit(db, "remove favorite")
        return None

    # Only the owner's records can be favorited
    get_quiz_record(db, quiz_id, user_id)

    row = models.Favorite(user_id=user_id, quiz_record_id=quiz_id)
    db.add(row)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise DuplicateFavorite("이미 즐겨찾기에 추가된 퀴즈입니다.")
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Failed to add favorite")
        raise PersistenceError("즐겨찾기 추가 중 오류가 발생했습니다.", details=str(e))
    db.refresh(row)
    return row

def list_favorite_records(db: Session, user_id: str, page: int = 1, limit: int = 10) -> Tuple[List[models.QuizRecord], int]:
    q = db.query(models.Favorite).filter(models.Favorite.user_id == user_id)
    total = q.count()
    rows = (
        q.order_by(models.Favorite.created_at.desc())
        .offset(_offset(page, limit))
        .limit(limit)
        .all()
    )
    return [f.quiz_record for f in rows if f.quiz_record is not None], total

# -----------------------------------------------------------------------------
# Wrong answers
# -----------------------------------------------------------------------------
def save_wrong_answers(db: Session, user_id: str, quiz_id: str, quiz_title: Optional[str],
                       entries: List[WrongAnswerItem]) -> List[models.WrongAnswer]:
    rows = [
        models.WrongAnswer(
            user_id=user_id,
            quiz_id=quiz_id,
            quiz_title=quiz_title,
            question_index=e.questionIndex,
            question_text=e.questionText,
            user_answer=e.userAnswer,
            correct_answer=e.correctAnswer,
            explanation=e.explanation,
        )
        for e in entries
    ]
    db.add_all(rows)
    _commit(db, "save wrong answers")
    for r in rows:
        db.refresh(r)
    logger.info("Saved %d wrong answers for quiz %s", len(rows), quiz_id)
    return rows

def list_wrong_answers(db: Session, user_id: str, page: int = 1, limit: int = 20) -> Tuple[List[models.WrongAnswer], int]:
    q = db.query(models.WrongAnswer).filter(models.WrongAnswer.user_id == user_id)
    total = q.count()
    rows = (
        q.order_by(models.WrongAnswer.created_at.desc(), models.WrongAnswer.id.desc())
        .offset(_offset(page, limit))
        .limit(limit)
        .all()
    )
    return rows, total

# -----------------------------------------------------------------------------
# Inquiries (public board)
# -----------------------------------------------------------------------------
def create_inquiry(db: Session, title: str, content: str, author_name: str, email: Optional[str],
                   is_public: bool, user_id: Optional[str] = None) -> models.Inquiry:
    row = models.Inquiry(
        user_id=user_id,
        title=title,
        content=content,
        author_name=author_name,
        email=email,
        is_public=is_public,
        status="pending",
    )
    db.add(row)
    _commit(db, "save inquiry")
    db.refresh(row)
    return row

def list_public_inquiries(db: Session, page: int = 1, limit: int = 10) -> Tuple[List[models.Inquiry], int]:
    q = db.query(models.Inquiry).filter(models.Inquiry.is_public.is_(True))
    total = q.count()
    rows = (
        q.order_by(models.Inquiry.created_at.desc(), models.Inquiry.id.desc())
        .offset(_offset(page, limit))
        .limit(limit)
        .all()
    )
    return rows, total
