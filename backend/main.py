# main.py
import logging
from typing import Optional

from fastapi import FastAPI, HTTPException, Header, Depends, Query, UploadFile, File, Form
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError as SchemaError

import config
import crud
import schemas
from auth import AuthUser, require_user, optional_user, user_from_header
from db import Base, engine, get_session
from documents import extract_from_file
from errors import QuizAppError, AuthError, PersistenceError, QuotaExceeded
from llm import generate_quiz, derive_title_and_tag, ping_llm
from scraper import extract_from_url
from utils import today_label, pagination
from validation import validate

logging.basicConfig(level=config.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# App & CORS
# -----------------------------------------------------------------------------
app = FastAPI(title="AI Quiz Generator")

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Create tables at startup
Base.metadata.create_all(bind=engine)

def _http_error(e: QuizAppError, status_code: Optional[int] = None) -> HTTPException:
    if e.details:
        logger.warning("%s: %s (%s)", type(e).__name__, e.message, e.details)
    else:
        logger.warning("%s: %s", type(e).__name__, e.message)
    return HTTPException(status_code=status_code or e.status_code, detail=e.message)

def _saved_record_out(row) -> schemas.SavedRecordOut:
    record = schemas.QuizRecordOut.model_validate(row)
    return schemas.SavedRecordOut(**record.model_dump(), slug=row.id)

def _save_if_requested(save: bool, authorization: Optional[str],
                       data: schemas.CreateQuizRecordData) -> Optional[schemas.SavedRecordOut]:
    """
    Optional save step. Auth or store failures are logged and swallowed:
    the caller still gets the quiz that was generated.
    """
    if not save:
        return None
    try:
        user = user_from_header(authorization)
        with get_session() as db:
            row = crud.save_quiz_record(db, user.id, data)
            return _saved_record_out(row)
    except AuthError as e:
        logger.info("Quiz not saved, caller not authenticated: %s", e.details or e.message)
    except PersistenceError as e:
        logger.error("Quiz not saved: %s", e.details or e.message)
    except Exception:
        logger.exception("Quiz not saved, unexpected error while storing")
    return None

# -----------------------------------------------------------------------------
# Health
# -----------------------------------------------------------------------------
@app.get("/api/health")
def health():
    return {"status": "ok"}

# -----------------------------------------------------------------------------
# LLM smoke test (quick check that Gemini works)
# -----------------------------------------------------------------------------
@app.get("/api/llm-test")
def llm_test():
    return ping_llm()

# -----------------------------------------------------------------------------
# Generate quiz from pasted text
# -----------------------------------------------------------------------------
@app.post("/api/generate-quiz", response_model=schemas.GenerateOut)
def generate_quiz_from_text(payload: schemas.GenerateIn, authorization: Optional[str] = Header(None)):
    content = payload.content
    if not content or not content.strip():
        raise HTTPException(status_code=400, detail="유효한 텍스트 내용을 제공해주세요.")

    source = schemas.SourceContent(text=content, title=payload.title, length=len(content))
    try:
        validate(source, "paste")
        quiz = generate_quiz(content, payload.quizOptions)
    except QuotaExceeded as e:
        raise _http_error(e, status_code=500)
    except QuizAppError as e:
        raise _http_error(e)

    saved = _save_if_requested(payload.saveToDatabase, authorization, schemas.CreateQuizRecordData(
        title=payload.title or f"퀴즈 - {today_label()}",
        original_content=content,
        prompt_used=f"다음 텍스트를 분석하여 요약, 핵심 포인트, 그리고 다양한 유형의 퀴즈를 생성해주세요.\n\n텍스트:\n{content}",
        generated_quiz=quiz.model_dump(),
    ))
    return {"success": True, "data": quiz, "savedRecord": saved}

# -----------------------------------------------------------------------------
# Generate quiz from a web page (extract + title/tag + LLM + optional store)
# -----------------------------------------------------------------------------
def _url_title_and_tag(source: schemas.SourceContent, auto: bool):
    if not auto:
        return source.title, "웹페이지"
    generated = derive_title_and_tag(source.text, source.title)
    if len(generated.title.strip()) >= 10:
        return generated.title, generated.tag
    logger.info("Generated title %r too short, keeping the page title", generated.title)
    return source.title or f"웹페이지 퀴즈 - {today_label()}", "웹페이지"

@app.post("/api/analyze-url", response_model=schemas.SourcedGenerateOut)
def analyze_url(payload: schemas.AnalyzeUrlIn, authorization: Optional[str] = Header(None)):
    url = (payload.url or "").strip()
    if not url:
        raise HTTPException(status_code=400, detail="유효한 URL을 제공해주세요.")

    try:
        source = extract_from_url(url)
        validate(source, "url")
        title, tag = _url_title_and_tag(source, payload.autoGenerateTitle)
        quiz = generate_quiz(source.text, payload.quizOptions)
    except QuizAppError as e:
        raise _http_error(e)

    source_info = {
        "url": url,
        "originalTitle": source.title,
        "siteName": source.siteName,
        "contentLength": source.length,
        "excerpt": source.excerpt,
    }
    saved = _save_if_requested(payload.saveToDatabase, authorization, schemas.CreateQuizRecordData(
        title=title or f"퀴즈 - {today_label()}",
        tag=tag,
        original_content=source.text,
        prompt_used=f"URL: {url}\n\n추출된 내용:\n{source.text}",
        generated_quiz=quiz.model_dump(),
        source_url=url,
        content_metadata={k: v for k, v in source_info.items() if k != "url"},
    ))
    return {
        "success": True,
        "data": quiz,
        "savedRecord": saved,
        "generatedTitle": title,
        "generatedTag": tag,
        "sourceInfo": source_info,
    }

# -----------------------------------------------------------------------------
# Generate quiz from an uploaded document (.pdf / .docx / .txt)
# -----------------------------------------------------------------------------
@app.post("/api/upload-document", response_model=schemas.SourcedGenerateOut)
def upload_document(
    file: Optional[UploadFile] = File(None),
    saveToDatabase: str = Form("false"),
    quizOptions: Optional[str] = Form(None),
    autoGenerateTitle: str = Form("true"),
    authorization: Optional[str] = Header(None),
):
    if file is None:
        raise HTTPException(status_code=400, detail="파일을 업로드해주세요.")

    options = None
    if quizOptions:
        try:
            options = schemas.QuizGenerationOptions.model_validate_json(quizOptions)
        except SchemaError:
            raise HTTPException(status_code=400, detail="퀴즈 옵션 형식이 올바르지 않습니다.")

    data = file.file.read()
    try:
        source = extract_from_file(file.filename, file.content_type, data)
        validate(source, "document")
        if autoGenerateTitle != "false":
            generated = derive_title_and_tag(source.text, source.title)
            title, tag = generated.title, generated.tag
        else:
            title, tag = source.title, ""
        quiz = generate_quiz(source.text, options)
    except QuizAppError as e:
        raise _http_error(e)

    saved = _save_if_requested(saveToDatabase == "true", authorization, schemas.CreateQuizRecordData(
        title=title or f"퀴즈 - {today_label()}",
        tag=tag,
        original_content=source.text,
        prompt_used=f"다음 문서를 분석하여 요약, 핵심 포인트, 그리고 다양한 유형의 퀴즈를 생성해주세요.\n\n문서:\n{source.text}",
        generated_quiz=quiz.model_dump(),
        source_file=file.filename,
    ))
    return {
        "success": True,
        "data": quiz,
        "savedRecord": saved,
        "generatedTitle": title or "",
        "generatedTag": tag,
        "sourceInfo": {
            "fileName": file.filename,
            "fileSize": len(data),
            "originalTitle": source.title,
            "excerpt": source.excerpt,
            "metadata": source.metadata,
        },
    }

# -----------------------------------------------------------------------------
# Quiz history
# -----------------------------------------------------------------------------
@app.get("/api/quiz-history")
def quiz_history(page: int = Query(1, ge=1), limit: int = Query(10, ge=1, le=100),
                 user: AuthUser = Depends(require_user)):
    try:
        with get_session() as db:
            rows, total = crud.list_quiz_records(db, user.id, page, limit)
            records = [schemas.QuizRecordOut.model_validate(r) for r in rows]
    except PersistenceError as e:
        raise _http_error(e)
    return {"success": True, "data": {"records": records, "pagination": pagination(page, limit, total)}}

@app.get("/api/quiz-history/{quiz_id}")
def quiz_history_item(quiz_id: str, user: AuthUser = Depends(require_user)):
    try:
        with get_session() as db:
            record = schemas.QuizRecordOut.model_validate(crud.get_quiz_record(db, quiz_id, user.id))
    except QuizAppError as e:
        raise _http_error(e)
    return {"success": True, "data": record}

@app.delete("/api/quiz-history/{quiz_id}")
def quiz_history_delete(quiz_id: str, user: AuthUser = Depends(require_user)):
    try:
        with get_session() as db:
            crud.delete_quiz_record(db, quiz_id, user.id)
    except QuizAppError as e:
        raise _http_error(e)
    return {"success": True}

# -----------------------------------------------------------------------------
# Favorites
# -----------------------------------------------------------------------------
@app.get("/api/favorites")
def favorites(quizId: Optional[str] = None, page: int = Query(1, ge=1), limit: int = Query(10, ge=1, le=100),
              user: AuthUser = Depends(require_user)):
    try:
        with get_session() as db:
            if quizId:
                return {"success": True, "isFavorite": crud.is_favorite(db, user.id, quizId)}
            rows, total = crud.list_favorite_records(db, user.id, page, limit)
            records = [schemas.QuizRecordOut.model_validate(r) for r in rows]
    except PersistenceError as e:
        raise _http_error(e)
    return {"success": True, "data": {"records": records, "pagination": pagination(page, limit, total)}}

@app.post("/api/favorites")
def add_favorite(payload: schemas.FavoriteIn, user: AuthUser = Depends(require_user)):
    if not payload.quizId:
        raise HTTPException(status_code=400, detail="퀴즈 ID가 필요합니다.")
    try:
        with get_session() as db:
            row = crud.toggle_favorite(db, user.id, payload.quizId, add=True)
            data = {"id": row.id, "user_id": row.user_id, "quiz_record_id": row.quiz_record_id,
                    "created_at": row.created_at}
    except QuizAppError as e:
        raise _http_error(e)
    return {"success": True, "data": data}

@app.delete("/api/favorites")
def remove_favorite(payload: schemas.FavoriteIn, user: AuthUser = Depends(require_user)):
    if not payload.quizId:
        raise HTTPException(status_code=400, detail="퀴즈 ID가 필요합니다.")
    try:
        with get_session() as db:
            crud.toggle_favorite(db, user.id, payload.quizId, add=False)
    except QuizAppError as e:
        raise _http_error(e)
    return {"success": True}

# -----------------------------------------------------------------------------
# Wrong answers
# -----------------------------------------------------------------------------
@app.get("/api/wrong-answers")
def wrong_answers(page: int = Query(1, ge=1), limit: int = Query(20, ge=1, le=100),
                  user: AuthUser = Depends(require_user)):
    try:
        with get_session() as db:
            rows, total = crud.list_wrong_answers(db, user.id, page, limit)
            items = [schemas.WrongAnswerOut.model_validate(r) for r in rows]
    except PersistenceError as e:
        raise _http_error(e)
    return {"success": True, "data": {"wrongAnswers": items, "pagination": pagination(page, limit, total)}}

@app.post("/api/wrong-answers")
def save_wrong_answers(payload: schemas.WrongAnswersIn, user: AuthUser = Depends(require_user)):
    if not payload.quizId or payload.wrongAnswers is None:
        raise HTTPException(status_code=400, detail="필수 데이터가 누락되었습니다.")
    try:
        with get_session() as db:
            rows = crud.save_wrong_answers(db, user.id, payload.quizId, payload.quizTitle, payload.wrongAnswers)
            items = [schemas.WrongAnswerOut.model_validate(r) for r in rows]
    except PersistenceError as e:
        raise _http_error(e)
    return {"success": True, "data": items}

# -----------------------------------------------------------------------------
# Inquiries (public support board)
# -----------------------------------------------------------------------------
@app.get("/api/inquiries")
def inquiries(page: int = Query(1, ge=1), limit: int = Query(10, ge=1, le=100)):
    try:
        with get_session() as db:
            rows, total = crud.list_public_inquiries(db, page, limit)
            items = [schemas.InquiryOut.model_validate(r) for r in rows]
    except PersistenceError as e:
        raise _http_error(e)
    return {"success": True, "data": {"inquiries": items, "pagination": pagination(page, limit, total)}}

@app.post("/api/inquiries")
def create_inquiry(payload: schemas.InquiryIn, user: Optional[AuthUser] = Depends(optional_user)):
    if not payload.title or not payload.content or not payload.author_name:
        raise HTTPException(status_code=400, detail="제목, 내용, 작성자명은 필수입니다.")
    try:
        with get_session() as db:
            row = crud.create_inquiry(
                db,
                title=payload.title,
                content=payload.content,
                author_name=payload.author_name,
                email=payload.email,
                is_public=payload.is_public,
                user_id=user.id if user else None,
            )
            item = schemas.InquiryOut.model_validate(row)
    except PersistenceError as e:
        raise _http_error(e)
    return {"success": True, "data": item, "message": "문의글이 성공적으로 등록되었습니다."}
