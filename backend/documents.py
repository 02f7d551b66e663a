# documents.py
import io
import logging
from typing import Optional

import docx
from PyPDF2 import PdfReader
from PyPDF2.errors import PdfReadError

from config import MAX_UPLOAD_MB
from errors import ValidationError
from schemas import SourceContent
from utils import make_excerpt

logger = logging.getLogger(__name__)

PDF_MIME = "application/pdf"
DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
TXT_MIME = "text/plain"

SUPPORTED_EXTENSIONS = (".pdf", ".docx", ".txt")

# extension, mime, user-facing advice
UNSUPPORTED_FORMATS = [
    (".doc", "application/msword", "DOC 파일은 현재 지원하지 않습니다. DOCX 형식으로 변환 후 다시 시도해주세요."),
    (".pptx", "application/vnd.openxmlformats-officedocument.presentationml.presentation",
     "PPTX 파일은 현재 지원하지 않습니다. PDF로 변환 후 다시 시도해주세요."),
    (".ppt", "application/vnd.ms-powerpoint", "PPT 파일은 현재 지원하지 않습니다. PDF로 변환 후 다시 시도해주세요."),
]

class UnsupportedFormat(ValidationError):
    pass

class FileTooLarge(ValidationError):
    pass

class ParseError(ValidationError):
    def __init__(self, fmt: str, message: str, details: Optional[str] = None):
        super().__init__(message, details=details)
        self.format = fmt

def check_size(size: int, max_mb: int = MAX_UPLOAD_MB) -> None:
    if size > max_mb * 1024 * 1024:
        raise FileTooLarge(f"파일 크기가 너무 큽니다. {max_mb}MB 이하의 파일을 업로드해주세요.")

def parse_pdf(data: bytes) -> SourceContent:
    try:
        reader = PdfReader(io.BytesIO(data))
        if reader.is_encrypted:
            raise ParseError("pdf", "PDF 파일을 읽을 수 없습니다. 암호화된 문서는 지원하지 않습니다.")
        text = "\n".join(page.extract_text() or "" for page in reader.pages).strip()
        info = reader.metadata
        page_count = len(reader.pages)
    except ParseError:
        raise
    except (PdfReadError, ValueError, KeyError, OSError) as e:
        logger.warning("PDF parse failed: %s", e)
        raise ParseError("pdf", "PDF 파일을 읽을 수 없습니다. 파일이 손상되었거나 암호화되어 있을 수 있습니다.",
                         details=str(e))

    metadata = {"pageCount": page_count}
    title = None
    if info:
        title = info.title or None
        if info.author:
            metadata["author"] = info.author
        if info.subject:
            metadata["subject"] = info.subject
        keywords = info.get("/Keywords")
        if keywords:
            metadata["keywords"] = [k.strip() for k in str(keywords).split(",") if k.strip()]

    logger.info("Parsed PDF: %d pages, %d chars", page_count, len(text))
    return SourceContent(text=text, title=title or "PDF 문서", excerpt=make_excerpt(text),
                         length=len(text), metadata=metadata)

def parse_docx(data: bytes) -> SourceContent:
    try:
        document = docx.Document(io.BytesIO(data))
    except Exception as e:  # python-docx surfaces zip/xml/KeyError failures without a common base
        logger.warning("DOCX parse failed: %s", e)
        raise ParseError("docx", "DOCX 파일을 읽을 수 없습니다. 파일이 손상되었거나 지원하지 않는 형식일 수 있습니다.",
                         details=str(e))
    text = "\n".join(p.text for p in document.paragraphs).strip()
    logger.info("Parsed DOCX: %d chars", len(text))
    return SourceContent(text=text, title="Word 문서", excerpt=make_excerpt(text), length=len(text))

def parse_txt(data: bytes) -> SourceContent:
    try:
        text = data.decode("utf-8").strip()
    except UnicodeDecodeError as e:
        raise ParseError("txt", "TXT 파일을 읽을 수 없습니다. 파일 인코딩(UTF-8)을 확인해주세요.", details=str(e))
    return SourceContent(text=text, title="텍스트 문서", excerpt=make_excerpt(text), length=len(text))

def extract_from_file(filename: str, content_type: Optional[str], data: bytes,
                      max_mb: int = MAX_UPLOAD_MB) -> SourceContent:
    """Size check first, then dispatch on extension or MIME type."""
    check_size(len(data), max_mb)

    name = (filename or "").lower()
    mime = (content_type or "").split(";")[0].strip().lower()
    logger.info("Extracting %s (%s, %d bytes)", name, mime or "unknown type", len(data))

    if name.endswith(".pdf") or mime == PDF_MIME:
        return parse_pdf(data)
    if name.endswith(".docx") or mime == DOCX_MIME:
        return parse_docx(data)
    for ext, ext_mime, advice in UNSUPPORTED_FORMATS:
        if name.endswith(ext) or mime == ext_mime:
            raise UnsupportedFormat(advice)
    if name.endswith(".txt") or mime == TXT_MIME:
        return parse_txt(data)

    raise UnsupportedFormat("지원하지 않는 파일 형식입니다. PDF, DOCX, TXT 파일만 지원합니다.")
