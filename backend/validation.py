# validation.py
from schemas import SourceContent
from errors import ValidationError

PASTE_MAX_CHARS = 10000
DOCUMENT_MIN_CHARS = 300
DOCUMENT_MAX_CHARS = 15000

class TooLong(ValidationError):
    pass

class TooShort(ValidationError):
    pass

def validate(content: SourceContent, context: str = "document") -> None:
    """
    Length bounds applied before text is sent for generation.
    context is "paste" (raw text box) or "document"/"url" (extracted text).
    Raises TooLong / TooShort; returns None when the text is acceptable.
    """
    n = len(content.text)

    if context == "paste":
        if n > PASTE_MAX_CHARS:
            raise TooLong(f"텍스트가 너무 깁니다. {PASTE_MAX_CHARS:,}자 이하로 줄여주세요.")
        return

    if context not in ("document", "url"):
        raise ValueError(f"unknown validation context: {context!r}")

    if n > DOCUMENT_MAX_CHARS:
        raise TooLong("텍스트가 너무 깁니다. 더 짧은 페이지나 문서를 선택해주세요.")
    if n < DOCUMENT_MIN_CHARS:
        raise TooShort("텍스트 내용이 너무 짧습니다. 더 긴 본문이 있는 페이지나 문서를 선택해주세요.")
