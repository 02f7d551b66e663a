# scraper.py
import logging
from typing import Optional, Tuple
from urllib.parse import urlparse

import requests
from bs4 import BeautifulSoup
from readability import Document
from readability.readability import Unparseable

from config import FETCH_TIMEOUT_SECONDS
from errors import ValidationError, Timeout, NetworkError
from schemas import SourceContent
from utils import make_excerpt

logger = logging.getLogger(__name__)

class InvalidUrl(ValidationError):
    pass

class HttpError(ValidationError):
    def __init__(self, status: int, reason: str = ""):
        super().__init__(f"HTTP 오류: {status}", details=reason or None)
        self.status = status

class InsufficientContent(ValidationError):
    pass

# Browser-like headers so sites don't serve us a bot page
HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "ko-KR,ko;q=0.9,en;q=0.8",
    "DNT": "1",
    "Upgrade-Insecure-Requests": "1",
}

# Removed before any text is taken from the page
NOISE_SELECTORS = [
    "script",
    "style",
    "nav",
    "header",
    "footer",
    "aside",
    ".sidebar",
    ".advertisement",
    ".ads",
    ".social-share",
    ".comments",
    ".related-posts",
    ".popup",
    ".modal",
    ".cookie-notice",
    '[class*="banner"]',
    '[class*="popup"]',
    '[id*="popup"]',
    '[class*="share"]',
    '[class*="social"]',
]

# Tried in this order when readability comes back short. Order matters.
CONTENT_SELECTORS = [
    "article",
    ".content",
    ".post-content",
    ".entry-content",
    ".article-content",
    ".main-content",
    "main",
    ".container",
    "body",
]

READABILITY_CHAR_THRESHOLD = 500
MIN_CONTENT_CHARS = 200
NO_TITLE = "제목 없음"

def is_valid_url(url: str) -> bool:
    try:
        p = urlparse(url)
    except ValueError:
        return False
    return p.scheme in ("http", "https") and bool(p.netloc)

def _fetch(url: str) -> str:
    try:
        resp = requests.get(url, headers=HEADERS, timeout=FETCH_TIMEOUT_SECONDS, allow_redirects=True)
    except requests.Timeout:
        raise Timeout("요청 시간이 초과되었습니다. 다른 URL을 시도해주세요.")
    except requests.RequestException as e:
        raise NetworkError("네트워크 연결 오류가 발생했습니다. URL을 확인하고 다시 시도해주세요.", details=str(e))
    if not resp.ok:
        raise HttpError(resp.status_code, resp.reason or "")
    return resp.text

def _clean(soup: BeautifulSoup) -> BeautifulSoup:
    for selector in NOISE_SELECTORS:
        for el in soup.select(selector):
            el.decompose()
    return soup

def _meta(soup: BeautifulSoup, name: str) -> str:
    for attrs in ({"name": name}, {"property": f"og:{name}"}, {"property": f"twitter:{name}"}):
        tag = soup.find("meta", attrs=attrs)
        if tag and tag.get("content"):
            return tag["content"].strip()
    return ""

def _page_metadata(soup: BeautifulSoup) -> Tuple[str, Optional[str]]:
    """(title, site_name) from meta/OG tags, falling back to the first <h1>."""
    title = _meta(soup, "title")
    if not title:
        h1 = soup.find("h1")
        title = h1.get_text(" ", strip=True) if h1 else ""
    site_name = _meta(soup, "site_name") or None
    return title, site_name

def _readability_text(html: str, url: str) -> Tuple[str, str]:
    """(title, text) of the main article region, or ("", "") when nothing qualifies."""
    try:
        doc = Document(html, url=url, retry_length=READABILITY_CHAR_THRESHOLD)
        summary_html = doc.summary(html_partial=True)
        title = doc.short_title() or ""
    except Unparseable as e:
        logger.info("Readability could not parse %s: %s", url, e)
        return "", ""
    if title == "[no-title]":
        title = ""
    text = BeautifulSoup(summary_html, "html.parser").get_text("\n", strip=True)
    return title.strip(), text

def _fallback_text(soup: BeautifulSoup) -> str:
    content = ""
    for selector in CONTENT_SELECTORS:
        elements = soup.select(selector)
        if elements:
            content = "\n".join(el.get_text("\n", strip=True) for el in elements).strip()
            if len(content) > MIN_CONTENT_CHARS:
                break
    return content

def extract_from_html(html: str, url: str) -> SourceContent:
    if not html or not html.strip():
        raise InsufficientContent("빈 페이지입니다.")

    soup = _clean(BeautifulSoup(html, "html.parser"))
    meta_title, site_name = _page_metadata(soup)

    article_title, text = _readability_text(html, url)
    if len(text.strip()) < MIN_CONTENT_CHARS:
        logger.info("Readability returned %d chars for %s, trying content selectors", len(text.strip()), url)
        text = _fallback_text(soup)
        if len(text) < MIN_CONTENT_CHARS:
            raise InsufficientContent("충분한 텍스트 내용을 찾을 수 없습니다.")
    text = text.strip()

    return SourceContent(
        text=text,
        title=article_title or meta_title or NO_TITLE,
        excerpt=make_excerpt(text),
        siteName=site_name,
        length=len(text),
    )

def extract_from_url(url: str) -> SourceContent:
    url = (url or "").strip()
    if not is_valid_url(url):
        raise InvalidUrl("유효하지 않은 URL입니다.")

    logger.info("Fetching %s", url)
    html = _fetch(url)
    logger.info("Downloaded %d chars of HTML from %s", len(html), url)

    result = extract_from_html(html, url)
    logger.info("Extracted %d chars (title=%r, site=%r)", result.length, result.title, result.siteName)
    return result
