"""End-to-end tests for the HTTP endpoints, with the model, network and auth faked."""

import json

import pytest
import requests
from sqlalchemy.exc import SQLAlchemyError

import crud
import scraper
from conftest import SAMPLE_QUIZ
from errors import MalformedResponse, QuotaExceeded
from test_scraper import ARTICLE_HTML, FakeResponse
from utils import today_label


@pytest.fixture
def article_site(monkeypatch):
    """Every fetched URL returns the sample article."""
    def fake_get(url, **kwargs):
        return FakeResponse(ARTICLE_HTML)
    monkeypatch.setattr(scraper.requests, "get", fake_get)


def _save_quiz(client, headers, korean_text, title="광합성 퀴즈"):
    resp = client.post("/api/generate-quiz", headers=headers, json={
        "content": korean_text(400), "title": title, "saveToDatabase": True,
    })
    assert resp.status_code == 200
    return resp.json()["savedRecord"]


class TestHealth:
    def test_health(self, client):
        """The health check answers without auth."""
        assert client.get("/api/health").json() == {"status": "ok"}


class TestGenerateQuiz:
    """POST /api/generate-quiz"""

    def test_default_mix(self, client, fake_model, korean_text):
        """300 chars of text with no options gives a summary, key points and questions."""
        resp = client.post("/api/generate-quiz", json={"content": korean_text(300)})
        body = resp.json()

        assert resp.status_code == 200
        assert body["success"] is True
        assert body["data"]["summary"] == SAMPLE_QUIZ["summary"]
        assert len(body["data"]["keyPoints"]) == 3
        assert len(body["data"]["questions"]) >= 6
        assert body["savedRecord"] is None
        assert "객관식 2-3개" in fake_model.prompts[0]

    def test_too_long(self, client, fake_model, korean_text):
        """Pasted text over 10000 characters is rejected before the model is called."""
        resp = client.post("/api/generate-quiz", json={"content": korean_text(10001)})

        assert resp.status_code == 400
        assert fake_model.prompts == []

    @pytest.mark.parametrize("content", [None, "", "   "])
    def test_empty_content(self, client, fake_model, content):
        """Missing or blank content is a bad request."""
        assert client.post("/api/generate-quiz", json={"content": content}).status_code == 400

    def test_options_are_forwarded(self, client, fake_model, korean_text):
        """quizOptions reach the prompt."""
        resp = client.post("/api/generate-quiz", json={
            "content": korean_text(500),
            "quizOptions": {"types": {"multipleChoice": True, "trueOrFalse": False, "fillInBlank": False},
                            "questionCount": 4},
        })
        assert resp.status_code == 200
        assert "총 4개" in fake_model.prompts[0]

    def test_options_without_types(self, client, fake_model, korean_text):
        """Disabling every question type is a bad request."""
        resp = client.post("/api/generate-quiz", json={
            "content": korean_text(500),
            "quizOptions": {"types": {"multipleChoice": False, "trueOrFalse": False, "fillInBlank": False}},
        })
        assert resp.status_code == 422

    def test_save_with_token(self, client, fake_model, alice_headers, korean_text):
        """A signed-in caller gets the stored record back with a slug."""
        saved = _save_quiz(client, alice_headers, korean_text)

        assert saved["slug"] == saved["id"]
        assert saved["user_id"] == "alice"
        assert saved["title"] == "광합성 퀴즈"
        assert saved["generated_quiz"]["summary"] == SAMPLE_QUIZ["summary"]

    def test_save_without_token(self, client, fake_model, korean_text):
        """Without a token the quiz is still returned, just not stored."""
        resp = client.post("/api/generate-quiz", json={"content": korean_text(400), "saveToDatabase": True})

        assert resp.status_code == 200
        assert resp.json()["savedRecord"] is None

    def test_default_title_on_save(self, client, fake_model, alice_headers, korean_text):
        """Without a title the record is named after today's date."""
        resp = client.post("/api/generate-quiz", headers=alice_headers,
                           json={"content": korean_text(400), "saveToDatabase": True})
        assert resp.json()["savedRecord"]["title"] == f"퀴즈 - {today_label()}"

    def test_malformed_model_reply(self, client, fake_model, korean_text):
        """A reply missing keyPoints and questions is a server error."""
        fake_model.quiz_reply = json.dumps({"summary": "요약만 있음"})
        resp = client.post("/api/generate-quiz", json={"content": korean_text(400)})
        assert resp.status_code == 500

    def test_store_failure_still_returns_quiz(self, client, fake_model, alice_headers, korean_text, monkeypatch):
        """An unexpected error while storing is logged; the quiz is still returned."""
        def broken_save(db, user_id, data):
            raise SQLAlchemyError("disk I/O error")
        monkeypatch.setattr(crud, "save_quiz_record", broken_save)

        resp = client.post("/api/generate-quiz", headers=alice_headers,
                           json={"content": korean_text(400), "saveToDatabase": True})

        assert resp.status_code == 200
        assert resp.json()["savedRecord"] is None
        assert len(resp.json()["data"]["questions"]) == 6

    def test_quota_is_500_here(self, client, fake_model, korean_text):
        """This endpoint reports quota exhaustion as a server error."""
        fake_model.quiz_error = QuotaExceeded("API 사용량 한도에 도달했습니다.")
        resp = client.post("/api/generate-quiz", json={"content": korean_text(400)})

        assert resp.status_code == 500
        assert resp.json()["detail"] == "API 사용량 한도에 도달했습니다."


class TestAnalyzeUrl:
    """POST /api/analyze-url"""

    def test_success(self, client, fake_model, article_site):
        """The page is extracted, titled, tagged and turned into a quiz."""
        resp = client.post("/api/analyze-url", json={"url": "https://plants.example.com/photosynthesis"})
        body = resp.json()

        assert resp.status_code == 200
        assert body["generatedTitle"] == "식물의 광합성 과정과 엽록체의 역할"
        assert body["generatedTag"] == "과학"
        assert body["sourceInfo"]["url"] == "https://plants.example.com/photosynthesis"
        assert body["sourceInfo"]["siteName"] == "Plant Weekly"
        assert body["sourceInfo"]["contentLength"] >= 300
        assert len(body["data"]["questions"]) == 6

    def test_short_generated_title_keeps_page_title(self, client, fake_model, article_site):
        """A generated title under 10 characters is replaced by the page title."""
        fake_model.title_reply = json.dumps({"title": "광합성", "tag": "과학"})
        body = client.post("/api/analyze-url", json={"url": "https://plants.example.com/a"}).json()

        assert body["generatedTitle"] == "Photosynthesis Basics"
        assert body["generatedTag"] == "웹페이지"

    def test_title_failure_does_not_fail_request(self, client, fake_model, article_site):
        """A failed title call falls back; the quiz is still returned."""
        fake_model.title_error = MalformedResponse("bad")
        resp = client.post("/api/analyze-url", json={"url": "https://plants.example.com/a"})

        assert resp.status_code == 200
        assert resp.json()["generatedTitle"] == "Photosynthesis Basics"

    def test_save_stores_source(self, client, fake_model, article_site, alice_headers):
        """Saved records keep the URL and page metadata."""
        resp = client.post("/api/analyze-url", headers=alice_headers,
                           json={"url": "https://plants.example.com/a", "saveToDatabase": True})
        saved = resp.json()["savedRecord"]

        assert saved["source_url"] == "https://plants.example.com/a"
        assert saved["tag"] == "과학"
        assert saved["content_metadata"]["siteName"] == "Plant Weekly"
        assert "url" not in saved["content_metadata"]

    @pytest.mark.parametrize("url", [None, "", "not a url", "ftp://example.com"])
    def test_invalid_url(self, client, fake_model, url):
        """Missing or non-http URLs are rejected."""
        assert client.post("/api/analyze-url", json={"url": url}).status_code == 400

    def test_unreachable_host(self, client, fake_model, monkeypatch):
        """A DNS or connection failure is a 502."""
        def unreachable(url, **kwargs):
            raise requests.ConnectionError("Name or service not known")
        monkeypatch.setattr(scraper.requests, "get", unreachable)

        resp = client.post("/api/analyze-url", json={"url": "https://no-such-host.invalid"})
        assert resp.status_code == 502
        assert fake_model.prompts == []

    def test_timeout(self, client, fake_model, monkeypatch):
        """A slow site is a 408."""
        def slow(url, **kwargs):
            raise requests.Timeout("read timed out")
        monkeypatch.setattr(scraper.requests, "get", slow)

        assert client.post("/api/analyze-url", json={"url": "https://slow.example.com"}).status_code == 408

    def test_http_error_status(self, client, fake_model, monkeypatch):
        """An error status from the site is a bad request."""
        monkeypatch.setattr(scraper.requests, "get", lambda url, **kwargs: FakeResponse("", 404, "Not Found"))
        assert client.post("/api/analyze-url", json={"url": "https://example.com/gone"}).status_code == 400

    def test_too_little_content(self, client, fake_model, monkeypatch):
        """A page with only a sentence or two is rejected."""
        html = "<html><body><p>Too short to quiz on.</p></body></html>"
        monkeypatch.setattr(scraper.requests, "get", lambda url, **kwargs: FakeResponse(html))

        assert client.post("/api/analyze-url", json={"url": "https://example.com/stub"}).status_code == 400

    def test_quota_is_429_here(self, client, fake_model, article_site):
        """analyze-url reports quota exhaustion as 429."""
        fake_model.quiz_error = QuotaExceeded("API 사용량 한도에 도달했습니다.")
        resp = client.post("/api/analyze-url", json={"url": "https://plants.example.com/a"})
        assert resp.status_code == 429


class TestUploadDocument:
    """POST /api/upload-document"""

    def test_text_file(self, client, fake_model, korean_text, alice_headers):
        """A UTF-8 .txt upload is read, titled and saved."""
        data = korean_text(800).encode("utf-8")
        resp = client.post(
            "/api/upload-document",
            headers=alice_headers,
            files={"file": ("notes.txt", data, "text/plain")},
            data={"saveToDatabase": "true"},
        )
        body = resp.json()

        assert resp.status_code == 200
        assert body["generatedTitle"] == "식물의 광합성 과정과 엽록체의 역할"
        assert body["sourceInfo"]["fileName"] == "notes.txt"
        assert body["sourceInfo"]["fileSize"] == len(data)
        assert body["savedRecord"]["source_file"] == "notes.txt"

    def test_without_auto_title(self, client, fake_model, korean_text):
        """With autoGenerateTitle off the document title is used and no title call is made."""
        resp = client.post(
            "/api/upload-document",
            files={"file": ("notes.txt", korean_text(800).encode("utf-8"), "text/plain")},
            data={"autoGenerateTitle": "false"},
        )
        body = resp.json()

        assert body["generatedTitle"] == "텍스트 문서"
        assert body["generatedTag"] == ""
        assert len(fake_model.prompts) == 1

    def test_too_short_document(self, client, fake_model, korean_text):
        """Documents need at least 300 characters."""
        resp = client.post("/api/upload-document",
                           files={"file": ("notes.txt", korean_text(299).encode("utf-8"), "text/plain")})
        assert resp.status_code == 400

    def test_oversized_file(self, client, fake_model):
        """Files over 10MB are rejected."""
        data = b"a" * (10 * 1024 * 1024 + 1)
        resp = client.post("/api/upload-document", files={"file": ("big.txt", data, "text/plain")})

        assert resp.status_code == 400
        assert "10MB" in resp.json()["detail"]

    def test_legacy_word_format(self, client, fake_model):
        """.doc files get conversion advice."""
        resp = client.post("/api/upload-document",
                           files={"file": ("old.doc", b"\xd0\xcf\x11\xe0", "application/msword")})

        assert resp.status_code == 400
        assert "DOCX" in resp.json()["detail"]

    def test_missing_file(self, client, fake_model):
        """A form without a file is a bad request."""
        assert client.post("/api/upload-document", data={"saveToDatabase": "false"}).status_code == 400

    @pytest.mark.parametrize("options", [
        "{not json",
        '{"types": {"multipleChoice": false, "trueOrFalse": false, "fillInBlank": false}}',
    ])
    def test_bad_options(self, client, fake_model, korean_text, options):
        """Unparseable or empty quizOptions are a bad request."""
        resp = client.post(
            "/api/upload-document",
            files={"file": ("notes.txt", korean_text(800).encode("utf-8"), "text/plain")},
            data={"quizOptions": options},
        )
        assert resp.status_code == 400


class TestQuizHistory:
    """GET/DELETE /api/quiz-history"""

    def test_requires_token(self, client):
        """History needs a valid token."""
        assert client.get("/api/quiz-history").status_code == 401
        assert client.get("/api/quiz-history", headers={"Authorization": "Bearer nope"}).status_code == 401

    def test_scoped_to_caller(self, client, fake_model, alice_headers, bob_headers, korean_text):
        """Each user only sees their own records."""
        _save_quiz(client, alice_headers, korean_text, title="alice 1")
        _save_quiz(client, alice_headers, korean_text, title="alice 2")
        _save_quiz(client, bob_headers, korean_text, title="bob 1")

        alice = client.get("/api/quiz-history", headers=alice_headers).json()["data"]
        bob = client.get("/api/quiz-history", headers=bob_headers).json()["data"]

        assert {r["title"] for r in alice["records"]} == {"alice 1", "alice 2"}
        assert alice["pagination"]["totalCount"] == 2
        assert [r["title"] for r in bob["records"]] == ["bob 1"]

    def test_pagination(self, client, fake_model, alice_headers, korean_text):
        """page and limit slice the caller's records."""
        for i in range(3):
            _save_quiz(client, alice_headers, korean_text, title=f"퀴즈 {i}")

        page = client.get("/api/quiz-history?page=2&limit=2", headers=alice_headers).json()["data"]

        assert len(page["records"]) == 1
        assert page["pagination"]["totalPages"] == 2
        assert page["pagination"]["hasPrevPage"] is True
        assert page["pagination"]["hasNextPage"] is False

    def test_get_and_delete_by_id(self, client, fake_model, alice_headers, bob_headers, korean_text):
        """Records can be read and deleted only by their owner."""
        saved = _save_quiz(client, alice_headers, korean_text)
        url = f"/api/quiz-history/{saved['id']}"

        assert client.get(url, headers=alice_headers).json()["data"]["id"] == saved["id"]
        assert client.get(url, headers=bob_headers).status_code == 404
        assert client.delete(url, headers=bob_headers).status_code == 404
        assert client.delete(url, headers=alice_headers).status_code == 200
        assert client.get(url, headers=alice_headers).status_code == 404


class TestFavorites:
    """/api/favorites"""

    def test_add_twice_conflicts(self, client, fake_model, alice_headers, korean_text):
        """The second add is a 409 and the first favorite stays."""
        saved = _save_quiz(client, alice_headers, korean_text)

        first = client.post("/api/favorites", headers=alice_headers, json={"quizId": saved["id"]})
        second = client.post("/api/favorites", headers=alice_headers, json={"quizId": saved["id"]})
        listing = client.get("/api/favorites", headers=alice_headers).json()["data"]

        assert first.status_code == 200
        assert second.status_code == 409
        assert [r["id"] for r in listing["records"]] == [saved["id"]]

    def test_is_favorite_and_remove(self, client, fake_model, alice_headers, korean_text):
        """isFavorite follows adds and removes."""
        saved = _save_quiz(client, alice_headers, korean_text)
        check = f"/api/favorites?quizId={saved['id']}"

        assert client.get(check, headers=alice_headers).json()["isFavorite"] is False
        client.post("/api/favorites", headers=alice_headers, json={"quizId": saved["id"]})
        assert client.get(check, headers=alice_headers).json()["isFavorite"] is True

        resp = client.request("DELETE", "/api/favorites", headers=alice_headers, json={"quizId": saved["id"]})
        assert resp.status_code == 200
        assert client.get(check, headers=alice_headers).json()["isFavorite"] is False

    def test_other_users_quiz(self, client, fake_model, alice_headers, bob_headers, korean_text):
        """Someone else's quiz can't be favorited."""
        saved = _save_quiz(client, alice_headers, korean_text)
        resp = client.post("/api/favorites", headers=bob_headers, json={"quizId": saved["id"]})
        assert resp.status_code == 404

    def test_missing_quiz_id(self, client, alice_headers):
        """quizId is required."""
        assert client.post("/api/favorites", headers=alice_headers, json={}).status_code == 400

    def test_requires_token(self, client):
        """Favorites need a signed-in caller."""
        assert client.post("/api/favorites", json={"quizId": "x"}).status_code == 401


class TestWrongAnswers:
    """/api/wrong-answers"""

    def test_save_and_list(self, client, alice_headers, bob_headers):
        """Saved wrong answers are listed for their owner only."""
        payload = {
            "quizId": "quiz-1",
            "quizTitle": "광합성 퀴즈",
            "wrongAnswers": [
                {"questionIndex": 2, "questionText": "TF", "userAnswer": False, "correctAnswer": True},
                {"questionIndex": 4, "questionText": "FIB", "userAnswer": "물", "correctAnswer": "빛"},
            ],
        }
        resp = client.post("/api/wrong-answers", headers=alice_headers, json=payload)
        assert resp.status_code == 200
        assert len(resp.json()["data"]) == 2

        mine = client.get("/api/wrong-answers", headers=alice_headers).json()["data"]
        theirs = client.get("/api/wrong-answers", headers=bob_headers).json()["data"]

        assert mine["pagination"]["totalCount"] == 2
        assert {w["question_index"] for w in mine["wrongAnswers"]} == {2, 4}
        assert theirs["wrongAnswers"] == []

    def test_missing_fields(self, client, alice_headers):
        """quizId and wrongAnswers are both required."""
        assert client.post("/api/wrong-answers", headers=alice_headers,
                           json={"wrongAnswers": []}).status_code == 400
        assert client.post("/api/wrong-answers", headers=alice_headers,
                           json={"quizId": "quiz-1"}).status_code == 400


class TestInquiries:
    """/api/inquiries"""

    def test_create_and_list(self, client, alice_headers):
        """Anyone can post; only public inquiries are listed."""
        client.post("/api/inquiries", json={"title": "질문", "content": "내용", "author_name": "홍길동"})
        resp = client.post("/api/inquiries", headers=alice_headers, json={
            "title": "비공개 질문", "content": "내용", "author_name": "앨리스", "is_public": False,
        })

        assert resp.status_code == 200
        assert resp.json()["data"]["user_id"] == "alice"
        assert resp.json()["data"]["status"] == "pending"

        listing = client.get("/api/inquiries").json()["data"]
        assert [i["title"] for i in listing["inquiries"]] == ["질문"]

    def test_invalid_token_posts_anonymously(self, client):
        """A bad token does not block posting an inquiry."""
        resp = client.post("/api/inquiries", headers={"Authorization": "Bearer nope"},
                           json={"title": "질문", "content": "내용", "author_name": "홍길동"})
        assert resp.json()["data"]["user_id"] is None

    def test_missing_author(self, client):
        """author_name is required."""
        resp = client.post("/api/inquiries", json={"title": "질문", "content": "내용"})
        assert resp.status_code == 400
