"""Tests for the HTTP API."""

from dsxpert.services.llm_service import LLMServiceError

ORIGINAL = "def has(items, x):\n    return x in items\n"
OPTIMIZED = "def has(items, x):\n    lookup = set(items)\n    return x in lookup\n"


def queue_optimization(fake_llm, optimized: str = OPTIMIZED) -> None:
    fake_llm.queue('{"issues": []}', f"```python\n{optimized}```", "Used a set for lookups.")


def open_review(client, fake_llm) -> dict:
    queue_optimization(fake_llm)
    response = client.post("/api/optimize", json={"code": ORIGINAL, "language": "python"})
    assert response.status_code == 200, response.text
    return response.json()


class TestHealth:
    def test_health(self, client) -> None:
        assert client.get("/health").json() == {"status": "healthy", "service": "dsxpert-backend"}


class TestOptimizeEndpoints:
    """Tests for /api/optimize."""

    def test_optimize_opens_review(self, client, fake_llm, monkeypatch) -> None:
        monkeypatch.setattr("dsxpert.services.languages.shutil.which", lambda name: None)
        body = open_review(client, fake_llm)

        assert body["language"] == "python"
        assert body["is_optimized"] is True
        assert body["optimized"] == OPTIMIZED
        assert body["explanation"] == "Used a set for lookups."
        assert body["review_url"].endswith(f"/api/review/{body['review_id']}")
        kinds = [segment["kind"] for segment in body["diff"]["segments"]]
        assert kinds == ["unchanged", "removed", "added"]

    def test_optimize_lowercases_language(self, client, fake_llm, monkeypatch) -> None:
        monkeypatch.setattr("dsxpert.services.languages.shutil.which", lambda name: None)
        queue_optimization(fake_llm)
        response = client.post("/api/optimize", json={"code": ORIGINAL, "language": "Python"})
        assert response.json()["language"] == "python"

        page = client.get(f"/api/review/{response.json()['review_id']}")
        assert "language-python" in page.text
        assert "language-Python" not in page.text

    def test_optimize_rejects_invalid_original(self, client, fake_llm) -> None:
        fake_llm.queue('{"issues": []}')
        response = client.post("/api/optimize", json={"code": "def f(:\n", "language": "python"})
        assert response.status_code == 422
        assert "syntax issues" in response.json()["detail"]

    def test_optimize_model_failure(self, client, fake_llm) -> None:
        fake_llm.queue('{"issues": []}', LLMServiceError("Gemini API error (500)"))
        response = client.post("/api/optimize", json={"code": ORIGINAL, "language": "python"})
        assert response.status_code == 422
        assert "Failed to optimize code" in response.json()["detail"]

    def test_detect_language(self, client, fake_llm) -> None:
        fake_llm.queue("go")
        response = client.post("/api/optimize/detect-language", json={"code": "package main\n"})
        assert response.json() == {"language": "go"}

    def test_validate(self, client, fake_llm) -> None:
        fake_llm.queue("not json")
        response = client.post("/api/optimize/validate", json={"code": "x = (\n", "language": "python"})
        body = response.json()
        assert body["is_valid"] is False
        assert body["issues"][0]["line"] == 1

    def test_format_without_formatter(self, client, monkeypatch) -> None:
        monkeypatch.setattr("dsxpert.services.languages.shutil.which", lambda name: None)
        response = client.post("/api/optimize/format", json={"code": "x=1\n", "language": "python"})
        assert response.json() == {"language": "python", "code": "x=1\n", "changed": False}

    def test_stateless_diff(self, client) -> None:
        response = client.post(
            "/api/optimize/diff",
            json={"original": "x = 1\ny = 2\n", "modified": "x = 1\nz = 3\ny = 2\n"},
        )
        segments = response.json()["segments"]
        assert segments == [
            {"text": "x = 1\n", "kind": "unchanged"},
            {"text": "z = 3\n", "kind": "added"},
            {"text": "y = 2\n", "kind": "unchanged"},
        ]

    def test_diff_requires_text(self, client) -> None:
        response = client.post("/api/optimize/diff", json={"original": None, "modified": "x"})
        assert response.status_code == 422


class TestReviewEndpoints:
    """Tests for /api/review."""

    def test_review_page(self, client, fake_llm) -> None:
        review = open_review(client, fake_llm)
        response = client.get(f"/api/review/{review['review_id']}")
        assert response.status_code == 200
        assert "text/html" in response.headers["content-type"]
        assert 'class="hl-added"' in response.text

    def test_accept_returns_edited_text(self, client, fake_llm) -> None:
        review = open_review(client, fake_llm)
        edited = OPTIMIZED.replace("lookup", "seen")
        response = client.post(
            f"/api/review/{review['review_id']}/message",
            json={"command": "accept", "code": edited},
        )
        assert response.status_code == 200
        assert response.json()["decision"] == "accept"
        assert response.json()["replacement"] == edited

        outcome = client.get(f"/api/review/{review['review_id']}/outcome")
        assert outcome.json()["replacement"] == edited

    def test_reject_has_no_replacement(self, client, fake_llm) -> None:
        review = open_review(client, fake_llm)
        response = client.post(f"/api/review/{review['review_id']}/message", json={"command": "reject"})
        assert response.json() == {
            "review_id": review["review_id"],
            "decision": "reject",
            "replacement": None,
        }

    def test_second_decision_conflicts(self, client, fake_llm) -> None:
        review = open_review(client, fake_llm)
        url = f"/api/review/{review['review_id']}/message"
        client.post(url, json={"command": "reject"})
        response = client.post(url, json={"command": "accept", "code": OPTIMIZED})
        assert response.status_code == 409

    def test_unknown_message_shape(self, client, fake_llm) -> None:
        review = open_review(client, fake_llm)
        response = client.post(f"/api/review/{review['review_id']}/message", json={"command": "apply"})
        assert response.status_code == 422

    def test_close_is_implicit_reject(self, client, fake_llm) -> None:
        review = open_review(client, fake_llm)
        response = client.delete(f"/api/review/{review['review_id']}")
        assert response.json()["decision"] == "reject"
        status = client.get(f"/api/review/{review['review_id']}/status")
        assert status.json()["state"] == "closed"
        assert client.get(f"/api/review/{review['review_id']}").status_code == 409

    def test_outcome_times_out(self, client, fake_llm) -> None:
        review = open_review(client, fake_llm)
        response = client.get(f"/api/review/{review['review_id']}/outcome", params={"timeout": 0.01})
        assert response.status_code == 408

    def test_unknown_review(self, client) -> None:
        assert client.get("/api/review/missing").status_code == 404
        assert client.post("/api/review/missing/message", json={"command": "reject"}).status_code == 404


class TestConfigEndpoints:
    """Tests for /api/config."""

    def test_keys_are_masked(self, client) -> None:
        client.put("/api/config", json={"gemini": {"apiKey": "abcd1234efgh5678"}})
        gemini = client.get("/api/config").json()["gemini"]
        assert gemini["apiKey"] == "abcd********5678"
        assert gemini["model"] == "gemini-1.5-pro-002"

    def test_update_provider(self, client) -> None:
        assert client.put("/api/config", json={"provider": "openai"}).status_code == 200
        assert client.get("/api/config").json()["provider"] == "openai"

    def test_validate_without_key(self, client) -> None:
        body = client.post("/api/config/validate").json()
        assert body["valid"] is False
        assert body["provider"] == "gemini"

    def test_review_ttl_follows_outcome_timeout(self, client) -> None:
        assert client.app.state.review_manager.ttl == 300
