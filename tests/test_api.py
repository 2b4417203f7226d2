import logging
from unittest.mock import patch

import httpx

from conftest import ALLOWED_ORIGIN, SECRET_KEY, build_settings

CHAT_URL = "/api/vapi/chat"


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "OK"
    assert data["version"] == "2.0.0"
    assert "timestamp" in data


def test_chat_success_returns_escaped_upstream_payload(client):
    response = client.post(CHAT_URL, json={"input": "What panels do you install?"})
    assert response.status_code == 200
    data = response.json()
    assert data["id"] == "chat_abc123"
    assert data["output"][0]["content"] == "&lt;b&gt;Hello&lt;/b&gt; &amp; welcome"
    assert response.headers["RateLimit-Limit"] == "20"
    assert response.headers["RateLimit-Remaining"] == "19"


def test_chat_empty_input(client):
    response = client.post(CHAT_URL, json={"input": ""})
    assert response.status_code == 400
    assert response.json() == {"error": "Input cannot be empty"}


def test_chat_missing_input(client):
    response = client.post(CHAT_URL, json={"message": "hi"})
    assert response.status_code == 400
    assert response.json() == {"error": "Valid input string is required"}


def test_chat_script_is_rejected_without_reflection(client):
    response = client.post(CHAT_URL, json={"input": "<script>alert('x')</script>"})
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid input detected"}
    assert "script" not in response.text
    assert "alert" not in response.text


def test_chat_invalid_chat_id(client):
    response = client.post(CHAT_URL, json={"input": "hi", "previousChatId": "not/valid"})
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid chat ID format"}

    response = client.post(CHAT_URL, json={"input": "hi", "previousChatId": "abc\n"})
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid chat ID format"}


def test_chat_malformed_json(client):
    response = client.post(CHAT_URL, content=b"{not json", headers={"Content-Type": "application/json"})
    assert response.status_code == 400
    assert response.json() == {"error": "Malformed JSON body"}


def test_rapid_requests_hit_rate_limit(client):
    responses = [client.post(CHAT_URL, json={"input": f"message {i}"}) for i in range(25)]
    statuses = [r.status_code for r in responses]

    assert statuses[:20] == [200] * 20
    assert 429 in statuses
    limited = responses[20]
    assert limited.json()["error"] == "Too many requests, please try again later"
    assert 0 < limited.json()["retryAfter"] <= 60
    assert int(limited.headers["Retry-After"]) <= 60


def test_rate_limit_is_checked_before_validation(make_client):
    client = make_client(build_settings(chat_rate_max=1))
    assert client.post(CHAT_URL, json={"input": ""}).status_code == 400
    assert client.post(CHAT_URL, json={"input": ""}).status_code == 429


def test_forwarded_for_is_ignored_unless_trusted(make_client):
    client = make_client(build_settings(chat_rate_max=1))
    assert client.post(CHAT_URL, json={"input": "a"}, headers={"X-Forwarded-For": "1.1.1.1"}).status_code == 200
    # Anderer Header-Wert, gleiche Verbindung: zählt als derselbe Client.
    assert client.post(CHAT_URL, json={"input": "b"}, headers={"X-Forwarded-For": "2.2.2.2"}).status_code == 429


def test_forwarded_for_identifies_clients_when_trusted(make_client):
    client = make_client(build_settings(chat_rate_max=1, trust_forwarded_for=True))
    assert client.post(CHAT_URL, json={"input": "a"}, headers={"X-Forwarded-For": "1.1.1.1"}).status_code == 200
    assert client.post(CHAT_URL, json={"input": "b"}, headers={"X-Forwarded-For": "2.2.2.2, 10.0.0.1"}).status_code == 200
    assert client.post(CHAT_URL, json={"input": "c"}, headers={"X-Forwarded-For": "1.1.1.1"}).status_code == 429


def test_upstream_timeout_yields_generic_500(make_client):
    def handler(request):
        raise httpx.ReadTimeout("upstream read timed out after 30s", request=request)

    client = make_client(handler=handler)
    response = client.post(CHAT_URL, json={"input": "hello"})
    assert response.status_code == 500
    assert response.json() == {"error": "Service temporarily unavailable. Please try again later."}
    assert "timed out" not in response.text


def test_upstream_5xx_maps_to_503(make_client):
    client = make_client(handler=lambda request: httpx.Response(502, text="bad gateway stack trace"))
    response = client.post(CHAT_URL, json={"input": "hello"})
    assert response.status_code == 503
    assert "stack trace" not in response.text


def test_upstream_4xx_maps_to_400(make_client):
    client = make_client(handler=lambda request: httpx.Response(422, json={"message": "assistant not found"}))
    response = client.post(CHAT_URL, json={"input": "hello"})
    assert response.status_code == 400
    assert response.json() == {"error": "Unable to process request. Please try again."}


def test_config_exposes_only_public_values(client):
    response = client.get("/api/vapi/config")
    assert response.status_code == 200
    assert response.json() == {
        "assistantId": "asst_test_42",
        "publicApiKey": "pub_key_123",
        "hasSecureBackend": True,
        "version": "2.0.0",
    }
    assert SECRET_KEY not in response.text


def test_config_omits_unset_public_key(make_client):
    client = make_client(build_settings(vapi_public_api_key=""))
    data = client.get("/api/vapi/config").json()
    assert "publicApiKey" not in data
    assert SECRET_KEY not in str(data)


def test_config_rate_limit(make_client):
    client = make_client(build_settings(config_rate_max=2))
    assert client.get("/api/vapi/config").status_code == 200
    assert client.get("/api/vapi/config").status_code == 200
    response = client.get("/api/vapi/config")
    assert response.status_code == 429
    assert response.json()["error"] == "Too many config requests"


def test_security_log(client, caplog):
    event = {"event": "devtools_open", "details": {"tab": 2}, "timestamp": 1700000000, "url": "https://site/x"}
    with caplog.at_level(logging.WARNING):
        response = client.post("/api/security/log", json=event)
    assert response.status_code == 200
    assert response.json() == {"status": "logged"}
    assert "[SECURITY] Event: devtools_open" in caplog.text


def test_security_log_accepts_loose_reports(client, caplog):
    bodies = [
        {},
        {"event": "x", "details": "string detail"},
        {"event": "x", "details": [1]},
        {"details": "<script>x</script>"},
        ["not", "an", "object"],
    ]
    with caplog.at_level(logging.WARNING):
        for body in bodies:
            response = client.post("/api/security/log", json=body)
            assert response.status_code == 200
            assert response.json() == {"status": "logged"}

    assert caplog.text.count("[SECURITY] Event:") == len(bodies)
    assert "string detail" in caplog.text


def test_security_log_malformed_json_is_still_logged(client, caplog):
    with caplog.at_level(logging.WARNING):
        response = client.post("/api/security/log", content=b"{oops", headers={"Content-Type": "application/json"})
    assert response.status_code == 200
    assert "Unparseable event body" in caplog.text


def test_unknown_route(client, caplog):
    with caplog.at_level(logging.WARNING):
        response = client.get("/api/unknown")
    assert response.status_code == 404
    assert response.json() == {"error": "Endpoint not found"}
    assert "GET /api/unknown" in caplog.text


def test_wrong_method_on_known_path_is_not_found(client):
    response = client.put(CHAT_URL, json={"input": "hi"})
    assert response.status_code == 404
    assert response.json() == {"error": "Endpoint not found"}


def test_preflight_always_succeeds_with_empty_body(client):
    response = client.options(CHAT_URL, headers={"Origin": ALLOWED_ORIGIN, "Access-Control-Request-Method": "POST"})
    assert response.status_code == 200
    assert response.content == b""
    assert response.headers["Access-Control-Allow-Origin"] == ALLOWED_ORIGIN
    assert "POST" in response.headers["Access-Control-Allow-Methods"]

    response = client.options("/anything", headers={"Origin": "https://evil.example"})
    assert response.status_code == 200
    assert "Access-Control-Allow-Origin" not in response.headers


def test_cors_denies_unlisted_origin(client):
    response = client.post(CHAT_URL, json={"input": "hi"}, headers={"Origin": "https://evil.example"})
    assert response.status_code == 403
    assert response.json() == {"error": "Not allowed by CORS"}


def test_cors_allows_listed_origin_and_no_origin(client):
    response = client.post(CHAT_URL, json={"input": "hi"}, headers={"Origin": ALLOWED_ORIGIN})
    assert response.status_code == 200
    assert response.headers["Access-Control-Allow-Origin"] == ALLOWED_ORIGIN

    response = client.get("/api/vapi/config")
    assert response.status_code == 200


def test_permissive_mode_emits_wildcard(make_client):
    client = make_client(build_settings(allowed_origins="*"))
    response = client.get("/api/health", headers={"Origin": "https://any.example"})
    assert response.status_code == 200
    assert response.headers["Access-Control-Allow-Origin"] == "*"


def test_security_headers_on_every_response(client):
    for response in (
        client.get("/api/health"),
        client.get("/nope"),
        client.post(CHAT_URL, json={"input": ""}),
        client.post(CHAT_URL, json={"input": "hi"}, headers={"Origin": "https://evil.example"}),
    ):
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"
        csp = response.headers["Content-Security-Policy"]
        assert "default-src 'self'" in csp
        assert "object-src 'none'" in csp
        assert "https://api.vapi.ai" in csp


def test_oversized_body_is_rejected(make_client):
    client = make_client(build_settings(max_body_bytes=64))
    response = client.post(CHAT_URL, json={"input": "x" * 200})
    assert response.status_code == 413


def test_chunked_oversized_body_is_rejected(make_client):
    client = make_client(build_settings(max_body_bytes=64))

    def chunks():
        yield b'{"input": "'
        yield b"x" * 300
        yield b'"}'

    response = client.post(CHAT_URL, content=chunks(), headers={"Content-Type": "application/json"})
    assert response.status_code == 413
    assert response.json() == {"error": "Request body too large"}

    response = client.post("/api/security/log", content=chunks(), headers={"Content-Type": "application/json"})
    assert response.status_code == 413


def test_chunked_body_within_limit_is_accepted(make_client):
    client = make_client(build_settings(max_body_bytes=1024))

    def chunks():
        yield b'{"input": '
        yield b'"hello there"}'

    response = client.post(CHAT_URL, content=chunks(), headers={"Content-Type": "application/json"})
    assert response.status_code == 200


def test_unexpected_error_is_generic_by_default(client):
    with patch("chat_proxy.routers.vapi.validate_chat_input", side_effect=RuntimeError("db password is hunter2")):
        response = client.post(CHAT_URL, json={"input": "hi"})
    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}
    assert "hunter2" not in response.text
    assert response.headers["X-Frame-Options"] == "DENY"


def test_unexpected_error_detail_in_dev_mode(make_client):
    client = make_client(build_settings(dev_mode=True))
    with patch("chat_proxy.routers.vapi.validate_chat_input", side_effect=RuntimeError("boom")):
        response = client.post(CHAT_URL, json={"input": "hi"})
    assert response.status_code == 500
    data = response.json()
    assert data["error"] == "boom"
    assert "RuntimeError" in data["stack"]
