import pytest
import requests

from marksheet import service
from marksheet.service import create_app
from tests.fakes import FakeResponse, chat_reply


def post(http, body):
    return http.post("/extract-document", json=body)


def test_missing_image_is_rejected(http):
    r = post(http, {})
    assert r.status_code == 400
    assert r.get_json() == {"error": "No image provided"}
    assert r.headers["Access-Control-Allow-Origin"] == "*"
    assert r.headers["Content-Type"].startswith("application/json")


def test_non_json_body_counts_as_missing_image(http):
    r = http.post("/extract-document", data="not json", content_type="text/plain")
    assert r.status_code == 400
    assert r.get_json()["error"] == "No image provided"


def test_non_image_subtype_is_rejected(http):
    r = post(http, {"imageBase64": "data:text/plain;base64,AAAA"})
    assert r.status_code == 400
    assert r.get_json()["error"] == service.BAD_FORMAT
    for fmt in ("JPEG", "PNG", "WEBP", "GIF", "BMP"):
        assert fmt in r.get_json()["error"]


def test_subtype_match_is_case_sensitive(http):
    r = post(http, {"imageBase64": "data:image/PNG;base64,AAAA"})
    assert r.status_code == 400
    assert r.get_json()["error"] == service.BAD_FORMAT


@pytest.mark.parametrize("subtype", ["png", "gif"])
def test_oversized_image_is_rejected(http, gateway_calls, subtype):
    calls, _ = gateway_calls
    payload = "A" * 13981020  # ceil(len * 0.75) > 10 MiB
    r = post(http, {"imageBase64": f"data:image/{subtype};base64,{payload}"})
    assert r.status_code == 400
    assert r.get_json()["error"] == "Image too large. Maximum size is 10MB."
    assert calls == []


def test_size_estimate_uses_payload_only():
    assert service.estimated_size("data:image/png;base64,AAAA") == 3
    assert service.estimated_size("data:image/png;base64,AAAAA") == 4
    assert service.estimated_size("data:image/png;base64,") == 0


def test_missing_api_key_is_a_server_error(settings, gateway_calls, png_data_url):
    calls, _ = gateway_calls
    http = create_app(settings._replace(api_key=None)).test_client()
    r = post(http, {"imageBase64": png_data_url})
    assert r.status_code == 500
    assert r.get_json() == {"error": "API key not configured"}
    assert calls == []


def test_validation_runs_before_key_check(settings):
    http = create_app(settings._replace(api_key=None)).test_client()
    r = post(http, {"imageBase64": "data:text/plain;base64,AAAA"})
    assert r.status_code == 400


def test_successful_extraction_returns_model_json(http, gateway_calls, png_data_url, settings):
    calls, replies = gateway_calls
    replies.append(chat_reply(
        '{"headerInfo": {"Exam": "Midterm", "Branch": "CSE", "Date": "2024-03-01"},'
        ' "tableData": [{"qNo": 1, "a": 2, "b": 3, "c": "", "total": 5}],'
        ' "writtenTotal": 5, "bubbleDigits": "5"}'
    ))
    r = post(http, {"imageBase64": png_data_url})

    assert r.status_code == 200
    body = r.get_json()
    assert list(body["headerInfo"]) == ["Exam", "Branch", "Date"]
    assert body["tableData"][0]["total"] == 5
    assert body["bubbleDigits"] == "5"

    sent = calls[0]
    assert sent["url"] == settings.gateway_url
    assert sent["headers"]["Authorization"] == "Bearer test-key"
    assert sent["json"]["model"] == "test/model"
    content = sent["json"]["messages"][0]["content"]
    assert content[0]["type"] == "text"
    assert content[1] == {"type": "image_url", "image_url": {"url": png_data_url}}


def test_fenced_reply_is_parsed(http, gateway_calls, png_data_url):
    _, replies = gateway_calls
    replies.append(chat_reply('```json\n{"headerInfo": {}, "tableData": [], "bubbleDigits": 0}\n```'))
    r = post(http, {"imageBase64": png_data_url})
    assert r.status_code == 200
    assert r.get_json() == {"headerInfo": {}, "tableData": [], "bubbleDigits": 0}


def test_unparseable_reply_surfaces_raw_content(http, gateway_calls, png_data_url):
    _, replies = gateway_calls
    raw = "```json\nSorry, I cannot read this sheet.\n```"
    replies.append(chat_reply(raw))
    r = post(http, {"imageBase64": png_data_url})
    assert r.status_code == 500
    assert r.get_json() == {"error": "Failed to parse extracted data", "rawContent": raw}


@pytest.mark.parametrize("upstream, status, message", [
    (429, 429, "Rate limit exceeded. Please try again later."),
    (402, 402, "AI credits exhausted. Please add credits."),
    (503, 500, "Failed to process document"),
    (400, 500, "Failed to process document"),
])
def test_gateway_errors_are_mapped(http, gateway_calls, png_data_url, upstream, status, message):
    _, replies = gateway_calls
    replies.append(FakeResponse(upstream, None, text="upstream secret detail"))
    r = post(http, {"imageBase64": png_data_url})
    assert r.status_code == status
    assert r.get_json() == {"error": message}
    assert "secret" not in r.get_data(as_text=True)


def test_unexpected_exception_becomes_500(http, gateway_calls, png_data_url):
    _, replies = gateway_calls
    replies.append(requests.ConnectionError("gateway unreachable"))
    r = post(http, {"imageBase64": png_data_url})
    assert r.status_code == 500
    assert r.get_json() == {"error": "gateway unreachable"}
    assert r.headers["Access-Control-Allow-Origin"] == "*"


def test_preflight_is_empty_and_permissive(http):
    r = http.options(
        "/extract-document",
        headers={"Origin": "https://example.org", "Access-Control-Request-Method": "POST"},
    )
    assert 200 <= r.status_code < 300
    assert r.get_data() == b""
    assert r.headers["Access-Control-Allow-Origin"] == "*"


def test_unknown_route_is_json_with_cors(http):
    r = http.get("/nope")
    assert r.status_code == 404
    assert "error" in r.get_json()
    assert r.headers["Access-Control-Allow-Origin"] == "*"


def test_health(http):
    r = http.get("/health")
    assert r.status_code == 200
    assert r.get_json() == {"ok": True}


def test_reply_without_text_omits_raw_content(http, gateway_calls, png_data_url):
    _, replies = gateway_calls
    replies.append(chat_reply(None))
    r = post(http, {"imageBase64": png_data_url})
    assert r.status_code == 500
    assert r.get_json() == {"error": "Failed to parse extracted data"}
