import pytest

from marksheet.config import Settings
from marksheet.models import ImageItem, TableRow
from marksheet.service import create_app


@pytest.fixture
def settings():
    return Settings(
        api_key="test-key",
        gateway_url="https://gateway.test/v1/chat/completions",
        model="test/model",
        gateway_timeout=5.0,
        service_url="http://service.test/extract-document",
        service_timeout=5.0,
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def http(app):
    return app.test_client()


@pytest.fixture
def gateway_calls(monkeypatch):
    """Route gateway posts to a queue of canned responses and record the requests."""
    calls = []
    replies = []

    def fake_post(url, headers=None, json=None, timeout=None):
        calls.append({"url": url, "headers": headers, "json": json, "timeout": timeout})
        reply = replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply

    monkeypatch.setattr("marksheet.gateway.requests.post", fake_post)
    return calls, replies


@pytest.fixture
def png_data_url():
    return "data:image/png;base64,iVBORw0KGgo="


@pytest.fixture
def make_item():
    def _make(name="sheet.png", data=b"\x89PNG\r\n\x1a\n", mime_type="image/png"):
        return ImageItem(id=f"{name}-1-abc", name=name, data=data, mime_type=mime_type)
    return _make


@pytest.fixture
def rows():
    return (
        TableRow("1", "2", "3", "", "5"),
        TableRow("2", "", "", "", "-"),
        TableRow("3", "4", "3", "", "7"),
    )
