import json


class FakeResponse:
    """Enough of requests.Response for the gateway and client code."""

    def __init__(self, status_code=200, body=None, text=None):
        self.status_code = status_code
        self._body = body
        self.text = text if text is not None else json.dumps(body)

    @property
    def ok(self):
        return 200 <= self.status_code < 400

    def json(self):
        if self._body is None:
            raise ValueError("No JSON object could be decoded")
        return self._body


def chat_reply(content):
    return FakeResponse(200, {"choices": [{"message": {"role": "assistant", "content": content}}]})
