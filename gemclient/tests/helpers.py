"""Shared helpers for gemclient tests."""

import json

import httpx

BASE_URL = "https://gemini.test/v1beta/"


class RecordingTransport:
    """MockTransport handler that records requests and replays canned responses."""

    def __init__(self, handler):
        self.handler = handler
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self))

    def bodies(self):
        return [json.loads(r.content) for r in self.requests]


def text_response(text, role="model", finish_reason="STOP"):
    """A generateContent response body with one text candidate."""
    return {
        "candidates": [
            {
                "content": {"parts": [{"text": text}], "role": role},
                "finishReason": finish_reason,
                "index": 0,
            }
        ],
        "usageMetadata": {
            "promptTokenCount": 5,
            "candidatesTokenCount": 3,
            "totalTokenCount": 8,
        },
    }
