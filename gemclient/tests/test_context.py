"""Tests for conversation history and request building."""

from gemclient.context import Context
from gemclient.settings import Settings
from gemclient.types import Blob, FileData, HarmBlockThreshold, Role


class TestContextPush:
    """Tests for appending turns."""

    def test_push_message(self):
        context = Context()
        context.push_message(Role.USER, "Hello")

        assert len(context) == 1
        assert context.get_contents()[0].role is Role.USER
        assert context.get_contents()[0].get_text() == "Hello"

    def test_push_message_with_file(self):
        context = Context()
        context.push_message_with_file(Role.USER, "Describe", FileData("image/png", "uri"))

        parts = context.get_contents()[0].parts
        assert parts[0].text == "Describe"
        assert parts[1].file_data.file_uri == "uri"

    def test_push_message_with_blob(self):
        context = Context()
        context.push_message_with_blob(Role.USER, "Describe", Blob("image/png", "AA=="))

        parts = context.get_contents()[0].parts
        assert [p.text for p in parts] == ["Describe", None]
        assert parts[1].inline_data.mime_type == "image/png"

    def test_push_file_and_blob(self):
        context = Context()
        context.push_file(Role.USER, FileData("audio/mpeg", "u"))
        context.push_blob(Role.MODEL, Blob("text/plain", "eA=="))

        assert context.len() == 2
        assert context.get_contents()[1].role is Role.MODEL

    def test_clear(self):
        context = Context()
        assert context.is_empty()
        context.push_message(Role.USER, "x")
        assert not context.is_empty()
        context.clear()
        assert context.is_empty()


class TestContextBuild:
    """Tests for request bodies built from the history."""

    def test_defaults_applied(self):
        context = Context()
        context.push_message(Role.USER, "Hello")

        body = context.build(Settings())

        assert body["contents"] == [{"parts": [{"text": "Hello"}], "role": "user"}]
        assert len(body["safetySettings"]) == 4
        assert {s["threshold"] for s in body["safetySettings"]} == {"BLOCK_NONE"}
        assert body["generationConfig"] == {"maxOutputTokens": 8192, "temperature": 1.0}
        assert "systemInstruction" not in body

    def test_settings_override_defaults(self):
        settings = Settings()
        settings.set_all_safety_settings(HarmBlockThreshold.BLOCK_LOW_AND_ABOVE)
        settings.set_temperature(0.2)
        settings.set_system_instruction("You are terse")

        body = Context().build(settings)

        assert {s["threshold"] for s in body["safetySettings"]} == {"BLOCK_LOW_AND_ABOVE"}
        assert body["generationConfig"] == {"temperature": 0.2}
        assert body["systemInstruction"] == {"parts": [{"text": "You are terse"}]}


class TestContextPersistence:
    """Tests for saving and restoring the history."""

    def test_json_round_trip(self):
        context = Context()
        context.push_message(Role.USER, "Hi")
        context.push_message(Role.MODEL, "Hello")

        restored = Context.from_json(context.to_json())

        assert restored.get_contents() == context.get_contents()
