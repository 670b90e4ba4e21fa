"""Tests for the streamed JSON array decoder."""

import json

import pytest

from gemclient.errors import StreamError
from gemclient.streaming import JsonArrayDecoder, iter_json_array

BODY = (
    '[{"candidates": [{"content": {"parts": [{"text": "He said \\"[hi]\\" {ok}"}]}}]}\n'
    ',\r\n{"candidates": [{"content": {"parts": [{"text": "caf\\u00e9 été"}]}}]}\n]'
).encode("utf-8")


def split_every(data: bytes, size: int):
    return [data[i:i + size] for i in range(0, len(data), size)]


class TestIterJsonArray:
    """Tests for decoding complete bodies."""

    def test_single_chunk(self):
        items = list(iter_json_array([BODY], 1024))

        assert len(items) == 2
        assert items == json.loads(BODY)

    @pytest.mark.parametrize("size", [1, 2, 3, 7, 64])
    def test_arbitrary_chunk_boundaries(self, size):
        items = list(iter_json_array(split_every(BODY, size), 1024))
        assert items == json.loads(BODY)

    def test_empty_array(self):
        assert list(iter_json_array([b"  [ ]  "], 16)) == []

    def test_bare_values(self):
        assert list(iter_json_array([b'[1, "two", true, null, [3]]'], 16)) == [1, "two", True, None, [3]]

    def test_missing_open_bracket(self):
        with pytest.raises(StreamError):
            list(iter_json_array([b'{"a": 1}'], 16))

    def test_truncated_body(self):
        with pytest.raises(StreamError):
            list(iter_json_array([b'[{"a": 1},'], 16))

    def test_invalid_element(self):
        with pytest.raises(StreamError):
            list(iter_json_array([b'[{"a": }]'], 16))

    def test_oversized_element(self):
        with pytest.raises(StreamError, match="maximum size"):
            list(iter_json_array([b'[{"a": "0123456789abcdef"}]'], 8))

    def test_data_after_end(self):
        with pytest.raises(StreamError):
            list(iter_json_array([b"[] []"], 16))


class TestJsonArrayDecoder:
    """Tests for the push decoder."""

    def test_elements_returned_as_completed(self):
        decoder = JsonArrayDecoder(64)

        assert decoder.feed(b'[{"a": ') == []
        assert decoder.feed(b'1}, {"b"') == [{"a": 1}]
        assert decoder.feed(b": 2}]") == [{"b": 2}]
        assert decoder.finished
        decoder.close()

    def test_close_before_end_raises(self):
        decoder = JsonArrayDecoder(64)
        decoder.feed(b'[{"a": 1}')
        with pytest.raises(StreamError):
            decoder.close()

    def test_leading_comma_raises(self):
        with pytest.raises(StreamError):
            JsonArrayDecoder(64).feed(b"[,{}]")

    def test_invalid_max_size(self):
        with pytest.raises(ValueError):
            JsonArrayDecoder(0)
