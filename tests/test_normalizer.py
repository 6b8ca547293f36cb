"""test_normalizer.py - Unit tests for error-payload normalisation.

Covers:
    - json_or_string() parses JSON and falls back to the raw text
    - normalize() picks err over msg, and msg when err is absent
    - normalize() materialises structured errors as ReportedError
    - context_data() always carries tag; string data goes under "message"
    - normalize() raises MalformedPayload for a broken outer envelope
    - serialize_error() / error_message() on the facade side
"""

import json

import pytest

from sinklog.errors import MalformedPayload
from sinklog.normalizer import (
    ReportedError,
    context_data,
    error_message,
    json_or_string,
    normalize,
    serialize_error,
)


# ---------------------------------------------------------------------------
# json_or_string()
# ---------------------------------------------------------------------------


class TestJsonOrString:
    def test_json_or_string_parses_json(self):
        """A JSON document is returned parsed."""
        obj = {"msg": "test", "data": "data"}
        assert json_or_string(json.dumps(obj)) == obj

    def test_json_or_string_returns_plain_text_unchanged(self):
        """Text that is not JSON is returned as-is."""
        assert json_or_string("test") == "test"


# ---------------------------------------------------------------------------
# normalize()
# ---------------------------------------------------------------------------


class TestNormalize:
    def test_normalize_uses_msg_when_err_absent(self):
        """Without err, the msg field is the error value."""
        error, context = normalize(json.dumps({"msg": "test", "data": {}, "tag": "tag"}))
        assert error == "test"
        assert context == {"tag": "tag"}

    def test_normalize_context_has_tag_when_data_missing(self):
        """Missing data still produces a context holding the tag."""
        _, context = normalize(json.dumps({"msg": "test", "tag": "tag"}))
        assert context == {"tag": "tag"}

    def test_normalize_context_tag_is_none_when_absent(self):
        """The tag key is present even when the envelope has no tag."""
        _, context = normalize(json.dumps({"msg": "test"}))
        assert context == {"tag": None}

    def test_normalize_plain_string_err(self):
        """An err field that is not JSON is used as plain text."""
        error, _ = normalize(json.dumps({"err": "test", "data": {}}))
        assert error == "test"

    def test_normalize_json_string_err(self):
        """A JSON-encoded string err is decoded to the string."""
        error, _ = normalize(json.dumps({"err": json.dumps("test"), "msg": "other"}))
        assert error == "test"

    def test_normalize_structured_err_becomes_reported_error(self):
        """A JSON object err is rebuilt as a ReportedError with its fields."""
        err = json.dumps({"name": "ValueError", "message": "test", "code": 7})
        error, context = normalize(json.dumps({"err": err, "data": "data", "tag": "tag"}))
        assert isinstance(error, ReportedError)
        assert str(error) == "test"
        assert error.message == "test"
        assert error.name == "ValueError"
        assert error.code == 7
        assert context == {"tag": "tag", "message": "data"}

    def test_normalize_err_without_message_gives_empty_error(self):
        """An error object with no message rebuilds with an empty message."""
        error, _ = normalize(json.dumps({"err": json.dumps({"name": "Error"}), "data": "data"}))
        assert isinstance(error, ReportedError)
        assert str(error) == ""

    def test_normalize_missing_err_and_msg_gives_empty_error(self):
        """With neither err nor msg, an empty ReportedError is produced."""
        error, _ = normalize(json.dumps({"data": {}}))
        assert isinstance(error, ReportedError)
        assert error.message == ""

    def test_normalize_round_trips_facade_exception(self):
        """An exception serialised by the facade comes back with its type and message."""
        try:
            raise KeyError("user")
        except KeyError as exc:
            payload = json.dumps({"err": serialize_error(exc), "msg": error_message(exc), "tag": "t"})
        error, _ = normalize(payload)
        assert isinstance(error, ReportedError)
        assert error.name == "KeyError"
        assert "KeyError" in error.stack

    def test_normalize_raises_malformed_payload_for_invalid_json(self):
        """A broken outer envelope is reported, not swallowed."""
        with pytest.raises(MalformedPayload):
            normalize("{not json")

    def test_normalize_raises_malformed_payload_for_non_object(self):
        """The outer envelope must be a JSON object."""
        with pytest.raises(MalformedPayload):
            normalize(json.dumps(["err"]))


# ---------------------------------------------------------------------------
# context_data()
# ---------------------------------------------------------------------------


class TestContextData:
    def test_context_data_string_goes_under_message(self):
        """A non-empty string is stored under 'message', never merged."""
        assert context_data("boom", "tag") == {"tag": "tag", "message": "boom"}

    def test_context_data_empty_string_adds_nothing(self):
        """An empty string adds no keys."""
        assert context_data("", "tag") == {"tag": "tag"}

    def test_context_data_merges_mapping(self):
        """Mapping data is shallow-merged next to the tag."""
        assert context_data({"key": "value"}, "tag") == {"tag": "tag", "key": "value"}

    def test_context_data_mapping_wins_on_tag_collision(self):
        """A 'tag' key in the data overrides the event tag."""
        assert context_data({"tag": "mine"}, "tag") == {"tag": "mine"}


# ---------------------------------------------------------------------------
# serialize_error() / error_message()
# ---------------------------------------------------------------------------


class TestSerializeError:
    def test_serialize_error_string(self):
        """A string is JSON-encoded as a string."""
        assert serialize_error("test") == '"test"'

    def test_serialize_error_default_is_empty_string(self):
        """No error serialises to an empty JSON string."""
        assert serialize_error("") == '""'
        assert serialize_error(None) == '""'

    def test_serialize_error_exception_keeps_fields(self):
        """Exceptions carry name, message, stack and public attributes."""
        exc = ValueError("some test")
        exc.user_id = 7
        fields = json.loads(serialize_error(exc))
        assert fields["name"] == "ValueError"
        assert fields["message"] == "some test"
        assert fields["user_id"] == 7
        assert "stack" in fields

    def test_serialize_error_mapping(self):
        """Mappings are encoded as JSON objects."""
        assert json.loads(serialize_error({"message": "some test"})) == {"message": "some test"}

    def test_error_message_picks_human_text(self):
        """error_message() returns the exception text, mapping message or string."""
        assert error_message(ValueError("bad")) == "bad"
        assert error_message({"message": "some test"}) == "some test"
        assert error_message("plain") == "plain"
        assert error_message(None) == ""
