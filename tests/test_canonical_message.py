"""
Tests for canonical string construction and body handling

Covers both canonical layouts, byte-level JSON minification, body
serialization and timestamp helpers.
"""

import hashlib
from datetime import datetime, timedelta, timezone

import pytest

from dana_sdk.signing import (
    CanonicalScheme,
    HttpMethod,
    build_canonical_string,
    build_signed_call_string,
    build_token_string,
    format_timestamp,
    generate_timestamp,
    minify_json,
    serialize_body,
    sha256_hex,
    validate_timestamp,
)
from dana_sdk.exceptions import SigningError

TIMESTAMP = "2024-01-01T10:00:00+07:00"
BALANCE_PATH = "/v1.0/balance-inquiry.htm"
BALANCE_BODY = '{"balanceTypes":["BALANCE"],"additionalInfo":{}}'


class TestTokenScheme:
    """Test the access-token canonical string"""

    def test_token_string(self):
        assert build_token_string("client-123", TIMESTAMP) == b"client-123|2024-01-01T10:00:00+07:00"

    def test_via_dispatcher(self):
        canonical = build_canonical_string(CanonicalScheme.TOKEN, TIMESTAMP, client_id="client-123")
        assert canonical == build_token_string("client-123", TIMESTAMP)

    def test_empty_client_id_rejected(self):
        with pytest.raises(SigningError):
            build_token_string("", TIMESTAMP)

    def test_malformed_timestamp_rejected(self):
        with pytest.raises(SigningError) as exc_info:
            build_token_string("client-123", "2024-01-01 10:00:00")
        assert exc_info.value.error_code == "INVALID_TIMESTAMP"


class TestSignedCallScheme:
    """Test the signed service-call canonical string"""

    def test_balance_inquiry_example(self):
        expected_hash = hashlib.sha256(BALANCE_BODY.encode("utf-8")).hexdigest()
        canonical = build_signed_call_string("POST", BALANCE_PATH, BALANCE_BODY, TIMESTAMP)

        assert canonical == (
            f"POST:/v1.0/balance-inquiry.htm:{expected_hash}:2024-01-01T10:00:00+07:00"
        ).encode("utf-8")

    def test_pretty_printed_body_hashes_like_minified(self):
        pretty = '{\n  "balanceTypes": [ "BALANCE" ],\n  "additionalInfo": {}\n}'
        assert (build_signed_call_string("POST", BALANCE_PATH, pretty, TIMESTAMP)
                == build_signed_call_string("POST", BALANCE_PATH, BALANCE_BODY, TIMESTAMP))

    def test_dict_body_matches_authored_string(self):
        body = {"balanceTypes": ["BALANCE"], "additionalInfo": {}}
        assert (build_signed_call_string("POST", BALANCE_PATH, body, TIMESTAMP)
                == build_signed_call_string("POST", BALANCE_PATH, BALANCE_BODY, TIMESTAMP))

    def test_method_is_upper_cased(self):
        canonical = build_signed_call_string("post", BALANCE_PATH, BALANCE_BODY, TIMESTAMP)
        assert canonical.startswith(b"POST:")

    def test_enum_method(self):
        canonical = build_signed_call_string(HttpMethod.GET, "/v1.0/ping", None, TIMESTAMP)
        assert canonical.startswith(b"GET:/v1.0/ping:")

    def test_missing_body_hashes_empty_bytes(self):
        canonical = build_signed_call_string("GET", "/v1.0/ping", None, TIMESTAMP)
        empty_hash = hashlib.sha256(b"").hexdigest()
        assert canonical == f"GET:/v1.0/ping:{empty_hash}:{TIMESTAMP}".encode("utf-8")

    def test_hash_is_lowercase_hex(self):
        canonical = build_signed_call_string("POST", BALANCE_PATH, BALANCE_BODY, TIMESTAMP)
        body_hash = canonical.decode("utf-8").split(":")[2]
        assert len(body_hash) == 64
        assert body_hash == body_hash.lower()

    def test_unsupported_method_rejected(self):
        with pytest.raises(SigningError) as exc_info:
            build_signed_call_string("TRACE", BALANCE_PATH, None, TIMESTAMP)
        assert exc_info.value.error_code == "INVALID_METHOD"

    def test_relative_path_required(self):
        with pytest.raises(SigningError) as exc_info:
            build_signed_call_string("POST", "https://api.sandbox.dana.id/v1.0/x", None, TIMESTAMP)
        assert exc_info.value.error_code == "INVALID_PATH"

    def test_dispatcher_requires_method_and_path(self):
        with pytest.raises(SigningError):
            build_canonical_string(CanonicalScheme.SIGNED_CALL, TIMESTAMP, method="POST")

    def test_dispatcher_signed_call(self):
        canonical = build_canonical_string(
            CanonicalScheme.SIGNED_CALL,
            TIMESTAMP,
            method="POST",
            relative_path=BALANCE_PATH,
            body=BALANCE_BODY
        )
        assert canonical == build_signed_call_string("POST", BALANCE_PATH, BALANCE_BODY, TIMESTAMP)


class TestMinifyJson:
    """Test byte-level minification"""

    def test_strips_structural_whitespace(self):
        assert minify_json('{ "a" : 1 ,\n\t"b" : [ 1, 2 ] }') == b'{"a":1,"b":[1,2]}'

    def test_preserves_key_order(self):
        assert minify_json('{"z": 1, "a": 2}') == b'{"z":1,"a":2}'

    def test_preserves_numeric_literals(self):
        assert minify_json('{"amount": 10000.00, "rate": 1e3}') == b'{"amount":10000.00,"rate":1e3}'

    def test_preserves_whitespace_inside_strings(self):
        assert minify_json('{"note": "two  spaces\\tand tab"}') == b'{"note":"two  spaces\\tand tab"}'

    def test_escaped_quote_does_not_end_string(self):
        body = '{"q": "say \\" hi there", "n": 1}'
        assert minify_json(body) == b'{"q":"say \\" hi there","n":1}'

    def test_escaped_backslash_before_quote(self):
        body = '{"path": "C:\\\\ dir\\\\", "n": 1}'
        assert minify_json(body) == b'{"path":"C:\\\\ dir\\\\","n":1}'

    def test_non_ascii_preserved(self):
        assert minify_json('{"name": "Budi Santoso é"}') == '{"name":"Budi Santoso é"}'.encode("utf-8")

    def test_bytes_input(self):
        assert minify_json(b'{ "a": 1 }') == b'{"a":1}'

    def test_non_json_returned_unchanged(self):
        assert minify_json("not json at all") == b"not json at all"

    def test_idempotent(self):
        once = minify_json('{ "a": [1, 2], "b": {"c": " x "} }')
        assert minify_json(once) == once


class TestSerializeBody:
    """Test body serialization"""

    def test_none_is_empty(self):
        assert serialize_body(None) == b""

    def test_dict_compact_in_insertion_order(self):
        assert serialize_body({"b": 1, "a": [1, 2]}) == b'{"b":1,"a":[1,2]}'

    def test_dict_keeps_non_ascii(self):
        assert serialize_body({"name": "é"}) == '{"name":"é"}'.encode("utf-8")

    def test_list_body(self):
        assert serialize_body([1, {"a": 2}]) == b'[1,{"a":2}]'

    def test_unserializable_dict_rejected(self):
        with pytest.raises(SigningError) as exc_info:
            serialize_body({"when": datetime.now()})
        assert exc_info.value.error_code == "INVALID_BODY"

    def test_unsupported_type_rejected(self):
        with pytest.raises(SigningError):
            serialize_body(42)

    def test_sha256_hex(self):
        assert sha256_hex(b"") == "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"


class TestTimestamps:
    """Test timestamp helpers"""

    def test_format_with_offset(self):
        moment = datetime(2024, 1, 1, 10, 0, 0, 123456, tzinfo=timezone(timedelta(hours=7)))
        assert format_timestamp(moment) == TIMESTAMP

    def test_naive_datetime_rejected(self):
        with pytest.raises(SigningError):
            format_timestamp(datetime(2024, 1, 1, 10, 0, 0))

    def test_generate_timestamp_shape(self):
        assert validate_timestamp(generate_timestamp())

    def test_generate_timestamp_in_given_zone(self):
        timestamp = generate_timestamp(timezone(timedelta(hours=7)))
        assert timestamp.endswith("+07:00")

    def test_utc_renders_numeric_offset(self):
        assert generate_timestamp(timezone.utc).endswith("+00:00")

    @pytest.mark.parametrize("value", [
        "2024-01-01T10:00:00Z",
        "2024-01-01T10:00:00",
        "2024-01-01T10:00:00.123+07:00",
        "2024-13-01T10:00:00+07:00",
        "",
        None,
    ])
    def test_invalid_timestamps(self, value):
        assert not validate_timestamp(value)
