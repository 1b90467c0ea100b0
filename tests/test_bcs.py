"""Tests for the BCS codec and record schemas."""

import pytest

from versionfs import bcs
from versionfs.errors import DecodeError

A1 = "0x" + "ab" * 32
A2 = "0x" + "01" * 32
AUTHOR = "0x" + "cd" * 32


def _u64(n: int) -> bytes:
    return n.to_bytes(8, "little")


def _addr(a: str) -> bytes:
    return bytes.fromhex(a[2:])


def commit_values(message: bytes = b"\x05hello") -> list[tuple[bytes, str]]:
    return [
        (b"\x04tree", bcs.STRING),
        (b"\x02" + _addr(A1) + _addr(A2), bcs.vector(bcs.ID)),
        (_addr(AUTHOR), bcs.ADDRESS),
        (_u64(1_700_000_000), bcs.U64),
        (message, bcs.STRING),
        (_addr(A1), bcs.ID),
    ]


class TestReaderPrimitives:
    def test_uleb128_single_byte(self):
        assert bcs.Reader(b"\x7f").uleb128() == 127

    def test_uleb128_multi_byte(self):
        reader = bcs.Reader(b"\xac\x02")
        assert reader.uleb128() == 300
        assert reader.remaining == 0

    def test_uleb128_truncated(self):
        with pytest.raises(DecodeError):
            bcs.Reader(b"\x80").uleb128()

    def test_uleb128_too_long(self):
        with pytest.raises(DecodeError, match="longer than"):
            bcs.Reader(b"\xff" * 10 + b"\x01").uleb128()

    def test_uleb128_overflow(self):
        with pytest.raises(DecodeError, match="overflows"):
            bcs.Reader(b"\xff" * 9 + b"\x7f").uleb128()

    def test_string(self):
        reader = bcs.Reader(b"\x02hi")
        assert reader.string() == "hi"
        assert reader.remaining == 0

    def test_string_utf8(self):
        raw = "héllo".encode()
        assert bcs.Reader(bytes([len(raw)]) + raw).string() == "héllo"

    def test_string_length_past_end(self):
        with pytest.raises(DecodeError, match="Need 5 bytes"):
            bcs.Reader(b"\x05hi").string()

    def test_string_invalid_utf8(self):
        with pytest.raises(DecodeError, match="UTF-8"):
            bcs.Reader(b"\x01\xff").string()

    def test_address_is_prefixed_hex(self):
        assert bcs.Reader(_addr(A1)).address() == A1

    def test_address_short_buffer(self):
        with pytest.raises(DecodeError):
            bcs.Reader(b"\x00" * 31).address()

    def test_u64_keeps_full_precision(self):
        big = 2**64 - 1
        assert bcs.Reader(_u64(big)).u64() == big
        assert bcs.Reader(_u64(2**53 + 1)).u64() == 2**53 + 1

    def test_bool_nonzero_is_true(self):
        assert bcs.Reader(b"\x00").bool() is False
        assert bcs.Reader(b"\x01").bool() is True
        assert bcs.Reader(b"\x02").bool() is True

    def test_vector_consumes_only_its_elements(self):
        reader = bcs.Reader(b"\x02\x01\x00\x99")
        assert reader.value(bcs.vector(bcs.BOOL)) == [True, False]
        assert reader.remaining == 1

    def test_vector_count_past_end(self):
        with pytest.raises(DecodeError, match="declares 64 elements"):
            bcs.Reader(b"\x40" + _addr(A1)).value(bcs.vector(bcs.ID))

    def test_empty_vector(self):
        assert bcs.Reader(b"\x00").value(bcs.vector(bcs.ID)) == []


class TestTags:
    def test_normalize_long_address(self):
        long_form = "0x" + "0" * 63 + "2::object::ID"
        assert bcs.normalize_tag(long_form) == bcs.ID

    def test_normalize_vector(self):
        assert bcs.normalize_tag("vector<0x02::object::ID>") == bcs.vector(bcs.ID)

    def test_unsupported_tag(self):
        with pytest.raises(DecodeError, match="Unsupported"):
            bcs.check_tag("u128")

    def test_decode_value_rejects_trailing(self):
        with pytest.raises(DecodeError, match="trailing"):
            bcs.decode_value(bcs.U64, _u64(1) + b"\x00")


class TestSchema:
    def test_field_names_in_order(self):
        assert bcs.COMMIT_SCHEMA.field_names == (
            "root_blob_id", "parents", "author", "timestamp", "message", "version_id",
        )

    def test_duplicate_field_names(self):
        with pytest.raises(ValueError, match="duplicate"):
            bcs.Schema("x", 1, (bcs.Field("a", bcs.U64), bcs.Field("a", bcs.BOOL)))

    def test_unknown_wire_type(self):
        with pytest.raises(ValueError):
            bcs.Schema("x", 1, (bcs.Field("a", "u256"),))

    def test_empty_schema(self):
        with pytest.raises(ValueError, match="no fields"):
            bcs.Schema("x", 1, ())

    def test_wire_types_are_canonical(self):
        schema = bcs.Schema("x", 1, (bcs.Field("id", "0x0002::object::ID"),))
        assert schema.fields[0].wire_type == bcs.ID

    def test_str(self):
        assert str(bcs.COMMIT_SCHEMA) == "commit/v1"


class TestDecodeCommit:
    def test_decodes_in_field_order(self):
        record = bcs.decode(bcs.COMMIT_SCHEMA, commit_values())
        assert record == {
            "root_blob_id": "tree",
            "parents": [A1, A2],
            "author": AUTHOR,
            "timestamp": 1_700_000_000,
            "message": "hello",
            "version_id": A1,
        }

    def test_truncated_message_length_prefix(self):
        with pytest.raises(DecodeError, match="message"):
            bcs.decode(bcs.COMMIT_SCHEMA, commit_values(message=b"\x80"))

    def test_message_shorter_than_declared(self):
        with pytest.raises(DecodeError, match="message"):
            bcs.decode(bcs.COMMIT_SCHEMA, commit_values(message=b"\x09hello"))

    def test_trailing_bytes_in_field(self):
        with pytest.raises(DecodeError, match="trailing"):
            bcs.decode(bcs.COMMIT_SCHEMA, commit_values(message=b"\x01hello"))

    def test_unexpected_type_tag(self):
        values = commit_values()
        values[3] = (values[3][0], bcs.BOOL)
        with pytest.raises(DecodeError, match="timestamp"):
            bcs.decode(bcs.COMMIT_SCHEMA, values)

    def test_swapped_fields_are_caught(self):
        values = commit_values()
        values[0], values[4] = values[4], values[0]
        values[2], values[3] = values[3], values[2]
        with pytest.raises(DecodeError):
            bcs.decode(bcs.COMMIT_SCHEMA, values)

    def test_wrong_value_count(self):
        with pytest.raises(DecodeError, match="expected 6 values, got 5"):
            bcs.decode(bcs.COMMIT_SCHEMA, commit_values()[:5])

    def test_long_form_tags_accepted(self):
        values = commit_values()
        values[5] = (values[5][0], "0x" + "0" * 63 + "2::object::ID")
        assert bcs.decode(bcs.COMMIT_SCHEMA, values)["version_id"] == A1

    def test_decode_packed(self):
        buf = b"".join(raw for raw, _ in commit_values())
        record = bcs.decode_packed(bcs.COMMIT_SCHEMA, buf)
        assert record["message"] == "hello"
        assert record["parents"] == [A1, A2]

    def test_decode_packed_truncated(self):
        buf = b"".join(raw for raw, _ in commit_values())
        with pytest.raises(DecodeError):
            bcs.decode_packed(bcs.COMMIT_SCHEMA, buf[:-1])


class TestEncode:
    def test_writer_matches_hand_encoding(self):
        record = {
            "root_blob_id": "tree",
            "parents": [A1, A2],
            "author": AUTHOR,
            "timestamp": 1_700_000_000,
            "message": "hello",
            "version_id": A1,
        }
        assert bcs.encode(bcs.COMMIT_SCHEMA, record) == commit_values()

    def test_short_address_is_left_padded(self):
        assert bcs.encode_value(bcs.ADDRESS, "0x2") == b"\x00" * 31 + b"\x02"

    def test_u64_out_of_range(self):
        with pytest.raises(ValueError):
            bcs.encode_value(bcs.U64, 2**64)
