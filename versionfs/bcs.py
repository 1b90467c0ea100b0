"""Binary codec for ledger read results.

Read-only ledger queries return an ordered list of ``(bytes, type_tag)``
pairs, one per Move return value. Each value is BCS-encoded: fixed-width
little-endian integers, 32-byte addresses and ULEB128 length prefixes for
strings and vectors. Nothing in the bytes is self-describing, so fields
must be consumed in exactly the declared order. Records are described by
a ``Schema`` and decoded by one generic routine.
"""

from dataclasses import dataclass
from typing import Any, Sequence

from .errors import DecodeError

STRING = "0x1::string::String"
ID = "0x2::object::ID"
ADDRESS = "address"
U64 = "u64"
BOOL = "bool"

ADDRESS_LENGTH = 32
U64_MAX = 2**64 - 1
_MAX_ULEB_BYTES = 10

_PRIMITIVES = frozenset({STRING, ID, ADDRESS, U64, BOOL})


def vector(inner: str) -> str:
    """Type tag for a vector of ``inner``."""
    return f"vector<{inner}>"


def normalize_tag(tag: str) -> str:
    """Canonical form of a type tag.

    Strips whitespace and leading zeros of the address part, so that
    ``0x0000...0002::object::ID`` and ``0x2::object::ID`` compare equal.
    """
    tag = tag.replace(" ", "")
    if tag.startswith("vector<") and tag.endswith(">"):
        return vector(normalize_tag(tag[len("vector<"):-1]))
    parts = tag.split("::")
    if len(parts) == 3 and parts[0].startswith("0x"):
        address = parts[0][2:].lstrip("0") or "0"
        return f"0x{address}::{parts[1]}::{parts[2]}"
    return tag


def check_tag(tag: str) -> str:
    """Validate a type tag and return its canonical form."""
    canonical = normalize_tag(tag)
    inner = canonical
    while inner.startswith("vector<"):
        inner = inner[len("vector<"):-1]
    if inner not in _PRIMITIVES:
        raise DecodeError(f"Unsupported type tag: {tag!r}")
    return canonical


def _element_tag(tag: str) -> str | None:
    if tag.startswith("vector<"):
        return tag[len("vector<"):-1]
    return None


class Reader:
    """A cursor over a byte buffer.

    Every read consumes exactly the bytes of its value. Reading past the
    end raises ``DecodeError``; nothing is ever silently truncated.
    """

    def __init__(self, data: bytes) -> None:
        self._data = bytes(data)
        self.pos = 0

    @property
    def remaining(self) -> int:
        return len(self._data) - self.pos

    def read(self, n: int) -> bytes:
        if n < 0 or n > self.remaining:
            raise DecodeError(
                f"Need {n} bytes at offset {self.pos}, "
                f"only {self.remaining} left"
            )
        chunk = self._data[self.pos:self.pos + n]
        self.pos += n
        return chunk

    def uleb128(self) -> int:
        result = 0
        shift = 0
        for _ in range(_MAX_ULEB_BYTES):
            byte = self.read(1)[0]
            result |= (byte & 0x7F) << shift
            if not byte & 0x80:
                if result > U64_MAX:
                    raise DecodeError("ULEB128 value overflows u64")
                return result
            shift += 7
        raise DecodeError(f"ULEB128 longer than {_MAX_ULEB_BYTES} bytes")

    def string(self) -> str:
        length = self.uleb128()
        raw = self.read(length)
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecodeError(f"Invalid UTF-8 in string: {e}") from e

    def address(self) -> str:
        return "0x" + self.read(ADDRESS_LENGTH).hex()

    def u64(self) -> int:
        return int.from_bytes(self.read(8), "little")

    def bool(self) -> bool:
        return self.read(1)[0] != 0

    def value(self, tag: str) -> Any:
        """Decode one value of the (canonical) type ``tag``."""
        element = _element_tag(tag)
        if element is not None:
            count = self.uleb128()
            # every supported element is at least one byte wide
            if count > self.remaining:
                raise DecodeError(
                    f"Vector declares {count} elements, "
                    f"only {self.remaining} bytes left"
                )
            return [self.value(element) for _ in range(count)]
        if tag == STRING:
            return self.string()
        if tag in (ID, ADDRESS):
            return self.address()
        if tag == U64:
            return self.u64()
        if tag == BOOL:
            return self.bool()
        raise DecodeError(f"Unsupported type tag: {tag!r}")


class Writer:
    """Builds BCS bytes. The inverse of ``Reader``."""

    def __init__(self) -> None:
        self._buf = bytearray()

    def getvalue(self) -> bytes:
        return bytes(self._buf)

    def uleb128(self, n: int) -> None:
        if n < 0 or n > U64_MAX:
            raise ValueError(f"ULEB128 value out of range: {n}")
        while True:
            byte = n & 0x7F
            n >>= 7
            if n:
                self._buf.append(byte | 0x80)
            else:
                self._buf.append(byte)
                return

    def string(self, s: str) -> None:
        raw = s.encode("utf-8")
        self.uleb128(len(raw))
        self._buf += raw

    def address(self, addr: str) -> None:
        hex_part = addr[2:] if addr.startswith("0x") else addr
        if len(hex_part) > ADDRESS_LENGTH * 2:
            raise ValueError(f"Address too long: {addr!r}")
        self._buf += bytes.fromhex(hex_part.rjust(ADDRESS_LENGTH * 2, "0"))

    def u64(self, n: int) -> None:
        if n < 0 or n > U64_MAX:
            raise ValueError(f"u64 out of range: {n}")
        self._buf += n.to_bytes(8, "little")

    def bool(self, b: bool) -> None:
        self._buf.append(1 if b else 0)

    def value(self, tag: str, v: Any) -> None:
        element = _element_tag(tag)
        if element is not None:
            self.uleb128(len(v))
            for item in v:
                self.value(element, item)
        elif tag == STRING:
            self.string(v)
        elif tag in (ID, ADDRESS):
            self.address(v)
        elif tag == U64:
            self.u64(v)
        elif tag == BOOL:
            self.bool(v)
        else:
            raise ValueError(f"Unsupported type tag: {tag!r}")


def encode_value(tag: str, v: Any) -> bytes:
    """Encode a single value of type ``tag``."""
    w = Writer()
    w.value(check_tag(tag), v)
    return w.getvalue()


def decode_value(tag: str, raw: bytes) -> Any:
    """Decode a single value that must occupy all of ``raw``."""
    reader = Reader(raw)
    value = reader.value(check_tag(tag))
    if reader.remaining:
        raise DecodeError(f"{reader.remaining} trailing bytes after {tag}")
    return value


# -- Schemas --


@dataclass(frozen=True)
class Field:
    """One positional field of a record."""

    name: str
    wire_type: str


@dataclass(frozen=True)
class Schema:
    """Ordered field layout of a ledger record.

    The layout is checked when the schema is built: every field name is
    unique and every wire type is supported. ``version`` is bumped on
    any change to the field order.
    """

    name: str
    version: int
    fields: tuple[Field, ...]

    def __post_init__(self) -> None:
        if not self.fields:
            raise ValueError(f"Schema {self.name!r} has no fields")
        names = [f.name for f in self.fields]
        if len(set(names)) != len(names):
            raise ValueError(f"Schema {self.name!r} has duplicate field names")
        canonical = tuple(
            Field(f.name, check_tag(f.wire_type)) for f in self.fields
        )
        object.__setattr__(self, "fields", canonical)

    @property
    def field_names(self) -> tuple[str, ...]:
        return tuple(f.name for f in self.fields)

    def __str__(self) -> str:
        return f"{self.name}/v{self.version}"


def decode(schema: Schema, values: Sequence[tuple[bytes, str]]) -> dict[str, Any]:
    """Decode ``(bytes, type_tag)`` pairs into a record.

    Raises:
        DecodeError: On a wrong number of values, a type tag that does
            not match the schema, a truncated value, or trailing bytes.
    """
    if len(values) != len(schema.fields):
        raise DecodeError(
            f"{schema}: expected {len(schema.fields)} values, got {len(values)}"
        )
    record: dict[str, Any] = {}
    for field, (raw, tag) in zip(schema.fields, values):
        if normalize_tag(tag) != field.wire_type:
            raise DecodeError(
                f"{schema}: field {field.name!r} expects {field.wire_type}, "
                f"got {tag}"
            )
        reader = Reader(raw)
        try:
            record[field.name] = reader.value(field.wire_type)
        except DecodeError as e:
            raise DecodeError(f"{schema}: field {field.name!r}: {e}") from e
        if reader.remaining:
            raise DecodeError(
                f"{schema}: field {field.name!r} has "
                f"{reader.remaining} trailing bytes"
            )
    return record


def decode_packed(schema: Schema, data: bytes) -> dict[str, Any]:
    """Decode every field of ``schema`` from one contiguous buffer."""
    reader = Reader(data)
    record: dict[str, Any] = {}
    for field in schema.fields:
        try:
            record[field.name] = reader.value(field.wire_type)
        except DecodeError as e:
            raise DecodeError(f"{schema}: field {field.name!r}: {e}") from e
    if reader.remaining:
        raise DecodeError(f"{schema}: {reader.remaining} trailing bytes")
    return record


def encode(schema: Schema, record: dict[str, Any]) -> list[tuple[bytes, str]]:
    """Encode a record as ``(bytes, type_tag)`` pairs in schema order."""
    out = []
    for field in schema.fields:
        w = Writer()
        w.value(field.wire_type, record[field.name])
        out.append((w.getvalue(), field.wire_type))
    return out


COMMIT_SCHEMA = Schema(
    "commit",
    1,
    (
        Field("root_blob_id", STRING),
        Field("parents", vector(ID)),
        Field("author", ADDRESS),
        Field("timestamp", U64),
        Field("message", STRING),
        Field("version_id", ID),
    ),
)

REPOSITORY_SCHEMA = Schema(
    "repository",
    1,
    (
        Field("name", STRING),
        Field("owner", ADDRESS),
        Field("version_count", U64),
    ),
)

BRANCH_HEAD_SCHEMA = Schema("branch_head", 1, (Field("version_id", ID),))

REPOSITORY_LIST_SCHEMA = Schema(
    "repository_list", 1, (Field("repo_ids", vector(ID)),)
)
