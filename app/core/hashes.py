from __future__ import annotations

HASH_SIZE = 32
ZERO_HASH = bytes(HASH_SIZE)


def to_content_hash(value: bytes | bytearray | str | None) -> bytes:
    """Normalize an opaque content hash to exactly 32 bytes.

    Accepts raw bytes or a hex string (with or without ``0x``). ``None`` and ``""``
    map to the zero hash.
    """
    if value is None:
        return ZERO_HASH
    if isinstance(value, (bytes, bytearray)):
        raw = bytes(value)
    else:
        text = value.strip()
        if text.lower().startswith("0x"):
            text = text[2:]
        if not text:
            return ZERO_HASH
        try:
            raw = bytes.fromhex(text)
        except ValueError as exc:
            raise ValueError(f"Invalid hash: {value!r}") from exc
    if len(raw) != HASH_SIZE:
        raise ValueError(f"Hash must be {HASH_SIZE} bytes, got {len(raw)}")
    return raw


def is_empty_hash(value: bytes | None) -> bool:
    return not value or value == ZERO_HASH


def hash_hex(value: bytes | None) -> str:
    return "0x" + (value or ZERO_HASH).hex()
