"""
uuid7.py - UUID v7 generation.

Implements UUID v7 (time-ordered) creation using standard library.
Mirrored rows receive these as their uid, rendered in canonical form.
"""

import os
import time
import uuid


def generate_uuid_v7() -> bytes:
    """
    Generate a UUID v7 (time-ordered) as raw 16 bytes.

    Structure:
    - 48 bits: Timestamp (ms)
    - 4 bits: Version (7)
    - 12 bits: rand_a
    - 2 bits: Variant (10)
    - 62 bits: rand_b
    """
    t_ms = int(time.time() * 1000)
    t_bytes = t_ms.to_bytes(8, byteorder="big")[2:]

    r = bytearray(os.urandom(10))
    # Byte 6 of the result carries the version nibble
    r[0] = (r[0] & 0x0F) | 0x70
    # Byte 8 of the result carries the variant bits
    r[2] = (r[2] & 0x3F) | 0x80

    return t_bytes + bytes(r)


def generate_uid() -> str:
    """
    Generate a uid for a mirrored row.

    Returns:
        Lower-case hyphenated hex string in 8-4-4-4-12 grouping (36 chars)
    """
    return str(uuid.UUID(bytes=generate_uuid_v7()))
