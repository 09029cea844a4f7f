"""Line codec for the comma-separated pool protocol."""

from __future__ import annotations

import binascii
import re

from duco_miner.protocol.messages import (
    Accepted,
    Feedback,
    Job,
    NewBlock,
    Other,
    PoolReplies,
    Rejected,
    Solution,
)


class JobFormatError(Exception):
    """Job line does not split into exactly three fields."""

    pass


ENCODING = "utf-8"
DELIMITER = b"\n"
SEPARATOR = ","
JOB_FIELD_COUNT = 3

_UNSIGNED_RE = re.compile(r"^\+?[0-9]+$")
# Difficulty is a 32-bit unsigned value on the pool side
MAX_DIFFICULTY = 0xFFFFFFFF


def decode_line(data: bytes) -> str:
    """Decode one received line and strip surrounding whitespace."""
    return data.decode(ENCODING, errors="replace").strip()


def decode_target(text: str) -> bytes:
    """
    Decode the hex target digest.

    Malformed hex yields an empty target, which never matches a digest, so the
    job is searched and then skipped instead of failing the session.
    """
    try:
        return binascii.unhexlify(text)
    except (binascii.Error, ValueError):
        return b""


def decode_difficulty(text: str) -> int:
    """Decode the job difficulty; anything but an in-range unsigned integer is 0."""
    if not _UNSIGNED_RE.match(text):
        return 0
    value = int(text)
    if value > MAX_DIFFICULTY:
        return 0
    return value


def parse_job_line(line: str) -> Job:
    """
    Parse ``<base>,<targetHex>,<difficulty>`` into a Job.

    Raises:
        JobFormatError: If the line does not contain exactly three fields.
    """
    parts = line.strip().split(SEPARATOR)
    if len(parts) != JOB_FIELD_COUNT:
        raise JobFormatError(
            f"Expected {JOB_FIELD_COUNT} fields in job line, got {len(parts)}"
        )
    base, target_hex, difficulty = parts
    return Job(
        base=base,
        target=decode_target(target_hex),
        difficulty=decode_difficulty(difficulty),
    )


def build_job_request(username: str, difficulty: str, mining_key: str) -> bytes:
    """Build a ``JOB,<user>,<difficulty>,<key>`` request line."""
    return _encode(["JOB", username, difficulty, mining_key])


def build_submission(
    solution: Solution, client_name: str, rig_identifier: str, process_run_id: int
) -> bytes:
    """Build a share submission line."""
    return _encode([
        str(solution.nonce),
        f"{solution.hashrate:.2f}",
        client_name,
        rig_identifier,
        str(process_run_id),
    ])


def classify_feedback(line: str) -> Feedback:
    """Classify a pool reply; every line maps to exactly one variant."""
    text = line.strip()
    if text == PoolReplies.GOOD:
        return Accepted()
    if text.startswith(PoolReplies.BAD_PREFIX):
        return Rejected(reason=text[len(PoolReplies.BAD_PREFIX):])
    if text == PoolReplies.BLOCK:
        return NewBlock()
    return Other(raw=text)


def _encode(fields: list) -> bytes:
    return SEPARATOR.join(fields).encode(ENCODING) + DELIMITER
