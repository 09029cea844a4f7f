"""Pool line protocol module."""

from duco_miner.protocol.codec import (
    JobFormatError,
    build_job_request,
    build_submission,
    classify_feedback,
    decode_difficulty,
    decode_target,
    parse_job_line,
)
from duco_miner.protocol.messages import (
    Accepted,
    Feedback,
    FeedbackKind,
    Job,
    NewBlock,
    Other,
    Rejected,
    Solution,
)

__all__ = [
    "JobFormatError",
    "build_job_request",
    "build_submission",
    "classify_feedback",
    "decode_difficulty",
    "decode_target",
    "parse_job_line",
    "Accepted",
    "Feedback",
    "FeedbackKind",
    "Job",
    "NewBlock",
    "Other",
    "Rejected",
    "Solution",
]
