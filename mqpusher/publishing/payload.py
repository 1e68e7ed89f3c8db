"""
Message payload encoding.
"""

import json
from typing import Any

from mqpusher.core.errors import PublishError

CONTENT_TYPE = "application/json"


def encode_record(record: dict[str, Any]) -> bytes:
    """
    Encode a record as canonical JSON.

    Keys are sorted, separators are compact, non-ASCII text is kept as UTF-8
    and NaN/Infinity are rejected, since they are not valid JSON.

    Args:
        record: Record to encode

    Returns:
        UTF-8 encoded JSON body

    Raises:
        PublishError: If a value cannot be serialized
    """
    try:
        body = json.dumps(
            record,
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
            allow_nan=False,
        )
    except (TypeError, ValueError) as e:
        raise PublishError(f"serializing record: {e}") from e
    return body.encode("utf-8")
