"""Server-sent event framing for the chat stream.

The client reads ``data:`` lines and stops at ``[DONE]``::

    data: {"content": "Hel"}

    data: {"content": "lo"}

    data: [DONE]
"""

import json
from typing import Any

MEDIA_TYPE = "text/event-stream"

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    # Stop nginx-style proxies from buffering the stream
    "X-Accel-Buffering": "no",
}

DONE_FRAME = "data: [DONE]\n\n"


def format_event(payload: dict[str, Any]) -> str:
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n\n"


def encode_chunk(content: str) -> str:
    return format_event({"content": content})


def encode_error(message: str) -> str:
    return format_event({"error": message})
