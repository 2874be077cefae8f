"""Wire format of the chat stream.

Each frame is one line "data: <json>" followed by a blank line. Clients read
the stream incrementally; a transport chunk may end in the middle of a frame.
"""

import codecs
import json

from pydantic import BaseModel

FRAME_PREFIX = "data: "
FRAME_TERMINATOR = "\n\n"


def encode_frame(payload: BaseModel | dict) -> str:
    """Serialise one payload as a stream frame.

    Args:
        payload (BaseModel | dict): A frame model (dumped with camelCase keys) or a plain dict.

    Returns:
        str: The frame, e.g. 'data: {"content": "Hi"}\\n\\n'.
    """
    if isinstance(payload, BaseModel):
        payload = payload.model_dump(by_alias=True)
    return f"{FRAME_PREFIX}{json.dumps(payload, ensure_ascii=False)}{FRAME_TERMINATOR}"


class EventStreamDecoder:
    """Incremental frame decoder for consumers of the chat stream.

    Buffers partial lines across transport chunks and only parses complete
    "data: " lines. Lines without the prefix are ignored.
    """

    def __init__(self) -> None:
        self._buffer = ""
        # multi-byte characters may be split across transport chunks
        self._utf8 = codecs.getincrementaldecoder("utf-8")()

    def feed(self, chunk: str | bytes) -> list[dict]:
        """Add a transport chunk and return every frame it completed.

        Args:
            chunk (str | bytes): Raw text as received.

        Returns:
            list[dict]: Decoded payloads in arrival order. Empty if no line was completed.

        Raises:
            ValueError: If a complete data line does not hold valid JSON.
        """
        if isinstance(chunk, bytes):
            chunk = self._utf8.decode(chunk)
        self._buffer += chunk

        frames: list[dict] = []
        *lines, self._buffer = self._buffer.split("\n")
        for line in lines:
            line = line.rstrip("\r")
            if not line.startswith(FRAME_PREFIX):
                continue
            try:
                frames.append(json.loads(line[len(FRAME_PREFIX):]))
            except json.JSONDecodeError as e:
                raise ValueError(f"Malformed stream frame: {line[:200]!r}") from e
        return frames

    def has_pending(self) -> bool:
        """Whether an incomplete line is still buffered."""
        return bool(self._buffer)
