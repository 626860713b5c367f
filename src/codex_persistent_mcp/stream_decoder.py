from __future__ import annotations

import codecs
import json
from typing import Any


class JsonLineDecoder:
    """Reassembles newline-delimited JSON from arbitrary byte chunks.

    Lines that are blank or fail to parse are dropped. UTF-8 sequences split
    across chunk boundaries are carried over, so the decoded records do not
    depend on how the stream was chunked.
    """

    def __init__(self) -> None:
        self._utf8 = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""

    def feed(self, chunk: bytes) -> list[Any]:
        self._buffer += self._utf8.decode(chunk)
        if "\n" not in self._buffer:
            return []
        *lines, self._buffer = self._buffer.split("\n")
        records: list[Any] = []
        for line in lines:
            records.extend(_parse_line(line))
        return records

    def flush(self) -> list[Any]:
        """Best-effort parse of whatever is left after the stream has ended."""
        remainder = self._buffer + self._utf8.decode(b"", final=True)
        self._buffer = ""
        return _parse_line(remainder)


def _parse_line(line: str) -> list[Any]:
    text = line.strip()
    if not text:
        return []
    try:
        return [json.loads(text)]
    except json.JSONDecodeError:
        return []
