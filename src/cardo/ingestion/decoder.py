"""Reassemble chunk-fragmented model output into one text blob.

Some transports hand back the stream verbatim as ``0:"..."`` tokens glued
together. Plain text passes through untouched.
"""
from __future__ import annotations

import logging
from typing import List

logger = logging.getLogger(__name__)

CHUNK_PREFIX = '0:"'


class ResponseDecoder:
    """Stateless decoder for the ``0:"<escaped>"`` chunk format."""

    prefix: str = CHUNK_PREFIX

    def decode(self, raw: str) -> str:
        if self.prefix not in raw:
            return raw

        chunks: List[str] = []
        pos = 0
        length = len(raw)
        while pos < length:
            start = raw.find(self.prefix, pos)
            if start == -1:
                break
            content_start = start + len(self.prefix)
            end = self._find_closing_quote(raw, content_start)
            if end is None:
                logger.warning(
                    "Truncated response chunk; keeping decoded prefix",
                    extra={"offset": start, "decoded_chunks": len(chunks)},
                )
                break
            chunks.append(raw[content_start:end].replace('\\"', '"'))
            pos = end + 1

        return "".join(chunks).replace("\\n", "\n").replace("\\t", "\t")

    @staticmethod
    def _find_closing_quote(raw: str, start: int) -> int | None:
        cursor = start
        while True:
            quote = raw.find('"', cursor)
            if quote == -1:
                return None
            if quote > 0 and raw[quote - 1] == "\\":
                cursor = quote + 1
                continue
            return quote


def decode_response(raw: str) -> str:
    return ResponseDecoder().decode(raw)


__all__ = ["CHUNK_PREFIX", "ResponseDecoder", "decode_response"]
