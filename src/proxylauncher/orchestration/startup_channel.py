"""
Readiness channel for the supervised child.

The child writes one JSON object, ``{"ip": "...", "port": N}``, to an
auxiliary file descriptor and then closes it. This module reads that
descriptor to EOF and decodes the message.
"""

import asyncio
import json
import logging
import os
from typing import Any, Dict, Optional

from ..validation import ChannelError
from .shared_state import TimeoutConstants

logger = logging.getLogger(__name__)


class StartupChannel:
    """
    Turns the bytes of one auxiliary pipe into a single readiness report.

    read() has two outcomes, a decoded report or a ChannelError, and one
    non-outcome: a channel that closes without any bytes returns None. That
    happens whenever a child exits before it started listening and is not a
    readiness failure by itself.
    """

    def __init__(self, reader: asyncio.StreamReader):
        self.reader = reader

    @classmethod
    async def open(cls, read_fd: int) -> "StartupChannel":
        """
        Wrap the read end of the readiness pipe.

        The channel takes ownership of ``read_fd``; it is closed when the
        writer side reaches EOF.
        """
        loop = asyncio.get_running_loop()
        reader = asyncio.StreamReader()
        pipe = os.fdopen(read_fd, "rb", buffering=0)
        try:
            await loop.connect_read_pipe(
                lambda: asyncio.StreamReaderProtocol(reader), pipe
            )
        except OSError as e:
            pipe.close()
            raise ChannelError(f"Could not open readiness channel: {e}") from e
        return cls(reader)

    async def read(self) -> Optional[Dict[str, Any]]:
        """
        Read until the child closes the channel.

        Returns:
            The decoded report, or None if the channel closed empty

        Raises:
            ChannelError: If reading fails or the bytes are not a JSON object
        """
        chunks = []
        try:
            while True:
                chunk = await self.reader.read(TimeoutConstants.PIPE_READ_CHUNK)
                if not chunk:
                    break
                chunks.append(chunk)
        except OSError as e:
            raise ChannelError(f"Error reading readiness channel: {e}") from e

        data = b"".join(chunks)
        if not data:
            return None

        logger.debug(f"Readiness channel delivered {len(data)} bytes")
        return self.decode(data)

    @staticmethod
    def decode(data: bytes) -> Dict[str, Any]:
        try:
            report = json.loads(data.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ChannelError(f"Malformed readiness message {data[:200]!r}: {e}") from e

        if not isinstance(report, dict):
            raise ChannelError(f"Readiness message is not a JSON object: {report!r}")
        return report
