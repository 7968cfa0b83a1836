"""
Decoder for the newline-delimited JSON records pulsar-publish writes to stdout and stderr.
"""

import logging
from typing import List, Union

import orjson
from pydantic import ValidationError

from pulsar_producer.exceptions import ProtocolError
from pulsar_producer.models import ProtocolRecord

logger = logging.getLogger(__name__)

DONE = "done"
TEST = "test"


def decode_record(line: Union[bytes, str]) -> ProtocolRecord:
    """
    Decode one line into a ProtocolRecord.

    Args:
        line: A single JSON object, without its trailing newline

    Returns:
        Decoded record

    Raises:
        ProtocolError: If the line is not a JSON object with a 'msg' key
    """
    try:
        data = orjson.loads(line)
    except orjson.JSONDecodeError as e:
        raise ProtocolError(f"invalid JSON record: {e}") from e

    if not isinstance(data, dict):
        raise ProtocolError(f"expected a JSON object, got {type(data).__name__}")

    try:
        return ProtocolRecord.model_validate(data)
    except ValidationError as e:
        raise ProtocolError(f"invalid record: {e}") from e


class RecordDecoder:
    """
    Incremental decoder for one output stream.

    Pipe reads do not line up with records: a chunk may hold several records,
    or end halfway through one. Bytes are buffered and only complete lines are
    decoded; the trailing partial line waits for the next chunk.
    """

    def __init__(self, stream: str = "stdout"):
        self.stream = stream
        self._buffer = bytearray()

    @property
    def pending(self) -> int:
        """Number of buffered bytes not yet terminated by a newline."""
        return len(self._buffer)

    def feed(self, chunk: bytes) -> List[ProtocolRecord]:
        """
        Add a chunk and decode every line it completes.

        Args:
            chunk: Raw bytes read from the stream

        Returns:
            Zero or more decoded records, in stream order
        """
        self._buffer.extend(chunk)
        records = []
        while True:
            newline = self._buffer.find(b"\n")
            if newline < 0:
                break
            line = bytes(self._buffer[:newline])
            del self._buffer[: newline + 1]
            record = self._decode(line)
            if record is not None:
                records.append(record)
        return records

    def flush(self) -> List[ProtocolRecord]:
        """Decode the unterminated remainder at end of stream."""
        if not self._buffer:
            return []
        line = bytes(self._buffer)
        self._buffer.clear()
        record = self._decode(line)
        return [record] if record is not None else []

    def _decode(self, line: bytes):
        line = line.strip()
        if not line:
            return None
        try:
            return decode_record(line)
        except ProtocolError as e:
            logger.warning(f"Dropping undecodable {self.stream} line from pulsar-publish: {e}")
            logger.debug(f"Raw line: {line!r}")
            return None
