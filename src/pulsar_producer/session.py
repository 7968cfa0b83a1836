"""
One pulsar-publish subprocess and the resolution of its record stream.
"""

import asyncio
import logging
from enum import Enum
from pathlib import Path
from typing import Any, List, Optional, Union

import orjson

from pulsar_producer.bus import Observer
from pulsar_producer.command import redact_command
from pulsar_producer.exceptions import (
    AbnormalExitError,
    EncodedFailureError,
    MissingExecutableError,
    MissingResultError,
    PulsarPublishError,
)
from pulsar_producer.models import ProtocolRecord
from pulsar_producer.protocol import DONE, TEST, RecordDecoder

logger = logging.getLogger(__name__)

READ_SIZE = 64 * 1024

LOG_LEVELS = {
    "trace": logging.DEBUG,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "fatal": logging.CRITICAL,
    "panic": logging.CRITICAL,
}


class SessionState(str, Enum):
    """Enumeration of session states."""

    IDLE = "idle"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class PublishSession:
    """Runs pulsar-publish once and resolves its output to a single result."""

    def __init__(
        self,
        executable: Path,
        command: List[str],
        *,
        test: bool = False,
        bus: Optional[Observer] = None,
        read_size: int = READ_SIZE,
    ):
        """
        Args:
            executable: Path to pulsar-publish
            command: Argument vector from build_command
            test: Resolve to a connectivity boolean instead of a message id
            bus: Optional observer receiving records, 'error' and 'end'
            read_size: Maximum bytes per pipe read
        """
        self.executable = Path(executable)
        self.command = list(command)
        self.test = test
        self.bus = bus
        self.read_size = read_size
        self.state = SessionState.IDLE
        self.returncode: Optional[int] = None
        self._process: Optional[asyncio.subprocess.Process] = None
        self._result: Union[str, bool, None] = None
        self._failure: Optional[EncodedFailureError] = None
        self._detached = False

    @property
    def result(self) -> Union[str, bool, None]:
        return self._result

    async def run(self) -> Union[str, bool]:
        """
        Spawn pulsar-publish and wait for it to exit.

        Returns:
            Message id, or the test outcome in test mode

        Raises:
            EncodedFailureError: pulsar-publish reported an error record
            AbnormalExitError: Non-zero exit without an error record
            MissingResultError: Clean exit without a result record
        """
        if self.state is not SessionState.IDLE:
            raise PulsarPublishError(f"session already {self.state.value}")

        logger.debug(f"Spawning {self.executable} {' '.join(redact_command(self.command))}")
        try:
            self._process = await asyncio.create_subprocess_exec(
                str(self.executable),
                *self.command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            self.state = SessionState.FAILED
            raise MissingExecutableError(self.executable) from e
        except OSError as e:
            self.state = SessionState.FAILED
            logger.error(f"Failed to start {self.executable}: {e}")
            raise PulsarPublishError(f"failed to start pulsar-publish: {e}") from e

        self.state = SessionState.RUNNING
        try:
            await asyncio.gather(
                self._drain(self._process.stdout, "stdout"),
                self._drain(self._process.stderr, "stderr"),
            )
            self.returncode = await self._process.wait()
        except asyncio.CancelledError:
            logger.warning("Publish cancelled, killing pulsar-publish")
            self.state = SessionState.FAILED
            raise
        except Exception:
            logger.exception("Reading pulsar-publish output failed, killing it")
            self.state = SessionState.FAILED
            raise
        finally:
            if self._process.returncode is None:
                await self.terminate()

        logger.debug(f"pulsar-publish exited with code {self.returncode}")
        return self._resolve(self.returncode)

    async def _drain(self, stream: asyncio.StreamReader, name: str) -> None:
        decoder = RecordDecoder(name)
        while True:
            chunk = await stream.read(self.read_size)
            if not chunk:
                break
            for record in decoder.feed(chunk):
                self._handle(record)
        for record in decoder.flush():
            self._handle(record)

    def _handle(self, record: ProtocolRecord) -> None:
        # Everything after an error record is ignored so the call resolves once.
        if self._detached:
            return

        if record.error:
            self._detached = True
            error = EncodedFailureError(record.error, record=record)
            self._emit("error", error)
            if self.test:
                logger.info(f"Connection test failed: {record.error}")
                self._result = False
            else:
                logger.error(f"pulsar-publish reported an error: {record.error}")
                self._failure = error
            self._kill()
            return

        self._emit(record.kind, record)

        if record.kind == DONE and not self.test:
            self._result = record.message_id
            return
        if record.kind == TEST and self.test:
            self._result = bool(record.success)
            return

        fields = record.fields
        detail = f": {orjson.dumps(fields).decode()}" if fields else ""
        level = LOG_LEVELS.get((record.level or "").lower(), logging.INFO)
        logger.log(level, f"{record.time.isoformat() if record.time else '-'} {record.kind}{detail}")

    def _resolve(self, returncode: Optional[int]) -> Union[str, bool]:
        if self._failure is not None:
            self.state = SessionState.FAILED
            raise self._failure

        if self.test and self._result is not None:
            return self._succeed({"success": self._result})

        if returncode != 0:
            if self.test:
                logger.warning(f"Connection test exited with code {returncode} without a result")
                return self._succeed({"success": False})
            self.state = SessionState.FAILED
            logger.error(f"pulsar-publish exited with code {returncode}")
            raise AbnormalExitError(returncode)

        if not self.test and self._result:
            return self._succeed({"message_id": self._result})

        self.state = SessionState.FAILED
        logger.error("pulsar-publish exited without returning a result")
        raise MissingResultError(self._result)

    def _succeed(self, payload: dict) -> Union[str, bool]:
        self.state = SessionState.SUCCEEDED
        value = payload.get("message_id", payload.get("success"))
        self._result = value
        self._emit("end", payload)
        return value

    def _emit(self, event: str, payload: Any) -> None:
        if self.bus is None:
            return
        try:
            self.bus.emit(event, payload)
        except Exception:
            logger.exception(f"Observer failed while handling '{event}'")

    def _kill(self) -> None:
        if self._process is None or self._process.returncode is not None:
            return
        try:
            self._process.kill()
        except ProcessLookupError:
            pass

    async def terminate(self) -> None:
        """Kill pulsar-publish and wait for it to exit."""
        process = self._process
        if process is None or process.returncode is not None:
            return
        self._detached = True
        self._kill()
        await process.wait()
