"""Rolling buffer that feeds live exchanges into capture."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Awaitable, Callable, List, Optional, Sequence

from ..core.errors import InvalidPayloadError
from ..core.models import CaptureResult, Exchange

logger = logging.getLogger(__name__)

CaptureFn = Callable[[Path, Sequence[Exchange]], Awaitable[CaptureResult]]


class CaptureBuffer:
    """Collects exchanges and hands them to ``capture_fn`` in batches.

    A batch is flushed when ``threshold`` exchanges are buffered or when a
    workflow command is seen. Capture errors are logged and the exchanges
    stay buffered for the next flush, except for payloads the guard
    rejected as invalid, which are dropped.
    """

    def __init__(self, capture_fn: CaptureFn, project_root: Path, threshold: int = 5):
        if threshold < 1:
            raise ValueError("threshold must be >= 1")
        self.capture_fn = capture_fn
        self.project_root = Path(project_root)
        self.threshold = threshold
        self._buffer: List[Exchange] = []

    def __len__(self) -> int:
        return len(self._buffer)

    async def add(self, exchange: Exchange) -> Optional[CaptureResult]:
        self._buffer.append(exchange)
        if len(self._buffer) >= self.threshold:
            return await self.flush()
        return None

    async def on_command(self, command: str) -> Optional[CaptureResult]:
        logger.debug(f"Command {command} seen, flushing {len(self._buffer)} buffered exchanges")
        return await self.flush()

    async def flush(self) -> Optional[CaptureResult]:
        if not self._buffer:
            return None
        batch = list(self._buffer)
        try:
            result = await self.capture_fn(self.project_root, batch)
        except InvalidPayloadError as e:
            logger.warning(f"Dropping {len(batch)} buffered exchanges rejected by capture: {e}")
            del self._buffer[: len(batch)]
            return None
        except Exception as e:
            logger.warning(f"Capture failed for {self.project_root}, keeping {len(batch)} exchanges buffered: {e}")
            return None
        del self._buffer[: len(batch)]
        return result
