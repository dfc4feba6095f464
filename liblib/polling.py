import asyncio
import logging
from typing import Awaitable, Callable, Optional

from .errors import (
    JobResultMissing,
    PollingCancelled,
    PollingExhausted,
    RemoteRejection,
    TerminalJobFailure,
    TransportError,
    ValidationError,
)
from .schemas import GenerateStatus, JobStatus

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 60
DEFAULT_INTERVAL = 3.0


class JobPoller:
    """Polls a generation job until the remote side reports a terminal status.

    Failures of the status call itself (network errors, malformed payloads,
    rejected requests) are retried within the attempt budget. FAILED and
    TIMEOUT are authoritative and end polling at once.
    """

    def __init__(
        self,
        fetch_status: Callable[[str], Awaitable[JobStatus]],
        *,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        interval: float = DEFAULT_INTERVAL,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.fetch_status = fetch_status
        self.max_attempts = max_attempts
        self.interval = interval
        self.sleep = sleep

    async def _pause(self, interval: float, stop_event: Optional[asyncio.Event]) -> None:
        if stop_event is None:
            await self.sleep(interval)
            return
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=interval)
        except asyncio.TimeoutError:
            return
        raise PollingCancelled("Polling stopped by caller")

    async def wait(
        self,
        generate_uuid: str,
        *,
        max_attempts: Optional[int] = None,
        interval: Optional[float] = None,
        stop_event: Optional[asyncio.Event] = None,
        on_status: Optional[Callable[[JobStatus], None]] = None,
    ) -> str:
        """Return the URL of the first generated image."""
        max_attempts = self.max_attempts if max_attempts is None else max_attempts
        interval = self.interval if interval is None else interval
        if max_attempts < 1:
            raise ValidationError("max_attempts must be at least 1")

        last_status: Optional[GenerateStatus] = None
        last_error: Optional[Exception] = None

        for attempt in range(1, max_attempts + 1):
            if stop_event is not None and stop_event.is_set():
                raise PollingCancelled("Polling stopped by caller")
            try:
                status = await self.fetch_status(generate_uuid)
            except (TransportError, RemoteRejection) as exc:
                last_error = exc
                logger.warning("Poll %d/%d for %s failed: %s", attempt, max_attempts, generate_uuid, exc)
            else:
                last_error = None
                last_status = status.generate_status
                logger.info(
                    "Poll %d/%d for %s: %s", attempt, max_attempts, generate_uuid, last_status.name
                )
                if on_status is not None:
                    on_status(status)

                if last_status is GenerateStatus.SUCCESS:
                    if not status.images:
                        raise JobResultMissing(f"Generation {generate_uuid} succeeded without images")
                    return status.images[0].image_url
                if last_status.is_terminal:
                    raise TerminalJobFailure(last_status, status.fail_reason)

            if attempt < max_attempts:
                await self._pause(interval, stop_event)

        raise PollingExhausted(max_attempts, last_status, last_error) from last_error
