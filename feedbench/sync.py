"""
Replication sync detection.

Polls the replication status of an upload until every chunk has been
replicated, giving up after a number of consecutive trials without progress.
"""

import asyncio
from typing import Awaitable, Callable, List, Optional

from feedbench.config import SYNC_POLLING_TIME, SYNC_POLLING_TRIALS, SYNC_SETTLE_TIME
from feedbench.errors import SyncTimeoutError
from feedbench.interfaces import StorageClient, UploadHandle
from feedbench.utils import fan_out


class SyncDetector:
    """Wait until an upload is reported as fully replicated.

    The trial counter restarts whenever the replicated count changes, so the
    detector waits indefinitely while progress is observed and fails only
    after ``polling_trials`` consecutive polls with the same replicated count.

    Attributes:
        client: Node the uploads were made to.
        polling_time: Seconds to wait between two trials.
        polling_trials: Consecutive unchanged trials before timing out.
        settle_time: Seconds to wait after the upload reports synced, since
            the data is not immediately retrievable from other nodes.
    """

    def __init__(self, client: StorageClient,
                 polling_time: float = SYNC_POLLING_TIME,
                 polling_trials: int = SYNC_POLLING_TRIALS,
                 settle_time: float = SYNC_SETTLE_TIME,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
                 logger=None):
        self.client = client
        self.polling_time = polling_time
        self.polling_trials = polling_trials
        self.settle_time = settle_time
        self._sleep = sleep
        self.logger = logger

    async def wait(self, handle: UploadHandle) -> int:
        """Poll until ``handle`` is synced.

        Returns:
            Number of status polls made.

        Raises:
            SyncTimeoutError: After ``polling_trials`` consecutive unchanged trials.
        """
        trial = 0
        polls = 0
        observed = 0
        total = None

        while trial < self.polling_trials:
            status = await self.client.retrieve_replication_status(handle)
            polls += 1
            total = status.total

            if status.replicated != observed:
                trial = 0
                observed = status.replicated

            if self.logger:
                self.logger.verboser(f'Sync poll {polls} on "{handle.endpoint}": {observed}/{total}')

            if observed >= total:
                await self._sleep(self.settle_time)
                return polls

            trial += 1
            if trial < self.polling_trials:
                await self._sleep(self.polling_time)

        raise SyncTimeoutError(
            endpoint=handle.endpoint or getattr(self.client, 'url', None),
            trials=self.polling_trials,
            replicated=observed,
            total=total,
        )


async def wait_all(detectors: List[SyncDetector], handles: List[UploadHandle]) -> List[int]:
    """Run every detector against its handle concurrently; the first failure propagates."""
    return await fan_out(detector.wait(handle) for detector, handle in zip(detectors, handles))


def make_detectors(clients: List[StorageClient], logger=None,
                   sleep: Optional[Callable[[float], Awaitable[None]]] = None, **kwargs) -> List[SyncDetector]:
    """One detector per writer client, sharing timing settings."""
    if sleep is not None:
        kwargs['sleep'] = sleep
    return [SyncDetector(client, logger=logger, **kwargs) for client in clients]
