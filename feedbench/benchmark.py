"""
Feed update propagation benchmark.

This module provides the FeedBenchmark class that drives the end-to-end loop:
every update is uploaded to all writer nodes, and on every n-th update the
benchmark waits for the network to sync, downloads the feed from all reader
nodes and verifies that each of them returns the update just written.

Classes:
    FeedBenchmark: Orchestrates uploads, sync waits, downloads and checks.

Functions:
    run_benchmark: Synchronous wrapper around ``FeedBenchmark.run``.
"""

import asyncio
import time
from typing import Awaitable, Callable, List, Optional, Sequence

from feedbench.config import REFERENCE_LENGTH, OperationKind, SyncMode
from feedbench.fb_logging import setup_logging
from feedbench.interfaces import FeedReader, FeedWriter, StorageClient, UploadHandle
from feedbench.models import BenchmarkConfig, IterationReport, TimingSample
from feedbench.reporting import format_iteration_report
from feedbench.sync import SyncDetector, make_detectors, wait_all
from feedbench.utils import fan_out, increment_bytes, make_bytes, measure_async, random_byte_array
from feedbench.verifier import verify_feed_update

ClientFactory = Callable[[str], StorageClient]
ReportCallback = Callable[[IterationReport], None]
StageCallback = Callable[[str], None]


class FeedBenchmark:
    """Measure how fast sequential feed updates propagate between nodes.

    Any failure (transport error, sync timeout, verification mismatch) is
    propagated unchanged and ends the run. Reports for iterations that
    completed before the failure have already been handed to ``on_report``.

    Attributes:
        config: Validated benchmark configuration.
        reports: Reports of the iterations completed so far.

    Example:
        benchmark = FeedBenchmark(config, client_factory=BeeClient)
        reports = asyncio.run(benchmark.run())
    """

    def __init__(self, config: BenchmarkConfig, client_factory: ClientFactory,
                 logger=None,
                 on_report: Optional[ReportCallback] = None,
                 on_stage: Optional[StageCallback] = None,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
                 clock: Callable[[], float] = time.perf_counter) -> None:
        self.config = config
        self.client_factory = client_factory
        self.logger = logger if logger else setup_logging(name="feedbench")
        self.on_report = on_report
        self.on_stage = on_stage
        self._sleep = sleep
        self._clock = clock
        self.reports: List[IterationReport] = []

    def _stage(self, text: str) -> None:
        self.logger.verbose(text)
        if self.on_stage:
            self.on_stage(text)

    async def run(self) -> List[IterationReport]:
        """Run every update and return the per-iteration reports.

        Raises:
            ConfigurationError: Before any client is created, if the config is invalid.
            TransportError: If any upload or download fails.
            SyncTimeoutError: If polling for replication gives up.
            VerificationError: If a reader returns an unexpected update.
        """
        self.config.validate()
        self.reports = []

        topic = random_byte_array(self.config.topic_length, self.config.topic_seed)
        self.logger.status(f"Feed topic: {topic.hex()}")
        self.logger.status(f"Feed owner: {self.config.identity.address}")

        writer_clients: List[StorageClient] = []
        reader_clients: List[StorageClient] = []
        try:
            for url in self.config.writer_urls:
                writer_clients.append(self.client_factory(url))
            for url in self.config.reader_urls:
                reader_clients.append(self.client_factory(url))

            writers = [client.make_feed_writer(self.config.feed_type, topic, self.config.identity)
                       for client in writer_clients]
            readers = [client.make_feed_reader(self.config.feed_type, topic, self.config.identity.address)
                       for client in reader_clients]
            detectors = make_detectors(
                writer_clients,
                logger=self.logger,
                sleep=self._sleep,
                polling_time=self.config.sync_polling_time,
                polling_trials=self.config.sync_polling_trials,
                settle_time=self.config.sync_settle_time,
            )
            await self._run_updates(writers, readers, detectors)
        finally:
            for client in writer_clients + reader_clients:
                await client.close()

        return self.reports

    async def _run_updates(self, writers: Sequence[FeedWriter], readers: Sequence[FeedReader],
                           detectors: Sequence[SyncDetector]) -> None:
        # reference that the feed refers to
        reference = make_bytes(REFERENCE_LENGTH)
        download_iteration_index = 0

        for i in range(self.config.updates):
            expected_reference = bytes(reference)

            self._stage(f"Upload feed for index {i}")
            upload_samples, handles = await self._upload_all(writers, expected_reference)
            report = IterationReport(index=i, reference=expected_reference.hex(), uploads=upload_samples)

            download_iteration_index += 1
            if download_iteration_index == self.config.download_iteration:
                download_iteration_index = 0

                self._stage(f"Wait for feed update sync at index {i}")
                report.sync = await self._wait_for_sync(detectors, handles)

                self._stage(f"Download feed for index {i}")
                report.downloads = await self._download_and_verify(readers, expected_reference, i)

            self.reports.append(report)
            self.logger.result(format_iteration_report(report))
            if self.on_report:
                self.on_report(report)

            increment_bytes(reference)

    async def _upload_all(self, writers: Sequence[FeedWriter], reference: bytes):
        results = await fan_out(
            measure_async(lambda writer=writer, stamp=stamp: writer.upload(stamp, reference), self._clock)
            for writer, stamp in zip(writers, self.config.stamps)
        )
        samples = [
            TimingSample(OperationKind.UPLOAD, url, duration)
            for url, (duration, _) in zip(self.config.writer_urls, results)
        ]
        handles: List[UploadHandle] = [handle for _, handle in results]
        return samples, handles

    async def _wait_for_sync(self, detectors: Sequence[SyncDetector],
                             handles: Sequence[UploadHandle]) -> TimingSample:
        if self.config.sync_mode is SyncMode.POLL:
            duration, polls = await measure_async(lambda: wait_all(list(detectors), list(handles)), self._clock)
            self.logger.verbose(f"Sync polls per writer: {polls}")
        else:
            # Tags report synced before readers can fetch the update
            duration, _ = await measure_async(lambda: self._sleep(self.config.sync_delay), self._clock)
        return TimingSample(OperationKind.SYNC, self.config.sync_mode.value, duration)

    async def _download_and_verify(self, readers: Sequence[FeedReader], expected_reference: bytes,
                                   index: int) -> List[TimingSample]:
        results = await fan_out(
            measure_async(reader.download, self._clock) for reader in readers
        )

        samples = []
        for url, (duration, update) in zip(self.config.reader_urls, results):
            samples.append(TimingSample(OperationKind.DOWNLOAD, url, duration))
            verify_feed_update(update, expected_reference, index, url)
        return samples


def run_benchmark(config: BenchmarkConfig, client_factory: ClientFactory, **kwargs) -> List[IterationReport]:
    """Run a FeedBenchmark to completion on a fresh event loop."""
    benchmark = FeedBenchmark(config, client_factory, **kwargs)
    return asyncio.run(benchmark.run())
