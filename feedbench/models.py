"""
Data classes describing benchmark configuration and per-iteration results.

Results are held in memory for the lifetime of the process only.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from feedbench.config import (
    DEFAULT_DOWNLOAD_ITERATION,
    DEFAULT_HTTP_TIMEOUT,
    DEFAULT_IDENTITY,
    DEFAULT_SYNC_DELAY,
    DEFAULT_SYNC_MODE,
    DEFAULT_TOPIC_SEED,
    DEFAULT_UPDATES,
    FEED_TYPE,
    SYNC_POLLING_TIME,
    SYNC_POLLING_TRIALS,
    SYNC_SETTLE_TIME,
    TOPIC_LENGTH,
    Identity,
    OperationKind,
    SyncMode,
)
from feedbench.errors import ConfigurationError, ErrorCode


@dataclass
class BenchmarkConfig:
    """
    Everything needed to run one benchmark.

    Attributes:
        writer_urls: Nodes every update is uploaded to.
        stamps: One postage batch ID per writer URL, in the same order.
        reader_urls: Nodes the feed is downloaded from.
        updates: Number of feed updates to publish.
        topic_seed: Seed of the pseudo-random feed topic.
        download_iteration: Wait and download on every n-th update.
        identity: Signing identity shared by writers and readers.
        feed_type: Feed kind understood by the storage client.
        sync_mode: Fixed delay or replication polling before downloads.
        sync_delay: Seconds to wait in delay mode.
        sync_polling_time: Seconds between replication polls in poll mode.
        sync_polling_trials: Consecutive unchanged polls before giving up.
        sync_settle_time: Seconds to wait after an upload reports synced.
        http_timeout: Per request timeout handed to the storage client.
        topic_length: Topic size in bytes.
    """
    writer_urls: List[str]
    stamps: List[str]
    reader_urls: List[str]
    updates: int = DEFAULT_UPDATES
    topic_seed: int = DEFAULT_TOPIC_SEED
    download_iteration: int = DEFAULT_DOWNLOAD_ITERATION
    identity: Identity = DEFAULT_IDENTITY
    feed_type: str = FEED_TYPE
    sync_mode: SyncMode = DEFAULT_SYNC_MODE
    sync_delay: float = DEFAULT_SYNC_DELAY
    sync_polling_time: float = SYNC_POLLING_TIME
    sync_polling_trials: int = SYNC_POLLING_TRIALS
    sync_settle_time: float = SYNC_SETTLE_TIME
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    topic_length: int = TOPIC_LENGTH

    def validate(self) -> None:
        """Raise ConfigurationError for any inconsistent setting."""
        if self.download_iteration > self.updates:
            raise ConfigurationError(
                f"Download iteration {self.download_iteration} is higher than the feed update count: {self.updates}",
                parameter="download_iteration",
                expected=f"<= {self.updates}",
                actual=self.download_iteration,
                suggestion="Lower --download-iteration or raise --updates",
            )
        if self.download_iteration < 1:
            raise ConfigurationError(
                f"Download iteration must be at least 1, got {self.download_iteration}",
                parameter="download_iteration",
                expected=">= 1",
                actual=self.download_iteration,
            )
        if len(self.stamps) != len(self.writer_urls):
            raise ConfigurationError(
                f"Got different amount of bee writer {len(self.writer_urls)} than stamps {len(self.stamps)}",
                parameter="stamp",
                expected=len(self.writer_urls),
                actual=len(self.stamps),
                code=ErrorCode.CONFIG_COUNT_MISMATCH,
            )
        if not self.writer_urls:
            raise ConfigurationError("At least one writer URL is required", parameter="bee_writer")
        if not self.reader_urls:
            raise ConfigurationError("At least one reader URL is required", parameter="bee_reader")
        if self.sync_polling_trials < 1:
            raise ConfigurationError(
                f"Sync polling trials must be at least 1, got {self.sync_polling_trials}",
                parameter="sync_polling_trials",
                expected=">= 1",
                actual=self.sync_polling_trials,
            )
        for name, label in (("sync_delay", "Sync delay"), ("sync_polling_time", "Sync polling time"),
                            ("sync_settle_time", "Sync settle time")):
            value = getattr(self, name)
            if value < 0:
                raise ConfigurationError(
                    f"{label} must not be negative, got {value}",
                    parameter=name,
                    expected=">= 0",
                    actual=value,
                )
        if self.http_timeout <= 0:
            raise ConfigurationError(
                f"HTTP timeout must be positive, got {self.http_timeout}",
                parameter="http_timeout",
                expected="> 0",
                actual=self.http_timeout,
            )


@dataclass(frozen=True)
class TimingSample:
    """Wall-clock duration of one awaited network call or wait."""
    kind: OperationKind
    endpoint: str
    duration: float


@dataclass
class IterationReport:
    """
    Timings collected for one feed update.

    ``sync`` and ``downloads`` are only filled on iterations selected by the
    download stride; those iterations were also verified.
    """
    index: int
    reference: str
    uploads: List[TimingSample] = field(default_factory=list)
    sync: Optional[TimingSample] = None
    downloads: List[TimingSample] = field(default_factory=list)

    @property
    def verified(self) -> bool:
        return self.sync is not None

    @property
    def samples(self) -> List[TimingSample]:
        samples = list(self.uploads)
        if self.sync is not None:
            samples.append(self.sync)
        samples.extend(self.downloads)
        return samples
