import enum
import os

from dataclasses import dataclass


def check_env(setting, default_value=None):
    """
    Return the value of an environment variable, or the default when unset.

    Strings 'true'/'false' (any case) become booleans and, when the default
    is an int, numeric strings become ints.
    """
    value = os.environ.get(setting)
    if value is None:
        return default_value

    if value.lower() in ("true", "false"):
        return value.lower() == "true"

    if isinstance(default_value, int) and not isinstance(default_value, bool):
        try:
            return int(value)
        except ValueError:
            return value

    return value


def check_env_list(setting, default_value=None):
    """Comma separated environment variable as a list of non-empty strings."""
    value = os.environ.get(setting)
    if not value:
        return default_value
    return [item.strip() for item in value.split(",") if item.strip()]


FEEDBENCH_DEBUG = check_env("FEEDBENCH_DEBUG", False)

# Environment variables that take precedence over CLI values
ENV_WRITER_URLS = "BEE_API_URLS"
ENV_READER_URLS = "BEE_PEER_API_URL"
ENV_STAMPS = "BEE_STAMP"


class EXIT_CODE(enum.IntEnum):
    SUCCESS = 0
    FAILURE = 1
    INVALID_ARGUMENTS = 2
    CONFIG_ERROR = 3
    SYNC_TIMEOUT = 4
    VERIFICATION_FAILED = 5
    TRANSPORT_ERROR = 6
    INTERRUPTED = 130

    def __str__(self):
        return f"{self.name} ({self.value})"


class SyncMode(enum.Enum):
    DELAY = "delay"
    POLL = "poll"

    @classmethod
    def values(cls):
        return [mode.value for mode in cls]


class OperationKind(enum.Enum):
    UPLOAD = "upload"
    SYNC = "sync"
    DOWNLOAD = "download"


@dataclass(frozen=True)
class Identity:
    """Signing identity shared by every writer and reader of a benchmark run."""
    private_key: str
    public_key: str
    address: str


DEFAULT_IDENTITY = Identity(
    private_key="634fb5a872396d9693e5c9f9d7233cfa93f395c093371017ff44aa9ae6564cdd",
    public_key="03c32bb011339667a487b6c1c35061f15f7edc36aa9a0f8648aba07a4b8bd741b4",
    address="8d3766440f0d7b949a5e32995d09619a7f86e632",
)

FEED_TYPE = "sequence"
TOPIC_LENGTH = 32
REFERENCE_LENGTH = 32
FEED_INDEX_WIDTH = 16

# Sync detector
SYNC_POLLING_TIME = 1.0      # seconds between trials
SYNC_POLLING_TRIALS = 15     # consecutive unchanged trials before giving up
SYNC_SETTLE_TIME = 0.5       # chunk is not retrievable right after the tag reports synced

# Fixed wait used instead of the sync detector in delay mode
DEFAULT_SYNC_DELAY = 40.0

ZERO_STAMP = "0" * 64

DEFAULT_WRITER_URLS = [
    "https://bee-7.gateway.ethswarm.org",
    "https://bee-8.gateway.ethswarm.org",
    "https://bee-9.gateway.ethswarm.org",
]
DEFAULT_READER_URLS = [
    "https://bee-4.gateway.ethswarm.org",
    "https://bee-5.gateway.ethswarm.org",
    "https://bee-6.gateway.ethswarm.org",
]
DEFAULT_STAMPS = [ZERO_STAMP, ZERO_STAMP, ZERO_STAMP]
DEFAULT_UPDATES = 2
DEFAULT_TOPIC_SEED = 10
DEFAULT_DOWNLOAD_ITERATION = 1
DEFAULT_SYNC_MODE = SyncMode.DELAY

# Per request timeout handed to the HTTP client
DEFAULT_HTTP_TIMEOUT = 60.0
