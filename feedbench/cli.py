"""
CLI argument parsing for the feed propagation benchmark.

Values are resolved in this order, later sources winning:
    1. argparse defaults and command line options
    2. YAML config file given with --config-file
    3. BEE_API_URLS, BEE_PEER_API_URL and BEE_STAMP environment variables
"""

import argparse
import importlib
import inspect

import yaml

from feedbench import VERSION
from feedbench.config import (
    DEFAULT_DOWNLOAD_ITERATION,
    DEFAULT_HTTP_TIMEOUT,
    DEFAULT_IDENTITY,
    DEFAULT_READER_URLS,
    DEFAULT_STAMPS,
    DEFAULT_SYNC_DELAY,
    DEFAULT_SYNC_MODE,
    DEFAULT_TOPIC_SEED,
    DEFAULT_UPDATES,
    DEFAULT_WRITER_URLS,
    ENV_READER_URLS,
    ENV_STAMPS,
    ENV_WRITER_URLS,
    SYNC_POLLING_TIME,
    SYNC_POLLING_TRIALS,
    SYNC_SETTLE_TIME,
    SyncMode,
    check_env_list,
)
from feedbench.errors import ConfigurationError, ErrorCode
from feedbench.models import BenchmarkConfig


HELP_MESSAGES = {
    'bee_writer': "Writer Bee node URL. By default Gateway 7-9 are used.",
    'bee_reader': "Reader Bee node URL. By default Gateway 4-6 are used.",
    'stamp': "Postage Batch Stamp ID for bee-writers, one per writer. By default it is array of zeros",
    'updates': "How many updates the script will do",
    'topic_seed': "From what seed the random topic will be generated",
    'download_iteration': (
        "Attempt to download the feed from the other Bee client on every given amount of feed update"
    ),
    'sync_mode': (
        "How to wait for the update to propagate before downloading. 'delay' sleeps --sync-delay "
        "seconds, 'poll' polls the upload tags until every chunk is synced."
    ),
    'sync_delay': "Seconds to wait before downloading in 'delay' sync mode",
    'sync_polling_time': "Seconds between two tag polls in 'poll' sync mode",
    'sync_polling_trials': "Consecutive polls without progress before the sync is declared timed out",
    'sync_settle_time': "Seconds to wait after a tag reports synced",
    'signer': (
        "Feed signer used by the writers, as '<module>:<attribute>'. The attribute is a FeedSigner "
        "instance or a class constructed without arguments."
    ),
    'http_timeout': "Timeout in seconds for every HTTP request to a Bee node",
    'config_file': "Path to YAML file with argument overrides that will be applied after CLI arguments",
    'debug': "Enable debug logging",
    'verbose': "Enable verbose logging",
    'stream_log_level': "Log level for the console output",
}

PROGRAM_DESCRIPTION = "Testing Ethereum Swarm Feed lookup time"

# Arguments whose value is a list on the command line
LIST_ARGUMENTS = ('bee_writer', 'bee_reader', 'stamp')

ENV_OVERRIDES = {
    'bee_writer': ENV_WRITER_URLS,
    'bee_reader': ENV_READER_URLS,
    'stamp': ENV_STAMPS,
}


def add_benchmark_arguments(parser):
    nodes = parser.add_argument_group("Nodes")
    nodes.add_argument('--bee-writer', '-bw', nargs='+', default=list(DEFAULT_WRITER_URLS),
                       help=HELP_MESSAGES['bee_writer'])
    nodes.add_argument('--bee-reader', '-br', nargs='+', default=list(DEFAULT_READER_URLS),
                       help=HELP_MESSAGES['bee_reader'])
    nodes.add_argument('--stamp', '-st', nargs='+', default=list(DEFAULT_STAMPS), help=HELP_MESSAGES['stamp'])
    nodes.add_argument('--signer', type=str, default=None, help=HELP_MESSAGES['signer'])
    nodes.add_argument('--http-timeout', type=float, default=DEFAULT_HTTP_TIMEOUT,
                       help=HELP_MESSAGES['http_timeout'])

    feed = parser.add_argument_group("Feed")
    feed.add_argument('--updates', '-x', type=int, default=DEFAULT_UPDATES, help=HELP_MESSAGES['updates'])
    feed.add_argument('--topic-seed', '-t', type=int, default=DEFAULT_TOPIC_SEED, help=HELP_MESSAGES['topic_seed'])
    feed.add_argument('--download-iteration', '-di', type=int, default=DEFAULT_DOWNLOAD_ITERATION,
                      help=HELP_MESSAGES['download_iteration'])

    sync = parser.add_argument_group("Sync")
    sync.add_argument('--sync-mode', choices=SyncMode.values(), default=DEFAULT_SYNC_MODE.value,
                      help=HELP_MESSAGES['sync_mode'])
    sync.add_argument('--sync-delay', type=float, default=DEFAULT_SYNC_DELAY, help=HELP_MESSAGES['sync_delay'])
    sync.add_argument('--sync-polling-time', type=float, default=SYNC_POLLING_TIME,
                      help=HELP_MESSAGES['sync_polling_time'])
    sync.add_argument('--sync-polling-trials', type=int, default=SYNC_POLLING_TRIALS,
                      help=HELP_MESSAGES['sync_polling_trials'])
    sync.add_argument('--sync-settle-time', type=float, default=SYNC_SETTLE_TIME,
                      help=HELP_MESSAGES['sync_settle_time'])


def add_universal_arguments(parser):
    standard_args = parser.add_argument_group("Standard Arguments")
    standard_args.add_argument('--config-file', type=str, help=HELP_MESSAGES['config_file'])

    view_params = parser.add_argument_group("View parameters")
    view_params.add_argument('--debug', action='store_true', help=HELP_MESSAGES['debug'])
    view_params.add_argument('--verbose', action='store_true', help=HELP_MESSAGES['verbose'])
    view_params.add_argument('--stream-log-level', type=str, help=HELP_MESSAGES['stream_log_level'])


def build_parser():
    parser = argparse.ArgumentParser(prog="feedbench", description=PROGRAM_DESCRIPTION)
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    add_benchmark_arguments(parser)
    add_universal_arguments(parser)
    return parser


def parse_arguments(argv=None, logger=None):
    """Parse command-line arguments and apply config file and environment overrides.

    Returns:
        argparse.Namespace: Parsed arguments.

    Raises:
        ConfigurationError: If the config file is missing or invalid.
    """
    parsed_args = build_parser().parse_args(argv)

    if parsed_args.config_file:
        parsed_args = apply_yaml_config_overrides(parsed_args, logger=logger)

    apply_env_overrides(parsed_args)
    return parsed_args


def apply_yaml_config_overrides(args, logger=None):
    """
    Apply overrides from a YAML config file to the parsed arguments.

    Keys may use dashes or underscores. Unknown keys and null values are skipped.

    Args:
        args (argparse.Namespace): The parsed command-line arguments

    Returns:
        argparse.Namespace: The updated arguments with YAML overrides applied
    """
    warn = logger.warning if logger else print

    try:
        with open(args.config_file, 'r') as f:
            yaml_config = yaml.safe_load(f)
    except FileNotFoundError:
        raise ConfigurationError(
            f"Config file {args.config_file} not found",
            parameter="config_file",
            actual=args.config_file,
            code=ErrorCode.CONFIG_FILE_NOT_FOUND,
        )
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Error parsing YAML config file: {e}",
            parameter="config_file",
            actual=args.config_file,
            code=ErrorCode.CONFIG_PARSE_ERROR,
        ) from e

    if not yaml_config:
        warn(f"Warning: Config file {args.config_file} is empty")
        return args

    if not isinstance(yaml_config, dict):
        raise ConfigurationError(
            f"Config file {args.config_file} must contain a mapping of argument names to values",
            parameter="config_file",
            code=ErrorCode.CONFIG_PARSE_ERROR,
        )

    args_dict = vars(args)
    for raw_key, value in yaml_config.items():
        key = str(raw_key).replace('-', '_')
        if key not in args_dict:
            warn(f"Warning: Config file contains unknown parameter '{raw_key}', skipping")
            continue

        # Skip if the value is None to avoid overriding CLI args with None
        if value is None:
            continue

        if key in LIST_ARGUMENTS and not isinstance(value, list):
            value = [item.strip() for item in str(value).split(',') if item.strip()]

        args_dict[key] = value

    return argparse.Namespace(**args_dict)


def apply_env_overrides(args):
    """Environment variables win over CLI and config file values."""
    for dest, env_name in ENV_OVERRIDES.items():
        value = check_env_list(env_name)
        if value:
            setattr(args, dest, value)
    return args


def build_benchmark_config(args) -> BenchmarkConfig:
    """
    This method is an interface between the CLI and the benchmark class.
    """
    return BenchmarkConfig(
        writer_urls=list(args.bee_writer),
        stamps=list(args.stamp),
        reader_urls=list(args.bee_reader),
        updates=args.updates,
        topic_seed=args.topic_seed,
        download_iteration=args.download_iteration,
        identity=DEFAULT_IDENTITY,
        sync_mode=SyncMode(args.sync_mode),
        sync_delay=args.sync_delay,
        sync_polling_time=args.sync_polling_time,
        sync_polling_trials=args.sync_polling_trials,
        sync_settle_time=args.sync_settle_time,
        http_timeout=args.http_timeout,
    )


def load_signer(signer_path):
    """
    Resolve a '<module>:<attribute>' string to a feed signer.

    Classes are instantiated without arguments; any other object is returned as is.
    """
    if not signer_path:
        return None

    module_name, _, attribute = signer_path.partition(':')
    if not module_name or not attribute:
        raise ConfigurationError(
            f"Invalid signer '{signer_path}'",
            parameter="signer",
            expected="<module>:<attribute>",
            actual=signer_path,
            code=ErrorCode.CONFIG_MISSING_SIGNER,
        )

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigurationError(
            f"Cannot import signer module '{module_name}': {e}",
            parameter="signer",
            actual=signer_path,
            code=ErrorCode.CONFIG_MISSING_SIGNER,
        ) from e

    try:
        signer = getattr(module, attribute)
    except AttributeError as e:
        raise ConfigurationError(
            f"Module '{module_name}' has no attribute '{attribute}'",
            parameter="signer",
            actual=signer_path,
            code=ErrorCode.CONFIG_MISSING_SIGNER,
        ) from e

    if inspect.isclass(signer):
        signer = signer()
    return signer
