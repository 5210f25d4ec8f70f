#!/usr/bin/env python3
"""
Feed propagation benchmark - Main Entry Point

Parses the command line, runs the benchmark with a spinner and maps every
failure category to its own exit code.
"""

import asyncio
import functools
import signal
import sys
import traceback

from feedbench.bee import BeeClient
from feedbench.benchmark import FeedBenchmark
from feedbench.cli import build_benchmark_config, load_signer, parse_arguments
from feedbench.config import EXIT_CODE, FEEDBENCH_DEBUG, SyncMode
from feedbench.errors import (
    ConfigurationError,
    FeedBenchException,
    SyncTimeoutError,
    TransportError,
    VerificationError,
)
from feedbench.fb_logging import apply_logging_options, setup_logging
from feedbench.progress import progress_context
from feedbench.reporting import format_summary, summarize

logger = setup_logging("feedbench")


def signal_handler(sig, frame):
    """Handle signals like SIGINT (Ctrl+C) and SIGTERM."""
    signal_name = signal.Signals(sig).name
    logger.warning(f"Received signal {signal_name} ({sig})")
    logger.info("Exiting due to signal")
    sys.exit(EXIT_CODE.INTERRUPTED)


def run_benchmark(args):
    """
    Run the benchmark described by the parsed args.

    Returns:
        List of iteration reports.

    Raises:
        ConfigurationError: If the arguments describe an invalid benchmark.
        TransportError, SyncTimeoutError, VerificationError: From the run itself.
    """
    config = build_benchmark_config(args)
    config.validate()

    signer = load_signer(args.signer)
    client_factory = functools.partial(
        BeeClient,
        signer=signer,
        create_tags=config.sync_mode is SyncMode.POLL,
        timeout=config.http_timeout,
    )

    logger.status(f"Writers: {', '.join(config.writer_urls)}")
    logger.status(f"Readers: {', '.join(config.reader_urls)}")
    logger.verbose(f"Updates: {config.updates}, download every {config.download_iteration}, "
                   f"sync mode: {config.sync_mode.value}")

    with progress_context("Feed updates", total=config.updates, logger=logger) as (update, set_description):
        benchmark = FeedBenchmark(
            config,
            client_factory,
            logger=logger,
            on_report=lambda report: update(),
            on_stage=set_description,
        )
        return asyncio.run(benchmark.run())


def _main_impl(argv=None):
    """
    Main implementation with error handling.

    This is the actual implementation of main(), separated out
    so that main() can wrap it with exception handling.
    """
    signal.signal(signal.SIGTERM, signal_handler)

    args = parse_arguments(argv, logger=logger)
    apply_logging_options(logger, args)

    reports = run_benchmark(args)
    logger.result(format_summary(summarize(reports)))
    return EXIT_CODE.SUCCESS


def _report(e: FeedBenchException):
    logger.error(str(e))
    if e.suggestion:
        logger.info(f"Suggestion: {e.suggestion}")


def main(argv=None):
    """
    Main entry point with comprehensive error handling.

    This function wraps _main_impl() to catch and handle all
    exceptions with user-friendly error messages.
    """
    try:
        return _main_impl(argv)

    except ConfigurationError as e:
        _report(e)
        return EXIT_CODE.CONFIG_ERROR

    except SyncTimeoutError as e:
        _report(e)
        return EXIT_CODE.SYNC_TIMEOUT

    except VerificationError as e:
        _report(e)
        return EXIT_CODE.VERIFICATION_FAILED

    except TransportError as e:
        _report(e)
        return EXIT_CODE.TRANSPORT_ERROR

    except FeedBenchException as e:
        # Catch-all for any other custom exceptions
        _report(e)
        return EXIT_CODE.FAILURE

    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        return EXIT_CODE.INTERRUPTED

    except SystemExit:
        # Re-raise SystemExit to allow clean exits
        raise

    except Exception as e:
        # Unexpected exceptions - show full traceback in debug mode
        logger.error(f"Unexpected error: {str(e)}")

        if FEEDBENCH_DEBUG:
            logger.debug("Stack trace:")
            traceback.print_exc()
        else:
            logger.info("Set FEEDBENCH_DEBUG=true for full stack trace")

        return EXIT_CODE.FAILURE


if __name__ == "__main__":
    sys.exit(main())
