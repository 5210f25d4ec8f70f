"""
Tests for the FeedBenchmark orchestrator in feedbench.benchmark.

Tests cover:
- Fan-out uploads, wait, fan-out downloads and verification per iteration
- Download stride handling
- Configuration errors raised before any network activity
- Failures aborting the run
- Replication polling sync mode
"""

import asyncio
from dataclasses import replace

import pytest

from feedbench.benchmark import FeedBenchmark, run_benchmark
from feedbench.config import DEFAULT_IDENTITY, OperationKind, SyncMode
from feedbench.errors import ConfigurationError, ErrorCode, SyncTimeoutError, TransportError, VerificationError
from feedbench.interfaces import FeedUpdate, ReplicationStatus
from feedbench.utils import feed_index_string, random_byte_array


def reference_hex(value: int) -> str:
    return value.to_bytes(32, "big").hex()


def make_benchmark(config, fake_network, fake_sleep, fake_clock, mock_logger, **kwargs):
    return FeedBenchmark(config, fake_network.client, logger=mock_logger,
                         sleep=fake_sleep, clock=fake_clock, **kwargs)


class TestEndToEnd:
    """Two writers, one reader, three updates, download every update."""

    @pytest.fixture
    def reports(self, base_config, fake_network, fake_sleep, fake_clock, mock_logger):
        benchmark = make_benchmark(base_config, fake_network, fake_sleep, fake_clock, mock_logger)
        return asyncio.run(benchmark.run())

    def test_three_iterations(self, reports):
        assert [report.index for report in reports] == [0, 1, 2]

    def test_two_uploads_per_iteration(self, reports, fake_network):
        assert len(fake_network.events_of("upload")) == 6
        assert all(len(report.uploads) == 2 for report in reports)

    def test_one_wait_per_iteration(self, reports, fake_sleep):
        assert fake_sleep.delays == [40.0, 40.0, 40.0]

    def test_one_download_per_iteration(self, reports, fake_network):
        assert len(fake_network.events_of("download")) == 3
        assert all(len(report.downloads) == 1 for report in reports)

    def test_reference_values_at_verification(self, reports):
        assert [report.reference for report in reports] == [reference_hex(0), reference_hex(1), reference_hex(2)]
        assert all(report.verified for report in reports)

    def test_uploads_pair_stamps_with_writers(self, reports, fake_network, base_config):
        uploads = fake_network.events_of("upload")
        assert uploads[0] == ("upload", "http://writer-1", "a" * 64, reference_hex(0))
        assert uploads[1] == ("upload", "http://writer-2", "b" * 64, reference_hex(0))
        assert uploads[4][3] == reference_hex(2)

    def test_event_order(self, reports, fake_network):
        kinds = [event[0] for event in fake_network.events if event[0] != "close"]
        assert kinds == ["upload", "upload", "sleep", "download"] * 3

    def test_timing_samples(self, reports, base_config):
        report = reports[0]
        assert [s.endpoint for s in report.uploads] == base_config.writer_urls
        assert all(s.kind is OperationKind.UPLOAD for s in report.uploads)
        assert report.sync.kind is OperationKind.SYNC
        assert report.sync.endpoint == "delay"
        assert report.sync.duration == pytest.approx(40.0)
        assert report.downloads[0].kind is OperationKind.DOWNLOAD
        assert report.downloads[0].endpoint == "http://reader-1"
        assert report.downloads[0].duration == pytest.approx(0.0)

    def test_feed_addressed_by_seeded_topic(self, reports, fake_network):
        key = (random_byte_array(32, 10).hex(), DEFAULT_IDENTITY.address)
        assert list(fake_network.feeds) == [key]
        assert fake_network.feeds[key] == {0: reference_hex(0), 1: reference_hex(1), 2: reference_hex(2)}

    def test_clients_closed(self, reports, fake_network):
        assert all(client.closed for client in fake_network.clients.values())
        assert len(fake_network.events_of("close")) == 3

    def test_result_logged_per_iteration(self, reports, mock_logger):
        assert mock_logger.result.call_count == 3
        first = mock_logger.result.call_args_list[0].args[0]
        assert "Feed update 0 fetch was successful" in first
        assert 'Upload Time on "http://writer-1"' in first
        assert "Syncing time: 40.000s" in first
        assert 'Fetch Time on "http://reader-1"' in first


class TestDownloadStride:
    """Only every n-th iteration waits, downloads and verifies."""

    def test_stride_two(self, base_config, fake_network, fake_sleep, fake_clock, mock_logger):
        config = replace(base_config, updates=4, download_iteration=2)
        reports = asyncio.run(make_benchmark(config, fake_network, fake_sleep, fake_clock, mock_logger).run())

        assert [report.verified for report in reports] == [False, True, False, True]
        assert len(fake_network.events_of("download")) == 2
        assert fake_sleep.delays == [40.0, 40.0]

    def test_stride_equal_to_updates(self, base_config, fake_network, fake_sleep, fake_clock, mock_logger):
        config = replace(base_config, updates=3, download_iteration=3)
        reports = asyncio.run(make_benchmark(config, fake_network, fake_sleep, fake_clock, mock_logger).run())

        assert [report.verified for report in reports] == [False, False, True]
        assert reports[2].reference == reference_hex(2)

    def test_reference_increments_on_upload_only_iterations(self, base_config, fake_network, fake_sleep,
                                                            fake_clock, mock_logger):
        config = replace(base_config, updates=4, download_iteration=4)
        reports = asyncio.run(make_benchmark(config, fake_network, fake_sleep, fake_clock, mock_logger).run())

        assert [report.reference for report in reports] == [reference_hex(i) for i in range(4)]

    def test_upload_only_report_has_no_sync(self, base_config, fake_network, fake_sleep, fake_clock, mock_logger):
        config = replace(base_config, updates=2, download_iteration=2)
        reports = asyncio.run(make_benchmark(config, fake_network, fake_sleep, fake_clock, mock_logger).run())

        assert reports[0].sync is None
        assert reports[0].downloads == []
        assert "upload was successful" in mock_logger.result.call_args_list[0].args[0]


class TestConfigurationErrors:
    """Invalid configurations abort before any client is created."""

    def test_stamp_count_mismatch(self, base_config, fake_network, fake_sleep, fake_clock, mock_logger):
        config = replace(base_config, stamps=["a" * 64])
        benchmark = make_benchmark(config, fake_network, fake_sleep, fake_clock, mock_logger)

        with pytest.raises(ConfigurationError) as exc_info:
            asyncio.run(benchmark.run())

        assert exc_info.value.code == ErrorCode.CONFIG_COUNT_MISMATCH
        assert fake_network.clients == {}
        assert fake_network.events == []

    def test_stride_above_updates(self, base_config, fake_network, fake_sleep, fake_clock, mock_logger):
        config = replace(base_config, updates=2, download_iteration=5)
        benchmark = make_benchmark(config, fake_network, fake_sleep, fake_clock, mock_logger)

        with pytest.raises(ConfigurationError, match="Download iteration 5 is higher"):
            asyncio.run(benchmark.run())

        assert fake_network.clients == {}
        assert fake_network.events == []

    def test_zero_stride(self, base_config, fake_network, fake_sleep, fake_clock, mock_logger):
        config = replace(base_config, download_iteration=0)

        with pytest.raises(ConfigurationError):
            asyncio.run(make_benchmark(config, fake_network, fake_sleep, fake_clock, mock_logger).run())

        assert fake_network.events == []

    @pytest.mark.parametrize("trials", [0, -1])
    def test_polling_trials_below_one(self, base_config, fake_network, fake_sleep, fake_clock, mock_logger, trials):
        config = replace(base_config, sync_mode=SyncMode.POLL, sync_polling_trials=trials)

        with pytest.raises(ConfigurationError) as exc_info:
            asyncio.run(make_benchmark(config, fake_network, fake_sleep, fake_clock, mock_logger).run())

        assert exc_info.value.context["parameter"] == "sync_polling_trials"
        assert fake_network.clients == {}
        assert fake_network.events == []

    @pytest.mark.parametrize("setting", ["sync_delay", "sync_polling_time", "sync_settle_time"])
    def test_negative_sync_time(self, base_config, fake_network, fake_sleep, fake_clock, mock_logger, setting):
        config = replace(base_config, **{setting: -0.5})

        with pytest.raises(ConfigurationError, match="must not be negative") as exc_info:
            asyncio.run(make_benchmark(config, fake_network, fake_sleep, fake_clock, mock_logger).run())

        assert exc_info.value.context["parameter"] == setting
        assert fake_network.events == []

    def test_non_positive_http_timeout(self, base_config, fake_network, fake_sleep, fake_clock, mock_logger):
        config = replace(base_config, http_timeout=0)

        with pytest.raises(ConfigurationError, match="HTTP timeout"):
            asyncio.run(make_benchmark(config, fake_network, fake_sleep, fake_clock, mock_logger).run())

        assert fake_network.clients == {}


class TestFailures:
    """Any failure aborts the run without retries."""

    def test_upload_failure_aborts(self, base_config, fake_network, fake_sleep, fake_clock, mock_logger):
        fake_network.upload_errors["http://writer-2"] = TransportError("upload failed", endpoint="http://writer-2")
        benchmark = make_benchmark(base_config, fake_network, fake_sleep, fake_clock, mock_logger)

        with pytest.raises(TransportError):
            asyncio.run(benchmark.run())

        assert fake_network.events_of("download") == []
        assert fake_sleep.delays == []
        assert benchmark.reports == []

    def test_download_failure_aborts(self, base_config, fake_network, fake_sleep, fake_clock, mock_logger):
        fake_network.download_errors["http://reader-1"] = TransportError("download failed")
        benchmark = make_benchmark(base_config, fake_network, fake_sleep, fake_clock, mock_logger)

        with pytest.raises(TransportError):
            asyncio.run(benchmark.run())

        assert len(fake_network.events_of("upload")) == 2

    def test_verification_failure_keeps_earlier_reports(self, base_config, fake_network, fake_sleep,
                                                        fake_clock, mock_logger):
        def corrupt_third(update):
            if update.index == feed_index_string(2):
                return FeedUpdate(index=update.index, reference="ff" * 32)
            return update

        fake_network.tamper["http://reader-1"] = corrupt_third
        seen = []
        benchmark = make_benchmark(base_config, fake_network, fake_sleep, fake_clock, mock_logger,
                                   on_report=seen.append)

        with pytest.raises(VerificationError) as exc_info:
            asyncio.run(benchmark.run())

        assert exc_info.value.url == "http://reader-1"
        assert exc_info.value.expected_reference == reference_hex(2)
        assert [report.index for report in seen] == [0, 1]
        assert [report.index for report in benchmark.reports] == [0, 1]

    def test_stale_index_fails_verification(self, base_config, fake_network, fake_sleep, fake_clock, mock_logger):
        fake_network.tamper["http://reader-1"] = lambda update: FeedUpdate("0000000000000000", update.reference)
        benchmark = make_benchmark(base_config, fake_network, fake_sleep, fake_clock, mock_logger)

        with pytest.raises(VerificationError) as exc_info:
            asyncio.run(benchmark.run())

        assert exc_info.value.expected_index == "0000000000000001"

    def test_clients_closed_after_failure(self, base_config, fake_network, fake_sleep, fake_clock, mock_logger):
        fake_network.download_errors["http://reader-1"] = TransportError("download failed")

        with pytest.raises(TransportError):
            asyncio.run(make_benchmark(base_config, fake_network, fake_sleep, fake_clock, mock_logger).run())

        assert all(client.closed for client in fake_network.clients.values())

    def test_client_factory_failure_closes_built_clients(self, base_config, fake_network, fake_sleep,
                                                         fake_clock, mock_logger):
        def factory(url):
            if url == "http://reader-1":
                raise ConfigurationError(f"Invalid Bee node URL '{url}'", parameter="url")
            return fake_network.client(url)

        benchmark = FeedBenchmark(base_config, factory, logger=mock_logger, sleep=fake_sleep, clock=fake_clock)

        with pytest.raises(ConfigurationError, match="Invalid Bee node URL"):
            asyncio.run(benchmark.run())

        assert set(fake_network.clients) == {"http://writer-1", "http://writer-2"}
        assert all(client.closed for client in fake_network.clients.values())
        assert fake_network.events_of("upload") == []

    def test_verifies_against_each_reader_url(self, base_config, fake_network, fake_sleep, fake_clock, mock_logger):
        config = replace(base_config, reader_urls=["http://reader-1", "http://reader-2"])
        fake_network.tamper["http://reader-2"] = lambda update: FeedUpdate(update.index, "00" * 32)

        with pytest.raises(VerificationError) as exc_info:
            asyncio.run(make_benchmark(config, fake_network, fake_sleep, fake_clock, mock_logger).run())

        # Iteration 0 writes the zero reference, so the first mismatch is at index 1
        assert exc_info.value.url == "http://reader-2"
        assert exc_info.value.expected_index == "0000000000000001"


class TestPollSyncMode:
    """Sync detector replaces the fixed delay."""

    @pytest.fixture
    def poll_config(self, base_config):
        return replace(base_config, sync_mode=SyncMode.POLL)

    def test_polls_every_writer(self, poll_config, fake_network, fake_sleep, fake_clock, mock_logger):
        reports = asyncio.run(make_benchmark(poll_config, fake_network, fake_sleep, fake_clock, mock_logger).run())

        statuses = fake_network.events_of("status")
        assert len(statuses) == 6
        assert {event[1] for event in statuses} == {"http://writer-1", "http://writer-2"}
        assert [event[2] for event in statuses[:2]] == [0, 0]
        assert reports[0].sync.endpoint == "poll"
        assert 40.0 not in fake_sleep.delays

    def test_settle_delay_applied(self, poll_config, fake_network, fake_sleep, fake_clock, mock_logger):
        config = replace(poll_config, updates=1)
        asyncio.run(make_benchmark(config, fake_network, fake_sleep, fake_clock, mock_logger).run())

        assert fake_sleep.delays == [0.5, 0.5]

    def test_sync_settings_forwarded(self, poll_config, fake_network, fake_sleep, fake_clock, mock_logger):
        fake_network.statuses["http://writer-1"] = [ReplicationStatus(0, 4), ReplicationStatus(4, 4)]
        config = replace(poll_config, updates=1, sync_polling_time=0.1, sync_settle_time=0.2)
        benchmark = make_benchmark(config, fake_network, fake_sleep, fake_clock, mock_logger)

        asyncio.run(benchmark.run())

        assert sorted(fake_sleep.delays) == [0.1, 0.2, 0.2]

    def test_sync_timeout_aborts(self, poll_config, fake_network, fake_sleep, fake_clock, mock_logger):
        fake_network.statuses["http://writer-2"] = [ReplicationStatus(0, 3)]
        benchmark = make_benchmark(poll_config, fake_network, fake_sleep, fake_clock, mock_logger)

        with pytest.raises(SyncTimeoutError):
            asyncio.run(benchmark.run())

        assert fake_network.events_of("download") == []
        assert benchmark.reports == []


class TestCallbacks:

    def test_stage_texts(self, base_config, fake_network, fake_sleep, fake_clock, mock_logger):
        stages = []
        config = replace(base_config, updates=1)
        benchmark = make_benchmark(config, fake_network, fake_sleep, fake_clock, mock_logger,
                                   on_stage=stages.append)

        asyncio.run(benchmark.run())

        assert stages == [
            "Upload feed for index 0",
            "Wait for feed update sync at index 0",
            "Download feed for index 0",
        ]

    def test_on_report_called_per_iteration(self, base_config, fake_network, fake_sleep, fake_clock, mock_logger):
        seen = []
        benchmark = make_benchmark(base_config, fake_network, fake_sleep, fake_clock, mock_logger,
                                   on_report=seen.append)

        reports = asyncio.run(benchmark.run())

        assert seen == reports

    def test_topic_logged(self, base_config, fake_network, fake_sleep, fake_clock, mock_logger):
        asyncio.run(make_benchmark(base_config, fake_network, fake_sleep, fake_clock, mock_logger).run())

        mock_logger.status.assert_any_call(f"Feed topic: {random_byte_array(32, 10).hex()}")


class TestRunBenchmark:

    def test_sync_wrapper(self, base_config, fake_network, fake_sleep, fake_clock, mock_logger):
        reports = run_benchmark(base_config, fake_network.client, logger=mock_logger,
                                sleep=fake_sleep, clock=fake_clock)

        assert len(reports) == 3


class TestLogging:
    """Messages reach the logger at the custom levels."""

    def run(self, config, fake_network, fake_sleep, fake_clock, logger):
        benchmark = FeedBenchmark(config, fake_network.client, logger=logger, sleep=fake_sleep, clock=fake_clock)
        return asyncio.run(benchmark.run())

    def test_levels(self, base_config, fake_network, fake_sleep, fake_clock, capturing_logger):
        self.run(base_config, fake_network, fake_sleep, fake_clock, capturing_logger)

        capturing_logger.assert_logged('status', f"Feed owner: {DEFAULT_IDENTITY.address}")
        capturing_logger.assert_logged('verbose', "Upload feed for index 2")
        capturing_logger.assert_logged('result', "Feed update 2 fetch was successful")
        assert capturing_logger.call_count['result'] == 3
        assert capturing_logger.call_count['error'] == 0

    def test_poll_counts_logged(self, base_config, fake_network, fake_sleep, fake_clock, capturing_logger):
        config = replace(base_config, sync_mode=SyncMode.POLL, updates=1)

        self.run(config, fake_network, fake_sleep, fake_clock, capturing_logger)

        capturing_logger.assert_logged('verbose', "Sync polls per writer: [1, 1]")
        assert capturing_logger.call_count['verboser'] == 2
