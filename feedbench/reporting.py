"""
Human-readable rendering of benchmark timings.

Provides the per-iteration report lines and an end-of-run summary. There is
no machine-readable output and nothing is written to disk.
"""

import statistics
from dataclasses import dataclass
from typing import Dict, List

from feedbench.config import OperationKind
from feedbench.models import IterationReport, TimingSample


@dataclass(frozen=True)
class TimingSummary:
    count: int
    minimum: float
    mean: float
    maximum: float


def _seconds(duration: float) -> str:
    return f"{duration:.3f}s"


def format_writer_results(samples: List[TimingSample]) -> str:
    return "".join(f'\n\tUpload Time on "{sample.endpoint}": {_seconds(sample.duration)}' for sample in samples)


def format_reader_results(samples: List[TimingSample]) -> str:
    return "".join(f'\n\tFetch Time on "{sample.endpoint}": {_seconds(sample.duration)}' for sample in samples)


def format_iteration_report(report: IterationReport) -> str:
    """Render one iteration as a title line followed by one line per timing."""
    if report.verified:
        title = f"Feed update {report.index} fetch was successful"
    else:
        title = f"Feed update {report.index} upload was successful"

    result = title + format_writer_results(report.uploads)
    if report.sync is not None:
        result += f"\n\tSyncing time: {_seconds(report.sync.duration)}"
    result += format_reader_results(report.downloads)
    return result


def summarize(reports: List[IterationReport]) -> Dict[OperationKind, TimingSummary]:
    """Aggregate the durations of every sample by operation kind.

    Kinds without any sample are left out.
    """
    durations: Dict[OperationKind, List[float]] = {}
    for report in reports:
        for sample in report.samples:
            durations.setdefault(sample.kind, []).append(sample.duration)

    return {
        kind: TimingSummary(
            count=len(values),
            minimum=min(values),
            mean=statistics.fmean(values),
            maximum=max(values),
        )
        for kind, values in durations.items()
    }


def format_summary(summary: Dict[OperationKind, TimingSummary]) -> str:
    lines = ["Summary:"]
    for kind in OperationKind:
        if kind not in summary:
            continue
        entry = summary[kind]
        lines.append(
            f"\t{kind.value:<8} count: {entry.count:<4} min: {_seconds(entry.minimum)} "
            f"mean: {_seconds(entry.mean)} max: {_seconds(entry.maximum)}"
        )
    return "\n".join(lines)
