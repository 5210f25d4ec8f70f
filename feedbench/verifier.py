"""Correctness check for downloaded feed updates."""

from feedbench.errors import VerificationError
from feedbench.interfaces import FeedUpdate
from feedbench.utils import feed_index_string


def verify_feed_update(update: FeedUpdate, expected_reference: bytes,
                       expected_index: int, url: str) -> None:
    """Check that a reader returned exactly the update the writers published.

    Both the index and the reference are compared as lowercase hex strings.

    Args:
        update: Result of ``FeedReader.download()``.
        expected_reference: Reference written in this iteration, before increment.
        expected_index: Zero-based iteration index.
        url: Reader endpoint the update came from.

    Raises:
        VerificationError: If the index or the reference differs.
    """
    expected_index_str = feed_index_string(expected_index)
    expected_reference_hex = bytes(expected_reference).hex()

    if update.index != expected_index_str or update.reference != expected_reference_hex:
        raise VerificationError(
            url=url,
            expected_index=expected_index_str,
            actual_index=update.index,
            expected_reference=expected_reference_hex,
            actual_reference=update.reference,
        )
