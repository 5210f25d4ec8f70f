"""
Storage client interface definitions for feedbench.

The benchmark never talks to the storage network directly. It drives these
abstract handles, which an adapter (see ``feedbench.bee``) or a test double
implements. Feed signing, chunk encoding and replication all live behind
this boundary.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from feedbench.config import Identity


@dataclass(frozen=True)
class UploadHandle:
    """What a writer returns for one feed update upload.

    Attributes:
        reference: Address of the uploaded update chunk (hex).
        tag_uid: Tag tracking the upload's replication, if one was created.
        endpoint: URL of the node the update was uploaded to.
    """
    reference: str
    tag_uid: Optional[int] = None
    endpoint: str = ""


@dataclass(frozen=True)
class FeedUpdate:
    """Latest feed update as seen by a reader.

    Attributes:
        index: Canonical 16 character hex index of the update.
        reference: Hex encoded reference the update points to.
    """
    index: str
    reference: str


@dataclass(frozen=True)
class ReplicationStatus:
    """How far an upload has propagated among network peers."""
    replicated: int
    total: int

    @property
    def synced(self) -> bool:
        return self.replicated >= self.total


class FeedWriter(ABC):
    """Writes successive updates of one feed to one node."""

    @abstractmethod
    async def upload(self, stamp: str, reference: bytes) -> UploadHandle:
        """Publish ``reference`` as the next update of the feed.

        Args:
            stamp: Postage batch ID authorizing the write.
            reference: 32 byte reference the update points to.

        Returns:
            UploadHandle usable with ``StorageClient.retrieve_replication_status``.

        Raises:
            TransportError: If the node rejects or cannot receive the upload.
        """
        pass


class FeedReader(ABC):
    """Reads the latest update of one feed from one node."""

    @abstractmethod
    async def download(self) -> FeedUpdate:
        """Fetch the latest update.

        Raises:
            TransportError: If the lookup fails at the network layer.
        """
        pass


class StorageClient(ABC):
    """Connection to a single storage node."""

    url: str = ""

    @abstractmethod
    def make_feed_writer(self, feed_type: str, topic: bytes, identity: Identity) -> FeedWriter:
        """Create a writer for the feed identified by ``topic`` and ``identity``."""
        pass

    @abstractmethod
    def make_feed_reader(self, feed_type: str, topic: bytes, address: str) -> FeedReader:
        """Create a reader for the feed identified by ``topic`` and owner ``address``."""
        pass

    @abstractmethod
    async def retrieve_replication_status(self, handle: UploadHandle) -> ReplicationStatus:
        """Return the current replication status of an upload."""
        pass

    async def close(self) -> None:
        """Release any connection resources held by the client."""
        return None
