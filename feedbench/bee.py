"""
Bee HTTP API adapter for the storage client interfaces.

Implements StorageClient, FeedWriter and FeedReader on top of
``httpx.AsyncClient``. Signing single-owner chunks is not done here: writers
need a FeedSigner that turns (identity, topic, index, reference) into a
signed chunk, which is then posted to the node as is.

Endpoints used:
    GET  /feeds/{owner}/{topic}?type=sequence   latest update (reader, next index lookup)
    POST /tags                                  create a tag to track an upload
    GET  /tags/{uid}                            replication status of a tag
    POST /soc/{owner}/{identifier}?sig=...      upload the signed feed update chunk
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import httpx

from feedbench.config import DEFAULT_HTTP_TIMEOUT, Identity
from feedbench.errors import ConfigurationError, ErrorCode, TransportError
from feedbench.interfaces import (
    FeedReader,
    FeedUpdate,
    FeedWriter,
    ReplicationStatus,
    StorageClient,
    UploadHandle,
)

FEED_INDEX_HEADER = "swarm-feed-index"
FEED_INDEX_NEXT_HEADER = "swarm-feed-index-next"
POSTAGE_BATCH_HEADER = "swarm-postage-batch-id"
TAG_HEADER = "swarm-tag"


@dataclass(frozen=True)
class SignedChunk:
    """A single-owner chunk ready for ``POST /soc``.

    Attributes:
        owner: Hex address of the signing identity.
        identifier: Hex identifier derived from topic and index.
        signature: Hex signature over identifier and chunk address.
        data: Span followed by the payload of the wrapped content chunk.
    """
    owner: str
    identifier: str
    signature: str
    data: bytes


class FeedSigner(ABC):
    """Produces the signed chunk for one feed update."""

    @abstractmethod
    def sign_update(self, identity: Identity, topic: bytes, index: int, reference: bytes) -> SignedChunk:
        pass


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return response.text[:200]


class BeeClient(StorageClient):
    """Connection to one Bee node.

    Args:
        url: Base URL of the node API.
        signer: Needed only to create feed writers.
        create_tags: Track every upload with a new tag so its replication
            status can be polled.
        timeout: Per request timeout in seconds.
        transport: Optional httpx transport, mainly for tests.
    """

    def __init__(self, url: str, signer: Optional[FeedSigner] = None, create_tags: bool = False,
                 timeout: float = DEFAULT_HTTP_TIMEOUT,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.url = url.rstrip("/")
        self.signer = signer
        self.create_tags = create_tags
        try:
            self._client = httpx.AsyncClient(base_url=self.url, timeout=timeout, transport=transport)
        except httpx.InvalidURL as e:
            raise ConfigurationError(
                f"Invalid Bee node URL '{url}': {e}",
                parameter="url",
                actual=url,
            ) from e

    async def request(self, method: str, path: str, operation: str, code: ErrorCode,
                      ok_statuses=(), **kwargs) -> httpx.Response:
        """Send a request, turning every failure into a TransportError.

        Responses whose status is listed in ``ok_statuses`` are returned even
        when they are HTTP errors.
        """
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise TransportError(
                f'{operation} failed on Bee node "{self.url}"',
                endpoint=self.url,
                operation=operation,
                cause=str(e) or type(e).__name__,
                code=code,
            ) from e

        if response.is_error and response.status_code not in ok_statuses:
            raise TransportError(
                f'{operation} failed on Bee node "{self.url}"',
                endpoint=self.url,
                operation=operation,
                status_code=response.status_code,
                cause=_error_message(response),
                code=code,
            )
        return response

    def make_feed_writer(self, feed_type: str, topic: bytes, identity: Identity) -> FeedWriter:
        if self.signer is None:
            raise ConfigurationError(
                f'No feed signer configured for writer node "{self.url}"',
                parameter="signer",
                code=ErrorCode.CONFIG_MISSING_SIGNER,
            )
        return BeeFeedWriter(self, feed_type, topic, identity)

    def make_feed_reader(self, feed_type: str, topic: bytes, address: str) -> FeedReader:
        return BeeFeedReader(self, feed_type, topic, address)

    async def create_tag(self) -> int:
        response = await self.request("POST", "/tags", "Tag creation", ErrorCode.TRANSPORT_UPLOAD_FAILED)
        return int(response.json()["uid"])

    async def retrieve_replication_status(self, handle: UploadHandle) -> ReplicationStatus:
        if handle.tag_uid is None:
            raise ConfigurationError(
                f'Upload to "{handle.endpoint or self.url}" is not tracked by a tag',
                parameter="sync_mode",
                suggestion="Create the writer client with create_tags=True to poll replication",
            )
        response = await self.request("GET", f"/tags/{handle.tag_uid}", "Tag retrieval",
                                      ErrorCode.TRANSPORT_STATUS_FAILED)
        tag = response.json()
        total = tag.get("total") or tag.get("split", 0)
        return ReplicationStatus(replicated=int(tag.get("synced", 0)), total=int(total))

    async def close(self) -> None:
        await self._client.aclose()


class _BeeFeed:
    def __init__(self, client: BeeClient, feed_type: str, topic: bytes, owner: str):
        self.client = client
        self.feed_type = feed_type
        self.topic = bytes(topic)
        self.owner = owner.lower().removeprefix("0x")

    @property
    def path(self) -> str:
        return f"/feeds/{self.owner}/{self.topic.hex()}"


class BeeFeedReader(_BeeFeed, FeedReader):

    async def download(self) -> FeedUpdate:
        response = await self.client.request("GET", self.path, "Feed download",
                                             ErrorCode.TRANSPORT_DOWNLOAD_FAILED,
                                             params={"type": self.feed_type})
        return FeedUpdate(
            index=response.headers.get(FEED_INDEX_HEADER, ""),
            reference=response.json()["reference"],
        )


class BeeFeedWriter(_BeeFeed, FeedWriter):

    def __init__(self, client: BeeClient, feed_type: str, topic: bytes, identity: Identity):
        super().__init__(client, feed_type, topic, identity.address)
        self.identity = identity

    async def next_index(self) -> int:
        """Index the next update has to be written at; 0 for a feed without updates."""
        response = await self.client.request("GET", self.path, "Feed index lookup",
                                             ErrorCode.TRANSPORT_UPLOAD_FAILED,
                                             ok_statuses=(404,),
                                             params={"type": self.feed_type})
        if response.status_code == 404:
            return 0
        next_index = response.headers.get(FEED_INDEX_NEXT_HEADER)
        if next_index:
            return int(next_index, 16)
        return int(response.headers[FEED_INDEX_HEADER], 16) + 1

    async def upload(self, stamp: str, reference: bytes) -> UploadHandle:
        index = await self.next_index()
        chunk = self.client.signer.sign_update(self.identity, self.topic, index, bytes(reference))

        headers = {
            POSTAGE_BATCH_HEADER: stamp,
            "content-type": "application/octet-stream",
        }
        tag_uid = None
        if self.client.create_tags:
            tag_uid = await self.client.create_tag()
            headers[TAG_HEADER] = str(tag_uid)

        response = await self.client.request("POST", f"/soc/{chunk.owner}/{chunk.identifier}", "Feed upload",
                                             ErrorCode.TRANSPORT_UPLOAD_FAILED,
                                             params={"sig": chunk.signature},
                                             content=chunk.data,
                                             headers=headers)
        return UploadHandle(reference=response.json()["reference"], tag_uid=tag_uid, endpoint=self.client.url)
