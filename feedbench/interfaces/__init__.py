"""
Interface definitions for feedbench.

This package defines the abstract interfaces (contracts) between the
benchmark core and the storage network. Using interfaces enables:

- **Testability**: The network can be replaced by a scripted fake
- **Extensibility**: Other node APIs can be plugged in without touching the core

Available Interfaces:
    - StorageClient: Connection to one node, factory for feed handles
    - FeedWriter: Uploads feed updates
    - FeedReader: Downloads the latest feed update
    - UploadHandle, FeedUpdate, ReplicationStatus: Value types
"""

from feedbench.interfaces.client import (
    StorageClient,
    FeedWriter,
    FeedReader,
    UploadHandle,
    FeedUpdate,
    ReplicationStatus,
)

__all__ = [
    'StorageClient',
    'FeedWriter',
    'FeedReader',
    'UploadHandle',
    'FeedUpdate',
    'ReplicationStatus',
]
