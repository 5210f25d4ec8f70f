"""
Feed propagation benchmark for Ethereum Swarm (Bee) nodes.

Publishes successive updates of a sequence feed on writer nodes, downloads
them from reader nodes and reports upload, sync and download times while
verifying every downloaded update.
"""

VERSION = "0.1.0"
__version__ = VERSION
