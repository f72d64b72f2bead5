"""Services package for content generation, job queueing, and storage."""

from app.services.factory import build_processing_queue
from app.services.orchestrator import ProcessingOrchestrator
from app.services.queue import ProcessingQueue
from app.services.storage import ContentStore, InMemoryContentStore, SQLContentStore

__all__ = [
    "build_processing_queue",
    "ProcessingOrchestrator",
    "ProcessingQueue",
    "ContentStore",
    "InMemoryContentStore",
    "SQLContentStore",
]
