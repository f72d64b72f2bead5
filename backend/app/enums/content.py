"""
Content-related enums.

Defines enums for content sources and the processing status exchanged with
the content storage collaborator.
"""

from enum import Enum


class ContentSource(str, Enum):
    """Kind of long-form source a transcript was taken from."""

    PODCAST = "podcast"
    VIDEO = "video"
    ARTICLE = "article"
    BOOK = "book"
    CONVERSATION = "conversation"
    INTERVIEW = "interview"
    LECTURE = "lecture"
    OTHER = "other"


class ProcessingStatus(str, Enum):
    """Processing status for content items as stored by the content store.

    Only terminal/active distinctions cross the storage boundary: the queue's
    internal RETRYING state is reported as PROCESSING.
    """

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
