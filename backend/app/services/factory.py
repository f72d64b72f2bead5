"""
Processing Service Wiring

Builds the processing stack from settings. The rate limiter, processor, and
queue are ordinary objects constructed here and owned by the caller; nothing
in the pipeline is a module-level singleton.

Usage:
    from app.services.factory import build_processing_queue
    from app.services.storage import SQLContentStore

    queue = build_processing_queue(SQLContentStore())
    job_id = queue.submit(content_id)
"""

import logging
from typing import Optional

from app.config.processing import ProcessingSettings, processing_settings
from app.services.clock import Clock, Scheduler, SystemClock
from app.services.llm.client import LLMClient
from app.services.processing.processor import ContentProcessor
from app.services.processing.rate_limiter import RateLimiter
from app.services.queue import ProcessingQueue
from app.services.storage import ContentStore

logger = logging.getLogger(__name__)


def build_processing_queue(
    store: ContentStore,
    llm_client: Optional[LLMClient] = None,
    config: Optional[ProcessingSettings] = None,
    clock: Optional[Clock] = None,
    scheduler: Optional[Scheduler] = None,
) -> ProcessingQueue:
    """
    Wire rate limiter, processor, and queue around a content store.

    Args:
        store: Content store shared by the processor and the queue
        llm_client: Client for the generative service (built from config if omitted)
        config: Processing settings (module settings if omitted)
        clock: Time source shared by the limiter, processor, and queue
        scheduler: Delayed-callback scheduler for retry backoff

    Returns:
        A ready ProcessingQueue
    """
    config = config or processing_settings
    clock = clock or SystemClock()

    llm_client = llm_client or LLMClient(
        model=config.MODEL_CONTENT_GENERATION,
        temperature=config.GENERATION_TEMPERATURE,
        max_tokens=config.GENERATION_MAX_TOKENS,
        timeout=config.LLM_TIMEOUT_SECONDS,
    )
    rate_limiter = RateLimiter(
        requests_per_minute=config.RATE_LIMIT_REQUESTS_PER_MINUTE,
        requests_per_day=config.RATE_LIMIT_REQUESTS_PER_DAY,
        window_seconds=config.RATE_LIMIT_WINDOW_SECONDS,
        clock=clock,
    )
    processor = ContentProcessor(
        store=store,
        llm_client=llm_client,
        rate_limiter=rate_limiter,
        content_version=config.CONTENT_VERSION,
        clock=clock,
    )

    logger.debug(
        f"Processing queue: {config.MAX_CONCURRENT_JOBS} concurrent jobs, "
        f"{config.MAX_RETRIES} retries, {config.RATE_LIMIT_REQUESTS_PER_MINUTE}/min, "
        f"{config.RATE_LIMIT_REQUESTS_PER_DAY}/day"
    )
    return ProcessingQueue(
        processor=processor,
        store=store,
        max_concurrent=config.MAX_CONCURRENT_JOBS,
        max_retries=config.MAX_RETRIES,
        base_delay=config.RETRY_BASE_DELAY_SECONDS,
        estimated_job_seconds=config.ESTIMATED_JOB_SECONDS,
        history_limit=config.JOB_HISTORY_LIMIT,
        clock=clock,
        scheduler=scheduler,
    )
