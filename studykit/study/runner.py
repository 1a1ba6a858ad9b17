import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable

from sqlalchemy.orm import Session

from studykit.study.pipeline import process_document

logger = logging.getLogger(__name__)


class PipelineRunner:
    """Bounded worker pool for document pipelines.

    At-most-once: a submitted job runs once and is never retried. With
    ``max_workers=0`` jobs run inline on the caller's thread.
    """

    def __init__(self, session_factory: Callable[[], Session], max_workers: int = 2):
        self.session_factory = session_factory
        self.max_workers = max_workers
        self._executor = (
            ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="pipeline")
            if max_workers > 0 else None
        )

    def submit(self, file_path: str, document_id: int) -> Future:
        logger.info("scheduling pipeline for document=%s", document_id)
        if self._executor is None:
            fut: Future = Future()
            fut.set_result(process_document(file_path, document_id, self.session_factory))
            return fut
        return self._executor.submit(process_document, file_path, document_id, self.session_factory)

    def shutdown(self, wait: bool = True) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=wait)
