"""
Batch uploader: mirror a local directory tree to an object-store prefix.

Three phases, each fully drained before the next starts:

1. HTML files, with an explicit ``text/html; charset=utf-8`` content type
2. everything else, with the content type guessed from the file name
3. (sync only) delete remote objects under the prefix with no local file

Uploads within a phase run on a bounded thread pool; every file gets its own
retry loop so one file exhausting its attempts never stops the batch.
"""

from __future__ import annotations

import mimetypes
import random
import threading
import time
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Optional

from docpublisher.connections.storage import MAX_DELETE_BATCH, ObjectStore, chunked
from docpublisher.core.retry.policy import RetryState
from docpublisher.exceptions import ConfigurationError, StoreError, UploadError
from docpublisher.sync.types import (
    DEFAULT_CONTENT_TYPE,
    HTML_CONTENT_TYPE,
    FileUploadTask,
    UploadJob,
    UploadOutcome,
)
from docpublisher.utils.logging import get_logger

logger = get_logger("docpublisher.sync.uploader")

# Only the first failure is reported; keep a few more for the log summary
MAX_RECORDED_FAILURES = 50

# Progress is logged at 25/50/75/100% of each phase
PROGRESS_STEPS = 4


def guess_content_type(path: Path) -> str:
    """Content type for a non-HTML file, ``application/octet-stream`` when unknown."""
    content_type, _ = mimetypes.guess_type(path.name)
    return content_type or DEFAULT_CONTENT_TYPE


def discover_files(job: UploadJob) -> list[FileUploadTask]:
    """
    Enumerate regular files under the job's source directory.

    Keys are the prefix joined with the path relative to the source
    directory, always with forward slashes. Order is deterministic.
    """
    source = Path(job.source_directory)
    tasks = []
    for path in sorted(source.rglob("*")):
        if not path.is_file():
            continue
        relative = path.relative_to(source).as_posix()
        if path.suffix.lower() == ".html":
            content_type = HTML_CONTENT_TYPE
        else:
            content_type = guess_content_type(path)
        tasks.append(FileUploadTask(path=path, key=job.key_for(relative), content_type=content_type))
    return tasks


class _JobTally:
    """Counters shared by the worker threads of one job."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.succeeded = 0
        self.failed = 0
        self.failures: list[str] = []

    def record_success(self) -> None:
        with self._lock:
            self.succeeded += 1

    def record_failure(self, message: str) -> None:
        with self._lock:
            self.failed += 1
            if len(self.failures) < MAX_RECORDED_FAILURES:
                self.failures.append(message)

    def outcome(self, deleted: int = 0) -> UploadOutcome:
        with self._lock:
            return UploadOutcome(
                succeeded=self.succeeded,
                failed=self.failed,
                deleted=deleted,
                failures=tuple(self.failures),
            )


class BatchUploader:
    """
    Uploads a directory tree to an ObjectStore with bounded concurrency and retry.

    Examples:
        >>> with S3Connection("docs", {"bucket": "my-docs"}) as store:
        ...     outcome = BatchUploader(store).upload(
        ...         UploadJob(
        ...             bucket="my-docs",
        ...             key_prefix="site/app/1.0.0",
        ...             source_directory=Path("build/docsUpload/site/app/1.0.0"),
        ...             cache_control="public,max-age=31536000,immutable",
        ...             sync_delete=True,
        ...         )
        ...     )
    """

    def __init__(
        self,
        store: ObjectStore,
        *,
        sleep: Callable[[float], None] = time.sleep,
        rng: Optional[random.Random] = None,
    ):
        """
        Args:
            store: Object store shared by all workers
            sleep: Blocking wait used between retries (injectable for tests)
            rng: Random source for jitter
        """
        self.store = store
        self._sleep = sleep
        self._rng = rng or random.Random()

    def upload(self, job: UploadJob) -> UploadOutcome:
        """
        Run the job.

        Returns:
            UploadOutcome when every file uploaded

        Raises:
            ConfigurationError: source directory missing or not a directory
            UploadError: one or more files failed after exhausting retries
        """
        source = Path(job.source_directory)
        if not source.is_dir():
            raise ConfigurationError(
                f"Source directory does not exist: {source.resolve()}",
                details={"source_directory": str(source)},
            )

        logger.info(f"Uploading from {source.resolve()} to s3://{job.bucket}/{job.key_prefix}")
        logger.info(f"Cache-Control: {job.cache_control}")
        logger.debug(
            f"Configuration: max_concurrency={job.max_concurrency}, max_retries={job.max_retries}, "
            f"sync_delete={job.sync_delete}"
        )

        tasks = discover_files(job)
        if not tasks:
            logger.warning(f"No files found to upload in {source.resolve()}")
            return UploadOutcome()

        logger.info(f"Found {len(tasks)} files to upload")

        tally = _JobTally()
        html_tasks = [task for task in tasks if task.is_html]
        other_tasks = [task for task in tasks if not task.is_html]

        logger.info(f"Phase 1: Uploading {len(html_tasks)} HTML files...")
        self._run_phase("Phase 1", html_tasks, job, tally)

        logger.info(f"Phase 2: Uploading {len(other_tasks)} non-HTML files...")
        self._run_phase("Phase 2", other_tasks, job, tally)

        deleted = 0
        if job.sync_delete:
            logger.info("Phase 3: Checking for remote files to delete...")
            deleted = self.delete_remote_only(job, {task.key for task in tasks})

        outcome = tally.outcome(deleted=deleted)
        if not outcome.ok:
            logger.error(f"Upload completed with errors: {outcome.succeeded} successful, {outcome.failed} failed")
            raise UploadError(outcome, max_retries=job.max_retries)

        summary = f"Upload completed successfully: {outcome.succeeded} files uploaded"
        if deleted:
            summary += f", {deleted} files deleted"
        logger.info(summary)
        return outcome

    def _run_phase(self, phase: str, tasks: list[FileUploadTask], job: UploadJob, tally: _JobTally) -> None:
        """Upload ``tasks`` on at most ``job.max_concurrency`` workers and wait for all of them."""
        if not tasks:
            return

        total = len(tasks)
        completed = 0
        last_step = 0
        workers = min(job.max_concurrency, total)
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="docpublisher-upload") as pool:
            futures = [pool.submit(self._upload_with_retry, task, job, tally) for task in tasks]
            for future in as_completed(futures):
                future.result()
                completed += 1
                step = (completed * PROGRESS_STEPS) // total
                if step > last_step:
                    last_step = step
                    logger.info(f"  {phase}: {completed}/{total} files ({completed * 100 // total}%)")

    def _upload_with_retry(self, task: FileUploadTask, job: UploadJob, tally: _JobTally) -> None:
        """Upload one file; failures end up in ``tally``, never raised."""
        policy = job.backoff
        state = RetryState(key=task.key)

        while True:
            try:
                self.store.put_file(
                    task.key,
                    task.path,
                    content_type=task.content_type,
                    cache_control=job.cache_control,
                )
            except StoreError as e:
                state.record_failure(e)
                if not policy.should_retry(e, state.attempt):
                    break
                delay = policy.get_delay(state.attempt, retry_after=e.retry_after, rng=self._rng)
                state.record_delay(delay)
                reason = "Rate limited" if e.retry_after is not None or e.status_code in (429, 503) else "Error"
                logger.warning(
                    f"{reason} uploading {task.key} (attempt {state.attempt}/{policy.max_retries}): {e}. "
                    f"Waiting {delay:.2f}s before retry..."
                )
                self._sleep(delay)
            except Exception as e:
                # Not a classified store error: a bug or an unexpected local failure
                state.record_failure(e)
                logger.error(f"Unexpected error uploading {task.key}: {e}", exc_info=True)
                break
            else:
                state.record_success()
                tally.record_success()
                if state.attempt > 1:
                    logger.info(f"{task.key} uploaded after {state.attempt} attempts")
                return

        if state.attempt >= policy.max_retries:
            message = f"Failed to upload {task.key} after {state.attempt} attempts: {state.last_error}"
        else:
            message = f"Failed to upload {task.key}: {state.last_error}"
        tally.record_failure(message)
        logger.error(message)

    def delete_remote_only(self, job: UploadJob, local_keys: Iterable[str]) -> int:
        """
        Delete remote objects under the job prefix that have no local counterpart.

        Best effort: listing or deletion failures are logged, never raised.

        Returns:
            Number of remote objects deleted

        Raises:
            ConfigurationError: the job's key prefix is empty
        """
        local = set(local_keys)
        list_prefix = job.key_for("")
        if not list_prefix:
            raise ConfigurationError("Refusing to reconcile an empty key prefix (whole bucket)")
        try:
            stale = sorted(key for key in self.store.iter_keys(list_prefix) if key not in local)
        except StoreError as e:
            logger.warning(f"Failed to list remote files under {list_prefix}: {e}")
            return 0

        if not stale:
            logger.info("  Phase 3: Remote already matches local files")
            return 0

        deleted = 0
        for batch in chunked(stale, MAX_DELETE_BATCH):
            try:
                deleted += self.store.delete_keys(batch)
            except StoreError as e:
                logger.warning(f"Failed to delete {len(batch)} remote files: {e}")
                continue
            logger.info(f"  Phase 3: Deleted {deleted} files so far...")
        return deleted
