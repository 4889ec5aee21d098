"""
Frame Relay

Moves frames between the capture side and the enhancement pipeline without
blocking the thread that shows live video.

- LatestFrameSlot: one-frame mailbox, a newer frame replaces a queued one.
- FrameRelay: worker thread that enhances the latest frame and pushes the
  result to subscribers.
- BackgroundEnhancer: worker pool for expensive profiles; results are fetched
  by job id, optionally also posted to a queue.

Nothing here cancels a running stage. A caller that no longer wants a result
just ignores it when it arrives.
"""

import threading
import time
from collections import namedtuple
from dataclasses import dataclass
from queue import Queue
from typing import Optional

from enhancement_profile import AUTO
from errors import EnhancementError, StageFailure
from frame_enhancer import FilterPipeline, ProcessingReport
from logger import log_dropped_frame, log_error, log_job
from pixel_buffer import PixelBuffer

FrameJob = namedtuple("FrameJob", ["frame_id", "buffer", "params", "profile"])


@dataclass
class FrameResult:
    frame_id: int
    buffer: Optional[PixelBuffer] = None
    report: Optional[ProcessingReport] = None
    error: Optional[EnhancementError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def run_job(pipeline: FilterPipeline, job: FrameJob) -> FrameResult:
    """
    Enhance one job; failures become an error result (no retry).

    Anything that is not an EnhancementError (MemoryError on a huge frame,
    TypeError from a bad submit) is wrapped in StageFailure so worker
    threads survive it.
    """
    try:
        buffer, report = pipeline.enhance(job.buffer, job.params, job.profile)
    except EnhancementError as e:
        log_error(f"Frame {job.frame_id} failed", e)
        return FrameResult(frame_id=job.frame_id, error=e)
    except Exception as e:
        error = StageFailure(f"unexpected {type(e).__name__}: {e}")
        error.__cause__ = e
        log_error(f"Frame {job.frame_id} crashed", e)
        return FrameResult(frame_id=job.frame_id, error=error)
    return FrameResult(frame_id=job.frame_id, buffer=buffer, report=report)


class LatestFrameSlot:
    """
    Single-slot mailbox with latest-frame-wins semantics.

    Usage:
        slot = LatestFrameSlot()
        slot.put(job_a)
        slot.put(job_b)       # job_a is dropped, returned to the caller
        slot.get()            # -> job_b
    """

    def __init__(self):
        self._cond = threading.Condition()
        self._item = None
        self._closed = False
        self.dropped = 0

    def put(self, item):
        """Store `item`, returning the queued item it replaced (or None)."""
        with self._cond:
            if self._closed:
                raise RuntimeError("slot is closed")
            replaced = self._item
            if replaced is not None:
                self.dropped += 1
            self._item = item
            self._cond.notify()
            return replaced

    def get(self, timeout: float = None):
        """Take the queued item; None on timeout or once closed and empty."""
        with self._cond:
            self._cond.wait_for(lambda: self._item is not None or self._closed, timeout)
            item, self._item = self._item, None
            return item

    def close(self):
        with self._cond:
            self._closed = True
            self._cond.notify_all()

    @property
    def closed(self) -> bool:
        return self._closed

    def has_pending(self) -> bool:
        with self._cond:
            return self._item is not None


class FrameRelay:
    """
    Push-style delivery of enhanced live frames.

    Usage:
        relay = FrameRelay(FilterPipeline())
        relay.subscribe(lambda result: show(result.buffer))
        relay.start()
        relay.submit(frame, params, "standard")   # never blocks
        ...
        relay.stop()
    """

    POLL_INTERVAL = 0.1

    def __init__(self, pipeline: FilterPipeline = None):
        self.pipeline = pipeline or FilterPipeline()
        self._slot = LatestFrameSlot()
        self._subscribers = []
        self._lock = threading.Lock()
        self._next_id = 0
        self._thread = None
        self.stop_event = threading.Event()
        self.processed = 0

    def subscribe(self, callback):
        with self._lock:
            self._subscribers.append(callback)

    def unsubscribe(self, callback):
        with self._lock:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

    @property
    def dropped(self) -> int:
        return self._slot.dropped

    def submit(self, buffer: PixelBuffer, params=None, profile=AUTO) -> int:
        """Queue a frame, replacing any frame that has not started yet."""
        with self._lock:
            self._next_id += 1
            frame_id = self._next_id

        replaced = self._slot.put(FrameJob(frame_id, buffer, params, profile))
        if replaced is not None:
            log_dropped_frame(replaced.frame_id, self._slot.dropped)
        return frame_id

    def start(self):
        if self._thread is not None and self._thread.is_alive():
            return
        self.stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="frame-relay", daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 2.0):
        self.stop_event.set()
        self._slot.close()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def process_pending(self) -> Optional[FrameResult]:
        """Process the queued frame on the calling thread, if there is one."""
        job = self._slot.get(timeout=0)
        if job is None:
            return None
        return self._process(job)

    def _run(self):
        while not self.stop_event.is_set():
            job = self._slot.get(timeout=self.POLL_INTERVAL)
            if job is None:
                continue
            self._process(job)

    def _process(self, job: FrameJob) -> FrameResult:
        result = run_job(self.pipeline, job)
        with self._lock:
            self.processed += 1
        self._publish(result)
        return result

    def _publish(self, result: FrameResult):
        with self._lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(result)
            except Exception as e:
                # A broken viewer must not stop delivery to the others
                log_error(f"Subscriber failed on frame {result.frame_id}", e)


class BackgroundEnhancer:
    """
    Worker pool for slow enhancements (non-local means).

    Results are fetched by job id. Pass a `completed` queue to also receive
    every FrameResult as a message. Finished results nobody fetches are
    evicted after `result_ttl` seconds, or oldest first once more than
    `max_results` are waiting.
    """

    RESULT_TTL = 300.0
    MAX_RESULTS = 64

    def __init__(self, pipeline: FilterPipeline = None, workers: int = 2,
                 completed: Queue = None, result_ttl: float = RESULT_TTL,
                 max_results: int = MAX_RESULTS):
        self.pipeline = pipeline or FilterPipeline()
        self.workers = max(1, workers)
        self.completed = completed
        self.result_ttl = result_ttl
        self.max_results = max(1, max_results)
        self._jobs = Queue()
        self._results = {}
        self._done = {}
        self._finished_at = {}
        self._lock = threading.Lock()
        self._next_id = 0
        self._threads = []

    def start(self):
        if self._threads:
            return
        for i in range(self.workers):
            thread = threading.Thread(target=self._worker, name=f"enhance-worker-{i}", daemon=True)
            thread.start()
            self._threads.append(thread)

    def stop(self, timeout: float = 5.0):
        for _ in self._threads:
            self._jobs.put(None)
        for thread in self._threads:
            thread.join(timeout)
        self._threads = []

    def submit(self, buffer: PixelBuffer, params=None, profile=AUTO) -> int:
        with self._lock:
            self._evict_expired()
            self._next_id += 1
            job_id = self._next_id
            self._done[job_id] = threading.Event()

        self._jobs.put(FrameJob(job_id, buffer, params, profile))
        log_job(job_id, "queued")
        return job_id

    def status(self, job_id: int) -> str:
        with self._lock:
            event = self._done.get(job_id)
        if event is None:
            return "unknown"
        return "done" if event.is_set() else "pending"

    def result(self, job_id: int, timeout: float = None) -> Optional[FrameResult]:
        """Result for `job_id`; None while pending (after waiting `timeout`)."""
        with self._lock:
            event = self._done.get(job_id)
        if event is None:
            raise KeyError(job_id)
        if timeout is None or timeout > 0:
            event.wait(timeout)
        with self._lock:
            return self._results.get(job_id)

    def take_result(self, job_id: int, timeout: float = None) -> Optional[FrameResult]:
        """Like result(), but forgets the job once its result is returned."""
        result = self.result(job_id, timeout)
        if result is not None:
            with self._lock:
                self._forget(job_id)
        return result

    @property
    def tracked_jobs(self) -> int:
        """Jobs still held: queued, running or finished but not fetched."""
        with self._lock:
            return len(self._done)

    def _forget(self, job_id: int):
        self._results.pop(job_id, None)
        self._done.pop(job_id, None)
        self._finished_at.pop(job_id, None)

    def _evict_expired(self):
        # caller holds self._lock
        now = time.monotonic()
        expired = [job_id for job_id, finished in self._finished_at.items()
                   if now - finished > self.result_ttl]
        excess = len(self._finished_at) - len(expired) - self.max_results
        if excess > 0:
            # dicts keep insertion order, so this is oldest first
            remaining = [job_id for job_id in self._finished_at if job_id not in expired]
            expired.extend(remaining[:excess])
        for job_id in expired:
            self._forget(job_id)
            log_job(job_id, "evicted", "(result never fetched)")

    def _worker(self):
        while True:
            job = self._jobs.get()
            if job is None:
                self._jobs.task_done()
                break
            try:
                log_job(job.frame_id, "started")
                result = run_job(self.pipeline, job)
            except Exception as e:
                result = FrameResult(frame_id=job.frame_id, error=StageFailure(str(e)))
            finally:
                self._jobs.task_done()
            self._finish(job.frame_id, result)

    def _finish(self, job_id: int, result: FrameResult):
        with self._lock:
            event = self._done.get(job_id)
            if event is not None:
                self._results[job_id] = result
                self._finished_at[job_id] = time.monotonic()
                self._evict_expired()
        if event is not None:
            event.set()
        if self.completed is not None:
            self.completed.put(result)
        log_job(job_id, "done" if result.ok else "failed")
