"""
Tests for the latest-frame relay and the background worker pool.
"""

import threading
import time
import unittest
from queue import Queue

from enhancement_profile import FilterParams
from errors import StageFailure, UnknownProfile
from frame_enhancer import FilterPipeline
from frame_relay import BackgroundEnhancer, FrameJob, FrameRelay, LatestFrameSlot
from pixel_buffer import PixelBuffer


def grey(level=128, size=6):
    return PixelBuffer.filled(size, size, (level, level, level, 255))


class TestLatestFrameSlot(unittest.TestCase):
    def test_newer_frame_replaces_queued(self):
        slot = LatestFrameSlot()
        self.assertIsNone(slot.put("a"))
        self.assertEqual(slot.put("b"), "a")
        self.assertEqual(slot.dropped, 1)
        self.assertEqual(slot.get(timeout=0), "b")
        self.assertFalse(slot.has_pending())

    def test_get_times_out(self):
        slot = LatestFrameSlot()
        start = time.monotonic()
        self.assertIsNone(slot.get(timeout=0.05))
        self.assertGreaterEqual(time.monotonic() - start, 0.04)

    def test_close_wakes_waiter(self):
        slot = LatestFrameSlot()
        got = []
        waiter = threading.Thread(target=lambda: got.append(slot.get(timeout=5)))
        waiter.start()
        time.sleep(0.05)
        slot.close()
        waiter.join(2)
        self.assertFalse(waiter.is_alive())
        self.assertEqual(got, [None])
        with self.assertRaises(RuntimeError):
            slot.put("late")


class TestFrameRelay(unittest.TestCase):
    def setUp(self):
        self.relay = FrameRelay(FilterPipeline())
        self.received = []
        self.relay.subscribe(self.received.append)

    def tearDown(self):
        self.relay.stop()

    def test_only_latest_frame_processed(self):
        for level in (10, 20, 30):
            self.relay.submit(grey(level), FilterParams(), "standard")

        result = self.relay.process_pending()
        self.assertEqual(result.frame_id, 3)
        self.assertEqual(self.relay.dropped, 2)
        self.assertIsNone(self.relay.process_pending())

        self.assertEqual(len(self.received), 1)
        self.assertTrue(self.received[0].ok)
        self.assertEqual(self.received[0].buffer, grey(30))

    def test_failure_delivered_as_result(self):
        self.relay.submit(grey(), FilterParams(), "sepia")
        result = self.relay.process_pending()

        self.assertFalse(result.ok)
        self.assertIsInstance(result.error, UnknownProfile)
        self.assertIsNone(result.buffer)
        self.assertIs(self.received[0], result)

    def test_broken_subscriber_does_not_block_others(self):
        def broken(result):
            raise RuntimeError("viewer went away")

        others = []
        relay = FrameRelay(FilterPipeline())
        relay.subscribe(broken)
        relay.subscribe(others.append)
        relay.submit(grey(), FilterParams(), "standard")
        relay.process_pending()
        self.assertEqual(len(others), 1)

    def test_unsubscribe(self):
        self.relay.unsubscribe(self.received.append)
        self.relay.submit(grey(), FilterParams(), "standard")
        self.relay.process_pending()
        self.assertEqual(self.received, [])

    def test_worker_thread_pushes_results(self):
        delivered = threading.Event()
        self.relay.subscribe(lambda result: delivered.set())
        self.relay.start()
        self.relay.submit(grey(), FilterParams(), "portrait")

        self.assertTrue(delivered.wait(5))
        self.assertEqual(self.relay.processed, 1)


class CrashingPipeline(FilterPipeline):
    def enhance(self, buffer, params=None, profile="auto"):
        raise MemoryError("frame too large")


class TestRelayCrash(unittest.TestCase):
    def test_unexpected_error_becomes_result(self):
        relay = FrameRelay(CrashingPipeline())
        relay.submit(grey(), FilterParams(), "standard")
        result = relay.process_pending()

        self.assertFalse(result.ok)
        self.assertIsInstance(result.error, StageFailure)
        self.assertIsInstance(result.error.__cause__, MemoryError)

    def test_worker_keeps_delivering_after_crash(self):
        relay = FrameRelay(CrashingPipeline())
        results = []
        second = threading.Event()

        def collect(result):
            results.append(result)
            if len(results) == 2:
                second.set()

        relay.subscribe(collect)
        relay.start()
        try:
            relay.submit(grey(), FilterParams(), "standard")
            deadline = time.monotonic() + 5
            while not results and time.monotonic() < deadline:
                time.sleep(0.01)
            relay.submit(grey(), FilterParams(), "standard")
            self.assertTrue(second.wait(5))
        finally:
            relay.stop()
        self.assertEqual(relay.processed, 2)

    def test_processed_count_from_many_threads(self):
        relay = FrameRelay(FilterPipeline())
        jobs = [FrameJob(i, grey(size=3), FilterParams(), "standard") for i in range(40)]
        threads = [threading.Thread(target=relay._process, args=(job,)) for job in jobs]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        self.assertEqual(relay.processed, 40)


class TestBackgroundEnhancer(unittest.TestCase):
    def setUp(self):
        self.background = BackgroundEnhancer(FilterPipeline(), workers=2)
        self.background.start()

    def tearDown(self):
        self.background.stop()

    def test_job_result_by_id(self):
        job_id = self.background.submit(grey(size=10), FilterParams(noise_reduction=50), "hybrid")
        result = self.background.result(job_id, timeout=10)

        self.assertIsNotNone(result)
        self.assertTrue(result.ok)
        self.assertEqual(result.report.profile, "hybrid")
        self.assertEqual(self.background.status(job_id), "done")
        self.assertIsNone(self.background.completed)

    def test_completed_queue_is_opt_in(self):
        completed = Queue()
        background = BackgroundEnhancer(FilterPipeline(), workers=1, completed=completed)
        background.start()
        try:
            job_id = background.submit(grey(), FilterParams(), "standard")
            message = completed.get(timeout=10)
        finally:
            background.stop()
        self.assertEqual(message.frame_id, job_id)

    def test_take_result_forgets_job(self):
        job_id = self.background.submit(grey(), FilterParams(), "standard")
        self.assertIsNotNone(self.background.take_result(job_id, timeout=10))
        self.assertEqual(self.background.status(job_id), "unknown")
        self.assertEqual(self.background.tracked_jobs, 0)

    def test_unknown_job(self):
        self.assertEqual(self.background.status(999), "unknown")
        with self.assertRaises(KeyError):
            self.background.result(999, timeout=0)

    def test_failed_job(self):
        job_id = self.background.submit(grey(), FilterParams(), "sepia")
        result = self.background.result(job_id, timeout=10)
        self.assertIsInstance(result.error, UnknownProfile)


class TestBackgroundLifecycle(unittest.TestCase):
    def test_crash_finishes_job_and_keeps_worker(self):
        background = BackgroundEnhancer(CrashingPipeline(), workers=1)
        background.start()
        try:
            first = background.submit(grey(), FilterParams(), "standard")
            second = background.submit(grey(), FilterParams(), "standard")
            results = [background.result(first, timeout=5), background.result(second, timeout=5)]
            alive = [t.is_alive() for t in background._threads]
        finally:
            background.stop()

        for result in results:
            self.assertIsNotNone(result)
            self.assertIsInstance(result.error, StageFailure)
        self.assertEqual(alive, [True])

    def test_unfetched_results_capped(self):
        completed = Queue()
        background = BackgroundEnhancer(FilterPipeline(), workers=1, completed=completed,
                                        max_results=2)
        background.start()
        try:
            ids = [background.submit(grey(size=3), FilterParams(), "standard") for _ in range(4)]
            for _ in ids:
                completed.get(timeout=10)
        finally:
            background.stop()

        self.assertEqual(background.tracked_jobs, 2)
        self.assertEqual(background.status(ids[0]), "unknown")
        self.assertEqual(background.status(ids[1]), "unknown")
        self.assertEqual(background.status(ids[3]), "done")

    def test_unfetched_results_expire(self):
        completed = Queue()
        background = BackgroundEnhancer(FilterPipeline(), workers=1, completed=completed,
                                        result_ttl=0.05)
        background.start()
        try:
            stale = background.submit(grey(size=3), FilterParams(), "standard")
            completed.get(timeout=10)
            self.assertEqual(background.status(stale), "done")

            time.sleep(0.1)
            fresh = background.submit(grey(size=3), FilterParams(), "standard")
            self.assertEqual(background.status(stale), "unknown")
            self.assertIsNotNone(background.take_result(fresh, timeout=10))
        finally:
            background.stop()
        self.assertEqual(background.tracked_jobs, 0)


if __name__ == '__main__':
    unittest.main()
