import asyncio
import unittest
from datetime import datetime, timedelta, timezone

from setflow.services.timers import Stopwatch, as_utc, elapsed_seconds, format_clock, tick

T0 = datetime(2026, 1, 5, 9, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now=T0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += timedelta(seconds=seconds)


class TestFormatClock(unittest.TestCase):
    def test_minutes_and_seconds(self):
        self.assertEqual(format_clock(0), "00:00")
        self.assertEqual(format_clock(59), "00:59")
        self.assertEqual(format_clock(754), "12:34")

    def test_hour_segment_only_when_nonzero(self):
        self.assertEqual(format_clock(3599), "59:59")
        self.assertEqual(format_clock(3600), "1:00:00")
        self.assertEqual(format_clock(3723), "1:02:03")

    def test_negative_clamped(self):
        self.assertEqual(format_clock(-5), "00:00")


class TestElapsed(unittest.TestCase):
    def test_floors_partial_seconds(self):
        self.assertEqual(elapsed_seconds(T0, T0 + timedelta(seconds=9.99)), 9)

    def test_never_negative(self):
        self.assertEqual(elapsed_seconds(T0, T0 - timedelta(seconds=3)), 0)

    def test_naive_treated_as_utc(self):
        naive = datetime(2026, 1, 5, 9, 0, 0)
        self.assertEqual(as_utc(naive), T0)
        self.assertEqual(elapsed_seconds(naive, T0 + timedelta(seconds=30)), 30)
        self.assertIsNone(as_utc(None))


class TestStopwatch(unittest.TestCase):
    def test_idle_reads_zero(self):
        sw = Stopwatch(FakeClock())
        self.assertFalse(sw.running)
        self.assertEqual(sw.elapsed(), 0)

    def test_value_comes_from_anchor(self):
        clock = FakeClock()
        sw = Stopwatch(clock, name="set")
        sw.start()
        clock.advance(5)
        self.assertEqual(sw.elapsed(), 5)
        # a long suspension is caught up on the next read, no ticks needed
        clock.advance(600)
        self.assertEqual(sw.elapsed(), 605)

    def test_start_at_existing_anchor(self):
        clock = FakeClock(T0 + timedelta(seconds=25))
        sw = Stopwatch(clock)
        sw.start(at=T0 + timedelta(seconds=10))
        self.assertEqual(sw.elapsed(), 15)

    def test_stop_returns_value_and_cancel_is_repeatable(self):
        clock = FakeClock()
        sw = Stopwatch(clock)
        sw.start()
        clock.advance(42)
        self.assertEqual(sw.stop(), 42)
        self.assertFalse(sw.running)
        self.assertEqual(sw.cancel(), 0)
        self.assertEqual(sw.cancel(), 0)
        self.assertIn("stopped", repr(sw))


class TestTick(unittest.TestCase):
    def test_recomputes_each_tick_and_stops(self):
        clock = FakeClock()
        sw = Stopwatch(clock)
        sw.start()
        slept = []

        async def fake_sleep(interval):
            slept.append(interval)
            clock.advance(interval)

        async def snapshot():
            return {"seconds": sw.elapsed()}

        async def collect():
            out = []
            async for snap in tick(snapshot, interval=2, sleep=fake_sleep,
                                   should_stop=lambda s: s["seconds"] >= 4):
                out.append(snap["seconds"])
            return out

        self.assertEqual(asyncio.run(collect()), [0, 2, 4])
        self.assertEqual(slept, [2, 2])

    def test_consumer_can_close_early(self):
        async def snapshot():
            return {"n": 1}

        async def no_sleep(_):
            return None

        async def first_only():
            gen = tick(snapshot, sleep=no_sleep)
            snap = await gen.__anext__()
            await gen.aclose()
            return snap

        self.assertEqual(asyncio.run(first_only()), {"n": 1})


if __name__ == "__main__":
    unittest.main()
