from datetime import date, datetime, timezone

from hr_kernel.domain.clock import DeterministicClock, SystemClock


def test_system_clock_is_utc():
    assert SystemClock().now().tzinfo == timezone.utc


class TestDeterministicClock:
    def test_frozen_until_advanced(self):
        at = datetime(2024, 3, 4, 9, 0, tzinfo=timezone.utc)
        clock = DeterministicClock(at)
        assert clock.now() == clock.now() == at
        assert clock.today() == date(2024, 3, 4)

    def test_advance_accepts_timedelta_keywords(self):
        clock = DeterministicClock(datetime(2024, 3, 4, 9, 0, tzinfo=timezone.utc))
        clock.advance(hours=49)
        assert clock.now() == datetime(2024, 3, 6, 10, 0, tzinfo=timezone.utc)
        assert clock.advance(30) == datetime(2024, 3, 6, 10, 0, 30, tzinfo=timezone.utc)
