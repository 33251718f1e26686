import unittest
from datetime import datetime, timedelta, timezone

from goalprogress.pipeline.interpolate import combined_interpolation, interpolate_count, interpolate_span
from goalprogress.pipeline.models import GoalSpan


def _dt(*args):
    return datetime(*args, tzinfo=timezone.utc)


class InterpolateCountTests(unittest.TestCase):
    def setUp(self):
        self.created = _dt(2024, 1, 1)
        self.updated = _dt(2024, 1, 31)

    def test_midpoint_scenario(self):
        self.assertEqual(interpolate_count(self.created, self.updated, 10, _dt(2024, 1, 16)), 5)

    def test_rounds_half_up(self):
        self.assertEqual(interpolate_count(self.created, self.updated, 5, _dt(2024, 1, 16)), 3)
        self.assertEqual(interpolate_count(self.created, self.updated, 3, _dt(2024, 1, 16)), 2)

    def test_before_creation_is_zero(self):
        self.assertEqual(interpolate_count(self.created, self.updated, 10, _dt(2023, 12, 31)), 0)

    def test_exact_endpoints(self):
        for n in (1, 7, 10, 1000):
            self.assertEqual(interpolate_count(self.created, self.updated, n, self.created), 0)
            self.assertEqual(interpolate_count(self.created, self.updated, n, self.updated), n)
            self.assertEqual(interpolate_count(self.created, self.updated, n, _dt(2030, 1, 1)), n)

    def test_zero_duration_goal_is_fully_credited(self):
        at = _dt(2024, 3, 1)
        self.assertEqual(interpolate_count(at, at, 4, at), 4)
        self.assertEqual(interpolate_count(at, at, 4, at + timedelta(days=3)), 4)
        self.assertEqual(interpolate_count(at, at, 4, at - timedelta(seconds=1)), 0)

    def test_inverted_span_never_divides(self):
        created, updated = _dt(2024, 3, 10), _dt(2024, 3, 1)
        self.assertEqual(interpolate_count(created, updated, 6, _dt(2024, 3, 5)), 0)
        self.assertEqual(interpolate_count(created, updated, 6, created), 6)

    def test_monotonic_in_time(self):
        prev = -1
        at = self.created - timedelta(days=2)
        while at <= self.updated + timedelta(days=2):
            val = interpolate_count(self.created, self.updated, 13, at)
            self.assertGreaterEqual(val, prev)
            self.assertTrue(0 <= val <= 13)
            prev = val
            at += timedelta(hours=5)

    def test_negative_count_clamped(self):
        self.assertEqual(interpolate_count(self.created, self.updated, -4, self.updated), 0)


class CombinedInterpolationTests(unittest.TestCase):
    def test_sum_of_independent_contributions(self):
        spans = [
            GoalSpan(goal_id="a", created_at=_dt(2024, 1, 1), updated_at=_dt(2024, 1, 31), completed=10),
            GoalSpan(goal_id="b", created_at=_dt(2024, 1, 10), updated_at=_dt(2024, 1, 10), completed=3),
            GoalSpan(goal_id="c", created_at=_dt(2024, 2, 1), updated_at=_dt(2024, 3, 1), completed=8),
        ]
        at = _dt(2024, 1, 16)
        self.assertEqual(interpolate_span(spans[0], at), 5)
        self.assertEqual(combined_interpolation(spans, at), 8)
        self.assertEqual(combined_interpolation([], at), 0)


if __name__ == "__main__":
    unittest.main()
