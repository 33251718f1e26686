import unittest
from datetime import date, datetime, timezone

from goalprogress.pipeline.hierarchy import (
    collect_events,
    completion_ratio,
    counter_counts,
    field_value,
    goal_counts,
    goal_span,
    goal_spans,
    normalize_goal,
    normalize_goals,
)


def _subtopic(sid, status="pending", completed_at=None):
    out = {"id": sid, "name": f"sub {sid}", "status": status, "createdAt": "2024-01-01T00:00:00Z"}
    if completed_at is not None:
        out["completedAt"] = completed_at
    return out


def _goal(**overrides):
    goal = {
        "id": "g1",
        "name": "DSA",
        "createdAt": "2024-01-01T00:00:00Z",
        "updatedAt": "2024-02-03T12:00:00Z",
        "totalTopics": 5,
        "completedTopics": 4,
        "categories": [
            {
                "id": "c1",
                "name": "Basics",
                "createdAt": "2024-01-05T00:00:00Z",
                "topics": [
                    {
                        "id": "t1",
                        "name": "Arrays",
                        "subtopics": [
                            _subtopic("s1", "completed", "2024-02-01T09:00:00Z"),
                            _subtopic("s2", "completed", "2024-02-01T09:00:00Z"),
                            _subtopic("s3", "completed", "2024-02-03T10:00:00Z"),
                        ],
                    },
                    {"id": "t2", "name": "Strings", "subtopics": [_subtopic("s4", "started")]},
                ],
            },
            {
                "id": "c2",
                "name": "Graphs",
                "createdAt": "2024-01-20T00:00:00Z",
                "topics": [
                    {"id": "t3", "name": "BFS", "subtopics": [_subtopic("s5", "completed", "2024-02-02T00:00:00Z")]},
                ],
            },
        ],
    }
    goal.update(overrides)
    return goal


class NormalizeGoalTests(unittest.TestCase):
    def test_flattens_completed_subtopics_in_traversal_order(self):
        norm = normalize_goal(_goal(), "UTC")
        self.assertEqual([e.subtopic_id for e in norm.events], ["s1", "s2", "s3", "s5"])
        self.assertEqual([e.topic_name for e in norm.events], ["Arrays", "Arrays", "Arrays", "BFS"])
        self.assertEqual(norm.events[3].category_name, "Graphs")
        self.assertEqual(norm.events[0].goal_id, "g1")
        self.assertEqual(norm.events[0].timestamp, datetime(2024, 2, 1, 9, tzinfo=timezone.utc))
        self.assertEqual(norm.events[0].day, date(2024, 2, 1))
        self.assertEqual(norm.total_subtopics, 5)
        self.assertEqual(norm.completed_subtopics, 4)
        self.assertEqual(norm.topic_names, ("Arrays", "Strings", "BFS"))
        self.assertEqual([name for name, _ in norm.category_origins], ["Basics", "Graphs"])
        self.assertFalse(norm.counter_mismatch)
        self.assertEqual(norm.malformed_nodes, 0)

    def test_missing_or_wrong_shape_collections_are_empty(self):
        for categories in (None, "oops", 7, {"a": 1}):
            norm = normalize_goal(_goal(categories=categories), "UTC")
            self.assertEqual(norm.events, ())
            self.assertEqual(norm.total_subtopics, 0)
            self.assertEqual(norm.malformed_nodes, 1)
        norm = normalize_goal({"id": "bare"}, "UTC")
        self.assertEqual(norm.total_subtopics, 0)
        self.assertEqual(norm.goal_id, "bare")

    def test_malformed_nodes_at_every_level(self):
        goal = _goal(
            categories=[
                None,
                {"name": "A", "topics": "oops"},
                {"name": "B", "topics": [{"name": "T", "subtopics": None}, 5]},
                {"name": "C", "topics": [{"name": "U", "subtopics": [None, _subtopic("x", "completed", "2024-01-02")]}]},
            ]
        )
        norm = normalize_goal(goal, "UTC")
        self.assertEqual(norm.malformed_nodes, 5)
        self.assertEqual(norm.total_subtopics, 1)
        self.assertEqual(len(norm.events), 1)

    def test_non_mapping_goal(self):
        norm = normalize_goal("not a goal")
        self.assertEqual(norm.events, ())
        self.assertEqual(norm.malformed_nodes, 1)

    def test_invalid_and_missing_completion_timestamps(self):
        goal = _goal(
            completedTopics=3,
            categories=[
                {
                    "name": "A",
                    "topics": [
                        {
                            "name": "T",
                            "subtopics": [
                                _subtopic("ok", "completed", "2024-02-01T00:00:00Z"),
                                _subtopic("bad", "completed", "yesterday-ish"),
                                _subtopic("none", "completed"),
                                _subtopic("pending", "pending", "2024-02-01T00:00:00Z"),
                            ],
                        }
                    ],
                }
            ],
        )
        norm = normalize_goal(goal, "UTC")
        self.assertEqual([e.subtopic_id for e in norm.events], ["ok"])
        self.assertEqual(norm.skipped_records, 1)
        self.assertEqual(norm.untimed_completions, 1)
        self.assertEqual(norm.completed_subtopics, 3)
        self.assertEqual(norm.total_subtopics, 4)

    def test_counter_mismatch_flagged(self):
        norm = normalize_goal(_goal(completedTopics=9), "UTC")
        self.assertTrue(norm.counter_mismatch)
        self.assertEqual(norm.completed_subtopics, 4)

    def test_normalize_goals_and_collect_events(self):
        second = _goal(id="g2", name="Web", categories=[
            {"name": "HTML", "topics": [{"name": "Tags", "subtopics": [_subtopic("w1", "completed", "2024-01-15")]}]}
        ])
        normalized = normalize_goals([_goal(), second], "UTC")
        events = collect_events(normalized)
        self.assertEqual([e.subtopic_id for e in events], ["s1", "s2", "s3", "s5", "w1"])
        self.assertEqual(normalize_goals(None), [])


class GoalSpanTests(unittest.TestCase):
    def test_uses_traversal_count_when_hierarchy_present(self):
        span = goal_span(_goal(completedTopics=9), tz_name="UTC")
        self.assertEqual(span.completed, 4)
        self.assertEqual(span.total, 5)
        self.assertEqual(span.created_at, datetime(2024, 1, 1, tzinfo=timezone.utc))

    def test_falls_back_to_counters(self):
        goal = {"id": "g", "createdAt": "2024-01-01", "updatedAt": "2024-01-31", "totalTopics": 10, "completedTopics": 12}
        self.assertEqual(goal_counts(goal), (10, 10))
        span = goal_span(goal, tz_name="UTC")
        self.assertEqual(span.completed, 10)
        self.assertEqual(goal_counts({"completedTopics": "3"}), (3, 3))
        self.assertEqual(goal_counts({"completedTopics": -2, "totalTopics": 4}), (0, 4))

    def test_completion_ratio_uses_counters(self):
        self.assertEqual(completion_ratio(_goal(completedTopics=2)), 0.4)
        self.assertEqual(completion_ratio({"completedTopics": 3}), 0.0)
        self.assertEqual(completion_ratio({"completedTopics": 3, "totalTopics": "many"}), 0.0)
        self.assertEqual(completion_ratio({"completed_topics": 9, "total_topics": 6}), 1.0)
        self.assertEqual(counter_counts({"completedTopics": 3, "totalTopics": 0}), (0, 0))

    def test_field_value_prefers_first_present_key(self):
        self.assertEqual(field_value({"createdAt": None, "created_at": "x"}, "createdAt", "created_at"), "x")
        self.assertIsNone(field_value({}, "createdAt", "created_at"))

    def test_invalid_timestamps_skip_goal(self):
        self.assertIsNone(goal_span(_goal(createdAt="garbage"), tz_name="UTC"))
        self.assertIsNone(goal_span(_goal(updatedAt=None), tz_name="UTC"))
        spans, skipped = goal_spans([_goal(), _goal(createdAt="nope"), None], "UTC")
        self.assertEqual(len(spans), 1)
        self.assertEqual(skipped, 2)


if __name__ == "__main__":
    unittest.main()
