import unittest
from datetime import datetime, timezone
from unittest import mock

from coursebook.schedules import ScheduleCache, ScheduleReader, format_date, format_datetime, format_time
from coursebook.store import LocalStore


class TestScheduleReader(unittest.TestCase):
    def test_sorted_by_datetime(self) -> None:
        store = LocalStore()
        base = "projects/p1/courses/c1/schedules"
        store.put(f"{base}/late", {"dateTime": datetime(2025, 5, 1, tzinfo=timezone.utc), "capacities": {}})
        store.put(f"{base}/early", {"dateTime": datetime(2025, 4, 1, tzinfo=timezone.utc), "capacities": {}})
        store.put(f"{base}/undated", {"capacities": {"primary": 3}})

        schedules = ScheduleReader(store).list_by_course("p1", "c1")
        # documents without dateTime are not part of an ordered listing
        self.assertEqual([s.id for s in schedules], ["early", "late"])


class TestScheduleCache(unittest.TestCase):
    def test_loads_each_course_once(self) -> None:
        reader = mock.Mock(spec=ScheduleReader)
        reader.list_by_course.return_value = []
        cache = ScheduleCache(reader, "p1")

        self.assertFalse(cache.is_loaded("c1"))
        cache.get("c1")
        cache.get("c1")
        cache.get("c2")

        self.assertTrue(cache.is_loaded("c1"))
        self.assertEqual(
            reader.list_by_course.call_args_list,
            [mock.call("p1", "c1"), mock.call("p1", "c2")],
        )


class TestFormatting(unittest.TestCase):
    def test_tokyo_time(self) -> None:
        dt = datetime(2025, 4, 1, 1, 30, tzinfo=timezone.utc)
        self.assertEqual(format_date(dt), "2025/04/01")
        self.assertEqual(format_time(dt), "10:30")
        self.assertEqual(format_datetime(dt, "UTC"), "2025/04/01 01:30")

    def test_missing(self) -> None:
        self.assertEqual(format_datetime(None), "-")


if __name__ == "__main__":
    unittest.main()
