"""
Tests for the project and course repositories (against LocalStore).

Besides plain CRUD this documents current behavior on purpose:
- course titles sort by code point, so upper case comes before lower case
- deleting a course leaves its schedules in the store
"""

import tempfile
import unittest
from datetime import datetime, timezone
from pathlib import Path

from coursebook.errors import StoreError, ValidationError
from coursebook.model import ManagedResource
from coursebook.repository import CourseRepository, ProjectRepository, add_custom_resource, new_custom_resource
from coursebook.schedules import ScheduleReader
from coursebook.store import LocalStore


def _ts(day: int) -> datetime:
    return datetime(2025, 4, day, 1, 0, tzinfo=timezone.utc)


class TestProjectRepository(unittest.TestCase):
    def setUp(self) -> None:
        self.store = LocalStore()
        self.repo = ProjectRepository(self.store, owner_id="owner-1")

    def test_create_seeds_primary_resource(self) -> None:
        project = self.repo.create("研修", "kenshu-2025", "folder")

        doc = self.store.get(f"projects/{project.id}")
        assert doc is not None
        self.assertEqual(doc.fields["projectName"], "研修")
        self.assertEqual(doc.fields["projectSlug"], "kenshu-2025")
        self.assertEqual(doc.fields["icon"], "folder")
        self.assertEqual(doc.fields["ownerId"], "owner-1")
        self.assertIsInstance(doc.fields["createdAt"], datetime)
        self.assertEqual(
            doc.fields["managedResources"],
            [{"id": "primary", "label": "参加枠", "unit": "名", "isPrimary": True}],
        )
        self.assertEqual(sum(1 for r in project.managed_resources if r.is_primary), 1)

    def test_invalid_create_writes_nothing(self) -> None:
        with self.assertRaises(ValidationError):
            self.repo.create("研", "Kenshu", "f")
        self.assertEqual(self.store.list("projects"), [])

    def test_duplicate_slug_rejected(self) -> None:
        self.repo.create("研修", "kenshu-2025", "folder")
        with self.assertRaises(ValidationError) as ctx:
            self.repo.create("研修2", "kenshu-2025", "folder")
        self.assertIn("projectSlug", ctx.exception.errors)

    def test_list_all_newest_first(self) -> None:
        self.store.put("projects/old", {"projectName": "Old", "projectSlug": "old", "createdAt": _ts(1)})
        self.store.put("projects/new", {"projectName": "New", "projectSlug": "new", "createdAt": _ts(3)})
        self.store.put("projects/mid", {"projectName": "Mid", "projectSlug": "mid", "createdAt": _ts(2)})

        self.assertEqual([p.id for p in self.repo.list_all()], ["new", "mid", "old"])

    def test_get_missing(self) -> None:
        self.assertIsNone(self.repo.get("nope"))

    def test_update_fields_and_resources(self) -> None:
        project = self.repo.create("研修", "kenshu-2025", "folder")
        pc = ManagedResource("resource_1", "PCレンタル", "台", False)

        updated = self.repo.update(
            project.id,
            name="研修 2025",
            icon="briefcase",
            managed_resources=project.managed_resources + [pc],
        )

        self.assertEqual(updated.project_name, "研修 2025")
        self.assertEqual(updated.project_slug, "kenshu-2025")
        self.assertEqual(updated.icon, "briefcase")
        self.assertEqual([r.id for r in updated.managed_resources], ["primary", "resource_1"])

    def test_update_rejects_zero_or_two_primaries(self) -> None:
        project = self.repo.create("研修", "kenshu-2025", "folder")

        with self.assertRaises(ValidationError):
            self.repo.update(project.id, managed_resources=[ManagedResource("r", "PC", "台", False)])
        with self.assertRaises(ValidationError):
            self.repo.update(
                project.id,
                managed_resources=[
                    ManagedResource("primary", "参加枠", "名", True),
                    ManagedResource("r", "PC", "台", True),
                ],
            )

        stored = self.repo.get(project.id)
        assert stored is not None
        self.assertEqual(len(stored.managed_resources), 1)

    def test_update_slug_taken_by_other_project(self) -> None:
        a = self.repo.create("A project", "aa", "folder")
        self.repo.create("B project", "bb", "folder")

        with self.assertRaises(ValidationError):
            self.repo.update(a.id, slug="bb")
        # keeping its own slug is fine
        self.assertEqual(self.repo.update(a.id, slug="aa").project_slug, "aa")

    def test_new_custom_resource(self) -> None:
        r = new_custom_resource()
        self.assertTrue(r.id.startswith("resource_"))
        self.assertEqual(r.unit, "人")
        self.assertFalse(r.is_primary)

    def test_add_custom_resource(self) -> None:
        rows = [ManagedResource.primary_default()]
        grown = add_custom_resource(rows)
        self.assertEqual(len(rows), 1)
        self.assertEqual([r.is_primary for r in grown], [True, False])
        self.assertEqual(grown[1].unit, "人")

    def test_create_can_be_retried_after_a_failed_save(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            blocker = Path(d) / "blocker"
            blocker.write_text("", encoding="utf-8")
            repo = ProjectRepository(LocalStore(blocker / "store.json"))

            with self.assertRaises(StoreError):
                repo.create("研修", "kenshu-2025", "folder")
            self.assertEqual(repo.list_all(), [])

            blocker.unlink()
            project = repo.create("研修", "kenshu-2025", "folder")
            self.assertEqual([p.project_slug for p in repo.list_all()], [project.project_slug])


class TestCourseRepository(unittest.TestCase):
    def setUp(self) -> None:
        self.store = LocalStore()
        self.store.put("projects/p1", {"projectName": "研修", "projectSlug": "kenshu", "createdAt": _ts(1)})
        self.repo = CourseRepository(self.store)

    def test_titles_sorted_by_code_point(self) -> None:
        for title in ("banana", "Zebra", "Apple"):
            self.repo.create("p1", title, "", "book-open")

        titles = [c.title for c in self.repo.list_by_project("p1")]
        self.assertEqual(titles, ["Apple", "Zebra", "banana"])

    def test_create_and_update(self) -> None:
        course = self.repo.create("p1", "Python入門", None, "laptop")
        self.assertEqual(course.description, "")
        self.assertIsNotNone(course.created_at)

        updated = self.repo.update("p1", course.id, "Python応用", "中級者向け", "laptop")
        self.assertEqual(updated.title, "Python応用")
        self.assertEqual(updated.description, "中級者向け")
        self.assertGreaterEqual(updated.updated_at, course.updated_at)

    def test_invalid_course(self) -> None:
        with self.assertRaises(ValidationError):
            self.repo.create("p1", "P", "", "laptop")
        self.assertEqual(self.repo.list_by_project("p1"), [])

    def test_delete_keeps_schedules(self) -> None:
        course = self.repo.create("p1", "Python入門", "", "laptop")
        schedule_path = f"projects/p1/courses/{course.id}/schedules/s1"
        self.store.put(schedule_path, {"dateTime": _ts(10), "capacities": {"primary": 20}})

        self.repo.delete("p1", course.id)

        self.assertEqual(self.repo.list_by_project("p1"), [])
        self.assertIsNone(self.repo.get("p1", course.id))
        # orphaned schedule is still there
        self.assertIsNotNone(self.store.get(schedule_path))
        orphans = ScheduleReader(self.store).list_by_course("p1", course.id)
        self.assertEqual([s.id for s in orphans], ["s1"])


if __name__ == "__main__":
    unittest.main()
