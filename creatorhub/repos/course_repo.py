from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol
from uuid import UUID

from creatorhub.models.course import Course, Enrollment, Lesson, LessonCompletion


class CourseRepo(Protocol):
    def add(self, course: Course) -> None: ...
    def get(self, course_id: UUID) -> Course | None: ...
    def get_by_slug(self, org_id: UUID, slug: str) -> Course | None: ...
    def list_by_org(self, org_id: UUID) -> list[Course]: ...
    def add_lesson(self, lesson: Lesson) -> None: ...
    def get_lesson(self, lesson_id: UUID) -> Lesson | None: ...
    def list_lessons(self, course_id: UUID) -> list[Lesson]: ...
    def get_enrollment(self, user_id: UUID, course_id: UUID) -> Enrollment | None: ...
    def upsert_enrollment(self, enrollment: Enrollment) -> None: ...
    def mark_complete(self, completion: LessonCompletion) -> None: ...
    def unmark_complete(self, user_id: UUID, lesson_id: UUID) -> bool: ...
    def count_completed(self, user_id: UUID, lesson_ids: Iterable[UUID]) -> int: ...


class InMemoryCourseRepo:
    def __init__(self) -> None:
        self._courses: dict[UUID, Course] = {}
        self._lessons: dict[UUID, Lesson] = {}
        self._enrollments: dict[tuple[UUID, UUID], Enrollment] = {}
        self._completions: dict[tuple[UUID, UUID], LessonCompletion] = {}

    def add(self, course: Course) -> None:
        if self.get_by_slug(course.organization_id, course.slug) is not None:
            raise ValueError("course slug already exists")
        self._courses[course.id] = course

    def get(self, course_id: UUID) -> Course | None:
        return self._courses.get(course_id)

    def get_by_slug(self, org_id: UUID, slug: str) -> Course | None:
        for c in self._courses.values():
            if c.organization_id == org_id and c.slug == slug:
                return c
        return None

    def list_by_org(self, org_id: UUID) -> list[Course]:
        return [c for c in self._courses.values() if c.organization_id == org_id]

    def add_lesson(self, lesson: Lesson) -> None:
        if lesson.course_id not in self._courses:
            raise KeyError("course not found")
        self._lessons[lesson.id] = lesson

    def get_lesson(self, lesson_id: UUID) -> Lesson | None:
        return self._lessons.get(lesson_id)

    def list_lessons(self, course_id: UUID) -> list[Lesson]:
        lessons = [l for l in self._lessons.values() if l.course_id == course_id]
        return sorted(lessons, key=lambda l: l.position)

    def get_enrollment(self, user_id: UUID, course_id: UUID) -> Enrollment | None:
        return self._enrollments.get((user_id, course_id))

    def upsert_enrollment(self, enrollment: Enrollment) -> None:
        self._enrollments[(enrollment.user_id, enrollment.course_id)] = enrollment

    def mark_complete(self, completion: LessonCompletion) -> None:
        self._completions[(completion.user_id, completion.lesson_id)] = completion

    def unmark_complete(self, user_id: UUID, lesson_id: UUID) -> bool:
        return self._completions.pop((user_id, lesson_id), None) is not None

    def count_completed(self, user_id: UUID, lesson_ids: Iterable[UUID]) -> int:
        return sum((user_id, lid) in self._completions for lid in set(lesson_ids))
