"""Course, lesson and enrollment endpoints.

Member-facing routes run on the tenant host:
  GET  /v1/courses                          -> catalog, locked ones flagged
  GET  /v1/courses/{slug}/lessons/{id}      -> lesson player (free previews open)
  POST /v1/courses/{slug}/enroll            -> 201 Enrolled, 403 + upgrade prompt
  POST /v1/courses/{slug}/lessons/{id}/complete   -> progress; DELETE undoes it

Paid courses are bought through checkout; the billing webhook writes the
enrollment that unlocks them.
"""

from __future__ import annotations

import datetime
import logging
from dataclasses import replace
from decimal import Decimal, InvalidOperation
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from creatorhub.api.dependencies import (
    OrgAccess,
    Viewer,
    check_access,
    locked,
    require_member,
    require_org_role,
    resolve_viewer,
)
from creatorhub.models.course import (
    Course,
    CourseAccessType,
    Enrollment,
    Lesson,
    LessonCompletion,
)
from creatorhub.models.membership import Role
from creatorhub.repos.store import course_repo, tier_repo
from creatorhub.services.entitlements import (
    can_access_course,
    can_view_lesson,
)
from creatorhub.services.subdomains import slugify

logger = logging.getLogger(__name__)

router = APIRouter(tags=["courses"])

_require_admin = require_org_role(Role.ADMIN)


# --- Pydantic schemas ---


class CourseOut(BaseModel):
    id: str
    slug: str
    title: str
    access_type: str
    price: str | None
    locked: bool
    enrolled: bool


class LessonOut(BaseModel):
    id: str
    course_id: str
    title: str
    position: int
    is_free_preview: bool
    playback_id: str | None


class EnrollmentOut(BaseModel):
    user_id: str
    course_id: str
    enrolled_at: int
    progress: float
    completed_at: int | None


class CompletionOut(BaseModel):
    lesson_id: str
    completed: bool
    enrollment: EnrollmentOut


class CourseCreateIn(BaseModel):
    title: str = Field(min_length=2, max_length=255)
    slug: str | None = None
    access_type: CourseAccessType = CourseAccessType.MEMBERSHIP
    access_tier_ids: list[UUID] = []
    is_published: bool = False
    price: Decimal | str | None = None


class LessonCreateIn(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    is_free_preview: bool = False
    video_playback_id: str | None = None


def _enrolled(viewer: Viewer, course: Course) -> bool:
    if viewer.user_id is None:
        return False
    return course_repo.get_enrollment(viewer.user_id, course.id) is not None


def _course_out(course: Course, viewer: Viewer) -> CourseOut:
    enrolled = _enrolled(viewer, course)
    unlocked = can_access_course(
        course, viewer.membership, viewer.is_owner, enrolled=enrolled
    )
    return CourseOut(
        id=str(course.id),
        slug=course.slug,
        title=course.title,
        access_type=course.access_type.value,
        price=str(course.price) if course.price is not None else None,
        locked=not unlocked,
        enrolled=enrolled,
    )


def _lesson_out(lesson: Lesson) -> LessonOut:
    return LessonOut(
        id=str(lesson.id),
        course_id=str(lesson.course_id),
        title=lesson.title,
        position=lesson.position,
        is_free_preview=lesson.is_free_preview,
        playback_id=lesson.video_playback_id,
    )


def _published_course(viewer: Viewer, slug: str) -> Course:
    course = course_repo.get_by_slug(viewer.organization.id, slug)
    # Drafts are invisible to members; the dashboard is where they live.
    if course is None or not (course.is_published or viewer.is_owner):
        raise HTTPException(status_code=404, detail="course not found")
    return course


def _course_lesson(
    viewer: Viewer, slug: str, lesson_id: UUID
) -> tuple[Course, Lesson]:
    course = _published_course(viewer, slug)
    lesson = course_repo.get_lesson(lesson_id)
    if lesson is None or lesson.course_id != course.id:
        raise HTTPException(status_code=404, detail="lesson not found")
    return course, lesson


def _user_id(viewer: Viewer) -> UUID:
    if viewer.user_id is None:
        raise HTTPException(status_code=500, detail="viewer not resolved")
    return viewer.user_id


def _enrollment_out(e: Enrollment) -> EnrollmentOut:
    return EnrollmentOut(
        user_id=str(e.user_id),
        course_id=str(e.course_id),
        enrolled_at=e.enrolled_at,
        progress=e.progress,
        completed_at=e.completed_at,
    )


def _refresh_progress(user_id: UUID, course: Course) -> Enrollment:
    """Recount completed lessons into the enrollment's progress percent.

    ``completed_at`` is stamped when progress first reaches 100 and
    cleared again if a lesson is un-completed.
    """
    enrollment = course_repo.get_enrollment(user_id, course.id)
    if enrollment is None:
        raise HTTPException(status_code=403, detail="Not enrolled")
    lesson_ids = [l.id for l in course_repo.list_lessons(course.id)]
    if not lesson_ids:
        return enrollment

    done = course_repo.count_completed(user_id, lesson_ids)
    progress = round(done / len(lesson_ids) * 100, 2)
    completed_at = None
    if progress >= 100:
        completed_at = enrollment.completed_at or int(
            datetime.datetime.now(datetime.UTC).timestamp()
        )
    updated = replace(enrollment, progress=progress, completed_at=completed_at)
    course_repo.upsert_enrollment(updated)
    return updated


def _parse_price(raw: Decimal | str | None) -> Decimal | None:
    if raw is None:
        return None
    try:
        price = Decimal(str(raw).strip())
    except InvalidOperation:
        raise HTTPException(status_code=422, detail="invalid price") from None
    if not price.is_finite() or price < 0:
        raise HTTPException(status_code=422, detail="invalid price")
    return price.quantize(Decimal("0.01"))


# --- Member-facing endpoints ---


@router.get("/v1/courses", response_model=list[CourseOut])
def list_courses(
    viewer: Annotated[Viewer, Depends(resolve_viewer)],
) -> list[CourseOut]:
    courses = [
        c for c in course_repo.list_by_org(viewer.organization.id) if c.is_published
    ]
    courses.sort(key=lambda c: c.title.lower())
    return [_course_out(c, viewer) for c in courses]


@router.get(
    "/v1/courses/{slug}/lessons/{lesson_id}",
    response_model=LessonOut,
)
def get_lesson(
    slug: str,
    lesson_id: UUID,
    viewer: Annotated[Viewer, Depends(resolve_viewer)],
) -> LessonOut:
    course, lesson = _course_lesson(viewer, slug, lesson_id)
    granted = can_view_lesson(
        lesson,
        course,
        viewer.membership,
        viewer.is_owner,
        enrolled=_enrolled(viewer, course),
    )
    if not check_access("lesson", granted, viewer, lesson):
        raise locked(f"Upgrade your membership to watch {course.title}")
    return _lesson_out(lesson)


@router.post(
    "/v1/courses/{slug}/enroll",
    response_model=EnrollmentOut,
    status_code=status.HTTP_201_CREATED,
)
def enroll_in_course(
    slug: str,
    viewer: Annotated[Viewer, Depends(require_member)],
) -> EnrollmentOut:
    course = _published_course(viewer, slug)
    if _enrolled(viewer, course):
        raise HTTPException(status_code=409, detail="already enrolled")

    granted = can_access_course(course, viewer.membership, viewer.is_owner)
    if not check_access("course", granted, viewer, course):
        if course.access_type is CourseAccessType.PAID:
            raise locked(f"Purchase {course.title} or upgrade to enroll")
        raise locked(f"Upgrade your membership to enroll in {course.title}")

    enrollment = Enrollment.new(user_id=_user_id(viewer), course_id=course.id)
    course_repo.upsert_enrollment(enrollment)
    logger.info("Enrolled user=%s course=%s", viewer.user_id, course.id)
    return _enrollment_out(enrollment)


@router.post(
    "/v1/courses/{slug}/lessons/{lesson_id}/complete",
    response_model=CompletionOut,
)
def complete_lesson(
    slug: str,
    lesson_id: UUID,
    viewer: Annotated[Viewer, Depends(require_member)],
) -> CompletionOut:
    """Mark a lesson done.  Free courses enroll the viewer on first use."""
    course, lesson = _course_lesson(viewer, slug, lesson_id)
    user_id = _user_id(viewer)
    if course_repo.get_enrollment(user_id, course.id) is None:
        if course.access_type is not CourseAccessType.FREE:
            raise HTTPException(status_code=403, detail="Not enrolled")
        course_repo.upsert_enrollment(
            Enrollment.new(user_id=user_id, course_id=course.id)
        )
        logger.info("Enrolled user=%s course=%s", user_id, course.id)

    course_repo.mark_complete(
        LessonCompletion.new(user_id=user_id, lesson_id=lesson.id)
    )
    enrollment = _refresh_progress(user_id, course)
    logger.info(
        "Completed lesson=%s user=%s progress=%s",
        lesson.id,
        user_id,
        enrollment.progress,
    )
    return CompletionOut(
        lesson_id=str(lesson.id),
        completed=True,
        enrollment=_enrollment_out(enrollment),
    )


@router.delete(
    "/v1/courses/{slug}/lessons/{lesson_id}/complete",
    response_model=CompletionOut,
)
def uncomplete_lesson(
    slug: str,
    lesson_id: UUID,
    viewer: Annotated[Viewer, Depends(require_member)],
) -> CompletionOut:
    course, lesson = _course_lesson(viewer, slug, lesson_id)
    user_id = _user_id(viewer)
    if course_repo.get_enrollment(user_id, course.id) is None:
        raise HTTPException(status_code=403, detail="Not enrolled")

    course_repo.unmark_complete(user_id, lesson.id)
    enrollment = _refresh_progress(user_id, course)
    return CompletionOut(
        lesson_id=str(lesson.id),
        completed=False,
        enrollment=_enrollment_out(enrollment),
    )


# --- Dashboard ---


@router.post(
    "/v1/orgs/{org_id}/courses",
    response_model=CourseOut,
    status_code=status.HTTP_201_CREATED,
)
def create_course(
    body: CourseCreateIn,
    access: Annotated[OrgAccess, Depends(_require_admin)],
) -> CourseOut:
    oid = access.organization.id
    slug = slugify(body.slug or body.title)
    if not slug:
        raise HTTPException(status_code=422, detail="invalid course slug")
    if course_repo.get_by_slug(oid, slug) is not None:
        raise HTTPException(status_code=409, detail="course slug already taken")

    price = _parse_price(body.price)
    if body.access_type is CourseAccessType.PAID and not price:
        raise HTTPException(status_code=422, detail="paid courses need a price")

    for tier_id in body.access_tier_ids:
        tier = tier_repo.get(tier_id)
        if tier is None or tier.organization_id != oid:
            raise HTTPException(status_code=422, detail="unknown tier")

    course = Course.new(
        organization_id=oid,
        slug=slug,
        title=body.title.strip(),
        access_type=body.access_type,
        access_tier_ids=frozenset(body.access_tier_ids),
        is_published=body.is_published,
        price=price if body.access_type is CourseAccessType.PAID else None,
    )
    course_repo.add(course)
    logger.info("Created course=%s slug=%s org=%s", course.id, slug, oid)
    return CourseOut(
        id=str(course.id),
        slug=course.slug,
        title=course.title,
        access_type=course.access_type.value,
        price=str(course.price) if course.price is not None else None,
        locked=False,
        enrolled=False,
    )


@router.post(
    "/v1/orgs/{org_id}/courses/{course_id}/lessons",
    response_model=LessonOut,
    status_code=status.HTTP_201_CREATED,
)
def create_lesson(
    course_id: UUID,
    body: LessonCreateIn,
    access: Annotated[OrgAccess, Depends(_require_admin)],
) -> LessonOut:
    course = course_repo.get(course_id)
    if course is None or course.organization_id != access.organization.id:
        raise HTTPException(status_code=404, detail="course not found")

    lesson = Lesson.new(
        course_id=course.id,
        title=body.title.strip(),
        position=len(course_repo.list_lessons(course.id)),
        is_free_preview=body.is_free_preview,
        video_playback_id=body.video_playback_id,
    )
    course_repo.add_lesson(lesson)
    return _lesson_out(lesson)
