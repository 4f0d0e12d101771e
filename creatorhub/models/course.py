from __future__ import annotations

import datetime
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4


class CourseAccessType(str, Enum):
    FREE = "FREE"
    MEMBERSHIP = "MEMBERSHIP"  # gated by tier
    PAID = "PAID"  # gated by tier, or by a one-off purchase (enrollment)


@dataclass(frozen=True, slots=True)
class Course:
    id: UUID
    organization_id: UUID
    slug: str
    title: str
    access_type: CourseAccessType = CourseAccessType.MEMBERSHIP
    access_tier_ids: frozenset[UUID] = frozenset()
    is_published: bool = False
    price: Decimal | None = None  # PAID courses only

    @staticmethod
    def new(
        *,
        organization_id: UUID,
        slug: str,
        title: str,
        access_type: CourseAccessType = CourseAccessType.MEMBERSHIP,
        access_tier_ids: frozenset[UUID] = frozenset(),
        is_published: bool = False,
        price: Decimal | None = None,
    ) -> Course:
        return Course(
            id=uuid4(),
            organization_id=organization_id,
            slug=slug,
            title=title,
            access_type=access_type,
            access_tier_ids=access_tier_ids,
            is_published=is_published,
            price=price,
        )


@dataclass(frozen=True, slots=True)
class Lesson:
    id: UUID
    course_id: UUID
    title: str
    position: int
    is_free_preview: bool = False
    video_playback_id: str | None = None  # issued by the video provider

    @staticmethod
    def new(
        *,
        course_id: UUID,
        title: str,
        position: int,
        is_free_preview: bool = False,
        video_playback_id: str | None = None,
    ) -> Lesson:
        return Lesson(
            id=uuid4(),
            course_id=course_id,
            title=title,
            position=position,
            is_free_preview=is_free_preview,
            video_playback_id=video_playback_id,
        )


@dataclass(frozen=True, slots=True)
class Enrollment:
    user_id: UUID
    course_id: UUID
    enrolled_at: int
    paid_amount: Decimal | None = None
    payment_reference: str | None = None
    progress: float = 0.0  # percent of lessons completed
    completed_at: int | None = None

    @staticmethod
    def new(
        *,
        user_id: UUID,
        course_id: UUID,
        paid_amount: Decimal | None = None,
        payment_reference: str | None = None,
    ) -> Enrollment:
        return Enrollment(
            user_id=user_id,
            course_id=course_id,
            enrolled_at=int(datetime.datetime.now(datetime.UTC).timestamp()),
            paid_amount=paid_amount,
            payment_reference=payment_reference,
        )


@dataclass(frozen=True, slots=True)
class LessonCompletion:
    user_id: UUID
    lesson_id: UUID
    completed_at: int

    @staticmethod
    def new(*, user_id: UUID, lesson_id: UUID) -> LessonCompletion:
        return LessonCompletion(
            user_id=user_id,
            lesson_id=lesson_id,
            completed_at=int(datetime.datetime.now(datetime.UTC).timestamp()),
        )
