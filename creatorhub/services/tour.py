"""Post-onboarding guided tour over the creator dashboard.

A linear walk through six steps, each anchored to a dashboard element and
page.  The tour only tracks where the viewer is; whoever renders it asks
``show()`` for the current step and navigates first when told to.
Dismissal is best-effort: the persistence call runs at most once per tour
and a failure is logged, never retried.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TourStep:
    id: str
    title: str
    description: str
    target: str  # CSS selector of the highlighted element
    placement: str = "bottom"
    route: str | None = None


TOUR_STEPS: tuple[TourStep, ...] = (
    TourStep(
        id="welcome",
        title="Welcome to Your Dashboard!",
        description=(
            "This is your command center. Here you'll see key stats and "
            "quick actions to manage your platform."
        ),
        target="[data-tour='dashboard-welcome']",
        route="/dashboard",
    ),
    TourStep(
        id="stats",
        title="Your Stats at a Glance",
        description=(
            "Track your members, courses, livestreams, and payment status."
        ),
        target="[data-tour='dashboard-stats']",
        route="/dashboard",
    ),
    TourStep(
        id="sidebar",
        title="Navigation Menu",
        description="Access every area of your platform from here.",
        target="[data-tour='sidebar-nav']",
        placement="right",
        route="/dashboard",
    ),
    TourStep(
        id="community",
        title="Your Community Hub",
        description=(
            "This is where your members connect. Create channels for "
            "discussions, announcements and more."
        ),
        target="[data-tour='community-header']",
        route="/dashboard/community",
    ),
    TourStep(
        id="courses",
        title="Course Builder",
        description="Create and manage video courses and their lessons.",
        target="[data-tour='courses-header']",
        route="/dashboard/courses",
    ),
    TourStep(
        id="settings",
        title="Settings & Payments",
        description=(
            "Configure your organization, connect payments and customize "
            "branding."
        ),
        target="[data-tour='settings-header']",
        route="/dashboard/settings",
    ),
)


@dataclass(frozen=True, slots=True)
class TourFrame:
    """What to render for the current step."""

    step: TourStep
    index: int
    total: int
    navigate_to: str | None  # set when the step lives on another page

    @property
    def needs_navigation(self) -> bool:
        return self.navigate_to is not None

    @property
    def progress(self) -> float:
        return (self.index + 1) / self.total


class GuidedTour:
    def __init__(
        self,
        on_dismiss: Callable[[], object],
        *,
        visible: bool = True,
        steps: Sequence[TourStep] = TOUR_STEPS,
    ) -> None:
        if not steps:
            raise ValueError("a tour needs at least one step")
        self._steps = tuple(steps)
        self._on_dismiss = on_dismiss
        self._index = 0
        self._visible = visible
        self._dismiss_sent = False

    @property
    def index(self) -> int:
        return self._index

    @property
    def visible(self) -> bool:
        return self._visible

    @property
    def current_step(self) -> TourStep:
        return self._steps[self._index]

    @property
    def is_last_step(self) -> bool:
        return self._index == len(self._steps) - 1

    def show(self, current_route: str) -> TourFrame | None:
        """Frame for the current step, or None once the tour is hidden."""
        if not self._visible:
            return None
        step = self.current_step
        navigate_to = step.route if step.route and step.route != current_route else None
        return TourFrame(
            step=step,
            index=self._index,
            total=len(self._steps),
            navigate_to=navigate_to,
        )

    def next(self) -> None:
        if not self._visible:
            return
        if self.is_last_step:
            self.dismiss()
        else:
            self._index += 1

    def prev(self) -> None:
        if self._visible and self._index > 0:
            self._index -= 1

    def dismiss(self) -> None:
        self._visible = False
        if self._dismiss_sent:
            return
        self._dismiss_sent = True
        try:
            self._on_dismiss()
        except Exception:
            logger.warning(
                "Failed to record tour dismissal at step=%s",
                self.current_step.id,
                exc_info=True,
            )
