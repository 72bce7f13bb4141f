"""
StepRegistry: ordered steps of a multi-step form.

Steps are kept stably sorted by ``order`` so that steps registered with equal
order stay in registration order. Navigation only ever considers enabled
steps. The current step name itself lives on the form (``FormInfo``); this
registry answers "what comes next/before" questions about it.
"""
import logging
from typing import Any, Iterator, List, Optional

from formstate.models import Step

logger = logging.getLogger(__name__)

_PATCHABLE = frozenset({'label', 'order', 'is_enabled', 'is_submitted', 'is_visited'})


class StepRegistry:

    def __init__(self):
        self._steps: List[Step] = []

    def _sort(self) -> None:
        # sorted() is stable: ties keep insertion order
        self._steps = sorted(self._steps, key=lambda step: step.order)

    def get(self, name: Optional[str]) -> Optional[Step]:
        if name is None:
            return None
        return next((step for step in self._steps if step.name == name), None)

    def __iter__(self) -> Iterator[Step]:
        return iter(list(self._steps))

    def index_of(self, name: str) -> int:
        """Position among all steps, -1 when unknown."""
        return next((i for i, step in enumerate(self._steps) if step.name == name), -1)

    def enabled(self) -> List[Step]:
        return [step for step in self._steps if step.is_enabled]

    # ========== MUTATION ==========

    def register(self, name: str, label: Optional[str] = None, order: int = 0, is_enabled: bool = True) -> Step:
        """Insert a step, or patch it when the name is already registered."""
        step = self.get(name)
        if step is None:
            step = Step(name=name, label=label, order=order, is_enabled=is_enabled)
            self._steps.append(step)
            logger.debug(f"Registered step: {name!r} order={order}")
        else:
            step.label = label
            step.order = order
            step.is_enabled = is_enabled
            logger.debug(f"Re-registered step: {name!r} order={order}")
        self._sort()
        return step

    def update(self, name: str, **patch: Any) -> bool:
        step = self.get(name)
        if step is None:
            logger.debug(f"update: unknown step {name!r}")
            return False
        unknown = set(patch) - _PATCHABLE
        if unknown:
            raise ValueError(f"Cannot update step attribute(s): {sorted(unknown)}")
        for attr, value in patch.items():
            setattr(step, attr, value)
        self._sort()
        return True

    def unregister(self, name: str) -> bool:
        before = len(self._steps)
        self._steps = [step for step in self._steps if step.name != name]
        removed = len(self._steps) != before
        if removed:
            logger.debug(f"Unregistered step: {name!r}")
        return removed

    def reset_flags(self, submitted: bool, visited: bool) -> None:
        for step in self._steps:
            if submitted:
                step.is_submitted = False
            if visited:
                step.is_visited = False

    # ========== NAVIGATION ==========

    def can_navigate_to(self, name: Optional[str]) -> bool:
        return any(step.name == name for step in self.enabled())

    def is_first(self, name: Optional[str]) -> bool:
        enabled = self.enabled()
        return bool(enabled) and enabled[0].name == name

    def is_last(self, name: Optional[str]) -> bool:
        enabled = self.enabled()
        return bool(enabled) and enabled[-1].name == name

    def next_name(self, current: Optional[str]) -> Optional[str]:
        """Enabled step after ``current``; None at the end or when current is unknown."""
        enabled = [step.name for step in self.enabled()]
        if current not in enabled:
            return None
        position = enabled.index(current)
        return enabled[position + 1] if position + 1 < len(enabled) else None

    def previous_name(self, current: Optional[str]) -> Optional[str]:
        enabled = [step.name for step in self.enabled()]
        if current not in enabled:
            return None
        position = enabled.index(current)
        return enabled[position - 1] if position > 0 else None
