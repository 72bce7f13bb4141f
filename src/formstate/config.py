"""
Form configuration and reset scoping.

``FormConfig`` is what the host application hands to the store: initial values,
the initial step and the submit callbacks. ``ResetOptions`` selects which
facets a reset touches.
"""
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, FrozenSet, Iterable, Optional

# Callbacks receive (form_values, form_state)
SubmitCallback = Callable[[Dict[str, Any], Any], None]

RESET_FACETS: FrozenSet[str] = frozenset({
    'values',
    'pristine',
    'touched',
    'validating',
    'debouncing',
    'submitted',
    'visited',
    'current_step',
    'reset_key',
})


@dataclass
class FormConfig:
    initial_values: Dict[str, Any] = field(default_factory=dict)
    initial_step_name: Optional[str] = None
    on_submit: Optional[SubmitCallback] = None
    on_valid_submit: Optional[SubmitCallback] = None
    on_invalid_submit: Optional[SubmitCallback] = None


def _check_facets(facets: Optional[Iterable[str]], argument: str) -> Optional[FrozenSet[str]]:
    if facets is None:
        return None
    facets = frozenset(facets)
    unknown = facets - RESET_FACETS
    if unknown:
        raise ValueError(f"Unknown reset facet(s) in {argument}: {sorted(unknown)}")
    return facets


@dataclass(frozen=True)
class ResetOptions:
    """Reset scope.

    With neither list every facet is reset. ``only`` restricts the reset to the
    named facets, ``exclude`` resets everything but them.

    Example:
        ResetOptions(exclude=['values'])   # clear flags, keep entered values
    """
    only: Optional[FrozenSet[str]] = None
    exclude: Optional[FrozenSet[str]] = None

    def __post_init__(self):
        if self.only is not None and self.exclude is not None:
            raise ValueError("ResetOptions accepts 'only' or 'exclude', not both")
        object.__setattr__(self, 'only', _check_facets(self.only, 'only'))
        object.__setattr__(self, 'exclude', _check_facets(self.exclude, 'exclude'))


def is_reset_allowed(facet: str, options: Optional[ResetOptions] = None) -> bool:
    if facet not in RESET_FACETS:
        raise ValueError(f"Unknown reset facet: {facet!r}")
    if options is None:
        return True
    if options.only is not None:
        return facet in options.only
    if options.exclude is not None:
        return facet not in options.exclude
    return True
