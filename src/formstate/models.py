"""
Internal entity records for the form store.

These are the mutable rows held by the registries. They never leave the
store: readers get the frozen views from ``snapshot_model`` instead.
"""
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Generic, List, Optional, Sequence, TypeVar, Union

from formstate.validations import RequiredLike, Validation

T = TypeVar('T')


def identity(value: Any) -> Any:
    return value


@dataclass(frozen=True)
class Updater(Generic[T]):
    """Relative update: the new value is ``fn(previous)``.

    Setters accept either a literal or an ``Updater``; wrapping keeps literal
    callables (e.g. a function stored as a field value) unambiguous.

    Example:
        store.set_field_value(field_id, Updater(lambda checked: not checked))
    """
    fn: Callable[[T], T]


ValueOrUpdater = Union[Updater, Any]


def resolve_update(previous: Any, value_or_updater: ValueOrUpdater) -> Any:
    if isinstance(value_or_updater, Updater):
        return value_or_updater.fn(previous)
    return value_or_updater


@dataclass
class Field:
    """One mounted input's value, validation and interaction state.

    ``field_id`` is unique per mount; ``name`` is a dotted path into the form
    values and may be shared by several alias fields.
    """
    field_id: str
    name: str
    value: Any = None
    formatted_value: Any = None
    default_value: Any = None
    format_value: Callable[[Any], Any] = identity
    required: RequiredLike = None
    validations: Sequence[Validation] = ()
    step_name: Optional[str] = None
    is_touched: bool = False
    is_pristine: bool = True
    is_validating: bool = False
    is_debouncing: bool = False
    external_errors: List[str] = field(default_factory=list)
    required_errors: List[str] = field(default_factory=list)
    validations_errors: List[str] = field(default_factory=list)
    validations_async_errors: List[str] = field(default_factory=list)


@dataclass
class Step:
    name: str
    label: Optional[str] = None
    order: int = 0
    is_enabled: bool = True
    is_submitted: bool = False
    is_visited: bool = False


@dataclass
class FormInfo:
    """Form-wide singleton state. ``reset_key`` only ever increases."""
    id: Optional[str] = None
    reset_key: int = 0
    is_submitted: bool = False
    current_step_name: Optional[str] = None
    initial_step_name: Optional[str] = None


@dataclass
class ValueSources:
    """Value trees consulted when a field registers or resets.

    - external_values: injected by ``set_values`` for fields not mounted yet
    - keep_values: values of fields unregistered with ``keep_value``
    - default_values: injected by ``set_default_values``, consumed on register
    - reset_default_values: every default ever injected, read on reset
    - initial_values: copy of the config's initial values, consumed on register
    """
    external_values: Dict[str, Any] = field(default_factory=dict)
    keep_values: Dict[str, Any] = field(default_factory=dict)
    default_values: Dict[str, Any] = field(default_factory=dict)
    reset_default_values: Dict[str, Any] = field(default_factory=dict)
    initial_values: Dict[str, Any] = field(default_factory=dict)
