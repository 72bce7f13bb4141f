"""
Read-only views of the form store.

Design Philosophy: Correct by Construction
- Frozen dataclasses, tuples instead of lists
- Values are deep copies, never references into the store
- Everything derived is computed once, when the view is built
"""
from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class FieldState:
    """What a bound input needs to render itself."""
    id: str  # display id, unique per form and mount
    field_id: str
    name: str
    value: Any
    formatted_value: Any
    is_valid: bool
    is_pristine: bool
    is_touched: bool
    is_submitted: bool
    is_validating: bool
    is_debouncing: bool
    is_processing: bool
    is_ready: bool
    should_display_error: bool
    error_messages: Tuple[str, ...]
    error_message: Optional[str]
    reset_key: int


@dataclass(frozen=True)
class StepState:
    name: str
    label: Optional[str]
    index: int  # position among all steps, -1 when not registered
    is_enabled: bool
    is_current: bool
    is_valid: bool
    is_pristine: bool
    is_validating: bool
    is_submitted: bool
    is_visited: bool


@dataclass(frozen=True)
class FormState:
    """Snapshot of the whole form, analogous to what a form-level hook exposes."""
    id: Optional[str]
    reset_key: int
    is_ready: bool
    is_submitted: bool
    is_valid: bool
    is_pristine: bool
    is_validating: bool
    steps: Tuple[StepState, ...]
    current_step: Optional[StepState]
    is_step_valid: bool
    is_step_pristine: bool
    is_step_validating: bool
    is_step_submitted: bool
    is_first_step: bool
    is_last_step: bool

    def to_dict(self) -> Dict[str, Any]:
        """Export to JSON-serializable dict (step tuples become lists)."""
        data = asdict(self)
        data['steps'] = list(data['steps'])
        return data
