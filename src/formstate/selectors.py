"""
Derived state: validity, pristine and processing rollups plus the read views.

All functions are pure over the records they are given. Field level is the
base case; steps roll up the fields whose ``step_name`` matches, the form rolls
up every field. Validity and pristine are conjunctions, validating and
processing are disjunctions.
"""
from typing import Any, Dict, Iterable, List, Optional

from formstate.models import Field, FormInfo, Step
from formstate.snapshot_model import FieldState, FormState, StepState
from formstate.step_registry import StepRegistry
from formstate.value_paths import materialize, set_value

# ========== FIELD ==========


def field_is_valid(field: Field) -> bool:
    return not (
        field.external_errors
        or field.required_errors
        or field.validations_errors
        or field.validations_async_errors
    )


def field_is_pristine(field: Field) -> bool:
    return field.is_pristine


def field_is_validating(field: Field) -> bool:
    return field.is_validating


def field_is_debouncing(field: Field) -> bool:
    return field.is_debouncing


def field_is_processing(field: Field) -> bool:
    return field.is_validating or field.is_debouncing


def field_is_ready(field: Field) -> bool:
    return not field_is_processing(field)


def field_error_messages(field: Field) -> List[str]:
    """External, required, sync, async, in that order; empty messages dropped."""
    return [
        message
        for group in (
            field.external_errors,
            field.required_errors,
            field.validations_errors,
            field.validations_async_errors,
        )
        for message in group
        if message
    ]


def field_display_id(form_id: Optional[str], field: Field) -> str:
    form_part = f"-{form_id}" if form_id else ""
    return f"formstate{form_part}-field-{field.name}__{field.field_id}"


# ========== ROLLUPS ==========


def fields_are_valid(fields: Iterable[Field]) -> bool:
    return all(field_is_valid(f) for f in fields)


def fields_are_pristine(fields: Iterable[Field]) -> bool:
    return all(field_is_pristine(f) for f in fields)


def fields_are_validating(fields: Iterable[Field]) -> bool:
    return any(field_is_validating(f) for f in fields)


def fields_are_processing(fields: Iterable[Field]) -> bool:
    return any(field_is_processing(f) for f in fields)


def _step_fields(step_name: str, fields: Iterable[Field]) -> List[Field]:
    return [f for f in fields if f.step_name == step_name]


def step_is_valid(step_name: str, fields: Iterable[Field]) -> bool:
    return fields_are_valid(_step_fields(step_name, fields))


def step_is_pristine(step_name: str, fields: Iterable[Field]) -> bool:
    return fields_are_pristine(_step_fields(step_name, fields))


def step_is_validating(step_name: str, fields: Iterable[Field]) -> bool:
    return fields_are_validating(_step_fields(step_name, fields))


def step_is_processing(step_name: str, fields: Iterable[Field], ready: bool = True) -> bool:
    return not ready or fields_are_processing(_step_fields(step_name, fields))


def form_is_processing(fields: Iterable[Field], ready: bool = True) -> bool:
    return not ready or fields_are_processing(fields)


def get_form_values(fields: Iterable[Field]) -> Dict[str, Any]:
    """Nested value tree built from every field's formatted value.

    Alias fields write to the same path; the last registered wins.
    """
    values: Dict[str, Any] = {}
    for field in fields:
        values = set_value(values, field.name, materialize(field.formatted_value))
    return materialize(values)


# ========== VIEWS ==========


def step_view(form: FormInfo, steps: StepRegistry, fields: Iterable[Field], step: Step) -> StepState:
    fields = list(fields)
    return StepState(
        name=step.name,
        label=step.label,
        index=steps.index_of(step.name),
        is_enabled=step.is_enabled,
        is_current=form.current_step_name == step.name,
        is_valid=step_is_valid(step.name, fields),
        is_pristine=step_is_pristine(step.name, fields),
        is_validating=step_is_validating(step.name, fields),
        is_submitted=step.is_submitted or form.is_submitted,
        is_visited=step.is_visited,
    )


def field_view(form: FormInfo, steps: StepRegistry, field: Field) -> FieldState:
    """Exposed state of one field.

    Errors are only displayed once nothing is pending for the field, and only
    after the user changed it or its step (or the form) was submitted.
    """
    step = steps.get(field.step_name)
    is_submitted = form.is_submitted or bool(step is not None and step.is_submitted)
    is_valid = field_is_valid(field)
    is_processing = field_is_processing(field)
    messages = tuple(field_error_messages(field))
    return FieldState(
        id=field_display_id(form.id, field),
        field_id=field.field_id,
        name=field.name,
        value=materialize(field.value),
        formatted_value=materialize(field.formatted_value),
        is_valid=is_valid,
        is_pristine=field_is_pristine(field),
        is_touched=field.is_touched,
        is_submitted=is_submitted,
        is_validating=field_is_validating(field),
        is_debouncing=field_is_debouncing(field),
        is_processing=is_processing,
        is_ready=field_is_ready(field),
        should_display_error=(
            not is_processing
            and not is_valid
            and ((field.is_touched and not field.is_pristine) or is_submitted)
        ),
        error_messages=messages,
        error_message=messages[0] if messages else None,
        reset_key=form.reset_key,
    )


def form_view(form: FormInfo, steps: StepRegistry, fields: Iterable[Field], ready: bool = True) -> FormState:
    fields = list(fields)
    step_states = tuple(step_view(form, steps, fields, step) for step in steps)
    current = next((s for s in step_states if s.name == form.current_step_name), None)
    return FormState(
        id=form.id,
        reset_key=form.reset_key,
        is_ready=not form_is_processing(fields, ready),
        is_submitted=form.is_submitted,
        is_valid=fields_are_valid(fields),
        is_pristine=fields_are_pristine(fields),
        is_validating=fields_are_validating(fields),
        steps=step_states,
        current_step=current,
        is_step_valid=current.is_valid if current else True,
        is_step_pristine=current.is_pristine if current else True,
        is_step_validating=current.is_validating if current else False,
        is_step_submitted=current.is_submitted if current else False,
        is_first_step=current is not None and steps.is_first(current.name),
        is_last_step=current is not None and steps.is_last(current.name),
    )
