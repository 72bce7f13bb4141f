"""
FieldRegistry: the table of mounted fields.

Owns the value lifecycle of every field: where its starting value comes from
on registration, how value/touch/error changes are applied, and what a reset
restores. The value trees it reads (external, kept, default, initial) belong
to the store and are shared through ``ValueSources``.

Thread safety: Not thread-safe (the store is the single writer).
"""
import logging
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence

from formstate.config import ResetOptions, is_reset_allowed
from formstate.models import Field, ValueOrUpdater, ValueSources, identity, resolve_update
from formstate.validations import RequiredLike, Validation, get_field_validations_errors
from formstate.value_paths import (
    UNSET,
    clone_values,
    fill_placeholders,
    get_value,
    is_missing,
    materialize,
    merge_values,
    omit_value,
    parse_values,
    placeholder_count,
    set_value,
)

logger = logging.getLogger(__name__)

ValueChangeCallback = Callable[[Any, Any], None]

# Field attributes update() may touch; identity is fixed at registration
_PATCHABLE = frozenset({
    'name', 'step_name', 'default_value', 'format_value', 'required', 'validations',
    'is_touched', 'is_pristine', 'is_validating', 'is_debouncing',
    'external_errors', 'validations_async_errors',
})
# Patching any of these invalidates formatted_value and the sync errors
_REVALIDATE_ON = frozenset({'format_value', 'required', 'validations'})


class FieldRegistry:
    """Mapping of field_id -> Field with the per-field mutators."""

    def __init__(self, sources: ValueSources):
        self._fields: Dict[str, Field] = {}
        self._sources = sources

    # ========== LOOKUP ==========

    def get(self, field_id: str) -> Optional[Field]:
        return self._fields.get(field_id)

    def __iter__(self) -> Iterator[Field]:
        return iter(list(self._fields.values()))

    def by_name(self, name: str) -> List[Field]:
        return [f for f in self._fields.values() if f.name == name]

    # ========== VALIDATION ==========

    @staticmethod
    def _apply_value(field: Field, value: Any) -> None:
        """Set value, recompute formatted value and sync errors."""
        field.value = value
        field.formatted_value = field.format_value(value)
        errors = get_field_validations_errors(
            value, field.formatted_value, field.required, field.validations
        )
        field.required_errors = errors.required_errors
        field.validations_errors = errors.validations_errors

    # ========== REGISTRATION ==========

    def register(
        self,
        field_id: str,
        name: str,
        value: Any = None,
        step_name: Optional[str] = None,
        default_value: Any = None,
        format_value: Optional[Callable[[Any], Any]] = None,
        required: RequiredLike = None,
        validations: Optional[Sequence[Validation]] = None,
    ) -> Field:
        """Register (or re-register) a field and resolve its starting value.

        The first candidate that is neither UNSET nor None wins:
            1. pending external value for the name (set_values before mount)
            2. explicit ``value``
            3. previous value of this field_id (remount without reset)
            4. kept value from a persisted unregistration
            5. initial value from the config
            6. store default value (set_default_values)
            7. local ``default_value``
            8. None

        Every tree holding an entry for ``name`` has it consumed, so a second
        field with the same name does not inherit the same source.

        Args:
            field_id: Unique id of this mount.
            name: Dotted path of the value.
            value: Explicit value, wins over everything but external values.
            step_name: Owning step, if any.
            default_value: Local default, also the last resort of reset.
            format_value: Formatter producing formatted_value (identity default).
            required: Required rule or bare message.
            validations: Sync validation rules.

        Returns:
            The stored Field record.
        """
        sources = self._sources
        previous = self._fields.get(field_id)

        candidates = (
            get_value(sources.external_values, name),
            value,
            previous.value if previous is not None else UNSET,
            get_value(sources.keep_values, name),
            get_value(sources.initial_values, name),
            get_value(sources.default_values, name),
            default_value,
        )
        resolved = next((c for c in candidates if not is_missing(c)), None)
        resolved = materialize(resolved)

        sources.external_values = omit_value(sources.external_values, name)
        sources.keep_values = omit_value(sources.keep_values, name)
        sources.initial_values = omit_value(sources.initial_values, name)
        sources.default_values = omit_value(sources.default_values, name)

        field = previous if previous is not None else Field(field_id=field_id, name=name)
        field.name = name
        field.step_name = step_name
        field.default_value = default_value
        field.format_value = format_value or identity
        field.required = required
        field.validations = tuple(validations or ())
        self._apply_value(field, resolved)
        self._fields[field_id] = field

        logger.debug(f"Registered field: id={field_id} name={name!r} value={resolved!r}")
        return field

    def unregister(self, field_id: str, persist: bool = False, keep_value: bool = False) -> bool:
        """Remove a field, optionally remembering its value for a later mount.

        ``keep_value`` writes the current value to keep_values whether or not
        the record itself is kept (``persist``).
        """
        field = self._fields.get(field_id)
        if field is None:
            logger.debug(f"unregister: unknown field {field_id}")
            return False

        if keep_value:
            self._sources.keep_values = set_value(
                self._sources.keep_values, field.name, clone_values(field.value)
            )
        if not persist:
            del self._fields[field_id]
        logger.debug(f"Unregistered field: id={field_id} persist={persist} keep_value={keep_value}")
        return True

    def update(self, field_id: str, **patch: Any) -> bool:
        """Merge attributes into a field (async validation state, name, step...)."""
        field = self._fields.get(field_id)
        if field is None:
            logger.debug(f"update: unknown field {field_id}")
            return False

        unknown = set(patch) - _PATCHABLE
        if unknown:
            raise ValueError(f"Cannot update field attribute(s): {sorted(unknown)}")

        for attr, attr_value in patch.items():
            if attr == 'format_value':
                attr_value = attr_value or identity
            elif attr == 'validations':
                attr_value = tuple(attr_value or ())
            elif attr in ('external_errors', 'validations_async_errors'):
                attr_value = list(attr_value or ())
            setattr(field, attr, attr_value)

        if _REVALIDATE_ON & patch.keys():
            self._apply_value(field, field.value)
        return True

    # ========== VALUE / TOUCH ==========

    def set_value(
        self,
        field_id: str,
        value_or_updater: ValueOrUpdater,
        on_value_change: Optional[ValueChangeCallback] = None,
        format_value: Optional[Callable[[Any], Any]] = None,
    ) -> bool:
        """User edit: new value, fresh errors, no longer pristine.

        ``on_value_change(value, formatted_value)`` is called after the write;
        it is how the async validation scheduler learns about edits.
        """
        field = self._fields.get(field_id)
        if field is None:
            logger.debug(f"set_value: unknown field {field_id}")
            return False

        if format_value is not None:
            field.format_value = format_value
        new_value = resolve_update(field.value, value_or_updater)
        self._apply_value(field, new_value)
        field.external_errors = []
        field.is_pristine = False

        if on_value_change is not None:
            on_value_change(field.value, field.formatted_value)
        return True

    def set_touched(self, field_id: str, touched: bool) -> bool:
        field = self._fields.get(field_id)
        if field is None:
            logger.debug(f"set_touched: unknown field {field_id}")
            return False
        field.is_touched = touched
        return True

    # ========== INJECTION ==========

    def inject_values(self, values: Dict[str, Any], keep_pristine: bool = False) -> None:
        """Write values into mounted fields; park the rest for later mounts.

        Dotted keys are expanded first. Each mounted field whose name resolves
        gets the value (errors recomputed, external errors cleared) and the
        entry is consumed. Whatever is left is merged into external_values,
        where rule 1 of register() picks it up.
        """
        remaining = parse_values(clone_values(values))
        for field in self:
            new_value = get_value(remaining, field.name)
            if new_value is UNSET:
                continue
            slots = placeholder_count(new_value)
            if slots and isinstance(field.value, list) and slots == len(field.value):
                # Whole-array field receiving a collection insertion
                new_value = fill_placeholders(new_value, field.value)
            self._apply_value(field, materialize(new_value))
            field.external_errors = []
            if not keep_pristine:
                field.is_pristine = False
            remaining = omit_value(remaining, field.name)

        self._sources.external_values = merge_values(self._sources.external_values, remaining)

    def inject_default_values(self, values: Dict[str, Any]) -> None:
        """Apply defaults to mounted fields; remember them for mounts and resets.

        Pristine state is left alone. Unconsumed entries go to default_values
        (rule 6 of register()); the full tree is also merged into
        reset_default_values, which reset() reads.
        """
        parsed = parse_values(clone_values(values))
        remaining = parsed
        for field in self:
            new_value = get_value(remaining, field.name)
            if new_value is UNSET:
                continue
            self._apply_value(field, materialize(new_value))
            field.external_errors = []
            remaining = omit_value(remaining, field.name)

        self._sources.default_values = merge_values(self._sources.default_values, remaining)
        self._sources.reset_default_values = merge_values(
            self._sources.reset_default_values, parsed
        )

    def inject_errors(self, errors: Dict[str, Any]) -> None:
        """Attach external error messages; non-string entries are ignored."""
        parsed = parse_values(errors)
        for field in self:
            error = get_value(parsed, field.name)
            if isinstance(error, str):
                field.external_errors = [error]

    # ========== RESET ==========

    def reset_field(
        self,
        field: Field,
        initial_values: Dict[str, Any],
        options: Optional[ResetOptions] = None,
    ) -> None:
        """Reset one field; facets outside ``options`` keep their current state.

        Reset value precedence: initial value > stored reset default > the
        field's own default_value.
        """
        if is_reset_allowed('values', options):
            candidates = (
                get_value(initial_values, field.name),
                get_value(self._sources.reset_default_values, field.name),
            )
            reset_value = next((c for c in candidates if not is_missing(c)), field.default_value)
            self._apply_value(field, materialize(reset_value))
            field.external_errors = []
        if is_reset_allowed('pristine', options):
            field.is_pristine = True
        if is_reset_allowed('touched', options):
            field.is_touched = False
        if is_reset_allowed('validating', options):
            field.is_validating = False
        if is_reset_allowed('debouncing', options):
            field.is_debouncing = False

    def reset_all(self, initial_values: Dict[str, Any], options: Optional[ResetOptions] = None) -> Dict[str, Any]:
        """Reset every field against ``initial_values``.

        Returns:
            ``initial_values`` minus the names of the mounted fields.
        """
        remaining = initial_values
        for field in self:
            self.reset_field(field, remaining, options)
            remaining = omit_value(remaining, field.name)
        return remaining
