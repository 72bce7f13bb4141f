"""
FormStore: the form controller and single writer of form state.

The store owns the field, step and collection registries plus the form-wide
state, and exposes every mutation as an action method. Readers never get the
internal records: ``get_form_state()``, ``get_step_state()`` and
``get_field_state()`` return frozen snapshots built by ``selectors``.

Each action runs in a transaction (see ``scheduler.EffectQueue``). When the
outermost transaction commits, the change token is incremented, listeners are
notified, and deferred effects (the value write that follows a collection
insert) run.

Thread safety: Not thread-safe (all operations expected on one thread).
"""
from contextlib import contextmanager
from dataclasses import dataclass
import logging
from typing import Any, Callable, Dict, Generator, Iterable, List, Optional, Sequence, Tuple

from formstate.collection_registry import CollectionRegistry, KeysOrUpdater
from formstate.config import FormConfig, ResetOptions, is_reset_allowed
from formstate.field_registry import FieldRegistry, ValueChangeCallback
from formstate.models import FormInfo, ValueOrUpdater, ValueSources
from formstate.scheduler import EffectQueue
from formstate.selectors import (
    field_view,
    fields_are_valid,
    form_is_processing,
    form_view,
    get_form_values,
    step_is_processing,
    step_is_valid,
    step_view,
)
from formstate.snapshot_model import FieldState, FormState, StepState
from formstate.step_registry import StepRegistry
from formstate.validations import RequiredLike, Validation
from formstate.value_paths import clone_values, get_value, omit_value, parse_values

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GateState:
    """Readiness/connection latches, as seen by gate observers."""
    ready: bool
    connected: bool

    @property
    def is_open(self) -> bool:
        return self.ready and self.connected


# Observers receive (previous, current) after a gate change is committed
GateObserver = Callable[[GateState, GateState], None]


class FormStore:
    """State store of one form.

    Example:
        store = FormStore(form_id="signup", config=FormConfig(initial_values={"email": "a@b.c"}))
        store.register_step("account")
        store.register_field("f1", "email", step_name="account", required="Required")
        store.set_field_value("f1", "")
        store.get_field_state("f1").error_message   # "Required"
    """

    def __init__(
        self,
        form_id: Optional[str] = None,
        config: Optional[FormConfig] = None,
        ready: bool = True,
        connected: bool = False,
        id_factory: Optional[Callable[[], str]] = None,
    ):
        """
        Args:
            form_id: Form id, used in field display ids.
            config: Initial values, initial step and submit callbacks.
            ready: Readiness gate; submit is refused while False.
            connected: Connection gate of the host binding.
            id_factory: Generator of collection item keys (uuid hex by default).
        """
        self._config = config or FormConfig()
        self._form = FormInfo(id=form_id)
        self._sources = ValueSources(initial_values=self._load_initial_values())
        self._fields = FieldRegistry(self._sources)
        self._steps = StepRegistry()
        self._collections = CollectionRegistry(id_factory)
        self._ready = ready
        self._connected = connected

        # Change notification (token-based, like a cache invalidation counter)
        self._token = 0
        self._change_callbacks: List[Callable[[], None]] = []
        self._form_state_cache: Optional[Tuple[int, FormState]] = None

        self._gate_observers: List[GateObserver] = [self._reset_on_gate_open]
        self._effects = EffectQueue(on_commit=self._on_commit)

    def _load_initial_values(self) -> Dict[str, Any]:
        return parse_values(clone_values(self._config.initial_values or {}))

    # ========== TRANSACTIONS AND CHANGE NOTIFICATION ==========

    @contextmanager
    def batch(self, label: str = "batch") -> Generator[None, None, None]:
        """Group several actions into one commit.

        Deferred effects queued inside the block (collection value writes) run
        after it exits.

        Example:
            with store.batch("add member"):
                store.append_collection_value("members", {"name": "Ada"})
                store.get_collection_keys("members")  # already has the new key
            # the value write has run here
        """
        with self._effects.transaction(label):
            yield

    def _transaction(self, label: str):
        return self._effects.transaction(label)

    @property
    def token(self) -> int:
        """Change counter, incremented on every committed transaction."""
        return self._token

    @property
    def pending_effects(self) -> List[str]:
        """Labels of the deferred effects waiting for the current commit."""
        return self._effects.pending_labels

    def _on_commit(self, label: str) -> None:
        self._token += 1
        logger.debug(f"Committed {label!r} (token={self._token})")
        self._notify_change()

    def _notify_change(self) -> None:
        for callback in list(self._change_callbacks):
            try:
                callback()
            except Exception as e:
                logger.warning(f"Change callback failed: {e}")

    def connect_listener(self, callback: Callable[[], None]) -> None:
        """Call ``callback`` after every committed change.

        Listeners may call actions (e.g. rename collection item fields after
        an insert); those run before the insert's deferred value write.
        """
        if callback not in self._change_callbacks:
            self._change_callbacks.append(callback)
            logger.debug(f"Connected change listener: {callback}")

    def disconnect_listener(self, callback: Callable[[], None]) -> None:
        if callback in self._change_callbacks:
            self._change_callbacks.remove(callback)
            logger.debug(f"Disconnected change listener: {callback}")

    def add_gate_observer(self, observer: GateObserver) -> None:
        if observer not in self._gate_observers:
            self._gate_observers.append(observer)

    def remove_gate_observer(self, observer: GateObserver) -> None:
        if observer in self._gate_observers:
            self._gate_observers.remove(observer)

    def _fire_gate_observers(self, previous: GateState, current: GateState) -> None:
        for observer in list(self._gate_observers):
            try:
                observer(previous, current)
            except Exception as e:
                logger.warning(f"Gate observer failed: {e}")

    # ========== READ SNAPSHOTS ==========

    @property
    def config(self) -> FormConfig:
        return self._config

    @property
    def is_ready(self) -> bool:
        return self._ready

    @property
    def is_connected(self) -> bool:
        return self._connected

    def get_form_state(self) -> FormState:
        """Snapshot of the form; cached until the next commit."""
        cached = self._form_state_cache
        if cached is not None and cached[0] == self._token and not self._effects.in_transaction:
            return cached[1]
        state = form_view(self._form, self._steps, self._fields, self._ready)
        if not self._effects.in_transaction:
            self._form_state_cache = (self._token, state)
        return state

    def get_step_state(self, name: str) -> Optional[StepState]:
        step = self._steps.get(name)
        if step is None:
            return None
        return step_view(self._form, self._steps, self._fields, step)

    def get_field_state(self, field_id: str) -> Optional[FieldState]:
        field = self._fields.get(field_id)
        if field is None:
            return None
        return field_view(self._form, self._steps, field)

    def get_field_states(self) -> List[FieldState]:
        return [field_view(self._form, self._steps, field) for field in self._fields]

    def get_step_by_field_name(self, name: str) -> Optional[StepState]:
        """State of the step owning the first field registered under ``name``."""
        field = next(iter(self._fields.by_name(name)), None)
        step = self._steps.get(field.step_name) if field is not None else None
        if step is None:
            return None
        return step_view(self._form, self._steps, self._fields, step)

    def get_values(self) -> Dict[str, Any]:
        """Nested form values (formatted), as passed to the submit callbacks."""
        return get_form_values(self._fields)

    def get_value_sources(self) -> ValueSources:
        """Deep copy of the value trees consulted on registration and reset."""
        return clone_values(self._sources)

    def get_collection_keys(self, name: str) -> Optional[Tuple[str, ...]]:
        return self._collections.get_keys(name)

    # ========== GATES AND CONFIG ==========

    def _set_gates(self, label: str, ready: Optional[bool] = None, connected: Optional[bool] = None,
                   config: Optional[FormConfig] = None) -> None:
        previous = GateState(self._ready, self._connected)
        with self._transaction(label):
            if config is not None:
                self._config = config
            if ready is not None:
                self._ready = ready
            if connected is not None:
                self._connected = connected
        current = GateState(self._ready, self._connected)
        if current != previous:
            self._fire_gate_observers(previous, current)

    def update_ready(self, ready: bool, config: Optional[FormConfig] = None) -> None:
        self._set_gates("update_ready", ready=ready, config=config)

    def update_connected(self, connected: bool, config: Optional[FormConfig] = None) -> None:
        self._set_gates("update_connected", connected=connected, config=config)

    def _reset_on_gate_open(self, previous: GateState, current: GateState) -> None:
        """Re-sync values when a gate opens while the other one is already open.

        The reset key is left alone so bound views are not remounted.
        """
        if current.is_open and not previous.is_open:
            logger.debug(f"Gate opened ({previous} -> {current}), resetting values")
            self.reset(exclude=['reset_key'])

    def update_config(self, config: FormConfig) -> None:
        """Replace the config and re-apply it (reset without bumping reset_key)."""
        with self._transaction("update_config"):
            self._config = config
            self.reset(exclude=['reset_key'])

    # ========== FORM ACTIONS ==========

    def submit(self) -> None:
        """Submit the form.

        The form is marked submitted first. While the form is not ready or any
        field is validating/debouncing nothing else happens; the submit is
        dropped, not queued. Otherwise exactly one of on_valid_submit /
        on_invalid_submit is called, then on_submit.
        """
        with self._transaction("submit"):
            self._form.is_submitted = True

        fields = list(self._fields)
        if form_is_processing(fields, self._ready):
            logger.debug("submit: form is processing, callbacks skipped")
            return

        values = get_form_values(fields)
        form_state = self.get_form_state()
        config = self._config
        callback = config.on_valid_submit if fields_are_valid(fields) else config.on_invalid_submit
        if callback is not None:
            callback(values, form_state)
        if config.on_submit is not None:
            config.on_submit(values, form_state)

    def submit_step(self) -> None:
        """Submit the current step; go to the next one or submit the form on the last."""
        current = self._form.current_step_name
        if not current:
            return

        with self._transaction("submit_step"):
            self._steps.update(current, is_submitted=True)

        fields = list(self._fields)
        if step_is_processing(current, fields, self._ready) or not step_is_valid(current, fields):
            logger.debug(f"submit_step: step {current!r} is processing or invalid")
            return

        if self._steps.is_last(current):
            self.submit()
            return
        self.next_step()

    def set_values(self, values: Dict[str, Any], keep_pristine: bool = False) -> None:
        """Inject values; fields mounted later pick up what was not consumed."""
        with self._transaction("set_values"):
            self._fields.inject_values(values, keep_pristine=keep_pristine)

    def set_default_values(self, values: Dict[str, Any]) -> None:
        with self._transaction("set_default_values"):
            self._fields.inject_default_values(values)

    def set_errors(self, errors: Dict[str, Any]) -> None:
        """Attach external (e.g. server) errors by field name."""
        with self._transaction("set_errors"):
            self._fields.inject_errors(errors)

    def reset(
        self,
        options: Optional[ResetOptions] = None,
        only: Optional[Iterable[str]] = None,
        exclude: Optional[Iterable[str]] = None,
    ) -> None:
        """Reset the form, restricted to the facets allowed by the options.

        Facets: values, pristine, touched, validating, debouncing, submitted,
        visited, current_step, reset_key.

        Args:
            options: Prebuilt ResetOptions; mutually exclusive with only/exclude.
            only: Reset just these facets.
            exclude: Reset every facet except these.
        """
        if options is None and (only is not None or exclude is not None):
            options = ResetOptions(only=only, exclude=exclude)
        elif options is not None and (only is not None or exclude is not None):
            raise ValueError("Pass either options or only/exclude")

        with self._transaction("reset"):
            initial_values = self._load_initial_values()

            if is_reset_allowed('values', options):
                for name in self._collections.names():
                    items = get_value(initial_values, name)
                    length = len(items) if isinstance(items, (list, tuple)) else 0
                    self._collections.resize(name, length)

            self._sources.initial_values = self._fields.reset_all(initial_values, options)
            self._sources.external_values = {}
            self._sources.keep_values = {}

            form = self._form
            if is_reset_allowed('reset_key', options):
                form.reset_key += 1
            if is_reset_allowed('submitted', options):
                form.is_submitted = False
            self._steps.reset_flags(
                submitted=is_reset_allowed('submitted', options),
                visited=is_reset_allowed('visited', options),
            )
            if is_reset_allowed('current_step', options):
                start = self._config.initial_step_name or self._first_enabled_step()
                form.current_step_name = start
                form.initial_step_name = start
        logger.debug(f"Reset form {self._form.id!r} (options={options})")

    def reset_initial_values(self) -> None:
        """Reload initial values from the config without touching fields.

        Names of the fields mounted when the effect runs are omitted, so only
        fields mounted later consume them.
        """
        with self._transaction("reset_initial_values"):
            self._sources.initial_values = self._load_initial_values()
            self._effects.defer(self._omit_mounted_initial_values, "omit mounted initial values")

    def _omit_mounted_initial_values(self) -> None:
        initial_values = self._sources.initial_values
        for field in self._fields:
            initial_values = omit_value(initial_values, field.name)
        self._sources.initial_values = initial_values

    # ========== FIELD ACTIONS ==========

    def register_field(
        self,
        field_id: str,
        name: str,
        value: Any = None,
        step_name: Optional[str] = None,
        default_value: Any = None,
        format_value: Optional[Callable[[Any], Any]] = None,
        required: RequiredLike = None,
        validations: Optional[Sequence[Validation]] = None,
    ) -> None:
        """Mount a field; see FieldRegistry.register for the value precedence."""
        with self._transaction("register_field"):
            self._fields.register(
                field_id,
                name,
                value=value,
                step_name=step_name,
                default_value=default_value,
                format_value=format_value,
                required=required,
                validations=validations,
            )

    def unregister_field(self, field_id: str, persist: bool = False, keep_value: bool = False) -> None:
        with self._transaction("unregister_field"):
            self._fields.unregister(field_id, persist=persist, keep_value=keep_value)

    def update_field(self, field_id: str, **patch: Any) -> None:
        """Patch a field, e.g. async validation state reported by the scheduler:

            store.update_field("f1", is_validating=False, validations_async_errors=["Taken"])
        """
        with self._transaction("update_field"):
            self._fields.update(field_id, **patch)

    def set_field_value(
        self,
        field_id: str,
        value: ValueOrUpdater,
        on_value_change: Optional[ValueChangeCallback] = None,
        format_value: Optional[Callable[[Any], Any]] = None,
    ) -> None:
        with self._transaction("set_field_value"):
            self._fields.set_value(field_id, value, on_value_change=on_value_change, format_value=format_value)

    def set_field_touched(self, field_id: str, touched: bool = True) -> None:
        with self._transaction("set_field_touched"):
            self._fields.set_touched(field_id, touched)

    # ========== STEP ACTIONS ==========

    def _first_enabled_step(self) -> Optional[str]:
        enabled = self._steps.enabled()
        return enabled[0].name if enabled else None

    def register_step(self, name: str, label: Optional[str] = None, order: int = 0, is_enabled: bool = True) -> None:
        """Register a step; the first step registered becomes current."""
        with self._transaction("register_step"):
            self._steps.register(name, label=label, order=order, is_enabled=is_enabled)
            if self._form.current_step_name is None:
                self._form.current_step_name = name

    def update_step(self, name: str, **patch: Any) -> None:
        with self._transaction("update_step"):
            self._steps.update(name, **patch)

    def unregister_step(self, name: str) -> None:
        # current_step_name is left dangling on purpose: views treat it as "no step"
        with self._transaction("unregister_step"):
            self._steps.unregister(name)

    def go_to_step(self, name: str) -> None:
        if not self._steps.can_navigate_to(name):
            logger.debug(f"go_to_step: {name!r} is unknown or disabled")
            return
        with self._transaction("go_to_step"):
            self._form.current_step_name = name
            self._steps.update(name, is_visited=True)

    def next_step(self) -> None:
        target = self._steps.next_name(self._form.current_step_name)
        if target is not None:
            self.go_to_step(target)

    def previous_step(self) -> None:
        target = self._steps.previous_name(self._form.current_step_name)
        if target is not None:
            self.go_to_step(target)

    # ========== COLLECTION ACTIONS ==========

    def set_collection_keys(self, name: str, keys: KeysOrUpdater) -> None:
        with self._transaction("set_collection_keys"):
            self._collections.set_keys(name, keys)

    def set_collection_values(self, name: str, values: Sequence[Any], keep_pristine: bool = False) -> None:
        """Replace a collection's items; keys are kept by position."""
        with self._transaction("set_collection_values"):
            self.set_values({name: list(values)}, keep_pristine=keep_pristine)
            self._collections.resize(name, len(values))

    def insert_multiple_collection_values(
        self,
        name: str,
        index: int,
        values: Sequence[Any],
        keep_pristine: bool = True,
    ) -> None:
        """Insert items at ``index`` (negative counts from the end, -1 appends).

        The key list changes immediately. The value write (placeholders for
        the existing items, the new values at the insertion point) is deferred
        until the current commit has been published.
        """
        with self._transaction("insert_collection_values"):
            plan = self._collections.insert(name, index, values)
            self._effects.defer(
                lambda: self.set_values({name: plan.values}, keep_pristine=keep_pristine),
                f"write inserted values of {name!r}",
            )

    def insert_collection_value(self, name: str, index: int, value: Any, keep_pristine: bool = True) -> None:
        self.insert_multiple_collection_values(name, index, [value], keep_pristine=keep_pristine)

    def prepend_collection_value(self, name: str, value: Any = None, keep_pristine: bool = True) -> None:
        self.insert_multiple_collection_values(name, 0, [value], keep_pristine=keep_pristine)

    def append_collection_value(self, name: str, value: Any = None, keep_pristine: bool = True) -> None:
        self.insert_multiple_collection_values(name, -1, [value], keep_pristine=keep_pristine)

    def remove_multiple_collection_values(self, name: str, indexes: Iterable[int]) -> None:
        """Drop the keys at ``indexes``; the item fields are unmounted by the view."""
        with self._transaction("remove_collection_values"):
            self._collections.remove(name, list(indexes))

    def remove_collection_value(self, name: str, index: int) -> None:
        self.remove_multiple_collection_values(name, [index])
