"""
Reactive state store for multi-step forms.

Tracks field values, validation results, visitation/submission status and
ordered repeatable field groups (collections), and derives validity, pristine
and validating flags per field, per step and for the whole form.

Quick Start:
    >>> from formstate import FormStore, FormConfig, Validation
    >>>
    >>> store = FormStore(config=FormConfig(
    ...     initial_values={"user": {"email": ""}},
    ...     on_valid_submit=lambda values, form: print(values),
    ... ))
    >>> store.register_step("account")
    >>> store.register_field(
    ...     "email-1", "user.email", step_name="account",
    ...     required="Email is required",
    ...     validations=[Validation(lambda v, fv: "@" in (v or ""), "Invalid email")],
    ... )
    >>> store.set_field_value("email-1", "ada@example.com")
    >>> store.submit_step()
    {'user': {'email': 'ada@example.com'}}

Architecture:
    FormStore (controller, single writer)
        ├── FieldRegistry       field records, value precedence, resets
        ├── StepRegistry        ordered steps, navigation
        ├── CollectionRegistry  stable keys for repeatable groups
        └── EffectQueue         transactions + deferred effects
    selectors                   pure rollups producing frozen snapshots

Modules:
    - store: FormStore action surface
    - field_registry / step_registry / collection_registry: entity tables
    - selectors / snapshot_model: derived state and read views
    - validations: required and sync validation rules
    - value_paths: dotted-path get/set/omit/merge over value trees
    - scheduler: transactions and deferred effects
    - config: FormConfig and reset scoping
"""

from formstate.config import FormConfig, ResetOptions, RESET_FACETS, is_reset_allowed
from formstate.models import Updater
from formstate.snapshot_model import FieldState, FormState, StepState
from formstate.store import FormStore, GateState
from formstate.validations import RequiredRule, Validation, get_field_validations_errors
from formstate.value_paths import UNSET

__all__ = [
    # Store
    'FormStore',
    'GateState',
    # Configuration
    'FormConfig',
    'ResetOptions',
    'RESET_FACETS',
    'is_reset_allowed',
    # Updates
    'Updater',
    'UNSET',
    # Validation
    'RequiredRule',
    'Validation',
    'get_field_validations_errors',
    # Snapshots
    'FieldState',
    'StepState',
    'FormState',
]

__version__ = '1.0.0'
__description__ = 'Reactive state store for multi-step forms'
