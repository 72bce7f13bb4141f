"""Pytest configuration and shared fixtures."""
import itertools

import pytest

from formstate import FormConfig, FormStore, Validation


@pytest.fixture
def key_factory():
    """Deterministic collection keys: k0, k1, ..."""
    counter = itertools.count()
    return lambda: f"k{next(counter)}"


@pytest.fixture
def submissions():
    """Records submit callbacks as (callback_name, values) tuples."""
    return []


@pytest.fixture
def config(submissions):
    """Form config with recording callbacks."""
    return FormConfig(
        initial_values={"user": {"name": "Ada", "email": "ada@example.com"}},
        on_submit=lambda values, form: submissions.append(("submit", values)),
        on_valid_submit=lambda values, form: submissions.append(("valid", values)),
        on_invalid_submit=lambda values, form: submissions.append(("invalid", values)),
    )


@pytest.fixture
def store(config, key_factory):
    """Store with the recording config and deterministic keys."""
    return FormStore(form_id="test", config=config, id_factory=key_factory)


@pytest.fixture
def email_validation():
    return Validation(lambda value, formatted: "@" in (value or ""), "Invalid email")
