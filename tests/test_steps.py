"""Tests for step ordering, navigation and step-level rollups."""
import pytest

from formstate import FormStore, Validation


@pytest.fixture
def wizard():
    store = FormStore()
    store.register_step("account", label="Account", order=0)
    store.register_step("profile", label="Profile", order=1)
    store.register_step("confirm", label="Confirm", order=2)
    return store


def step_names(store):
    return [step.name for step in store.get_form_state().steps]


class TestOrdering:
    """Test registration order and sorting."""

    def test_first_registered_becomes_current(self):
        store = FormStore()
        store.register_step("later", order=5)
        store.register_step("earlier", order=1)
        assert step_names(store) == ["earlier", "later"]
        assert store.get_form_state().current_step.name == "later"

    def test_ties_keep_registration_order(self):
        store = FormStore()
        for name in ("b", "a", "c"):
            store.register_step(name)
        assert step_names(store) == ["b", "a", "c"]

    def test_update_resorts(self, wizard):
        wizard.update_step("account", order=10)
        assert step_names(wizard) == ["profile", "confirm", "account"]
        assert wizard.get_step_state("account").index == 2

    def test_register_existing_patches(self, wizard):
        wizard.register_step("profile", label="Your profile", order=1)
        assert step_names(wizard) == ["account", "profile", "confirm"]
        assert wizard.get_step_state("profile").label == "Your profile"

    def test_unregister_current_leaves_dangling_name(self, wizard):
        wizard.unregister_step("account")
        form = wizard.get_form_state()
        assert form.current_step is None
        assert step_names(wizard) == ["profile", "confirm"]
        wizard.register_step("extra", order=3)
        assert wizard.get_form_state().current_step is None


class TestNavigation:
    """Test go_to_step / next_step / previous_step."""

    def test_next_and_previous(self, wizard):
        wizard.next_step()
        assert wizard.get_form_state().current_step.name == "profile"
        wizard.previous_step()
        assert wizard.get_form_state().current_step.name == "account"

    def test_boundaries_are_noops(self, wizard):
        wizard.previous_step()
        assert wizard.get_form_state().current_step.name == "account"
        wizard.go_to_step("confirm")
        wizard.next_step()
        state = wizard.get_form_state()
        assert state.current_step.name == "confirm"
        assert state.is_last_step is True

    def test_disabled_steps_are_skipped(self, wizard):
        wizard.update_step("profile", is_enabled=False)
        wizard.next_step()
        assert wizard.get_form_state().current_step.name == "confirm"

    def test_go_to_disabled_or_unknown_is_noop(self, wizard):
        wizard.update_step("profile", is_enabled=False)
        wizard.go_to_step("profile")
        wizard.go_to_step("nowhere")
        assert wizard.get_form_state().current_step.name == "account"

    def test_first_last_ignore_disabled(self, wizard):
        wizard.update_step("account", is_enabled=False)
        wizard.go_to_step("profile")
        assert wizard.get_form_state().is_first_step is True

    def test_reset_skips_disabled_first_step(self, wizard):
        wizard.update_step("account", is_enabled=False)
        wizard.go_to_step("confirm")
        wizard.reset()
        form = wizard.get_form_state()
        assert form.current_step.name == "profile"
        assert form.is_first_step is True

    def test_navigation_marks_visited(self, wizard):
        wizard.go_to_step("confirm")
        assert wizard.get_step_state("confirm").is_visited is True
        assert wizard.get_step_state("profile").is_visited is False


class TestStepRollups:
    """Test step-level validity, pristine and validating."""

    def test_rollups_only_count_member_fields(self, wizard):
        wizard.register_field("f1", "email", step_name="account", required="Required")
        wizard.register_field("f2", "bio", step_name="profile", value="hi")
        account = wizard.get_step_state("account")
        profile = wizard.get_step_state("profile")
        assert account.is_valid is False
        assert profile.is_valid is True
        assert wizard.get_form_state().is_valid is False

        wizard.set_field_value("f2", "changed")
        wizard.update_field("f2", is_validating=True)
        assert wizard.get_step_state("profile").is_pristine is False
        assert wizard.get_step_state("profile").is_validating is True
        assert wizard.get_step_state("account").is_pristine is True
        assert wizard.get_step_state("account").is_validating is False

    def test_empty_step_is_valid_and_pristine(self, wizard):
        state = wizard.get_step_state("confirm")
        assert state.is_valid is True
        assert state.is_pristine is True
        assert state.is_validating is False

    def test_form_submission_implies_step_submitted(self, wizard):
        wizard.submit()
        assert all(step.is_submitted for step in wizard.get_form_state().steps)


class TestSubmitStep:
    """Test submit_step gating and advancing."""

    def test_invalid_step_does_not_advance(self, wizard):
        wizard.register_field("f1", "email", step_name="account", required="Required")
        wizard.submit_step()
        form = wizard.get_form_state()
        assert form.current_step.name == "account"
        assert form.is_step_submitted is True
        assert form.is_submitted is False

    def test_valid_step_advances(self, wizard):
        wizard.register_field(
            "f1", "email", step_name="account", value="a@b.c",
            validations=[Validation(lambda v, fv: "@" in v, "Invalid")],
        )
        wizard.submit_step()
        assert wizard.get_form_state().current_step.name == "profile"

    def test_processing_step_does_not_advance(self, wizard):
        wizard.register_field("f1", "email", step_name="account", value="a@b.c")
        wizard.update_field("f1", is_debouncing=True)
        wizard.submit_step()
        assert wizard.get_form_state().current_step.name == "account"

    def test_last_step_submits_form(self, wizard):
        submitted = []
        wizard.config.on_submit = lambda values, form: submitted.append(values)
        wizard.register_field("f1", "email", step_name="account", value="a@b.c")
        wizard.go_to_step("confirm")
        wizard.submit_step()
        assert submitted == [{"email": "a@b.c"}]
        assert wizard.get_form_state().is_submitted is True

    def test_without_current_step_is_noop(self):
        store = FormStore()
        store.submit_step()
        assert store.get_form_state().is_submitted is False
