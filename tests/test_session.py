"""
Calculator session tests: form handling, appliance selection, commit, reload.

Tests:
1-4.   Live summary defaults and placeholders
5-8.   Committed calculation and validation
9-13.  Appliance selection and custom appliances
14-15. Expert mode
16-18. Load past calculation
19-20. Reset
21-24. Persistence across sessions
"""

import pytest

from kfss.catalog import BASE_CURRENCY
from kfss.estimator import Estimator, MonotonicIdGenerator
from kfss.exceptions import NotFoundError, ValidationError
from kfss.kv_store import MemoryKeyValueStore
from kfss.session import (
    DEFAULT_FIELDS,
    EXPERT_MODE_KEY,
    FORM_STATE_KEY,
    CalculatorSession,
    parse_int,
    parse_number,
)


@pytest.fixture
def calc(kv):
    return CalculatorSession(kv)


# ============================================================
# Live summary
# ============================================================

def test_summary_with_defaults(calc):
    preview = calc.summary()
    assert preview.nozzles.total == 3
    assert preview.cylinders_required == 1
    assert preview.base_total == pytest.approx(5140.0)
    assert preview.project_name == DEFAULT_FIELDS["project_name"]


def test_summary_placeholders_for_blank_names(calc):
    calc.update_fields({"project_name": "", "client_name": ""})
    preview = calc.summary()
    assert preview.project_name == "Project Name"
    assert preview.client_name == "Client Name"


def test_summary_defaults_for_blank_dimensions(calc):
    calc.update_fields({"hood_length": "", "hood_depth": "abc", "plenum_sections": "", "duct_sections": "-3"})
    preview = calc.summary()
    assert preview.hood_area_m2 == pytest.approx(3.6)
    assert preview.nozzles.plenum == 2
    assert preview.nozzles.duct == 1


def test_summary_follows_currency(calc):
    calc.update_fields({"currency": "eur"})
    preview = calc.summary()
    assert preview.currency == "EUR"
    assert preview.total_cost == pytest.approx(5140.0 * 0.92, abs=0.01)


# ============================================================
# Calculation
# ============================================================

def test_calculate_records_result(calc):
    result = calc.perform_calculation()
    assert result.total_cost == pytest.approx(5654.0)
    assert calc.records.all()[0].id == result.id
    assert calc.records.last_calculation().id == result.id


def test_calculate_parses_text_values(calc):
    calc.update_fields({"hood_length": "4", "hood_depth": "1.5", "plenum_sections": "3", "duct_sections": "2"})
    result = calc.perform_calculation()
    assert result.hood_area_m2 == pytest.approx(6.0)
    assert result.nozzles.total == 5


def test_calculate_rejects_missing_fields(calc):
    calc.update_fields({"project_name": "", "hood_length": ""})
    with pytest.raises(ValidationError) as exc:
        calc.perform_calculation()
    assert exc.value.fields == ["project_name", "hood_length"]
    assert calc.records.all() == ()
    assert calc.records.last_calculation() is None


def test_calculate_rejects_negative_sections(calc):
    calc.update_fields({"plenum_sections": "-1"})
    with pytest.raises(ValidationError) as exc:
        calc.perform_calculation()
    assert exc.value.fields == ["plenum_sections"]


def test_negative_sections_reported_with_other_errors(calc):
    """Section counts and name/hood checks land in one ValidationError."""
    calc.update_fields({"project_name": "", "hood_depth": "", "plenum_sections": -1, "duct_sections": "-2"})
    with pytest.raises(ValidationError) as exc:
        calc.perform_calculation()
    assert exc.value.fields == ["project_name", "hood_depth", "plenum_sections", "duct_sections"]
    assert len(exc.value.messages) == 4
    assert calc.records.all() == ()


def test_unknown_form_field_rejected(calc):
    with pytest.raises(ValidationError) as exc:
        calc.update_fields({"hood_colour": "red"})
    assert exc.value.fields == ["hood_colour"]


# ============================================================
# Appliances
# ============================================================

def test_toggle_appliance(calc):
    assert calc.toggle_appliance("fryer") is True
    assert calc.is_selected("fryer")
    assert calc.summary().nozzles.appliances == 1
    assert calc.toggle_appliance("fryer") is False
    assert not calc.is_selected("fryer")


def test_toggle_unknown_appliance(calc):
    with pytest.raises(NotFoundError):
        calc.toggle_appliance("pizza")


def test_select_and_deselect_idempotent(calc):
    calc.select_appliance("wok")
    calc.select_appliance("wok")
    assert calc.form.selected_ids == ["wok"]
    calc.deselect_appliance("wok")
    calc.deselect_appliance("wok")
    assert calc.form.selected_ids == []


def test_add_custom_appliance_selected(calc):
    appliance = calc.add_custom_appliance("  Tandoor  ", "3")
    assert appliance.name == "Tandoor"
    assert appliance.nozzle_count == 3
    assert appliance.price == 1800
    assert calc.is_selected(appliance.id)
    assert calc.available_appliances()[-1].id == appliance.id


def test_add_custom_appliance_invalid(calc):
    with pytest.raises(ValidationError) as exc:
        calc.add_custom_appliance("", 2)
    assert exc.value.fields == ["custom_appliance_name"]

    for bad in (6, "-2"):
        with pytest.raises(ValidationError) as exc:
            calc.add_custom_appliance("Tandoor", bad)
        assert exc.value.fields == ["custom_nozzles"]

    assert len(calc.available_appliances()) == 8


def test_custom_nozzles_default_to_one(calc):
    assert calc.add_custom_appliance("Salamander", "").nozzle_count == 1
    assert calc.add_custom_appliance("Griddle", "0").nozzle_count == 1
    assert calc.add_custom_appliance("Hot Plate", "abc").nozzle_count == 1


# ============================================================
# Expert mode
# ============================================================

def test_expert_mode_adds_duct_run(calc):
    calc.update_fields({"duct_length": "7"})
    assert calc.summary().piping_length_m == pytest.approx(11.0)
    calc.set_expert_mode(True)
    assert calc.summary().piping_length_m == pytest.approx(18.0)


def test_expert_safety_factor_used(calc):
    calc.update_fields({"safety_factor": "0"})
    assert calc.perform_calculation().total_cost == pytest.approx(5140.0)


# ============================================================
# Load
# ============================================================

def test_load_restores_form(calc):
    calc.update_fields({"project_name": "Old Kitchen", "hood_length": "5"})
    calc.toggle_appliance("wok")
    old = calc.perform_calculation()

    calc.update_fields({"project_name": "New Kitchen", "hood_length": "2"})
    calc.toggle_appliance("wok")
    calc.perform_calculation()

    loaded = calc.load_calculation(old.id)
    assert loaded.id == old.id
    assert calc.form.fields["project_name"] == "Old Kitchen"
    assert calc.form.fields["hood_length"] == 5.0
    assert calc.is_selected("wok")
    assert calc.records.last_calculation().id == old.id


def test_load_restores_custom_appliance(calc):
    custom = calc.add_custom_appliance("Tandoor", 2)
    result = calc.perform_calculation()
    calc.form = calc.form.model_copy(update={"custom_appliances": [], "selected_ids": []})

    calc.load_calculation(result.id)
    assert calc.is_selected(custom.id)
    assert custom.id in [a.id for a in calc.available_appliances()]


def test_load_missing_id(calc):
    with pytest.raises(NotFoundError):
        calc.load_calculation(123)


# ============================================================
# Reset
# ============================================================

def test_reset_restores_defaults(calc):
    calc.update_fields({"project_name": "Changed"})
    calc.add_custom_appliance("Tandoor", 2)
    calc.toggle_appliance("fryer")
    calc.set_expert_mode(True)
    calc.perform_calculation()

    calc.reset()
    assert calc.form.fields == DEFAULT_FIELDS
    assert calc.form.selected_ids == []
    assert len(calc.available_appliances()) == 8
    assert calc.records.all() == ()
    assert calc.records.last_calculation() is None
    assert calc.expert_mode is True


def test_reset_persisted(kv):
    calc = CalculatorSession(kv)
    calc.perform_calculation()
    calc.reset()
    assert CalculatorSession(kv).records.all() == ()


# ============================================================
# Persistence
# ============================================================

def test_state_survives_new_session(kv):
    calc = CalculatorSession(kv)
    calc.update_fields({"project_name": "Persisted"})
    calc.toggle_appliance("grill")
    calc.set_expert_mode(True)
    result = calc.perform_calculation()

    again = CalculatorSession(kv)
    assert again.form.fields["project_name"] == "Persisted"
    assert again.is_selected("grill")
    assert again.expert_mode is True
    assert again.records.last_calculation().id == result.id
    assert kv.get(EXPERT_MODE_KEY) == "true"


def test_new_ids_above_persisted(kv):
    future = Estimator(id_factory=MonotonicIdGenerator(clock=lambda: 9_000_000_000.0))
    first = CalculatorSession(kv, estimator=future).perform_calculation()

    slow = Estimator(id_factory=MonotonicIdGenerator(clock=lambda: 1.0))
    second = CalculatorSession(kv, estimator=slow).perform_calculation()
    assert second.id == first.id + 1


def test_corrupt_form_state_uses_defaults():
    kv = MemoryKeyValueStore({FORM_STATE_KEY: "not json"})
    calc = CalculatorSession(kv)
    assert calc.form.fields == DEFAULT_FIELDS


def test_default_currency_is_base_currency(calc):
    assert DEFAULT_FIELDS["currency"] == BASE_CURRENCY
    calc.update_fields({"currency": ""})
    assert calc.form_input().currency == BASE_CURRENCY


def test_parse_helpers():
    assert parse_number("2.5") == 2.5
    assert parse_number("", 3.0) == 3.0
    assert parse_number("nan", 1.0) == 1.0
    assert parse_number(None) is None
    assert parse_int("2.7") == 2
    assert parse_int("x", 4) == 4
