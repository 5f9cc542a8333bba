"""
Tests for the service record selection model (cascade rules, validation
and payload conversion).
"""

import pytest

from mixer_rental_api.app.services.service_selection import (
    CategorySelection,
    SelectionState,
    SubServiceSelection,
    build_catalog,
    from_payload,
    has_category_interaction,
    normalize,
    to_payload,
    toggle_category,
    toggle_sub_service,
    update_category_notes,
    update_sub_service_notes,
    validate_selection,
)


ENGINE, WASHING = 1, 2
OIL, FILTER = 11, 12


@pytest.fixture
def catalog():
    return build_catalog(
        [
            {"id": ENGINE, "name": "Engine", "sub_services": [{"id": OIL, "name": "Oil change"},
                                                              {"id": FILTER, "name": "Air filter"}]},
            {"id": WASHING, "name": "Washing", "sub_services": []},
        ]
    )


def test_toggle_category_cascades_to_sub_services(catalog):
    state = toggle_category(SelectionState(), catalog, ENGINE)
    engine = state.get(ENGINE)
    assert engine.selected
    assert engine.sub_services[OIL].selected
    assert engine.sub_services[FILTER].selected

    state = toggle_category(state, catalog, ENGINE)
    engine = state.get(ENGINE)
    assert not engine.selected
    assert not engine.any_sub_selected


def test_selecting_sub_service_selects_parent(catalog):
    state = toggle_sub_service(SelectionState(), catalog, ENGINE, OIL)
    assert state.get(ENGINE).selected


def test_clearing_last_sub_service_clears_parent(catalog):
    state = toggle_sub_service(SelectionState(), catalog, ENGINE, OIL)
    state = toggle_sub_service(state, catalog, ENGINE, FILTER)
    state = toggle_sub_service(state, catalog, ENGINE, OIL)
    assert state.get(ENGINE).selected
    state = toggle_sub_service(state, catalog, ENGINE, FILTER)
    assert not state.get(ENGINE).selected


def test_category_without_sub_services_is_independent(catalog):
    state = toggle_category(SelectionState(), catalog, WASHING)
    assert state.get(WASHING).selected
    # Touching another category's sub-services never clears it.
    state = toggle_sub_service(state, catalog, ENGINE, OIL)
    state = toggle_sub_service(state, catalog, ENGINE, OIL)
    assert state.get(WASHING).selected
    state = toggle_category(state, catalog, WASHING)
    assert not state.get(WASHING).selected


def test_transitions_do_not_mutate_previous_state(catalog):
    before = SelectionState()
    after = toggle_category(before, catalog, ENGINE)
    assert before.categories == {}
    assert after is not before
    with pytest.raises(TypeError):
        after.categories[WASHING] = CategorySelection()


def test_notes_count_as_interaction(catalog):
    state = update_category_notes(SelectionState(), WASHING, "High pressure")
    assert has_category_interaction(state, WASHING)
    assert not has_category_interaction(state, ENGINE)
    state = update_sub_service_notes(state, ENGINE, OIL, "15W-40")
    assert has_category_interaction(state, ENGINE)
    assert state.get(ENGINE).sub_services[OIL].notes == "15W-40"


def test_payload_includes_only_selected_categories(catalog):
    state = SelectionState()
    state = state.with_category(
        ENGINE,
        CategorySelection(selected=False, sub_services={OIL: SubServiceSelection(selected=True)}),
    )
    state = state.with_category(WASHING, CategorySelection(selected=False))
    payload = to_payload(state, catalog)
    assert [entry["category_id"] for entry in payload] == [ENGINE]
    assert payload[0]["sub_services"] == [
        {"id": OIL, "name": "Oil change", "was_performed": True, "sub_service_notes": ""}
    ]


def test_round_trip_is_idempotent(catalog):
    state = toggle_category(SelectionState(), catalog, ENGINE)
    state = toggle_sub_service(state, catalog, ENGINE, FILTER)
    state = update_sub_service_notes(state, ENGINE, OIL, "Changed oil")
    state = update_category_notes(state, ENGINE, "Engine check")
    state = toggle_category(state, catalog, WASHING)

    submitted = to_payload(state, catalog)
    # Stored records come back with the read shape.
    echoed = [
        {
            "category_id": entry["category_id"],
            "service_name": entry["category_name"],
            "was_performed": entry["was_performed"],
            "service_notes": entry["service_notes"],
            "sub_services": [
                {
                    "id": sub["id"],
                    "sub_service_name": sub["name"],
                    "was_performed": True,
                    "sub_service_notes": sub["sub_service_notes"],
                }
                for sub in entry["sub_services"]
            ],
        }
        for entry in submitted
    ]
    reloaded = from_payload(echoed)
    assert to_payload(reloaded, catalog) == submitted
    assert reloaded.get(ENGINE).notes == "Engine check"
    assert reloaded.get(ENGINE).sub_services[OIL].notes == "Changed oil"
    assert FILTER not in reloaded.get(ENGINE).sub_services


def test_validation_reports_exactly_three_errors(catalog):
    errors = validate_selection(SelectionState(), catalog, None, "2025-03-14", "  ")
    assert set(errors) == {"machine_id", "operator", "services"}
    assert errors["services"] == "At least one service must be selected"


def test_validation_requires_sub_service_for_selected_category(catalog):
    # A hand-built payload may select a category with sub-services but none of them.
    state = SelectionState().with_category(ENGINE, CategorySelection(selected=True))
    errors = validate_selection(state, catalog, 1, "2025-03-14", "Suresh")
    assert errors == {f"category_{ENGINE}": "At least one sub-service must be selected for Engine"}


def test_valid_selection_has_no_errors(catalog):
    state = toggle_category(SelectionState(), catalog, WASHING)
    assert validate_selection(state, catalog, 1, "2025-03-14", "Suresh") == {}


def test_normalize_selects_parent_of_selected_sub_service(catalog):
    state = SelectionState().with_category(
        ENGINE,
        CategorySelection(selected=False, sub_services={OIL: SubServiceSelection(selected=True)}),
    )
    assert normalize(state).get(ENGINE).selected
