"""
Selection model for the service record form.

A service record lists which maintenance categories (e.g. "Engine")
were performed and, inside each category, which sub‑services.  The
form state is a mapping ``category_id -> CategorySelection``; each
``CategorySelection`` holds its own ``selected`` flag, free‑text notes
and a mapping ``sub_service_id -> SubServiceSelection``.

All functions here are pure: they take an immutable ``SelectionState``
snapshot and return a new one.  Cascade rules:

* toggling a category sets every sub‑service defined for it to the
  category's new value;
* toggling a sub‑service on selects its category; toggling the last
  selected sub‑service off clears the category, but only when the
  category defines sub‑services.  Categories without sub‑services keep
  an independent flag.

The same functions are used by ``ServiceRecordService`` to validate and
normalise incoming payloads, and by clients that need to rebuild the
editable state from a stored record.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional


@dataclass(frozen=True)
class SubServiceDefinition:
    id: int
    name: str


@dataclass(frozen=True)
class CategoryDefinition:
    id: int
    name: str
    sub_services: tuple[SubServiceDefinition, ...] = ()

    @property
    def has_sub_services(self) -> bool:
        return len(self.sub_services) > 0

    def sub_service(self, sub_service_id: int) -> Optional[SubServiceDefinition]:
        for sub in self.sub_services:
            if sub.id == sub_service_id:
                return sub
        return None


Catalog = Mapping[int, CategoryDefinition]


def _frozen(mapping: Mapping) -> Mapping:
    return MappingProxyType(dict(mapping))


@dataclass(frozen=True)
class SubServiceSelection:
    selected: bool = False
    notes: str = ""


@dataclass(frozen=True)
class CategorySelection:
    selected: bool = False
    notes: str = ""
    sub_services: Mapping[int, SubServiceSelection] = field(default_factory=lambda: _frozen({}))

    @property
    def any_sub_selected(self) -> bool:
        return any(sub.selected for sub in self.sub_services.values())

    def with_sub(self, sub_service_id: int, sub: SubServiceSelection) -> "CategorySelection":
        subs = dict(self.sub_services)
        subs[sub_service_id] = sub
        return replace(self, sub_services=_frozen(subs))


@dataclass(frozen=True)
class SelectionState:
    categories: Mapping[int, CategorySelection] = field(default_factory=lambda: _frozen({}))

    def get(self, category_id: int) -> CategorySelection:
        return self.categories.get(category_id, CategorySelection())

    def with_category(self, category_id: int, category: CategorySelection) -> "SelectionState":
        categories = dict(self.categories)
        categories[category_id] = category
        return SelectionState(categories=_frozen(categories))


def build_catalog(categories: Iterable[Mapping[str, Any]]) -> Dict[int, CategoryDefinition]:
    """Build a catalog from category rows as returned by the categories API.

    Each row needs ``id``, ``name`` and an optional ``sub_services`` list
    of ``{"id", "name"}`` rows.
    """
    catalog: Dict[int, CategoryDefinition] = {}
    for cat in categories:
        subs = tuple(
            SubServiceDefinition(id=int(s["id"]), name=s.get("name") or "")
            for s in cat.get("sub_services") or []
        )
        catalog[int(cat["id"])] = CategoryDefinition(id=int(cat["id"]), name=cat.get("name") or "", sub_services=subs)
    return catalog


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------

def toggle_category(state: SelectionState, catalog: Catalog, category_id: int) -> SelectionState:
    """Flip a category and cascade the new value to all its sub‑services."""
    current = state.get(category_id)
    new_selected = not current.selected
    subs = dict(current.sub_services)
    definition = catalog.get(category_id)
    if definition is not None:
        for sub in definition.sub_services:
            previous = subs.get(sub.id, SubServiceSelection())
            subs[sub.id] = replace(previous, selected=new_selected)
    return state.with_category(
        category_id,
        replace(current, selected=new_selected, sub_services=_frozen(subs)),
    )


def toggle_sub_service(
    state: SelectionState, catalog: Catalog, category_id: int, sub_service_id: int
) -> SelectionState:
    """Flip one sub‑service and re‑derive its category's flag."""
    current = state.get(category_id)
    sub = current.sub_services.get(sub_service_id, SubServiceSelection())
    updated = current.with_sub(sub_service_id, replace(sub, selected=not sub.selected))
    if updated.any_sub_selected:
        updated = replace(updated, selected=True)
    else:
        definition = catalog.get(category_id)
        if definition is not None and definition.has_sub_services:
            updated = replace(updated, selected=False)
    return state.with_category(category_id, updated)


def update_category_notes(state: SelectionState, category_id: int, notes: str) -> SelectionState:
    return state.with_category(category_id, replace(state.get(category_id), notes=notes))


def update_sub_service_notes(
    state: SelectionState, category_id: int, sub_service_id: int, notes: str
) -> SelectionState:
    current = state.get(category_id)
    sub = current.sub_services.get(sub_service_id, SubServiceSelection())
    return state.with_category(category_id, current.with_sub(sub_service_id, replace(sub, notes=notes)))


def has_category_interaction(state: SelectionState, category_id: int) -> bool:
    """True when the category or any of its sub‑services was touched."""
    category = state.categories.get(category_id)
    if category is None:
        return False
    if category.selected or category.notes:
        return True
    return any(sub.selected or sub.notes for sub in category.sub_services.values())


def is_category_included(category: CategorySelection) -> bool:
    return category.selected or category.any_sub_selected


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def validate_selection(
    state: SelectionState,
    catalog: Catalog,
    machine_id: Optional[int],
    service_date: Optional[str],
    operator: Optional[str],
) -> Dict[str, str]:
    """Collect every violation into a field‑keyed error map.

    An empty dict means the record may be submitted.
    """
    errors: Dict[str, str] = {}
    if not machine_id:
        errors["machine_id"] = "Machine is required"
    if not service_date:
        errors["service_date"] = "Service date is required"
    if not (operator or "").strip():
        errors["operator"] = "Operator is required"

    if not any(is_category_included(c) for c in state.categories.values()):
        errors["services"] = "At least one service must be selected"

    for category_id, category in state.categories.items():
        definition = catalog.get(category_id)
        if definition is not None and definition.has_sub_services and category.selected:
            if not category.any_sub_selected:
                errors[f"category_{category_id}"] = (
                    f"At least one sub-service must be selected for {definition.name}"
                )
    return errors


# ---------------------------------------------------------------------------
# Payload conversion
# ---------------------------------------------------------------------------

def to_payload(state: SelectionState, catalog: Catalog) -> List[Dict[str, Any]]:
    """Flatten the state into the ``services[]`` array that gets persisted.

    Only categories that are selected or have a selected sub‑service are
    emitted, and only selected sub‑services inside them.
    """
    services: List[Dict[str, Any]] = []
    for category_id, category in state.categories.items():
        if not is_category_included(category):
            continue
        definition = catalog.get(category_id)
        sub_services = []
        for sub_id, sub in category.sub_services.items():
            if not sub.selected:
                continue
            sub_def = definition.sub_service(sub_id) if definition else None
            sub_services.append(
                {
                    "id": sub_id,
                    "name": sub_def.name if sub_def else "",
                    "was_performed": True,
                    "sub_service_notes": sub.notes,
                }
            )
        services.append(
            {
                "category_id": category_id,
                "category_name": definition.name if definition else "",
                "was_performed": category.selected,
                "service_notes": category.notes,
                "sub_services": sub_services,
            }
        )
    return services


def from_payload(services: Iterable[Mapping[str, Any]]) -> SelectionState:
    """Rebuild editable state from a stored record's (or request's) services.

    Accepts both the submission shape (``sub_services[].id``) and the
    read shape of a stored record, translating ``service_notes`` and
    ``sub_service_notes`` back to ``notes``.
    """
    state = SelectionState()
    for entry in services:
        subs: Dict[int, SubServiceSelection] = {}
        for sub in entry.get("sub_services") or []:
            subs[int(sub["id"])] = SubServiceSelection(
                selected=bool(sub.get("was_performed")),
                notes=sub.get("sub_service_notes") or "",
            )
        state = state.with_category(
            int(entry["category_id"]),
            CategorySelection(
                selected=bool(entry.get("was_performed")),
                notes=entry.get("service_notes") or "",
                sub_services=_frozen(subs),
            ),
        )
    return state


def normalize(state: SelectionState) -> SelectionState:
    """Select every category that has a selected sub‑service.

    Client payloads built outside the toggle functions may carry a
    selected sub‑service under an unselected category.
    """
    result = state
    for category_id, category in state.categories.items():
        if category.any_sub_selected and not category.selected:
            result = result.with_category(category_id, replace(category, selected=True))
    return result
