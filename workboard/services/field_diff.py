"""
Field-level change detection.

Compares an existing record against a mapping of proposed values over an
allowlist of fields and returns the ordered change set.  Values are compared
by their display representation:

    None        → ""
    date        → "YYYY-MM-DD"
    anything    → str(value)

Used by the WorkTask update path (one TaskAction per change) and the
WorkArea update path (change summary in logs and notification metadata).
"""

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date

from workboard.utils.helpers import format_date


@dataclass(frozen=True)
class FieldChange:
    field: str
    label: str
    old_value: str
    new_value: str


def display_value(value) -> str:
    if value is None:
        return ""
    if isinstance(value, date):
        return format_date(value)
    return str(value)


def _read(record, name):
    if isinstance(record, Mapping):
        return record.get(name)
    return getattr(record, name, None)


def diff_fields(current, incoming: Mapping, fields: Mapping[str, str]) -> list[FieldChange]:
    """Return the changes ``incoming`` would make to ``current``.

    Args:
        current: Model instance or mapping holding the existing values.
        incoming: Proposed values, already coerced to column types.  Fields
            missing from ``incoming`` are treated as unchanged.
        fields: Ordered allowlist of ``{attribute: label}``.

    Returns:
        FieldChange list in allowlist order; empty when nothing changed.
    """
    changes = []
    for name, label in fields.items():
        if name not in incoming:
            continue
        old = display_value(_read(current, name))
        new = display_value(incoming[name])
        if old != new:
            changes.append(FieldChange(field=name, label=label, old_value=old, new_value=new))
    return changes


def apply_changes(target, incoming: Mapping, fields) -> None:
    """Copy every allowlisted key present in ``incoming`` onto ``target``."""
    for name in fields:
        if name in incoming:
            setattr(target, name, incoming[name])
