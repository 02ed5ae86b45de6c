"""
Field-level diff between stored schema rows and freshly generated entities.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence

from schemagen.persistence.meta_store import MetaRow
from schemagen.persistence.rankmath import SCHEMA_PREFIX, decode_row, schema_type_of

_MISSING = object()


@dataclass
class FieldDiff:
    added: List[Dict[str, Any]] = field(default_factory=list)
    removed: List[Dict[str, Any]] = field(default_factory=list)
    changed: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not (self.added or self.removed or self.changed)

    def extend(self, other: "FieldDiff") -> None:
        self.added.extend(other.added)
        self.removed.extend(other.removed)
        self.changed.extend(other.changed)

    def to_dict(self) -> Dict[str, List[Dict[str, Any]]]:
        return {"added": self.added, "removed": self.removed, "changed": self.changed}


def _kind(value: Any) -> str:
    if isinstance(value, dict):
        return "object"
    if isinstance(value, list):
        return "array"
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, (int, float)):
        return "number"
    return type(value).__name__


def diff_objects(old: Any, new: Any, path: str = "") -> FieldDiff:
    """
    Recursively diff two JSON-like values.

    Paths use dots for keys and [i] for list positions; the root is "(root)".
    """
    result = FieldDiff()
    here = path or "(root)"

    if old == new and _kind(old) == _kind(new):
        return result
    if old is None:
        result.added.append({"path": here, "value": new})
        return result
    if new is None:
        result.removed.append({"path": here, "value": old})
        return result
    if _kind(old) != _kind(new) or not isinstance(old, (dict, list)):
        result.changed.append({"path": here, "oldValue": old, "newValue": new})
        return result

    if isinstance(old, list):
        for i in range(max(len(old), len(new))):
            item_path = f"{path}[{i}]"
            if i >= len(old):
                result.added.append({"path": item_path, "value": new[i]})
            elif i >= len(new):
                result.removed.append({"path": item_path, "value": old[i]})
            else:
                result.extend(diff_objects(old[i], new[i], item_path))
        return result

    keys = list(old.keys()) + [k for k in new.keys() if k not in old]
    for key in keys:
        field_path = f"{path}.{key}" if path else str(key)
        old_value = old.get(key, _MISSING)
        new_value = new.get(key, _MISSING)
        if old_value is _MISSING:
            result.added.append({"path": field_path, "value": new_value})
        elif new_value is _MISSING:
            result.removed.append({"path": field_path, "value": old_value})
        else:
            result.extend(diff_objects(old_value, new_value, field_path))
    return result


def compare_schemas(old_rows: Sequence[MetaRow], new_entities: Sequence[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Compare stored rows with new entities, matched by storage type.

    Stored values are PHP-decoded with their metadata block removed; rows
    that fail to decode compare as their raw string.
    """
    old_by_type: Dict[str, Any] = {}
    for row in old_rows:
        if not row.key.startswith(SCHEMA_PREFIX):
            continue
        decoded = decode_row(row.value)
        old_by_type[row.key[len(SCHEMA_PREFIX):]] = decoded if decoded is not None else row.value

    new_by_type: Dict[str, Any] = {}
    for entity in new_entities:
        new_by_type[schema_type_of(entity)] = {k: v for k, v in entity.items() if k != "@context"}

    all_types = list(old_by_type) + [t for t in new_by_type if t not in old_by_type]
    diffs = []
    counts = {"new": 0, "removed": 0, "modified": 0, "unchanged": 0}

    for schema_type in all_types:
        if schema_type not in old_by_type:
            status, diff = "new", None
        elif schema_type not in new_by_type:
            status, diff = "removed", None
        else:
            field_diff = diff_objects(old_by_type[schema_type], new_by_type[schema_type])
            status = "unchanged" if field_diff.empty else "modified"
            diff = None if field_diff.empty else field_diff.to_dict()
        counts[status] += 1
        diffs.append({"type": schema_type, "status": status, "diff": diff})

    return {
        "summary": {
            "totalTypes": len(all_types),
            "newSchemas": counts["new"],
            "removedSchemas": counts["removed"],
            "modifiedSchemas": counts["modified"],
            "unchangedSchemas": counts["unchanged"],
        },
        "diffs": diffs,
    }
