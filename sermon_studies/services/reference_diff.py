"""Diffing helpers for peer reference id lists."""

from dataclasses import dataclass, field
from typing import List


def dedupe_ids(ids):
    """Normalize a stored id list: strip each id, drop blanks, non-strings and duplicates.

    First occurrence order is kept. ``diff_ids`` compares normalized lists, so
    its added/removed sets are exact with respect to ``dedupe_ids(new_ids)``.
    Caller input is checked strictly by ``study_records.require_peer_ids``.
    """
    seen = set()
    result = []
    for raw_id in ids or []:
        if not isinstance(raw_id, str):
            continue
        ref_id = raw_id.strip()
        if not ref_id or ref_id in seen:
            continue
        seen.add(ref_id)
        result.append(ref_id)
    return result


@dataclass(frozen=True)
class ReferenceDiff:
    added: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)

    @property
    def is_empty(self):
        return not self.added and not self.removed


def diff_ids(old_ids, new_ids) -> ReferenceDiff:
    old_unique = dedupe_ids(old_ids)
    new_unique = dedupe_ids(new_ids)
    old_set = set(old_unique)
    new_set = set(new_unique)
    return ReferenceDiff(
        added=[ref_id for ref_id in new_unique if ref_id not in old_set],
        removed=[ref_id for ref_id in old_unique if ref_id not in new_set],
    )
