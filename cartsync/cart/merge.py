"""
Merge Engine - reconcile an owner's cart with incoming guest items.

Pure and deterministic: no I/O, inputs are never mutated.

Precedence is an explicit policy. The default, PREFER_INCOMING, lets guest-side
edits overwrite matching authoritative lines because they are the freshest data
the user saw; lines that only exist on the authoritative side are always kept.
"""
from enum import Enum
from typing import Dict, Iterable, List

from .models import CartItem


class MergePolicy(str, Enum):
    """Which side wins when both carts hold the same item id."""
    PREFER_INCOMING = "prefer_incoming"
    PREFER_AUTHORITATIVE = "prefer_authoritative"


def _collapse(items: Iterable[CartItem]) -> Dict[str, CartItem]:
    """Index by item id, keeping first-seen order; a repeated id keeps the last value."""
    indexed: Dict[str, CartItem] = {}
    for item in items:
        indexed[item.item_id] = item.copy()
    return indexed


def merge_items(
    authoritative: Iterable[CartItem],
    incoming: Iterable[CartItem],
    policy: MergePolicy = MergePolicy.PREFER_INCOMING,
) -> List[CartItem]:
    """
    Merge ``incoming`` into ``authoritative``.

    1. incoming empty       -> authoritative unchanged
    2. authoritative empty  -> incoming verbatim
    3. matching item id     -> fields taken from the winning side (policy)
    4. unmatched incoming   -> appended; authoritative-only lines are kept
    """
    existing = _collapse(authoritative)
    candidates = _collapse(incoming)

    if not candidates:
        return list(existing.values())
    if not existing:
        return list(candidates.values())

    merged = dict(existing)
    for item_id, item in candidates.items():
        if item_id in merged and policy is MergePolicy.PREFER_AUTHORITATIVE:
            continue
        # Assignment to an existing key keeps its display position
        merged[item_id] = item

    return list(merged.values())
