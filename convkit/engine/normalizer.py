"""Policy-driven key ordering for top-level JSON objects."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Sequence, Tuple

from ..policy import OrderSpec


def _declared_groups(order: OrderSpec) -> Iterable[Sequence[str]]:
    yield from order.top
    yield from order.sub.values()


def expected_key_order(obj: Mapping[str, Any], order: OrderSpec) -> List[str]:
    """Key sequence produced by `normalize`: top groups, sub groups, sorted rest."""
    placed: Dict[str, None] = {}
    for group in _declared_groups(order):
        for key in group:
            if key in obj and key not in placed:
                placed[key] = None
    rest = sorted(key for key in obj if key not in placed)
    return list(placed) + rest


def declared_keys_present(obj: Mapping[str, Any], order: OrderSpec) -> bool:
    """True when at least one key named by `order` exists in `obj`."""
    return any(key in obj for group in _declared_groups(order) for key in group)


def normalize(obj: Any, order: OrderSpec) -> Tuple[Any, bool]:
    """Return `(reordered, changed)`; nested values are left untouched.

    `changed` is True when the resulting key sequence differs from the input,
    so a second pass over normalized output reports False.
    """
    if not isinstance(obj, dict):
        return obj, False
    keys = expected_key_order(obj, order)
    reordered = {key: obj[key] for key in keys}
    return reordered, keys != list(obj)


__all__ = ["declared_keys_present", "expected_key_order", "normalize"]
