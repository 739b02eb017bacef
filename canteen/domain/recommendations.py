"""
Canteen Core — Smart suggestions

Popularity-plus-affordability blend over the user's own history:

    score(item) = times the user ordered an item with this name + 1 / (1 + price)

Users without history get the cheapest eligible items. Both paths use stable
sorts, so equal scores keep menu order and the output is deterministic.
"""
from collections import Counter
from typing import Iterable

from canteen.domain.admission import is_available
from canteen.domain.documents import MenuItem, Order

TOP_N = 2


def candidates(menu: Iterable[MenuItem], categories: Iterable[str] | None = None) -> list[MenuItem]:
    """Available items, restricted to ``categories`` when given."""
    wanted = None if categories is None else set(categories)
    return [
        item for item in menu
        if is_available(item.available) and (wanted is None or item.category in wanted)
    ]


def recommend(
    user_orders: list[Order],
    menu: list[MenuItem],
    categories: Iterable[str] | None = None,
    limit: int = TOP_N,
) -> list[MenuItem]:
    pool = candidates(menu, categories)
    if not pool:
        return []

    if not user_orders:
        return sorted(pool, key=lambda item: item.price or 0)[:limit]

    counts = Counter(o.name for o in user_orders if o.name)
    scored = [(counts.get(item.name, 0) + 1 / (1 + max(item.price or 0, 0)), item) for item in pool]
    scored.sort(key=lambda pair: pair[0], reverse=True)
    return [item for _, item in scored[:limit]]
