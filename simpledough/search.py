from typing import Iterable, List

from .models import Order


def sort_newest_first(orders: Iterable[Order]) -> List[Order]:
    return sorted(orders, key=lambda o: o.created_at, reverse=True)


def filter_orders(orders: Iterable[Order], search_term: str = "", status_filter: str = "all") -> List[Order]:
    """Orders matching the term (id, case-insensitive; phone, literal) and status.

    The input order is preserved.
    """
    filtered = list(orders)

    if search_term:
        needle = search_term.lower()
        filtered = [
            o for o in filtered
            if needle in o.id.lower() or search_term in (o.phone or "")
        ]

    if status_filter and status_filter != "all":
        filtered = [o for o in filtered if o.status == status_filter]

    return filtered
