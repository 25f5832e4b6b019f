from datetime import date, datetime, tzinfo
from typing import Callable, Iterable, Optional

from .models import DashboardStats, Order
from .repository import OrderRepository


def _local_date(ts: datetime, tz: Optional[tzinfo]) -> date:
    return ts.astimezone(tz).date()


def compute_stats(orders: Iterable[Order], today: Optional[date] = None,
                  tz: Optional[tzinfo] = None) -> DashboardStats:
    """Same-day figures for the admin dashboard.

    `today` defaults to the current date in `tz` (device-local when None).
    Note that total_customers counts distinct owners across all orders ever
    recorded, not only today's.
    """
    orders = list(orders)
    if today is None:
        today = datetime.now(tz).date() if tz else date.today()

    todays = [o for o in orders if _local_date(o.created_at, tz) == today]
    revenue = sum(o.total for o in todays)

    return DashboardStats(
        today_orders=len(todays),
        today_revenue=revenue,
        total_customers=len({o.user_id for o in orders}),
        avg_order_value=revenue / len(todays) if todays else 0,
    )


class DashboardAggregator:
    """Keeps DashboardStats current by recomputing on every repository write."""

    def __init__(self, repository: OrderRepository, tz: Optional[tzinfo] = None,
                 today: Optional[Callable[[], date]] = None):
        self.repository = repository
        self.tz = tz
        self.today = today
        self._on_change(repository.list_orders())
        self._unsubscribe = repository.subscribe(self._on_change)

    def _current_day(self) -> date:
        if self.today:
            return self.today()
        return datetime.now(self.tz).date() if self.tz else date.today()

    def _on_change(self, orders) -> None:
        self._day = self._current_day()
        self._stats = compute_stats(orders, self._day, self.tz)

    @property
    def stats(self) -> DashboardStats:
        if self._current_day() != self._day:
            # day rolled over since the last write
            self.refresh()
        return self._stats

    def refresh(self) -> DashboardStats:
        self._on_change(self.repository.list_orders())
        return self._stats

    def close(self) -> None:
        self._unsubscribe()
