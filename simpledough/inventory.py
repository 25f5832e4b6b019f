import logging
from typing import Dict, List, Optional

from . import config
from .errors import InsufficientStock
from .models import InventoryRecord, LineItem
from .storage import LocalStore

logger = logging.getLogger(__name__)


class InventoryStore:
    """Per-product stock counts and daily limits, kept in one local slot."""

    def __init__(self, store: LocalStore, slot: str = config.INVENTORY_SLOT):
        self.store = store
        self.slot = slot

    def _load(self) -> Dict[str, InventoryRecord]:
        raw = self.store.read(self.slot, default={})
        if not isinstance(raw, dict):
            return {}
        records = {}
        for product_id, row in raw.items():
            try:
                records[product_id] = InventoryRecord(product_id=product_id, **row)
            except (TypeError, ValueError) as e:
                logger.warning("skipping inventory row %s: %s", product_id, e)
        return records

    def _save(self, records: Dict[str, InventoryRecord]) -> None:
        self.store.write(
            self.slot,
            {pid: r.model_dump(exclude={"product_id"}) for pid, r in records.items()},
        )

    def list_records(self) -> List[InventoryRecord]:
        return sorted(self._load().values(), key=lambda r: r.product_id)

    def get(self, product_id) -> Optional[InventoryRecord]:
        return self._load().get(str(product_id))

    def set_record(self, product_id, stock: int, daily_limit: int = 0) -> InventoryRecord:
        records = self._load()
        record = InventoryRecord(product_id=str(product_id), stock=stock, daily_limit=daily_limit)
        records[record.product_id] = record
        self._save(records)
        return record

    def revert_stock(self, product_id, quantity: int) -> InventoryRecord:
        """Return `quantity` units to the product's pool.

        No cap is applied, so stock may end up above the daily limit.
        """
        records = self._load()
        pid = str(product_id)
        current = records.get(pid) or InventoryRecord(product_id=pid, stock=0)
        record = current.model_copy(update={"stock": current.stock + quantity})
        records[pid] = record
        self._save(records)
        logger.info("reverted %d, stock now %d", quantity, record.stock, extra={"product_id": pid})
        return record

    def revert_items(self, items: List[LineItem]) -> None:
        for item in items:
            self.revert_stock(item.product.id, item.quantity)

    def consume_items(self, items: List[LineItem]) -> None:
        """Take stock for every line, or nothing if any line is short."""
        records = self._load()
        wanted: Dict[str, int] = {}
        for item in items:
            wanted[item.product.id] = wanted.get(item.product.id, 0) + item.quantity
        for pid, qty in wanted.items():
            available = records[pid].stock if pid in records else 0
            if qty > available:
                raise InsufficientStock(pid, qty, available)
        for pid, qty in wanted.items():
            records[pid] = records[pid].model_copy(update={"stock": records[pid].stock - qty})
        self._save(records)

    def low_stock(self, threshold: int = config.LOW_STOCK_THRESHOLD) -> List[InventoryRecord]:
        return [r for r in self.list_records() if r.stock <= threshold]
