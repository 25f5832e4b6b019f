from dataclasses import dataclass
from typing import Optional

from . import config
from .auth import AuthClient, SessionManager
from .dashboard import DashboardAggregator
from .inventory import InventoryStore
from .lifecycle import OrderLifecycleManager
from .remote import RemoteOrderStore, RoleDirectory
from .repository import OrderRepository
from .storage import LocalStore


@dataclass
class Services:
    store: LocalStore
    inventory: InventoryStore
    repository: OrderRepository
    lifecycle: OrderLifecycleManager
    dashboard: DashboardAggregator
    sessions: SessionManager
    remote: Optional[RemoteOrderStore] = None


def build_services(data_dir=config.DATA_DIR, remote=None, auth=None, roles=None, tz=None) -> Services:
    store = LocalStore(data_dir)
    inventory = InventoryStore(store)
    repository = OrderRepository(store, remote=remote)
    return Services(
        store=store,
        inventory=inventory,
        repository=repository,
        lifecycle=OrderLifecycleManager(repository, inventory),
        dashboard=DashboardAggregator(repository, tz=tz),
        sessions=SessionManager(auth or AuthClient(), roles or RoleDirectory(), repository, store),
        remote=remote,
    )


def default_services() -> Services:
    remote = RemoteOrderStore() if config.DATABASE_URL else None
    return build_services(remote=remote)
