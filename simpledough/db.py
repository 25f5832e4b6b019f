from contextlib import contextmanager
from psycopg_pool import ConnectionPool
from psycopg.rows import dict_row

from . import config

pool = ConnectionPool(
    conninfo=config.DATABASE_URL or "",
    min_size=config.POOL_MIN,
    max_size=config.POOL_MAX,
    kwargs={"autocommit": False},  # we manage transactions
    open=False,  # opened on startup when DATABASE_URL is set
)

@contextmanager
def get_conn():
    with pool.connection() as conn:
        yield conn

def fetch_one(conn, sql, params=None):
    with conn.cursor(row_factory=dict_row) as cur:
        cur.execute(sql, params or ())
        return cur.fetchone()
