import os
from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL")
POOL_MIN = int(os.getenv("APP_POOL_MIN", "1"))
POOL_MAX = int(os.getenv("APP_POOL_MAX", "10"))

DATA_DIR = os.getenv("SIMPLEDOUGH_DATA_DIR", "./.simpledough")

SUPABASE_URL = os.getenv("SUPABASE_URL", "")
SUPABASE_ANON_KEY = os.getenv("SUPABASE_ANON_KEY", "")
AUTH_TIMEOUT = float(os.getenv("AUTH_TIMEOUT", "10"))

LOW_STOCK_THRESHOLD = int(os.getenv("LOW_STOCK_THRESHOLD", "5"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# local slot names
ORDERS_SLOT = "simple-dough-orders"
CART_SLOT = "simple-dough-cart"
INVENTORY_SLOT = "simple-dough-inventory"
