import sys

from limitbot.config import settings
from limitbot.database import ADDITIVE_COLUMNS, engine, init_db

print(f"Migrating orders table ({settings.DATABASE_URL})...")
try:
    added = set(init_db(engine))
except Exception as e:
    print(f"Error migrating orders table: {e}")
    sys.exit(1)

for table, columns in ADDITIVE_COLUMNS.items():
    for name, _ in columns:
        if f"{table}.{name}" in added:
            print(f"✓ Added {name} column to {table} table")
        else:
            print(f"✓ Column {name} already exists")
