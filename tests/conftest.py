import os
import tempfile

# Point the module-level app at a throwaway database and never at the real venue.
_TMP_DIR = tempfile.mkdtemp(prefix="limitbot-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP_DIR, 'orders.db')}"
os.environ["DRY_RUN"] = "true"

import pytest

from limitbot.database import init_db, make_engine, make_session_factory
from limitbot.services.order_store import OrderStore


@pytest.fixture
def session_factory(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'orders.db'}")
    init_db(engine)
    yield make_session_factory(engine)
    engine.dispose()


@pytest.fixture
def store(session_factory):
    return OrderStore(session_factory)
