"""Run a long-lived price monitoring session until interrupted (Ctrl+C / SIGTERM)."""
import sys, os
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

import logging
import signal
import threading

from limitbot.config import settings
from limitbot.database import init_db
from limitbot.errors import PersistenceError
from limitbot.wiring import build_services


def main() -> int:
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    init_db()
    services = build_services()
    services.native_price.refresh()

    stats = services.store.get_stats()
    print(f"Active orders: {stats['pending']}  Executed: {stats['executed']}  "
          f"Cancelled: {stats['cancelled']}  Failed: {stats['failed']}  Total: {stats['total']}")

    try:
        services.monitor.start()
    except PersistenceError as e:
        print(f"Cannot start monitor: {e}")
        return 1

    done = threading.Event()
    signal.signal(signal.SIGTERM, lambda *_: done.set())
    try:
        while not done.wait(1.0):
            pass
    except KeyboardInterrupt:
        pass
    finally:
        services.monitor.stop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
