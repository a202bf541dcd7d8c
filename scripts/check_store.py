"""
Check connectivity to the configured user store and optionally run a
create/read/update/delete smoke test against it.
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from contacts.config import get_settings
from contacts.dependencies import build_user_store, resolve_backend
from contacts.errors import ContactsError
from contacts.mapping import to_storage

logger = logging.getLogger(__name__)


def run_smoke_test(store) -> None:
    payload = {
        "name": "Smoke Test User",
        "email": f"smoke-{int(time.time())}@contacts.dev",
        "phone": "+1234567890",
        "company": "Smoke Test Co",
        "street": "123 Test St",
        "city": "Test City",
        "zip": "12345",
        "geo_lat": "40.7128",
        "geo_lng": "-74.0060",
    }
    created = store.create_user(to_storage(payload))
    user_id = created["id"]
    logger.info("Created user %s", user_id)
    try:
        if store.get_user(user_id) is None:
            raise RuntimeError(f"User {user_id} not readable after insert")
        logger.info("Read user %s", user_id)
        updated = store.update_user(user_id, {"company": "Updated Company"})
        if not updated or updated["company"] != "Updated Company":
            raise RuntimeError(f"User {user_id} was not updated")
        logger.info("Updated user %s", user_id)
    finally:
        store.delete_user(user_id)
        logger.info("Deleted user %s", user_id)


def main() -> int:
    parser = argparse.ArgumentParser(description="Check the configured user store")
    parser.add_argument(
        "--smoke",
        action="store_true",
        help="Also create, read, update and delete a throwaway user",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
        datefmt="%m/%d/%Y %I:%M:%S %p",
    )

    settings = get_settings()
    logger.info("Backend: %s", resolve_backend(settings))
    store = build_user_store(settings)
    try:
        store.ping()
        users = store.list_users()
        logger.info("Connected; found %d users", len(users))
        if args.smoke:
            run_smoke_test(store)
    except ContactsError as exc:
        logger.error("Store check failed: %s", exc.details or exc.message)
        return 1
    finally:
        store.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
