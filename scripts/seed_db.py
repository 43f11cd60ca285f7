from __future__ import annotations

import importlib

from dotenv import load_dotenv

from dayflow_hrms.config import get_settings_module
from dayflow_hrms.database.bootstrap import DEMO_USERS, ensure_demo_users, ensure_indexes
from dayflow_hrms.database.connection import DatabaseConnection, MongoConfig


def main() -> None:
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    config = MongoConfig(**settings.MONGO_CONFIG)

    db = DatabaseConnection.get_instance(config).database()
    ensure_indexes(db)
    ensure_demo_users(db)

    print(f"OK: Seeded demo accounts -> {db.name}")
    for _, _, email, password, role, *_ in DEMO_USERS:
        print(f"  {role.value:<16} {email} / {password}")


if __name__ == "__main__":
    main()
