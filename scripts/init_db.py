from __future__ import annotations

import importlib

from dotenv import load_dotenv

from dayflow_hrms.config import get_settings_module
from dayflow_hrms.database.bootstrap import ensure_indexes, list_collections
from dayflow_hrms.database.connection import DatabaseConnection, MongoConfig


def main() -> None:
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    config = MongoConfig(**settings.MONGO_CONFIG)

    db = DatabaseConnection.get_instance(config).database()
    ensure_indexes(db)
    collections = list_collections(db)
    print(f"OK: Indexes ready -> {db.name} (collections={len(collections)}: {', '.join(collections)})")


if __name__ == "__main__":
    main()
