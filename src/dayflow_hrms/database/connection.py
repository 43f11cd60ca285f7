from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from pymongo import MongoClient
from pymongo.database import Database
from pymongo.uri_parser import parse_uri

DEFAULT_DATABASE = "workzen_hrms"


@dataclass
class MongoConfig:
    uri: str
    database: str = ""

    def database_name(self) -> str:
        if self.database:
            return self.database
        return parse_uri(self.uri).get("database") or DEFAULT_DATABASE


class DatabaseConnection:
    """Singleton-like MongoDB client holder.

    Note: MongoClient keeps its own connection pool, so one client per process is enough.
    """

    _instance: Optional["DatabaseConnection"] = None

    def __init__(self, config: MongoConfig):
        self._config = config
        self._client: Optional[MongoClient] = None

    @classmethod
    def get_instance(cls, config: MongoConfig) -> "DatabaseConnection":
        if cls._instance is None:
            cls._instance = DatabaseConnection(config)
        return cls._instance

    @property
    def config(self) -> MongoConfig:
        return self._config

    def client(self) -> MongoClient:
        if self._client is None:
            self._client = MongoClient(self._config.uri, tz_aware=False)
        return self._client

    def database(self) -> Database:
        return self.client()[self._config.database_name()]

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
