"""Appwrite document store used to persist telemetry records."""

from typing import Callable, Optional, Protocol

from appwrite.client import Client
from appwrite.id import ID
from appwrite.services.databases import Databases

from nrfcloud_webhook.config import Settings


class DocumentStore(Protocol):
    def create_document(self, data: dict) -> str:
        """Create one document with a store-generated ID and return that ID."""
        ...


class AppwriteDocumentStore:
    """Writes documents into one Appwrite database collection.

    The SDK client is built on the first write, so a bad endpoint or missing
    credentials fail that write instead of the whole request.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self._databases: Optional[Databases] = None

    @property
    def databases(self) -> Databases:
        if self._databases is None:
            client = (
                Client()
                .set_endpoint(self.settings.appwrite_endpoint)
                .set_project(self.settings.appwrite_project_id)
                .set_key(self.settings.appwrite_api_key)
            )
            self._databases = Databases(client)
        return self._databases

    def create_document(self, data: dict) -> str:
        document = self.databases.create_document(
            database_id=self.settings.database_id,
            collection_id=self.settings.collection_id,
            document_id=ID.unique(),
            data=data,
        )
        if isinstance(document, dict):
            return document.get("$id", "")
        return getattr(document, "id", "")


StoreFactory = Callable[[Settings], DocumentStore]


def get_store_factory() -> StoreFactory:
    return AppwriteDocumentStore
