"""
Binds a storage engine to a Flask application.

The application factory calls `init_storage`; request handlers call
`get_storage`, which resolves the engine through `current_app`. There is
no module-level store instance.
"""

from typing import Optional

from flask import Flask, current_app

from community_connect.storage.base import Storage
from community_connect.storage.memory import MemStorage

EXTENSION_KEY = "storage"


def init_storage(app: Flask, storage: Optional[Storage] = None) -> Storage:
    """Attach `storage` (a fresh MemStorage by default) to `app`."""
    storage = storage if storage is not None else MemStorage()
    app.extensions[EXTENSION_KEY] = storage
    return storage


def get_storage() -> Storage:
    """The storage engine of the application handling the current request."""
    return current_app.extensions[EXTENSION_KEY]
