"""
Whole-document JSON persistence.

The selection and the position snapshot are each stored as one JSON
document, read and written as a whole. Two backends are provided:
- FileDocumentStore: a JSON file, replaced atomically on write
- RedisDocumentStore: a single Redis key
Readers never observe a partially written document with either backend.
"""
import json
import os
import tempfile
from typing import Any, Optional, Tuple

import redis

from logging_config import get_logger
from utils.exceptions import PersistenceFailure

logger = get_logger(__name__)


class DocumentStore:
    """Interface for a single persisted JSON document."""

    name = 'document'

    def read(self) -> Optional[Any]:
        """
        Read and parse the document.

        Returns:
            The parsed JSON value, or None if the document does not exist

        Raises:
            PersistenceFailure: if the document exists but is unreadable or
                is not valid JSON
        """
        raise NotImplementedError

    def write(self, document: Any) -> None:
        """
        Replace the document.

        Raises:
            PersistenceFailure: if the write did not complete. The previous
                document remains authoritative.
        """
        raise NotImplementedError

    def delete(self) -> None:
        """Remove the document if present. Raises PersistenceFailure on error."""
        raise NotImplementedError

    def exists(self) -> bool:
        raise NotImplementedError


class FileDocumentStore(DocumentStore):
    """JSON document kept in a file on local disk."""

    def __init__(self, path: str):
        self.path = path
        self.name = os.path.basename(path)

    def read(self) -> Optional[Any]:
        if not os.path.exists(self.path):
            return None
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            raise PersistenceFailure(f'Could not read {self.path}: {e}') from e

    def write(self, document: Any) -> None:
        directory = os.path.dirname(self.path) or '.'
        tmp_path = None
        try:
            os.makedirs(directory, exist_ok=True)
            # Write to a sibling temp file, then rename over the target
            with tempfile.NamedTemporaryFile(
                'w', encoding='utf-8', dir=directory,
                prefix=f'.{self.name}.', suffix='.tmp', delete=False
            ) as tmp:
                tmp_path = tmp.name
                json.dump(document, tmp, indent=2)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp_path, self.path)
        except (OSError, TypeError, ValueError) as e:
            if tmp_path and os.path.exists(tmp_path):
                try:
                    os.remove(tmp_path)
                except OSError:
                    logger.warning(f"[DocumentStore] Could not remove temp file {tmp_path}")
            raise PersistenceFailure(f'Could not write {self.path}: {e}') from e

    def delete(self) -> None:
        try:
            os.remove(self.path)
        except FileNotFoundError:
            pass
        except OSError as e:
            raise PersistenceFailure(f'Could not delete {self.path}: {e}') from e

    def exists(self) -> bool:
        return os.path.exists(self.path)

    def __repr__(self):
        return f'<FileDocumentStore {self.path}>'


class RedisDocumentStore(DocumentStore):
    """JSON document kept under a single Redis key."""

    def __init__(self, client, key: str):
        self.client = client
        self.key = key
        self.name = key

    def read(self) -> Optional[Any]:
        try:
            raw = self.client.get(self.key)
        except redis.exceptions.RedisError as e:
            raise PersistenceFailure(f'Could not read Redis key {self.key}: {e}') from e
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError as e:
            raise PersistenceFailure(f'Redis key {self.key} holds invalid JSON: {e}') from e

    def write(self, document: Any) -> None:
        try:
            payload = json.dumps(document)
        except (TypeError, ValueError) as e:
            raise PersistenceFailure(f'Could not serialize {self.key}: {e}') from e
        try:
            # SET replaces the value atomically
            self.client.set(self.key, payload)
        except redis.exceptions.RedisError as e:
            raise PersistenceFailure(f'Could not write Redis key {self.key}: {e}') from e

    def delete(self) -> None:
        try:
            self.client.delete(self.key)
        except redis.exceptions.RedisError as e:
            raise PersistenceFailure(f'Could not delete Redis key {self.key}: {e}') from e

    def exists(self) -> bool:
        try:
            return bool(self.client.exists(self.key))
        except redis.exceptions.RedisError as e:
            logger.warning(f"[DocumentStore] Redis exists() failed for {self.key}: {e}")
            return False

    def __repr__(self):
        return f'<RedisDocumentStore {self.key}>'


def create_document_stores(app_config) -> Tuple[DocumentStore, DocumentStore]:
    """
    Build the (selection, positions) document stores for the configured backend.

    Args:
        app_config: Mapping with the STORAGE_BACKEND and related settings
            (a Flask config or a plain dict)

    Returns:
        Tuple of (selection_document, positions_document)
    """
    backend = app_config.get('STORAGE_BACKEND', 'file')

    if backend == 'redis':
        client = redis.from_url(app_config['REDIS_URL'], decode_responses=True)
        prefix = app_config.get('REDIS_KEY_PREFIX', 'tracker')
        logger.info(f"[DocumentStore] Using Redis backend at {app_config['REDIS_URL']}")
        return (
            RedisDocumentStore(client, f'{prefix}:selection'),
            RedisDocumentStore(client, f'{prefix}:positions'),
        )

    if backend != 'file':
        raise ValueError(f'Unsupported storage backend: {backend}')

    data_dir = app_config['DATA_DIR']
    logger.info(f"[DocumentStore] Using file backend in {data_dir}")
    return (
        FileDocumentStore(os.path.join(data_dir, app_config['SELECTION_FILE'])),
        FileDocumentStore(os.path.join(data_dir, app_config['POSITIONS_FILE'])),
    )
