"""
Persistence facade.

``get_repository()`` returns the backend selected by ``USED_DB``
(``settings.BHABO_DATABASE["BACKEND"]``). It is built once per process;
tests either pass a repository to the services explicitly or call
``get_repository.cache_clear()``.
"""

import logging
from functools import lru_cache

from django.conf import settings

from core.exceptions import ConfigurationError

from .base import BaseRepository
from .local import LocalFileRepository
from .mongo import MongoRepository

logger = logging.getLogger(__name__)

__all__ = [
    "BaseRepository",
    "LocalFileRepository",
    "MongoRepository",
    "build_repository",
    "get_repository",
]


def build_repository(options: dict) -> BaseRepository:
    backend = (options.get("BACKEND") or "").lower()
    if backend == "mongo":
        return MongoRepository.from_uri(options["MONGO_URI"], options.get("MONGO_DB_NAME"))
    if backend == "local":
        return LocalFileRepository(options["LOCAL_DIR"])
    raise ConfigurationError(
        f"Unknown persistence backend {backend!r}; expected 'mongo' or 'local'.",
        setting="USED_DB",
    )


@lru_cache(maxsize=1)
def get_repository() -> BaseRepository:
    repository = build_repository(settings.BHABO_DATABASE)
    logger.info("Using %s persistence backend", repository.backend_name)
    return repository
