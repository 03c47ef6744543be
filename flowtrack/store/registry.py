"""Registry of storage backends.

Maps the ``store_backend`` setting to a backend factory.
"""

import logging
from typing import Callable, Dict, List, Optional

from flowtrack.core.config import Settings, get_settings

from .base import Store, TableBackend
from .memory import MemoryBackend
from .seed import default_users
from .sql import SqlBackend

logger = logging.getLogger(__name__)

_BACKEND_FACTORIES: Dict[str, Callable[[Settings], TableBackend]] = {
    "memory": lambda settings: MemoryBackend(),
    "sql": lambda settings: SqlBackend.from_url(settings.database_url),
}


def register_backend(name: str, factory: Callable[[Settings], TableBackend]) -> None:
    """Register a backend factory under a name."""
    if name in _BACKEND_FACTORIES:
        logger.warning(f"Overwriting existing store backend: {name}")
    _BACKEND_FACTORIES[name] = factory


def list_backends() -> List[str]:
    return sorted(_BACKEND_FACTORIES)


def create_store(settings: Optional[Settings] = None) -> Store:
    """Build a store from settings.

    Raises:
        ValueError: If the configured backend is unknown
    """
    settings = settings or get_settings()
    factory = _BACKEND_FACTORIES.get(settings.store_backend)
    if factory is None:
        raise ValueError(
            f"Unknown store backend: {settings.store_backend}. "
            f"Must be one of: {', '.join(list_backends())}"
        )

    backend = factory(settings)
    logger.debug(f"Using {backend.backend_name} store backend")
    return Store(
        backend,
        user_seed=lambda: default_users(settings.default_user_password),
    )
