"""Per-tenant session routing.

Each conjunto (tenant) may live in its own database. The registry creates an
engine and session factory the first time a tenant is seen and reuses them
afterwards. Without a URL template every tenant shares the default database.
"""

import threading
from contextlib import contextmanager
from typing import Generator, Optional

import structlog
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from ..core.config import Settings, get_settings
from ..core.logging_config import configure_logging
from .session import make_engine

logger = structlog.get_logger()


class TenantSessionRegistry:
    """Lazily built engines and session factories, one per tenant database URL."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        configure_logging(self.settings)
        self._engines: dict[str, Engine] = {}
        self._factories: dict[str, sessionmaker] = {}
        self._lock = threading.Lock()

    def _factory_for(self, tenant_id: int) -> sessionmaker:
        url = self.settings.get_tenant_database_url(tenant_id)
        factory = self._factories.get(url)
        if factory is not None:
            return factory

        with self._lock:
            factory = self._factories.get(url)
            if factory is None:
                engine = make_engine(url, echo=self.settings.sql_echo)
                factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
                self._engines[url] = engine
                self._factories[url] = factory
                logger.info(
                    "Created tenant engine",
                    tenant_id=tenant_id,
                    dialect=engine.dialect.name
                )
        return factory

    def engine_for(self, tenant_id: int) -> Engine:
        """Engine serving the tenant, created on first use."""
        self._factory_for(tenant_id)
        return self._engines[self.settings.get_tenant_database_url(tenant_id)]

    @contextmanager
    def session_for(self, tenant_id: int) -> Generator[Session, None, None]:
        """Open a session on the tenant's database and close it afterwards."""
        db = self._factory_for(tenant_id)()
        try:
            yield db
        finally:
            db.close()

    @property
    def engine_count(self) -> int:
        return len(self._engines)

    def dispose(self) -> None:
        """Dispose every engine created by this registry."""
        with self._lock:
            for engine in self._engines.values():
                engine.dispose()
            logger.info("Disposed tenant engines", count=len(self._engines))
            self._engines.clear()
            self._factories.clear()
