"""Async durable store with SQLModel and SQLAlchemy 2.0.

Two StoreHandle implementations sit behind one interface: PrimaryStore talks to
the configured relational engine (MariaDB in production), EmbeddedStore runs
an in-process SQLite engine. Database.startup() picks one exactly once; the
choice is never revisited while the process runs.
"""

import asyncio
from contextlib import asynccontextmanager, nullcontext
from typing import Any, Dict, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from core.config import Settings
from core.exceptions import StoreUnavailableError
from core.logging import get_logger
from models.item import MAX_ITEM_ID, Item, ItemRead

logger = get_logger(__name__)

STORE_ERRORS = (SQLAlchemyError, OSError, asyncio.TimeoutError)


class StoreHandle:
    """Item persistence over one SQLAlchemy async engine."""

    kind = "store"

    def __init__(self, url: str, settings: Settings):
        self.url = url
        self.settings = settings
        self.engine: Optional[AsyncEngine] = None
        self.async_session: Optional[async_sessionmaker] = None

    def _engine_options(self) -> Dict[str, Any]:
        return {}

    async def connect(self) -> None:
        """Create the engine, verify connectivity and create tables."""
        self.engine = create_async_engine(
            self.url,
            echo=self.settings.database_echo,
            **self._engine_options()
        )
        self.async_session = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False
        )
        try:
            await asyncio.wait_for(self._create_tables(), timeout=self.settings.database_connect_timeout)
        except BaseException:
            await self.engine.dispose()
            self.engine = None
            self.async_session = None
            raise

    async def _create_tables(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)

    async def close(self) -> None:
        if self.engine:
            await self.engine.dispose()
            self.engine = None
            self.async_session = None

    @asynccontextmanager
    async def get_session(self):
        """Get async database session."""
        if not self.async_session:
            raise StoreUnavailableError("Database not initialized")

        async with self._session_guard():
            async with self.async_session() as session:
                try:
                    yield session
                except Exception:
                    await session.rollback()
                    raise

    def _session_guard(self):
        return nullcontext()

    async def get_item(self, item_id: int) -> Optional[ItemRead]:
        if not 0 < item_id <= MAX_ITEM_ID:
            return None
        try:
            async with self.get_session() as session:
                item = await session.get(Item, item_id)
                return ItemRead.model_validate(item) if item else None
        except STORE_ERRORS as e:
            logger.error("Failed to get item", item_id=item_id, error=str(e))
            raise StoreUnavailableError(f"Item lookup failed: {e}") from e

    async def create_item(self, name: str, value: Optional[str]) -> ItemRead:
        try:
            async with self.get_session() as session:
                item = Item(name=name, value=value)
                session.add(item)
                await session.commit()
                await session.refresh(item)
                return ItemRead.model_validate(item)
        except STORE_ERRORS as e:
            logger.error("Failed to create item", error=str(e))
            raise StoreUnavailableError(f"Item insert failed: {e}") from e

    async def ping(self) -> bool:
        try:
            async with self.get_session() as session:
                await session.execute(text("SELECT 1"))
            return True
        except (StoreUnavailableError, *STORE_ERRORS) as e:
            logger.debug("Database ping failed", error=str(e))
            return False


class PrimaryStore(StoreHandle):
    """The configured relational engine (DATABASE_URL)."""

    kind = "primary"

    def _engine_options(self) -> Dict[str, Any]:
        if self.url.startswith("sqlite"):
            return {}
        options: Dict[str, Any] = {
            "pool_size": self.settings.database_pool_size,
            "max_overflow": self.settings.database_max_overflow,
            "pool_timeout": self.settings.database_connect_timeout,
            "pool_pre_ping": True,
        }
        if self.url.startswith(("mysql", "mariadb")):
            options["connect_args"] = {"connect_timeout": int(self.settings.database_connect_timeout)}
        return options


class EmbeddedStore(StoreHandle):
    """In-process SQLite engine used when the primary is unreachable."""

    kind = "embedded"

    def __init__(self, url: str, settings: Settings):
        super().__init__(url, settings)
        self._session_lock = asyncio.Lock()

    def _session_guard(self):
        # Sessions share the single pooled connection; one transaction at a time
        return self._session_lock

    def _engine_options(self) -> Dict[str, Any]:
        # One shared connection keeps an in-memory database alive across sessions
        return {
            "poolclass": StaticPool,
            "connect_args": {"check_same_thread": False},
        }


class Database:
    """Durable store facade; owns the StoreHandle chosen at startup."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.handle: Optional[StoreHandle] = None

    async def startup(self) -> StoreHandle:
        """Select and connect the store: primary first, embedded on failure.

        Raises StoreUnavailableError when no engine can be opened, so the
        process refuses to serve without storage.
        """
        if self.handle is not None:
            return self.handle

        if self.settings.database_url:
            primary = PrimaryStore(self.settings.database_url, self.settings)
            try:
                await primary.connect()
                self.handle = primary
                logger.info("Database connected", backend=primary.kind)
                return primary
            except STORE_ERRORS as e:
                logger.error("Primary database unreachable", error=str(e) or type(e).__name__)
                if not self.settings.database_fallback_enabled:
                    raise StoreUnavailableError(f"Primary database unreachable: {e}") from e
        else:
            logger.info("DATABASE_URL not set")
            if not self.settings.database_fallback_enabled:
                raise StoreUnavailableError("No database configured and fallback disabled")

        embedded = EmbeddedStore(self.settings.database_fallback_url, self.settings)
        try:
            await embedded.connect()
        except STORE_ERRORS as e:
            logger.error("Embedded database failed", error=str(e))
            raise StoreUnavailableError(f"Embedded database failed: {e}") from e

        self.handle = embedded
        logger.info("Database connected", backend=embedded.kind, url=embedded.url)
        return embedded

    async def shutdown(self):
        """Close database connections."""
        if self.handle:
            await self.handle.close()
            logger.info("Database connections closed", backend=self.handle.kind)

    @property
    def backend(self) -> Optional[str]:
        return self.handle.kind if self.handle else None

    def _require_handle(self) -> StoreHandle:
        if self.handle is None:
            raise StoreUnavailableError("Database not initialized")
        return self.handle

    async def get_item(self, item_id: int) -> Optional[ItemRead]:
        """Fetch an item by primary key, or None."""
        return await self._require_handle().get_item(item_id)

    async def create_item(self, name: str, value: Optional[str] = None) -> ItemRead:
        """Insert an item and return it with its assigned id."""
        return await self._require_handle().create_item(name, value)

    async def ping(self) -> bool:
        if self.handle is None:
            return False
        return await self.handle.ping()
