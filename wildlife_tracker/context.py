"""
Application Context

Process-scoped state shared by request handlers and the expiry sweeper:
settings, database engine, session factory, sweeper task and the WebSocket
broadcaster. Created once per process and stored on app.state.context.

Lifecycle:
    startup  - verify the database is reachable (fatal if not), create
               tables if enabled, start the sweeper
    shutdown - stop the sweeper, close WebSockets, dispose the engine
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlmodel import SQLModel

from wildlife_tracker.config import Settings
from wildlife_tracker.database.connection import (
    check_connection,
    create_db_engine,
    create_session_factory,
)
from wildlife_tracker.exceptions import StoreUnavailable
from wildlife_tracker.models import utcnow
from wildlife_tracker.services.broadcaster import SightingBroadcaster
from wildlife_tracker.services.sighting_store import SightingStore
from wildlife_tracker.services.sweeper import ExpirySweeper

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    settings: Settings
    engine: Engine
    session_factory: sessionmaker
    sweeper: ExpirySweeper
    broadcaster: SightingBroadcaster = field(default_factory=SightingBroadcaster)
    clock: Callable[[], datetime] = utcnow

    @classmethod
    def create(
        cls,
        settings: Settings,
        engine: Optional[Engine] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> "AppContext":
        """
        Build a context from settings.

        Args:
            settings: Application settings
            engine: Pre-built engine (tests); created from settings.database_url otherwise
            clock: Source of the current UTC time
        """
        engine = engine or create_db_engine(settings.database_url)
        session_factory = create_session_factory(engine)
        sweeper = ExpirySweeper(
            session_factory,
            expiry_window=settings.expiry_window,
            interval=settings.sweep_interval,
            clock=clock,
        )
        return cls(
            settings=settings,
            engine=engine,
            session_factory=session_factory,
            sweeper=sweeper,
            clock=clock,
        )

    def store(self, db: Session) -> SightingStore:
        """SightingStore bound to a session with this context's window and clock."""
        return SightingStore(db, expiry_window=self.settings.expiry_window, clock=self.clock)

    async def startup(self) -> None:
        """
        Acquire the database and start background work.

        Raises:
            StoreUnavailable: If the database cannot be reached
        """
        try:
            await asyncio.to_thread(check_connection, self.engine)
        except StoreUnavailable:
            logger.error("Database connection failed at startup, refusing to serve")
            raise
        logger.info("Connected to database successfully")

        if self.settings.auto_create_tables:
            await asyncio.to_thread(SQLModel.metadata.create_all, self.engine)

        if self.settings.sweep_enabled:
            self.sweeper.start()

    async def shutdown(self) -> None:
        """Stop background work and release the database."""
        logger.info("Shutting down gracefully...")
        await self.sweeper.stop()
        await self.broadcaster.close_all()
        self.engine.dispose()
        logger.info("Database connection closed.")
