from contextlib import asynccontextmanager
from typing import Callable
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from print_kiosk.domain.models import utcnow
from print_kiosk.infrastructure.repositories import SQLAlchemyOrderRepository


class UnitOfWork:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession], clock: Callable = utcnow):
        self._session_factory = session_factory
        self._clock = clock

    @asynccontextmanager
    async def __call__(self):
        async with self._session_factory() as session:
            try:
                uow_impl = _UnitOfWorkImpl(session, self._clock)
                yield uow_impl
                # Если commit не вызван, откатываем
                await session.rollback()
            except Exception:
                await session.rollback()
                raise


class _UnitOfWorkImpl:
    def __init__(self, session: AsyncSession, clock: Callable):
        self._session = session
        self.orders = SQLAlchemyOrderRepository(session, clock)

    async def commit(self):
        await self._session.commit()

    async def rollback(self):
        await self._session.rollback()
