# pylint: disable=redefined-outer-name
"""pytest 에서 사용될 전역 Fixture들을 정의합니다."""
from __future__ import annotations

from typing import Generator

import pytest
from sqlalchemy import Column, Integer, String, create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from fasttx.orm import SessionMaker, clear_sessionmakers
from fasttx.test.unit import FakeSession, FakeSessionProvider
from fasttx.tx import TransactionManager

Base = declarative_base()


class Record(Base):  # type: ignore
    """통합 테스트에서 사용하는 레코드 엔티티."""

    __tablename__ = "record"

    id = Column(Integer, primary_key=True)
    name = Column(String(50), nullable=False, unique=True)


@pytest.fixture
def session() -> FakeSession:
    """트랜잭션이 시작되지 않은 :class:`FakeSession` 픽스처."""
    return FakeSession()


@pytest.fixture
def provider(session: FakeSession) -> FakeSessionProvider:
    return FakeSessionProvider(session)


@pytest.fixture
def manager(provider: FakeSessionProvider) -> TransactionManager:
    return TransactionManager(provider)


@pytest.fixture
def engine() -> Engine:
    """``record`` 테이블이 만들어진 인메모리 SQLite 엔진."""
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    Base.metadata.create_all(engine)
    return engine


@pytest.fixture
def get_session(engine: Engine) -> SessionMaker:
    """:class:`~sqlalchemy.orm.Session` 팩토리 픽스처."""
    return sessionmaker(engine)


@pytest.fixture(autouse=True)
def registry() -> Generator[None, None, None]:
    """테스트마다 세션 팩토리 레지스트리를 비웁니다."""
    clear_sessionmakers()
    yield
    clear_sessionmakers()
