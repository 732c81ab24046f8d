"""SqlAlchemy 세션 어댑터 모듈.

- :class:`SqlAlchemySession`: ``sqlalchemy.orm.Session`` 을 :class:`AbstractSession` 으로 감쌉니다.
- 이름으로 세션 팩토리를 등록하고 찾는 레지스트리를 제공합니다.
- :class:`SqlAlchemySessionProvider`, :class:`ContextSessionProvider`: 세션 공급자 구현.
"""
from __future__ import annotations

from contextvars import ContextVar
from typing import TYPE_CHECKING, Any, Callable, Optional, Type, Union, cast

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.orm.session import Session
from sqlalchemy.pool import Pool

from fasttx.core import (
    AbstractSession,
    AbstractSessionProvider,
    CommitError,
    RollbackError,
    SessionLookupError,
)
from fasttx.logging import get_logger

if TYPE_CHECKING:
    from fasttx.config import FastTXConfig

SessionMaker = Callable[[], Session]
"""Session 팩토리 타입."""

logger = get_logger("fasttx.orm")

_sessionmakers: dict[str, SessionMaker] = {}


def register_sessionmaker(name: str, maker: SessionMaker) -> None:
    """세션 팩토리를 ``name`` 으로 등록합니다. 같은 이름이면 교체합니다."""
    _sessionmakers[name] = maker


def lookup_sessionmaker(name: str) -> SessionMaker:
    """``name`` 으로 등록된 세션 팩토리를 찾습니다.

    Raises:
        SessionLookupError: 등록된 팩토리가 없는 경우.
    """
    try:
        return _sessionmakers[name]
    except KeyError as e:
        raise SessionLookupError(f"No session factory registered as {name!r}", e) from e


def clear_sessionmakers() -> None:
    """등록된 세션 팩토리를 모두 지웁니다."""
    _sessionmakers.clear()


class SqlAlchemySession(AbstractSession):
    """``SqlAlchemy`` ORM 세션을 이용한 :class:`AbstractSession` 구현입니다.

    트랜잭션 작업 외의 속성(``execute``, ``add``, ``query`` 등)은 감싼 세션에
    위임하므로 작업 함수는 일반 ``Session`` 처럼 사용할 수 있습니다.
    """

    def __init__(self, session: Session):
        self.session = session

    def __repr__(self) -> str:
        return f"SqlAlchemySession[{self.session!r}]"

    def __getattr__(self, name: str) -> Any:
        if name == "session":
            raise AttributeError(name)
        return getattr(self.session, name)

    def transaction_active(self) -> bool:
        return self.session.in_transaction()

    def begin(self) -> None:
        self.session.begin()

    def commit(self) -> None:
        """세션을 커밋합니다.

        flush/커밋 중 발생한 SqlAlchemy 에러는 :class:`CommitError` 로 바꿉니다.
        이 경우 세션은 롤백이 필요한 상태입니다.
        """
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            raise CommitError("Transaction commit failed", e) from e

    def rollback(self) -> None:
        try:
            self.session.rollback()
        except SQLAlchemyError as e:
            raise RollbackError("Transaction rollback failed", e) from e

    def close(self) -> None:
        self.session.close()


MakerOrName = Union[SessionMaker, str]


def _resolve_maker(maker: MakerOrName) -> SessionMaker:
    if isinstance(maker, str):
        return lookup_sessionmaker(maker)
    return maker


class SqlAlchemySessionProvider(AbstractSessionProvider):
    """:meth:`acquire` 할 때마다 새 세션을 만드는 공급자.

    팩토리 대신 이름을 주면 :meth:`acquire` 시점에 레지스트리에서 찾습니다.
    """

    def __init__(self, maker: MakerOrName):
        self.maker = maker

    def __repr__(self) -> str:
        return f"SqlAlchemySessionProvider[{self.maker!r}]"

    def acquire(self) -> SqlAlchemySession:
        session = SqlAlchemySession(_resolve_maker(self.maker)())
        logger.debug("Returning new session %r", session)
        return session

    def release(self, session: AbstractSession) -> None:
        logger.debug("Session released: %r", session)


class ContextSessionProvider(AbstractSessionProvider):
    """현재 컨텍스트(요청, 태스크)마다 세션 하나를 유지하는 공급자.

    - :meth:`acquire` 는 컨텍스트에 바인딩된 세션을 리턴하고, 없으면 새로 만들어 바인딩합니다.
    - :meth:`bind` 로 CLI나 테스트에서 직접 세션을 바인딩할 수 있습니다.
    - :meth:`release` 는 바인딩을 제거하므로 다음 :meth:`acquire` 는 새 세션을 만듭니다.
    """

    def __init__(self, maker: MakerOrName, name: str = "fasttx_session"):
        self.maker = maker
        self._current: ContextVar[Optional[AbstractSession]] = ContextVar(name, default=None)

    def __repr__(self) -> str:
        return f"ContextSessionProvider[{self.maker!r}]"

    @property
    def current(self) -> Optional[AbstractSession]:
        """현재 컨텍스트에 바인딩된 세션."""
        return self._current.get()

    def bind(self, session: Union[AbstractSession, Session]) -> AbstractSession:
        if isinstance(session, Session):
            session = SqlAlchemySession(session)
        self._current.set(session)
        return session

    def acquire(self) -> AbstractSession:
        session = self._current.get()
        if session is None:
            session = self.bind(_resolve_maker(self.maker)())
            logger.debug("Returning new session for this context %r", session)
        return session

    def release(self, session: AbstractSession) -> None:
        if self._current.get() is session:
            self._current.set(None)
        logger.debug("Session destroyed for this context: %r", session)


def init_engine(
    url: str,
    connect_args: Optional[dict[str, Any]] = None,
    poolclass: Optional[Type[Pool]] = None,
    echo: bool = False,
) -> Engine:
    """ORM Engine을 초기화 합니다."""
    return create_engine(
        url,
        connect_args=connect_args or {},
        poolclass=poolclass,
        echo=echo,
    )


def init_db(config: FastTXConfig) -> SessionMaker:
    """설정으로 세션 팩토리를 만들어 ``config.session_factory`` 이름으로 등록합니다."""
    engine = init_engine(
        config.get_db_url(),
        connect_args=config.get_db_connect_args(),
        poolclass=config.get_db_poolclass(),
        echo=config.echo,
    )
    maker = cast(SessionMaker, sessionmaker(engine))
    register_sessionmaker(config.session_factory, maker)
    logger.debug("Session factory %r registered for %s", config.session_factory, engine.url)
    return maker
