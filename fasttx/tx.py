"""트랜잭션 실행기 모듈.

:class:`TransactionManager` 는 호출자가 넘긴 작업 함수를 세션 하나와 함께
실행하면서 다음 순서를 보장합니다.

    begin → 작업 실행 → commit 또는 rollback → close/release

- 전파 범위(:class:`Propagation`)에 따라 트랜잭션을 시작하거나 이미
  활성화되어 있어야 함을 확인합니다.
- 작업이 영속성 계층 에러로 실패하면 커밋 전에 롤백합니다.
- 커밋이 실패하면 커밋 시도 후 롤백합니다.
- 어떤 경로로 빠져나가든 세션은 정확히 한 번 close 되고 공급자에게 반환됩니다.
- 호출자에게는 최대 하나의 에러만 전달됩니다. 롤백/close 중 발생한 2차
  실패는 로그로만 남고 원래 원인을 가리지 않습니다.
"""
from __future__ import annotations

import functools
from typing import Any, Callable, Optional, TypeVar, Union

from fasttx.core import (
    AbstractSession,
    AbstractSessionProvider,
    FailureKind,
    FastTXError,
    PersistenceError,
    Propagation,
    TransactionRequiredError,
    TransactionState,
    classify,
)
from fasttx.logging import get_logger

R = TypeVar("R")
F = TypeVar("F", bound=Callable[..., Any])
Work = Callable[[AbstractSession], R]
Scope = Union[Propagation, str]

logger = get_logger("fasttx.tx")


class TransactionManager:
    """세션 트랜잭션 경계를 관리하는 실행기.

    주입된 공급자 외에는 상태를 갖지 않으므로 여러 호출자가 동시에
    사용해도 됩니다. 호출마다 독립적으로 할당된 세션을 사용합니다.
    """

    def __init__(self, provider: AbstractSessionProvider):
        self.provider = provider

    def __repr__(self) -> str:
        return f"TransactionManager[{self.provider!r}]"

    @classmethod
    def from_config(cls, config: Any) -> TransactionManager:
        """:class:`~fasttx.config.FastTXConfig` 에 등록된 세션 팩토리를 사용합니다."""
        from fasttx.orm import SqlAlchemySessionProvider

        return cls(SqlAlchemySessionProvider(config.session_factory))

    def do_with_session(self, scope: Scope, work: Work[R]) -> R:
        """세션 하나로 ``work`` 를 실행하고 결과를 리턴합니다.

        ``work`` 가 값을 리턴하지 않는 작업이면 ``None`` 을 리턴합니다.

        Raises:
            UnsupportedPropagationError: 세션을 할당하기 전에 발생합니다.
            TransactionRequiredError: ``MANDATORY`` 인데 트랜잭션이 없는 경우.
            PersistenceError: 영속성 계층 실패(원인 보존) 또는 알 수 없는
                실패를 감싼 에러.
        """
        propagation = Propagation.of(scope)
        session = self.provider.acquire()
        failure: Optional[BaseException] = None

        try:
            self._resolve_boundary(session, propagation)
            return self._execute(session, work)
        except Exception as e:
            failure = _surface(e)
            if failure is e:
                raise
            raise failure from e
        except BaseException as e:
            failure = e
            raise
        finally:
            self._release(session, failure)

    def run(self, scope: Scope, action: Callable[[AbstractSession], Any]) -> None:
        """값을 리턴하지 않는 작업을 실행합니다."""
        self.do_with_session(scope, action)

    def _resolve_boundary(self, session: AbstractSession, propagation: Propagation) -> None:
        if propagation is Propagation.REQUIRED:
            if not session.transaction_active():
                session.begin()
                _log_transition(
                    "Transaction begun",
                    TransactionState.NO_TRANSACTION,
                    TransactionState.ACTIVE,
                )
            else:
                logger.debug("Reusing active transaction")
        elif propagation is Propagation.MANDATORY:
            if not session.transaction_active():
                raise TransactionRequiredError("Transaction is mandatory to be active")

    def _execute(self, session: AbstractSession, work: Work[R]) -> R:
        try:
            result = work(session)
        except Exception as e:
            if classify(e).is_persistence:
                self._rollback(session, e, before_commit=True)
            raise

        try:
            session.commit()
        except Exception as e:
            if classify(e) is FailureKind.COMMIT:
                self._rollback(session, e, before_commit=False)
            raise
        _log_transition(
            "Transaction committed", TransactionState.ACTIVE, TransactionState.COMMITTED
        )

        return result

    def _rollback(
        self, session: AbstractSession, cause: Exception, before_commit: bool
    ) -> None:
        """롤백을 시도합니다. 롤백 실패는 ``cause`` 를 대체하지 않습니다."""
        tag = "before commit is called" if before_commit else "after commit attempt"
        try:
            session.rollback()
        except Exception as e:
            _suppress(cause, e, f"Rollback {tag} failed")
        else:
            _log_transition(
                f"Transaction is rolled back {tag}",
                TransactionState.ACTIVE,
                TransactionState.ROLLED_BACK,
            )

    def _release(
        self, session: AbstractSession, failure: Optional[BaseException]
    ) -> None:
        """세션을 close 하고 공급자에게 반환합니다.

        다른 실패가 진행 중이면 close 실패는 로그만 남기고, 그렇지 않으면
        다른 실패와 같은 규칙으로 호출자에게 전달합니다.
        """
        try:
            session.close()
            _log_transition("Closed session", None, TransactionState.CLOSED)
        except Exception as e:
            if failure is not None:
                _suppress(failure, e, "Closing session failed")
            else:
                error = _surface(e)
                if error is e:
                    raise
                raise error from e
        finally:
            self.provider.release(session)


def transactional(
    manager: TransactionManager, scope: Scope = Propagation.REQUIRED
) -> Callable[[F], F]:
    """함수를 :meth:`TransactionManager.do_with_session` 안에서 실행하는 데코레이터.

    데코레이트된 함수는 첫 번째 인자로 세션을 받습니다.

    Example: ::

        @transactional(manager)
        def add_user(session, name):
            session.execute(text("INSERT INTO users (name) VALUES (:name)"), {"name": name})

        add_user("kim")
    """
    Propagation.of(scope)

    def decorator(fn: F) -> F:
        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            return manager.do_with_session(
                scope, lambda session: fn(session, *args, **kwargs)
            )

        return wrapper  # type: ignore

    return decorator


def _log_transition(
    message: str, old: Optional[TransactionState], new: TransactionState
) -> None:
    if old is not None:
        logger.debug("%s (%s -> %s)", message, old.value, new.value)
    else:
        logger.debug("%s (-> %s)", message, new.value)


def _surface(exc: Exception) -> Exception:
    """호출자에게 전달할 에러. 영속성 계층 에러는 그대로, 나머지는 감쌉니다."""
    if classify(exc) is not FailureKind.UNKNOWN:
        return exc
    return PersistenceError("Error while performing transaction, check the cause", exc)


def _suppress(primary: BaseException, secondary: BaseException, what: str) -> None:
    logger.warning("%s while handling %r", what, primary, exc_info=secondary)
    if isinstance(primary, FastTXError):
        primary.suppressed.append(secondary)
