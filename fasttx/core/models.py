from __future__ import annotations

import abc
import enum
from typing import Union

from fasttx.core.errors import UnsupportedPropagationError


class Propagation(str, enum.Enum):
    """트랜잭션 전파 범위.

    표준 전파 타입을 모두 정의하지만 실행기가 지원하는 것은
    ``REQUIRED`` 와 ``MANDATORY`` 뿐입니다. 나머지는 설정 오류로 취급합니다.
    """

    REQUIRED = "REQUIRED"
    REQUIRES_NEW = "REQUIRES_NEW"
    MANDATORY = "MANDATORY"
    SUPPORTS = "SUPPORTS"
    NOT_SUPPORTED = "NOT_SUPPORTED"
    NEVER = "NEVER"

    @classmethod
    def of(cls, value: Union[Propagation, str]) -> Propagation:
        """지원되는 :class:`Propagation` 값으로 변환합니다.

        이름 문자열은 대소문자를 구분하지 않습니다.

        Raises:
            UnsupportedPropagationError: 알 수 없거나 지원하지 않는 범위.
        """
        scope: Union[Propagation, str, None] = value
        if not isinstance(value, Propagation):
            scope = cls.__members__.get(str(value).upper())

        if scope not in SUPPORTED_PROPAGATIONS:
            raise UnsupportedPropagationError(
                'Transactional scope "%s" not supported' % getattr(value, "value", value)
            )
        return scope  # type: ignore


SUPPORTED_PROPAGATIONS = frozenset({Propagation.REQUIRED, Propagation.MANDATORY})


class TransactionState(enum.Enum):
    """호출 한 번 동안 세션 트랜잭션이 거치는 상태."""

    NO_TRANSACTION = "no-transaction"
    ACTIVE = "active"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled-back"
    CLOSED = "closed"


class AbstractSession(abc.ABC):
    """세션의 트랜잭션 작업(`begin`, `commit`, `rollback`, `close`)을 추상화한 클래스."""

    @abc.abstractmethod
    def transaction_active(self) -> bool:
        """활성 트랜잭션이 있는지 여부."""
        raise NotImplementedError

    @abc.abstractmethod
    def begin(self) -> None:
        """트랜잭션을 시작합니다."""
        raise NotImplementedError

    @abc.abstractmethod
    def commit(self) -> None:
        """트랜잭션을 커밋합니다. 실패시 :class:`CommitError` 를 던집니다."""
        raise NotImplementedError

    @abc.abstractmethod
    def rollback(self) -> None:
        """트랜잭션을 롤백합니다. 실패시 :class:`RollbackError` 를 던집니다."""
        raise NotImplementedError

    @abc.abstractmethod
    def close(self) -> None:
        """세션을 닫습니다."""
        raise NotImplementedError


class AbstractSessionProvider(abc.ABC):
    """세션 인스턴스를 공급하고 회수하는 협력 객체의 인터페이스입니다."""

    @abc.abstractmethod
    def acquire(self) -> AbstractSession:
        """세션을 할당합니다."""
        raise NotImplementedError

    @abc.abstractmethod
    def release(self, session: AbstractSession) -> None:
        """더 이상 필요 없는 세션 인스턴스를 반환받습니다."""
        raise NotImplementedError
