"""FastTX 에러 정의.

모든 에러는 :class:`FailureKind` 태그를 가지며, 트랜잭션 실행기는 예외의
상속 관계가 아니라 이 태그(:func:`classify`)를 기준으로 복구 동작을 결정합니다.
"""
from __future__ import annotations

import enum
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError


class FailureKind(enum.Enum):
    """실패 분류 태그."""

    PERSISTENCE = "persistence"
    COMMIT = "commit"
    ROLLBACK = "rollback"
    TRANSACTION_REQUIRED = "transaction_required"
    CONFIGURATION = "configuration"
    UNKNOWN = "unknown"

    @property
    def is_persistence(self) -> bool:
        """영속성 계층에서 발생한 실패인지 여부."""
        return self in (FailureKind.PERSISTENCE, FailureKind.COMMIT, FailureKind.ROLLBACK)


class FastTXError(Exception):
    """``FastTX`` 와 관련된 모든 에러의 기본 클래스."""

    kind = FailureKind.UNKNOWN

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause
        self.suppressed: list[BaseException] = []
        """롤백/close 중에 발생했지만 보고되지 않은 2차 실패 목록."""

    def __str__(self) -> str:
        if self.cause is not None:
            return f"{self.message}: {self.cause!r}"
        return self.message


class UnsupportedPropagationError(FastTXError):
    """지원하지 않는 트랜잭션 전파 범위. 재시도 대상이 아닌 설정 오류입니다."""

    kind = FailureKind.CONFIGURATION


class SessionLookupError(FastTXError):
    """이름으로 등록된 세션 팩토리를 찾지 못했습니다."""

    kind = FailureKind.CONFIGURATION


class TransactionRequiredError(FastTXError):
    """``MANDATORY`` 범위인데 활성 트랜잭션이 없습니다."""

    kind = FailureKind.TRANSACTION_REQUIRED


class PersistenceError(FastTXError):
    """작업 함수나 세션에서 발생한 영속성 계층 실패."""

    kind = FailureKind.PERSISTENCE


class CommitError(PersistenceError):
    """커밋에 실패하여 트랜잭션이 롤백되었거나 롤백되어야 합니다."""

    kind = FailureKind.COMMIT


class RollbackError(PersistenceError):
    """롤백 자체가 실패했습니다."""

    kind = FailureKind.ROLLBACK


def classify(exc: BaseException) -> FailureKind:
    """예외를 :class:`FailureKind` 태그로 분류합니다.

    ``kind`` 속성을 가진 예외는 그 태그를, SqlAlchemy 예외는
    ``PERSISTENCE`` 를, 나머지는 ``UNKNOWN`` 을 리턴합니다.
    """
    kind = getattr(exc, "kind", None)
    if isinstance(kind, FailureKind):
        return kind
    if isinstance(exc, SQLAlchemyError):
        return FailureKind.PERSISTENCE
    return FailureKind.UNKNOWN
