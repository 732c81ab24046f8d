"""FastTX - 세션 트랜잭션 경계를 관리하는 실행기."""
from fasttx.core import (  # noqa
    AbstractSession,
    AbstractSessionProvider,
    CommitError,
    FailureKind,
    FastTXError,
    PersistenceError,
    Propagation,
    RollbackError,
    SessionLookupError,
    TransactionRequiredError,
    TransactionState,
    UnsupportedPropagationError,
    classify,
)
from fasttx.tx import TransactionManager, transactional  # noqa
