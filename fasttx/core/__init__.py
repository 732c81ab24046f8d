from .errors import (  # noqa
    CommitError,
    FailureKind,
    FastTXError,
    PersistenceError,
    RollbackError,
    SessionLookupError,
    TransactionRequiredError,
    UnsupportedPropagationError,
    classify,
)
from .models import (  # noqa
    SUPPORTED_PROPAGATIONS,
    AbstractSession,
    AbstractSessionProvider,
    Propagation,
    TransactionState,
)
