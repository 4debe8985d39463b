"""Exceptions raised by the transaction store and the sync orchestrator."""


class StoreError(Exception):
    """A store transaction failed and was rolled back.

    Covers constraint violations (e.g. a transaction_id applied twice),
    lock timeouts and lost connections.
    """

    def __init__(self, message: str, item_id: str | None = None):
        self.item_id = item_id
        super().__init__(message)


class PassAborted(Exception):
    """A sync pass stopped before visiting every linked Item.

    ``completed`` lists the results of Items committed before the abort;
    they stay committed. The underlying failure, if any, is chained as
    ``__cause__`` and also exposed as ``cause``.
    """

    def __init__(
        self,
        message: str,
        item_id: str | None = None,
        completed: list | None = None,
        cause: BaseException | None = None,
    ):
        self.item_id = item_id
        self.completed = completed or []
        self.cause = cause
        super().__init__(message)


class SyncCancelledError(PassAborted):
    """The caller's cancel signal was set between two Items."""

    pass


class SyncInProgressError(Exception):
    """Another pass currently holds the sync lease."""

    def __init__(self, lock_name: str, holder: str | None = None):
        self.lock_name = lock_name
        self.holder = holder
        super().__init__(f"Sync already in progress ({lock_name})")
