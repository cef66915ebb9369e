class LedgerError(Exception):
    pass


class InsufficientDiamondsError(LedgerError):
    pass


class InvalidExchangeQuantityError(LedgerError):
    pass


class WalletNotFoundError(LedgerError):
    pass


class LedgerUnavailableError(LedgerError):
    """Transient storage fault; the operation left no partial state and may be retried."""


class WalletClosedError(LedgerError):
    pass
