class LedgerServiceError(Exception):
    pass


class InvalidAmountError(LedgerServiceError):
    pass


class InvalidSourceError(LedgerServiceError):
    pass


class AccountNotFoundError(LedgerServiceError):
    pass


class CampaignNotFoundError(LedgerServiceError):
    pass


class PayoutNotFoundError(LedgerServiceError):
    pass


class BelowMinimumThresholdError(LedgerServiceError):
    pass


class InsufficientAvailableBalanceError(LedgerServiceError):
    pass


class InvalidStateTransitionError(LedgerServiceError):
    pass
