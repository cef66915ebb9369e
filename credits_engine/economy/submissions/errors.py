class SubmissionError(Exception):
    pass


class InsufficientCreditsError(SubmissionError):
    pass


class QuotaRaceLostError(SubmissionError):
    pass


class ServiceInMaintenanceError(SubmissionError):
    pass


class ActionCreationFailedError(SubmissionError):
    pass


class CompensationFailedError(SubmissionError):
    """The action debit could not be reversed and needs manual reconciliation."""
