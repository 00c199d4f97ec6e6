class HandoverError(Exception):
    """
    Base class for every failure the handover tool reports to the operator.
    """


class InvalidInputError(HandoverError):
    pass


class PreconditionError(HandoverError):
    pass


class VersionTooLowError(PreconditionError):
    def __init__(self, version: str, minimum_major: int):
        super().__init__(
            f"NTT manager version {version} does not support two-step mint authority "
            f"transfers (major version {minimum_major} or later is required). "
            "Upgrade the manager program first."
        )
        self.version = version
        self.minimum_major = minimum_major


class ManagerNotPausedError(PreconditionError):
    def __init__(self):
        super().__init__(
            "NTT manager is not paused. Pause the manager before changing the "
            "mint authority."
        )


class MintAuthorityError(HandoverError):
    pass


class SubmissionError(HandoverError):
    pass


class TransactionRejectedError(SubmissionError):
    pass


class ConfirmationTimeoutError(SubmissionError):
    """
    The transaction was sent but its confirmation could not be observed. It
    may still land, so the operator must check the explorer before retrying.
    """
