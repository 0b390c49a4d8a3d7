class RenewalError(ValueError):
    """A membership could not be renewed."""


class MembershipNotFound(RenewalError):
    pass


class MembershipNotRenewable(RenewalError):
    pass
