"""Error taxonomy shared by the gateway client, the reconciliation engine
and the HTTP adapters."""


class PaymentError(Exception):
    """Base class for every error raised by the payment core."""


class ConfigurationError(PaymentError):
    """Gateway credentials are missing or unusable."""


class GatewayError(PaymentError):
    """The gateway could not be reached or answered with something unusable.

    Callers treat this as "status unknown": it never means the payment failed
    and never leads to a state change.
    """


class ValidationError(PaymentError):
    """An inbound payload or argument was rejected before reaching the engine."""


class TeamNotFound(PaymentError):
    def __init__(self, team_id: str):
        self.team_id = team_id
        super().__init__(f"Team '{team_id}' not found")


class TrxMismatch(PaymentError):
    """The supplied transaction id is not the one bound to the team."""

    def __init__(self, team_id: str | None, trx_id: str):
        self.team_id = team_id
        self.trx_id = trx_id
        super().__init__(f"Transaction '{trx_id}' is not bound to team '{team_id}'")


class TrxAlreadyAssigned(PaymentError):
    """The team already holds a transaction id, which is never overwritten."""

    def __init__(self, team_id: str, existing_trx_id: str | None):
        self.team_id = team_id
        self.existing_trx_id = existing_trx_id
        super().__init__(
            f"Team '{team_id}' already holds transaction '{existing_trx_id}'"
        )


class InvalidTransition(PaymentError):
    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        msg = f"Invalid transition from '{from_status}' to '{to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)
