"""
Error taxonomy for Planner.

Every error ends up as a chat reply at the boundary; the classes only decide
how much of it the user gets to see.
"""


class PlannerError(Exception):
    """Base class for Planner errors."""


class UserInputError(PlannerError):
    """Missing field, unknown target, or nothing to act on.

    The message is user-facing and is returned verbatim as the reply.
    """


class ExternalServiceError(PlannerError):
    """The intent classifier was unreachable, slow, or answered garbage."""


class StoreError(PlannerError):
    """The entity store failed. Details are logged, never shown."""
