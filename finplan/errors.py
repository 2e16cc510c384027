"""Exceptions raised by the planning engine."""


class InvalidParameters(ValueError):
    """Raised when a parameter record or engine argument cannot be used.

    Covers non-positive principal, tenure or time horizon, negative amounts,
    unknown frequency values, unparsable user input and inputs for which an
    iterative search can never converge (e.g. zero annual savings when
    searching for financial independence).
    """
