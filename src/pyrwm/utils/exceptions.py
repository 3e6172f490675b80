"""Custom exceptions and warnings for pyrwm.

This module defines the exception hierarchy for the pyrwm package,
providing specific error types for different failure modes.
"""


class PyRWMError(Exception):
    """Base exception class for all pyrwm-specific errors.

    This is the root exception class from which all other pyrwm
    exceptions inherit. It can be used to catch any pyrwm-related
    error in a general exception handler.
    """

    pass


class InputError(PyRWMError):
    """Raised when required inputs are missing or invalid.

    This exception is raised when:
    - Input arrays have incompatible shapes
    - Parameter values are outside acceptable ranges
    - Estimator arguments are inconsistent with each other

    Parameters
    ----------
    msg : str, optional
        Human-readable error message describing the input problem.
    """

    def __init__(self, msg="Invalid or missing input parameters"):
        super().__init__(msg)


class ConfigurationError(InputError):
    """Raised when a sampler is configured incorrectly.

    Configuration errors are detected before any sampling takes place, so a
    call that raises this never returns partial output. Examples are an
    invalid number of degrees of freedom, a non-positive thinning number, a
    negative burn-in, blocks that do not match the step sizes, or a step
    covariance that is not positive definite.

    Parameters
    ----------
    msg : str, optional
        Human-readable error message describing the configuration problem.
    """

    def __init__(self, msg="Invalid sampler configuration"):
        super().__init__(msg)


class BracketWarning(UserWarning):
    """Issued when a root-finder cannot bracket zero.

    The estimator carries on and returns the boundary value nearest to zero.
    """


class DrawCountWarning(UserWarning):
    """Issued to report how many auxiliary draws fell inside the bounds."""
