"""
Failure kinds raised by the estimator.

Every error here is scoped to a single sensor event: the ingest layer catches
``EstimatorError``, logs it, drops the event and keeps the prior belief.
"""


class EstimatorError(Exception):
    """Base class for per-event estimator failures."""


class StateDegenerate(EstimatorError):
    """State covariance cannot be factored (not positive semidefinite)."""


class ObservationDegenerate(EstimatorError):
    """Innovation covariance Pzz is singular or ill-conditioned."""


class LockTimeout(EstimatorError):
    """Belief store could not be acquired within the bounded wait."""


class NumericNonFinite(EstimatorError):
    """NaN or infinity reached the state vector or covariance."""
