"""Errors raised while simulating or evaluating the demand model."""

from __future__ import annotations


class NotPositiveDefiniteError(ValueError):
    """A random-coefficient covariance matrix has a negative eigenvalue."""

    def __init__(self, matrix_name: str = "covariance"):
        super().__init__(
            f"{matrix_name} matrix is not positive semi-definite; check the scale vector "
            "and correlation matrix that build it"
        )
        self.matrix_name = matrix_name


class EstimationError(RuntimeError):
    """The inference engine reported a numerical failure."""

    def __init__(self, message: str, diagnostics: dict | None = None):
        super().__init__(message)
        self.diagnostics = diagnostics or {}
