# Copyright© 2025-2026 Gesellschaft zur Förderung der angewandten Forschung e.V.
# acting on behalf of its Fraunhofer Institut für Graphische Datenverarbeitung.
# Licensed under the EUPL. See LICENSE.txt.

class FlowSpectrumError(RuntimeError):
    """Base class for errors that terminate an eigenvalue computation."""

class InvalidBasePoint(FlowSpectrumError):
    """The base point does not satisfy the fixed point condition."""

    def __init__(self, residual: float, tol: float) -> None:
        self.residual = residual
        self.tol = tol
        super().__init__(
            f"not a solution: residual {residual:.6e} exceeds tolerance {tol:.6e}")

class NonFiniteEvaluation(FlowSpectrumError, FloatingPointError):
    """The nonlinear evaluation produced NaN or Inf values."""

    def __init__(self, operator: str) -> None:
        self.operator = operator
        super().__init__(
            f"{operator} produced non-finite values, the flow integration diverged")

class SectionNotReached(FlowSpectrumError):
    """No crossing of the Poincaré section was found within the maximum time."""
