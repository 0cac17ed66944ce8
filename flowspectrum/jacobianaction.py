# Copyright© 2025-2026 Gesellschaft zur Förderung der angewandten Forschung e.V.
# acting on behalf of its Fraunhofer Institut für Graphische Datenverarbeitung.
# Licensed under the EUPL. See LICENSE.txt.

from typing import Any, Callable, Optional, cast

from .backend import ArrayLike, namespace_of_arrays, norm
from .residual import ResidualOperator
from .utils import check_pos

class JacobianAction[T: ArrayLike]:
    """
    Matrix-free action of the Jacobian of a residual operator at a base point,
    approximated by the forward difference (G(x0 + eps v) - G(x0)) / eps. The step eps
    is scaled with the norm of v such that the displacement eps v has norm eps_du,
    see eq. (15) in C.J. Mack, P.J. Schmid, J. Comput. Phys. 229 (2010) 541-560.
    The residual at the base point is evaluated once and kept until the base changes.
    """

    #: Nonlinear residual operator G.
    residual: ResidualOperator
    #: Magnitude of the finite difference displacement.
    eps_du: float
    #: Number of residual evaluations performed so far.
    evaluations: int
    _base: Optional[T]
    _base_residual: Optional[T]

    def __init__(self, residual: ResidualOperator, eps_du: float = 1e-7) -> None:
        self.residual = residual
        self.eps_du = eps_du
        self.evaluations = 0
        self._base = None
        self._base_residual = None

    def __setattr__(self, name: str, value: Any) -> None:
        if name == "eps_du":
            check_pos(name, value)
        super().__setattr__(name, value)

    def step(self, vec: T) -> float:
        """Finite difference step for the perturbation vec."""
        nrm = norm(vec)
        return self.eps_du if nrm < self.eps_du else self.eps_du / nrm

    def displacement(self, vec: T) -> T:
        """Displacement eps*vec applied to the base point."""
        return self.step(vec) * vec

    def base_residual(self, base: T) -> T:
        """G(x0), cached for the current base point."""
        if self._base is not base:
            if self._base is not None and self._base.shape != base.shape:
                raise ValueError("Base point changed its dimension")
            self._base_residual = self._evaluate(base)
            self._base = base
        return cast(T, self._base_residual)

    def noise(self, base: T) -> float:
        """
        Rounding error of the action on a unit vector. Evaluating G at x0 + eps v loses
        the relative precision of the larger of x0 and G(x0), which the division by eps
        amplifies. Residuals below this level cannot be told apart from zero.
        """
        xp = namespace_of_arrays(base)
        unit = float(xp.finfo(base.dtype).eps)
        scale = max(1.0, norm(base), norm(self.base_residual(base)))
        return 10.0 * unit * scale / self.eps_du

    def apply(self, base: T, vec: T) -> T:
        """Approximate (dG/dx)(base) vec."""
        if vec.shape != base.shape:
            raise ValueError("Perturbation and base point must have the same shape")
        ref = self.base_residual(base)
        eps = self.step(vec)
        return (self._evaluate(base + eps*vec) - ref) / eps

    def bind(self, base: T) -> Callable[[T], T]:
        """Linear map v -> J(base) v for use in Krylov solvers."""
        def matvec(vec: T) -> T:
            return self.apply(base, vec)
        return matvec

    def _evaluate(self, vec: T) -> T:
        self.evaluations += 1
        return self.residual.eval(vec)
