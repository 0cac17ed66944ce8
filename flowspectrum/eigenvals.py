# Copyright© 2025-2026 Gesellschaft zur Förderung der angewandten Forschung e.V.
# acting on behalf of its Fraunhofer Institut für Graphische Datenverarbeitung.
# Licensed under the EUPL. See LICENSE.txt.

from typing import Any, Optional, Sequence
from dataclasses import dataclass, field
from contextlib import nullcontext
from copy import deepcopy
import logging
import os
import h5py

from .backend import ArrayLike, namespace_of_arrays, norm
from .arnoldi import Arnoldi, ArnoldiResult, ArnoldiStatus
from .eigenvalueextractor import RitzValue
from .errors import InvalidBasePoint
from .jacobianaction import JacobianAction
from .perturbation import PerturbationBuilder, PerturbationSpec, Synthesize
from .residual import ResidualOperator
from .resources import ResourceScope
from .statelayout import StateLayout
from .symmetry import Symmetry
from .utils import check_pos, check_non_neg
from .io import write

logger = logging.getLogger(__name__)

@dataclass(kw_only=True)
class EigenvalsResult[T: ArrayLike]:
    #: Layout of the state vectors.
    layout: StateLayout
    #: Result of the Arnoldi iteration.
    arnoldi: ArnoldiResult[T]
    #: Ritz vectors of the leading eigenvalues.
    vectors: list[T] = field(default_factory=list)
    #: ||G(x0)|| of the base point.
    base_residual: float
    #: CFL number of the base point evaluation.
    cfl: float
    #: Period of the base point, the return time to the section for Poincaré residuals.
    time: float
    #: Number of nonlinear evaluations.
    evaluations: int

    @property
    def ritz(self) -> list[RitzValue]:
        return self.arnoldi.ritz

    @property
    def status(self) -> ArnoldiStatus:
        return self.arnoldi.status

@dataclass
class Eigenvals:
    """
    Eigenvalues of the linearization of a residual operator around an invariant solution.
    The base point is checked to be a zero of the residual, a perturbation is built as seed
    and the Arnoldi iteration is run on the finite difference Jacobian. Results are
    written to outdir/eigenvals.h5 if outdir is set.
    """

    #: Arnoldi iteration, nsteps has to be configured explicitly.
    arnoldi: Arnoldi

    #: Magnitude of the finite difference displacement.
    eps_du: float = 1e-7

    #: Maximum ||G(x0)|| accepted for the base point.
    residual_tol: float = 1e-6

    #: Seed of the Krylov sequence.
    perturbation: PerturbationSpec = field(default_factory=Synthesize)

    #: Symmetries the perturbation is restricted to.
    symmetries: Sequence[Symmetry] = ()

    #: Remove the mean of every field of the perturbation.
    zero_mean: bool = False

    #: Noise floor of the Jacobian action for breakdown detection, estimated from the base
    #: point if None.
    atol: Optional[float] = None

    #: Number of Ritz vectors to compute.
    nvectors: int = 0

    #: Output directory.
    outdir: Optional[str] = None

    def __setattr__(self, name: str, value: Any) -> None:
        if name in ("eps_du", "residual_tol"):
            check_pos(name, value)
        elif name == "atol" and value is not None:
            check_non_neg(name, value)
        elif name == "nvectors":
            check_non_neg(name, value)
        super().__setattr__(name, value)

    def __call__[T: ArrayLike](
            self,
            residual: ResidualOperator,
            base: T,
            layout: StateLayout) -> EigenvalsResult[T]:
        """
        Compute the eigenvalues for the base point. Raises InvalidBasePoint if the base is
        not a solution and NonFiniteEvaluation if an evaluation diverges.
        """
        layout.check(base)
        scope = residual.resources if residual.resources is not None else ResourceScope()
        with (nullcontext() if scope.active else scope):
            result = self._solve(residual, base, layout)
        if self.outdir is not None:
            self.save(result)
        return result

    def save(self, result: EigenvalsResult) -> str:
        os.makedirs(self.outdir or ".", exist_ok=True)
        path = os.path.join(self.outdir or ".", "eigenvals.h5")
        with h5py.File(path, "w") as file:
            write(file, result)
        logger.info("Saved eigenvalues to %s", path)
        return path

    def _solve[T: ArrayLike](
            self,
            residual: ResidualOperator,
            base: T,
            layout: StateLayout) -> EigenvalsResult[T]:
        xp = namespace_of_arrays(base)
        logger.info("State dimension %d, %s", layout.size, layout)

        jac = JacobianAction(residual, self.eps_du)
        logger.info("Computing G(x) = sigma f^T(x) - x of the base point with T = %g", residual.time)
        base_res = norm(jac.base_residual(base))
        # later evaluations move the crossing time of a Poincaré residual
        period = residual.period
        logger.info("CFL = %g", residual.cfl)
        if period != residual.time:
            logger.info("Return time of the base point %g", period)
        logger.info("L2Norm(G(x)) = %.6e", base_res)
        logger.info("L2Norm(G(x))/T = %.6e", base_res / period)
        if base_res > self.residual_tol:
            raise InvalidBasePoint(base_res, self.residual_tol)

        builder = PerturbationBuilder(layout, self.eps_du, self.symmetries, self.zero_mean)
        seed = builder(self.perturbation, xp)
        logger.info("Initial perturbation %s with norm %.3e", self.perturbation, norm(seed))

        arnoldi = deepcopy(self.arnoldi)
        if arnoldi.extractor.time is None:
            arnoldi.extractor.time = period
        arnoldi.atol = jac.noise(base) if self.atol is None else self.atol
        logger.info("Breakdown below %.3e relative or %.3e absolute", arnoldi.breakdown, arnoldi.atol)
        arn = arnoldi(jac.bind(base), seed)
        logger.info("Arnoldi iteration finished with status %s after %d steps in %.2fs",
                    arn.status.name, arn.size, arn.time)
        self._log_ritz(arn.ritz)

        vectors = arnoldi.extractor.vectors(arn.hessenberg, arn.basis, self.nvectors)
        return EigenvalsResult(layout=layout,
                               arnoldi=arn,
                               vectors=vectors,
                               base_residual=base_res,
                               cfl=residual.cfl,
                               time=period,
                               evaluations=jac.evaluations)

    def _log_ritz(self, ritz: Sequence[RitzValue]) -> None:
        logger.info("%4s %24s %24s %12s %12s", "n", "Re(lambda)", "Im(lambda)", "|mu|", "residual")
        for i, val in enumerate(ritz):
            logger.info("%4d %+24.16e %+24.16e %12.6e %12.6e%s", i+1, val.value.real, val.value.imag,
                        abs(val.multiplier), val.residual, "" if val.converged else " (unconverged)")
