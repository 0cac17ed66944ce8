# Copyright© 2025-2026 Gesellschaft zur Förderung der angewandten Forschung e.V.
# acting on behalf of its Fraunhofer Institut für Graphische Datenverarbeitung.
# Licensed under the EUPL. See LICENSE.txt.

from typing import Optional, Protocol
from abc import ABC, abstractmethod
from math import nan
import logging

from .backend import ArrayLike, is_finite
from .errors import NonFiniteEvaluation, SectionNotReached
from .poincarecondition import PoincareCondition
from .resources import ResourceScope
from .symmetry import Symmetry, IdentitySymmetry
from .utils import check_pos

logger = logging.getLogger(__name__)

class FlowMap(Protocol):
    """
    Protocol for the nonlinear time integrator. Calling it advances a state vector by the
    given time. Integrators may expose the CFL number of their last integration as a
    ``cfl`` attribute.
    """

    def __call__[T: ArrayLike](self, vec: T, time: float, /) -> T:
        ...

class ResidualOperator(ABC):
    """
    Nonlinear residual G of a flow map, whose zeros are the invariant solutions. Evaluation
    is a pure function of the state for fixed configuration. The variants are selected once
    at construction, see residual_operator.
    """

    #: Time integrator f.
    flow: FlowMap
    #: Integration time T.
    time: float
    #: Resources the integrator depends on, evaluation is only allowed while they are held.
    resources: Optional[ResourceScope]
    _cfl: float

    @property
    def cfl(self) -> float:
        """CFL number reported by the flow map during the last evaluation."""
        return self._cfl

    @property
    def period(self) -> float:
        """Time between the state and its image, T for fixed time maps."""
        return self.time

    def __init__(
            self,
            flow: FlowMap,
            time: float,
            resources: Optional[ResourceScope] = None) -> None:
        check_pos("time", time)
        self.flow = flow
        self.time = time
        self.resources = resources
        self._cfl = nan

    def eval[T: ArrayLike](self, vec: T) -> T:
        """Evaluate the residual G(x)."""
        if self.resources is not None and not self.resources.active:
            raise RuntimeError(f"{type(self).__name__} evaluated outside of its resource scope")
        res = self._eval(vec)
        self._cfl = float(getattr(self.flow, "cfl", nan))
        if not is_finite(res):
            raise NonFiniteEvaluation(type(self).__name__)
        return res

    def __call__[T: ArrayLike](self, vec: T) -> T:
        return self.eval(vec)

    @abstractmethod
    def _eval[T: ArrayLike](self, vec: T) -> T:
        ...

class PlainResidual(ResidualOperator):
    """G(x) = f^T(x) - x."""

    def _eval[T: ArrayLike](self, vec: T) -> T:
        return self.flow(vec, self.time) - vec

class SymmetryResidual(ResidualOperator):
    """G(x) = sigma(f^T(x)) - x, for relative equilibria and relative periodic orbits."""

    sigma: Symmetry

    def __init__(
            self,
            flow: FlowMap,
            time: float,
            sigma: Symmetry,
            resources: Optional[ResourceScope] = None) -> None:
        super().__init__(flow, time, resources)
        self.sigma = sigma

    def _eval[T: ArrayLike](self, vec: T) -> T:
        return self.sigma(self.flow(vec, self.time)) - vec

class PoincareResidual(ResidualOperator):
    """
    Residual of the return map to a Poincaré section, G(x) = sigma(P(x)) - x. The state is
    integrated for the minimum return time, then marched in steps of dt until the section
    is crossed. The crossing time is refined with an Illinois type secant iteration until
    |h| <= tol.
    """

    section: PoincareCondition
    sigma: Symmetry
    #: Step used for detecting the crossing after the minimum return time.
    dt: float
    #: Maximum integration time before giving up on the crossing.
    max_time: float
    #: Tolerance on the section condition at the crossing.
    tol: float
    #: Maximum number of secant iterations.
    maxiter: int
    _crossing_time: float

    @property
    def crossing_time(self) -> float:
        """Return time of the last evaluation."""
        return self._crossing_time

    @property
    def period(self) -> float:
        """Return time of the last evaluation, nan before the first one."""
        return self._crossing_time

    def __init__(
            self,
            flow: FlowMap,
            time: float,
            section: PoincareCondition,
            sigma: Symmetry = IdentitySymmetry(),
            dt: float = 0.1,
            max_time: Optional[float] = None,
            tol: float = 1e-13,
            maxiter: int = 100,
            resources: Optional[ResourceScope] = None) -> None:
        super().__init__(flow, time, resources)
        check_pos("dt", dt)
        check_pos("tol", tol)
        check_pos("maxiter", maxiter)
        self.section = section
        self.sigma = sigma
        self.dt = dt
        self.max_time = 2.0*time if max_time is None else max_time
        if self.max_time < time:
            raise ValueError("max_time must not be below the minimum return time")
        self.tol = tol
        self.maxiter = maxiter
        self._crossing_time = nan

    def _eval[T: ArrayLike](self, vec: T) -> T:
        state = self.flow(vec, self.time)
        val = self.section(state)
        elapsed = self.time
        while True:
            if elapsed + self.dt > self.max_time:
                raise SectionNotReached(
                    f"no crossing of the Poincaré section within time {self.max_time}")
            nxt = self.flow(state, self.dt)
            nxt_val = self.section(nxt)
            if val < 0.0 <= nxt_val:
                break
            state, val = nxt, nxt_val
            elapsed += self.dt

        tau, crossing = self._refine(state, val, nxt, nxt_val)
        self._crossing_time = elapsed + tau
        return self.sigma(crossing) - vec

    def _refine[T: ArrayLike](self, start: T, val_a: float, end: T, val_b: float) -> tuple[float, T]:
        a, b = 0.0, self.dt
        best, best_tau, best_val = end, b, val_b
        side = 0
        for _ in range(self.maxiter):
            if abs(best_val) <= self.tol or val_b == val_a:
                break
            tau = b - val_b * (b - a) / (val_b - val_a)
            state = self.flow(start, tau)
            val = self.section(state)
            if abs(val) < abs(best_val):
                best, best_tau, best_val = state, tau, val
            if val < 0.0:
                a, val_a = tau, val
                if side == -1:
                    val_b *= 0.5
                side = -1
            else:
                b, val_b = tau, val
                if side == 1:
                    val_a *= 0.5
                side = 1
        if abs(best_val) > self.tol:
            logger.warning("Poincaré crossing refined to |h| = %.3e only, tolerance %.3e",
                           abs(best_val), self.tol)
        return best_tau, best

def residual_operator(
        flow: FlowMap,
        time: float,
        sigma: Optional[Symmetry] = None,
        section: Optional[PoincareCondition] = None,
        resources: Optional[ResourceScope] = None,
        **kwargs) -> ResidualOperator:
    """
    Select the residual variant from the configuration. A section yields the Poincaré
    return map residual, a symmetry without section the symmetry residual, otherwise the
    plain residual is used. Additional keyword arguments are passed to PoincareResidual.
    """
    if section is not None:
        if sigma is None:
            sigma = IdentitySymmetry()
        return PoincareResidual(flow, time, section, sigma, resources=resources, **kwargs)
    if kwargs:
        raise ValueError(f"Arguments {sorted(kwargs)} are only valid with a Poincaré section")
    if sigma is not None:
        return SymmetryResidual(flow, time, sigma, resources=resources)
    return PlainResidual(flow, time, resources=resources)
