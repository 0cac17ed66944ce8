# Copyright© 2025-2026 Gesellschaft zur Förderung der angewandten Forschung e.V.
# acting on behalf of its Fraunhofer Institut für Graphische Datenverarbeitung.
# Licensed under the EUPL. See LICENSE.txt.

from typing import Any, Callable, Optional, Sequence
from dataclasses import dataclass, field
from enum import Enum
from math import inf
import logging
import time
import numpy as np

from .backend import ArrayLike, DType, Device, namespace_of_arrays, size, device, inner, norm
from .eigenvalueextractor import EigenvalueExtractor, RitzValue
from .utils import check_pos, check_non_neg

logger = logging.getLogger(__name__)

class ArnoldiStatus(Enum):
    SEEDING = 0
    EXPANDING = 1
    #: Leading Ritz values stabilized.
    CONVERGED = 2
    #: Maximum subspace dimension reached.
    MAX_ITER = 3
    #: The Krylov subspace is invariant and cannot be extended.
    BREAKDOWN = 4
    #: Stopped by the callback.
    STOPPED = 5

class ArnoldiData[T: ArrayLike]:
    device: Device
    dtype: DType
    nsteps: int
    basis: T
    hess: np.ndarray
    size: int
    status: ArnoldiStatus

    def __init__(self, nsteps: int, guess: T) -> None:
        self.device = device(guess)
        self.dtype = guess.dtype
        self.nsteps = min(nsteps, size(guess))
        xp = namespace_of_arrays(guess)
        self.basis = xp.zeros((self.nsteps+1, *guess.shape),
                              device=self.device, dtype=self.dtype)
        self.hess = np.zeros((self.nsteps+1, self.nsteps))
        self.size = 0
        self.status = ArnoldiStatus.SEEDING

@dataclass(kw_only=True)
class ArnoldiResult[T: ArrayLike]:
    #: Hessenberg matrix of shape (m+1, m), the last row holds the residual h_{m+1,m}.
    hessenberg: np.ndarray
    #: Orthonormal Krylov basis q_1..q_m, stored row wise.
    basis: T
    #: Terminal state of the iteration.
    status: ArnoldiStatus
    #: Ritz values of the final Hessenberg matrix.
    ritz: list[RitzValue]
    #: Maximum relative change of the leading Ritz values at each step.
    history: list[float] = field(default_factory=list)
    #: Time taken by the iteration.
    time: float = 0.0

    @property
    def size(self) -> int:
        """Dimension m of the Krylov subspace."""
        return self.hessenberg.shape[1]

    @property
    def residual(self) -> float:
        """Norm of the component leaving the Krylov subspace, h_{m+1,m}."""
        if self.size == 0:
            return 0.0
        return float(self.hessenberg[-1, -1])

@dataclass
class Arnoldi:
    """
    Arnoldi eigenvalue iteration for a linear map given only through its action. The
    basis is orthogonalized with modified Gram-Schmidt, optionally repeated once to keep
    orthogonality at working precision. The iteration ends when the leading nstable Ritz
    values stop changing, when the subspace becomes invariant or after nsteps steps.
    """

    #: Maximum dimension of the Krylov subspace.
    nsteps: int

    #: Number of leading Ritz values required to stabilize.
    nstable: int = 5

    #: Maximum relative change of the leading Ritz values between consecutive steps.
    eps: float = 1e-8

    #: Relative size of the orthogonalized residual below which the subspace is invariant.
    breakdown: float = 1e-10

    #: Absolute noise floor of the linear map, residuals below it also mark the subspace invariant.
    atol: float = 0.0

    #: Orthogonalize twice against the basis.
    reorthogonalize: bool = True

    #: Extractor for the Ritz values of the Hessenberg matrix.
    extractor: EigenvalueExtractor = field(default_factory=EigenvalueExtractor)

    def __setattr__(self, name: str, value: Any) -> None:
        if name in ("nsteps", "nstable", "eps"):
            check_pos(name, value)
        elif name in ("breakdown", "atol"):
            check_non_neg(name, value)
        super().__setattr__(name, value)

    def __call__[T: ArrayLike](
            self,
            mat: Callable[[T], T],
            guess: T,
            callback: Optional[Callable[[int, Sequence[RitzValue]], bool]] = None,
            /) -> ArnoldiResult[T]:
        """
        Run the iteration for the linear map mat starting from guess. The callback is called
        with the subspace dimension and the current Ritz values after every step, returning
        True stops the iteration.
        """
        nrm = norm(guess)
        if nrm == 0.0:
            raise ValueError("Initial vector of the Arnoldi iteration must not vanish")

        stamp = time.time()
        data = ArnoldiData(self.nsteps, guess)
        data.basis[0, ...] = guess / nrm
        data.status = ArnoldiStatus.EXPANDING

        ritz: list[RitzValue] = []
        history: list[float] = []
        for k in range(data.nsteps):
            beta, scale = self._expand(mat, data, k)
            data.size = k + 1
            invariant = beta <= self._threshold(scale)
            if invariant:
                data.hess[k+1, k] = 0.0

            prev = ritz
            ritz = self.extractor(data.hess[:k+2, :k+1])
            history.append(self._change(prev, ritz))
            logger.debug("Arnoldi step %d: residual %.6e, change of leading Ritz values %.3e",
                         k+1, beta, history[-1])

            if invariant:
                data.status = ArnoldiStatus.BREAKDOWN
                logger.info("Krylov subspace became invariant after %d steps", k+1)
                break
            if callback is not None and callback(k+1, ritz):
                data.status = ArnoldiStatus.STOPPED
                break
            if history[-1] < self.eps:
                data.status = ArnoldiStatus.CONVERGED
                break
        else:
            data.status = ArnoldiStatus.MAX_ITER
            logger.warning("Arnoldi iteration reached the maximum of %d steps before the leading "
                           "%d Ritz values stabilized", data.nsteps, self.nstable)

        m = data.size
        return ArnoldiResult(hessenberg=np.array(data.hess[:m+1, :m]),
                             basis=data.basis[:m, ...],
                             status=data.status,
                             ritz=ritz,
                             history=history,
                             time=time.time() - stamp)

    def _expand[T: ArrayLike](
            self,
            mat: Callable[[T], T],
            data: ArnoldiData[T],
            idx: int) -> tuple[float, float]:
        basis, hess = data.basis, data.hess
        vec = mat(basis[idx, ...])
        if vec.shape != basis.shape[1:]:
            raise ValueError(f"Linear map returned shape {vec.shape}, expected {basis.shape[1:]}")
        scale = norm(vec)
        for _ in range(2 if self.reorthogonalize else 1):
            for j in range(idx + 1):
                coeff = inner(vec, basis[j, ...])
                hess[j, idx] += coeff
                vec = vec - coeff * basis[j, ...]
        beta = norm(vec)
        hess[idx+1, idx] = beta
        if beta > self._threshold(scale):
            basis[idx+1, ...] = vec / beta
        return beta, scale

    def _threshold(self, scale: float) -> float:
        return max(self.breakdown * scale, self.atol)

    def _change(self, prev: Sequence[RitzValue], cur: Sequence[RitzValue]) -> float:
        if len(prev) < self.nstable or len(cur) < self.nstable:
            return inf
        return max(abs(c.value - p.value) / max(abs(c.value), np.finfo(float).tiny)
                   for p, c in zip(prev[:self.nstable], cur[:self.nstable]))
