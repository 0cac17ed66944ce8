# Copyright© 2025-2026 Gesellschaft zur Förderung der angewandten Forschung e.V.
# acting on behalf of its Fraunhofer Institut für Graphische Datenverarbeitung.
# Licensed under the EUPL. See LICENSE.txt.

from typing import Any, Optional
from dataclasses import dataclass
from math import inf, nan
import cmath
import numpy as np

from .backend import ArrayLike, namespace_of_arrays, from_numpy
from .eigsolver import EigSolver
from .matrixeigenvaluedecomposition import MatrixEigenvalueDecomposition
from .utils import check_pos

@dataclass(frozen=True, kw_only=True)
class RitzValue:
    #: Eigenvalue of the Hessenberg matrix, estimate of an eigenvalue of the Jacobian of G.
    value: complex
    #: Residual estimate |h_{m+1,m}| |e_m^T y| of the Ritz pair.
    residual: float
    #: Whether the residual is below the tolerance of the extractor.
    converged: bool
    #: Corresponding eigenvalue of the linearized flow map, value + 1.
    multiplier: complex
    #: Floquet exponent log(multiplier)/T, nan if no time was given.
    exponent: complex
    #: Column of the eigenvector in the decomposition of the Hessenberg matrix.
    index: int

@dataclass
class EigenvalueExtractor:
    """
    Extracts Ritz values from an Arnoldi Hessenberg matrix. The Ritz values are ordered
    by descending magnitude, ties are broken by descending real and imaginary part, so
    conjugate pairs appear with the positive imaginary part first.
    """

    #: Relative tolerance on the Ritz residual for a value to count as converged.
    tol: float = 1e-6

    #: Integration time used to convert multipliers to exponents.
    time: Optional[float] = None

    #: Dense eigenvalue solver for the Hessenberg matrix.
    solver: MatrixEigenvalueDecomposition = EigSolver()

    def __setattr__(self, name: str, value: Any) -> None:
        if name == "tol" or (name == "time" and value is not None):
            check_pos(name, value)
        super().__setattr__(name, value)

    def __call__(self, hess: np.ndarray, residual: Optional[float] = None) -> list[RitzValue]:
        """
        Ritz values of a square Hessenberg matrix, or of an (m+1) x m Arnoldi matrix whose
        last row provides the residual h_{m+1,m}.
        """
        return self._decompose(hess, residual)[0]

    def vectors[T: ArrayLike](
            self,
            hess: np.ndarray,
            basis: T,
            count: int,
            residual: Optional[float] = None) -> list[T]:
        """Complex Ritz vectors Q_m y of the leading count Ritz values."""
        ritz, vecs = self._decompose(hess, residual)
        size = vecs.shape[0]
        if basis.shape[0] < size:
            raise ValueError(f"Basis holds {basis.shape[0]} vectors, {size} required")
        xp = namespace_of_arrays(basis)
        result = []
        for val in ritz[:count]:
            coeffs = vecs[:, val.index]
            real = xp.tensordot(from_numpy(xp, np.ascontiguousarray(coeffs.real), like=basis),
                                basis[:size, ...], axes=([0], [0]))
            imag = xp.tensordot(from_numpy(xp, np.ascontiguousarray(coeffs.imag), like=basis),
                                basis[:size, ...], axes=([0], [0]))
            result.append(real + 1j*imag)
        return result

    def _decompose(self, hess: np.ndarray, residual: Optional[float]) -> tuple[list[RitzValue], np.ndarray]:
        square, res = self._split(hess, residual)
        vals, vecs = self.solver(np.array(square, copy=True))
        size = square.shape[0]

        ritz = []
        for i in range(size):
            val = complex(vals[i])
            est = abs(res) * abs(vecs[size-1, i])
            ritz.append(RitzValue(value=val,
                                  residual=float(est),
                                  converged=bool(est <= self.tol * max(1.0, abs(val))),
                                  multiplier=val + 1.0,
                                  exponent=self._exponent(val + 1.0),
                                  index=i))
        ritz.sort(key=lambda r: (-abs(r.value), -r.value.real, -r.value.imag))
        return ritz, vecs

    def _split(self, hess: np.ndarray, residual: Optional[float]) -> tuple[np.ndarray, float]:
        if hess.ndim != 2:
            raise ValueError(f"Hessenberg matrix must be two dimensional, got shape {hess.shape}")
        rows, cols = hess.shape
        if rows == cols + 1:
            if residual is not None:
                raise ValueError("Residual is given by the last row of a rectangular Hessenberg matrix")
            res = float(hess[rows-1, cols-1]) if cols > 0 else 0.0
            return hess[:cols, :], res
        if rows == cols:
            return hess, 0.0 if residual is None else float(residual)
        raise ValueError(f"Hessenberg matrix of shape {hess.shape} is neither m x m nor (m+1) x m")

    def _exponent(self, mult: complex) -> complex:
        if self.time is None:
            return complex(nan, nan)
        if mult == 0.0:
            return complex(-inf, 0.0)
        return cmath.log(mult) / self.time
