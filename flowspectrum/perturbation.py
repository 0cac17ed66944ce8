# Copyright© 2025-2026 Gesellschaft zur Förderung der angewandten Forschung e.V.
# acting on behalf of its Fraunhofer Institut für Graphische Datenverarbeitung.
# Licensed under the EUPL. See LICENSE.txt.

from typing import Any, Sequence
from dataclasses import dataclass
import numpy as np
import scipy.fft

from .backend import ArrayLike, ArrayNamespace, namespace_of_arrays, from_numpy, norm
from .statelayout import StateLayout
from .symmetry import Symmetry, project
from .utils import check_pos, check_open_unit

@dataclass(frozen=True)
class Supplied[T: ArrayLike]:
    """Perturbation given explicitly as a state vector."""

    #: State vector of the perturbation.
    state: T

@dataclass(frozen=True)
class Synthesize:
    """Random smooth perturbation, reproducible through its seed."""

    #: Seed of the random number generator.
    seed: int = 1

    #: Smoothness in (0, 1), Fourier amplitudes decay like (1-smoothness)^|k|.
    smoothness: float = 0.4

    def __post_init__(self) -> None:
        check_open_unit("smoothness", self.smoothness)

type PerturbationSpec = Supplied | Synthesize

class PerturbationBuilder:
    """
    Builds the initial perturbation of the Krylov sequence. Supplied states are copied,
    synthesized ones are drawn as random Fourier series on every field of the layout. The
    result is projected onto the subspace invariant under the symmetries and rescaled to
    the norm eps_du.
    """

    layout: StateLayout
    eps_du: float
    symmetries: tuple[Symmetry, ...]
    #: Remove the mean of every field.
    zero_mean: bool

    def __init__(
            self,
            layout: StateLayout,
            eps_du: float = 1e-7,
            symmetries: Sequence[Symmetry] = (),
            zero_mean: bool = False) -> None:
        self.layout = layout
        self.eps_du = eps_du
        self.symmetries = tuple(symmetries)
        self.zero_mean = zero_mean

    def __setattr__(self, name: str, value: Any) -> None:
        if name == "eps_du":
            check_pos(name, value)
        super().__setattr__(name, value)

    def __call__[T: ArrayLike](self, spec: PerturbationSpec, xp: ArrayNamespace[T]) -> T:
        if isinstance(spec, Supplied):
            self.layout.check(spec.state)
            vec = xp.asarray(spec.state, copy=True)
        elif isinstance(spec, Synthesize):
            vec = from_numpy(xp, self.synthesize(spec.seed, spec.smoothness))
        else:
            raise TypeError(f"Unknown perturbation specification {spec!r}")

        if self.zero_mean:
            vec = self._remove_mean(vec)
        vec = project(self.symmetries, vec)
        nrm = norm(vec)
        if nrm == 0.0:
            raise ValueError("Perturbation vanishes after symmetry projection")
        return vec * (self.eps_du / nrm)

    def synthesize(self, seed: int, smoothness: float) -> np.ndarray:
        """Random smooth state vector with unit scaled Fourier coefficients."""
        check_open_unit("smoothness", smoothness)
        rng = np.random.default_rng(seed)
        decay = 1.0 - smoothness
        fields = {}
        for name, shp in zip(self.layout.names, self.layout.shapes):
            half = (*shp[:-1], shp[-1]//2 + 1)
            coeffs = rng.standard_normal(half) + 1j*rng.standard_normal(half)
            waves = [np.abs(scipy.fft.fftfreq(n, 1.0/n)) for n in shp[:-1]]
            waves.append(np.arange(half[-1], dtype=float))
            wavenumber = sum(np.meshgrid(*waves, indexing="ij", sparse=True))
            fields[name] = scipy.fft.irfftn(coeffs * decay**wavenumber, s=shp)
        return self.layout.to_vector(fields)

    def _remove_mean[T: ArrayLike](self, vec: T) -> T:
        xp = namespace_of_arrays(vec)
        fields = self.layout.to_fields(vec)
        return self.layout.to_vector({name: field - xp.mean(field)
                                      for name, field in fields.items()})
