# Copyright© 2025-2026 Gesellschaft zur Förderung der angewandten Forschung e.V.
# acting on behalf of its Fraunhofer Institut für Graphische Datenverarbeitung.
# Licensed under the EUPL. See LICENSE.txt.

from typing import Any, Mapping, Optional, Sequence, Type, overload
from dataclasses import dataclass
import h5py

from .backend import ArrayNamespace, get_namespace
from .statelayout import StateLayout
from .symmetry import Symmetry, FieldSymmetry, IdentitySymmetry
from .poincarecondition import PoincareCondition, HyperplaneSection
from .resources import ResourceScope, FFTWorkers
from .residual import FlowMap, ResidualOperator, residual_operator
from .jacobianaction import JacobianAction
from .eigenvalueextractor import EigenvalueExtractor
from .arnoldi import Arnoldi, ArnoldiResult
from .perturbation import PerturbationBuilder, PerturbationSpec, Supplied, Synthesize
from .eigenvals import Eigenvals, EigenvalsResult

from .io import write as _write, read as _read
from .io import write_state as _write_state, read_state as _read_state

#-------------------------------------------------------------------------------------------------
# Construction wrapper
@dataclass(frozen=True)
class FlowSpectrum[NDArray: Any]:
    """
    Entry point for computing spectra of invariant solutions. All state vectors created
    or read through this object live in the bound array namespace.
    """

    #: Array namespace for the underlying array library.
    namespace: ArrayNamespace[NDArray]

    def __init__(self, namespace: Any) -> None:
        object.__setattr__(self, "namespace", get_namespace(namespace))

    #-------------------------------------------------------------------------------------------------
    # state wrapper

    def layout(self, fields: Mapping[str, Sequence[int]]) -> StateLayout:
        """
        Layout of a state vector made of named fields, e.g.
        ``{"u": (3, nx, ny, nz), "temp": (nx, ny, nz)}``.
        """
        return StateLayout(fields)

    def state(self, layout: StateLayout, fields: Mapping[str, Any]) -> NDArray:
        """Flatten named fields into a state vector."""
        return layout.to_vector({name: self.namespace.asarray(field) for name, field in fields.items()})

    def fields(self, layout: StateLayout, state: NDArray) -> dict[str, NDArray]:
        """Split a state vector into its named fields."""
        return layout.to_fields(state)

    #-------------------------------------------------------------------------------------------------
    # operator wrapper

    def symmetry(
            self,
            layout: StateLayout,
            sign: float | Mapping[str, float] = 1.0,
            flips: Sequence[int] = (),
            shifts: Mapping[int, int] = {}) -> FieldSymmetry:
        """
        Field wise symmetry made of axis reflections, periodic shifts and sign changes.
        """
        return FieldSymmetry(layout, sign=sign, flips=flips, shifts=shifts)

    def identity(self) -> IdentitySymmetry:
        return IdentitySymmetry()

    def hyperplane(self, normal: NDArray, point: NDArray) -> HyperplaneSection:
        """Poincaré section through point with the given normal."""
        return HyperplaneSection(normal, point)

    def resources(self, *, workers: Optional[int] = None) -> ResourceScope:
        """
        Scope of the process wide resources of a run. With workers set, the number of
        scipy.fft worker threads is fixed while the scope is active.
        """
        res = [] if workers is None else [FFTWorkers(workers)]
        return ResourceScope(*res)

    def residual(
            self,
            flow: FlowMap,
            time: float,
            *,
            sigma: Optional[Symmetry] = None,
            section: Optional[PoincareCondition] = None,
            resources: Optional[ResourceScope] = None,
            **kwargs) -> ResidualOperator:
        """
        Nonlinear residual G(x) = sigma f^T(x) - x. With a section the return map to the
        Poincaré section replaces the fixed time map, the remaining keyword arguments
        (dt, max_time, tol, maxiter) configure the crossing detection.
        """
        return residual_operator(flow, time, sigma=sigma, section=section, resources=resources, **kwargs)

    def jacobian(self, residual: ResidualOperator, *, eps_du: float = 1e-7) -> JacobianAction[NDArray]:
        """Finite difference Jacobian action of the residual."""
        return JacobianAction(residual, eps_du)

    #-------------------------------------------------------------------------------------------------
    # solver wrapper

    def extractor(self, *, tol: float = 1e-6, time: Optional[float] = None) -> EigenvalueExtractor:
        """Ritz value extraction from Hessenberg matrices."""
        return EigenvalueExtractor(tol=tol, time=time)

    def arnoldi(
            self, *,
            nsteps: int,
            nstable: int = 5,
            eps: float = 1e-8,
            breakdown: float = 1e-10,
            atol: float = 0.0,
            tol: float = 1e-6,
            time: Optional[float] = None) -> Arnoldi:
        """
        Arnoldi iterative eigenvalue solver with a maximum subspace dimension of nsteps.
        """
        return Arnoldi(nsteps=nsteps, nstable=nstable, eps=eps, breakdown=breakdown, atol=atol,
                       extractor=EigenvalueExtractor(tol=tol, time=time))

    def perturbation(
            self,
            layout: StateLayout,
            *,
            eps_du: float = 1e-7,
            symmetries: Sequence[Symmetry] = (),
            zero_mean: bool = False) -> PerturbationBuilder:
        """Builder for the initial perturbation of the Krylov sequence."""
        return PerturbationBuilder(layout, eps_du, symmetries, zero_mean)

    def supplied(self, state: NDArray) -> Supplied[NDArray]:
        """Perturbation given by a state vector."""
        return Supplied(state)

    def synthesize(self, *, seed: int = 1, smoothness: float = 0.4) -> Synthesize:
        """Random smooth perturbation."""
        return Synthesize(seed, smoothness)

    def eigenvals(
            self, *,
            nsteps: int,
            nstable: int = 5,
            eps: float = 1e-8,
            breakdown: float = 1e-10,
            atol: Optional[float] = None,
            tol: float = 1e-6,
            eps_du: float = 1e-7,
            residual_tol: float = 1e-6,
            perturbation: Optional[PerturbationSpec] = None,
            symmetries: Sequence[Symmetry] = (),
            zero_mean: bool = False,
            nvectors: int = 0,
            outdir: Optional[str] = None) -> Eigenvals:
        """
        Driver computing the spectrum of an invariant solution with the Arnoldi iteration
        on the finite difference Jacobian. Breakdown is detected relative to the norm of the
        Jacobian action or below the absolute noise floor atol, which is estimated from the
        rounding error of the finite differences at the base point if not given.
        """
        if perturbation is None:
            perturbation = Synthesize()
        return Eigenvals(arnoldi=self.arnoldi(nsteps=nsteps, nstable=nstable, eps=eps,
                                               breakdown=breakdown, tol=tol),
                         eps_du=eps_du,
                         atol=atol,
                         residual_tol=residual_tol,
                         perturbation=perturbation,
                         symmetries=symmetries,
                         zero_mean=zero_mean,
                         nvectors=nvectors,
                         outdir=outdir)

    #-------------------------------------------------------------------------------------------------
    # io wrapper

    @overload
    def write(self, group: h5py.Group, obj: StateLayout) -> None: ...
    @overload
    def write(self, group: h5py.Group, obj: ArnoldiResult[NDArray]) -> None: ...
    @overload
    def write(self, group: h5py.Group, obj: EigenvalsResult[NDArray]) -> None: ...
    # implementation
    def write(self, group: h5py.Group, obj: Any) -> None:
        """
        Write a layout, an Arnoldi result or an eigenvalue result to a hdf5 group.
        """
        _write(group, obj)

    @overload
    def read(self, group: h5py.Group, cls: Type[StateLayout]) -> StateLayout: ...
    @overload
    def read(self, group: h5py.Group, cls: Type[ArnoldiResult[NDArray]]) -> ArnoldiResult[NDArray]: ...
    @overload
    def read(self, group: h5py.Group, cls: Type[EigenvalsResult[NDArray]]) -> EigenvalsResult[NDArray]: ...
    # implementation
    def read(self, group: h5py.Group, cls: Any) -> Any:
        """
        Read a layout, an Arnoldi result or an eigenvalue result from a hdf5 group.
        """
        if cls == StateLayout:
            return _read(group, cls)
        return _read(group, cls, self.namespace)

    def write_state(self, group: h5py.Group, layout: StateLayout, state: NDArray) -> None:
        """Write a state vector field by field to a hdf5 group."""
        _write_state(group, layout, state)

    def read_state(self, group: h5py.Group, layout: StateLayout) -> NDArray:
        """Read a state vector from a hdf5 group."""
        return _read_state(group, layout, self.namespace)
