# Copyright© 2025-2026 Gesellschaft zur Förderung der angewandten Forschung e.V.
# acting on behalf of its Fraunhofer Institut für Graphische Datenverarbeitung.
# Licensed under the EUPL. See LICENSE.txt.

"""typing has all classes used in the external API of flowspectrum."""

from .statelayout import StateLayout
from .symmetry import Symmetry, IdentitySymmetry, FieldSymmetry
from .poincarecondition import PoincareCondition, HyperplaneSection
from .resources import Resource, ResourceScope, FFTWorkers

from .residual import FlowMap, ResidualOperator, PlainResidual, SymmetryResidual, PoincareResidual
from .jacobianaction import JacobianAction
from .matrixeigenvaluedecomposition import MatrixEigenvalueDecomposition
from .eigsolver import EigSolver
from .eigenvalueextractor import EigenvalueExtractor, RitzValue
from .arnoldi import Arnoldi, ArnoldiResult, ArnoldiStatus
from .perturbation import PerturbationBuilder, PerturbationSpec, Supplied, Synthesize
from .eigenvals import Eigenvals, EigenvalsResult

from .flowspectrum import FlowSpectrum
