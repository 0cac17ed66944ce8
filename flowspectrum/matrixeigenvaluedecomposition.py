# Copyright© 2025-2026 Gesellschaft zur Förderung der angewandten Forschung e.V.
# acting on behalf of its Fraunhofer Institut für Graphische Datenverarbeitung.
# Licensed under the EUPL. See LICENSE.txt.

from typing import Protocol
import numpy as np

class MatrixEigenvalueDecomposition(Protocol):
    """Protocol for a dense eigenvalue decomposition of a general square host matrix."""
    
    def __call__(self, mat: np.ndarray, /) -> tuple[np.ndarray, np.ndarray]:
        """
        Decompose a matrix into its (complex) eigenvalues and right eigenvectors, stored
        column wise. The input must not be modified.
        """
        ...
