# Copyright© 2025-2026 Gesellschaft zur Förderung der angewandten Forschung e.V.
# acting on behalf of its Fraunhofer Institut für Graphische Datenverarbeitung.
# Licensed under the EUPL. See LICENSE.txt.

import numpy as np
import scipy.linalg

class EigSolver:
    """General non-symmetric dense eigenvalue solver (LAPACK geev)."""

    def __call__(self, mat: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        if mat.ndim != 2 or mat.shape[0] != mat.shape[1]:
            raise ValueError(f"Matrix must be square, got shape {mat.shape}")
        if mat.shape[0] == 0:
            return np.zeros(0, dtype=complex), np.zeros((0, 0), dtype=complex)
        vals, vecs = scipy.linalg.eig(mat, overwrite_a=False, check_finite=True)
        return vals.astype(complex), vecs.astype(complex)
