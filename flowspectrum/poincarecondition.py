# Copyright© 2025-2026 Gesellschaft zur Förderung der angewandten Forschung e.V.
# acting on behalf of its Fraunhofer Institut für Graphische Datenverarbeitung.
# Licensed under the EUPL. See LICENSE.txt.

from typing import Protocol

from .backend import ArrayLike, inner, norm

class PoincareCondition(Protocol):
    """
    Protocol for a Poincaré section h(x) = 0. The section is crossed when h changes sign
    from negative to non-negative along a trajectory.
    """

    def __call__(self, vec: ArrayLike, /) -> float:
        ...

class HyperplaneSection:
    """Linear section h(x) = <n, x - p> through the point p with normal n."""

    normal: ArrayLike
    point: ArrayLike

    def __init__(self, normal: ArrayLike, point: ArrayLike) -> None:
        if normal.shape != point.shape:
            raise ValueError("Normal and point of the section must have the same shape")
        if norm(normal) == 0.0:
            raise ValueError("Normal of the section must not vanish")
        self.normal = normal
        self.point = point

    def __call__(self, vec: ArrayLike, /) -> float:
        return inner(self.normal, vec - self.point)
