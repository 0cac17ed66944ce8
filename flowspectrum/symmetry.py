# Copyright© 2025-2026 Gesellschaft zur Förderung der angewandten Forschung e.V.
# acting on behalf of its Fraunhofer Institut für Graphische Datenverarbeitung.
# Licensed under the EUPL. See LICENSE.txt.

from typing import Protocol, Mapping, Sequence

from .backend import ArrayLike, namespace_of_arrays
from .statelayout import StateLayout

class Symmetry(Protocol):
    """Protocol for a linear symmetry operation acting on state vectors."""

    def __call__[T: ArrayLike](self, vec: T, /) -> T:
        """Apply the symmetry to a state vector and return the transformed copy."""
        ...

class IdentitySymmetry:
    def __call__[T: ArrayLike](self, vec: T, /) -> T:
        return vec

    def __eq__(self, other: object) -> bool:
        return isinstance(other, IdentitySymmetry)

    def __str__(self) -> str:
        return "IdentitySymmetry()"

class FieldSymmetry:
    """
    Symmetry acting field by field on a state vector. Each field is reversed along the
    axes in flips, rolled by the integer amounts in shifts and multiplied by its sign.
    Signs can be given per field, fields without an entry keep their sign.
    """

    layout: StateLayout
    flips: tuple[int, ...]
    shifts: dict[int, int]
    signs: dict[str, float]

    def __init__(
            self,
            layout: StateLayout,
            sign: float | Mapping[str, float] = 1.0,
            flips: Sequence[int] = (),
            shifts: Mapping[int, int] = {}) -> None:
        self.layout = layout
        self.flips = tuple(flips)
        self.shifts = dict(shifts)
        if isinstance(sign, Mapping):
            unknown = set(sign.keys()) - set(layout.names)
            if unknown:
                raise ValueError(f"Signs given for unknown fields {sorted(unknown)}")
            self.signs = {name: float(sign.get(name, 1.0)) for name in layout.names}
        else:
            self.signs = {name: float(sign) for name in layout.names}
        self._check_axes()

    def __call__[T: ArrayLike](self, vec: T, /) -> T:
        xp = namespace_of_arrays(vec)
        fields = self.layout.to_fields(vec)
        out = {}
        for name, field in fields.items():
            if self.flips:
                field = xp.flip(field, axis=self.flips)
            for axis, shift in self.shifts.items():
                field = xp.roll(field, shift, axis=axis)
            out[name] = self.signs[name] * field
        return self.layout.to_vector(out)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, FieldSymmetry)\
               and self.layout == other.layout\
               and self.flips == other.flips\
               and self.shifts == other.shifts\
               and self.signs == other.signs

    def __str__(self) -> str:
        return f"FieldSymmetry(signs={self.signs}, flips={self.flips}, shifts={self.shifts})"

    def _check_axes(self) -> None:
        ndim = min(len(shp) for shp in self.layout.shapes)
        for axis in (*self.flips, *self.shifts.keys()):
            if not 0 <= axis < ndim:
                raise ValueError(f"Axis {axis} is not shared by all fields of the layout")

def project[T: ArrayLike](symmetries: Sequence[Symmetry], vec: T) -> T:
    """
    Project a vector onto the subspace invariant under the given involutions. The
    projection (x + s(x))/2 is applied for every symmetry in turn, which is exact for
    commuting symmetries of order two.
    """
    for sym in symmetries:
        vec = 0.5 * (vec + sym(vec))
    return vec
