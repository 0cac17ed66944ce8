# Copyright© 2025-2026 Gesellschaft zur Förderung der angewandten Forschung e.V.
# acting on behalf of its Fraunhofer Institut für Graphische Datenverarbeitung.
# Licensed under the EUPL. See LICENSE.txt.

from typing import Mapping, Sequence
from math import prod

from .backend import ArrayLike, namespace_of_arrays, shape, size

class StateLayout:
    """
    Layout of a state vector, defined by an ordered set of named fields. Every field is
    flattened in C order and the fields are concatenated in the order they were given,
    which makes the conversion between fields and vectors a bijection.
    """

    _names: tuple[str, ...]
    _shapes: tuple[tuple[int, ...], ...]
    _offsets: tuple[int, ...]

    @property
    def names(self) -> tuple[str, ...]:
        return self._names

    @property
    def shapes(self) -> tuple[tuple[int, ...], ...]:
        return self._shapes

    @property
    def size(self) -> int:
        """Dimension of the state vector."""
        return self._offsets[-1]

    def __init__(self, fields: Mapping[str, Sequence[int]] | Sequence[tuple[str, Sequence[int]]]):
        items = list(fields.items()) if isinstance(fields, Mapping) else list(fields)
        if len(items) == 0:
            raise ValueError("Layout must contain at least one field")
        names = [name for name, _ in items]
        if len(set(names)) != len(names):
            raise ValueError("Field names must be unique")
        shapes = [tuple(int(s) for s in shp) for _, shp in items]
        if any(len(shp) == 0 for shp in shapes):
            raise ValueError("Fields must have at least one axis")
        if any(s <= 0 for shp in shapes for s in shp):
            raise ValueError("All field extents must be above zero")

        offsets = [0]
        for shp in shapes:
            offsets.append(offsets[-1] + prod(shp))
        self._names = tuple(names)
        self._shapes = tuple(shapes)
        self._offsets = tuple(offsets)

    def __len__(self) -> int:
        return len(self._names)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, StateLayout)\
               and self.names == other.names\
               and self.shapes == other.shapes

    def __str__(self) -> str:
        fields = ", ".join(f"{name}{list(shp)}" for name, shp in zip(self.names, self.shapes))
        return f"StateLayout({fields})"

    def field_shape(self, name: str) -> tuple[int, ...]:
        return self._shapes[self._index(name)]

    def field_slice(self, name: str) -> slice:
        """Range of the flat state vector occupied by a field."""
        idx = self._index(name)
        return slice(self._offsets[idx], self._offsets[idx+1])

    def to_vector[T: ArrayLike](self, fields: Mapping[str, T]) -> T:
        """Flatten and concatenate the named fields into a state vector."""
        if set(fields.keys()) != set(self.names):
            raise ValueError(f"Fields {sorted(fields.keys())} do not match layout {list(self.names)}")
        arrays = [fields[name] for name in self.names]
        for name, arr, shp in zip(self.names, arrays, self.shapes):
            if shape(arr) != shp:
                raise ValueError(f"Field {name} has shape {shape(arr)}, expected {shp}")
        xp = namespace_of_arrays(*arrays)
        return xp.concat([xp.reshape(arr, (-1,)) for arr in arrays])

    def to_fields[T: ArrayLike](self, vec: T) -> dict[str, T]:
        """Split a state vector into its named fields."""
        self.check(vec)
        xp = namespace_of_arrays(vec)
        return {name: xp.reshape(vec[self.field_slice(name)], shp)
                for name, shp in zip(self.names, self.shapes)}

    def check(self, vec: ArrayLike) -> None:
        if len(shape(vec)) != 1 or size(vec) != self.size:
            raise ValueError(f"State vector of shape {shape(vec)} does not match layout size {self.size}")

    def _index(self, name: str) -> int:
        try:
            return self._names.index(name)
        except ValueError:
            raise KeyError(f"Unknown field {name}") from None
