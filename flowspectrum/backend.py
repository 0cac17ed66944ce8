# Copyright© 2025-2026 Gesellschaft zur Förderung der angewandten Forschung e.V.
# acting on behalf of its Fraunhofer Institut für Graphische Datenverarbeitung.
# Licensed under the EUPL. See LICENSE.txt.

from typing import Any, Protocol
import array_api_compat as api
import numpy as np
from array_api_compat import to_device, device
from array_api_compat import size as _size

type DType = Any
type Device = Any
type ArrayLike = Any

class ArrayNamespace[T](Protocol):
    """Subset of the array API namespace used for states."""

    def asarray(self, obj: Any, /, **kwargs: Any) -> T: ...
    def zeros(self, shape: Any, /, **kwargs: Any) -> T: ...
    def sum(self, x: T, /, **kwargs: Any) -> T: ...
    def sqrt(self, x: T, /) -> T: ...
    def reshape(self, x: T, shape: Any, /, **kwargs: Any) -> T: ...
    def concat(self, arrays: Any, /, **kwargs: Any) -> T: ...
    def isfinite(self, x: T, /) -> T: ...
    def all(self, x: T, /, **kwargs: Any) -> T: ...


def get_namespace(obj: Any) -> ArrayNamespace:
    if not api.is_array_api_obj(obj):
        try:
            obj = obj.zeros(1)
        except AttributeError:
            raise TypeError("Provided object is not a recognized array or namespace.")
    return api.array_namespace(obj) # type: ignore

def namespace_of_arrays[T: ArrayLike](*arrays: T) -> ArrayNamespace[T]:
    return api.array_namespace(*arrays) # type: ignore

def size(array: ArrayLike) -> int:
    val = _size(array)
    if val is None:
        raise ValueError("Array size is unknown (None).")
    return val

def shape(array: ArrayLike) -> tuple[int, ...]:
    shp = array.shape
    if any(s is None for s in shp):
        raise ValueError("Array shape contains None dimension(s).")
    return shp  # type: ignore

def inner(vec1: ArrayLike, vec2: ArrayLike) -> float:
    xp = namespace_of_arrays(vec1, vec2)
    return float(xp.sum(vec1*vec2))

def norm(vec: ArrayLike) -> float:
    xp = namespace_of_arrays(vec)
    return float(xp.sqrt(xp.sum(vec*vec)))

def is_finite(vec: ArrayLike) -> bool:
    xp = namespace_of_arrays(vec)
    return bool(xp.all(xp.isfinite(vec)))

def to_numpy(array: ArrayLike) -> np.ndarray:
    """Copy an array of any backend to host memory."""
    return np.asarray(to_device(array, "cpu"))

def from_numpy[T: ArrayLike](xp: ArrayNamespace[T], array: np.ndarray, like: T | None = None) -> T:
    """Move a host array into the namespace, optionally onto the device of ``like``."""
    if like is None:
        return xp.asarray(array)
    return xp.asarray(array, device=device(like), dtype=like.dtype)
