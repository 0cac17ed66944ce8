# Copyright© 2025-2026 Gesellschaft zur Förderung der angewandten Forschung e.V.
# acting on behalf of its Fraunhofer Institut für Graphische Datenverarbeitung.
# Licensed under the EUPL. See LICENSE.txt.

from typing import TYPE_CHECKING, Any, Optional, Sequence, Type, overload
import h5py
import numpy as np

from .backend import ArrayNamespace, ArrayLike, to_numpy
from .statelayout import StateLayout
from .arnoldi import ArnoldiResult, ArnoldiStatus
from .eigenvalueextractor import RitzValue

if TYPE_CHECKING:
    from .eigenvals import EigenvalsResult

@overload
def write(group: h5py.Group, obj: StateLayout) -> None: ...
@overload
def write(group: h5py.Group, obj: ArnoldiResult) -> None: ...
@overload
def write(group: h5py.Group, obj: "EigenvalsResult") -> None: ...
#implementation
def write(group: h5py.Group, obj: Any) -> None:
    from .eigenvals import EigenvalsResult
    if isinstance(obj, StateLayout):
        for i, (name, shape) in enumerate(zip(obj.names, obj.shapes)):
            fgroup = group.create_group(f"field{i}")
            fgroup.attrs["name"] = name
            fgroup.attrs["shape"] = shape
    elif isinstance(obj, ArnoldiResult):
        group.attrs["status"] = obj.status.name
        group.attrs["time"] = obj.time
        group.create_dataset("hessenberg", data=obj.hessenberg)
        group.create_dataset("basis", data=to_numpy(obj.basis))
        group.create_dataset("history", data=np.asarray(obj.history, dtype=float))
        write_ritz(group.create_group("ritz"), obj.ritz)
    elif isinstance(obj, EigenvalsResult):
        group.attrs["base_residual"] = obj.base_residual
        group.attrs["cfl"] = obj.cfl
        group.attrs["time"] = obj.time
        group.attrs["evaluations"] = obj.evaluations
        write(group.create_group("layout"), obj.layout)
        write(group.create_group("arnoldi"), obj.arnoldi)
        vgroup = group.create_group("vectors")
        for i, vec in enumerate(obj.vectors):
            write_state(vgroup.create_group(f"vec{i}"), obj.layout, vec)
    else:
        raise ValueError("Invalid object.")

@overload
def read(group: h5py.Group, cls: Type[StateLayout]) -> StateLayout: ...
@overload
def read[T: ArrayLike](group: h5py.Group, cls: Type[ArnoldiResult[T]], xp: Optional[ArrayNamespace[T]]) -> ArnoldiResult[T]: ...
@overload
def read[T: ArrayLike](group: h5py.Group, cls: Type["EigenvalsResult[T]"], xp: Optional[ArrayNamespace[T]]) -> "EigenvalsResult[T]": ...
#implementation
def read(group: h5py.Group, cls: Any, xp: Optional[ArrayNamespace] = None) -> Any:
    from .eigenvals import EigenvalsResult
    if cls == StateLayout:
        fields = []
        while f"field{len(fields)}" in group.keys():
            fgroup = group[f"field{len(fields)}"]
            assert isinstance(fgroup, h5py.Group)
            fields.append((str(get_attr(fgroup, "name")),
                           tuple(int(s) for s in get_attr(fgroup, "shape"))))
        return StateLayout(fields)
    elif cls == ArnoldiResult:
        if xp is None:
            raise ValueError("Array namespace must be provided to read ArnoldiResult.")
        rgroup = group["ritz"]
        assert isinstance(rgroup, h5py.Group)
        return ArnoldiResult(hessenberg=get_dataset(group, "hessenberg"),
                             basis=xp.asarray(get_dataset(group, "basis")),
                             status=ArnoldiStatus[str(get_attr(group, "status"))],
                             ritz=read_ritz(rgroup),
                             history=[float(v) for v in get_dataset(group, "history")],
                             time=float(get_attr(group, "time")))
    elif cls == EigenvalsResult:
        if xp is None:
            raise ValueError("Array namespace must be provided to read EigenvalsResult.")
        lgroup, agroup, vgroup = group["layout"], group["arnoldi"], group["vectors"]
        assert isinstance(lgroup, h5py.Group)
        assert isinstance(agroup, h5py.Group)
        assert isinstance(vgroup, h5py.Group)
        layout = read(lgroup, StateLayout)
        vectors = []
        while f"vec{len(vectors)}" in vgroup.keys():
            sgroup = vgroup[f"vec{len(vectors)}"]
            assert isinstance(sgroup, h5py.Group)
            vectors.append(read_state(sgroup, layout, xp))
        return EigenvalsResult(layout=layout,
                               arnoldi=read(agroup, ArnoldiResult, xp),
                               vectors=vectors,
                               base_residual=float(get_attr(group, "base_residual")),
                               cfl=float(get_attr(group, "cfl")),
                               time=float(get_attr(group, "time")),
                               evaluations=int(get_attr(group, "evaluations")))

    raise ValueError("Invalid class.")

def write_state(group: h5py.Group, layout: StateLayout, vec: ArrayLike) -> None:
    """Write a state vector field by field."""
    fields = layout.to_fields(vec)
    for name, field in fields.items():
        group.create_dataset(name, data=to_numpy(field))

def read_state[T: ArrayLike](group: h5py.Group, layout: StateLayout, xp: ArrayNamespace[T]) -> T:
    """Read a state vector stored field by field."""
    fields = {}
    for name in layout.names:
        data = get_dataset(group, name)
        if data.shape != layout.field_shape(name):
            raise ValueError(f"Field {name} has shape {data.shape}, expected {layout.field_shape(name)}")
        fields[name] = xp.asarray(data)
    return layout.to_vector(fields)

def write_ritz(group: h5py.Group, ritz: Sequence[RitzValue]) -> None:
    group.create_dataset("values", data=np.asarray([r.value for r in ritz], dtype=complex))
    group.create_dataset("residuals", data=np.asarray([r.residual for r in ritz], dtype=float))
    group.create_dataset("converged", data=np.asarray([r.converged for r in ritz], dtype=bool))
    group.create_dataset("multipliers", data=np.asarray([r.multiplier for r in ritz], dtype=complex))
    group.create_dataset("exponents", data=np.asarray([r.exponent for r in ritz], dtype=complex))
    group.create_dataset("indices", data=np.asarray([r.index for r in ritz], dtype=np.int64))

def read_ritz(group: h5py.Group) -> list[RitzValue]:
    columns = [get_dataset(group, name) for name in
               ("values", "residuals", "converged", "multipliers", "exponents", "indices")]
    return [RitzValue(value=complex(val), residual=float(res), converged=bool(conv),
                      multiplier=complex(mult), exponent=complex(exp), index=int(idx))
            for val, res, conv, mult, exp, idx in zip(*columns)]

def get_attr(group: h5py.Group, name: str) -> Any:
    return group.attrs[name]

def get_dataset(group: h5py.Group, name: str) -> np.ndarray:
    dataset = group[name]
    assert isinstance(dataset, h5py.Dataset)
    return np.asarray(dataset)
