from math import atan2, cos, exp, hypot, nan, sin
import numpy as np
import array_api_compat as api

backends = [api.array_namespace(np.zeros(1))]

#import torch as tr
#tr.set_default_dtype(tr.float64)
#backends.append(api.array_namespace(tr.zeros(1)))

def rand_data(xp, *shape: int, seed: int = 0):
    data = np.random.default_rng(seed).random(shape)
    return xp.asarray(data)

class AffineFlow:
    """f^T(x) = x + A (x - x0), so that the Jacobian of G = f^T(x) - x is A and G(x0) = 0."""

    def __init__(self, mat, base=None) -> None:
        self.mat = mat
        self.base = base
        self.calls = 0
        self.cfl = 0.0

    def __call__(self, vec, time):
        xp = api.array_namespace(vec)
        self.calls += 1
        self.cfl = 0.5 + 0.01 * self.calls
        shifted = vec if self.base is None else vec - self.base
        return vec + xp.matmul(self.mat, shifted)

class QuadraticFlow:
    """f^T(x) = x + A x + c x*x with Jacobian A + 2c diag(x)."""

    def __init__(self, mat, coeff: float) -> None:
        self.mat = mat
        self.coeff = coeff

    def __call__(self, vec, time):
        xp = api.array_namespace(vec)
        return vec + xp.matmul(self.mat, vec) + self.coeff * vec * vec

class DivergingFlow:
    """Affine flow that blows up as soon as the state leaves a ball of radius limit."""

    def __init__(self, mat, limit: float) -> None:
        self.mat = mat
        self.limit = limit

    def __call__(self, vec, time):
        xp = api.array_namespace(vec)
        res = vec + xp.matmul(self.mat, vec)
        if float(xp.sqrt(xp.sum(vec*vec))) > self.limit:
            res = res * nan
        return res

class ShiftFlow:
    """Traveling wave moving one grid point to the left per period."""

    def __call__(self, vec, time):
        xp = api.array_namespace(vec)
        return xp.roll(vec, -1)

class LimitCycleFlow:
    """
    Planar flow with the unit circle as attracting periodic orbit, rotating with angular
    velocity omega while the radius relaxes like r(t) = 1 + (r0 - 1) exp(-t).
    """

    def __init__(self, omega: float = 1.0) -> None:
        self.omega = omega

    def __call__(self, vec, time):
        xp = api.array_namespace(vec)
        x, y = float(vec[0]), float(vec[1])
        rad = 1.0 + (hypot(x, y) - 1.0) * exp(-time)
        phi = atan2(y, x) + self.omega * time
        return xp.asarray([rad * cos(phi), rad * sin(phi)], dtype=vec.dtype)
