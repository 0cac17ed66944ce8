import unittest
from math import exp, pi
import os
import tempfile
import h5py
import numpy as np

from flowspectrum import FlowSpectrum, InvalidBasePoint, NonFiniteEvaluation
from flowspectrum.typing import ArnoldiStatus, EigenvalsResult, ResourceScope, FFTWorkers
from utils import backends, AffineFlow, DivergingFlow, LimitCycleFlow

class TestEigenvals(unittest.TestCase):

    def setUp(self) -> None:
        self.flowspectrum = [FlowSpectrum(backend) for backend in backends]
        self.diag = [-0.9, 0.5, -0.3, 0.2, 0.1, -0.05]

    def test_affine(self) -> None:
        for fs in self.flowspectrum:
            xp = fs.namespace
            layout = fs.layout({"u": (6,)})
            flow = AffineFlow(xp.asarray(np.diag(self.diag)))
            solver = fs.eigenvals(nsteps=6, nstable=6, nvectors=2,
                                  perturbation=fs.synthesize(seed=2, smoothness=0.2))
            res = solver(fs.residual(flow, 1.5), xp.zeros(6), layout)

            self.assertIn(res.status, (ArnoldiStatus.BREAKDOWN, ArnoldiStatus.MAX_ITER))
            self.assertEqual(len(res.ritz), 6)
            ref = sorted(self.diag, key=abs, reverse=True)
            for ritz, val in zip(res.ritz, ref):
                self.assertAlmostEqual(ritz.value, val, delta=1e-8)
                self.assertAlmostEqual(ritz.multiplier, val + 1.0, delta=1e-8)
                self.assertAlmostEqual(ritz.exponent, np.log(val + 1.0)/1.5, delta=1e-7)

            self.assertEqual(res.base_residual, 0.0)
            self.assertEqual(res.time, 1.5)
            self.assertEqual(res.evaluations, 1 + res.arnoldi.size)
            self.assertEqual(flow.calls, res.evaluations)
            self.assertAlmostEqual(res.cfl, flow.cfl)

            # eigenvectors of a diagonal matrix are unit vectors
            self.assertEqual(len(res.vectors), 2)
            for vec, idx in zip(res.vectors, (0, 1)):
                vec = np.abs(np.asarray(vec))
                self.assertAlmostEqual(vec[idx], 1.0, delta=1e-8)
                self.assertAlmostEqual(float(np.sum(vec)), 1.0, delta=1e-7)

    def test_dense_breakdown(self) -> None:
        for fs in self.flowspectrum:
            xp = fs.namespace
            basis, _ = np.linalg.qr(np.random.default_rng(5).random((20, 2)))
            dense = basis @ np.asarray([[2.0, 1.0], [0.0, -0.5]]) @ basis.T
            base = xp.asarray(np.linspace(1.0, 3.0, 20))
            layout = fs.layout({"u": (20,)})
            flow = AffineFlow(xp.asarray(dense), base)
            solver = fs.eigenvals(nsteps=20, nstable=2,
                                  perturbation=fs.supplied(xp.asarray(basis[:, 0] + 0.3*basis[:, 1])))
            res = solver(fs.residual(flow, 1.0), base, layout)

            self.assertEqual(res.status, ArnoldiStatus.BREAKDOWN)
            self.assertEqual(res.arnoldi.size, 2)
            self.assertEqual(res.arnoldi.residual, 0.0)
            self.assertEqual(len(res.ritz), 2)
            self.assertAlmostEqual(res.ritz[0].value, 2.0, delta=1e-6)
            self.assertAlmostEqual(res.ritz[1].value, -0.5, delta=1e-6)

            # an explicit noise floor of zero keeps expanding on rounding errors
            solver.atol = 0.0
            res = solver(fs.residual(flow, 1.0), base, layout)
            self.assertGreater(res.arnoldi.size, 2)

    def test_invalid_base_point(self) -> None:
        for fs in self.flowspectrum:
            xp = fs.namespace
            layout = fs.layout({"u": (6,)})
            flow = AffineFlow(xp.asarray(np.diag(self.diag)))
            solver = fs.eigenvals(nsteps=6)
            with self.assertRaises(InvalidBasePoint) as ctx:
                solver(fs.residual(flow, 1.0), xp.ones(6), layout)
            self.assertEqual(flow.calls, 1)
            self.assertIn("not a solution", str(ctx.exception))
            self.assertGreater(ctx.exception.residual, 1e-6)

            with self.assertRaises(ValueError):
                solver(fs.residual(flow, 1.0), xp.zeros(5), layout)

    def test_non_finite(self) -> None:
        for fs in self.flowspectrum:
            xp = fs.namespace
            layout = fs.layout({"u": (3,)})
            flow = DivergingFlow(xp.asarray(np.eye(3)), 1e-9)
            solver = fs.eigenvals(nsteps=3, eps_du=1e-7)
            with self.assertRaises(NonFiniteEvaluation):
                solver(fs.residual(flow, 1.0), xp.zeros(3), layout)

    def test_poincare(self) -> None:
        for fs in self.flowspectrum:
            xp = fs.namespace
            layout = fs.layout({"xy": (2,)})
            section = fs.hyperplane(xp.asarray([0.0, 1.0]), xp.asarray([0.0, 0.0]))
            residual = fs.residual(LimitCycleFlow(), 1.5*pi, section=section, dt=0.1)
            solver = fs.eigenvals(nsteps=2, nstable=2)
            res = solver(residual, xp.asarray([1.0, 0.0]), layout)

            self.assertEqual(len(res.ritz), 2)
            self.assertAlmostEqual(res.ritz[0].value, -1.0, delta=1e-4)
            self.assertAlmostEqual(res.ritz[1].value, exp(-2.0*pi) - 1.0, delta=1e-4)
            self.assertAlmostEqual(res.time, 2.0*pi, delta=1e-10)
            self.assertAlmostEqual(res.ritz[1].multiplier, exp(-2.0*pi), delta=1e-4)
            self.assertAlmostEqual(res.ritz[1].exponent.real, -1.0, delta=1e-2)
            self.assertLess(res.base_residual, 1e-12)

    def test_outdir(self) -> None:
        for fs in self.flowspectrum:
            xp = fs.namespace
            layout = fs.layout({"u": (2, 3)})
            flow = AffineFlow(xp.asarray(np.diag(self.diag)))
            with tempfile.TemporaryDirectory() as outdir:
                solver = fs.eigenvals(nsteps=4, nvectors=1, outdir=outdir)
                ref = solver(fs.residual(flow, 1.0), xp.zeros(6), layout)
                path = os.path.join(outdir, "eigenvals.h5")
                self.assertTrue(os.path.isfile(path))
                with h5py.File(path, "r") as file:
                    res = fs.read(file, EigenvalsResult)

            self.assertEqual(res.layout, layout)
            self.assertEqual(res.status, ref.status)
            self.assertEqual(res.ritz, ref.ritz)
            self.assertEqual(res.evaluations, ref.evaluations)
            self.assertTrue(np.array_equal(res.arnoldi.hessenberg, ref.arnoldi.hessenberg))
            self.assertTrue(xp.all(xp.equal(res.arnoldi.basis, ref.arnoldi.basis)))
            self.assertEqual(len(res.vectors), 1)

    def test_resources(self) -> None:
        for fs in self.flowspectrum:
            xp = fs.namespace
            layout = fs.layout({"u": (6,)})
            scope = ResourceScope(FFTWorkers(2))
            residual = fs.residual(AffineFlow(xp.asarray(np.diag(self.diag))), 1.0, resources=scope)
            solver = fs.eigenvals(nsteps=3)
            solver(residual, xp.zeros(6), layout)
            self.assertFalse(scope.active)

            with scope:
                solver(residual, xp.zeros(6), layout)
                self.assertTrue(scope.active)
            self.assertFalse(scope.active)

    def test_invalid(self) -> None:
        for fs in self.flowspectrum:
            with self.assertRaises(ValueError):
                fs.eigenvals(nsteps=0)
            with self.assertRaises(ValueError):
                fs.eigenvals(nsteps=4, eps_du=-1.0)
            with self.assertRaises(ValueError):
                fs.eigenvals(nsteps=4, nvectors=-1)

if __name__ == "__main__":
    unittest.main()
