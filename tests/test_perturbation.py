import unittest
import numpy as np

from flowspectrum import FlowSpectrum
from utils import backends, rand_data

class TestPerturbation(unittest.TestCase):

    def setUp(self) -> None:
        self.flowspectrum = [FlowSpectrum(backend) for backend in backends]

    def test_norm(self) -> None:
        for fs in self.flowspectrum:
            layout = fs.layout({"u": (3, 8, 6), "temp": (8, 6)})
            builder = fs.perturbation(layout, eps_du=1e-7)
            vec = builder(fs.synthesize(), fs.namespace)
            self.assertEqual(vec.shape, (layout.size,))
            self.assertAlmostEqual(float(np.linalg.norm(np.asarray(vec))), 1e-7, delta=1e-20)

    def test_seed(self) -> None:
        for fs in self.flowspectrum:
            layout = fs.layout({"u": (16, 4)})
            builder = fs.perturbation(layout)
            first = np.asarray(builder(fs.synthesize(seed=3), fs.namespace))
            second = np.asarray(builder(fs.synthesize(seed=3), fs.namespace))
            other = np.asarray(builder(fs.synthesize(seed=4), fs.namespace))
            self.assertTrue(np.array_equal(first, second))
            self.assertFalse(np.allclose(first, other))

    def test_smoothness(self) -> None:
        for fs in self.flowspectrum:
            layout = fs.layout({"u": (64,)})
            builder = fs.perturbation(layout)

            def high_energy(smoothness: float) -> float:
                vec = np.asarray(builder(fs.synthesize(seed=5, smoothness=smoothness), fs.namespace))
                spec = np.abs(np.fft.rfft(vec))**2
                return float(np.sum(spec[16:]) / np.sum(spec))

            self.assertLess(high_energy(0.9), 1e-8)
            self.assertGreater(high_energy(0.1), 1e-3)

            with self.assertRaises(ValueError):
                fs.synthesize(smoothness=1.0)
            with self.assertRaises(ValueError):
                fs.synthesize(smoothness=0.0)

    def test_symmetry(self) -> None:
        for fs in self.flowspectrum:
            layout = fs.layout({"u": (8, 6), "v": (8, 6)})
            sym = fs.symmetry(layout, sign={"v": -1.0}, shifts={0: 4})
            builder = fs.perturbation(layout, eps_du=1e-5, symmetries=[sym])
            vec = builder(fs.synthesize(seed=7), fs.namespace)
            self.assertAlmostEqual(float(np.linalg.norm(np.asarray(vec))), 1e-5, delta=1e-18)
            self.assertTrue(np.allclose(np.asarray(sym(vec)), np.asarray(vec), rtol=0.0, atol=1e-20))

    def test_supplied(self) -> None:
        for fs in self.flowspectrum:
            xp = fs.namespace
            layout = fs.layout({"u": (5,), "v": (2, 3)})
            state = rand_data(xp, layout.size, seed=2)
            builder = fs.perturbation(layout, eps_du=1e-6)
            vec = builder(fs.supplied(state), xp)
            ref = np.asarray(state) * (1e-6 / np.linalg.norm(np.asarray(state)))
            self.assertTrue(np.allclose(np.asarray(vec), ref, rtol=1e-12, atol=0.0))
            self.assertTrue(np.array_equal(np.asarray(state), np.asarray(rand_data(xp, layout.size, seed=2))))

            with self.assertRaises(ValueError):
                builder(fs.supplied(rand_data(xp, layout.size + 1)), xp)

    def test_vanishing(self) -> None:
        for fs in self.flowspectrum:
            xp = fs.namespace
            layout = fs.layout({"u": (4,)})
            sym = fs.symmetry(layout, sign=-1.0)
            builder = fs.perturbation(layout, symmetries=[sym])
            with self.assertRaises(ValueError):
                builder(fs.supplied(xp.asarray([1.0, -2.0, 0.5, 3.0])), xp)

    def test_zero_mean(self) -> None:
        for fs in self.flowspectrum:
            layout = fs.layout({"u": (16,), "v": (4, 4)})
            builder = fs.perturbation(layout, zero_mean=True)
            vec = builder(fs.synthesize(seed=11), fs.namespace)
            for field in fs.fields(layout, vec).values():
                self.assertLess(abs(float(np.mean(np.asarray(field)))), 1e-20)

    def test_invalid(self) -> None:
        for fs in self.flowspectrum:
            layout = fs.layout({"u": (4,)})
            with self.assertRaises(ValueError):
                fs.perturbation(layout, eps_du=0.0)
            with self.assertRaises(TypeError):
                fs.perturbation(layout)(object(), fs.namespace) # type: ignore

if __name__ == "__main__":
    unittest.main()
