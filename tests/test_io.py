import unittest
import os
import h5py
import numpy as np

from flowspectrum import FlowSpectrum
from flowspectrum.typing import StateLayout, ArnoldiResult
from utils import backends, rand_data

path = os.path.dirname(__file__)
class TestIO(unittest.TestCase):

    def setUp(self) -> None:
        self.flowspectrum = [FlowSpectrum(backend) for backend in backends]
        self.layouts = [{"u": (12,)},
                        {"u": (3, 4, 5), "temp": (4, 5)},
                        {"a": (2,), "b": (3, 2), "c": (1, 1, 4)}]

        os.mkdir(f"{path}/data")
        self.file = h5py.File(f"{path}/data/test_io.h5", "w")

    def tearDown(self) -> None:
        self.file.close()
        os.remove(f"{path}/data/test_io.h5")
        os.rmdir(f"{path}/data")

    def test_layout(self) -> None:
        for fs in self.flowspectrum:
            for i, fields in enumerate(self.layouts):
                name = f"layout_{i}"
                group = self.file.create_group(name)

                ref_layout = fs.layout(fields)
                fs.write(group, ref_layout)
                layout = fs.read(group, StateLayout)

                self.assertEqual(layout, ref_layout)
                self.assertEqual(layout.names, tuple(fields.keys()))

                del self.file[name]

    def test_state(self) -> None:
        for fs in self.flowspectrum:
            xp = fs.namespace
            for i, fields in enumerate(self.layouts):
                name = f"state_{i}"
                group = self.file.create_group(name)

                layout = fs.layout(fields)
                ref_state = rand_data(xp, layout.size, seed=i)
                fs.write_state(group, layout, ref_state)
                self.assertEqual(set(group.keys()), set(fields.keys()))
                state = fs.read_state(group, layout)

                self.assertTrue(xp.all(xp.equal(state, ref_state)))

                with self.assertRaises(ValueError):
                    fs.read_state(group, fs.layout({key: (layout.size+1,) for key in fields}))

                del self.file[name]

    def test_arnoldi(self) -> None:
        for fs in self.flowspectrum:
            xp = fs.namespace
            name = "arnoldi"
            group = self.file.create_group(name)

            mat = rand_data(xp, 8, 8, seed=1)
            ref_res = fs.arnoldi(nsteps=5, time=2.0)(lambda v: xp.matmul(mat, v), rand_data(xp, 8, seed=2))
            fs.write(group, ref_res)
            res = fs.read(group, ArnoldiResult)

            self.assertEqual(res.status, ref_res.status)
            self.assertEqual(res.ritz, ref_res.ritz)
            self.assertEqual(res.history, ref_res.history)
            self.assertEqual(res.time, ref_res.time)
            self.assertTrue(np.array_equal(res.hessenberg, ref_res.hessenberg))
            self.assertTrue(xp.all(xp.equal(res.basis, ref_res.basis)))

            del self.file[name]

    def test_invalid(self) -> None:
        for fs in self.flowspectrum:
            group = self.file.create_group("invalid")
            with self.assertRaises(ValueError):
                fs.write(group, object()) # type: ignore
            with self.assertRaises(ValueError):
                fs.read(group, dict) # type: ignore
            del self.file["invalid"]

if __name__ == "__main__":
    unittest.main()
