#
# Copyright (C) 2026 r2fft-hdl contributors
#
# This file is part of r2fft-hdl
#
# SPDX-License-Identifier: MIT
#

import numpy as np

import unittest

from r2fft_hdl.delay_line import DelayLine
from .amaranth_sim import AmaranthSim


class TestDelayLine(AmaranthSim):
    def setUp(self):
        self.width = 16
        self.depth = 4
        self.dut = DelayLine(self.width, self.depth)

    def test_invalid_depth(self):
        with self.assertRaises(ValueError):
            DelayLine(self.width, 0)

    def test_fifo_order(self):
        data = np.random.randint(0, 2**self.width, 6)

        async def bench(ctx):
            self.assertEqual(ctx.get(self.dut.empty), 1)
            ctx.set(self.dut.wren, 1)
            for j in range(self.depth):
                ctx.set(self.dut.data_in, int(data[j]))
                self.assertEqual(ctx.get(self.dut.wrerr), 0)
                await ctx.tick()
                self.assertEqual(ctx.get(self.dut.level), j + 1)
            self.assertEqual(ctx.get(self.dut.full), 1)
            # Push while full is rejected
            ctx.set(self.dut.data_in, int(data[self.depth]))
            self.assertEqual(ctx.get(self.dut.wrerr), 1)
            await ctx.tick()
            ctx.set(self.dut.wren, 0)
            self.assertEqual(ctx.get(self.dut.level), self.depth)
            ctx.set(self.dut.rden, 1)
            for j in range(self.depth):
                self.assertEqual(ctx.get(self.dut.data_out), data[j])
                self.assertEqual(ctx.get(self.dut.rderr), 0)
                await ctx.tick()
            self.assertEqual(ctx.get(self.dut.empty), 1)
            # Pop while empty is rejected
            self.assertEqual(ctx.get(self.dut.rderr), 1)
            await ctx.tick()
            self.assertEqual(ctx.get(self.dut.level), 0)

        self.simulate(bench)

    def test_delay(self):
        data = np.random.randint(0, 2**self.width, 100)

        async def bench(ctx):
            ctx.set(self.dut.wren, 1)
            for j in range(data.size):
                ctx.set(self.dut.data_in, int(data[j]))
                # Pop is applied before push, so a full line accepts the
                # push on the same cycle
                full = ctx.get(self.dut.full)
                ctx.set(self.dut.rden, full)
                self.assertEqual(ctx.get(self.dut.wrerr), 0)
                if j >= self.depth:
                    self.assertEqual(full, 1)
                    self.assertEqual(
                        ctx.get(self.dut.data_out), data[j - self.depth])
                await ctx.tick()

        self.simulate(bench)


if __name__ == '__main__':
    unittest.main()
