#
# Copyright (C) 2026 r2fft-hdl contributors
#
# This file is part of r2fft-hdl
#
# SPDX-License-Identifier: MIT
#

import numpy as np

import unittest

from r2fft_hdl.config import FFTConfig
from r2fft_hdl.inplace import InPlaceFFT
from r2fft_hdl.pipeline import PipelineStage, StreamingFFT
from r2fft_hdl.util import bit_reverse, from_fixed
from .amaranth_sim import AmaranthSim


class TestStreamingFFT(AmaranthSim):
    def build(self, fft_points):
        self.npoints = fft_points
        self.order_log2 = fft_points.bit_length() - 1
        self.config = FFTConfig(data_width=self.width, fft_points=fft_points)
        self.dut = StreamingFFT(self.config)

    def random_blocks(self, nblocks):
        return self.random_samples(nblocks * self.npoints)

    def run_stream(self, re_in, im_in, valid_pattern=None,
                   reset_garbage=0, idle_cycles=None):
        """Runs a stream of samples and returns the outputs.

        After the last sample, ``data_valid`` stays low for ``idle_cycles``
        cycles. Returns the output samples, and the cycles of the last input
        sample and of the first and last output samples. Cycles are counted
        from the first cycle after reset.
        """
        if valid_pattern is None:
            valid_pattern = np.ones(re_in.size, 'bool')
        if idle_cycles is None:
            idle_cycles = 2 * self.dut.delay
        outputs = []
        cycles = {}

        async def bench(ctx):
            for j in range(reset_garbage):
                ctx.set(self.dut.data_valid, 1)
                ctx.set(self.dut.data_in_re, 1000 + j)
                ctx.set(self.dut.data_in_im, -j)
                await ctx.tick()
            if reset_garbage:
                ctx.set(self.dut.data_valid, 0)
                ctx.set(self.dut.reset, 1)
                await ctx.tick()
                ctx.set(self.dut.reset, 0)
                self.assertEqual(ctx.get(self.dut.data_out_valid), 0)
            k = 0
            cycle = 0
            idle = 0
            while idle < idle_cycles:
                if k < re_in.size:
                    valid = bool(valid_pattern[cycle])
                else:
                    valid = False
                    idle += 1
                ctx.set(self.dut.data_valid, valid)
                if valid:
                    ctx.set(self.dut.data_in_re, int(re_in[k]))
                    ctx.set(self.dut.data_in_im, int(im_in[k]))
                    k += 1
                await ctx.tick()
                cycle += 1
                if valid:
                    cycles['last_input'] = cycle
                if ctx.get(self.dut.data_out_valid):
                    cycles.setdefault('first_output', cycle)
                    cycles['last_output'] = cycle
                    outputs.append((ctx.get(self.dut.addr_out),
                                    ctx.get(self.dut.data_out_re),
                                    ctx.get(self.dut.data_out_im)))

        self.simulate(bench)
        return outputs, cycles

    def check_outputs(self, outputs, re_in, im_in):
        nblocks = re_in.size // self.npoints
        # Every block is produced in full, and nothing else
        self.assertEqual(len(outputs), nblocks * self.npoints)
        model_re, model_im = (
            x.reshape(nblocks, self.npoints)
            for x in self.dut.model(re_in, im_in))
        for b in range(nblocks):
            block = outputs[b * self.npoints:(b + 1) * self.npoints]
            addr = np.array([o[0] for o in block])
            # Outputs come in bit-reversed order
            np.testing.assert_equal(
                addr, [bit_reverse(j, self.order_log2)
                       for j in range(self.npoints)])
            re_out, im_out = (np.zeros(self.npoints, 'int')
                              for _ in range(2))
            re_out[addr] = [o[1] for o in block]
            im_out[addr] = [o[2] for o in block]
            self.assert_samples_equal(re_out, im_out,
                                      model_re[b], model_im[b])

    def check_timing(self, cycles):
        # The first output comes delay cycles after the first input, which
        # is registered on cycle 1
        self.assertEqual(cycles['first_output'], self.dut.delay)
        self.assertEqual(cycles['last_output'],
                         cycles['last_input'] + self.dut.delay - 1)

    def test_model(self):
        for fft_points in [4, 8, 64]:
            with self.subTest(fft_points=fft_points):
                self.build(fft_points)
                re_in, im_in = self.random_blocks(3)
                outputs, cycles = self.run_stream(re_in, im_in)
                self.check_outputs(outputs, re_in, im_in)
                self.check_timing(cycles)

    def test_single_block(self):
        for fft_points in [4, 8, 64]:
            with self.subTest(fft_points=fft_points):
                self.build(fft_points)
                re_in, im_in = self.random_blocks(1)
                outputs, cycles = self.run_stream(
                    re_in, im_in, idle_cycles=10 * self.dut.delay)
                self.check_outputs(outputs, re_in, im_in)
                self.check_timing(cycles)

    def test_drain_length(self):
        for fft_points in [4, 16, 1024]:
            with self.subTest(fft_points=fft_points):
                self.build(fft_points)
                self.assertEqual(self.dut.drain_length, self.npoints - 1)

    def test_delay(self):
        for fft_points in [4, 16, 1024]:
            with self.subTest(fft_points=fft_points):
                self.build(fft_points)
                self.assertEqual(self.dut.delay,
                                 self.npoints + self.order_log2)

    def test_paused_input(self):
        self.build(16)
        re_in, im_in = self.random_blocks(4)
        valid_pattern = np.random.randint(0, 2, 20 * re_in.size) == 1
        outputs, cycles = self.run_stream(re_in, im_in, valid_pattern)
        self.check_outputs(outputs, re_in, im_in)

    def test_pause_between_blocks(self):
        self.build(16)
        re_in, im_in = self.random_blocks(4)
        # Pauses at block boundaries, shorter and longer than the drain
        valid_pattern = np.concatenate([
            np.ones(self.npoints, 'bool'),
            np.zeros(5, 'bool'),
            np.ones(self.npoints, 'bool'),
            np.zeros(3 * self.npoints, 'bool'),
            np.ones(self.npoints, 'bool'),
            np.zeros(self.npoints - 1, 'bool'),
            np.ones(self.npoints, 'bool'),
        ])
        outputs, cycles = self.run_stream(re_in, im_in, valid_pattern)
        self.check_outputs(outputs, re_in, im_in)
        self.assertEqual(cycles['last_output'],
                         cycles['last_input'] + self.dut.delay - 1)

    def test_reset(self):
        self.build(16)
        re_in, im_in = self.random_blocks(2)
        outputs, cycles = self.run_stream(
            re_in, im_in, reset_garbage=self.npoints + 5)
        self.check_outputs(outputs, re_in, im_in)
        self.check_timing(cycles)

    def test_matches_inplace(self):
        for fft_points in [8, 64, 1024]:
            with self.subTest(fft_points=fft_points):
                self.build(fft_points)
                inplace = InPlaceFFT(self.config)
                re_in, im_in = self.random_blocks(4)
                streaming_re, streaming_im = self.dut.model(re_in, im_in)
                inplace_re, inplace_im = inplace.model(re_in, im_in)
                np.testing.assert_equal(streaming_re, inplace_re)
                np.testing.assert_equal(streaming_im, inplace_im)

    def test_model_fft(self):
        self.build(64)
        bound = 2**(self.width - 1) // (2 * self.npoints)
        re_in, im_in = (np.random.randint(-bound, bound, self.npoints)
                        for _ in range(2))
        re_out, im_out = self.dut.model(re_in, im_in)
        expected = np.fft.fft(from_fixed(re_in + 1j * im_in, self.width))
        np.testing.assert_allclose(
            from_fixed(re_out + 1j * im_out, self.width), expected,
            rtol=0, atol=100 / 2**15)


class TestPipelineStage(AmaranthSim):
    def test_invalid_stage(self):
        for stage in [-1, 6]:
            with self.subTest(stage=stage):
                with self.assertRaises(ValueError):
                    PipelineStage(stage, 6, 16)

    def test_distance(self):
        self.assertEqual(
            [PipelineStage(s, 6, 16).distance for s in range(6)],
            [32, 16, 8, 4, 2, 1])

    def test_twiddle_index(self):
        stage = PipelineStage(2, 6, 16)
        # (addr & 3) << 3
        np.testing.assert_equal(
            stage.twiddle_index(np.arange(8)),
            [0, 8, 16, 24, 0, 8, 16, 24])


if __name__ == '__main__':
    unittest.main()
