#
# Copyright (C) 2026 r2fft-hdl contributors
#
# This file is part of r2fft-hdl
#
# SPDX-License-Identifier: MIT
#

from amaranth import *
import numpy as np

from .butterfly import Butterfly
from .config import FFTConfig
from .delay_line import DelayLine
from .twiddle import TwiddleROM
from .util import bit_reverse, reverse_bits


class PipelineStage(Elaboratable):
    """Radix-2 single-path delay feedback stage

    This implements stage ``stage`` of a radix-2 decimation-in-time FFT of
    size ``2**order_log2``, using a single-path delay feedback architecture.
    The stage receives the samples in natural order, each tagged with its
    address in the bit-reversed (decimated-in-time) view. The butterfly
    operands of this stage have addresses that only differ in bit ``stage``,
    so in the input stream they are ``D = 2**(order_log2 - stage - 1)``
    samples apart.

    Operand A (address bit ``stage`` low) is pushed into a delay line of
    depth ``D``, and the head of the delay line is sent to the output.
    When operand B arrives, the head of the delay line is operand A. The
    butterfly output A' is sent to the output, and B' is pushed into the
    delay line, where it waits until the next A operand arrives.

    The stage advances once per input token. A token is either a valid
    sample or a bubble, which only occupies a slot in the stream and is
    used to push out the samples that remain in the delay line when the
    input stops. Bubbles must only appear between complete blocks. A bubble
    never takes part in a butterfly: it is pushed into the delay line as it
    is, and its valid flag travels with it. When the delay line is not yet
    full (after reset), no output tokens are produced. Tokens leave the stage
    in the same order they arrive, ``D + 1`` input tokens later.

    The butterfly is combinational. The stage output is registered.

    Parameters
    ----------
    stage : int
        Stage number, from ``0`` to ``order_log2 - 1``.
    order_log2 : int
        log2 of the FFT size.
    width : int
        Width of the samples.

    Attributes
    ----------
    distance : int
        Butterfly operand distance ``D``, which is the delay line depth.
    delay : int
        Delay (in input tokens) introduced by this stage.
    strobe_in : Signal(), in
        An input token (sample or bubble) is present.
    valid_in : Signal(), in
        The input token is a valid sample. Ignored when ``strobe_in`` is low.
    re_in : Signal(signed(width)), in
        Input sample real part.
    im_in : Signal(signed(width)), in
        Input sample imaginary part.
    addr_in : Signal(order_log2), in
        Input sample address (bit-reversed view).
    strobe_out : Signal(), out
        An output token is present.
    valid_out : Signal(), out
        The output token is a valid sample.
    re_out : Signal(signed(width)), out
        Output sample real part.
    im_out : Signal(signed(width)), out
        Output sample imaginary part.
    addr_out : Signal(order_log2), out
        Output sample address (bit-reversed view).
    """
    def __init__(self, stage, order_log2, width):
        if stage not in range(order_log2):
            raise ValueError(
                f'stage must be in [0, {order_log2 - 1}] (got {stage})')
        self.stage = stage
        self.order_log2 = order_log2
        self.w = width
        self.distance = 2**(order_log2 - stage - 1)

        self.strobe_in = Signal()
        self.valid_in = Signal()
        self.re_in = Signal(signed(width))
        self.im_in = Signal(signed(width))
        self.addr_in = Signal(order_log2)
        self.strobe_out = Signal()
        self.valid_out = Signal()
        self.re_out = Signal(signed(width), reset_less=True)
        self.im_out = Signal(signed(width), reset_less=True)
        self.addr_out = Signal(order_log2, reset_less=True)

        # Delay line words are Cat(re, im, addr, valid)
        self.delay_line = DelayLine(
            2 * width + order_log2 + 1, self.distance)
        self.butterfly = Butterfly(width, registered=False)
        self.twiddle = TwiddleROM(order_log2, width, storage='lut')

    @property
    def delay(self):
        return self.distance + 1

    def twiddle_index(self, addr):
        shift = self.order_log2 - 1 - self.stage
        if isinstance(addr, Value):
            zeros = [Const(0, shift)] if shift > 0 else []
            low = [addr[:self.stage]] if self.stage > 0 else []
            return Cat(*zeros, *low)
        return (addr & (2**self.stage - 1)) << shift

    def model(self, re_in, im_in):
        """Applies the butterflies of this stage to blocks of samples.

        The samples of each block are given in the bit-reversed view, so
        the element ``j`` of a block is the sample with address ``j``.
        """
        v = 2**self.order_log2
        re, im = (np.array(x, 'int').reshape(-1, v).copy()
                  for x in [re_in, im_in])
        addr = np.arange(v)
        addr_a = addr[(addr & (1 << self.stage)) == 0]
        addr_b = addr_a + (1 << self.stage)
        re_w, im_w = self.twiddle.model(self.twiddle_index(addr_a))
        re[:, addr_a], im[:, addr_a], re[:, addr_b], im[:, addr_b] = (
            self.butterfly.model(
                re[:, addr_a], im[:, addr_a],
                re[:, addr_b], im[:, addr_b],
                re_w, im_w))
        return re.ravel(), im.ravel()

    def elaborate(self, platform):
        m = Module()
        m.submodules.delay_line = delay_line = self.delay_line
        m.submodules.butterfly = bfly = self.butterfly
        m.submodules.twiddle = twiddle = self.twiddle

        w = self.w
        n = self.order_log2
        head_re = delay_line.data_out[:w].as_signed()
        head_im = delay_line.data_out[w:2*w].as_signed()
        head_addr = delay_line.data_out[2*w:2*w + n]
        head_valid = delay_line.data_out[-1]

        operand_b = Signal()
        pop = Signal()
        m.d.comb += [
            # Bubbles are never operand B
            operand_b.eq(self.valid_in & self.addr_in[self.stage]),
            pop.eq(self.strobe_in & delay_line.full),
            delay_line.rden.eq(pop),
            delay_line.wren.eq(self.strobe_in),
            twiddle.index.eq(self.twiddle_index(self.addr_in)),
            bfly.re_a.eq(head_re),
            bfly.im_a.eq(head_im),
            bfly.re_b.eq(self.re_in),
            bfly.im_b.eq(self.im_in),
            bfly.re_w.eq(twiddle.re_out),
            bfly.im_w.eq(twiddle.im_out),
        ]
        with m.If(operand_b):
            m.d.comb += delay_line.data_in.eq(
                Cat(bfly.re_b_out, bfly.im_b_out, self.addr_in, Const(1, 1)))
        with m.Else():
            m.d.comb += delay_line.data_in.eq(
                Cat(self.re_in, self.im_in, self.addr_in, self.valid_in))

        m.d.sync += [
            self.strobe_out.eq(pop),
            self.valid_out.eq(pop & head_valid),
        ]
        with m.If(pop):
            m.d.sync += self.addr_out.eq(head_addr)
            with m.If(operand_b):
                m.d.sync += [
                    self.re_out.eq(bfly.re_a_out),
                    self.im_out.eq(bfly.im_a_out),
                ]
            with m.Else():
                m.d.sync += [
                    self.re_out.eq(head_re),
                    self.im_out.eq(head_im),
                ]

        return m


class StreamingFFT(Elaboratable):
    """Streaming pipelined FFT

    This FFT is a chain of ``log2(fft_points)`` :class:`PipelineStage`'s,
    with operand distances ``fft_points/2``, ``fft_points/4``, ..., ``1``.
    It accepts one sample per clock cycle in natural order, in consecutive
    blocks of ``fft_points`` samples. The input samples are tagged with the
    bit-reversal of a running input counter, which gives their address in
    the decimated-in-time view. The outputs come out in bit-reversed order,
    and ``addr_out`` gives the FFT bin of each output sample, so no reorder
    pass is needed.

    The input can be paused at any point by deasserting ``data_valid``.
    Within a block, the pipeline stays frozen until the next sample arrives.
    When the input is paused at the end of a block, the pipeline is fed
    with bubbles, one per clock cycle, until all the outputs of that block
    have been produced (which takes ``fft_points - 1`` bubbles). With
    continuous input, the output corresponding to an input appears
    ``delay`` clock cycles later. A block followed by a pause has all of
    its outputs produced ``delay`` clock cycles after its last sample.

    See :class:`Butterfly` regarding overflows.

    Parameters
    ----------
    config : FFTConfig
        FFT configuration.

    Attributes
    ----------
    delay : int
        Delay (in samples) from the input to the output.
    reset : Signal(), in
        Synchronous reset. Clears the input counter, the delay lines and the
        valid flags.
    data_valid : Signal(), in
        Input sample valid.
    data_in_re : Signal(signed(data_width)), in
        Input sample real part.
    data_in_im : Signal(signed(data_width)), in
        Input sample imaginary part.
    data_out_valid : Signal(), out
        Output sample valid.
    data_out_re : Signal(signed(data_width)), out
        Output sample real part.
    data_out_im : Signal(signed(data_width)), out
        Output sample imaginary part.
    addr_out : Signal(addr_width), out
        FFT bin of the output sample.
    """
    def __init__(self, config=FFTConfig()):
        config.validate()
        self.config = config
        self.w = config.data_width
        self.order_log2 = config.order_log2
        self.npoints = config.fft_points

        self.reset = Signal()
        self.data_valid = Signal()
        self.data_in_re = Signal(signed(self.w))
        self.data_in_im = Signal(signed(self.w))
        self.data_out_valid = Signal()
        self.data_out_re = Signal(signed(self.w))
        self.data_out_im = Signal(signed(self.w))
        self.addr_out = Signal(self.order_log2)

        self.stages = [PipelineStage(s, self.order_log2, self.w)
                       for s in range(self.order_log2)]

    def ports(self):
        return [
            self.reset,
            self.data_valid, self.data_in_re, self.data_in_im,
            self.data_out_valid, self.data_out_re, self.data_out_im,
            self.addr_out,
        ]

    @property
    def delay(self):
        # Input register plus stages
        return 1 + sum(stage.delay for stage in self.stages)

    @property
    def drain_length(self):
        """Number of bubbles needed to empty the delay lines"""
        return sum(stage.distance for stage in self.stages)

    def model(self, re_in, im_in):
        v = self.npoints
        rev = np.array([bit_reverse(j, self.order_log2) for j in range(v)])
        re, im = (np.array(x, 'int').reshape(-1, v)[:, rev]
                  for x in [re_in, im_in])
        for stage in self.stages:
            re, im = stage.model(re, im)
        return re, im

    def elaborate(self, platform):
        m = Module()
        for j, stage in enumerate(self.stages):
            m.submodules[f'stage{j}'] = stage

        count = Signal(self.order_log2)
        # Bubbles still to be sent after the last complete block
        drain = Signal(range(self.drain_length + 1))
        bubble = Signal()
        first = self.stages[0]
        m.d.comb += bubble.eq(~self.data_valid & (count == 0) & (drain != 0))
        m.d.sync += [
            first.strobe_in.eq(self.data_valid | bubble),
            first.valid_in.eq(self.data_valid),
        ]
        with m.If(self.data_valid):
            m.d.sync += [
                first.re_in.eq(self.data_in_re),
                first.im_in.eq(self.data_in_im),
                first.addr_in.eq(reverse_bits(count)),
                count.eq(count + 1),
            ]
            with m.If(count == self.npoints - 1):
                m.d.sync += drain.eq(self.drain_length)
        with m.Elif(bubble):
            m.d.sync += drain.eq(drain - 1)

        for prev, stage in zip(self.stages[:-1], self.stages[1:]):
            m.d.comb += [
                stage.strobe_in.eq(prev.strobe_out),
                stage.valid_in.eq(prev.valid_out),
                stage.re_in.eq(prev.re_out),
                stage.im_in.eq(prev.im_out),
                stage.addr_in.eq(prev.addr_out),
            ]

        last = self.stages[-1]
        m.d.comb += [
            self.data_out_valid.eq(last.valid_out),
            self.data_out_re.eq(last.re_out),
            self.data_out_im.eq(last.im_out),
            self.addr_out.eq(last.addr_out),
        ]

        return ResetInserter({'sync': self.reset})(m)
