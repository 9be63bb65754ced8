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
from .memory import SampleStore
from .twiddle import TwiddleROM
from .util import bit_reverse, reverse_bits


class InPlaceFFT(Elaboratable):
    """In-place iterative FFT

    This FFT uses a single sample store and a single butterfly. A controller
    FSM goes through the following states:

    * ``IDLE``. Waits for ``start``.
    * ``LOAD``. Writes each valid input sample at its ``addr_in``. After
      ``fft_points`` samples have been written, the FFT is computed.
    * ``COMPUTE``. Runs the ``log2(fft_points)`` stages of a radix-2
      decimation-in-time FFT. Each of the ``fft_points/2`` butterflies of a
      stage takes 4 clock cycles: read A, read B, butterfly, write A'. B' is
      written on the following cycle, together with the read of the next A.
    * ``REORDER``. Swaps each pair of bit-reversed addresses, so that the
      results are in natural order.
    * ``OUTPUT``. Results can be read with ``rd_en`` and ``addr_out``. The
      FSM goes back to ``IDLE`` after ``fft_points`` reads, or as soon as
      ``start`` is asserted.

    The butterfly addresses are generated for a decimation-in-time FFT with
    bit-reversed input. In stage ``s``, the butterfly ``p`` uses the elements
    ``a = ((p >> s) << (s + 1)) | (p & (2**s - 1))`` and ``a + 2**s``, with
    twiddle factor index ``(p & (2**s - 1)) << (log2(fft_points) - s - 1)``.
    These addresses are bit-reversed before accessing the sample store, so
    the samples are loaded in natural order, and the FFT ends with the results
    in bit-reversed order, which ``REORDER`` fixes.

    See :class:`Butterfly` regarding overflows.

    Parameters
    ----------
    config : FFTConfig
        FFT configuration.

    Attributes
    ----------
    reset : Signal(), in
        Synchronous reset. Aborts the current session and goes back to
        ``IDLE``. The contents of the sample store are not cleared.
    start : Signal(), in
        Starts a new session. Only sampled in ``IDLE`` and ``OUTPUT``.
    busy : Signal(), out
        Asserted in ``LOAD``, ``COMPUTE`` and ``REORDER``.
    done : Signal(), out
        Asserted in ``OUTPUT``, when results can be read.
    data_valid : Signal(), in
        Indicates a valid input sample. Ignored outside ``LOAD``.
    addr_in : Signal(addr_width), in
        Input sample address.
    data_in_re : Signal(signed(data_width)), in
        Input sample real part.
    data_in_im : Signal(signed(data_width)), in
        Input sample imaginary part.
    rd_en : Signal(), in
        Read request for the results. Ignored outside ``OUTPUT``.
    addr_out : Signal(addr_width), in
        Address (FFT bin) to read.
    data_out_valid : Signal(), out
        Asserted one cycle after an accepted read request, when the result
        is presented at the output.
    data_out_re : Signal(signed(data_width)), out
        Result real part.
    data_out_im : Signal(signed(data_width)), out
        Result imaginary part.
    """
    def __init__(self, config=FFTConfig()):
        config.validate()
        self.config = config
        self.w = config.data_width
        self.order_log2 = config.order_log2
        self.npoints = config.fft_points

        self.reset = Signal()
        self.start = Signal()
        self.busy = Signal()
        self.done = Signal()
        self.data_valid = Signal()
        self.addr_in = Signal(self.order_log2)
        self.data_in_re = Signal(signed(self.w))
        self.data_in_im = Signal(signed(self.w))
        self.rd_en = Signal()
        self.addr_out = Signal(self.order_log2)
        self.data_out_valid = Signal()
        self.data_out_re = Signal(signed(self.w))
        self.data_out_im = Signal(signed(self.w))

        self.store = SampleStore(self.w, self.order_log2)
        self.butterfly = Butterfly(self.w)
        self.twiddle = TwiddleROM(self.order_log2, self.w, storage='lut')

    def ports(self):
        return [
            self.reset, self.start, self.busy, self.done,
            self.data_valid, self.addr_in, self.data_in_re, self.data_in_im,
            self.rd_en, self.addr_out, self.data_out_valid,
            self.data_out_re, self.data_out_im,
        ]

    @property
    def compute_cycles(self):
        """Duration of the ``COMPUTE`` state in clock cycles"""
        return 4 * self.order_log2 * self.npoints // 2

    @property
    def reorder_cycles(self):
        """Duration of the ``REORDER`` state in clock cycles"""
        nswaps = sum(
            j < bit_reverse(j, self.order_log2) for j in range(self.npoints))
        return self.npoints + 2 * nswaps

    def pair_addresses(self, stage, pair):
        """Gives the A address, B address and twiddle index of a butterfly.

        ``stage`` must be an int. ``pair`` can be an int, a numpy array or an
        Amaranth value of width ``addr_width - 1``.
        """
        n = self.order_log2
        d = 2**stage
        if isinstance(pair, Value):
            low = [pair[:stage]] if stage > 0 else []
            high = [pair[stage:]] if stage < n - 1 else []
            zeros = [Const(0, n - 1 - stage)] if stage < n - 1 else []
            addr_a = Cat(*low, Const(0, 1), *high)
            addr_b = Cat(*low, Const(1, 1), *high)
            twiddle_index = Cat(*zeros, *low)
            return addr_a, addr_b, twiddle_index
        addr_a = ((pair >> stage) << (stage + 1)) | (pair & (d - 1))
        twiddle_index = (pair & (d - 1)) * (self.npoints // (2 * d))
        return addr_a, addr_a + d, twiddle_index

    def model(self, re_in, im_in):
        v = self.npoints
        rev = np.array([bit_reverse(j, self.order_log2) for j in range(v)])
        # Bit-reversed view of the sample store
        re, im = (np.array(x, 'int').reshape(-1, v)[:, rev]
                  for x in [re_in, im_in])
        pair = np.arange(v // 2)
        for stage in range(self.order_log2):
            addr_a, addr_b, twiddle_index = self.pair_addresses(stage, pair)
            re_w, im_w = self.twiddle.model(twiddle_index)
            re[:, addr_a], im[:, addr_a], re[:, addr_b], im[:, addr_b] = (
                self.butterfly.model(
                    re[:, addr_a], im[:, addr_a],
                    re[:, addr_b], im[:, addr_b],
                    re_w, im_w))
        # After the reorder, the store contents match the bit-reversed view
        return re.ravel(), im.ravel()

    def elaborate(self, platform):
        m = Module()
        m.submodules.store = store = self.store
        m.submodules.butterfly = bfly = self.butterfly
        m.submodules.twiddle = twiddle = self.twiddle

        n = self.order_log2
        last_pair = self.npoints // 2 - 1
        last_address = self.npoints - 1

        stage = Signal(range(n))
        pair = Signal(n - 1)
        step = Signal(2)
        # Shared by LOAD (samples written), REORDER (address being scanned)
        # and OUTPUT (samples read)
        count = Signal(n)

        # Butterfly operand A, latched while operand B is read
        re_a_q = Signal(signed(self.w), reset_less=True)
        im_a_q = Signal(signed(self.w), reset_less=True)

        # Write of B', which is done on the cycle after the write of A'
        b_pending = Signal()
        b_waddr = Signal(n, reset_less=True)

        addr_a = Signal(n)
        addr_b = Signal(n)
        twiddle_index = Signal(n - 1)
        with m.Switch(stage):
            for s in range(n):
                with m.Case(s):
                    a, b, tw = self.pair_addresses(s, pair)
                    m.d.comb += [
                        addr_a.eq(a),
                        addr_b.eq(b),
                        twiddle_index.eq(tw),
                    ]
        store_addr_a = reverse_bits(addr_a)
        store_addr_b = reverse_bits(addr_b)
        count_reversed = reverse_bits(count)

        read_out = Signal()

        m.d.comb += [
            twiddle.index.eq(twiddle_index),
            bfly.re_a.eq(re_a_q),
            bfly.im_a.eq(im_a_q),
            bfly.re_b.eq(store.re_rdata),
            bfly.im_b.eq(store.im_rdata),
            bfly.re_w.eq(twiddle.re_out),
            bfly.im_w.eq(twiddle.im_out),
            self.data_out_re.eq(store.re_rdata),
            self.data_out_im.eq(store.im_rdata),
        ]
        m.d.sync += self.data_out_valid.eq(read_out)

        with m.FSM():
            with m.State('IDLE'):
                with m.If(self.start):
                    m.d.sync += [
                        stage.eq(0),
                        pair.eq(0),
                        step.eq(0),
                        count.eq(0),
                    ]
                    m.next = 'LOAD'
            with m.State('LOAD'):
                m.d.comb += self.busy.eq(1)
                with m.If(self.data_valid):
                    m.d.comb += [
                        store.wen.eq(1),
                        store.waddr.eq(self.addr_in),
                        store.re_wdata.eq(self.data_in_re),
                        store.im_wdata.eq(self.data_in_im),
                    ]
                    m.d.sync += count.eq(count + 1)
                    with m.If(count == last_address):
                        m.next = 'COMPUTE'
            with m.State('COMPUTE'):
                m.d.comb += self.busy.eq(1)
                with m.Switch(step):
                    with m.Case(0):
                        m.d.comb += [
                            store.ren.eq(1),
                            store.raddr.eq(store_addr_a),
                        ]
                        m.d.sync += step.eq(1)
                    with m.Case(1):
                        m.d.comb += [
                            store.ren.eq(1),
                            store.raddr.eq(store_addr_b),
                        ]
                        m.d.sync += [
                            re_a_q.eq(store.re_rdata),
                            im_a_q.eq(store.im_rdata),
                            step.eq(2),
                        ]
                    with m.Case(2):
                        m.d.comb += bfly.clken.eq(1)
                        m.d.sync += step.eq(3)
                    with m.Case(3):
                        m.d.comb += [
                            store.wen.eq(1),
                            store.waddr.eq(store_addr_a),
                            store.re_wdata.eq(bfly.re_a_out),
                            store.im_wdata.eq(bfly.im_a_out),
                        ]
                        m.d.sync += [
                            b_pending.eq(1),
                            b_waddr.eq(store_addr_b),
                            step.eq(0),
                            pair.eq(pair + 1),
                        ]
                        with m.If(pair == last_pair):
                            m.d.sync += stage.eq(stage + 1)
                            with m.If(stage == n - 1):
                                m.d.sync += [
                                    stage.eq(0),
                                    count.eq(0),
                                ]
                                m.next = 'REORDER'
            with m.State('REORDER'):
                m.d.comb += self.busy.eq(1)
                with m.Switch(step):
                    with m.Case(0):
                        with m.If(count < count_reversed):
                            m.d.comb += [
                                store.ren.eq(1),
                                store.raddr.eq(count),
                            ]
                            m.d.sync += step.eq(1)
                        with m.Else():
                            m.d.sync += count.eq(count + 1)
                            with m.If(count == last_address):
                                m.d.sync += count.eq(0)
                                m.next = 'OUTPUT'
                    with m.Case(1):
                        # The read data is x[i]. The read of x[r] returns
                        # the value before this write.
                        m.d.comb += [
                            store.ren.eq(1),
                            store.raddr.eq(count_reversed),
                            store.wen.eq(1),
                            store.waddr.eq(count_reversed),
                            store.re_wdata.eq(store.re_rdata),
                            store.im_wdata.eq(store.im_rdata),
                        ]
                        m.d.sync += step.eq(2)
                    with m.Case(2):
                        m.d.comb += [
                            store.wen.eq(1),
                            store.waddr.eq(count),
                            store.re_wdata.eq(store.re_rdata),
                            store.im_wdata.eq(store.im_rdata),
                        ]
                        m.d.sync += [
                            step.eq(0),
                            count.eq(count + 1),
                        ]
            with m.State('OUTPUT'):
                m.d.comb += self.done.eq(1)
                with m.If(self.start):
                    m.next = 'IDLE'
                with m.Elif(self.rd_en):
                    m.d.comb += [
                        store.ren.eq(1),
                        store.raddr.eq(self.addr_out),
                        read_out.eq(1),
                    ]
                    m.d.sync += count.eq(count + 1)
                    with m.If(count == last_address):
                        m.next = 'IDLE'

        # The write of B' never coincides with another write: it happens
        # either on the first cycle of the next butterfly or on the first
        # cycle of REORDER, which only reads.
        with m.If(b_pending):
            m.d.comb += [
                store.wen.eq(1),
                store.waddr.eq(b_waddr),
                store.re_wdata.eq(bfly.re_b_out),
                store.im_wdata.eq(bfly.im_b_out),
            ]
            m.d.sync += b_pending.eq(0)

        return ResetInserter({'sync': self.reset})(m)
