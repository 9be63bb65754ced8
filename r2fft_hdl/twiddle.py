#
# Copyright (C) 2026 r2fft-hdl contributors
#
# This file is part of r2fft-hdl
#
# SPDX-License-Identifier: MIT
#

from amaranth import *
from amaranth.lib.memory import Memory
import amaranth.back.verilog
import numpy as np

from .util import saturate_nbits


class TwiddleROM(Elaboratable):
    """Twiddle factor table

    This module stores the ``2**(order_log2-1)`` twiddle factors of a radix-2
    FFT of size ``2**order_log2``. Entry ``k`` is
    ``exp(-2j*pi*k/2**order_log2)`` in Q1.(width-1) format.

    The factors are computed with the exact trigonometric definition, rounded
    to nearest with ``np.round`` (ties to even) and saturated to ``width``
    bits. In particular, entry 0, which should be 1.0, is stored as the
    largest positive value ``2**(width-1)-1``.

    Parameters
    ----------
    order_log2 : int
        log2 of the FFT size.
    width : int
        Width of the twiddle factors.
    storage : str
        Storage mode for the twiddle factors. There are two possible storage
        modes:
            * ``'lut'`` uses combinational LUTs (no read latency)
            * ``'bram'`` uses a BRAM with 1 clock cycle of read latency

    Attributes
    ----------
    delay : int
        Delay (in samples) from ``index`` to the outputs.
    index : Signal(order_log2-1), in
        Index of the twiddle factor to read.
    re_out : Signal(signed(width)), out
        Real part of the twiddle factor.
    im_out : Signal(signed(width)), out
        Imaginary part of the twiddle factor.
    """
    def __init__(self, order_log2, width, storage='lut'):
        if order_log2 < 2:
            raise ValueError(
                f'order_log2 must be at least 2 (got {order_log2})')
        if storage not in ['lut', 'bram']:
            raise ValueError(
                f'invalid storage class for TwiddleROM: {storage}')
        self.order_log2 = order_log2
        self.w = width
        self.storage = storage

        self.index = Signal(order_log2 - 1)
        self.re_out = Signal(signed(self.w))
        self.im_out = Signal(signed(self.w))

    @property
    def delay(self):
        return 1 if self.storage == 'bram' else 0

    @property
    def depth(self):
        return 2**(self.order_log2 - 1)

    def twiddles(self):
        k = np.arange(self.depth)
        twiddle_complex = np.exp(-2j*np.pi*k/2**self.order_log2)
        scale = 2**(self.w - 1)
        twiddle_int_re = [int(a) for a in saturate_nbits(
            np.round(scale * twiddle_complex.real), self.w)]
        twiddle_int_im = [int(a) for a in saturate_nbits(
            np.round(scale * twiddle_complex.imag), self.w)]
        return twiddle_int_re, twiddle_int_im

    def model(self, index):
        tw_re, tw_im = (np.array(x, 'int') for x in self.twiddles())
        index = np.array(index, 'int')
        return tw_re[index], tw_im[index]

    def elaborate(self, platform):
        m = Module()

        # Pack re and im together in the same Memory
        twiddles_re, twiddles_im = self.twiddles()
        mask = 2**self.w - 1
        twiddles_packed = [((re & mask) << self.w) | (im & mask)
                           for re, im in zip(twiddles_re, twiddles_im)]
        mem_attrs = {
            'ram_style': (
                'distributed' if self.storage == 'lut'
                else 'block'),
        }
        mem_domain = 'comb' if self.storage == 'lut' else 'sync'
        m.submodules.twiddle_mem = twiddle_mem = (
            Memory(
                shape=2*self.w,
                depth=self.depth,
                init=twiddles_packed,
                attrs=mem_attrs,
            ))
        rdport = twiddle_mem.read_port(domain=mem_domain)
        m.d.comb += [
            rdport.addr.eq(self.index),
            self.re_out.eq(rdport.data[self.w:]),
            self.im_out.eq(rdport.data[:self.w]),
        ]
        return m


if __name__ == '__main__':
    rom = TwiddleROM(6, 16)
    with open('twiddle_rom.v', 'w') as f:
        f.write(
            amaranth.back.verilog.convert(
                rom, name='twiddle_rom',
                ports=[rom.index, rom.re_out, rom.im_out],
                emit_src=False))
