#
# Copyright (C) 2026 r2fft-hdl contributors
#
# This file is part of r2fft-hdl
#
# SPDX-License-Identifier: MIT
#

from amaranth import *
import amaranth.back.verilog
import numpy as np

from .util import clamp_nbits, saturate, saturate_nbits


class Butterfly(Elaboratable):
    """Radix-2 decimation-in-time butterfly

    This computes ``a_out = a + b * w`` and ``b_out = a - b * w`` on
    Q1.(width-1) complex samples.

    The complex product ``b * w`` uses the four multiplier form. Each real
    product is computed at double width, the sums are shifted right by
    ``width - 1`` fractional bits and the result is saturated to ``width``
    bits.

    The final addition and subtraction are done at ``width`` bits without
    saturation, so they wrap around on overflow. To prevent this, the input
    amplitude of an FFT built from these butterflies must be small enough
    that no intermediate result exceeds the [-1, 1) range. For an FFT of size
    ``N``, an input amplitude below ``1/N`` is always safe.

    Parameters
    ----------
    width : int
        Width of the samples and twiddle factors.
    registered : bool
        If True (the default), the outputs are registered, and are updated
        one clock cycle after the inputs are presented with ``clken``
        asserted. If False, the outputs are combinational.

    Attributes
    ----------
    delay : int
        Delay (in samples) introduced by this module.
    clken : Signal(), in
        Clock enable. Only used when ``registered`` is True.
    re_a : Signal(signed(width)), in
        Real part of operand 'a'.
    im_a : Signal(signed(width)), in
        Imaginary part of operand 'a'.
    re_b : Signal(signed(width)), in
        Real part of operand 'b'.
    im_b : Signal(signed(width)), in
        Imaginary part of operand 'b'.
    re_w : Signal(signed(width)), in
        Real part of the twiddle factor.
    im_w : Signal(signed(width)), in
        Imaginary part of the twiddle factor.
    re_a_out : Signal(signed(width)), out
        Real part of ``a + b * w``.
    im_a_out : Signal(signed(width)), out
        Imaginary part of ``a + b * w``.
    re_b_out : Signal(signed(width)), out
        Real part of ``a - b * w``.
    im_b_out : Signal(signed(width)), out
        Imaginary part of ``a - b * w``.
    """
    def __init__(self, width, registered=True):
        if width < 2:
            raise ValueError(f'width must be at least 2 (got {width})')
        self.w = width
        self.registered = registered

        self.clken = Signal()
        self.re_a = Signal(signed(self.w))
        self.im_a = Signal(signed(self.w))
        self.re_b = Signal(signed(self.w))
        self.im_b = Signal(signed(self.w))
        self.re_w = Signal(signed(self.w))
        self.im_w = Signal(signed(self.w))
        self.re_a_out = Signal(signed(self.w), reset_less=True)
        self.im_a_out = Signal(signed(self.w), reset_less=True)
        self.re_b_out = Signal(signed(self.w), reset_less=True)
        self.im_b_out = Signal(signed(self.w), reset_less=True)

    @property
    def delay(self):
        return 1 if self.registered else 0

    @property
    def frac_bits(self):
        return self.w - 1

    def model(self, re_a, im_a, re_b, im_b, re_w, im_w):
        re_a, im_a, re_b, im_b, re_w, im_w = (
            np.array(x, 'int')
            for x in [re_a, im_a, re_b, im_b, re_w, im_w])
        re_bw = saturate_nbits(
            (re_b * re_w - im_b * im_w) >> self.frac_bits, self.w)
        im_bw = saturate_nbits(
            (re_b * im_w + im_b * re_w) >> self.frac_bits, self.w)
        return (clamp_nbits(re_a + re_bw, self.w),
                clamp_nbits(im_a + im_bw, self.w),
                clamp_nbits(re_a - re_bw, self.w),
                clamp_nbits(im_a - im_bw, self.w))

    def elaborate(self, platform):
        m = Module()

        # 2*w bits for each product, plus one bit of growth in the sum
        multw = 2 * self.w + 1
        re_prod = Signal(signed(multw))
        im_prod = Signal(signed(multw))
        re_bw = Signal(signed(self.w))
        im_bw = Signal(signed(self.w))
        m.d.comb += [
            re_prod.eq(self.re_b * self.re_w - self.im_b * self.im_w),
            im_prod.eq(self.re_b * self.im_w + self.im_b * self.re_w),
            re_bw.eq(saturate(re_prod >> self.frac_bits, self.w)),
            im_bw.eq(saturate(im_prod >> self.frac_bits, self.w)),
        ]

        # The additions are truncated to w bits, so they wrap around.
        outputs = [
            self.re_a_out.eq(self.re_a + re_bw),
            self.im_a_out.eq(self.im_a + im_bw),
            self.re_b_out.eq(self.re_a - re_bw),
            self.im_b_out.eq(self.im_a - im_bw),
        ]
        if self.registered:
            with m.If(self.clken):
                m.d.sync += outputs
        else:
            m.d.comb += outputs

        return m


if __name__ == '__main__':
    bfly = Butterfly(16)
    with open('butterfly.v', 'w') as f:
        f.write(
            amaranth.back.verilog.convert(
                bfly, name='butterfly', ports=[
                    bfly.clken,
                    bfly.re_a, bfly.im_a,
                    bfly.re_b, bfly.im_b,
                    bfly.re_w, bfly.im_w,
                    bfly.re_a_out, bfly.im_a_out,
                    bfly.re_b_out, bfly.im_b_out],
                emit_src=False))
