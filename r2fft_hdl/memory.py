#
# Copyright (C) 2026 r2fft-hdl contributors
#
# This file is part of r2fft-hdl
#
# SPDX-License-Identifier: MIT
#

from amaranth import *
from amaranth.lib.memory import Memory


class SampleStore(Elaboratable):
    """Complex sample store

    A simple dual-port RAM holding ``2**addr_width`` complex samples, with
    one read port and one write port. The real and imaginary parts are packed
    in the same memory word.

    Reads have one clock cycle of latency. The read port is not transparent,
    so a sample written on a clock cycle can be read back starting on the
    next cycle, regardless of the addresses involved.

    Parameters
    ----------
    width : int
        Width of the real and imaginary parts.
    addr_width : int
        Address width.

    Attributes
    ----------
    raddr : Signal(addr_width), in
        Read address.
    ren : Signal(), in
        Read enable. When low, the read data holds its previous value.
    re_rdata : Signal(signed(width)), out
        Real part of the read data.
    im_rdata : Signal(signed(width)), out
        Imaginary part of the read data.
    waddr : Signal(addr_width), in
        Write address.
    wen : Signal(), in
        Write enable.
    re_wdata : Signal(signed(width)), in
        Real part of the write data.
    im_wdata : Signal(signed(width)), in
        Imaginary part of the write data.
    """
    def __init__(self, width, addr_width):
        self.w = width
        self.addr_width = addr_width

        self.raddr = Signal(addr_width)
        self.ren = Signal()
        self.re_rdata = Signal(signed(width))
        self.im_rdata = Signal(signed(width))
        self.waddr = Signal(addr_width)
        self.wen = Signal()
        self.re_wdata = Signal(signed(width))
        self.im_wdata = Signal(signed(width))

    @property
    def depth(self):
        return 2**self.addr_width

    def elaborate(self, platform):
        m = Module()
        m.submodules.mem = mem = Memory(
            shape=2*self.w, depth=self.depth, init=[],
            attrs={'ram_style': 'block'})
        rdport = mem.read_port()
        wrport = mem.write_port()
        m.d.comb += [
            rdport.en.eq(self.ren),
            rdport.addr.eq(self.raddr),
            self.re_rdata.eq(rdport.data[:self.w]),
            self.im_rdata.eq(rdport.data[self.w:]),
            wrport.en.eq(self.wen),
            wrport.addr.eq(self.waddr),
            wrport.data.eq(Cat(self.re_wdata, self.im_wdata)),
        ]
        return m
