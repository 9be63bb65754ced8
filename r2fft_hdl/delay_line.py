#
# Copyright (C) 2026 r2fft-hdl contributors
#
# This file is part of r2fft-hdl
#
# SPDX-License-Identifier: MIT
#

from amaranth import *
import amaranth.back.verilog


class DelayLine(Elaboratable):
    """Fixed-depth FIFO used as a delay line.

    The FIFO is implemented as a shift register of ``depth`` words (flip-flops
    or LUTMs depending on synthesis). The head of the FIFO is always present
    at ``data_out``, and reading shifts all the words one position towards
    the head.

    Writes are ignored when the FIFO is full, and reads are ignored when the
    FIFO is empty. The read is applied before the write, so a full FIFO
    which is read on the same cycle accepts the write. This allows a FIFO of
    depth ``D`` to delay a continuous stream by exactly ``D`` samples.

    Parameters
    ----------
    width : int
        Width of the words stored in the FIFO.
    depth : int
        Capacity of the FIFO.

    Attributes
    ----------
    level : Signal(range(depth + 1)), out
        Number of words in the FIFO.
    data_in : Signal(width), in
        Data input.
    wren : Signal(), in
        Write enable.
    full : Signal(), out
        FIFO full flag.
    wrerr : Signal(), out
        FIFO write error. Asserted on the same cycle as a write which is
        ignored.
    data_out : Signal(width), out
        Data output (head of the FIFO).
    rden : Signal(), in
        Read enable.
    empty : Signal(), out
        FIFO empty flag.
    rderr : Signal(), out
        FIFO read error. Asserted on the same cycle as a read which is
        ignored.
    """
    def __init__(self, width, depth):
        if depth < 1:
            raise ValueError(f'depth must be at least 1 (got {depth})')
        self.w = width
        self.depth = depth

        self.level = Signal(range(depth + 1))

        self.data_in = Signal(width)
        self.wren = Signal()
        self.full = Signal()
        self.wrerr = Signal()

        self.data_out = Signal(width)
        self.rden = Signal()
        self.empty = Signal()
        self.rderr = Signal()

    def elaborate(self, platform):
        m = Module()

        words = [Signal(self.w, name=f'word_{j}', reset_less=True)
                 for j in range(self.depth)]
        do_read = Signal()
        do_write = Signal()
        write_index = Signal(range(self.depth + 1))

        m.d.comb += [
            self.empty.eq(self.level == 0),
            self.full.eq(self.level == self.depth),
            self.data_out.eq(words[0]),
            do_read.eq(self.rden & ~self.empty),
            do_write.eq(self.wren & (~self.full | do_read)),
            self.rderr.eq(self.rden & self.empty),
            self.wrerr.eq(self.wren & ~do_write),
            write_index.eq(self.level - do_read),
        ]

        with m.If(do_read):
            m.d.sync += [words[j].eq(words[j + 1])
                         for j in range(self.depth - 1)]
        # These statements come after the shift, so they take precedence over
        # it for the word being written.
        for j in range(self.depth):
            with m.If(do_write & (write_index == j)):
                m.d.sync += words[j].eq(self.data_in)

        m.d.sync += self.level.eq(self.level + do_write - do_read)

        return m


if __name__ == '__main__':
    delay_line = DelayLine(32, 16)
    with open('delay_line.v', 'w') as f:
        f.write(amaranth.back.verilog.convert(
            delay_line, name='delay_line', emit_src=False, ports=[
                delay_line.level,
                delay_line.data_in, delay_line.wren, delay_line.full,
                delay_line.wrerr,
                delay_line.data_out, delay_line.rden, delay_line.empty,
                delay_line.rderr]))
