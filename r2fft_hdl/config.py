#
# Copyright (C) 2026 r2fft-hdl contributors
#
# This file is part of r2fft-hdl
#
# SPDX-License-Identifier: MIT
#

class FFTConfig:
    """FFT configuration

    This class defines the compile-time parameters shared by the in-place and
    the streaming FFT top-levels. They cannot be changed once a top-level has
    been built.

    Parameters
    ----------
    data_width : int
        Total width of the Q1.(data_width-1) fixed-point samples.
    fft_points : int
        FFT size. It must be a power of two.
    addr_width : Optional[int]
        Address width of the sample store. By default it is derived from
        ``fft_points``. If given, it must be ``log2(fft_points)``.
    """
    def __init__(self, data_width=16, fft_points=64, addr_width=None):
        self.data_width = data_width
        self.fft_points = fft_points
        self._addr_width = addr_width

    @property
    def addr_width(self):
        if self._addr_width is not None:
            return self._addr_width
        return self.fft_points.bit_length() - 1

    @property
    def order_log2(self):
        return self.addr_width

    def validate(self):
        if self.data_width < 2:
            raise ValueError(
                f'data_width must be at least 2 (got {self.data_width})')
        if self.fft_points < 4 or self.fft_points.bit_count() != 1:
            raise ValueError(
                'fft_points must be a power of two greater or equal than 4 '
                f'(got {self.fft_points})')
        if 2**self.addr_width != self.fft_points:
            raise ValueError(
                f'addr_width {self.addr_width} is inconsistent with '
                f'fft_points {self.fft_points}')
