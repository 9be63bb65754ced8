#
# Copyright (C) 2026 r2fft-hdl contributors
#
# This file is part of r2fft-hdl
#
# SPDX-License-Identifier: MIT
#

from .config import FFTConfig


def default():
    """Default configuration: 64-point FFT with 16-bit samples"""
    return FFTConfig()


def small():
    """8-point FFT with 16-bit samples"""
    return FFTConfig(fft_points=8)


def large():
    """1024-point FFT with 18-bit samples"""
    return FFTConfig(data_width=18, fft_points=1024)
