#
# Copyright (C) 2026 r2fft-hdl contributors
#
# This file is part of r2fft-hdl
#
# SPDX-License-Identifier: MIT
#

from amaranth import *
import numpy as np


def clamp_nbits(x, nbits):
    offset = 2**(nbits - 1)
    return ((x + offset) % 2**nbits) - offset


def saturate_nbits(x, nbits):
    return np.clip(x, -2**(nbits - 1), 2**(nbits - 1) - 1)


def bit_reverse(n, nbits):
    bits = ('0'*nbits + bin(n)[2:])[-nbits:]
    return int(bits[::-1], 2)


def reverse_bits(value):
    """Reverses the bit order of an Amaranth value"""
    return Cat(*[value[j] for j in reversed(range(len(value)))])


def saturate(value, nbits):
    """Saturates a signed Amaranth value to ``nbits``.

    The bits from ``nbits - 1`` upwards must all be equal (copies of the
    sign) for the value to fit. Otherwise the value is clamped to the most
    positive or most negative ``nbits`` value according to its sign.
    """
    top = value[nbits - 1:]
    overflow = ~(top.all() | ~top.any())
    return Mux(
        overflow,
        Mux(value[-1], -2**(nbits - 1), 2**(nbits - 1) - 1),
        value[:nbits].as_signed())


def to_fixed(x, width):
    """Converts floats in [-1, 1) to Q1.(width-1) integers.

    Rounds to nearest (ties to even, as ``np.round``) and saturates, so that
    1.0 maps to the largest positive value.
    """
    scale = 2**(width - 1)
    return saturate_nbits(
        np.round(np.asarray(x, 'float') * scale).astype('int'), width)


def from_fixed(n, width):
    return np.asarray(n) / 2**(width - 1)
