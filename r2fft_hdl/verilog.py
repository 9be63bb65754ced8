#
# Copyright (C) 2026 r2fft-hdl contributors
#
# This file is part of r2fft-hdl
#
# SPDX-License-Identifier: MIT
#

import argparse

import amaranth.back.verilog

from . import configs
from .inplace import InPlaceFFT
from .pipeline import StreamingFFT


MODES = {
    'inplace': InPlaceFFT,
    'streaming': StreamingFFT,
}


def parse_args():
    parser = argparse.ArgumentParser(
        description='Generate Verilog for the radix-2 FFT')
    parser.add_argument(
        '--mode', choices=sorted(MODES), default='inplace',
        help='FFT architecture [default=%(default)r]')
    parser.add_argument(
        '--config', default='default',
        help='FFT configuration name [default=%(default)r]')
    parser.add_argument(
        'output_file', help='Output verilog file')
    return parser.parse_args()


def main():
    args = parse_args()
    config = getattr(configs, args.config)()
    top = MODES[args.mode](config)
    name = f'r2fft_{args.mode}'
    with open(args.output_file, 'w') as f:
        f.write(amaranth.back.verilog.convert(
            top, name=name, ports=top.ports(), emit_src=False))
    print(f'{name}: {config.fft_points} points, {config.data_width} bits, '
          f'written to {args.output_file}')


if __name__ == '__main__':
    main()
