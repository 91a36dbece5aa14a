"""Shared fixtures: repository root on sys.path and small board builders."""

import os
import sys

import numpy as np
import pytest

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)


def gerber_with_nets(nets, inches=False):
    """Gerber text flashing each net's points (mm, or inches if inches=True)."""
    lines = ['%FSLAX46Y46*%', '%MOIN*%' if inches else '%MOMM*%', '%ADD10C,0.5*%', 'D10*']
    for name, points in nets.items():
        lines.append(f'%TO.N,{name}*%')
        for x, y in points:
            lines.append(f'X{round(x * 1e6)}Y{round(y * 1e6)}D03*')
        lines.append('%TD*%')
    lines.append('M02*')
    return '\n'.join(lines) + '\n'


def pixel_center_mm(px, py, height, delta=1.0, origin=(0.0, 0.0)):
    return (delta * (px + 0.5) + origin[0], delta * (height - py - 0.5) + origin[1])


@pytest.fixture
def make_gerber():
    return gerber_with_nets


@pytest.fixture
def center():
    return pixel_center_mm


@pytest.fixture
def two_layer_board():
    """Two 4x4 layers: a vertical strip on top crossing a horizontal strip below.

    Top (layer 0): column 1, rows 0..3 (net TOP)
    Bottom (layer 1): row 2, columns 0..3 (net BOT)
    They overlap in pixel (row 2, column 1).
    """
    top = np.zeros((4, 4), dtype=np.uint8)
    top[:, 1] = 1
    bottom = np.zeros((4, 4), dtype=np.uint8)
    bottom[2, :] = 1
    gerbers = [
        gerber_with_nets({'TOP': [pixel_center_mm(1, 0, 4)]}),
        gerber_with_nets({'BOT': [pixel_center_mm(3, 2, 4)]}),
    ]
    return [top, bottom], gerbers
