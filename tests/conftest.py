# -- Shared Test Fixtures -- #

'''
Fixtures shared by the sphSim test modules.
'''

import numpy as np
import pytest

from sphSim.sph.protocols import SimulationParameters
from sphSim.sph.particles import ParticleSet


def makeLattice(nx: int, ny: int, spacing: float, origin=(0.0, 0.0)) -> ParticleSet:
    '''Fluid particles at rest on an nx-by-ny square lattice.'''
    xs = origin[0] + spacing * np.arange(nx)
    ys = origin[1] + spacing * np.arange(ny)
    xx, yy = np.meshgrid(xs, ys, indexing='ij')
    positions = np.column_stack([xx.ravel(), yy.ravel()])
    n = len(positions)
    return ParticleSet(
        positions=positions,
        velocities=np.zeros((n, 2)),
        isBoundary=np.zeros(n, dtype=bool),
    )


@pytest.fixture
def parameters() -> SimulationParameters:
    '''Default parameters: spacing 1, h 2, mass 1, inline passes.'''
    return SimulationParameters(maxParallelism=1)


@pytest.fixture
def lattice():
    '''Factory for resting fluid lattices.'''
    return makeLattice
