# -- IISPH / DFSPH Precursor Tests -- #

'''
The implicit and divergence-free solvers only provide their precursor
phase; a full step is refused.
'''

import numpy as np
import pytest

from sphSim.sph.dfsphSolver import DfsphSolver
from sphSim.sph.fieldOps import FieldOps
from sphSim.sph.iisphSolver import IisphSolver
from sphSim.sph.neighborSearch import SpatialHashGrid
from sphSim.sph.particles import ParticleSet


def _pair(vx0, vx1):
    return ParticleSet(
        positions=np.array([[0.0, 0.0], [1.0, 0.0]]),
        velocities=np.array([[vx0, 0.0], [vx1, 0.0]]),
        isBoundary=np.zeros(2, dtype=bool),
    )


######################################################################
# -- IISPH -- #
######################################################################

def testIisphStepIsNotImplemented(parameters, lattice):
    particles = lattice(3, 3, 1.0)
    before = particles.copy()

    solver = IisphSolver(parameters)
    with pytest.raises(NotImplementedError):
        solver.step(particles, np.zeros((9, 2)), 0.01)
    assert solver.lastStep is None
    solver.close()

    np.testing.assert_array_equal(particles.positions, before.positions)
    np.testing.assert_array_equal(particles.velocities, before.velocities)


def testIisphIsolatedParticle(parameters):
    particles = ParticleSet(
        positions=np.array([[0.0, 0.0]]),
        velocities=np.array([[1.0, 2.0]]),
        isBoundary=np.array([False]),
    )
    solver = IisphSolver(parameters)
    advection = solver.computeAdvection(particles, np.array([[0.0, -1.0]]), 0.1)

    np.testing.assert_allclose(advection.advectedVelocities[0], [1.0, 1.9])
    np.testing.assert_array_equal(advection.dii, np.zeros((1, 2)))
    assert advection.advectedDensities[0] == pytest.approx(advection.densities[0])
    np.testing.assert_array_equal(advection.initialPressures, [0.0])

    # No pressure solve runs, so the warm start stays zero on later calls
    again = solver.computeAdvection(particles, np.array([[0.0, -1.0]]), 0.1)
    np.testing.assert_array_equal(again.initialPressures, [0.0])


def testIisphUniformGravityKeepsDensity(parameters, lattice):
    particles = lattice(4, 4, 1.0)
    gravity = np.tile([0.0, -1.0], (16, 1))

    advection = IisphSolver(parameters).computeAdvection(particles, gravity, 0.05)

    np.testing.assert_allclose(advection.advectedVelocities, np.tile([0.0, -0.05], (16, 1)))
    np.testing.assert_allclose(advection.advectedDensities, advection.densities, atol=1e-12)


def testIisphDiagonalCoefficients(parameters, lattice):
    particles = lattice(3, 3, 1.0, origin=(-1.0, -1.0))
    advection = IisphSolver(parameters).computeAdvection(particles, np.zeros((9, 2)), 0.05)

    np.testing.assert_allclose(advection.dii[4], [0.0, 0.0], atol=1e-12)
    # Corner at (-1, -1): every neighbor lies toward +x, +y, so d_ii points away
    assert np.all(advection.dii[0] < 0.0)


def testIisphBoundaryIsNotAdvected(parameters):
    particles = ParticleSet(
        positions=np.array([[0.0, 0.0], [1.0, 0.0]]),
        velocities=np.zeros((2, 2)),
        isBoundary=np.array([True, False]),
    )
    gravity = np.tile([0.0, -1.0], (2, 1))
    advection = IisphSolver(parameters).computeAdvection(particles, gravity, 0.1)

    np.testing.assert_array_equal(advection.advectedVelocities[0], [0.0, 0.0])
    np.testing.assert_allclose(advection.advectedVelocities[1], [0.0, -0.1])
    assert advection.densities[0] == pytest.approx(2.0 * advection.restDensity)


######################################################################
# -- DFSPH -- #
######################################################################

def testDfsphStepIsNotImplemented(parameters):
    solver = DfsphSolver(parameters)
    with pytest.raises(NotImplementedError):
        solver.step(_pair(0.0, 0.0), np.zeros((2, 2)), 0.01)
    assert solver.lastStep is None


def testDfsphDensities(parameters, lattice):
    particles = lattice(4, 3, 1.0)
    particles.isBoundary[:3] = True

    precursor = DfsphSolver(parameters).computeDensityPrecursor(particles)

    ops = FieldOps(parameters)
    grid = SpatialHashGrid(parameters.smoothingLength)
    grid.build(particles.positions)
    expected = ops.computeDensity(particles.positions, grid.queryNeighbors(particles.isBoundary), 0, 12)

    np.testing.assert_allclose(precursor.densities[:3], 2.0 * precursor.restDensity)
    np.testing.assert_allclose(precursor.densities[3:], expected[3:])


def testDfsphDensityDerivativeSign(parameters):
    solver = DfsphSolver(parameters)

    approaching = solver.computeDensityPrecursor(_pair(1.0, -1.0))
    assert np.all(approaching.densityDerivatives > 0.0)

    separating = solver.computeDensityPrecursor(_pair(-1.0, 1.0))
    assert np.all(separating.densityDerivatives < 0.0)

    resting = solver.computeDensityPrecursor(_pair(0.0, 0.0))
    np.testing.assert_array_equal(resting.densityDerivatives, [0.0, 0.0])

    # Uniform translation does not compress
    drifting = solver.computeDensityPrecursor(_pair(3.0, 3.0))
    np.testing.assert_allclose(drifting.densityDerivatives, [0.0, 0.0], atol=1e-14)
