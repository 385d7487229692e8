# -- SPH Field Operation Tests -- #

'''
Density, equation of state, pairwise accelerations and the PCISPH
scaling factor.
'''

import math

import numpy as np
import pytest

from sphSim.sph.fieldOps import FieldOps
from sphSim.sph.neighborSearch import SpatialHashGrid


SIGMA = 10.0 / (7.0 * math.pi)


def _neighbors(positions, h=2.0, isBoundary=None):
    if isBoundary is None:
        isBoundary = np.zeros(len(positions), dtype=bool)
    grid = SpatialHashGrid(h)
    grid.build(positions)
    return grid.queryNeighbors(isBoundary)


######################################################################
# -- Density -- #
######################################################################

def testRestDensityValue(parameters):
    ops = FieldOps(parameters)
    # Self, 4 axis neighbors at r = 1, 4 diagonals at r = sqrt(2)
    expected = SIGMA * (2.0 + (2.0 - math.sqrt(2.0)) ** 3)
    assert ops.computeRestDensity() == pytest.approx(expected, rel=1e-12)


def testRestDensityIsDeterministic(parameters):
    ops = FieldOps(parameters)
    values = {ops.computeRestDensity() for _ in range(5)}
    assert len(values) == 1
    assert FieldOps(parameters).computeRestDensity() == values.pop()


def testInteriorLatticeDensityEqualsRestDensity(parameters, lattice):
    particles = lattice(7, 7, 1.0)
    ops = FieldOps(parameters)
    neighbors = _neighbors(particles.positions)
    densities = ops.computeDensity(particles.positions, neighbors, 0, len(particles))

    center = 3 * 7 + 3
    assert densities[center] == pytest.approx(ops.computeRestDensity(), rel=1e-12)
    assert densities[0] < densities[center]


def testIsolatedParticleDensity(parameters):
    ops = FieldOps(parameters)
    positions = np.array([[0.0, 0.0], [10.0, 0.0]])
    densities = ops.computeDensity(positions, _neighbors(positions), 0, 2)
    np.testing.assert_allclose(densities, [SIGMA, SIGMA])


def testDensityBlocksMatchFullRange(parameters, lattice):
    particles = lattice(6, 5, 0.8)
    ops = FieldOps(parameters)
    neighbors = _neighbors(particles.positions)
    n = len(particles)

    full = ops.computeDensity(particles.positions, neighbors, 0, n)
    pieces = np.concatenate([
        ops.computeDensity(particles.positions, neighbors, 0, 7),
        ops.computeDensity(particles.positions, neighbors, 7, 19),
        ops.computeDensity(particles.positions, neighbors, 19, n),
    ])
    np.testing.assert_allclose(pieces, full)


######################################################################
# -- Equation of State -- #
######################################################################

def testPressureIsNonNegative(parameters):
    ops = FieldOps(parameters)
    densities = np.array([-5.0, 0.0, 0.1, 0.5, 0.999, 1.0, 1.5, 10.0])
    for restDensity in (0.5, 1.0, 2.2):
        pressures = ops.computePressure(densities, restDensity)
        assert np.all(pressures >= 0.0)


def testPressureValues(parameters):
    ops = FieldOps(parameters)
    rho0 = ops.computeRestDensity()

    assert ops.computePressure(rho0, rho0) == 0.0
    assert ops.computePressure(0.5 * rho0, rho0) == 0.0

    expected = rho0 * 88.5 ** 2 / 7.0 * (2.0 ** 7 - 1.0)
    assert ops.computePressure(2.0 * rho0, rho0) == pytest.approx(expected)


def testPressureKeepsShape(parameters):
    ops = FieldOps(parameters)
    assert isinstance(ops.computePressure(1.0, 1.0), float)
    assert ops.computePressure(np.ones(4), 1.0).shape == (4,)


######################################################################
# -- Pairwise Accelerations -- #
######################################################################

def testPressureAccelerationIsEqualAndOpposite(parameters):
    ops = FieldOps(parameters)
    positions = np.array([[0.0, 0.0], [0.8, 0.3]])
    densities = np.array([1.2, 0.9])
    pressures = np.array([5.0, 3.0])

    accel = ops.computePressureAcceleration(positions, _neighbors(positions), densities, pressures, 0, 2)

    np.testing.assert_allclose(accel[0], -accel[1], atol=1e-14)
    assert np.linalg.norm(accel[0]) > 0.0
    # Repulsive: particle 0 is pushed away from particle 1
    assert np.dot(accel[0], positions[0] - positions[1]) > 0.0


def testZeroPressureGivesNoAcceleration(parameters):
    ops = FieldOps(parameters)
    positions = np.array([[0.0, 0.0], [1.0, 0.0]])
    accel = ops.computePressureAcceleration(
        positions, _neighbors(positions), np.ones(2), np.zeros(2), 0, 2
    )
    np.testing.assert_array_equal(accel, np.zeros((2, 2)))


def testCoincidentParticlesStayFinite(parameters):
    ops = FieldOps(parameters)
    positions = np.array([[1.0, 1.0], [1.0, 1.0]])
    velocities = np.array([[1.0, 0.0], [-1.0, 0.0]])
    neighbors = _neighbors(positions)

    pressureAccel = ops.computePressureAcceleration(positions, neighbors, np.ones(2), np.ones(2), 0, 2)
    viscosityAccel = ops.computeViscosityAcceleration(positions, velocities, neighbors, np.ones(2), 0, 2)

    assert np.all(np.isfinite(pressureAccel))
    assert np.all(np.isfinite(viscosityAccel))


def testViscosityDampsApproachingPair(parameters):
    ops = FieldOps(parameters)
    positions = np.array([[0.0, 0.0], [1.0, 0.0]])
    velocities = np.array([[1.0, 0.0], [-1.0, 0.0]])
    densities = np.full(2, 2.0)

    accel = ops.computeViscosityAcceleration(positions, velocities, _neighbors(positions), densities, 0, 2)

    assert accel[0, 0] < 0.0
    assert accel[1, 0] > 0.0
    np.testing.assert_allclose(accel[0], -accel[1], atol=1e-14)


def testViscosityIgnoresSeparatingPair(parameters):
    ops = FieldOps(parameters)
    positions = np.array([[0.0, 0.0], [1.0, 0.0]])
    velocities = np.array([[-1.0, 0.0], [1.0, 0.0]])

    accel = ops.computeViscosityAcceleration(positions, velocities, _neighbors(positions), np.ones(2), 0, 2)

    np.testing.assert_array_equal(accel, np.zeros((2, 2)))


######################################################################
# -- PCISPH Scaling Factor -- #
######################################################################

def testScalingFactorIsPositive(parameters):
    ops = FieldOps(parameters)
    assert ops.computeScalingFactor(0.05, ops.computeRestDensity()) > 0.0


def testScalingFactorScalesWithInverseTimeStepSquared(parameters):
    ops = FieldOps(parameters)
    rho0 = ops.computeRestDensity()
    ratio = ops.computeScalingFactor(0.1, rho0) / ops.computeScalingFactor(0.2, rho0)
    assert ratio == pytest.approx(4.0)
