# -- Scenario Layout Tests -- #

import math

import numpy as np

from sphSim.scenarios import (
    ContainerSceneConfig,
    createCircle,
    createContainerScene,
    createHollowCircle,
    createHorizontalBoundaryLine,
    createVerticalBoundaryLine,
)


def testCreateCircle():
    disc = createCircle(5.0, -2.0, 1.0, 0.5, radius=1.0, spacing=1.0)

    # Center plus the four axis points
    assert disc.nParticles == 5
    assert disc.nBoundary == 0
    np.testing.assert_array_equal(disc.velocities, np.tile([1.0, 0.5], (5, 1)))
    offsets = disc.positions - [5.0, -2.0]
    assert np.all(np.hypot(offsets[:, 0], offsets[:, 1]) <= 1.0)


def testCreateCircleLatticeCount():
    # Lattice points inside a radius-10 circle
    assert createCircle(0.0, 0.0, 0.0, 0.0, radius=10.0, spacing=1.0).nParticles == 317


def testCreateHollowCircle():
    ring = createHollowCircle(1.0, 2.0, radius=10.0, spacing=1.0)

    assert ring.nBoundary == ring.nParticles
    assert ring.nParticles == len(np.arange(0.0, 2.0 * math.pi, 0.1))
    radii = np.linalg.norm(ring.positions - [1.0, 2.0], axis=1)
    np.testing.assert_allclose(radii, 10.0)

    gaps = np.linalg.norm(np.diff(ring.positions, axis=0), axis=1)
    assert np.all(gaps <= 1.0)


def testBoundaryLines():
    row = createHorizontalBoundaryLine(-2.0, 3.0, 0.5, 5)
    np.testing.assert_allclose(row.positions[:, 0], [-2.0, -1.5, -1.0, -0.5, 0.0])
    np.testing.assert_allclose(row.positions[:, 1], 3.0)
    assert row.nBoundary == 5

    column = createVerticalBoundaryLine(4.0, 0.0, 1.0, 3)
    np.testing.assert_allclose(column.positions, [[4.0, 0.0], [4.0, 1.0], [4.0, 2.0]])
    np.testing.assert_array_equal(column.velocities, np.zeros((3, 2)))


def testContainerSceneOrdering():
    config = ContainerSceneConfig.small()
    particles = createContainerScene(config)

    nBoundary = particles.nBoundary
    assert np.all(particles.isBoundary[:nBoundary])
    assert not np.any(particles.isBoundary[nBoundary:])
    assert particles.nFluid == 317

    fluidVelocities = particles.velocities[~particles.isBoundary]
    np.testing.assert_array_equal(fluidVelocities, np.tile(config.fluidVelocity, (317, 1)))


def testStandardSceneMatchesDefaults():
    assert ContainerSceneConfig.standard() == ContainerSceneConfig()
    assert len(ContainerSceneConfig().obstacles) == 4


def testSceneFromDict():
    config = ContainerSceneConfig.fromDict({
        'scene': {
            'containerRadius': 12.0,
            'obstacles': [[1.0, 2.0, 3.0]],
            'fluidCenter': [0.0, 4.0],
        },
    })
    assert config.containerRadius == 12.0
    assert config.obstacles == [(1.0, 2.0, 3.0)]
    assert config.fluidCenter == (0.0, 4.0)
    assert config.fluidRadius == ContainerSceneConfig().fluidRadius
