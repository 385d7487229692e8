# -- WCSPH Solver Tests -- #

'''
Single-step behavior of the weakly compressible solver.
'''

import numpy as np
import pytest

from sphSim.sph.particles import ParticleSet
from sphSim.sph.parallel import ParallelExecutor
from sphSim.sph.protocols import SimulationParameters
from sphSim.sph.wcsphSolver import WcsphSolver
from sphSim.scenarios.container import ContainerSceneConfig, createContainerScene


def _smallScene():
    return createContainerScene(ContainerSceneConfig(
        containerRadius=8.0,
        obstacles=[(0.0, -6.0, 1.0)],
        fluidCenter=(0.0, 1.0),
        fluidRadius=3.0,
        fluidVelocity=(0.5, 0.0),
    ))


def _gravity(particles, g=1.0):
    accelerations = np.zeros((particles.nParticles, 2))
    accelerations[:, 1] = -g
    return accelerations


def testFreeFallOfIsolatedParticle(parameters):
    particles = ParticleSet(
        positions=np.array([[0.0, 0.0]]),
        velocities=np.zeros((1, 2)),
        isBoundary=np.array([False]),
    )
    with WcsphSolver(parameters) as solver:
        solver.step(particles, np.array([[0.0, -1.0]]), 0.1)

    np.testing.assert_allclose(particles.velocities[0], [0.0, -0.1])
    np.testing.assert_allclose(particles.positions[0], [0.0, -0.005])


def testSymmetricLatticeCenterStaysPut(parameters, lattice):
    particles = lattice(3, 3, 1.0, origin=(-1.0, -1.0))
    with WcsphSolver(parameters) as solver:
        solver.step(particles, np.zeros((9, 2)), 0.05)

    np.testing.assert_allclose(particles.positions[4], [0.0, 0.0], atol=1e-8)
    np.testing.assert_allclose(particles.velocities[4], [0.0, 0.0], atol=1e-8)


def testParticlesAtSmoothingLengthDoNotInteract(parameters):
    particles = ParticleSet(
        positions=np.array([[0.0, 0.0], [2.0, 0.0]]),
        velocities=np.zeros((2, 2)),
        isBoundary=np.zeros(2, dtype=bool),
    )
    with WcsphSolver(parameters) as solver:
        solver.step(particles, np.zeros((2, 2)), 0.05)

    np.testing.assert_array_equal(particles.velocities, np.zeros((2, 2)))


def testCompressedClusterIsPushedApart(parameters, lattice):
    particles = lattice(5, 5, 0.5, origin=(-1.0, -1.0))
    initial = particles.positions.copy()
    center = initial.mean(axis=0)

    with WcsphSolver(parameters) as solver:
        solver.step(particles, np.zeros((25, 2)), 0.001)
        assert solver.lastStep.maxDensity > solver.lastStep.restDensity

    outward = initial - center
    onRim = np.max(np.abs(outward), axis=1) > 0.99
    radialSpeed = np.sum(particles.velocities * outward, axis=1)
    assert np.all(radialSpeed[onRim] > 0.0)
    np.testing.assert_allclose(particles.velocities[12], [0.0, 0.0], atol=1e-6)


def testFluidIsRepelledByBoundary(parameters):
    particles = ParticleSet(
        positions=np.array([[0.0, 0.0], [1.0, 0.0]]),
        velocities=np.zeros((2, 2)),
        isBoundary=np.array([True, False]),
    )
    with WcsphSolver(parameters) as solver:
        solver.step(particles, np.zeros((2, 2)), 0.001)

    assert particles.velocities[1, 0] > 0.0
    np.testing.assert_array_equal(particles.positions[0], [0.0, 0.0])


def testBoundaryParticlesNeverMove(parameters):
    particles = _smallScene()
    boundary = particles.isBoundary
    initial = particles.positions[boundary].copy()
    fluidStart = particles.positions[~boundary].copy()

    with WcsphSolver(parameters) as solver:
        for _ in range(5):
            solver.step(particles, _gravity(particles), 0.005)

    np.testing.assert_array_equal(particles.positions[boundary], initial)
    np.testing.assert_array_equal(particles.velocities[boundary], 0.0)
    assert not np.allclose(particles.positions[~boundary], fluidStart)


def testExternalAccelerationsAreNotModified(parameters):
    particles = _smallScene()
    accelerations = _gravity(particles)
    expected = accelerations.copy()

    with WcsphSolver(parameters) as solver:
        solver.step(particles, accelerations, 0.005)

    np.testing.assert_array_equal(accelerations, expected)


def testMismatchedAccelerationsRaise(parameters):
    particles = _smallScene()
    before = particles.copy()

    with WcsphSolver(parameters) as solver:
        with pytest.raises(ValueError):
            solver.step(particles, np.zeros((3, 2)), 0.005)
        assert solver.lastStep is None

    np.testing.assert_array_equal(particles.positions, before.positions)


def testDiagnostics(parameters):
    particles = _smallScene()
    with WcsphSolver(parameters) as solver:
        solver.step(particles, _gravity(particles), 0.005)
        diagnostics = solver.lastStep

    assert diagnostics.restDensity == pytest.approx(solver.fieldOps.computeRestDensity())
    assert diagnostics.iterations == 0
    assert diagnostics.densityErrors == []
    assert diagnostics.maxSpeed == pytest.approx(particles.maxSpeed())


def testThreadedStepMatchesInline():
    inline = _smallScene()
    threaded = inline.copy()
    parameters = SimulationParameters(maxParallelism=1)

    with WcsphSolver(parameters) as solver:
        for _ in range(3):
            solver.step(inline, _gravity(inline), 0.005)

    executor = ParallelExecutor(maxParallelism=4, minBlockSize=8)
    with WcsphSolver(parameters, executor=executor) as solver:
        for _ in range(3):
            solver.step(threaded, _gravity(threaded), 0.005)

    np.testing.assert_allclose(threaded.positions, inline.positions, rtol=0, atol=1e-12)
    np.testing.assert_allclose(threaded.velocities, inline.velocities, rtol=0, atol=1e-12)
