# -- Divergence-Free SPH (partial) -- #

'''
DFSPH density precursor.

Only the quantities DFSPH starts from are computed: the SPH density
of every particle (boundary particles get the proxy h * rho_0) and
the density time derivative from the continuity equation,

    Drho_i/Dt = m * sum_j (v_i - v_j) . grad_W(x_i - x_j)

The divergence-free and constant-density solvers are not
implemented, so step() raises NotImplementedError.

References:
-----------
Bender & Koschier (2015) -- Divergence-Free Smoothed Particle
    Hydrodynamics
'''

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from sphSim.sph.protocols import SimulationParameters, StepDiagnostics
from sphSim.sph.kernels import SphKernel
from sphSim.sph.particles import ParticleSet
from sphSim.sph.neighborSearch import SpatialHashGrid
from sphSim.sph.fieldOps import FieldOps
from sphSim.sph.parallel import ParallelExecutor


@dataclass
class DfsphPrecursor:
    '''Densities and density derivatives at the start of a DFSPH step.'''

    restDensity: float
    densities: np.ndarray
    densityDerivatives: np.ndarray


class DfsphSolver:
    '''
    Divergence-Free SPH solver (density precursor only).

    Parameters:
    -----------
    parameters : SimulationParameters
        Shared simulation parameters
    kernel : SphKernel | None
        Smoothing kernel (defaults to CubicSplineKernel)
    executor : ParallelExecutor | None
        Pass executor (defaults to one sized by parameters.maxParallelism)
    '''

    def __init__(
        self,
        parameters: SimulationParameters,
        kernel: SphKernel | None = None,
        executor: ParallelExecutor | None = None,
    ) -> None:
        self._params = parameters
        self._fieldOps = FieldOps(parameters, kernel)
        self._executor = executor or ParallelExecutor(parameters.maxParallelism)
        self._neighborGrid = SpatialHashGrid(parameters.smoothingLength, self._executor)

    def step(self, particles: ParticleSet, externalAccelerations: np.ndarray, dt: float) -> None:
        '''Not available: the DFSPH pressure solvers are not implemented.'''
        raise NotImplementedError(
            'DFSPH divergence-free and density solvers are not implemented; '
            'use computeDensityPrecursor() or the WCSPH/PCISPH solvers'
        )

    def computeDensityPrecursor(self, particles: ParticleSet) -> DfsphPrecursor:
        '''
        Densities and density derivatives of the current configuration.

        Parameters:
        -----------
        particles : ParticleSet
            Current particle set (not modified)

        Returns:
        --------
        DfsphPrecursor : Density fields
        '''
        n = particles.nParticles
        h = self._params.smoothingLength
        m = self._params.particleMass
        isBoundary = particles.isBoundary
        positions = particles.positions
        velocities = particles.velocities
        ops = self._fieldOps

        densities = np.empty(n)
        densityDerivatives = np.zeros(n)

        self._neighborGrid.build(positions)
        neighbors = self._neighborGrid.queryNeighbors(isBoundary)
        restDensity = ops.computeRestDensity()
        boundaryDensity = h * restDensity

        def densityPass(start: int, stop: int) -> None:
            block = ops.computeDensity(positions, neighbors, start, stop)
            block[isBoundary[start:stop]] = boundaryDensity
            densities[start:stop] = block

            iIdx, jIdx = neighbors.pairs(start, stop)
            if len(iIdx) == 0:
                return
            xab = positions[iIdx] - positions[jIdx]
            gradW = ops.kernel.gradientBatch(xab, np.linalg.norm(xab, axis=1), h)
            vab = velocities[iIdx] - velocities[jIdx]
            derivative = np.zeros(stop - start)
            np.add.at(derivative, iIdx - start, m * np.sum(vab * gradW, axis=1))
            densityDerivatives[start:stop] = derivative

        self._executor.parallelFor(n, densityPass)

        return DfsphPrecursor(
            restDensity=restDensity,
            densities=densities,
            densityDerivatives=densityDerivatives,
        )

    @property
    def parameters(self) -> SimulationParameters:
        '''Parameters the solver was built with.'''
        return self._params

    @property
    def lastStep(self) -> StepDiagnostics | None:
        '''Always None: no step has ever completed.'''
        return None

    def close(self) -> None:
        '''Release worker threads.'''
        self._executor.close()
