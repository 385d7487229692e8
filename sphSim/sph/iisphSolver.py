# -- Implicit Incompressible SPH (partial) -- #

'''
IISPH advection phase.

Implements the predictor half of Implicit Incompressible SPH: the
advected velocity from non-pressure forces, the diagonal
displacement coefficient d_ii and the advected density rho_adv. The
relaxed-Jacobi pressure solve and the final integration are not
implemented, so step() raises NotImplementedError and leaves the
particle set untouched.

    v_adv_i   = v_i + dt * (a_ext_i + a_visc_i)
    d_ii      = dt^2 * sum_j -m / rho_i^2 * grad_W(x_i - x_j)
    rho_adv_i = rho_i + dt * m * sum_j (v_adv_i - v_adv_j) . grad_W(x_i - x_j)

References:
-----------
Ihmsen et al. (2014) -- Implicit Incompressible SPH
'''

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from sphSim.sph.protocols import SimulationParameters, StepDiagnostics
from sphSim.sph.kernels import SphKernel
from sphSim.sph.particles import ParticleSet
from sphSim.sph.neighborSearch import NeighborLists, SpatialHashGrid
from sphSim.sph.fieldOps import FieldOps
from sphSim.sph.parallel import ParallelExecutor


@dataclass
class IisphAdvection:
    '''
    Per-particle fields of the IISPH advection phase.

    Parameters:
    -----------
    restDensity : float
        Lattice rest density
    densities : np.ndarray
        SPH densities, shape (N,)
    advectedVelocities : np.ndarray
        Velocities after non-pressure forces, shape (N, 2)
    dii : np.ndarray
        Diagonal displacement coefficients, shape (N, 2)
    advectedDensities : np.ndarray
        Densities predicted from the advected velocities, shape (N,)
    initialPressures : np.ndarray
        Warm-start pressures, half of the previous step's, shape (N,).
        All zero: no pressure solve runs yet to record pressures.
    '''

    restDensity: float
    densities: np.ndarray
    advectedVelocities: np.ndarray
    dii: np.ndarray
    advectedDensities: np.ndarray
    initialPressures: np.ndarray


class IisphSolver:
    '''
    Implicit Incompressible SPH solver (advection phase only).

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

        # Index-aligned with the particle set; particle identity is its slot.
        # Stays zero until a pressure solve writes it.
        self._previousPressures: np.ndarray | None = None

    def step(self, particles: ParticleSet, externalAccelerations: np.ndarray, dt: float) -> None:
        '''Not available: the IISPH pressure solve is not implemented.'''
        raise NotImplementedError(
            'IISPH pressure solve and integration are not implemented; '
            'use computeAdvection() for the advection phase or the WCSPH/PCISPH solvers'
        )

    def computeAdvection(
        self,
        particles: ParticleSet,
        externalAccelerations: np.ndarray,
        dt: float,
    ) -> IisphAdvection:
        '''
        Run the IISPH advection phase without moving any particle.

        Parameters:
        -----------
        particles : ParticleSet
            Current particle set (not modified)
        externalAccelerations : np.ndarray
            External acceleration per particle, shape (N, 2)
        dt : float
            Time step

        Returns:
        --------
        IisphAdvection : Advection-phase fields
        '''
        externalAccelerations = particles.checkAccelerations(externalAccelerations)

        n = particles.nParticles
        h = self._params.smoothingLength
        fluid = particles.isFluid
        isBoundary = particles.isBoundary
        ops = self._fieldOps
        run = self._executor.parallelFor

        positions = particles.positions
        velocities = particles.velocities

        densities = np.empty(n)
        advectedVelocities = np.zeros((n, 2))
        dii = np.zeros((n, 2))
        advectedDensities = np.empty(n)

        self._neighborGrid.build(positions)
        neighbors = self._neighborGrid.queryNeighbors(isBoundary)
        restDensity = ops.computeRestDensity()
        boundaryDensity = h * restDensity

        def densityPass(start: int, stop: int) -> None:
            block = ops.computeDensity(positions, neighbors, start, stop)
            block[isBoundary[start:stop]] = boundaryDensity
            densities[start:stop] = block

        run(n, densityPass)

        def advectPass(start: int, stop: int) -> None:
            viscosityAccel = ops.computeViscosityAcceleration(
                positions, velocities, neighbors, densities, start, stop
            )
            blockFluid = fluid[start:stop]
            advected = velocities[start:stop] + dt * (externalAccelerations[start:stop] + viscosityAccel)
            advectedVelocities[start:stop][blockFluid] = advected[blockFluid]
            dii[start:stop] = self._computeDii(positions, neighbors, densities, dt, start, stop)

        run(n, advectPass)

        def advectedDensityPass(start: int, stop: int) -> None:
            advectedDensities[start:stop] = self._computeAdvectedDensity(
                positions, neighbors, densities, advectedVelocities, dt, start, stop
            )

        run(n, advectedDensityPass)

        if self._previousPressures is None or len(self._previousPressures) != n:
            self._previousPressures = np.zeros(n)

        return IisphAdvection(
            restDensity=restDensity,
            densities=densities,
            advectedVelocities=advectedVelocities,
            dii=dii,
            advectedDensities=advectedDensities,
            initialPressures=0.5 * self._previousPressures,
        )

    def _computeDii(
        self,
        positions: np.ndarray,
        neighbors: NeighborLists,
        densities: np.ndarray,
        dt: float,
        start: int,
        stop: int,
    ) -> np.ndarray:
        '''d_ii = dt^2 * sum_j -m / rho_i^2 * grad_W(x_i - x_j), shape (stop - start, 2).'''
        h = self._params.smoothingLength
        m = self._params.particleMass
        result = np.zeros((stop - start, 2))

        iIdx, jIdx = neighbors.pairs(start, stop)
        if len(iIdx) == 0:
            return result

        xab = positions[iIdx] - positions[jIdx]
        gradW = self._fieldOps.kernel.gradientBatch(xab, np.linalg.norm(xab, axis=1), h)
        coeff = -m / (densities[iIdx] * densities[iIdx])
        np.add.at(result, iIdx - start, coeff[:, np.newaxis] * gradW)

        return dt * dt * result

    def _computeAdvectedDensity(
        self,
        positions: np.ndarray,
        neighbors: NeighborLists,
        densities: np.ndarray,
        advectedVelocities: np.ndarray,
        dt: float,
        start: int,
        stop: int,
    ) -> np.ndarray:
        '''rho_adv = rho_i + dt * m * sum_j v_adv_ij . grad_W(x_i - x_j), shape (stop - start,).'''
        h = self._params.smoothingLength
        m = self._params.particleMass
        divergence = np.zeros(stop - start)

        iIdx, jIdx = neighbors.pairs(start, stop)
        if len(iIdx) > 0:
            xab = positions[iIdx] - positions[jIdx]
            gradW = self._fieldOps.kernel.gradientBatch(xab, np.linalg.norm(xab, axis=1), h)
            vab = advectedVelocities[iIdx] - advectedVelocities[jIdx]
            np.add.at(divergence, iIdx - start, np.sum(vab * gradW, axis=1))

        return densities[start:stop] + dt * m * divergence

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
