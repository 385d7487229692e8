# -- Weakly Compressible SPH Solver -- #

'''
WCSPH solver: explicit pressure from the Tait equation of state.

Pressure follows directly from density, so no linear system or
iteration is needed. The price is a stiff equation of state: the
time step must stay small relative to h / c or the explicit
integrator diverges. There is no adaptive time stepping.

Algorithm per time step:
    1. Build neighbor lists from the current positions
    2. Half-step drift: x += dt/2 * v
    3. Rest density; density and pressure of every particle
       (boundary particles get the proxy density h * rho_0)
    4. Fluid particles: pressure + viscosity acceleration,
       v += dt * (a_p + a_v + a_ext), then x += dt/2 * v

Densities and forces are evaluated at the positions and velocities
captured at the start of the step.

References:
-----------
Monaghan (1994) -- Simulating free surface flows with SPH
Becker & Teschner (2007) -- Weakly compressible SPH for free
    surface flows
'''

from __future__ import annotations

import numpy as np

from sphSim import constants as const
from sphSim.sph.protocols import SimulationParameters, StepDiagnostics
from sphSim.sph.kernels import SphKernel
from sphSim.sph.particles import ParticleSet
from sphSim.sph.neighborSearch import SpatialHashGrid
from sphSim.sph.fieldOps import FieldOps
from sphSim.sph.parallel import ParallelExecutor


class WcsphSolver:
    '''
    Weakly Compressible SPH solver.

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
        self._lastStep: StepDiagnostics | None = None

    ######################################################################
    # -- Main Time Step -- #
    ######################################################################

    def step(self, particles: ParticleSet, externalAccelerations: np.ndarray, dt: float) -> None:
        '''
        Advance the particle set by one WCSPH step, in place.

        Parameters:
        -----------
        particles : ParticleSet
            Fluid and boundary particles, mutated in place
        externalAccelerations : np.ndarray
            External acceleration per particle, shape (N, 2); not modified
        dt : float
            Time step
        '''
        externalAccelerations = particles.checkAccelerations(externalAccelerations)

        n = particles.nParticles
        h = self._params.smoothingLength
        fluid = particles.isFluid
        isBoundary = particles.isBoundary
        ops = self._fieldOps

        positions = particles.positions.copy()
        velocities = particles.velocities.copy()
        densities = np.empty(n)
        pressures = np.empty(n)

        # 1. Neighbor lists
        self._neighborGrid.build(positions)
        neighbors = self._neighborGrid.queryNeighbors(isBoundary)

        # 2. Half-step drift
        particles.positions[fluid] += 0.5 * dt * particles.velocities[fluid]

        # 3. Density and pressure
        restDensity = ops.computeRestDensity()
        boundaryDensity = const.wcsphBoundaryDensityFactor * h * restDensity

        def densityPass(start: int, stop: int) -> None:
            block = ops.computeDensity(positions, neighbors, start, stop)
            block[isBoundary[start:stop]] = boundaryDensity
            densities[start:stop] = block
            pressures[start:stop] = ops.computePressure(block, restDensity)

        self._executor.parallelFor(n, densityPass)

        # 4. Accelerations and integration (fluid only)
        def integratePass(start: int, stop: int) -> None:
            pressureAccel = ops.computePressureAcceleration(positions, neighbors, densities, pressures, start, stop)
            viscosityAccel = ops.computeViscosityAcceleration(positions, velocities, neighbors, densities, start, stop)

            blockFluid = fluid[start:stop]
            idx = np.arange(start, stop)[blockFluid]
            total = pressureAccel + viscosityAccel + externalAccelerations[start:stop]

            particles.velocities[idx] += dt * total[blockFluid]
            particles.positions[idx] += 0.5 * dt * particles.velocities[idx]

        self._executor.parallelFor(n, integratePass)

        fluidDensities = densities[fluid]
        self._lastStep = StepDiagnostics(
            restDensity=restDensity,
            maxDensity=float(np.max(fluidDensities)) if len(fluidDensities) else 0.0,
            maxSpeed=particles.maxSpeed(),
        )

    ######################################################################
    # -- Properties / Lifecycle -- #
    ######################################################################

    @property
    def parameters(self) -> SimulationParameters:
        '''Parameters the solver was built with.'''
        return self._params

    @property
    def fieldOps(self) -> FieldOps:
        '''Field operations used by the solver.'''
        return self._fieldOps

    @property
    def lastStep(self) -> StepDiagnostics | None:
        '''Diagnostics of the most recent step.'''
        return self._lastStep

    def close(self) -> None:
        '''Release worker threads.'''
        self._executor.close()

    def __enter__(self) -> WcsphSolver:
        return self

    def __exit__(self, *exc) -> None:
        self.close()
