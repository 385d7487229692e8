# -- Predictive-Corrective Incompressible SPH Solver -- #

'''
PCISPH solver: iterative pressure correction toward the rest density.

Instead of deriving pressure from a stiff equation of state, PCISPH
predicts where the particles would go under the current pressure,
measures how far the predicted density overshoots the rest density,
and raises the pressure by a precomputed factor times that error.
Repeating this keeps the fluid close to incompressible without the
tiny time steps WCSPH needs.

Algorithm per time step:
    1. Half-step drift: x += dt/2 * v
    2. Neighbor lists, rest density, scaling factor delta
    3. Initial densities (boundary: proxy h/sqrt(2) * rho_0 and its
       EOS pressure); viscosity is folded into the external
       accelerations for this step
    4. Repeat until converged or the iteration cap is hit:
         predict v*, x*  ->  rho*, error = max(0, rho* - rho_0)
         p += delta * error  ->  pressure acceleration
    5. Fluid particles: v += dt * (a_p + a_ext), x += dt/2 * v

The pressure only ever increases inside the loop. Convergence is not
guaranteed; maxIterations bounds the cost and a step that does not
reach the threshold is accepted as is.

References:
-----------
Solenthaler & Pajarola (2009) -- Predictive-Corrective
    Incompressible SPH
'''

from __future__ import annotations

import numpy as np

from sphSim import constants as const
from sphSim.sph.protocols import SimulationParameters, PcisphSettings, StepDiagnostics
from sphSim.sph.kernels import SphKernel
from sphSim.sph.particles import ParticleSet
from sphSim.sph.neighborSearch import SpatialHashGrid
from sphSim.sph.fieldOps import FieldOps
from sphSim.sph.parallel import ParallelExecutor, MaxAccumulator


class PcisphSolver:
    '''
    Predictive-Corrective Incompressible SPH solver.

    Parameters:
    -----------
    parameters : SimulationParameters
        Shared simulation parameters
    settings : PcisphSettings | None
        Iteration control (defaults to PcisphSettings())
    kernel : SphKernel | None
        Smoothing kernel (defaults to CubicSplineKernel)
    executor : ParallelExecutor | None
        Pass executor (defaults to one sized by parameters.maxParallelism)
    '''

    def __init__(
        self,
        parameters: SimulationParameters,
        settings: PcisphSettings | None = None,
        kernel: SphKernel | None = None,
        executor: ParallelExecutor | None = None,
    ) -> None:
        self._params = parameters
        self._settings = settings or PcisphSettings()
        self._fieldOps = FieldOps(parameters, kernel)
        self._executor = executor or ParallelExecutor(parameters.maxParallelism)
        self._neighborGrid = SpatialHashGrid(parameters.smoothingLength, self._executor)
        self._lastStep: StepDiagnostics | None = None

    ######################################################################
    # -- Main Time Step -- #
    ######################################################################

    def step(self, particles: ParticleSet, externalAccelerations: np.ndarray, dt: float) -> None:
        '''
        Advance the particle set by one PCISPH step, in place.

        Parameters:
        -----------
        particles : ParticleSet
            Fluid and boundary particles, mutated in place
        externalAccelerations : np.ndarray
            External acceleration per particle, shape (N, 2). The
            viscosity acceleration of this step is added to it in place.
        dt : float
            Time step
        '''
        externalAccelerations = particles.checkAccelerations(externalAccelerations)

        n = particles.nParticles
        h = self._params.smoothingLength
        fluid = particles.isFluid
        isBoundary = particles.isBoundary
        ops = self._fieldOps
        run = self._executor.parallelFor

        # 1. Half-step drift
        particles.positions[fluid] += 0.5 * dt * particles.velocities[fluid]

        predictedPositions = particles.positions.copy()
        predictedVelocities = particles.velocities.copy()
        predictedDensities = np.zeros(n)
        pressures = np.zeros(n)
        pressureAccels = np.zeros((n, 2))

        # 2. Neighbor lists, rest density, scaling factor
        self._neighborGrid.build(particles.positions)
        neighbors = self._neighborGrid.queryNeighbors(isBoundary)

        restDensity = ops.computeRestDensity()
        scalingFactor = ops.computeScalingFactor(dt, restDensity)

        # 3. Initial densities and viscosity as an external acceleration
        boundaryDensity = const.pcisphBoundaryDensityFactor * h * restDensity
        boundaryPressure = ops.computePressure(boundaryDensity, restDensity)

        def initialDensityPass(start: int, stop: int) -> None:
            block = ops.computeDensity(predictedPositions, neighbors, start, stop)
            blockBoundary = isBoundary[start:stop]
            block[blockBoundary] = boundaryDensity
            predictedDensities[start:stop] = block
            pressures[start:stop][blockBoundary] = boundaryPressure

        run(n, initialDensityPass)

        def viscosityPass(start: int, stop: int) -> None:
            viscosityAccel = ops.computeViscosityAcceleration(
                predictedPositions, predictedVelocities, neighbors, predictedDensities, start, stop
            )
            blockFluid = fluid[start:stop]
            externalAccelerations[start:stop][blockFluid] += viscosityAccel[blockFluid]

        run(n, viscosityPass)

        # 4. Predictive-corrective pressure iteration
        maxError = MaxAccumulator()

        def predictPass(start: int, stop: int) -> None:
            blockFluid = fluid[start:stop]
            idx = np.arange(start, stop)[blockFluid]
            predictedVelocities[idx] = particles.velocities[idx] + dt * (
                externalAccelerations[idx] + pressureAccels[idx]
            )
            predictedPositions[idx] = particles.positions[idx] + 0.5 * dt * predictedVelocities[idx]

        def correctPass(start: int, stop: int) -> None:
            blockFluid = fluid[start:stop]
            idx = np.arange(start, stop)[blockFluid]
            if len(idx) == 0:
                return

            block = ops.computeDensity(predictedPositions, neighbors, start, stop)[blockFluid]
            predictedDensities[idx] = block

            errors = np.maximum(block - restDensity, 0.0)
            maxError.update(float(np.max(errors)))
            pressures[idx] += scalingFactor * errors

        def pressureAccelPass(start: int, stop: int) -> None:
            accel = ops.computePressureAcceleration(
                predictedPositions, neighbors, predictedDensities, pressures, start, stop
            )
            blockFluid = fluid[start:stop]
            pressureAccels[start:stop][blockFluid] = accel[blockFluid]

        settings = self._settings
        errorThreshold = settings.maxDensityErrorFactor * restDensity
        densityErrors: list[float] = []
        iteration = 0

        while (iteration < settings.minIterations or maxError.value > errorThreshold) \
                and iteration < settings.maxIterations:
            # Each pass reports its own maximum, not a running one
            maxError.reset()

            run(n, predictPass)
            run(n, correctPass)
            run(n, pressureAccelPass)

            densityErrors.append(maxError.value)
            iteration += 1

        # 5. Final integration (fluid only)
        def integratePass(start: int, stop: int) -> None:
            blockFluid = fluid[start:stop]
            idx = np.arange(start, stop)[blockFluid]
            particles.velocities[idx] += dt * (pressureAccels[idx] + externalAccelerations[idx])
            particles.positions[idx] += 0.5 * dt * particles.velocities[idx]

        run(n, integratePass)

        fluidDensities = predictedDensities[fluid]
        self._lastStep = StepDiagnostics(
            restDensity=restDensity,
            maxDensity=float(np.max(fluidDensities)) if len(fluidDensities) else 0.0,
            maxSpeed=particles.maxSpeed(),
            iterations=iteration,
            densityErrors=densityErrors,
        )

    ######################################################################
    # -- Properties / Lifecycle -- #
    ######################################################################

    @property
    def parameters(self) -> SimulationParameters:
        '''Parameters the solver was built with.'''
        return self._params

    @property
    def settings(self) -> PcisphSettings:
        '''Iteration control settings.'''
        return self._settings

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

    def __enter__(self) -> PcisphSolver:
        return self

    def __exit__(self, *exc) -> None:
        self.close()
