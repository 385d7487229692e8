# -- SPH Simulation Runner -- #

'''
Command-line entry point for stepping an SPH scene.

Builds the container scene, creates the requested solver, advances
it for a fixed number of steps with gravity as the external
acceleration, and reports progress and a final summary.

Usage:
    python -m sphSim.runner                              # Small scene, PCISPH
    python -m sphSim.runner --method wcsph --dt 0.01     # Explicit solver
    python -m sphSim.runner --preset standard --steps 500
    python -m sphSim.runner --config configs/container.json
'''

from __future__ import annotations

import argparse
import json
import time as timeModule
from dataclasses import replace

import numpy as np
from tqdm import tqdm

from sphSim import constants as const
from sphSim.sph.protocols import SimulationParameters, PcisphSettings, StepDiagnostics
from sphSim.sph.particles import ParticleSet
from sphSim.sph.solverFactory import createSolver
from sphSim.scenarios.container import ContainerSceneConfig, createContainerScene


#--------------------------------------------------------------------#
# -- CLI Argument Parser -- #
#--------------------------------------------------------------------#

def buildParser() -> argparse.ArgumentParser:
    '''Build the CLI argument parser.'''
    parser = argparse.ArgumentParser(
        description='sphSim -- 2D SPH fluid simulation',
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        '--config', type=str, default=None,
        help='Path to JSON configuration file (sph, pcisph, simulation, scene sections)',
    )
    parser.add_argument(
        '--method', type=str, default=None,
        choices=['wcsph', 'pcisph'],
        help='Solver variant (default: pcisph)',
    )
    parser.add_argument(
        '--preset', type=str, default='small',
        choices=['small', 'standard'],
        help='Scene preset when no config is given (default: small)',
    )
    parser.add_argument(
        '--steps', type=int, default=None,
        help=f'Number of steps (default: {const.nSteps})',
    )
    parser.add_argument(
        '--dt', type=float, default=None,
        help=f'Time step (default: {const.timeStep})',
    )
    parser.add_argument(
        '--gravity', type=float, default=None,
        help=f'Downward acceleration on fluid particles (default: {const.gravity})',
    )
    parser.add_argument(
        '--max-parallelism', type=int, default=None,
        help='Maximum worker threads per pass (default: CPU count)',
    )

    return parser


#--------------------------------------------------------------------#
# -- Runner Class -- #
#--------------------------------------------------------------------#

class SphRunner:
    '''
    Runs an SPH solver over a scene and collects per-step diagnostics.
    '''

    def __init__(self) -> None:
        self._history: list[StepDiagnostics] = []

    @property
    def history(self) -> list[StepDiagnostics]:
        '''Diagnostics of every completed step.'''
        return self._history

    def runFromConfig(
        self,
        configPath: str,
        overrides: dict | None = None,
        maxParallelism: int | None = None,
    ) -> dict:
        '''
        Run a simulation described by a JSON configuration file.

        Parameters:
        -----------
        configPath : str
            Path to the JSON configuration file
        overrides : dict | None
            Values for the 'simulation' section that take precedence
        maxParallelism : int | None
            Replaces the configured worker count when given

        Returns:
        --------
        dict : Simulation results summary
        '''
        with open(configPath, 'r') as f:
            data = json.load(f)

        simSection = dict(data.get('simulation', {}))
        simSection.update({k: v for k, v in (overrides or {}).items() if v is not None})

        parameters = SimulationParameters.fromDict(data)
        if maxParallelism is not None:
            parameters = replace(parameters, maxParallelism=maxParallelism)

        return self.run(
            parameters=parameters,
            sceneConfig=ContainerSceneConfig.fromDict(data),
            method=simSection.get('method', 'pcisph'),
            nSteps=simSection.get('steps', const.nSteps),
            dt=simSection.get('dt', const.timeStep),
            gravity=simSection.get('gravity', const.gravity),
            pcisphSettings=PcisphSettings.fromDict(data),
        )

    def run(
        self,
        parameters: SimulationParameters,
        sceneConfig: ContainerSceneConfig,
        method: str = 'pcisph',
        nSteps: int = const.nSteps,
        dt: float = const.timeStep,
        gravity: float = const.gravity,
        pcisphSettings: PcisphSettings | None = None,
    ) -> dict:
        '''
        Build the scene and advance it for nSteps fixed steps.

        Parameters:
        -----------
        parameters : SimulationParameters
            Shared simulation parameters
        sceneConfig : ContainerSceneConfig
            Scene geometry
        method : str
            Solver variant name
        nSteps : int
            Number of steps
        dt : float
            Time step
        gravity : float
            Downward external acceleration
        pcisphSettings : PcisphSettings | None
            PCISPH iteration control

        Returns:
        --------
        dict : Simulation results summary
        '''
        print()
        print('=' * 62)
        print(f'  SPHSIM -- {method.upper()} CONTAINER SIMULATION')
        print('=' * 62)
        print()

        #--------------------------------------------------------------------#
        # Scenario Setup
        #--------------------------------------------------------------------#
        print('-' * 62)
        print('  SCENARIO SETUP')
        print('-' * 62)

        particles = createContainerScene(sceneConfig)

        print(f'  Container Radius:  {sceneConfig.containerRadius:8.2f}')
        print(f'  Obstacles:         {len(sceneConfig.obstacles):8d}')
        print(f'  Particle Spacing:  {parameters.particleSpacing:8.3f}')
        print(f'  Smoothing Length:  {parameters.smoothingLength:8.3f}')
        print(f'  Fluid Particles:   {particles.nFluid:8d}')
        print(f'  Boundary Particles:{particles.nBoundary:8d}')
        print(f'  Total Particles:   {particles.nParticles:8d}')
        print()

        #--------------------------------------------------------------------#
        # Initialize Solver
        #--------------------------------------------------------------------#
        print('-' * 62)
        print('  INITIALIZING SOLVER')
        print('-' * 62)

        solver = createSolver(method, parameters, pcisphSettings=pcisphSettings)

        print(f'  Sound Speed:       {parameters.soundSpeed:8.2f}')
        print(f'  Stiffness (gamma): {parameters.stiffnessExponent:8.2f}')
        print(f'  Viscosity:         {parameters.viscosity:8.3f}')
        print(f'  Time Step:         {dt:8.4f}')
        if pcisphSettings is not None and method.lower() == 'pcisph':
            print(f'  Iterations:        {pcisphSettings.minIterations:3d} - {pcisphSettings.maxIterations:3d}')
            print(f'  Max Density Error: {pcisphSettings.maxDensityErrorFactor * 100:8.2f} %')
        print()

        #--------------------------------------------------------------------#
        # Simulation Loop
        #--------------------------------------------------------------------#
        print('-' * 62)
        print('  RUNNING SIMULATION')
        print('-' * 62)
        print()
        print(f'  {"Step":>8}  {"Time":>8}  {"MaxVel":>8}  {"MaxRho":>8}  {"Iters":>6}  {"DensErr":>10}')
        print('  ' + '-' * 58)

        printInterval = max(1, nSteps // 20)
        wallClockStart = timeModule.time()

        try:
            for stepIndex in tqdm(range(1, nSteps + 1), desc='  Stepping', unit='step', leave=False):
                externalAccelerations = self._gravityField(particles, gravity)
                solver.step(particles, externalAccelerations, dt)

                diagnostics = solver.lastStep
                self._history.append(diagnostics)

                if stepIndex % printInterval == 0 or stepIndex == nSteps:
                    tqdm.write(
                        f'  {stepIndex:8d}  {stepIndex * dt:8.3f}  {diagnostics.maxSpeed:8.3f}  '
                        f'{diagnostics.maxDensity:8.4f}  {diagnostics.iterations:6d}  '
                        f'{diagnostics.finalDensityError:10.3e}'
                    )
        finally:
            solver.close()

        wallClockSeconds = timeModule.time() - wallClockStart
        finalState = self._history[-1] if self._history else None

        print()
        print(f'  Simulation complete.')
        print(f'  Total steps:       {len(self._history):8d}')
        print(f'  Wall-clock time:   {wallClockSeconds:8.1f} s')
        print()

        #--------------------------------------------------------------------#
        # Summary
        #--------------------------------------------------------------------#
        kineticEnergy = particles.kineticEnergy(parameters.particleMass)

        print('=' * 62)
        print('  SIMULATION SUMMARY')
        print('=' * 62)
        print(f'  Final KE:          {kineticEnergy:10.4f}')
        if finalState is not None:
            print(f'  Rest Density:      {finalState.restDensity:10.4f}')
            print(f'  Max Density:       {finalState.maxDensity:10.4f}')
            print(f'  Max Velocity:      {finalState.maxSpeed:10.4f}')
        print('=' * 62)
        print()

        return {
            'finalState': finalState,
            'particles': particles,
            'kineticEnergy': kineticEnergy,
            'wallClockSeconds': wallClockSeconds,
            'nSteps': len(self._history),
        }

    @staticmethod
    def _gravityField(particles: ParticleSet, gravity: float) -> np.ndarray:
        '''Gravity along -y for every particle, shape (N, 2).'''
        accelerations = np.zeros((particles.nParticles, 2))
        accelerations[:, 1] = -gravity
        return accelerations


#--------------------------------------------------------------------#
# -- CLI Entry Point -- #
#--------------------------------------------------------------------#

def main(argv: list[str] | None = None) -> None:
    '''CLI entry point.'''
    parser = buildParser()
    args = parser.parse_args(argv)

    runner = SphRunner()

    if args.config:
        runner.runFromConfig(args.config, overrides={
            'method': args.method,
            'steps': args.steps,
            'dt': args.dt,
            'gravity': args.gravity,
        }, maxParallelism=args.max_parallelism)
        return

    presets = {
        'small': ContainerSceneConfig.small,
        'standard': ContainerSceneConfig.standard,
    }
    sceneConfig = presets[args.preset]()
    parameters = SimulationParameters(
        particleSpacing=sceneConfig.particleSpacing,
        smoothingLength=const.smoothingLengthRatio * sceneConfig.particleSpacing,
        viscosity=const.runnerViscosity,
        soundSpeed=const.runnerSoundSpeed,
        maxParallelism=args.max_parallelism,
    )

    runner.run(
        parameters=parameters,
        sceneConfig=sceneConfig,
        method=args.method or 'pcisph',
        nSteps=args.steps if args.steps is not None else const.nSteps,
        dt=args.dt if args.dt is not None else const.timeStep,
        gravity=args.gravity if args.gravity is not None else const.gravity,
        pcisphSettings=PcisphSettings(),
    )


if __name__ == '__main__':
    main()
