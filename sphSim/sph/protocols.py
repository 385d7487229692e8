# -- SPH Simulation Protocols -- #

'''
Configuration dataclasses, step diagnostics and the solver protocol.

SimulationParameters is shared by every solver variant and is
frozen: it is set once before stepping starts and only read while
a step is in progress. PcisphSettings carries the extra knobs of the
predictive-corrective scheme.
'''

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Protocol, TYPE_CHECKING

import numpy as np

from sphSim import constants as const

if TYPE_CHECKING:
    from sphSim.sph.particles import ParticleSet


######################################################################
# -- Simulation Parameters -- #
######################################################################

@dataclass(frozen=True)
class SimulationParameters:
    '''
    Parameters shared by all SPH solver variants.

    Parameters:
    -----------
    particleSpacing : float
        Rest spacing of the particle lattice
    smoothingLength : float
        Kernel support radius h (conventionally 2x the spacing)
    soundSpeed : float
        Reference sound speed c of the Tait equation of state
    stiffnessExponent : float
        Tait exponent gamma
    viscosity : float
        Artificial viscosity coefficient
    particleMass : float
        Mass of every particle
    maxParallelism : int | None
        Upper bound on worker threads per pass (None = executor default)

    Raises:
    -------
    ValueError : If the smoothing length, mass, spacing or stiffness
        exponent is not positive, or maxParallelism is below 1
    '''

    particleSpacing: float = const.particleSpacing
    smoothingLength: float = const.smoothingLengthRatio * const.particleSpacing
    soundSpeed: float = const.soundSpeed
    stiffnessExponent: float = const.stiffnessExponent
    viscosity: float = const.viscosity
    particleMass: float = const.particleMass
    maxParallelism: int | None = None

    def __post_init__(self) -> None:
        if self.smoothingLength <= 0.0:
            raise ValueError(f'smoothingLength must be positive, got {self.smoothingLength}')
        if self.particleMass <= 0.0:
            raise ValueError(f'particleMass must be positive, got {self.particleMass}')
        if self.particleSpacing <= 0.0:
            raise ValueError(f'particleSpacing must be positive, got {self.particleSpacing}')
        if self.stiffnessExponent <= 0.0:
            raise ValueError(f'stiffnessExponent must be positive, got {self.stiffnessExponent}')
        if self.maxParallelism is not None and self.maxParallelism < 1:
            raise ValueError(f'maxParallelism must be at least 1, got {self.maxParallelism}')

    @property
    def halfSmoothingLength(self) -> float:
        '''Kernel scale h/2 used to form q = r / (h/2).'''
        return 0.5 * self.smoothingLength

    @property
    def eosStiffness(self) -> float:
        '''Tait prefactor divided by rest density: c^2 / gamma.'''
        return self.soundSpeed * self.soundSpeed / self.stiffnessExponent

    @classmethod
    def fromDict(cls, data: dict) -> SimulationParameters:
        '''
        Build parameters from the 'sph' section of a parsed config.

        Missing keys fall back to the defaults in sphSim.constants. When
        'smoothingLength' is absent it is derived from the spacing and
        'smoothingLengthRatio'.

        Parameters:
        -----------
        data : dict
            Parsed configuration (the whole document)

        Returns:
        --------
        SimulationParameters : Loaded parameters
        '''
        sphSection = data.get('sph', {})
        spacing = sphSection.get('particleSpacing', const.particleSpacing)
        ratio = sphSection.get('smoothingLengthRatio', const.smoothingLengthRatio)

        return cls(
            particleSpacing=spacing,
            smoothingLength=sphSection.get('smoothingLength', ratio * spacing),
            soundSpeed=sphSection.get('soundSpeed', const.soundSpeed),
            stiffnessExponent=sphSection.get('stiffnessExponent', const.stiffnessExponent),
            viscosity=sphSection.get('viscosity', const.viscosity),
            particleMass=sphSection.get('particleMass', const.particleMass),
            maxParallelism=sphSection.get('maxParallelism', None),
        )

    @classmethod
    def fromJson(cls, configPath: str) -> SimulationParameters:
        '''Load parameters from the 'sph' section of a JSON file.'''
        with open(configPath, 'r') as f:
            data = json.load(f)
        return cls.fromDict(data)


######################################################################
# -- PCISPH Settings -- #
######################################################################

@dataclass(frozen=True)
class PcisphSettings:
    '''
    Iteration control for the predictive-corrective solver.

    Parameters:
    -----------
    minIterations : int
        Correction passes always performed, even if the error looks fine
    maxIterations : int
        Hard cap on correction passes per step
    maxDensityErrorFactor : float
        Convergence threshold as a fraction of the rest density
    '''

    minIterations: int = const.minIterations
    maxIterations: int = const.maxIterations
    maxDensityErrorFactor: float = const.maxDensityErrorFactor

    def __post_init__(self) -> None:
        if self.minIterations < 0:
            raise ValueError(f'minIterations must be non-negative, got {self.minIterations}')
        if self.maxIterations < 1:
            raise ValueError(f'maxIterations must be at least 1, got {self.maxIterations}')
        if self.maxDensityErrorFactor < 0.0:
            raise ValueError(
                f'maxDensityErrorFactor must be non-negative, got {self.maxDensityErrorFactor}'
            )

    @classmethod
    def fromDict(cls, data: dict) -> PcisphSettings:
        '''Build settings from the 'pcisph' section of a parsed config.'''
        section = data.get('pcisph', {})
        return cls(
            minIterations=section.get('minIterations', const.minIterations),
            maxIterations=section.get('maxIterations', const.maxIterations),
            maxDensityErrorFactor=section.get('maxDensityErrorFactor', const.maxDensityErrorFactor),
        )

    @classmethod
    def fromJson(cls, configPath: str) -> PcisphSettings:
        '''Load settings from the 'pcisph' section of a JSON file.'''
        with open(configPath, 'r') as f:
            data = json.load(f)
        return cls.fromDict(data)


######################################################################
# -- Step Diagnostics -- #
######################################################################

@dataclass
class StepDiagnostics:
    '''
    Scalar summary of the most recent solver step.

    Parameters:
    -----------
    restDensity : float
        Lattice rest density used as the EOS reference
    maxDensity : float
        Largest fluid density seen during the step
    maxSpeed : float
        Largest fluid speed after the step
    iterations : int
        Correction passes performed (0 for explicit schemes)
    densityErrors : list[float]
        Maximum density error of every correction pass
    '''

    restDensity: float
    maxDensity: float
    maxSpeed: float
    iterations: int = 0
    densityErrors: list[float] = field(default_factory=list)

    @property
    def finalDensityError(self) -> float:
        '''Density error after the last correction pass (0 if none ran).'''
        return self.densityErrors[-1] if self.densityErrors else 0.0


######################################################################
# -- Solver Protocol -- #
######################################################################

class SphSolver(Protocol):
    '''Protocol shared by the SPH solver variants (WCSPH, PCISPH, ...).'''

    def step(
        self,
        particles: ParticleSet,
        externalAccelerations: np.ndarray,
        dt: float,
    ) -> None:
        '''Advance the particle set by one time step, in place.'''
        ...

    @property
    def parameters(self) -> SimulationParameters:
        '''Parameters the solver was built with.'''
        ...

    @property
    def lastStep(self) -> StepDiagnostics | None:
        '''Diagnostics of the most recent step (None before the first).'''
        ...

    def close(self) -> None:
        '''Release worker threads.'''
        ...
