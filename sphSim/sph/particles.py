# -- SPH Particle Set -- #

'''
Particle records and the array-backed particle set the solvers mutate.

Scene setup builds Particle records one at a time; the solvers work
on a ParticleSet that stores positions, velocities and boundary
flags as contiguous NumPy arrays. Fluid and boundary particles share
the same arrays, distinguished by the isBoundary mask.
'''

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator

import numpy as np


@dataclass
class Particle:
    '''
    A single particle as produced by scene setup.

    Parameters:
    -----------
    position : np.ndarray
        Position, shape (2,)
    velocity : np.ndarray
        Velocity, shape (2,)
    isBoundary : bool
        True for fixed wall particles
    '''

    position: np.ndarray
    velocity: np.ndarray
    isBoundary: bool = False

    @classmethod
    def at(cls, x: float, y: float, vx: float = 0.0, vy: float = 0.0, isBoundary: bool = False) -> Particle:
        '''Create a particle from scalar coordinates.'''
        return cls(
            position=np.array([x, y], dtype=np.float64),
            velocity=np.array([vx, vy], dtype=np.float64),
            isBoundary=isBoundary,
        )


@dataclass
class ParticleSet:
    '''
    Fixed-size set of fluid and boundary particles.

    Boundary particles keep zero velocity and never move; the solvers
    only integrate the fluid subset.

    Parameters:
    -----------
    positions : np.ndarray
        Particle positions, shape (N, 2)
    velocities : np.ndarray
        Particle velocities, shape (N, 2)
    isBoundary : np.ndarray
        Boolean mask, True for boundary particles, shape (N,)
    '''

    positions: np.ndarray
    velocities: np.ndarray
    isBoundary: np.ndarray

    def __post_init__(self) -> None:
        self.positions = np.asarray(self.positions, dtype=np.float64)
        self.velocities = np.asarray(self.velocities, dtype=np.float64)
        self.isBoundary = np.asarray(self.isBoundary, dtype=bool)

        n = self.positions.shape[0]
        if self.positions.shape != (n, 2) or self.velocities.shape != (n, 2):
            raise ValueError(
                f'positions and velocities must both have shape (N, 2), got '
                f'{self.positions.shape} and {self.velocities.shape}'
            )
        if self.isBoundary.shape != (n,):
            raise ValueError(f'isBoundary must have shape ({n},), got {self.isBoundary.shape}')

        # Boundary particles are immovable
        self.velocities[self.isBoundary] = 0.0

    def __len__(self) -> int:
        return self.positions.shape[0]

    def __iter__(self) -> Iterator[Particle]:
        for i in range(len(self)):
            yield self.particle(i)

    @property
    def nParticles(self) -> int:
        '''Total number of particles (fluid + boundary).'''
        return self.positions.shape[0]

    @property
    def nBoundary(self) -> int:
        '''Number of boundary particles.'''
        return int(np.sum(self.isBoundary))

    @property
    def nFluid(self) -> int:
        '''Number of fluid particles.'''
        return self.nParticles - self.nBoundary

    @property
    def isFluid(self) -> np.ndarray:
        '''Boolean mask for fluid particles.'''
        return ~self.isBoundary

    def particle(self, i: int) -> Particle:
        '''Copy of particle i as a Particle record.'''
        return Particle(
            position=self.positions[i].copy(),
            velocity=self.velocities[i].copy(),
            isBoundary=bool(self.isBoundary[i]),
        )

    def copy(self) -> ParticleSet:
        '''Deep copy of the set.'''
        return ParticleSet(
            positions=self.positions.copy(),
            velocities=self.velocities.copy(),
            isBoundary=self.isBoundary.copy(),
        )

    def checkAccelerations(self, accelerations: np.ndarray) -> np.ndarray:
        '''
        Validate a per-particle acceleration array against this set.

        Parameters:
        -----------
        accelerations : np.ndarray
            One 2D acceleration per particle, shape (N, 2)

        Returns:
        --------
        np.ndarray : The same array when it already is float64,
            otherwise a float64 copy

        Raises:
        -------
        ValueError : If the shape does not match the particle count
        '''
        accelerations = np.asarray(accelerations, dtype=np.float64)
        if accelerations.shape != (self.nParticles, 2):
            raise ValueError(
                f'expected one acceleration per particle, shape ({self.nParticles}, 2), '
                f'got {accelerations.shape}'
            )
        return accelerations

    def speeds(self) -> np.ndarray:
        '''Velocity magnitudes of all particles, shape (N,).'''
        return np.linalg.norm(self.velocities, axis=1)

    def maxSpeed(self) -> float:
        '''
        Maximum velocity magnitude among fluid particles.

        Returns:
        --------
        float : Maximum speed (0 if there is no fluid)
        '''
        fluidVels = self.velocities[self.isFluid]
        if len(fluidVels) == 0:
            return 0.0
        return float(np.max(np.linalg.norm(fluidVels, axis=1)))

    def kineticEnergy(self, particleMass: float) -> float:
        '''
        Total kinetic energy of the fluid particles.

        KE = (1/2) * m * sum_i |v_i|^2
        '''
        fluidVels = self.velocities[self.isFluid]
        return 0.5 * particleMass * float(np.sum(fluidVels * fluidVels))

    @classmethod
    def fromParticles(cls, particles: Iterable[Particle]) -> ParticleSet:
        '''
        Pack Particle records into a ParticleSet.

        Parameters:
        -----------
        particles : Iterable[Particle]
            Records in the order they should be indexed

        Returns:
        --------
        ParticleSet : Array-backed set

        Raises:
        -------
        ValueError : If no particles are given
        '''
        records = list(particles)
        if not records:
            raise ValueError('A particle set needs at least one particle')

        return cls(
            positions=np.array([p.position for p in records], dtype=np.float64).reshape(-1, 2),
            velocities=np.array([p.velocity for p in records], dtype=np.float64).reshape(-1, 2),
            isBoundary=np.array([p.isBoundary for p in records], dtype=bool),
        )

    @classmethod
    def concatenate(cls, parts: Iterable[ParticleSet]) -> ParticleSet:
        '''Join several sets into one, preserving order.'''
        parts = list(parts)
        return cls(
            positions=np.concatenate([p.positions for p in parts]),
            velocities=np.concatenate([p.velocities for p in parts]),
            isBoundary=np.concatenate([p.isBoundary for p in parts]),
        )
