# -- Particle Layout Generators -- #

'''
Initial particle layouts used to assemble scenes.

Fluid comes as filled discs on a square lattice; walls come as
boundary particles along straight lines or circles, spaced roughly
one particle spacing apart. Every generator returns a ParticleSet
that can be joined with ParticleSet.concatenate.
'''

from __future__ import annotations

import math

import numpy as np

from sphSim.sph.particles import ParticleSet


def _boundarySet(positions: np.ndarray) -> ParticleSet:
    '''Wrap positions as a set of motionless boundary particles.'''
    n = len(positions)
    return ParticleSet(
        positions=positions.reshape(n, 2),
        velocities=np.zeros((n, 2)),
        isBoundary=np.ones(n, dtype=bool),
    )


def createCircle(
    x: float,
    y: float,
    vx: float,
    vy: float,
    radius: float,
    spacing: float,
) -> ParticleSet:
    '''
    Filled disc of fluid particles on a square lattice.

    Parameters:
    -----------
    x, y : float
        Disc center
    vx, vy : float
        Initial velocity shared by all particles
    radius : float
        Disc radius
    spacing : float
        Lattice spacing

    Returns:
    --------
    ParticleSet : Fluid particles with |offset| <= radius
    '''
    nAxis = int(math.floor(2.0 * radius / spacing + 1e-9)) + 1
    axis = -radius + spacing * np.arange(nAxis)
    xx, yy = np.meshgrid(axis, axis, indexing='ij')
    offsets = np.column_stack([xx.ravel(), yy.ravel()])
    offsets = offsets[np.hypot(offsets[:, 0], offsets[:, 1]) <= radius]

    n = len(offsets)
    return ParticleSet(
        positions=offsets + np.array([x, y]),
        velocities=np.tile([vx, vy], (n, 1)).astype(np.float64),
        isBoundary=np.zeros(n, dtype=bool),
    )


def createHollowCircle(x: float, y: float, radius: float, spacing: float) -> ParticleSet:
    '''
    Ring of boundary particles, about one spacing apart along the arc.

    Parameters:
    -----------
    x, y : float
        Ring center
    radius : float
        Ring radius
    spacing : float
        Arc length between neighboring particles

    Returns:
    --------
    ParticleSet : Boundary particles
    '''
    angleStep = spacing / radius
    angles = np.arange(0.0, 2.0 * math.pi, angleStep)
    positions = np.column_stack([x + radius * np.cos(angles), y + radius * np.sin(angles)])
    return _boundarySet(positions)


def createHorizontalBoundaryLine(startX: float, y: float, spacing: float, length: int) -> ParticleSet:
    '''Row of `length` boundary particles starting at (startX, y).'''
    xs = startX + spacing * np.arange(length)
    return _boundarySet(np.column_stack([xs, np.full(length, float(y))]))


def createVerticalBoundaryLine(x: float, startY: float, spacing: float, height: int) -> ParticleSet:
    '''Column of `height` boundary particles starting at (x, startY).'''
    ys = startY + spacing * np.arange(height)
    return _boundarySet(np.column_stack([np.full(height, float(x)), ys]))
