# -- SPH Field Operations -- #

'''
Density, equation of state, and pairwise accelerations.

Every per-particle operation is evaluated for a contiguous block of
owner indices [start, stop) so that a solver can hand it straight to
a parallel pass. Within a block the neighbor pairs are processed as
flat NumPy arrays and scatter-added back to their owners, and the
value for each owner equals the per-particle SPH sum:

    density:       rho_i = m W(0) + sum_j m W(x_i - x_j)
    pressure:      p_i = max(0, rho_0 c^2/gamma ((rho_i/rho_0)^gamma - 1))
    pressure acc:  a_i = -m sum_j m (p_i/rho_i^2 + p_j/rho_j^2) grad_W(x_i - x_j)
    viscosity acc: a_i = -sum_j m Pi_ij grad_W(x_i - x_j)   (approaching pairs)

References:
-----------
Monaghan (1992) -- Smoothed Particle Hydrodynamics
Monaghan (1994) -- Simulating free surface flows with SPH
Solenthaler & Pajarola (2009) -- Predictive-Corrective
    Incompressible SPH
'''

from __future__ import annotations

import math

import numpy as np

from sphSim import constants as const
from sphSim.sph.protocols import SimulationParameters
from sphSim.sph.kernels import SphKernel, CubicSplineKernel
from sphSim.sph.neighborSearch import NeighborLists


class FieldOps:
    '''
    SPH field evaluation shared by all solver variants.

    Parameters:
    -----------
    parameters : SimulationParameters
        Spacing, smoothing length, EOS and viscosity constants, mass
    kernel : SphKernel | None
        Smoothing kernel (defaults to CubicSplineKernel)
    '''

    def __init__(self, parameters: SimulationParameters, kernel: SphKernel | None = None) -> None:
        self._params = parameters
        self._kernel = kernel or CubicSplineKernel()

    @property
    def kernel(self) -> SphKernel:
        '''Smoothing kernel in use.'''
        return self._kernel

    @property
    def parameters(self) -> SimulationParameters:
        '''Parameters in use.'''
        return self._params

    ######################################################################
    # -- Density -- #
    ######################################################################

    def computeDensity(
        self,
        positions: np.ndarray,
        neighbors: NeighborLists,
        start: int,
        stop: int,
    ) -> np.ndarray:
        '''
        SPH summation density for owners [start, stop).

        Includes the self-contribution m W(0).

        Parameters:
        -----------
        positions : np.ndarray
            Particle positions, shape (N, 2)
        neighbors : NeighborLists
            Neighbor lists built from the current step
        start, stop : int
            Owner index block

        Returns:
        --------
        np.ndarray : Densities, shape (stop - start,)
        '''
        h = self._params.smoothingLength
        m = self._params.particleMass

        densities = np.full(stop - start, m * self._kernel.evaluate(np.zeros(2), h))

        iIdx, jIdx = neighbors.pairs(start, stop)
        if len(iIdx) == 0:
            return densities

        dist = np.linalg.norm(positions[iIdx] - positions[jIdx], axis=1)
        np.add.at(densities, iIdx - start, m * self._kernel.evaluateBatch(dist, h))

        return densities

    def _lattice(self, startOffset: float) -> np.ndarray:
        '''
        Points of a regular lattice with the particle spacing.

        Both axes run from startOffset up to h + spacing/2 (inclusive).

        Returns:
        --------
        np.ndarray : Lattice points, shape (M, 2)
        '''
        h = self._params.smoothingLength
        spacing = self._params.particleSpacing

        nAxis = int(math.floor((h + 0.5 * spacing - startOffset) / spacing + 1e-9)) + 1
        axis = startOffset + spacing * np.arange(nAxis)
        xx, yy = np.meshgrid(axis, axis, indexing='xy')
        return np.column_stack([xx.ravel(), yy.ravel()])

    def computeRestDensity(self) -> float:
        '''
        Density of an infinite fluid at rest on the particle lattice.

        Sums m W(p) over a lattice of the particle spacing covering
        [-h, h] around the origin. A pure function of spacing, h and m.

        Returns:
        --------
        float : Rest density rho_0
        '''
        h = self._params.smoothingLength
        m = self._params.particleMass

        points = self._lattice(-h)
        dist = np.linalg.norm(points, axis=1)
        return float(np.sum(m * self._kernel.evaluateBatch(dist, h)))

    ######################################################################
    # -- Equation of State -- #
    ######################################################################

    def computePressure(self, density: np.ndarray | float, restDensity: float) -> np.ndarray | float:
        '''
        Tait equation of state, clamped to non-negative pressure.

        p = max(0, rho_0 * c^2 / gamma * ((rho / rho_0)^gamma - 1))

        Densities at or below zero give zero pressure.

        Parameters:
        -----------
        density : np.ndarray | float
            Particle density (scalar or array)
        restDensity : float
            Reference density rho_0

        Returns:
        --------
        np.ndarray | float : Pressure, same shape as density
        '''
        ratio = np.maximum(np.asarray(density, dtype=np.float64) / restDensity, 0.0)
        pressure = restDensity * self._params.eosStiffness * (
            np.power(ratio, self._params.stiffnessExponent) - 1.0
        )
        pressure = np.maximum(pressure, 0.0)

        if pressure.ndim == 0:
            return float(pressure)
        return pressure

    ######################################################################
    # -- Pairwise Accelerations -- #
    ######################################################################

    def computeViscosityAcceleration(
        self,
        positions: np.ndarray,
        velocities: np.ndarray,
        neighbors: NeighborLists,
        densities: np.ndarray,
        start: int,
        stop: int,
    ) -> np.ndarray:
        '''
        Monaghan artificial viscosity for owners [start, stop).

        Only approaching pairs (v_ab . x_ab < 0) are damped:

            mu_ab = 2 * nu * h * c / (rho_a + rho_b)
            Pi_ab = -mu_ab * (v_ab . x_ab) / (|x_ab|^2 + 0.01 h^2)
            a_a  += -m * Pi_ab * grad_W(x_ab)

        Returns:
        --------
        np.ndarray : Viscosity accelerations, shape (stop - start, 2)
        '''
        p = self._params
        h = p.smoothingLength
        accelerations = np.zeros((stop - start, 2))

        iIdx, jIdx = neighbors.pairs(start, stop)
        if len(iIdx) == 0:
            return accelerations

        xab = positions[iIdx] - positions[jIdx]
        vab = velocities[iIdx] - velocities[jIdx]
        vDotX = np.sum(vab * xab, axis=1)

        # Separating pairs are left undamped
        approaching = vDotX < 0.0
        if not np.any(approaching):
            return accelerations

        iIdx, jIdx = iIdx[approaching], jIdx[approaching]
        xab, vDotX = xab[approaching], vDotX[approaching]
        dist = np.linalg.norm(xab, axis=1)

        mu = 2.0 * p.viscosity * h * p.soundSpeed / (densities[iIdx] + densities[jIdx])
        piab = -mu * vDotX / (dist * dist + const.viscosityRegularizer * h * h)

        gradW = self._kernel.gradientBatch(xab, dist, h)
        np.add.at(accelerations, iIdx - start, (-p.particleMass * piab)[:, np.newaxis] * gradW)

        return accelerations

    def computePressureAcceleration(
        self,
        positions: np.ndarray,
        neighbors: NeighborLists,
        densities: np.ndarray,
        pressures: np.ndarray,
        start: int,
        stop: int,
    ) -> np.ndarray:
        '''
        Symmetric pressure-gradient acceleration for owners [start, stop).

        a_i = -m * sum_j m * (p_i/rho_i^2 + p_j/rho_j^2) * grad_W(x_i - x_j)

        The pair term is antisymmetric in (i, j), so two particles that
        see each other receive equal and opposite accelerations.

        Returns:
        --------
        np.ndarray : Pressure accelerations, shape (stop - start, 2)
        '''
        h = self._params.smoothingLength
        m = self._params.particleMass
        accelerations = np.zeros((stop - start, 2))

        iIdx, jIdx = neighbors.pairs(start, stop)
        if len(iIdx) == 0:
            return accelerations

        xab = positions[iIdx] - positions[jIdx]
        dist = np.linalg.norm(xab, axis=1)
        gradW = self._kernel.gradientBatch(xab, dist, h)

        coeff = m * (
            pressures[iIdx] / (densities[iIdx] * densities[iIdx])
            + pressures[jIdx] / (densities[jIdx] * densities[jIdx])
        )
        np.add.at(accelerations, iIdx - start, coeff[:, np.newaxis] * gradW)

        return -m * accelerations

    ######################################################################
    # -- PCISPH Scaling Factor -- #
    ######################################################################

    def computeScalingFactor(self, dt: float, restDensity: float) -> float:
        '''
        PCISPH factor converting a density error into a pressure increment.

        Uses a prototype particle with a full lattice neighborhood:

            beta  = 2 * (dt * m / rho_0)^2
            delta = -1 / (beta * (-sum(grad_W) . sum(grad_W) - sum(grad_W . grad_W)))

        The lattice starts at -0.99 h and skips the origin sample.

        Parameters:
        -----------
        dt : float
            Time step
        restDensity : float
            Rest density rho_0

        Returns:
        --------
        float : Pressure increment per unit density error
        '''
        h = self._params.smoothingLength
        spacing = self._params.particleSpacing
        m = self._params.particleMass

        points = self._lattice(-const.latticeStartFactor * h)
        dist = np.linalg.norm(points, axis=1)
        keep = dist >= 0.5 * spacing
        gradW = self._kernel.gradientBatch(points[keep], dist[keep], h)

        gradSum = np.sum(gradW, axis=0)
        gradDotSum = float(np.sum(gradW * gradW))

        beta = 2.0 * (dt * m / restDensity) ** 2
        return -1.0 / (beta * (-float(np.dot(gradSum, gradSum)) - gradDotSum))
