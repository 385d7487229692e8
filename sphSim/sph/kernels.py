# -- SPH Smoothing Kernel -- #

'''
Cubic spline smoothing kernel for 2D SPH interpolation.

The kernel W(d, h) weights the contribution of a neighbor at
displacement d. Here h is the support radius: the spline is written
in terms of the half-support h/2, so W vanishes for |d| >= h.

Key properties:
- Normalization: integral of W over the plane = 1
- Compact support: W = 0 for |d| >= h
- Radial symmetry: W depends on |d| only, so grad_W is odd in d

References:
-----------
Monaghan (1992) -- Smoothed Particle Hydrodynamics
Monaghan & Lattanzio (1985) -- A refined particle method for
    astrophysical problems
'''

from __future__ import annotations

import math
from typing import Protocol

import numpy as np


######################################################################
# -- Kernel Protocol -- #
######################################################################

class SphKernel(Protocol):
    '''Protocol for SPH smoothing kernels.'''

    def evaluate(self, displacement: np.ndarray, h: float) -> float:
        '''Kernel value W(d, h).'''
        ...

    def gradient(self, displacement: np.ndarray, h: float) -> np.ndarray:
        '''Kernel gradient grad_W(d, h), directed along d.'''
        ...

    def evaluateBatch(self, distances: np.ndarray, h: float) -> np.ndarray:
        '''Kernel values for an array of distances.'''
        ...

    def gradientBatch(self, displacements: np.ndarray, distances: np.ndarray, h: float) -> np.ndarray:
        '''Kernel gradients for an array of displacements.'''
        ...


######################################################################
# -- Cubic Spline Kernel (M4) -- #
######################################################################

class CubicSplineKernel:
    '''
    Cubic spline (M4) kernel in 2D, parameterized by the support radius.

    With s = h/2 and q = |d| / s:

    W(q) = sigma * {
        1 - (3/2)*q^2 + (3/4)*q^3    for 0 <= q < 1
        (1/4)*(2 - q)^3               for 1 <= q < 2
        0                              for q >= 2
    }

    sigma = 10 / (7 * pi * s^2)

    The gradient is (dW/dr) * d / |d| with dW/dr = (sigma / s) * dW/dq.
    It is undefined at d = 0; callers never ask for it there (self
    pairs are excluded from the neighbor lists), and coincident
    distinct particles get a zero gradient instead of a NaN.
    '''

    @staticmethod
    def _normalization(halfH: float) -> float:
        '''2D normalization constant sigma for half-support s.'''
        return 10.0 / (7.0 * math.pi * halfH * halfH)

    def evaluate(self, displacement: np.ndarray, h: float) -> float:
        '''
        Evaluate W(d, h).

        Parameters:
        -----------
        displacement : np.ndarray
            Displacement between the two particles, shape (2,)
        h : float
            Support radius

        Returns:
        --------
        float : Kernel value
        '''
        halfH = 0.5 * h
        q = float(np.hypot(displacement[0], displacement[1])) / halfH
        sigma = self._normalization(halfH)

        if q < 1.0:
            return sigma * (1.0 - 1.5 * q * q + 0.75 * q * q * q)
        elif q < 2.0:
            twoMinusQ = 2.0 - q
            return sigma * 0.25 * twoMinusQ * twoMinusQ * twoMinusQ
        else:
            return 0.0

    def gradientMagnitude(self, r: float, h: float) -> float:
        '''
        Scalar derivative dW/dr at distance r.

        Parameters:
        -----------
        r : float
            Distance between particles
        h : float
            Support radius

        Returns:
        --------
        float : dW/dr (non-positive inside the support)
        '''
        halfH = 0.5 * h
        q = r / halfH
        sigma = self._normalization(halfH)

        if q < 1.0:
            return sigma / halfH * (-3.0 * q + 2.25 * q * q)
        elif q < 2.0:
            twoMinusQ = 2.0 - q
            return -0.75 * sigma / halfH * twoMinusQ * twoMinusQ
        else:
            return 0.0

    def gradient(self, displacement: np.ndarray, h: float) -> np.ndarray:
        '''
        Evaluate grad_W(d, h) = (dW/dr) * d / |d|.

        Parameters:
        -----------
        displacement : np.ndarray
            Displacement d, shape (2,)
        h : float
            Support radius

        Returns:
        --------
        np.ndarray : Gradient vector, shape (2,)
        '''
        displacement = np.asarray(displacement, dtype=np.float64)
        r = float(np.hypot(displacement[0], displacement[1]))
        if r < 1e-12:
            return np.zeros(2)

        return self.gradientMagnitude(r, h) * displacement / r

    ######################################################################
    # -- Vectorized (Batch) Operations -- #
    ######################################################################

    def evaluateBatch(self, distances: np.ndarray, h: float) -> np.ndarray:
        '''
        Evaluate W for an array of distances.

        Parameters:
        -----------
        distances : np.ndarray
            Distances, shape (M,)
        h : float
            Support radius

        Returns:
        --------
        np.ndarray : Kernel values, shape (M,)
        '''
        halfH = 0.5 * h
        q = np.asarray(distances, dtype=np.float64) / halfH
        sigma = self._normalization(halfH)

        result = np.zeros_like(q)

        # Inner region: q < 1
        inner = q < 1.0
        qInner = q[inner]
        result[inner] = sigma * (1.0 - 1.5 * qInner ** 2 + 0.75 * qInner ** 3)

        # Outer region: 1 <= q < 2
        outer = (q >= 1.0) & (q < 2.0)
        twoMinusQ = 2.0 - q[outer]
        result[outer] = sigma * 0.25 * twoMinusQ ** 3

        return result

    def gradientMagnitudeBatch(self, distances: np.ndarray, h: float) -> np.ndarray:
        '''dW/dr for an array of distances, shape (M,).'''
        halfH = 0.5 * h
        q = np.asarray(distances, dtype=np.float64) / halfH
        sigma = self._normalization(halfH)

        result = np.zeros_like(q)

        inner = q < 1.0
        qInner = q[inner]
        result[inner] = sigma / halfH * (-3.0 * qInner + 2.25 * qInner ** 2)

        outer = (q >= 1.0) & (q < 2.0)
        twoMinusQ = 2.0 - q[outer]
        result[outer] = -0.75 * sigma / halfH * twoMinusQ ** 2

        return result

    def gradientBatch(
        self, displacements: np.ndarray, distances: np.ndarray, h: float
    ) -> np.ndarray:
        '''
        Evaluate grad_W for an array of particle pairs.

        Parameters:
        -----------
        displacements : np.ndarray
            Displacement vectors, shape (M, 2)
        distances : np.ndarray
            Their lengths, shape (M,)
        h : float
            Support radius

        Returns:
        --------
        np.ndarray : Gradient vectors, shape (M, 2)
        '''
        dwdr = self.gradientMagnitudeBatch(distances, h)

        # Coincident pairs get a zero gradient
        safeDistances = np.where(distances > 1e-12, distances, 1.0)
        gradients = (dwdr / safeDistances)[:, np.newaxis] * displacements
        gradients[distances <= 1e-12] = 0.0

        return gradients
