# -- Default Parameters for the SPH Solvers -- #

'''
Default physical and numerical parameters for the 2D SPH solvers.

The solvers work in simulation units: a particle spacing of 1 and a
particle mass of 1 give a rest density close to 1. The sound speed
and viscosity below are tuned for those units.

References:
-----------
Monaghan (1992) -- Smoothed Particle Hydrodynamics
Monaghan (1994) -- Simulating free surface flows with SPH
Solenthaler & Pajarola (2009) -- Predictive-Corrective
    Incompressible SPH
'''

import math

#--------------------------------------------------------------------#
# -- Particle Resolution -- #
#--------------------------------------------------------------------#

# Initial inter-particle spacing
particleSpacing: float = 1.0

# Smoothing length (kernel support radius) to particle spacing ratio
# h = smoothingLengthRatio * particleSpacing
smoothingLengthRatio: float = 2.0

# Uniform particle mass
particleMass: float = 1.0

#--------------------------------------------------------------------#
# -- Equation of State -- #
#--------------------------------------------------------------------#

# Reference speed of sound c in the Tait equation of state
soundSpeed: float = 88.5

# Tait equation of state exponent
# gamma = 7 is standard for water-like fluids
stiffnessExponent: float = 7.0

#--------------------------------------------------------------------#
# -- Artificial Viscosity -- #
#--------------------------------------------------------------------#

# Kinematic viscosity coefficient (alpha in Monaghan's form)
viscosity: float = 0.08

# eta^2 = viscosityRegularizer * h^2 keeps Pi_ab finite as |x_ab| -> 0
viscosityRegularizer: float = 0.01

#--------------------------------------------------------------------#
# -- Boundary Density Proxies -- #
#--------------------------------------------------------------------#

# Boundary particles do not estimate their density. They are given
# rho_b = factor * h * rho_0 so that they exert repulsive pressure.
wcsphBoundaryDensityFactor: float = 1.0
pcisphBoundaryDensityFactor: float = 1.0 / math.sqrt(2.0)

#--------------------------------------------------------------------#
# -- PCISPH Iteration Control -- #
#--------------------------------------------------------------------#

minIterations: int = 1
maxIterations: int = 1

# Allowed density error as a fraction of the rest density
maxDensityErrorFactor: float = 0.05

# The scaling-factor lattice starts at -latticeStartFactor * h so the
# prototype neighborhood never puts a sample exactly on the support edge
latticeStartFactor: float = 0.99

#--------------------------------------------------------------------#
# -- Runner Defaults -- #
#--------------------------------------------------------------------#

# Fixed time step used by the runner
timeStep: float = 0.07

# Downward external acceleration applied to every fluid particle
gravity: float = 1.0

# Number of steps the runner advances by default
nSteps: int = 200

# The runner scenes are shallow and slow compared to the default
# sound speed, so they use a softer fluid
runnerSoundSpeed: float = 20.0
runnerViscosity: float = 0.1
