# -- sphSim Package -- #

'''
Two-dimensional Smoothed Particle Hydrodynamics (SPH) solver family.

Sub-packages:
    - sph: kernel math, neighbor search, field operations and the
      WCSPH / PCISPH solvers (IISPH and DFSPH are partial)
    - scenarios: particle layout generators and preset scenes

The command-line runner lives in sphSim.runner.
'''

__version__ = '0.1.0'

from sphSim.sph.protocols import SimulationParameters, PcisphSettings, StepDiagnostics
from sphSim.sph.particles import Particle, ParticleSet
from sphSim.sph.solverFactory import createSolver
