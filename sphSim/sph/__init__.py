# -- SPH Engine Package -- #

'''
Core Smoothed Particle Hydrodynamics engine.

Provides the cubic spline kernel, spatial hash neighbor search,
parallel particle passes, shared field operations and the solver
variants (WCSPH, PCISPH, and the partial IISPH / DFSPH).
'''

from sphSim.sph.protocols import SimulationParameters, PcisphSettings, StepDiagnostics, SphSolver
from sphSim.sph.particles import Particle, ParticleSet
from sphSim.sph.kernels import CubicSplineKernel
from sphSim.sph.neighborSearch import NeighborLists, SpatialHashGrid
from sphSim.sph.parallel import ParallelExecutor, MaxAccumulator
from sphSim.sph.fieldOps import FieldOps
from sphSim.sph.wcsphSolver import WcsphSolver
from sphSim.sph.pcisphSolver import PcisphSolver
from sphSim.sph.iisphSolver import IisphSolver, IisphAdvection
from sphSim.sph.dfsphSolver import DfsphSolver, DfsphPrecursor
from sphSim.sph.solverFactory import createSolver, SOLVER_METHODS
