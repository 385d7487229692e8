# -- SPH Solver Factory -- #

'''
Create a solver variant by name.

The variants form a closed set that all satisfy the SphSolver
protocol: 'wcsph' and 'pcisph' are complete, 'iisph' and 'dfsph'
only implement their precursor phase and raise NotImplementedError
from step().
'''

from __future__ import annotations

from sphSim.sph.protocols import SimulationParameters, PcisphSettings, SphSolver
from sphSim.sph.kernels import SphKernel
from sphSim.sph.wcsphSolver import WcsphSolver
from sphSim.sph.pcisphSolver import PcisphSolver
from sphSim.sph.iisphSolver import IisphSolver
from sphSim.sph.dfsphSolver import DfsphSolver

SOLVER_METHODS = ('wcsph', 'pcisph', 'iisph', 'dfsph')


def createSolver(
    method: str,
    parameters: SimulationParameters,
    pcisphSettings: PcisphSettings | None = None,
    kernel: SphKernel | None = None,
) -> SphSolver:
    '''
    Create a solver instance by method name.

    Parameters:
    -----------
    method : str
        One of 'wcsph', 'pcisph', 'iisph', 'dfsph' (case-insensitive)
    parameters : SimulationParameters
        Shared simulation parameters
    pcisphSettings : PcisphSettings | None
        Iteration control, used by PCISPH only
    kernel : SphKernel | None
        Smoothing kernel (defaults to CubicSplineKernel)

    Returns:
    --------
    SphSolver : Solver instance

    Raises:
    -------
    ValueError : If the method is unknown
    '''
    key = method.lower()
    if key == 'wcsph':
        return WcsphSolver(parameters, kernel=kernel)
    elif key == 'pcisph':
        return PcisphSolver(parameters, settings=pcisphSettings, kernel=kernel)
    elif key == 'iisph':
        return IisphSolver(parameters, kernel=kernel)
    elif key == 'dfsph':
        return DfsphSolver(parameters, kernel=kernel)
    else:
        raise ValueError(f'Unknown solver method: {method} (expected one of {", ".join(SOLVER_METHODS)})')
