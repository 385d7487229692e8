# -- Solver Factory Tests -- #

import numpy as np
import pytest

from sphSim import createSolver
from sphSim.sph import SOLVER_METHODS, PcisphSettings
from sphSim.sph.dfsphSolver import DfsphSolver
from sphSim.sph.iisphSolver import IisphSolver
from sphSim.sph.pcisphSolver import PcisphSolver
from sphSim.sph.wcsphSolver import WcsphSolver


@pytest.mark.parametrize('method, expectedType', [
    ('wcsph', WcsphSolver),
    ('pcisph', PcisphSolver),
    ('iisph', IisphSolver),
    ('dfsph', DfsphSolver),
    ('PCISPH', PcisphSolver),
])
def testCreateByName(parameters, method, expectedType):
    solver = createSolver(method, parameters)
    try:
        assert isinstance(solver, expectedType)
        assert solver.parameters is parameters
        assert solver.lastStep is None
    finally:
        solver.close()


def testAllMethodsAreCreatable(parameters):
    for method in SOLVER_METHODS:
        createSolver(method, parameters).close()


def testPcisphSettingsArePassedThrough(parameters):
    settings = PcisphSettings(minIterations=2, maxIterations=6)
    solver = createSolver('pcisph', parameters, pcisphSettings=settings)
    assert solver.settings is settings
    solver.close()


def testUnknownMethodRaises(parameters):
    with pytest.raises(ValueError, match='Unknown solver method'):
        createSolver('sph-magic', parameters)


@pytest.mark.parametrize('method', ['iisph', 'dfsph'])
def testPartialSolversRefuseToStep(parameters, lattice, method):
    particles = lattice(2, 2, 1.0)
    solver = createSolver(method, parameters)
    with pytest.raises(NotImplementedError):
        solver.step(particles, np.zeros((4, 2)), 0.01)
    solver.close()
