# -- Simulation Scenarios Package -- #

'''
Particle layout generators and preset scenes.

Each scenario provides initial conditions (fluid layout and
boundary geometry) for the solvers in sphSim.sph.
'''

from sphSim.scenarios.layouts import (
    createCircle,
    createHollowCircle,
    createHorizontalBoundaryLine,
    createVerticalBoundaryLine,
)
from sphSim.scenarios.container import ContainerSceneConfig, createContainerScene
