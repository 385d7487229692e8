# -- Circular Container Scenario -- #

'''
A disc of fluid thrown into a circular container with obstacles.

The scene consists of:
1. A ring of boundary particles forming the container wall
2. Smaller rings acting as obstacles inside the container
3. A disc of fluid particles with an initial velocity

Gravity points along -y and is applied by the runner as an
external acceleration on every particle.
'''

from __future__ import annotations

from dataclasses import dataclass, field

from sphSim import constants as const
from sphSim.sph.particles import ParticleSet
from sphSim.scenarios.layouts import createCircle, createHollowCircle


######################################################################
# -- Container Configuration -- #
######################################################################

@dataclass
class ContainerSceneConfig:
    '''
    Geometry of the container scene.

    Parameters:
    -----------
    particleSpacing : float
        Spacing of fluid and wall particles
    containerRadius : float
        Radius of the outer wall ring (centered at the origin)
    obstacles : list[tuple[float, float, float]]
        (x, y, radius) of each obstacle ring
    fluidCenter : tuple[float, float]
        Center of the fluid disc
    fluidRadius : float
        Radius of the fluid disc
    fluidVelocity : tuple[float, float]
        Initial fluid velocity
    '''

    particleSpacing: float = const.particleSpacing
    containerRadius: float = 100.0
    obstacles: list[tuple[float, float, float]] = field(default_factory=lambda: [
        (50.0, -30.0, 30.0),
        (0.0, -70.0, 7.0),
        (-30.0, -70.0, 7.0),
        (30.0, -70.0, 7.0),
    ])
    fluidCenter: tuple[float, float] = (-40.0, 0.0)
    fluidRadius: float = 30.0
    fluidVelocity: tuple[float, float] = (6.0, 4.0)

    @classmethod
    def small(cls) -> ContainerSceneConfig:
        '''
        Small container for quick runs.

        ~300 fluid particles, runs in seconds.
        '''
        return cls(
            containerRadius=30.0,
            obstacles=[(0.0, -18.0, 4.0)],
            fluidCenter=(-10.0, 0.0),
            fluidRadius=10.0,
            fluidVelocity=(2.0, 1.0),
        )

    @classmethod
    def standard(cls) -> ContainerSceneConfig:
        '''
        Full-size container with four obstacles.

        ~2800 fluid particles.
        '''
        return cls()

    @classmethod
    def fromDict(cls, data: dict) -> ContainerSceneConfig:
        '''Build the scene from the 'scene' section of a parsed config.'''
        section = data.get('scene', {})
        defaults = cls()
        return cls(
            particleSpacing=section.get('particleSpacing', defaults.particleSpacing),
            containerRadius=section.get('containerRadius', defaults.containerRadius),
            obstacles=[tuple(o) for o in section.get('obstacles', defaults.obstacles)],
            fluidCenter=tuple(section.get('fluidCenter', defaults.fluidCenter)),
            fluidRadius=section.get('fluidRadius', defaults.fluidRadius),
            fluidVelocity=tuple(section.get('fluidVelocity', defaults.fluidVelocity)),
        )


######################################################################
# -- Scene Creation -- #
######################################################################

def createContainerScene(sceneConfig: ContainerSceneConfig) -> ParticleSet:
    '''
    Assemble the container scene.

    Boundary particles come first, followed by the fluid disc.

    Parameters:
    -----------
    sceneConfig : ContainerSceneConfig
        Scene geometry

    Returns:
    --------
    ParticleSet : Boundary and fluid particles
    '''
    spacing = sceneConfig.particleSpacing

    parts = [createHollowCircle(0.0, 0.0, sceneConfig.containerRadius, spacing)]
    for ox, oy, radius in sceneConfig.obstacles:
        parts.append(createHollowCircle(ox, oy, radius, spacing))

    cx, cy = sceneConfig.fluidCenter
    vx, vy = sceneConfig.fluidVelocity
    parts.append(createCircle(cx, cy, vx, vy, sceneConfig.fluidRadius, spacing))

    return ParticleSet.concatenate(parts)
