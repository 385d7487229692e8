# -- Spatial Hash Grid for Neighbor Search -- #

'''
Cell-linked spatial hashing for O(N) neighbor search in 2D SPH.

Particles are binned into a uniform grid whose cell size equals the
kernel support radius h, keyed by (floor(x/h), floor(y/h)). A fluid
particle's neighbors can then only live in its own cell or the 8
cells around it, so each query is a 3x3 block scan followed by an
exact distance test.

Boundary particles get empty neighbor lists: their density and
pressure are prescribed, not estimated. They still show up in the
lists of the fluid particles around them.

The grid is rebuilt from scratch every step.

References:
-----------
Ihmsen et al. (2011) -- Parallel Neighbor-Search for SPH
Green (2010) -- Particle Simulation using CUDA
'''

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from sphSim.sph.parallel import ParallelExecutor


# 3x3 stencil around a cell, the cell itself included
_STENCIL = [(dx, dy) for dx in (-1, 0, 1) for dy in (-1, 0, 1)]


#--------------------------------------------------------------------#
# -- Neighbor Lists -- #
#--------------------------------------------------------------------#

@dataclass
class NeighborLists:
    '''
    Per-particle neighbor indices in compressed (CSR) form.

    The neighbors of particle i are indices[offsets[i]:offsets[i+1]],
    sorted ascending. Self is never included.

    Parameters:
    -----------
    offsets : np.ndarray
        Start offset of each particle's list, shape (N + 1,)
    indices : np.ndarray
        Concatenated neighbor indices, shape (nPairs,)
    '''

    offsets: np.ndarray
    indices: np.ndarray

    def __len__(self) -> int:
        return len(self.offsets) - 1

    @property
    def counts(self) -> np.ndarray:
        '''Number of neighbors of every particle, shape (N,).'''
        return np.diff(self.offsets)

    @property
    def nPairs(self) -> int:
        '''Total number of directed (i, j) entries.'''
        return len(self.indices)

    def neighborsOf(self, i: int) -> np.ndarray:
        '''Neighbor indices of particle i.'''
        return self.indices[self.offsets[i]:self.offsets[i + 1]]

    def pairs(self, start: int, stop: int) -> tuple[np.ndarray, np.ndarray]:
        '''
        Directed pairs (i, j) for owners i in [start, stop).

        Parameters:
        -----------
        start : int
            First owner index
        stop : int
            One past the last owner index

        Returns:
        --------
        tuple[np.ndarray, np.ndarray] : (iIndices, jIndices), one entry
            per neighbor, grouped by owner
        '''
        counts = np.diff(self.offsets[start:stop + 1])
        iIdx = np.repeat(np.arange(start, stop, dtype=np.int64), counts)
        jIdx = self.indices[self.offsets[start]:self.offsets[stop]]
        return iIdx, jIdx

    @classmethod
    def fromPairs(cls, iIdx: np.ndarray, jIdx: np.ndarray, nParticles: int) -> NeighborLists:
        '''
        Build lists from unordered directed pairs (i, j).

        Parameters:
        -----------
        iIdx : np.ndarray
            Owner indices
        jIdx : np.ndarray
            Neighbor indices
        nParticles : int
            Total particle count N

        Returns:
        --------
        NeighborLists : Lists sorted by owner, then neighbor
        '''
        iIdx = np.asarray(iIdx, dtype=np.int64)
        jIdx = np.asarray(jIdx, dtype=np.int64)

        order = np.lexsort((jIdx, iIdx))
        counts = np.bincount(iIdx, minlength=nParticles)
        offsets = np.zeros(nParticles + 1, dtype=np.int64)
        np.cumsum(counts, out=offsets[1:])

        return cls(offsets=offsets, indices=jIdx[order])


#--------------------------------------------------------------------#
# -- Spatial Hash Grid -- #
#--------------------------------------------------------------------#

class SpatialHashGrid:
    '''
    Uniform grid spatial hash for 2D neighbor search.

    Parameters:
    -----------
    cellSize : float
        Grid cell size, equal to the search radius (smoothing length)
    executor : ParallelExecutor | None
        Runs the per-cell queries; defaults to inline execution
    '''

    def __init__(self, cellSize: float, executor: ParallelExecutor | None = None) -> None:
        if cellSize <= 0.0:
            raise ValueError(f'cellSize must be positive, got {cellSize}')

        self._cellSize = cellSize
        self._executor = executor or ParallelExecutor(maxParallelism=1)
        self._positions: np.ndarray | None = None
        self._cells: dict[tuple[int, int], np.ndarray] = {}

    @property
    def cellSize(self) -> float:
        '''Grid cell size.'''
        return self._cellSize

    @property
    def nCells(self) -> int:
        '''Number of occupied cells.'''
        return len(self._cells)

    def cellOf(self, position: np.ndarray) -> tuple[int, int]:
        '''Integer cell coordinates (floor(x/h), floor(y/h)) of a position.'''
        return (
            int(np.floor(position[0] / self._cellSize)),
            int(np.floor(position[1] / self._cellSize)),
        )

    def build(self, positions: np.ndarray) -> None:
        '''
        Bin all particles into grid cells.

        Parameters:
        -----------
        positions : np.ndarray
            Particle positions, shape (N, 2)
        '''
        self._positions = positions
        self._cells = {}

        if len(positions) == 0:
            return

        cellIndices = np.floor(positions / self._cellSize).astype(np.int64)

        # Group particle indices by cell key
        keys, inverse = np.unique(cellIndices, axis=0, return_inverse=True)
        inverse = inverse.reshape(-1)
        order = np.argsort(inverse, kind='stable')
        counts = np.bincount(inverse, minlength=len(keys))
        groups = np.split(order, np.cumsum(counts)[:-1])

        self._cells = {
            (int(key[0]), int(key[1])): group.astype(np.int64)
            for key, group in zip(keys, groups)
        }

    def queryNeighbors(self, isBoundary: np.ndarray, radius: float | None = None) -> NeighborLists:
        '''
        Neighbor lists of every particle from the last build().

        Only fluid particles are queried; boundary particles get empty
        lists. A candidate j is kept when j != i and |x_i - x_j| <= radius.

        Parameters:
        -----------
        isBoundary : np.ndarray
            Boundary mask, shape (N,)
        radius : float | None
            Search radius, defaults to the cell size

        Returns:
        --------
        NeighborLists : Lists for all N particles
        '''
        if self._positions is None:
            raise RuntimeError('build() must be called before queryNeighbors()')

        radius = self._cellSize if radius is None else radius
        if radius > self._cellSize:
            raise ValueError(f'radius {radius} exceeds the cell size {self._cellSize}')

        nParticles = len(self._positions)
        cellKeys = list(self._cells.keys())

        def queryCells(start: int, stop: int) -> tuple[np.ndarray, np.ndarray]:
            return self._queryCellRange(cellKeys[start:stop], isBoundary, radius)

        chunks = self._executor.mapBlocks(len(cellKeys), queryCells)
        if not chunks:
            return NeighborLists.fromPairs(np.array([], dtype=np.int64), np.array([], dtype=np.int64), nParticles)

        iAll = np.concatenate([c[0] for c in chunks])
        jAll = np.concatenate([c[1] for c in chunks])
        return NeighborLists.fromPairs(iAll, jAll, nParticles)

    def _queryCellRange(
        self,
        cellKeys: list[tuple[int, int]],
        isBoundary: np.ndarray,
        radius: float,
    ) -> tuple[np.ndarray, np.ndarray]:
        '''Directed pairs for the fluid particles of the given cells.'''
        positions = self._positions
        radiusSq = radius * radius
        iChunks: list[np.ndarray] = [np.array([], dtype=np.int64)]
        jChunks: list[np.ndarray] = [np.array([], dtype=np.int64)]

        for cx, cy in cellKeys:
            cellParticles = self._cells[(cx, cy)]
            queries = cellParticles[~isBoundary[cellParticles]]
            if len(queries) == 0:
                continue

            candidates = [
                self._cells[key]
                for key in ((cx + dx, cy + dy) for dx, dy in _STENCIL)
                if key in self._cells
            ]
            candidates = np.concatenate(candidates)

            # Pairwise squared distances between queries and candidates
            diff = positions[queries][:, np.newaxis, :] - positions[candidates][np.newaxis, :, :]
            distSq = np.sum(diff * diff, axis=2)

            withinRadius = (distSq <= radiusSq) & (queries[:, np.newaxis] != candidates[np.newaxis, :])
            localI, localJ = np.nonzero(withinRadius)

            if len(localI) > 0:
                iChunks.append(queries[localI])
                jChunks.append(candidates[localJ])

        return np.concatenate(iChunks), np.concatenate(jChunks)
