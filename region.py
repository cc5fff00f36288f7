'''
region.py -- storage for one generated region and its handoff

A region is a cube of `dim` blocks per side anchored at a world origin. The
block buffer is indexed [x, z, y], i.e. flat index x*dim*dim + z*dim + y,
which is plain C order for the numpy array.
'''

import numpy

import config
from blocks import AIR, BLOCK_COLORS, BLOCK_DTYPE, BLOCK_SOLID
from errors import RegionHandedOff


class Region(object):
    def __init__(self, origin, blocks, biomes=None):
        blocks = numpy.asarray(blocks)
        if blocks.ndim != 3 or len(set(blocks.shape)) != 1:
            raise ValueError(f"region blocks must be a cube, got shape {blocks.shape}")
        if blocks.dtype != BLOCK_DTYPE:
            blocks = blocks.astype(BLOCK_DTYPE)
        self.dim = blocks.shape[0]
        if biomes is not None:
            biomes = numpy.asarray(biomes)
            if biomes.shape != (self.dim, self.dim):
                raise ValueError(f"biome map shape {biomes.shape} does not match region dim {self.dim}")
        self.origin = tuple(int(v) for v in origin)
        self.blocks = blocks
        self.biomes = biomes
        self.handed_off = False

    def index(self, x, y, z):
        '''Flat buffer index of local block (x, y, z).'''
        return (x*self.dim + z)*self.dim + y

    def get(self, x, y, z):
        return int(self.blocks[x, z, y])

    def flat(self):
        return self.blocks.reshape(-1)

    def chunks(self, chunk_dim=None):
        '''
        Yield ((cx, cy, cz), blocks) for every chunk of the region, with
        chunk blocks indexed [x, y, z].
        '''
        if chunk_dim is None:
            chunk_dim = getattr(config, 'CHUNK_DIM', 16)
        if self.dim % chunk_dim:
            raise ValueError(f"region dim {self.dim} is not a multiple of chunk dim {chunk_dim}")
        n = self.dim // chunk_dim
        for cx in range(n):
            for cz in range(n):
                column = self.blocks[cx*chunk_dim:(cx + 1)*chunk_dim, cz*chunk_dim:(cz + 1)*chunk_dim]
                for cy in range(n):
                    part = column[:, :, cy*chunk_dim:(cy + 1)*chunk_dim]
                    yield (cx, cy, cz), part.swapaxes(1, 2)

    def column_heights(self):
        '''Local y of the highest solid block per column, -1 for empty columns.'''
        solid = BLOCK_SOLID[self.blocks]
        any_solid = solid.any(axis=2)
        top_from_rev = numpy.argmax(solid[:, :, ::-1], axis=2)
        heights = (self.dim - 1) - top_from_rev
        return numpy.where(any_solid, heights, -1)

    def handoff(self):
        '''
        Freeze the buffers and return (blocks, biomes) to the consumer. The
        region must not be handed off twice.
        '''
        if self.handed_off:
            raise RegionHandedOff(f"region at {self.origin} was already handed off")
        self.blocks.flags.writeable = False
        if self.biomes is not None:
            self.biomes.flags.writeable = False
        self.handed_off = True
        return self.blocks, self.biomes

    def __repr__(self):
        return f"Region(origin={self.origin}, dim={self.dim})"


def surface_image(region):
    '''Top-down Pillow image of the highest non-air block per column, x to the right and z downwards.'''
    from PIL import Image
    filled = region.blocks != AIR
    top = (region.dim - 1) - numpy.argmax(filled[:, :, ::-1], axis=2)
    ids = numpy.take_along_axis(region.blocks, top[:, :, None], axis=2)[:, :, 0]
    ids = numpy.where(filled.any(axis=2), ids, AIR)
    rgb = BLOCK_COLORS[ids].swapaxes(0, 1)
    return Image.fromarray(numpy.ascontiguousarray(rgb), 'RGB')
