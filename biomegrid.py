'''
biomegrid.py -- builds the 2D grid of biome ids, one per block column

The grid starts as a coarse ocean/land mask and is "grown" through a fixed
chain of passes: zoom doubles the resolution (minus one cell) adding jittered
detail at biome borders, smooth removes the single-cell speckle zoom leaves
behind, land turns the mask into biomes and rivers marks borders between
land biomes.

Every grid carries its origin in the coordinate space of its level. Random
choices hash the absolute coordinates of the output cell, so any window of
the world comes out the same whichever region asks for it, and however the
work is split.
'''

import time

import numpy

import config
import logutil
from biomes import BIOME_DTYPE, BIOME_COLORS, LAND_BIOMES, OCEAN, RIVER, validate_ids
from errors import MissingHalo
from noise import noise2d, random_u32, random_unit

# Salt for the seed mask; stage salts are their position in the sequence + 1.
SEED_SALT = 0


class BiomeGrid(object):
    '''
    Immutable 2D array of biome ids indexed [x, z], anchored at `origin`.
    '''
    def __init__(self, data, origin=(0, 0), validate=True):
        data = numpy.asarray(data)
        if data.ndim != 2:
            raise ValueError(f"biome grid must be 2D, got shape {data.shape}")
        if validate:
            # Caller-owned data: check it and take a private copy.
            validate_ids(data)
            data = data.astype(BIOME_DTYPE)
        elif data.dtype != BIOME_DTYPE:
            data = data.astype(BIOME_DTYPE)
        data.flags.writeable = False
        self.data = data
        self.origin = (int(origin[0]), int(origin[1]))

    @property
    def shape(self):
        return self.data.shape

    @property
    def width(self):
        return self.data.shape[0]

    @property
    def depth(self):
        return self.data.shape[1]

    def axes(self):
        '''Absolute x and z coordinates of the grid's rows and columns.'''
        ox, oz = self.origin
        return (numpy.arange(self.width, dtype=numpy.int64) + ox,
                numpy.arange(self.depth, dtype=numpy.int64) + oz)

    def covers(self, origin, shape):
        x0 = origin[0] - self.origin[0]
        z0 = origin[1] - self.origin[1]
        return x0 >= 0 and z0 >= 0 and x0 + shape[0] <= self.width and z0 + shape[1] <= self.depth

    def crop(self, origin, shape):
        if not self.covers(origin, shape):
            raise MissingHalo(
                f"grid at {self.origin} size {self.shape} does not cover window at "
                f"{tuple(origin)} size {tuple(shape)}")
        if tuple(origin) == self.origin and tuple(shape) == self.shape:
            return self
        x0 = origin[0] - self.origin[0]
        z0 = origin[1] - self.origin[1]
        return BiomeGrid(self.data[x0:x0 + shape[0], z0:z0 + shape[1]], origin, validate=False)

    def __getitem__(self, pos):
        '''Biome id at absolute (x, z).'''
        x, z = pos
        if not self.covers((x, z), (1, 1)):
            raise MissingHalo(f"({x}, {z}) is outside grid at {self.origin} size {self.shape}")
        return int(self.data[x - self.origin[0], z - self.origin[1]])

    def __repr__(self):
        return f"BiomeGrid(origin={self.origin}, shape={self.shape})"


def _neighbours(grid):
    d = grid.data
    if d.shape[0] < 3 or d.shape[1] < 3:
        raise MissingHalo(f"{grid} is too small for a pass that trims a 1-cell border")
    # centre, left/right (x axis), top/bottom (z axis)
    return d[1:-1, 1:-1], d[:-2, 1:-1], d[2:, 1:-1], d[1:-1, :-2], d[1:-1, 2:]


def _shrunk(grid, data):
    return BiomeGrid(data.astype(BIOME_DTYPE, copy=False),
                     (grid.origin[0] + 1, grid.origin[1] + 1), validate=False)


def zoom(grid, seed, salt=0):
    '''
    Double the resolution of `grid`: n cells become 2n-1.

    Even/even cells copy their parent. Cells between two parents take one of
    them and cells between four parents one of the four, chosen by hashing
    the cell's coordinates. Ids are never blended.
    '''
    d = grid.data
    w, h = d.shape
    if w < 1 or h < 1:
        raise MissingHalo(f"{grid} is empty")
    out = numpy.empty((2*w - 1, 2*h - 1), dtype=BIOME_DTYPE)
    gx = 2*grid.origin[0] + numpy.arange(2*w - 1, dtype=numpy.int64)
    gz = 2*grid.origin[1] + numpy.arange(2*h - 1, dtype=numpy.int64)
    pick = random_u32(seed, gx[:, None], gz[None, :], salt)

    out[0::2, 0::2] = d
    out[1::2, 0::2] = numpy.where(pick[1::2, 0::2] & 1, d[1:, :], d[:-1, :])
    out[0::2, 1::2] = numpy.where(pick[0::2, 1::2] & 1, d[:, 1:], d[:, :-1])
    corner = (pick[1::2, 1::2] & 3).astype(numpy.intp)
    out[1::2, 1::2] = numpy.choose(corner, (d[:-1, :-1], d[1:, :-1], d[:-1, 1:], d[1:, 1:]))
    return BiomeGrid(out, (2*grid.origin[0], 2*grid.origin[1]), validate=False)


def smooth(grid, seed, salt=0):
    '''
    Remove single-cell noise; trims a 1-cell border (n -> n-2).

    If both neighbour pairs agree, one of the two values is picked by hash;
    if only one pair agrees, its value wins; otherwise the cell is kept.
    '''
    c, left, right, top, bottom = _neighbours(grid)
    x_same = left == right
    z_same = top == bottom
    gx, gz = grid.axes()
    pick = random_u32(seed, gx[1:-1, None], gz[None, 1:-1], salt) & 1
    both = numpy.where(pick, top, left)
    out = numpy.where(x_same & z_same, both,
                      numpy.where(x_same, left, numpy.where(z_same, top, c)))
    return _shrunk(grid, out)


def rivers(grid, seed=None, salt=0):
    '''
    Mark borders between land biomes as river; trims a 1-cell border.

    A cell becomes river when its left/right or top/bottom neighbours differ
    and neither of that pair is ocean, so coasts never get rivers.
    '''
    c, left, right, top, bottom = _neighbours(grid)
    x_edge = (left != right) & (left != OCEAN) & (right != OCEAN)
    z_edge = (top != bottom) & (top != OCEAN) & (bottom != OCEAN)
    out = numpy.where(x_edge | z_edge, numpy.asarray(RIVER, dtype=BIOME_DTYPE), c)
    return _shrunk(grid, out)


def land(grid, seed, salt=0):
    '''
    Turn an ocean/land mask (0 ocean, anything else land) into biome ids.
    Land biomes follow a coarse noise field so neighbouring cells tend to
    share a biome.
    '''
    freq = getattr(config, 'LAND_FREQUENCY', 0.35)
    gx, gz = grid.axes()
    n = noise2d(seed + salt, gx[:, None]*freq, gz[None, :]*freq)
    choices = numpy.array(LAND_BIOMES, dtype=BIOME_DTYPE)
    index = numpy.clip(numpy.floor((n + 1)*0.5*len(choices)), 0, len(choices) - 1).astype(numpy.intp)
    out = numpy.where(grid.data == 0, numpy.asarray(OCEAN, dtype=BIOME_DTYPE), choices[index])
    return BiomeGrid(out, grid.origin, validate=False)


def seed_grid(seed, origin, shape, land_chance=None):
    '''
    Coarse ocean/land mask covering `shape` cells from `origin`: 1 for land,
    0 for ocean. Each cell is an independent hash of its coordinates.
    '''
    if land_chance is None:
        land_chance = getattr(config, 'LAND_CHANCE', 0.5)
    gx = numpy.arange(shape[0], dtype=numpy.int64) + origin[0]
    gz = numpy.arange(shape[1], dtype=numpy.int64) + origin[1]
    r = random_unit(seed, gx[:, None], gz[None, :], SEED_SALT)
    return BiomeGrid((r < land_chance).astype(BIOME_DTYPE), origin, validate=False)


class Stage(object):
    '''A grid pass plus the size/offset law it follows.'''
    name = None
    shrink = 0

    def __call__(self, grid, seed, salt):
        raise NotImplementedError

    def output_size(self, n):
        return n - 2*self.shrink

    def input_window(self, origin, shape):
        '''Window of input cells needed to produce the output window.'''
        s = self.shrink
        return ((origin[0] - s, origin[1] - s), (shape[0] + 2*s, shape[1] + 2*s))

    def __repr__(self):
        return self.name


class Zoom(Stage):
    name = 'zoom'

    def __call__(self, grid, seed, salt):
        return zoom(grid, seed, salt)

    def output_size(self, n):
        return 2*n - 1

    def input_window(self, origin, shape):
        lo = []
        size = []
        for o, s in zip(origin, shape):
            first = o // 2
            last = -((-(o + s - 1)) // 2)
            lo.append(first)
            size.append(last - first + 1)
        return tuple(lo), tuple(size)


class Smooth(Stage):
    name = 'smooth'
    shrink = 1

    def __call__(self, grid, seed, salt):
        return smooth(grid, seed, salt)


class Rivers(Stage):
    name = 'rivers'
    shrink = 1

    def __call__(self, grid, seed, salt):
        return rivers(grid, seed, salt)


class Land(Stage):
    name = 'land'

    def __call__(self, grid, seed, salt):
        return land(grid, seed, salt)


def default_stages():
    stages = [Zoom(), Smooth(), Zoom(), Smooth(), Land()]
    stages += [Zoom(), Smooth()]*4
    stages += [Rivers()]
    stages += [Zoom(), Smooth()]*4
    return stages


class BiomeSequence(object):
    '''
    Runs a fixed, ordered chain of stages. Each stage depends on the full
    output of the previous one; within a stage every cell is independent.
    '''
    def __init__(self, stages=None):
        self.stages = list(stages) if stages is not None else default_stages()

    @property
    def scale(self):
        '''Output cells per seed cell along one axis (roughly).'''
        return 2**sum(isinstance(s, Zoom) for s in self.stages)

    def output_size(self, n):
        for stage in self.stages:
            n = stage.output_size(n)
        return n

    def plan(self, origin, shape):
        '''
        Windows each level must cover for the output to cover `shape` cells
        from `origin`: windows[0] is the seed grid window (output window plus
        the halo of every pass), windows[i+1] the output of stage i.
        '''
        windows = [(tuple(origin), tuple(shape))]
        for stage in reversed(self.stages):
            windows.append(stage.input_window(*windows[-1]))
        windows.reverse()
        return windows

    def run(self, seed, grid, origin, shape):
        windows = self.plan(origin, shape)
        grid = grid.crop(*windows[0])
        for index, stage in enumerate(self.stages):
            grid = stage(grid, seed, index + 1)
            grid = grid.crop(*windows[index + 1])
            logutil.log("BIOME", f"{stage} -> {grid}", level="DEBUG")
        return grid

    def generate(self, seed, origin, shape):
        '''Biome grid covering `shape` columns from block column `origin`.'''
        with logutil.timed("BIOME", f"grid origin={tuple(origin)} shape={tuple(shape)}"):
            seed_window = self.plan(origin, shape)[0]
            return self.run(seed, seed_grid(seed, *seed_window), origin, shape)


def biome_image(grid):
    '''Render a grid as a Pillow image, x to the right and z downwards.'''
    from PIL import Image
    rgb = BIOME_COLORS[grid.data].swapaxes(0, 1)
    return Image.fromarray(numpy.ascontiguousarray(rgb), 'RGB')


if __name__ == '__main__':
    import sys

    seed = int(sys.argv[1]) if len(sys.argv) > 1 else 10
    size = int(sys.argv[2]) if len(sys.argv) > 2 else 1024
    t = time.time()
    grid = BiomeSequence().generate(seed, (0, 0), (size, size))
    print('biome grid', grid, time.time() - t)
    biome_image(grid).save('biomes.png')
