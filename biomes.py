'''
biomes.py -- the biome catalog

Biome ids are small integers indexing BIOMES. The table is fixed for the
lifetime of a world; the parameter arrays below are read-only views of it
that the grid and density stages index with whole grids of ids.
'''

from collections import namedtuple

import numpy

from blocks import BLOCK_ID
from errors import InvalidBiomeId

BIOME_DTYPE = numpy.uint8

BiomeDefinition = namedtuple(
    'BiomeDefinition',
    ['name', 'frequency', 'amplitude', 'midpoint', 'block', 'is_water', 'color'],
)

# Terrain is solid up to about midpoint - 1 + 1/amplitude, so a low amplitude
# gives taller terrain. Frequency scales the terrain noise of the column.
# Water biomes sit on a midpoint just above SEA_LEVEL (64) with a high
# amplitude: every cell below sea level is solid water and the surface rises
# at most a block or two above it, so coastal columns reach the level where
# the nearest land block takes over.
BIOMES = (
    BiomeDefinition('ocean', 0.020, 1.0, 64.5, BLOCK_ID['Water'], True, (40, 80, 200)),
    BiomeDefinition('plains', 0.010, 0.10, 68.0, BLOCK_ID['Grass'], False, (40, 200, 80)),
    BiomeDefinition('hills', 0.020, 0.035, 78.0, BLOCK_ID['Stone'], False, (140, 80, 80)),
    BiomeDefinition('desert', 0.008, 0.12, 66.0, BLOCK_ID['Sand'], False, (200, 180, 20)),
    BiomeDefinition('forest', 0.015, 0.07, 70.0, BLOCK_ID['Melium'], False, (40, 140, 20)),
    BiomeDefinition('river', 0.020, 0.8, 64.5, BLOCK_ID['Water'], True, (40, 40, 160)),
)

BIOME_ID = {b.name: i for i, b in enumerate(BIOMES)}
OCEAN = BIOME_ID['ocean']
PLAINS = BIOME_ID['plains']
HILLS = BIOME_ID['hills']
DESERT = BIOME_ID['desert']
FOREST = BIOME_ID['forest']
RIVER = BIOME_ID['river']

# Candidates for land cells at the land stage, in noise order (low to high).
LAND_BIOMES = (DESERT, PLAINS, FOREST, HILLS)


def _column(field, dtype):
    arr = numpy.array([getattr(b, field) for b in BIOMES], dtype=dtype)
    arr.flags.writeable = False
    return arr


BIOME_FREQUENCY = _column('frequency', numpy.float32)
BIOME_AMPLITUDE = _column('amplitude', numpy.float32)
BIOME_MIDPOINT = _column('midpoint', numpy.float32)
BIOME_BLOCK = _column('block', numpy.uint16)
BIOME_IS_WATER = _column('is_water', bool)
BIOME_COLORS = _column('color', numpy.uint8)


def lookup(biome_id):
    """Return the definition of `biome_id`, raising InvalidBiomeId if out of range."""
    try:
        index = int(biome_id)
    except (TypeError, ValueError):
        raise InvalidBiomeId(biome_id, len(BIOMES)) from None
    if index < 0 or index >= len(BIOMES):
        raise InvalidBiomeId(biome_id, len(BIOMES))
    return BIOMES[index]


def validate_ids(ids):
    '''Raise InvalidBiomeId for the first out-of-range id in `ids`.'''
    ids = numpy.asarray(ids)
    bad = (ids < 0) | (ids >= len(BIOMES))
    if bad.any():
        raise InvalidBiomeId(int(ids[bad].flat[0]), len(BIOMES))
    return ids
