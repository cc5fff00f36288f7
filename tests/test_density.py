import os
import sys

import numpy as np
import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

import config
import density
from biomegrid import BiomeGrid
from biomes import BIOMES, DESERT, FOREST, HILLS, OCEAN, PLAINS
from blocks import AIR, BLOCK_ID
from errors import DegenerateWeightSum, MissingHalo

SEED = 99
R = 7
SAND = BLOCK_ID['Sand']
WATER = BLOCK_ID['Water']
GRASS = BLOCK_ID['Grass']
STONE = BLOCK_ID['Stone']


def _region_grid(dim, fill, origin=(0, 0)):
    '''Grid covering a dim x dim region at origin plus the window halo.'''
    data = np.full((dim + 2 * R, dim + 2 * R), fill, dtype=np.uint8)
    return data, (origin[0] - R, origin[1] - R)


def _mixed_grid(dim, origin=(0, 0), seed=5):
    rng = np.random.RandomState(seed)
    coarse = rng.choice([OCEAN, PLAINS, DESERT, FOREST], size=((dim + 2 * R) // 4 + 1,) * 2)
    data = np.kron(coarse, np.ones((4, 4), dtype=int))[:dim + 2 * R, :dim + 2 * R]
    return BiomeGrid(data, (origin[0] - R, origin[1] - R))


def test_window_kernel():
    dx, dz, weights, nearest = density.window_kernel(7, 10.0)
    assert dx.size == 225
    assert (dx[0], dz[0]) == (-7, -7)
    assert (dx[1], dz[1]) == (-7, -6)
    assert weights.dtype == np.float32
    assert weights[112] == np.float32(10.0)
    assert np.isclose(weights[113], 5.0)
    assert nearest[0] == 112
    assert weights.min() > 0


def test_uniform_grid_blends_to_catalog_values():
    for biome in (PLAINS, FOREST, DESERT):
        data, gorigin = _region_grid(8, biome, origin=(16, -8))
        params = density.column_parameters(BiomeGrid(data, gorigin), (16, -8), (8, 8))
        assert (params.amplitude == np.float32(BIOMES[biome].amplitude)).all()
        assert (params.midpoint == np.float32(BIOMES[biome].midpoint)).all()
        assert (params.frequency == np.float32(BIOMES[biome].frequency)).all()
        assert (params.block == BIOMES[biome].block).all()


def test_blend_is_a_weighted_mean():
    data, gorigin = _region_grid(8, PLAINS)
    data[:R + 4, :] = DESERT
    params = density.column_parameters(BiomeGrid(data, gorigin), (0, 0), (8, 8))
    lo = min(BIOMES[PLAINS].midpoint, BIOMES[DESERT].midpoint)
    hi = max(BIOMES[PLAINS].midpoint, BIOMES[DESERT].midpoint)
    assert (params.midpoint > lo).all() and (params.midpoint < hi).all()
    # columns nearer the desert half lean towards it
    assert abs(params.midpoint[0, 0] - BIOMES[DESERT].midpoint) < abs(params.midpoint[7, 0] - BIOMES[DESERT].midpoint)
    assert params.biome[0, 0] == DESERT
    assert params.biome[7, 0] == PLAINS


def test_nearest_land_block_for_water_columns():
    data, gorigin = _region_grid(4, OCEAN)
    data[R + 1, R] = DESERT
    data[R + 3, R + 3] = FOREST
    params = density.column_parameters(BiomeGrid(data, gorigin), (0, 0), (4, 4))
    assert params.is_water[0, 0]
    assert params.replacement[0, 0] == SAND
    assert params.replacement[3, 2] == BIOMES[FOREST].block
    assert params.replacement[1, 0] == BIOMES[DESERT].block
    # land column keeps its own block
    assert not params.is_water[1, 0]


def test_water_column_without_land_keeps_water():
    data, gorigin = _region_grid(4, OCEAN)
    params = density.column_parameters(BiomeGrid(data, gorigin), (0, 0), (4, 4))
    assert (params.replacement == WATER).all()


def test_water_replacement_with_single_land_neighbour():
    dim = 16
    origin = (0, 56, 0)
    data, gorigin = _region_grid(dim, OCEAN)
    data[R + 1, R] = DESERT
    blocks = density.generate_region_blocks(SEED, origin, BiomeGrid(data, gorigin), dim, workers=1)
    column = blocks[0, 0, :]
    ys = origin[1] + np.arange(dim)
    solid = column != AIR
    above = ys >= config.SEA_LEVEL
    assert (column[solid & above] == SAND).all()
    assert (column[solid & ~above] == WATER).all()
    # well below the blended midpoint the column is solid water
    assert (column[ys < 57] == WATER).all()


def test_water_column_at_shore_is_land_above_sea_level():
    dim = 16
    origin = (0, 56, 0)
    data, gorigin = _region_grid(dim, DESERT)
    data[R, R] = OCEAN
    blocks = density.generate_region_blocks(SEED, origin, BiomeGrid(data, gorigin), dim, workers=1)
    column = blocks[0, 0, :]
    sea = config.SEA_LEVEL - origin[1]
    assert column[sea - 1] == WATER
    assert column[sea] == SAND
    assert (column[:sea] == WATER).all()
    # neighbouring desert columns are sand all the way
    assert (blocks[1, 0, :sea + 1] == SAND).all()


def test_air_above_gradient_bound():
    dim = 16
    data, gorigin = _region_grid(dim, PLAINS)
    grid = BiomeGrid(data, gorigin)
    plains = BIOMES[PLAINS]
    top = plains.midpoint - 1 + 1.0 / plains.amplitude
    high = density.generate_region_blocks(SEED, (0, int(top) + 3, 0), grid, dim, workers=1)
    assert (high == AIR).all()
    low = density.generate_region_blocks(SEED, (0, int(plains.midpoint) - 30, 0), grid, dim, workers=1)
    assert (low == GRASS).all()


def test_surface_varies_with_noise():
    dim = 32
    data, gorigin = _region_grid(dim, HILLS)
    blocks = density.generate_region_blocks(SEED, (0, 78, 0), BiomeGrid(data, gorigin), dim, workers=1)
    filled = (blocks != AIR).sum(axis=2)
    assert filled.min() < filled.max()
    assert set(np.unique(blocks).tolist()) <= {AIR, STONE}


def test_missing_halo():
    dim = 8
    grid = BiomeGrid(np.full((dim, dim), PLAINS), (0, 0))
    with pytest.raises(MissingHalo):
        density.generate_region_blocks(SEED, (0, 0, 0), grid, dim, workers=1)
    data, gorigin = _region_grid(dim, PLAINS)
    grid = BiomeGrid(data, gorigin)
    with pytest.raises(MissingHalo):
        density.generate_region_blocks(SEED, (1, 0, 0), grid, dim, workers=1)


def test_degenerate_weight_sum(monkeypatch):
    monkeypatch.setattr(config, 'WINDOW_WEIGHT', 0.0)
    data, gorigin = _region_grid(4, PLAINS)
    with pytest.raises(DegenerateWeightSum):
        density.column_parameters(BiomeGrid(data, gorigin), (0, 0), (4, 4))


def test_region_is_deterministic():
    dim = 16
    grid = _mixed_grid(dim, origin=(32, -16))
    a = density.generate_region_blocks(SEED, (32, 48, -16), grid, dim, workers=1)
    b = density.generate_region_blocks(SEED, (32, 48, -16), grid, dim, workers=1)
    assert a.dtype == np.uint16
    assert a.shape == (dim, dim, dim)
    assert np.count_nonzero(a != b) == 0


def test_worker_count_does_not_change_result(monkeypatch):
    dim = 16
    grid = _mixed_grid(dim)
    single = density.generate_region_blocks(SEED, (0, 50, 0), grid, dim, workers=1)
    monkeypatch.setattr(config, 'DENSITY_SLAB', 3)
    pooled = density.generate_region_blocks(SEED, (0, 50, 0), grid, dim, workers=4)
    assert np.array_equal(single, pooled)


def test_sub_window_columns_match_full_region():
    dim = 16
    grid = _mixed_grid(dim, seed=8)
    full = density.column_parameters(grid, (0, 0), (dim, dim))
    part = density.column_parameters(grid, (4, 6), (5, 3))
    assert np.array_equal(full.amplitude[4:9, 6:9], part.amplitude)
    assert np.array_equal(full.midpoint[4:9, 6:9], part.midpoint)
    assert np.array_equal(full.replacement[4:9, 6:9], part.replacement)


def test_uniform_ocean_is_water_up_to_sea_level():
    dim = 16
    data, gorigin = _region_grid(dim, OCEAN)
    grid = BiomeGrid(data, gorigin)
    below = density.generate_region_blocks(SEED, (0, config.SEA_LEVEL - dim, 0), grid, dim, workers=1)
    assert (below == WATER).all()
    above = density.generate_region_blocks(SEED, (0, config.SEA_LEVEL, 0), grid, dim, workers=1)
    assert set(np.unique(above).tolist()) <= {AIR, WATER}
    # the surface never rises more than two blocks over sea level
    assert (above[:, :, 2:] == AIR).all()


def test_noise_coordinates_stay_distinct_far_from_origin():
    far = 2**26
    coords = density.noise_coordinate(np.arange(far, far + 4))
    assert coords.dtype == np.float32
    assert len(set(coords.tolist())) == 4
    assert np.array_equal(density.noise_coordinate(np.arange(-3, 3)), np.arange(-3, 3, dtype=np.float32))
    # noise inputs repeat every NOISE_WRAP blocks
    dim = 16
    data, _ = _region_grid(dim, HILLS)
    near = density.generate_region_blocks(SEED, (0, 78, 0), BiomeGrid(data, (-R, -R)), dim, workers=1)
    wrapped = density.generate_region_blocks(SEED, (far, 78, 0), BiomeGrid(data, (far - R, -R)), dim, workers=1)
    assert np.array_equal(near, wrapped)
