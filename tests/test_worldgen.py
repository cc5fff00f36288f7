import os
import sys

import numpy as np

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

import biomegrid
import config
import worldgen
from biomegrid import BiomeGrid
from biomes import BIOMES, OCEAN
from blocks import AIR, BLOCK_NAMES
from errors import MissingHalo
from worldgen import WorldGenerator

DIM = 16


def _generator(seed=42):
    return WorldGenerator(seed=seed, dim=DIM, workers=1)


def test_region_is_deterministic():
    a = _generator().generate_region((0, 48, 0))
    b = _generator().generate_region((0, 48, 0))
    assert a.origin == (0, 48, 0)
    assert a.blocks.shape == (DIM, DIM, DIM)
    assert np.array_equal(a.blocks, b.blocks)
    assert np.array_equal(a.biomes, b.biomes)


def test_replay_on_same_generator():
    gen = _generator()
    first = gen.generate_region((-16, 48, 32))
    gen.generate_region((0, 48, 0))
    again = gen.generate_region((-16, 48, 32))
    assert np.array_equal(first.blocks, again.blocks)


def test_region_biomes_match_biome_grid():
    gen = _generator()
    region = gen.generate_region((32, 0, -16))
    assert region.biomes.shape == (DIM, DIM)
    assert region.biomes.max() < len(BIOMES)
    grid = gen.biome_grid((32, 0, -16), halo=0)
    assert grid.origin == (32, -16)
    assert np.array_equal(region.biomes, grid.data)


def test_region_contents_are_known_blocks():
    region = _generator().generate_region((0, 0, 0))
    assert region.blocks.max() < len(BLOCK_NAMES)
    # far below every biome midpoint nothing is air
    assert (region.blocks != AIR).all()


class _BrokenGenerator(WorldGenerator):
    bad = (DIM, 48, 0)

    def biome_grid(self, origin, halo=None, seed_grid=None):
        if tuple(origin) == self.bad:
            halo = 0
        return super().biome_grid(origin, halo, seed_grid)


def test_failed_region_does_not_affect_others():
    gen = _BrokenGenerator(seed=42, dim=DIM, workers=1)
    origins = [(0, 48, 0), _BrokenGenerator.bad, (0, 48, DIM)]
    results = gen.generate_regions(origins, max_workers=2)
    assert set(results) == set(origins)
    assert isinstance(results[_BrokenGenerator.bad], MissingHalo)
    good = _generator().generate_region((0, 48, 0))
    assert np.array_equal(results[(0, 48, 0)].blocks, good.blocks)
    assert results[(0, 48, DIM)].blocks.shape == (DIM, DIM, DIM)


def test_module_level_generator(monkeypatch):
    monkeypatch.setattr(worldgen, 'world_generator', None)
    gen = worldgen.initialize_world_generator(seed=7, dim=DIM)
    assert worldgen.world_generator is gen
    assert gen.seed == 7
    region = worldgen.generate_region((0, 48, 0))
    assert np.array_equal(region.blocks, WorldGenerator(seed=7, dim=DIM).generate_region((0, 48, 0)).blocks)


def test_supplied_seed_grid():
    gen = _generator()
    origin = (0, 48, 0)
    halo = config.WINDOW_RADIUS
    window = gen.sequence.plan((-halo, -halo), (DIM + 2 * halo, DIM + 2 * halo))[0]
    mask = biomegrid.seed_grid(gen.seed, *window)
    supplied = gen.generate_region(origin, seed_grid=mask)
    assert np.array_equal(supplied.blocks, gen.generate_region(origin).blocks)
    ocean = BiomeGrid(np.zeros(window[1], dtype=np.uint8), window[0])
    region = gen.generate_region(origin, seed_grid=ocean)
    assert (region.biomes == OCEAN).all()


class _CountingGenerator(WorldGenerator):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.calls = []

    def generate_region(self, origin, seed_grid=None):
        self.calls.append(tuple(origin))
        return super().generate_region(origin, seed_grid)


def test_duplicate_origins_generated_once():
    gen = _CountingGenerator(seed=42, dim=DIM, workers=1)
    results = gen.generate_regions([(0, 48, 0), (0, 48, 0), [0, 48, 0]], max_workers=2)
    assert list(results) == [(0, 48, 0)]
    assert gen.calls == [(0, 48, 0)]
