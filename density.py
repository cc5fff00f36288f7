'''
density.py -- turns a finished biome grid into the blocks of a region

Each column blends the parameters of the biomes around it (a 15x15 window,
weighted by inverse distance) so terrain height eases across biome borders.
Each voxel then evaluates 3D fBm noise against a vertical gradient around the
blended midpoint: negative density is solid, the rest is air.

Columns are split into slabs along x and slabs run on a thread pool. A slab
only reads the shared grid and catalog and writes its own slice of the
output, and every reduction runs in a fixed order, so the result does not
depend on the number of workers.
'''

import concurrent.futures
import functools
from collections import namedtuple

import numpy

import config
import logutil
from biomes import (
    BIOMES,
    BIOME_AMPLITUDE,
    BIOME_BLOCK,
    BIOME_FREQUENCY,
    BIOME_IS_WATER,
    BIOME_MIDPOINT,
)
from blocks import AIR, BLOCK_DTYPE
from errors import DegenerateWeightSum
from noise import fbm3d

ColumnParameters = namedtuple(
    'ColumnParameters',
    ['biome', 'frequency', 'amplitude', 'midpoint', 'block', 'replacement', 'is_water'],
)


@functools.lru_cache(maxsize=8)
def window_kernel(radius, weight):
    '''
    Offsets (dx, dz) of the sampling window in row-major order, their
    weights weight / (distance + 1) as float32, and the sample order by
    increasing distance (ties by window index) used for the nearest search.
    '''
    side = numpy.arange(-radius, radius + 1)
    dx, dz = numpy.meshgrid(side, side, indexing='ij')
    dx = dx.ravel()
    dz = dz.ravel()
    dist2 = dx*dx + dz*dz
    dist = numpy.sqrt(dist2.astype(numpy.float32))
    weights = numpy.float32(weight) / (dist + numpy.float32(1.0))
    nearest = numpy.lexsort((numpy.arange(dx.size), dist2))
    for arr in (dx, dz, weights, nearest):
        arr.flags.writeable = False
    return dx, dz, weights, nearest


def column_parameters(grid, origin, shape):
    '''
    Blend biome parameters for the `shape` columns starting at block column
    `origin` (x, z). The grid must cover those columns plus the window
    radius on every side.
    '''
    radius = getattr(config, 'WINDOW_RADIUS', 7)
    weight = getattr(config, 'WINDOW_WEIGHT', 10.0)
    w, d = shape
    window = grid.crop((origin[0] - radius, origin[1] - radius), (w + 2*radius, d + 2*radius))
    ids = window.data
    dx, dz, weights, nearest = window_kernel(radius, float(weight))

    def sample(k):
        x0 = radius + dx[k]
        z0 = radius + dz[k]
        return ids[x0:x0 + w, z0:z0 + d]

    # Total weight per biome, accumulated in window order.
    biome_range = numpy.arange(len(BIOMES), dtype=ids.dtype)[:, None, None]
    weight_by_biome = numpy.zeros((len(BIOMES), w, d), dtype=numpy.float32)
    for k in range(weights.size):
        weight_by_biome += (sample(k)[None] == biome_range) * weights[k]

    total = numpy.zeros((w, d), dtype=numpy.float32)
    for b in range(len(BIOMES)):
        total += weight_by_biome[b]
    if not (total > 0).all():
        raise DegenerateWeightSum(
            f"window weights sum to zero for columns at {tuple(origin)} size {tuple(shape)}")

    amplitude = numpy.zeros((w, d), dtype=numpy.float32)
    midpoint = numpy.zeros((w, d), dtype=numpy.float32)
    for b in range(len(BIOMES)):
        share = weight_by_biome[b] / total
        amplitude += share * BIOME_AMPLITUDE[b]
        midpoint += share * BIOME_MIDPOINT[b]

    centre = ids[radius:radius + w, radius:radius + d]
    block = BIOME_BLOCK[centre]
    is_water = BIOME_IS_WATER[centre]

    # Water columns take the block of the nearest land sample above sea level.
    replacement = block.copy()
    if is_water.any():
        found = numpy.zeros((w, d), dtype=bool)
        for k in nearest:
            s = sample(k)
            hit = ~BIOME_IS_WATER[s] & ~found
            replacement = numpy.where(hit, BIOME_BLOCK[s], replacement)
            found |= hit
            if found.all():
                break

    return ColumnParameters(
        biome=centre,
        frequency=BIOME_FREQUENCY[centre],
        amplitude=amplitude,
        midpoint=midpoint,
        block=block,
        replacement=replacement,
        is_water=is_water,
    )


def noise_coordinate(values):
    '''
    Integer world coordinates as float32 noise inputs. Wrapped into
    [-NOISE_WRAP/2, NOISE_WRAP/2) so neighbouring blocks stay distinct
    after the cast; the wrap seam lies far from the origin.
    '''
    period = int(getattr(config, 'NOISE_WRAP', 1 << 20))
    half = period // 2
    values = numpy.asarray(values, dtype=numpy.int64)
    return ((values + half) % period - half).astype(numpy.float32)


def _generate_slab(seed, params, origin, start, stop, dim):
    '''Blocks for region columns start <= x < stop, shape (stop-start, dim, dim).'''
    octaves = getattr(config, 'NOISE_OCTAVES', 2)
    lacunarity = getattr(config, 'NOISE_LACUNARITY', 2.0)
    gain = getattr(config, 'NOISE_GAIN', 0.5)
    choice_freq = numpy.float32(getattr(config, 'CHOICE_FREQUENCY', 0.005))
    offset = numpy.float32(getattr(config, 'SECOND_FIELD_OFFSET', 1000.0))
    steepness = numpy.float32(getattr(config, 'BELOW_MIDPOINT_STEEPNESS', 4.0))
    sea_level = getattr(config, 'SEA_LEVEL', 64)

    ox, oy, oz = origin
    wx = noise_coordinate(numpy.arange(start, stop, dtype=numpy.int64) + ox)[:, None, None]
    wz = noise_coordinate(numpy.arange(dim, dtype=numpy.int64) + oz)[None, :, None]
    wy_int = numpy.arange(dim, dtype=numpy.int64) + oy
    ny = noise_coordinate(wy_int)[None, None, :]
    wy = wy_int.astype(numpy.float32)[None, None, :]

    cols = slice(start, stop)
    freq = params.frequency[cols][:, :, None]
    px, py, pz = wx*freq, ny*freq, wz*freq
    a = fbm3d(seed, px, py, pz, octaves, lacunarity, gain)
    b = fbm3d(seed, px, py + offset, pz, octaves, lacunarity, gain)
    choice = fbm3d(seed + 1, wx*choice_freq, ny*choice_freq, wz*choice_freq,
                   octaves, lacunarity, gain)
    t = choice*numpy.float32(0.5) + numpy.float32(0.5)
    noise = a + (b - a)*t

    amplitude = params.amplitude[cols][:, :, None]
    midpoint = params.midpoint[cols][:, :, None]
    gradient = (wy - midpoint + 1)*amplitude
    gradient = numpy.where(gradient < 0, gradient*steepness, gradient)
    density = -numpy.abs(noise) + gradient

    above_sea = (wy_int >= sea_level)[None, None, :]
    use_replacement = params.is_water[cols][:, :, None] & above_sea
    block = numpy.where(use_replacement,
                        params.replacement[cols][:, :, None],
                        params.block[cols][:, :, None])
    return numpy.where(density < 0, block, AIR).astype(BLOCK_DTYPE)


def _slabs(dim, size):
    size = max(1, int(size))
    return [(s, min(s + size, dim)) for s in range(0, dim, size)]


def generate_region_blocks(seed, origin, grid, dim=None, workers=None):
    '''
    Blocks of the cubic region of side `dim` at world `origin` (x, y, z),
    as a uint16 array indexed [x, z, y]. `grid` must cover the region's
    columns plus the blending window radius.
    '''
    if dim is None:
        dim = getattr(config, 'REGION_DIM', 256)
    if dim <= 0:
        raise ValueError(f"region dim must be positive, got {dim}")
    if workers is None:
        workers = getattr(config, 'DENSITY_WORKERS', 1)
    origin = tuple(int(v) for v in origin)

    with logutil.timed("DENSITY", f"region origin={origin} dim={dim}"):
        params = column_parameters(grid, (origin[0], origin[2]), (dim, dim))
        blocks = numpy.zeros((dim, dim, dim), dtype=BLOCK_DTYPE)
        slabs = _slabs(dim, getattr(config, 'DENSITY_SLAB', 4))
        if not workers or workers <= 1 or len(slabs) == 1:
            for start, stop in slabs:
                blocks[start:stop] = _generate_slab(seed, params, origin, start, stop, dim)
            return blocks

        with concurrent.futures.ThreadPoolExecutor(
                max_workers=workers, thread_name_prefix="Density") as executor:
            futures = {
                executor.submit(_generate_slab, seed, params, origin, start, stop, dim): (start, stop)
                for start, stop in slabs
            }
            try:
                for fut in concurrent.futures.as_completed(futures):
                    start, stop = futures[fut]
                    blocks[start:stop] = fut.result()
            except BaseException:
                for fut in futures:
                    fut.cancel()
                raise
        return blocks
