'''
worldgen.py -- seed + region origin -> finished region

Runs the biome grid sequence for the region's columns (plus the blending
halo), the density stage on that grid, and packs the result into a Region.
Given the same seed, the same origin always produces the same region.
'''

import concurrent.futures
import time

import config
import logutil
from biomegrid import BiomeSequence
from density import generate_region_blocks
from errors import WorldGenError
from region import Region


class WorldGenerator(object):
    def __init__(self, seed=None, dim=None, workers=None, sequence=None):
        if seed is None:
            seed = int(time.time())
        self.seed = int(seed)
        self.dim = dim if dim is not None else getattr(config, 'REGION_DIM', 256)
        self.workers = workers
        self.sequence = sequence if sequence is not None else BiomeSequence()

    def biome_grid(self, origin, halo=None, seed_grid=None):
        '''
        Biome grid for the columns of the region at `origin`, plus `halo` cells
        each side. `seed_grid` replaces the generated coarse ocean/land mask;
        it must cover the window `sequence.plan` asks for.
        '''
        if halo is None:
            halo = getattr(config, 'WINDOW_RADIUS', 7)
        x, z = origin[0], origin[2]
        size = self.dim + 2*halo
        if seed_grid is not None:
            return self.sequence.run(self.seed, seed_grid, (x - halo, z - halo), (size, size))
        return self.sequence.generate(self.seed, (x - halo, z - halo), (size, size))

    def generate_region(self, origin, seed_grid=None):
        origin = tuple(int(v) for v in origin)
        with logutil.timed("REGION", f"generate origin={origin}"):
            grid = self.biome_grid(origin, seed_grid=seed_grid)
            blocks = generate_region_blocks(self.seed, origin, grid, self.dim, self.workers)
            biomes = grid.crop((origin[0], origin[2]), (self.dim, self.dim)).data
            return Region(origin, blocks, biomes)

    def generate_regions(self, origins, max_workers=None):
        '''
        Generate several regions concurrently. Returns {origin: Region} with
        the raised WorldGenError in place of any region that failed; one
        failure does not affect the others.
        '''
        if max_workers is None:
            max_workers = getattr(config, 'REGION_WORKERS', 2)
        # Duplicates map to one result, so generate each origin once.
        origins = list(dict.fromkeys(tuple(int(v) for v in o) for o in origins))
        results = {}
        with concurrent.futures.ThreadPoolExecutor(
                max_workers=max(1, max_workers), thread_name_prefix="Region") as executor:
            futures = {executor.submit(self.generate_region, o): o for o in origins}
            for fut in concurrent.futures.as_completed(futures):
                origin = futures[fut]
                try:
                    results[origin] = fut.result()
                except WorldGenError as e:
                    logutil.log("WORLD", f"region {origin} failed: {e}", level="ERROR")
                    results[origin] = e
        return results


world_generator = None


def initialize_world_generator(seed=None, dim=None):
    global world_generator
    world_generator = WorldGenerator(seed=seed, dim=dim)
    logutil.log("WORLD", f"world generator seed={world_generator.seed} dim={world_generator.dim}")
    return world_generator


def generate_region(origin):
    """Generate the region at `origin` with the module-level generator."""
    global world_generator
    if world_generator is None:
        initialize_world_generator()
    return world_generator.generate_region(origin)


if __name__ == '__main__':
    import sys

    from biomegrid import biome_image
    from region import surface_image

    seed = int(sys.argv[1]) if len(sys.argv) > 1 else 12345
    dim = int(sys.argv[2]) if len(sys.argv) > 2 else 64
    gen = initialize_world_generator(seed=seed, dim=dim)
    region = gen.generate_region((0, 0, 0))
    heights = region.column_heights()
    print(region, 'heights', heights.min(), heights.max())
    surface_image(region).save('surface.png')
    biome_image(gen.biome_grid((0, 0, 0), halo=0)).save('region_biomes.png')
