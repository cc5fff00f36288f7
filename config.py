# Region size in blocks along each axis (x, y and z).
REGION_DIM = 256
# Regions are handed off as cubes of CHUNK_DIM blocks.
CHUNK_DIM = 16

# World Y of the water surface. Water columns above it take a neighbouring land block.
SEA_LEVEL = 64

# Biome blending window: (2*WINDOW_RADIUS+1)^2 samples around each column.
WINDOW_RADIUS = 7
# Weight of a sample is WINDOW_WEIGHT / (distance + 1).
WINDOW_WEIGHT = 10.0

# Terrain noise
NOISE_OCTAVES = 2
NOISE_LACUNARITY = 2.0
NOISE_GAIN = 0.5
# Frequency of the field that blends the two terrain noise samples.
CHOICE_FREQUENCY = 0.005
# Vertical offset separating the second terrain sample from the first.
SECOND_FIELD_OFFSET = 1000.0
# Gradient multiplier below the biome midpoint (cliffs instead of slopes).
BELOW_MIDPOINT_STEEPNESS = 4.0
# Terrain noise inputs repeat every NOISE_WRAP blocks (kept well below 2**24
# so float32 still tells neighbouring blocks apart).
NOISE_WRAP = 1 << 20

# Biome grid seed layer
# Chance that a coarse seed cell is land.
LAND_CHANCE = 0.5
# Frequency of the noise choosing a land biome at the land stage.
LAND_FREQUENCY = 0.35

# Worker threads for the density stage (None or 1 runs on the calling thread).
DENSITY_WORKERS = 4
# Columns along x handled by one density task.
DENSITY_SLAB = 4
# Regions generated concurrently by WorldGenerator.generate_regions.
REGION_WORKERS = 2

# Enable ANSI colors in logs.
LOG_COLOR = True
# Minimum level printed: DEBUG, INFO, WARN or ERROR.
LOG_LEVEL = "INFO"
# Log stage timings (biome grid, density, assembly).
LOG_TIMINGS = True
