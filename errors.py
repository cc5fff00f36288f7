'''
errors.py -- failures raised by terrain generation

All of these indicate a misconfigured pipeline or a caller bug rather than a
transient condition: generating the same request again fails the same way.
'''


class WorldGenError(Exception):
    pass


class InvalidBiomeId(WorldGenError, IndexError):
    def __init__(self, biome_id, count):
        self.biome_id = biome_id
        self.count = count
        super().__init__(f"biome id {biome_id} out of range (catalog has {count} biomes)")


class MissingHalo(WorldGenError):
    """A grid does not cover the cells a pass or the density stage needs."""


class DegenerateWeightSum(WorldGenError, ZeroDivisionError):
    """The blending window around a column has zero total weight."""


class RegionHandedOff(WorldGenError):
    """The region buffers were already handed off to a consumer."""
