import numpy

# Storage type of block ids in region buffers.
BLOCK_DTYPE = numpy.uint16

AIR = 0


class Block(object):
    name = None
    solid = True
    # Preview color (RGB) used by debug dumps.
    color = (255, 255, 255)


class Stone(Block):
    name = 'Stone'
    color = (128, 128, 128)


class Dirt(Block):
    name = 'Dirt'
    color = (134, 96, 67)


class Grass(Block):
    name = 'Grass'
    color = (77, 164, 44)


class Sand(Block):
    name = 'Sand'
    color = (219, 207, 163)


class Melium(Block):
    name = 'Melium'
    color = (60, 110, 40)


class Water(Block):
    name = 'Water'
    solid = False
    color = (40, 90, 128)


# Explicit ordering keeps block IDs stable across runs; id 0 is air.
BLOCKS = [
    Stone,
    Dirt,
    Grass,
    Sand,
    Melium,
    Water,
]
i = 1
BLOCK_ID = {'Air': AIR}
for x in BLOCKS:
    BLOCK_ID[x.name] = i
    i+=1
BLOCK_NAMES = ['Air'] + [x.name for x in BLOCKS]
BLOCK_SOLID = numpy.array([False] + [x.solid for x in BLOCKS])
BLOCK_COLORS = numpy.array([(0, 0, 0)] + [x.color for x in BLOCKS], dtype=numpy.uint8)
BLOCK_SOLID.flags.writeable = False
BLOCK_COLORS.flags.writeable = False
