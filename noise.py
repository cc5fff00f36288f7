#
# Simplex noise for 2D and 3D, vectorized over numpy arrays.
#
# Based on example code by Stefan Gustavson (stegu@itn.liu.se).
# Optimisations by Peter Eastman (peastman@drizzle.stanford.edu).
#
# This code was placed in the public domain by its original author,
# Stefan Gustavson. You may use it as you see fit, but
# attribution is appreciated.
#
#
import functools
import numpy


grad3 = numpy.array([(1,1,0),(-1,1,0),(1,-1,0),(-1,-1,0),
                     (1,0,1),(-1,0,1),(1,0,-1),(-1,0,-1),
                     (0,1,1),(0,-1,1),(0,1,-1),(0,-1,-1)], dtype=numpy.float32)
grad3.flags.writeable = False

#Skewing and unskewing factors for 2 and 3 dimensions
F2 = numpy.float32(0.5*(3.0**0.5-1.0))
G2 = numpy.float32((3.0-3.0**0.5)/6.0)
F3 = numpy.float32(1.0/3.0)
G3 = numpy.float32(1.0/6.0)

MASK32 = 0xFFFFFFFF
MASK64 = (1 << 64) - 1

_U64 = numpy.uint64
_HASH_X = _U64(0x632BE59BD9B4E019)
_HASH_Z = _U64(0x9E3779B97F4A7C15)
_MIX1 = _U64(0xBF58476D1CE4E5B9)
_MIX2 = _U64(0x94D049BB133111EB)


def fold_seed(seed):
    """Fold an arbitrary (64-bit) integer seed into 32 bits."""
    seed = int(seed) & MASK64
    return (seed ^ (seed >> 32)) & MASK32


@functools.lru_cache(maxsize=64)
def permutation(seed):
    '''
    Permutation table for `seed`, doubled to 512 entries so lattice
    lookups never need to wrap. Tables are cached and read-only.
    '''
    p = numpy.random.RandomState(fold_seed(seed)).permutation(256)
    perm = p[numpy.arange(512) & 255].astype(numpy.int64)
    perm.flags.writeable = False
    return perm


def _as_f32(*arrays):
    return numpy.broadcast_arrays(*[numpy.asarray(a, dtype=numpy.float32) for a in arrays])


def _corner(gi, *offsets):
    t = numpy.float32(0.5)
    for d in offsets:
        t = t - d*d
    g = grad3[gi]
    dot = g[..., 0]*offsets[0]
    for axis in range(1, len(offsets)):
        dot = dot + g[..., axis]*offsets[axis]
    t2 = t*t
    return numpy.where(t < 0, numpy.float32(0), t2*t2*dot)


# 2D simplex noise
def _noise2(perm, xin, yin):
    # Skew the input space to determine which simplex cell we're in
    s = (xin+yin)*F2
    i = numpy.floor(xin+s)
    j = numpy.floor(yin+s)
    t = (i+j)*G2
    x0 = xin-(i-t) # The x,y distances from the cell origin
    y0 = yin-(j-t)
    # lower triangle, XY order: (0,0)->(1,0)->(1,1)
    # upper triangle, YX order: (0,0)->(0,1)->(1,1)
    lower = x0 > y0
    i1 = lower.astype(numpy.float32)
    j1 = 1 - i1
    x1 = x0 - i1 + G2
    y1 = y0 - j1 + G2
    x2 = x0 - 1 + 2*G2
    y2 = y0 - 1 + 2*G2

    # Work out the hashed gradient indices of the three simplex corners
    ii = i.astype(numpy.int64) & 255
    jj = j.astype(numpy.int64) & 255
    i1 = lower.astype(numpy.int64)
    j1 = 1 - i1
    gi0 = perm[ii+perm[jj]] % 12
    gi1 = perm[ii+i1+perm[jj+j1]] % 12
    gi2 = perm[ii+1+perm[jj+1]] % 12

    n = _corner(gi0, x0, y0) + _corner(gi1, x1, y1) + _corner(gi2, x2, y2)
    return numpy.clip(numpy.float32(70.0)*n, -1, 1)


# 3D simplex noise
def _noise3(perm, xin, yin, zin):
    s = (xin+yin+zin)*F3 # Very nice and simple skew factor for 3D
    i = numpy.floor(xin+s)
    j = numpy.floor(yin+s)
    k = numpy.floor(zin+s)
    t = (i+j+k)*G3
    x0 = xin-(i-t)
    y0 = yin-(j-t)
    z0 = zin-(k-t)
    # For the 3D case, the simplex shape is a slightly irregular tetrahedron.
    # Rank ordering of the offsets picks one of six.
    xy = x0>=y0
    yz = y0>=z0
    xz = x0>=z0
    i1 = xy&(yz|xz)
    i2 = xy | ~xy&yz&xz
    j1 = ~xy&yz
    j2 = xy&yz | ~xy
    k1 = xy&~yz&~xz | ~xy&~yz
    k2 = xy&~yz | ~xy&(~yz|~xz)

    f = numpy.float32
    x1 = x0 - i1.astype(f) + G3 # Offsets for second corner in (x,y,z) coords
    y1 = y0 - j1.astype(f) + G3
    z1 = z0 - k1.astype(f) + G3
    x2 = x0 - i2.astype(f) + 2*G3 # Offsets for third corner
    y2 = y0 - j2.astype(f) + 2*G3
    z2 = z0 - k2.astype(f) + 2*G3
    x3 = x0 - 1 + 3*G3 # Offsets for last corner
    y3 = y0 - 1 + 3*G3
    z3 = z0 - 1 + 3*G3

    ii = i.astype(numpy.int64) & 255
    jj = j.astype(numpy.int64) & 255
    kk = k.astype(numpy.int64) & 255
    i1, j1, k1 = i1.astype(numpy.int64), j1.astype(numpy.int64), k1.astype(numpy.int64)
    i2, j2, k2 = i2.astype(numpy.int64), j2.astype(numpy.int64), k2.astype(numpy.int64)
    gi0 = perm[ii+perm[jj+perm[kk]]] % 12
    gi1 = perm[ii+i1+perm[jj+j1+perm[kk+k1]]] % 12
    gi2 = perm[ii+i2+perm[jj+j2+perm[kk+k2]]] % 12
    gi3 = perm[ii+1+perm[jj+1+perm[kk+1]]] % 12

    n = (_corner(gi0, x0, y0, z0) + _corner(gi1, x1, y1, z1)
         + _corner(gi2, x2, y2, z2) + _corner(gi3, x3, y3, z3))
    # With the 0.5 kernel radius the raw sum peaks near 0.013; scale it to
    # just inside [-1,1]
    return numpy.clip(numpy.float32(76.0)*n, -1, 1)


class SimplexNoise:
    '''
    Seeded simplex noise. Holds nothing but the permutation table for its
    seed, so instances can be shared freely between threads.
    '''
    def __init__(self, seed=0):
        self.seed = seed
        self.perm = permutation(seed)

    def noise2(self, x, y):
        x, y = _as_f32(x, y)
        return _noise2(self.perm, x, y)

    def noise3(self, x, y, z):
        x, y, z = _as_f32(x, y, z)
        return _noise3(self.perm, x, y, z)

    def noise(self, Z):
        '''Noise at the points in Z, an array of shape (N, 2) or (N, 3).'''
        Z = numpy.asarray(Z, dtype=numpy.float32)
        if Z.shape[-1] == 2:
            return self.noise2(Z[..., 0], Z[..., 1])
        if Z.shape[-1] == 3:
            return self.noise3(Z[..., 0], Z[..., 1], Z[..., 2])
        raise ValueError(f"expected 2 or 3 coordinates per point, got {Z.shape[-1]}")


def noise2d(seed, x, y):
    return SimplexNoise(seed).noise2(x, y)


def noise3d(seed, x, y, z):
    return SimplexNoise(seed).noise3(x, y, z)


def fbm3d(seed, x, y, z, octaves=2, lacunarity=2.0, gain=0.5):
    '''
    Fractal Brownian motion: `octaves` layers of 3D noise, each at
    `lacunarity` times the frequency and `gain` times the amplitude of the
    previous one. Normalized by the total amplitude so the result stays
    in [-1, 1].
    '''
    if octaves < 1:
        raise ValueError("fbm needs at least one octave")
    x, y, z = _as_f32(x, y, z)
    perm = permutation(seed)
    total = numpy.zeros(x.shape, dtype=numpy.float32)
    amplitude = numpy.float32(1.0)
    frequency = numpy.float32(1.0)
    norm = numpy.float32(0.0)
    for _ in range(octaves):
        total += amplitude*_noise3(perm, x*frequency, y*frequency, z*frequency)
        norm += amplitude
        amplitude *= numpy.float32(gain)
        frequency *= numpy.float32(lacunarity)
    return total/norm


def random_u32(seed, x, z, salt=0):
    '''
    Stateless 32-bit hash of integer lattice coordinates, seed and salt
    (splitmix64 finalizer). Vectorized over x and z; the same inputs always
    give the same value, whatever order cells are visited in.
    '''
    x, z = numpy.broadcast_arrays(numpy.asarray(x, dtype=numpy.int64),
                                  numpy.asarray(z, dtype=numpy.int64))
    shape = x.shape
    hx = numpy.ravel(x).astype(numpy.uint64)
    hz = numpy.ravel(z).astype(numpy.uint64)
    key = _U64(((int(salt) * 0x94D049BB133111EB) ^ int(seed)) & MASK64)
    h = (hx*_HASH_X) ^ (hz*_HASH_Z) ^ key
    h = (h ^ (h >> _U64(30)))*_MIX1
    h = (h ^ (h >> _U64(27)))*_MIX2
    h = h ^ (h >> _U64(31))
    return (h >> _U64(32)).astype(numpy.uint32).reshape(shape)


def random_unit(seed, x, z, salt=0):
    '''Hash of (x, z) mapped to floats in [0, 1).'''
    return random_u32(seed, x, z, salt).astype(numpy.float64) / float(1 << 32)


if __name__ == '__main__':
    import sys
    import time
    from PIL import Image

    seed = int(sys.argv[1]) if len(sys.argv) > 1 else 3332
    t = time.time()
    xs, ys = numpy.mgrid[0:8:0.05, 0:8:0.05]
    n = noise2d(seed, xs, ys)
    print('noise2', time.time()-t)
    t = time.time()
    n3 = fbm3d(seed, xs, ys, numpy.full_like(xs, 0.5))
    print('fbm3', time.time()-t)
    print('STATS')
    print(n.min(), n.max(), numpy.average(n))
    print(n3.min(), n3.max(), numpy.average(n3))
    n = numpy.array((n - n.min()) / (n.max()-n.min())*255, dtype='u1')
    Image.fromarray(n, 'L').save('noise2.png')
