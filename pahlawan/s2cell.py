"""Hierarchical cell identifiers on the sphere (S2 cell ids).

Implements the parts of the S2 cell hierarchy used for geographic sharding:
converting coordinates to 64-bit cell ids, moving up the hierarchy, finding
neighbouring cells and rendering compact tokens.
"""

from __future__ import annotations

import math

MAX_LEVEL = 30
DEFAULT_SHARD_LEVEL = 13

_POS_BITS = 2 * MAX_LEVEL + 1
_MAX_SIZE = 1 << MAX_LEVEL
_MAX_SI_TI = 1 << (MAX_LEVEL + 1)
_SWAP = 1
_INVERT = 2
_IJ_TO_POS = ((0, 1, 3, 2), (0, 3, 1, 2), (2, 3, 1, 0), (2, 1, 3, 0))
_POS_TO_IJ = ((0, 1, 3, 2), (0, 2, 3, 1), (3, 2, 0, 1), (3, 1, 0, 2))
_POS_TO_ORIENTATION = (_SWAP, 0, 0, _INVERT | _SWAP)
_UINT64_LIMIT = 1 << 64


def _st_to_uv(s: float) -> float:
    if s >= 0.5:
        return (1.0 / 3.0) * (4 * s * s - 1)
    return (1.0 / 3.0) * (1 - 4 * (1 - s) * (1 - s))


def _uv_to_st(u: float) -> float:
    if u >= 0:
        return 0.5 * math.sqrt(1 + 3 * u)
    return 1 - 0.5 * math.sqrt(1 - 3 * u)


def _st_to_ij(s: float) -> int:
    return max(0, min(_MAX_SIZE - 1, math.floor(_MAX_SIZE * s)))


def _face_uv_to_xyz(face: int, u: float, v: float) -> tuple[float, float, float]:
    if face == 0:
        return 1.0, u, v
    if face == 1:
        return -u, 1.0, v
    if face == 2:
        return -u, -v, 1.0
    if face == 3:
        return -1.0, -v, -u
    if face == 4:
        return v, -1.0, -u
    return v, u, -1.0


def _xyz_to_face_uv(x: float, y: float, z: float) -> tuple[int, float, float]:
    ax, ay, az = abs(x), abs(y), abs(z)
    if ax > ay:
        axis = 0 if ax > az else 2
    else:
        axis = 1 if ay > az else 2
    face = axis + 3 if (x, y, z)[axis] < 0 else axis

    if face == 0:
        return face, y / x, z / x
    if face == 1:
        return face, -x / y, z / y
    if face == 2:
        return face, -x / z, -y / z
    if face == 3:
        return face, z / x, y / x
    if face == 4:
        return face, z / y, -x / y
    return face, -y / z, -x / z


def _from_face_ij(face: int, i: int, j: int) -> CellID:
    n = face << (_POS_BITS - 1)
    orientation = face & _SWAP
    for k in range(MAX_LEVEL - 1, -1, -1):
        ij = (((i >> k) & 1) << 1) | ((j >> k) & 1)
        pos = _IJ_TO_POS[orientation][ij]
        n |= pos << (2 * k)
        orientation ^= _POS_TO_ORIENTATION[pos]
    return CellID(n * 2 + 1)


def _from_face_ij_wrap(face: int, i: int, j: int) -> CellID:
    # Project coordinates beyond the face boundary onto the adjacent face.
    i = max(-1, min(_MAX_SIZE, i))
    j = max(-1, min(_MAX_SIZE, j))
    scale = 1.0 / _MAX_SIZE
    limit = math.nextafter(1.0, 2.0)
    u = max(-limit, min(limit, scale * ((i << 1) + 1 - _MAX_SIZE)))
    v = max(-limit, min(limit, scale * ((j << 1) + 1 - _MAX_SIZE)))
    face, u, v = _xyz_to_face_uv(*_face_uv_to_xyz(face, u, v))
    return _from_face_ij(face, _st_to_ij(0.5 * (u + 1)), _st_to_ij(0.5 * (v + 1)))


def _from_face_ij_same(face: int, i: int, j: int, same_face: bool) -> CellID:
    if same_face:
        return _from_face_ij(face, i, j)
    return _from_face_ij_wrap(face, i, j)


def _size_ij(level: int) -> int:
    return 1 << (MAX_LEVEL - level)


class CellID(int):
    """A 64-bit identifier of a cell in the spherical cell hierarchy."""

    def __new__(cls, value: int) -> CellID:
        value = int(value)
        if not 0 <= value < _UINT64_LIMIT:
            raise ValueError(f"cell id out of range: {value}")
        return super().__new__(cls, value)

    def __repr__(self) -> str:
        return f"CellID({int(self)})"

    @classmethod
    def from_lat_lng(cls, lat: float, lng: float) -> CellID:
        """Return the leaf cell containing the point given in degrees."""
        phi = math.radians(lat)
        theta = math.radians(lng)
        cos_phi = math.cos(phi)
        x = math.cos(theta) * cos_phi
        y = math.sin(theta) * cos_phi
        z = math.sin(phi)
        face, u, v = _xyz_to_face_uv(x, y, z)
        return _from_face_ij(face, _st_to_ij(_uv_to_st(u)), _st_to_ij(_uv_to_st(v)))

    def face(self) -> int:
        """Return the cube face (0-5) the cell lies on."""
        return int(self) >> _POS_BITS

    def _lsb(self) -> int:
        value = int(self)
        return value & -value

    def level(self) -> int:
        """Return the subdivision level, 0 for a face and 30 for a leaf."""
        if not self:
            raise ValueError("cell id 0 is not a valid cell")
        return MAX_LEVEL - (self._lsb().bit_length() - 1) // 2

    def parent(self, level: int) -> CellID:
        """Return the ancestor of this cell at the given level."""
        if not 0 <= level <= self.level():
            raise ValueError(f"invalid parent level {level} for a level {self.level()} cell")
        lsb = 1 << (2 * (MAX_LEVEL - level))
        return CellID((int(self) & ~(lsb - 1)) | lsb)

    def _face_ij(self) -> tuple[int, int, int]:
        face = self.face()
        orientation = face & _SWAP
        i = j = 0
        value = int(self)
        for k in range(MAX_LEVEL - 1, -1, -1):
            pos = (value >> (2 * k + 1)) & 3
            ij = _POS_TO_IJ[orientation][pos]
            i = (i << 1) | (ij >> 1)
            j = (j << 1) | (ij & 1)
            orientation ^= _POS_TO_ORIENTATION[pos]
        return face, i, j

    def edge_neighbors(self) -> list[CellID]:
        """Return the four same-level cells sharing an edge with this one."""
        level = self.level()
        size = _size_ij(level)
        face, i, j = self._face_ij()
        return [
            _from_face_ij_wrap(face, i, j - size).parent(level),
            _from_face_ij_wrap(face, i + size, j).parent(level),
            _from_face_ij_wrap(face, i, j + size).parent(level),
            _from_face_ij_wrap(face, i - size, j).parent(level),
        ]

    def all_neighbors(self, level: int) -> list[CellID]:
        """Return all cells at ``level`` touching this cell's boundary."""
        if not self.level() <= level <= MAX_LEVEL:
            raise ValueError(f"neighbour level {level} must be between {self.level()} and {MAX_LEVEL}")
        face, i, j = self._face_ij()
        size = _size_ij(self.level())
        i &= -size
        j &= -size
        nbr_size = _size_ij(level)

        neighbors: list[CellID] = []
        k = -nbr_size
        while True:
            if k < 0:
                same_face = j + k >= 0
            elif k >= size:
                same_face = j + k < _MAX_SIZE
            else:
                same_face = True
                neighbors.append(
                    _from_face_ij_same(face, i + k, j - nbr_size, j - size >= 0).parent(level)
                )
                neighbors.append(
                    _from_face_ij_same(face, i + k, j + size, j + size < _MAX_SIZE).parent(level)
                )
            neighbors.append(
                _from_face_ij_same(face, i - nbr_size, j + k, same_face and i - size >= 0).parent(level)
            )
            neighbors.append(
                _from_face_ij_same(face, i + size, j + k, same_face and i + size < _MAX_SIZE).parent(level)
            )
            if k >= size:
                break
            k += nbr_size
        return neighbors

    def to_token(self) -> str:
        """Return the compact hexadecimal token of this cell."""
        token = f"{int(self):016x}".rstrip("0")
        return token or "X"

    def to_lat_lng(self) -> tuple[float, float]:
        """Return the cell centre as (latitude, longitude) in degrees."""
        face, i, j = self._face_ij()
        size = _size_ij(self.level())
        i &= -size
        j &= -size
        u = _st_to_uv((2 * i + size) / _MAX_SI_TI)
        v = _st_to_uv((2 * j + size) / _MAX_SI_TI)
        x, y, z = _face_uv_to_xyz(face, u, v)
        lat = math.degrees(math.atan2(z, math.sqrt(x * x + y * y)))
        lng = math.degrees(math.atan2(y, x))
        return lat, lng


def get_shard_id(lat: float, lon: float) -> int:
    """Return the shard cell id for a location at the default shard level."""
    return int(CellID.from_lat_lng(lat, lon).parent(DEFAULT_SHARD_LEVEL))


def get_nearby_shards(lat: float, lon: float) -> list[int]:
    """Return the shard of a location followed by its four edge neighbours."""
    cell = CellID.from_lat_lng(lat, lon).parent(DEFAULT_SHARD_LEVEL)
    return [int(cell), *(int(n) for n in cell.edge_neighbors())]