"""STL export for tessellated meshes."""

from __future__ import annotations

import struct

import numpy as np

from .backend import Mesh

_HEADER_SIZE = 80
_STRUCT_TRIANGLE = struct.Struct('<12fH')


def write_stl(mesh: Mesh, path_or_file, *, binary: bool = True, name: str = 'covariant') -> None:
    """Write ``mesh`` to STL.

    ``path_or_file`` can be a filesystem path or an open binary/text stream.
    """

    triangles = mesh.triangles()
    normals = mesh.face_normals()

    if binary:
        _write_binary(triangles, normals, path_or_file, name)
    else:
        _write_ascii(triangles, normals, path_or_file, name)


def _write_binary(triangles: np.ndarray, normals: np.ndarray, path_or_file, name: str) -> None:
    close_when_done = False
    if hasattr(path_or_file, 'write'):
        stream = path_or_file
    else:
        stream = open(path_or_file, 'wb')
        close_when_done = True

    try:
        header = (name[:_HEADER_SIZE]).encode('ascii', errors='replace')
        header = header.ljust(_HEADER_SIZE, b' ')
        stream.write(header)
        stream.write(struct.pack('<I', len(triangles)))

        for normal, tri in zip(normals, triangles):
            stream.write(_STRUCT_TRIANGLE.pack(*normal, *tri[0], *tri[1], *tri[2], 0))
    finally:
        if close_when_done:
            stream.close()


def _write_ascii(triangles: np.ndarray, normals: np.ndarray, path_or_file, name: str) -> None:
    close_when_done = False
    if hasattr(path_or_file, 'write'):
        stream = path_or_file
    else:
        stream = open(path_or_file, 'w', encoding='ascii')
        close_when_done = True

    try:
        print(f"solid {name}", file=stream)
        for n, tri in zip(normals, triangles):
            print(f"  facet normal {n[0]:.6e} {n[1]:.6e} {n[2]:.6e}", file=stream)
            print("    outer loop", file=stream)
            for v in tri:
                print(f"      vertex {v[0]:.6e} {v[1]:.6e} {v[2]:.6e}", file=stream)
            print("    endloop", file=stream)
            print("  endfacet", file=stream)
        print(f"endsolid {name}", file=stream)
    finally:
        if close_when_done:
            stream.close()


def read_stl_triangle_count(path) -> int:
    """Number of facets in an STL file, binary or ASCII."""
    with open(path, 'rb') as f:
        data = f.read()
    if data[:5].lower() == b'solid' and b'facet' in data[_HEADER_SIZE:]:
        return data.count(b'endfacet')
    return struct.unpack('<I', data[_HEADER_SIZE:_HEADER_SIZE + 4])[0]
