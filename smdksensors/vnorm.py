"""Offset/sensitivity normalisation and averaging of vector buffers."""

from __future__ import annotations

from typing import MutableSequence, Sequence

from smdksensors.vectors import EPSILON, FusionError, Vector, buf_shift


def vb_norm(
    vdata: Sequence[Vector],
    nbuf: int,
    offset: Vector,
    sensitivity: Vector,
    target: float,
    vvec: MutableSequence[Vector],
) -> None:
    """Normalise the newest ``nbuf`` raw vectors into ``vvec``, in place.

    ``vvec`` is shifted by ``nbuf`` first; each new entry is
    ``(raw - offset) / sensitivity * target``.
    """
    ndata = len(vdata)
    nvec = len(vvec)
    if ndata <= 0 or nvec <= 0 or nbuf <= 0:
        raise FusionError("buffer sizes must be positive")
    if ndata < nbuf or nvec < nbuf:
        raise FusionError("nbuf exceeds buffer size")
    if any(component <= EPSILON for component in sensitivity) or target <= 0:
        raise FusionError("sensitivity and target must be positive")

    buf_shift(vvec, nbuf)
    for i, raw in enumerate(vdata[:nbuf]):
        vvec[i] = Vector(
            *(
                (r - o) / s * target
                for r, o, s in zip(raw, offset, sensitivity)
            )
        )


def vb_ave(vvec: Sequence[Vector], nave: int) -> Vector:
    """Average up to ``nave`` leading vectors, stopping at the first unfilled slot."""
    nvec = len(vvec)
    if nave <= 0 or nvec <= 0 or nvec < nave:
        raise FusionError("invalid averaging size")

    sx = sy = sz = 0.0
    count = 0
    for v in vvec[:nave]:
        if v.is_initial():
            break
        sx += v.x
        sy += v.y
        sz += v.z
        count += 1
    if count == 0:
        return Vector(0.0, 0.0, 0.0)
    return Vector(sx / count, sy / count, sz / count)