"""
Joint angle extraction from pose snapshots.
"""
from __future__ import annotations

import logging
import math
from typing import Optional, Sequence

from .exercises import ExerciseDefinition
from .pose import PoseSnapshot

logger = logging.getLogger(__name__)

# Landmarks at or below this confidence are treated as not detected.
MIN_CONFIDENCE = 0.5


def angle_between(
    a: Sequence[float],
    b: Sequence[float],
    c: Sequence[float],
) -> Optional[float]:
    """Angle at b for triangle a-b-c in 3D, in degrees. None for degenerate geometry."""
    ba = (a[0] - b[0], a[1] - b[1], a[2] - b[2])
    bc = (c[0] - b[0], c[1] - b[1], c[2] - b[2])
    norm_ba = math.hypot(*ba)
    norm_bc = math.hypot(*bc)
    if norm_ba == 0.0 or norm_bc == 0.0:
        return None
    if not (math.isfinite(norm_ba) and math.isfinite(norm_bc)):
        return None
    # Unit vectors first so tiny or huge coordinates neither underflow nor overflow.
    ua = (ba[0] / norm_ba, ba[1] / norm_ba, ba[2] / norm_ba)
    uc = (bc[0] / norm_bc, bc[1] / norm_bc, bc[2] / norm_bc)
    cos_val = ua[0] * uc[0] + ua[1] * uc[1] + ua[2] * uc[2]
    cos_val = max(-1.0, min(1.0, cos_val))
    return math.degrees(math.acos(cos_val))


def extract_angle(
    snapshot: Optional[PoseSnapshot],
    definition: ExerciseDefinition,
) -> Optional[float]:
    """
    Joint angle (deg, 0..180) at the definition's vertex landmark.
    Returns None when a required landmark is missing, has confidence <= MIN_CONFIDENCE,
    or the joint vectors are degenerate.
    """
    if snapshot is None:
        return None
    points = []
    for lm_id in definition.landmarks:
        point = snapshot.get(lm_id)
        if point is None:
            logger.debug("angle unavailable: %s missing", lm_id.name)
            return None
        if point.confidence <= MIN_CONFIDENCE:
            logger.debug("angle unavailable: %s confidence %.2f", lm_id.name, point.confidence)
            return None
        points.append(point.position)
    angle = angle_between(*points)
    if angle is None:
        logger.debug("angle unavailable: degenerate geometry at %s", definition.vertex.name)
    return angle
