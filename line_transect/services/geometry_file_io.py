from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from line_transect.model.geometry_io import (
    LINE_STRING,
    MULTI_LINE_STRING,
    Feature,
    GeometryFormatError,
    make_feature,
)


def load_transect_feature(path: Path) -> Feature:
    """
    Read a transect from a GeoJSON file.

    Accepts a Feature, a bare LineString/MultiLineString geometry, or a
    FeatureCollection holding exactly one line feature.
    """
    try:
        payload = json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise GeometryFormatError(f"{path} is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise GeometryFormatError(f"{path} must contain a JSON object.")

    kind = payload.get("type")
    if kind == "FeatureCollection":
        features = [
            feature
            for feature in payload.get("features") or []
            if isinstance(feature, dict)
            and (feature.get("geometry") or {}).get("type") in (LINE_STRING, MULTI_LINE_STRING)
        ]
        if len(features) != 1:
            raise GeometryFormatError(
                f"{path} holds {len(features)} line features; expected exactly one."
            )
        return features[0]
    if kind == "Feature":
        return payload
    if kind in (LINE_STRING, MULTI_LINE_STRING):
        return make_feature(payload)
    raise GeometryFormatError(f"{path} has unsupported GeoJSON type {kind!r}.")


def save_transect_feature(path: Path, feature: dict[str, Any]) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(feature, indent=2), encoding="utf-8")
