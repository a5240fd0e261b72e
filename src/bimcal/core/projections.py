from abc import ABC, abstractmethod
from typing import Optional, Tuple, Union

import numpy as np
from pyproj import CRS, Transformer
from pyproj.exceptions import ProjError

from bimcal.core.registry import ReferenceSystem
from bimcal.domain.errors import NotCalibrated, ProjectionFailed
from bimcal.domain.schemas import GeoPoint

ArrayLike = Union[float, np.ndarray]

WGS84 = "EPSG:4326"


class Projection(ABC):
    """Maps WGS84 latitude/longitude to a planar metres frame and back."""

    @abstractmethod
    def to_planar(self, lat: ArrayLike, lon: ArrayLike) -> Tuple[ArrayLike, ArrayLike]:
        pass

    @abstractmethod
    def to_geographic(self, x: ArrayLike, y: ArrayLike) -> Tuple[ArrayLike, ArrayLike]:
        pass


class _PyprojProjection(Projection):
    def __init__(self, crs: CRS, label: str):
        self.crs = crs
        self.label = label
        # Always use lon/lat ordering explicitly.
        self._to_planar = Transformer.from_crs(WGS84, crs, always_xy=True)
        self._to_geo = Transformer.from_crs(crs, WGS84, always_xy=True)

    def to_planar(self, lat: ArrayLike, lon: ArrayLike) -> Tuple[ArrayLike, ArrayLike]:
        try:
            x, y = self._to_planar.transform(lon, lat, errcheck=True)
        except ProjError as e:
            raise ProjectionFailed(f"{self.label} projection failed: {e}") from e
        return x, y

    def to_geographic(self, x: ArrayLike, y: ArrayLike) -> Tuple[ArrayLike, ArrayLike]:
        try:
            lon, lat = self._to_geo.transform(x, y, errcheck=True)
        except ProjError as e:
            raise ProjectionFailed(f"{self.label} inverse projection failed: {e}") from e
        return lat, lon


class EPSG(_PyprojProjection):
    def __init__(self, epsg_code: int):
        try:
            crs = CRS.from_epsg(epsg_code)
        except ProjError as e:
            raise ProjectionFailed(f"Invalid EPSG code {epsg_code}: {e}") from e
        self.epsg_code = epsg_code
        super().__init__(crs, f"EPSG:{epsg_code}")


class LocalTM(_PyprojProjection):
    """
    Transverse Mercator centred at the calibration origin:
      - lat_0/lon_0 at the origin, k0=1, x0=y0=0
      - planar metres are true ground distances near the site
    """

    def __init__(self, lat0: float, lon0: float):
        self.lat0 = float(lat0)
        self.lon0 = float(lon0)
        crs = CRS.from_proj4(
            f"+proj=tmerc +lat_0={self.lat0} +lon_0={self.lon0} +k=1 +x_0=0 +y_0=0 "
            f"+ellps=WGS84 +datum=WGS84 +units=m +no_defs"
        )
        super().__init__(crs, "Local TM")


class ProjectionFactory:
    @staticmethod
    def create(system: ReferenceSystem, origin: Optional[GeoPoint] = None) -> Projection:
        if system.epsg_code is not None:
            return EPSG(system.epsg_code)
        if origin is None:
            raise NotCalibrated(
                f"Coordinate system {system.id!r} needs the calibration origin to project"
            )
        return LocalTM(origin.latitude, origin.longitude)
