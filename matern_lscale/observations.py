"""
Observations
------------

Structured container for scattered observations of a field. Observations are
a location (1d or 2d), an optional time index, and a scalar value. The layout
of the input (whether a second spatial coordinate or a time index is present)
is decided once, when the container is built.
"""

from dataclasses import dataclass
import numpy as np
import polars as pl

from .utils import check_cols


@dataclass(frozen=True)
class Observations:
    """
    Observations of a scalar field.

    Use `Observations.from_frame` to build an instance from a polars
    DataFrame.

    Parameters
    ----------
    frame : polars.DataFrame
        Normalised observations, with columns "x", "t" and "z" and, if
        `has_second_spatial_dim` is set, "y".
    has_second_spatial_dim : bool
        Locations are 2d ("x", "y"), otherwise they are 1d ("x").
    has_temporal_dimension : bool
        There is more than one distinct time index.
    """

    frame: pl.DataFrame
    has_second_spatial_dim: bool
    has_temporal_dimension: bool

    @classmethod
    def from_frame(
        cls,
        df: pl.DataFrame,
        value_col: str = "z",
        x_col: str = "x",
        y_col: str = "y",
        t_col: str = "t",
    ) -> "Observations":
        """
        Build Observations from a polars DataFrame.

        The `y_col` and `t_col` columns are optional. If `t_col` is missing, all
        observations are assigned to a single time index 0.

        Parameters
        ----------
        df : polars.DataFrame
            The observations.
        value_col : str
            Name of the column containing the observed values.
        x_col : str
            Name of the column containing the first spatial coordinate.
        y_col : str
            Name of the (optional) column containing the second spatial
            coordinate.
        t_col : str
            Name of the (optional) column containing the time index.

        Returns
        -------
        Observations
        """
        check_cols(df, [x_col, value_col])
        if df.height == 0:
            raise ValueError("No observations in the input DataFrame")

        has_y = y_col in df.columns
        exprs = [pl.col(x_col).cast(pl.Float64).alias("x")]
        if has_y:
            exprs.append(pl.col(y_col).cast(pl.Float64).alias("y"))
        if t_col in df.columns:
            exprs.append(pl.col(t_col).cast(pl.Float64).alias("t"))
        else:
            exprs.append(pl.lit(0.0, dtype=pl.Float64).alias("t"))
        exprs.append(pl.col(value_col).cast(pl.Float64).alias("z"))
        frame = df.select(exprs)

        if frame.null_count().sum_horizontal().item() > 0:
            raise ValueError("Observations contain missing values")
        if not np.all(np.isfinite(frame.to_numpy())):
            raise ValueError("Observations contain non-finite values")

        return cls(
            frame=frame,
            has_second_spatial_dim=has_y,
            has_temporal_dimension=frame.get_column("t").n_unique() > 1,
        )

    @property
    def coord_cols(self) -> list[str]:
        """Names of the spatial coordinate columns"""
        return ["x", "y"] if self.has_second_spatial_dim else ["x"]

    @property
    def n_obs(self) -> int:
        """Number of observations"""
        return self.frame.height

    @property
    def coords(self) -> np.ndarray:
        """Locations as an (n, 1) or (n, 2) array"""
        return self.frame.select(self.coord_cols).to_numpy()

    @property
    def values(self) -> np.ndarray:
        """Observed values"""
        return self.frame.get_column("z").to_numpy()

    @property
    def times(self) -> np.ndarray:
        """Sorted distinct time indices"""
        return self.frame.get_column("t").unique().sort().to_numpy()

    def time_slices(self) -> list[pl.DataFrame]:
        """
        Partition the observations by time index, ordered by time. A single
        partition is returned if there is no temporal dimension.
        """
        return self.frame.sort("t", maintain_order=True).partition_by(
            "t", maintain_order=True
        )

    def sites(self) -> list[pl.DataFrame]:
        """
        Partition the observations by location. Each partition is the time
        series observed at a single site, ordered by time.
        """
        return [
            site.sort("t")
            for site in self.frame.partition_by(
                self.coord_cols, maintain_order=True
            )
        ]
