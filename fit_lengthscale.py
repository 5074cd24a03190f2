"""
Fit Matern length scales to a table of observations.

Reads an INI configuration file, loads the observations (csv or parquet) with
polars and runs one of the estimators:

* grid : grid-search maximum likelihood (spatial and, if the data has more
         than one time index, temporal length scales)
* fast : profile-likelihood estimate of the range, sill and nugget
* spectrum : fast estimate, power spectrum cutoff and practical range

Results are written as csv files to the output directory.
"""

import argparse
from configparser import ConfigParser
import logging
import os

import numpy as np
import polars as pl

from matern_lscale import (
    Observations,
    analyze_spectrum,
    fit_matern_fast,
    fit_matern_lengthscale,
)
from matern_lscale.utils import ConfigParserMultiValues, init_logging


def _load_observations(path: str) -> pl.DataFrame:
    if not os.path.isfile(path):
        raise FileNotFoundError(f"Observation file {path} not found")
    if path.endswith(".parquet"):
        return pl.read_parquet(path)
    return pl.read_csv(path)


def _getfloats(config: ConfigParser, section: str, key: str) -> np.ndarray:
    values = config.getlist(section, key)  # type: ignore
    return np.array([float(v) for v in values if v.strip()])


def _optional_floats(
    config: ConfigParser, section: str, key: str
) -> np.ndarray | None:
    if not config.has_option(section, key):
        return None
    return _getfloats(config, section, key)


def run_grid(config: ConfigParser, obs: Observations, outdir: str) -> None:
    """Run the grid-search estimator and save the fit tables"""
    kwargs = {}
    ar1 = _optional_floats(config, "grid", "ar1")
    if ar1 is not None:
        kwargs["ar1"] = ar1
    fit = fit_matern_lengthscale(
        obs,
        lscale=_getfloats(config, "grid", "lscale"),
        nu=_getfloats(config, "grid", "nu"),
        variance=_getfloats(config, "grid", "variance"),
        n_jobs=config.getint("grid", "n_jobs", fallback=1),
        **kwargs,
    )
    logging.info(f"Spatial fit:\n{fit.spatial}")
    fit.spatial.write_csv(os.path.join(outdir, "spatial_fit.csv"))
    if fit.temporal is not None:
        logging.info(f"Temporal fit:\n{fit.temporal}")
        fit.temporal.write_csv(os.path.join(outdir, "temporal_fit.csv"))
    return None


def run_fast(config: ConfigParser, obs: Observations, outdir: str) -> None:
    """Run the profile-likelihood estimator and save the fit"""
    fit = fit_matern_fast(
        obs.coords,
        obs.values,
        smoothness=config.getfloat("fast", "smoothness", fallback=1.0),
        range_candidates=_optional_floats(config, "fast", "range"),
    )
    out = pl.DataFrame(
        {
            "range": [fit.range],
            "sill": [fit.sill],
            "nugget": [fit.nugget],
            "trace": [fit.trace],
            "log_likelihood": [fit.log_likelihood],
        }
    )
    logging.info(f"Fast fit:\n{out}")
    out.write_csv(os.path.join(outdir, "fast_fit.csv"))
    return None


def run_spectrum(config: ConfigParser, obs: Observations, outdir: str) -> None:
    """Run the spectral analysis and save the fit with derived quantities"""
    lag_start = config.getfloat("spectrum", "lag_start", fallback=-5.0)
    lag_stop = config.getfloat("spectrum", "lag_stop", fallback=5.0)
    n_lags = config.getint("spectrum", "n_lags", fallback=101)
    result = analyze_spectrum(
        obs.coords,
        obs.values,
        smoothness=config.getfloat("fast", "smoothness", fallback=2.5),
        lags=np.linspace(lag_start, lag_stop, n_lags),
        range_candidates=_optional_floats(config, "fast", "range"),
        dither=config.getboolean("spectrum", "dither", fallback=True),
        predict=config.getboolean("spectrum", "predict", fallback=False),
        plot=config.getboolean("spectrum", "plot", fallback=False),
    )
    out = pl.DataFrame(
        {
            "range": [result.fit.range],
            "sill": [result.fit.sill],
            "nugget": [result.fit.nugget],
            "cutoff_frequency": [result.cutoff_frequency],
            "practical_range": [result.practical_range],
            "n_obs": [result.n_obs],
        }
    )
    logging.info(f"Spectral analysis:\n{out}")
    out.write_csv(os.path.join(outdir, "spectrum_fit.csv"))
    if result.prediction is not None:
        result.prediction.to_dataframe().to_csv(
            os.path.join(outdir, "prediction.csv")
        )
    return None


def main() -> None:  # noqa: D103
    parser = argparse.ArgumentParser()
    parser.add_argument(
        "-config",
        dest="config",
        required=False,
        default="config.ini",
        help="INI file containing configuration settings",
    )
    parser.add_argument(
        "-method",
        dest="method",
        default="grid",
        choices=["grid", "fast", "spectrum"],
        help="Estimator to run",
    )
    args = parser.parse_args()

    config = ConfigParser(
        strict=False,
        empty_lines_in_values=False,
        dict_type=ConfigParserMultiValues,
        converters={"list": ConfigParserMultiValues.getlist},
    )
    if not config.read(args.config):
        raise FileNotFoundError(f"Config file {args.config} not found")

    init_logging(
        file=config.get("logging", "file", fallback=None),
        level=config.get("logging", "level", fallback="info"),
    )
    logging.info(f"Loaded configuration from {args.config}")

    df = _load_observations(config.get("data", "path"))
    obs = Observations.from_frame(
        df,
        value_col=config.get("data", "value_col", fallback="z"),
        x_col=config.get("data", "x_col", fallback="x"),
        y_col=config.get("data", "y_col", fallback="y"),
        t_col=config.get("data", "t_col", fallback="t"),
    )
    logging.info(
        f"Loaded {obs.n_obs} observations, "
        + f"temporal dimension: {obs.has_temporal_dimension}"
    )

    outdir = config.get("data", "output_dir", fallback=".")
    os.makedirs(outdir, exist_ok=True)

    match args.method:
        case "grid":
            run_grid(config, obs, outdir)
        case "fast":
            run_fast(config, obs, outdir)
        case "spectrum":
            run_spectrum(config, obs, outdir)
    return None


if __name__ == "__main__":
    main()
