"""
Simple plots of the output of the spectral analysis: the fitted Matern kernel,
its power spectrum and the kriged field.
"""

import matplotlib.pyplot as plt
import xarray as xr

from matplotlib.axes import Axes
from matplotlib.figure import Figure

from .spectral import SpectralAnalysis


def image(
    ax: Axes,
    arr: xr.DataArray,
    title: str | None = None,
    xlabel: str | None = None,
    ylabel: str | None = None,
) -> None:
    """
    Plot a 2d DataArray as an image, with the first dimension on the vertical
    axis.
    """
    ydim, xdim = arr.dims[:2]
    mesh = ax.pcolormesh(
        arr.coords[xdim].values,
        arr.coords[ydim].values,
        arr.values,
        shading="auto",
    )
    ax.figure.colorbar(mesh, ax=ax)
    ax.set_xlabel(xlabel or str(xdim))
    ax.set_ylabel(ylabel or str(ydim))
    if title is not None:
        ax.set_title(title)
    return None


def plot_spectral_analysis(
    result: SpectralAnalysis,
    show: bool = True,
) -> Figure:
    """
    Plot the Matern kernel, the power spectrum and (if computed) the kriged
    field of a spectral analysis.

    Parameters
    ----------
    result : SpectralAnalysis
        Output of `analyze_spectrum`.
    show : bool
        Call `matplotlib.pyplot.show` once the figure is drawn.

    Returns
    -------
    fig : matplotlib.figure.Figure
    """
    n_panels = 2 if result.prediction is None else 3
    fig, axes = plt.subplots(1, n_panels, figsize=(5 * n_panels, 4))

    image(
        axes[0],
        result.covariance,
        title="Matern Kernel",
        xlabel="s1",
        ylabel="s2",
    )
    image(
        axes[1],
        result.power_spectrum,
        title="Power Spectrum",
        xlabel="f1 (cycles per unit)",
        ylabel="f2 (cycles per unit)",
    )
    if result.prediction is not None:
        field = result.prediction["prediction"]
        if "realisation" in field.dims:
            field = field.isel(realisation=0)
        image(axes[2], field, title="Kriged Field")

    fig.tight_layout()
    if show:
        plt.show()
    return fig
