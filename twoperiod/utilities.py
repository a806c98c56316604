"""
General purpose / miscellaneous functions: grid construction and plotting.
"""

import numpy as np  # Python's numeric library, abbreviated "np"


# =======================================================
# ================ Grid construction ====================
# =======================================================


def make_grid_linear(ming, maxg, ng):
    """
    Make an evenly spaced grid that includes both of its ends.

    Parameters
    ----------
    ming : float
        Minimum value of the grid
    maxg : float
        Maximum value of the grid
    ng : int
        The number of grid points, at least two

    Returns
    -------
    points : np.array
        An evenly spaced, strictly increasing grid
    """
    if ng < 2:
        raise ValueError("A grid needs at least two points, got {}".format(ng))
    if not ming < maxg:
        raise ValueError(
            "Grid minimum {} must be below grid maximum {}".format(ming, maxg)
        )
    return np.linspace(ming, maxg, int(ng))


# ==============================================================================
# ============== Plotting                          =============================
# ==============================================================================


def plot_funcs(functions, bottom, top, N=1000, legend_kwds=None, labels=None, show=True):
    """
    Plots 1D function(s) over a given range.

    Parameters
    ----------
    functions : [function] or function
        A single function, or a list of functions, to be plotted.
    bottom : float
        The lower limit of the domain to be plotted.
    top : float
        The upper limit of the domain to be plotted.
    N : int
        Number of points in the domain to evaluate.
    legend_kwds: None, or dictionary
        If not None, the keyword dictionary to pass to plt.legend
    labels : [str] or None
        Legend labels, one per function.
    show : bool
        Whether to call plt.show() at the end.

    Returns
    -------
    ax : matplotlib.axes.Axes
        The axes the functions were drawn on.
    """
    import matplotlib.pyplot as plt

    if type(functions) == list:
        function_list = functions
    else:
        function_list = [functions]
    if labels is None:
        labels = [None] * len(function_list)

    x = np.linspace(bottom, top, N, endpoint=True)
    for function, label in zip(function_list, labels):
        y = function(x)
        plt.plot(x, y, label=label)
    plt.xlim([bottom, top])
    if legend_kwds is not None:
        plt.legend(**legend_kwds)
    ax = plt.gca()
    if show:
        plt.show()
    return ax


def plot_points(x, ys, labels=None, markers=None, legend_kwds=None, show=True):
    """
    Plots one or more series of values against a common set of points, as
    markers.  Used to set solutions computed on a grid against a benchmark.

    Parameters
    ----------
    x : np.array
        Points on the horizontal axis.
    ys : [np.array]
        Series to plot, each the same length as x.
    labels : [str] or None
        Legend labels, one per series.
    markers : [str] or None
        Matplotlib marker codes, one per series.
    legend_kwds : None, or dictionary
        If not None, the keyword dictionary to pass to plt.legend
    show : bool
        Whether to call plt.show() at the end.

    Returns
    -------
    ax : matplotlib.axes.Axes
    """
    import matplotlib.pyplot as plt

    if labels is None:
        labels = [None] * len(ys)
    if markers is None:
        markers = ["o"] * len(ys)

    for y, label, marker in zip(ys, labels, markers):
        plt.plot(x, y, marker, label=label)
    if legend_kwds is not None:
        plt.legend(**legend_kwds)
    ax = plt.gca()
    if show:
        plt.show()
    return ax
