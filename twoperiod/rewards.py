import functools

import numpy as np


def utility_fix(func):
    """
    Lets a utility function take scalars as well as arrays; consumption
    below zero is mapped to NaN rather than evaluated.
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        if np.ndim(args[0]) == 0:
            if args[0] < 0.0:
                return np.nan
            else:
                return func(*[np.array([args[0]])] + list(args[1:]), **kwargs)[0]
        else:
            out = func(*args, **kwargs)
            neg = np.asarray(args[0]) < 0.0
            out[neg] = np.nan
            return out

    return wrapper


# ==============================================================================
# ============== Define utility functions        ===============================
# ==============================================================================


@utility_fix
def CRRAutility(c, rho):
    """
    Evaluates constant relative risk aversion (CRRA) utility of consumption c
    given risk aversion parameter rho.  rho = 1 is log utility, which is what
    the two-period model uses for both periods.

    Parameters
    ----------
    c : float or array
        Consumption value
    rho : float
        Risk aversion

    Returns
    -------
    u : float or array
        Utility
    """
    c = np.asarray(c, dtype=float)
    if rho == 1:
        return np.log(c)
    return c ** (1.0 - rho) / (1.0 - rho)

