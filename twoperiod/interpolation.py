"""
Interpolation methods for representing approximations to functions on a grid.
The two-period model approximates its continuation value this way, and the
solution represents its savings policy the same way.  Each interpolator is a
MetricObject, so solutions built from them can be compared with distance().
"""
import numpy as np

from twoperiod.metric import MetricObject


class InterpolationDomainError(ValueError):
    """
    Raised when an interpolator is asked for a value outside its grid.
    """


def _check_grid(x_list, y_list):
    if x_list.ndim != 1 or y_list.ndim != 1:
        raise ValueError("Interpolation grids must be one-dimensional")
    if x_list.size != y_list.size:
        raise ValueError("Grid dimensions of x and f(x) do not match")
    if x_list.size < 2:
        raise ValueError("At least two gridpoints are needed to interpolate")
    if np.any(np.diff(x_list) <= 0.0):
        raise ValueError("x_list must be strictly increasing")


class InterpAccel:
    """
    A lookup accelerator for 1D interpolation.  It remembers the index of the
    last interval it located, so that a run of nearby queries (as made by an
    iterative solver) finds its interval in constant time.  It only changes
    how fast an interval is found, never which one.

    Each concurrent solve must use its own accelerator.

    Attributes
    ----------
    cache : int
        Index k of the last located interval [x_list[k], x_list[k+1]].
    hit_count : int
        Number of lookups answered by the cached interval.
    miss_count : int
        Number of lookups that fell back to binary search.
    """

    def __init__(self):
        self.reset()

    def reset(self):
        self.cache = 0
        self.hit_count = 0
        self.miss_count = 0

    def find(self, x_list, x):
        """
        Returns the index k such that x_list[k] <= x <= x_list[k+1].  The
        caller guarantees that x lies inside the grid.
        """
        k = self.cache
        if k < x_list.size - 1 and x_list[k] <= x <= x_list[k + 1]:
            self.hit_count += 1
            return k

        self.miss_count += 1
        k = int(np.searchsorted(x_list, x, side="right")) - 1
        k = min(max(k, 0), x_list.size - 2)
        self.cache = k
        return k

    def __repr__(self):
        return "InterpAccel(cache={}, hit_count={}, miss_count={})".format(
            self.cache, self.hit_count, self.miss_count
        )


class Interpolator1D(MetricObject):
    """
    A wrapper class for 1D interpolation methods in twoperiod.
    """

    distance_criteria = []

    def __call__(self, x):
        """
        Evaluates the interpolated function at the given input.

        Parameters
        ----------
        x : np.array or float
            Real values to be evaluated in the interpolated function.

        Returns
        -------
        y : np.array or float
            The interpolated function evaluated at x: y = f(x), with the same
            shape as x.
        """
        z = np.asarray(x, dtype=float)
        return (self._evaluate(z.flatten())).reshape(z.shape)

    def derivative(self, x):
        """
        Evaluates the derivative of the interpolated function at the given input.

        Parameters
        ----------
        x : np.array or float
            Real values to be evaluated in the interpolated function.

        Returns
        -------
        dydx : np.array or float
            The interpolated function's first derivative evaluated at x:
            dydx = f'(x), with the same shape as x.
        """
        z = np.asarray(x, dtype=float)
        return (self._der(z.flatten())).reshape(z.shape)

    def eval_with_derivative(self, x):
        """
        Evaluates the interpolated function and its derivative at the given input.

        Parameters
        ----------
        x : np.array or float
            Real values to be evaluated in the interpolated function.

        Returns
        -------
        y : np.array or float
            The interpolated function evaluated at x: y = f(x), with the same
            shape as x.
        dydx : np.array or float
            The interpolated function's first derivative evaluated at x:
            dydx = f'(x), with the same shape as x.
        """
        z = np.asarray(x, dtype=float)
        y, dydx = self._evalAndDer(z.flatten())
        return y.reshape(z.shape), dydx.reshape(z.shape)

    def _evaluate(self, x):
        """
        Interpolated function evaluator, to be defined in subclasses.
        """
        raise NotImplementedError()

    def _der(self, x):
        """
        Interpolated function derivative evaluator, to be defined in subclasses.
        """
        raise NotImplementedError()

    def _evalAndDer(self, x):
        """
        Interpolated function and derivative evaluator, to be defined in subclasses.
        """
        raise NotImplementedError()


class LinearInterp(Interpolator1D):
    """
    A "from scratch" 1D linear interpolation class.  No extrapolation: the
    function is only defined on [x_list[0], x_list[-1]], and asking for a
    value outside raises InterpolationDomainError.  At a gridpoint the
    interpolant returns the stored value exactly.

    Parameters
    ----------
    x_list : np.array
        List of x values composing the grid, strictly increasing.
    y_list : np.array
        List of y values, representing f(x) at the points in x_list.
    """

    distance_criteria = ["x_list", "y_list"]

    def __init__(self, x_list, y_list):
        self.x_list = np.array(x_list, dtype=float).flatten()
        self.y_list = np.array(y_list, dtype=float).flatten()
        _check_grid(self.x_list, self.y_list)
        self.x_n = self.x_list.size

    @property
    def domain(self):
        return self.x_list[0], self.x_list[-1]

    def _check_domain(self, x):
        bot, top = self.domain
        if np.any(x < bot) or np.any(x > top) or np.any(np.isnan(x)):
            raise InterpolationDomainError(
                "Query outside the interpolation grid [{}, {}]".format(bot, top)
            )

    def eval(self, x, accel=None):
        """
        Evaluates the interpolant at a single point, using (and updating) an
        accelerator to locate the bracketing interval.

        Parameters
        ----------
        x : float
            Query point inside [x_list[0], x_list[-1]].
        accel : InterpAccel or None
            Accelerator holding the last located interval.  A throwaway one is
            used if None.

        Returns
        -------
        y : float
            The interpolated value at x.
        """
        x = float(x)
        self._check_domain(x)
        if accel is None:
            accel = InterpAccel()
        k = accel.find(self.x_list, x)

        x_lo = self.x_list[k]
        x_hi = self.x_list[k + 1]
        if x == x_hi:
            return float(self.y_list[k + 1])
        y_lo = self.y_list[k]
        y_hi = self.y_list[k + 1]
        return float(y_lo + (y_hi - y_lo) * (x - x_lo) / (x_hi - x_lo))

    def _find_intervals(self, x):
        i = np.searchsorted(self.x_list, x, side="right") - 1
        return np.clip(i, 0, self.x_n - 2)

    def _evalOrDer(self, x, _eval, _Der):
        """
        Returns the level and/or first derivative of the function at each value in
        x.  Only called internally by Interpolator1D.__call__ (etc).

        Parameters
        ----------
        x : np.array
            Set of points where we want to evaluate the interpolated function
            and/or its derivative.
        _eval : boolean
            Indicator for whether to evaluate the level of the interpolated function.
        _Der : boolean
            Indicator for whether to evaluate the derivative of the interpolated function.

        Returns
        -------
        A list including the level and/or derivative of the interpolated function where requested.
        """
        self._check_domain(x)
        i = self._find_intervals(x)
        x_lo = self.x_list[i]
        x_hi = self.x_list[i + 1]
        y_lo = self.y_list[i]
        y_hi = self.y_list[i + 1]

        output = []
        if _eval:
            y = y_lo + (y_hi - y_lo) * (x - x_lo) / (x_hi - x_lo)
            y = np.where(x == x_hi, y_hi, y)
            output += [
                y,
            ]
        if _Der:
            dydx = (y_hi - y_lo) / (x_hi - x_lo)
            output += [
                dydx,
            ]

        return output

    def _evaluate(self, x):
        """
        Returns the level of the interpolated function at each value in x.  Only
        called internally by Interpolator1D.__call__ (etc).
        """
        return self._evalOrDer(x, True, False)[0]

    def _der(self, x):
        """
        Returns the first derivative of the interpolated function at each value
        in x. Only called internally by Interpolator1D.derivative (etc).
        """
        return self._evalOrDer(x, False, True)[0]

    def _evalAndDer(self, x):
        """
        Returns the level and first derivative of the function at each value in
        x.  Only called internally by Interpolator1D.eval_with_derivative (etc).
        """
        y, dydx = self._evalOrDer(x, True, True)

        return y, dydx
