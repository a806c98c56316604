"""
Bracketed one-dimensional solvers: a Brent minimizer (golden section search
safeguarded by parabolic interpolation) and a Brent-Dekker root finder
(bisection safeguarded by secant and inverse quadratic interpolation).

Both keep their whole state on the instance, so that a caller can step them
with iterate() and inspect the bracket between steps, or run them to the end
with solve().  Results come back as scipy.optimize.OptimizeResult objects, the
same container scipy's own scalar solvers return.
"""
from enum import IntEnum

import numpy as np
from scipy.optimize import OptimizeResult

from twoperiod.core import _log

DBL_EPS = np.finfo(float).eps
SQRT_EPS = np.sqrt(DBL_EPS)
GOLDEN = 0.3819660112501051  # (3 - sqrt(5)) / 2


class BracketError(ValueError):
    """
    Raised when the interval handed to a solver does not bracket a minimum
    (or a root).
    """


class ConvergenceError(RuntimeError):
    """
    Raised by callers that ask for a hard failure when a solver runs out of
    iterations.
    """


class SolverStatus(IntEnum):
    CONVERGED = 0
    MAXITER = 1


_status_message = {
    SolverStatus.CONVERGED: "Solution found.",
    SolverStatus.MAXITER: "Maximum number of iterations reached.",
}


def interval_converged(x_lower, x_upper, epsabs, epsrel, scale=None):
    """
    Test whether a bracket is narrow enough: its width must be below
    epsabs + epsrel * |scale|.  If no scale is given, the smallest magnitude
    in the bracket is used (zero when the bracket straddles the origin).

    Parameters
    ----------
    x_lower : float
        Lower end of the bracket.
    x_upper : float
        Upper end of the bracket.
    epsabs : float
        Absolute tolerance, non-negative.
    epsrel : float
        Relative tolerance, non-negative.
    scale : float or None
        Magnitude that epsrel is relative to.

    Returns
    -------
    converged : bool
    """
    if epsabs < 0.0 or epsrel < 0.0:
        raise ValueError("Tolerances must be non-negative")

    if scale is None:
        if (x_lower > 0.0 and x_upper > 0.0) or (x_lower < 0.0 and x_upper < 0.0):
            scale = min(abs(x_lower), abs(x_upper))
        else:
            scale = 0.0

    width = x_upper - x_lower
    return width <= 0.0 or width < epsabs + epsrel * abs(scale)


class _BracketedSolver:
    """
    Bookkeeping shared by the bracketed solvers: the bracket itself, counters
    for iterations and function evaluations, and the run-to-convergence loop.
    """

    name = ""

    def __init__(self, func, x_lower, x_upper):
        x_lower = float(x_lower)
        x_upper = float(x_upper)
        if not x_lower < x_upper:
            raise BracketError(
                "Invalid bracket [{}, {}]: lower end must be below upper end".format(
                    x_lower, x_upper
                )
            )
        self.func = func
        self.x_lower = x_lower
        self.x_upper = x_upper
        self.nit = 0
        self.nfev = 0
        self.history = []

    def _call(self, x):
        self.nfev += 1
        return float(self.func(x))

    @property
    def width(self):
        return self.x_upper - self.x_lower

    @property
    def estimate(self):
        raise NotImplementedError()

    def iterate(self):
        raise NotImplementedError()

    def converged(self, epsabs, epsrel=0.0):
        raise NotImplementedError()

    def _log_iteration(self):
        _log.info(
            "%5d [%.7f, %.7f] %.7f %.7f",
            self.nit,
            self.x_lower,
            self.x_upper,
            self.estimate,
            self.width,
        )

    def solve(self, epsabs=1e-3, epsrel=0.0, max_iter=100, verbose=False):
        """
        Iterate until the bracket passes the convergence test or max_iter
        iterations have been made.  Running out of iterations is not an error:
        the best estimate so far is returned with status MAXITER.

        Parameters
        ----------
        epsabs : float
            Absolute tolerance on the bracket width.
        epsrel : float
            Relative tolerance on the bracket width.
        max_iter : int
            Maximum number of iterations.
        verbose : bool
            If True, log one line per iteration at the INFO level.

        Returns
        -------
        res : OptimizeResult
            With fields x, fun, success, status, message, nit, nfev, bracket.
        """
        if verbose:
            _log.info("using %s method", self.name)
            _log.info("%5s [%9s, %9s] %9s %9s", "iter", "lower", "upper", "est", "width")

        while not self.converged(epsabs, epsrel):
            if self.nit >= max_iter:
                status = SolverStatus.MAXITER
                break
            self.iterate()
            if verbose:
                self._log_iteration()
        else:
            status = SolverStatus.CONVERGED

        if verbose and status == SolverStatus.CONVERGED:
            _log.info("Converged after %d iterations.", self.nit)

        return self._make_result(status)

    def _make_result(self, status):
        raise NotImplementedError()


class BrentMinimizer(_BracketedSolver):
    """
    Brent's method for a minimum inside a bracket.  Each iteration proposes a
    trial point by parabolic interpolation through the three best points when
    that step is safe, and by a golden section step otherwise, then evaluates
    the objective there once.  The bracket only ever shrinks and always
    contains the best point found so far.

    Parameters
    ----------
    func : callable
        Objective, float -> float.
    x_minimum : float
        Initial guess, strictly inside the bracket.
    x_lower : float
        Lower end of the bracket.
    x_upper : float
        Upper end of the bracket.

    Raises
    ------
    BracketError
        If the guess is not inside the bracket or its objective value is not
        strictly below the values at both ends.
    """

    name = "brent"

    def __init__(self, func, x_minimum, x_lower, x_upper):
        super().__init__(func, x_lower, x_upper)
        x_minimum = float(x_minimum)
        if not self.x_lower < x_minimum < self.x_upper:
            raise BracketError(
                "Initial guess {} is not inside the bracket [{}, {}]".format(
                    x_minimum, self.x_lower, self.x_upper
                )
            )

        self.f_lower = self._call(self.x_lower)
        self.f_upper = self._call(self.x_upper)
        f_minimum = self._call(x_minimum)
        if not (f_minimum < self.f_lower and f_minimum < self.f_upper):
            raise BracketError(
                "Endpoints do not enclose a minimum: f({})={}, f({})={}, f({})={}".format(
                    self.x_lower,
                    self.f_lower,
                    x_minimum,
                    f_minimum,
                    self.x_upper,
                    self.f_upper,
                )
            )

        self.x_minimum = x_minimum
        self.f_minimum = f_minimum

        # Second and third best points, and the last two step lengths
        self._w = self._v = x_minimum
        self._f_w = self._f_v = f_minimum
        self._d = 0.0
        self._e = 0.0

    @property
    def estimate(self):
        return self.x_minimum

    def converged(self, epsabs, epsrel=0.0):
        return interval_converged(
            self.x_lower, self.x_upper, epsabs, epsrel, scale=self.x_minimum
        )

    def iterate(self):
        """
        Make one Brent step: one new function evaluation, after which one of
        x_lower, x_upper and x_minimum has moved.
        """
        x, f_x = self.x_minimum, self.f_minimum
        w, f_w = self._w, self._f_w
        v, f_v = self._v, self._f_v
        lower, upper = self.x_lower, self.x_upper
        d, e = self._d, self._e

        midpoint = 0.5 * (lower + upper)
        tol = SQRT_EPS * abs(x) + 1e-10
        golden_step = True

        if abs(e) > tol:
            # Parabola through (v, f_v), (w, f_w), (x, f_x)
            r = (x - w) * (f_x - f_v)
            q = (x - v) * (f_x - f_w)
            p = (x - v) * q - (x - w) * r
            q = 2.0 * (q - r)
            if q > 0.0:
                p = -p
            else:
                q = -q
            e_prev = e
            e = d

            if abs(p) < abs(0.5 * q * e_prev) and q * (lower - x) < p < q * (upper - x):
                d = p / q
                u = x + d
                if (u - lower) < 2.0 * tol or (upper - u) < 2.0 * tol:
                    d = tol if x < midpoint else -tol
                golden_step = False

        if golden_step:
            e = (upper - x) if x < midpoint else (lower - x)
            d = GOLDEN * e

        if abs(d) >= tol:
            u = x + d
        else:
            u = x + (tol if d > 0.0 else -tol)
        u = min(max(u, lower), upper)

        f_u = self._call(u)

        if f_u <= f_x:
            if u < x:
                self.x_upper, self.f_upper = x, f_x
            else:
                self.x_lower, self.f_lower = x, f_x
            v, f_v = w, f_w
            w, f_w = x, f_x
            x, f_x = u, f_u
        else:
            if u < x:
                self.x_lower, self.f_lower = u, f_u
            else:
                self.x_upper, self.f_upper = u, f_u
            if f_u <= f_w or w == x:
                v, f_v = w, f_w
                w, f_w = u, f_u
            elif f_u <= f_v or v == x or v == w:
                v, f_v = u, f_u

        self.x_minimum, self.f_minimum = x, f_x
        self._w, self._f_w = w, f_w
        self._v, self._f_v = v, f_v
        self._d, self._e = d, e

        self.nit += 1
        self.history.append((self.nit, self.x_lower, self.x_upper, self.x_minimum))

    def _make_result(self, status):
        return OptimizeResult(
            x=self.x_minimum,
            fun=self.f_minimum,
            success=status == SolverStatus.CONVERGED,
            status=status,
            message=_status_message[status],
            nit=self.nit,
            nfev=self.nfev,
            bracket=(self.x_lower, self.x_upper),
        )


class BrentRootFinder(_BracketedSolver):
    """
    The Brent-Dekker method for a root inside a bracket whose ends have
    residuals of opposite sign.  Each iteration tries inverse quadratic
    interpolation (or the secant step when only two points are known) and
    falls back to bisection whenever that step would not shrink the bracket
    fast enough.  The end that keeps the sign change is kept.

    The root estimate reported is the midpoint of the final bracket.

    Parameters
    ----------
    func : callable
        Residual, float -> float.
    x_lower : float
        Lower end of the bracket.
    x_upper : float
        Upper end of the bracket.

    Raises
    ------
    BracketError
        If the residuals at the two ends have strictly the same sign.
    """

    name = "brent"

    def __init__(self, func, x_lower, x_upper):
        super().__init__(func, x_lower, x_upper)
        self.f_lower = self._call(self.x_lower)
        self.f_upper = self._call(self.x_upper)

        if np.isnan(self.f_lower) or np.isnan(self.f_upper):
            raise BracketError(
                "Residual is undefined at an end of [{}, {}]".format(
                    self.x_lower, self.x_upper
                )
            )
        if (self.f_lower < 0.0 and self.f_upper < 0.0) or (
            self.f_lower > 0.0 and self.f_upper > 0.0
        ):
            raise BracketError(
                "Endpoints do not straddle a root: f({})={}, f({})={}".format(
                    self.x_lower, self.f_lower, self.x_upper, self.f_upper
                )
            )

        # b is the best point, c the contrapoint with the opposite sign and
        # a the previous best point
        self._a, self._f_a = self.x_lower, self.f_lower
        self._b, self._f_b = self.x_upper, self.f_upper
        self._c, self._f_c = self.x_lower, self.f_lower
        self._d = self._e = self.x_upper - self.x_lower
        self._arrange()

    def _arrange(self):
        """
        Restore the working invariants after b has moved: c is on the other
        side of the root from b, and b is the point with the smaller residual.
        """
        if (self._f_b > 0.0 and self._f_c > 0.0) or (
            self._f_b < 0.0 and self._f_c < 0.0
        ):
            self._c, self._f_c = self._a, self._f_a
            self._d = self._e = self._b - self._a

        if abs(self._f_c) < abs(self._f_b):
            self._a, self._f_a = self._b, self._f_b
            self._b, self._f_b = self._c, self._f_c
            self._c, self._f_c = self._a, self._f_a

        # An exact root collapses the bracket onto it
        if self._f_b == 0.0:
            self._c, self._f_c = self._b, self._f_b

        if self._b <= self._c:
            self.x_lower, self.f_lower = self._b, self._f_b
            self.x_upper, self.f_upper = self._c, self._f_c
        else:
            self.x_lower, self.f_lower = self._c, self._f_c
            self.x_upper, self.f_upper = self._b, self._f_b

    @property
    def estimate(self):
        return 0.5 * (self.x_lower + self.x_upper)

    @property
    def x_root(self):
        return self.estimate

    def converged(self, epsabs, epsrel=0.0):
        return interval_converged(self.x_lower, self.x_upper, epsabs, epsrel)

    def iterate(self):
        """
        Make one Brent-Dekker step: one new residual evaluation, after which
        the bracket is [min(b, c), max(b, c)] with a sign change across it.
        """
        a, f_a = self._a, self._f_a
        b, f_b = self._b, self._f_b
        c, f_c = self._c, self._f_c
        d, e = self._d, self._e

        tol = 2.0 * DBL_EPS * abs(b) + 1e-15
        m = 0.5 * (c - b)

        if abs(e) >= tol and abs(f_a) > abs(f_b):
            s = f_b / f_a
            if a == c:
                # Secant step
                p = 2.0 * m * s
                q = 1.0 - s
            else:
                # Inverse quadratic interpolation
                q = f_a / f_c
                r = f_b / f_c
                p = s * (2.0 * m * q * (q - r) - (b - a) * (r - 1.0))
                q = (q - 1.0) * (r - 1.0) * (s - 1.0)
            if p > 0.0:
                q = -q
            else:
                p = -p

            if 2.0 * p < min(3.0 * m * q - abs(tol * q), abs(e * q)):
                e = d
                d = p / q
            else:
                d = m
                e = d
        else:
            d = m
            e = d

        self._a, self._f_a = b, f_b
        if abs(d) > tol:
            b_new = b + d
        else:
            b_new = b + (tol if m > 0.0 else -tol)
        b_new = min(max(b_new, min(b, c)), max(b, c))

        self._b, self._f_b = b_new, self._call(b_new)
        self._d, self._e = d, e
        self._arrange()

        self.nit += 1
        self.history.append(
            (
                self.nit,
                self.x_lower,
                self.x_upper,
                self.estimate,
                self.f_lower,
                self.f_upper,
            )
        )

    def _make_result(self, status):
        x = self.estimate
        return OptimizeResult(
            x=x,
            fun=self._call(x),
            success=status == SolverStatus.CONVERGED,
            status=status,
            message=_status_message[status],
            nit=self.nit,
            nfev=self.nfev,
            bracket=(self.x_lower, self.x_upper),
        )


def minimize_bracketed(func, x_guess, x_lower, x_upper, **kwds):
    """
    Convenience wrapper: build a BrentMinimizer and run it.  Keyword
    arguments are passed to BrentMinimizer.solve().
    """
    return BrentMinimizer(func, x_guess, x_lower, x_upper).solve(**kwds)


def find_root_bracketed(func, x_lower, x_upper, **kwds):
    """
    Convenience wrapper: build a BrentRootFinder and run it.  Keyword
    arguments are passed to BrentRootFinder.solve().
    """
    return BrentRootFinder(func, x_lower, x_upper).solve(**kwds)
