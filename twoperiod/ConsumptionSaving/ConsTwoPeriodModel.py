"""
A two-period consumption-saving model with log utility.  An agent with assets
a chooses savings x to solve

    max_x  log(a - x) + beta * log(x),

whose exact solution is x* = a * beta / (1 + beta).  The model is solved
numerically, one asset level at a time, in two ways:

   1) "minimize": the continuation value log(x) is replaced by a linear
      interpolation on a grid of savings choices, and the negated objective
      is minimized with a bracketed Brent minimizer.  Choices that leave no
      consumption are infeasible and receive a large penalty.
   2) "root": the first-order condition, rearranged as x - beta * (a - x) = 0,
      is solved with a bracketed Brent root finder.

Both are checked against the exact solution in the solution's to_frame().
"""

from collections import namedtuple
from copy import copy
from dataclasses import dataclass, field
from typing import Optional

import numpy as np
import pandas as pd

from twoperiod.core import AgentType, _log
from twoperiod.interpolation import InterpAccel, LinearInterp
from twoperiod.metric import MetricObject
from twoperiod.optimize import (
    BracketError,
    BrentMinimizer,
    BrentRootFinder,
    ConvergenceError,
    SolverStatus,
)
from twoperiod.parallel import multi_thread_solve, multi_thread_solve_fake
from twoperiod.rewards import CRRAutility
from twoperiod.utilities import make_grid_linear

__all__ = [
    "ObjectiveParams",
    "ChoiceOutcome",
    "TwoPeriodSolution",
    "TwoPeriodConsumerType",
    "evaluate_choice",
    "penalized_objective",
    "foc_residual",
    "make_objective",
    "make_residual",
    "make_continuation_value",
    "closed_form_savings",
    "solve_one_state_by_minimization",
    "solve_one_state_by_root_finding",
    "solve_two_period",
    "init_two_period",
]

PENALTY = 1e9  # Objective value of an infeasible choice
SOLVE_METHODS = ("minimize", "root")

# Both periods have log utility
CRRA = 1.0


# =====================================================================
# === Objective and first-order condition at one asset level ===
# =====================================================================


@dataclass(frozen=True)
class ObjectiveParams:
    """
    Everything the objective needs at one asset level.  Built fresh for each
    state and never modified; the accelerator inside is a lookup cache for
    this state's solve only.

    Parameters
    ----------
    aNrm : float
        Asset level a.
    DiscFac : float
        Intertemporal discount factor beta.
    vNextFunc : LinearInterp or None
        Interpolated continuation value; only the "minimize" approach uses it.
    accel : InterpAccel
        Interval cache for evaluating vNextFunc.
    """

    aNrm: float
    DiscFac: float
    vNextFunc: Optional[LinearInterp] = None
    accel: InterpAccel = field(default_factory=InterpAccel, compare=False, repr=False)


# Result of evaluating one savings choice: value is None when infeasible
ChoiceOutcome = namedtuple("ChoiceOutcome", ["feasible", "value"])


def evaluate_choice(x, params):
    """
    Total value log(a - x) + beta * vNext(x) of saving x.  A choice that leaves
    no consumption is reported as infeasible instead of being evaluated.

    Parameters
    ----------
    x : float
        Savings choice, inside the continuation grid.
    params : ObjectiveParams
        Asset level, discount factor and continuation value.

    Returns
    -------
    outcome : ChoiceOutcome
    """
    cNrm = params.aNrm - x
    if cNrm <= 0.0:
        return ChoiceOutcome(False, None)
    vNext = params.vNextFunc.eval(x, params.accel)
    return ChoiceOutcome(True, float(CRRAutility(cNrm, CRRA)) + params.DiscFac * vNext)


def penalized_objective(x, params, penalty=PENALTY):
    """
    The function the minimizer sees: the negated value of a feasible choice,
    or the fixed penalty for an infeasible one.
    """
    outcome = evaluate_choice(x, params)
    if not outcome.feasible:
        return penalty
    return -outcome.value


def foc_residual(x, params):
    """
    First-order condition 1/(a - x) = beta/x, rearranged as x - beta*(a - x),
    which is zero at the optimum.  Works elementwise on arrays.
    """
    return x - params.DiscFac * (params.aNrm - x)


def make_objective(params, penalty=PENALTY):
    """
    The penalized objective as a function of savings alone.  Takes a float,
    as the minimizer does, or an array, as plot_funcs does.
    """

    def objective(x):
        if np.ndim(x) == 0:
            return penalized_objective(x, params, penalty)
        return np.array(
            [penalized_objective(x_i, params, penalty) for x_i in np.ravel(x)]
        ).reshape(np.shape(x))

    return objective


def make_residual(params):
    def residual(x):
        return foc_residual(x, params)

    return residual


def make_continuation_value(xGrid):
    """
    Linear interpolation of the continuation value log(x) on the savings grid.
    """
    xGrid = np.asarray(xGrid, dtype=float)
    return LinearInterp(xGrid, CRRAutility(xGrid, CRRA))


def closed_form_savings(aNrm, DiscFac):
    """
    Exact optimal savings a * beta / (1 + beta).
    """
    return np.asarray(aNrm, dtype=float) * DiscFac / (1.0 + DiscFac)


# =====================================================================
# === Solving at one asset level ===
# =====================================================================


def solve_one_state_by_minimization(
    aNrm,
    DiscFac,
    xGrid,
    vNextFunc,
    tol_abs=1e-3,
    tol_rel=0.0,
    max_iter=100,
    penalty=PENALTY,
    GuessShare=0.5,
    verbose=False,
):
    """
    Find optimal savings at one asset level by minimizing the penalized,
    negated objective over [xGrid[0], xGrid[-1]].

    The initial guess sits GuessShare of the way from xGrid[0] to the top of
    the feasible part of the bracket, min(a, xGrid[-1]).

    Parameters
    ----------
    aNrm : float
        Asset level.
    DiscFac : float
        Intertemporal discount factor.
    xGrid : np.array
        Savings grid; its ends are the initial bracket.
    vNextFunc : LinearInterp
        Continuation value, defined on xGrid.
    tol_abs, tol_rel : float
        Tolerances on the bracket width.
    max_iter : int
        Iteration cap.
    penalty : float
        Objective value of an infeasible choice.
    GuessShare : float
        Position of the initial guess, strictly between 0 and 1.
    verbose : bool
        Log each iteration.

    Returns
    -------
    res : OptimizeResult
        The solver's result, with the asset level added as res.aNrm.
    """
    params = ObjectiveParams(aNrm=float(aNrm), DiscFac=DiscFac, vNextFunc=vNextFunc)
    x_lower = float(xGrid[0])
    x_upper = float(xGrid[-1])
    x_guess = x_lower + GuessShare * (min(params.aNrm, x_upper) - x_lower)

    if verbose:
        _log.info("Minimizing at aNrm = %.4f", params.aNrm)
    try:
        solver = BrentMinimizer(make_objective(params, penalty), x_guess, x_lower, x_upper)
    except BracketError as exc:
        raise BracketError("At aNrm = {}: {}".format(params.aNrm, exc)) from exc

    res = solver.solve(epsabs=tol_abs, epsrel=tol_rel, max_iter=max_iter, verbose=verbose)
    res.aNrm = params.aNrm
    return res


def solve_one_state_by_root_finding(
    aNrm, DiscFac, xGrid, tol_abs=1e-3, tol_rel=0.0, max_iter=100, verbose=False
):
    """
    Find optimal savings at one asset level as the root of the first-order
    condition residual in [xGrid[0], xGrid[-1]].

    Returns
    -------
    res : OptimizeResult
        The solver's result, with the asset level added as res.aNrm.
    """
    params = ObjectiveParams(aNrm=float(aNrm), DiscFac=DiscFac)
    x_lower = float(xGrid[0])
    x_upper = float(xGrid[-1])

    if verbose:
        _log.info("Finding root at aNrm = %.4f", params.aNrm)
    try:
        solver = BrentRootFinder(make_residual(params), x_lower, x_upper)
    except BracketError as exc:
        raise BracketError("At aNrm = {}: {}".format(params.aNrm, exc)) from exc

    res = solver.solve(epsabs=tol_abs, epsrel=tol_rel, max_iter=max_iter, verbose=verbose)
    res.aNrm = params.aNrm
    return res


# =====================================================================
# === Solving on the whole asset grid ===
# =====================================================================


class TwoPeriodSolution(MetricObject):
    """
    Optimal savings on a grid of asset levels, with the solver's report for
    each level.

    Parameters
    ----------
    aGrid : np.array
        Asset levels, increasing.
    xOpt : np.array
        Optimal savings at each asset level.
    status : np.array
        SolverStatus at each asset level.
    nit : np.array
        Iterations used at each asset level.
    nfev : np.array
        Function evaluations used at each asset level.
    DiscFac : float
        Discount factor the problem was solved with.
    method : str
        "minimize" or "root".
    """

    distance_criteria = ["xOpt"]

    def __init__(self, aGrid, xOpt, status, nit, nfev, DiscFac, method):
        self.aGrid = np.asarray(aGrid, dtype=float)
        self.xOpt = np.asarray(xOpt, dtype=float)
        self.status = np.asarray(status, dtype=int)
        self.nit = np.asarray(nit, dtype=int)
        self.nfev = np.asarray(nfev, dtype=int)
        self.DiscFac = DiscFac
        self.method = method
        # Savings policy between the solved asset levels
        self.xFunc = LinearInterp(self.aGrid, self.xOpt) if self.aGrid.size > 1 else None

    @property
    def converged(self):
        return self.status == SolverStatus.CONVERGED

    @property
    def cOpt(self):
        return self.aGrid - self.xOpt

    @property
    def vOpt(self):
        """
        Exact objective log(a - x) + beta * log(x) at the computed savings.
        """
        return CRRAutility(self.cOpt, CRRA) + self.DiscFac * CRRAutility(self.xOpt, CRRA)

    @property
    def xClosedForm(self):
        return closed_form_savings(self.aGrid, self.DiscFac)

    @property
    def abs_error(self):
        return np.abs(self.xOpt - self.xClosedForm)

    def to_frame(self):
        """
        Tabulate the solution against the exact one, indexed by asset level.
        """
        frame = pd.DataFrame(
            {
                "xOpt": self.xOpt,
                "xClosedForm": self.xClosedForm,
                "AbsErr": self.abs_error,
                "cOpt": self.cOpt,
                "vOpt": self.vOpt,
                "nit": self.nit,
                "nfev": self.nfev,
                "converged": self.converged,
            },
            index=pd.Index(self.aGrid, name="aNrm"),
        )
        return frame


def solve_two_period(
    aGrid,
    xGrid,
    DiscFac,
    method="minimize",
    vNextFunc=None,
    tol_abs=1e-3,
    tol_rel=0.0,
    max_iter=100,
    penalty=PENALTY,
    GuessShare=0.5,
    parallel=False,
    num_jobs=None,
    strict=False,
    verbose=False,
):
    """
    Solve for optimal savings at every asset level in aGrid.  The levels are
    independent of each other: each gets its own parameters, accelerator and
    solver, starting from the bracket [xGrid[0], xGrid[-1]].

    Parameters
    ----------
    aGrid : np.array
        Asset levels, increasing.
    xGrid : np.array
        Savings grid, increasing.
    DiscFac : float
        Intertemporal discount factor.
    method : str
        "minimize" (interpolated objective) or "root" (first-order condition).
    vNextFunc : LinearInterp or None
        Continuation value for "minimize"; built from xGrid if None.
    tol_abs, tol_rel, max_iter :
        Convergence settings of each solve.
    penalty : float
        Objective value of infeasible choices ("minimize" only).
    GuessShare : float
        Position of the initial guess ("minimize" only).
    parallel : bool
        Solve the asset levels with joblib workers.
    num_jobs : int or None
        Number of workers when parallel.
    strict : bool
        Raise ConvergenceError if any level runs out of iterations, instead
        of reporting it in the solution's status.
    verbose : bool
        Log each solver iteration (sequential solves only).

    Returns
    -------
    solution : TwoPeriodSolution
    """
    aGrid = np.asarray(aGrid, dtype=float)
    xGrid = np.asarray(xGrid, dtype=float)

    kwds = {
        "DiscFac": DiscFac,
        "xGrid": xGrid,
        "tol_abs": tol_abs,
        "tol_rel": tol_rel,
        "max_iter": max_iter,
        "verbose": verbose,
    }
    if method == "minimize":
        if vNextFunc is None:
            vNextFunc = make_continuation_value(xGrid)
        kwds.update(vNextFunc=vNextFunc, penalty=penalty, GuessShare=GuessShare)
        solve_func = solve_one_state_by_minimization
    elif method == "root":
        solve_func = solve_one_state_by_root_finding
    else:
        raise ValueError(
            "Unknown solution method '{}'; use one of {}".format(method, SOLVE_METHODS)
        )

    runner = multi_thread_solve if parallel else multi_thread_solve_fake
    results = runner(solve_func, list(aGrid), kwds, num_jobs)

    solution = TwoPeriodSolution(
        aGrid=aGrid,
        xOpt=[res.x for res in results],
        status=[res.status for res in results],
        nit=[res.nit for res in results],
        nfev=[res.nfev for res in results],
        DiscFac=DiscFac,
        method=method,
    )

    if strict and not np.all(solution.converged):
        raise ConvergenceError(
            "No convergence within {} iterations at aNrm = {}".format(
                max_iter, solution.aGrid[~solution.converged]
            )
        )
    return solution


# ============================================================================
# == The agent type ==
# ============================================================================

# Make a dictionary to specify a two-period consumer type
init_two_period = {
    "DiscFac": 0.95,  # Intertemporal discount factor
    "aMin": 2.0,  # Lowest asset level
    "aMax": 10.0,  # Highest asset level
    "aCount": 9,  # Number of asset levels
    "xMin": 0.1,  # Lowest savings choice on the continuation grid
    "xMax": 11.0,  # Highest savings choice on the continuation grid
    "xCount": 50,  # Number of points on the continuation grid
    "tol_abs": 1e-3,  # Absolute tolerance on the bracket width
    "tol_rel": 0.0,  # Relative tolerance on the bracket width
    "max_iter": 100,  # Iteration cap per asset level
    "penalty": PENALTY,  # Objective value for infeasible choices
    "GuessShare": 0.5,  # Initial guess, as a share of the feasible bracket
    "method": "minimize",  # "minimize" or "root"
    "parallel": False,  # Solve asset levels in parallel
    "num_jobs": None,  # Number of workers when parallel
    "strict": False,  # Raise instead of reporting non-convergence
}


class TwoPeriodConsumerType(AgentType):
    r"""
    A consumer who lives two periods, with log utility in both, and chooses how
    much of their assets to save for the second.

    .. math::
        \max_{x} \log(a - x) + \beta \log(x), \qquad x^* = \frac{a \beta}{1 + \beta}

    Parameters
    ----------
    verbose : bool
        Log solver iterations and a summary at the INFO level.
    **kwds :
        Any of the keys of init_two_period, overriding its values.

    Attributes
    ----------
    aGrid : np.array
        Asset levels to solve at, built from aMin, aMax, aCount.
    xGrid : np.array
        Savings grid, built from xMin, xMax, xCount.
    vNextFunc : LinearInterp
        Interpolated continuation value on xGrid.
    solution : TwoPeriodSolution
        Created by solve().
    """

    def __init__(self, verbose=False, **kwds):
        params = copy(init_two_period)
        params.update(kwds)
        super().__init__(verbose=verbose, **params)
        self.update()

    def update(self):
        """
        Rebuild the grids and the continuation value from the parameters.
        """
        self.update_grids()
        self.update_vNextFunc()

    def update_grids(self):
        self.aGrid = make_grid_linear(self.aMin, self.aMax, self.aCount)
        self.xGrid = make_grid_linear(self.xMin, self.xMax, self.xCount)

    def update_vNextFunc(self):
        self.vNextFunc = make_continuation_value(self.xGrid)

    def check_restrictions(self):
        """
        Check that the parameters describe a problem the solvers can handle.
        """
        if not 0.0 < self.DiscFac < 1.0:
            raise ValueError("DiscFac must be in (0, 1), got {}".format(self.DiscFac))
        if self.method not in SOLVE_METHODS:
            raise ValueError(
                "method must be one of {}, got '{}'".format(SOLVE_METHODS, self.method)
            )
        if self.xMin <= 0.0:
            raise ValueError("xMin must be positive for log(x) to be defined")
        if self.aMin <= self.xMin:
            raise ValueError(
                "Every asset level must exceed the lowest savings choice xMin"
            )
        if not 0.0 < self.GuessShare < 1.0:
            raise ValueError("GuessShare must be in (0, 1)")
        if self.tol_abs < 0.0 or self.tol_rel < 0.0:
            raise ValueError("Tolerances must be non-negative")
        if self.max_iter < 1:
            raise ValueError("max_iter must be at least 1")

    def pre_solve(self):
        self.update()
        super().pre_solve()

    def solve_problem(self):
        return solve_two_period(
            self.aGrid,
            self.xGrid,
            self.DiscFac,
            method=self.method,
            vNextFunc=self.vNextFunc,
            tol_abs=self.tol_abs,
            tol_rel=self.tol_rel,
            max_iter=self.max_iter,
            penalty=self.penalty,
            GuessShare=self.GuessShare,
            parallel=self.parallel,
            num_jobs=self.num_jobs,
            strict=self.strict,
            verbose=self.verbose,
        )

    def post_solve(self):
        """
        Warn about asset levels where the solver ran out of iterations, and
        report the distance from the exact solution when verbose.
        """
        not_converged = ~self.solution.converged
        if np.any(not_converged):
            _log.warning(
                "Solver did not converge within %d iterations at aNrm = %s",
                self.max_iter,
                self.solution.aGrid[not_converged],
            )
        if self.verbose:
            _log.info(
                "Solved %d asset levels by '%s'; largest error against the "
                "exact solution is %.6f",
                self.aGrid.size,
                self.method,
                np.max(self.solution.abs_error),
            )

    def closed_form(self):
        return closed_form_savings(self.aGrid, self.DiscFac)
