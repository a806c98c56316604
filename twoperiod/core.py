"""
High-level classes for setting up and solving the two-period savings problem.
The "core" holds the package logger, a parameter-carrying Model class, and the
AgentType superclass whose solve() method wraps a model's solution routine.
"""

# Set logging and define basic functions
import logging
from warnings import warn

import numpy as np

from twoperiod.metric import MetricObject

logging.basicConfig(format="%(message)s")
_log = logging.getLogger("twoperiod")
_log.setLevel(logging.ERROR)


def disable_logging():
    _log.disabled = True


def enable_logging():
    _log.disabled = False


def warnings():
    _log.setLevel(logging.WARNING)


def quiet():
    _log.setLevel(logging.ERROR)


def verbose():
    _log.setLevel(logging.INFO)


def set_verbosity_level(level):
    _log.setLevel(level)


class Model:
    """
    A class with special handling of parameters assignment.
    """

    def __init__(self):
        if not hasattr(self, "parameters"):
            self.parameters = {}

    def assign_parameters(self, **kwds):
        """
        Assign an arbitrary number of attributes to this model.

        Parameters
        ----------
        **kwds : keyword arguments
            Any number of keyword arguments of the form key=value.  Each value
            will be assigned to the attribute named in self.

        Returns
        -------
        none
        """
        self.parameters.update(kwds)
        for key in kwds:
            setattr(self, key, kwds[key])

    def get_parameter(self, name):
        """
        Returns a parameter of this model

        Parameters
        ----------
        name : string
            The name of the parameter to get

        Returns
        -------
        value :
            The value of the parameter
        """
        return self.parameters[name]

    def __eq__(self, other):
        if isinstance(other, type(self)):
            return self.parameters == other.parameters

        return NotImplemented

    def __str__(self):
        type_ = type(self)
        module = type_.__module__
        qualname = type_.__qualname__

        s = f"<{module}.{qualname} object at {hex(id(self))}.\n"
        s += "Parameters:"

        for p in self.parameters:
            s += f"\n{p}: {self.parameters[p]}"

        s += ">"
        return s

    def describe(self):
        return self.__str__()


class AgentType(Model):
    """
    A superclass for agents whose problem is solved state by state.  Each model
    should specify its own subclass of AgentType and overwrite solve_problem(),
    which takes the agent and returns its solution object.

    Parameters
    ----------
    verbose : boolean
        If True, solution progress is logged at the INFO level.
    **kwds : keyword arguments
        Model parameters, assigned as attributes of the instance.
    """

    def __init__(self, verbose=False, **kwds):
        super().__init__()
        self.verbose = verbose
        self.solution = None
        self.assign_parameters(**kwds)

    def check_restrictions(self):
        """
        A method to check that parameter values satisfy the model's
        restrictions.  Subclasses should raise ValueError on violations.
        """
        pass

    def pre_solve(self):
        """
        Method that is run automatically just before solution.  Checks the
        parameter restrictions and sets the logging level.
        """
        self.check_restrictions()
        if self.verbose:
            set_verbosity_level(logging.INFO)

    def post_solve(self):
        """
        Method that is run automatically just after solution.  Does nothing
        here; subclasses use it to report on the solution.
        """
        pass

    def solve_problem(self):
        raise NotImplementedError()

    def solve(self, verbose=None):
        """
        Solve the model for this instance of an agent type.

        Parameters
        ----------
        verbose : boolean or None
            If given, overrides the instance's verbose attribute for this call.

        Returns
        -------
        solution : MetricObject
            The solution object, also stored in self.solution.
        """
        if verbose is not None:
            self.verbose = verbose

        # pre_solve may raise the logging level; put it back afterwards
        log_level = _log.level
        try:
            # Ignore floating point "errors"; the objectives handle infeasible
            # regions themselves.
            with np.errstate(
                divide="ignore", over="ignore", under="ignore", invalid="ignore"
            ):
                self.pre_solve()
                self.solution = self.solve_problem()
                self.post_solve()
        finally:
            _log.setLevel(log_level)
        return self.solution

    def distance(self, other):
        """
        Distance between the solutions of two agents, or 1000 when either has
        not been solved yet.
        """
        if not isinstance(self.solution, MetricObject) or other.solution is None:
            warn("Comparing agents that have not both been solved.")
            return 1000.0
        return self.solution.distance(other.solution)
