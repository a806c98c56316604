# ---
# jupyter:
#   jupytext:
#     formats: ipynb,py:percent
#     text_representation:
#       extension: .py
#       format_name: percent
#       format_version: '1.3'
#   kernelspec:
#     display_name: Python 3
#     language: python
#     name: python3
# ---

# %% [markdown]
# # TwoPeriodConsumerType
# ## Saving for a second period, two ways
#
# A consumer holds assets $a$, consumes $a - x$ now and $x$ next period, with
# log utility in both periods:
#
# \begin{eqnarray*}
# \max_{x} && \log(a - x) + \beta \log(x), \\
# x^* &=& \frac{a \beta}{1 + \beta}.
# \end{eqnarray*}
#
# The exact answer is known, which makes the problem a clean test of two
# numerical approaches on a grid of asset levels:
# 1. Minimize the negated objective with Brent's method, using a linear
#    interpolation of $\log(x)$ on a savings grid as next period's value.
# 2. Find the root of the first order condition $x - \beta (a - x) = 0$ with
#    the Brent-Dekker method.

# %%
import matplotlib.pyplot as plt
import numpy as np

from twoperiod import verbose
from twoperiod.ConsumptionSaving.ConsTwoPeriodModel import (
    ObjectiveParams,
    TwoPeriodConsumerType,
    make_objective,
    make_residual,
)
from twoperiod.parallel import multi_thread_commands
from twoperiod.parameters import load_parameters
from twoperiod.utilities import plot_funcs, plot_points

mystr = lambda number: "{:.4f}".format(number)

# %% [markdown]
# ## Approach 1: maximizing the interpolated objective

# %%
MinimizingExample = TwoPeriodConsumerType(**load_parameters("baseline"))
MinimizingExample.solve()
print(MinimizingExample.solution.to_frame())

# %% [markdown]
# The objective is only piecewise smooth, because next period's value is a
# linear interpolation.  Brent's method settles on a kink or a chord of the
# interpolant, so the savings choice is off by up to about h / (2 (1 + beta)) for a
# savings grid with spacing h, about a quarter of the spacing (0.057 here).

# %%
aNrm = 4.0
params = ObjectiveParams(
    aNrm=aNrm, DiscFac=MinimizingExample.DiscFac, vNextFunc=MinimizingExample.vNextFunc
)
objective = make_objective(params)
print("Negated objective at a = " + mystr(aNrm) + ":")
plot_funcs(objective, MinimizingExample.xMin, aNrm - 0.05, labels=["objective"])

# %% [markdown]
# ## Approach 2: solving the first order condition

# %%
RootFindingExample = TwoPeriodConsumerType(**load_parameters("root_finding"))
RootFindingExample.solve()
print(RootFindingExample.solution.to_frame())

# %%
residual = make_residual(params)
print("First order condition residual at a = " + mystr(aNrm) + ":")
plot_funcs(residual, RootFindingExample.xMin, RootFindingExample.xMax, labels=["residual"])

# %% [markdown]
# ## Comparing the approaches to the closed form

# %%
aGrid = MinimizingExample.aGrid
plot_points(
    aGrid,
    [
        MinimizingExample.solution.xOpt,
        RootFindingExample.solution.xOpt,
        MinimizingExample.closed_form(),
    ],
    labels=["Minimization", "Root finding", "Closed form"],
    markers=["o", "x", "-"],
    legend_kwds={"loc": "upper left"},
    show=False,
)
plt.xlabel("Assets a")
plt.ylabel("Savings x")
plt.show()

print(
    "Largest error, minimization: "
    + mystr(np.max(MinimizingExample.solution.abs_error))
)
print(
    "Largest error, root finding: "
    + mystr(np.max(RootFindingExample.solution.abs_error))
)
print(
    "Distance between the two solutions: "
    + mystr(MinimizingExample.distance(RootFindingExample))
)

# %% [markdown]
# ## Solving several calibrations side by side
#
# Agents built from the named calibrations can be solved in parallel, each in
# its own joblib worker.

# %%
Calibrations = ["baseline", "root_finding", "patient"]
Agents = [TwoPeriodConsumerType(**load_parameters(name)) for name in Calibrations]
multi_thread_commands(Agents, ["solve()"])
for name, agent in zip(Calibrations, Agents):
    print(
        name
        + ": largest error "
        + mystr(np.max(agent.solution.abs_error))
        + " after at most "
        + str(np.max(agent.solution.nit))
        + " iterations"
    )

# %% [markdown]
# ## Watching the solver
#
# With verbose=True every iteration's bracket is logged.

# %%
verbose()
SmallExample = TwoPeriodConsumerType(aCount=2, aMax=3.0)
SmallExample.solve(verbose=True)
