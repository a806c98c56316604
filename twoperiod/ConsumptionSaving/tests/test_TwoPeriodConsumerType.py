import logging
import unittest

import numpy as np
import pandas as pd

from twoperiod import _log
from twoperiod.ConsumptionSaving.ConsTwoPeriodModel import (
    ChoiceOutcome,
    ObjectiveParams,
    TwoPeriodConsumerType,
    TwoPeriodSolution,
    closed_form_savings,
    evaluate_choice,
    foc_residual,
    init_two_period,
    make_continuation_value,
    make_objective,
    penalized_objective,
    solve_one_state_by_minimization,
    solve_one_state_by_root_finding,
    solve_two_period,
)
from twoperiod.optimize import BracketError, ConvergenceError, SolverStatus


class testObjective(unittest.TestCase):
    def setUp(self):
        self.xGrid = np.linspace(0.1, 11.0, 50)
        self.vNextFunc = make_continuation_value(self.xGrid)
        self.params = ObjectiveParams(aNrm=4.0, DiscFac=0.95, vNextFunc=self.vNextFunc)

    def test_feasible_value(self):
        x = self.xGrid[10]
        outcome = evaluate_choice(x, self.params)
        self.assertTrue(outcome.feasible)
        self.assertAlmostEqual(outcome.value, np.log(4.0 - x) + 0.95 * np.log(x))
        self.assertAlmostEqual(penalized_objective(x, self.params), -outcome.value)

    def test_infeasible(self):
        outcome = evaluate_choice(5.0, self.params)
        self.assertEqual(outcome, ChoiceOutcome(False, None))
        self.assertFalse(evaluate_choice(4.0, self.params).feasible)

    def test_penalty_regardless_of_beta(self):
        for DiscFac in [0.01, 0.5, 0.95, 0.999]:
            params = ObjectiveParams(aNrm=4.0, DiscFac=DiscFac, vNextFunc=self.vNextFunc)
            for x in [4.5, 7.0, 11.0]:
                self.assertEqual(penalized_objective(x, params), 1e9)

    def test_custom_penalty(self):
        self.assertEqual(penalized_objective(6.0, self.params, penalty=123.0), 123.0)

    def test_foc_residual(self):
        x_star = float(closed_form_savings(4.0, 0.95))
        self.assertAlmostEqual(foc_residual(x_star, self.params), 0.0)
        self.assertLess(foc_residual(0.1, self.params), 0.0)
        self.assertGreater(foc_residual(11.0, self.params), 0.0)
        residuals = foc_residual(self.xGrid, self.params)
        self.assertEqual(residuals.shape, self.xGrid.shape)

    def test_objective_on_array(self):
        objective = make_objective(self.params)
        x = np.linspace(0.1, 6.0, 25).reshape(5, 5)
        values = objective(x)
        self.assertEqual(values.shape, x.shape)
        for x_i, value in zip(x.flatten(), values.flatten()):
            self.assertEqual(value, objective(x_i))
        self.assertTrue(np.all(values[x >= 4.0] == 1e9))
        self.assertTrue(np.all(values[x < 4.0] < 1e9))

    def test_params_immutable(self):
        self.assertRaises(Exception, setattr, self.params, "aNrm", 5.0)

    def test_fresh_accelerators(self):
        other = ObjectiveParams(aNrm=4.0, DiscFac=0.95, vNextFunc=self.vNextFunc)
        self.assertIsNot(self.params.accel, other.accel)


class testSolveOneState(unittest.TestCase):
    def setUp(self):
        self.xGrid = np.linspace(0.1, 11.0, 50)
        self.vNextFunc = make_continuation_value(self.xGrid)

    def test_minimization(self):
        res = solve_one_state_by_minimization(2.0, 0.95, self.xGrid, self.vNextFunc)
        self.assertTrue(res.success)
        self.assertEqual(res.aNrm, 2.0)
        self.assertLessEqual(res.nit, 100)
        self.assertLess(abs(res.x - 0.9744), 0.05)
        self.assertLess(res.bracket[1] - res.bracket[0], 1e-3)

    def test_root_finding(self):
        res = solve_one_state_by_root_finding(10.0, 0.95, self.xGrid)
        self.assertTrue(res.success)
        self.assertLess(abs(res.x - 4.8718), 1e-3)

    def test_bad_bracket(self):
        # All of the savings grid is infeasible below its lowest point
        self.assertRaises(
            BracketError,
            solve_one_state_by_minimization,
            0.05,
            0.95,
            self.xGrid,
            self.vNextFunc,
        )
        # The residual has one sign on the whole grid
        self.assertRaises(
            BracketError, solve_one_state_by_root_finding, 50.0, 0.95, self.xGrid
        )


class testTwoPeriodConsumerType(unittest.TestCase):
    def setUp(self):
        self.agent = TwoPeriodConsumerType()
        self.agent_root = TwoPeriodConsumerType(method="root")

    def test_grids(self):
        np.testing.assert_allclose(self.agent.aGrid, np.arange(2.0, 11.0))
        self.assertEqual(self.agent.xGrid.size, 50)
        self.assertEqual(self.agent.xGrid[0], 0.1)
        self.assertEqual(self.agent.xGrid[-1], 11.0)

    def test_default_solution(self):
        solution = self.agent.solve()
        self.assertIsInstance(solution, TwoPeriodSolution)
        self.assertTrue(np.all(solution.converged))
        self.assertEqual(solution.xOpt.size, 9)
        self.assertAlmostEqual(solution.xOpt[0], 0.9744, delta=0.05)
        self.assertAlmostEqual(solution.xOpt[-1], 4.8718, delta=0.05)
        self.assertTrue(np.all(solution.nit <= 100))
        # Linear interpolation of log on a grid with spacing h moves the
        # optimum by at most about h / (2 * (1 + beta))
        h = self.agent.xGrid[1] - self.agent.xGrid[0]
        self.assertLess(np.max(solution.abs_error), h / (2.0 * 1.95) + 2e-3)

    def test_root_solution(self):
        solution = self.agent_root.solve()
        self.assertTrue(np.all(solution.converged))
        self.assertAlmostEqual(solution.xOpt[0], 0.9744, delta=1e-3)
        self.assertAlmostEqual(solution.xOpt[-1], 4.8718, delta=1e-3)
        self.assertLess(np.max(solution.abs_error), 1e-3)

    def test_root_finding_is_tighter(self):
        self.agent.solve()
        self.agent_root.solve()
        self.assertLess(
            np.max(self.agent_root.solution.abs_error),
            np.max(self.agent.solution.abs_error),
        )
        self.assertLess(self.agent.distance(self.agent_root), 0.06)

    def test_savings_increase_with_assets(self):
        solution = self.agent.solve()
        self.assertTrue(np.all(np.diff(solution.xOpt) > 0.0))
        self.assertTrue(np.all(solution.cOpt > 0.0))

    def test_closed_form(self):
        np.testing.assert_allclose(
            self.agent.closed_form(), self.agent.aGrid * 0.95 / 1.95
        )
        self.assertAlmostEqual(float(closed_form_savings(2.0, 0.95)), 0.974358974, places=8)

    def test_other_DiscFac(self):
        agent = TwoPeriodConsumerType(DiscFac=0.5, method="root")
        agent.solve()
        np.testing.assert_allclose(
            agent.solution.xOpt, agent.aGrid * 0.5 / 1.5, atol=1e-3
        )

    def test_reassigned_parameters(self):
        self.agent_root.assign_parameters(aMin=3.0, aMax=6.0, aCount=4)
        self.agent_root.solve()
        np.testing.assert_allclose(self.agent_root.solution.aGrid, [3.0, 4.0, 5.0, 6.0])

    def test_to_frame(self):
        frame = self.agent.solve().to_frame()
        self.assertIsInstance(frame, pd.DataFrame)
        self.assertEqual(frame.index.name, "aNrm")
        self.assertEqual(len(frame), 9)
        for col in ["xOpt", "xClosedForm", "AbsErr", "cOpt", "vOpt", "nit", "converged"]:
            self.assertIn(col, frame.columns)
        self.assertTrue(frame["converged"].all())

    def test_policy_function(self):
        solution = self.agent_root.solve()
        self.assertAlmostEqual(float(solution.xFunc(2.0)), solution.xOpt[0])
        self.assertAlmostEqual(float(solution.xFunc(5.5)), 5.5 * 0.95 / 1.95, delta=1e-3)

    def test_restrictions(self):
        for kwds in [
            {"DiscFac": 1.2},
            {"DiscFac": 0.0},
            {"method": "newton"},
            {"aMin": 0.05},
            {"GuessShare": 1.0},
            {"max_iter": 0},
        ]:
            agent = TwoPeriodConsumerType(**kwds)
            self.assertRaises(ValueError, agent.solve)

    def test_bad_grid(self):
        self.assertRaises(ValueError, TwoPeriodConsumerType, aCount=1)
        self.assertRaises(ValueError, TwoPeriodConsumerType, xMin=12.0)

    def test_defaults_not_shared(self):
        TwoPeriodConsumerType(DiscFac=0.5)
        self.assertEqual(init_two_period["DiscFac"], 0.95)


class testNonConvergence(unittest.TestCase):
    def setUp(self):
        self.agent = TwoPeriodConsumerType(max_iter=2, tol_abs=1e-12)
        self.level = _log.level

    def tearDown(self):
        _log.setLevel(self.level)

    def test_reported_not_silent(self):
        _log.setLevel(logging.WARNING)
        with self.assertLogs("twoperiod", level="WARNING"):
            solution = self.agent.solve()
        self.assertFalse(np.any(solution.converged))
        self.assertTrue(np.all(solution.status == SolverStatus.MAXITER))
        self.assertTrue(np.all(solution.nit == 2))

    def test_strict(self):
        self.agent.assign_parameters(strict=True)
        self.assertRaises(ConvergenceError, self.agent.solve)


class testVerbose(unittest.TestCase):
    def setUp(self):
        self.level = _log.level

    def tearDown(self):
        _log.setLevel(self.level)

    def test_iteration_lines(self):
        agent = TwoPeriodConsumerType(aCount=2, aMax=3.0)
        with self.assertLogs("twoperiod", level="INFO") as logs:
            agent.solve(verbose=True)
        lines = "\n".join(logs.output)
        self.assertIn("Minimizing at aNrm = 2.0000", lines)
        self.assertIn("using brent method", lines)
        self.assertIn("largest error", lines)

    def test_level_restored(self):
        _log.setLevel(logging.WARNING)
        TwoPeriodConsumerType(aCount=2, aMax=3.0).solve(verbose=True)
        self.assertEqual(_log.level, logging.WARNING)


class testParallel(unittest.TestCase):
    def test_matches_sequential(self):
        aGrid = np.linspace(2.0, 10.0, 9)
        xGrid = np.linspace(0.1, 11.0, 50)
        for method in ["minimize", "root"]:
            serial = solve_two_period(aGrid, xGrid, 0.95, method=method)
            parallel = solve_two_period(
                aGrid, xGrid, 0.95, method=method, parallel=True, num_jobs=2
            )
            np.testing.assert_array_equal(serial.xOpt, parallel.xOpt)
            self.assertEqual(serial.distance(parallel), 0.0)

    def test_unknown_method(self):
        self.assertRaises(
            ValueError, solve_two_period, [2.0, 3.0], [0.1, 11.0], 0.95, method="foo"
        )
