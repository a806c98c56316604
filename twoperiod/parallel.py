from typing import Any, Callable, Dict, List, Optional
from joblib import Parallel, delayed
import multiprocessing


def multi_thread_solve_fake(
    solve_func: Callable, state_list: List, kwds: Optional[Dict] = None, num_jobs=None
) -> List:
    """
    Solves the problem at each state in state_list in an ordinary,
    single-threaded loop.  This function exists so as to easily disable
    multithreading, as it uses the same syntax as multi_thread_solve.

    Parameters
    ----------
    solve_func : callable
        Function solving the problem at one state: solve_func(state, **kwds).
    state_list : list
        The states to solve at, in order.
    kwds : dict or None
        Keyword arguments passed to every call of solve_func.
    num_jobs : None
        Dummy input to match syntax of multi_thread_solve.  Does nothing.

    Returns
    -------
    results : list
        One result per state, in the order of state_list.
    """
    kwds = {} if kwds is None else kwds
    return [solve_func(state, **kwds) for state in state_list]


def multi_thread_solve(
    solve_func: Callable, state_list: List, kwds: Optional[Dict] = None, num_jobs=None
) -> List:
    """
    Solves the problem at each state in state_list using joblib workers.  The
    solves must not share mutable state: each call builds its own solver and
    interpolation accelerator.

    Parameters
    ----------
    solve_func : callable
        Module-level function solving the problem at one state:
        solve_func(state, **kwds).
    state_list : list
        The states to solve at, in order.
    kwds : dict or None
        Keyword arguments passed to every call of solve_func.
    num_jobs : int or None
        Number of parallel jobs.  Defaults to the smaller of the number of
        states and the number of available cores.

    Returns
    -------
    results : list
        One result per state, in the order of state_list.
    """
    kwds = {} if kwds is None else kwds
    if len(state_list) <= 1:
        return multi_thread_solve_fake(solve_func, state_list, kwds)

    if num_jobs is None:
        num_jobs = min(len(state_list), multiprocessing.cpu_count())

    return Parallel(n_jobs=num_jobs)(
        delayed(solve_func)(state, **kwds) for state in state_list
    )


def multi_thread_commands_fake(
    agent_list: List, command_list: List, num_jobs=None
) -> None:
    """
    Executes the list of commands in command_list for each AgentType in agent_list
    in an ordinary, single-threaded loop.  Each command should be a method of
    that AgentType subclass, written as "solve()".

    Parameters
    ----------
    agent_list : [AgentType]
        A list of instances of AgentType on which the commands will be run.
    command_list : [string]
        A list of commands to run for each AgentType.
    num_jobs : None
        Dummy input to match syntax of multi_thread_commands.  Does nothing.

    Returns
    -------
    none
    """
    for agent in agent_list:
        run_commands(agent, command_list)


def multi_thread_commands(agent_list: List, command_list: List, num_jobs=None) -> None:
    """
    Executes the list of commands in command_list for each AgentType in agent_list
    using joblib workers. The solved agents replace the originals in agent_list.

    Parameters
    ----------
    agent_list : [AgentType]
        A list of instances of AgentType on which the commands will be run.
    command_list : [string]
        A list of commands to run for each AgentType in agent_list.
    num_jobs : int or None
        Number of parallel jobs.

    Returns
    -------
    None
    """
    if len(agent_list) == 1:
        multi_thread_commands_fake(agent_list, command_list)
        return None

    if num_jobs is None:
        num_jobs = min(len(agent_list), multiprocessing.cpu_count())

    agent_list_out = Parallel(n_jobs=num_jobs)(
        delayed(run_commands)(*args)
        for args in zip(agent_list, len(agent_list) * [command_list])
    )

    # Replace the original types with the output from the parallel call
    for j in range(len(agent_list)):
        agent_list[j] = agent_list_out[j]


def run_commands(agent: Any, command_list: List) -> Any:
    """
    Executes each command in command_list on a given AgentType.  The commands
    should be methods of that AgentType's subclass.

    Parameters
    ----------
    agent : AgentType
        An instance of AgentType on which the commands will be run.
    command_list : [string]
        A list of commands that the agent should run, as methods.

    Returns
    -------
    agent : AgentType
        The same AgentType instance passed as input, after running the commands.
    """
    for command in command_list:
        getattr(agent, command.rstrip("()"))()
    return agent
