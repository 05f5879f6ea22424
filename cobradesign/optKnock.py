#!/usr/bin/env python3
#
# Copyright 2022 Max Planck Insitute Magdeburg
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
#
#
"""OptKnock strain design (optknock, optknock_search) and its options (OptKnockOptions)"""

from typing import Dict, List, Tuple
from numpy import inf, isinf
from cobradesign import select_solver, solve_cobra_milp, parse_constr_opt, convert_to_irreversible, \
                        create_bilevel_milp_problem, check_model_blocks, OptKnockSolution, BilevelMILPProblem
from cobradesign.names import *
import logging


class OptKnockOptions(Dict):
    """Options of an OptKnock computation

    OptKnock searches for a set of reaction knockouts that maximizes the flux through a
    target reaction under the assumption that the cell maximizes its native objective
    (e.g., growth). The options are checked upon construction and unset keys are filled
    with their default values.

    Example:
        options = OptKnockOptions(target_rxn='EX_succ_e', num_del=3)

    Args:
        target_rxn (str):
            Identifier of the reaction whose flux should be maximized (mandatory).

        num_del (optional (int)): (Default: 5)
            Number of knockouts.

        num_del_sense (optional (str)): (Default: 'L')
            Sense of the constraint on the number of knockouts: 'L' (at most num_del),
            'E' (exactly num_del) or 'G' (at least num_del).

        v_max (optional (float)): (Default: 1000)
            Flux bound that replaces infinite bounds. Also bounds the dual variables.

        solve_optknock (optional (bool)): (Default: True)
            If False, the MILP is only constructed and returned.

        init_solution (optional (list of str)): (Default: None)
            Initial guess of knocked-out reactions. Must be a subset of the candidates
            and must not contain more than num_del reactions.

        solver (optional (str)): (Default: None)
            Solver backend. If not specified, the solver is selected with select_solver.

        time_limit (optional (float)): (Default: inf)
            Time limit for the MILP solver in seconds.

    Returns:
        (OptKnockOptions):
        A dictionary with all options.
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        defaults = {
            TARGET_RXN: None,
            NUM_DEL: 5,
            NUM_DEL_SENSE: LESS,
            V_MAX: 1000.0,
            SOLVE_OPTKNOCK: True,
            INIT_SOLUTION: None,
            SOLVER: None,
            T_LIMIT: inf
        }
        for key in self.keys():
            if key not in defaults:
                raise Exception("Key " + key + " is not supported.")
        for key, value in defaults.items():
            if key not in self or self[key] is None:
                self[key] = value
        if self[NUM_DEL_SENSE] not in [GREATER, EQUAL, LESS]:
            raise Exception('"' + NUM_DEL_SENSE + '" must be "' + GREATER + '", "' + EQUAL + '" or "' + LESS + '" (default).')
        if self[NUM_DEL] < 0:
            raise Exception('"' + NUM_DEL + '" must not be negative.')
        if self[NUM_DEL] != int(self[NUM_DEL]):
            raise Exception('"' + NUM_DEL + '" must be an integer.')
        if isinf(self[V_MAX]) or self[V_MAX] <= 0:
            raise Exception('"' + V_MAX + '" must be a positive number.')
        if self[T_LIMIT] <= 0:
            raise Exception('"' + T_LIMIT + '" must be a positive number.')


def optknock(model,
             selected_rxn_list,
             options,
             constr_opt=None,
             prev_solutions=None,
             verbose=False) -> Tuple[OptKnockSolution, BilevelMILPProblem]:
    """Compute a knockout strategy with OptKnock

    OptKnock (Burgard et al., 2003) identifies up to num_del reaction knockouts, such that
    the flux through a target reaction is maximal at the optimum of the native objective
    function of the model (e.g., growth). The bilevel problem is reformulated into a single
    MILP using LP duality. Previously found solutions can be excluded from the search.

    Example:
        sol, problem = optknock(model, ['ACKr', 'PFL', 'LDH_D'], {'target_rxn': 'EX_succ_e', 'num_del': 2},
                                constr_opt='BIOMASS >= 0.1')

    Args:
        model (cobra.Model):
            A metabolic model that is an instance of the cobra.Model class. The model
            objective is used as the inner objective. The model is not modified.

        selected_rxn_list (list of str):
            Identifiers of the reactions that may be knocked out.

        options (dict or OptKnockOptions):
            Options of the computation, see OptKnockOptions.

        constr_opt (optional (dict or list or str)): (Default: None)
            Additional constraints on single reactions, e.g., 'BIOMASS >= 0.1' or
            {'rxn_list': ['BIOMASS'], 'values': [0.1], 'sense': 'G'}. See parse_constr_opt.

        prev_solutions (optional (list of lists of str)): (Default: None)
            Previously found knockout sets that are excluded.

        verbose (optional (bool)): (Default: False)
            Log the size of the problem and the result.

    Returns:
        (Tuple[OptKnockSolution, BilevelMILPProblem]):
        The solution and the assembled MILP.
    """
    if not isinstance(options, OptKnockOptions):
        options = OptKnockOptions(**(options or {}))
    reaction_ids = model.reactions.list_attr('id')
    target = options[TARGET_RXN]
    if not target:
        raise Exception('No target reaction specified. Please provide "' + TARGET_RXN + '" in the options.')
    if target not in reaction_ids:
        raise Exception('Target reaction ' + str(target) + ' is not part of the model.')
    unknown = [r for r in selected_rxn_list if r not in reaction_ids]
    if unknown:
        raise Exception('Knockout candidates ' + str(unknown) + ' are not part of the model.')
    init_solution = options[INIT_SOLUTION]
    if init_solution is not None:
        if isinstance(init_solution, str):
            init_solution = [init_solution]
        if any(r not in selected_rxn_list for r in init_solution):
            raise Exception('The initial solution must be a subset of the selected reactions.')
        if len(set(init_solution)) > options[NUM_DEL]:
            raise Exception('The initial solution must not contain more than ' + str(options[NUM_DEL]) + ' reactions.')
    check_model_blocks(model)
    constraints = parse_constr_opt(constr_opt, reaction_ids)

    irrev_model = convert_to_irreversible(model, order_reactions=True, v_max=options[V_MAX])
    problem = create_bilevel_milp_problem(irrev_model,
                                          target,
                                          selected_rxn_list,
                                          constraints=constraints,
                                          options=options,
                                          prev_solutions=prev_solutions)
    if init_solution is not None:
        problem.set_initial_solution(init_solution)
    if verbose:
        logging.info('  OptKnock MILP: ' + str(problem.num_rows) + ' constraints, ' + str(problem.num_vars) +
                     ' variables (' + str(len(problem.int_sol_ind)) + ' binary), ' +
                     str(len(prev_solutions or [])) + ' excluded solutions.')

    if not options[SOLVE_OPTKNOCK]:
        return OptKnockSolution(), problem

    solver = select_solver(options[SOLVER], model)
    milp_sol = solve_cobra_milp(problem, solver=solver, time_limit=options[T_LIMIT])
    sol = OptKnockSolution.from_milp(problem, milp_sol)
    if verbose:
        if sol.has_solution():
            logging.info('  Knockouts: ' + str(sol.rxn_list) + ', target flux: ' + str(sol.objective_value))
        else:
            logging.info('  No solution found (' + str(sol.status) + ').')
    return sol, problem


def optknock_search(model,
                    candidates,
                    options,
                    constr_opt=None,
                    n=1,
                    prev_solutions=None,
                    verbose=False) -> Tuple[List[OptKnockSolution], List[List[str]]]:
    """Compute several distinct knockout strategies with repeated OptKnock calls

    Each found knockout set is excluded from the subsequent searches. The search stops after
    n solutions or when a call does not end with an optimal solution. The state of the search
    is only the list of previous solutions, which is returned. It can be passed to a later call
    to resume the search.

    Example:
        sols, prev = optknock_search(model, ['ACKr', 'PFL'], {'target_rxn': 'EX_succ_e'}, n=3)

    Args:
        model, candidates, options, constr_opt, verbose:
            See optknock.

        n (optional (int)): (Default: 1)
            Maximum number of solutions.

        prev_solutions (optional (list of lists of str)): (Default: None)
            Knockout sets that were found before and are excluded.

    Returns:
        (Tuple[List[OptKnockSolution], List[List[str]]]):
        The found solutions and the extended list of previous solutions.
    """
    prev_solutions = [list(s) for s in prev_solutions] if prev_solutions else []
    solutions = []
    for i in range(n):
        sol, _ = optknock(model, candidates, options, constr_opt, prev_solutions, verbose)
        if sol.status != OPTIMAL:
            logging.info('  Search stopped after ' + str(i) + ' solutions (' + str(sol.status) + ').')
            break
        solutions.append(sol)
        prev_solutions.append(list(sol.rxn_list))
    return solutions, prev_solutions
