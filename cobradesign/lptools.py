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
"""Functions for solver selection and flux balance analysis (select_solver, fba)"""

from cobra.core import Solution
from cobra.util import create_stoichiometric_matrix
from cobra import Configuration
from scipy import sparse
from cobradesign import avail_solvers, MILP_LP, parse_constraints, lineqlist2mat, linexpr2dict, linexprdict2mat
from re import search
from cobradesign.names import *
from numpy import isnan
import logging


def select_solver(solver=None, model=None) -> str:
    """Select a solver for subsequent MILP/LP computations

    This function will determine the solver to be used for subsequend MILP/LP computations. If
    a solver is provided, it is checked for availability. Otherwise the solver of the given
    model is used if it is available, then the solver of the COBRA configuration. If none of
    these can be used, the first solver that was found at package initialization is returned.

    Example:
        solver = select_solver('glpk')

    Args:
        solver (optional (str)):
            A user preferred solver, that should be checked for availability: 'glpk'.

        model (optional (cobra.Model)):
            A metabolic model that is an instance of the cobra.Model class. The function will try to
            dertermine the selected solver by accessing the field model.solver.

    Returns:
        (str):
            The selected solver name as a str.
    """
    if not avail_solvers:
        raise Exception('No solver available. Please ensure that GLPK (swiglpk) is avaialable in your Python environment.')
    # first try to use selected solver
    if solver:
        if solver in avail_solvers:
            return solver
        else:
            logging.warning('Selected solver ' + solver + ' not available. Using ' + list(avail_solvers)[0] + " instead.")
    pattern = '(' + '|'.join(avail_solvers) + ')'
    # if no solver was defined, use solver specified in model
    if hasattr(model, 'solver') and hasattr(model.solver, 'interface'):
        solver = search(pattern, model.solver.interface.__name__)
        if solver is not None:
            return solver[0]
        else:
            logging.warning('Solver specified in model (' + model.solver.interface.__name__ + ') unavailable')
    # if no solver specified in model, use solver from cobra configuration
    cobra_conf = Configuration()
    if hasattr(cobra_conf, 'solver') and hasattr(cobra_conf.solver, '__name__'):
        solver = search(pattern, cobra_conf.solver.__name__)
        if solver is not None:
            return solver[0]
        else:
            logging.warning('Solver specified in cobra config (' + cobra_conf.solver.__name__ + ') unavailable')
    return list(avail_solvers)[0]


def fba(model, **kwargs) -> Solution:
    """Flux Balance Analysis (FBA) and parsimonious Flux Balance Analysis (pFBA)

    Flux Balance Analysis optimizes a *linear objective function* in a space of steady-state
    flux vectors given by a constraint-based metabolic model. This FBA function allows to use
    a custom objective function and sense and allows the user to narrow down the flux states
    with additional constraints. With pfba=1, the total sum of fluxes is minimized after the
    primary objective is optimized.

    Example:
        optim = fba(model, constraints='EX_o2_e=0', pfba=1)

    Args:
        model (cobra.Model):
            A metabolic model that is an instance of the cobra.Model class. If no custom objective
            function is provided, the model's objective function is retrieved from the fields
            model.reactions[i].objective_coefficient.

        solver (optional (str)):
            The solver that should be used for FBA.

        constraints (optional (str) or (list of str) or (list of [dict,str,float])): (Default: '')
            List of *linear* constraints to be applied on top of the model. Correct (and
            identical) inputs are, for instance:
            constraints='-EX_o2_e <= 5, ATPM = 20' or
            constraints=['-EX_o2_e <= 5', 'ATPM = 20'] or
            constraints=[[{'EX_o2_e':-1},'<=',5], [{'ATPM':1},'=',20]]

        obj (optional (str) or (dict)):
            A custom linear objective function, either as a string or as a dict:
            obj='BIOMASS_Ecoli_core_w_GAM' or obj={'BIOMASS_Ecoli_core_w_GAM': 1}

        obj_sense (optional (str)): (Default: 'maximize')
            The optimization direction can be set either to 'maximize' (or 'max') or 'minimize' (or 'min').

        pfba (optional (int)): (Default: 0)
            0: only optimize the primary objective, 1: minimize the sum of fluxes after the
            primary objective is optimized.

    Returns:
        (cobra.core.Solution):
            A solution object that contains the objective value, an optimal flux vector and the
            optimization status.
    """
    reaction_ids = model.reactions.list_attr("id")

    if CONSTRAINTS in kwargs:
        kwargs[CONSTRAINTS] = parse_constraints(kwargs[CONSTRAINTS], reaction_ids)
    else:
        kwargs[CONSTRAINTS] = []
    A_ineq, b_ineq, A_eq, b_eq = lineqlist2mat(kwargs[CONSTRAINTS], reaction_ids)

    if 'obj' in kwargs and kwargs['obj'] is not None:
        if type(kwargs['obj']) is str:
            kwargs['obj'] = linexpr2dict(kwargs['obj'], reaction_ids)
        c = linexprdict2mat(kwargs['obj'], reaction_ids).toarray()[0].tolist()
    else:
        c = [i.objective_coefficient for i in model.reactions]

    if ('obj_sense' not in kwargs and model.objective_direction == 'max') or \
       ('obj_sense' in kwargs and kwargs['obj_sense'] not in ['min', 'minimize']):
        obj_sense = MAXIMIZE
        c = [-i for i in c]
    else:
        obj_sense = MINIMIZE

    pfba = kwargs.get('pfba', 0)
    solver = select_solver(kwargs.get(SOLVER), model)

    # prepare vectors and matrices
    A_eq = sparse.vstack((sparse.csr_matrix(create_stoichiometric_matrix(model)), A_eq)).tocsr()
    b_eq = [0.0] * len(model.metabolites) + b_eq
    lb = [v.lower_bound for v in model.reactions]
    ub = [v.upper_bound for v in model.reactions]

    # build LP
    fba_prob = MILP_LP(c=c, A_ineq=A_ineq, b_ineq=b_ineq, A_eq=A_eq, b_eq=b_eq, lb=lb, ub=ub, solver=solver)
    x, opt_cx, status = fba_prob.solve()
    if status == UNBOUNDED:
        # return a flux vector with a finite objective value of at least 1
        num_prob = MILP_LP(c=[-v for v in c], A_ineq=A_ineq, b_ineq=b_ineq, A_eq=A_eq, b_eq=b_eq, lb=lb, ub=ub, solver=solver)
        min_cx = num_prob.slim_solve()
        if min_cx <= 0 or isnan(min_cx):
            num_prob.add_eq_constraints(sparse.csr_matrix(c), [-1.0])
        else:
            num_prob.add_eq_constraints(sparse.csr_matrix(c), [-min_cx])
        x, _, _ = num_prob.solve()
    elif status != OPTIMAL:
        return Solution(objective_value=None, status=status, fluxes=None)
    if pfba and status == OPTIMAL:  # split all reversible reactions and minimize the total flux
        numr = len(c)
        A_ineq_pfba = sparse.hstack((A_ineq, -A_ineq))
        A_eq_pfba = sparse.hstack((A_eq, -A_eq))
        lb_pfba = [max((0, l)) for l in lb] + [max((0, -u)) for u in ub]
        ub_pfba = [max((0, u)) for u in ub] + [max((0, -l)) for l in lb]
        c_pfba = c + [-v for v in c]
        pfba_prob = MILP_LP(c=[1.0] * 2 * numr,
                            A_ineq=A_ineq_pfba,
                            b_ineq=b_ineq,
                            A_eq=A_eq_pfba,
                            b_eq=b_eq,
                            lb=lb_pfba,
                            ub=ub_pfba,
                            solver=solver)
        pfba_prob.add_eq_constraints(sparse.csr_matrix(c_pfba), [opt_cx])
        x, _, _ = pfba_prob.solve()
        x = [x[i] - x[j] for i, j in enumerate(range(numr, 2 * numr))]

    x = [v if abs(v) >= 1e-11 else 0.0 for v in x]  # cut off for very small absolute values
    fluxes = {reaction_ids[i]: x[i] for i in range(len(x))}
    if obj_sense == MAXIMIZE:
        opt_cx = -opt_cx
    return Solution(objective_value=opt_cx, status=status, fluxes=fluxes)
