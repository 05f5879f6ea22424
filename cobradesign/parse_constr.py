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
"""Functions for parsing and converting constraints and linear expressions"""

from typing import List, Tuple
from scipy import sparse
from cobradesign.names import *
import re

SENSE_SYMBOLS = {'>=': GREATER, '=': EQUAL, '<=': LESS, GREATER: GREATER, EQUAL: EQUAL, LESS: LESS}


def parse_constraints(constr, reaction_ids) -> list:
    """Parses linear constraints written as strings

    Parses one or more *linear* constraints written as strings.

    Args:
        constr (str or list of str):
            (List of) constraints in string form.
            E.g.: ['r1 + 3*r2 = 0.3', '-5*r3 -r4 <= -0.5'] or
            '1.0 r1 + 3.0*r2 =0.3,-r4-5*r3<=-0.5' or ...

        reaction_ids (list of str):
            List of reaction identifiers.

    Returns:
        (List of dicts):
        List of constraints. Each constraint is a list of three elements.
        E.g.: [[{'r1':1.0,'r2':3.0},'=',0.3],[{'r3':-5.0,'r4':-1.0},'<=',-0.5],...]
    """
    if not constr:
        return []
    if type(constr) is str:
        constr = re.split(r"\n|,", constr)
    if type(constr) is not list or type(constr[0]) is dict:
        constr = [constr]
    constr = [list(c) if type(c) is tuple else c for c in constr]
    return [lineq2list([c], reaction_ids)[0] if type(c) is str else c for c in constr if c]


def lineq2list(equations, reaction_ids) -> List:
    """Translates *linear* (in)equalities to list format: [lhs,sign,rhs]

    equations = ['2 c - b +3 a <= 2','c - b = 0'], reaction_ids = ['a','b','c']

    is translated to [[{'a':3.0,'b':-1.0,'c':2.0},'<=',2.0],[{'b':-1.0,'c':1.0},'=',0.0]]

    Args:
        equations (list of str):
            (List of) (in)equalities in string form equations=['r1 + 3 r2 = 0.3', '-5 r3 -r4 <= -0.5']

        reaction_ids (list of str):
            List of reaction identifiers or variable names that are used to recognize variables in
            the provided (in)equalities

    Returns:
        (list of lists):
        (In)equalities presented in the form [lhs, sign, rhs]
    """
    D = []
    for equation in equations:
        if not equation:
            continue
        try:
            lhs, rhs = re.split('<=|>=|=', equation)
            eq_sign = re.search('<=|>=|=', equation)[0]
            rhs = float(rhs)
        except (ValueError, TypeError):
            raise Exception("Equations must contain exactly one (in)equality sign: <=,=,>=. "\
                            "Right hand side must be a float number.")
        D.append([linexpr2dict(lhs, reaction_ids), eq_sign, rhs])
    return D


def lineqlist2mat(D, reaction_ids) -> Tuple[sparse.csr_matrix, List, sparse.csr_matrix, List]:
    """Translates *linear* (in)equalities presented in the list of lists format to matrices

    D = [[{'a':3.0,'b':-1.0,'c':2.0},'<=',2.0],[{'b':-1.0,'c':1.0},'=',0.0], [{'a':-1,'b':2.0},'>=',-2.0]]

    is translated to the form A_ineq * x <= b_ineq, A_eq * x = b_eq:

    A_ineq = sparse.csr_matrix([[3,-1,2],[1,-2,0]]), b_ineq = [2,2],
    A_eq = sparse.csr_matrix([[0,-1,1]]), b_eq = [0]

    Args:
        D (list of lists):
            (In)equalities in the list of list form

        reaction_ids (list of str):
            List of reaction identifiers that define the column order

    Returns:
        (Tuple):
        A_ineq, b_ineq, A_eq, b_eq
    """
    numr = len(reaction_ids)
    A_ineq = sparse.csr_matrix((0, numr))
    b_ineq = []
    A_eq = sparse.csr_matrix((0, numr))
    b_eq = []
    for d in D:
        d_expr = linexprdict2mat(d[0], reaction_ids)
        eq_sign = d[1]
        rhs = float(d[2])
        if eq_sign == '=':
            A_eq = sparse.vstack((A_eq, d_expr))
            b_eq += [rhs]
        elif eq_sign == '<=':
            A_ineq = sparse.vstack((A_ineq, d_expr))
            b_ineq += [rhs]
        elif eq_sign == '>=':
            A_ineq = sparse.vstack((A_ineq, -d_expr))
            b_ineq += [-rhs]
        else:
            raise Exception("Unknown (in)equality sign '" + str(eq_sign) + "'.")
    return A_ineq.tocsr(), b_ineq, A_eq.tocsr(), b_eq


def linexpr2dict(expr, reaction_ids) -> dict:
    """Translates a linear expression into a dictionary

    E.g.: input: expr='2 R3 - R1', reaction_ids=['R1', 'R2', 'R3', 'R4'] translates to a dict D={'R1':-1.0, 'R3': 2.0}

    Args:
        expr (str):
            Linear expression as a character string, e.g.: expr='2 R3 - R1'

        reaction_ids (list of str):
            List of reaction identifiers or variable names that are used to recognize variables in the input

    Returns:
        (dict):
        A dictionary that contains the variable names and the variable coefficients in the linear expression
    """
    # split expression into parts and strip away special characters
    expr_parts = [re.sub(r'^(\s|-|\+|\()*|(\s|-|\+|\))*$', '', part) for part in expr.split()]
    expr_parts = [e for e in expr_parts if e != '']
    ridx = [r for r in expr_parts if r in reaction_ids]
    # there must not be two numbers in a row, no unknown words and no duplicate identifiers
    last_was_number = False
    for part in expr_parts:
        if part in ridx:
            last_was_number = False
            continue
        if re.match(r'^\d*\.{0,1}\d*$', part) is not None:
            if last_was_number:
                raise Exception("Expression invalid. The expression contains at least two numbers in a row.")
            last_was_number = True
            continue
        raise Exception("Expression invalid. Unknown identifier " + part + ".")
    if not len(ridx) == len(set(ridx)):
        raise Exception("Reaction identifiers may only occur once in each linear expression.")
    D = {}
    for rid in ridx:
        coeff = re.search(r'(\s|^)(\s|\d|-|\+|\.)*?(?=' + re.escape(rid) + r'(\s|$))', expr)[0]
        coeff = re.sub(r'\s', '', coeff)
        if coeff in ['', '+']:
            coeff = 1.0
        elif coeff == '-':
            coeff = -1.0
        else:
            coeff = float(coeff)
        D.update({rid: coeff})
    return D


def linexprdict2mat(D, reaction_ids) -> sparse.csr_matrix:
    """Translates a linear expression from dict into a single-row matrix

    E.g.: input: D={'R1':-1.0, 'R3': 2.0}, reaction_ids=['R1', 'R2', 'R3', 'R4'] translates into A = [-1 0 2 0]
    """
    A = sparse.lil_matrix((1, len(reaction_ids)))
    for k, v in D.items():
        if k not in reaction_ids:
            raise Exception("Unknown identifier " + str(k) + ".")
        A[0, reaction_ids.index(k)] = v
    return A.tocsr()


def parse_constr_opt(constr_opt, reaction_ids) -> List[Tuple[str, float, str]]:
    """Normalize explicitly constrained reactions to (reaction_id, value, sense) triples

    Constraints on single reactions may be passed in three flavors, that all yield the
    same result:

        constr_opt = {'rxn_list': ['R1', 'R3'], 'values': [2, 4], 'sense': 'GL'}
        constr_opt = [('R1', 2, 'G'), ('R3', 4, '<=')]
        constr_opt = 'R1 >= 2, R3 <= 4'

    In the string form, a coefficient in front of the reaction is divided out
    ('-2 R3 <= 4' becomes ('R3', -2.0, 'G')).

    Args:
        constr_opt (dict or list or str):
            The constraints.

        reaction_ids (list of str):
            Identifiers of the reactions of the (reversible) model.

    Returns:
        (list of tuples):
        List of (reaction_id, value, sense) with sense in 'G', 'E', 'L'.
    """
    if not constr_opt:
        return []
    if isinstance(constr_opt, dict):
        for key in constr_opt:
            if key not in [RXN_LIST, VALUES, SENSE]:
                raise Exception("Key " + key + " is not supported.")
        if any(k not in constr_opt for k in [RXN_LIST, VALUES, SENSE]):
            raise Exception("Constraint options require the fields '" + RXN_LIST + "', '" + VALUES + "' and '" + SENSE +
                            "'.")
        rxn_list = constr_opt[RXN_LIST]
        values = constr_opt[VALUES]
        senses = constr_opt[SENSE]
        if not (len(rxn_list) == len(values) == len(senses)):
            raise Exception("Fields '" + RXN_LIST + "', '" + VALUES + "' and '" + SENSE + "' must have the same length.")
        triples = list(zip(rxn_list, values, senses))
    elif isinstance(constr_opt, str) or (isinstance(constr_opt, list) and all(isinstance(c, str) for c in constr_opt)):
        triples = []
        for lhs, eq_sign, rhs in parse_constraints(constr_opt, reaction_ids):
            if len(lhs) != 1:
                raise Exception("Explicit constraints must contain exactly one reaction each.")
            rid, coeff = next(iter(lhs.items()))
            if coeff == 0:
                raise Exception("Coefficient of reaction " + rid + " must not be zero.")
            sense = SENSE_SYMBOLS[eq_sign]
            if coeff < 0 and sense != EQUAL:
                sense = LESS if sense == GREATER else GREATER
            triples.append((rid, rhs / coeff, sense))
    else:
        triples = [tuple(c) for c in constr_opt]
    constraints = []
    for t in triples:
        if len(t) != 3:
            raise Exception("Explicit constraints must have the form (reaction, value, sense).")
        rid, value, sense = t
        if rid not in reaction_ids:
            raise Exception("Constrained reaction " + str(rid) + " is not part of the model.")
        if sense not in SENSE_SYMBOLS:
            raise Exception("Sense '" + str(sense) + "' is not supported. Use 'G', 'E' or 'L'.")
        constraints.append((rid, float(value), SENSE_SYMBOLS[sense]))
    return constraints
