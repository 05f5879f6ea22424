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
"""Irreversible representation of metabolic models (IrreversibleModel) and constraint translation"""

from cobra.util import create_stoichiometric_matrix
from scipy import sparse
from pandas import Series
from typing import List, Tuple
from copy import deepcopy
from cobradesign.names import *
import logging


class IrrevVariable(object):
    """A flux variable of the irreversible model

    Each irreversible variable points to the reaction of the original model it was derived
    from. Its net contribution to the flux of this reaction is sign * v.

    Attributes:
        index (int): Position of the variable in the irreversible model.
        id (str): Identifier, e.g. 'R1', 'R1_f', 'R1_b' or 'R1_r'.
        reaction_index (int): Index of the original reaction.
        reaction_id (str): Identifier of the original reaction.
        direction (str): 'forward' or 'backward'.
        sign (int): +1 or -1.
    """

    def __init__(self, index, id, reaction_index, reaction_id, direction, sign):
        self.index = index
        self.id = id
        self.reaction_index = reaction_index
        self.reaction_id = reaction_id
        self.direction = direction
        self.sign = sign

    def __repr__(self):
        return "<IrrevVariable " + self.id + " (" + self.reaction_id + ", " + self.direction + ")>"


class IrreversibleModel(object):
    """Metabolic model in which all fluxes are non-negative

    Reversible reactions are split into a forward and a backward variable, reactions
    that can only run backwards are flipped. The object keeps the stoichiometric matrix,
    the bounds and the objective of the irreversible variables as well as the mappings
    between the original reactions and the irreversible variables. Instances are created
    with convert_to_irreversible.

    Attributes:
        S (sparse.csr_matrix): Stoichiometric matrix (metabolites x irreversible variables).
        lb, ub (list of float): Bounds of the irreversible variables.
        c (list of float): Objective coefficients (always maximized).
        variables (list of IrrevVariable): The irreversible variables.
        reaction_ids (list of str): Reaction identifiers of the original model.
        metabolite_ids (list of str): Metabolite identifiers.
        v_max (float): The flux bound that was used to cap infinite bounds.
    """

    def __init__(self, S, lb, ub, c, variables, reaction_ids, metabolite_ids, v_max=None):
        self.S = sparse.csr_matrix(S)
        self.lb = list(lb)
        self.ub = list(ub)
        self.c = list(c)
        self.variables = variables
        self.reaction_ids = list(reaction_ids)
        self.metabolite_ids = list(metabolite_ids)
        self.v_max = v_max
        self._rev2irrev = [[] for _ in self.reaction_ids]
        for v in self.variables:
            self._rev2irrev[v.reaction_index].append(v.index)

    @property
    def ids(self) -> List[str]:
        return [v.id for v in self.variables]

    @property
    def num_vars(self) -> int:
        return len(self.variables)

    @property
    def rev2irrev(self) -> List[List[int]]:
        """Indices of the one or two irreversible variables of each original reaction"""
        return [list(i) for i in self._rev2irrev]

    @property
    def irrev2rev(self) -> List[int]:
        """Index of the original reaction of each irreversible variable"""
        return [v.reaction_index for v in self.variables]

    @property
    def match_rev(self) -> List[int]:
        """Index of the reverse-direction twin of each irreversible variable, -1 if none"""
        match_rev = [-1] * self.num_vars
        for idx in self._rev2irrev:
            if len(idx) == 2:
                match_rev[idx[0]] = idx[1]
                match_rev[idx[1]] = idx[0]
        return match_rev

    def variables_of(self, reaction_id) -> List[IrrevVariable]:
        """Irreversible variables of an original reaction, forward variable first"""
        if reaction_id not in self.reaction_ids:
            raise Exception("Reaction " + str(reaction_id) + " is not part of the model.")
        idx = self._rev2irrev[self.reaction_ids.index(reaction_id)]
        return sorted([self.variables[i] for i in idx], key=lambda v: v.direction != FORWARD)

    def copy(self):
        return deepcopy(self)

    def apply_constraints(self, translated):
        """Return a copy of the model with overwritten bounds

        Args:
            translated (list of tuples):
                Bound changes in irreversible space (irrev_index, 'lb' or 'ub', value), as
                returned by translate_constraints. Later entries override earlier ones.

        Returns:
            (IrreversibleModel):
            A copy of the model with changed bounds.
        """
        irrev_model = self.copy()
        for i, bound, value in translated:
            if bound == LB:
                irrev_model.lb[i] = float(value)
            elif bound == UB:
                irrev_model.ub[i] = float(value)
            else:
                raise Exception("Bound type must be '" + LB + "' or '" + UB + "'.")
        return irrev_model

    def to_reversible_fluxes(self, v) -> Series:
        """Restore the net fluxes of the original reactions from irreversible fluxes"""
        fluxes = [0.0] * len(self.reaction_ids)
        for var, flux in zip(self.variables, v):
            fluxes[var.reaction_index] += var.sign * flux
        return Series(fluxes, index=self.reaction_ids, name='fluxes', dtype=float)

    def __repr__(self):
        return "<IrreversibleModel " + str(len(self.metabolite_ids)) + " metabolites, " + \
            str(self.num_vars) + " variables at " + hex(id(self)) + ">"


def convert_to_irreversible(model, order_reactions=False, v_max=None) -> IrreversibleModel:
    """Convert a cobra.Model into an irreversible model

    Reactions with lower_bound < 0 < upper_bound are split into a forward variable 'id_f' and
    a backward variable 'id_b' with a negated stoichiometric column. Reactions that can only
    run backwards (lower_bound < 0, upper_bound <= 0) are flipped into a single variable 'id_r'.
    All other reactions are kept. The original model is not changed.

    Example:
        irrev_model = convert_to_irreversible(model, order_reactions=True, v_max=1000)

    Args:
        model (cobra.Model):
            A metabolic model that is an instance of the cobra.Model class.

        order_reactions (optional (bool)): (Default: False)
            If True, each backward variable is placed directly after its forward twin.
            Otherwise, backward variables are appended after all forward variables.

        v_max (optional (float)): (Default: None)
            If given, all bounds are capped to the interval [-v_max, v_max].

    Returns:
        (IrreversibleModel):
        The irreversible model with its mappings.
    """
    S = sparse.csc_matrix(create_stoichiometric_matrix(model, array_type='dok'), dtype=float)
    reaction_ids = model.reactions.list_attr('id')
    if model.objective_direction == 'min':
        obj_sign = -1.0
    else:
        obj_sign = 1.0
    forward = []
    backward = []
    for i, r in enumerate(model.reactions):
        lb = r.lower_bound
        ub = r.upper_bound
        if v_max is not None:
            lb = max(lb, -v_max)
            ub = min(ub, v_max)
        c = obj_sign * r.objective_coefficient
        # (column index, id, direction, sign, lb, ub, c)
        if lb < 0 and ub > 0:
            fwd = (i, r.id + '_f', FORWARD, 1, 0.0, ub, c)
            bwd = (i, r.id + '_b', BACKWARD, -1, 0.0, -lb, -c)
            if order_reactions:
                forward += [fwd, bwd]
            else:
                forward += [fwd]
                backward += [bwd]
        elif lb < 0:
            forward += [(i, r.id + '_r', BACKWARD, -1, -ub, -lb, -c)]
        else:
            forward += [(i, r.id, FORWARD, 1, lb, ub, c)]
    entries = forward + backward
    ids = [e[1] for e in entries]
    if len(set(ids)) < len(ids):
        logging.warning('Identifiers of the irreversible model are not unique.')
    columns = [e[3] * S[:, e[0]] for e in entries]
    if columns:
        S_irrev = sparse.hstack(columns).tocsr()
    else:
        S_irrev = sparse.csr_matrix((len(model.metabolites), 0))
    variables = [
        IrrevVariable(j, e[1], e[0], reaction_ids[e[0]], e[2], e[3]) for j, e in enumerate(entries)
    ]
    return IrreversibleModel(S_irrev, [float(e[4]) for e in entries], [float(e[5]) for e in entries],
                             [float(e[6]) for e in entries], variables, reaction_ids,
                             model.metabolites.list_attr('id'), v_max)


def translate_constraints(constraints, irrev_model) -> List[Tuple[int, str, float]]:
    """Translate constraints on original reactions into bounds of irreversible variables

    The net flux constraint is preserved exactly. For a split reaction R1, for instance,
    'R1 >= -5' becomes an upper bound of 5 on R1_b, and 'R1 <= -2' becomes R1_f <= 0 and
    R1_b >= 2.

    Example:
        translated = translate_constraints([('R1', -5, 'G')], irrev_model)

    Args:
        constraints (list of tuples):
            List of (reaction_id, value, sense) with sense 'G', 'E' or 'L', e.g., as returned
            by parse_constr_opt.

        irrev_model (IrreversibleModel):
            The irreversible model.

    Returns:
        (list of tuples):
        List of (irrev_index, 'lb' or 'ub', value).
    """
    translated = []
    for rid, value, sense in constraints:
        if rid not in irrev_model.reaction_ids:
            raise Exception("Constrained reaction " + str(rid) + " is not part of the model.")
        if sense not in [GREATER, EQUAL, LESS]:
            raise Exception("Sense '" + str(sense) + "' is not supported. Use 'G', 'E' or 'L'.")
        value = float(value)
        irrev_vars = irrev_model.variables_of(rid)
        if len(irrev_vars) == 2:
            f = irrev_vars[0].index
            b = irrev_vars[1].index
            if sense == GREATER:
                if value >= 0:
                    translated += [(f, LB, value), (b, UB, 0.0)]
                else:
                    translated += [(b, UB, -value)]
            elif sense == LESS:
                if value >= 0:
                    translated += [(f, UB, value)]
                else:
                    translated += [(f, UB, 0.0), (b, LB, -value)]
            else:
                if value >= 0:
                    translated += [(f, LB, value), (f, UB, value), (b, LB, 0.0), (b, UB, 0.0)]
                else:
                    translated += [(f, LB, 0.0), (f, UB, 0.0), (b, LB, -value), (b, UB, -value)]
        else:
            i = irrev_vars[0].index
            if irrev_vars[0].sign < 0:
                value = -value
                sense = {GREATER: LESS, LESS: GREATER, EQUAL: EQUAL}[sense]
            if sense == GREATER:
                translated += [(i, LB, value)]
            elif sense == LESS:
                translated += [(i, UB, value)]
            else:
                translated += [(i, LB, value), (i, UB, value)]
    return translated
