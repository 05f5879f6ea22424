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
"""Static strings used in the cobradesign package

    OptKnock options

        TARGET_RXN = 'target_rxn'

        NUM_DEL = 'num_del'

        NUM_DEL_SENSE = 'num_del_sense'

        V_MAX = 'v_max'

        SOLVE_OPTKNOCK = 'solve_optknock'

        INIT_SOLUTION = 'init_solution'

    Constraint specification

        RXN_LIST = 'rxn_list'

        VALUES = 'values'

        SENSE = 'sense'

        GREATER = 'G'

        EQUAL = 'E'

        LESS = 'L'

    Irreversible model

        FORWARD = 'forward'

        BACKWARD = 'backward'

        LB = 'lb'

        UB = 'ub'

    Solvers and status codes

        SOLVER = 'solver'

        GLPK = 'glpk'

        OPTIMAL = 'optimal' # from optlang interface

        INFEASIBLE ='infeasible' # from optlang interface

        TIME_LIMIT = 'time_limit' # from optlang interface

        UNBOUNDED = 'unbounded' # from optlang interface

        TIME_LIMIT_W_SOL = 'time_limit_w_sols'

        ERROR = 'error'

        T_LIMIT = 'time_limit'

    Analysis

        CONSTRAINTS = 'constraints'

        MAXIMIZE = 'maximize'

        MINIMIZE = 'minimize'

        KO_TOL_FACTOR = 100
"""

# OptKnock options
TARGET_RXN = 'target_rxn'
NUM_DEL = 'num_del'
NUM_DEL_SENSE = 'num_del_sense'
V_MAX = 'v_max'
SOLVE_OPTKNOCK = 'solve_optknock'
INIT_SOLUTION = 'init_solution'

# Constraint specification
RXN_LIST = 'rxn_list'
VALUES = 'values'
SENSE = 'sense'
GREATER = 'G'
EQUAL = 'E'
LESS = 'L'

# Irreversible model
FORWARD = 'forward'
BACKWARD = 'backward'
LB = 'lb'
UB = 'ub'

# Solvers and status codes
SOLVER = 'solver'
GLPK = 'glpk'
from optlang.interface import OPTIMAL,    \
                              INFEASIBLE, \
                              TIME_LIMIT, \
                              UNBOUNDED

TIME_LIMIT_W_SOL = 'time_limit_w_sols'
ERROR = 'error'
T_LIMIT = 'time_limit'

# Analysis
CONSTRAINTS = 'constraints'
MAXIMIZE = 'maximize'
MINIMIZE = 'minimize'
# binaries closer than KO_TOL_FACTOR * feasibility tolerance to 1 count as knocked out
KO_TOL_FACTOR = 100
