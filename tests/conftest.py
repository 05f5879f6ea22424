import pytest
from cobra import Configuration
from cobradesign.names import *

cobra_conf = Configuration()
bound_thres = max((abs(cobra_conf.lower_bound), abs(cobra_conf.upper_bound)))

# GLPK (swiglpk) is installed together with cobra
solvers = [GLPK]


@pytest.fixture(params=solvers, scope="session")
def curr_solver(request: pytest.FixtureRequest) -> str:
    """Provide session-level fixture for parametrized solver names."""
    return request.param


@pytest.fixture(params=[100.0, bound_thres], scope="session")
def v_max(request: pytest.FixtureRequest) -> float:
    """Provide session-level fixture for the flux bound of the irreversible model."""
    return request.param


@pytest.fixture(params=[True, False], scope="session")
def order_reactions(request: pytest.FixtureRequest) -> bool:
    """Provide session-level fixture for the ordering of split reactions."""
    return request.param
