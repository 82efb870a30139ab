# Data layer for the media plan engine

from .parsers import PlanParser, PlanParseError, plan_from_dict, plan_to_dict, dump_plan, load_plans
from .seed import build_seed_plan, build_flighting_seed_plan

__all__ = [
    'PlanParser',
    'PlanParseError',
    'plan_from_dict',
    'plan_to_dict',
    'dump_plan',
    'load_plans',
    'build_seed_plan',
    'build_flighting_seed_plan',
]
