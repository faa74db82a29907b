# Balance module

from .foothold_planner import FootholdPlanner

__all__ = ["FootholdPlanner"]
