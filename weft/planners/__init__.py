"""Planners."""

from .base import BasePlanner
from .built_in import BuiltInPlanner
from .plan_re_act import PlanReActPlanner

__all__ = ["BasePlanner", "BuiltInPlanner", "PlanReActPlanner"]
