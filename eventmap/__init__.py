"""Event map planning package: blocks, halls, visit lists and walking routes."""

from .planner import plan_route
from .models import RoutePlan

__all__ = ["plan_route", "RoutePlan"]
