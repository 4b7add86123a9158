"""Merger configuration engine and execution planning"""

from .configurator import MergerConfiguration, MergerConfigurator
from .planner import SimulationStepPlanner, get_execution_strategy

__all__ = ["MergerConfiguration", "MergerConfigurator", "SimulationStepPlanner", "get_execution_strategy"]
