"""Scenario-driven vault simulation."""

from src.simulation.runner import ScenarioRunner, SimulationResult, StepOutcome

__all__ = ["ScenarioRunner", "SimulationResult", "StepOutcome"]
