"""Decision pipeline orchestration.

Modules
-------
context    — DecisionContext + persona lookup and defaults resolution
ranker     — latency estimate, candidate ordering, threshold gate
confidence — context stability, confidence composition, explanation
engine     — DecisionEngine: decide / validate / feedback
factory    — build_engine(config): wire adapters from AppConfig
"""

from persona_engine.engine.engine import DecisionEngine
from persona_engine.engine.factory import build_engine

__all__ = ["DecisionEngine", "build_engine"]
