"""Pydantic models for personas, decision requests and decision responses.

Modules
-------
persona  — PersonaProfile, PersonaAttributes, DeclarativeRule (read-only store records)
request  — DecisionRequest, ActionCandidate, Objective, SecurityContext (inbound)
decision — DecisionResponse, ScoredCandidate, ValidationResult, FeedbackAck (outbound)
"""
