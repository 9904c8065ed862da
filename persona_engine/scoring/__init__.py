"""Candidate scoring.

Modules
-------
normalizers — declarative table of heuristic utility curves (raw feature → [0, 1] metric)
aggregator  — weighted_score(): multi-objective combination + hard rule adjustment
risk        — RiskModel: feature vector → RiskLevel
"""
