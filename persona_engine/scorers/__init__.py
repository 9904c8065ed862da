"""Pluggable scorer backends (ML predictor, constrained optimizer).

Modules
-------
base        — Scorer / Predictor protocols
static      — StaticScorer: fixed metric maps (tests, offline demos)
http_scorer — HttpScorer: remote scoring service over httpx
"""
