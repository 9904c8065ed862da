"""Declarative persona rules.

Modules
-------
condition — safe ``<feature> <op> <literal>`` parser + pure evaluator
evaluator — apply_rules(): fire all matching rules, sum adjustments, inject metrics
"""
