"""Per-request input handling.

Modules
-------
quality   — validate_and_normalize(): quality flags + numeric-string coercion
extractor — build_feature_vector(): raw data ∪ candidate properties per candidate
"""
