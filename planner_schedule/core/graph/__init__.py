"""Deterministic task decomposition.

Features and threats expand into a fixed task template per item, so the same
input always yields the same task ids, edges and estimates.
"""
