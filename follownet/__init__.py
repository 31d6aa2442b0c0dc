"""
follownet

Collects keyword-matched X/Twitter accounts, merges manual codes onto them,
computes descriptive statistics and exports their follower network as a
dynamic GEXF graph.
"""

__version__ = "1.0.0"
