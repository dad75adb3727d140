"""
Learning Path Optimization Engine
Recommends, sequences and re-prioritizes learning topics for a learner
over a prerequisite graph, and adapts per-topic difficulty from observed
performance.
"""

__version__ = "0.1.0"
