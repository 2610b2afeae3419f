"""Rules package.

This package contains the rule engine that turns per-frame clustering
statistics into alert annotations. Rules are configured as dictionaries
(typically from YAML) and matched to registered handlers by type, such as
a crowd density ratio above a threshold or an unusually large cluster.
"""

from .rule_engine import RuleEngine

__all__ = ["RuleEngine"]
