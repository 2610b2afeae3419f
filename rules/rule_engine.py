"""Alert rule engine.

The `RuleEngine` class evaluates configured rules against a per-frame
context dictionary (vehicle counts, cluster sizes, density ratios) and
returns the rules that fired. Each rule names a handler through its
``type`` key; handlers receive both the context and the rule so
thresholds can live in configuration rather than in code.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List

RuleHandler = Callable[[Dict[str, Any], Dict[str, Any]], bool]


class RuleEngine:
    """Evaluate alert rules and report the triggered ones."""

    def __init__(self, rules: List[Dict[str, Any]] | None = None) -> None:
        """
        Parameters
        ----------
        rules : list of dict, optional
            Rule definitions. Each rule has a ``type`` selecting its handler
            and may carry ``threshold``, ``level`` and ``message`` keys.
        """
        self.rules: List[Dict[str, Any]] = list(rules or [])
        self.custom_handlers: Dict[str, RuleHandler] = {}

    def register_handler(self, name: str, handler: RuleHandler) -> None:
        """Register a rule handler.

        When a rule's `type` matches `name`, the handler is invoked with the
        context dictionary and the rule itself. It should return `True` if
        the rule fires.
        """
        self.custom_handlers[name] = handler

    def evaluate(self, context: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Evaluate all rules against the current context.

        Parameters
        ----------
        context : dict
            Per-frame values the handlers inspect.

        Returns
        -------
        events : list of dict
            One entry per triggered rule with the rule, its level and a
            formatted message.
        """
        triggered_events = []
        for rule in self.rules:
            handler = self.custom_handlers.get(rule.get("type"))
            if handler is None:
                continue
            if handler(context, rule):
                message = rule.get("message", rule.get("type", ""))
                try:
                    message = message.format(**rule)
                except (KeyError, IndexError, ValueError):
                    pass
                triggered_events.append(
                    {
                        "rule": rule,
                        "level": rule.get("level", "info"),
                        "message": message,
                    }
                )
        return triggered_events
