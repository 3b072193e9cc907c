"""
ARKHAM Reveal Module

Play-mode reveal transitions with variable assignment side effects.
"""

from arkham.reveal.state_machine import RevealStateMachine, RevealResult, cascade_order

__all__ = [
    "RevealStateMachine",
    "RevealResult",
    "cascade_order",
]
