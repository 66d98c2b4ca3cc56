"""
Signals emitted by the league models.

`round_completed` is sent (after commit) when a Race first enters the
completed state or when results are recorded for an already-completed
race. Receivers get `race` as a keyword argument.
"""

from django.dispatch import Signal

round_completed = Signal()
