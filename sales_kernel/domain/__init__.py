"""Pure domain values for the sales kernel: clock and admission decisions."""

from sales_kernel.domain.admission import AdmissionDecision, AdmissionOutcome
from sales_kernel.domain.clock import Clock, DeterministicClock, SystemClock

__all__ = [
    "AdmissionDecision",
    "AdmissionOutcome",
    "Clock",
    "DeterministicClock",
    "SystemClock",
]
