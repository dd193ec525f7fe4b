from __future__ import annotations


class HistoryBusyError(RuntimeError):
    """Raised when a history operation starts while another one is still in flight.

    The history never queues or retries; callers serialize themselves or accept the rejection.
    """
